import pytest

from studentrecords import models
from studentrecords.errors import NotFoundError
from studentrecords.services import AuditService, RecordService, RegistrationService
from conftest import PROGRAM, unit_id


def test_full_audit_without_registrations(session):
    audit = AuditService(session).full_audit('S1')
    assert audit['student']['student_id'] == 'S1'
    assert audit['student']['program_title'] == PROGRAM
    codes = [u['unitCode'] for u in audit['units']]
    assert codes == ['CS101', 'CS105', 'CS102', 'CS103', 'CS104', 'CS201']
    assert all(u['isRegistered'] is False for u in audit['units'])


def test_full_audit_prerequisite_flags(session):
    units = {u['unitCode']: u for u in AuditService(session).full_audit('S1')['units']}
    assert units['CS101']['isPrerequisite'] is True
    assert units['CS101']['hasPrerequisites'] is False
    assert units['CS102']['isPrerequisite'] is True
    assert units['CS102']['hasPrerequisites'] is True
    assert units['CS201']['isPrerequisite'] is False
    assert units['CS201']['hasPrerequisites'] is True
    assert units['CS103']['isPrerequisite'] is False


def test_full_audit_marks_registered_units(session):
    RegistrationService(session).register_units('S1', [{'unit_code': 'CS101', 'semester': 'Autumn'}])
    units = {u['unitCode']: u for u in AuditService(session).full_audit('S1')['units']}
    assert units['CS101']['isRegistered'] is True
    assert units['CS105']['isRegistered'] is False
    # other students' registrations are not counted
    s2 = {u['unitCode']: u for u in AuditService(session).full_audit('S2')['units']}
    assert s2['CS101']['isRegistered'] is False


def test_full_audit_unknown_student(session):
    with pytest.raises(NotFoundError):
        AuditService(session).full_audit('NOPE')


def test_full_audit_program_without_units(session):
    RecordService(session).create_student({
        'student_id': 'S3', 'password': 'pw', 'first_name': 'Grace', 'last_name': 'Hopper',
        'program_title': 'BSc Empty', 'program_year': 1,
    })
    audit = AuditService(session).full_audit('S3')
    assert audit['units'] == []


def test_grade_audit_pass_and_fail(session):
    records = RecordService(session)
    records.upsert_grade('S1', unit_id(session, 'CS101'), 'B', 'Autumn', 2024)
    records.upsert_grade('S1', unit_id(session, 'CS105'), 'F', 'Autumn', 2024)
    rows = {r['title']: r for r in AuditService(session).grade_audit('S1')}
    assert rows['Programming 1']['status'] == 'Passed'
    assert rows['Discrete Maths']['status'] == 'Failed'
    assert rows['Discrete Maths']['grade'] == 'F'


def test_grade_audit_empty_for_ungraded_student(session):
    assert AuditService(session).grade_audit('S2') == []
