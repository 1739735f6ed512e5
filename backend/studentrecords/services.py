"""Business logic services used by HTTP controllers.

This module holds small service classes that coordinate repositories.
Services perform validation, execute domain logic and persist
aggregates via repositories; they raise the errors defined in
`errors` and never build HTTP responses themselves.
"""

import json
import logging
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

import jwt
from passlib.context import CryptContext
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session

from . import models, repositories
from .config import settings
from .errors import AuthError, NotFoundError, ValidationError

PWD_CTX = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")
MAX_UNITS_PER_SEMESTER = 4
PASSING_GRADES = ("A", "B", "C", "D")
USER_TYPES = ("student", "admin")

logger = logging.getLogger("studentrecords.registration")
auth_logger = logging.getLogger("studentrecords.auth")


def hash_password(password: str) -> str:
    """Return a salted hash suitable for the `password` columns."""
    return PWD_CTX.hash(password)


def student_summary(student: models.Student) -> dict:
    return {
        'student_id': student.student_id,
        'first_name': student.first_name,
        'last_name': student.last_name,
        'program_title': student.program_title,
        'program_year': student.program_year,
    }


class AuthService:
    """Credential verification and token issuance for students and admins."""
    def __init__(self, session: Session):
        self.session = session
        self.student_repo = repositories.StudentRepository(session)
        self.admin_repo = repositories.AdminRepository(session)

    def create_admin(self, username: str, password: str) -> models.Admin:
        """Create an administrator account with a hashed password."""
        if self.admin_repo.get_by_username(username):
            raise ValidationError('Admin already exists')
        return self.admin_repo.create(models.Admin(username=username, password=hash_password(password)))

    def authenticate(self, user_type: str, identifier: Optional[str], password: str) -> str:
        """Verify credentials and return a signed JWT token.

        Students are looked up by `student_id`, admins by `username`. An
        unknown identifier and a wrong password both raise the same
        `AuthError`; a dummy verification runs for unknown identifiers so
        both paths cost the same.
        """
        if user_type not in USER_TYPES:
            raise ValidationError('Invalid user type')
        user = None
        if identifier:
            if user_type == 'student':
                user = self.student_repo.get_by_student_id(identifier)
            else:
                user = self.admin_repo.get_by_username(identifier)
        if user is None:
            PWD_CTX.dummy_verify()
            auth_logger.info("login_failed %s", json.dumps({"user_type": user_type}))
            raise AuthError()
        if not PWD_CTX.verify(password, user.password):
            auth_logger.info("login_failed %s", json.dumps({"user_type": user_type}))
            raise AuthError()
        return self.issue_token(user.id, user_type)

    @staticmethod
    def issue_token(user_id: int, user_type: str, now: Optional[datetime] = None) -> str:
        """Sign a token embedding the internal id and role.

        The token expires `JWT_EXPIRE_HOURS` (two by default) after `now`.
        """
        issued = int((now or datetime.now(timezone.utc)).timestamp())
        expire = issued + int(timedelta(hours=settings.JWT_EXPIRE_HOURS).total_seconds())
        payload = {"id": user_id, "userType": user_type, "iat": issued, "exp": expire}
        return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


class RegistrationService:
    """Validate and commit a student's unit selections.

    A call is all-or-nothing: every semester group is checked and
    inserted inside one transaction, and the first violation rolls back
    every row the call inserted.
    """
    def __init__(self, session: Session):
        self.session = session
        self.student_repo = repositories.StudentRepository(session)
        self.reg_repo = repositories.RegistrationRepository(session)

    def register_units(self, student_id: str, units: List[dict]) -> int:
        """Register `{unit_code, semester, program_year}` requests.

        Returns the number of rows inserted. Raises `ValidationError` on
        the first capacity or duplicate violation and `NotFoundError`
        for an unknown student.
        """
        if not units:
            return 0
        try:
            # held until commit or rollback; counts below cannot go stale
            if not self.student_repo.lock(student_id):
                raise NotFoundError('Student not found')
            student = self.student_repo.get_by_student_id(student_id)
            inserted = 0
            for semester, group in self._group_by_semester(units).items():
                existing = self.reg_repo.count_for_semester(student_id, semester)
                if existing + len(group) > MAX_UNITS_PER_SEMESTER:
                    raise ValidationError(
                        f"You can only register for up to {MAX_UNITS_PER_SEMESTER} units in {semester}. "
                        f"You already have {existing} units."
                    )
                for unit in group:
                    self._insert(student, unit)
                    inserted += 1
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise
        logger.info(
            "units_registered %s",
            json.dumps({"student_id": student_id, "inserted": inserted}, ensure_ascii=True),
        )
        return inserted

    @staticmethod
    def _group_by_semester(units: List[dict]) -> Dict[str, List[dict]]:
        groups: Dict[str, List[dict]] = {}
        for unit in units:
            groups.setdefault(unit['semester'], []).append(unit)
        return groups

    def _insert(self, student: models.Student, unit: dict) -> None:
        code, semester = unit['unit_code'], unit['semester']
        duplicate = ValidationError(f"Unit {code} has already been registered for {semester}.")
        if self.reg_repo.exists(student.student_id, code, semester):
            raise duplicate
        program_year = unit.get('program_year')
        if program_year is None:
            program_year = student.program_year
        try:
            self.reg_repo.add(models.RegisteredUnit(
                student_id=student.student_id,
                unit_code=code,
                semester=semester,
                program_year=program_year,
            ))
        except IntegrityError:
            # a concurrent call committed the same row first
            raise duplicate


class AuditService:
    """Program audit and grade audit reports."""
    def __init__(self, session: Session):
        self.session = session
        self.student_repo = repositories.StudentRepository(session)
        self.unit_repo = repositories.UnitRepository(session)
        self.reg_repo = repositories.RegistrationRepository(session)
        self.grade_repo = repositories.GradeRepository(session)

    def full_audit(self, student_id: str) -> dict:
        """Return the student's program catalog annotated per unit.

        Each unit carries `isPrerequisite` (some other unit is gated on
        it), `hasPrerequisites` (it is gated on another unit) and
        `isRegistered` (the student registered it in any semester). The
        flags are set-membership projections over the prerequisite and
        registration tables; nothing is stored.
        """
        student = self.student_repo.get_by_student_id(student_id)
        if not student:
            raise NotFoundError('Student not found')
        units = self.unit_repo.list_for_program(student.program_title) if student.program_title else []
        gating = self.unit_repo.prerequisite_codes()
        gated = self.unit_repo.gated_codes()
        registered = self.reg_repo.codes_for_student(student_id)
        return {
            'student': student_summary(student),
            'units': [
                {
                    'unitCode': u.unit_code,
                    'title': u.title,
                    'yearOffered': u.year_offered,
                    'semesterOffered': u.semester_offered,
                    'isPrerequisite': u.unit_code in gating,
                    'hasPrerequisites': u.unit_code in gated,
                    'isRegistered': u.unit_code in registered,
                }
                for u in units
            ],
        }

    def grade_audit(self, student_id: str) -> List[dict]:
        """Pass/fail status for every graded unit (A-D pass)."""
        return [
            {
                'title': unit.title,
                'grade': grade.grade,
                'status': 'Passed' if grade.grade in PASSING_GRADES else 'Failed',
            }
            for grade, unit in self.grade_repo.list_with_units(student_id)
        ]


class StudentQueryService:
    """Read-only student views: invoice, grades, history, details."""
    def __init__(self, session: Session):
        self.session = session
        self.student_repo = repositories.StudentRepository(session)
        self.unit_repo = repositories.UnitRepository(session)
        self.grade_repo = repositories.GradeRepository(session)
        self.invoice_repo = repositories.InvoiceRepository(session)
        self.history_repo = repositories.HistoryRepository(session)

    def invoice(self, student_id: str) -> Optional[dict]:
        inv = self.invoice_repo.get_for_student(student_id)
        if not inv:
            return None
        return {
            'student_id': inv.student_id,
            'total_fees': inv.total_fees,
            'amount_paid': inv.amount_paid,
            'holds': inv.holds,
        }

    def grades(self, student_id: str) -> List[dict]:
        return [
            {'unit_name': unit.title, 'grade': grade.grade, 'semester': grade.semester, 'year': grade.year}
            for grade, unit in self.grade_repo.list_with_units(student_id)
        ]

    def history(self, student_id: str) -> List[dict]:
        """Unit actions for the student, newest first."""
        return [
            {'title': unit.title, 'action': h.action, 'timestamp': h.timestamp.isoformat()}
            for h, unit in self.history_repo.list_with_units(student_id)
        ]

    def details(self, student_id: str) -> dict:
        student = self.student_repo.get_by_student_id(student_id)
        if not student:
            raise NotFoundError('Student not found')
        return student_summary(student)

    def available_units(self, program_title: str, year_offered: int, semester: str) -> List[dict]:
        units = self.unit_repo.list_available(program_title, year_offered, semester)
        return [{'unit_code': u.unit_code, 'title': u.title} for u in units]


class RecordService:
    """Administrative create and update-or-insert operations."""
    def __init__(self, session: Session):
        self.session = session
        self.student_repo = repositories.StudentRepository(session)
        self.program_repo = repositories.ProgramRepository(session)
        self.unit_repo = repositories.UnitRepository(session)
        self.invoice_repo = repositories.InvoiceRepository(session)
        self.grade_repo = repositories.GradeRepository(session)

    def _program_title(self, program_id: Optional[int], program_title: Optional[str]) -> Optional[str]:
        if program_title or program_id is None:
            return program_title
        program = self.program_repo.get(program_id)
        return program.title if program else None

    def create_student(self, data: dict) -> models.Student:
        """Create a student; rejects an already used `student_id`."""
        if self.student_repo.exists(data['student_id']):
            raise ValidationError('Student already exists')
        fields = dict(data)
        fields['password'] = hash_password(fields['password'])
        fields['program_title'] = self._program_title(fields.get('program_id'), fields.get('program_title'))
        return self.student_repo.create(models.Student(**fields))

    def upsert_invoice(self, student_id: str, total_fees: float, amount_paid: float, holds: Optional[str]) -> None:
        self.invoice_repo.upsert(student_id, total_fees, amount_paid, holds)

    def upsert_grade(self, student_id: str, unit_id: int, grade: str, semester: str, year: int) -> None:
        self.grade_repo.upsert(student_id, unit_id, grade, semester, year)

    def create_program(self, title: str, description: Optional[str], program_year: Optional[int]) -> models.Program:
        return self.program_repo.create(
            models.Program(title=title, description=description, program_year=program_year)
        )

    def create_unit(self, data: dict) -> models.Unit:
        """Create a unit. Duplicate unit codes are not rejected."""
        fields = dict(data)
        fields['program_title'] = self._program_title(fields.get('program_id'), fields.get('program_title'))
        return self.unit_repo.create(models.Unit(**fields))
