from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session, select

from studentrecords import models, services
from studentrecords.database import build_engine, create_db_and_tables
from studentrecords.main import create_app

PROGRAM = "BSc Computing"
STUDENT_PASSWORD = "studentpass"
ADMIN_PASSWORD = "adminpass"


def seed(session: Session) -> None:
    """Populate a small catalog, two students and one admin."""
    program = models.Program(title=PROGRAM, description="Computing degree", program_year=1)
    session.add(program)
    for code, title, year, semester in [
        ("CS101", "Programming 1", 1, "Autumn"),
        ("CS105", "Discrete Maths", 1, "Autumn"),
        ("CS102", "Programming 2", 1, "Spring"),
        ("CS103", "Databases", 1, "Spring"),
        ("CS104", "Networks", 1, "Spring"),
        ("CS201", "Algorithms", 2, "Autumn"),
    ]:
        session.add(models.Unit(
            unit_code=code, title=title, year_offered=year, semester_offered=semester,
            unit_fee=1200.0, program_title=PROGRAM,
        ))
    session.add(models.Unit(
        unit_code="BIO101", title="Cell Biology", year_offered=1, semester_offered="Autumn",
        program_title="BSc Biology",
    ))
    session.add(models.Prerequisite(unit_code="CS102", prerequisite_code="CS101"))
    session.add(models.Prerequisite(unit_code="CS201", prerequisite_code="CS102"))
    for sid, first in (("S1", "Ada"), ("S2", "Alan")):
        session.add(models.Student(
            student_id=sid, password=services.hash_password(STUDENT_PASSWORD),
            first_name=first, last_name="Tester", program_title=PROGRAM, program_year=1,
        ))
    session.add(models.Admin(username="admin", password=services.hash_password(ADMIN_PASSWORD)))
    session.commit()


def unit_id(session: Session, code: str) -> int:
    return session.exec(select(models.Unit.id).where(models.Unit.unit_code == code)).first()


@pytest.fixture
def engine(tmp_path):
    eng = build_engine(f"sqlite:///{tmp_path / 'records.db'}")
    create_db_and_tables(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as s:
        seed(s)
        yield s


@pytest.fixture
def client(tmp_path):
    app = create_app(f"sqlite:///{tmp_path / 'api.db'}")
    with TestClient(app) as c:
        with Session(app.state.engine) as s:
            seed(s)
            s.add(models.History(student_id="S1", unit_id=unit_id(s, "CS101"), action="registered",
                                 timestamp=datetime(2024, 2, 1, 9, 0, tzinfo=timezone.utc)))
            s.add(models.History(student_id="S1", unit_id=unit_id(s, "CS102"), action="dropped",
                                 timestamp=datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)))
            s.commit()
        yield c


@pytest.fixture
def db(client):
    """Session on the API's own engine, for assertions."""
    with Session(client.app.state.engine) as s:
        yield s


def _login(client, body):
    r = client.post('/api/auth/login', json=body)
    assert r.status_code == 200, r.text
    return {'Authorization': f"Bearer {r.json()['token']}"}


@pytest.fixture
def student_headers(client):
    return _login(client, {'userType': 'student', 'studentId': 'S1', 'password': STUDENT_PASSWORD})


@pytest.fixture
def admin_headers(client):
    return _login(client, {'userType': 'admin', 'username': 'admin', 'password': ADMIN_PASSWORD})
