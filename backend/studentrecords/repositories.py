"""Repository classes encapsulating database operations.

Each repository is small and focused on a single aggregate (students,
admins, programs, units, registrations, grades, invoices, history).
Creates commit immediately; registration inserts only flush so the
registration service can commit or roll back a whole batch.
"""

from typing import Any, Dict, Iterable, List, Optional, Set

from sqlalchemy import func, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlmodel import Session, select

from . import models
from .errors import StoreError

_UPSERT_DIALECTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def _upsert(session: Session, model, values: Dict[str, Any], keys: Iterable[str]) -> None:
    """Insert `values` or update the row that matches on `keys`.

    Runs as a single `INSERT ... ON CONFLICT DO UPDATE` statement so there
    is no window between the existence check and the write.
    """
    dialect = session.get_bind().dialect.name
    insert = _UPSERT_DIALECTS.get(dialect)
    if insert is None:
        raise StoreError(f"upsert not supported for dialect {dialect}")
    keys = list(keys)
    stmt = insert(model.__table__).values(**values)
    stmt = stmt.on_conflict_do_update(
        index_elements=keys,
        set_={col: stmt.excluded[col] for col in values if col not in keys},
    )
    session.exec(stmt)
    session.commit()


class StudentRepository:
    """CRUD operations for `Student` objects."""
    def __init__(self, session: Session):
        self.session = session

    def create(self, student: models.Student) -> models.Student:
        """Persist a new student and return the managed instance."""
        self.session.add(student)
        self.session.commit()
        self.session.refresh(student)
        return student

    def get(self, pk: int) -> Optional[models.Student]:
        """Get a `Student` by internal primary key."""
        return self.session.get(models.Student, pk)

    def get_by_student_id(self, student_id: str) -> Optional[models.Student]:
        """Return a `Student` by public identifier or `None`."""
        stmt = select(models.Student).where(models.Student.student_id == student_id)
        return self.session.exec(stmt).first()

    def lock(self, student_id: str) -> bool:
        """Take the write lock on the student row for this transaction.

        Issues a no-op `UPDATE` so the lock is held on every dialect:
        PostgreSQL locks the row, SQLite takes its database write lock
        and makes concurrent writers wait for commit. Returns False when
        no such student exists.
        """
        stmt = (
            update(models.Student)
            .where(models.Student.student_id == student_id)
            .values(id=models.Student.id)
            .execution_options(synchronize_session=False)
        )
        return self.session.exec(stmt).rowcount > 0

    def exists(self, student_id: str) -> bool:
        stmt = select(models.Student.id).where(models.Student.student_id == student_id)
        return self.session.exec(stmt).first() is not None


class AdminRepository:
    def __init__(self, session: Session):
        self.session = session

    def create(self, admin: models.Admin) -> models.Admin:
        self.session.add(admin)
        self.session.commit()
        self.session.refresh(admin)
        return admin

    def get(self, pk: int) -> Optional[models.Admin]:
        return self.session.get(models.Admin, pk)

    def get_by_username(self, username: str) -> Optional[models.Admin]:
        """Return an `Admin` by username or `None` if not found."""
        stmt = select(models.Admin).where(models.Admin.username == username)
        return self.session.exec(stmt).first()


class ProgramRepository:
    def __init__(self, session: Session):
        self.session = session

    def create(self, program: models.Program) -> models.Program:
        self.session.add(program)
        self.session.commit()
        self.session.refresh(program)
        return program

    def get(self, pk: int) -> Optional[models.Program]:
        return self.session.get(models.Program, pk)


class UnitRepository:
    """Catalog queries for `Unit` and `Prerequisite` rows."""
    def __init__(self, session: Session):
        self.session = session

    def create(self, unit: models.Unit) -> models.Unit:
        self.session.add(unit)
        self.session.commit()
        self.session.refresh(unit)
        return unit

    def list_for_program(self, program_title: str) -> List[models.Unit]:
        """Return all units of a program ordered by year then semester."""
        stmt = (
            select(models.Unit)
            .where(models.Unit.program_title == program_title)
            .order_by(models.Unit.year_offered, models.Unit.semester_offered, models.Unit.unit_code)
        )
        return self.session.exec(stmt).all()

    def list_available(self, program_title: str, year_offered: int, semester: str) -> List[models.Unit]:
        """Return the units a program offers in one year/semester slot."""
        stmt = select(models.Unit).where(
            models.Unit.program_title == program_title,
            models.Unit.year_offered == year_offered,
            models.Unit.semester_offered == semester,
        ).order_by(models.Unit.unit_code)
        return self.session.exec(stmt).all()

    def prerequisite_codes(self) -> Set[str]:
        """Unit codes that some other unit is gated on."""
        stmt = select(models.Prerequisite.prerequisite_code).distinct()
        return set(self.session.exec(stmt).all())

    def gated_codes(self) -> Set[str]:
        """Unit codes that have at least one prerequisite."""
        stmt = select(models.Prerequisite.unit_code).distinct()
        return set(self.session.exec(stmt).all())


class RegistrationRepository:
    """Queries and inserts on `registered_units`.

    `add` flushes but never commits; the caller owns the transaction.
    """
    def __init__(self, session: Session):
        self.session = session

    def count_for_semester(self, student_id: str, semester: str) -> int:
        stmt = select(func.count()).select_from(models.RegisteredUnit).where(
            models.RegisteredUnit.student_id == student_id,
            models.RegisteredUnit.semester == semester,
        )
        return self.session.exec(stmt).one()

    def exists(self, student_id: str, unit_code: str, semester: str) -> bool:
        stmt = select(models.RegisteredUnit.id).where(
            models.RegisteredUnit.student_id == student_id,
            models.RegisteredUnit.unit_code == unit_code,
            models.RegisteredUnit.semester == semester,
        )
        return self.session.exec(stmt).first() is not None

    def add(self, registration: models.RegisteredUnit) -> models.RegisteredUnit:
        self.session.add(registration)
        self.session.flush()
        return registration

    def codes_for_student(self, student_id: str) -> Set[str]:
        stmt = select(models.RegisteredUnit.unit_code).where(models.RegisteredUnit.student_id == student_id)
        return set(self.session.exec(stmt).all())


class GradeRepository:
    def __init__(self, session: Session):
        self.session = session

    def upsert(self, student_id: str, unit_id: int, grade: str, semester: str, year: int) -> None:
        """Create or update the single grade row for a student/unit pair."""
        _upsert(
            self.session,
            models.Grade,
            {"student_id": student_id, "unit_id": unit_id, "grade": grade, "semester": semester, "year": year},
            keys=("student_id", "unit_id"),
        )

    def list_with_units(self, student_id: str):
        """Return `(Grade, Unit)` pairs for every graded unit of a student."""
        stmt = (
            select(models.Grade, models.Unit)
            .join(models.Unit, models.Grade.unit_id == models.Unit.id)
            .where(models.Grade.student_id == student_id)
            .order_by(models.Grade.year, models.Grade.semester, models.Unit.title)
        )
        return self.session.exec(stmt).all()


class InvoiceRepository:
    def __init__(self, session: Session):
        self.session = session

    def get_for_student(self, student_id: str) -> Optional[models.Invoice]:
        stmt = select(models.Invoice).where(models.Invoice.student_id == student_id)
        return self.session.exec(stmt).first()

    def upsert(self, student_id: str, total_fees: float, amount_paid: float, holds: Optional[str]) -> None:
        """Create or update the invoice row for `student_id`."""
        _upsert(
            self.session,
            models.Invoice,
            {"student_id": student_id, "total_fees": total_fees, "amount_paid": amount_paid, "holds": holds},
            keys=("student_id",),
        )


class HistoryRepository:
    def __init__(self, session: Session):
        self.session = session

    def list_with_units(self, student_id: str):
        """Return `(History, Unit)` pairs for a student, newest first."""
        stmt = (
            select(models.History, models.Unit)
            .join(models.Unit, models.History.unit_id == models.Unit.id)
            .where(models.History.student_id == student_id)
            .order_by(models.History.timestamp.desc())
        )
        return self.session.exec(stmt).all()
