"""SQLModel data models.

This module defines the student records tables. Relation tables refer to
students by their public `student_id`; grades and history refer to units
by the unit primary key, registrations by `unit_code`.
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import UniqueConstraint
from sqlmodel import SQLModel, Field


class Student(SQLModel, table=True):
    """An enrolled student.

    Fields:
    - `student_id`: unique public identifier used by every route
    - `password`: salted password hash (never store plaintext)
    - `program_title`/`program_year`: program the student follows
    """
    __tablename__ = "students"

    id: Optional[int] = Field(default=None, primary_key=True)
    student_id: str = Field(index=True, nullable=False, unique=True)
    password: str
    first_name: str
    last_name: str
    email: Optional[str] = None
    address: Optional[str] = None
    phone: Optional[str] = None
    program_id: Optional[int] = None
    program_title: Optional[str] = Field(default=None, index=True)
    program_year: Optional[int] = None


class Admin(SQLModel, table=True):
    """An administrator account."""
    __tablename__ = "admins"

    id: Optional[int] = Field(default=None, primary_key=True)
    username: str = Field(index=True, nullable=False, unique=True)
    password: str


class Program(SQLModel, table=True):
    __tablename__ = "programs"

    id: Optional[int] = Field(default=None, primary_key=True)
    title: str = Field(index=True)
    description: Optional[str] = None
    program_year: Optional[int] = None


class Unit(SQLModel, table=True):
    """A unit offered by a program in a given year and semester."""
    __tablename__ = "units"

    id: Optional[int] = Field(default=None, primary_key=True)
    unit_code: str = Field(index=True)
    title: str
    description: Optional[str] = None
    year_offered: Optional[int] = None
    semester_offered: Optional[str] = None
    unit_fee: Optional[float] = None
    program_id: Optional[int] = None
    program_title: Optional[str] = Field(default=None, index=True)


class Prerequisite(SQLModel, table=True):
    """`unit_code` may only be taken after `prerequisite_code`."""
    __tablename__ = "prerequisites"

    id: Optional[int] = Field(default=None, primary_key=True)
    unit_code: str = Field(index=True)
    prerequisite_code: str = Field(index=True)


class RegisteredUnit(SQLModel, table=True):
    """A student's registration for a unit in a semester.

    The unique constraint backs the no-duplicate rule in the store itself.
    """
    __tablename__ = "registered_units"
    __table_args__ = (
        UniqueConstraint("student_id", "unit_code", "semester", name="uq_registered_unit"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    student_id: str = Field(index=True)
    unit_code: str
    semester: str
    program_year: Optional[int] = None


class Grade(SQLModel, table=True):
    __tablename__ = "grades"
    __table_args__ = (
        UniqueConstraint("student_id", "unit_id", name="uq_grade_student_unit"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    student_id: str = Field(index=True)
    unit_id: int
    semester: Optional[str] = None
    year: Optional[int] = None
    grade: Optional[str] = None


class Invoice(SQLModel, table=True):
    """Fee summary; exactly one row per student."""
    __tablename__ = "invoice"

    id: Optional[int] = Field(default=None, primary_key=True)
    student_id: str = Field(index=True, unique=True)
    total_fees: float = 0
    amount_paid: float = 0
    holds: Optional[str] = None


class History(SQLModel, table=True):
    """Append-only log of unit actions taken for a student."""
    __tablename__ = "history"

    id: Optional[int] = Field(default=None, primary_key=True)
    student_id: str = Field(index=True)
    unit_id: int
    action: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
