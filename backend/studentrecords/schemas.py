"""Pydantic request/response schemas used by the API.

Schemas keep API input/output shapes stable and provide validation for
controller handlers and tests. Field names follow the JSON bodies the
student and admin clients already send.
"""

from typing import List, Optional

from pydantic import BaseModel, Field


class LoginIn(BaseModel):
    """Login payload; students send `studentId`, admins `username`."""
    userType: str
    studentId: Optional[str] = None
    username: Optional[str] = None
    password: str


class TokenOut(BaseModel):
    token: str


class MessageOut(BaseModel):
    message: str


class UnitRegistrationItem(BaseModel):
    """One requested unit; `program_year` defaults to the student's."""
    unit_code: str = Field(min_length=1)
    semester: str = Field(min_length=1)
    program_year: Optional[int] = None


class RegisterUnitsIn(BaseModel):
    student_id: str
    units: List[UnitRegistrationItem] = []


class StudentIn(BaseModel):
    """Request format for creating a student account."""
    student_id: str = Field(min_length=1)
    password: str = Field(min_length=1)
    first_name: str
    last_name: str
    email: Optional[str] = None
    address: Optional[str] = None
    phone: Optional[str] = None
    program_id: Optional[int] = None
    program_title: Optional[str] = None
    program_year: Optional[int] = None


class InvoiceIn(BaseModel):
    total_fees: float
    amount_paid: float
    holds: Optional[str] = None


class GradeIn(BaseModel):
    grade: str
    semester: str
    year: int


class ProgramIn(BaseModel):
    title: str
    description: Optional[str] = None
    program_year: Optional[int] = None


class UnitIn(BaseModel):
    """Request format for creating a unit.

    `program_title` is resolved from `program_id` when omitted.
    """
    title: str
    unit_code: str
    description: Optional[str] = None
    semester_offered: Optional[str] = None
    year_offered: Optional[int] = None
    unit_fee: Optional[float] = None
    program_id: Optional[int] = None
    program_title: Optional[str] = None
