"""Administrative record maintenance endpoints (admin token required)."""

from fastapi import APIRouter, Depends
from sqlmodel import Session

from .. import services
from ..auth import require_admin
from ..database import get_session
from ..schemas import GradeIn, InvoiceIn, MessageOut, ProgramIn, StudentIn, UnitIn

router = APIRouter(prefix="/api/admin", tags=["admin"], dependencies=[Depends(require_admin)])


@router.post('/student', response_model=MessageOut)
def create_student(payload: StudentIn, db: Session = Depends(get_session)):
    """Create a student account; 400 if the student id is taken."""
    services.RecordService(db).create_student(payload.model_dump())
    return {'message': 'Student created successfully'}


@router.put('/invoice/{student_id}', response_model=MessageOut)
def update_invoice(student_id: str, payload: InvoiceIn, db: Session = Depends(get_session)):
    """Create or replace the student's single invoice row."""
    services.RecordService(db).upsert_invoice(student_id, payload.total_fees, payload.amount_paid, payload.holds)
    return {'message': 'Invoice saved successfully'}


@router.put('/grade/{student_id}/{unit_id}', response_model=MessageOut)
def update_grade(student_id: str, unit_id: int, payload: GradeIn, db: Session = Depends(get_session)):
    """Create or replace the student's grade for one unit."""
    services.RecordService(db).upsert_grade(student_id, unit_id, payload.grade, payload.semester, payload.year)
    return {'message': 'Grade saved successfully'}


@router.post('/program', response_model=MessageOut)
def create_program(payload: ProgramIn, db: Session = Depends(get_session)):
    services.RecordService(db).create_program(payload.title, payload.description, payload.program_year)
    return {'message': 'Program created successfully'}


@router.post('/unit', response_model=MessageOut)
def create_unit(payload: UnitIn, db: Session = Depends(get_session)):
    services.RecordService(db).create_unit(payload.model_dump())
    return {'message': 'Unit created successfully'}
