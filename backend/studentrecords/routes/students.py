"""Student-facing endpoints: invoice, grades, audits, history, registration."""

from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlmodel import Session

from .. import services
from ..auth import get_current_user
from ..database import get_session
from ..schemas import MessageOut, RegisterUnitsIn

router = APIRouter(prefix="/api/students", tags=["students"], dependencies=[Depends(get_current_user)])


@router.get('/available-units')
def available_units(programTitle: str, yearOffered: int, semester: str, db: Session = Depends(get_session)) -> List[dict]:
    """Units a program offers in the given year and semester."""
    return services.StudentQueryService(db).available_units(programTitle, yearOffered, semester)


@router.post('/register-units', response_model=MessageOut)
def register_units(payload: RegisterUnitsIn, db: Session = Depends(get_session)):
    """Register a student for units, at most four per semester.

    The whole request is committed or rejected; a capacity or duplicate
    violation returns 400 and leaves no rows behind.
    """
    services.RegistrationService(db).register_units(
        payload.student_id, [u.model_dump() for u in payload.units]
    )
    return {'message': 'Units registered successfully!'}


@router.get('/{student_id}/invoice')
def get_invoice(student_id: str, db: Session = Depends(get_session)) -> Optional[dict]:
    return services.StudentQueryService(db).invoice(student_id)


@router.get('/{student_id}/grades')
def get_grades(student_id: str, db: Session = Depends(get_session)) -> List[dict]:
    return services.StudentQueryService(db).grades(student_id)


@router.get('/{student_id}/audit')
def get_audit(student_id: str, db: Session = Depends(get_session)) -> List[dict]:
    """Pass/fail audit of every graded unit."""
    return services.AuditService(db).grade_audit(student_id)


@router.get('/{student_id}/full-audit')
def get_full_audit(student_id: str, db: Session = Depends(get_session)) -> dict:
    """Program catalog with prerequisite and registration flags per unit."""
    return services.AuditService(db).full_audit(student_id)


@router.get('/{student_id}/history')
def get_history(student_id: str, db: Session = Depends(get_session)) -> List[dict]:
    return services.StudentQueryService(db).history(student_id)


@router.get('/{student_id}/details')
def get_details(student_id: str, db: Session = Depends(get_session)) -> dict:
    return services.StudentQueryService(db).details(student_id)
