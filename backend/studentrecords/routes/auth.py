"""Login endpoint."""

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlmodel import Session

from .. import services
from ..config import settings
from ..database import get_session
from ..errors import AuthError
from ..schemas import LoginIn, TokenOut

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post('/login', response_model=TokenOut)
def login(payload: LoginIn, request: Request, db: Session = Depends(get_session)):
    """Authenticate a student or admin and return a two-hour JWT.

    Unknown identifiers and wrong passwords get the same 401 response.
    Repeated failures from one client are refused with 429 until the
    window passes.
    """
    throttle = request.app.state.login_throttle
    key = request.client.host if request.client else 'unknown'
    allowed, retry_after = throttle.check(
        key, settings.LOGIN_RATE_LIMIT_PER_MIN, settings.LOGIN_RATE_LIMIT_WINDOW_SECONDS
    )
    if not allowed:
        raise HTTPException(
            status_code=429,
            detail=f"too many failed logins; retry after {retry_after}s",
            headers={"Retry-After": str(retry_after)},
        )
    identifier = payload.studentId if payload.userType == 'student' else payload.username
    try:
        token = services.AuthService(db).authenticate(payload.userType, identifier, payload.password)
    except AuthError:
        throttle.record_failure(key)
        raise
    throttle.reset(key)
    return {'token': token}
