"""Authentication helpers and FastAPI security dependencies.

This module decodes the bearer tokens issued by `AuthService` and
provides `get_current_user`, which returns the `Student` or `Admin` row
the token names, plus `require_admin` for the administrative routes.

Token verification raises HTTPExceptions on failure so the helpers can
be used directly inside route dependencies.
"""

from typing import Union

import jwt
from fastapi import Depends, HTTPException, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlmodel import Session

from . import models, repositories
from .config import settings
from .database import get_session

bearer_scheme = HTTPBearer()


def decode_token(token: str) -> dict:
    """Decode and verify a JWT token.

    Returns the decoded payload on success or raises an HTTPException
    with status 401 on failure.
    """
    try:
        return jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail='token expired')
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=401, detail='invalid token')


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Security(bearer_scheme),
    db: Session = Depends(get_session),
) -> Union[models.Student, models.Admin]:
    """FastAPI dependency that returns the authenticated principal.

    The token's `userType` selects the table and `id` the row. Any
    missing claim or row is reported as HTTP 401.
    """
    payload = decode_token(credentials.credentials)
    user_id = payload.get('id')
    user_type = payload.get('userType')
    if user_id is None or user_type not in ('student', 'admin'):
        raise HTTPException(status_code=401, detail='invalid token payload')
    if user_type == 'admin':
        user = repositories.AdminRepository(db).get(user_id)
    else:
        user = repositories.StudentRepository(db).get(user_id)
    if not user:
        raise HTTPException(status_code=401, detail='user not found')
    return user


def require_admin(user=Depends(get_current_user)) -> models.Admin:
    """Allow only administrator tokens (HTTP 403 otherwise)."""
    if not isinstance(user, models.Admin):
        raise HTTPException(status_code=403, detail='admin access required')
    return user
