from __future__ import annotations

from typing import Optional
from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from priceportal.core.context import AuthContext
from priceportal.core.security import decode_access_token
from priceportal.db.session import get_db
from priceportal.models.user import User

bearer_scheme = HTTPBearer(auto_error=False, description="Session token from POST /api/auth/sign-in")


def _unauthorized() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Unauthorized",
        headers={"WWW-Authenticate": "Bearer"},
    )


def _token_user_id(creds: Optional[HTTPAuthorizationCredentials]) -> Optional[UUID]:
    if creds is None:
        return None
    sub = decode_access_token(creds.credentials)
    if sub is None:
        return None
    try:
        return UUID(sub)
    except ValueError:
        return None


def get_current_user(
    creds: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> User:
    """
    Caller's users row, loaded on every request.

    Missing/invalid/expired tokens and deleted users are all a plain 401.
    """
    user_id = _token_user_id(creds)
    user = db.get(User, user_id) if user_id else None
    if user is None:
        raise _unauthorized()
    return user


def get_auth_context(user: User = Depends(get_current_user)) -> AuthContext:
    # role flags always come from the users row, never from the token
    return AuthContext(
        user_id=user.id,
        is_admin=bool(user.is_admin),
        is_operator=bool(user.is_operator),
    )
