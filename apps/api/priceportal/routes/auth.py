from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from priceportal.core.context import AuthContext
from priceportal.core.errors import store_failure
from priceportal.core.security import create_access_token, verify_bridge_secret
from priceportal.db.session import get_db
from priceportal.dependencies.auth import get_auth_context
from priceportal.dependencies.services import get_audit_logger
from priceportal.models.user import User
from priceportal.schemas.user import SessionOut, SignInIn, SignInOut
from priceportal.services.audit import AuditLogger
from priceportal.services.auth import sign_in

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


# ============================================================
# sign-in (identity-provider bridge)
# ============================================================

@router.post("/sign-in", response_model=SignInOut)
def sign_in_endpoint(
    data: SignInIn,
    x_auth_bridge_secret: Optional[str] = Header(default=None),
    db: Session = Depends(get_db),
    audit: AuditLogger = Depends(get_audit_logger),
):
    """
    Called by the LINE login front end after it verified the OAuth flow.
    Creates the user on first sign-in and issues a session token.
    """
    if not verify_bridge_secret(x_auth_bridge_secret):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        result = sign_in(db, audit, data)
    except SQLAlchemyError:
        logger.exception("sign-in failed provider_id=%s", data.provider_id)
        raise store_failure(db, "Failed to sign in") from None

    user = result.user
    return SignInOut(
        access_token=create_access_token(str(user.id)),
        user_id=user.id,
        is_admin=bool(user.is_admin),
        is_operator=bool(user.is_operator),
    )


@router.get("/session", response_model=SessionOut)
def get_session(
    ctx: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    user = db.get(User, ctx.user_id)
    return SessionOut(
        user_id=ctx.user_id,
        is_admin=ctx.is_admin,
        is_operator=ctx.is_operator,
        name=user.name if user else None,
        image=user.image if user else None,
    )
