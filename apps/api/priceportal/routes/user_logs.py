from __future__ import annotations

import logging
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.encoders import jsonable_encoder
from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from priceportal.core.context import AuthContext
from priceportal.core.errors import ErrorWithDetails, store_failure
from priceportal.core.pagination import LimitQuery, OffsetQuery
from priceportal.db.session import get_db
from priceportal.dependencies.auth import get_auth_context
from priceportal.dependencies.permissions import require_staff
from priceportal.dependencies.services import get_audit_logger
from priceportal.models.user import User
from priceportal.models.user_log import UserLog
from priceportal.schemas.audit import LogUserOut, UserAction, UserLogCreateIn, UserLogOut, parse_audit_entry
from priceportal.schemas.common import SuccessOut
from priceportal.services.audit import AuditLogger

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/user-logs", tags=["user-logs"])


@router.post("", response_model=SuccessOut)
def create_log(
    data: UserLogCreateIn,
    ctx: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
    audit: AuditLogger = Depends(get_audit_logger),
):
    """Client-side events (view_price, view_announcement, ...). The row is the whole job here."""
    try:
        entry = parse_audit_entry(data.action, data.details)
    except ValidationError as e:
        raise ErrorWithDetails(
            status.HTTP_400_BAD_REQUEST,
            "Invalid log details",
            details=jsonable_encoder(e.errors(include_url=False)),
        ) from None

    try:
        audit.append(ctx.user_id, entry)
    except SQLAlchemyError:
        logger.exception("create log failed action=%s", data.action)
        raise store_failure(db, "Failed to create log") from None
    return SuccessOut()


@router.get("", response_model=List[UserLogOut])
def list_logs(
    limit: int = LimitQuery,
    offset: int = OffsetQuery,
    user_id: Optional[UUID] = None,
    action: Optional[UserAction] = None,
    _: AuthContext = Depends(require_staff),
    db: Session = Depends(get_db),
):
    stmt = select(UserLog).order_by(UserLog.created_at.desc())
    if user_id:
        stmt = stmt.where(UserLog.user_id == user_id)
    if action:
        stmt = stmt.where(UserLog.action == action)

    try:
        logs = db.execute(stmt.offset(offset).limit(limit)).scalars().all()
        user_ids = {log.user_id for log in logs if log.user_id}
        users = {}
        if user_ids:
            users = {u.id: u for u in db.execute(select(User).where(User.id.in_(user_ids))).scalars()}
    except SQLAlchemyError:
        logger.exception("list logs failed")
        raise store_failure(db, "Failed to fetch logs") from None

    out: List[UserLogOut] = []
    for log in logs:
        item = UserLogOut.model_validate(log)
        owner = users.get(log.user_id) if log.user_id else None
        item.users = LogUserOut.model_validate(owner) if owner else None
        out.append(item)
    return out
