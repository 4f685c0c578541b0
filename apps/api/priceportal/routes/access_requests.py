from __future__ import annotations

import logging
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from priceportal.core.context import AuthContext
from priceportal.core.errors import store_failure
from priceportal.db.session import get_db
from priceportal.dependencies.auth import get_auth_context
from priceportal.dependencies.permissions import require_staff
from priceportal.dependencies.services import get_audit_logger
from priceportal.models.access_request import AccessRequest
from priceportal.schemas.access_request import (
    AccessRequestCreateIn,
    AccessRequestDetailOut,
    AccessRequestOut,
    ApproveIn,
    RejectIn,
)
from priceportal.schemas.common import SuccessOut
from priceportal.services.access_requests import (
    InvalidTransition,
    RequestNotFound,
    ShopNameRequired,
    UnknownBranch,
    UnknownPriceGroups,
    approve_request,
    create_request,
    latest_request_for,
    reject_request,
)
from priceportal.services.audit import AuditLogger

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/access-requests", tags=["access-requests"])


def _translate(e: Exception) -> HTTPException:
    if isinstance(e, RequestNotFound):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Request not found")
    if isinstance(e, InvalidTransition):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


# ============================================================
# requester
# ============================================================

@router.post("", response_model=AccessRequestOut)
def create_access_request(
    data: AccessRequestCreateIn,
    ctx: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
    audit: AuditLogger = Depends(get_audit_logger),
):
    try:
        return create_request(db, audit, ctx, branch_id=data.branchId, shop_name=data.shopName, note=data.note)
    except (UnknownBranch, ShopNameRequired) as e:
        raise _translate(e) from None
    except SQLAlchemyError:
        logger.exception("create access request failed user=%s", ctx.user_id)
        raise store_failure(db, "Failed to create request") from None


@router.get("/me", response_model=Optional[AccessRequestDetailOut])
def get_my_request(
    ctx: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    try:
        return latest_request_for(db, ctx.user_id)
    except SQLAlchemyError:
        logger.exception("fetch own request failed user=%s", ctx.user_id)
        raise store_failure(db, "Failed to fetch request") from None


# ============================================================
# staff
# ============================================================

@router.get("", response_model=List[AccessRequestDetailOut])
def list_access_requests(
    _: AuthContext = Depends(require_staff),
    db: Session = Depends(get_db),
):
    try:
        return db.execute(
            select(AccessRequest)
            .options(selectinload(AccessRequest.user), selectinload(AccessRequest.branch))
            .order_by(AccessRequest.created_at.desc())
        ).scalars().all()
    except SQLAlchemyError:
        logger.exception("list access requests failed")
        raise store_failure(db, "Failed to fetch requests") from None


@router.post("/{request_id}/approve", response_model=SuccessOut)
def approve(
    request_id: UUID,
    data: ApproveIn,
    ctx: AuthContext = Depends(require_staff),
    db: Session = Depends(get_db),
    audit: AuditLogger = Depends(get_audit_logger),
):
    try:
        approve_request(db, audit, ctx, request_id=request_id, price_group_ids=data.priceGroupIds)
    except (RequestNotFound, InvalidTransition, UnknownPriceGroups) as e:
        raise _translate(e) from None
    except SQLAlchemyError:
        logger.exception("approve failed request=%s", request_id)
        raise store_failure(db, "Failed to approve request") from None
    return SuccessOut()


@router.post("/{request_id}/reject", response_model=SuccessOut)
def reject(
    request_id: UUID,
    data: Optional[RejectIn] = None,
    ctx: AuthContext = Depends(require_staff),
    db: Session = Depends(get_db),
    audit: AuditLogger = Depends(get_audit_logger),
):
    reason = data.reason if data else None
    try:
        reject_request(db, audit, ctx, request_id=request_id, reason=reason)
    except (RequestNotFound, InvalidTransition) as e:
        raise _translate(e) from None
    except SQLAlchemyError:
        logger.exception("reject failed request=%s", request_id)
        raise store_failure(db, "Failed to reject request") from None
    return SuccessOut()
