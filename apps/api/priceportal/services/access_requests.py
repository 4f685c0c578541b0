from __future__ import annotations

import logging
from typing import List, Optional, Sequence
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from priceportal.core.context import AuthContext
from priceportal.models.access_request import (
    STATUS_APPROVED,
    STATUS_PENDING,
    STATUS_REJECTED,
    AccessRequest,
)
from priceportal.models.base import utcnow
from priceportal.models.branch import Branch
from priceportal.models.price_group import PriceGroup, UserGroupAccess
from priceportal.schemas.audit import ApproveRequestDetail, RejectRequestDetail, RequestAccessDetail
from priceportal.services.audit import AuditLogger

logger = logging.getLogger(__name__)


class AccessRequestError(RuntimeError):
    pass


class RequestNotFound(AccessRequestError):
    pass


class UnknownBranch(AccessRequestError):
    pass


class ShopNameRequired(AccessRequestError):
    def __init__(self) -> None:
        super().__init__("Shop name is required")


class UnknownPriceGroups(AccessRequestError):
    def __init__(self, missing: Sequence[UUID]) -> None:
        super().__init__("Unknown price group: " + ", ".join(str(m) for m in missing))
        self.missing = list(missing)


class InvalidTransition(AccessRequestError):
    def __init__(self, current: str, target: str) -> None:
        super().__init__(f"Request is already {current}, cannot mark {target}")
        self.current = current
        self.target = target


def _dedupe(ids: Sequence[UUID]) -> List[UUID]:
    seen: dict[UUID, None] = {}
    for i in ids:
        seen.setdefault(i, None)
    return list(seen)


# ============================================================
# group access (upsert on (user, group))
# ============================================================

def grant_group_access(
    db: Session,
    *,
    user_id: UUID,
    group_ids: Sequence[UUID],
    granted_by: Optional[UUID],
) -> List[UUID]:
    """
    Add access rows the user does not have yet. Existing (user, group)
    pairs are left untouched. Returns the newly granted group ids.
    Caller commits.
    """
    wanted = _dedupe(group_ids)
    if not wanted:
        return []

    existing = set(
        db.execute(
            select(UserGroupAccess.price_group_id).where(
                UserGroupAccess.user_id == user_id,
                UserGroupAccess.price_group_id.in_(wanted),
            )
        ).scalars()
    )

    added: List[UUID] = []
    for gid in wanted:
        if gid in existing:
            continue
        db.add(UserGroupAccess(user_id=user_id, price_group_id=gid, granted_by=granted_by))
        added.append(gid)
    return added


def assert_groups_exist(db: Session, group_ids: Sequence[UUID]) -> None:
    wanted = _dedupe(group_ids)
    if not wanted:
        return
    found = set(db.execute(select(PriceGroup.id).where(PriceGroup.id.in_(wanted))).scalars())
    missing = [g for g in wanted if g not in found]
    if missing:
        raise UnknownPriceGroups(missing)


# ============================================================
# lifecycle
# ============================================================

def create_request(
    db: Session,
    audit: AuditLogger,
    ctx: AuthContext,
    *,
    branch_id: UUID,
    shop_name: str,
    note: Optional[str],
) -> AccessRequest:
    if not (shop_name or "").strip():
        raise ShopNameRequired()
    if db.get(Branch, branch_id) is None:
        raise UnknownBranch("Branch not found")

    row = AccessRequest(
        user_id=ctx.user_id,
        branch_id=branch_id,
        shop_name=shop_name.strip(),
        note=note or None,
        status=STATUS_PENDING,
    )
    db.add(row)
    db.commit()
    db.refresh(row)

    audit.record(
        ctx.user_id,
        RequestAccessDetail(request_id=row.id, branch_id=branch_id, shop_name=row.shop_name),
    )
    return row


def _transition(db: Session, request_id: UUID, target: str, **values) -> AccessRequest:
    """
    pending -> target as a single conditional UPDATE, so two concurrent
    decisions on one request cannot both win.
    """
    res = db.execute(
        update(AccessRequest)
        .where(AccessRequest.id == request_id, AccessRequest.status == STATUS_PENDING)
        .values(status=target, updated_at=utcnow(), **values)
        .execution_options(synchronize_session=False)
    )
    if res.rowcount != 1:
        db.rollback()
        row = db.get(AccessRequest, request_id)
        if row is None:
            raise RequestNotFound("Request not found")
        raise InvalidTransition(row.status, target)

    row = db.get(AccessRequest, request_id)
    db.refresh(row)
    return row


def approve_request(
    db: Session,
    audit: AuditLogger,
    ctx: AuthContext,
    *,
    request_id: UUID,
    price_group_ids: Sequence[UUID],
) -> AccessRequest:
    group_ids = _dedupe(price_group_ids)
    if db.get(AccessRequest, request_id) is None:
        raise RequestNotFound("Request not found")
    assert_groups_exist(db, group_ids)

    row = _transition(db, request_id, STATUS_APPROVED)
    granted = grant_group_access(db, user_id=row.user_id, group_ids=group_ids, granted_by=ctx.user_id)
    db.commit()

    logger.info(
        "access request approved id=%s user=%s groups=%d new=%d by=%s",
        row.id,
        row.user_id,
        len(group_ids),
        len(granted),
        ctx.user_id,
    )
    audit.record(
        ctx.user_id,
        ApproveRequestDetail(request_id=row.id, target_user_id=row.user_id, price_group_ids=group_ids),
    )
    return row


def reject_request(
    db: Session,
    audit: AuditLogger,
    ctx: AuthContext,
    *,
    request_id: UUID,
    reason: Optional[str],
) -> AccessRequest:
    row = _transition(db, request_id, STATUS_REJECTED, reject_reason=reason or None)
    db.commit()

    audit.record(
        ctx.user_id,
        RejectRequestDetail(request_id=row.id, target_user_id=row.user_id, reason=reason or None),
    )
    return row


def latest_request_for(db: Session, user_id: UUID) -> Optional[AccessRequest]:
    return db.execute(
        select(AccessRequest)
        .where(AccessRequest.user_id == user_id)
        .order_by(AccessRequest.created_at.desc())
        .limit(1)
    ).scalar_one_or_none()
