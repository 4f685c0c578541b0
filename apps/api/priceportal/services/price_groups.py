from __future__ import annotations

import logging
from datetime import datetime
from typing import Dict, Iterable, List, Optional
from uuid import UUID

from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session

from priceportal.core.context import AuthContext
from priceportal.models.price_group import PriceGroup, PriceGroupImage, UserGroupAccess
from priceportal.schemas.audit import CreateGroupDetail, DeleteGroupDetail, EditGroupDetail
from priceportal.schemas.price_group import PriceGroupCreateIn, PriceGroupUpdateIn
from priceportal.services.audit import AuditLogger
from priceportal.services.dashboard_stats import as_aware
from priceportal.services.storage import Storage, StorageError

logger = logging.getLogger(__name__)


class PriceGroupError(RuntimeError):
    pass


class NameRequired(PriceGroupError):
    def __init__(self) -> None:
        super().__init__("Name required")


def latest_image_times(db: Session, group_ids: Optional[Iterable[UUID]] = None) -> Dict[UUID, datetime]:
    """price_group_id -> created_at of its newest image."""
    stmt = select(PriceGroupImage.price_group_id, func.max(PriceGroupImage.created_at)).group_by(
        PriceGroupImage.price_group_id
    )
    if group_ids is not None:
        ids = list(group_ids)
        if not ids:
            return {}
        stmt = stmt.where(PriceGroupImage.price_group_id.in_(ids))
    return {gid: as_aware(ts) for gid, ts in db.execute(stmt) if ts is not None}


def list_groups(db: Session, branch_id: Optional[UUID] = None) -> List[PriceGroup]:
    stmt = select(PriceGroup)
    if branch_id:
        stmt = stmt.where(PriceGroup.branch_id == branch_id)
    return list(db.execute(stmt.order_by(PriceGroup.name.asc())).scalars().all())


def user_has_access(db: Session, user_id: UUID, group_id: UUID) -> bool:
    return (
        db.execute(
            select(UserGroupAccess.id).where(
                UserGroupAccess.user_id == user_id,
                UserGroupAccess.price_group_id == group_id,
            )
        ).first()
        is not None
    )


def create_group(db: Session, audit: AuditLogger, ctx: AuthContext, data: PriceGroupCreateIn) -> PriceGroup:
    name = (data.name or "").strip()
    if not name:
        raise NameRequired()

    group = PriceGroup(
        name=name,
        description=data.description or None,
        branch_id=data.branch_id,
        telegram_chat_id=data.telegram_chat_id or None,
    )
    db.add(group)
    db.commit()
    db.refresh(group)

    audit.record(
        ctx.user_id,
        CreateGroupDetail(group_id=group.id, group_name=group.name, description=group.description),
    )
    return group


def update_group(
    db: Session,
    audit: AuditLogger,
    ctx: AuthContext,
    group: PriceGroup,
    data: PriceGroupUpdateIn,
) -> PriceGroup:
    patch = data.model_dump(exclude_unset=True)
    for key, value in patch.items():
        if key == "name":
            if value is None:
                continue
            value = value.strip()
            if not value:
                raise NameRequired()
        setattr(group, key, value)

    db.commit()
    db.refresh(group)

    audit.record(
        ctx.user_id,
        EditGroupDetail(group_id=group.id, group_name=group.name, updated_fields=sorted(patch)),
    )
    return group


def delete_group(db: Session, storage: Storage, audit: AuditLogger, ctx: AuthContext, group: PriceGroup) -> None:
    """
    Remove access rows, image rows and the group in one commit. Stored
    objects are removed afterwards; a storage failure there only leaves
    orphaned files behind.
    """
    group_id = group.id
    group_name = group.name

    paths = [
        p
        for p in db.execute(
            select(PriceGroupImage.file_path).where(PriceGroupImage.price_group_id == group_id)
        ).scalars()
        if p
    ]

    db.execute(delete(UserGroupAccess).where(UserGroupAccess.price_group_id == group_id))
    db.execute(delete(PriceGroupImage).where(PriceGroupImage.price_group_id == group_id))
    db.delete(group)
    db.commit()

    if paths:
        try:
            storage.remove(paths)
        except StorageError:
            logger.warning("orphaned %d object(s) of deleted group=%s", len(paths), group_id, exc_info=True)

    audit.record(ctx.user_id, DeleteGroupDetail(group_id=group_id, group_name=group_name or "Unknown"))
