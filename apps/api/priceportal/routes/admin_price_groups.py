from __future__ import annotations

import logging
from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from priceportal.core.context import AuthContext
from priceportal.core.errors import store_failure
from priceportal.db.session import get_db
from priceportal.dependencies.permissions import require_admin
from priceportal.dependencies.services import get_audit_logger, get_storage
from priceportal.models.price_group import PriceGroup, PriceGroupImage
from priceportal.schemas.common import SuccessOut
from priceportal.schemas.price_group import (
    PriceGroupCreateIn,
    PriceGroupDetailOut,
    PriceGroupOut,
    PriceGroupUpdateIn,
)
from priceportal.services.audit import AuditLogger
from priceportal.services.price_groups import NameRequired, create_group, delete_group, update_group
from priceportal.services.storage import Storage, StorageError
from priceportal.services.uploads import delete_image

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin-price-groups"])


def _get_group(db: Session, group_id: UUID) -> PriceGroup:
    group = db.get(PriceGroup, group_id)
    if group is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Price group not found")
    return group


@router.get("/price-groups", response_model=List[PriceGroupDetailOut])
def admin_list_price_groups(
    _: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    try:
        return db.execute(select(PriceGroup).order_by(PriceGroup.created_at.desc())).scalars().all()
    except SQLAlchemyError:
        logger.exception("admin list price groups failed")
        raise store_failure(db, "Failed to fetch") from None


@router.post("/price-groups", response_model=PriceGroupOut)
def admin_create_price_group(
    data: PriceGroupCreateIn,
    ctx: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
    audit: AuditLogger = Depends(get_audit_logger),
):
    try:
        return create_group(db, audit, ctx, data)
    except NameRequired as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from None
    except SQLAlchemyError:
        logger.exception("create price group failed")
        raise store_failure(db, "Failed to create") from None


@router.patch("/price-groups/{group_id}", response_model=PriceGroupOut)
def admin_update_price_group(
    group_id: UUID,
    data: PriceGroupUpdateIn,
    ctx: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
    audit: AuditLogger = Depends(get_audit_logger),
):
    group = _get_group(db, group_id)
    try:
        return update_group(db, audit, ctx, group, data)
    except NameRequired as e:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from None
    except SQLAlchemyError:
        logger.exception("update price group failed group=%s", group_id)
        raise store_failure(db, "Failed to update") from None


@router.delete("/price-groups/{group_id}", response_model=SuccessOut)
def admin_delete_price_group(
    group_id: UUID,
    ctx: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
    storage: Storage = Depends(get_storage),
    audit: AuditLogger = Depends(get_audit_logger),
):
    group = _get_group(db, group_id)
    try:
        delete_group(db, storage, audit, ctx, group)
    except SQLAlchemyError:
        logger.exception("delete price group failed group=%s", group_id)
        raise store_failure(db, "Failed to delete") from None
    return SuccessOut()


@router.delete("/price-group-images/{image_id}", response_model=SuccessOut)
def admin_delete_image(
    image_id: UUID,
    _: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
    storage: Storage = Depends(get_storage),
):
    image = db.get(PriceGroupImage, image_id)
    if image is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Image not found")

    try:
        delete_image(db, storage, image)
    except (StorageError, SQLAlchemyError):
        logger.exception("delete image failed image=%s", image_id)
        raise store_failure(db, "Failed to delete image") from None
    return SuccessOut()
