from __future__ import annotations

import logging
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from priceportal.core.context import AuthContext
from priceportal.core.errors import store_failure
from priceportal.db.session import get_db
from priceportal.dependencies.auth import get_auth_context
from priceportal.dependencies.permissions import require_admin, require_staff
from priceportal.dependencies.services import get_audit_logger, get_notifier, get_storage
from priceportal.models.price_group import PriceGroup, PriceGroupImage
from priceportal.schemas.price_group import (
    ClearImagesOut,
    PriceGroupDetailOut,
    PriceGroupImageIn,
    PriceGroupImageOut,
    PriceGroupListOut,
    ReplaceImagesOut,
)
from priceportal.services.audit import AuditLogger
from priceportal.services.notifier import ImageNotifier
from priceportal.services.price_groups import latest_image_times, list_groups, user_has_access
from priceportal.services.storage import Storage, StorageError
from priceportal.services.uploads import (
    ClearFailed,
    FileUploadFailed,
    IncomingFile,
    InvalidImage,
    NoFileProvided,
    clear_group_images,
    replace_group_images,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/price-groups", tags=["price-groups"])

MAX_UPLOAD_BYTES = 10 * 1024 * 1024


def _get_group(db: Session, group_id: UUID) -> PriceGroup:
    group = db.get(PriceGroup, group_id)
    if group is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Price group not found")
    return group


# ============================================================
# groups
# ============================================================

@router.get("", response_model=List[PriceGroupListOut])
def list_price_groups(
    branchId: Optional[UUID] = None,
    _: AuthContext = Depends(require_staff),
    db: Session = Depends(get_db),
):
    try:
        groups = list_groups(db, branchId)
        latest = latest_image_times(db, [g.id for g in groups])
    except SQLAlchemyError:
        logger.exception("list price groups failed")
        raise store_failure(db, "Failed to fetch price groups") from None

    out = []
    for g in groups:
        item = PriceGroupListOut.model_validate(g)
        item.last_updated_at = latest.get(g.id)
        out.append(item)
    return out


@router.get("/{group_id}", response_model=PriceGroupDetailOut)
def get_price_group(
    group_id: UUID,
    _: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    return _get_group(db, group_id)


# ============================================================
# images
# ============================================================

@router.get("/{group_id}/images", response_model=List[PriceGroupImageOut])
def list_group_images(
    group_id: UUID,
    ctx: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    try:
        if not ctx.is_admin and not user_has_access(db, ctx.user_id, group_id):
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied")

        return db.execute(
            select(PriceGroupImage)
            .where(PriceGroupImage.price_group_id == group_id)
            .order_by(PriceGroupImage.created_at.desc())
        ).scalars().all()
    except SQLAlchemyError:
        logger.exception("list images failed group=%s", group_id)
        raise store_failure(db, "Failed to fetch images") from None


@router.post("/{group_id}/images", response_model=PriceGroupImageOut)
def add_group_image(
    group_id: UUID,
    data: PriceGroupImageIn,
    ctx: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    if not data.file_path:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="file_path is required")
    _get_group(db, group_id)

    try:
        row = PriceGroupImage(
            price_group_id=group_id,
            file_path=data.file_path,
            file_name=data.file_name,
            title=data.title,
            uploaded_by=ctx.user_id,
        )
        db.add(row)
        db.commit()
        db.refresh(row)
        return row
    except SQLAlchemyError:
        logger.exception("add image failed group=%s", group_id)
        raise store_failure(db, "Failed to add image") from None


@router.delete("/{group_id}/images/clear", response_model=ClearImagesOut)
def clear_images(
    group_id: UUID,
    _: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
    storage: Storage = Depends(get_storage),
):
    try:
        deleted = clear_group_images(db, storage, group_id)
    except (StorageError, SQLAlchemyError):
        logger.exception("clear images failed group=%s", group_id)
        raise store_failure(db, "Failed to clear images") from None
    return ClearImagesOut(deleted=deleted)


@router.post("/{group_id}/images/replace", response_model=ReplaceImagesOut)
async def replace_images(
    group_id: UUID,
    files: Optional[List[UploadFile]] = File(default=None),
    ctx: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
    storage: Storage = Depends(get_storage),
    notifier: ImageNotifier = Depends(get_notifier),
    audit: AuditLogger = Depends(get_audit_logger),
):
    """
    Replace every image of the group with the uploaded files (in order),
    then forward each new image to the group's Telegram chat.
    """
    group = await run_in_threadpool(_get_group, db, group_id)

    incoming: List[IncomingFile] = []
    for f in files or []:
        content = await f.read()
        if len(content) > MAX_UPLOAD_BYTES:
            raise HTTPException(status_code=413, detail="File too large (max 10MB)")
        incoming.append(IncomingFile(filename=f.filename or "upload", data=content, content_type=f.content_type))

    try:
        # storage, commits and Telegram calls are blocking
        result = await run_in_threadpool(
            replace_group_images,
            db=db,
            storage=storage,
            notifier=notifier,
            audit=audit,
            ctx=ctx,
            group=group,
            files=incoming,
        )
    except (NoFileProvided, InvalidImage) as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from None
    except (ClearFailed, FileUploadFailed) as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e)) from None

    return ReplaceImagesOut(
        cleared=result.cleared,
        images=[PriceGroupImageOut.model_validate(img) for img in result.images],
        forwarded=result.forwarded,
        forward_failures=result.forward_failures,
    )
