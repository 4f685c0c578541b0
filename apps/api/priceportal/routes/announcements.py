from __future__ import annotations

import logging
from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from priceportal.core.context import AuthContext
from priceportal.core.errors import store_failure
from priceportal.db.session import get_db
from priceportal.dependencies.permissions import require_admin
from priceportal.models.announcement import Announcement
from priceportal.schemas.announcement import AnnouncementCreateIn, AnnouncementOut, AnnouncementUpdateIn
from priceportal.schemas.common import SuccessOut
from priceportal.services.announcements import (
    TitleRequired,
    create_announcement,
    delete_announcement,
    list_all,
    list_published,
    to_out,
    update_announcement,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["announcements"])


def _get_announcement(db: Session, announcement_id: UUID) -> Announcement:
    a = db.get(Announcement, announcement_id)
    if a is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Announcement not found")
    return a


@router.get("/announcements", response_model=List[AnnouncementOut])
def public_announcements(db: Session = Depends(get_db)):
    try:
        return list_published(db)
    except SQLAlchemyError:
        logger.exception("list announcements failed")
        raise store_failure(db, "Failed to fetch announcements") from None


# ============================================================
# admin
# ============================================================

@router.get("/admin/announcements", response_model=List[AnnouncementOut])
def admin_list_announcements(
    _: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    try:
        return list_all(db)
    except SQLAlchemyError:
        logger.exception("admin list announcements failed")
        raise store_failure(db, "Failed to fetch") from None


@router.post("/admin/announcements", response_model=AnnouncementOut)
def admin_create_announcement(
    data: AnnouncementCreateIn,
    ctx: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    try:
        return to_out(create_announcement(db, ctx.user_id, data))
    except TitleRequired as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from None
    except SQLAlchemyError:
        logger.exception("create announcement failed")
        raise store_failure(db, "Failed to create") from None


@router.patch("/admin/announcements/{announcement_id}", response_model=AnnouncementOut)
def admin_update_announcement(
    announcement_id: UUID,
    data: AnnouncementUpdateIn,
    _: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    a = _get_announcement(db, announcement_id)
    try:
        return to_out(update_announcement(db, a, data))
    except SQLAlchemyError:
        logger.exception("update announcement failed id=%s", announcement_id)
        raise store_failure(db, "Failed to update") from None


@router.delete("/admin/announcements/{announcement_id}", response_model=SuccessOut)
def admin_delete_announcement(
    announcement_id: UUID,
    _: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    a = _get_announcement(db, announcement_id)
    try:
        delete_announcement(db, a)
    except SQLAlchemyError:
        logger.exception("delete announcement failed id=%s", announcement_id)
        raise store_failure(db, "Failed to delete") from None
    return SuccessOut()
