from __future__ import annotations

from typing import Any, List, Optional, Sequence
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from priceportal.models.announcement import MAX_ANNOUNCEMENT_IMAGES, Announcement, AnnouncementImage
from priceportal.schemas.announcement import AnnouncementCreateIn, AnnouncementOut, AnnouncementUpdateIn

PUBLIC_LIMIT = 3


class TitleRequired(RuntimeError):
    def __init__(self) -> None:
        super().__init__("Title is required")


def normalize_image_paths(images: Optional[Sequence[Any]]) -> Optional[List[str]]:
    """Non-empty strings only, first five kept. None when no list was sent."""
    if images is None:
        return None
    return [x for x in images if isinstance(x, str) and x][:MAX_ANNOUNCEMENT_IMAGES]


def to_out(a: Announcement) -> AnnouncementOut:
    out = AnnouncementOut.model_validate(a)
    if not out.image_path and out.images:
        out.image_path = out.images[0].image_path
    return out


def list_published(db: Session, limit: int = PUBLIC_LIMIT) -> List[AnnouncementOut]:
    rows = db.execute(
        select(Announcement)
        .where(Announcement.is_published.is_(True))
        .order_by(Announcement.created_at.desc())
        .limit(limit)
    ).scalars()
    return [to_out(a) for a in rows]


def list_all(db: Session) -> List[AnnouncementOut]:
    rows = db.execute(select(Announcement).order_by(Announcement.created_at.desc())).scalars()
    return [to_out(a) for a in rows]


def _set_images(a: Announcement, paths: List[str]) -> None:
    a.images = [AnnouncementImage(image_path=p, sort_order=i) for i, p in enumerate(paths)]


def create_announcement(db: Session, created_by: UUID, data: AnnouncementCreateIn) -> Announcement:
    title = (data.title or "").strip()
    if not title:
        raise TitleRequired()

    paths = normalize_image_paths(data.images) or []
    a = Announcement(
        title=title,
        body=data.body,
        image_path=(paths[0] if paths else None) or data.image_path,
        is_published=True,
        created_by=created_by,
    )
    _set_images(a, paths)
    db.add(a)
    db.commit()
    db.refresh(a)
    return a


def update_announcement(db: Session, a: Announcement, data: AnnouncementUpdateIn) -> Announcement:
    patch = data.model_dump(exclude_unset=True, exclude={"images"})
    paths = normalize_image_paths(data.images) if "images" in data.model_fields_set else None

    if paths:
        patch["image_path"] = paths[0]

    for key, value in patch.items():
        if key == "title" and value is None:
            continue
        setattr(a, key, value)

    if paths is not None:
        _set_images(a, paths)

    db.commit()
    db.refresh(a)
    return a


def delete_announcement(db: Session, a: Announcement) -> None:
    db.delete(a)
    db.commit()
