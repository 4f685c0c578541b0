from __future__ import annotations

"""
Price image upload pipeline.

Replace-all on a group is NOT transactional:

1. clear: every object and row of the group is deleted
2. upload: files are stored + inserted one at a time, in caller order;
   the first failure stops the batch, earlier files stay persisted
3. notify: only after every upload succeeded, each new image is forwarded
   to the group's Telegram chat; forward failures are logged and ignored

A failure after step 1 leaves the group with fewer (or zero) images. The
caller sees the error and retries the whole replace.
"""

import html
import io
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from PIL import Image
from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from priceportal.core.context import AuthContext
from priceportal.models.price_group import PriceGroup, PriceGroupImage
from priceportal.schemas.audit import UploadImageDetail
from priceportal.services.audit import AuditLogger
from priceportal.services.notifier import ImageEvent, ImageNotifier
from priceportal.services.storage import Storage, StorageError, make_object_key

logger = logging.getLogger(__name__)


class UploadError(RuntimeError):
    pass


class NoFileProvided(UploadError):
    def __init__(self) -> None:
        super().__init__("No file provided")


class InvalidImage(UploadError):
    def __init__(self, file_name: str) -> None:
        super().__init__(f"Invalid image file: {file_name}")
        self.file_name = file_name


class ClearFailed(UploadError):
    def __init__(self) -> None:
        super().__init__("Failed to clear existing images")


class FileUploadFailed(UploadError):
    def __init__(self, file_name: str, stored_before: int) -> None:
        super().__init__(f"Upload failed: {file_name}")
        self.file_name = file_name
        self.stored_before = stored_before


@dataclass(frozen=True)
class IncomingFile:
    filename: str
    data: bytes
    content_type: Optional[str] = None

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class StoredFile:
    file_path: str
    file_name: str
    public_url: str
    file_size: int


@dataclass
class ReplaceResult:
    cleared: int
    images: List[PriceGroupImage] = field(default_factory=list)
    forwarded: int = 0
    forward_failures: int = 0


# ============================================================
# single file
# ============================================================

def validate_image(f: IncomingFile) -> None:
    if not f.data:
        raise InvalidImage(f.filename)
    try:
        with Image.open(io.BytesIO(f.data)) as im:
            im.verify()
    except Exception as e:
        raise InvalidImage(f.filename) from e


def store_file(storage: Storage, f: IncomingFile, folder: str) -> StoredFile:
    """Write one object under a fresh key. Raises StorageError."""
    key = make_object_key(folder, f.filename)
    storage.save(key, f.data, f.content_type)
    return StoredFile(
        file_path=key,
        file_name=f.filename,
        public_url=storage.public_url(key),
        file_size=f.size,
    )


def build_caption(group_name: Optional[str], file_name: Optional[str]) -> str:
    return f"<b>{html.escape(group_name or '')}</b>\n{html.escape(file_name or '')}"


# ============================================================
# group images
# ============================================================

def clear_group_images(db: Session, storage: Storage, group_id) -> int:
    """Delete every object + row of the group. Returns the number of rows removed."""
    images = db.execute(
        select(PriceGroupImage).where(PriceGroupImage.price_group_id == group_id)
    ).scalars().all()
    if not images:
        return 0

    paths = [img.file_path for img in images if img.file_path]
    # objects go first: a remove that fails partway leaves every row in
    # place, including rows whose object is already gone
    if paths:
        storage.remove(paths)

    db.execute(delete(PriceGroupImage).where(PriceGroupImage.price_group_id == group_id))
    db.commit()
    return len(images)


def delete_image(db: Session, storage: Storage, image: PriceGroupImage) -> None:
    if image.file_path:
        storage.remove([image.file_path])
    db.delete(image)
    db.commit()


def replace_group_images(
    *,
    db: Session,
    storage: Storage,
    notifier: ImageNotifier,
    audit: AuditLogger,
    ctx: AuthContext,
    group: PriceGroup,
    files: Sequence[IncomingFile],
) -> ReplaceResult:
    if not files:
        raise NoFileProvided()

    # validation happens before anything is deleted
    for f in files:
        validate_image(f)

    try:
        cleared = clear_group_images(db, storage, group.id)
    except (StorageError, SQLAlchemyError) as e:
        db.rollback()
        logger.exception("clear failed group=%s", group.id)
        raise ClearFailed() from e

    result = ReplaceResult(cleared=cleared)
    folder = f"price-groups/{group.id}"

    for f in files:
        try:
            stored = store_file(storage, f, folder)
            row = PriceGroupImage(
                price_group_id=group.id,
                file_path=stored.file_path,
                file_name=f.filename,
                title="",
                uploaded_by=ctx.user_id,
            )
            db.add(row)
            db.commit()
            db.refresh(row)
        except (StorageError, SQLAlchemyError) as e:
            db.rollback()
            logger.exception(
                "upload failed group=%s file=%s after %d stored",
                group.id,
                f.filename,
                len(result.images),
            )
            raise FileUploadFailed(f.filename, len(result.images)) from e
        result.images.append(row)

    audit.record(
        ctx.user_id,
        UploadImageDetail(
            group_id=group.id,
            group_name=group.name,
            count=len(result.images),
            message=f"uploaded {len(result.images)} image(s) to {group.name}",
        ),
    )

    if group.telegram_chat_id:
        for img in result.images:
            sent = notifier.notify(
                ImageEvent(
                    chat_id=group.telegram_chat_id,
                    image_url=storage.public_url(img.file_path),
                    caption=build_caption(group.name, img.file_name),
                )
            )
            if sent.ok:
                result.forwarded += 1
            else:
                result.forward_failures += 1
                logger.warning(
                    "telegram forward skipped group=%s image=%s: %s",
                    group.id,
                    img.id,
                    sent.error,
                )

    return result
