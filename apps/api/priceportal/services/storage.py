from __future__ import annotations

import logging
import os
import secrets
import string
import time
from pathlib import Path, PurePosixPath
from typing import Iterable, Optional, Protocol

from priceportal.core.config import settings

logger = logging.getLogger(__name__)

_KEY_ALPHABET = string.ascii_lowercase + string.digits


class StorageError(RuntimeError):
    """Object storage read/write failure."""


class Storage(Protocol):
    def save(self, path: str, data: bytes, content_type: Optional[str] = None) -> str:
        ...

    def remove(self, paths: Iterable[str]) -> int:
        ...

    def public_url(self, path: str) -> str:
        ...


def clean_folder(folder: Optional[str], default: str = "uploads") -> str:
    """Normalise a caller supplied folder; rejects absolute paths and '..'."""
    raw = (folder or "").strip().strip("/")
    if not raw:
        return default
    parts = PurePosixPath(raw).parts
    if any(p in ("..", ".") for p in parts) or "\\" in raw:
        raise StorageError(f"invalid folder: {folder!r}")
    return "/".join(parts)


def make_object_key(folder: str, filename: Optional[str], *, now_ms: Optional[int] = None) -> str:
    """
    `<folder>/<epoch millis>-<6 random chars>.<ext>`

    The extension is the lowercase extension of the original name, `bin`
    when there is none.
    """
    _, ext = os.path.splitext(filename or "")
    ext = ext.lstrip(".").lower() or "bin"
    stamp = now_ms if now_ms is not None else int(time.time() * 1000)
    suffix = "".join(secrets.choice(_KEY_ALPHABET) for _ in range(6))
    return f"{clean_folder(folder)}/{stamp}-{suffix}.{ext}"


class LocalStorage:
    """
    Bucket on the local filesystem: `<root>/<bucket>/<key>`.
    Objects are never overwritten.
    """

    def __init__(
        self,
        root: Optional[str] = None,
        bucket: Optional[str] = None,
        public_base_url: Optional[str] = None,
    ) -> None:
        self.bucket = bucket or settings.STORAGE_BUCKET
        self.root = Path(root or settings.STORAGE_ROOT)
        self.public_base_url = (public_base_url or settings.STORAGE_PUBLIC_BASE_URL).rstrip("/")

    @property
    def bucket_dir(self) -> Path:
        return self.root / self.bucket

    def _resolve(self, path: str) -> Path:
        key = PurePosixPath(path.lstrip("/"))
        if not key.parts or any(p in ("..", ".") for p in key.parts):
            raise StorageError(f"invalid object key: {path!r}")
        return self.bucket_dir.joinpath(*key.parts)

    def save(self, path: str, data: bytes, content_type: Optional[str] = None) -> str:
        target = self._resolve(path)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            with open(target, "xb") as fh:
                fh.write(data)
        except FileExistsError as e:
            raise StorageError(f"object already exists: {path}") from e
        except OSError as e:
            raise StorageError(f"failed to write {path}: {e}") from e

        logger.debug("stored %s (%d bytes, %s)", path, len(data), content_type or "?")
        return path

    def remove(self, paths: Iterable[str]) -> int:
        removed = 0
        for path in paths:
            if not path:
                continue
            target = self._resolve(path)
            try:
                target.unlink()
                removed += 1
            except FileNotFoundError:
                continue
            except OSError as e:
                raise StorageError(f"failed to remove {path}: {e}") from e
        return removed

    def public_url(self, path: str) -> str:
        return f"{self.public_base_url}/{self.bucket}/{path.lstrip('/')}"
