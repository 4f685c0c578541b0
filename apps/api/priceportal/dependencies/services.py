from __future__ import annotations

from fastapi import Depends
from sqlalchemy.orm import Session

from priceportal.core.context import RequestMeta
from priceportal.db.session import get_db
from priceportal.dependencies.request_meta import get_request_meta
from priceportal.services.audit import AuditLogger
from priceportal.services.notifier import ImageNotifier, TelegramNotifier
from priceportal.services.storage import LocalStorage, Storage


def get_storage() -> Storage:
    return LocalStorage()


def get_notifier() -> ImageNotifier:
    return TelegramNotifier()


def get_audit_logger(
    db: Session = Depends(get_db),
    meta: RequestMeta = Depends(get_request_meta),
) -> AuditLogger:
    return AuditLogger(db, meta)
