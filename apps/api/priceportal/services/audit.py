from __future__ import annotations

import logging
from typing import Optional
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from priceportal.core.context import RequestMeta
from priceportal.models.user_log import UserLog
from priceportal.schemas.audit import AuditEntry, entry_details
from priceportal.services.notifier import NotifyResult

logger = logging.getLogger(__name__)


class AuditLogger:
    """
    Writes user_logs rows.

    `record()` is the side-channel used after a primary operation has
    committed: it never raises, a failed write is rolled back, logged and
    returned as a failed NotifyResult (the audit trail is best-effort).
    `append()` is for requests whose primary job is the log row itself.
    """

    def __init__(self, db: Session, meta: Optional[RequestMeta] = None) -> None:
        self.db = db
        self.meta = meta or RequestMeta()

    def _row(self, actor_id: Optional[UUID], entry: AuditEntry) -> UserLog:
        return UserLog(
            user_id=actor_id,
            action=entry.action,
            details=entry_details(entry),
            ip_address=self.meta.ip_address[:64],
            user_agent=self.meta.user_agent[:512],
        )

    def append(self, actor_id: Optional[UUID], entry: AuditEntry) -> UserLog:
        row = self._row(actor_id, entry)
        self.db.add(row)
        self.db.commit()
        self.db.refresh(row)
        return row

    def record(self, actor_id: Optional[UUID], entry: AuditEntry) -> NotifyResult:
        try:
            self.append(actor_id, entry)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.exception("audit write failed action=%s actor=%s", entry.action, actor_id)
            return NotifyResult(ok=False, error=type(e).__name__)
        return NotifyResult(ok=True)
