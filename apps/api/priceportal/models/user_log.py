from __future__ import annotations

import uuid

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Index, String, Uuid

from priceportal.models.base import Base, utcnow


class UserLog(Base):
    """
    Append-only audit row. Never updated or deleted; user deletion keeps
    the rows (user_id is nulled by the database where FKs are enforced).
    """

    __tablename__ = "user_logs"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4, nullable=False)

    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)

    action = Column(String(32), nullable=False, index=True)
    details = Column(JSON, nullable=True)

    ip_address = Column(String(64), nullable=True)
    user_agent = Column(String(512), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    __table_args__ = (
        Index("ix_user_logs_action_created", "action", "created_at"),
    )
