from __future__ import annotations

import uuid

from sqlalchemy import Column, DateTime, ForeignKey, String, Text, Uuid
from sqlalchemy.orm import relationship

from priceportal.models.base import Base, utcnow

STATUS_PENDING = "pending"
STATUS_APPROVED = "approved"
STATUS_REJECTED = "rejected"


class AccessRequest(Base):
    """
    A shop owner's request for price-group access at a branch.

    status: pending -> approved | rejected, set exactly once.
    """

    __tablename__ = "access_requests"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4, nullable=False)

    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    branch_id = Column(Uuid(as_uuid=True), ForeignKey("branches.id", ondelete="SET NULL"), nullable=True, index=True)

    shop_name = Column(String(255), nullable=False)
    note = Column(Text, nullable=True)

    status = Column(String(16), nullable=False, default=STATUS_PENDING, server_default=STATUS_PENDING, index=True)
    reject_reason = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    user = relationship("User", lazy="selectin")
    branch = relationship("Branch", lazy="selectin")
