from __future__ import annotations

import uuid

from sqlalchemy import Column, DateTime, ForeignKey, String, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship

from priceportal.models.base import Base, utcnow


class Branch(Base):
    __tablename__ = "branches"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4, nullable=False)

    name = Column(String(255), nullable=False)
    code = Column(String(32), nullable=False, unique=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)


class UserBranch(Base):
    """User <-> branch assignment (replace-all edited by staff)."""

    __tablename__ = "user_branches"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4, nullable=False)

    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    branch_id = Column(Uuid(as_uuid=True), ForeignKey("branches.id", ondelete="CASCADE"), nullable=False, index=True)
    assigned_by = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    branch = relationship("Branch", lazy="selectin")

    __table_args__ = (
        UniqueConstraint("user_id", "branch_id", name="uq_user_branches_user_branch"),
    )
