from __future__ import annotations

import uuid

from sqlalchemy import Column, DateTime, ForeignKey, Index, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship

from priceportal.models.base import Base, utcnow


class PriceGroup(Base):
    """
    A named price list. "last updated" is derived from its newest image,
    it is not stored here.
    """

    __tablename__ = "price_groups"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4, nullable=False)

    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)

    branch_id = Column(Uuid(as_uuid=True), ForeignKey("branches.id", ondelete="SET NULL"), nullable=True, index=True)

    # Telegram chat that receives newly uploaded images
    telegram_chat_id = Column(String(64), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    branch = relationship("Branch", lazy="selectin")


class PriceGroupImage(Base):
    __tablename__ = "price_group_images"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4, nullable=False)

    price_group_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("price_groups.id", ondelete="CASCADE"),
        nullable=False,
    )

    # object key inside the storage bucket
    file_path = Column(String(1024), nullable=False)
    file_name = Column(String(255), nullable=True)
    title = Column(String(255), nullable=True)

    uploaded_by = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (
        Index("ix_price_group_images_group_created", "price_group_id", "created_at"),
    )


class UserGroupAccess(Base):
    """Grants one user visibility into one price group."""

    __tablename__ = "user_group_access"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4, nullable=False)

    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    price_group_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("price_groups.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    granted_by = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    price_group = relationship("PriceGroup", lazy="selectin")

    __table_args__ = (
        UniqueConstraint("user_id", "price_group_id", name="uq_user_group_access_user_group"),
    )
