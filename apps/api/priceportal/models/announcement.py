from __future__ import annotations

import uuid

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text, Uuid, true
from sqlalchemy.orm import relationship

from priceportal.models.base import Base, utcnow

MAX_ANNOUNCEMENT_IMAGES = 5


class Announcement(Base):
    __tablename__ = "announcements"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4, nullable=False)

    title = Column(String(255), nullable=False)
    body = Column(Text, nullable=True)

    # primary image (first of `images` unless set explicitly)
    image_path = Column(String(1024), nullable=True)

    is_published = Column(Boolean, nullable=False, default=True, server_default=true())

    created_by = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    images = relationship(
        "AnnouncementImage",
        lazy="selectin",
        order_by="AnnouncementImage.sort_order",
        cascade="all, delete-orphan",
    )


class AnnouncementImage(Base):
    __tablename__ = "announcement_images"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4, nullable=False)

    announcement_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("announcements.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    image_path = Column(String(1024), nullable=False)
    sort_order = Column(Integer, nullable=False, default=0, server_default="0")

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
