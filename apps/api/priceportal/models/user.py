from __future__ import annotations

import uuid

from sqlalchemy import Boolean, Column, DateTime, String, Text, Uuid, false

from priceportal.models.base import Base, utcnow


class User(Base):
    """
    Portal member. Created on first sign-in through the identity provider,
    edited by admins/operators afterwards.
    """

    __tablename__ = "users"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4, nullable=False)

    # identity provider subject (LINE user id)
    provider_id = Column(String(255), nullable=False, unique=True, index=True)
    provider = Column(String(32), nullable=False, server_default="line", default="line")

    name = Column(String(255), nullable=True)
    email = Column(String(255), nullable=True)
    image = Column(String(1024), nullable=True)

    # role flags
    is_admin = Column(Boolean, nullable=False, default=False, server_default=false())
    is_operator = Column(Boolean, nullable=False, default=False, server_default=false())

    # shop profile
    shop_name = Column(String(255), nullable=True)
    phone = Column(String(32), nullable=True)
    address = Column(Text, nullable=True)
    bank_account = Column(String(64), nullable=True)
    bank_name = Column(String(128), nullable=True)
    note = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)
