# priceportal/models/base.py

from datetime import datetime, timezone

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """
    Common base of every SQLAlchemy model.
    Alembic also needs it to discover the tables.
    """
    pass


def utcnow() -> datetime:
    """UTC now (timezone aware)"""
    return datetime.now(timezone.utc)
