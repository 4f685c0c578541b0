from __future__ import annotations

from typing import Any, Dict, Iterator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from priceportal.core.config import settings


def build_engine(url: str) -> Engine:
    """
    Postgres in production, SQLite for local runs.

    SQLite gets `check_same_thread=False` (sync endpoints run in the
    threadpool) and enforced foreign keys, so ON DELETE rules behave
    like on Postgres.
    """
    is_sqlite = url.startswith("sqlite")
    kwargs: Dict[str, Any] = {"pool_pre_ping": True}
    if is_sqlite:
        kwargs["connect_args"] = {"check_same_thread": False}

    eng = create_engine(url, **kwargs)

    if is_sqlite:
        @event.listens_for(eng, "connect")
        def _fk_on(dbapi_conn, _record):
            cur = dbapi_conn.cursor()
            cur.execute("PRAGMA foreign_keys=ON")
            cur.close()

    return eng


engine = build_engine(settings.sqlalchemy_database_url)

SessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


def get_db() -> Iterator[Session]:
    """Request-scoped session; services commit explicitly."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
