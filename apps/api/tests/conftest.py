import io
import uuid
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional

import pytest
from fastapi.testclient import TestClient
from PIL import Image
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from priceportal.core.security import create_access_token
from priceportal.db.session import get_db
from priceportal.dependencies.services import get_notifier, get_storage
from priceportal.main import app
from priceportal.models.base import Base
from priceportal.models.branch import Branch
from priceportal.models.price_group import PriceGroup, UserGroupAccess
from priceportal.models.user import User
from priceportal.services.notifier import ImageEvent, NotifyResult
from priceportal.services.storage import LocalStorage

BASE = "/api"


def _utcnow():
    return datetime.now(timezone.utc)


def png_bytes(color=(200, 30, 30), size=(4, 4)) -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", size, color).save(buf, format="PNG")
    return buf.getvalue()


class RecordingNotifier:
    """Stands in for Telegram: keeps every event, answers with a fixed result."""

    def __init__(self, ok: bool = True, configured: bool = True) -> None:
        self.ok = ok
        self._configured = configured
        self.events: List[ImageEvent] = []

    @property
    def configured(self) -> bool:
        return self._configured

    def notify(self, event: ImageEvent) -> NotifyResult:
        self.events.append(event)
        if self.ok:
            return NotifyResult(ok=True, response={"ok": True, "result": {"message_id": len(self.events)}})
        return NotifyResult(ok=False, error="Bad Request: chat not found", response={"ok": False})


@pytest.fixture()
def engine():
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=eng)
    try:
        yield eng
    finally:
        Base.metadata.drop_all(bind=eng)
        eng.dispose()


@pytest.fixture()
def db(engine):
    TestingSession = sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def storage(tmp_path):
    return LocalStorage(
        root=str(tmp_path / "storage"),
        bucket="price-images",
        public_base_url="http://testserver/storage",
    )


@pytest.fixture()
def notifier():
    return RecordingNotifier()


@pytest.fixture()
def client(db, storage, notifier):
    def _get_db():
        yield db

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_storage] = lambda: storage
    app.dependency_overrides[get_notifier] = lambda: notifier
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


# ============================================================
# data factories
# ============================================================

@pytest.fixture()
def make_user(db) -> Callable[..., User]:
    def _make(
        *,
        name: str = "user",
        is_admin: bool = False,
        is_operator: bool = False,
        created_at: Optional[datetime] = None,
        **extra,
    ) -> User:
        user = User(
            provider_id=f"U{uuid.uuid4().hex}",
            provider="line",
            name=name,
            email=f"{name}@example.com",
            is_admin=is_admin,
            is_operator=is_operator,
            created_at=created_at or _utcnow(),
            **extra,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


@pytest.fixture()
def admin(make_user) -> User:
    return make_user(name="admin", is_admin=True)


@pytest.fixture()
def operator(make_user) -> User:
    return make_user(name="operator", is_operator=True)


@pytest.fixture()
def member(make_user) -> User:
    return make_user(name="member")


@pytest.fixture()
def branch(db) -> Branch:
    b = Branch(name="Bangkok", code="BKK")
    db.add(b)
    db.commit()
    db.refresh(b)
    return b


@pytest.fixture()
def make_group(db) -> Callable[..., PriceGroup]:
    def _make(name: str = "Copper", *, telegram_chat_id: Optional[str] = None, branch_id=None) -> PriceGroup:
        g = PriceGroup(name=name, telegram_chat_id=telegram_chat_id, branch_id=branch_id)
        db.add(g)
        db.commit()
        db.refresh(g)
        return g

    return _make


@pytest.fixture()
def grant(db) -> Callable[[User, PriceGroup], UserGroupAccess]:
    def _grant(user: User, group: PriceGroup) -> UserGroupAccess:
        row = UserGroupAccess(user_id=user.id, price_group_id=group.id)
        db.add(row)
        db.commit()
        return row

    return _grant


def auth_headers(user: User, **extra: str) -> Dict[str, str]:
    headers = {"Authorization": f"Bearer {create_access_token(str(user.id))}"}
    headers.update(extra)
    return headers
