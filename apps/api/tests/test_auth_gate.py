import uuid
from datetime import timedelta

import pytest
from sqlalchemy import select

from conftest import BASE, auth_headers

from priceportal.core.config import settings
from priceportal.core.security import create_access_token, decode_access_token
from priceportal.models.user import User
from priceportal.models.user_log import UserLog

BRIDGE = "bridge-secret-for-tests"


@pytest.fixture()
def bridge(monkeypatch):
    monkeypatch.setattr(settings, "AUTH_BRIDGE_SECRET", BRIDGE)
    return {"X-Auth-Bridge-Secret": BRIDGE}


def _sign_in(client, headers, **body):
    payload = {"provider_id": "U1234567890", "name": "Somchai", "image": "https://profile.line-scdn.net/a"}
    payload.update(body)
    return client.post(f"{BASE}/auth/sign-in", json=payload, headers=headers)


# ============================================================
# sign-in
# ============================================================

def test_first_sign_in_registers_then_logs_in(client, db, bridge):
    r = _sign_in(client, bridge)
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["token_type"] == "bearer"
    assert (body["is_admin"], body["is_operator"]) == (False, False)
    assert decode_access_token(body["access_token"]) == body["user_id"]

    r = _sign_in(client, bridge, name="Somchai K.", image=None)
    assert r.json()["user_id"] == body["user_id"]

    user = db.execute(select(User).where(User.provider_id == "U1234567890")).scalar_one()
    db.refresh(user)
    assert user.name == "Somchai K."
    assert user.image is None
    assert user.provider == "line"

    actions = db.execute(select(UserLog.action).order_by(UserLog.created_at)).scalars().all()
    assert sorted(actions) == ["login", "register"]


def test_sign_in_rejects_bad_secret(client, bridge):
    r = _sign_in(client, {"X-Auth-Bridge-Secret": "nope"})
    assert r.status_code == 401
    assert r.json() == {"error": "Unauthorized"}

    assert _sign_in(client, {}).status_code == 401


def test_sign_in_disabled_without_configured_secret(client, monkeypatch):
    monkeypatch.setattr(settings, "AUTH_BRIDGE_SECRET", "")
    assert _sign_in(client, {"X-Auth-Bridge-Secret": ""}).status_code == 401


def test_sign_in_validates_body(client, bridge):
    r = client.post(f"{BASE}/auth/sign-in", json={"name": "x"}, headers=bridge)
    assert r.status_code == 400
    assert r.json()["error"] == "Invalid request"


# ============================================================
# token gate
# ============================================================

@pytest.mark.parametrize(
    "headers",
    [
        {},
        {"Authorization": "Bearer not-a-jwt"},
        {"Authorization": "Basic Zm9vOmJhcg=="},
    ],
)
def test_protected_routes_need_a_valid_token(client, headers):
    r = client.get(f"{BASE}/users/me", headers=headers)
    assert r.status_code == 401
    assert r.json() == {"error": "Unauthorized"}


def test_expired_token_is_refused(client, member):
    token = create_access_token(str(member.id), expires_delta=timedelta(seconds=-30))
    r = client.get(f"{BASE}/users/me", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 401


def test_token_for_unknown_user_is_refused(client):
    token = create_access_token(str(uuid.uuid4()))
    r = client.get(f"{BASE}/auth/session", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 401


def test_roles_are_read_from_the_database(client, db, member):
    headers = auth_headers(member)
    assert client.get(f"{BASE}/admin/users", headers=headers).status_code == 403

    member.is_operator = True
    db.commit()
    r = client.get(f"{BASE}/auth/session", headers=headers)
    assert r.json()["is_operator"] is True
    assert client.get(f"{BASE}/admin/users", headers=headers).status_code == 200

    member.is_operator = False
    db.commit()
    assert client.get(f"{BASE}/admin/users", headers=headers).status_code == 403


def test_session_and_me(client, member):
    r = client.get(f"{BASE}/auth/session", headers=auth_headers(member))
    assert r.status_code == 200
    assert r.json() == {
        "user_id": str(member.id),
        "is_admin": False,
        "is_operator": False,
        "name": "member",
        "image": None,
    }

    r = client.get(f"{BASE}/users/me", headers=auth_headers(member))
    assert r.json()["email"] == "member@example.com"


def test_user_access_lists_groups_with_last_upload(client, db, member, make_group, grant):
    from priceportal.models.price_group import PriceGroupImage

    copper, iron = make_group("Copper"), make_group("Iron")
    grant(member, copper)
    grant(member, iron)
    db.add(PriceGroupImage(price_group_id=copper.id, file_path="price-groups/c/1.png", file_name="1.png"))
    db.commit()

    r = client.get(f"{BASE}/user-access", headers=auth_headers(member))
    assert r.status_code == 200
    by_name = {row["price_group"]["name"]: row for row in r.json()}
    assert set(by_name) == {"Copper", "Iron"}
    assert by_name["Copper"]["last_updated_at"] is not None
    assert by_name["Iron"]["last_updated_at"] is None


def test_root_is_public(client):
    r = client.get("/")
    assert r.status_code == 200
    assert r.json()["status"] == "ok"


def test_unknown_route_uses_error_envelope(client):
    r = client.get(f"{BASE}/nope")
    assert r.status_code == 404
    assert r.json() == {"error": "Not Found"}
