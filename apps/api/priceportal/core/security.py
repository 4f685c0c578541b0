from __future__ import annotations

"""
security.py

Session token handling.

- Tokens are HS256 JWTs whose `sub` is the user id (string UUID)
- Role flags are NOT stored in the token; they are re-read from the users
  table on every request so a revoked admin loses access immediately
- The sign-in bridge secret is compared in constant time
"""

import hmac
from datetime import datetime, timedelta, timezone
from typing import Optional, TypedDict

from jose import JWTError, jwt

from priceportal.core.config import settings

TOKEN_TYPE = "access"


class TokenClaims(TypedDict):
    sub: str
    iat: int
    exp: int
    type: str


def create_access_token(user_id: str, expires_delta: Optional[timedelta] = None) -> str:
    """Signed session token for `user_id`; lifetime defaults to ACCESS_TOKEN_EXPIRE_MINUTES."""
    if not user_id:
        raise ValueError("user_id is required")

    issued = datetime.now(timezone.utc)
    expires = issued + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    claims: TokenClaims = {
        "sub": user_id,
        "iat": int(issued.timestamp()),
        "exp": int(expires.timestamp()),
        "type": TOKEN_TYPE,
    }
    return jwt.encode(claims, settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: Optional[str]) -> Optional[str]:
    """User id carried by a valid, unexpired session token, else None."""
    if not token:
        return None
    try:
        claims = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        return None

    sub = claims.get("sub") if isinstance(claims, dict) else None
    if not isinstance(sub, str) or not sub:
        return None
    if claims.get("type", TOKEN_TYPE) != TOKEN_TYPE:
        return None
    return sub


def verify_bridge_secret(provided: Optional[str]) -> bool:
    expected = settings.AUTH_BRIDGE_SECRET
    if not expected or not provided:
        return False
    return hmac.compare_digest(provided.encode("utf-8"), expected.encode("utf-8"))
