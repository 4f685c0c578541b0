from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID


@dataclass(frozen=True)
class AuthContext:
    """Caller identity and role flags, resolved once per request and passed explicitly."""

    user_id: UUID
    is_admin: bool = False
    is_operator: bool = False

    @property
    def is_staff(self) -> bool:
        return self.is_admin or self.is_operator


@dataclass(frozen=True)
class RequestMeta:
    """Client address and agent recorded on audit rows."""

    ip_address: str = "unknown"
    user_agent: str = "unknown"
