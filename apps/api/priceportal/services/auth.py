from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.orm import Session

from priceportal.models.user import User
from priceportal.schemas.audit import LoginDetail, RegisterDetail
from priceportal.schemas.user import SignInIn
from priceportal.services.audit import AuditLogger

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SignInResult:
    user: User
    created: bool


def sign_in(db: Session, audit: AuditLogger, data: SignInIn) -> SignInResult:
    """
    Upsert the provider identity.

    New users start without any role; known users get their display
    name/avatar refreshed. The register/login audit row is best-effort.
    """
    user = db.execute(select(User).where(User.provider_id == data.provider_id)).scalar_one_or_none()

    created = user is None
    if created:
        user = User(
            provider_id=data.provider_id,
            provider=data.provider or "line",
            name=data.name,
            email=data.email,
            image=data.image,
            is_admin=False,
            is_operator=False,
        )
        db.add(user)
    else:
        user.name = data.name
        user.image = data.image

    db.commit()
    db.refresh(user)

    if created:
        logger.info("registered user=%s provider=%s", user.id, user.provider)
        audit.record(user.id, RegisterDetail(name=data.name))
    else:
        audit.record(user.id, LoginDetail(name=data.name))

    return SignInResult(user=user, created=created)
