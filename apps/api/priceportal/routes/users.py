from __future__ import annotations

import logging
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from priceportal.core.context import AuthContext
from priceportal.core.errors import store_failure
from priceportal.db.session import get_db
from priceportal.dependencies.auth import get_auth_context, get_current_user
from priceportal.models.price_group import UserGroupAccess
from priceportal.models.user import User
from priceportal.schemas.price_group import PriceGroupOut, UserAccessOut
from priceportal.schemas.user import UserOut
from priceportal.services.price_groups import latest_image_times

logger = logging.getLogger(__name__)

router = APIRouter(tags=["users"])


@router.get("/users/me", response_model=UserOut)
def get_me(current_user: User = Depends(get_current_user)):
    return current_user


@router.get("/user-access", response_model=List[UserAccessOut])
def list_my_access(
    ctx: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    """The caller's group access rows, each with its group and last image upload time."""
    try:
        rows = db.execute(
            select(UserGroupAccess)
            .where(UserGroupAccess.user_id == ctx.user_id)
            .order_by(UserGroupAccess.created_at.desc())
        ).scalars().all()
        latest = latest_image_times(db, [r.price_group_id for r in rows])
    except SQLAlchemyError:
        logger.exception("list user access failed user=%s", ctx.user_id)
        raise store_failure(db, "Failed to fetch access") from None

    return [
        UserAccessOut(
            id=r.id,
            user_id=r.user_id,
            price_group_id=r.price_group_id,
            granted_by=r.granted_by,
            created_at=r.created_at,
            price_group=PriceGroupOut.model_validate(r.price_group) if r.price_group else None,
            last_updated_at=latest.get(r.price_group_id),
        )
        for r in rows
    ]
