from __future__ import annotations

import logging
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from priceportal.core.errors import store_failure
from priceportal.db.session import get_db
from priceportal.models.branch import Branch
from priceportal.schemas.branch import BranchOut

logger = logging.getLogger(__name__)

router = APIRouter(tags=["branches"])


@router.get("/branches", response_model=List[BranchOut])
def list_branches(db: Session = Depends(get_db)):
    # public: the access-request form needs it before the user has any role
    try:
        return db.execute(select(Branch).order_by(Branch.name.asc())).scalars().all()
    except SQLAlchemyError:
        logger.exception("list branches failed")
        raise store_failure(db, "Failed to fetch branches") from None
