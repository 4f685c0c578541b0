from __future__ import annotations

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Query
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from priceportal.core.config import local_timezone
from priceportal.core.context import AuthContext
from priceportal.core.errors import store_failure
from priceportal.db.session import get_db
from priceportal.dependencies.permissions import require_staff
from priceportal.schemas.dashboard import DashboardStatsOut
from priceportal.services.dashboard_stats import build_dashboard_report, load_snapshot

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["dashboard"])


@router.get("/dashboard-stats", response_model=DashboardStatsOut, response_model_by_alias=True)
def dashboard_stats(
    inactiveDays: int = Query(30, ge=1, description="Inactivity window in days (UI offers 7/14/30)"),
    _: AuthContext = Depends(require_staff),
    db: Session = Depends(get_db),
):
    try:
        snapshot = load_snapshot(db)
    except SQLAlchemyError:
        logger.exception("dashboard snapshot failed")
        raise store_failure(db, "Failed to fetch stats") from None

    return build_dashboard_report(
        snapshot,
        inactive_days=inactiveDays,
        now=datetime.now(timezone.utc),
        tz=local_timezone(),
    )
