from __future__ import annotations

"""
Dashboard statistics.

`load_snapshot` reads every source table once; `build_dashboard_report`
is a pure function of (snapshot, inactive_days, now, tz) so every output in
one response is computed from the same point in time.

Time handling:
- all stored timestamps are compared as aware UTC datetimes
- "today" and month buckets use local calendar boundaries in `tz`
"""

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone, tzinfo
from typing import Any, Dict, Iterable, List, Optional, Sequence, Set, Tuple
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from priceportal.models.access_request import (
    STATUS_APPROVED,
    STATUS_PENDING,
    STATUS_REJECTED,
    AccessRequest,
)
from priceportal.models.branch import Branch, UserBranch
from priceportal.models.price_group import PriceGroup, UserGroupAccess
from priceportal.models.user import User
from priceportal.models.user_log import UserLog
from priceportal.schemas.dashboard import (
    BranchSliceOut,
    DashboardKpisOut,
    DashboardStatsOut,
    InactiveUserOut,
    MonthlyTrendOut,
    RecentActivityOut,
    UrgentTaskOut,
)

logger = logging.getLogger(__name__)

ACTIVE_WINDOW_DAYS = 30
RECENT_ACTIVITY_LIMIT = 10
TREND_MONTHS = 12
PENDING_SLA = timedelta(hours=24)
INACTIVE_HIGH_THRESHOLD = 10
INACTIVE_LIST_LIMIT = 20

ACTIVITY_ACTIONS = ("login", "register")


# ============================================================
# snapshot records
# ============================================================

@dataclass(frozen=True)
class UserRecord:
    id: UUID
    name: Optional[str]
    email: Optional[str]
    image: Optional[str]
    shop_name: Optional[str]
    created_at: datetime


@dataclass(frozen=True)
class RequestRecord:
    id: UUID
    status: str
    created_at: datetime


@dataclass(frozen=True)
class ActivityRecord:
    user_id: UUID
    created_at: datetime


@dataclass(frozen=True)
class LogRecord:
    id: UUID
    user_id: Optional[UUID]
    user_name: Optional[str]
    user_image: Optional[str]
    action: str
    details: Optional[Dict[str, Any]]
    created_at: datetime


@dataclass(frozen=True)
class BranchRecord:
    id: UUID
    name: str


@dataclass
class DashboardSnapshot:
    users: List[UserRecord] = field(default_factory=list)
    requests: List[RequestRecord] = field(default_factory=list)
    price_group_ids: List[UUID] = field(default_factory=list)
    activity: List[ActivityRecord] = field(default_factory=list)
    recent_logs: List[LogRecord] = field(default_factory=list)
    branches: List[BranchRecord] = field(default_factory=list)
    user_branches: List[Tuple[UUID, UUID]] = field(default_factory=list)  # (user_id, branch_id)
    access_user_ids: List[UUID] = field(default_factory=list)


def as_aware(dt: datetime) -> datetime:
    """SQLite hands back naive datetimes; they were written as UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


# ============================================================
# read
# ============================================================

def load_snapshot(db: Session) -> DashboardSnapshot:
    """Read every table the report needs. SQLAlchemyError propagates."""
    users = [
        UserRecord(u.id, u.name, u.email, u.image, u.shop_name, as_aware(u.created_at))
        for u in db.execute(select(User)).scalars()
    ]

    requests = [
        RequestRecord(rid, status, as_aware(created))
        for rid, status, created in db.execute(
            select(AccessRequest.id, AccessRequest.status, AccessRequest.created_at)
        )
    ]

    group_ids = list(db.execute(select(PriceGroup.id)).scalars())

    activity = [
        ActivityRecord(uid, as_aware(created))
        for uid, created in db.execute(
            select(UserLog.user_id, UserLog.created_at).where(
                UserLog.action.in_(ACTIVITY_ACTIONS),
                UserLog.user_id.is_not(None),
            )
        )
    ]

    recent_rows = db.execute(
        select(UserLog, User.name, User.image)
        .outerjoin(User, User.id == UserLog.user_id)
        .order_by(UserLog.created_at.desc())
        .limit(RECENT_ACTIVITY_LIMIT)
    ).all()
    recent_logs = [
        LogRecord(
            id=log.id,
            user_id=log.user_id,
            user_name=name,
            user_image=image,
            action=log.action,
            details=log.details,
            created_at=as_aware(log.created_at),
        )
        for log, name, image in recent_rows
    ]

    branches = [BranchRecord(bid, name) for bid, name in db.execute(select(Branch.id, Branch.name))]
    user_branches = [(uid, bid) for uid, bid in db.execute(select(UserBranch.user_id, UserBranch.branch_id))]
    access_user_ids = list(db.execute(select(UserGroupAccess.user_id)).scalars())

    return DashboardSnapshot(
        users=users,
        requests=requests,
        price_group_ids=group_ids,
        activity=activity,
        recent_logs=recent_logs,
        branches=branches,
        user_branches=user_branches,
        access_user_ids=access_user_ids,
    )


# ============================================================
# pure pieces
# ============================================================

def last_activity_by_user(activity: Iterable[ActivityRecord]) -> Dict[UUID, datetime]:
    """Most recent login/register per user, independent of input order."""
    latest: Dict[UUID, datetime] = {}
    for rec in activity:
        seen = latest.get(rec.user_id)
        if seen is None or rec.created_at > seen:
            latest[rec.user_id] = rec.created_at
    return latest


def active_user_ids(
    activity: Iterable[ActivityRecord],
    with_access: Set[UUID],
    now: datetime,
    window_days: int = ACTIVE_WINDOW_DAYS,
) -> Set[UUID]:
    threshold = now - timedelta(days=window_days)
    return {a.user_id for a in activity if a.user_id in with_access and a.created_at >= threshold}


def percent(part: int, whole: int) -> int:
    if whole <= 0:
        return 0
    # half-up, like Math.round for non-negative values
    return int(part * 100 / whole + 0.5)


def find_inactive_users(
    users: Sequence[UserRecord],
    with_access: Set[UUID],
    last_activity: Dict[UUID, datetime],
    inactive_days: int,
    now: datetime,
) -> List[InactiveUserOut]:
    try:
        threshold = now - timedelta(days=inactive_days)
    except OverflowError:
        # window reaches before year 1: nobody can be that stale
        return []
    out: List[InactiveUserOut] = []
    for u in users:
        if u.id not in with_access:
            continue
        last = last_activity.get(u.id, u.created_at)
        if not last < threshold:
            continue
        out.append(
            InactiveUserOut(
                id=u.id,
                name=u.name,
                email=u.email,
                image=u.image,
                shop_name=u.shop_name,
                last_login=last,
                days_since_login=max(0, (now - last) // timedelta(days=1)),
            )
        )
    out.sort(key=lambda r: r.days_since_login, reverse=True)
    return out


def _local_midnight(d: date, tz: tzinfo) -> datetime:
    return datetime(d.year, d.month, d.day, tzinfo=tz)


def today_bounds(now: datetime, tz: tzinfo) -> Tuple[datetime, datetime]:
    today = now.astimezone(tz).date()
    return _local_midnight(today, tz), _local_midnight(today + timedelta(days=1), tz)


def _shift_month(year: int, month: int, delta: int) -> Tuple[int, int]:
    idx = year * 12 + (month - 1) + delta
    return idx // 12, idx % 12 + 1


def month_buckets(now: datetime, tz: tzinfo, months: int = TREND_MONTHS) -> List[Tuple[str, datetime, datetime]]:
    """(label, start, end) oldest first, ending with the current local month."""
    local = now.astimezone(tz)
    buckets = []
    for back in range(months - 1, -1, -1):
        y, m = _shift_month(local.year, local.month, -back)
        ny, nm = _shift_month(y, m, 1)
        start = datetime(y, m, 1, tzinfo=tz)
        end = datetime(ny, nm, 1, tzinfo=tz)
        buckets.append((f"{y:04d}-{m:02d}", start, end))
    return buckets


def monthly_trends(requests: Sequence[RequestRecord], now: datetime, tz: tzinfo) -> List[MonthlyTrendOut]:
    out: List[MonthlyTrendOut] = []
    for label, start, end in month_buckets(now, tz):
        counts = {STATUS_APPROVED: 0, STATUS_REJECTED: 0, STATUS_PENDING: 0}
        total = 0
        for r in requests:
            if start <= r.created_at < end:
                total += 1
                if r.status in counts:
                    counts[r.status] += 1
        out.append(
            MonthlyTrendOut(
                month=label,
                total=total,
                approved=counts[STATUS_APPROVED],
                rejected=counts[STATUS_REJECTED],
                pending=counts[STATUS_PENDING],
            )
        )
    return out


def users_by_branch(
    branches: Sequence[BranchRecord],
    user_branches: Iterable[Tuple[UUID, UUID]],
    with_access: Set[UUID],
) -> List[BranchSliceOut]:
    members: Dict[UUID, Set[UUID]] = defaultdict(set)
    for user_id, branch_id in user_branches:
        if user_id in with_access:
            members[branch_id].add(user_id)

    slices = [
        BranchSliceOut(name=b.name, value=len(members[b.id]))
        for b in branches
        if members.get(b.id)
    ]
    slices.sort(key=lambda s: s.value, reverse=True)
    return slices


def urgent_tasks(
    requests: Sequence[RequestRecord],
    inactive_count: int,
    inactive_days: int,
    now: datetime,
) -> List[UrgentTaskOut]:
    tasks: List[UrgentTaskOut] = []

    stale = sum(1 for r in requests if r.status == STATUS_PENDING and now - r.created_at > PENDING_SLA)
    if stale > 0:
        tasks.append(
            UrgentTaskOut(
                type="pending_requests",
                title=f"{stale} คำขอรออนุมัติมากกว่า 24 ชม.",
                count=stale,
                severity="high",
                link="/admin",
            )
        )

    if inactive_count > 0:
        tasks.append(
            UrgentTaskOut(
                type="inactive_users",
                title=f"{inactive_count} ผู้ใช้ไม่ได้เข้าระบบ {inactive_days} วัน",
                count=inactive_count,
                severity="high" if inactive_count > INACTIVE_HIGH_THRESHOLD else "medium",
                link="/admin/users",
            )
        )

    return tasks


def recent_activity(logs: Sequence[LogRecord]) -> List[RecentActivityOut]:
    ordered = sorted(logs, key=lambda l: l.created_at, reverse=True)[:RECENT_ACTIVITY_LIMIT]
    return [
        RecentActivityOut(
            id=l.id,
            user_id=l.user_id,
            user_name=l.user_name or "Unknown",
            user_image=l.user_image,
            action=l.action,
            details=l.details,
            created_at=l.created_at,
        )
        for l in ordered
    ]


# ============================================================
# report
# ============================================================

def build_dashboard_report(
    snapshot: DashboardSnapshot,
    inactive_days: int,
    now: datetime,
    tz: tzinfo,
    *,
    inactive_limit: Optional[int] = INACTIVE_LIST_LIMIT,
) -> DashboardStatsOut:
    if inactive_days < 1:
        raise ValueError("inactive_days must be >= 1")
    now = as_aware(now)

    with_access = set(snapshot.access_user_ids)
    last_activity = last_activity_by_user(snapshot.activity)
    active = active_user_ids(snapshot.activity, with_access, now)
    inactive = find_inactive_users(snapshot.users, with_access, last_activity, inactive_days, now)

    by_status: Dict[str, int] = defaultdict(int)
    for r in snapshot.requests:
        by_status[r.status] += 1

    day_start, day_end = today_bounds(now, tz)
    requests_today = sum(1 for r in snapshot.requests if day_start <= r.created_at < day_end)

    pending = by_status[STATUS_PENDING]
    kpis = DashboardKpisOut(
        total_users=len(snapshot.users),
        users_with_access=len(with_access),
        active_users_30d=len(active),
        active_users_30d_percent=percent(len(active), len(with_access)),
        pending_requests=pending,
        approved_requests=by_status[STATUS_APPROVED],
        rejected_requests=by_status[STATUS_REJECTED],
        total_requests=len(snapshot.requests),
        requests_today=requests_today,
        price_groups=len(set(snapshot.price_group_ids)),
        inactive_users=len(inactive),
    )

    return DashboardStatsOut(
        kpis=kpis,
        request_monthly_trends=monthly_trends(snapshot.requests, now, tz),
        users_by_branch=users_by_branch(snapshot.branches, snapshot.user_branches, with_access),
        urgent_tasks=urgent_tasks(snapshot.requests, len(inactive), inactive_days, now),
        inactive_users=inactive if inactive_limit is None else inactive[:inactive_limit],
        recent_activity=recent_activity(snapshot.recent_logs),
        pending_requests=pending,
    )
