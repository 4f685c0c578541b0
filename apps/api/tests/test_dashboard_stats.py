import uuid
from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from conftest import BASE, auth_headers

from priceportal.models.access_request import AccessRequest
from priceportal.models.branch import Branch, UserBranch
from priceportal.models.user_log import UserLog
from priceportal.services.dashboard_stats import (
    ActivityRecord,
    BranchRecord,
    DashboardSnapshot,
    LogRecord,
    RequestRecord,
    UserRecord,
    build_dashboard_report,
    last_activity_by_user,
    month_buckets,
)

NOW = datetime(2026, 3, 15, 12, 0, tzinfo=timezone.utc)
UTC = timezone.utc


def _user(days_old: int = 400, **kw) -> UserRecord:
    return UserRecord(
        id=kw.pop("id", uuid.uuid4()),
        name=kw.pop("name", "somchai"),
        email=None,
        image=None,
        shop_name=kw.pop("shop_name", None),
        created_at=NOW - timedelta(days=days_old),
    )


def _req(status: str, at: datetime) -> RequestRecord:
    return RequestRecord(id=uuid.uuid4(), status=status, created_at=at)


# ============================================================
# inactive users
# ============================================================

def test_login_45_days_ago_is_inactive_for_30_day_window():
    u = _user(days_old=400)
    snap = DashboardSnapshot(
        users=[u],
        activity=[ActivityRecord(u.id, NOW - timedelta(days=45))],
        access_user_ids=[u.id],
    )

    report = build_dashboard_report(snap, inactive_days=30, now=NOW, tz=UTC)

    assert [r.id for r in report.inactive_users] == [u.id]
    assert report.inactive_users[0].days_since_login == 45
    assert report.inactive_users[0].last_login == NOW - timedelta(days=45)
    assert report.kpis.inactive_users == 1


def test_user_without_logs_falls_back_to_created_at():
    u = _user(days_old=12)
    snap = DashboardSnapshot(users=[u], access_user_ids=[u.id])

    week = build_dashboard_report(snap, inactive_days=7, now=NOW, tz=UTC)
    month = build_dashboard_report(snap, inactive_days=30, now=NOW, tz=UTC)

    assert week.inactive_users[0].days_since_login == 12
    assert month.inactive_users == []


def test_users_without_access_are_never_inactive():
    u = _user(days_old=400)
    snap = DashboardSnapshot(users=[u])

    report = build_dashboard_report(snap, inactive_days=7, now=NOW, tz=UTC)

    assert report.inactive_users == []
    assert report.urgent_tasks == []


def test_last_activity_takes_the_latest_regardless_of_order():
    uid = uuid.uuid4()
    old = ActivityRecord(uid, NOW - timedelta(days=40))
    new = ActivityRecord(uid, NOW - timedelta(days=2))

    assert last_activity_by_user([old, new])[uid] == new.created_at
    assert last_activity_by_user([new, old])[uid] == new.created_at


def test_inactive_list_sorted_most_stale_first_and_capped():
    users = [_user(days_old=400) for _ in range(25)]
    activity = [ActivityRecord(u.id, NOW - timedelta(days=31 + i)) for i, u in enumerate(users)]
    snap = DashboardSnapshot(users=users, activity=activity, access_user_ids=[u.id for u in users])

    report = build_dashboard_report(snap, inactive_days=30, now=NOW, tz=UTC)

    days = [r.days_since_login for r in report.inactive_users]
    assert days == sorted(days, reverse=True)
    assert len(report.inactive_users) == 20
    assert report.kpis.inactive_users == 25

    full = build_dashboard_report(snap, inactive_days=30, now=NOW, tz=UTC, inactive_limit=None)
    assert len(full.inactive_users) == 25


@pytest.mark.parametrize("small,large", [(7, 14), (7, 30), (14, 30), (1, 365)])
def test_longer_window_yields_subset_of_shorter_window(small, large):
    users = [_user(days_old=400) for _ in range(8)]
    offsets = [0, 3, 8, 13, 20, 29, 45, 200]
    activity = [ActivityRecord(u.id, NOW - timedelta(days=d)) for u, d in zip(users, offsets)]
    snap = DashboardSnapshot(users=users, activity=activity, access_user_ids=[u.id for u in users])

    short = {r.id for r in build_dashboard_report(snap, small, NOW, UTC, inactive_limit=None).inactive_users}
    long = {r.id for r in build_dashboard_report(snap, large, NOW, UTC, inactive_limit=None).inactive_users}

    assert long <= short


# ============================================================
# KPIs
# ============================================================

def test_active_percent_is_zero_without_access_users():
    snap = DashboardSnapshot(users=[_user()])
    report = build_dashboard_report(snap, 30, NOW, UTC)

    assert report.kpis.users_with_access == 0
    assert report.kpis.active_users_30d == 0
    assert report.kpis.active_users_30d_percent == 0


def test_active_counts_only_access_users_inside_fixed_30_days():
    a, b, c, outsider = (_user() for _ in range(4))
    snap = DashboardSnapshot(
        users=[a, b, c, outsider],
        activity=[
            ActivityRecord(a.id, NOW - timedelta(days=1)),
            ActivityRecord(a.id, NOW - timedelta(days=2)),
            ActivityRecord(b.id, NOW - timedelta(days=31)),
            ActivityRecord(outsider.id, NOW - timedelta(days=1)),
        ],
        access_user_ids=[a.id, b.id, c.id, a.id],
    )

    # the window parameter does not move the active KPI
    for window in (7, 30):
        kpis = build_dashboard_report(snap, window, NOW, UTC).kpis
        assert kpis.users_with_access == 3
        assert kpis.active_users_30d == 1
        assert kpis.active_users_30d_percent == 33


def test_request_counts_and_today_use_local_calendar_day():
    bangkok = ZoneInfo("Asia/Bangkok")
    # 2026-03-15 12:00 UTC is 19:00 in Bangkok; local day starts 2026-03-14 17:00 UTC
    snap = DashboardSnapshot(
        requests=[
            _req("pending", datetime(2026, 3, 14, 17, 30, tzinfo=UTC)),
            _req("approved", datetime(2026, 3, 14, 16, 59, tzinfo=UTC)),
            _req("rejected", datetime(2026, 3, 15, 11, 0, tzinfo=UTC)),
            _req("pending", datetime(2026, 1, 2, tzinfo=UTC)),
        ],
        price_group_ids=[uuid.uuid4(), uuid.uuid4()],
    )

    kpis = build_dashboard_report(snap, 30, NOW, bangkok).kpis

    assert kpis.total_requests == 4
    assert kpis.pending_requests == 2
    assert kpis.approved_requests == 1
    assert kpis.rejected_requests == 1
    assert kpis.requests_today == 2
    assert kpis.price_groups == 2


# ============================================================
# monthly trend
# ============================================================

def test_trend_has_twelve_increasing_months_ending_now():
    report = build_dashboard_report(DashboardSnapshot(), 30, NOW, UTC)
    months = [t.month for t in report.request_monthly_trends]

    assert len(months) == 12
    assert months == sorted(months)
    assert len(set(months)) == 12
    assert months[0] == "2025-04"
    assert months[-1] == "2026-03"


def test_trend_buckets_split_on_local_month_boundary():
    bangkok = ZoneInfo("Asia/Bangkok")
    # 2026-02-28 18:00 UTC is already 1 March in Bangkok
    snap = DashboardSnapshot(
        requests=[
            _req("approved", datetime(2026, 2, 28, 18, 0, tzinfo=UTC)),
            _req("rejected", datetime(2026, 2, 28, 16, 0, tzinfo=UTC)),
            _req("pending", datetime(2026, 3, 10, tzinfo=UTC)),
            _req("pending", datetime(2024, 1, 1, tzinfo=UTC)),
        ]
    )

    trends = {t.month: t for t in build_dashboard_report(snap, 30, NOW, bangkok).request_monthly_trends}

    assert (trends["2026-03"].total, trends["2026-03"].approved, trends["2026-03"].pending) == (2, 1, 1)
    assert (trends["2026-02"].total, trends["2026-02"].rejected) == (1, 1)
    assert all(t.total == t.approved + t.rejected + t.pending for t in trends.values())
    assert sum(t.total for t in trends.values()) == 3


def test_month_buckets_cross_year_boundary():
    labels = [label for label, _, _ in month_buckets(datetime(2026, 1, 5, tzinfo=UTC), UTC)]
    assert labels[0] == "2025-02"
    assert labels[-2:] == ["2025-12", "2026-01"]


# ============================================================
# branches / urgent tasks / recent activity
# ============================================================

def test_users_by_branch_counts_distinct_access_users_and_drops_empty():
    a, b, c = (_user() for _ in range(3))
    north, south, empty = BranchRecord(uuid.uuid4(), "North"), BranchRecord(uuid.uuid4(), "South"), BranchRecord(uuid.uuid4(), "Empty")
    snap = DashboardSnapshot(
        users=[a, b, c],
        branches=[north, south, empty],
        user_branches=[(a.id, south.id), (b.id, south.id), (b.id, south.id), (a.id, north.id), (c.id, empty.id)],
        access_user_ids=[a.id, b.id],
    )

    slices = build_dashboard_report(snap, 30, NOW, UTC).users_by_branch

    assert [(s.name, s.value) for s in slices] == [("South", 2), ("North", 1)]


def test_users_by_branch_bounded_by_users_with_access():
    a, b, c, d = (_user() for _ in range(4))
    north, south = BranchRecord(uuid.uuid4(), "North"), BranchRecord(uuid.uuid4(), "South")
    snap = DashboardSnapshot(
        users=[a, b, c, d],
        branches=[north, south],
        # c has a branch but no group access; d has access but no branch
        user_branches=[(a.id, north.id), (b.id, south.id), (c.id, north.id)],
        access_user_ids=[a.id, b.id, d.id],
    )
    report = build_dashboard_report(snap, 30, NOW, UTC)
    assert sum(s.value for s in report.users_by_branch) <= report.kpis.users_with_access

    # a user in two branches counts once in each, never more than the access total per slice
    snap.user_branches.append((a.id, south.id))
    report = build_dashboard_report(snap, 30, NOW, UTC)
    assert [(s.name, s.value) for s in report.users_by_branch] == [("South", 2), ("North", 1)]
    assert all(0 < s.value <= report.kpis.users_with_access for s in report.users_by_branch)


def test_urgent_tasks_are_independent():
    stale = _req("pending", NOW - timedelta(hours=25))
    fresh = _req("pending", NOW - timedelta(hours=2))
    snap = DashboardSnapshot(requests=[stale, fresh])

    tasks = build_dashboard_report(snap, 30, NOW, UTC).urgent_tasks
    assert [(t.type, t.count, t.severity, t.link) for t in tasks] == [("pending_requests", 1, "high", "/admin")]

    users = [_user(days_old=400) for _ in range(11)]
    snap = DashboardSnapshot(users=users, access_user_ids=[u.id for u in users])
    tasks = build_dashboard_report(snap, 30, NOW, UTC).urgent_tasks
    assert [(t.type, t.count, t.severity, t.link) for t in tasks] == [("inactive_users", 11, "high", "/admin/users")]
    assert "30" in tasks[0].title


def test_inactive_task_is_medium_up_to_ten_users():
    users = [_user(days_old=400) for _ in range(10)]
    snap = DashboardSnapshot(users=users, access_user_ids=[u.id for u in users])

    (task,) = build_dashboard_report(snap, 7, NOW, UTC).urgent_tasks
    assert task.severity == "medium"


def test_recent_activity_defaults_unknown_user_name():
    logs = [
        LogRecord(uuid.uuid4(), None, None, None, "login", {"name": "x"}, NOW - timedelta(minutes=i))
        for i in range(12)
    ]
    activity = build_dashboard_report(DashboardSnapshot(recent_logs=logs), 30, NOW, UTC).recent_activity

    assert len(activity) == 10
    assert activity[0].user_name == "Unknown"
    assert activity[0].created_at == NOW


def test_window_must_be_positive():
    with pytest.raises(ValueError):
        build_dashboard_report(DashboardSnapshot(), 0, NOW, UTC)


# ============================================================
# HTTP
# ============================================================

def _seed(db, make_user, make_group, grant):
    group = make_group("Aluminium")
    fresh = make_user(name="fresh", created_at=datetime.now(timezone.utc) - timedelta(days=100))
    stale = make_user(name="stale", created_at=datetime.now(timezone.utc) - timedelta(days=100))
    grant(fresh, group)
    grant(stale, group)

    db.add(UserLog(user_id=fresh.id, action="login", created_at=datetime.now(timezone.utc) - timedelta(days=10)))
    db.add(UserLog(user_id=stale.id, action="login", created_at=datetime.now(timezone.utc) - timedelta(days=60)))
    db.add(AccessRequest(user_id=fresh.id, shop_name="Fresh Shop", status="approved"))

    br = Branch(name="Chiang Mai", code="CNX")
    db.add(br)
    db.commit()
    db.add(UserBranch(user_id=fresh.id, branch_id=br.id))
    db.commit()


def test_dashboard_stats_window_changes_only_inactive_outputs(client, db, operator, make_user, make_group, grant):
    _seed(db, make_user, make_group, grant)

    r7 = client.get(f"{BASE}/admin/dashboard-stats?inactiveDays=7", headers=auth_headers(operator))
    r30 = client.get(f"{BASE}/admin/dashboard-stats?inactiveDays=30", headers=auth_headers(operator))
    assert r7.status_code == 200, r7.text
    assert r30.status_code == 200, r30.text
    a, b = r7.json(), r30.json()

    assert a["kpis"]["totalUsers"] == b["kpis"]["totalUsers"] == 3
    assert a["kpis"]["priceGroups"] == b["kpis"]["priceGroups"] == 1
    assert a["requestMonthlyTrends"] == b["requestMonthlyTrends"]

    assert a["kpis"]["inactiveUsers"] == 2
    assert b["kpis"]["inactiveUsers"] == 1
    assert len(a["inactiveUsers"]) == 2
    assert len(b["inactiveUsers"]) == 1

    assert b["kpis"]["activeUsers30d"] == 1
    assert b["kpis"]["activeUsers30dPercent"] == 50
    assert b["usersByBranch"] == [{"name": "Chiang Mai", "value": 1}]
    assert b["pendingRequests"] == 0
    assert len(b["recentActivity"]) == 2


def test_dashboard_stats_requires_staff(client, member):
    r = client.get(f"{BASE}/admin/dashboard-stats", headers=auth_headers(member))
    assert r.status_code == 403
    assert r.json() == {"error": "Admin/Operator only"}


def test_dashboard_stats_rejects_non_positive_window(client, admin):
    r = client.get(f"{BASE}/admin/dashboard-stats?inactiveDays=0", headers=auth_headers(admin))
    assert r.status_code == 400
    assert r.json()["error"] == "Invalid request"


@pytest.mark.parametrize("days", [366, 1000, 10**9])
def test_dashboard_stats_accepts_any_positive_window(client, db, operator, make_user, make_group, grant, days):
    _seed(db, make_user, make_group, grant)

    r = client.get(f"{BASE}/admin/dashboard-stats?inactiveDays={days}", headers=auth_headers(operator))
    assert r.status_code == 200, r.text
    assert r.json()["kpis"]["inactiveUsers"] == 0
    assert r.json()["inactiveUsers"] == []
