from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

Severity = Literal["high", "medium"]


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class DashboardKpisOut(_CamelModel):
    total_users: int = Field(ge=0)
    users_with_access: int = Field(ge=0)
    active_users_30d: int = Field(ge=0, alias="activeUsers30d")
    active_users_30d_percent: int = Field(ge=0, le=100, alias="activeUsers30dPercent")
    pending_requests: int = Field(ge=0)
    approved_requests: int = Field(ge=0)
    rejected_requests: int = Field(ge=0)
    total_requests: int = Field(ge=0)
    requests_today: int = Field(ge=0)
    price_groups: int = Field(ge=0)
    inactive_users: int = Field(ge=0)


class MonthlyTrendOut(BaseModel):
    month: str  # YYYY-MM
    total: int = Field(ge=0)
    approved: int = Field(ge=0)
    rejected: int = Field(ge=0)
    pending: int = Field(ge=0)


class BranchSliceOut(BaseModel):
    name: str
    value: int = Field(gt=0)


class UrgentTaskOut(BaseModel):
    type: str
    title: str
    count: int = Field(gt=0)
    severity: Severity
    link: str


class InactiveUserOut(BaseModel):
    id: UUID
    name: Optional[str] = None
    email: Optional[str] = None
    image: Optional[str] = None
    shop_name: Optional[str] = None
    last_login: datetime
    days_since_login: int = Field(ge=0)


class RecentActivityOut(BaseModel):
    id: UUID
    user_id: Optional[UUID] = None
    user_name: str
    user_image: Optional[str] = None
    action: str
    details: Optional[Dict[str, Any]] = None
    created_at: datetime


class DashboardStatsOut(_CamelModel):
    kpis: DashboardKpisOut
    request_monthly_trends: List[MonthlyTrendOut]
    users_by_branch: List[BranchSliceOut]
    urgent_tasks: List[UrgentTaskOut]
    inactive_users: List[InactiveUserOut]
    recent_activity: List[RecentActivityOut]
    pending_requests: int = Field(ge=0)
