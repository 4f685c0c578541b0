from __future__ import annotations

from datetime import datetime
from typing import List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from priceportal.schemas.branch import BranchOut
from priceportal.schemas.user import UserOut

RequestStatus = Literal["pending", "approved", "rejected"]


class AccessRequestCreateIn(BaseModel):
    branchId: UUID
    shopName: str = Field(min_length=1, max_length=255)
    note: Optional[str] = None


class ApproveIn(BaseModel):
    priceGroupIds: List[UUID] = Field(default_factory=list)


class RejectIn(BaseModel):
    reason: Optional[str] = None


class AccessRequestOut(BaseModel):
    id: UUID
    user_id: UUID
    branch_id: Optional[UUID] = None
    shop_name: str
    note: Optional[str] = None
    status: RequestStatus
    reject_reason: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class AccessRequestDetailOut(AccessRequestOut):
    user: Optional[UserOut] = None
    branch: Optional[BranchOut] = None
