from __future__ import annotations

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class BranchOut(BaseModel):
    id: UUID
    name: str
    code: str
    created_at: datetime

    class Config:
        from_attributes = True


class UserBranchOut(BaseModel):
    id: UUID
    user_id: UUID
    branch_id: UUID
    assigned_by: Optional[UUID] = None
    created_at: datetime
    branch: Optional[BranchOut] = None

    class Config:
        from_attributes = True


class UserBranchesReplaceIn(BaseModel):
    branchIds: List[UUID] = Field(default_factory=list)
