from __future__ import annotations

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from priceportal.schemas.branch import UserBranchOut


class SignInIn(BaseModel):
    """Profile forwarded by the identity-provider bridge after it verified the login."""

    provider_id: str = Field(min_length=1, max_length=255)
    provider: str = Field(default="line", max_length=32)
    name: Optional[str] = Field(default=None, max_length=255)
    email: Optional[str] = Field(default=None, max_length=255)
    image: Optional[str] = Field(default=None, max_length=1024)


class SignInOut(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user_id: UUID
    is_admin: bool
    is_operator: bool


class SessionOut(BaseModel):
    user_id: UUID
    is_admin: bool
    is_operator: bool
    name: Optional[str] = None
    image: Optional[str] = None


class UserOut(BaseModel):
    id: UUID
    provider_id: str
    provider: str
    name: Optional[str] = None
    email: Optional[str] = None
    image: Optional[str] = None
    is_admin: bool
    is_operator: bool
    shop_name: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    bank_account: Optional[str] = None
    bank_name: Optional[str] = None
    note: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class GroupRefOut(BaseModel):
    id: UUID
    name: str

    class Config:
        from_attributes = True


class UserGroupAccessRowOut(BaseModel):
    id: UUID
    price_group_id: UUID
    created_at: datetime
    price_groups: Optional[GroupRefOut] = None


class AdminUserOut(UserOut):
    user_group_access: List[UserGroupAccessRowOut] = Field(default_factory=list)
    user_branches: List[UserBranchOut] = Field(default_factory=list)


class AdminUserUpdateIn(BaseModel):
    # role flags: admin only, silently ignored for operators
    is_admin: Optional[bool] = None
    is_operator: Optional[bool] = None

    shop_name: Optional[str] = Field(default=None, max_length=255)
    phone: Optional[str] = Field(default=None, max_length=32)
    address: Optional[str] = None
    bank_account: Optional[str] = Field(default=None, max_length=64)
    bank_name: Optional[str] = Field(default=None, max_length=128)
    note: Optional[str] = None


class UserGroupsReplaceIn(BaseModel):
    group_ids: List[UUID] = Field(default_factory=list)
