from __future__ import annotations

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from priceportal.schemas.branch import BranchOut


class PriceGroupCreateIn(BaseModel):
    name: Optional[str] = Field(default=None, max_length=255)
    description: Optional[str] = None
    branch_id: Optional[UUID] = None
    telegram_chat_id: Optional[str] = Field(default=None, max_length=64)


class PriceGroupUpdateIn(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    branch_id: Optional[UUID] = None
    telegram_chat_id: Optional[str] = Field(default=None, max_length=64)


class PriceGroupOut(BaseModel):
    id: UUID
    name: str
    description: Optional[str] = None
    branch_id: Optional[UUID] = None
    telegram_chat_id: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class PriceGroupListOut(PriceGroupOut):
    last_updated_at: Optional[datetime] = None


class PriceGroupDetailOut(PriceGroupOut):
    branch: Optional[BranchOut] = None


class PriceGroupImageIn(BaseModel):
    file_path: Optional[str] = Field(default=None, max_length=1024)
    file_name: Optional[str] = Field(default=None, max_length=255)
    title: Optional[str] = Field(default=None, max_length=255)


class PriceGroupImageOut(BaseModel):
    id: UUID
    price_group_id: UUID
    file_path: str
    file_name: Optional[str] = None
    title: Optional[str] = None
    uploaded_by: Optional[UUID] = None
    created_at: datetime

    class Config:
        from_attributes = True


class ClearImagesOut(BaseModel):
    success: bool = True
    deleted: int


class ReplaceImagesOut(BaseModel):
    success: bool = True
    cleared: int
    images: List[PriceGroupImageOut]
    forwarded: int = 0
    forward_failures: int = 0


class UploadOut(BaseModel):
    file_path: str
    file_name: str
    public_url: str


class UserAccessOut(BaseModel):
    id: UUID
    user_id: UUID
    price_group_id: UUID
    granted_by: Optional[UUID] = None
    created_at: datetime
    price_group: Optional[PriceGroupOut] = None
    last_updated_at: Optional[datetime] = None


class TelegramSendIn(BaseModel):
    imageUrl: Optional[str] = None
    caption: Optional[str] = None
    chatId: Optional[str] = None
