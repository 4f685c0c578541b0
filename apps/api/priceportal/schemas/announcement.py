from __future__ import annotations

from datetime import datetime
from typing import Any, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class AnnouncementCreateIn(BaseModel):
    title: Optional[str] = Field(default=None, max_length=255)
    body: Optional[str] = None
    image_path: Optional[str] = Field(default=None, max_length=1024)
    # non-string / empty entries are dropped, only the first 5 are kept
    images: Optional[List[Any]] = None


class AnnouncementUpdateIn(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    body: Optional[str] = None
    is_published: Optional[bool] = None
    image_path: Optional[str] = Field(default=None, max_length=1024)
    images: Optional[List[Any]] = None


class AnnouncementImageOut(BaseModel):
    id: UUID
    announcement_id: UUID
    image_path: str
    sort_order: int
    created_at: datetime

    class Config:
        from_attributes = True


class AnnouncementOut(BaseModel):
    id: UUID
    title: str
    body: Optional[str] = None
    image_path: Optional[str] = None
    images: List[AnnouncementImageOut] = Field(default_factory=list)
    is_published: bool
    created_by: Optional[UUID] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
