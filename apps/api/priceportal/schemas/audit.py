from __future__ import annotations

"""
Audit row payloads.

Every action tag has its own payload model; together they form a
discriminated union on `action`, so call sites cannot drift into
free-form blobs. The tag is stored in its own column and removed from
the JSON details.
"""

from datetime import datetime
from typing import Annotated, Any, Dict, List, Literal, Optional, Union, get_args
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

UserAction = Literal[
    "login",
    "register",
    "view_price",
    "approve_request",
    "reject_request",
    "create_group",
    "edit_group",
    "delete_group",
    "upload_image",
    "edit_user",
    "grant_admin",
    "request_access",
    "view_announcement",
]

USER_ACTIONS: tuple[str, ...] = get_args(UserAction)


class _Detail(BaseModel):
    """
    Common to every action: `message` is the human-readable line the logs
    page shows. Identifiers are optional because the admin UI posts the
    same actions from the browser with only a message and what it changed.
    """

    # unknown keys from older clients are dropped, not stored
    model_config = ConfigDict(extra="ignore")

    message: Optional[str] = Field(default=None, max_length=1000)


class LoginDetail(_Detail):
    action: Literal["login"] = "login"
    name: Optional[str] = None


class RegisterDetail(_Detail):
    action: Literal["register"] = "register"
    name: Optional[str] = None


class ViewPriceDetail(_Detail):
    action: Literal["view_price"] = "view_price"
    group_id: Optional[UUID] = None
    group_name: Optional[str] = None


class ApproveRequestDetail(_Detail):
    action: Literal["approve_request"] = "approve_request"
    request_id: Optional[UUID] = None
    target_user_id: Optional[UUID] = None
    price_group_ids: Optional[List[UUID]] = None
    groups: Optional[List[UUID]] = None


class RejectRequestDetail(_Detail):
    action: Literal["reject_request"] = "reject_request"
    request_id: Optional[UUID] = None
    target_user_id: Optional[UUID] = None
    reason: Optional[str] = None


class CreateGroupDetail(_Detail):
    action: Literal["create_group"] = "create_group"
    group_id: Optional[UUID] = None
    group_name: Optional[str] = None
    name: Optional[str] = None
    description: Optional[str] = None


class EditGroupDetail(_Detail):
    action: Literal["edit_group"] = "edit_group"
    group_id: Optional[UUID] = None
    group_name: Optional[str] = None
    updated_fields: Optional[List[str]] = None
    changes: Optional[Dict[str, Any]] = None
    image_id: Optional[UUID] = None


class DeleteGroupDetail(_Detail):
    action: Literal["delete_group"] = "delete_group"
    group_id: Optional[UUID] = None
    group_name: Optional[str] = None


class UploadImageDetail(_Detail):
    """Either a single stored file or a replace-all batch on a group."""

    action: Literal["upload_image"] = "upload_image"
    group_id: Optional[UUID] = None
    group_name: Optional[str] = None
    count: Optional[int] = None
    file_name: Optional[str] = None
    file_path: Optional[str] = None
    folder: Optional[str] = None
    file_size: Optional[int] = None


class EditUserDetail(_Detail):
    action: Literal["edit_user"] = "edit_user"
    target_user_id: Optional[UUID] = None
    updated_fields: Optional[List[str]] = None
    changes: Optional[Dict[str, Any]] = None
    groups: Optional[List[UUID]] = None
    branches: Optional[List[UUID]] = None
    # single removals from the users page
    groupId: Optional[UUID] = None
    branchId: Optional[UUID] = None


class GrantAdminDetail(_Detail):
    action: Literal["grant_admin"] = "grant_admin"
    target_user_id: Optional[UUID] = None
    is_admin: Optional[bool] = None
    is_operator: Optional[bool] = None


class RequestAccessDetail(_Detail):
    action: Literal["request_access"] = "request_access"
    request_id: Optional[UUID] = None
    branch_id: Optional[UUID] = None
    shop_name: Optional[str] = None


class ViewAnnouncementDetail(_Detail):
    action: Literal["view_announcement"] = "view_announcement"
    announcement_id: Optional[UUID] = None
    announcement_title: Optional[str] = None


AuditEntry = Annotated[
    Union[
        LoginDetail,
        RegisterDetail,
        ViewPriceDetail,
        ApproveRequestDetail,
        RejectRequestDetail,
        CreateGroupDetail,
        EditGroupDetail,
        DeleteGroupDetail,
        UploadImageDetail,
        EditUserDetail,
        GrantAdminDetail,
        RequestAccessDetail,
        ViewAnnouncementDetail,
    ],
    Field(discriminator="action"),
]

_entry_adapter: TypeAdapter[Any] = TypeAdapter(AuditEntry)


def parse_audit_entry(action: str, details: Optional[Dict[str, Any]]) -> AuditEntry:
    """Validate client supplied (action, details) into the matching payload model."""
    data = dict(details or {})
    data["action"] = action
    return _entry_adapter.validate_python(data)


def entry_details(entry: AuditEntry) -> Dict[str, Any]:
    """JSON-safe details for storage (tag and unset optionals removed)."""
    return entry.model_dump(mode="json", exclude={"action"}, exclude_none=True)


# ============================================================
# API
# ============================================================

class UserLogCreateIn(BaseModel):
    action: UserAction
    details: Optional[Dict[str, Any]] = None


class LogUserOut(BaseModel):
    id: UUID
    name: Optional[str] = None
    email: Optional[str] = None
    image: Optional[str] = None

    class Config:
        from_attributes = True


class UserLogOut(BaseModel):
    id: UUID
    user_id: Optional[UUID]
    action: str
    details: Optional[Dict[str, Any]] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    created_at: datetime
    users: Optional[LogUserOut] = None

    class Config:
        from_attributes = True
