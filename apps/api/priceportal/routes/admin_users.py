from __future__ import annotations

import logging
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from priceportal.core.context import AuthContext
from priceportal.core.errors import store_failure
from priceportal.db.session import get_db
from priceportal.dependencies.permissions import require_admin, require_staff
from priceportal.dependencies.services import get_audit_logger
from priceportal.models.user import User
from priceportal.schemas.branch import UserBranchOut, UserBranchesReplaceIn
from priceportal.schemas.common import SuccessOut
from priceportal.schemas.user import AdminUserOut, AdminUserUpdateIn, UserGroupsReplaceIn
from priceportal.services.access_requests import UnknownBranch, UnknownPriceGroups
from priceportal.services.audit import AuditLogger
from priceportal.services.users import (
    delete_user,
    list_admin_users,
    list_user_branches,
    remove_user_branch,
    remove_user_group,
    replace_user_branches,
    replace_user_groups,
    update_user,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin/users", tags=["admin-users"])


def _get_user(db: Session, user_id: UUID) -> User:
    user = db.get(User, user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user


# ============================================================
# users
# ============================================================

@router.get("", response_model=List[AdminUserOut])
def admin_list_users(
    _: AuthContext = Depends(require_staff),
    db: Session = Depends(get_db),
):
    try:
        return list_admin_users(db)
    except SQLAlchemyError:
        logger.exception("admin list users failed")
        raise store_failure(db, "Failed to fetch users") from None


@router.patch("/{user_id}", response_model=SuccessOut)
def admin_update_user(
    user_id: UUID,
    data: AdminUserUpdateIn,
    ctx: AuthContext = Depends(require_staff),
    db: Session = Depends(get_db),
    audit: AuditLogger = Depends(get_audit_logger),
):
    user = _get_user(db, user_id)
    try:
        update_user(db, audit, ctx, user, data)
    except SQLAlchemyError:
        logger.exception("update user failed user=%s", user_id)
        raise store_failure(db, "Failed to update user") from None
    return SuccessOut()


@router.delete("/{user_id}", response_model=SuccessOut)
def admin_delete_user(
    user_id: UUID,
    _: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    user = _get_user(db, user_id)
    try:
        delete_user(db, user)
    except SQLAlchemyError:
        logger.exception("delete user failed user=%s", user_id)
        raise store_failure(db, "Failed to delete user") from None
    return SuccessOut()


# ============================================================
# group access
# ============================================================

@router.put("/{user_id}/groups", response_model=SuccessOut)
def admin_replace_user_groups(
    user_id: UUID,
    data: UserGroupsReplaceIn,
    ctx: AuthContext = Depends(require_staff),
    db: Session = Depends(get_db),
):
    _get_user(db, user_id)
    try:
        replace_user_groups(db, ctx, user_id, data.group_ids)
    except UnknownPriceGroups as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from None
    except SQLAlchemyError:
        logger.exception("replace groups failed user=%s", user_id)
        raise store_failure(db, "Failed to update groups") from None
    return SuccessOut()


@router.delete("/{user_id}/groups", response_model=SuccessOut)
def admin_remove_user_group(
    user_id: UUID,
    group_id: Optional[UUID] = None,
    _: AuthContext = Depends(require_staff),
    db: Session = Depends(get_db),
):
    if group_id is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="group_id required")
    try:
        remove_user_group(db, user_id, group_id)
    except SQLAlchemyError:
        logger.exception("remove group failed user=%s group=%s", user_id, group_id)
        raise store_failure(db, "Failed to remove from group") from None
    return SuccessOut()


# ============================================================
# branches
# ============================================================

@router.get("/{user_id}/branches", response_model=List[UserBranchOut])
def admin_list_user_branches(
    user_id: UUID,
    _: AuthContext = Depends(require_staff),
    db: Session = Depends(get_db),
):
    try:
        return list_user_branches(db, user_id)
    except SQLAlchemyError:
        logger.exception("list branches failed user=%s", user_id)
        raise store_failure(db, "Failed to fetch") from None


@router.put("/{user_id}/branches", response_model=List[UserBranchOut])
def admin_replace_user_branches(
    user_id: UUID,
    data: UserBranchesReplaceIn,
    ctx: AuthContext = Depends(require_staff),
    db: Session = Depends(get_db),
):
    _get_user(db, user_id)
    try:
        return replace_user_branches(db, ctx, user_id, data.branchIds)
    except UnknownBranch as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from None
    except SQLAlchemyError:
        logger.exception("replace branches failed user=%s", user_id)
        raise store_failure(db, "Failed to update branches") from None


@router.delete("/{user_id}/branches", response_model=SuccessOut)
def admin_remove_user_branch(
    user_id: UUID,
    branchId: Optional[UUID] = None,
    _: AuthContext = Depends(require_staff),
    db: Session = Depends(get_db),
):
    if branchId is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="branchId required")
    try:
        remove_user_branch(db, user_id, branchId)
    except SQLAlchemyError:
        logger.exception("remove branch failed user=%s branch=%s", user_id, branchId)
        raise store_failure(db, "Failed to remove branch") from None
    return SuccessOut()
