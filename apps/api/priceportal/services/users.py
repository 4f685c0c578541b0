from __future__ import annotations

import logging
from collections import defaultdict
from typing import Dict, List, Sequence
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from priceportal.core.context import AuthContext
from priceportal.models.access_request import AccessRequest
from priceportal.models.branch import Branch, UserBranch
from priceportal.models.price_group import UserGroupAccess
from priceportal.models.user import User
from priceportal.schemas.audit import EditUserDetail, GrantAdminDetail
from priceportal.schemas.branch import UserBranchOut
from priceportal.schemas.user import AdminUserOut, AdminUserUpdateIn, GroupRefOut, UserGroupAccessRowOut
from priceportal.services.access_requests import UnknownBranch, assert_groups_exist, grant_group_access
from priceportal.services.audit import AuditLogger

logger = logging.getLogger(__name__)

ROLE_FIELDS = ("is_admin", "is_operator")
PROFILE_FIELDS = ("shop_name", "phone", "address", "bank_account", "bank_name", "note")


def list_admin_users(db: Session) -> List[AdminUserOut]:
    """Users newest first, each merged with its access rows and branch assignments."""
    users = db.execute(select(User).order_by(User.created_at.desc())).scalars().all()

    access_by_user: Dict[UUID, List[UserGroupAccessRowOut]] = defaultdict(list)
    for row in db.execute(select(UserGroupAccess).order_by(UserGroupAccess.created_at.asc())).scalars():
        access_by_user[row.user_id].append(
            UserGroupAccessRowOut(
                id=row.id,
                price_group_id=row.price_group_id,
                created_at=row.created_at,
                price_groups=GroupRefOut.model_validate(row.price_group) if row.price_group else None,
            )
        )

    branches_by_user: Dict[UUID, List[UserBranchOut]] = defaultdict(list)
    for row in db.execute(select(UserBranch).order_by(UserBranch.created_at.asc())).scalars():
        branches_by_user[row.user_id].append(UserBranchOut.model_validate(row))

    out: List[AdminUserOut] = []
    for u in users:
        item = AdminUserOut.model_validate(u)
        item.user_group_access = access_by_user.get(u.id, [])
        item.user_branches = branches_by_user.get(u.id, [])
        out.append(item)
    return out


def update_user(
    db: Session,
    audit: AuditLogger,
    ctx: AuthContext,
    user: User,
    data: AdminUserUpdateIn,
) -> User:
    patch = data.model_dump(exclude_unset=True)

    role_patch = {k: v for k, v in patch.items() if k in ROLE_FIELDS and v is not None}
    if not ctx.is_admin:
        if role_patch:
            logger.info("operator=%s role change ignored target=%s", ctx.user_id, user.id)
        role_patch = {}

    profile_patch = {k: v for k, v in patch.items() if k in PROFILE_FIELDS}

    for key, value in {**profile_patch, **role_patch}.items():
        setattr(user, key, value)

    db.commit()
    db.refresh(user)

    if role_patch:
        audit.record(
            ctx.user_id,
            GrantAdminDetail(
                target_user_id=user.id,
                is_admin=role_patch.get("is_admin"),
                is_operator=role_patch.get("is_operator"),
            ),
        )
    else:
        audit.record(ctx.user_id, EditUserDetail(target_user_id=user.id, updated_fields=sorted(profile_patch)))
    return user


def delete_user(db: Session, user: User) -> None:
    """Access rows, requests and branch assignments go with the user; audit rows stay."""
    user_id = user.id
    db.execute(delete(UserGroupAccess).where(UserGroupAccess.user_id == user_id))
    db.execute(delete(AccessRequest).where(AccessRequest.user_id == user_id))
    db.execute(delete(UserBranch).where(UserBranch.user_id == user_id))
    db.delete(user)
    db.commit()


# ============================================================
# group access / branches (replace-all)
# ============================================================

def replace_user_groups(db: Session, ctx: AuthContext, user_id: UUID, group_ids: Sequence[UUID]) -> List[UUID]:
    assert_groups_exist(db, group_ids)
    db.execute(delete(UserGroupAccess).where(UserGroupAccess.user_id == user_id))
    granted = grant_group_access(db, user_id=user_id, group_ids=group_ids, granted_by=ctx.user_id)
    db.commit()
    return granted


def remove_user_group(db: Session, user_id: UUID, group_id: UUID) -> int:
    res = db.execute(
        delete(UserGroupAccess).where(
            UserGroupAccess.user_id == user_id,
            UserGroupAccess.price_group_id == group_id,
        )
    )
    db.commit()
    return res.rowcount or 0


def list_user_branches(db: Session, user_id: UUID) -> List[UserBranch]:
    return list(
        db.execute(
            select(UserBranch).where(UserBranch.user_id == user_id).order_by(UserBranch.created_at.asc())
        ).scalars()
    )


def replace_user_branches(db: Session, ctx: AuthContext, user_id: UUID, branch_ids: Sequence[UUID]) -> List[UserBranch]:
    wanted = list(dict.fromkeys(branch_ids))
    if wanted:
        found = set(db.execute(select(Branch.id).where(Branch.id.in_(wanted))).scalars())
        if len(found) != len(wanted):
            raise UnknownBranch("Branch not found")

    db.execute(delete(UserBranch).where(UserBranch.user_id == user_id))
    for bid in wanted:
        db.add(UserBranch(user_id=user_id, branch_id=bid, assigned_by=ctx.user_id))
    db.commit()
    return list_user_branches(db, user_id)


def remove_user_branch(db: Session, user_id: UUID, branch_id: UUID) -> int:
    res = db.execute(delete(UserBranch).where(UserBranch.user_id == user_id, UserBranch.branch_id == branch_id))
    db.commit()
    return res.rowcount or 0
