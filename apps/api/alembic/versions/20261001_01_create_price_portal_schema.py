"""Create price portal schema

Revision ID: 20261001_01_initial
Revises:
Create Date: 2026-10-01

"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261001_01_initial"
down_revision = None
branch_labels = None
depends_on = None


def _table_exists(name: str) -> bool:
    bind = op.get_bind()
    insp = sa.inspect(bind)
    return insp.has_table(name)


def _id() -> sa.Column:
    return sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True, nullable=False)


def _created_at() -> sa.Column:
    return sa.Column(
        "created_at",
        sa.DateTime(timezone=True),
        nullable=False,
        server_default=sa.func.now(),
    )


def upgrade() -> None:
    if not _table_exists("users"):
        op.create_table(
            "users",
            _id(),
            sa.Column("provider_id", sa.String(length=255), nullable=False),
            sa.Column("provider", sa.String(length=32), nullable=False, server_default="line"),
            sa.Column("name", sa.String(length=255), nullable=True),
            sa.Column("email", sa.String(length=255), nullable=True),
            sa.Column("image", sa.String(length=1024), nullable=True),
            sa.Column("is_admin", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("is_operator", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("shop_name", sa.String(length=255), nullable=True),
            sa.Column("phone", sa.String(length=32), nullable=True),
            sa.Column("address", sa.Text(), nullable=True),
            sa.Column("bank_account", sa.String(length=64), nullable=True),
            sa.Column("bank_name", sa.String(length=128), nullable=True),
            sa.Column("note", sa.Text(), nullable=True),
            _created_at(),
        )
        op.create_index("ix_users_provider_id", "users", ["provider_id"], unique=True)
        op.create_index("ix_users_created_at", "users", ["created_at"])

    if not _table_exists("branches"):
        op.create_table(
            "branches",
            _id(),
            sa.Column("name", sa.String(length=255), nullable=False),
            sa.Column("code", sa.String(length=32), nullable=False, unique=True),
            _created_at(),
        )

    if not _table_exists("user_branches"):
        op.create_table(
            "user_branches",
            _id(),
            sa.Column("user_id", sa.Uuid(as_uuid=True), nullable=False),
            sa.Column("branch_id", sa.Uuid(as_uuid=True), nullable=False),
            sa.Column("assigned_by", sa.Uuid(as_uuid=True), nullable=True),
            _created_at(),
            sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint(["branch_id"], ["branches.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint(["assigned_by"], ["users.id"], ondelete="SET NULL"),
            sa.UniqueConstraint("user_id", "branch_id", name="uq_user_branches_user_branch"),
        )
        op.create_index("ix_user_branches_user_id", "user_branches", ["user_id"])
        op.create_index("ix_user_branches_branch_id", "user_branches", ["branch_id"])

    if not _table_exists("price_groups"):
        op.create_table(
            "price_groups",
            _id(),
            sa.Column("name", sa.String(length=255), nullable=False),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("branch_id", sa.Uuid(as_uuid=True), nullable=True),
            sa.Column("telegram_chat_id", sa.String(length=64), nullable=True),
            _created_at(),
            sa.ForeignKeyConstraint(["branch_id"], ["branches.id"], ondelete="SET NULL"),
        )
        op.create_index("ix_price_groups_branch_id", "price_groups", ["branch_id"])

    if not _table_exists("price_group_images"):
        op.create_table(
            "price_group_images",
            _id(),
            sa.Column("price_group_id", sa.Uuid(as_uuid=True), nullable=False),
            sa.Column("file_path", sa.String(length=1024), nullable=False),
            sa.Column("file_name", sa.String(length=255), nullable=True),
            sa.Column("title", sa.String(length=255), nullable=True),
            sa.Column("uploaded_by", sa.Uuid(as_uuid=True), nullable=True),
            _created_at(),
            sa.ForeignKeyConstraint(["price_group_id"], ["price_groups.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint(["uploaded_by"], ["users.id"], ondelete="SET NULL"),
        )
        op.create_index(
            "ix_price_group_images_group_created",
            "price_group_images",
            ["price_group_id", "created_at"],
        )

    if not _table_exists("user_group_access"):
        op.create_table(
            "user_group_access",
            _id(),
            sa.Column("user_id", sa.Uuid(as_uuid=True), nullable=False),
            sa.Column("price_group_id", sa.Uuid(as_uuid=True), nullable=False),
            sa.Column("granted_by", sa.Uuid(as_uuid=True), nullable=True),
            _created_at(),
            sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint(["price_group_id"], ["price_groups.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint(["granted_by"], ["users.id"], ondelete="SET NULL"),
            sa.UniqueConstraint("user_id", "price_group_id", name="uq_user_group_access_user_group"),
        )
        op.create_index("ix_user_group_access_user_id", "user_group_access", ["user_id"])
        op.create_index("ix_user_group_access_price_group_id", "user_group_access", ["price_group_id"])

    if not _table_exists("access_requests"):
        op.create_table(
            "access_requests",
            _id(),
            sa.Column("user_id", sa.Uuid(as_uuid=True), nullable=False),
            sa.Column("branch_id", sa.Uuid(as_uuid=True), nullable=True),
            sa.Column("shop_name", sa.String(length=255), nullable=False),
            sa.Column("note", sa.Text(), nullable=True),
            sa.Column("status", sa.String(length=16), nullable=False, server_default="pending"),
            sa.Column("reject_reason", sa.Text(), nullable=True),
            _created_at(),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
            sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint(["branch_id"], ["branches.id"], ondelete="SET NULL"),
        )
        op.create_index("ix_access_requests_user_id", "access_requests", ["user_id"])
        op.create_index("ix_access_requests_branch_id", "access_requests", ["branch_id"])
        op.create_index("ix_access_requests_status", "access_requests", ["status"])
        op.create_index("ix_access_requests_created_at", "access_requests", ["created_at"])

    if not _table_exists("announcements"):
        op.create_table(
            "announcements",
            _id(),
            sa.Column("title", sa.String(length=255), nullable=False),
            sa.Column("body", sa.Text(), nullable=True),
            sa.Column("image_path", sa.String(length=1024), nullable=True),
            sa.Column("is_published", sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column("created_by", sa.Uuid(as_uuid=True), nullable=True),
            _created_at(),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
            sa.ForeignKeyConstraint(["created_by"], ["users.id"], ondelete="SET NULL"),
        )
        op.create_index("ix_announcements_created_at", "announcements", ["created_at"])

    if not _table_exists("announcement_images"):
        op.create_table(
            "announcement_images",
            _id(),
            sa.Column("announcement_id", sa.Uuid(as_uuid=True), nullable=False),
            sa.Column("image_path", sa.String(length=1024), nullable=False),
            sa.Column("sort_order", sa.Integer(), nullable=False, server_default="0"),
            _created_at(),
            sa.ForeignKeyConstraint(["announcement_id"], ["announcements.id"], ondelete="CASCADE"),
        )
        op.create_index("ix_announcement_images_announcement_id", "announcement_images", ["announcement_id"])

    if not _table_exists("user_logs"):
        op.create_table(
            "user_logs",
            _id(),
            sa.Column("user_id", sa.Uuid(as_uuid=True), nullable=True),
            sa.Column("action", sa.String(length=32), nullable=False),
            sa.Column("details", sa.JSON(), nullable=True),
            sa.Column("ip_address", sa.String(length=64), nullable=True),
            sa.Column("user_agent", sa.String(length=512), nullable=True),
            _created_at(),
            sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="SET NULL"),
        )
        op.create_index("ix_user_logs_user_id", "user_logs", ["user_id"])
        op.create_index("ix_user_logs_action", "user_logs", ["action"])
        op.create_index("ix_user_logs_created_at", "user_logs", ["created_at"])
        op.create_index("ix_user_logs_action_created", "user_logs", ["action", "created_at"])


def downgrade() -> None:
    for name in (
        "user_logs",
        "announcement_images",
        "announcements",
        "access_requests",
        "user_group_access",
        "price_group_images",
        "price_groups",
        "user_branches",
        "branches",
        "users",
    ):
        if _table_exists(name):
            op.drop_table(name)
