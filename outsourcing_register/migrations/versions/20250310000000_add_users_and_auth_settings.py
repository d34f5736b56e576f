"""Add users and auth_settings tables for local auth and RBAC.

Seeds the auth_settings singleton with auth disabled and the factory master password.

Revision ID: 20250310000000
Revises: 20250305000000
Create Date: 2025-03-10

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

from outsourcing_register.core.security import DEFAULT_MASTER_PASSWORD, hash_password

revision: str = "20250310000000"
down_revision: Union[str, None] = "20250305000000"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    auth_settings = op.create_table(
        "auth_settings",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("auth_enabled", sa.Boolean(), nullable=False, server_default="0"),
        sa.Column("master_password_hash", sa.String(length=255), nullable=False),
        sa.Column("master_password_changed", sa.Boolean(), nullable=False, server_default="0"),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("id = 1", name="ck_auth_settings_singleton"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.bulk_insert(
        auth_settings,
        [
            {
                "id": 1,
                "auth_enabled": False,
                "master_password_hash": hash_password(DEFAULT_MASTER_PASSWORD),
                "master_password_changed": False,
            }
        ],
    )

    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("username", sa.String(length=50, collation="NOCASE"), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("display_name", sa.String(length=100), nullable=False),
        sa.Column("role", sa.String(length=16), nullable=False),
        sa.Column("is_system_user", sa.Boolean(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("role IN ('admin', 'editor', 'viewer')", name="ck_users_role"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_users_username"), "users", ["username"], unique=True)
    op.create_index(op.f("ix_users_role"), "users", ["role"])


def downgrade() -> None:
    op.drop_index(op.f("ix_users_role"), table_name="users")
    op.drop_index(op.f("ix_users_username"), table_name="users")
    op.drop_table("users")
    op.drop_table("auth_settings")
