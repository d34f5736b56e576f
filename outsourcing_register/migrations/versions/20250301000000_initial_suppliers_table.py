"""Initial suppliers table.

Revision ID: 20250301000000
Revises:
Create Date: 2025-03-01

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "20250301000000"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "suppliers",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("reference_number", sa.String(length=64), nullable=False),
        sa.Column("status", sa.String(length=64), nullable=False, server_default="Draft"),
        sa.Column("category", sa.String(length=255), nullable=False, server_default=""),
        sa.Column("provider_name", sa.String(length=255), nullable=False, server_default=""),
        sa.Column("function_name", sa.String(length=255), nullable=False, server_default=""),
        sa.Column("is_critical", sa.Boolean(), nullable=False, server_default="0"),
        sa.Column("payload", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        op.f("ix_suppliers_reference_number"),
        "suppliers",
        ["reference_number"],
        unique=True,
    )


def downgrade() -> None:
    op.drop_index(op.f("ix_suppliers_reference_number"), table_name="suppliers")
    op.drop_table("suppliers")
