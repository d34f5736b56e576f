"""Add events, issues and critical_monitor tables.

Revision ID: 20250305000000
Revises: 20250301000000
Create Date: 2025-03-05

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "20250305000000"
down_revision: Union[str, None] = "20250301000000"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "events",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("type", sa.String(length=64), nullable=False),
        sa.Column("event_date", sa.String(length=32), nullable=False),
        sa.Column("summary", sa.Text(), nullable=False),
        sa.Column("old_value", sa.Text(), nullable=True),
        sa.Column("new_value", sa.Text(), nullable=True),
        sa.Column("risk_before", sa.String(length=64), nullable=True),
        sa.Column("risk_after", sa.String(length=64), nullable=True),
        sa.Column("severity", sa.String(length=32), nullable=True),
        sa.Column("supplier_name", sa.String(length=255), nullable=True),
        sa.Column("function_name", sa.String(length=255), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_events_type"), "events", ["type"])
    op.create_index(op.f("ix_events_event_date"), "events", ["event_date"])

    op.create_table(
        "issues",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("category", sa.String(length=255), nullable=False, server_default=""),
        sa.Column("status", sa.String(length=32), nullable=False),
        sa.Column("severity", sa.String(length=32), nullable=True),
        sa.Column("owner", sa.String(length=255), nullable=True),
        sa.Column("supplier_name", sa.String(length=255), nullable=True),
        sa.Column("function_name", sa.String(length=255), nullable=True),
        sa.Column("date_opened", sa.String(length=32), nullable=False),
        sa.Column("date_last_update", sa.String(length=32), nullable=False),
        sa.Column("date_closed", sa.String(length=32), nullable=True),
        sa.Column("due_date", sa.String(length=32), nullable=True),
        sa.Column("follow_ups", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_issues_status"), "issues", ["status"])
    op.create_index(op.f("ix_issues_severity"), "issues", ["severity"])
    op.create_index(op.f("ix_issues_due_date"), "issues", ["due_date"])

    op.create_table(
        "critical_monitor",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("supplier_reference_number", sa.String(length=64), nullable=False),
        sa.Column("contract", sa.Text(), nullable=True),
        sa.Column("suitability_assessment_date", sa.String(length=32), nullable=True),
        sa.Column("audit_reports", sa.Text(), nullable=True),
        sa.Column("co_ro_assessment_date", sa.String(length=32), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        op.f("ix_critical_monitor_supplier_reference_number"),
        "critical_monitor",
        ["supplier_reference_number"],
        unique=True,
    )


def downgrade() -> None:
    op.drop_index(
        op.f("ix_critical_monitor_supplier_reference_number"),
        table_name="critical_monitor",
    )
    op.drop_table("critical_monitor")
    op.drop_index(op.f("ix_issues_due_date"), table_name="issues")
    op.drop_index(op.f("ix_issues_severity"), table_name="issues")
    op.drop_index(op.f("ix_issues_status"), table_name="issues")
    op.drop_table("issues")
    op.drop_index(op.f("ix_events_event_date"), table_name="events")
    op.drop_index(op.f("ix_events_type"), table_name="events")
    op.drop_table("events")
