"""Create plans table.

Revision ID: 003
Revises: 002
Create Date: 2026-10-17

"""

from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "003_plans"
down_revision: str | None = "002_users"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

PLAN_TYPES = ("meal", "training")
PLAN_STATUSES = ("active", "inactive", "completed", "archived")


def upgrade() -> None:
    postgresql.ENUM(*PLAN_TYPES, name="plantype").create(op.get_bind())
    postgresql.ENUM(*PLAN_STATUSES, name="planstatus").create(op.get_bind())

    op.create_table(
        "plans",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("user_id", sa.UUID(), nullable=False),
        sa.Column(
            "plan_type",
            postgresql.ENUM(*PLAN_TYPES, name="plantype", create_type=False),
            nullable=False,
        ),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column(
            "status",
            postgresql.ENUM(*PLAN_STATUSES, name="planstatus", create_type=False),
            nullable=False,
            server_default="active",
        ),
        sa.Column(
            "content",
            postgresql.JSONB(),
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
        ),
        sa.Column("generation_context", postgresql.JSONB(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("end_date >= start_date", name="ck_plans_date_range"),
    )

    op.create_index("ix_plans_user_id", "plans", ["user_id"])
    op.create_index(
        "ix_plans_user_type_status", "plans", ["user_id", "plan_type", "status"]
    )

    # At most one active plan per user and plan type
    op.create_index(
        "uq_plans_one_active_per_type",
        "plans",
        ["user_id", "plan_type"],
        unique=True,
        postgresql_where=sa.text("status = 'active'"),
    )


def downgrade() -> None:
    op.drop_index("uq_plans_one_active_per_type", table_name="plans")
    op.drop_index("ix_plans_user_type_status", table_name="plans")
    op.drop_index("ix_plans_user_id", table_name="plans")
    op.drop_table("plans")

    postgresql.ENUM(*PLAN_STATUSES, name="planstatus").drop(op.get_bind())
    postgresql.ENUM(*PLAN_TYPES, name="plantype").drop(op.get_bind())
