"""Add user_onboarding table (one row per user).

Revision ID: 0002
Revises: 0001
Create Date: 2026-10-19
"""

revision = "0002"
down_revision = "0001"
branch_labels = None
depends_on = None

from alembic import op
import sqlalchemy as sa


ONBOARDING_STATUSES = (
    "not_started",
    "in_progress",
    "completed",
    "abandoned",
    "requires_approval",
)

ONBOARDING_STEPS = (
    "account_creation",
    "email_verification",
    "profile_setup",
    "school_selection",
    "school_registration",
    "school_verification",
    "role_selection",
    "permissions_setup",
    "dashboard_tour",
    "completion",
)


def upgrade() -> None:
    op.create_table(
        "user_onboarding",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "user_id", sa.String(36),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "status",
            sa.Enum(*ONBOARDING_STATUSES, name="onboarding_status_enum"),
            server_default="not_started",
        ),
        sa.Column(
            "current_step",
            sa.Enum(*ONBOARDING_STEPS, name="onboarding_step_enum"),
            server_default="account_creation",
        ),
        sa.Column("completed_steps", sa.JSON(), server_default=sa.text("'[]'")),
        sa.Column("step_data", sa.JSON()),
        sa.Column("started_at", sa.DateTime()),
        sa.Column("completed_at", sa.DateTime()),
        sa.Column("last_step_at", sa.DateTime()),
        sa.Column("abandoned_at", sa.DateTime()),
        sa.Column("approved_at", sa.DateTime()),
        sa.Column(
            "approved_by", sa.String(36),
            sa.ForeignKey("users.id", ondelete="SET NULL"),
        ),
        sa.Column("notes", sa.Text()),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.func.now()),
    )
    op.create_index("ix_user_onboarding_user_id", "user_onboarding", ["user_id"], unique=True)
    op.create_index("ix_user_onboarding_status", "user_onboarding", ["status"])
    op.create_index("ix_user_onboarding_current_step", "user_onboarding", ["current_step"])


def downgrade() -> None:
    op.drop_table("user_onboarding")
    sa.Enum(name="onboarding_step_enum").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="onboarding_status_enum").drop(op.get_bind(), checkfirst=True)
