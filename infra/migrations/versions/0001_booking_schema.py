"""booking schema

Revision ID: 0001_booking_schema
Revises:
Create Date: 2026-10-19 09:00:00

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "0001_booking_schema"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

_ACTIVE_SQL = "status IN ('PENDING', 'CONFIRMED')"


def _timestamps() -> list:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("email", sa.String(320), nullable=False),
        sa.Column("first_name", sa.String(50), nullable=False),
        sa.Column("last_name", sa.String(50), nullable=False),
        sa.Column("role", sa.String(20), server_default="patient", nullable=False),
        sa.Column("is_active", sa.Boolean(), server_default="true", nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("email", name="uq_users_email"),
        sa.CheckConstraint("role IN ('patient', 'provider', 'admin')", name="ck_users_role_valid"),
    )
    op.create_index("ix_users_email", "users", ["email"])
    op.create_index("ix_users_active_role", "users", ["is_active", "role"])

    op.create_table(
        "audit_logs",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("user_id", sa.Uuid(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("action", sa.String(64), nullable=False),
        sa.Column("details", sa.String(1000), nullable=True),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=True),
    )

    op.create_table(
        "family_members",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("patient_id", sa.Uuid(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("first_name", sa.String(50), nullable=False),
        sa.Column("last_name", sa.String(50), nullable=False),
        sa.Column("relationship_label", sa.String(32), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_family_members_patient_id", "family_members", ["patient_id"])

    op.create_table(
        "providers",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("owner_id", sa.Uuid(), sa.ForeignKey("users.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("slug", sa.String(200), nullable=False),
        sa.Column("status", sa.String(20), server_default="PENDING", nullable=False),
        sa.Column("opening_time", sa.String(5), nullable=False),
        sa.Column("closing_time", sa.String(5), nullable=False),
        sa.Column("operating_days", sa.JSON(), nullable=False),
        sa.Column("timezone", sa.String(64), nullable=False),
        sa.Column("offers_telehealth", sa.Boolean(), nullable=False),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("slug", name="uq_providers_slug"),
        sa.CheckConstraint(
            "status IN ('PENDING', 'APPROVED', 'SUSPENDED', 'REJECTED')",
            name="ck_providers_status_valid",
        ),
    )
    op.create_index("ix_providers_owner_id", "providers", ["owner_id"])
    op.create_index("ix_providers_status", "providers", ["status"])

    op.create_table(
        "services",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("provider_id", sa.Uuid(), sa.ForeignKey("providers.id", ondelete="CASCADE"), nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("duration_minutes", sa.Integer(), nullable=False),
        sa.Column("is_telehealth", sa.Boolean(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.CheckConstraint("duration_minutes > 0", name="ck_services_duration_positive"),
    )
    op.create_index("ix_services_provider_id", "services", ["provider_id"])

    op.create_table(
        "appointments",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("patient_id", sa.Uuid(), sa.ForeignKey("users.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("provider_id", sa.Uuid(), sa.ForeignKey("providers.id", ondelete="RESTRICT"), nullable=False),
        sa.Column(
            "family_member_id",
            sa.Uuid(),
            sa.ForeignKey("family_members.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("service_id", sa.Uuid(), sa.ForeignKey("services.id", ondelete="SET NULL"), nullable=True),
        sa.Column("appointment_type", sa.String(20), nullable=False),
        sa.Column("status", sa.String(20), server_default="PENDING", nullable=False),
        sa.Column("scheduled_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("duration_minutes", sa.Integer(), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("recurrence", sa.String(20), nullable=False),
        sa.Column("recurrence_end_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("series_id", sa.String(64), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancel_reason", sa.String(500), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("duration_minutes > 0", name="ck_appt_duration_positive"),
        sa.CheckConstraint(
            "status IN ('PENDING', 'CONFIRMED', 'CANCELLED', 'COMPLETED', 'NO_SHOW')",
            name="ck_appt_status_valid",
        ),
    )
    op.create_index(
        "uq_appt_provider_start_active",
        "appointments",
        ["provider_id", "scheduled_at"],
        unique=True,
        postgresql_where=sa.text(_ACTIVE_SQL),
    )
    op.create_index("ix_appt_provider_start", "appointments", ["provider_id", "scheduled_at"])
    op.create_index("ix_appt_patient_start", "appointments", ["patient_id", "scheduled_at"])
    op.create_index("ix_appt_series", "appointments", ["series_id"])


def downgrade() -> None:
    op.drop_table("appointments")
    op.drop_table("services")
    op.drop_table("providers")
    op.drop_table("family_members")
    op.drop_table("audit_logs")
    op.drop_table("users")
