"""Create scheduling tables: working_schedules, schedule_exceptions, appointments, appointment_services

Revision ID: 0001_scheduling
Revises:
Create Date: 2026-10-17

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql
from sqlalchemy import text

revision = "0001_scheduling"
down_revision = None
branch_labels = None
depends_on = None

APPOINTMENT_STATUSES = ("pendente", "confirmado", "concluido", "cancelado")


def upgrade() -> None:
    # Create the enum only if it doesn't exist (idempotent for re-runs)
    conn = op.get_bind()
    conn.execute(text(
        "DO $$ BEGIN CREATE TYPE appointmentstatus AS ENUM ('pendente', 'confirmado', 'concluido', 'cancelado'); "
        "EXCEPTION WHEN duplicate_object THEN NULL; END $$;"
    ))
    appointment_status_type = postgresql.ENUM(*APPOINTMENT_STATUSES, name="appointmentstatus", create_type=False)

    op.create_table(
        "working_schedules",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("company_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("collaborator_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("day_of_week", sa.Integer(), nullable=False),
        sa.Column("start_time", sa.Time(), nullable=False),
        sa.Column("end_time", sa.Time(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_working_schedules_company_id", "working_schedules", ["company_id"])
    op.create_index(
        "ix_working_schedules_collaborator_day", "working_schedules", ["collaborator_id", "day_of_week"]
    )

    op.create_table(
        "schedule_exceptions",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("company_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("collaborator_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("exception_date", sa.Date(), nullable=False),
        sa.Column("is_day_off", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("start_time", sa.Time(), nullable=True),
        sa.Column("end_time", sa.Time(), nullable=True),
        sa.Column("reason", sa.String(255), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_schedule_exceptions_company_id", "schedule_exceptions", ["company_id"])
    op.create_index(
        "ix_schedule_exceptions_collaborator_date", "schedule_exceptions", ["collaborator_id", "exception_date"]
    )

    op.create_table(
        "appointments",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("company_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("collaborator_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("client_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("client_nickname", sa.String(255), nullable=True),
        sa.Column("appointment_date", sa.Date(), nullable=False),
        sa.Column("appointment_time", sa.Time(), nullable=False),
        sa.Column("total_duration_minutes", sa.Integer(), nullable=False),
        sa.Column("total_price", sa.Numeric(10, 2), nullable=False, server_default="0"),
        sa.Column("observations", sa.Text(), nullable=True),
        sa.Column("status", appointment_status_type, nullable=False, server_default="pendente"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_appointments_company_id", "appointments", ["company_id"])
    op.create_index("ix_appointments_client_id", "appointments", ["client_id"])
    op.create_index(
        "ix_appointments_collaborator_date", "appointments", ["collaborator_id", "appointment_date"]
    )
    # One live appointment per collaborator start time; cancelled rows free the slot
    op.create_index(
        "uq_appointments_active_slot",
        "appointments",
        ["collaborator_id", "appointment_date", "appointment_time"],
        unique=True,
        postgresql_where=text("status <> 'cancelado'"),
    )

    op.create_table(
        "appointment_services",
        sa.Column("appointment_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("service_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.ForeignKeyConstraint(["appointment_id"], ["appointments.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("appointment_id", "service_id"),
    )


def downgrade() -> None:
    op.drop_table("appointment_services")
    op.drop_index("uq_appointments_active_slot", table_name="appointments")
    op.drop_index("ix_appointments_collaborator_date", table_name="appointments")
    op.drop_index("ix_appointments_client_id", table_name="appointments")
    op.drop_index("ix_appointments_company_id", table_name="appointments")
    op.drop_table("appointments")
    op.drop_index("ix_schedule_exceptions_collaborator_date", table_name="schedule_exceptions")
    op.drop_index("ix_schedule_exceptions_company_id", table_name="schedule_exceptions")
    op.drop_table("schedule_exceptions")
    op.drop_index("ix_working_schedules_collaborator_day", table_name="working_schedules")
    op.drop_index("ix_working_schedules_company_id", table_name="working_schedules")
    op.drop_table("working_schedules")
    op.execute("DROP TYPE appointmentstatus")
