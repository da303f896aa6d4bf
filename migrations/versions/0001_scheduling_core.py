"""Doctors, weekly schedules, special dates and appointments."""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa


revision = "0001_scheduling_core"
down_revision = None
branch_labels = None
depends_on = None


def _has_table(name: str) -> bool:
    return sa.inspect(op.get_bind()).has_table(name)


def upgrade() -> None:
    # Databases created by the start-up bootstrap already carry these tables.
    if not _has_table("doctors"):
        op.create_table(
            "doctors",
            sa.Column("id", sa.Text(), primary_key=True),
            sa.Column("name", sa.Text(), nullable=False),
            sa.Column("speciality", sa.Text(), nullable=True),
            sa.Column("fee", sa.Integer(), server_default="0", nullable=False),
            sa.Column("is_active", sa.Integer(), server_default="1", nullable=False),
            sa.Column("sort_order", sa.Integer(), server_default="0", nullable=False),
        )

    if not _has_table("doctor_schedules"):
        op.create_table(
            "doctor_schedules",
            sa.Column("doctor_id", sa.Text(), nullable=False),
            sa.Column("day_of_week", sa.Integer(), nullable=False),
            sa.Column("start_time", sa.Text(), nullable=False),
            sa.Column("end_time", sa.Text(), nullable=False),
            sa.Column("slot_duration", sa.Integer(), server_default="30", nullable=False),
            sa.Column("buffer_time", sa.Integer(), server_default="0", nullable=False),
            sa.Column("break_start", sa.Text(), nullable=True),
            sa.Column("break_end", sa.Text(), nullable=True),
            sa.Column("is_active", sa.Integer(), server_default="1", nullable=False),
            sa.PrimaryKeyConstraint("doctor_id", "day_of_week"),
            sa.ForeignKeyConstraint(["doctor_id"], ["doctors.id"], ondelete="CASCADE"),
            sa.CheckConstraint("day_of_week BETWEEN 0 AND 6", name="ck_doctor_schedules_dow"),
        )

    if not _has_table("special_dates"):
        op.create_table(
            "special_dates",
            sa.Column("id", sa.Text(), primary_key=True),
            sa.Column("special_date", sa.Text(), nullable=False),
            sa.Column("name", sa.Text(), nullable=False),
            sa.Column("type", sa.Text(), nullable=False),
            sa.Column("doctor_id", sa.Text(), nullable=True),
            sa.Column("reason", sa.Text(), nullable=True),
            sa.Column("start_time", sa.Text(), nullable=True),
            sa.Column("end_time", sa.Text(), nullable=True),
            sa.Column("break_start", sa.Text(), nullable=True),
            sa.Column("break_end", sa.Text(), nullable=True),
            sa.ForeignKeyConstraint(["doctor_id"], ["doctors.id"], ondelete="CASCADE"),
            sa.CheckConstraint(
                "type IN ('HOLIDAY','BREAK','SPECIAL_HOURS')", name="ck_special_dates_type"
            ),
        )
    op.execute("CREATE INDEX IF NOT EXISTS idx_special_dates_day ON special_dates(special_date)")

    if not _has_table("appointments"):
        op.create_table(
            "appointments",
            sa.Column("id", sa.Text(), primary_key=True),
            sa.Column("patient_name", sa.Text(), nullable=False),
            sa.Column("email", sa.Text(), nullable=True),
            sa.Column("phone", sa.Text(), nullable=True),
            sa.Column("doctor_id", sa.Text(), nullable=False),
            sa.Column("appointment_date", sa.Text(), nullable=False),
            sa.Column("appointment_time", sa.Text(), nullable=True),
            sa.Column("status", sa.Text(), server_default="SCHEDULED", nullable=False),
            sa.Column("customer_id", sa.Text(), nullable=True),
            sa.Column("notes", sa.Text(), nullable=True),
            sa.Column("created_at", sa.Text(), server_default=sa.text("(datetime('now'))"), nullable=False),
            sa.Column("updated_at", sa.Text(), server_default=sa.text("(datetime('now'))"), nullable=False),
            sa.ForeignKeyConstraint(["doctor_id"], ["doctors.id"], ondelete="RESTRICT"),
            sa.CheckConstraint(
                "status IN ('SCHEDULED','CONFIRMED','COMPLETED','CANCELLED','NO_SHOW')",
                name="ck_appointments_status",
            ),
        )
    op.execute(
        "CREATE INDEX IF NOT EXISTS idx_appointments_doctor_day ON appointments(doctor_id, appointment_date)"
    )
    op.execute("CREATE INDEX IF NOT EXISTS idx_appointments_day ON appointments(appointment_date)")


def downgrade() -> None:
    op.execute("DROP INDEX IF EXISTS idx_appointments_day")
    op.execute("DROP INDEX IF EXISTS idx_appointments_doctor_day")
    op.drop_table("appointments")
    op.execute("DROP INDEX IF EXISTS idx_special_dates_day")
    op.drop_table("special_dates")
    op.drop_table("doctor_schedules")
    op.drop_table("doctors")
