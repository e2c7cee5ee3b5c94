"""Initial schema: users, doctors, weekly availability, slots, consultations.

Revision ID: 001_initial
Revises:
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

role_enum = sa.Enum("PATIENT", "DOCTOR", "ADMIN", name="role")
slot_status_enum = sa.Enum("AVAILABLE", "BOOKED", "CANCELLED", "COMPLETED", name="slotstatus")
consultation_status_enum = sa.Enum(
    "SCHEDULED", "IN_PROGRESS", "COMPLETED", "CANCELLED", name="consultationstatus"
)
consultation_type_enum = sa.Enum("VIDEO", "AUDIO", "CHAT", name="consultationtype")


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("email", sa.String(), nullable=False),
        sa.Column("full_name", sa.String(), nullable=True),
        sa.Column("role", role_enum, nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="true"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_users_email"), "users", ["email"], unique=True)

    op.create_table(
        "doctors",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("specialty_primary", sa.String(), nullable=True),
        sa.Column("consultation_fee", sa.Numeric(10, 2), nullable=False, server_default="500.00"),
        sa.Column("is_verified", sa.Boolean(), nullable=False, server_default="false"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_doctors_user_id"), "doctors", ["user_id"], unique=True)

    op.create_table(
        "doctor_availability",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("doctor_id", sa.Integer(), nullable=False),
        sa.Column("day_of_week", sa.Integer(), nullable=False),
        sa.Column("start_time", sa.String(length=5), nullable=False),
        sa.Column("end_time", sa.String(length=5), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="true"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["doctor_id"], ["doctors.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_doctor_availability_doctor_id"), "doctor_availability", ["doctor_id"], unique=False)
    op.create_index(op.f("ix_doctor_availability_day_of_week"), "doctor_availability", ["day_of_week"], unique=False)

    op.create_table(
        "availability_slots",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("doctor_id", sa.Integer(), nullable=False),
        sa.Column("slot_start_time", sa.DateTime(), nullable=False),
        sa.Column("slot_end_time", sa.DateTime(), nullable=False),
        sa.Column("status", slot_status_enum, nullable=False),
        sa.Column("consultation_id", sa.Integer(), nullable=True),
        sa.Column("reserved_by_user_id", sa.Integer(), nullable=True),
        sa.Column("reserved_at", sa.DateTime(), nullable=True),
        sa.Column("expires_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["doctor_id"], ["doctors.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("doctor_id", "slot_start_time", name="uq_slot_doctor_start"),
    )
    op.create_index(op.f("ix_availability_slots_doctor_id"), "availability_slots", ["doctor_id"], unique=False)
    op.create_index(op.f("ix_availability_slots_slot_start_time"), "availability_slots", ["slot_start_time"], unique=False)
    op.create_index(op.f("ix_availability_slots_status"), "availability_slots", ["status"], unique=False)
    op.create_index(op.f("ix_availability_slots_consultation_id"), "availability_slots", ["consultation_id"], unique=False)

    op.create_table(
        "consultations",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("consultation_number", sa.String(length=32), nullable=False),
        sa.Column("patient_id", sa.Integer(), nullable=False),
        sa.Column("doctor_id", sa.Integer(), nullable=False),
        sa.Column("slot_id", sa.Integer(), nullable=True),
        sa.Column("scheduled_start_time", sa.DateTime(), nullable=False),
        sa.Column("scheduled_end_time", sa.DateTime(), nullable=False),
        sa.Column("consultation_type", consultation_type_enum, nullable=False),
        sa.Column("status", consultation_status_enum, nullable=False),
        sa.Column("consultation_fee", sa.Numeric(10, 2), nullable=False),
        sa.Column("chief_complaint", sa.String(), nullable=True),
        sa.Column("symptoms", sa.JSON(), nullable=True),
        sa.Column("diagnosis", sa.String(), nullable=True),
        sa.Column("doctor_notes", sa.String(), nullable=True),
        sa.Column("actual_start_time", sa.DateTime(), nullable=True),
        sa.Column("actual_end_time", sa.DateTime(), nullable=True),
        sa.Column("follow_up_required", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("follow_up_date", sa.Date(), nullable=True),
        sa.Column("cancellation_reason", sa.String(), nullable=True),
        sa.Column("cancelled_by", role_enum, nullable=True),
        sa.Column("cancelled_at", sa.DateTime(), nullable=True),
        sa.Column("reschedule_reason", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["patient_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["doctor_id"], ["doctors.id"]),
        sa.ForeignKeyConstraint(["slot_id"], ["availability_slots.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_consultations_consultation_number"), "consultations", ["consultation_number"], unique=True)
    op.create_index(op.f("ix_consultations_patient_id"), "consultations", ["patient_id"], unique=False)
    op.create_index(op.f("ix_consultations_doctor_id"), "consultations", ["doctor_id"], unique=False)
    op.create_index(op.f("ix_consultations_slot_id"), "consultations", ["slot_id"], unique=False)
    op.create_index(op.f("ix_consultations_scheduled_start_time"), "consultations", ["scheduled_start_time"], unique=False)
    op.create_index(op.f("ix_consultations_status"), "consultations", ["status"], unique=False)

    op.create_table(
        "consultation_sequences",
        sa.Column("day", sa.Date(), nullable=False),
        sa.Column("last_value", sa.Integer(), nullable=False, server_default="0"),
        sa.PrimaryKeyConstraint("day"),
    )


def downgrade() -> None:
    op.drop_table("consultation_sequences")
    op.drop_index(op.f("ix_consultations_status"), table_name="consultations")
    op.drop_index(op.f("ix_consultations_scheduled_start_time"), table_name="consultations")
    op.drop_index(op.f("ix_consultations_slot_id"), table_name="consultations")
    op.drop_index(op.f("ix_consultations_doctor_id"), table_name="consultations")
    op.drop_index(op.f("ix_consultations_patient_id"), table_name="consultations")
    op.drop_index(op.f("ix_consultations_consultation_number"), table_name="consultations")
    op.drop_table("consultations")
    op.drop_index(op.f("ix_availability_slots_consultation_id"), table_name="availability_slots")
    op.drop_index(op.f("ix_availability_slots_status"), table_name="availability_slots")
    op.drop_index(op.f("ix_availability_slots_slot_start_time"), table_name="availability_slots")
    op.drop_index(op.f("ix_availability_slots_doctor_id"), table_name="availability_slots")
    op.drop_table("availability_slots")
    op.drop_index(op.f("ix_doctor_availability_day_of_week"), table_name="doctor_availability")
    op.drop_index(op.f("ix_doctor_availability_doctor_id"), table_name="doctor_availability")
    op.drop_table("doctor_availability")
    op.drop_index(op.f("ix_doctors_user_id"), table_name="doctors")
    op.drop_table("doctors")
    op.drop_index(op.f("ix_users_email"), table_name="users")
    op.drop_table("users")
    for enum in (consultation_type_enum, consultation_status_enum, slot_status_enum, role_enum):
        enum.drop(op.get_bind(), checkfirst=True)
