from datetime import date, datetime
from decimal import Decimal
from enum import Enum

from sqlalchemy import JSON, Column, DateTime
from sqlmodel import Field, SQLModel

from telehealth.models.user import Role


def _local_now() -> datetime:
    return datetime.now()


class ConsultationStatus(str, Enum):
    SCHEDULED = "SCHEDULED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class ConsultationType(str, Enum):
    VIDEO = "VIDEO"
    AUDIO = "AUDIO"
    CHAT = "CHAT"


TERMINAL_STATUSES = (ConsultationStatus.COMPLETED, ConsultationStatus.CANCELLED)


class Consultation(SQLModel, table=True):
    __tablename__ = "consultations"
    id: int | None = Field(default=None, primary_key=True)
    consultation_number: str = Field(unique=True, index=True, max_length=32)
    patient_id: int = Field(foreign_key="users.id", index=True)
    doctor_id: int = Field(foreign_key="doctors.id", index=True)
    slot_id: int | None = Field(default=None, foreign_key="availability_slots.id", index=True)
    # Snapshot of the slot at booking/reschedule time
    scheduled_start_time: datetime = Field(index=True, sa_type=DateTime())
    scheduled_end_time: datetime = Field(sa_type=DateTime())
    consultation_type: ConsultationType = Field(default=ConsultationType.VIDEO)
    status: ConsultationStatus = Field(default=ConsultationStatus.SCHEDULED, index=True)
    # Price snapshot copied from the doctor
    consultation_fee: Decimal = Field(max_digits=10, decimal_places=2)
    chief_complaint: str | None = None
    symptoms: list[str] | None = Field(default=None, sa_column=Column(JSON))
    diagnosis: str | None = None
    doctor_notes: str | None = None
    actual_start_time: datetime | None = Field(default=None, sa_type=DateTime())
    actual_end_time: datetime | None = Field(default=None, sa_type=DateTime())
    follow_up_required: bool = False
    follow_up_date: date | None = None
    cancellation_reason: str | None = None
    cancelled_by: Role | None = None
    cancelled_at: datetime | None = Field(default=None, sa_type=DateTime())
    reschedule_reason: str | None = None
    created_at: datetime = Field(default_factory=_local_now, sa_type=DateTime())
    updated_at: datetime = Field(default_factory=_local_now, sa_type=DateTime())


class ConsultationSequence(SQLModel, table=True):
    """Day-scoped counter backing consultation numbers."""

    __tablename__ = "consultation_sequences"
    day: date = Field(primary_key=True)
    last_value: int = 0


class ConsultationPublic(SQLModel):
    id: int
    consultation_number: str
    patient_id: int
    doctor_id: int
    slot_id: int | None = None
    scheduled_start_time: datetime
    scheduled_end_time: datetime
    consultation_type: ConsultationType
    status: ConsultationStatus
    consultation_fee: Decimal
    chief_complaint: str | None = None
    symptoms: list[str] | None = None
    diagnosis: str | None = None
    doctor_notes: str | None = None
    actual_start_time: datetime | None = None
    actual_end_time: datetime | None = None
    follow_up_required: bool = False
    follow_up_date: date | None = None
    cancellation_reason: str | None = None
    cancelled_by: Role | None = None
    cancelled_at: datetime | None = None
    created_at: datetime
