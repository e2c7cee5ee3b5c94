from datetime import datetime
from enum import Enum

from sqlalchemy import DateTime, UniqueConstraint
from sqlmodel import Field, SQLModel


def _local_now() -> datetime:
    """Naive server-local time; scheduling is not timezone aware."""
    return datetime.now()


class SlotStatus(str, Enum):
    AVAILABLE = "AVAILABLE"
    BOOKED = "BOOKED"
    CANCELLED = "CANCELLED"
    COMPLETED = "COMPLETED"


class WeeklyAvailability(SQLModel, table=True):
    """Recurring bookable window: day_of_week 0=Sunday..6=Saturday, times as HH:MM."""

    __tablename__ = "doctor_availability"
    id: int | None = Field(default=None, primary_key=True)
    doctor_id: int = Field(foreign_key="doctors.id", index=True)
    day_of_week: int = Field(index=True)
    start_time: str = Field(max_length=5)
    end_time: str = Field(max_length=5)
    is_active: bool = True
    created_at: datetime = Field(default_factory=_local_now, sa_type=DateTime())
    updated_at: datetime = Field(default_factory=_local_now, sa_type=DateTime())


class WeeklyAvailabilityCreate(SQLModel):
    day_of_week: int
    start_time: str
    end_time: str
    is_active: bool = True


class WeeklyAvailabilityUpdate(SQLModel):
    day_of_week: int | None = None
    start_time: str | None = None
    end_time: str | None = None
    is_active: bool | None = None


class WeeklyAvailabilityPublic(SQLModel):
    id: int
    doctor_id: int
    day_of_week: int
    start_time: str
    end_time: str
    is_active: bool


class AvailabilitySlot(SQLModel, table=True):
    __tablename__ = "availability_slots"
    __table_args__ = (
        UniqueConstraint("doctor_id", "slot_start_time", name="uq_slot_doctor_start"),
    )
    id: int | None = Field(default=None, primary_key=True)
    doctor_id: int = Field(foreign_key="doctors.id", index=True)
    slot_start_time: datetime = Field(index=True, sa_type=DateTime())
    slot_end_time: datetime = Field(sa_type=DateTime())
    status: SlotStatus = Field(default=SlotStatus.AVAILABLE, index=True)
    # Back-reference only: consultations.slot_id carries the foreign key
    consultation_id: int | None = Field(default=None, index=True)
    # Soft-hold fields
    reserved_by_user_id: int | None = None
    reserved_at: datetime | None = Field(default=None, sa_type=DateTime())
    expires_at: datetime | None = Field(default=None, sa_type=DateTime())
    created_at: datetime = Field(default_factory=_local_now, sa_type=DateTime())
    updated_at: datetime = Field(default_factory=_local_now, sa_type=DateTime())


class AvailabilitySlotPublic(SQLModel):
    id: int
    doctor_id: int
    slot_start_time: datetime
    slot_end_time: datetime
    status: SlotStatus
    consultation_id: int | None = None
