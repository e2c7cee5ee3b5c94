from datetime import date

from pydantic import BaseModel, Field

from telehealth.models.availability import AvailabilitySlotPublic


class CreateScheduleRequest(BaseModel):
    day_of_week: int = Field(alias="dayOfWeek")
    start_time: str = Field(alias="startTime")  # HH:MM
    end_time: str = Field(alias="endTime")  # HH:MM

    model_config = {"populate_by_name": True}


class UpdateScheduleRequest(BaseModel):
    day_of_week: int | None = Field(default=None, alias="dayOfWeek")
    start_time: str | None = Field(default=None, alias="startTime")
    end_time: str | None = Field(default=None, alias="endTime")
    is_active: bool | None = Field(default=None, alias="isActive")

    model_config = {"populate_by_name": True}


class GenerateSlotsRequest(BaseModel):
    start_date: date = Field(alias="startDate")
    end_date: date = Field(alias="endDate")
    slot_duration: int | None = Field(default=None, alias="slotDuration")  # minutes

    model_config = {"populate_by_name": True}


class GenerateSlotsResponse(BaseModel):
    created: int
    skipped: int
    slots: list[AvailabilitySlotPublic]


class BlockSlotsRequest(BaseModel):
    slot_ids: list[int] = Field(alias="slotIds")
    reason: str | None = None

    model_config = {"populate_by_name": True}


class BlockSlotsResponse(BaseModel):
    updated_count: int
    skipped_ids: list[int]
    slots: list[AvailabilitySlotPublic]


class AvailableSlotsResponse(BaseModel):
    count: int
    slots: list[AvailabilitySlotPublic]
