from datetime import date

from pydantic import BaseModel, Field

from telehealth.models.consultation import ConsultationType


class BookConsultationRequest(BaseModel):
    slot_id: int = Field(alias="slotId")
    consultation_type: ConsultationType | None = Field(default=None, alias="consultationType")
    chief_complaint: str | None = Field(default=None, alias="chiefComplaint")
    symptoms: list[str] | None = None

    model_config = {"populate_by_name": True}


class CancelConsultationRequest(BaseModel):
    reason: str = Field(min_length=1)


class RescheduleConsultationRequest(BaseModel):
    new_slot_id: int = Field(alias="newSlotId")
    reason: str = Field(min_length=1)

    model_config = {"populate_by_name": True}


class CompleteConsultationRequest(BaseModel):
    diagnosis: str | None = None
    doctor_notes: str | None = Field(default=None, alias="doctorNotes")
    follow_up_required: bool | None = Field(default=None, alias="followUpRequired")
    follow_up_date: date | None = Field(default=None, alias="followUpDate")

    model_config = {"populate_by_name": True}


class UpdateNotesRequest(BaseModel):
    doctor_notes: str | None = Field(default=None, alias="doctorNotes")

    model_config = {"populate_by_name": True}
