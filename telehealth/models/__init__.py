from telehealth.models.user import Role, User, UserPublic
from telehealth.models.doctor import Doctor
from telehealth.models.availability import (
    AvailabilitySlot,
    AvailabilitySlotPublic,
    SlotStatus,
    WeeklyAvailability,
    WeeklyAvailabilityCreate,
    WeeklyAvailabilityPublic,
    WeeklyAvailabilityUpdate,
)
from telehealth.models.consultation import (
    Consultation,
    ConsultationPublic,
    ConsultationSequence,
    ConsultationStatus,
    ConsultationType,
)
from telehealth.models.page import Page

__all__ = [
    "Role",
    "User",
    "UserPublic",
    "Doctor",
    "AvailabilitySlot",
    "AvailabilitySlotPublic",
    "SlotStatus",
    "WeeklyAvailability",
    "WeeklyAvailabilityCreate",
    "WeeklyAvailabilityPublic",
    "WeeklyAvailabilityUpdate",
    "Consultation",
    "ConsultationPublic",
    "ConsultationSequence",
    "ConsultationStatus",
    "ConsultationType",
    "Page",
]
