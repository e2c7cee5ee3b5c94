from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from telehealth.api.deps import get_session
from telehealth.api.schemas.availability import AvailableSlotsResponse
from telehealth.models.availability import AvailabilitySlotPublic
from telehealth.services.slot_service import list_available_slots

router = APIRouter(prefix="/slots", tags=["slots"])


@router.get("/doctor/{doctor_id}", response_model=AvailableSlotsResponse)
async def doctor_available_slots(
    doctor_id: int,
    date_param: date | None = Query(None, alias="date"),
    start_date: date | None = Query(None, alias="startDate"),
    end_date: date | None = Query(None, alias="endDate"),
    limit: int | None = Query(None, ge=1),
    session: AsyncSession = Depends(get_session),
) -> AvailableSlotsResponse:
    """Bookable slots of a doctor, soonest first. Public: patients browse before booking."""
    slots = await list_available_slots(
        session,
        doctor_id,
        on_date=date_param,
        start_date=start_date,
        end_date=end_date,
        limit=limit,
    )
    return AvailableSlotsResponse(
        count=len(slots),
        slots=[AvailabilitySlotPublic.model_validate(s) for s in slots],
    )
