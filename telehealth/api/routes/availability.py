from datetime import date

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from telehealth.api.deps import get_current_doctor_id, get_session
from telehealth.api.schemas.availability import (
    BlockSlotsRequest,
    BlockSlotsResponse,
    CreateScheduleRequest,
    GenerateSlotsRequest,
    GenerateSlotsResponse,
    UpdateScheduleRequest,
)
from telehealth.core.errors import ValidationError
from telehealth.models.availability import (
    AvailabilitySlotPublic,
    SlotStatus,
    WeeklyAvailabilityCreate,
    WeeklyAvailabilityPublic,
    WeeklyAvailabilityUpdate,
)
from telehealth.models.page import Page
from telehealth.services.schedule_service import (
    create_weekly_window,
    delete_weekly_window,
    list_weekly_windows,
    update_weekly_window,
)
from telehealth.services.slot_service import block_slots, generate_slots, list_doctor_slots

router = APIRouter(prefix="/availability", tags=["availability"])


def _parse_statuses(raw: str | None) -> list[SlotStatus] | None:
    """'AVAILABLE,BOOKED' -> [SlotStatus.AVAILABLE, SlotStatus.BOOKED]."""
    if not raw:
        return None
    try:
        return [SlotStatus(s.strip().upper()) for s in raw.split(",") if s.strip()]
    except ValueError:
        raise ValidationError(f"Invalid slot status filter: {raw}")


@router.post("/schedule", response_model=WeeklyAvailabilityPublic, status_code=status.HTTP_201_CREATED)
async def create_schedule(
    body: CreateScheduleRequest,
    session: AsyncSession = Depends(get_session),
    doctor_id: int = Depends(get_current_doctor_id),
) -> WeeklyAvailabilityPublic:
    window = await create_weekly_window(
        session,
        doctor_id,
        WeeklyAvailabilityCreate(
            day_of_week=body.day_of_week, start_time=body.start_time, end_time=body.end_time
        ),
    )
    await session.commit()
    return WeeklyAvailabilityPublic.model_validate(window)


@router.get("/schedule", response_model=list[WeeklyAvailabilityPublic])
async def get_schedule(
    session: AsyncSession = Depends(get_session),
    doctor_id: int = Depends(get_current_doctor_id),
) -> list[WeeklyAvailabilityPublic]:
    windows = await list_weekly_windows(session, doctor_id)
    return [WeeklyAvailabilityPublic.model_validate(w) for w in windows]


@router.put("/schedule/{schedule_id}", response_model=WeeklyAvailabilityPublic)
async def update_schedule(
    schedule_id: int,
    body: UpdateScheduleRequest,
    session: AsyncSession = Depends(get_session),
    doctor_id: int = Depends(get_current_doctor_id),
) -> WeeklyAvailabilityPublic:
    data = WeeklyAvailabilityUpdate(**body.model_dump(exclude_unset=True))
    window = await update_weekly_window(session, doctor_id, schedule_id, data)
    await session.commit()
    return WeeklyAvailabilityPublic.model_validate(window)


@router.delete("/schedule/{schedule_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_schedule(
    schedule_id: int,
    session: AsyncSession = Depends(get_session),
    doctor_id: int = Depends(get_current_doctor_id),
) -> None:
    await delete_weekly_window(session, doctor_id, schedule_id)
    await session.commit()


@router.post("/slots/generate", response_model=GenerateSlotsResponse, status_code=status.HTTP_201_CREATED)
async def generate(
    body: GenerateSlotsRequest,
    session: AsyncSession = Depends(get_session),
    doctor_id: int = Depends(get_current_doctor_id),
) -> GenerateSlotsResponse:
    result = await generate_slots(
        session, doctor_id, body.start_date, body.end_date, body.slot_duration
    )
    await session.commit()
    return GenerateSlotsResponse(
        created=result.created,
        skipped=result.skipped,
        slots=[AvailabilitySlotPublic.model_validate(s) for s in result.slots],
    )


@router.get("/slots", response_model=Page[AvailabilitySlotPublic])
async def get_slots(
    date_param: date | None = Query(None, alias="date"),
    status_param: str | None = Query(None, alias="status"),
    start_date: date | None = Query(None, alias="startDate"),
    end_date: date | None = Query(None, alias="endDate"),
    page: int = Query(1),
    limit: int = Query(10),
    session: AsyncSession = Depends(get_session),
    doctor_id: int = Depends(get_current_doctor_id),
) -> Page[AvailabilitySlotPublic]:
    """The doctor's own slots, optionally filtered by day or range and comma-separated statuses."""
    result = await list_doctor_slots(
        session,
        doctor_id,
        on_date=date_param,
        start_date=start_date,
        end_date=end_date,
        statuses=_parse_statuses(status_param),
        page=page,
        limit=limit,
    )
    return Page[AvailabilitySlotPublic](
        page=result.page,
        limit=result.limit,
        total=result.total,
        items=[AvailabilitySlotPublic.model_validate(s) for s in result.items],
    )


@router.post("/block", response_model=BlockSlotsResponse)
async def block(
    body: BlockSlotsRequest,
    session: AsyncSession = Depends(get_session),
    doctor_id: int = Depends(get_current_doctor_id),
) -> BlockSlotsResponse:
    result = await block_slots(session, doctor_id, body.slot_ids, body.reason)
    await session.commit()
    return BlockSlotsResponse(
        updated_count=result.updated_count,
        skipped_ids=result.skipped_ids,
        slots=[AvailabilitySlotPublic.model_validate(s) for s in result.blocked],
    )
