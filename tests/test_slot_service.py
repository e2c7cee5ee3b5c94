from datetime import datetime, time, timedelta

import pytest
from sqlalchemy import func, select

from telehealth.core.config import settings
from telehealth.core.errors import ValidationError
from telehealth.models.availability import (
    AvailabilitySlot,
    SlotStatus,
    WeeklyAvailabilityCreate,
    WeeklyAvailabilityUpdate,
)
from telehealth.services.schedule_service import create_weekly_window, update_weekly_window
from telehealth.services.slot_service import (
    block_slots,
    generate_slots,
    list_available_slots,
    list_doctor_slots,
)

MONDAY = 1


async def monday_window(session, doctor, start="09:00", end="17:00"):
    return await create_weekly_window(
        session, doctor.id, WeeklyAvailabilityCreate(day_of_week=MONDAY, start_time=start, end_time=end)
    )


async def count_slots(session, doctor_id) -> int:
    result = await session.execute(
        select(func.count()).select_from(AvailabilitySlot).where(AvailabilitySlot.doctor_id == doctor_id)
    )
    return result.scalar_one()


async def test_one_week_of_a_monday_window(session, doctor, next_monday):
    await monday_window(session, doctor)
    # Saturday before through Sunday after: exactly one Monday in range
    result = await generate_slots(
        session, doctor.id, next_monday - timedelta(days=2), next_monday + timedelta(days=6), 30
    )

    assert result.created == 16
    assert result.skipped == 0
    assert {s.slot_start_time.date() for s in result.slots} == {next_monday}
    assert result.slots[0].slot_start_time == datetime.combine(next_monday, time(9, 0))
    assert result.slots[-1].slot_end_time == datetime.combine(next_monday, time(17, 0))
    assert all(s.status == SlotStatus.AVAILABLE for s in result.slots)
    assert all(s.slot_end_time - s.slot_start_time == timedelta(minutes=30) for s in result.slots)


async def test_regeneration_is_idempotent(session, doctor, next_monday):
    await monday_window(session, doctor)
    await generate_slots(session, doctor.id, next_monday, next_monday + timedelta(days=6))

    again = await generate_slots(session, doctor.id, next_monday, next_monday + timedelta(days=6))
    assert again.created == 0
    assert again.skipped == 16

    # Overlapping range only adds the Monday that was not covered yet
    wider = await generate_slots(session, doctor.id, next_monday, next_monday + timedelta(days=7))
    assert wider.created == 16
    assert await count_slots(session, doctor.id) == 32


async def test_default_duration_from_settings(session, doctor, next_monday):
    await monday_window(session, doctor, "09:00", "10:00")
    result = await generate_slots(session, doctor.id, next_monday, next_monday)
    assert result.created == 2


async def test_partial_trailing_slot_is_dropped(session, doctor, next_monday):
    await monday_window(session, doctor, "09:00", "10:45")
    result = await generate_slots(session, doctor.id, next_monday, next_monday, 30)
    assert result.created == 3


async def test_multiple_windows_on_the_same_day(session, doctor, next_monday):
    await monday_window(session, doctor, "09:00", "11:00")
    await monday_window(session, doctor, "14:00", "16:00")
    result = await generate_slots(session, doctor.id, next_monday, next_monday, 60)
    assert [s.slot_start_time.hour for s in result.slots] == [9, 10, 14, 15]


async def test_batches_larger_than_one_chunk(session, doctor, next_monday, monkeypatch):
    monkeypatch.setattr(settings, "slot_insert_batch_size", 5)
    await monday_window(session, doctor)
    result = await generate_slots(session, doctor.id, next_monday, next_monday, 30)
    assert result.created == 16
    assert len(result.slots) == 16


async def test_no_matching_weekday_creates_nothing(session, doctor, next_monday):
    await monday_window(session, doctor)
    tuesday = next_monday + timedelta(days=1)
    result = await generate_slots(session, doctor.id, tuesday, tuesday + timedelta(days=5))
    assert result.created == 0
    assert result.slots == []


async def test_no_active_windows_creates_nothing(session, doctor, next_monday):
    window = await monday_window(session, doctor)
    await update_weekly_window(session, doctor.id, window.id, WeeklyAvailabilityUpdate(is_active=False))
    result = await generate_slots(session, doctor.id, next_monday, next_monday)
    assert result.created == 0


async def test_window_changes_do_not_touch_generated_slots(session, doctor, next_monday):
    window = await monday_window(session, doctor)
    await generate_slots(session, doctor.id, next_monday, next_monday)
    await update_weekly_window(
        session, doctor.id, window.id, WeeklyAvailabilityUpdate(start_time="12:00", end_time="13:00")
    )
    assert await count_slots(session, doctor.id) == 16


@pytest.mark.parametrize(
    "offset_end,duration",
    [(-1, 30), (0, 0), (0, -15), (200, 30)],
)
async def test_generate_validation(session, doctor, next_monday, offset_end, duration):
    await monday_window(session, doctor)
    with pytest.raises(ValidationError):
        await generate_slots(
            session, doctor.id, next_monday, next_monday + timedelta(days=offset_end), duration
        )


async def test_generate_rejects_unparseable_dates(session, doctor):
    with pytest.raises(ValidationError):
        await generate_slots(session, doctor.id, "someday", "2030-01-01")


async def test_list_doctor_slots_filters_and_pages(session, doctor, next_monday):
    await monday_window(session, doctor)
    result = await generate_slots(session, doctor.id, next_monday, next_monday + timedelta(days=7))
    first_id = result.slots[0].id
    await block_slots(session, doctor.id, [first_id])

    page = await list_doctor_slots(session, doctor.id, on_date=next_monday, page=2, limit=5)
    assert (page.total, page.page, page.limit, len(page.items)) == (16, 2, 5, 5)
    assert page.items[0].slot_start_time == datetime.combine(next_monday, time(11, 30))

    cancelled = await list_doctor_slots(session, doctor.id, statuses=[SlotStatus.CANCELLED])
    assert [s.id for s in cancelled.items] == [first_id]

    clamped = await list_doctor_slots(session, doctor.id, page=0, limit=500)
    assert (clamped.page, clamped.limit, clamped.total) == (1, 50, 32)


async def test_list_available_slots_skips_unbookable(session, doctor, other_doctor, next_monday, make_slot):
    free = await make_slot(doctor, time(9, 0))
    await make_slot(doctor, time(9, 30), status=SlotStatus.BOOKED)
    later = await make_slot(doctor, time(10, 0))
    await make_slot(other_doctor, time(9, 0))

    slots = await list_available_slots(session, doctor.id, on_date=next_monday)
    assert [s.id for s in slots] == [free.id, later.id]
    assert len(await list_available_slots(session, doctor.id, limit=1)) == 1


async def test_block_slots_only_takes_available_owned_slots(session, doctor, other_doctor, make_slot):
    free = await make_slot(doctor, time(9, 0))
    booked = await make_slot(doctor, time(9, 30), status=SlotStatus.BOOKED)
    foreign = await make_slot(other_doctor, time(9, 0))

    result = await block_slots(session, doctor.id, [free.id, booked.id, foreign.id, 9999], "Conference")

    assert result.updated_count == 1
    assert result.blocked[0].status == SlotStatus.CANCELLED
    assert result.skipped_ids == [booked.id, foreign.id, 9999]
    await session.refresh(booked)
    assert booked.status == SlotStatus.BOOKED


async def test_block_requires_ids(session, doctor):
    with pytest.raises(ValidationError):
        await block_slots(session, doctor.id, [])
