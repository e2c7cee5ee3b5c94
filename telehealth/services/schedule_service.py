import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from telehealth.core.errors import ConflictError, NotFoundError, ValidationError, persistence_guard
from telehealth.models.availability import (
    WeeklyAvailability,
    WeeklyAvailabilityCreate,
    WeeklyAvailabilityUpdate,
)
from telehealth.services.time_window import normalize_time, now, parse_time_to_minutes

logger = logging.getLogger(__name__)


def _check_day_of_week(day_of_week: int) -> None:
    if day_of_week < 0 or day_of_week > 6:
        raise ValidationError("dayOfWeek must be between 0 (Sun) and 6 (Sat)")


def _check_ordering(start_time: str, end_time: str) -> None:
    if parse_time_to_minutes(end_time) <= parse_time_to_minutes(start_time):
        raise ValidationError("endTime must be greater than startTime")


async def _find_overlap(
    session: AsyncSession,
    doctor_id: int,
    day_of_week: int,
    start_time: str,
    end_time: str,
    exclude_id: int | None = None,
) -> WeeklyAvailability | None:
    # Times are stored zero-padded, so string comparison orders like minutes
    q = select(WeeklyAvailability).where(
        WeeklyAvailability.doctor_id == doctor_id,
        WeeklyAvailability.day_of_week == day_of_week,
        WeeklyAvailability.is_active == True,  # noqa: E712
        WeeklyAvailability.start_time < end_time,
        WeeklyAvailability.end_time > start_time,
    )
    if exclude_id is not None:
        q = q.where(WeeklyAvailability.id != exclude_id)
    result = await session.execute(q.limit(1))
    return result.scalar_one_or_none()


async def _get_owned_window(
    session: AsyncSession, doctor_id: int, window_id: int
) -> WeeklyAvailability:
    window = await session.get(WeeklyAvailability, window_id)
    if not window or window.doctor_id != doctor_id:
        raise NotFoundError("Schedule not found for this doctor")
    return window


@persistence_guard("Failed to create weekly schedule")
async def create_weekly_window(
    session: AsyncSession, doctor_id: int, data: WeeklyAvailabilityCreate
) -> WeeklyAvailability:
    _check_day_of_week(data.day_of_week)
    start_time = normalize_time(data.start_time)
    end_time = normalize_time(data.end_time)
    _check_ordering(start_time, end_time)

    if data.is_active and await _find_overlap(
        session, doctor_id, data.day_of_week, start_time, end_time
    ):
        raise ConflictError("Overlapping schedule exists for the given day")

    window = WeeklyAvailability(
        doctor_id=doctor_id,
        day_of_week=data.day_of_week,
        start_time=start_time,
        end_time=end_time,
        is_active=data.is_active,
    )
    session.add(window)
    await session.flush()
    await session.refresh(window)
    logger.info(
        "Weekly window %s created for doctor %s: day=%s %s-%s",
        window.id, doctor_id, window.day_of_week, start_time, end_time,
    )
    return window


@persistence_guard("Failed to fetch weekly schedule")
async def list_weekly_windows(session: AsyncSession, doctor_id: int) -> list[WeeklyAvailability]:
    result = await session.execute(
        select(WeeklyAvailability)
        .where(WeeklyAvailability.doctor_id == doctor_id)
        .order_by(WeeklyAvailability.day_of_week, WeeklyAvailability.start_time)
    )
    return list(result.scalars().all())


@persistence_guard("Failed to update weekly schedule")
async def update_weekly_window(
    session: AsyncSession, doctor_id: int, window_id: int, data: WeeklyAvailabilityUpdate
) -> WeeklyAvailability:
    """Apply only the provided fields; ordering and overlap are checked on the resulting window."""
    window = await _get_owned_window(session, doctor_id, window_id)
    changes = data.model_dump(exclude_unset=True, exclude_none=True)

    if "day_of_week" in changes:
        _check_day_of_week(changes["day_of_week"])
    if "start_time" in changes:
        changes["start_time"] = normalize_time(changes["start_time"])
    if "end_time" in changes:
        changes["end_time"] = normalize_time(changes["end_time"])

    day_of_week = changes.get("day_of_week", window.day_of_week)
    start_time = changes.get("start_time", window.start_time)
    end_time = changes.get("end_time", window.end_time)
    is_active = changes.get("is_active", window.is_active)
    _check_ordering(start_time, end_time)

    if is_active and await _find_overlap(
        session, doctor_id, day_of_week, start_time, end_time, exclude_id=window.id
    ):
        raise ConflictError("Overlapping schedule exists for the given day")

    for field, value in changes.items():
        setattr(window, field, value)
    window.updated_at = now()
    session.add(window)
    await session.flush()
    await session.refresh(window)
    return window


@persistence_guard("Failed to delete weekly schedule")
async def delete_weekly_window(session: AsyncSession, doctor_id: int, window_id: int) -> None:
    window = await _get_owned_window(session, doctor_id, window_id)
    await session.delete(window)
    await session.flush()
    logger.info("Weekly window %s deleted for doctor %s", window_id, doctor_id)
