import logging
from dataclasses import dataclass, field
from datetime import date, datetime

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from telehealth.core.config import settings
from telehealth.core.db import insert_ignoring_conflicts
from telehealth.core.errors import ValidationError, persistence_guard
from telehealth.models.availability import AvailabilitySlot, SlotStatus, WeeklyAvailability
from telehealth.models.page import Page, resolve_paging
from telehealth.services.time_window import (
    day_of_week,
    end_of_day,
    iter_days,
    now,
    parse_date,
    start_of_day,
    window_slots,
)

logger = logging.getLogger(__name__)


@dataclass
class SlotGenerationResult:
    created: int = 0
    skipped: int = 0
    slots: list[AvailabilitySlot] = field(default_factory=list)


@dataclass
class SlotBlockResult:
    blocked: list[AvailabilitySlot] = field(default_factory=list)
    skipped_ids: list[int] = field(default_factory=list)

    @property
    def updated_count(self) -> int:
        return len(self.blocked)


def _time_range(
    on_date: str | date | None,
    start_date: str | date | None,
    end_date: str | date | None,
) -> tuple[datetime | None, datetime | None]:
    """A single day wins over an explicit range; either end of the range may be open."""
    if on_date:
        day = parse_date(on_date)
        return start_of_day(day), end_of_day(day)
    lower = start_of_day(parse_date(start_date)) if start_date else None
    upper = end_of_day(parse_date(end_date)) if end_date else None
    return lower, upper


def _candidate_slots(
    windows: list[WeeklyAvailability], start: date, end: date, duration_minutes: int
) -> list[tuple[datetime, datetime]]:
    candidates: list[tuple[datetime, datetime]] = []
    for day in iter_days(start, end):
        dow = day_of_week(day)
        for window in windows:
            if window.day_of_week != dow:
                continue
            candidates.extend(window_slots(day, window.start_time, window.end_time, duration_minutes))
    return candidates


@persistence_guard("Failed to generate slots")
async def generate_slots(
    session: AsyncSession,
    doctor_id: int,
    start_date: str | date,
    end_date: str | date,
    slot_duration_minutes: int | None = None,
) -> SlotGenerationResult:
    """Expand the doctor's active weekly windows into AVAILABLE slots for [start_date, end_date].

    Idempotent: slots whose start instant already exists for the doctor are skipped, so
    re-running over an overlapping range creates nothing new. Already generated slots are
    never touched when windows change later.
    """
    if not start_date or not end_date:
        raise ValidationError("startDate and endDate required")
    duration = slot_duration_minutes if slot_duration_minutes is not None else settings.default_slot_duration_minutes
    if duration <= 0:
        raise ValidationError("slotDuration must be a positive number of minutes")
    start = parse_date(start_date)
    end = parse_date(end_date)
    if end < start:
        raise ValidationError("endDate must be on/after startDate")
    if (end - start).days + 1 > settings.max_slot_generation_days:
        raise ValidationError(
            f"Date range cannot exceed {settings.max_slot_generation_days} days"
        )

    result = await session.execute(
        select(WeeklyAvailability).where(
            WeeklyAvailability.doctor_id == doctor_id,
            WeeklyAvailability.is_active == True,  # noqa: E712
        )
    )
    windows = list(result.scalars().all())
    if not windows:
        return SlotGenerationResult()

    result = await session.execute(
        select(AvailabilitySlot.slot_start_time).where(
            AvailabilitySlot.doctor_id == doctor_id,
            AvailabilitySlot.slot_start_time >= start_of_day(start),
            AvailabilitySlot.slot_start_time <= end_of_day(end),
        )
    )
    existing_starts = {row[0] for row in result.all()}

    candidates = _candidate_slots(windows, start, end, duration)
    to_create = [(s, e) for s, e in candidates if s not in existing_starts]
    skipped = len(candidates) - len(to_create)
    if not to_create:
        return SlotGenerationResult(skipped=skipped)

    table = AvailabilitySlot.__table__
    created_ids: list[int] = []
    batch_size = max(1, settings.slot_insert_batch_size)
    for i in range(0, len(to_create), batch_size):
        stamp = now()
        rows = [
            {
                "doctor_id": doctor_id,
                "slot_start_time": slot_start,
                "slot_end_time": slot_end,
                "status": SlotStatus.AVAILABLE,
                "created_at": stamp,
                "updated_at": stamp,
            }
            for slot_start, slot_end in to_create[i : i + batch_size]
        ]
        # A concurrent generator may have inserted some of these already
        stmt = (
            insert_ignoring_conflicts(session, table, ["doctor_id", "slot_start_time"])
            .values(rows)
            .returning(table.c.id)
        )
        inserted = await session.execute(stmt)
        created_ids.extend(row[0] for row in inserted.all())
    skipped += len(to_create) - len(created_ids)

    slots: list[AvailabilitySlot] = []
    for i in range(0, len(created_ids), batch_size):
        chunk = created_ids[i : i + batch_size]
        result = await session.execute(select(AvailabilitySlot).where(AvailabilitySlot.id.in_(chunk)))
        slots.extend(result.scalars().all())
    slots.sort(key=lambda s: s.slot_start_time)

    logger.info(
        "Generated %d slot(s) for doctor %s between %s and %s (%d skipped)",
        len(created_ids), doctor_id, start, end, skipped,
    )
    return SlotGenerationResult(created=len(created_ids), skipped=skipped, slots=slots)


@persistence_guard("Failed to get slots")
async def list_doctor_slots(
    session: AsyncSession,
    doctor_id: int,
    *,
    on_date: str | date | None = None,
    start_date: str | date | None = None,
    end_date: str | date | None = None,
    statuses: list[SlotStatus] | None = None,
    page: int | None = None,
    limit: int | None = None,
) -> Page[AvailabilitySlot]:
    page, limit = resolve_paging(page, limit)
    lower, upper = _time_range(on_date, start_date, end_date)

    filters = [AvailabilitySlot.doctor_id == doctor_id]
    if lower is not None:
        filters.append(AvailabilitySlot.slot_start_time >= lower)
    if upper is not None:
        filters.append(AvailabilitySlot.slot_start_time <= upper)
    if statuses:
        filters.append(AvailabilitySlot.status.in_(statuses))

    total = (
        await session.execute(select(func.count()).select_from(AvailabilitySlot).where(*filters))
    ).scalar_one()
    result = await session.execute(
        select(AvailabilitySlot)
        .where(*filters)
        .order_by(AvailabilitySlot.slot_start_time)
        .offset((page - 1) * limit)
        .limit(limit)
    )
    return Page(page=page, limit=limit, total=total, items=list(result.scalars().all()))


@persistence_guard("Failed to get doctor available slots")
async def list_available_slots(
    session: AsyncSession,
    doctor_id: int,
    *,
    on_date: str | date | None = None,
    start_date: str | date | None = None,
    end_date: str | date | None = None,
    limit: int | None = None,
) -> list[AvailabilitySlot]:
    """AVAILABLE slots of one doctor, soonest first (what patients browse before booking)."""
    lower, upper = _time_range(on_date, start_date, end_date)
    q = select(AvailabilitySlot).where(
        AvailabilitySlot.doctor_id == doctor_id,
        AvailabilitySlot.status == SlotStatus.AVAILABLE,
    )
    if lower is not None:
        q = q.where(AvailabilitySlot.slot_start_time >= lower)
    if upper is not None:
        q = q.where(AvailabilitySlot.slot_start_time <= upper)
    q = q.order_by(AvailabilitySlot.slot_start_time)
    if limit:
        q = q.limit(max(1, limit))
    result = await session.execute(q)
    return list(result.scalars().all())


@persistence_guard("Failed to block slots")
async def block_slots(
    session: AsyncSession, doctor_id: int, slot_ids: list[int], reason: str | None = None
) -> SlotBlockResult:
    """Take AVAILABLE slots out of the bookable pool (AVAILABLE -> CANCELLED).

    Slots of other doctors and slots that are not AVAILABLE (booked, completed, already
    blocked) are skipped and reported, so a booked consultation never loses its slot.
    """
    if not slot_ids:
        raise ValidationError("slotIds are required")

    blocked_ids: set[int] = set()
    for slot_id in dict.fromkeys(slot_ids):
        result = await session.execute(
            update(AvailabilitySlot)
            .where(
                AvailabilitySlot.id == slot_id,
                AvailabilitySlot.doctor_id == doctor_id,
                AvailabilitySlot.status == SlotStatus.AVAILABLE,
            )
            .values(
                status=SlotStatus.CANCELLED,
                reserved_by_user_id=None,
                reserved_at=None,
                expires_at=None,
                updated_at=now(),
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 1:
            blocked_ids.add(slot_id)

    blocked: list[AvailabilitySlot] = []
    if blocked_ids:
        result = await session.execute(
            select(AvailabilitySlot)
            .where(AvailabilitySlot.id.in_(blocked_ids))
            .order_by(AvailabilitySlot.slot_start_time)
            .execution_options(populate_existing=True)
        )
        blocked = list(result.scalars().all())
    skipped = [sid for sid in dict.fromkeys(slot_ids) if sid not in blocked_ids]
    logger.info(
        "Blocked %d slot(s) for doctor %s (skipped=%s, reason=%s)",
        len(blocked), doctor_id, skipped, reason,
    )
    return SlotBlockResult(blocked=blocked, skipped_ids=skipped)
