"""Booking state machine for consultations and the slots they hold.

Slot:          AVAILABLE -> BOOKED -> COMPLETED
               BOOKED -> AVAILABLE            (cancel, reschedule away)
               AVAILABLE -> CANCELLED         (blocked, see slot_service.block_slots)
Consultation:  SCHEDULED -> IN_PROGRESS -> COMPLETED
               SCHEDULED | IN_PROGRESS -> CANCELLED
               SCHEDULED -> SCHEDULED         (reschedule onto another slot)

Every transition is a conditional UPDATE guarded on the current status, executed in
the caller's transaction. The availability check that matters is the WHERE clause of
that UPDATE, not the earlier read: an affected-row count of zero means another request
got there first, and the operation fails instead of double-booking.
"""
import logging
from datetime import date, datetime

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from telehealth.core.config import settings
from telehealth.core.db import insert_ignoring_conflicts
from telehealth.core.errors import (
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
    SlotUnavailableError,
    ValidationError,
    persistence_guard,
)
from telehealth.models.availability import AvailabilitySlot, SlotStatus
from telehealth.models.consultation import (
    TERMINAL_STATUSES,
    Consultation,
    ConsultationSequence,
    ConsultationStatus,
    ConsultationType,
)
from telehealth.models.doctor import Doctor
from telehealth.models.page import Page, resolve_paging
from telehealth.models.user import Role, User
from telehealth.services.identity import Actor, authorize_consultation, get_doctor_id
from telehealth.services.time_window import now

logger = logging.getLogger(__name__)

_CANCELLABLE = (ConsultationStatus.SCHEDULED, ConsultationStatus.IN_PROGRESS)
_COMPLETABLE = (ConsultationStatus.SCHEDULED, ConsultationStatus.IN_PROGRESS)


async def next_consultation_number(session: AsyncSession, today: date | None = None) -> str:
    """PREFIX + YYYYMMDD + 3-digit daily sequence, drawn from an atomic per-day counter."""
    today = today or now().date()
    table = ConsultationSequence.__table__
    await session.execute(
        insert_ignoring_conflicts(session, table, ["day"]).values(day=today, last_value=0)
    )
    result = await session.execute(
        update(table)
        .where(table.c.day == today)
        .values(last_value=table.c.last_value + 1)
        .returning(table.c.last_value)
    )
    seq = result.scalar_one()
    return f"{settings.consultation_number_prefix}{today:%Y%m%d}{seq:03d}"


async def _get_consultation(session: AsyncSession, consultation_id: int) -> Consultation:
    consultation = await session.get(Consultation, consultation_id)
    if not consultation:
        raise NotFoundError("Consultation not found")
    return consultation


async def _get_doctor_consultation(
    session: AsyncSession, consultation_id: int, doctor_user_id: int
) -> Consultation:
    doctor_id = await get_doctor_id(session, doctor_user_id)
    consultation = await _get_consultation(session, consultation_id)
    if consultation.doctor_id != doctor_id:
        raise ForbiddenError("Forbidden")
    return consultation


async def _claim_slot(session: AsyncSession, slot_id: int, consultation_id: int | None) -> None:
    """AVAILABLE -> BOOKED, or SlotUnavailableError if the slot is no longer AVAILABLE."""
    result = await session.execute(
        update(AvailabilitySlot)
        .where(AvailabilitySlot.id == slot_id, AvailabilitySlot.status == SlotStatus.AVAILABLE)
        .values(
            status=SlotStatus.BOOKED,
            consultation_id=consultation_id,
            reserved_by_user_id=None,
            reserved_at=None,
            expires_at=None,
            updated_at=now(),
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise SlotUnavailableError()


async def _link_slot(session: AsyncSession, slot_id: int, consultation_id: int) -> None:
    await session.execute(
        update(AvailabilitySlot)
        .where(AvailabilitySlot.id == slot_id, AvailabilitySlot.status == SlotStatus.BOOKED)
        .values(consultation_id=consultation_id)
        .execution_options(synchronize_session=False)
    )


async def _release_slot(session: AsyncSession, slot_id: int, consultation_id: int) -> None:
    """BOOKED -> AVAILABLE, only while the slot is still held by this consultation."""
    await session.execute(
        update(AvailabilitySlot)
        .where(
            AvailabilitySlot.id == slot_id,
            AvailabilitySlot.consultation_id == consultation_id,
            AvailabilitySlot.status == SlotStatus.BOOKED,
        )
        .values(
            status=SlotStatus.AVAILABLE,
            consultation_id=None,
            reserved_by_user_id=None,
            reserved_at=None,
            expires_at=None,
            updated_at=now(),
        )
        .execution_options(synchronize_session=False)
    )


async def _transition(
    session: AsyncSession,
    consultation: Consultation,
    allowed_from: tuple[ConsultationStatus, ...],
    error_message: str,
    *guards,
    **values,
) -> Consultation:
    """Guarded status change on the consultation row; refreshes the instance.

    `guards` are extra WHERE conditions the row must still satisfy, such as the slot
    linkage the caller read.
    """
    result = await session.execute(
        update(Consultation)
        .where(Consultation.id == consultation.id, Consultation.status.in_(allowed_from), *guards)
        .values(updated_at=now(), **values)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise InvalidStateError(error_message)
    await session.refresh(consultation)
    return consultation


@persistence_guard("Failed to book consultation")
async def book_consultation(
    session: AsyncSession,
    patient_id: int,
    slot_id: int,
    consultation_type: ConsultationType | None = None,
    chief_complaint: str | None = None,
    symptoms: list[str] | None = None,
) -> Consultation:
    if not slot_id:
        raise ValidationError("slot id is required")
    slot = await session.get(AvailabilitySlot, slot_id)
    if not slot:
        raise NotFoundError("Slot not found")
    if slot.status != SlotStatus.AVAILABLE:
        raise SlotUnavailableError()
    if slot.slot_start_time <= now():
        raise InvalidStateError("Cannot book a past slot")
    patient = await session.get(User, patient_id)
    if not patient:
        raise NotFoundError("Patient not found")
    doctor = await session.get(Doctor, slot.doctor_id)
    if not doctor:
        raise NotFoundError("Doctor not found")

    await _claim_slot(session, slot.id, consultation_id=None)

    consultation = Consultation(
        consultation_number=await next_consultation_number(session),
        patient_id=patient_id,
        doctor_id=slot.doctor_id,
        slot_id=slot.id,
        scheduled_start_time=slot.slot_start_time,
        scheduled_end_time=slot.slot_end_time,
        consultation_type=consultation_type or ConsultationType.VIDEO,
        status=ConsultationStatus.SCHEDULED,
        consultation_fee=doctor.consultation_fee,
        chief_complaint=chief_complaint,
        symptoms=symptoms,
    )
    session.add(consultation)
    await session.flush()
    await _link_slot(session, slot.id, consultation.id)
    await session.refresh(consultation)
    await session.refresh(slot)
    logger.info(
        "Consultation %s (%s) booked on slot %s by patient %s",
        consultation.id, consultation.consultation_number, slot.id, patient_id,
    )
    return consultation


@persistence_guard("Failed to cancel consultation")
async def cancel_consultation(
    session: AsyncSession, consultation_id: int, actor: Actor, reason: str
) -> Consultation:
    consultation = await _get_consultation(session, consultation_id)
    await authorize_consultation(session, actor, consultation)
    if consultation.status in TERMINAL_STATUSES:
        raise InvalidStateError("Consultation cannot be cancelled")

    await _transition(
        session,
        consultation,
        _CANCELLABLE,
        "Consultation cannot be cancelled",
        status=ConsultationStatus.CANCELLED,
        cancellation_reason=reason,
        cancelled_by=actor.role,
        cancelled_at=now(),
    )
    if consultation.slot_id:
        await _release_slot(session, consultation.slot_id, consultation.id)
    logger.info("Consultation %s cancelled by %s %s", consultation.id, actor.role.value, actor.user_id)
    return consultation


@persistence_guard("Failed to reschedule consultation")
async def reschedule_consultation(
    session: AsyncSession, consultation_id: int, actor: Actor, new_slot_id: int, reason: str
) -> Consultation:
    if not new_slot_id:
        raise ValidationError("New slot Id is required")
    consultation = await _get_consultation(session, consultation_id)
    await authorize_consultation(session, actor, consultation)
    if consultation.status == ConsultationStatus.COMPLETED:
        raise InvalidStateError("Completed consultations cannot be rescheduled")
    if consultation.status != ConsultationStatus.SCHEDULED:
        raise InvalidStateError("Only scheduled consultations can be rescheduled")

    new_slot = await session.get(AvailabilitySlot, new_slot_id)
    if not new_slot:
        raise NotFoundError("New slot not found")
    if new_slot.status != SlotStatus.AVAILABLE:
        raise SlotUnavailableError("New slot is not available")
    if new_slot.doctor_id != consultation.doctor_id:
        raise ValidationError("Slot must belong to the same doctor")
    if new_slot.slot_start_time <= now():
        raise InvalidStateError("Cannot reschedule to a past slot")

    old_slot_id = consultation.slot_id
    # A concurrent reschedule relinks the row, so the linkage read above must still hold
    same_linkage = (
        Consultation.slot_id == old_slot_id if old_slot_id else Consultation.slot_id.is_(None)
    )
    await _claim_slot(session, new_slot.id, consultation_id=consultation.id)
    if old_slot_id:
        await _release_slot(session, old_slot_id, consultation.id)
    await _transition(
        session,
        consultation,
        (ConsultationStatus.SCHEDULED,),
        "Consultation was changed by another request",
        same_linkage,
        slot_id=new_slot.id,
        scheduled_start_time=new_slot.slot_start_time,
        scheduled_end_time=new_slot.slot_end_time,
        status=ConsultationStatus.SCHEDULED,
        reschedule_reason=reason,
    )
    await session.refresh(new_slot)
    logger.info(
        "Consultation %s rescheduled from slot %s to slot %s", consultation.id, old_slot_id, new_slot.id
    )
    return consultation


@persistence_guard("Failed to start consultation")
async def start_consultation(
    session: AsyncSession, consultation_id: int, doctor_user_id: int
) -> Consultation:
    consultation = await _get_doctor_consultation(session, consultation_id, doctor_user_id)
    if consultation.status != ConsultationStatus.SCHEDULED:
        raise InvalidStateError("Only scheduled consultations can be started")
    await _transition(
        session,
        consultation,
        (ConsultationStatus.SCHEDULED,),
        "Only scheduled consultations can be started",
        status=ConsultationStatus.IN_PROGRESS,
        actual_start_time=now(),
    )
    logger.info("Consultation %s started", consultation.id)
    return consultation


@persistence_guard("Failed to complete consultation")
async def complete_consultation(
    session: AsyncSession,
    consultation_id: int,
    doctor_user_id: int,
    diagnosis: str | None = None,
    doctor_notes: str | None = None,
    follow_up_required: bool | None = None,
    follow_up_date: date | datetime | None = None,
) -> Consultation:
    consultation = await _get_doctor_consultation(session, consultation_id, doctor_user_id)
    if consultation.status not in _COMPLETABLE:
        raise InvalidStateError("Consultation cannot be completed")
    if isinstance(follow_up_date, datetime):
        follow_up_date = follow_up_date.date()

    await _transition(
        session,
        consultation,
        _COMPLETABLE,
        "Consultation cannot be completed",
        status=ConsultationStatus.COMPLETED,
        actual_end_time=now(),
        diagnosis=diagnosis,
        doctor_notes=doctor_notes,
        follow_up_required=bool(follow_up_required),
        follow_up_date=follow_up_date,
    )
    if consultation.slot_id:
        # Terminal: a slot a consultation completed against is never freed again
        await session.execute(
            update(AvailabilitySlot)
            .where(AvailabilitySlot.id == consultation.slot_id)
            .values(status=SlotStatus.COMPLETED, updated_at=now())
            .execution_options(synchronize_session=False)
        )
    logger.info("Consultation %s completed", consultation.id)
    return consultation


@persistence_guard("Failed to update consultation notes")
async def update_consultation_notes(
    session: AsyncSession, consultation_id: int, doctor_user_id: int, doctor_notes: str | None
) -> Consultation:
    consultation = await _get_doctor_consultation(session, consultation_id, doctor_user_id)
    consultation.doctor_notes = doctor_notes
    consultation.updated_at = now()
    session.add(consultation)
    await session.flush()
    await session.refresh(consultation)
    return consultation


@persistence_guard("Failed to fetch consultation")
async def get_consultation(session: AsyncSession, consultation_id: int, actor: Actor) -> Consultation:
    consultation = await _get_consultation(session, consultation_id)
    await authorize_consultation(session, actor, consultation)
    return consultation


@persistence_guard("Failed to fetch consultations")
async def list_my_consultations(
    session: AsyncSession,
    actor: Actor,
    status: ConsultationStatus | None = None,
    page: int | None = None,
    limit: int | None = None,
) -> Page[Consultation]:
    page, limit = resolve_paging(page, limit)
    filters = []
    if actor.role is Role.PATIENT:
        filters.append(Consultation.patient_id == actor.user_id)
    elif actor.role is Role.DOCTOR:
        filters.append(Consultation.doctor_id == await get_doctor_id(session, actor.user_id))
    elif actor.role is not Role.ADMIN:
        raise ForbiddenError("Forbidden")
    if status:
        filters.append(Consultation.status == status)

    total = (
        await session.execute(select(func.count()).select_from(Consultation).where(*filters))
    ).scalar_one()
    result = await session.execute(
        select(Consultation)
        .where(*filters)
        .order_by(Consultation.scheduled_start_time.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    return Page(page=page, limit=limit, total=total, items=list(result.scalars().all()))
