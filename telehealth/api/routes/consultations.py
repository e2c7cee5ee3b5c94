from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from telehealth.api.deps import get_session, require_roles
from telehealth.api.schemas.consultation import (
    BookConsultationRequest,
    CancelConsultationRequest,
    CompleteConsultationRequest,
    RescheduleConsultationRequest,
    UpdateNotesRequest,
)
from telehealth.models.consultation import ConsultationPublic, ConsultationStatus
from telehealth.models.page import Page
from telehealth.models.user import Role
from telehealth.services.consultation_service import (
    book_consultation,
    cancel_consultation,
    complete_consultation,
    get_consultation,
    list_my_consultations,
    reschedule_consultation,
    start_consultation,
    update_consultation_notes,
)
from telehealth.services.identity import Actor

router = APIRouter(prefix="/consultations", tags=["consultations"])

patient_only = require_roles(Role.PATIENT)
party = require_roles(Role.PATIENT, Role.DOCTOR, Role.ADMIN)
doctor_only = require_roles(Role.DOCTOR)


@router.post("/book", response_model=ConsultationPublic, status_code=status.HTTP_201_CREATED)
async def book(
    body: BookConsultationRequest,
    session: AsyncSession = Depends(get_session),
    actor: Actor = Depends(patient_only),
) -> ConsultationPublic:
    consultation = await book_consultation(
        session,
        actor.user_id,
        body.slot_id,
        consultation_type=body.consultation_type,
        chief_complaint=body.chief_complaint,
        symptoms=body.symptoms,
    )
    await session.commit()
    return ConsultationPublic.model_validate(consultation)


@router.get("/my", response_model=Page[ConsultationPublic])
async def my_consultations(
    status_param: ConsultationStatus | None = Query(None, alias="status"),
    page: int = Query(1),
    limit: int = Query(10),
    session: AsyncSession = Depends(get_session),
    actor: Actor = Depends(party),
) -> Page[ConsultationPublic]:
    result = await list_my_consultations(session, actor, status=status_param, page=page, limit=limit)
    return Page[ConsultationPublic](
        page=result.page,
        limit=result.limit,
        total=result.total,
        items=[ConsultationPublic.model_validate(c) for c in result.items],
    )


@router.get("/{consultation_id}", response_model=ConsultationPublic)
async def get_one(
    consultation_id: int,
    session: AsyncSession = Depends(get_session),
    actor: Actor = Depends(party),
) -> ConsultationPublic:
    consultation = await get_consultation(session, consultation_id, actor)
    return ConsultationPublic.model_validate(consultation)


@router.post("/{consultation_id}/cancel", response_model=ConsultationPublic)
async def cancel(
    consultation_id: int,
    body: CancelConsultationRequest,
    session: AsyncSession = Depends(get_session),
    actor: Actor = Depends(party),
) -> ConsultationPublic:
    consultation = await cancel_consultation(session, consultation_id, actor, body.reason)
    await session.commit()
    return ConsultationPublic.model_validate(consultation)


@router.post("/{consultation_id}/reschedule", response_model=ConsultationPublic)
async def reschedule(
    consultation_id: int,
    body: RescheduleConsultationRequest,
    session: AsyncSession = Depends(get_session),
    actor: Actor = Depends(party),
) -> ConsultationPublic:
    consultation = await reschedule_consultation(
        session, consultation_id, actor, body.new_slot_id, body.reason
    )
    await session.commit()
    return ConsultationPublic.model_validate(consultation)


@router.post("/{consultation_id}/start", response_model=ConsultationPublic)
async def start(
    consultation_id: int,
    session: AsyncSession = Depends(get_session),
    actor: Actor = Depends(doctor_only),
) -> ConsultationPublic:
    consultation = await start_consultation(session, consultation_id, actor.user_id)
    await session.commit()
    return ConsultationPublic.model_validate(consultation)


@router.post("/{consultation_id}/complete", response_model=ConsultationPublic)
async def complete(
    consultation_id: int,
    body: CompleteConsultationRequest,
    session: AsyncSession = Depends(get_session),
    actor: Actor = Depends(doctor_only),
) -> ConsultationPublic:
    consultation = await complete_consultation(
        session,
        consultation_id,
        actor.user_id,
        diagnosis=body.diagnosis,
        doctor_notes=body.doctor_notes,
        follow_up_required=body.follow_up_required,
        follow_up_date=body.follow_up_date,
    )
    await session.commit()
    return ConsultationPublic.model_validate(consultation)


@router.patch("/{consultation_id}/notes", response_model=ConsultationPublic)
async def update_notes(
    consultation_id: int,
    body: UpdateNotesRequest,
    session: AsyncSession = Depends(get_session),
    actor: Actor = Depends(doctor_only),
) -> ConsultationPublic:
    consultation = await update_consultation_notes(
        session, consultation_id, actor.user_id, body.doctor_notes
    )
    await session.commit()
    return ConsultationPublic.model_validate(consultation)
