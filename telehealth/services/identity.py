from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from telehealth.core.errors import ForbiddenError, NotADoctorError
from telehealth.models.consultation import Consultation
from telehealth.models.doctor import Doctor
from telehealth.models.user import Role


@dataclass(frozen=True)
class Actor:
    """The authenticated caller: an account id plus its role."""

    user_id: int
    role: Role


async def find_doctor_id(session: AsyncSession, user_id: int) -> int | None:
    result = await session.execute(select(Doctor.id).where(Doctor.user_id == user_id))
    return result.scalar_one_or_none()


async def get_doctor_id(session: AsyncSession, user_id: int) -> int:
    doctor_id = await find_doctor_id(session, user_id)
    if doctor_id is None:
        raise NotADoctorError()
    return doctor_id


async def authorize_consultation(
    session: AsyncSession, actor: Actor, consultation: Consultation
) -> None:
    """Raise ForbiddenError unless the actor is a party to the consultation (or an admin)."""
    if actor.role is Role.PATIENT:
        if consultation.patient_id != actor.user_id:
            raise ForbiddenError("Forbidden")
    elif actor.role is Role.DOCTOR:
        doctor_id = await find_doctor_id(session, actor.user_id)
        if doctor_id is None or consultation.doctor_id != doctor_id:
            raise ForbiddenError("Forbidden")
    elif actor.role is Role.ADMIN:
        return
    else:
        raise ForbiddenError("Unauthorized role")
