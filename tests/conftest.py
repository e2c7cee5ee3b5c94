import os

# Settings are read at import time; tests never touch the configured database.
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["ENV"] = "test"

from collections.abc import Awaitable, Callable
from datetime import date, datetime, time, timedelta
from decimal import Decimal

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel

import telehealth.models  # noqa: F401
from telehealth.core.db import get_session
from telehealth.core.security import create_access_token
from telehealth.main import app
from telehealth.models.availability import AvailabilitySlot, SlotStatus
from telehealth.models.doctor import Doctor
from telehealth.models.user import Role, User


@pytest.fixture
async def engine(tmp_path):
    # File-backed so independent sessions see each other's commits
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'telehealth.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest.fixture
async def session(session_maker):
    async with session_maker() as session:
        yield session


async def _add(session: AsyncSession, obj):
    session.add(obj)
    await session.commit()
    await session.refresh(obj)
    return obj


@pytest.fixture
async def patient(session) -> User:
    return await _add(session, User(email="pat@example.com", full_name="Pat Ient", role=Role.PATIENT))


@pytest.fixture
async def other_patient(session) -> User:
    return await _add(session, User(email="sam@example.com", full_name="Sam Other", role=Role.PATIENT))


@pytest.fixture
async def third_patient(session) -> User:
    return await _add(session, User(email="lee@example.com", full_name="Lee Third", role=Role.PATIENT))


@pytest.fixture
async def admin(session) -> User:
    return await _add(session, User(email="admin@example.com", role=Role.ADMIN))


@pytest.fixture
async def doctor_user(session) -> User:
    return await _add(session, User(email="doc@example.com", full_name="Dr. Who", role=Role.DOCTOR))


@pytest.fixture
async def doctor(session, doctor_user) -> Doctor:
    return await _add(
        session,
        Doctor(user_id=doctor_user.id, specialty_primary="General", consultation_fee=Decimal("750.00")),
    )


@pytest.fixture
async def other_doctor_user(session) -> User:
    return await _add(session, User(email="doc2@example.com", role=Role.DOCTOR))


@pytest.fixture
async def other_doctor(session, other_doctor_user) -> Doctor:
    return await _add(session, Doctor(user_id=other_doctor_user.id))


@pytest.fixture
def next_monday() -> date:
    """A Monday at least a week away, so its slots are always in the future."""
    today = date.today()
    return today + timedelta(days=7 + (7 - today.weekday()) % 7)


@pytest.fixture
def make_slot(session, next_monday) -> Callable[..., Awaitable[AvailabilitySlot]]:
    async def _make(
        doctor: Doctor,
        at: time | datetime = time(9, 0),
        minutes: int = 30,
        status: SlotStatus = SlotStatus.AVAILABLE,
    ) -> AvailabilitySlot:
        start = at if isinstance(at, datetime) else datetime.combine(next_monday, at)
        return await _add(
            session,
            AvailabilitySlot(
                doctor_id=doctor.id,
                slot_start_time=start,
                slot_end_time=start + timedelta(minutes=minutes),
                status=status,
            ),
        )

    return _make


@pytest.fixture
def auth_headers() -> Callable[[User], dict[str, str]]:
    def _headers(user: User) -> dict[str, str]:
        return {"Authorization": f"Bearer {create_access_token(user.id)}"}

    return _headers


@pytest.fixture
async def client(session_maker):
    async def _get_session():
        async with session_maker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_session] = _get_session
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
