from collections.abc import AsyncGenerator

from sqlalchemy import Table
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel

from telehealth.core.config import settings


def to_async_url(database_url: str) -> str:
    """Map any postgresql URL onto asyncpg; other backends pass through untouched.

    asyncpg does not accept psycopg params like sslmode/channel_binding, so they are
    stripped; SSL is enabled via connect_args instead.
    """
    url = make_url(database_url)
    if url.get_backend_name() != "postgresql":
        return database_url
    url = url.set(drivername="postgresql+asyncpg").difference_update_query(["sslmode", "channel_binding"])
    return url.render_as_string(hide_password=False)


async_database_url = to_async_url(settings.database_url)

_engine_kwargs: dict = {"echo": settings.env == "development", "pool_pre_ping": True}
if async_database_url.startswith("postgresql"):
    _engine_kwargs.update(pool_size=5, max_overflow=10)
    if settings.database_ssl:
        _engine_kwargs["connect_args"] = {"ssl": True}

engine = create_async_engine(async_database_url, **_engine_kwargs)

async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    async with async_session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def init_db() -> None:
    """Create tables if using create_all; prefer Alembic in production."""
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)


def insert_ignoring_conflicts(session: AsyncSession, table: Table, index_elements: list[str]):
    """INSERT ... ON CONFLICT (index_elements) DO NOTHING for the session's dialect."""
    dialect = session.bind.dialect.name
    if dialect == "postgresql":
        stmt = pg_insert(table)
    elif dialect == "sqlite":
        stmt = sqlite_insert(table)
    else:
        raise ValueError(f"Conflict-ignoring insert not supported on {dialect}")
    return stmt.on_conflict_do_nothing(index_elements=index_elements)
