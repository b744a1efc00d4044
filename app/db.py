"""Async engine for the goal_status_records sink.

Only imported when STATUS_SINK=database.
"""

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.config import settings

STATUS_TABLE_DDL = (
    "CREATE TABLE IF NOT EXISTS goal_status_records ("
    "id BIGSERIAL PRIMARY KEY, "
    "goal_id TEXT NOT NULL, "
    "mode TEXT NOT NULL, "
    "target_delta INTEGER NOT NULL, "
    "baseline INTEGER, "
    "last_observed INTEGER NOT NULL, "
    "steps_taken INTEGER NOT NULL, "
    "steps_remaining INTEGER NOT NULL, "
    "running BOOLEAN NOT NULL, "
    "goal_reached BOOLEAN NOT NULL, "
    "recorded_at TIMESTAMPTZ NOT NULL)"
)


def normalize_url(raw_url: str) -> str:
    if raw_url.startswith("postgres://"):
        return raw_url.replace("postgres://", "postgresql+asyncpg://", 1)
    if raw_url.startswith("postgresql://"):
        return raw_url.replace("postgresql://", "postgresql+asyncpg://", 1)
    return raw_url


engine = create_async_engine(normalize_url(settings.database_url), pool_pre_ping=True)
async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def ensure_status_table() -> None:
    async with engine.begin() as conn:
        await conn.execute(text(STATUS_TABLE_DDL))
