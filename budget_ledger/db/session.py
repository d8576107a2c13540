from __future__ import annotations

import asyncio
from collections.abc import AsyncGenerator, AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

from alembic import command
from alembic.config import Config
from loguru import logger
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from budget_ledger.core.config import get_settings
from budget_ledger.core.errors import TransactionFailed

settings = get_settings()
engine = create_async_engine(settings.database_url, echo=False, future=True)
AsyncSessionLocal = async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    async with AsyncSessionLocal() as session:
        yield session


@asynccontextmanager
async def atomic(session: AsyncSession) -> AsyncIterator[AsyncSession]:
    """Run the enclosed writes as one unit: commit on success, roll back on any error.

    Store failures surface as ``TransactionFailed``; domain errors raised inside the
    block propagate unchanged after the rollback.
    """

    try:
        yield session
        await session.commit()
    except SQLAlchemyError as exc:
        await session.rollback()
        logger.exception("Atomic unit rolled back", error=str(exc))
        raise TransactionFailed() from exc
    except BaseException:
        await session.rollback()
        raise


async def init_db() -> None:
    """Ensure database migrations are applied before serving traffic."""

    if not settings.auto_run_migrations:
        return

    alembic_ini = Path(__file__).resolve().parents[2] / "alembic.ini"
    if not alembic_ini.exists():
        return

    config = Config(str(alembic_ini))
    try:
        await asyncio.to_thread(command.upgrade, config, "head")
        logger.info("Database migrations are up-to-date")
    except Exception:  # pragma: no cover - propagate for FastAPI startup failure
        logger.exception("Failed to apply database migrations")
        raise
