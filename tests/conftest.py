from __future__ import annotations

import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("AUTO_RUN_MIGRATIONS", "false")
os.environ.setdefault("CRON_SECRET", "test-cron-secret")

from datetime import datetime
from decimal import Decimal
from pathlib import Path
from typing import Dict

import pytest
from alembic.config import Config
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from budget_ledger.core.clock import FixedClock
from budget_ledger.db import models
from budget_ledger.db.base import Base
from budget_ledger.services import budgets, wallets
from budget_ledger.services.users import create_user

IN_MEMORY_URL = "sqlite+aiosqlite://"
# Wednesday
DEFAULT_NOW = datetime(2025, 3, 12, 9, 30)


@pytest.fixture
async def engine():
    engine = create_async_engine(
        IN_MEMORY_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine.sync_engine, "connect")
    def _enable_foreign_keys(dbapi_connection, _record) -> None:
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(DEFAULT_NOW)


@pytest.fixture
async def user(session) -> models.User:
    return await create_user(session, "budi@example.com", "Budi")


@pytest.fixture
async def other_user(session) -> models.User:
    return await create_user(session, "sari@example.com", "Sari")


@pytest.fixture
async def wallet(session, clock, user) -> models.Wallet:
    return await wallets.create_wallet(session, clock, user.id, "BCA", "BANK", Decimal("500000"))


@pytest.fixture
async def march_budget(session, user) -> models.Budget:
    return await budgets.create_budget(
        session,
        user.id,
        month=3,
        year=2025,
        salary=Decimal("5000000"),
        saving_target=Decimal("1500000"),
        spending_target=Decimal("3000000"),
        weekly_budget=Decimal("700000"),
    )


# Migration fixtures


@pytest.fixture(scope="session")
def db_urls(tmp_path_factory) -> Dict[str, str]:
    default_url = f"sqlite:///{tmp_path_factory.mktemp('alembic') / 'ledger.db'}"
    sync_url = os.getenv("TEST_DATABASE_URL", default_url)
    return {"sync": sync_url}


@pytest.fixture(scope="session")
def alembic_config(db_urls: Dict[str, str]) -> Config:
    cfg = Config(str(Path(__file__).resolve().parents[1] / "alembic.ini"))
    cfg.set_main_option("sqlalchemy.url", db_urls["sync"])
    return cfg


