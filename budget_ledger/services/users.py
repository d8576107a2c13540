from __future__ import annotations

from loguru import logger
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from budget_ledger.core.errors import InvalidInput, UserNotFound
from budget_ledger.core.money import ZERO
from budget_ledger.db import models
from budget_ledger.db.session import atomic


async def create_user(session: AsyncSession, email: str | None, name: str | None = None) -> models.User:
    if not email or not email.strip():
        raise InvalidInput("Email harus diisi")
    email = email.strip().lower()

    existing = await session.scalar(
        select(models.User.id).where(func.lower(models.User.email) == email)
    )
    if existing is not None:
        raise InvalidInput("Email sudah terdaftar")

    async with atomic(session):
        user = models.User(email=email, name=name or None, savings_balance=ZERO)
        session.add(user)

    logger.info("User created", user_id=user.id)
    return user


async def get_user(session: AsyncSession, user_id: int) -> models.User:
    user = await session.get(models.User, user_id, populate_existing=True)
    if user is None:
        raise UserNotFound("User tidak ditemukan")
    return user
