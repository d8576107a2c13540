"""
Daily accounting engine.

A day's ``DailyRecord`` snapshots the daily share of that month's weekly budget and
accumulates every expense logged on that day:

    daily_budget_remaining = daily_budget - total_expense
    leftover               = max(0, daily_budget_remaining)

Records are created lazily by ``ensure_daily_record`` (or by the daily reset job)
and never deleted.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

from loguru import logger
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from budget_ledger.core.clock import Clock
from budget_ledger.core.errors import InvalidAmount, InvalidInput
from budget_ledger.core.money import ZERO, daily_share, to_decimal
from budget_ledger.core.periods import day_bounds
from budget_ledger.db import models
from budget_ledger.db.session import atomic
from budget_ledger.schemas.expenses import (
    DailyRecordState,
    ExpenseRecorded,
    ExpenseResponse,
    WalletMovement,
)
from budget_ledger.services.wallets import apply_delta, get_owned_wallet, insufficient_funds


async def daily_budget_for(session: AsyncSession, user_id: int, as_of: date) -> Decimal:
    """Daily share of the weekly budget planned for ``as_of``'s own month."""

    stmt = select(models.Budget.weekly_budget).where(
        models.Budget.user_id == user_id,
        models.Budget.month == as_of.month,
        models.Budget.year == as_of.year,
    )
    weekly_budget = await session.scalar(stmt)
    return daily_share(weekly_budget)


def recalculate(record: models.DailyRecord) -> None:
    record.daily_budget_remaining = record.daily_budget - record.total_expense
    record.leftover = max(ZERO, record.daily_budget_remaining)


async def get_daily_record(
    session: AsyncSession, user_id: int, day: date, *, for_update: bool = False
) -> models.DailyRecord | None:
    stmt = select(models.DailyRecord).where(
        models.DailyRecord.user_id == user_id, models.DailyRecord.date == day
    )
    if for_update:
        stmt = stmt.with_for_update().execution_options(populate_existing=True)
    return await session.scalar(stmt)


async def ensure_daily_record(
    session: AsyncSession, user_id: int, day: date
) -> models.DailyRecord:
    """Return the user's record for ``day``, creating it if needed.

    An existing record whose stored budget no longer matches its month's plan is
    re-derived, unless its leftover was already rolled into the week. Writes are
    flushed only; the caller owns the commit.
    """

    budget = await daily_budget_for(session, user_id, day)
    record = await get_daily_record(session, user_id, day, for_update=True)

    if record is None:
        record = models.DailyRecord(
            user_id=user_id,
            date=day,
            daily_budget=budget,
            total_expense=ZERO,
            daily_budget_remaining=budget,
            leftover=ZERO,
            rolled_over=False,
        )
        session.add(record)
        await session.flush()
        logger.debug("Daily record opened", user_id=user_id, date=day.isoformat(), budget=str(budget))
        return record

    if record.daily_budget != budget and not record.rolled_over:
        logger.info(
            "Daily budget changed, re-deriving record",
            user_id=user_id,
            date=day.isoformat(),
            previous=str(record.daily_budget),
            current=str(budget),
        )
        record.daily_budget = budget
        recalculate(record)
        await session.flush()
    return record


async def open_today(session: AsyncSession, clock: Clock, user_id: int) -> models.DailyRecord:
    async with atomic(session):
        record = await ensure_daily_record(session, user_id, clock.today())
    return record


async def record_expense(
    session: AsyncSession,
    clock: Clock,
    user_id: int,
    wallet_id: int | None,
    amount: object,
    note: str | None = None,
    expense_type: str = "MEAL",
) -> ExpenseRecorded:
    """Log a spend against a wallet and today's daily record as one atomic unit.

    Spending past the daily budget is allowed and only flagged; spending past the
    wallet balance is refused before anything is written.
    """

    value = to_decimal(amount)
    if value is None or value <= ZERO:
        raise InvalidAmount("Nominal harus diisi dan lebih dari 0")
    if expense_type not in models.EXPENSE_TYPES:
        raise InvalidInput("Tipe pengeluaran tidak valid", allowed=list(models.EXPENSE_TYPES))

    wallet = await get_owned_wallet(session, user_id, wallet_id)
    if wallet.balance < value:
        raise insufficient_funds(wallet.balance, value)

    now = clock.now()
    async with atomic(session):
        record = await ensure_daily_record(session, user_id, now.date())
        remaining_before = record.daily_budget_remaining

        expense = models.Expense(
            user_id=user_id,
            wallet_id=wallet.id,
            amount=value,
            note=note or None,
            date=now,
            type=expense_type,
        )
        session.add(expense)

        wallet = await apply_delta(session, wallet.id, -value, spend=True)
        previous_balance = wallet.balance + value

        record.total_expense = record.total_expense + value
        recalculate(record)
        await session.flush()

    is_over_budget = value > remaining_before
    if is_over_budget:
        logger.warning(
            "Over budget spend",
            user_id=user_id,
            amount=str(value),
            remaining_before=str(remaining_before),
        )
    logger.info(
        "Expense recorded",
        user_id=user_id,
        wallet_id=wallet.id,
        expense_id=expense.id,
        amount=str(value),
    )

    return ExpenseRecorded(
        expense=ExpenseResponse(
            id=expense.id,
            amount=expense.amount,
            note=expense.note,
            date=expense.date,
            type=expense.type,
            wallet={"id": wallet.id, "name": wallet.name, "type": wallet.type},
        ),
        daily_record=_state(record, is_over_budget=is_over_budget),
        wallet=WalletMovement(
            id=wallet.id,
            name=wallet.name,
            type=wallet.type,
            previous_balance=previous_balance,
            new_balance=wallet.balance,
        ),
    )


def _state(record: models.DailyRecord, *, is_over_budget: bool) -> DailyRecordState:
    return DailyRecordState(
        date=record.date,
        daily_budget=record.daily_budget,
        total_expense=record.total_expense,
        daily_budget_remaining=record.daily_budget_remaining,
        leftover=record.leftover,
        is_over_budget=is_over_budget,
    )


async def list_expenses_between(
    session: AsyncSession, user_id: int, start: datetime, end: datetime
) -> list[models.Expense]:
    stmt = (
        select(models.Expense)
        .where(
            models.Expense.user_id == user_id,
            models.Expense.date >= start,
            models.Expense.date < end,
        )
        .options(selectinload(models.Expense.wallet))
        .order_by(models.Expense.date.desc(), models.Expense.id.desc())
    )
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def list_today_expenses(
    session: AsyncSession, clock: Clock, user_id: int
) -> list[models.Expense]:
    now = clock.now()
    start, end = day_bounds(now.date(), now.tzinfo)
    return await list_expenses_between(session, user_id, start, end)
