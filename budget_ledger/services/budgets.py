"""
Budget and allocation manager.

Monthly budgets are planning figures; allocations are the only budget entities
that move money, and they always do so through ``wallets.apply_delta`` inside the
same atomic unit as the allocation row itself.
"""

from __future__ import annotations

from decimal import Decimal

from loguru import logger
from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from budget_ledger.core.clock import Clock
from budget_ledger.core.errors import (
    AllocationNotFound,
    BudgetNotFound,
    DuplicateAllocation,
    DuplicateBudget,
    DuplicateWeek,
    InvalidInput,
)
from budget_ledger.core.money import ZERO, to_decimal
from budget_ledger.core.periods import month_bounds
from budget_ledger.db import models
from budget_ledger.db.session import atomic
from budget_ledger.schemas.budgets import (
    AllocationTotals,
    BudgetAllocationSummary,
    BudgetSpending,
    WalletAllocation,
)
from budget_ledger.schemas.wallets import WalletSummary
from budget_ledger.services.wallets import apply_delta, get_owned_wallet

REQUIRED_FIELDS_MESSAGE = "Semua field harus diisi"
BUDGET_FIGURES = ("salary", "saving_target", "spending_target", "weekly_budget")


def _validate_budget_fields(
    month: object, year: object, figures: dict[str, object]
) -> tuple[int, int, dict[str, Decimal]]:
    """Every field is required; zero counts as missing."""

    missing = [name for name, value in (("month", month), ("year", year)) if not value]
    parsed: dict[str, Decimal] = {}
    for name in BUDGET_FIGURES:
        value = to_decimal(figures.get(name))
        if not value:
            missing.append(name)
        else:
            parsed[name] = value
    if missing:
        raise InvalidInput(REQUIRED_FIELDS_MESSAGE, missing=missing)

    try:
        month_value, year_value = int(month), int(year)
    except (TypeError, ValueError) as exc:
        raise InvalidInput("Bulan dan tahun harus berupa angka") from exc
    if not 1 <= month_value <= 12:
        raise InvalidInput("Bulan harus di antara 1 dan 12")

    negative = [name for name, value in parsed.items() if value < ZERO]
    if negative:
        raise InvalidInput("Nominal tidak boleh negatif", fields=negative)
    return month_value, year_value, parsed


async def _find_budget_for_month(
    session: AsyncSession, user_id: int, month: int, year: int
) -> models.Budget | None:
    stmt = select(models.Budget).where(
        models.Budget.user_id == user_id,
        models.Budget.month == month,
        models.Budget.year == year,
    )
    return await session.scalar(stmt)


async def get_owned_budget(
    session: AsyncSession, user_id: int, budget_id: int | None, *, with_children: bool = False
) -> models.Budget:
    if budget_id is None:
        raise BudgetNotFound("Budget tidak ditemukan")
    stmt = select(models.Budget).where(
        models.Budget.id == budget_id, models.Budget.user_id == user_id
    )
    if with_children:
        stmt = stmt.options(
            selectinload(models.Budget.weekly_budgets),
            selectinload(models.Budget.allocations).selectinload(models.Allocation.wallet),
        ).execution_options(populate_existing=True)
    budget = await session.scalar(stmt)
    if budget is None:
        raise BudgetNotFound("Budget tidak ditemukan")
    return budget


async def create_budget(
    session: AsyncSession,
    user_id: int,
    *,
    month: object,
    year: object,
    **figures: object,
) -> models.Budget:
    month_value, year_value, parsed = _validate_budget_fields(month, year, figures)
    if await _find_budget_for_month(session, user_id, month_value, year_value) is not None:
        raise DuplicateBudget("Budget untuk bulan ini sudah ada", month=month_value, year=year_value)

    async with atomic(session):
        budget = models.Budget(user_id=user_id, month=month_value, year=year_value, **parsed)
        session.add(budget)

    logger.info("Budget created", user_id=user_id, budget_id=budget.id, month=month_value, year=year_value)
    return await get_owned_budget(session, user_id, budget.id, with_children=True)


async def update_budget(
    session: AsyncSession,
    user_id: int,
    budget_id: int,
    *,
    month: object,
    year: object,
    **figures: object,
) -> models.Budget:
    month_value, year_value, parsed = _validate_budget_fields(month, year, figures)
    budget = await get_owned_budget(session, user_id, budget_id)

    clash = await _find_budget_for_month(session, user_id, month_value, year_value)
    if clash is not None and clash.id != budget.id:
        raise DuplicateBudget("Budget untuk bulan ini sudah ada", month=month_value, year=year_value)

    async with atomic(session):
        budget.month = month_value
        budget.year = year_value
        for name, value in parsed.items():
            setattr(budget, name, value)

    logger.info("Budget updated", user_id=user_id, budget_id=budget_id)
    return await get_owned_budget(session, user_id, budget_id, with_children=True)


async def delete_budget(session: AsyncSession, user_id: int, budget_id: int) -> None:
    """Delete a budget with its children, returning every allocation to its wallet."""

    budget = await get_owned_budget(session, user_id, budget_id)

    async with atomic(session):
        allocations = (
            await session.execute(
                select(models.Allocation).where(models.Allocation.budget_id == budget.id)
            )
        ).scalars().all()
        for allocation in allocations:
            await apply_delta(session, allocation.wallet_id, -allocation.amount)

        await session.execute(
            delete(models.Allocation).where(models.Allocation.budget_id == budget_id)
        )
        await session.execute(
            delete(models.WeeklyBudget).where(models.WeeklyBudget.budget_id == budget_id)
        )
        await session.execute(delete(models.Budget).where(models.Budget.id == budget_id))

    logger.info(
        "Budget deleted",
        user_id=user_id,
        budget_id=budget_id,
        reversed_allocations=len(allocations),
    )


async def get_budget(session: AsyncSession, user_id: int, budget_id: int) -> models.Budget:
    return await get_owned_budget(session, user_id, budget_id, with_children=True)


async def list_budgets(session: AsyncSession, user_id: int) -> list[models.Budget]:
    stmt = (
        select(models.Budget)
        .where(models.Budget.user_id == user_id)
        .options(
            selectinload(models.Budget.weekly_budgets),
            selectinload(models.Budget.allocations).selectinload(models.Allocation.wallet),
        )
        .order_by(models.Budget.created_at.desc(), models.Budget.id.desc())
    )
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def create_weekly_budget(
    session: AsyncSession,
    user_id: int,
    budget_id: int | None,
    week_number: object,
    planned_amount: object,
) -> models.WeeklyBudget:
    planned = to_decimal(planned_amount)
    if not budget_id or not week_number or not planned:
        raise InvalidInput(REQUIRED_FIELDS_MESSAGE)
    try:
        week = int(week_number)
    except (TypeError, ValueError) as exc:
        raise InvalidInput("Nomor minggu harus berupa angka") from exc
    if week < 1 or planned < ZERO:
        raise InvalidInput("Nomor minggu dan nominal harus positif")

    budget = await get_owned_budget(session, user_id, budget_id)
    existing = await session.scalar(
        select(models.WeeklyBudget.id).where(
            models.WeeklyBudget.budget_id == budget.id,
            models.WeeklyBudget.week_number == week,
        )
    )
    if existing is not None:
        raise DuplicateWeek("Budget minggu ini sudah ada", week_number=week)

    async with atomic(session):
        weekly = models.WeeklyBudget(
            budget_id=budget.id,
            week_number=week,
            planned_amount=planned,
            spent_amount=ZERO,
            remaining_amount=planned,
        )
        session.add(weekly)

    logger.info("Weekly budget created", user_id=user_id, budget_id=budget.id, week_number=week)
    return weekly


async def create_allocation(
    session: AsyncSession,
    user_id: int,
    budget_id: int | None,
    wallet_id: int | None,
    amount: object,
) -> models.Allocation:
    value = to_decimal(amount)
    if not budget_id or not wallet_id or not value:
        raise InvalidInput(REQUIRED_FIELDS_MESSAGE)
    if value < ZERO:
        raise InvalidInput("Nominal alokasi harus lebih dari 0")

    budget = await get_owned_budget(session, user_id, budget_id)
    wallet = await get_owned_wallet(session, user_id, wallet_id)

    existing = await session.scalar(
        select(models.Allocation.id).where(
            models.Allocation.budget_id == budget.id,
            models.Allocation.wallet_id == wallet.id,
        )
    )
    if existing is not None:
        raise DuplicateAllocation("Alokasi untuk dompet ini sudah ada")

    async with atomic(session):
        allocation = models.Allocation(budget_id=budget.id, wallet_id=wallet.id, amount=value)
        session.add(allocation)
        await apply_delta(session, wallet.id, value)

    logger.info(
        "Allocation created",
        user_id=user_id,
        budget_id=budget.id,
        wallet_id=wallet.id,
        amount=str(value),
    )
    return await _load_allocation(session, allocation.id)


async def delete_allocation(session: AsyncSession, user_id: int, allocation_id: int) -> None:
    stmt = (
        select(models.Allocation)
        .join(models.Budget, models.Allocation.budget_id == models.Budget.id)
        .where(models.Allocation.id == allocation_id, models.Budget.user_id == user_id)
    )
    allocation = await session.scalar(stmt)
    if allocation is None:
        raise AllocationNotFound("Alokasi tidak ditemukan")

    wallet_id, amount = allocation.wallet_id, allocation.amount
    async with atomic(session):
        await session.execute(
            delete(models.Allocation).where(models.Allocation.id == allocation_id)
        )
        await apply_delta(session, wallet_id, -amount)

    logger.info(
        "Allocation deleted",
        user_id=user_id,
        allocation_id=allocation_id,
        wallet_id=wallet_id,
        amount=str(amount),
    )


async def _load_allocation(session: AsyncSession, allocation_id: int) -> models.Allocation:
    stmt = (
        select(models.Allocation)
        .where(models.Allocation.id == allocation_id)
        .options(selectinload(models.Allocation.wallet))
        .execution_options(populate_existing=True)
    )
    return await session.scalar(stmt)


async def get_budget_spending(
    session: AsyncSession, clock: Clock, user_id: int, budget_id: int
) -> BudgetSpending:
    budget = await get_owned_budget(session, user_id, budget_id)
    start, end = month_bounds(budget.year, budget.month, clock.now().tzinfo)

    stmt = select(func.coalesce(func.sum(models.Expense.amount), 0), func.count(models.Expense.id)).where(
        models.Expense.user_id == user_id,
        models.Expense.date >= start,
        models.Expense.date < end,
    )
    total, count = (await session.execute(stmt)).one()
    total_spent = Decimal(str(total))
    progress = (
        float(total_spent / budget.spending_target * 100) if budget.spending_target > ZERO else 0.0
    )
    return BudgetSpending(
        total_spent=total_spent,
        spending_target=budget.spending_target,
        spending_progress=progress,
        expenses_count=count,
    )


async def get_budget_allocation_summary(
    session: AsyncSession, clock: Clock, user_id: int, budget_id: int
) -> BudgetAllocationSummary:
    """Compare each wallet's static allocation with what was actually spent from it."""

    budget = await get_owned_budget(session, user_id, budget_id, with_children=True)
    start, end = month_bounds(budget.year, budget.month, clock.now().tzinfo)
    static_by_wallet = {allocation.wallet_id: allocation.amount for allocation in budget.allocations}

    meal_stmt = (
        select(models.Expense.wallet_id, func.sum(models.Expense.amount))
        .where(
            models.Expense.user_id == user_id,
            models.Expense.type == "MEAL",
            models.Expense.date >= start,
            models.Expense.date < end,
        )
        .group_by(models.Expense.wallet_id)
    )
    meal_by_wallet = {
        wallet_id: Decimal(str(total)) for wallet_id, total in (await session.execute(meal_stmt)).all()
    }

    other_stmt = (
        select(models.Transaction.wallet_id, func.sum(models.Transaction.amount))
        .join(models.Wallet, models.Transaction.wallet_id == models.Wallet.id)
        .where(
            models.Wallet.user_id == user_id,
            models.Transaction.type == "EXPENSE",
            models.Transaction.date >= start,
            models.Transaction.date < end,
        )
        .group_by(models.Transaction.wallet_id)
    )
    other_by_wallet = {
        wallet_id: Decimal(str(total)) for wallet_id, total in (await session.execute(other_stmt)).all()
    }

    wallets = (
        await session.execute(
            select(models.Wallet)
            .where(models.Wallet.user_id == user_id)
            .order_by(models.Wallet.created_at.desc(), models.Wallet.id.desc())
        )
    ).scalars().all()

    rows: list[WalletAllocation] = []
    for wallet in wallets:
        static = static_by_wallet.get(wallet.id, ZERO)
        meal = meal_by_wallet.get(wallet.id, ZERO)
        other = other_by_wallet.get(wallet.id, ZERO)
        dynamic = meal + other
        rows.append(
            WalletAllocation(
                wallet=WalletSummary.model_validate(wallet),
                current_balance=wallet.balance,
                static_allocation=static,
                dynamic_allocation=dynamic,
                meal_expenses=meal,
                other_transactions=other,
                net_change=dynamic - static,
            )
        )

    total_dynamic = sum((row.dynamic_allocation for row in rows), ZERO)
    utilization = float(total_dynamic / budget.salary * 100) if budget.salary > ZERO else 0.0
    return BudgetAllocationSummary(
        budget_id=budget.id,
        month=budget.month,
        year=budget.year,
        salary=budget.salary,
        weekly_budget=budget.weekly_budget,
        wallet_allocations=rows,
        summary=AllocationTotals(
            total_static_allocations=sum((row.static_allocation for row in rows), ZERO),
            total_dynamic_allocations=total_dynamic,
            total_meal_expenses=sum((row.meal_expenses for row in rows), ZERO),
            remaining_salary=budget.salary - total_dynamic,
            budget_utilization=utilization,
        ),
    )
