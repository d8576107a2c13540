"""Read-only composition of the ledger state for the dashboard screen."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from budget_ledger.core.clock import Clock
from budget_ledger.core.money import ZERO, round_whole
from budget_ledger.core.periods import day_bounds, days_into_week, month_bounds, week_bounds
from budget_ledger.db import models
from budget_ledger.schemas.dashboard import (
    DailySection,
    DashboardResponse,
    DashboardUser,
    MonthlySection,
    WeeklySection,
)
from budget_ledger.schemas.expenses import ExpenseResponse
from budget_ledger.services.daily import list_expenses_between, open_today
from budget_ledger.services.users import get_user


async def _sum_expenses(
    session: AsyncSession, user_id: int, start: datetime, end: datetime
) -> Decimal:
    stmt = select(func.coalesce(func.sum(models.Expense.amount), 0)).where(
        models.Expense.user_id == user_id,
        models.Expense.date >= start,
        models.Expense.date <= end,
    )
    return Decimal(str(await session.scalar(stmt)))


async def get_dashboard(session: AsyncSession, clock: Clock, user_id: int) -> DashboardResponse:
    now = clock.now()
    today, tz = now.date(), now.tzinfo

    user = await get_user(session, user_id)
    record = await open_today(session, clock, user_id)

    day_start, day_end = day_bounds(today, tz)
    today_expenses = await list_expenses_between(session, user_id, day_start, day_end)

    # Weekly spend comes from the expense history; WeeklyRecord only holds rolled-over leftovers.
    week_from, week_to = week_bounds(today, tz)
    week_total = await _sum_expenses(session, user_id, week_from, week_to)
    weekly_record = await session.scalar(
        select(models.WeeklyRecord).where(
            models.WeeklyRecord.user_id == user_id,
            models.WeeklyRecord.week_start == week_from.date(),
        )
    )
    elapsed = days_into_week(today)

    month_from, _ = month_bounds(today.year, today.month, tz)
    month_to_date = await _sum_expenses(session, user_id, month_from, now)
    budget = await session.scalar(
        select(models.Budget).where(
            models.Budget.user_id == user_id,
            models.Budget.month == today.month,
            models.Budget.year == today.year,
        )
    )
    saving_target = budget.saving_target if budget else ZERO
    spending_target = budget.spending_target if budget else ZERO

    return DashboardResponse(
        user=DashboardUser(name=user.name, email=user.email, savings_balance=user.savings_balance),
        daily=DailySection(
            date=today,
            budget=record.daily_budget,
            remaining=record.daily_budget_remaining,
            spent=record.total_expense,
            leftover=record.leftover,
            is_over_budget=record.daily_budget_remaining < ZERO,
            expenses=[ExpenseResponse.model_validate(expense) for expense in today_expenses],
        ),
        weekly=WeeklySection(
            week_start=week_from.date(),
            week_end=week_to.date(),
            total_expenses=week_total,
            daily_average=round_whole(week_total / elapsed) if week_total > ZERO else ZERO,
            days_into_week=elapsed,
            weekly_leftover=weekly_record.weekly_leftover if weekly_record else ZERO,
            transferred_to_savings=weekly_record.transferred_to_savings if weekly_record else False,
        ),
        monthly=MonthlySection(
            month=today.month,
            year=today.year,
            has_budget=budget is not None,
            saving_target=saving_target,
            spending_target=spending_target,
            month_to_date_expenses=month_to_date,
            savings=max(ZERO, saving_target + spending_target - month_to_date),
        ),
    )
