"""
Rollover jobs triggered by the external scheduler.

* Daily reset folds yesterday's leftover into its week's ``WeeklyRecord`` and opens
  today's ``DailyRecord``.
* Weekly settlement moves a week's accumulated leftover into ``User.savings_balance``.

Both jobs process one user (or one weekly record) per atomic unit, log and skip
failures, and can be re-run for the same period without double counting.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta, tzinfo
from decimal import Decimal

from loguru import logger
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from budget_ledger.core.clock import Clock
from budget_ledger.core.money import ZERO
from budget_ledger.core.periods import week_bounds, week_start
from budget_ledger.db import models
from budget_ledger.db.session import atomic
from budget_ledger.schemas.rollover import DailyResetReport, WeeklySettlementReport
from budget_ledger.services.daily import ensure_daily_record, get_daily_record


async def get_or_create_weekly_record(
    session: AsyncSession, user_id: int, day: date, tz: tzinfo | None = None
) -> models.WeeklyRecord:
    start, end = week_bounds(day, tz)
    stmt = (
        select(models.WeeklyRecord)
        .where(
            models.WeeklyRecord.user_id == user_id,
            models.WeeklyRecord.week_start == start.date(),
        )
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    record = await session.scalar(stmt)
    if record is None:
        record = models.WeeklyRecord(
            user_id=user_id,
            week_start=start.date(),
            week_end=end,
            total_expenses=ZERO,
            weekly_leftover=ZERO,
            transferred_to_savings=False,
        )
        session.add(record)
        await session.flush()
    return record


@dataclass
class FoldResult:
    leftover: Decimal = ZERO
    stranded: bool = False


async def fold_daily_leftover(
    session: AsyncSession, user_id: int, day: date, tz: tzinfo | None = None
) -> FoldResult:
    """Fold ``day``'s leftover into its week once.

    A week already transferred to savings is never modified again; a leftover arriving
    after that is marked rolled over and returned as stranded instead of folded.
    """

    record = await get_daily_record(session, user_id, day, for_update=True)
    if record is None or record.rolled_over:
        return FoldResult()

    result = FoldResult(leftover=record.leftover)
    if record.leftover > ZERO:
        weekly = await get_or_create_weekly_record(session, user_id, day, tz)
        if weekly.transferred_to_savings:
            logger.warning(
                "Week already settled, leftover left unfolded",
                user_id=user_id,
                date=day.isoformat(),
                week_start=weekly.week_start.isoformat(),
                leftover=str(record.leftover),
            )
            result.stranded = True
        else:
            weekly.weekly_leftover = weekly.weekly_leftover + record.leftover
            weekly.total_expenses = weekly.total_expenses + record.total_expense

    record.rolled_over = True
    await session.flush()
    return result


async def _user_ids(session: AsyncSession) -> list[int]:
    result = await session.execute(select(models.User.id).order_by(models.User.id))
    return list(result.scalars().all())


async def run_daily_reset(session: AsyncSession, clock: Clock) -> DailyResetReport:
    now = clock.now()
    today = now.date()
    yesterday = today - timedelta(days=1)

    processed = failed = folded_users = stranded_users = 0
    total_folded = total_stranded = ZERO
    for user_id in await _user_ids(session):
        try:
            async with atomic(session):
                folded = await fold_daily_leftover(session, user_id, yesterday, now.tzinfo)
                await ensure_daily_record(session, user_id, today)
        except Exception as exc:
            failed += 1
            logger.exception("Daily reset failed for user", user_id=user_id, error=str(exc))
            continue

        processed += 1
        if folded.stranded:
            stranded_users += 1
            total_stranded += folded.leftover
        elif folded.leftover > ZERO:
            folded_users += 1
            total_folded += folded.leftover
            logger.info(
                "Daily leftover folded into week",
                user_id=user_id,
                date=yesterday.isoformat(),
                leftover=str(folded.leftover),
            )

    logger.info(
        "Daily reset completed",
        date=today.isoformat(),
        processed_users=processed,
        failed_users=failed,
        folded_users=folded_users,
        stranded_users=stranded_users,
    )
    return DailyResetReport(
        date=today,
        processed_users=processed,
        failed_users=failed,
        folded_users=folded_users,
        total_folded=total_folded,
        stranded_users=stranded_users,
        total_stranded=total_stranded,
    )


async def settle_weekly_record(session: AsyncSession, record_id: int) -> Decimal:
    """Transfer one week's leftover to savings; returns the amount moved."""

    record = await session.scalar(
        select(models.WeeklyRecord)
        .where(models.WeeklyRecord.id == record_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    if record is None or record.transferred_to_savings:
        return ZERO

    transferred = ZERO
    if record.weekly_leftover > ZERO:
        user = await session.scalar(
            select(models.User)
            .where(models.User.id == record.user_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        user.savings_balance = user.savings_balance + record.weekly_leftover
        transferred = record.weekly_leftover

    record.transferred_to_savings = True
    await session.flush()
    return transferred


async def run_weekly_settlement(
    session: AsyncSession, clock: Clock, target_week: date | None = None
) -> WeeklySettlementReport:
    """Settle every unsettled record of the week containing ``target_week`` (default today)."""

    start = week_start(target_week or clock.today())
    result = await session.execute(
        select(models.WeeklyRecord.id)
        .where(
            models.WeeklyRecord.week_start == start,
            models.WeeklyRecord.transferred_to_savings.is_(False),
        )
        .order_by(models.WeeklyRecord.id)
    )
    record_ids = list(result.scalars().all())

    processed = failed = 0
    total = ZERO
    for record_id in record_ids:
        try:
            async with atomic(session):
                transferred = await settle_weekly_record(session, record_id)
        except Exception as exc:
            failed += 1
            logger.exception("Weekly settlement failed for record", record_id=record_id, error=str(exc))
            continue

        processed += 1
        total += transferred
        if transferred > ZERO:
            logger.info(
                "Weekly leftover transferred to savings",
                record_id=record_id,
                amount=str(transferred),
            )

    logger.info(
        "Weekly settlement completed",
        week_start=start.isoformat(),
        processed_records=processed,
        failed_records=failed,
        total_transferred=str(total),
    )
    return WeeklySettlementReport(
        week_start=start,
        processed_records=processed,
        failed_records=failed,
        total_transferred=total,
    )
