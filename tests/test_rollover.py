from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

import pytest
from sqlalchemy import func, select

from budget_ledger.db import models
from budget_ledger.services import daily, rollover
from budget_ledger.services.users import get_user


async def _weekly_records(session) -> list[models.WeeklyRecord]:
    result = await session.execute(
        select(models.WeeklyRecord).execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


class TestDailyReset:
    """Folding yesterday's leftover into the week and opening today."""

    async def test_folds_leftover_exactly_once(self, session, clock, user, wallet, march_budget):
        # Wednesday: spend 30000 of 100000
        await daily.record_expense(session, clock, user.id, wallet.id, "30000")

        clock.advance_to(datetime(2025, 3, 13, 0, 5))
        first = await rollover.run_daily_reset(session, clock)
        second = await rollover.run_daily_reset(session, clock)

        assert first.processed_users == 1
        assert first.folded_users == 1
        assert first.total_folded == Decimal("70000")
        assert second.folded_users == 0

        [weekly] = await _weekly_records(session)
        assert weekly.week_start == date(2025, 3, 10)
        assert weekly.weekly_leftover == Decimal("70000")
        assert weekly.total_expenses == Decimal("30000")
        assert weekly.transferred_to_savings is False

    async def test_opens_today_without_overwriting_spend(
        self, session, clock, user, wallet, march_budget
    ):
        clock.advance_to(datetime(2025, 3, 13, 0, 1))
        await daily.record_expense(session, clock, user.id, wallet.id, "15000")

        await rollover.run_daily_reset(session, clock)

        record = await daily.get_daily_record(session, user.id, date(2025, 3, 13), for_update=True)
        assert record.total_expense == Decimal("15000")
        assert record.daily_budget_remaining == Decimal("85000")

    async def test_opens_today_for_users_without_activity(self, session, clock, user, other_user, march_budget):
        report = await rollover.run_daily_reset(session, clock)

        assert report.processed_users == 2
        assert report.folded_users == 0
        count = await session.scalar(select(func.count(models.DailyRecord.id)))
        assert count == 2
        record = await daily.get_daily_record(session, user.id, clock.today())
        assert record.daily_budget == Decimal("100000")

    async def test_zero_leftover_creates_no_weekly_record(
        self, session, clock, user, wallet, march_budget
    ):
        await daily.record_expense(session, clock, user.id, wallet.id, "150000")

        clock.advance_to(datetime(2025, 3, 13, 0, 5))
        await rollover.run_daily_reset(session, clock)

        assert await _weekly_records(session) == []
        record = await daily.get_daily_record(session, user.id, date(2025, 3, 12), for_update=True)
        assert record.rolled_over is True

    async def test_sunday_belongs_to_previous_monday(self, session, clock, user, wallet, march_budget):
        clock.advance_to(datetime(2025, 3, 16, 10, 0))
        await daily.record_expense(session, clock, user.id, wallet.id, "40000")

        clock.advance_to(datetime(2025, 3, 17, 0, 5))
        await rollover.run_daily_reset(session, clock)

        [weekly] = await _weekly_records(session)
        assert weekly.week_start == date(2025, 3, 10)
        assert weekly.week_end == datetime(2025, 3, 16, 23, 59, 59, 999000)
        assert weekly.weekly_leftover == Decimal("60000")

    async def test_days_accumulate_within_week(self, session, clock, user, wallet, march_budget):
        await daily.record_expense(session, clock, user.id, wallet.id, "30000")
        clock.advance_to(datetime(2025, 3, 13, 0, 5))
        await rollover.run_daily_reset(session, clock)

        clock.advance_to(datetime(2025, 3, 13, 12, 0))
        await daily.record_expense(session, clock, user.id, wallet.id, "80000")
        clock.advance_to(datetime(2025, 3, 14, 0, 5))
        await rollover.run_daily_reset(session, clock)

        [weekly] = await _weekly_records(session)
        assert weekly.weekly_leftover == Decimal("90000")
        assert weekly.total_expenses == Decimal("110000")

    async def test_leftover_after_settlement_is_reported_not_folded(
        self, session, clock, user, wallet, march_budget
    ):
        clock.advance_to(datetime(2025, 3, 10, 12, 0))
        await daily.record_expense(session, clock, user.id, wallet.id, "30000")
        clock.advance_to(datetime(2025, 3, 11, 0, 5))
        await rollover.run_daily_reset(session, clock)

        # Sunday spend, then the week is settled before Monday's reset folds Sunday
        clock.advance_to(datetime(2025, 3, 16, 12, 0))
        await daily.record_expense(session, clock, user.id, wallet.id, "40000")
        settled = await rollover.run_weekly_settlement(session, clock)
        assert settled.total_transferred == Decimal("70000")

        clock.advance_to(datetime(2025, 3, 17, 0, 5))
        report = await rollover.run_daily_reset(session, clock)
        rerun = await rollover.run_daily_reset(session, clock)

        assert report.folded_users == 0
        assert report.stranded_users == 1
        assert report.total_stranded == Decimal("60000")
        assert rerun.stranded_users == 0

        [weekly] = await _weekly_records(session)
        assert weekly.weekly_leftover == Decimal("70000")
        assert weekly.transferred_to_savings is True
        assert (await get_user(session, user.id)).savings_balance == Decimal("70000")
        sunday = await daily.get_daily_record(session, user.id, date(2025, 3, 16), for_update=True)
        assert sunday.rolled_over is True
        assert sunday.leftover == Decimal("60000")

    async def test_one_failing_user_does_not_abort_batch(
        self, session, clock, user, other_user, march_budget, monkeypatch
    ):
        real_fold = rollover.fold_daily_leftover
        failing_id, healthy_id = user.id, other_user.id

        async def flaky_fold(session, user_id, day, tz=None):
            if user_id == failing_id:
                raise RuntimeError("boom")
            return await real_fold(session, user_id, day, tz)

        monkeypatch.setattr(rollover, "fold_daily_leftover", flaky_fold)

        report = await rollover.run_daily_reset(session, clock)

        assert report.processed_users == 1
        assert report.failed_users == 1
        assert await daily.get_daily_record(session, failing_id, clock.today()) is None
        assert await daily.get_daily_record(session, healthy_id, clock.today()) is not None


class TestWeeklySettlement:
    async def _seed_week(self, session, user_id, leftover, week_start=date(2025, 3, 10)):
        record = models.WeeklyRecord(
            user_id=user_id,
            week_start=week_start,
            week_end=datetime.combine(week_start, datetime.min.time()),
            total_expenses=Decimal("0"),
            weekly_leftover=Decimal(leftover),
            transferred_to_savings=False,
        )
        session.add(record)
        await session.commit()
        return record

    async def test_transfers_once(self, session, clock, user):
        await self._seed_week(session, user.id, "50000")

        first = await rollover.run_weekly_settlement(session, clock)
        second = await rollover.run_weekly_settlement(session, clock)

        assert first.processed_records == 1
        assert first.total_transferred == Decimal("50000")
        assert second.processed_records == 0
        refreshed = await get_user(session, user.id)
        assert refreshed.savings_balance == Decimal("50000")
        [weekly] = await _weekly_records(session)
        assert weekly.transferred_to_savings is True

    async def test_zero_leftover_is_still_flagged(self, session, clock, user):
        await self._seed_week(session, user.id, "0")

        report = await rollover.run_weekly_settlement(session, clock)

        assert report.processed_records == 1
        assert report.total_transferred == Decimal("0")
        [weekly] = await _weekly_records(session)
        assert weekly.transferred_to_savings is True
        assert (await get_user(session, user.id)).savings_balance == Decimal("0")

    async def test_only_targets_requested_week(self, session, clock, user):
        await self._seed_week(session, user.id, "20000", week_start=date(2025, 3, 3))
        await self._seed_week(session, user.id, "30000")

        current = await rollover.run_weekly_settlement(session, clock)
        previous = await rollover.run_weekly_settlement(session, clock, date(2025, 3, 9))

        assert current.total_transferred == Decimal("30000")
        assert previous.week_start == date(2025, 3, 3)
        assert previous.total_transferred == Decimal("20000")
        assert (await get_user(session, user.id)).savings_balance == Decimal("50000")

    async def test_settles_each_user_independently(self, session, clock, user, other_user):
        await self._seed_week(session, user.id, "10000")
        await self._seed_week(session, other_user.id, "25000")

        report = await rollover.run_weekly_settlement(session, clock)

        assert report.processed_records == 2
        assert (await get_user(session, user.id)).savings_balance == Decimal("10000")
        assert (await get_user(session, other_user.id)).savings_balance == Decimal("25000")


@pytest.mark.parametrize(
    "leftover_days",
    [[Decimal("70000")], [Decimal("70000"), Decimal("20000"), Decimal("0")]],
)
async def test_reset_then_settle_moves_leftover_to_savings(
    session, clock, user, wallet, march_budget, leftover_days
):
    day = 10
    for leftover in leftover_days:
        clock.advance_to(datetime(2025, 3, day, 12, 0))
        spend = Decimal("100000") - leftover
        if spend:
            await daily.record_expense(session, clock, user.id, wallet.id, spend)
        else:
            await daily.open_today(session, clock, user.id)
        clock.advance_to(datetime(2025, 3, day + 1, 0, 5))
        await rollover.run_daily_reset(session, clock)
        day += 1

    await rollover.run_weekly_settlement(session, clock)

    assert (await get_user(session, user.id)).savings_balance == sum(leftover_days)
