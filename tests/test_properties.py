"""
Property-based tests for wallet balance conservation.

Whatever sequence of allocations, deallocations, top-ups and spends runs against a
wallet, its stored balance equals the stored inflows (income transactions and live
allocations) minus the stored expenses, and matches what every call reported.
"""

from __future__ import annotations

import asyncio
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal

from hypothesis import given, settings, strategies as st
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from budget_ledger.core.clock import FixedClock
from budget_ledger.core.errors import DuplicateAllocation, InsufficientFunds
from budget_ledger.db import models
from budget_ledger.db.base import Base
from budget_ledger.services import budgets, daily, wallets
from budget_ledger.services.users import create_user

amounts = st.decimals(
    min_value=Decimal("0.01"), max_value=Decimal("500000"), places=3, allow_nan=False, allow_infinity=False
)
openings = st.decimals(
    min_value=Decimal("0"), max_value=Decimal("1000000"), places=3, allow_nan=False, allow_infinity=False
)
operations = st.lists(
    st.one_of(
        st.tuples(st.just("allocate"), st.integers(min_value=1, max_value=3), amounts),
        st.tuples(st.just("deallocate"), st.integers(min_value=1, max_value=3), st.just(Decimal("0"))),
        st.tuples(st.just("add_funds"), st.just(0), amounts),
        st.tuples(st.just("spend"), st.just(0), amounts),
    ),
    max_size=25,
)


async def _sum(session: AsyncSession, column, *criteria) -> Decimal:
    total = await session.scalar(select(func.coalesce(func.sum(column), 0)).where(*criteria))
    return Decimal(str(total)).quantize(Decimal("0.01"))


async def _replay(opening: Decimal, ops) -> tuple[Decimal, Decimal, Decimal]:
    """Return the stored balance, the balance implied by the calls, and the balance implied by the rows."""

    engine = create_async_engine(
        "sqlite+aiosqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)
    clock = FixedClock(datetime(2025, 3, 12, 9, 0))
    try:
        async with factory() as session:
            user = await create_user(session, "prop@example.com")
            user_id = user.id
            wallet = await wallets.create_wallet(session, clock, user_id, "BCA", "BANK", opening)
            wallet_id = wallet.id
            reported = wallet.balance
            budget_ids = {}
            for month in (1, 2, 3):
                budget = await budgets.create_budget(
                    session,
                    user_id,
                    month=month,
                    year=2025,
                    salary="1000",
                    saving_target="1000",
                    spending_target="1000",
                    weekly_budget="700",
                )
                budget_ids[month] = budget.id
            allocations: dict[int, tuple[int, Decimal]] = {}

            for kind, month, amount in ops:
                if kind == "allocate":
                    try:
                        allocation = await budgets.create_allocation(
                            session, user_id, budget_ids[month], wallet_id, amount
                        )
                    except DuplicateAllocation:
                        continue
                    allocations[month] = (allocation.id, allocation.amount)
                    reported += allocation.amount
                elif kind == "deallocate":
                    if month not in allocations:
                        continue
                    allocation_id, allocated = allocations.pop(month)
                    await budgets.delete_allocation(session, user_id, allocation_id)
                    reported -= allocated
                elif kind == "add_funds":
                    before = reported
                    topped_up = await wallets.add_funds(session, clock, user_id, wallet_id, amount)
                    reported = topped_up.balance
                    assert reported - before == amount.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
                else:
                    try:
                        result = await daily.record_expense(session, clock, user_id, wallet_id, amount)
                    except InsufficientFunds:
                        continue
                    assert result.wallet.previous_balance == reported
                    reported -= result.expense.amount
                    assert result.wallet.new_balance == reported

            final = await wallets.get_owned_wallet(session, user_id, wallet_id, for_update=True)
            from_rows = (
                await _sum(
                    session,
                    models.Transaction.amount,
                    models.Transaction.wallet_id == wallet_id,
                    models.Transaction.type == "INCOME",
                )
                + await _sum(session, models.Allocation.amount, models.Allocation.wallet_id == wallet_id)
                - await _sum(session, models.Expense.amount, models.Expense.wallet_id == wallet_id)
            )
            return final.balance, reported, from_rows
    finally:
        await engine.dispose()


@given(opening=openings, ops=operations)
@settings(max_examples=30, deadline=None)
def test_wallet_balance_is_conserved(opening: Decimal, ops):
    balance, reported, from_rows = asyncio.run(_replay(opening, ops))

    assert balance == reported
    assert balance == from_rows


@given(opening=openings, ops=operations)
@settings(max_examples=30, deadline=None)
def test_wallet_balance_never_driven_negative_by_spends(opening: Decimal, ops):
    spend_only = [op for op in ops if op[0] in {"spend", "add_funds"}]

    balance, _, _ = asyncio.run(_replay(opening, spend_only))

    assert balance >= 0
