from __future__ import annotations

from datetime import datetime
from decimal import Decimal

import pytest
from sqlalchemy import func, select

from budget_ledger.core.errors import (
    InsufficientFunds,
    InvalidAmount,
    InvalidInput,
    WalletInUse,
    WalletNotFound,
)
from budget_ledger.db import models
from budget_ledger.services import budgets, daily, wallets


class TestWalletLifecycle:
    """Wallet creation, edits and deletion."""

    async def test_opening_balance_writes_income_transaction(self, session, clock, user):
        wallet = await wallets.create_wallet(session, clock, user.id, " GoPay ", "ewallet", "250000")

        assert wallet.name == "GoPay"
        assert wallet.type == "EWALLET"
        assert wallet.balance == Decimal("250000")

        txs = (await session.execute(select(models.Transaction))).scalars().all()
        assert len(txs) == 1
        assert txs[0].type == "INCOME"
        assert txs[0].amount == Decimal("250000")
        assert txs[0].note == wallets.OPENING_BALANCE_NOTE

    async def test_zero_opening_balance_has_no_transaction(self, session, clock, user):
        await wallets.create_wallet(session, clock, user.id, "Dompet", "CASH")

        count = await session.scalar(select(func.count(models.Transaction.id)))
        assert count == 0

    async def test_rejects_unknown_type_and_missing_name(self, session, clock, user):
        with pytest.raises(InvalidInput):
            await wallets.create_wallet(session, clock, user.id, "Kartu", "CREDIT")
        with pytest.raises(InvalidInput):
            await wallets.create_wallet(session, clock, user.id, "", "BANK")
        with pytest.raises(InvalidAmount):
            await wallets.create_wallet(session, clock, user.id, "BCA", "BANK", "-1")

    async def test_update_uppercases_type(self, session, user, wallet):
        updated = await wallets.update_wallet(session, user.id, wallet.id, "Mandiri", "cash")

        assert updated.name == "Mandiri"
        assert updated.type == "CASH"

    async def test_other_users_wallet_is_not_found(self, session, wallet, other_user):
        with pytest.raises(WalletNotFound):
            await wallets.get_owned_wallet(session, other_user.id, wallet.id)
        with pytest.raises(WalletNotFound):
            await wallets.update_wallet(session, other_user.id, wallet.id, "X", "BANK")

    async def test_delete_refused_while_allocated(self, session, user, wallet, march_budget):
        await budgets.create_allocation(session, user.id, march_budget.id, wallet.id, "200000")

        with pytest.raises(WalletInUse):
            await wallets.delete_wallet(session, user.id, wallet.id)

    async def test_delete_removes_wallet(self, session, user, wallet):
        await wallets.delete_wallet(session, user.id, wallet.id)

        assert await wallets.list_wallets(session, user.id) == []

    async def test_delete_keeps_expense_history(self, session, clock, user, wallet):
        result = await daily.record_expense(session, clock, user.id, wallet.id, "25000", "Bakso")

        await wallets.delete_wallet(session, user.id, wallet.id)

        expense = await session.get(models.Expense, result.expense.id)
        await session.refresh(expense)
        assert expense.wallet_id is None
        assert expense.amount == Decimal("25000")
        assert await session.scalar(select(func.count(models.Transaction.id))) == 0

    async def test_list_is_newest_first_and_scoped(self, session, clock, user, other_user, wallet):
        second = await wallets.create_wallet(session, clock, user.id, "OVO", "EWALLET")
        await wallets.create_wallet(session, clock, other_user.id, "Lain", "CASH")

        listed = await wallets.list_wallets(session, user.id)
        assert [w.id for w in listed] == [second.id, wallet.id]


class TestBalanceDeltas:
    async def test_add_funds(self, session, clock, user, wallet):
        updated = await wallets.add_funds(session, clock, user.id, wallet.id, "150000")

        assert updated.balance == Decimal("650000")
        notes = (await session.execute(select(models.Transaction.note))).scalars().all()
        assert wallets.ADD_FUNDS_NOTE in notes

    @pytest.mark.parametrize("amount", [0, "0", -5, None, "abc"])
    async def test_add_funds_requires_positive_amount(self, session, clock, user, wallet, amount):
        with pytest.raises(InvalidAmount):
            await wallets.add_funds(session, clock, user.id, wallet.id, amount)

        await session.refresh(wallet)
        assert wallet.balance == Decimal("500000")

    async def test_spend_cannot_go_negative(self, session, wallet):
        with pytest.raises(InsufficientFunds) as excinfo:
            await wallets.apply_delta(session, wallet.id, Decimal("-600000"), spend=True)

        assert excinfo.value.shortfall == Decimal("100000")
        await session.rollback()
        await session.refresh(wallet)
        assert wallet.balance == Decimal("500000")

    async def test_non_spend_delta_is_never_rejected(self, session, wallet):
        updated = await wallets.apply_delta(session, wallet.id, Decimal("-600000"))

        assert updated.balance == Decimal("-100000")

    async def test_history_merges_transactions_and_expenses(self, session, clock, user, wallet):
        from budget_ledger.services.daily import record_expense

        clock.advance_to(datetime(2025, 3, 12, 12, 0))
        await record_expense(session, clock, user.id, wallet.id, "25000", "Makan siang")
        clock.advance_to(datetime(2025, 3, 12, 18, 0))
        await wallets.add_funds(session, clock, user.id, wallet.id, "10000")

        _, items = await wallets.list_wallet_history(session, user.id, wallet.id)

        assert [(item.source, item.type) for item in items] == [
            ("transaction", "INCOME"),
            ("expense", "EXPENSE"),
            ("transaction", "INCOME"),
        ]
