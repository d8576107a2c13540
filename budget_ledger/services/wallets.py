"""
Wallet balance manager.

``apply_delta`` is the only code path that writes ``Wallet.balance``; allocation,
add-funds and expense flows call it inside their own atomic unit.
"""

from __future__ import annotations

from decimal import Decimal

from loguru import logger
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from budget_ledger.core.clock import Clock
from budget_ledger.core.config import get_settings
from budget_ledger.core.errors import (
    InsufficientFunds,
    InvalidAmount,
    InvalidInput,
    WalletInUse,
    WalletNotFound,
)
from budget_ledger.core.money import ZERO, format_amount, to_decimal
from budget_ledger.db import models
from budget_ledger.db.session import atomic
from budget_ledger.schemas.wallets import WalletHistoryEntry

settings = get_settings()

OPENING_BALANCE_NOTE = "Saldo awal"
ADD_FUNDS_NOTE = "Tambah saldo"


def insufficient_funds(balance: Decimal, required: Decimal) -> InsufficientFunds:
    return InsufficientFunds(
        "Saldo dompet tidak mencukupi. "
        f"Saldo {format_amount(balance, settings.currency)}, "
        f"butuh {format_amount(required, settings.currency)}",
        balance=balance,
        required=required,
    )


async def get_owned_wallet(
    session: AsyncSession, user_id: int, wallet_id: int | None, *, for_update: bool = False
) -> models.Wallet:
    if wallet_id is None:
        raise WalletNotFound("Dompet tidak ditemukan")
    stmt = select(models.Wallet).where(
        models.Wallet.id == wallet_id, models.Wallet.user_id == user_id
    )
    if for_update:
        stmt = stmt.with_for_update().execution_options(populate_existing=True)
    wallet = await session.scalar(stmt)
    if wallet is None:
        raise WalletNotFound("Dompet tidak ditemukan")
    return wallet


async def apply_delta(
    session: AsyncSession, wallet_id: int, amount: Decimal, *, spend: bool = False
) -> models.Wallet:
    """Add ``amount`` (signed) to the wallet balance within the caller's transaction.

    Only spends are checked against the balance; allocation, deallocation and
    add-funds deltas are applied as given.
    """

    stmt = (
        select(models.Wallet)
        .where(models.Wallet.id == wallet_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    wallet = await session.scalar(stmt)
    if wallet is None:
        raise WalletNotFound("Dompet tidak ditemukan")

    new_balance = wallet.balance + amount
    if spend and new_balance < ZERO:
        raise insufficient_funds(wallet.balance, -amount)

    wallet.balance = new_balance
    await session.flush()
    return wallet


async def add_funds(
    session: AsyncSession, clock: Clock, user_id: int, wallet_id: int, amount: object
) -> models.Wallet:
    value = to_decimal(amount)
    if value is None or value <= ZERO:
        raise InvalidAmount("Nominal harus lebih dari 0")

    await get_owned_wallet(session, user_id, wallet_id)
    async with atomic(session):
        wallet = await apply_delta(session, wallet_id, value)
        session.add(
            models.Transaction(
                wallet_id=wallet_id,
                type="INCOME",
                amount=value,
                note=ADD_FUNDS_NOTE,
                date=clock.now(),
            )
        )

    logger.info("Funds added", user_id=user_id, wallet_id=wallet_id, amount=str(value))
    return wallet


def _normalize_wallet_fields(name: str | None, wallet_type: str | None) -> tuple[str, str]:
    if not name or not name.strip() or not wallet_type:
        raise InvalidInput("Nama dan tipe dompet harus diisi")
    normalized = wallet_type.strip().upper()
    if normalized not in models.WALLET_TYPES:
        raise InvalidInput(
            "Tipe dompet tidak valid", allowed=list(models.WALLET_TYPES)
        )
    return name.strip(), normalized


async def create_wallet(
    session: AsyncSession,
    clock: Clock,
    user_id: int,
    name: str | None,
    wallet_type: str | None,
    balance: object = 0,
) -> models.Wallet:
    name, wallet_type = _normalize_wallet_fields(name, wallet_type)
    opening = to_decimal(balance)
    if opening is None or opening < ZERO:
        raise InvalidAmount("Saldo awal tidak boleh negatif")

    async with atomic(session):
        wallet = models.Wallet(user_id=user_id, name=name, type=wallet_type, balance=opening)
        session.add(wallet)
        await session.flush()
        if opening > ZERO:
            session.add(
                models.Transaction(
                    wallet_id=wallet.id,
                    type="INCOME",
                    amount=opening,
                    note=OPENING_BALANCE_NOTE,
                    date=clock.now(),
                )
            )

    logger.info("Wallet created", user_id=user_id, wallet_id=wallet.id, type=wallet_type)
    return wallet


async def update_wallet(
    session: AsyncSession,
    user_id: int,
    wallet_id: int,
    name: str | None,
    wallet_type: str | None,
) -> models.Wallet:
    name, wallet_type = _normalize_wallet_fields(name, wallet_type)
    wallet = await get_owned_wallet(session, user_id, wallet_id)
    async with atomic(session):
        wallet.name = name
        wallet.type = wallet_type
    return wallet


async def delete_wallet(session: AsyncSession, user_id: int, wallet_id: int) -> None:
    wallet = await get_owned_wallet(session, user_id, wallet_id)
    allocation_id = await session.scalar(
        select(models.Allocation.id).where(models.Allocation.wallet_id == wallet_id).limit(1)
    )
    if allocation_id is not None:
        raise WalletInUse("Dompet masih memiliki alokasi budget dan tidak bisa dihapus")

    async with atomic(session):
        await session.delete(wallet)
    logger.info("Wallet deleted", user_id=user_id, wallet_id=wallet_id)


async def list_wallets(session: AsyncSession, user_id: int) -> list[models.Wallet]:
    stmt = (
        select(models.Wallet)
        .where(models.Wallet.user_id == user_id)
        .order_by(models.Wallet.created_at.desc(), models.Wallet.id.desc())
    )
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def list_wallet_history(
    session: AsyncSession, user_id: int, wallet_id: int
) -> tuple[models.Wallet, list[WalletHistoryEntry]]:
    wallet = await get_owned_wallet(session, user_id, wallet_id)

    tx_result = await session.execute(
        select(models.Transaction).where(models.Transaction.wallet_id == wallet_id)
    )
    expense_result = await session.execute(
        select(models.Expense).where(
            models.Expense.wallet_id == wallet_id, models.Expense.user_id == user_id
        )
    )

    items = [
        WalletHistoryEntry(
            source="transaction", id=tx.id, type=tx.type, amount=tx.amount, note=tx.note, date=tx.date
        )
        for tx in tx_result.scalars().all()
    ]
    items.extend(
        WalletHistoryEntry(
            source="expense",
            id=expense.id,
            type="EXPENSE",
            amount=expense.amount,
            note=expense.note,
            date=expense.date,
        )
        for expense in expense_result.scalars().all()
    )
    items.sort(key=lambda entry: (entry.date, entry.id), reverse=True)
    return wallet, items
