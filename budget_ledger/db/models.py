from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from budget_ledger.db.base import Base

WALLET_TYPES = ("BANK", "EWALLET", "CASH")
TRANSACTION_TYPES = ("INCOME", "EXPENSE")
EXPENSE_TYPES = ("MEAL", "OTHER")

Money = Numeric(18, 2)


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=datetime.utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )


class User(Base, TimestampMixin):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str | None] = mapped_column(String(255))
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    savings_balance: Mapped[Decimal] = mapped_column(Money, default=Decimal("0"), nullable=False)

    wallets: Mapped[list["Wallet"]] = relationship(back_populates="user")
    budgets: Mapped[list["Budget"]] = relationship(back_populates="user")


class Wallet(Base, TimestampMixin):
    __tablename__ = "wallets"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    name: Mapped[str] = mapped_column(String(120), nullable=False)
    type: Mapped[str] = mapped_column(Enum(*WALLET_TYPES, name="wallet_type"), nullable=False)
    balance: Mapped[Decimal] = mapped_column(Money, default=Decimal("0"), nullable=False)

    user: Mapped[User] = relationship(back_populates="wallets")
    transactions: Mapped[list["Transaction"]] = relationship(
        back_populates="wallet", cascade="all, delete-orphan"
    )


class Budget(Base, TimestampMixin):
    __tablename__ = "budgets"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    month: Mapped[int] = mapped_column(Integer, nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    salary: Mapped[Decimal] = mapped_column(Money, nullable=False)
    saving_target: Mapped[Decimal] = mapped_column(Money, nullable=False)
    spending_target: Mapped[Decimal] = mapped_column(Money, nullable=False)
    weekly_budget: Mapped[Decimal] = mapped_column(Money, nullable=False)

    user: Mapped[User] = relationship(back_populates="budgets")
    weekly_budgets: Mapped[list["WeeklyBudget"]] = relationship(
        back_populates="budget", order_by="WeeklyBudget.week_number"
    )
    allocations: Mapped[list["Allocation"]] = relationship(back_populates="budget")

    __table_args__ = (
        UniqueConstraint("user_id", "month", "year", name="uq_budgets_user_month_year"),
        CheckConstraint("month BETWEEN 1 AND 12", name="ck_budgets_month_range"),
    )


class WeeklyBudget(Base, TimestampMixin):
    __tablename__ = "weekly_budgets"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    budget_id: Mapped[int] = mapped_column(ForeignKey("budgets.id", ondelete="CASCADE"), index=True)
    week_number: Mapped[int] = mapped_column(Integer, nullable=False)
    planned_amount: Mapped[Decimal] = mapped_column(Money, nullable=False)
    spent_amount: Mapped[Decimal] = mapped_column(Money, default=Decimal("0"), nullable=False)
    remaining_amount: Mapped[Decimal] = mapped_column(Money, nullable=False)

    budget: Mapped[Budget] = relationship(back_populates="weekly_budgets")

    __table_args__ = (
        UniqueConstraint("budget_id", "week_number", name="uq_weekly_budgets_budget_week"),
    )


class Allocation(Base, TimestampMixin):
    __tablename__ = "allocations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    budget_id: Mapped[int] = mapped_column(ForeignKey("budgets.id", ondelete="CASCADE"), index=True)
    wallet_id: Mapped[int] = mapped_column(ForeignKey("wallets.id"), index=True)
    amount: Mapped[Decimal] = mapped_column(Money, nullable=False)

    budget: Mapped[Budget] = relationship(back_populates="allocations")
    wallet: Mapped[Wallet] = relationship()

    __table_args__ = (
        UniqueConstraint("budget_id", "wallet_id", name="uq_allocations_budget_wallet"),
        CheckConstraint("amount > 0", name="ck_allocations_amount_positive"),
    )


class Expense(Base, TimestampMixin):
    __tablename__ = "expenses"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    wallet_id: Mapped[int | None] = mapped_column(
        ForeignKey("wallets.id", ondelete="SET NULL"), index=True
    )
    amount: Mapped[Decimal] = mapped_column(Money, nullable=False)
    note: Mapped[str | None] = mapped_column(Text)
    date: Mapped[datetime] = mapped_column(DateTime(timezone=True), index=True)
    type: Mapped[str] = mapped_column(
        Enum(*EXPENSE_TYPES, name="expense_type"), default="MEAL", nullable=False
    )

    wallet: Mapped[Wallet | None] = relationship()

    __table_args__ = (
        Index("ix_expenses_user_date", "user_id", "date"),
        CheckConstraint("amount > 0", name="ck_expenses_amount_positive"),
    )


class Transaction(Base, TimestampMixin):
    __tablename__ = "transactions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    wallet_id: Mapped[int] = mapped_column(ForeignKey("wallets.id", ondelete="CASCADE"), index=True)
    type: Mapped[str] = mapped_column(
        Enum(*TRANSACTION_TYPES, name="transaction_type"), nullable=False
    )
    amount: Mapped[Decimal] = mapped_column(Money, nullable=False)
    note: Mapped[str | None] = mapped_column(Text)
    date: Mapped[datetime] = mapped_column(DateTime(timezone=True), index=True)

    wallet: Mapped[Wallet] = relationship(back_populates="transactions")


class DailyRecord(Base, TimestampMixin):
    __tablename__ = "daily_records"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    date: Mapped[date] = mapped_column(Date, nullable=False)
    daily_budget: Mapped[Decimal] = mapped_column(Money, nullable=False)
    total_expense: Mapped[Decimal] = mapped_column(Money, default=Decimal("0"), nullable=False)
    daily_budget_remaining: Mapped[Decimal] = mapped_column(Money, nullable=False)
    leftover: Mapped[Decimal] = mapped_column(Money, default=Decimal("0"), nullable=False)
    rolled_over: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    __table_args__ = (
        UniqueConstraint("user_id", "date", name="uq_daily_records_user_date"),
    )


class WeeklyRecord(Base, TimestampMixin):
    __tablename__ = "weekly_records"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    week_start: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    week_end: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    total_expenses: Mapped[Decimal] = mapped_column(Money, default=Decimal("0"), nullable=False)
    weekly_leftover: Mapped[Decimal] = mapped_column(Money, default=Decimal("0"), nullable=False)
    transferred_to_savings: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    user: Mapped[User] = relationship()

    __table_args__ = (
        UniqueConstraint("user_id", "week_start", name="uq_weekly_records_user_week"),
    )
