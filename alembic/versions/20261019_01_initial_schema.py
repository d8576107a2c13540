"""Initial schema for the budget ledger"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa

revision = "20261019_01"
down_revision = None
branch_labels = None
depends_on = None


wallet_type = sa.Enum("BANK", "EWALLET", "CASH", name="wallet_type")
transaction_type = sa.Enum("INCOME", "EXPENSE", name="transaction_type")
expense_type = sa.Enum("MEAL", "OTHER", name="expense_type")


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now(), onupdate=sa.func.now()),
    ]


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=True),
        sa.Column("email", sa.String(length=255), nullable=False, unique=True),
        sa.Column("savings_balance", sa.Numeric(18, 2), nullable=False, server_default=sa.text("0")),
        *_timestamps(),
    )
    op.create_index("ix_users_email", "users", ["email"])

    op.create_table(
        "wallets",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("type", wallet_type, nullable=False),
        sa.Column("balance", sa.Numeric(18, 2), nullable=False, server_default=sa.text("0")),
        *_timestamps(),
    )
    op.create_index("ix_wallets_user_id", "wallets", ["user_id"])

    op.create_table(
        "budgets",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("month", sa.Integer(), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("salary", sa.Numeric(18, 2), nullable=False),
        sa.Column("saving_target", sa.Numeric(18, 2), nullable=False),
        sa.Column("spending_target", sa.Numeric(18, 2), nullable=False),
        sa.Column("weekly_budget", sa.Numeric(18, 2), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("user_id", "month", "year", name="uq_budgets_user_month_year"),
        sa.CheckConstraint("month BETWEEN 1 AND 12", name="ck_budgets_month_range"),
    )
    op.create_index("ix_budgets_user_id", "budgets", ["user_id"])

    op.create_table(
        "weekly_budgets",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("budget_id", sa.Integer(), sa.ForeignKey("budgets.id", ondelete="CASCADE"), nullable=False),
        sa.Column("week_number", sa.Integer(), nullable=False),
        sa.Column("planned_amount", sa.Numeric(18, 2), nullable=False),
        sa.Column("spent_amount", sa.Numeric(18, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("remaining_amount", sa.Numeric(18, 2), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("budget_id", "week_number", name="uq_weekly_budgets_budget_week"),
    )
    op.create_index("ix_weekly_budgets_budget_id", "weekly_budgets", ["budget_id"])

    op.create_table(
        "allocations",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("budget_id", sa.Integer(), sa.ForeignKey("budgets.id", ondelete="CASCADE"), nullable=False),
        sa.Column("wallet_id", sa.Integer(), sa.ForeignKey("wallets.id"), nullable=False),
        sa.Column("amount", sa.Numeric(18, 2), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("budget_id", "wallet_id", name="uq_allocations_budget_wallet"),
        sa.CheckConstraint("amount > 0", name="ck_allocations_amount_positive"),
    )
    op.create_index("ix_allocations_budget_id", "allocations", ["budget_id"])
    op.create_index("ix_allocations_wallet_id", "allocations", ["wallet_id"])

    op.create_table(
        "expenses",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("wallet_id", sa.Integer(), sa.ForeignKey("wallets.id", ondelete="SET NULL"), nullable=True),
        sa.Column("amount", sa.Numeric(18, 2), nullable=False),
        sa.Column("note", sa.Text(), nullable=True),
        sa.Column("date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("type", expense_type, nullable=False, server_default=sa.text("'MEAL'")),
        *_timestamps(),
        sa.CheckConstraint("amount > 0", name="ck_expenses_amount_positive"),
    )
    op.create_index("ix_expenses_user_id", "expenses", ["user_id"])
    op.create_index("ix_expenses_wallet_id", "expenses", ["wallet_id"])
    op.create_index("ix_expenses_date", "expenses", ["date"])
    op.create_index("ix_expenses_user_date", "expenses", ["user_id", "date"])

    op.create_table(
        "transactions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("wallet_id", sa.Integer(), sa.ForeignKey("wallets.id", ondelete="CASCADE"), nullable=False),
        sa.Column("type", transaction_type, nullable=False),
        sa.Column("amount", sa.Numeric(18, 2), nullable=False),
        sa.Column("note", sa.Text(), nullable=True),
        sa.Column("date", sa.DateTime(timezone=True), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_transactions_wallet_id", "transactions", ["wallet_id"])
    op.create_index("ix_transactions_date", "transactions", ["date"])

    op.create_table(
        "daily_records",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("daily_budget", sa.Numeric(18, 2), nullable=False),
        sa.Column("total_expense", sa.Numeric(18, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("daily_budget_remaining", sa.Numeric(18, 2), nullable=False),
        sa.Column("leftover", sa.Numeric(18, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("rolled_over", sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
        sa.UniqueConstraint("user_id", "date", name="uq_daily_records_user_date"),
    )
    op.create_index("ix_daily_records_user_id", "daily_records", ["user_id"])

    op.create_table(
        "weekly_records",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("week_start", sa.Date(), nullable=False),
        sa.Column("week_end", sa.DateTime(timezone=True), nullable=False),
        sa.Column("total_expenses", sa.Numeric(18, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("weekly_leftover", sa.Numeric(18, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("transferred_to_savings", sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
        sa.UniqueConstraint("user_id", "week_start", name="uq_weekly_records_user_week"),
    )
    op.create_index("ix_weekly_records_user_id", "weekly_records", ["user_id"])
    op.create_index("ix_weekly_records_week_start", "weekly_records", ["week_start"])


def downgrade() -> None:
    op.drop_index("ix_weekly_records_week_start", table_name="weekly_records")
    op.drop_index("ix_weekly_records_user_id", table_name="weekly_records")
    op.drop_table("weekly_records")

    op.drop_index("ix_daily_records_user_id", table_name="daily_records")
    op.drop_table("daily_records")

    op.drop_index("ix_transactions_date", table_name="transactions")
    op.drop_index("ix_transactions_wallet_id", table_name="transactions")
    op.drop_table("transactions")
    transaction_type.drop(op.get_bind(), checkfirst=True)

    op.drop_index("ix_expenses_user_date", table_name="expenses")
    op.drop_index("ix_expenses_date", table_name="expenses")
    op.drop_index("ix_expenses_wallet_id", table_name="expenses")
    op.drop_index("ix_expenses_user_id", table_name="expenses")
    op.drop_table("expenses")
    expense_type.drop(op.get_bind(), checkfirst=True)

    op.drop_index("ix_allocations_wallet_id", table_name="allocations")
    op.drop_index("ix_allocations_budget_id", table_name="allocations")
    op.drop_table("allocations")

    op.drop_index("ix_weekly_budgets_budget_id", table_name="weekly_budgets")
    op.drop_table("weekly_budgets")

    op.drop_index("ix_budgets_user_id", table_name="budgets")
    op.drop_table("budgets")

    op.drop_index("ix_wallets_user_id", table_name="wallets")
    op.drop_table("wallets")
    wallet_type.drop(op.get_bind(), checkfirst=True)

    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")
