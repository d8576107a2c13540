from datetime import date
from decimal import Decimal

from pydantic import BaseModel

from budget_ledger.schemas.expenses import ExpenseResponse


class DashboardUser(BaseModel):
    name: str | None
    email: str
    savings_balance: Decimal


class DailySection(BaseModel):
    date: date
    budget: Decimal
    remaining: Decimal
    spent: Decimal
    leftover: Decimal
    is_over_budget: bool
    expenses: list[ExpenseResponse]


class WeeklySection(BaseModel):
    week_start: date
    week_end: date
    total_expenses: Decimal
    daily_average: Decimal
    days_into_week: int
    weekly_leftover: Decimal
    transferred_to_savings: bool


class MonthlySection(BaseModel):
    month: int
    year: int
    has_budget: bool
    saving_target: Decimal
    spending_target: Decimal
    month_to_date_expenses: Decimal
    savings: Decimal


class DashboardResponse(BaseModel):
    user: DashboardUser
    daily: DailySection
    weekly: WeeklySection
    monthly: MonthlySection
