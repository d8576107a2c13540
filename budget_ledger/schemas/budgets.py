from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from budget_ledger.schemas.wallets import WalletSummary


class BudgetPayload(BaseModel):
    month: Optional[int] = None
    year: Optional[int] = None
    salary: Optional[Decimal] = None
    saving_target: Optional[Decimal] = None
    spending_target: Optional[Decimal] = None
    weekly_budget: Optional[Decimal] = None


class WeeklyBudgetCreate(BaseModel):
    budget_id: Optional[int] = None
    week_number: Optional[int] = None
    planned_amount: Optional[Decimal] = None


class WeeklyBudgetResponse(BaseModel):
    id: int
    budget_id: int
    week_number: int
    planned_amount: Decimal
    spent_amount: Decimal
    remaining_amount: Decimal

    class Config:
        from_attributes = True


class AllocationCreate(BaseModel):
    budget_id: Optional[int] = None
    wallet_id: Optional[int] = None
    amount: Optional[Decimal] = None


class AllocationResponse(BaseModel):
    id: int
    budget_id: int
    wallet_id: int
    amount: Decimal
    wallet: Optional[WalletSummary] = None

    class Config:
        from_attributes = True


class BudgetResponse(BaseModel):
    id: int
    month: int
    year: int
    salary: Decimal
    saving_target: Decimal
    spending_target: Decimal
    weekly_budget: Decimal
    created_at: datetime
    weekly_budgets: list[WeeklyBudgetResponse] = Field(default_factory=list)
    allocations: list[AllocationResponse] = Field(default_factory=list)

    class Config:
        from_attributes = True


class BudgetSpending(BaseModel):
    total_spent: Decimal
    spending_target: Decimal
    spending_progress: float
    expenses_count: int


class WalletAllocation(BaseModel):
    wallet: WalletSummary
    current_balance: Decimal
    static_allocation: Decimal
    dynamic_allocation: Decimal
    meal_expenses: Decimal
    other_transactions: Decimal
    net_change: Decimal


class AllocationTotals(BaseModel):
    total_static_allocations: Decimal
    total_dynamic_allocations: Decimal
    total_meal_expenses: Decimal
    remaining_salary: Decimal
    budget_utilization: float


class BudgetAllocationSummary(BaseModel):
    budget_id: int
    month: int
    year: int
    salary: Decimal
    weekly_budget: Decimal
    wallet_allocations: list[WalletAllocation]
    summary: AllocationTotals


class MessageResponse(BaseModel):
    message: str
