from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel

from budget_ledger.schemas.wallets import WalletSummary


class ExpenseCreate(BaseModel):
    amount: Optional[Decimal] = None
    wallet_id: Optional[int] = None
    note: Optional[str] = None


class ExpenseResponse(BaseModel):
    id: int
    amount: Decimal
    note: Optional[str]
    date: datetime
    type: str
    wallet: Optional[WalletSummary] = None

    class Config:
        from_attributes = True


class DailyRecordState(BaseModel):
    date: date
    daily_budget: Decimal
    total_expense: Decimal
    daily_budget_remaining: Decimal
    leftover: Decimal
    is_over_budget: bool = False


class WalletMovement(BaseModel):
    id: int
    name: str
    type: str
    previous_balance: Decimal
    new_balance: Decimal


class ExpenseRecorded(BaseModel):
    expense: ExpenseResponse
    daily_record: DailyRecordState
    wallet: WalletMovement
