from datetime import datetime
from decimal import Decimal
from typing import Literal, Optional

from pydantic import BaseModel


class WalletCreate(BaseModel):
    name: Optional[str] = None
    type: Optional[str] = None
    balance: Decimal = Decimal("0")


class WalletUpdate(BaseModel):
    name: Optional[str] = None
    type: Optional[str] = None


class AddFundsRequest(BaseModel):
    amount: Optional[Decimal] = None


class WalletSummary(BaseModel):
    id: int
    name: str
    type: str

    class Config:
        from_attributes = True


class WalletResponse(WalletSummary):
    balance: Decimal
    created_at: datetime


class AddFundsResponse(BaseModel):
    success: bool = True
    message: str
    new_balance: Decimal
    amount_added: Decimal


class WalletHistoryEntry(BaseModel):
    source: Literal["transaction", "expense"]
    id: int
    type: str
    amount: Decimal
    note: Optional[str] = None
    date: datetime


class WalletHistory(BaseModel):
    wallet: WalletResponse
    items: list[WalletHistoryEntry]
    total: int
