from decimal import Decimal

from pydantic import BaseModel


class UserCreate(BaseModel):
    name: str | None = None
    email: str


class UserResponse(BaseModel):
    id: int
    name: str | None
    email: str
    savings_balance: Decimal

    class Config:
        from_attributes = True
