from datetime import date
from decimal import Decimal

from pydantic import BaseModel


class DailyResetReport(BaseModel):
    message: str = "Daily reset completed successfully"
    date: date
    processed_users: int
    failed_users: int
    folded_users: int
    total_folded: Decimal
    stranded_users: int = 0
    total_stranded: Decimal = Decimal("0")


class WeeklySettlementReport(BaseModel):
    message: str = "Weekly calculation completed successfully"
    week_start: date
    processed_records: int
    failed_records: int
    total_transferred: Decimal
