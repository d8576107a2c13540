"""
Domain errors raised by the ledger services.

Every error carries the HTTP status the API layer answers with and whether the
caller may simply retry the same request.
"""

from decimal import Decimal
from typing import Any


class LedgerError(Exception):
    """Base exception for ledger-related errors."""

    status_code: int = 400

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        retryable: bool = False,
        **details: Any,
    ):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.retryable = retryable
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"error": self.message}
        for key, value in self.details.items():
            payload[key] = float(value) if isinstance(value, Decimal) else value
        return payload


class Unauthorized(LedgerError):
    """Raised when no user identity (or no valid scheduler secret) was resolved."""

    status_code = 401


class NotFound(LedgerError):
    """Raised when an entity is absent or not owned by the caller."""

    status_code = 404


class UserNotFound(NotFound):
    pass


class BudgetNotFound(NotFound):
    pass


class WalletNotFound(NotFound):
    pass


class AllocationNotFound(NotFound):
    pass


class InvalidInput(LedgerError):
    """Raised when a required field is missing or zero."""

    status_code = 400


class InvalidAmount(InvalidInput):
    pass


class WalletInUse(InvalidInput):
    """Raised when deleting a wallet that still has allocations."""


class DuplicateBudget(LedgerError):
    status_code = 409


class DuplicateAllocation(LedgerError):
    status_code = 409


class DuplicateWeek(LedgerError):
    status_code = 409


class InsufficientFunds(LedgerError):
    """Raised when a spend would drive a wallet balance negative."""

    status_code = 400

    def __init__(self, message: str, balance: Decimal, required: Decimal):
        super().__init__(
            message,
            balance=balance,
            required=required,
            shortfall=required - balance,
        )
        self.balance = balance
        self.required = required
        self.shortfall = required - balance


class TransactionFailed(LedgerError):
    """Raised when the store could not commit an atomic unit. Safe to retry."""

    status_code = 503

    def __init__(self, message: str = "Transaksi gagal disimpan, coba lagi"):
        super().__init__(message, retryable=True)
