"""Ledger errors.

Two kinds cover every rejected operation:
- NOT_FOUND: a referenced account or gig does not exist.
- UNAUTHORIZED: the caller may not do this, or the ledger state forbids
  it (not the owner, insufficient funds, self-assignment, duplicate
  application, wrong gig status, applicant not on the gig).

A raised LedgerError always means nothing was changed.
"""

from __future__ import annotations

import enum


class ErrorKind(str, enum.Enum):
    NOT_FOUND = "not_found"
    UNAUTHORIZED = "unauthorized"


class LedgerError(Exception):
    """Base class for rejected ledger operations."""

    kind: ErrorKind


class NotFoundError(LedgerError):
    """Raised when a referenced account or gig does not exist."""

    kind = ErrorKind.NOT_FOUND


class UnauthorizedError(LedgerError):
    """Raised when an operation is not permitted."""

    kind = ErrorKind.UNAUTHORIZED


class InsufficientFundsError(UnauthorizedError):
    """Raised when a balance cannot cover a withdrawal."""

    def __init__(self, balance: int, amount: int) -> None:
        super().__init__(f"Insufficient funds: balance {balance} < amount {amount}")
        self.balance = balance
        self.amount = amount
