"""Currency custody: deposits, withdrawals, and atomic balance moves.

Currency is an opaque non-negative integer. Anything holding it
exposes a mutable ``balance`` attribute: accounts hold their own funds,
and the ledger root holds the pooled escrow for every unfinished gig.

A move between two holders is all-or-nothing: sufficiency is checked
before either side is touched, and both sides are updated before the
function returns. Withdrawals fail rather than saturate at zero.

Like the gig state machine, this module has no side effects beyond the
balances it is handed. Locking and notifications belong to the engine.
"""

from __future__ import annotations

from typing import Protocol

from gigledger.errors import InsufficientFundsError


class BalanceHolder(Protocol):
    balance: int


def check_amount(amount: int) -> None:
    """Reject anything that is not a non-negative ``int``.

    ``bool`` is refused even though it subclasses ``int``.
    """
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise TypeError(
            f"Currency amount must be an int, got {type(amount).__name__}"
        )
    if amount < 0:
        raise ValueError(f"Currency amount must be non-negative, got {amount}")


def deposit(holder: BalanceHolder, amount: int) -> int:
    """Credit ``amount`` to the holder. Returns the new balance."""
    check_amount(amount)
    holder.balance += amount
    return holder.balance


def withdraw(holder: BalanceHolder, amount: int) -> int:
    """Debit ``amount`` from the holder. Returns the new balance.

    Raises InsufficientFundsError if the balance cannot cover it.
    """
    check_amount(amount)
    if holder.balance < amount:
        raise InsufficientFundsError(holder.balance, amount)
    holder.balance -= amount
    return holder.balance


def transfer(source: BalanceHolder, target: BalanceHolder, amount: int) -> None:
    """Move ``amount`` from source to target as one step.

    Raises InsufficientFundsError (with both balances untouched) if the
    source cannot cover the amount.
    """
    check_amount(amount)
    if source.balance < amount:
        raise InsufficientFundsError(source.balance, amount)
    source.balance -= amount
    target.balance += amount
