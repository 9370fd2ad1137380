"""Compensation subsystem: currency custody for accounts and the escrow pool."""

from gigledger.compensation.custody import check_amount, deposit, transfer, withdraw

__all__ = [
    "check_amount",
    "deposit",
    "transfer",
    "withdraw",
]
