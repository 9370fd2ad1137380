"""Data models: ledger aggregate, accounts, gigs, and notifications."""

from gigledger.models.ledger import Account, Gig, GigStatus, LedgerRoot
from gigledger.models.notification import (
    AccountFunded,
    GigApplied,
    GigAssigned,
    GigCompleted,
    GigPosted,
    Notification,
)

__all__ = [
    "Account",
    "AccountFunded",
    "Gig",
    "GigApplied",
    "GigAssigned",
    "GigCompleted",
    "GigPosted",
    "GigStatus",
    "LedgerRoot",
    "Notification",
]
