"""Ledger models: accounts, gigs, and the ledger root.

Currency is a plain non-negative integer. Balances only move between
an account and the pooled escrow balance on the root; the only way new
currency enters is an account deposit.

Gig lifecycle: OPEN → IN_PROGRESS → COMPLETED (strictly forward)

Entities are never deleted. Accounts and gigs live in append-only
arenas on the root and are addressed by their sequential integer id,
which is also their index.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Optional


class GigStatus(str, enum.Enum):
    """Lifecycle state of a gig."""
    OPEN = "open"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


@dataclass
class Account:
    """A registered marketplace participant."""
    account_id: int
    name: str
    balance: int = 0
    posted_gig_ids: list[int] = field(default_factory=list)
    applied_gig_ids: list[int] = field(default_factory=list)


@dataclass
class Gig:
    """A posted unit of work with a fixed, escrowed payment.

    The deadline is informational only; nothing enforces it.
    """
    gig_id: int
    description: str
    payment: int
    deadline: int
    poster_id: int
    applicant_ids: list[int] = field(default_factory=list)
    status: GigStatus = GigStatus.OPEN
    assigned_to: Optional[int] = None

    def has_applied(self, account_id: int) -> bool:
        return account_id in self.applicant_ids


@dataclass
class LedgerRoot:
    """The single shared aggregate holding all ledger state.

    ``balance`` is the pooled escrow: the payments of every posted gig
    that has not yet completed. ``total_deposited`` counts every unit
    ever funded into an account, so account balances plus the pool
    always add up to it.
    """
    owner: str
    balance: int = 0
    accounts: list[Account] = field(default_factory=list)
    gigs: list[Gig] = field(default_factory=list)
    account_count: int = 0
    gig_count: int = 0
    total_deposited: int = 0

    def find_account(self, account_id: int) -> Optional[Account]:
        if 0 <= account_id < self.account_count:
            return self.accounts[account_id]
        return None

    def find_gig(self, gig_id: int) -> Optional[Gig]:
        if 0 <= gig_id < self.gig_count:
            return self.gigs[gig_id]
        return None

    def total_account_balance(self) -> int:
        return sum(a.balance for a in self.accounts)
