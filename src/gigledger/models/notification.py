"""Notifications: flat, immutable facts emitted by successful mutations.

Each successful ledger mutation emits exactly one notification,
synchronously and inside the same lock scope as the mutation itself.
Delivery beyond that (indexers, UIs) is up to the subscribers.

The ``kind`` of each notification matches an ``EventKind`` value in the
audit event log, so a notification can be written there unchanged.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, ClassVar, Union


@dataclass(frozen=True)
class GigPosted:
    kind: ClassVar[str] = "gig_posted"
    gig_id: int
    description: str
    payment: int


@dataclass(frozen=True)
class GigApplied:
    kind: ClassVar[str] = "gig_applied"
    gig_id: int
    user_id: int


@dataclass(frozen=True)
class GigAssigned:
    kind: ClassVar[str] = "gig_assigned"
    gig_id: int
    assigned_to: int


@dataclass(frozen=True)
class AccountFunded:
    kind: ClassVar[str] = "account_funded"
    user_id: int
    amount: int


@dataclass(frozen=True)
class GigCompleted:
    kind: ClassVar[str] = "gig_completed"
    gig_id: int
    applicant_id: int
    payment: int


Notification = Union[GigPosted, GigApplied, GigAssigned, AccountFunded, GigCompleted]


def notification_payload(notification: Notification) -> dict[str, Any]:
    """Return the notification's fields as a plain dict."""
    return asdict(notification)
