"""Ledger engine: the single owner of all ledger state.

The engine holds one LedgerRoot and exposes the operations that mutate
it. Every operation follows the same shape:

1. Validate every precondition (nothing has been touched yet).
2. Mutate state, moving currency through the custody helpers.
3. Commit: write the audit record (if an event log is attached) and
   emit the notification. If the audit write fails, the mutation is
   rolled back and the error propagates.

All of this happens under one re-entrant lock per engine, so callers on
different threads always observe a fully settled ledger. A rejected
operation raises a LedgerError and leaves the ledger exactly as it was.

Assignment policy: the target must already be an applicant and the gig
must still be OPEN. Completion pays only the applicant the gig was
assigned to.
"""

from __future__ import annotations

import copy
import logging
import threading
from typing import Any, Callable, Optional

from gigledger.compensation import custody
from gigledger.errors import NotFoundError, UnauthorizedError
from gigledger.market.gig_state_machine import GigStateMachine
from gigledger.models.ledger import Account, Gig, GigStatus, LedgerRoot
from gigledger.models.notification import (
    AccountFunded,
    GigApplied,
    GigAssigned,
    GigCompleted,
    GigPosted,
    Notification,
    notification_payload,
)
from gigledger.persistence.event_log import EventKind, EventLog, EventRecord

logger = logging.getLogger(__name__)

Subscriber = Callable[[Notification], None]


def create_ledger(caller: str) -> LedgerRoot:
    """Create a fresh, empty ledger owned by ``caller``."""
    return LedgerRoot(owner=caller)


class LedgerEngine:
    """Serialized access to one ledger.

    Usage:
        engine = LedgerEngine.create("platform")
        alice = engine.register_account("alice")
        bob = engine.register_account("bob")
        engine.fund_account(alice, 100)
        gig_id = engine.post_gig(alice, "fix bug", 40, deadline=1767225600)
        engine.apply_for_gig(bob, gig_id)
        engine.assign_gig(gig_id, bob, caller="platform")
        engine.complete_gig(gig_id, bob, caller="platform")
    """

    def __init__(
        self,
        ledger: LedgerRoot,
        event_log: Optional[EventLog] = None,
    ) -> None:
        self._ledger = ledger
        self._event_log = event_log
        self._lock = threading.RLock()
        self._subscribers: list[Subscriber] = []

    @classmethod
    def create(
        cls,
        caller: str,
        event_log: Optional[EventLog] = None,
    ) -> LedgerEngine:
        """Create a new ledger owned by ``caller`` and wrap it in an engine."""
        engine = cls(create_ledger(caller), event_log=event_log)
        engine._audit(EventKind.LEDGER_CREATED, caller, {"owner": caller})
        logger.info("Ledger created (owner=%s)", caller)
        return engine

    @property
    def ledger(self) -> LedgerRoot:
        """The live ledger root. Read-only for callers; mutate through operations."""
        return self._ledger

    @property
    def owner(self) -> str:
        return self._ledger.owner

    def subscribe(self, callback: Subscriber) -> None:
        """Register an in-process observer for emitted notifications."""
        with self._lock:
            self._subscribers.append(callback)

    # ------------------------------------------------------------------
    # Accounts
    # ------------------------------------------------------------------

    def register_account(self, name: str) -> int:
        """Append a new zero-balance account. Returns its id.

        Open to any caller. Emits no notification; the audit log still
        records the registration.
        """
        with self._lock:
            root = self._ledger
            account_id = root.account_count
            root.accounts.append(Account(account_id=account_id, name=name))
            root.account_count += 1

            def _rollback() -> None:
                root.accounts.pop()
                root.account_count -= 1

            self._audit(
                EventKind.ACCOUNT_REGISTERED,
                str(account_id),
                {"account_id": account_id, "name": name},
                rollback=_rollback,
            )
            logger.debug("Registered account %d (%s)", account_id, name)
            return account_id

    def fund_account(self, user_id: int, deposit_amount: int) -> None:
        """Deposit external currency into an account's balance."""
        custody.check_amount(deposit_amount)
        with self._lock:
            root = self._ledger
            account = self._account(user_id)
            custody.deposit(account, deposit_amount)
            root.total_deposited += deposit_amount

            def _rollback() -> None:
                custody.withdraw(account, deposit_amount)
                root.total_deposited -= deposit_amount

            self._commit(
                AccountFunded(user_id=user_id, amount=deposit_amount),
                actor_id=str(user_id),
                rollback=_rollback,
            )

    # ------------------------------------------------------------------
    # Gig lifecycle
    # ------------------------------------------------------------------

    def post_gig(
        self,
        poster_id: int,
        description: str,
        payment: int,
        deadline: int,
    ) -> int:
        """Post a gig, escrowing its payment from the poster. Returns its id.

        Raises:
            NotFoundError: the poster account does not exist.
            InsufficientFundsError: the poster cannot cover the payment.
            TypeError / ValueError: the payment is not a non-negative int.
        """
        custody.check_amount(payment)
        with self._lock:
            root = self._ledger
            poster = self._account(poster_id)

            custody.transfer(poster, root, payment)
            gig_id = root.gig_count
            root.gigs.append(Gig(
                gig_id=gig_id,
                description=description,
                payment=payment,
                deadline=deadline,
                poster_id=poster_id,
            ))
            poster.posted_gig_ids.append(gig_id)
            root.gig_count += 1

            def _rollback() -> None:
                root.gig_count -= 1
                poster.posted_gig_ids.pop()
                root.gigs.pop()
                custody.transfer(root, poster, payment)

            self._commit(
                GigPosted(gig_id=gig_id, description=description, payment=payment),
                actor_id=str(poster_id),
                rollback=_rollback,
            )
            return gig_id

    def apply_for_gig(self, user_id: int, gig_id: int) -> None:
        """Add an account to a gig's applicants.

        Applications are accepted in any gig status.
        """
        with self._lock:
            gig = self._gig(gig_id)
            account = self._account(user_id)
            if gig.has_applied(user_id):
                raise UnauthorizedError(
                    f"Account {user_id} has already applied to gig {gig_id}"
                )

            gig.applicant_ids.append(user_id)
            account.applied_gig_ids.append(gig_id)

            def _rollback() -> None:
                gig.applicant_ids.pop()
                account.applied_gig_ids.pop()

            self._commit(
                GigApplied(gig_id=gig_id, user_id=user_id),
                actor_id=str(user_id),
                rollback=_rollback,
            )

    def assign_gig(self, gig_id: int, user_id: int, caller: str) -> None:
        """Assign an applicant to an OPEN gig. Owner only."""
        with self._lock:
            self._require_owner(caller, "assign gigs")
            gig = self._gig(gig_id)
            self._account(user_id)
            if user_id == gig.poster_id:
                raise UnauthorizedError(
                    f"Account {user_id} posted gig {gig_id} and cannot be assigned to it"
                )
            if not gig.has_applied(user_id):
                raise UnauthorizedError(
                    f"Account {user_id} has not applied to gig {gig_id}"
                )
            GigStateMachine.require(gig, GigStatus.IN_PROGRESS)

            gig.status = GigStatus.IN_PROGRESS
            gig.assigned_to = user_id

            def _rollback() -> None:
                gig.status = GigStatus.OPEN
                gig.assigned_to = None

            self._commit(
                GigAssigned(gig_id=gig_id, assigned_to=user_id),
                actor_id=caller,
                rollback=_rollback,
            )

    def complete_gig(self, gig_id: int, applicant_id: int, caller: str) -> None:
        """Mark an IN_PROGRESS gig completed and release its escrow. Owner only."""
        with self._lock:
            root = self._ledger
            self._require_owner(caller, "complete gigs")
            gig = self._gig(gig_id)
            GigStateMachine.require(gig, GigStatus.COMPLETED)
            if not gig.has_applied(applicant_id):
                raise UnauthorizedError(
                    f"Account {applicant_id} never applied to gig {gig_id}"
                )
            if applicant_id != gig.assigned_to:
                raise UnauthorizedError(
                    f"Gig {gig_id} is assigned to account {gig.assigned_to}, "
                    f"not {applicant_id}"
                )
            applicant = self._account(applicant_id)

            custody.transfer(root, applicant, gig.payment)
            gig.status = GigStatus.COMPLETED

            def _rollback() -> None:
                gig.status = GigStatus.IN_PROGRESS
                custody.transfer(applicant, root, gig.payment)

            self._commit(
                GigCompleted(
                    gig_id=gig_id, applicant_id=applicant_id, payment=gig.payment,
                ),
                actor_id=caller,
                rollback=_rollback,
            )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    # Queries return the engine's own records, not copies. Treat them as
    # read-only; every change must go through an operation above.

    def get_account(self, account_id: int) -> Account:
        with self._lock:
            return self._account(account_id)

    def get_gig(self, gig_id: int) -> Gig:
        with self._lock:
            return self._gig(gig_id)

    def list_gigs(self, status: Optional[GigStatus] = None) -> list[Gig]:
        """Return gigs in id order, optionally only those in ``status``."""
        with self._lock:
            return [
                g for g in self._ledger.gigs
                if status is None or g.status == status
            ]

    def snapshot(self) -> LedgerRoot:
        """Deep copy of the ledger root, safe to serialize or mutate."""
        with self._lock:
            return copy.deepcopy(self._ledger)

    def summary(self) -> dict[str, Any]:
        """Totals for the whole ledger, read as one consistent snapshot."""
        with self._lock:
            root = self._ledger
            by_status: dict[str, int] = {s.value: 0 for s in GigStatus}
            for gig in root.gigs:
                by_status[gig.status.value] += 1
            return {
                "ledger": {
                    "owner": root.owner,
                    "escrow_balance": root.balance,
                    "total_deposited": root.total_deposited,
                },
                "accounts": {
                    "total": root.account_count,
                    "total_balance": root.total_account_balance(),
                },
                "gigs": {
                    "total": root.gig_count,
                    "by_status": by_status,
                },
            }

    def check_invariants(self) -> list[str]:
        """Check ledger-wide invariants. Returns violations (empty = OK)."""
        with self._lock:
            root = self._ledger
            errors: list[str] = []

            if root.account_count != len(root.accounts):
                errors.append(
                    f"account_count {root.account_count} != {len(root.accounts)} accounts"
                )
            if root.gig_count != len(root.gigs):
                errors.append(f"gig_count {root.gig_count} != {len(root.gigs)} gigs")

            if root.balance < 0:
                errors.append(f"Escrow pool balance is negative: {root.balance}")
            for index, account in enumerate(root.accounts):
                if account.account_id != index:
                    errors.append(f"Account at index {index} has id {account.account_id}")
                if account.balance < 0:
                    errors.append(
                        f"Account {account.account_id} balance is negative: {account.balance}"
                    )

            held = root.total_account_balance() + root.balance
            if held != root.total_deposited:
                errors.append(
                    f"Currency not conserved: accounts + escrow = {held}, "
                    f"deposited = {root.total_deposited}"
                )

            escrowed = sum(
                g.payment for g in root.gigs if g.status != GigStatus.COMPLETED
            )
            if escrowed != root.balance:
                errors.append(
                    f"Escrow pool {root.balance} != unfinished gig payments {escrowed}"
                )

            for index, gig in enumerate(root.gigs):
                if gig.gig_id != index:
                    errors.append(f"Gig at index {index} has id {gig.gig_id}")
                if gig.assigned_to is not None and gig.assigned_to == gig.poster_id:
                    errors.append(f"Gig {gig.gig_id} is assigned to its own poster")
                if (gig.status == GigStatus.OPEN) != (gig.assigned_to is None):
                    errors.append(
                        f"Gig {gig.gig_id} in state {gig.status.value} has "
                        f"assignee {gig.assigned_to}"
                    )
                if len(set(gig.applicant_ids)) != len(gig.applicant_ids):
                    errors.append(f"Gig {gig.gig_id} has duplicate applicants")

            return errors

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _require_owner(self, caller: str, action: str) -> None:
        if caller != self._ledger.owner:
            raise UnauthorizedError(f"Only the ledger owner may {action} (caller: {caller})")

    def _account(self, account_id: int) -> Account:
        account = self._ledger.find_account(account_id)
        if account is None:
            raise NotFoundError(f"Account not found: {account_id}")
        return account

    def _gig(self, gig_id: int) -> Gig:
        gig = self._ledger.find_gig(gig_id)
        if gig is None:
            raise NotFoundError(f"Gig not found: {gig_id}")
        return gig

    def _audit(
        self,
        kind: EventKind,
        actor_id: str,
        payload: dict[str, Any],
        rollback: Optional[Callable[[], None]] = None,
    ) -> None:
        """Append an audit record, undoing the mutation if the write fails."""
        if self._event_log is None:
            return
        try:
            self._event_log.append(EventRecord.create(
                event_id=self._event_log.next_event_id(),
                event_kind=kind,
                actor_id=actor_id,
                payload=payload,
            ))
        except Exception:
            if rollback is not None:
                rollback()
            logger.error("Audit write failed for %s; mutation rolled back", kind.value)
            raise

    def _commit(
        self,
        notification: Notification,
        actor_id: str,
        rollback: Callable[[], None],
    ) -> None:
        """Record and emit the notification for a completed mutation."""
        self._audit(
            EventKind(notification.kind),
            actor_id,
            notification_payload(notification),
            rollback=rollback,
        )
        logger.debug("Committed %s: %s", notification.kind, notification)

        for callback in list(self._subscribers):
            try:
                callback(notification)
            except Exception:
                logger.exception(
                    "Notification subscriber failed on %s", notification.kind,
                )
