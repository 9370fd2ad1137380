"""Gig ledger service: unified facade for hosting a ledger.

This is the primary interface for programmatic access. It wraps one
LedgerEngine and adds what a host needs around it:
- Ledger creation and recovery from the state store
- Typed results instead of exceptions for rejected operations
- Audit event log wiring
- State persistence after every committed mutation
- Read-only queries and a system status summary

Audit events are written by the engine as part of each mutation, so a
failed audit write rolls the mutation back. State store writes happen
after the audit trail is durable; a failed state write therefore never
undoes the mutation, it only marks persistence as degraded.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from gigledger import __version__
from gigledger.engine.ledger_engine import LedgerEngine
from gigledger.errors import LedgerError, NotFoundError
from gigledger.models.ledger import Account, Gig, GigStatus
from gigledger.persistence.event_log import EventKind, EventLog, EventRecord
from gigledger.persistence.state_store import StateStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ServiceResult:
    """Result of a service operation.

    ``error_kind`` is set for rejected ledger operations
    ("not_found" or "unauthorized") and None otherwise.
    """
    success: bool
    errors: list[str] = field(default_factory=list)
    data: dict[str, Any] = field(default_factory=dict)
    error_kind: Optional[str] = None


class GigLedgerService:
    """Ledger host facade.

    Usage:
        service = GigLedgerService()
        service.create_ledger("platform")
        alice = service.register_account("alice").data["account_id"]
        service.fund_account(alice, 100)
        result = service.post_gig(alice, "fix bug", 40, deadline=1767225600)

    Persistence (optional):
        service = GigLedgerService(event_log=log, state_store=store)
        # The ledger is loaded on construction and saved on each mutation.
    """

    def __init__(
        self,
        event_log: Optional[EventLog] = None,
        state_store: Optional[StateStore] = None,
    ) -> None:
        self._event_log = event_log
        self._state_store = state_store
        self._engine: Optional[LedgerEngine] = None
        self._persistence_degraded = False

        if state_store is not None:
            root = state_store.load_ledger()
            if root is not None:
                self._engine = LedgerEngine(root, event_log=event_log)
                logger.debug(
                    "Loaded ledger: %d accounts, %d gigs",
                    root.account_count, root.gig_count,
                )

    @property
    def engine(self) -> Optional[LedgerEngine]:
        return self._engine

    # ------------------------------------------------------------------
    # Ledger lifecycle
    # ------------------------------------------------------------------

    def create_ledger(self, caller: str) -> ServiceResult:
        """Create the ledger, owned by ``caller``. Only once per host."""
        if self._engine is not None:
            return ServiceResult(
                success=False,
                errors=[f"Ledger already exists (owner: {self._engine.owner})"],
            )
        if not caller or not caller.strip():
            return ServiceResult(success=False, errors=["Ledger owner must be non-empty"])
        try:
            self._engine = LedgerEngine.create(caller, event_log=self._event_log)
        except (ValueError, OSError) as e:
            return ServiceResult(success=False, errors=[f"Event log failure: {e}"])
        return self._committed({"owner": caller})

    # ------------------------------------------------------------------
    # Ledger operations
    # ------------------------------------------------------------------

    def register_account(self, name: str) -> ServiceResult:
        return self._execute(
            "register_account",
            lambda engine: {"account_id": engine.register_account(name)},
        )

    def fund_account(self, user_id: int, deposit_amount: int) -> ServiceResult:
        def _fund(engine: LedgerEngine) -> dict[str, Any]:
            engine.fund_account(user_id, deposit_amount)
            return {
                "account_id": user_id,
                "balance": engine.get_account(user_id).balance,
            }
        return self._execute("fund_account", _fund)

    def post_gig(
        self,
        poster_id: int,
        description: str,
        payment: int,
        deadline: int,
    ) -> ServiceResult:
        def _post(engine: LedgerEngine) -> dict[str, Any]:
            gig_id = engine.post_gig(poster_id, description, payment, deadline)
            return {
                "gig_id": gig_id,
                "status": GigStatus.OPEN.value,
                "escrow_balance": engine.summary()["ledger"]["escrow_balance"],
            }
        return self._execute("post_gig", _post)

    def apply_for_gig(self, user_id: int, gig_id: int) -> ServiceResult:
        def _apply(engine: LedgerEngine) -> dict[str, Any]:
            engine.apply_for_gig(user_id, gig_id)
            return {
                "gig_id": gig_id,
                "applicant_ids": list(engine.get_gig(gig_id).applicant_ids),
            }
        return self._execute("apply_for_gig", _apply)

    def assign_gig(self, gig_id: int, user_id: int, caller: str) -> ServiceResult:
        def _assign(engine: LedgerEngine) -> dict[str, Any]:
            engine.assign_gig(gig_id, user_id, caller)
            gig = engine.get_gig(gig_id)
            return {
                "gig_id": gig_id,
                "assigned_to": gig.assigned_to,
                "status": gig.status.value,
            }
        return self._execute("assign_gig", _assign)

    def complete_gig(self, gig_id: int, applicant_id: int, caller: str) -> ServiceResult:
        def _complete(engine: LedgerEngine) -> dict[str, Any]:
            engine.complete_gig(gig_id, applicant_id, caller)
            gig = engine.get_gig(gig_id)
            return {
                "gig_id": gig_id,
                "status": gig.status.value,
                "payment": gig.payment,
                "applicant_balance": engine.get_account(applicant_id).balance,
            }
        return self._execute("complete_gig", _complete)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    # Records come straight from the engine and must be treated as read-only.

    def get_account(self, account_id: int) -> Optional[Account]:
        if self._engine is None:
            return None
        try:
            return self._engine.get_account(account_id)
        except NotFoundError:
            return None

    def get_gig(self, gig_id: int) -> Optional[Gig]:
        if self._engine is None:
            return None
        try:
            return self._engine.get_gig(gig_id)
        except NotFoundError:
            return None

    def list_gigs(self, status: Optional[GigStatus] = None) -> list[Gig]:
        if self._engine is None:
            return []
        return self._engine.list_gigs(status)

    def events(self, kind: Optional[EventKind] = None) -> list[EventRecord]:
        if self._event_log is None:
            return []
        return self._event_log.events(kind)

    def check_invariants(self) -> list[str]:
        if self._engine is None:
            return []
        return self._engine.check_invariants()

    def status(self) -> dict[str, Any]:
        """Return system-wide status summary."""
        if self._engine is None:
            return {
                "version": __version__,
                "ledger": None,
                "persistence_degraded": self._persistence_degraded,
            }
        return {
            "version": __version__,
            **self._engine.summary(),
            "events": self._event_log.count if self._event_log is not None else 0,
            "persistence_degraded": self._persistence_degraded,
        }

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _execute(
        self,
        action: str,
        operation: Callable[[LedgerEngine], dict[str, Any]],
    ) -> ServiceResult:
        """Run one engine operation and convert its outcome to a result."""
        if self._engine is None:
            return ServiceResult(
                success=False,
                errors=["No ledger exists; call create_ledger() first"],
            )
        try:
            data = operation(self._engine)
        except LedgerError as e:
            logger.warning("%s rejected (%s): %s", action, e.kind.value, e)
            return ServiceResult(
                success=False, errors=[str(e)], error_kind=e.kind.value,
            )
        except (TypeError, ValueError) as e:
            logger.warning("%s rejected: %s", action, e)
            return ServiceResult(success=False, errors=[str(e)])
        except OSError as e:
            return ServiceResult(success=False, errors=[f"Event log failure: {e}"])
        return self._committed(data)

    def _committed(self, data: dict[str, Any]) -> ServiceResult:
        warning = self._safe_persist_post_audit()
        if warning:
            data["warning"] = warning
        return ServiceResult(success=True, data=data)

    def _safe_persist_post_audit(self) -> Optional[str]:
        """Persist state after audit events have been committed.

        MUST NOT roll back in-memory state; the audit trail is already
        durable. Sets the degraded flag and returns a warning instead.
        """
        if self._state_store is None or self._engine is None:
            return None
        try:
            self._state_store.save_ledger(self._engine.snapshot())
            return None
        except OSError as e:
            self._persistence_degraded = True
            logger.warning("State store write failed: %s", e)
            return (
                f"Persistence degraded: {e}; state committed in audit trail "
                f"but StateStore is stale"
            )
