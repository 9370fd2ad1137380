"""Gig state machine: the only forward path a gig can take.

Gig lifecycle:
    OPEN → IN_PROGRESS → COMPLETED

State semantics:
- OPEN: posted and funded; payment sits in the escrow pool.
  Accounts may apply.
- IN_PROGRESS: the ledger owner assigned one applicant to the work.
- COMPLETED: terminal, payment released to the assigned applicant.

Each state maps to the single state it may advance to (None for the
terminal state). Any other move is refused.
"""

from __future__ import annotations

from typing import Optional

from gigledger.errors import UnauthorizedError
from gigledger.models.ledger import Gig, GigStatus


_NEXT_STATUS: dict[GigStatus, Optional[GigStatus]] = {
    GigStatus.OPEN: GigStatus.IN_PROGRESS,
    GigStatus.IN_PROGRESS: GigStatus.COMPLETED,
    GigStatus.COMPLETED: None,
}

if set(_NEXT_STATUS) != set(GigStatus):
    raise RuntimeError("Gig lifecycle table must cover every GigStatus")


class GigStateMachine:
    """Gatekeeper for gig status changes.

    The engine calls ``require`` while validating, before it touches any
    balance, and sets ``gig.status`` itself once every check has passed.
    """

    @staticmethod
    def require(gig: Gig, target: GigStatus) -> None:
        """Raise UnauthorizedError unless ``gig`` may advance to ``target``."""
        expected = _NEXT_STATUS[gig.status]
        if expected is target:
            return
        if expected is None:
            reason = f"{gig.status.value} is final"
        else:
            reason = f"from {gig.status.value} it can only become {expected.value}"
        raise UnauthorizedError(
            f"Gig {gig.gig_id} cannot move {gig.status.value} → {target.value}: {reason}"
        )
