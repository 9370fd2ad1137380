"""Tests for gig state machine: lifecycle transitions."""

import pytest

from gigledger.errors import ErrorKind, UnauthorizedError
from gigledger.market.gig_state_machine import GigStateMachine
from gigledger.models.ledger import Gig, GigStatus


def _make_gig(status: GigStatus = GigStatus.OPEN) -> Gig:
    return Gig(
        gig_id=0,
        description="Test gig",
        payment=40,
        deadline=0,
        poster_id=0,
        status=status,
    )


class TestForwardMoves:
    @pytest.mark.parametrize("current,target", [
        (GigStatus.OPEN, GigStatus.IN_PROGRESS),
        (GigStatus.IN_PROGRESS, GigStatus.COMPLETED),
    ])
    def test_next_status_allowed(self, current: GigStatus, target: GigStatus) -> None:
        gig = _make_gig(current)
        GigStateMachine.require(gig, target)
        assert gig.status == current


class TestRefusedMoves:
    def test_open_cannot_skip_to_completed(self) -> None:
        with pytest.raises(UnauthorizedError) as exc:
            GigStateMachine.require(_make_gig(GigStatus.OPEN), GigStatus.COMPLETED)
        assert exc.value.kind == ErrorKind.UNAUTHORIZED
        assert "open → completed" in str(exc.value)
        assert "can only become in_progress" in str(exc.value)

    def test_no_backward_moves(self) -> None:
        with pytest.raises(UnauthorizedError):
            GigStateMachine.require(_make_gig(GigStatus.IN_PROGRESS), GigStatus.OPEN)

    @pytest.mark.parametrize("status", list(GigStatus))
    def test_no_self_moves(self, status: GigStatus) -> None:
        with pytest.raises(UnauthorizedError):
            GigStateMachine.require(_make_gig(status), status)

    @pytest.mark.parametrize("target", list(GigStatus))
    def test_completed_is_final(self, target: GigStatus) -> None:
        gig = _make_gig(GigStatus.COMPLETED)
        with pytest.raises(UnauthorizedError, match="completed is final"):
            GigStateMachine.require(gig, target)
        assert gig.status == GigStatus.COMPLETED
