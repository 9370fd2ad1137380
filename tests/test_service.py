"""Tests for GigLedgerService: proves the facade orchestrates correctly."""

from pathlib import Path

import pytest

from gigledger.models.ledger import GigStatus
from gigledger.persistence.event_log import EventKind, EventLog
from gigledger.persistence.state_store import StateStore
from gigledger.service import GigLedgerService

OWNER = "platform"


@pytest.fixture
def service() -> GigLedgerService:
    svc = GigLedgerService(event_log=EventLog())
    assert svc.create_ledger(OWNER).success
    return svc


def _setup_gig(service: GigLedgerService) -> tuple[int, int, int]:
    poster = service.register_account("poster").data["account_id"]
    worker = service.register_account("worker").data["account_id"]
    assert service.fund_account(poster, 100).success
    gig_id = service.post_gig(poster, "fix bug", 40, 1767225600).data["gig_id"]
    return poster, worker, gig_id


class TestLedgerCreation:
    def test_operations_need_a_ledger(self) -> None:
        svc = GigLedgerService()
        result = svc.register_account("alice")
        assert not result.success
        assert "create_ledger" in result.errors[0]
        assert svc.status()["ledger"] is None

    def test_create_only_once(self, service: GigLedgerService) -> None:
        result = service.create_ledger("someone-else")
        assert not result.success
        assert service.engine is not None
        assert service.engine.owner == OWNER

    def test_blank_owner_rejected(self) -> None:
        assert not GigLedgerService().create_ledger("  ").success


class TestOperations:
    def test_full_lifecycle(self, service: GigLedgerService) -> None:
        poster, worker, gig_id = _setup_gig(service)

        result = service.apply_for_gig(worker, gig_id)
        assert result.success
        assert result.data["applicant_ids"] == [worker]

        result = service.assign_gig(gig_id, worker, caller=OWNER)
        assert result.success
        assert result.data == {
            "gig_id": gig_id, "assigned_to": worker, "status": "in_progress",
        }

        result = service.complete_gig(gig_id, worker, caller=OWNER)
        assert result.success
        assert result.data["applicant_balance"] == 40
        assert result.data["status"] == "completed"

        account = service.get_account(poster)
        assert account is not None
        assert account.balance == 60
        assert service.check_invariants() == []

    def test_post_reports_escrow(self, service: GigLedgerService) -> None:
        poster = service.register_account("poster").data["account_id"]
        service.fund_account(poster, 50)
        result = service.post_gig(poster, "fix bug", 30, 0)
        assert result.data == {"gig_id": 0, "status": "open", "escrow_balance": 30}

    def test_unauthorized_is_typed(self, service: GigLedgerService) -> None:
        _, worker, gig_id = _setup_gig(service)
        service.apply_for_gig(worker, gig_id)
        result = service.assign_gig(gig_id, worker, caller="mallory")
        assert not result.success
        assert result.error_kind == "unauthorized"

    def test_not_found_is_typed(self, service: GigLedgerService) -> None:
        result = service.fund_account(12, 10)
        assert not result.success
        assert result.error_kind == "not_found"

    def test_invalid_amount_has_no_kind(self, service: GigLedgerService) -> None:
        user = service.register_account("alice").data["account_id"]
        result = service.fund_account(user, -1)
        assert not result.success
        assert result.error_kind is None

    def test_non_int_payment_rejected(self, service: GigLedgerService) -> None:
        poster, _, _ = _setup_gig(service)
        result = service.post_gig(poster, "float pay", 2.5, 0)  # type: ignore[arg-type]
        assert not result.success
        assert "must be an int" in result.errors[0]
        assert [g.gig_id for g in service.list_gigs()] == [0]
        assert service.check_invariants() == []

    def test_rejection_writes_no_event(self, service: GigLedgerService) -> None:
        before = len(service.events())
        service.post_gig(99, "ghost", 1, 0)
        assert len(service.events()) == before


class TestQueries:
    def test_lookup_missing(self, service: GigLedgerService) -> None:
        assert service.get_account(3) is None
        assert service.get_gig(3) is None

    def test_list_gigs_by_status(self, service: GigLedgerService) -> None:
        poster, worker, gig_id = _setup_gig(service)
        service.post_gig(poster, "second", 10, 0)
        service.apply_for_gig(worker, gig_id)
        service.assign_gig(gig_id, worker, caller=OWNER)

        assert len(service.list_gigs()) == 2
        assert [g.gig_id for g in service.list_gigs(GigStatus.OPEN)] == [1]
        assert [g.gig_id for g in service.list_gigs(GigStatus.IN_PROGRESS)] == [0]
        assert service.list_gigs(GigStatus.COMPLETED) == []

    def test_events_by_kind(self, service: GigLedgerService) -> None:
        _setup_gig(service)
        assert len(service.events(EventKind.ACCOUNT_REGISTERED)) == 2
        assert len(service.events(EventKind.GIG_POSTED)) == 1

    def test_status_summary(self, service: GigLedgerService) -> None:
        _setup_gig(service)
        status = service.status()
        assert status["ledger"] == {
            "owner": OWNER, "escrow_balance": 40, "total_deposited": 100,
        }
        assert status["accounts"] == {"total": 2, "total_balance": 60}
        assert status["gigs"]["by_status"] == {
            "open": 1, "in_progress": 0, "completed": 0,
        }
        assert status["persistence_degraded"] is False


class TestPersistence:
    def test_state_survives_restart(self, tmp_path: Path) -> None:
        events = tmp_path / "events.jsonl"
        state = tmp_path / "state.json"

        first = GigLedgerService(EventLog(events), StateStore(state))
        first.create_ledger(OWNER)
        _, worker, gig_id = _setup_gig(first)
        first.apply_for_gig(worker, gig_id)

        second = GigLedgerService(EventLog(events), StateStore(state))
        assert second.engine is not None
        assert second.engine.owner == OWNER
        result = second.assign_gig(gig_id, worker, caller=OWNER)
        assert result.success
        assert second.events()[-1].event_kind == EventKind.GIG_ASSIGNED
        assert second.events()[-1].event_id == "EVT-00000007"

    def test_state_write_failure_degrades(self, tmp_path: Path) -> None:
        class BrokenStore(StateStore):
            def _save(self) -> None:
                raise OSError("read-only filesystem")

        svc = GigLedgerService(state_store=BrokenStore(tmp_path / "state.json"))
        result = svc.create_ledger(OWNER)
        assert result.success
        assert "Persistence degraded" in result.data["warning"]

        result = svc.register_account("alice")
        assert result.success
        assert svc.get_account(0) is not None
        assert svc.status()["persistence_degraded"] is True

    def test_audit_failure_is_reported(self, tmp_path: Path) -> None:
        class BrokenLog(EventLog):
            fail = False

            def append(self, event) -> None:
                if self.fail:
                    raise OSError("disk full")
                super().append(event)

        log = BrokenLog()
        svc = GigLedgerService(event_log=log)
        svc.create_ledger(OWNER)
        log.fail = True
        result = svc.register_account("alice")
        assert not result.success
        assert "Event log failure" in result.errors[0]
        assert svc.status()["accounts"]["total"] == 0
