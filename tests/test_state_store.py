"""Tests for the JSON state store: the ledger survives a restart."""

import json
from pathlib import Path

import pytest

from gigledger.engine.ledger_engine import LedgerEngine
from gigledger.models.ledger import GigStatus
from gigledger.persistence.state_store import StateStore


def _populated_engine() -> LedgerEngine:
    engine = LedgerEngine.create("platform")
    poster = engine.register_account("poster")
    worker = engine.register_account("worker")
    engine.fund_account(poster, 100)
    first = engine.post_gig(poster, "fix bug", 40, 1767225600)
    engine.post_gig(poster, "write docs", 25, 0)
    engine.apply_for_gig(worker, first)
    engine.assign_gig(first, worker, caller="platform")
    return engine


class TestStateStore:
    def test_empty_store_has_no_ledger(self, tmp_path: Path) -> None:
        store = StateStore(tmp_path / "state.json")
        assert store.load_ledger() is None

    def test_roundtrip(self, tmp_path: Path) -> None:
        engine = _populated_engine()
        path = tmp_path / "state.json"
        StateStore(path).save_ledger(engine.ledger)

        restored = StateStore(path).load_ledger()
        assert restored == engine.ledger
        assert restored is not None
        assert restored.gigs[0].status == GigStatus.IN_PROGRESS
        assert restored.gigs[0].assigned_to == 1
        assert restored.accounts[1].applied_gig_ids == [0]

    def test_restored_ledger_keeps_working(self, tmp_path: Path) -> None:
        path = tmp_path / "state.json"
        StateStore(path).save_ledger(_populated_engine().ledger)

        root = StateStore(path).load_ledger()
        assert root is not None
        engine = LedgerEngine(root)
        engine.complete_gig(0, 1, caller="platform")
        assert engine.get_account(1).balance == 40
        assert engine.register_account("third") == 2
        assert engine.check_invariants() == []

    def test_counter_mismatch_rejected(self, tmp_path: Path) -> None:
        path = tmp_path / "state.json"
        StateStore(path).save_ledger(_populated_engine().ledger)
        data = json.loads(path.read_text(encoding="utf-8"))
        data["ledger"]["gig_count"] = 5
        path.write_text(json.dumps(data), encoding="utf-8")

        with pytest.raises(ValueError, match="Corrupt ledger state"):
            StateStore(path).load_ledger()

    @pytest.mark.parametrize("ledger", [
        {"owner": "platform"},
        {"owner": "platform", "balance": 0, "account_count": 0, "gig_count": 1,
         "gigs": [{"gig_id": 0}]},
        {"owner": "platform", "balance": 0, "account_count": 0, "gig_count": 0,
         "accounts": [None]},
    ])
    def test_missing_fields_rejected(self, tmp_path: Path, ledger: dict) -> None:
        path = tmp_path / "state.json"
        path.write_text(json.dumps({"ledger": ledger}), encoding="utf-8")

        with pytest.raises(ValueError, match="Corrupt ledger state"):
            StateStore(path).load_ledger()

    def test_unknown_status_rejected(self, tmp_path: Path) -> None:
        path = tmp_path / "state.json"
        StateStore(path).save_ledger(_populated_engine().ledger)
        data = json.loads(path.read_text(encoding="utf-8"))
        data["ledger"]["gigs"][0]["status"] = "cancelled"
        path.write_text(json.dumps(data), encoding="utf-8")

        with pytest.raises(ValueError, match="Corrupt ledger state"):
            StateStore(path).load_ledger()
