"""State store: JSON-based persistence for the ledger aggregate.

Stores and recovers the whole ledger root in one document:
- owner identity, pooled escrow balance, id counters, deposit total
- every account (balance, posted and applied gig ids)
- every gig (terms, applicants, status, assignee)

This is a simple file-based store suitable for a single-node host.
Replication and ordering across nodes are the host's concern.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from gigledger.models.ledger import Account, Gig, GigStatus, LedgerRoot


class StateStore:
    """JSON file-based state persistence.

    Usage:
        store = StateStore(Path("data/ledger_state.json"))
        store.save_ledger(root)

        # On recovery:
        root = store.load_ledger()
    """

    def __init__(self, storage_path: Path) -> None:
        self._path = storage_path
        self._state: dict[str, Any] = {}
        if storage_path.exists():
            self._load()

    def _load(self) -> None:
        with self._path.open("r", encoding="utf-8") as f:
            self._state = json.load(f)

    def _save(self) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        with self._path.open("w", encoding="utf-8") as f:
            json.dump(self._state, f, indent=2, sort_keys=True, ensure_ascii=False)

    def save_ledger(self, root: LedgerRoot) -> None:
        """Serialize the ledger root to state."""
        self._state["ledger"] = {
            "owner": root.owner,
            "balance": root.balance,
            "account_count": root.account_count,
            "gig_count": root.gig_count,
            "total_deposited": root.total_deposited,
            "accounts": [
                {
                    "account_id": a.account_id,
                    "name": a.name,
                    "balance": a.balance,
                    "posted_gig_ids": list(a.posted_gig_ids),
                    "applied_gig_ids": list(a.applied_gig_ids),
                }
                for a in root.accounts
            ],
            "gigs": [
                {
                    "gig_id": g.gig_id,
                    "description": g.description,
                    "payment": g.payment,
                    "deadline": g.deadline,
                    "poster_id": g.poster_id,
                    "applicant_ids": list(g.applicant_ids),
                    "status": g.status.value,
                    "assigned_to": g.assigned_to,
                }
                for g in root.gigs
            ],
            "saved_utc": datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ"),
        }
        self._save()

    def load_ledger(self) -> Optional[LedgerRoot]:
        """Deserialize the ledger root from state.

        Returns None if no ledger has been saved yet. Raises ValueError
        if the stored document is missing fields or is inconsistent.
        """
        data = self._state.get("ledger")
        if data is None:
            return None
        try:
            root = self._decode(data)
        except (KeyError, TypeError, ValueError) as e:
            raise ValueError(f"Corrupt ledger state in {self._path}: {e!r}") from e

        if root.account_count != len(root.accounts) or root.gig_count != len(root.gigs):
            raise ValueError(
                f"Corrupt ledger state in {self._path}: counters "
                f"({root.account_count} accounts, {root.gig_count} gigs) do not "
                f"match stored records ({len(root.accounts)} accounts, "
                f"{len(root.gigs)} gigs)"
            )
        return root

    @staticmethod
    def _decode(data: dict[str, Any]) -> LedgerRoot:
        accounts = [
            Account(
                account_id=ad["account_id"],
                name=ad["name"],
                balance=ad["balance"],
                posted_gig_ids=list(ad.get("posted_gig_ids", [])),
                applied_gig_ids=list(ad.get("applied_gig_ids", [])),
            )
            for ad in data.get("accounts", [])
        ]
        gigs = [
            Gig(
                gig_id=gd["gig_id"],
                description=gd["description"],
                payment=gd["payment"],
                deadline=gd["deadline"],
                poster_id=gd["poster_id"],
                applicant_ids=list(gd.get("applicant_ids", [])),
                status=GigStatus(gd["status"]),
                assigned_to=gd.get("assigned_to"),
            )
            for gd in data.get("gigs", [])
        ]
        return LedgerRoot(
            owner=data["owner"],
            balance=data["balance"],
            accounts=accounts,
            gigs=gigs,
            account_count=data["account_count"],
            gig_count=data["gig_count"],
            total_deposited=data.get("total_deposited", 0),
        )
