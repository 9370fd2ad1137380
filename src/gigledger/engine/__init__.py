"""Ledger engine: serialized, all-or-nothing ledger operations."""

from gigledger.engine.ledger_engine import LedgerEngine, create_ledger

__all__ = ["LedgerEngine", "create_ledger"]
