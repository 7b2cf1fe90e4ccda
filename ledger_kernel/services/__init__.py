"""Kernel services: the Ledger Store contract and its SQL implementation."""

from ledger_kernel.services.ledger_store import Collection, LedgerStore, SqlLedgerStore

__all__ = ["Collection", "LedgerStore", "SqlLedgerStore"]
