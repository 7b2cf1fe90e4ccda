"""Kernel domain: clock and DTOs with zero I/O."""

from ledger_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from ledger_kernel.domain.dtos import LedgerTransaction, TransactionType

__all__ = [
    "Clock",
    "DeterministicClock",
    "SystemClock",
    "LedgerTransaction",
    "TransactionType",
]
