"""
Domain DTOs owned by the kernel.

The cash-flow ledger ``Transaction`` belongs to the surrounding bookkeeping
subsystem; payroll only writes ``expense`` rows into it.  A Transaction
never references the payslip that owns it.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from uuid import UUID


class TransactionType(str, Enum):
    """Cash-flow ledger entry types."""

    IN = "in"
    OUT = "out"
    EXPENSE = "expense"


@dataclass(frozen=True)
class LedgerTransaction:
    """A bookkeeping entry in the cash-flow ledger."""

    date: date
    type: TransactionType
    amount: Decimal
    category: str | None = None
    note: str | None = None
    id: UUID | None = None
