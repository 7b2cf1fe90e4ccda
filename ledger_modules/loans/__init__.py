"""
Loans Module (``ledger_modules.loans``).

Responsibility
--------------
Employee loan accounting: total payable at creation, eligibility and
per-period deduction amounts, payment application with status transitions,
and the store-backed ``LoanService`` that persists loans and their
append-only payment history.

Architecture position
---------------------
**Modules layer** -- frozen models, pure helpers and a service facade over
the kernel ``LedgerStore``.

Invariants enforced
-------------------
* ``0 <= remaining_balance <= total_amount`` for every loan.
* ``status == completed`` iff ``remaining_balance <= 0``.
* ``remaining_balance == total_amount - sum(payment amounts)``.
"""

from ledger_modules.loans.models import (
    Loan,
    LoanPayment,
    LoanPortfolioSummary,
    LoanStatus,
    LoanType,
    PaymentApplication,
    PaymentType,
)
from ledger_modules.loans.service import LoanService

__all__ = [
    "Loan",
    "LoanPayment",
    "LoanPortfolioSummary",
    "LoanStatus",
    "LoanType",
    "PaymentApplication",
    "PaymentType",
    "LoanService",
]
