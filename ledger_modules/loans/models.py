"""
Loan Domain Models (``ledger_modules.loans.models``).

Responsibility
--------------
Frozen dataclass value objects for employee loans and their append-only
payment history.

Architecture position
---------------------
**Modules layer** -- pure data definitions with ZERO I/O.  Consumed by the
loan helpers, ``LoanService`` and the bulk payroll generator.

Invariants enforced
-------------------
* All models are ``frozen=True``.
* All monetary fields use ``Decimal`` -- NEVER ``float``.
* ``Loan``: ``0 <= remaining_balance <= total_amount``; status is
  ``completed`` iff ``remaining_balance <= 0``; ``end_date`` is set iff the
  loan is completed.
* ``LoanPayment``: ``balance_after == balance_before - amount`` and
  ``0 < amount <= balance_before``.

Failure modes
-------------
* Construction that breaks an invariant raises ``InvalidInputError``.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from uuid import UUID

from ledger_kernel.exceptions import InvalidAmountError, InvalidInputError
from ledger_kernel.logging_config import get_logger

logger = get_logger("modules.loans.models")


class LoanType(str, Enum):
    """Loan categories."""
    CASH_ADVANCE = "cash_advance"
    EMERGENCY_LOAN = "emergency_loan"
    SALARY_LOAN = "salary_loan"
    EQUIPMENT_LOAN = "equipment_loan"
    OTHER = "other"

    @property
    def label(self) -> str:
        return self.value.replace("_", " ").title()


class LoanStatus(str, Enum):
    """Loan lifecycle states."""
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class PaymentType(str, Enum):
    """How a loan payment was made."""
    PAYROLL_DEDUCTION = "payroll_deduction"
    MANUAL_PAYMENT = "manual_payment"
    ADJUSTMENT = "adjustment"


@dataclass(frozen=True)
class Loan:
    """An employee loan repaid through fixed per-period deductions."""
    employee_id: UUID
    loan_type: LoanType
    principal_amount: Decimal
    interest_rate: Decimal  # annual, percent
    total_amount: Decimal
    monthly_deduction: Decimal
    remaining_balance: Decimal
    loan_date: date
    start_deduction_date: date
    status: LoanStatus = LoanStatus.ACTIVE
    end_date: date | None = None
    purpose: str | None = None
    notes: str | None = None
    version: int = 1
    id: UUID | None = None

    def __post_init__(self):
        if self.remaining_balance < 0:
            raise InvalidAmountError(
                "remaining_balance", self.remaining_balance, "cannot be negative"
            )
        if self.remaining_balance > self.total_amount:
            raise InvalidInputError(
                "remaining_balance",
                f"{self.remaining_balance} exceeds total_amount {self.total_amount}",
            )

        is_paid_off = self.remaining_balance <= 0
        if (self.status == LoanStatus.COMPLETED) != is_paid_off:
            raise InvalidInputError(
                "status",
                f"{self.status.value} loan cannot have remaining_balance "
                f"{self.remaining_balance}",
            )
        if (self.status == LoanStatus.COMPLETED) != (self.end_date is not None):
            raise InvalidInputError(
                "end_date",
                "must be set exactly when the loan is completed",
            )

    @property
    def amount_paid(self) -> Decimal:
        return self.total_amount - self.remaining_balance


@dataclass(frozen=True)
class LoanPayment:
    """One entry of a loan's append-only payment history."""
    loan_id: UUID
    payment_date: date
    amount: Decimal
    balance_before: Decimal
    balance_after: Decimal
    payment_type: PaymentType
    payslip_id: UUID | None = None
    notes: str | None = None
    id: UUID | None = None

    def __post_init__(self):
        if self.amount <= 0:
            raise InvalidAmountError("amount", self.amount)
        if self.amount > self.balance_before:
            raise InvalidAmountError(
                "amount", self.amount, f"exceeds balance_before {self.balance_before}"
            )
        if self.balance_after != self.balance_before - self.amount:
            raise InvalidInputError(
                "balance_after",
                f"{self.balance_after} != {self.balance_before} - {self.amount}",
            )


@dataclass(frozen=True)
class PaymentApplication:
    """Result of applying one payment: the new payment row and the updated loan."""
    payment: LoanPayment
    updated_loan: Loan

    @property
    def completed_loan(self) -> bool:
        return self.updated_loan.status == LoanStatus.COMPLETED


@dataclass(frozen=True)
class LoanPortfolioSummary:
    """Totals across a set of loans."""
    total_loaned: Decimal
    total_paid: Decimal
    active_balance: Decimal
    active_count: int
    completed_count: int
    cancelled_count: int
