"""
Payroll Domain Models (``ledger_modules.payroll.models``).

Responsibility
--------------
Frozen dataclass value objects for employees, payslips and the derived
views built from them (totals, seeded defaults, salary history).

Architecture position
---------------------
**Modules layer** -- pure data definitions with ZERO I/O.  Consumed by
``helpers.py``, ``PayrollTransactionLinker``, ``PayrollService`` and the
bulk payroll generator.

Invariants enforced
-------------------
* All models are ``frozen=True``.
* All monetary fields use ``Decimal`` -- NEVER ``float``.
* ``Employee.name`` is non-blank; ``base_salary`` is ``None`` or >= 0.
* ``Payslip``: ``period_start <= period_end`` and every addition and
  deduction amount is >= 0.  ``net_salary`` is derived and may be negative
  when deductions exceed pay.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from ledger_kernel.db.types import ZERO
from ledger_kernel.exceptions import InvalidAmountError, InvalidInputError

ADDITION_FIELDS = ("gross_salary", "bonuses", "allowances")

DEDUCTION_FIELDS = (
    "sss",
    "pagibig",
    "philhealth",
    "tax",
    "cash_advance",
    "loan_deduction",
    "other_deductions",
)

# Carried forward from an employee's latest payslip
RECURRING_FIELDS = ("sss", "pagibig", "philhealth", "tax", "bonuses", "allowances")


class EmploymentStatus(str, Enum):
    PROBATIONARY = "probationary"
    REGULAR = "regular"


@dataclass(frozen=True)
class Employee:
    """An employee as seen by payroll."""
    name: str
    position: str | None = None
    base_salary: Decimal | None = None
    employment_status: EmploymentStatus | None = None
    id: UUID | None = None

    def __post_init__(self):
        if not self.name or not self.name.strip():
            raise InvalidInputError("name", "is required")
        if self.base_salary is not None and self.base_salary < 0:
            raise InvalidAmountError("base_salary", self.base_salary, "cannot be negative")


@dataclass(frozen=True)
class Payslip:
    """One employee's pay record for one period."""
    employee_id: UUID
    period_start: date
    period_end: date
    date_issued: date
    gross_salary: Decimal = ZERO
    bonuses: Decimal = ZERO
    allowances: Decimal = ZERO
    sss: Decimal = ZERO
    pagibig: Decimal = ZERO
    philhealth: Decimal = ZERO
    tax: Decimal = ZERO
    cash_advance: Decimal = ZERO
    loan_deduction: Decimal = ZERO
    other_deductions: Decimal = ZERO
    net_salary: Decimal = ZERO
    notes: str | None = None
    transaction_id: UUID | None = None
    version: int = 1
    created_at: datetime | None = None
    id: UUID | None = None

    def __post_init__(self):
        if self.employee_id is None:
            raise InvalidInputError("employee_id", "is required")
        if self.period_start > self.period_end:
            raise InvalidInputError(
                "period_end",
                f"{self.period_end} is before period_start {self.period_start}",
            )
        for name in ADDITION_FIELDS + DEDUCTION_FIELDS:
            value = getattr(self, name)
            if value < 0:
                raise InvalidAmountError(name, value, "cannot be negative")


@dataclass(frozen=True)
class PayslipTotals:
    """Additions, deductions and net pay of a payslip."""
    additions: Decimal
    deductions: Decimal
    net: Decimal


@dataclass(frozen=True)
class PayslipDefaults:
    """
    Field values seeded into a new payslip from the employee's latest one.

    ``cash_advance`` and ``other_deductions`` always start at zero; the loan
    deduction is never seeded and is computed fresh from active loans.
    """
    sss: Decimal = ZERO
    pagibig: Decimal = ZERO
    philhealth: Decimal = ZERO
    tax: Decimal = ZERO
    bonuses: Decimal = ZERO
    allowances: Decimal = ZERO
    cash_advance: Decimal = ZERO
    other_deductions: Decimal = ZERO


@dataclass(frozen=True)
class SalaryHistory:
    """An employee's payslips, newest first, with the total net paid."""
    employee: Employee
    payslips: tuple[Payslip, ...] = field(default_factory=tuple)
    total_paid: Decimal = ZERO

    @property
    def payslip_count(self) -> int:
        return len(self.payslips)
