"""
Payroll Module (``ledger_modules.payroll``).

Responsibility
--------------
Payslip arithmetic (period gross, net recomputation, seeding from the
previous payslip), the one-to-one link between a payslip and its cash-flow
ledger expense, and the single-payslip ``PayrollService``.

Architecture position
---------------------
**Modules layer** -- frozen models, pure helpers, the
``PayrollTransactionLinker`` and a service facade.  Loan deductions are
delegated to ``ledger_modules.loans``.

Failure modes
-------------
* ``DuplicatePayslipError`` -- a payslip already exists for the period.
* ``PartialWriteError`` -- a save failed after its Transaction committed.
"""

from ledger_modules.payroll.linker import PayrollTransactionLinker
from ledger_modules.payroll.models import (
    Employee,
    EmploymentStatus,
    Payslip,
    PayslipDefaults,
    PayslipTotals,
    SalaryHistory,
)
from ledger_modules.payroll.service import PayrollService

__all__ = [
    "Employee",
    "EmploymentStatus",
    "Payslip",
    "PayslipDefaults",
    "PayslipTotals",
    "SalaryHistory",
    "PayrollTransactionLinker",
    "PayrollService",
]
