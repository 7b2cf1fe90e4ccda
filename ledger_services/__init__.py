"""
ledger_services -- Package init and public API.

Responsibility:
    Multi-record orchestration over ``ledger_modules`` and the kernel
    ``LedgerStore``: bulk payslip generation and the read-only snapshot it
    runs against.

Architecture position:
    Services -- may import ``ledger_modules``, ``ledger_kernel`` and
    ``ledger_config``.  Neither of those imports from here.
"""

from ledger_services.bulk_payroll import BulkGenerationResult, BulkPayrollGenerator
from ledger_services.payroll_snapshot import PayrollSnapshot

__all__ = [
    "BulkGenerationResult",
    "BulkPayrollGenerator",
    "PayrollSnapshot",
]
