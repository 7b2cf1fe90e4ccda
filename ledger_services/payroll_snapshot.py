"""
PayrollSnapshot -- read-only view of the store for one payroll run.

Responsibility:
    Load, once per operation, every record the bulk generator needs to
    compute payslips: the selected employees, their deduction-eligible
    loans, their latest payslip, and which of them already have a payslip
    for the requested period.

Architecture position:
    Services -- consumed by ``BulkPayrollGenerator``.  Pure functions in
    ``ledger_modules`` receive slices of the snapshot by value.

Invariants enforced:
    - Loaded exactly once per run; nothing in a run reads the store again
      for computation, so writes made during the run never feed back into
      it.
    - Immutable: frozen dataclass over read-only mappings and tuples.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import date
from types import MappingProxyType
from uuid import UUID

from ledger_kernel.logging_config import get_logger
from ledger_kernel.services.ledger_store import Collection, LedgerStore
from ledger_modules.loans.models import Loan, LoanStatus
from ledger_modules.payroll.helpers import latest_payslip
from ledger_modules.payroll.models import Employee, Payslip

logger = get_logger("services.payroll_snapshot")


@dataclass(frozen=True)
class PayrollSnapshot:
    """Employees, active loans and latest payslips as of ``as_of``."""

    as_of: date
    employees: Mapping[UUID, Employee] = field(default_factory=lambda: MappingProxyType({}))
    loans: tuple[Loan, ...] = ()
    latest_payslips: Mapping[UUID, Payslip] = field(
        default_factory=lambda: MappingProxyType({})
    )
    existing_for_period: frozenset[UUID] = frozenset()

    @classmethod
    def load(
        cls,
        store: LedgerStore,
        employee_ids: Iterable[UUID],
        period_start: date,
        period_end: date,
        as_of: date,
    ) -> PayrollSnapshot:
        ids = list(employee_ids)
        employees = store.query(Collection.EMPLOYEES, {"id__in": ids})
        loans = store.query(
            Collection.LOANS,
            {
                "employee_id__in": ids,
                "status": LoanStatus.ACTIVE,
                "start_deduction_date__lte": as_of,
            },
            order_by=("start_deduction_date", "loan_date"),
        )
        payslips = store.query(Collection.PAYSLIPS, {"employee_id__in": ids})

        by_employee: dict[UUID, list[Payslip]] = {}
        for payslip in payslips:
            by_employee.setdefault(payslip.employee_id, []).append(payslip)

        snapshot = cls(
            as_of=as_of,
            employees=MappingProxyType({e.id: e for e in employees}),
            loans=tuple(loans),
            latest_payslips=MappingProxyType(
                {emp_id: latest_payslip(items) for emp_id, items in by_employee.items()}
            ),
            existing_for_period=frozenset(
                p.employee_id for p in payslips
                if p.period_start == period_start and p.period_end == period_end
            ),
        )
        logger.info(
            "payroll_snapshot_loaded",
            extra={
                "employee_count": len(snapshot.employees),
                "loan_count": len(snapshot.loans),
                "payslip_count": len(payslips),
                "as_of": as_of.isoformat(),
            },
        )
        return snapshot

    def loans_for(self, employee_id: UUID) -> list[Loan]:
        return [loan for loan in self.loans if loan.employee_id == employee_id]
