"""
Payroll Module Service (``ledger_modules.payroll.service``).

Responsibility
--------------
Store-backed payslip operations for a single employee: drafting a payslip
from salary, loans and the previous payslip; saving it together with its
ledger expense and loan deductions; deleting it; and reading salary
history.  Also owns the HR-side employee writes payroll depends on.

Architecture position
---------------------
**Modules layer** -- orchestrates the pure helpers in ``helpers.py``, the
``PayrollTransactionLinker`` and ``LoanService`` against the
``LedgerStore``.

Invariants enforced
-------------------
* ``net_salary`` is recomputed on every save; callers cannot persist a
  stale net.
* A new payslip is inserted only after its ledger Transaction exists, so a
  saved payslip always carries ``transaction_id``.
* Editing a payslip updates its Transaction in place; it never creates a
  second one.
* Deleting a payslip leaves its Transaction and loan payments untouched.

Failure modes
-------------
* ``InvalidInputError`` family -- blank names, negative amounts, bad
  periods, duplicate periods; raised before any write.
* ``RecordNotFoundError`` -- unknown employee or payslip.
* ``StoreWriteFailedError`` -- the first write failed; nothing committed.
* ``PartialWriteError`` -- a later write failed; ``committed`` lists the
  rows left behind.
* ``StaleRecordError`` -- the payslip was edited since it was read.
"""

from __future__ import annotations

from dataclasses import asdict, fields, replace
from datetime import date
from decimal import Decimal
from uuid import UUID

from ledger_config.schema import PayrollConfig
from ledger_kernel.db.types import ZERO, round_money, to_money
from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.exceptions import (
    DuplicatePayslipError,
    InvalidInputError,
    RecordNotFoundError,
    StoreError,
)
from ledger_kernel.logging_config import LogContext, get_logger
from ledger_kernel.services.ledger_store import Collection, LedgerStore
from ledger_modules._store_helpers import (
    committed_ids,
    partial_failure,
    require_id,
    require_record,
)
from ledger_modules.loans.service import LoanService
from ledger_modules.payroll.helpers import (
    period_gross,
    recompute,
    seed_from_payslip,
)
from ledger_modules.payroll.linker import PayrollTransactionLinker
from ledger_modules.payroll.models import (
    Employee,
    EmploymentStatus,
    Payslip,
    PayslipDefaults,
    SalaryHistory,
)

logger = get_logger("modules.payroll.service")

_UNSET = object()

# Fields written on a payslip edit
_EDITABLE_FIELDS = tuple(
    f.name for f in fields(Payslip) if f.name not in ("id", "version", "created_at")
)


class PayrollService:
    """
    Single-payslip payroll operations.

    Contract
    --------
    * Reads return frozen DTOs; saves return the payslip as re-read from
      the store.
    * Loan arithmetic is delegated to ``LoanService``; ledger linking to
      ``PayrollTransactionLinker``.

    Non-goals
    ---------
    * Does NOT re-apply loan payments when a saved payslip is edited.
    * Does NOT delete ledger Transactions.
    """

    def __init__(
        self,
        store: LedgerStore,
        clock: Clock | None = None,
        config: PayrollConfig | None = None,
        loans: LoanService | None = None,
    ):
        self._store = store
        self._clock = clock or SystemClock()
        self._config = config or PayrollConfig.with_defaults()
        self._loans = loans or LoanService(store, self._clock)
        self._linker = PayrollTransactionLinker(store, self._config)

    # =========================================================================
    # Employees
    # =========================================================================

    def register_employee(
        self,
        name: str,
        position: str | None = None,
        base_salary: Decimal | int | str | None = None,
        employment_status: EmploymentStatus | None = None,
    ) -> Employee:
        employee = Employee(
            name=(name or "").strip(),
            position=(position or "").strip() or None,
            base_salary=to_money(base_salary, "base_salary") if base_salary is not None else None,
            employment_status=EmploymentStatus(employment_status) if employment_status else None,
        )
        employee_id = self._store.insert(Collection.EMPLOYEES, employee)
        logger.info(
            "employee_registered",
            extra={"employee_id": str(employee_id), "position": employee.position},
        )
        return replace(employee, id=employee_id)

    def update_employee(
        self,
        employee_id: UUID,
        *,
        name: str | None = None,
        position: str | None | object = _UNSET,
        base_salary: Decimal | int | str | None | object = _UNSET,
        employment_status: EmploymentStatus | None | object = _UNSET,
    ) -> Employee:
        current = self.get_employee(employee_id)
        updated = current
        if name is not None:
            updated = replace(updated, name=name.strip())
        if position is not _UNSET:
            updated = replace(updated, position=(position or "").strip() or None)
        if base_salary is not _UNSET:
            updated = replace(
                updated,
                base_salary=(
                    to_money(base_salary, "base_salary") if base_salary is not None else None
                ),
            )
        if employment_status is not _UNSET:
            updated = replace(
                updated,
                employment_status=(
                    EmploymentStatus(employment_status) if employment_status else None
                ),
            )

        patch = {
            f.name: getattr(updated, f.name)
            for f in fields(Employee)
            if f.name != "id" and getattr(updated, f.name) != getattr(current, f.name)
        }
        if patch:
            self._store.update_by_id(Collection.EMPLOYEES, current.id, patch)
            logger.info(
                "employee_updated",
                extra={"employee_id": str(current.id), "fields": sorted(patch)},
            )
        return updated

    def get_employee(self, employee_id: UUID) -> Employee:
        return require_record(
            self._store, Collection.EMPLOYEES, require_id(employee_id, "employee_id")
        )

    def list_employees(self) -> list[Employee]:
        return self._store.query(Collection.EMPLOYEES, order_by=("name",))

    # =========================================================================
    # Payslip reads
    # =========================================================================

    def get_payslip(self, payslip_id: UUID) -> Payslip:
        return require_record(
            self._store, Collection.PAYSLIPS, require_id(payslip_id, "payslip_id")
        )

    def payslips_for(self, employee_id: UUID) -> list[Payslip]:
        """An employee's payslips, most recent first."""
        return self._store.query(
            Collection.PAYSLIPS,
            {"employee_id": require_id(employee_id, "employee_id")},
            order_by=("-date_issued", "-created_at"),
        )

    def seed_from_prior_payslip(self, employee_id: UUID) -> PayslipDefaults:
        payslips = self.payslips_for(employee_id)
        return seed_from_payslip(payslips[0] if payslips else None)

    def salary_history(self, employee_id: UUID) -> SalaryHistory:
        employee = self.get_employee(employee_id)
        payslips = self.payslips_for(employee_id)
        total = sum((p.net_salary for p in payslips), ZERO)
        return SalaryHistory(
            employee=employee,
            payslips=tuple(payslips),
            total_paid=round_money(total),
        )

    # =========================================================================
    # Draft / save / delete
    # =========================================================================

    def draft_payslip(
        self,
        employee_id: UUID,
        period_start: date,
        period_end: date,
        date_issued: date | None = None,
    ) -> Payslip:
        """
        Build an unsaved payslip for one employee and period.

        Gross comes from ``period_gross``; statutory fields are seeded from
        the latest payslip; the loan deduction is the capped total of the
        employee's active loans as of today.
        """
        employee = self.get_employee(employee_id)
        today = self._clock.today()
        defaults = seed_from_payslip(next(iter(self.payslips_for(employee.id)), None))
        draft = Payslip(
            employee_id=employee.id,
            period_start=period_start,
            period_end=period_end,
            date_issued=date_issued or today,
            gross_salary=period_gross(
                period_start,
                period_end,
                employee.base_salary,
                self._config.first_half_end_day,
            ),
            loan_deduction=self._loans.total_deduction_for(employee.id, today),
            **asdict(defaults),
        )
        return recompute(draft)

    def save_payslip(self, payslip: Payslip, employee_name: str | None = None) -> Payslip:
        """
        Persist ``payslip`` with its ledger expense.

        New payslips (no id): the Transaction is created first and the
        payslip is inserted already linked; loan payments for its
        ``loan_deduction`` are then recorded when
        ``apply_loan_payments_on_save`` is set.

        Existing payslips: the payslip row is updated (version checked) and
        its Transaction is updated in place.

        Raises:
            RecordNotFoundError: ``payslip.id`` is set but no row has it,
                e.g. the payslip was deleted after it was read.
            InvalidInputError: an unsaved payslip carries a
                ``transaction_id``.
        """
        employee = self.get_employee(payslip.employee_id)
        name = employee_name or employee.name
        payslip = recompute(payslip)

        existing = None
        if payslip.id is not None:
            existing = require_record(self._store, Collection.PAYSLIPS, payslip.id)
        elif payslip.transaction_id is not None:
            raise InvalidInputError(
                "transaction_id",
                f"unsaved payslip already references transaction {payslip.transaction_id}",
            )
        with LogContext.bind(employee_id=str(employee.id), operation="save_payslip"):
            if existing is None:
                return self._create(payslip, name)
            return self._edit(payslip, existing, name)

    def delete_payslip(self, payslip_id: UUID) -> bool:
        """
        Delete a payslip.

        Its ledger Transaction and any loan payments it produced are kept
        as audit history.
        """
        payslip = self._store.get(Collection.PAYSLIPS, require_id(payslip_id, "payslip_id"))
        if payslip is None:
            return False
        deleted = self._store.delete_by_id(Collection.PAYSLIPS, payslip.id)
        logger.info(
            "payslip_deleted",
            extra={
                "payslip_id": str(payslip.id),
                "employee_id": str(payslip.employee_id),
                "retained_transaction_id": (
                    str(payslip.transaction_id) if payslip.transaction_id else None
                ),
            },
        )
        return deleted

    # =========================================================================
    # Internals
    # =========================================================================

    def _create(self, payslip: Payslip, employee_name: str) -> Payslip:
        if self._config.reject_duplicate_periods:
            clash = self._store.query(
                Collection.PAYSLIPS,
                {
                    "employee_id": payslip.employee_id,
                    "period_start": payslip.period_start,
                    "period_end": payslip.period_end,
                },
            )
            if clash:
                raise DuplicatePayslipError(
                    [str(payslip.employee_id)],
                    payslip.period_start.isoformat(),
                    payslip.period_end.isoformat(),
                )

        transaction_id = self._linker.link_or_update(payslip, employee_name)

        linked = replace(payslip, transaction_id=transaction_id, version=1)
        try:
            payslip_id = self._store.insert(Collection.PAYSLIPS, linked)
        except StoreError as exc:
            self._compensate_transaction(transaction_id, exc)
            raise

        logger.info(
            "payslip_created",
            extra={
                "payslip_id": str(payslip_id),
                "transaction_id": str(transaction_id),
                "gross_salary": str(linked.gross_salary),
                "net_salary": str(linked.net_salary),
                "loan_deduction": str(linked.loan_deduction),
            },
        )

        if self._config.apply_loan_payments_on_save and linked.loan_deduction > 0:
            try:
                self._loans.apply_payslip_deduction(
                    payslip_id,
                    linked.employee_id,
                    linked.loan_deduction,
                    linked.date_issued,
                )
            except StoreError as exc:
                raise partial_failure(
                    "apply_loan_deduction",
                    exc,
                    committed_ids(transactions=[transaction_id], payslips=[payslip_id]),
                ) from exc

        return self.get_payslip(payslip_id)

    def _edit(self, payslip: Payslip, existing: Payslip, employee_name: str) -> Payslip:
        if payslip.transaction_id is None:
            payslip = replace(payslip, transaction_id=existing.transaction_id)
        patch = {name: getattr(payslip, name) for name in _EDITABLE_FIELDS}
        found = self._store.update_by_id(
            Collection.PAYSLIPS, payslip.id, patch, expected_version=payslip.version
        )
        if not found:
            raise RecordNotFoundError("payslips", str(payslip.id))

        try:
            self._linker.link_or_update(
                replace(payslip, version=payslip.version + 1), employee_name
            )
        except StoreError as exc:
            raise partial_failure(
                "link_or_update", exc, committed_ids(payslips=[payslip.id])
            ) from exc

        logger.info(
            "payslip_updated",
            extra={
                "payslip_id": str(payslip.id),
                "gross_salary": str(payslip.gross_salary),
                "net_salary": str(payslip.net_salary),
            },
        )
        return self.get_payslip(payslip.id)

    def _compensate_transaction(self, transaction_id: UUID, cause: StoreError) -> None:
        """Remove the Transaction of a payslip whose insert failed."""
        if not self._config.compensate_on_failure:
            raise partial_failure(
                "insert_payslip", cause, committed_ids(transactions=[transaction_id])
            ) from cause
        try:
            self._store.delete_by_id(Collection.TRANSACTIONS, transaction_id)
        except StoreError as exc:
            logger.error(
                "compensation_failed",
                extra={"transaction_id": str(transaction_id), "step": "insert_payslip"},
            )
            raise partial_failure(
                "insert_payslip", cause, committed_ids(transactions=[transaction_id])
            ) from exc
        logger.warning(
            "payroll_transaction_compensated",
            extra={"transaction_id": str(transaction_id), "step": "insert_payslip"},
        )
