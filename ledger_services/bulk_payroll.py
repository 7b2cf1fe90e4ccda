"""
BulkPayrollGenerator -- payslips for many employees in one run.

Responsibility:
    Generate one payslip per selected employee for a declared pay period,
    together with its ledger expense Transaction and the payroll loan
    deductions it implies.

Architecture position:
    Services -- orchestrates ``ledger_modules.payroll`` helpers,
    ``ledger_modules.loans`` and the ``LedgerStore``.  Reads the store once
    through ``PayrollSnapshot``; every later call is a write.

Write ordering (the store has no cross-collection transactions):
    0. Validate input and load the snapshot.  Duplicate periods are
       rejected here, before any write.
    1-2. Compute every payslip in memory (gross, loan deduction, seeded
       fields, recomputed net).
    3. Insert all Transactions in one ``insert_many``.
    4. Verify one Transaction per payslip; otherwise abort with
       ``LinkMismatchError`` after deleting the returned Transactions.
    5. Attach Transaction ids by position and insert all payslips in one
       ``insert_many``.
    6. Record ``payroll_deduction`` loan payments for each payslip with a
       non-zero loan deduction.
    7. Return the ids written.

Failure modes:
    - InvalidInputError / DuplicatePayslipError: before any write.
    - LinkMismatchError: step 4, when the store returned more ids than
      payslips and every returned Transaction was deleted.
    - PartialWriteError chained from LinkMismatchError: step 4, when the
      store returned fewer ids than payslips (the unreported Transactions
      may still exist) or a returned Transaction could not be deleted.
    - StoreWriteFailedError: step 3 failed, or step 5 failed and its
      Transactions were compensated; nothing remains.
    - PartialWriteError: a failure left committed rows; ``committed`` lists
      them by collection.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import asdict, dataclass, field, replace
from datetime import date
from uuid import UUID, uuid4

from ledger_config.schema import PayrollConfig
from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.exceptions import (
    DuplicatePayslipError,
    InvalidInputError,
    LinkMismatchError,
    PartialWriteError,
    StoreError,
)
from ledger_kernel.logging_config import LogContext, get_logger
from ledger_kernel.services.ledger_store import Collection, LedgerStore
from ledger_modules._store_helpers import committed_ids, partial_failure
from ledger_modules.loans.helpers import total_deduction_for
from ledger_modules.loans.service import LoanService
from ledger_modules.payroll.helpers import period_gross, recompute, seed_from_payslip
from ledger_modules.payroll.linker import build_payroll_transaction
from ledger_modules.payroll.models import Payslip
from ledger_services.payroll_snapshot import PayrollSnapshot

logger = get_logger("services.bulk_payroll")


@dataclass(frozen=True)
class BulkGenerationResult:
    """Ids written by one bulk run, in employee order."""

    payslip_ids: tuple[UUID, ...] = ()
    transaction_ids: tuple[UUID, ...] = ()
    loan_payment_ids: tuple[UUID, ...] = field(default_factory=tuple)

    @property
    def generated_count(self) -> int:
        return len(self.payslip_ids)


class BulkPayrollGenerator:
    """
    Generates payslips for a set of employees and one period.

    Contract:
        ``generate`` either returns with every payslip linked to a distinct
        Transaction, or raises; the raised error says whether anything was
        left in the store.
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

    def generate(
        self,
        period_start: date,
        period_end: date,
        employee_ids: Sequence[UUID],
        date_issued: date | None = None,
    ) -> BulkGenerationResult:
        """Run steps 0-7 for ``employee_ids`` and return what was written."""
        ids = self._validate(period_start, period_end, employee_ids)
        today = self._clock.today()
        issued = date_issued or today

        with LogContext.bind(correlation_id=str(uuid4()), operation="bulk_payroll"):
            logger.info(
                "bulk_payroll_started",
                extra={
                    "period_start": period_start.isoformat(),
                    "period_end": period_end.isoformat(),
                    "employee_count": len(ids),
                },
            )

            snapshot = PayrollSnapshot.load(self._store, ids, period_start, period_end, today)
            self._check_snapshot(snapshot, ids, period_start, period_end)

            payslips = [
                self._build_payslip(snapshot, emp_id, period_start, period_end, issued)
                for emp_id in ids
            ]
            transactions = [
                build_payroll_transaction(p, snapshot.employees[p.employee_id].name, self._config)
                for p in payslips
            ]

            transaction_ids = self._store.insert_many(Collection.TRANSACTIONS, transactions)
            if len(transaction_ids) != len(payslips):
                logger.error(
                    "bulk_payroll_link_mismatch",
                    extra={"expected": len(payslips), "actual": len(transaction_ids)},
                )
                mismatch = LinkMismatchError(len(payslips), len(transaction_ids))
                remaining = self._compensate(transaction_ids, step="link_transactions")
                unreported = max(len(payslips) - len(transaction_ids), 0)
                if remaining or unreported:
                    detail = str(mismatch)
                    if unreported:
                        detail += (
                            f"; {unreported} transaction(s) written but not reported "
                            f"by the store may remain"
                        )
                    raise PartialWriteError(
                        "link_transactions",
                        "transactions",
                        detail,
                        committed_ids(transactions=remaining),
                    ) from mismatch
                raise mismatch

            linked = [
                replace(p, transaction_id=tx_id)
                for p, tx_id in zip(payslips, transaction_ids, strict=True)
            ]
            try:
                payslip_ids = self._store.insert_many(Collection.PAYSLIPS, linked)
            except StoreError as exc:
                remaining = self._compensate(transaction_ids, step="insert_payslips")
                if remaining:
                    raise partial_failure(
                        "insert_payslips", exc, committed_ids(transactions=remaining)
                    ) from exc
                raise

            payment_ids = self._apply_loan_deductions(
                snapshot, linked, payslip_ids, transaction_ids
            )

            result = BulkGenerationResult(
                payslip_ids=tuple(payslip_ids),
                transaction_ids=tuple(transaction_ids),
                loan_payment_ids=tuple(payment_ids),
            )
            logger.info(
                "bulk_payroll_completed",
                extra={
                    "generated_count": result.generated_count,
                    "loan_payment_count": len(result.loan_payment_ids),
                },
            )
            return result

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    def _validate(
        self,
        period_start: date,
        period_end: date,
        employee_ids: Sequence[UUID],
    ) -> list[UUID]:
        if period_start is None or period_end is None:
            raise InvalidInputError("period", "start and end dates are required")
        if period_start > period_end:
            raise InvalidInputError(
                "period_end", f"{period_end} is before period_start {period_start}"
            )
        ids = list(employee_ids or [])
        if not ids:
            raise InvalidInputError("employee_ids", "select at least one employee")
        if any(i is None for i in ids):
            raise InvalidInputError("employee_ids", "contains a missing id")
        if len(set(ids)) != len(ids):
            raise InvalidInputError("employee_ids", "contains duplicates")
        return ids

    def _check_snapshot(
        self,
        snapshot: PayrollSnapshot,
        ids: list[UUID],
        period_start: date,
        period_end: date,
    ) -> None:
        unknown = [str(i) for i in ids if i not in snapshot.employees]
        if unknown:
            raise InvalidInputError("employee_ids", f"unknown employees: {', '.join(unknown)}")

        if self._config.reject_duplicate_periods:
            clashes = [str(i) for i in ids if i in snapshot.existing_for_period]
            if clashes:
                raise DuplicatePayslipError(
                    clashes, period_start.isoformat(), period_end.isoformat()
                )

    def _build_payslip(
        self,
        snapshot: PayrollSnapshot,
        employee_id: UUID,
        period_start: date,
        period_end: date,
        date_issued: date,
    ) -> Payslip:
        employee = snapshot.employees[employee_id]
        defaults = seed_from_payslip(snapshot.latest_payslips.get(employee_id))
        payslip = Payslip(
            employee_id=employee_id,
            period_start=period_start,
            period_end=period_end,
            date_issued=date_issued,
            gross_salary=period_gross(
                period_start,
                period_end,
                employee.base_salary,
                self._config.first_half_end_day,
            ),
            loan_deduction=total_deduction_for(
                snapshot.loans_for(employee_id), employee_id, snapshot.as_of
            ),
            **asdict(defaults),
        )
        return recompute(payslip)

    def _apply_loan_deductions(
        self,
        snapshot: PayrollSnapshot,
        payslips: list[Payslip],
        payslip_ids: list[UUID],
        transaction_ids: list[UUID],
    ) -> list[UUID]:
        payment_ids: list[UUID] = []
        loan_ids: list[UUID] = []
        for payslip, payslip_id in zip(payslips, payslip_ids, strict=True):
            if payslip.loan_deduction <= 0:
                continue
            try:
                applied = self._loans.apply_payslip_deduction(
                    payslip_id,
                    payslip.employee_id,
                    payslip.loan_deduction,
                    payslip.date_issued,
                    loans=snapshot.loans_for(payslip.employee_id),
                    as_of=snapshot.as_of,
                )
            except StoreError as exc:
                logger.error(
                    "bulk_payroll_loan_deduction_failed",
                    extra={"payslip_id": str(payslip_id), "employee_id": str(payslip.employee_id)},
                )
                raise partial_failure(
                    "apply_loan_deduction",
                    exc,
                    committed_ids(
                        transactions=transaction_ids,
                        payslips=payslip_ids,
                        loan_payments=payment_ids,
                        loans=loan_ids,
                    ),
                ) from exc
            payment_ids.extend(a.payment.id for a in applied)
            loan_ids.extend(a.updated_loan.id for a in applied)
        return payment_ids

    def _compensate(self, transaction_ids: list[UUID], step: str) -> list[UUID]:
        """
        Delete Transactions written for a batch that cannot complete.

        Returns the ids still in the store: all of them when
        ``compensate_on_failure`` is off, otherwise those whose delete failed.
        """
        if not self._config.compensate_on_failure:
            return list(transaction_ids)

        remaining: list[UUID] = []
        for tx_id in transaction_ids:
            try:
                self._store.delete_by_id(Collection.TRANSACTIONS, tx_id)
            except StoreError:
                logger.error(
                    "compensation_failed",
                    extra={"transaction_id": str(tx_id), "step": step},
                )
                remaining.append(tx_id)
        logger.warning(
            "bulk_payroll_compensated",
            extra={
                "step": step,
                "deleted": len(transaction_ids) - len(remaining),
                "remaining": len(remaining),
            },
        )
        return remaining
