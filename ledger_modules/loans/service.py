"""
Loan Module Service (``ledger_modules.loans.service``).

Responsibility
--------------
Store-backed loan operations: creating and editing loans, recording
payments (manual or payroll deductions), cancelling and deleting loans, and
reading deduction eligibility.  All arithmetic is delegated to the pure
functions in ``helpers.py``.

Architecture position
---------------------
**Modules layer** -- thin glue between the loan helpers and the
``LedgerStore``.  ``PayrollService`` and ``BulkPayrollGenerator`` call
``apply_payslip_deduction`` after their payslips are saved.

Invariants enforced
-------------------
* Validation happens before any write; a rejected payment leaves the loan
  and its payment history untouched.
* Writes are ordered payment-first, then the loan balance/status update.
* Loan updates carry the version the payment was computed from, so a
  concurrent edit is rejected instead of overwritten.
* ``delete_loan`` removes every payment of the loan; no orphans survive.

Failure modes
-------------
* ``InvalidInputError`` family -- bad amounts, missing ids, non-active loans.
* ``RecordNotFoundError`` -- unknown loan or employee.
* ``StoreWriteFailedError`` -- the first write failed; nothing committed.
* ``PartialWriteError`` -- the payment row committed but the loan update
  failed; ``committed`` names the payment.

Audit relevance
---------------
LoanPayment rows are the append-only audit trail of every balance change.
Structured log events are emitted for creation, edits, each payment,
completion, cancellation and deletion.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import date
from decimal import Decimal
from uuid import UUID

from ledger_kernel.db.types import round_money, to_money
from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.exceptions import (
    InvalidAmountError,
    InvalidInputError,
    LoanNotActiveError,
    StoreError,
    StoreWriteFailedError,
)
from ledger_kernel.logging_config import LogContext, get_logger
from ledger_kernel.services.ledger_store import Collection, LedgerStore
from ledger_modules._store_helpers import (
    committed_ids,
    partial_failure,
    require_id,
    require_record,
)
from ledger_modules.loans.helpers import (
    active_loans_for,
    allocate_loan_deduction,
    apply_payment,
    compute_total_payable,
    summarize_portfolio,
    total_deduction_for,
)
from ledger_modules.loans.models import (
    Loan,
    LoanPayment,
    LoanPortfolioSummary,
    LoanStatus,
    LoanType,
    PaymentApplication,
    PaymentType,
)

logger = get_logger("modules.loans.service")

_UNSET = object()


class LoanService:
    """
    Loan accounting against the ledger store.

    Contract
    --------
    * Returned ``Loan`` / ``LoanPayment`` objects reflect what was written,
      including store-assigned ids and bumped versions.
    * Pure helpers never see the store; this class never does arithmetic
      of its own.

    Non-goals
    ---------
    * Does NOT rewrite past payments when loan terms are edited.
    * Does NOT retry failed writes.
    """

    def __init__(self, store: LedgerStore, clock: Clock | None = None):
        self._store = store
        self._clock = clock or SystemClock()

    # =========================================================================
    # Reads
    # =========================================================================

    def get_loan(self, loan_id: UUID) -> Loan:
        return require_record(self._store, Collection.LOANS, require_id(loan_id, "loan_id"))

    def list_loans(self) -> list[Loan]:
        return self._store.query(Collection.LOANS, order_by=("-created_at",))

    def loans_for_employee(self, employee_id: UUID) -> list[Loan]:
        return self._store.query(
            Collection.LOANS,
            {"employee_id": require_id(employee_id, "employee_id")},
            order_by=("-loan_date", "-created_at"),
        )

    def payments_for(self, loan_id: UUID) -> list[LoanPayment]:
        """Payment history of one loan, oldest first."""
        return self._store.query(
            Collection.LOAN_PAYMENTS,
            {"loan_id": require_id(loan_id, "loan_id")},
            order_by=("payment_date", "created_at"),
        )

    def active_loans_for(self, employee_id: UUID, as_of: date | None = None) -> list[Loan]:
        """Loans of the employee eligible for deduction on ``as_of`` (default today)."""
        as_of = as_of or self._clock.today()
        candidates = self._store.query(
            Collection.LOANS,
            {
                "employee_id": require_id(employee_id, "employee_id"),
                "status": LoanStatus.ACTIVE,
                "start_deduction_date__lte": as_of,
            },
        )
        return active_loans_for(candidates, employee_id, as_of)

    def total_deduction_for(self, employee_id: UUID, as_of: date | None = None) -> Decimal:
        as_of = as_of or self._clock.today()
        return total_deduction_for(self.active_loans_for(employee_id, as_of), employee_id, as_of)

    def portfolio_summary(self) -> LoanPortfolioSummary:
        return summarize_portfolio(self.list_loans())

    # =========================================================================
    # Create / edit
    # =========================================================================

    def create_loan(
        self,
        employee_id: UUID,
        principal_amount: Decimal | int | str,
        monthly_deduction: Decimal | int | str,
        interest_rate: Decimal | int | str = Decimal("0"),
        loan_type: LoanType = LoanType.CASH_ADVANCE,
        loan_date: date | None = None,
        start_deduction_date: date | None = None,
        purpose: str | None = None,
        notes: str | None = None,
    ) -> Loan:
        """
        Create an active loan.

        ``total_amount`` is computed once here with ``compute_total_payable``
        and the full amount becomes the opening ``remaining_balance``.
        """
        require_id(employee_id, "employee_id")
        principal = to_money(principal_amount, "principal_amount")
        deduction = to_money(monthly_deduction, "monthly_deduction")
        rate = self._rate(interest_rate)
        if deduction <= 0:
            raise InvalidAmountError("monthly_deduction", deduction)
        total = compute_total_payable(principal, rate, deduction)

        require_record(self._store, Collection.EMPLOYEES, employee_id)

        today = self._clock.today()
        loan = Loan(
            employee_id=employee_id,
            loan_type=LoanType(loan_type),
            principal_amount=principal,
            interest_rate=rate,
            total_amount=total,
            monthly_deduction=deduction,
            remaining_balance=total,
            loan_date=loan_date or today,
            start_deduction_date=start_deduction_date or loan_date or today,
            purpose=(purpose or "").strip() or None,
            notes=(notes or "").strip() or None,
        )
        loan_id = self._store.insert(Collection.LOANS, loan)

        logger.info(
            "loan_created",
            extra={
                "loan_id": str(loan_id),
                "employee_id": str(employee_id),
                "loan_type": loan.loan_type.value,
                "principal_amount": str(principal),
                "interest_rate": str(rate),
                "total_amount": str(total),
                "monthly_deduction": str(deduction),
            },
        )
        return self.get_loan(loan_id)

    def update_loan(
        self,
        loan_id: UUID,
        *,
        loan_type: LoanType | None = None,
        principal_amount: Decimal | int | str | None = None,
        interest_rate: Decimal | int | str | None = None,
        monthly_deduction: Decimal | int | str | None = None,
        loan_date: date | None = None,
        start_deduction_date: date | None = None,
        purpose: str | None | object = _UNSET,
        notes: str | None | object = _UNSET,
    ) -> Loan:
        """
        Edit loan terms.

        ``total_amount`` is recomputed from the new terms; the remaining
        balance, status and payment history are kept as they are.

        Raises:
            InvalidInputError: if the new total would be below the balance
                still owed.
            StaleRecordError: if the loan changed since it was read.
        """
        loan = self.get_loan(loan_id)
        principal = (
            to_money(principal_amount, "principal_amount")
            if principal_amount is not None else loan.principal_amount
        )
        deduction = (
            to_money(monthly_deduction, "monthly_deduction")
            if monthly_deduction is not None else loan.monthly_deduction
        )
        rate = self._rate(interest_rate) if interest_rate is not None else loan.interest_rate
        if deduction <= 0:
            raise InvalidAmountError("monthly_deduction", deduction)
        total = compute_total_payable(principal, rate, deduction)
        if total < loan.remaining_balance:
            raise InvalidInputError(
                "total_amount",
                f"new total {total} is below the remaining balance {loan.remaining_balance}",
            )

        patch: dict = {
            "principal_amount": principal,
            "interest_rate": rate,
            "monthly_deduction": deduction,
            "total_amount": total,
        }
        if loan_type is not None:
            patch["loan_type"] = LoanType(loan_type)
        if loan_date is not None:
            patch["loan_date"] = loan_date
        if start_deduction_date is not None:
            patch["start_deduction_date"] = start_deduction_date
        if purpose is not _UNSET:
            patch["purpose"] = (purpose or "").strip() or None
        if notes is not _UNSET:
            patch["notes"] = (notes or "").strip() or None

        self._store.update_by_id(Collection.LOANS, loan.id, patch, expected_version=loan.version)
        logger.info(
            "loan_updated",
            extra={
                "loan_id": str(loan.id),
                "fields": sorted(patch),
                "total_amount": str(total),
                "remaining_balance": str(loan.remaining_balance),
            },
        )
        return self.get_loan(loan.id)

    def cancel_loan(self, loan_id: UUID) -> Loan:
        """Stop deducting an active loan.  The outstanding balance is kept."""
        loan = self.get_loan(loan_id)
        if loan.status != LoanStatus.ACTIVE:
            raise LoanNotActiveError(str(loan.id), loan.status.value)
        self._store.update_by_id(
            Collection.LOANS,
            loan.id,
            {"status": LoanStatus.CANCELLED},
            expected_version=loan.version,
        )
        logger.info(
            "loan_cancelled",
            extra={"loan_id": str(loan.id), "remaining_balance": str(loan.remaining_balance)},
        )
        return self.get_loan(loan.id)

    def delete_loan(self, loan_id: UUID) -> int:
        """
        Delete a loan together with its whole payment history.

        Returns the number of payment rows removed.
        """
        loan = self.get_loan(loan_id)
        payments = self.payments_for(loan.id)
        for payment in payments:
            self._store.delete_by_id(Collection.LOAN_PAYMENTS, payment.id)
        self._store.delete_by_id(Collection.LOANS, loan.id)

        survivors = self._store.query(Collection.LOAN_PAYMENTS, {"loan_id": loan.id})
        if survivors:
            raise StoreWriteFailedError(
                "delete_loan",
                "loan_payments",
                f"{len(survivors)} payment rows still reference deleted loan {loan.id}",
            )

        logger.info(
            "loan_deleted",
            extra={"loan_id": str(loan.id), "payments_deleted": len(payments)},
        )
        return len(payments)

    # =========================================================================
    # Payments
    # =========================================================================

    def record_payment(
        self,
        loan_id: UUID,
        amount: Decimal | int | str,
        payment_date: date | None = None,
        payment_type: PaymentType = PaymentType.MANUAL_PAYMENT,
        payslip_id: UUID | None = None,
        notes: str | None = None,
    ) -> PaymentApplication:
        """
        Apply and persist one payment.

        Raises:
            InvalidAmountError / InsufficientBalanceError / LoanNotActiveError:
                before anything is written.
            StoreWriteFailedError: payment insert failed; nothing committed.
            PartialWriteError: payment committed, loan update failed.
        """
        loan = self.get_loan(loan_id)
        return self._persist(
            apply_payment(
                loan,
                to_money(amount),
                payment_date or self._clock.today(),
                payslip_id=payslip_id,
                payment_type=PaymentType(payment_type),
                notes=(notes or "").strip() or None,
            ),
            loan,
        )

    def apply_payslip_deduction(
        self,
        payslip_id: UUID,
        employee_id: UUID,
        amount: Decimal,
        payment_date: date,
        loans: list[Loan] | None = None,
        as_of: date | None = None,
    ) -> list[PaymentApplication]:
        """
        Record one ``payroll_deduction`` payment per loan for a saved payslip.

        ``amount`` is split with ``allocate_loan_deduction``: each active loan
        receives at most ``min(monthly_deduction, remaining_balance)``.
        Eligibility is judged ``as_of`` (default today), the same date the
        payslip's loan deduction was computed for.  ``loans`` may be supplied
        from a snapshot; otherwise they are read from the store.

        Raises:
            PartialWriteError: a later loan failed after earlier payments
                committed; ``committed`` lists them.
        """
        if amount <= 0:
            return []
        as_of = as_of or self._clock.today()
        if loans is None:
            loans = self.active_loans_for(employee_id, as_of)
        else:
            loans = active_loans_for(loans, employee_id, as_of)

        applied: list[PaymentApplication] = []
        with LogContext.bind(payslip_id=str(payslip_id), employee_id=str(employee_id)):
            for loan, share in allocate_loan_deduction(loans, amount):
                try:
                    application = apply_payment(
                        loan,
                        share,
                        payment_date,
                        payslip_id=payslip_id,
                        payment_type=PaymentType.PAYROLL_DEDUCTION,
                    )
                    applied.append(self._persist(application, loan))
                except StoreError as exc:
                    if not applied:
                        raise
                    raise partial_failure(
                        "apply_loan_deduction",
                        exc,
                        committed_ids(
                            loan_payments=[a.payment.id for a in applied],
                            loans=[a.updated_loan.id for a in applied],
                        ),
                    ) from exc

        total = sum((a.payment.amount for a in applied), Decimal("0"))
        logger.info(
            "payslip_loan_deduction_applied",
            extra={
                "payslip_id": str(payslip_id),
                "employee_id": str(employee_id),
                "requested": str(amount),
                "applied": str(round_money(total)),
                "loan_count": len(applied),
            },
        )
        return applied

    # =========================================================================
    # Internals
    # =========================================================================

    def _persist(self, application: PaymentApplication, loan: Loan) -> PaymentApplication:
        payment_id = self._store.insert(Collection.LOAN_PAYMENTS, application.payment)

        updated = application.updated_loan
        try:
            found = self._store.update_by_id(
                Collection.LOANS,
                loan.id,
                {
                    "remaining_balance": updated.remaining_balance,
                    "status": updated.status,
                    "end_date": updated.end_date,
                },
                expected_version=loan.version,
            )
            if not found:
                raise StoreWriteFailedError(
                    "update_by_id", "loans", f"loan {loan.id} no longer exists"
                )
        except StoreError as exc:
            logger.error(
                "loan_balance_update_failed",
                extra={"loan_id": str(loan.id), "payment_id": str(payment_id)},
            )
            raise partial_failure(
                "update_loan_balance", exc, committed_ids(loan_payments=[payment_id])
            ) from exc

        payment = application.payment
        logger.info(
            "loan_payment_applied",
            extra={
                "loan_id": str(loan.id),
                "payment_id": str(payment_id),
                "payment_type": payment.payment_type.value,
                "amount": str(payment.amount),
                "balance_before": str(payment.balance_before),
                "balance_after": str(payment.balance_after),
            },
        )
        if application.completed_loan:
            logger.info(
                "loan_completed",
                extra={"loan_id": str(loan.id), "end_date": str(updated.end_date)},
            )

        return PaymentApplication(
            payment=replace(payment, id=payment_id),
            updated_loan=replace(updated, version=loan.version + 1),
        )

    @staticmethod
    def _rate(value: Decimal | int | str) -> Decimal:
        if isinstance(value, float):
            raise InvalidInputError("interest_rate", "must be a Decimal, int or str, not float")
        try:
            rate = Decimal(str(value))
        except ArithmeticError:
            raise InvalidInputError("interest_rate", f"is not a number (got {value!r})") from None
        if rate < 0:
            raise InvalidInputError("interest_rate", f"cannot be negative (got {rate})")
        return rate
