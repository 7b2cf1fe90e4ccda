"""
Loan Helpers (``ledger_modules.loans.helpers``).

Responsibility
--------------
Pure loan arithmetic: total payable at creation, eligibility for payroll
deduction, per-period deduction amounts, and payment application with
status transitions.

Architecture position
---------------------
**Modules layer** -- pure helper functions.  No I/O, no store, no clock.
Called by ``LoanService``, ``PayrollService`` and the bulk generator, which
pass in the loans they have already read.

Invariants enforced
-------------------
* All numeric inputs and outputs use ``Decimal`` -- NEVER ``float``.
* Money results are quantized to 0.01 (ROUND_HALF_UP).
* ``apply_payment`` never over-pays: ``amount > remaining_balance`` is
  rejected, so a balance can reach zero but never go below it.
* ``apply_payment`` is all-or-nothing: it returns the complete
  (payment, updated loan) pair or raises before building either.

Failure modes
-------------
* ``InvalidInputError`` / ``InvalidAmountError`` for non-positive principal,
  deduction or payment amounts, and for negative interest rates.
* ``InsufficientBalanceError`` when a payment exceeds the remaining balance.
* ``LoanNotActiveError`` when paying a completed or cancelled loan.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import replace
from datetime import date
from decimal import ROUND_CEILING, Decimal
from uuid import UUID

from ledger_kernel.db.types import ZERO, round_money
from ledger_kernel.exceptions import (
    InsufficientBalanceError,
    InvalidAmountError,
    InvalidInputError,
    LoanNotActiveError,
)
from ledger_modules.loans.models import (
    Loan,
    LoanPayment,
    LoanPortfolioSummary,
    LoanStatus,
    PaymentApplication,
    PaymentType,
)


def estimate_periods(principal: Decimal, deduction_amount: Decimal) -> int:
    """
    Estimate how many deductions repay ``principal``: ``ceil(principal / deduction)``.

    Raises:
        InvalidAmountError: if ``deduction_amount <= 0``.
    """
    if deduction_amount <= 0:
        raise InvalidAmountError("deduction_amount", deduction_amount)
    return int((principal / deduction_amount).to_integral_value(rounding=ROUND_CEILING))


def compute_total_payable(
    principal: Decimal,
    annual_rate_percent: Decimal,
    deduction_amount: Decimal,
) -> Decimal:
    """
    Total amount payable on a new loan (simple-interest approximation).

    The repayment term is estimated as ``ceil(principal / deduction_amount)``
    periods, each treated as one month, and simple interest is charged on
    the full principal for that term:

        interest = principal * rate * periods / (12 * 100)

    This is deliberately not amortized or compounded interest; the balance
    is not reduced before interest is computed.

    Preconditions:
        - ``principal`` > 0, ``deduction_amount`` > 0, ``annual_rate_percent`` >= 0.
    Postconditions:
        - Returns ``principal + interest`` quantized to 0.01.
        - With a zero rate the result equals ``principal``.
    """
    if principal <= 0:
        raise InvalidAmountError("principal_amount", principal)
    if annual_rate_percent < 0:
        raise InvalidInputError("interest_rate", f"cannot be negative (got {annual_rate_percent})")
    periods = estimate_periods(principal, deduction_amount)
    interest = principal * annual_rate_percent * periods / Decimal(12 * 100)
    return round_money(principal + interest)


def _deduction_order(loan: Loan) -> tuple:
    return (loan.start_deduction_date, loan.loan_date, str(loan.id))


def active_loans_for(
    loans: Iterable[Loan],
    employee_id: UUID,
    as_of: date,
) -> list[Loan]:
    """
    Loans of ``employee_id`` eligible for payroll deduction on ``as_of``.

    Eligible means ``status == active`` and ``start_deduction_date <= as_of``.
    Returned oldest deduction start first so allocation is deterministic.
    """
    eligible = [
        loan for loan in loans
        if loan.employee_id == employee_id
        and loan.status == LoanStatus.ACTIVE
        and loan.start_deduction_date <= as_of
    ]
    return sorted(eligible, key=_deduction_order)


def capped_deduction(loan: Loan) -> Decimal:
    """Per-period deduction for one loan: ``min(monthly_deduction, remaining_balance)``."""
    return min(loan.monthly_deduction, loan.remaining_balance)


def total_deduction_for(
    loans: Iterable[Loan],
    employee_id: UUID,
    as_of: date,
) -> Decimal:
    """
    Loan deduction for one payslip: the capped deductions of every
    eligible loan, summed.  Zero when the employee has no active loans.
    """
    return round_money(
        sum((capped_deduction(loan) for loan in active_loans_for(loans, employee_id, as_of)), ZERO)
    )


def allocate_loan_deduction(
    loans: Sequence[Loan],
    amount: Decimal,
) -> list[tuple[Loan, Decimal]]:
    """
    Split a payslip's loan deduction across loans.

    Each loan receives at most its capped deduction, in the order given;
    allocation stops when ``amount`` is used up.  Any amount beyond the sum
    of caps is left unallocated rather than over-paying a loan.
    """
    if amount < 0:
        raise InvalidAmountError("loan_deduction", amount, "cannot be negative")
    allocations: list[tuple[Loan, Decimal]] = []
    left = amount
    for loan in loans:
        if left <= 0:
            break
        share = min(capped_deduction(loan), left)
        if share > 0:
            allocations.append((loan, share))
            left -= share
    return allocations


def apply_payment(
    loan: Loan,
    amount: Decimal,
    payment_date: date,
    payslip_id: UUID | None = None,
    payment_type: PaymentType = PaymentType.PAYROLL_DEDUCTION,
    notes: str | None = None,
) -> PaymentApplication:
    """
    Apply one payment to ``loan``.

    Preconditions:
        - ``loan.status`` is active.
        - ``0 < amount <= loan.remaining_balance`` once rounded to centavos.
    Postconditions:
        - ``payment.balance_after == payment.balance_before - amount``.
        - ``updated_loan.remaining_balance == payment.balance_after``.
        - When the balance reaches zero the updated loan is ``completed``
          with ``end_date == payment_date``; otherwise status is unchanged.
        - ``loan`` itself is not modified; persistence is the caller's job.
    """
    if loan.status != LoanStatus.ACTIVE:
        raise LoanNotActiveError(str(loan.id), loan.status.value)
    amount = round_money(amount)
    if amount <= 0:
        raise InvalidAmountError("amount", amount)
    if amount > loan.remaining_balance:
        raise InsufficientBalanceError(str(loan.id), amount, loan.remaining_balance)

    balance_before = loan.remaining_balance
    balance_after = round_money(balance_before - amount)

    payment = LoanPayment(
        loan_id=loan.id,
        payslip_id=payslip_id,
        payment_date=payment_date,
        amount=amount,
        balance_before=balance_before,
        balance_after=balance_after,
        payment_type=payment_type,
        notes=notes,
    )

    if balance_after <= 0:
        updated = replace(
            loan,
            remaining_balance=balance_after,
            status=LoanStatus.COMPLETED,
            end_date=payment_date,
        )
    else:
        updated = replace(loan, remaining_balance=balance_after)

    return PaymentApplication(payment=payment, updated_loan=updated)


def loan_progress(loan: Loan) -> Decimal:
    """Percent of ``total_amount`` repaid, 0.00 to 100.00."""
    if loan.total_amount <= 0:
        return Decimal("100.00")
    return round_money(loan.amount_paid * 100 / loan.total_amount)


def summarize_portfolio(loans: Iterable[Loan]) -> LoanPortfolioSummary:
    """Totals for a loans overview: loaned, paid, and outstanding active balance."""
    loans = list(loans)
    total_loaned = sum((loan.total_amount for loan in loans), ZERO)
    outstanding = sum((loan.remaining_balance for loan in loans), ZERO)
    active = [loan for loan in loans if loan.status == LoanStatus.ACTIVE]
    return LoanPortfolioSummary(
        total_loaned=round_money(total_loaned),
        total_paid=round_money(total_loaned - outstanding),
        active_balance=round_money(sum((loan.remaining_balance for loan in active), ZERO)),
        active_count=len(active),
        completed_count=sum(1 for loan in loans if loan.status == LoanStatus.COMPLETED),
        cancelled_count=sum(1 for loan in loans if loan.status == LoanStatus.CANCELLED),
    )
