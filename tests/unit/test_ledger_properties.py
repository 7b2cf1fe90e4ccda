"""
Property-based tests for payslip and loan arithmetic.

Properties checked over generated inputs:
- net_salary == additions - deductions for every recomputed payslip
- remaining_balance == total_amount - sum(payments) and never negative,
  after any sequence of payments
- a loan is completed exactly when its balance reaches zero
- allocating a payroll deduction never exceeds a loan's capped share
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

from hypothesis import given, settings
from hypothesis import strategies as st
from hypothesis.strategies import composite

from ledger_modules.loans.helpers import (
    allocate_loan_deduction,
    apply_payment,
    capped_deduction,
)
from ledger_modules.loans.models import Loan, LoanStatus, LoanType
from ledger_modules.payroll.helpers import payslip_totals, recompute
from ledger_modules.payroll.models import ADDITION_FIELDS, DEDUCTION_FIELDS, Payslip

PAY_DATE = date(2025, 1, 31)


def money(min_value: str = "0.00", max_value: str = "1000000.00"):
    return st.decimals(
        min_value=Decimal(min_value),
        max_value=Decimal(max_value),
        places=2,
        allow_nan=False,
        allow_infinity=False,
    )


@composite
def payslips(draw):
    amounts = {name: draw(money()) for name in ADDITION_FIELDS + DEDUCTION_FIELDS}
    return Payslip(
        employee_id=uuid4(),
        period_start=date(2025, 1, 1),
        period_end=date(2025, 1, 15),
        date_issued=date(2025, 1, 15),
        net_salary=draw(money()),
        **amounts,
    )


@composite
def active_loans(draw, max_total: str = "100000.00"):
    total = draw(money("1.00", max_total))
    remaining = draw(money("0.01", str(total)))
    return Loan(
        id=uuid4(),
        employee_id=uuid4(),
        loan_type=LoanType.CASH_ADVANCE,
        principal_amount=total,
        interest_rate=Decimal("0"),
        total_amount=total,
        monthly_deduction=draw(money("0.01", "20000.00")),
        remaining_balance=remaining,
        loan_date=date(2025, 1, 2),
        start_deduction_date=date(2025, 1, 15),
    )


class TestPayslipProperties:

    @given(payslip=payslips())
    @settings(max_examples=200)
    def test_net_is_additions_minus_deductions(self, payslip):
        result = recompute(payslip)

        additions = sum(getattr(payslip, name) for name in ADDITION_FIELDS)
        deductions = sum(getattr(payslip, name) for name in DEDUCTION_FIELDS)
        assert result.net_salary == additions - deductions

        totals = payslip_totals(result)
        assert totals.net == totals.additions - totals.deductions == result.net_salary


class TestLoanPaymentProperties:

    @given(
        total=money("1.00", "100000.00"),
        payments=st.lists(money("0.01", "100000.00"), min_size=1, max_size=30),
    )
    @settings(max_examples=200)
    def test_balance_tracks_payment_history(self, total, payments):
        loan = Loan(
            id=uuid4(),
            employee_id=uuid4(),
            loan_type=LoanType.SALARY_LOAN,
            principal_amount=total,
            interest_rate=Decimal("0"),
            total_amount=total,
            monthly_deduction=total,
            remaining_balance=total,
            loan_date=date(2025, 1, 2),
            start_deduction_date=date(2025, 1, 15),
        )
        paid = Decimal("0.00")

        for requested in payments:
            if loan.status == LoanStatus.COMPLETED:
                break
            result = apply_payment(loan, min(requested, loan.remaining_balance), PAY_DATE)
            paid += result.payment.amount
            loan = result.updated_loan

            payment = result.payment
            assert payment.balance_after == payment.balance_before - payment.amount
            assert loan.remaining_balance == loan.total_amount - paid
            assert loan.remaining_balance >= 0
            assert (loan.status == LoanStatus.COMPLETED) == (loan.remaining_balance <= 0)
            assert (loan.end_date is not None) == (loan.status == LoanStatus.COMPLETED)

    @given(
        loans=st.lists(active_loans(), min_size=1, max_size=5),
        amount=money("0.01", "50000.00"),
    )
    @settings(max_examples=100)
    def test_allocation_respects_caps(self, loans, amount):
        allocations = allocate_loan_deduction(loans, amount)

        assert sum(share for _, share in allocations) <= amount
        for loan, share in allocations:
            assert Decimal("0") < share <= capped_deduction(loan)
            assert apply_payment(loan, share, PAY_DATE).updated_loan.remaining_balance >= 0
