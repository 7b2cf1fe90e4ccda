"""
Tests for BulkPayrollGenerator.

Verifies:
- One payslip and one distinct Transaction per selected employee
- Loan deductions capped by remaining balance, and loans completed
- Seeding from each employee's latest payslip
- All input and duplicate-period checks happen before any write
- LinkMismatch and batch failures are compensated or reported as partial
"""

from dataclasses import replace
from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from ledger_config.schema import PayrollConfig
from ledger_kernel.exceptions import (
    DuplicatePayslipError,
    InvalidInputError,
    LinkMismatchError,
    PartialWriteError,
    StoreWriteFailedError,
)
from ledger_kernel.services.ledger_store import Collection
from ledger_modules.loans.models import LoanStatus
from ledger_services.bulk_payroll import BulkPayrollGenerator

JAN = (date(2025, 1, 1), date(2025, 1, 31))
JAN_FIRST_HALF = (date(2025, 1, 1), date(2025, 1, 15))


class TestGenerate:

    def test_one_linked_transaction_per_employee(self, bulk_generator, make_employee, store):
        employees = [
            make_employee(name="Ana Reyes", base_salary=Decimal("30000.00")),
            make_employee(name="Ben Cruz", base_salary=Decimal("24000.00")),
            make_employee(name="Carla Diaz", base_salary=None),
        ]

        result = bulk_generator.generate(*JAN_FIRST_HALF, [e.id for e in employees])

        assert result.generated_count == 3
        assert len(set(result.transaction_ids)) == 3
        assert result.loan_payment_ids == ()

        payslips = [store.get(Collection.PAYSLIPS, pid) for pid in result.payslip_ids]
        assert [p.employee_id for p in payslips] == [e.id for e in employees]
        assert [p.gross_salary for p in payslips] == [
            Decimal("15000.00"), Decimal("12000.00"), Decimal("0.00"),
        ]
        for payslip, tx_id in zip(payslips, result.transaction_ids):
            assert payslip.transaction_id == tx_id
            tx = store.get(Collection.TRANSACTIONS, tx_id)
            assert tx.amount == payslip.gross_salary
            assert tx.date == date(2025, 1, 20)

    def test_date_issued_override(self, bulk_generator, make_employee, store):
        employee = make_employee()
        result = bulk_generator.generate(*JAN, [employee.id], date_issued=date(2025, 1, 31))
        payslip = store.get(Collection.PAYSLIPS, result.payslip_ids[0])
        assert payslip.date_issued == date(2025, 1, 31)
        assert payslip.gross_salary == Decimal("30000.00")

    def test_loan_deduction_capped_and_completed(
        self, bulk_generator, loan_service, make_employee, make_loan, store
    ):
        employee = make_employee(base_salary=Decimal("20000.00"))
        loan = make_loan(
            employee.id,
            principal_amount=Decimal("10000.00"),
            monthly_deduction=Decimal("5000.00"),
            remaining_balance=Decimal("3000.00"),
        )

        result = bulk_generator.generate(*JAN, [employee.id])

        payslip = store.get(Collection.PAYSLIPS, result.payslip_ids[0])
        assert payslip.loan_deduction == Decimal("3000.00")
        assert payslip.net_salary == Decimal("17000.00")

        updated = loan_service.get_loan(loan.id)
        assert updated.remaining_balance == Decimal("0.00")
        assert updated.status == LoanStatus.COMPLETED
        assert updated.end_date == payslip.date_issued

        payments = loan_service.payments_for(loan.id)
        assert [p.id for p in payments] == list(result.loan_payment_ids)
        assert payments[0].payslip_id == payslip.id

    def test_multiple_loans(self, bulk_generator, loan_service, make_employee, make_loan, store):
        employee = make_employee()
        first = make_loan(employee.id, monthly_deduction=Decimal("1000.00"))
        second = make_loan(
            employee.id,
            monthly_deduction=Decimal("500.00"),
            start_deduction_date=date(2025, 1, 18),
        )
        make_loan(employee.id, start_deduction_date=date(2025, 2, 1))

        result = bulk_generator.generate(*JAN_FIRST_HALF, [employee.id])

        payslip = store.get(Collection.PAYSLIPS, result.payslip_ids[0])
        assert payslip.loan_deduction == Decimal("1500.00")
        assert len(result.loan_payment_ids) == 2
        assert loan_service.get_loan(first.id).remaining_balance == Decimal("9000.00")
        assert loan_service.get_loan(second.id).remaining_balance == Decimal("9500.00")

    def test_seeds_from_latest_payslip(self, bulk_generator, payroll_service, make_employee, store):
        employee = make_employee()
        december = payroll_service.draft_payslip(
            employee.id, date(2024, 12, 16), date(2024, 12, 31), date_issued=date(2024, 12, 31)
        )
        payroll_service.save_payslip(
            replace(december, sss=Decimal("581.30"), cash_advance=Decimal("1000.00"))
        )

        result = bulk_generator.generate(*JAN_FIRST_HALF, [employee.id])

        payslip = store.get(Collection.PAYSLIPS, result.payslip_ids[0])
        assert payslip.sss == Decimal("581.30")
        assert payslip.cash_advance == Decimal("0.00")
        assert payslip.net_salary == Decimal("14418.70")

    def test_logs_share_correlation_id(self, bulk_generator, make_employee, captured_logs):
        employee = make_employee()
        bulk_generator.generate(*JAN_FIRST_HALF, [employee.id])

        logs = [r for r in captured_logs() if r.get("operation") == "bulk_payroll"]
        completed = [r for r in logs if r["message"] == "bulk_payroll_completed"]
        assert completed[0]["generated_count"] == 1
        assert len({r["correlation_id"] for r in logs}) == 1


class TestValidation:

    @pytest.mark.parametrize(
        "period, ids",
        [
            ((date(2025, 1, 15), date(2025, 1, 1)), "one"),
            ((None, date(2025, 1, 15)), "one"),
            (JAN_FIRST_HALF, "empty"),
            (JAN_FIRST_HALF, "duplicate"),
            (JAN_FIRST_HALF, "missing"),
            (JAN_FIRST_HALF, "unknown"),
        ],
    )
    def test_rejected_before_any_write(self, bulk_generator, make_employee, store, period, ids):
        employee = make_employee()
        selected = {
            "one": [employee.id],
            "empty": [],
            "duplicate": [employee.id, employee.id],
            "missing": [employee.id, None],
            "unknown": [employee.id, uuid4()],
        }[ids]

        with pytest.raises(InvalidInputError):
            bulk_generator.generate(*period, selected)

        assert store.query(Collection.TRANSACTIONS) == []
        assert store.query(Collection.PAYSLIPS) == []

    def test_duplicate_period_rejected(self, bulk_generator, payroll_service, make_employee, store):
        ana = make_employee(name="Ana Reyes")
        ben = make_employee(name="Ben Cruz")
        payroll_service.save_payslip(payroll_service.draft_payslip(ana.id, *JAN_FIRST_HALF))

        with pytest.raises(DuplicatePayslipError) as exc_info:
            bulk_generator.generate(*JAN_FIRST_HALF, [ana.id, ben.id])

        assert exc_info.value.employee_ids == [str(ana.id)]
        assert len(store.query(Collection.TRANSACTIONS)) == 1
        assert store.query(Collection.PAYSLIPS, {"employee_id": ben.id}) == []

    def test_duplicates_allowed_when_disabled(
        self, store, deterministic_clock, payroll_service, make_employee
    ):
        employee = make_employee()
        payroll_service.save_payslip(payroll_service.draft_payslip(employee.id, *JAN_FIRST_HALF))
        generator = BulkPayrollGenerator(
            store, deterministic_clock, PayrollConfig(reject_duplicate_periods=False)
        )

        generator.generate(*JAN_FIRST_HALF, [employee.id])

        assert len(store.query(Collection.PAYSLIPS)) == 2


class TestFailures:

    def test_short_transaction_batch_reports_unlisted_rows(
        self, failing_store, deterministic_clock, make_employee, store
    ):
        employees = [make_employee(name="Ana"), make_employee(name="Ben")]
        failing_store.short_batch(Collection.TRANSACTIONS)
        generator = BulkPayrollGenerator(failing_store, deterministic_clock)

        with pytest.raises(PartialWriteError, match="1 transaction") as exc_info:
            generator.generate(*JAN_FIRST_HALF, [e.id for e in employees])

        mismatch = exc_info.value.__cause__
        assert isinstance(mismatch, LinkMismatchError)
        assert (mismatch.expected, mismatch.actual) == (2, 1)
        assert exc_info.value.step == "link_transactions"
        assert exc_info.value.committed == {"transactions": []}
        assert ("delete_by_id", "transactions") in failing_store.calls
        assert len(store.query(Collection.TRANSACTIONS)) == 1
        assert store.query(Collection.PAYSLIPS) == []

    def test_padded_transaction_batch_compensated(
        self, failing_store, deterministic_clock, make_employee, store
    ):
        employee = make_employee()
        failing_store.padded_batch(Collection.TRANSACTIONS)
        generator = BulkPayrollGenerator(failing_store, deterministic_clock)

        with pytest.raises(LinkMismatchError) as exc_info:
            generator.generate(*JAN_FIRST_HALF, [employee.id])

        assert not isinstance(exc_info.value, PartialWriteError)
        assert (exc_info.value.expected, exc_info.value.actual) == (1, 2)
        assert store.query(Collection.TRANSACTIONS) == []
        assert store.query(Collection.PAYSLIPS) == []

    def test_payslip_batch_failure_compensated(
        self, failing_store, deterministic_clock, make_employee, store
    ):
        employees = [make_employee(name="Ana"), make_employee(name="Ben")]
        failing_store.fail("insert_many", Collection.PAYSLIPS)
        generator = BulkPayrollGenerator(failing_store, deterministic_clock)

        with pytest.raises(StoreWriteFailedError) as exc_info:
            generator.generate(*JAN_FIRST_HALF, [e.id for e in employees])

        assert not isinstance(exc_info.value, PartialWriteError)
        assert store.query(Collection.TRANSACTIONS) == []
        assert store.query(Collection.PAYSLIPS) == []

    def test_payslip_batch_failure_without_compensation(
        self, failing_store, deterministic_clock, make_employee, store
    ):
        employees = [make_employee(name="Ana"), make_employee(name="Ben")]
        failing_store.fail("insert_many", Collection.PAYSLIPS)
        generator = BulkPayrollGenerator(
            failing_store, deterministic_clock, PayrollConfig(compensate_on_failure=False)
        )

        with pytest.raises(PartialWriteError) as exc_info:
            generator.generate(*JAN_FIRST_HALF, [e.id for e in employees])

        orphans = {str(t.id) for t in store.query(Collection.TRANSACTIONS)}
        assert set(exc_info.value.committed["transactions"]) == orphans
        assert len(orphans) == 2

    def test_transaction_batch_failure_writes_nothing(
        self, failing_store, deterministic_clock, make_employee, store
    ):
        employee = make_employee()
        failing_store.fail("insert_many", Collection.TRANSACTIONS)
        generator = BulkPayrollGenerator(failing_store, deterministic_clock)

        with pytest.raises(StoreWriteFailedError):
            generator.generate(*JAN_FIRST_HALF, [employee.id])
        assert store.query(Collection.PAYSLIPS) == []

    def test_loan_failure_reports_everything_committed(
        self, failing_store, deterministic_clock, make_employee, make_loan, store
    ):
        ana = make_employee(name="Ana")
        ben = make_employee(name="Ben")
        ana_loan = make_loan(ana.id)
        make_loan(ben.id)
        failing_store.fail("insert", Collection.LOAN_PAYMENTS, after=1)
        generator = BulkPayrollGenerator(failing_store, deterministic_clock)

        with pytest.raises(PartialWriteError) as exc_info:
            generator.generate(*JAN_FIRST_HALF, [ana.id, ben.id])

        committed = exc_info.value.committed
        assert exc_info.value.step == "apply_loan_deduction"
        assert len(committed["transactions"]) == 2
        assert len(committed["payslips"]) == 2
        assert len(committed["loan_payments"]) == 1
        assert committed["loans"] == [str(ana_loan.id)]
