"""
Payroll Transaction Linker (``ledger_modules.payroll.linker``).

Responsibility
--------------
Keeps exactly one cash-flow ledger expense Transaction per payslip.  The
first save of a payslip creates the Transaction; every later save updates
that same Transaction in place.

Architecture position
---------------------
**Modules layer** -- store-backed.  Used by ``PayrollService.save_payslip``;
the bulk generator uses ``build_payroll_transaction`` directly so a whole
batch can be inserted in one call.

Invariants enforced
-------------------
* The payslip points at the Transaction (``payslip.transaction_id``); the
  Transaction never references the payslip.
* ``amount == gross_salary``, ``date == date_issued``, category from
  ``PayrollConfig.expense_category``.
* A payslip that already carries a ``transaction_id`` never causes a
  second insert.

Failure modes
-------------
* ``StoreWriteFailedError`` -- the Transaction write failed, or the linked
  Transaction no longer exists.
* ``PartialWriteError`` -- the Transaction was created but writing its id
  back onto the persisted payslip failed.
"""

from __future__ import annotations

from datetime import date
from uuid import UUID

from ledger_config.schema import PayrollConfig
from ledger_kernel.domain.dtos import LedgerTransaction, TransactionType
from ledger_kernel.exceptions import StoreError, StoreWriteFailedError
from ledger_kernel.logging_config import get_logger
from ledger_kernel.services.ledger_store import Collection, LedgerStore
from ledger_modules._store_helpers import committed_ids, partial_failure
from ledger_modules.payroll.models import Payslip

logger = get_logger("modules.payroll.linker")


def build_payroll_note(
    employee_name: str,
    period_start: date,
    period_end: date,
    config: PayrollConfig | None = None,
) -> str:
    config = config or PayrollConfig.with_defaults()
    return config.format_note(employee_name, period_start.isoformat(), period_end.isoformat())


def build_payroll_transaction(
    payslip: Payslip,
    employee_name: str,
    config: PayrollConfig | None = None,
) -> LedgerTransaction:
    """The ledger expense entry for ``payslip`` (not yet persisted)."""
    config = config or PayrollConfig.with_defaults()
    return LedgerTransaction(
        date=payslip.date_issued,
        type=TransactionType.EXPENSE,
        amount=payslip.gross_salary,
        category=config.expense_category,
        note=build_payroll_note(employee_name, payslip.period_start, payslip.period_end, config),
    )


class PayrollTransactionLinker:
    """Creates or updates the ledger expense linked to a payslip."""

    def __init__(self, store: LedgerStore, config: PayrollConfig | None = None):
        self._store = store
        self._config = config or PayrollConfig.with_defaults()

    def link_or_update(self, payslip: Payslip, employee_name: str) -> UUID:
        """
        Ensure ``payslip`` has its ledger Transaction and return its id.

        * No ``transaction_id``: insert a new expense Transaction.  When the
          payslip is already persisted the new id is written back onto it.
        * ``transaction_id`` set: update that Transaction's amount, note and
          date in place.
        """
        transaction = build_payroll_transaction(payslip, employee_name, self._config)

        if payslip.transaction_id is not None:
            return self._update(payslip, transaction)

        transaction_id = self._store.insert(Collection.TRANSACTIONS, transaction)
        logger.info(
            "payroll_transaction_created",
            extra={
                "transaction_id": str(transaction_id),
                "payslip_id": str(payslip.id) if payslip.id else None,
                "amount": str(transaction.amount),
            },
        )

        if payslip.id is not None:
            try:
                found = self._store.update_by_id(
                    Collection.PAYSLIPS,
                    payslip.id,
                    {"transaction_id": transaction_id},
                    expected_version=payslip.version,
                )
                if not found:
                    raise StoreWriteFailedError(
                        "link_payslip", "payslips", f"payslip {payslip.id} not found"
                    )
            except StoreError as exc:
                raise partial_failure(
                    "link_payslip", exc, committed_ids(transactions=[transaction_id])
                ) from exc

        return transaction_id

    def _update(self, payslip: Payslip, transaction: LedgerTransaction) -> UUID:
        found = self._store.update_by_id(
            Collection.TRANSACTIONS,
            payslip.transaction_id,
            {
                "date": transaction.date,
                "amount": transaction.amount,
                "category": transaction.category,
                "note": transaction.note,
            },
        )
        if not found:
            raise StoreWriteFailedError(
                "update_payroll_transaction",
                "transactions",
                f"linked transaction {payslip.transaction_id} does not exist",
            )
        logger.info(
            "payroll_transaction_updated",
            extra={
                "transaction_id": str(payslip.transaction_id),
                "payslip_id": str(payslip.id),
                "amount": str(transaction.amount),
            },
        )
        return payslip.transaction_id
