"""
Typed Exception Hierarchy for the Payroll Ledger.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Every failure in the payroll core must be reportable to the operator with a
specific, non-generic message naming which quantity was invalid or which
write failed.  Callers catch by TYPE, never by parsing message text, and
every exception carries:

  1. A static ``code`` class attribute (machine-readable, API-safe)
  2. Structured attributes describing the failure (not just a message)

Example:
    try:
        loans.record_payment(loan_id, Decimal("5000"), date.today())
    except InsufficientBalanceError as e:
        show_error(f"Only {e.remaining_balance} left on loan {e.loan_id}")
    except PartialWriteError as e:
        show_error(f"{e.step} failed after committing {e.committed}")

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    LedgerError (base)
    |
    +-- InvalidInputError
    |   +-- InvalidAmountError
    |   |   +-- InsufficientBalanceError
    |   +-- DuplicatePayslipError
    |   +-- LoanNotActiveError
    |
    +-- RecordNotFoundError
    |
    +-- LinkMismatchError
    |
    +-- StoreError
        +-- StoreWriteFailedError
        |   +-- PartialWriteError
        +-- StoreReadFailedError
        +-- StaleRecordError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category   | Code                  | When Raised
-----------|-----------------------|-----------------------------------------
Input      | INVALID_INPUT         | Missing id, blank name, bad period
           | INVALID_AMOUNT        | Non-positive or negative amount
           | INSUFFICIENT_BALANCE  | Payment exceeds remaining loan balance
           | DUPLICATE_PAYSLIP     | Payslip already exists for the period
           | LOAN_NOT_ACTIVE       | Payment or cancel on a non-active loan
-----------|-----------------------|-----------------------------------------
Lookup     | RECORD_NOT_FOUND      | Referenced row does not exist
-----------|-----------------------|-----------------------------------------
Linking    | LINK_MISMATCH         | Bulk Transaction count != Payslip count
-----------|-----------------------|-----------------------------------------
Store      | STORE_WRITE_FAILED    | A persistence call errored
           | PARTIAL_WRITE         | Failure after earlier writes committed
           | STORE_READ_FAILED     | A query errored
           | STALE_RECORD          | Optimistic version check failed

===============================================================================
PROPAGATION
===============================================================================

* ``InvalidInputError`` and its subclasses are raised BEFORE any store write.
* ``LinkMismatchError`` aborts bulk generation before payslips are written;
  it is chained under ``PartialWriteError`` when Transactions may remain.
* ``StoreWriteFailedError`` carries the underlying store message verbatim in
  ``detail``.  Nothing is retried automatically.
* ``PartialWriteError`` means some rows were committed and the store offers
  no cross-collection rollback.  ``committed`` lists what survived so the
  operator can reconcile it.
"""


class LedgerError(Exception):
    """
    Base exception for all payroll ledger errors.

    All subclasses define a ``code`` class attribute for machine-readable
    identification.
    """

    code: str = "LEDGER_ERROR"


# Input validation


class InvalidInputError(LedgerError):
    """A caller-supplied value failed validation."""

    code: str = "INVALID_INPUT"

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"Invalid {field}: {reason}")


class InvalidAmountError(InvalidInputError):
    """A monetary amount is zero, negative, or otherwise unusable."""

    code: str = "INVALID_AMOUNT"

    def __init__(self, field: str, amount: object, reason: str = "must be greater than 0"):
        self.amount = amount
        super().__init__(field, f"{reason} (got {amount})")


class InsufficientBalanceError(InvalidAmountError):
    """Payment amount exceeds the loan's remaining balance."""

    code: str = "INSUFFICIENT_BALANCE"

    def __init__(self, loan_id: str, amount: object, remaining_balance: object):
        self.loan_id = loan_id
        self.remaining_balance = remaining_balance
        super().__init__(
            "amount",
            amount,
            f"exceeds remaining balance {remaining_balance} of loan {loan_id}",
        )


class DuplicatePayslipError(InvalidInputError):
    """A payslip already exists for the employee and pay period."""

    code: str = "DUPLICATE_PAYSLIP"

    def __init__(self, employee_ids: list[str], period_start: str, period_end: str):
        self.employee_ids = employee_ids
        self.period_start = period_start
        self.period_end = period_end
        super().__init__(
            "employee_ids",
            f"payslips for {period_start} to {period_end} already exist "
            f"for {len(employee_ids)} employee(s): {', '.join(employee_ids)}",
        )


class LoanNotActiveError(InvalidInputError):
    """Operation requires an active loan."""

    code: str = "LOAN_NOT_ACTIVE"

    def __init__(self, loan_id: str, status: str):
        self.loan_id = loan_id
        self.status = status
        super().__init__("loan_id", f"loan {loan_id} is {status}, not active")


# Lookup


class RecordNotFoundError(LedgerError):
    """A referenced record does not exist in the store."""

    code: str = "RECORD_NOT_FOUND"

    def __init__(self, collection: str, record_id: str):
        self.collection = collection
        self.record_id = record_id
        super().__init__(f"No {collection} record with id {record_id}")


# Linking


class LinkMismatchError(LedgerError):
    """
    Bulk Transaction batch returned a different count than the payslip batch.

    A mismatch means the Transaction batch partially failed; payslips are
    never persisted unlinked.  When rows may survive it is raised as the
    cause of a ``PartialWriteError``.
    """

    code: str = "LINK_MISMATCH"

    def __init__(self, expected: int, actual: int):
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Created {actual} ledger transactions for {expected} payslips; "
            f"batch aborted before any payslip was saved"
        )


# Store


class StoreError(LedgerError):
    """Base exception for Ledger Store failures."""

    code: str = "STORE_ERROR"


class StoreWriteFailedError(StoreError):
    """A persistence call failed.  ``detail`` is the store's own message."""

    code: str = "STORE_WRITE_FAILED"

    def __init__(self, step: str, collection: str, detail: str):
        self.step = step
        self.collection = collection
        self.detail = detail
        super().__init__(f"{step} on {collection} failed: {detail}")


class PartialWriteError(StoreWriteFailedError):
    """
    A write failed after earlier writes of the same operation committed.

    ``committed`` maps a collection name to the ids that were already
    written and were not (or could not be) compensated.
    """

    code: str = "PARTIAL_WRITE"

    def __init__(
        self,
        step: str,
        collection: str,
        detail: str,
        committed: dict[str, list[str]],
    ):
        self.committed = committed
        super().__init__(step, collection, detail)
        summary = ", ".join(
            f"{len(ids)} {name}" for name, ids in committed.items() if ids
        )
        self.args = (
            f"{step} on {collection} failed after committing "
            f"{summary or 'nothing'}: {detail}",
        )


class StoreReadFailedError(StoreError):
    """A query against the store failed."""

    code: str = "STORE_READ_FAILED"

    def __init__(self, collection: str, detail: str):
        self.collection = collection
        self.detail = detail
        super().__init__(f"Reading {collection} failed: {detail}")


class StaleRecordError(StoreError):
    """The record changed since it was read (optimistic concurrency)."""

    code: str = "STALE_RECORD"

    def __init__(
        self,
        collection: str,
        record_id: str,
        expected_version: int,
        actual_version: int,
    ):
        self.collection = collection
        self.record_id = record_id
        self.expected_version = expected_version
        self.actual_version = actual_version
        super().__init__(
            f"{collection} record {record_id} is at version {actual_version}, "
            f"expected {expected_version}; reload and retry"
        )
