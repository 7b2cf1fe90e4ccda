"""
Module ORM Registry (``ledger_modules._orm_registry``).

Responsibility
--------------
Ensure every SQLAlchemy ORM model is imported so that ``Base.metadata``
contains its table before tables are created, and map each store
collection name to the ORM class that persists it.

Architecture position
---------------------
**Modules layer** -- utility.  Imports from sibling ``ledger_modules``
packages and from ``ledger_kernel`` (allowed: modules -> kernel).  The
kernel reaches it lazily from ``create_tables()`` and ``SqlLedgerStore``.
"""


def import_all_orm_models() -> None:
    """Import kernel models and every ``ledger_modules.*.orm`` module.

    Kernel tables (transactions) come first because payslips reference
    them.  Idempotent -- repeated calls are harmless.
    """
    import ledger_kernel.models  # noqa: F401
    import ledger_modules.payroll.orm  # noqa: F401
    import ledger_modules.loans.orm  # noqa: F401


def collection_models() -> dict[str, type]:
    """Collection name -> ORM class, as consumed by ``SqlLedgerStore``."""
    from ledger_kernel.models import TransactionModel
    from ledger_modules.loans.orm import LoanModel, LoanPaymentModel
    from ledger_modules.payroll.orm import EmployeeModel, PayslipModel

    return {
        "employees": EmployeeModel,
        "loans": LoanModel,
        "loan_payments": LoanPaymentModel,
        "payslips": PayslipModel,
        "transactions": TransactionModel,
    }
