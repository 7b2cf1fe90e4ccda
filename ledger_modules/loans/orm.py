"""
Loan ORM Persistence Models (``ledger_modules.loans.orm``).

Responsibility:
    SQLAlchemy ORM models that persist the frozen dataclass DTOs defined in
    ``ledger_modules.loans.models``.  Each ORM class provides ``to_dto()`` /
    ``from_dto()`` round-trip conversion.

Invariants enforced:
    - All monetary fields are Numeric(18, 2) -- NEVER float.
    - Enum fields stored as String(50) containing the enum .value string.
    - ``loan_payments.loan_id`` cascades on delete, so removing a loan never
      leaves orphaned payment rows.
    - ``loans`` carries a ``version`` column for optimistic concurrency.
"""

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Date, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ledger_kernel.db.base import TrackedBase, VersionedMixin
from ledger_kernel.db.types import Money, Rate

# ---------------------------------------------------------------------------
# LoanModel
# ---------------------------------------------------------------------------


class LoanModel(VersionedMixin, TrackedBase):
    """
    ORM model for ``Loan``.

    Contract:
        ``remaining_balance`` only decreases through recorded payments;
        manual edits change terms, not the balance.
    """

    __tablename__ = "loans"

    employee_id: Mapped[UUID] = mapped_column(
        ForeignKey("employees.id"), nullable=False,
    )
    loan_type: Mapped[str] = mapped_column(String(50), nullable=False)
    principal_amount: Mapped[Money] = mapped_column(nullable=False)
    interest_rate: Mapped[Rate] = mapped_column(nullable=False, default=Decimal("0"))
    total_amount: Mapped[Money] = mapped_column(nullable=False)
    monthly_deduction: Mapped[Money] = mapped_column(nullable=False)
    remaining_balance: Mapped[Money] = mapped_column(nullable=False)
    loan_date: Mapped[date] = mapped_column(Date, nullable=False)
    start_deduction_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[str] = mapped_column(String(50), nullable=False, default="active")
    end_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    purpose: Mapped[str | None] = mapped_column(String(500), nullable=True)
    notes: Mapped[str | None] = mapped_column(String(4000), nullable=True)

    payments: Mapped[list["LoanPaymentModel"]] = relationship(
        "LoanPaymentModel",
        back_populates="loan",
        lazy="select",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        Index("idx_loans_employee_status", "employee_id", "status"),
        Index("idx_loans_start_deduction", "start_deduction_date"),
    )

    def to_dto(self):
        from ledger_modules.loans.models import Loan, LoanStatus, LoanType
        return Loan(
            id=self.id,
            employee_id=self.employee_id,
            loan_type=LoanType(self.loan_type),
            principal_amount=self.principal_amount,
            interest_rate=self.interest_rate,
            total_amount=self.total_amount,
            monthly_deduction=self.monthly_deduction,
            remaining_balance=self.remaining_balance,
            loan_date=self.loan_date,
            start_deduction_date=self.start_deduction_date,
            status=LoanStatus(self.status),
            end_date=self.end_date,
            purpose=self.purpose,
            notes=self.notes,
            version=self.version,
        )

    @classmethod
    def from_dto(cls, dto) -> "LoanModel":
        return cls(
            id=dto.id,
            employee_id=dto.employee_id,
            loan_type=dto.loan_type.value if hasattr(dto.loan_type, "value") else dto.loan_type,
            principal_amount=dto.principal_amount,
            interest_rate=dto.interest_rate,
            total_amount=dto.total_amount,
            monthly_deduction=dto.monthly_deduction,
            remaining_balance=dto.remaining_balance,
            loan_date=dto.loan_date,
            start_deduction_date=dto.start_deduction_date,
            status=dto.status.value if hasattr(dto.status, "value") else dto.status,
            end_date=dto.end_date,
            purpose=dto.purpose,
            notes=dto.notes,
            version=dto.version,
        )

    def __repr__(self) -> str:
        return (
            f"<LoanModel {self.loan_type} {self.remaining_balance}/"
            f"{self.total_amount} ({self.status})>"
        )


# ---------------------------------------------------------------------------
# LoanPaymentModel
# ---------------------------------------------------------------------------


class LoanPaymentModel(TrackedBase):
    """
    ORM model for ``LoanPayment`` -- append-only.

    Contract:
        Rows are inserted and deleted (with their loan) but never updated;
        corrections are new ``adjustment`` payments.  ``payslip_id`` is a
        plain reference so deleting a payslip keeps its payment history.
    """

    __tablename__ = "loan_payments"

    loan_id: Mapped[UUID] = mapped_column(
        ForeignKey("loans.id", ondelete="CASCADE"), nullable=False,
    )
    payslip_id: Mapped[UUID | None] = mapped_column(nullable=True)
    payment_date: Mapped[date] = mapped_column(Date, nullable=False)
    amount: Mapped[Money] = mapped_column(nullable=False)
    balance_before: Mapped[Money] = mapped_column(nullable=False)
    balance_after: Mapped[Money] = mapped_column(nullable=False)
    payment_type: Mapped[str] = mapped_column(String(50), nullable=False)
    notes: Mapped[str | None] = mapped_column(String(4000), nullable=True)

    loan: Mapped["LoanModel"] = relationship(
        "LoanModel", back_populates="payments", lazy="select",
    )

    __table_args__ = (
        Index("idx_loan_payments_loan", "loan_id"),
        Index("idx_loan_payments_payslip", "payslip_id"),
        Index("idx_loan_payments_date", "payment_date"),
    )

    def to_dto(self):
        from ledger_modules.loans.models import LoanPayment, PaymentType
        return LoanPayment(
            id=self.id,
            loan_id=self.loan_id,
            payslip_id=self.payslip_id,
            payment_date=self.payment_date,
            amount=self.amount,
            balance_before=self.balance_before,
            balance_after=self.balance_after,
            payment_type=PaymentType(self.payment_type),
            notes=self.notes,
        )

    @classmethod
    def from_dto(cls, dto) -> "LoanPaymentModel":
        return cls(
            id=dto.id,
            loan_id=dto.loan_id,
            payslip_id=dto.payslip_id,
            payment_date=dto.payment_date,
            amount=dto.amount,
            balance_before=dto.balance_before,
            balance_after=dto.balance_after,
            payment_type=(
                dto.payment_type.value if hasattr(dto.payment_type, "value") else dto.payment_type
            ),
            notes=dto.notes,
        )

    def __repr__(self) -> str:
        return (
            f"<LoanPaymentModel {self.payment_date} {self.amount} "
            f"({self.balance_before} -> {self.balance_after})>"
        )
