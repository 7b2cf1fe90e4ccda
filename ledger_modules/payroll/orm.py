"""
Payroll ORM Persistence Models (``ledger_modules.payroll.orm``).

Responsibility:
    SQLAlchemy ORM models that persist the frozen dataclass DTOs defined in
    ``ledger_modules.payroll.models``.  Each ORM class provides
    ``to_dto()`` / ``from_dto()`` round-trip conversion.

Invariants enforced:
    - All monetary fields are Numeric(18, 2) -- NEVER float.
    - ``payslips.transaction_id`` references ``transactions.id``; the
      Transaction row has no back-reference to the payslip.
    - Deleting a payslip never cascades to its Transaction.
    - ``payslips`` carries a ``version`` column for optimistic concurrency.
"""

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Date, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ledger_kernel.db.base import TrackedBase, VersionedMixin
from ledger_kernel.db.types import Money

# ---------------------------------------------------------------------------
# EmployeeModel
# ---------------------------------------------------------------------------


class EmployeeModel(TrackedBase):
    """ORM model for ``Employee``."""

    __tablename__ = "employees"

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    position: Mapped[str | None] = mapped_column(String(200), nullable=True)
    base_salary: Mapped[Decimal | None] = mapped_column(nullable=True)
    employment_status: Mapped[str | None] = mapped_column(String(50), nullable=True)

    payslips: Mapped[list["PayslipModel"]] = relationship(
        "PayslipModel", back_populates="employee", lazy="select",
    )

    __table_args__ = (
        Index("idx_employees_name", "name"),
    )

    def to_dto(self):
        from ledger_modules.payroll.models import Employee, EmploymentStatus
        return Employee(
            id=self.id,
            name=self.name,
            position=self.position,
            base_salary=self.base_salary,
            employment_status=(
                EmploymentStatus(self.employment_status) if self.employment_status else None
            ),
        )

    @classmethod
    def from_dto(cls, dto) -> "EmployeeModel":
        status = dto.employment_status
        return cls(
            id=dto.id,
            name=dto.name,
            position=dto.position,
            base_salary=dto.base_salary,
            employment_status=status.value if hasattr(status, "value") else status,
        )

    def __repr__(self) -> str:
        return f"<EmployeeModel {self.name} ({self.position})>"


# ---------------------------------------------------------------------------
# PayslipModel
# ---------------------------------------------------------------------------


class PayslipModel(VersionedMixin, TrackedBase):
    """
    ORM model for ``Payslip``.

    Contract:
        ``net_salary`` is stored as computed by ``recompute`` at save time;
        it is never edited directly.
    """

    __tablename__ = "payslips"

    employee_id: Mapped[UUID] = mapped_column(
        ForeignKey("employees.id"), nullable=False,
    )
    period_start: Mapped[date] = mapped_column(Date, nullable=False)
    period_end: Mapped[date] = mapped_column(Date, nullable=False)
    date_issued: Mapped[date] = mapped_column(Date, nullable=False)
    gross_salary: Mapped[Money] = mapped_column(nullable=False)
    bonuses: Mapped[Money] = mapped_column(nullable=False, default=Decimal("0"))
    allowances: Mapped[Money] = mapped_column(nullable=False, default=Decimal("0"))
    sss: Mapped[Money] = mapped_column(nullable=False, default=Decimal("0"))
    pagibig: Mapped[Money] = mapped_column(nullable=False, default=Decimal("0"))
    philhealth: Mapped[Money] = mapped_column(nullable=False, default=Decimal("0"))
    tax: Mapped[Money] = mapped_column(nullable=False, default=Decimal("0"))
    cash_advance: Mapped[Money] = mapped_column(nullable=False, default=Decimal("0"))
    loan_deduction: Mapped[Money] = mapped_column(nullable=False, default=Decimal("0"))
    other_deductions: Mapped[Money] = mapped_column(nullable=False, default=Decimal("0"))
    net_salary: Mapped[Money] = mapped_column(nullable=False)
    notes: Mapped[str | None] = mapped_column(String(4000), nullable=True)
    transaction_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("transactions.id"), nullable=True,
    )

    employee: Mapped["EmployeeModel"] = relationship(
        "EmployeeModel", back_populates="payslips", lazy="select",
    )

    __table_args__ = (
        Index("idx_payslips_employee_period", "employee_id", "period_start", "period_end"),
        Index("idx_payslips_date_issued", "date_issued"),
        Index("idx_payslips_transaction", "transaction_id"),
    )

    def to_dto(self):
        from ledger_modules.payroll.models import Payslip
        return Payslip(
            id=self.id,
            employee_id=self.employee_id,
            period_start=self.period_start,
            period_end=self.period_end,
            date_issued=self.date_issued,
            gross_salary=self.gross_salary,
            bonuses=self.bonuses,
            allowances=self.allowances,
            sss=self.sss,
            pagibig=self.pagibig,
            philhealth=self.philhealth,
            tax=self.tax,
            cash_advance=self.cash_advance,
            loan_deduction=self.loan_deduction,
            other_deductions=self.other_deductions,
            net_salary=self.net_salary,
            notes=self.notes,
            transaction_id=self.transaction_id,
            version=self.version,
            created_at=self.created_at,
        )

    @classmethod
    def from_dto(cls, dto) -> "PayslipModel":
        return cls(
            id=dto.id,
            employee_id=dto.employee_id,
            period_start=dto.period_start,
            period_end=dto.period_end,
            date_issued=dto.date_issued,
            gross_salary=dto.gross_salary,
            bonuses=dto.bonuses,
            allowances=dto.allowances,
            sss=dto.sss,
            pagibig=dto.pagibig,
            philhealth=dto.philhealth,
            tax=dto.tax,
            cash_advance=dto.cash_advance,
            loan_deduction=dto.loan_deduction,
            other_deductions=dto.other_deductions,
            net_salary=dto.net_salary,
            notes=dto.notes,
            transaction_id=dto.transaction_id,
            version=dto.version,
        )

    def __repr__(self) -> str:
        return (
            f"<PayslipModel {self.period_start}..{self.period_end} "
            f"gross={self.gross_salary} net={self.net_salary}>"
        )
