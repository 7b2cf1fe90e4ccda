"""
Payroll Configuration Schema.

Defines the structure and defaults for payroll ledger settings.  Actual
values are loaded from YAML at runtime by ``ledger_config.loader``.
"""

from dataclasses import dataclass, fields
from typing import Self

from ledger_kernel.logging_config import get_logger

logger = get_logger("config.schema")

NOTE_TEMPLATE_FIELDS = ("{employee}", "{period_start}", "{period_end}")


@dataclass(frozen=True)
class PayrollConfig:
    """
    Configuration schema for the payroll ledger.

    Override at instantiation with company-specific values:

        config = PayrollConfig(
            expense_category="Salaries",
            apply_loan_payments_on_save=False,
        )
    """

    # Ledger expense entries written for payslips
    expense_category: str = "Payroll"
    note_template: str = "Payroll: {employee} ({period_start} to {period_end})"

    # Half-month periods: day 1..first_half_end_day, then the rest of the month
    first_half_end_day: int = 15

    # Record payroll_deduction loan payments when a new payslip is first saved
    apply_loan_payments_on_save: bool = True

    # Bulk generation
    reject_duplicate_periods: bool = True
    compensate_on_failure: bool = True

    # Display
    currency_symbol: str = "₱"

    def __post_init__(self):
        if not self.expense_category.strip():
            raise ValueError("expense_category cannot be blank")

        missing = [f for f in NOTE_TEMPLATE_FIELDS if f not in self.note_template]
        if missing:
            raise ValueError(
                f"note_template must reference {', '.join(NOTE_TEMPLATE_FIELDS)}; "
                f"missing {', '.join(missing)}"
            )

        if not 1 <= self.first_half_end_day <= 27:
            raise ValueError(
                f"first_half_end_day must be between 1 and 27, got {self.first_half_end_day}"
            )

        logger.debug(
            "payroll_config_initialized",
            extra={
                "expense_category": self.expense_category,
                "first_half_end_day": self.first_half_end_day,
                "apply_loan_payments_on_save": self.apply_loan_payments_on_save,
                "reject_duplicate_periods": self.reject_duplicate_periods,
                "compensate_on_failure": self.compensate_on_failure,
            },
        )

    @classmethod
    def with_defaults(cls) -> Self:
        """Create config with the stock defaults."""
        return cls()

    @classmethod
    def from_dict(cls, data: dict) -> Self:
        """
        Create config from a dictionary (e.g. parsed YAML).

        Raises:
            ValueError: on keys the schema does not define.
        """
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(f"Unknown payroll config keys: {', '.join(unknown)}")
        logger.info(
            "payroll_config_loading_from_dict",
            extra={"keys": sorted(data.keys())},
        )
        return cls(**data)

    def format_note(self, employee: str, period_start: object, period_end: object) -> str:
        """Render the ledger note for one payslip."""
        return self.note_template.format(
            employee=employee,
            period_start=period_start,
            period_end=period_end,
        )
