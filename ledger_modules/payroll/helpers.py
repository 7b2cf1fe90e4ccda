"""
Payslip Helpers (``ledger_modules.payroll.helpers``).

Responsibility
--------------
Pure payslip arithmetic: gross pay for a period, net pay recomputation,
and the defaults a new payslip inherits from the employee's latest one.

Architecture position
---------------------
**Modules layer** -- pure helper functions.  No I/O, no store.  Called by
``PayrollService`` and the bulk payroll generator.

Invariants enforced
-------------------
* ``Decimal`` only; results quantized to 0.01 (ROUND_HALF_UP).
* ``recompute`` is the only place ``net_salary`` is derived:
  ``gross + bonuses + allowances - (sss + pagibig + philhealth + tax +
  cash_advance + loan_deduction + other_deductions)``.
"""

from __future__ import annotations

import calendar
from collections.abc import Iterable
from dataclasses import replace
from datetime import date
from decimal import Decimal

from ledger_kernel.db.types import ZERO, round_money
from ledger_modules.payroll.models import (
    ADDITION_FIELDS,
    DEDUCTION_FIELDS,
    RECURRING_FIELDS,
    Payslip,
    PayslipDefaults,
    PayslipTotals,
)


def is_half_month(period_start: date, period_end: date, first_half_end_day: int = 15) -> bool:
    """
    True when the period is exactly day 1 through ``first_half_end_day``,
    or exactly the following day through the last day of the same month.
    """
    if (period_start.year, period_start.month) != (period_end.year, period_end.month):
        return False
    last_day = calendar.monthrange(period_end.year, period_end.month)[1]
    if period_start.day == 1 and period_end.day == first_half_end_day:
        return True
    return period_start.day == first_half_end_day + 1 and period_end.day == last_day


def period_gross(
    period_start: date,
    period_end: date,
    base_salary: Decimal | None,
    first_half_end_day: int = 15,
) -> Decimal:
    """
    Gross pay for a period from a monthly base salary.

    Half-month periods pay ``base_salary / 2``; any other range pays the
    full base salary.  A missing base salary reads as zero.

        >>> period_gross(date(2025, 1, 1), date(2025, 1, 15), Decimal("30000"))
        Decimal('15000.00')
    """
    base = base_salary if base_salary is not None else ZERO
    if is_half_month(period_start, period_end, first_half_end_day):
        return round_money(base / 2)
    return round_money(base)


def payslip_totals(payslip: Payslip) -> PayslipTotals:
    additions = sum((getattr(payslip, name) for name in ADDITION_FIELDS), ZERO)
    deductions = sum((getattr(payslip, name) for name in DEDUCTION_FIELDS), ZERO)
    return PayslipTotals(
        additions=round_money(additions),
        deductions=round_money(deductions),
        net=round_money(additions - deductions),
    )


def recompute(payslip: Payslip) -> Payslip:
    """Return ``payslip`` with amounts quantized and ``net_salary`` recomputed."""
    amounts = {
        name: round_money(getattr(payslip, name))
        for name in ADDITION_FIELDS + DEDUCTION_FIELDS
    }
    normalized = replace(payslip, **amounts)
    return replace(normalized, net_salary=payslip_totals(normalized).net)


def seed_from_payslip(prior: Payslip | None) -> PayslipDefaults:
    """
    Defaults for a new payslip.

    Statutory contributions, tax, bonuses and allowances carry over from
    ``prior``; one-off deductions start at zero.  With no prior payslip
    everything is zero.
    """
    if prior is None:
        return PayslipDefaults()
    return PayslipDefaults(**{name: getattr(prior, name) for name in RECURRING_FIELDS})


def _recency(payslip: Payslip) -> tuple:
    return (payslip.date_issued, payslip.created_at is not None, payslip.created_at)


def latest_payslip(payslips: Iterable[Payslip]) -> Payslip | None:
    """Most recent payslip by ``date_issued``, ties broken by ``created_at``."""
    return max(payslips, key=_recency, default=None)
