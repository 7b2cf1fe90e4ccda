"""
Payroll ledger configuration.

``get_active_config()`` is the runtime entry point; ``PayrollConfig`` is the
typed schema.
"""

from ledger_config.loader import get_active_config, load_payroll_config
from ledger_config.schema import PayrollConfig

__all__ = ["PayrollConfig", "get_active_config", "load_payroll_config"]
