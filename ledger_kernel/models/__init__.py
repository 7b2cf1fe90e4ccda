"""Kernel ORM models."""

from ledger_kernel.models.transaction import TransactionModel

__all__ = ["TransactionModel"]
