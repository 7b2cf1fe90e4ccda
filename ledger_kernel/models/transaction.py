"""
Cash-flow ledger Transaction ORM model.

Responsibility:
    Persists ``LedgerTransaction`` rows in the ``transactions`` table.

Invariants enforced:
    - ``amount`` is Numeric(18, 2) -- never float.
    - ``type`` stores the TransactionType .value string.
"""

import datetime
from decimal import Decimal

from sqlalchemy import Date, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from ledger_kernel.db.base import TrackedBase
from ledger_kernel.domain.dtos import LedgerTransaction, TransactionType


class TransactionModel(TrackedBase):
    """ORM model for ``LedgerTransaction``."""

    __tablename__ = "transactions"

    date: Mapped[datetime.date] = mapped_column(Date, nullable=False)
    type: Mapped[str] = mapped_column(String(20), nullable=False)
    amount: Mapped[Decimal] = mapped_column(nullable=False)
    category: Mapped[str | None] = mapped_column(String(100), nullable=True)
    note: Mapped[str | None] = mapped_column(String(4000), nullable=True)

    __table_args__ = (
        Index("idx_transactions_date", "date"),
        Index("idx_transactions_category", "category"),
    )

    def to_dto(self) -> LedgerTransaction:
        return LedgerTransaction(
            id=self.id,
            date=self.date,
            type=TransactionType(self.type),
            amount=self.amount,
            category=self.category,
            note=self.note,
        )

    @classmethod
    def from_dto(cls, dto: LedgerTransaction) -> "TransactionModel":
        return cls(
            id=dto.id,
            date=dto.date,
            type=dto.type.value if hasattr(dto.type, "value") else dto.type,
            amount=dto.amount,
            category=dto.category,
            note=dto.note,
        )

    def __repr__(self) -> str:
        return f"<TransactionModel {self.date} {self.type} {self.amount} ({self.category})>"
