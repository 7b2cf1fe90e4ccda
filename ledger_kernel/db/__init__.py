"""Database layer - engine, base classes and column types."""

from ledger_kernel.db.base import UUID, Base, TrackedBase, UUIDString, VersionedMixin
from ledger_kernel.db.engine import (
    create_tables,
    get_engine,
    get_session,
    get_session_factory,
    init_engine_from_url,
    session_scope,
)
from ledger_kernel.db.types import Money, Rate, round_money, to_money

__all__ = [
    "get_engine",
    "get_session",
    "get_session_factory",
    "init_engine_from_url",
    "session_scope",
    "create_tables",
    "Base",
    "TrackedBase",
    "VersionedMixin",
    "UUIDString",
    "UUID",
    "Money",
    "Rate",
    "round_money",
    "to_money",
]
