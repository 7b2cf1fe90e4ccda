"""
Shared helpers for module store flows.

Used by ``ledger_modules/*/service.py`` and ``ledger_services`` to reduce
duplication when loading required records and when turning a mid-operation
store failure into a ``PartialWriteError`` that lists what already
committed.

Architecture: Modules layer. Imports only from ledger_kernel.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any
from uuid import UUID

from ledger_kernel.exceptions import (
    InvalidInputError,
    PartialWriteError,
    RecordNotFoundError,
    StoreError,
)
from ledger_kernel.services.ledger_store import Collection, LedgerStore


def require_id(value: UUID | None, field: str) -> UUID:
    """Reject a missing identifier before any store call."""
    if value is None or (isinstance(value, str) and not value.strip()):
        raise InvalidInputError(field, "is required")
    return value


def require_record(store: LedgerStore, collection: Collection, record_id: UUID) -> Any:
    """Load one record or raise ``RecordNotFoundError``."""
    record = store.get(collection, record_id)
    if record is None:
        raise RecordNotFoundError(collection.value, str(record_id))
    return record


def committed_ids(**collections: Iterable[Any]) -> dict[str, list[str]]:
    """Build the ``committed`` mapping of a ``PartialWriteError``."""
    return {name: [str(i) for i in ids] for name, ids in collections.items()}


def partial_failure(
    step: str,
    exc: StoreError,
    committed: dict[str, list[str]],
) -> PartialWriteError:
    """
    Wrap a store failure that happened after ``committed`` rows were written.

    When ``exc`` is itself a ``PartialWriteError`` its own committed ids are
    merged in, so the outermost error lists everything that survived.
    """
    merged = {name: list(ids) for name, ids in committed.items()}
    if isinstance(exc, PartialWriteError):
        for name, ids in exc.committed.items():
            merged.setdefault(name, [])
            merged[name].extend(i for i in ids if i not in merged[name])
    return PartialWriteError(
        step,
        getattr(exc, "collection", "unknown"),
        getattr(exc, "detail", str(exc)),
        merged,
    )
