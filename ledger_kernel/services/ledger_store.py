"""
LedgerStore -- collection-oriented persistence contract and SQL implementation.

Responsibility:
    Defines the request/response store the payroll core talks to
    (``insert``, ``insert_many``, ``update_by_id``, ``delete_by_id``,
    ``query``, ``get``) and implements it on SQLAlchemy.

Architecture position:
    Kernel > Services -- imperative shell around the database.  Knows
    nothing about payroll; collection names are mapped to ORM classes by
    a registry supplied at construction (``ledger_modules._orm_registry``
    provides the default).

Invariants enforced:
    - One call, one transaction.  Each store call commits on success and
      rolls back on error; no transaction spans two calls or two
      collections, matching the managed backend the core was designed for.
    - ``insert_many`` is all-or-nothing within its single call.
    - Versioned rows (``VersionedMixin``) get ``version`` bumped on every
      update; a stale ``expected_version`` is rejected.

Failure modes:
    - StoreWriteFailedError: any SQLAlchemy error during a write; ``detail``
      carries the database message verbatim.
    - StoreReadFailedError: any SQLAlchemy error during a read.
    - StaleRecordError: ``expected_version`` does not match the row.
    - InvalidInputError: unknown collection, unknown field or filter operator.

Usage:
    store = SqlLedgerStore(get_session_factory())
    tx_id = store.insert(Collection.TRANSACTIONS, LedgerTransaction(...))
    rows = store.query(
        Collection.LOANS,
        {"employee_id": emp_id, "status": "active"},
        order_by=("start_deduction_date",),
    )
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import replace
from enum import Enum
from typing import Any, Protocol, runtime_checkable
from uuid import UUID, uuid4

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from ledger_kernel.db.engine import session_scope
from ledger_kernel.exceptions import (
    InvalidInputError,
    StaleRecordError,
    StoreReadFailedError,
    StoreWriteFailedError,
)
from ledger_kernel.logging_config import get_logger

logger = get_logger("services.ledger_store")


class Collection(str, Enum):
    """Named collections in the ledger store."""

    EMPLOYEES = "employees"
    LOANS = "loans"
    LOAN_PAYMENTS = "loan_payments"
    PAYSLIPS = "payslips"
    TRANSACTIONS = "transactions"


@runtime_checkable
class LedgerStore(Protocol):
    """Contract consumed by the payroll core."""

    def insert(self, collection: str, record: Any) -> UUID: ...

    def insert_many(self, collection: str, records: Sequence[Any]) -> list[UUID]: ...

    def update_by_id(
        self,
        collection: str,
        record_id: UUID,
        patch: Mapping[str, Any],
        expected_version: int | None = None,
    ) -> bool: ...

    def delete_by_id(self, collection: str, record_id: UUID) -> bool: ...

    def query(
        self,
        collection: str,
        filters: Mapping[str, Any] | None = None,
        order_by: Sequence[str] = (),
    ) -> list[Any]: ...

    def get(self, collection: str, record_id: UUID) -> Any | None: ...


_OPERATORS = {
    "eq": lambda col, v: col == v,
    "ne": lambda col, v: col != v,
    "lt": lambda col, v: col < v,
    "lte": lambda col, v: col <= v,
    "gt": lambda col, v: col > v,
    "gte": lambda col, v: col >= v,
    "in": lambda col, v: col.in_(list(v)),
}


def _plain(value: Any) -> Any:
    """Store enum members by value."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (list, tuple, set, frozenset)):
        return [_plain(v) for v in value]
    return value


def _error_detail(exc: SQLAlchemyError) -> str:
    orig = getattr(exc, "orig", None)
    return str(orig) if orig is not None else str(exc)


class SqlLedgerStore:
    """
    SQLAlchemy-backed LedgerStore.

    Contract:
        Records passed in and returned are the frozen DTOs of each
        collection; the ORM class for a collection must provide
        ``from_dto(dto)`` and ``to_dto()``.

    Guarantees:
        - Records inserted with ``id=None`` receive a fresh uuid4.
        - Returned DTOs are detached snapshots; mutating the store never
          changes a DTO a caller already holds.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        models: Mapping[str, type] | None = None,
    ):
        if models is None:
            from ledger_modules._orm_registry import collection_models

            models = collection_models()
        self._session_factory = session_factory
        self._models = {Collection(name).value: model for name, model in models.items()}

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _model(self, collection: str) -> type:
        try:
            return self._models[Collection(collection).value]
        except (KeyError, ValueError):
            raise InvalidInputError("collection", f"unknown collection {collection!r}") from None

    def _column(self, model: type, name: str):
        column = model.__table__.columns.get(name)
        if column is None:
            raise InvalidInputError("field", f"{model.__tablename__} has no field {name!r}")
        return getattr(model, name)

    def _conditions(self, model: type, filters: Mapping[str, Any]) -> list:
        conditions = []
        for key, value in filters.items():
            name, _, op = key.partition("__")
            op = op or "eq"
            if op not in _OPERATORS:
                raise InvalidInputError("filters", f"unsupported operator {op!r} in {key!r}")
            column = self._column(model, name)
            value = _plain(value)
            if op == "eq" and value is None:
                conditions.append(column.is_(None))
            elif op == "ne" and value is None:
                conditions.append(column.is_not(None))
            else:
                conditions.append(_OPERATORS[op](column, value))
        return conditions

    def _ordering(self, model: type, order_by: Sequence[str]) -> list:
        clauses = []
        for item in order_by:
            descending = item.startswith("-")
            column = self._column(model, item.lstrip("-"))
            clauses.append(column.desc() if descending else column.asc())
        return clauses

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def insert(self, collection: str, record: Any) -> UUID:
        """Insert one record and return its id."""
        return self._insert(collection, [record], step="insert")[0]

    def insert_many(self, collection: str, records: Sequence[Any]) -> list[UUID]:
        """Insert records in one transaction; ids come back in input order."""
        return self._insert(collection, records, step="insert_many")

    def _insert(self, collection: str, records: Sequence[Any], step: str) -> list[UUID]:
        model = self._model(collection)
        name = model.__tablename__
        prepared = [r if r.id is not None else replace(r, id=uuid4()) for r in records]
        try:
            with session_scope(self._session_factory) as session:
                session.add_all([model.from_dto(r) for r in prepared])
                session.flush()
        except SQLAlchemyError as exc:
            logger.error(
                "store_write_failed",
                extra={"step": step, "collection": name, "count": len(prepared)},
            )
            raise StoreWriteFailedError(step, name, _error_detail(exc)) from exc

        ids = [r.id for r in prepared]
        logger.debug("store_inserted", extra={"collection": name, "count": len(ids)})
        return ids

    def update_by_id(
        self,
        collection: str,
        record_id: UUID,
        patch: Mapping[str, Any],
        expected_version: int | None = None,
    ) -> bool:
        """
        Apply ``patch`` to one row.

        Returns False when no row has ``record_id``.

        Raises:
            StaleRecordError: ``expected_version`` given and out of date.
        """
        model = self._model(collection)
        name = model.__tablename__
        for key in patch:
            if key in ("id", "version", "created_at"):
                raise InvalidInputError("patch", f"{key} cannot be patched")
            self._column(model, key)

        try:
            with session_scope(self._session_factory) as session:
                row = session.get(model, record_id)
                if row is None:
                    return False
                if hasattr(row, "version"):
                    if expected_version is not None and row.version != expected_version:
                        raise StaleRecordError(
                            name, str(record_id), expected_version, row.version
                        )
                    row.version = row.version + 1
                for key, value in patch.items():
                    setattr(row, key, _plain(value))
        except SQLAlchemyError as exc:
            logger.error(
                "store_write_failed",
                extra={"step": "update_by_id", "collection": name, "record_id": str(record_id)},
            )
            raise StoreWriteFailedError("update_by_id", name, _error_detail(exc)) from exc

        logger.debug(
            "store_updated",
            extra={"collection": name, "record_id": str(record_id), "fields": sorted(patch)},
        )
        return True

    def delete_by_id(self, collection: str, record_id: UUID) -> bool:
        """Delete one row.  Returns False when no row has ``record_id``."""
        model = self._model(collection)
        name = model.__tablename__
        try:
            with session_scope(self._session_factory) as session:
                row = session.get(model, record_id)
                if row is None:
                    return False
                session.delete(row)
        except SQLAlchemyError as exc:
            logger.error(
                "store_write_failed",
                extra={"step": "delete_by_id", "collection": name, "record_id": str(record_id)},
            )
            raise StoreWriteFailedError("delete_by_id", name, _error_detail(exc)) from exc

        logger.debug("store_deleted", extra={"collection": name, "record_id": str(record_id)})
        return True

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def query(
        self,
        collection: str,
        filters: Mapping[str, Any] | None = None,
        order_by: Sequence[str] = (),
    ) -> list[Any]:
        """
        Filtered, ordered read.

        Filter keys are field names with an optional operator suffix:
        ``__ne``, ``__lt``, ``__lte``, ``__gt``, ``__gte``, ``__in``.
        Order entries are field names; prefix ``-`` for descending.
        """
        model = self._model(collection)
        stmt = select(model)
        conditions = self._conditions(model, filters or {})
        if conditions:
            stmt = stmt.where(*conditions)
        ordering = self._ordering(model, order_by)
        if ordering:
            stmt = stmt.order_by(*ordering)

        try:
            with session_scope(self._session_factory) as session:
                return [row.to_dto() for row in session.scalars(stmt)]
        except SQLAlchemyError as exc:
            raise StoreReadFailedError(model.__tablename__, _error_detail(exc)) from exc

    def get(self, collection: str, record_id: UUID) -> Any | None:
        """Fetch one record by id, or None."""
        model = self._model(collection)
        try:
            with session_scope(self._session_factory) as session:
                row = session.get(model, record_id)
                return row.to_dto() if row is not None else None
        except SQLAlchemyError as exc:
            raise StoreReadFailedError(model.__tablename__, _error_detail(exc)) from exc
