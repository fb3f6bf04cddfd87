"""Table-addressed record store used by the goal engine."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import inspect, or_
from sqlalchemy.exc import SQLAlchemyError

from goals.schemas import TABLES, Base
from goals.stores.sql_store import SQLStore

logger = logging.getLogger("ge.store")

OrderBy = Sequence[tuple[str, bool]]


class PersistenceError(Exception):
    """Raised when the backing store cannot complete an operation."""


class StaleRecordError(PersistenceError):
    """Raised when a versioned update loses a race with another writer."""


class RecordStore(ABC):
    """Abstract persistence interface.

    Records are plain dicts keyed by storage column names. ``user_id=None``
    addresses global tables that are not scoped to a user.
    """

    @abstractmethod
    def select(
        self,
        table: str,
        user_id: str | None,
        filters: Mapping[str, Any] | None = None,
        order_by: OrderBy | None = None,
        limit: int | None = None,
        search: str | None = None,
        search_fields: Sequence[str] = (),
    ) -> list[dict[str, Any]]:
        """Return records matching all equality filters and the optional search term."""

    @abstractmethod
    def select_one(self, table: str, user_id: str | None, record_id: Any) -> dict[str, Any] | None:
        """Return one record by id, or None."""

    @abstractmethod
    def insert(self, table: str, record: Mapping[str, Any]) -> dict[str, Any]:
        """Insert and return the stored record with generated fields."""

    @abstractmethod
    def update(
        self,
        table: str,
        user_id: str | None,
        record_id: Any,
        fields: Mapping[str, Any],
        expected_version: int | None = None,
    ) -> dict[str, Any] | None:
        """Apply ``fields`` and return the stored record, or None if it does not exist."""

    @abstractmethod
    def delete(self, table: str, user_id: str | None, record_id: Any) -> bool:
        """Delete one record; False when nothing matched."""


def escape_like(term: str) -> str:
    """Escape LIKE wildcards so the term matches literally."""
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class SQLRecordStore(RecordStore):
    """RecordStore backed by SQLAlchemy sessions."""

    def __init__(self, sql_store: SQLStore, tables: Mapping[str, type[Base]] | None = None) -> None:
        self.sql_store = sql_store
        self.tables = dict(tables or TABLES)

    def _model(self, table: str) -> type[Base]:
        model = self.tables.get(table)
        if model is None:
            raise PersistenceError(f"Unknown table: {table}")
        return model

    @staticmethod
    def _column(model: type[Base], name: str) -> Any:
        if name not in inspect(model).column_attrs:
            raise PersistenceError(f"Unknown column {model.__tablename__}.{name}")
        return getattr(model, name)

    @staticmethod
    def _to_dict(row: Base) -> dict[str, Any]:
        # SQLite drops tzinfo; every datetime leaving the store is UTC-aware.
        record = {}
        for attr in inspect(row).mapper.column_attrs:
            value = getattr(row, attr.key)
            if isinstance(value, datetime) and value.tzinfo is None:
                value = value.replace(tzinfo=UTC)
            record[attr.key] = value
        return record

    def _scoped(self, sess: Any, model: type[Base], user_id: str | None, record_id: Any) -> Any:
        query = sess.query(model).filter(model.id == record_id)
        if user_id is not None:
            query = query.filter(self._column(model, "user_id") == user_id)
        return query

    def select(
        self,
        table: str,
        user_id: str | None,
        filters: Mapping[str, Any] | None = None,
        order_by: OrderBy | None = None,
        limit: int | None = None,
        search: str | None = None,
        search_fields: Sequence[str] = (),
    ) -> list[dict[str, Any]]:
        model = self._model(table)
        try:
            with self.sql_store.session() as sess:
                query = sess.query(model)
                if user_id is not None:
                    query = query.filter(self._column(model, "user_id") == user_id)
                for name, value in (filters or {}).items():
                    query = query.filter(self._column(model, name) == value)
                if search and search_fields:
                    pattern = f"%{escape_like(search)}%"
                    query = query.filter(
                        or_(*(self._column(model, name).ilike(pattern, escape="\\") for name in search_fields))
                    )
                for name, descending in order_by or ():
                    column = self._column(model, name)
                    query = query.order_by(column.desc() if descending else column.asc())
                if limit is not None:
                    query = query.limit(limit)
                return [self._to_dict(row) for row in query.all()]
        except SQLAlchemyError as exc:
            raise PersistenceError(f"select from {table} failed: {exc}") from exc

    def select_one(self, table: str, user_id: str | None, record_id: Any) -> dict[str, Any] | None:
        model = self._model(table)
        try:
            with self.sql_store.session() as sess:
                row = self._scoped(sess, model, user_id, record_id).first()
                return self._to_dict(row) if row is not None else None
        except SQLAlchemyError as exc:
            raise PersistenceError(f"select_one from {table} failed: {exc}") from exc

    def insert(self, table: str, record: Mapping[str, Any]) -> dict[str, Any]:
        model = self._model(table)
        for name in record:
            self._column(model, name)
        try:
            with self.sql_store.session() as sess:
                row = model(**record)
                sess.add(row)
                sess.flush()
                payload = self._to_dict(row)
        except SQLAlchemyError as exc:
            raise PersistenceError(f"insert into {table} failed: {exc}") from exc
        logger.debug("Inserted %s record %s", table, payload.get("id"))
        return payload

    def update(
        self,
        table: str,
        user_id: str | None,
        record_id: Any,
        fields: Mapping[str, Any],
        expected_version: int | None = None,
    ) -> dict[str, Any] | None:
        model = self._model(table)
        values: dict[str, Any] = {}
        for name, value in fields.items():
            self._column(model, name)
            values[name] = value
        versioned = "version" in inspect(model).column_attrs
        try:
            with self.sql_store.session() as sess:
                query = self._scoped(sess, model, user_id, record_id)
                if expected_version is not None and versioned:
                    query = query.filter(model.version == expected_version)
                if versioned:
                    values["version"] = model.version + 1
                count = query.update(values, synchronize_session=False)
                if count == 0:
                    if expected_version is not None and self._scoped(sess, model, user_id, record_id).first():
                        raise StaleRecordError(
                            f"{table} record {record_id} changed since version {expected_version}"
                        )
                    return None
                row = self._scoped(sess, model, user_id, record_id).one()
                return self._to_dict(row)
        except SQLAlchemyError as exc:
            raise PersistenceError(f"update of {table} failed: {exc}") from exc

    def delete(self, table: str, user_id: str | None, record_id: Any) -> bool:
        model = self._model(table)
        try:
            with self.sql_store.session() as sess:
                count = self._scoped(sess, model, user_id, record_id).delete(synchronize_session=False)
        except SQLAlchemyError as exc:
            raise PersistenceError(f"delete from {table} failed: {exc}") from exc
        return count > 0
