"""In-memory cache and the cache-aside record store built on it."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any

from goals.stores.record_store import OrderBy, PersistenceError, RecordStore

logger = logging.getLogger("ge.cache")


class Cache:
    """Dictionary-backed transient cache."""

    def __init__(self) -> None:
        self._store: dict[str, Any] = {}

    def get(self, key: str, default: Any = None) -> Any:
        return self._store.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._store[key] = value

    def delete(self, key: str) -> None:
        self._store.pop(key, None)

    def items(self, prefix: str = "") -> list[tuple[str, Any]]:
        return [(key, value) for key, value in self._store.items() if key.startswith(prefix)]

    def __len__(self) -> int:
        return len(self._store)


class CachedRecordStore(RecordStore):
    """Write-through cache in front of a remote store.

    Reads hit the remote store first and fall back to cached records when the
    remote read fails. Writes reach the cache only after the remote write
    succeeded; remote write errors propagate.
    """

    def __init__(self, remote: RecordStore, cache: Cache | None = None) -> None:
        self.remote = remote
        self.cache = cache if cache is not None else Cache()

    @staticmethod
    def _key(table: str, record_id: Any) -> str:
        return f"{table}:{record_id}"

    def _remember(self, table: str, record: Mapping[str, Any]) -> None:
        if record.get("id") is not None:
            self.cache.set(self._key(table, record["id"]), dict(record))

    def _cached(self, table: str) -> list[dict[str, Any]]:
        return [dict(value) for _, value in self.cache.items(prefix=f"{table}:")]

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
        try:
            records = self.remote.select(
                table,
                user_id,
                filters=filters,
                order_by=order_by,
                limit=limit,
                search=search,
                search_fields=search_fields,
            )
        except PersistenceError as exc:
            cached = self._cached(table)
            if not cached:
                raise
            logger.warning("Remote select on %s failed, serving cached records: %s", table, exc)
            return self._filter_cached(cached, user_id, filters, order_by, limit, search, search_fields)
        for record in records:
            self._remember(table, record)
        return records

    @staticmethod
    def _filter_cached(
        records: list[dict[str, Any]],
        user_id: str | None,
        filters: Mapping[str, Any] | None,
        order_by: OrderBy | None,
        limit: int | None,
        search: str | None,
        search_fields: Sequence[str],
    ) -> list[dict[str, Any]]:
        matched = []
        needle = search.lower() if search else None
        for record in records:
            if user_id is not None and record.get("user_id") != user_id:
                continue
            if any(record.get(name) != value for name, value in (filters or {}).items()):
                continue
            if needle and search_fields and not any(
                needle in str(record.get(name) or "").lower() for name in search_fields
            ):
                continue
            matched.append(record)
        # Apply sort keys last-to-first so the first key dominates.
        for name, descending in reversed(list(order_by or ())):
            present = [r for r in matched if r.get(name) is not None]
            missing = [r for r in matched if r.get(name) is None]
            present.sort(key=lambda r: r[name], reverse=descending)
            matched = present + missing
        return matched[:limit] if limit is not None else matched

    def select_one(self, table: str, user_id: str | None, record_id: Any) -> dict[str, Any] | None:
        try:
            record = self.remote.select_one(table, user_id, record_id)
        except PersistenceError as exc:
            cached = self.cache.get(self._key(table, record_id))
            if cached is None or (user_id is not None and cached.get("user_id") != user_id):
                raise
            logger.warning("Remote read of %s/%s failed, serving cached record: %s", table, record_id, exc)
            return dict(cached)
        if record is None:
            self.cache.delete(self._key(table, record_id))
        else:
            self._remember(table, record)
        return record

    def insert(self, table: str, record: Mapping[str, Any]) -> dict[str, Any]:
        stored = self.remote.insert(table, record)
        self._remember(table, stored)
        return stored

    def update(
        self,
        table: str,
        user_id: str | None,
        record_id: Any,
        fields: Mapping[str, Any],
        expected_version: int | None = None,
    ) -> dict[str, Any] | None:
        stored = self.remote.update(table, user_id, record_id, fields, expected_version=expected_version)
        if stored is None:
            self.cache.delete(self._key(table, record_id))
        else:
            self._remember(table, stored)
        return stored

    def delete(self, table: str, user_id: str | None, record_id: Any) -> bool:
        deleted = self.remote.delete(table, user_id, record_id)
        if deleted:
            self.cache.delete(self._key(table, record_id))
        return deleted
