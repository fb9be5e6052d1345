"""Local record store backed by diskcache.

Each row lives under a ``(table, *primary_key_values)`` tuple key in a single
SQLite-backed ``diskcache.Cache``, so rows survive process restarts the same
way pipeline checkpoints do.
"""

import logging
import os
import uuid
from pathlib import Path
from typing import Any, Mapping, Optional

from diskcache import Cache

from tracker.core.exceptions import StoreReadFailure, StoreWriteFailure
from tracker.store.base import RecordStore, Row, Rows, as_rows

logger = logging.getLogger(__name__)


def _matches(row: Row, filters: Optional[Mapping[str, Any]]) -> bool:
    if not filters:
        return True
    return all(row.get(column) == value for column, value in filters.items())


def _sort(rows: list[Row], order: Optional[str]) -> list[Row]:
    if not order:
        return rows
    column, _, direction = order.partition(".")
    present = [r for r in rows if r.get(column) is not None]
    missing = [r for r in rows if r.get(column) is None]
    present.sort(key=lambda r: r[column], reverse=direction == "desc")
    # PostgREST puts nulls last for asc and first for desc
    return missing + present if direction == "desc" else present + missing


class DiskCacheStore(RecordStore):
    """Record store persisted in a local diskcache directory."""

    def __init__(self, directory: Optional[str] = None, primary_keys: Optional[dict] = None):
        """
        Initialize the store.

        Args:
            directory: Cache directory (defaults to data/store in the working directory)
            primary_keys: Mapping of table name to a tuple of key columns. Tables
                without an entry use an ``id`` column, generated on insert if absent.
        """
        if directory is None:
            directory = os.path.join(os.getcwd(), "data", "store")

        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)
        self.cache = Cache(str(self.directory))
        self.primary_keys = dict(primary_keys or {})

        logger.debug(f"DiskCacheStore initialized at {self.directory}")

    def _key(self, table: str, row: Row) -> tuple:
        columns = self.primary_keys.get(table, ("id",))
        missing = [c for c in columns if row.get(c) is None]
        if missing:
            raise StoreWriteFailure(table, None, f"missing primary key column(s) {missing}")
        return (table, *(row[c] for c in columns))

    def _table_items(self, table: str):
        for key in list(self.cache.iterkeys()):
            if isinstance(key, tuple) and key and key[0] == table:
                row = self.cache.get(key)
                if row is not None:
                    yield key, row

    def select(self, table, filters=None, columns=None, order=None) -> list[Row]:
        try:
            rows = [dict(row) for _, row in self._table_items(table) if _matches(row, filters)]
        except Exception as e:
            raise StoreReadFailure(table, None, str(e)) from e

        rows = _sort(rows, order)
        if columns:
            rows = [{c: row.get(c) for c in columns} for row in rows]
        return rows

    def upsert(self, table: str, rows: Rows) -> None:
        rows = as_rows(rows)
        try:
            with self.cache.transact():
                for row in rows:
                    key = self._key(table, row)
                    merged = dict(self.cache.get(key) or {})
                    merged.update(row)
                    self.cache.set(key, merged)
        except StoreWriteFailure:
            raise
        except Exception as e:
            raise StoreWriteFailure(table, None, str(e)) from e

    def insert(self, table: str, rows: Rows) -> None:
        rows = as_rows(rows)
        if self.primary_keys.get(table, ("id",)) == ("id",):
            for row in rows:
                row.setdefault("id", str(uuid.uuid4()))
        try:
            with self.cache.transact():
                for row in rows:
                    key = self._key(table, row)
                    if key in self.cache:
                        raise StoreWriteFailure(table, 409, f"duplicate key {key[1:]}")
                    self.cache.set(key, row)
        except StoreWriteFailure:
            raise
        except Exception as e:
            raise StoreWriteFailure(table, None, str(e)) from e

    def patch(self, table: str, filters: Mapping[str, Any], fields: Mapping[str, Any]) -> None:
        try:
            with self.cache.transact():
                for key, row in list(self._table_items(table)):
                    if _matches(row, filters):
                        updated = dict(row)
                        updated.update(fields)
                        self.cache.set(key, updated)
        except Exception as e:
            raise StoreWriteFailure(table, None, str(e)) from e

    def delete(self, table: str, filters: Mapping[str, Any]) -> None:
        try:
            with self.cache.transact():
                for key, row in list(self._table_items(table)):
                    if _matches(row, filters):
                        del self.cache[key]
        except Exception as e:
            raise StoreWriteFailure(table, None, str(e)) from e

    def close(self) -> None:
        self.cache.close()
