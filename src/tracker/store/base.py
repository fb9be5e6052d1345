from abc import ABC, abstractmethod
from typing import Any, Iterable, Mapping, Optional, Union

Row = dict[str, Any]
Rows = Union[Row, Iterable[Row]]


def as_rows(rows: Rows) -> list[Row]:
    if isinstance(rows, Mapping):
        return [dict(rows)]
    return [dict(row) for row in rows]


class RecordStore(ABC):
    """Table-like store keyed by primary key.

    Filters are equality matches on columns. ``order`` follows the PostgREST
    convention: ``"column.asc"`` or ``"column.desc"``.
    """

    @abstractmethod
    def select(
        self,
        table: str,
        filters: Optional[Mapping[str, Any]] = None,
        columns: Optional[list[str]] = None,
        order: Optional[str] = None,
    ) -> list[Row]:
        """Return the rows of ``table`` matching every filter."""

    @abstractmethod
    def upsert(self, table: str, rows: Rows) -> None:
        """Insert rows, merging into existing rows on primary-key conflict."""

    @abstractmethod
    def insert(self, table: str, rows: Rows) -> None:
        """Append rows to an append-only table."""

    @abstractmethod
    def patch(self, table: str, filters: Mapping[str, Any], fields: Mapping[str, Any]) -> None:
        """Update ``fields`` on every row matching ``filters``."""

    @abstractmethod
    def delete(self, table: str, filters: Mapping[str, Any]) -> None:
        """Delete every row matching ``filters``."""

    def get_one(self, table: str, filters: Mapping[str, Any]) -> Optional[Row]:
        rows = self.select(table, filters)
        return rows[0] if rows else None

    def close(self) -> None:
        """Release any resources held by the store."""
