"""Record store on Supabase, spoken to through its PostgREST endpoint."""

import logging
from typing import Any, Mapping, Optional
from urllib.parse import quote

from tracker.core.exceptions import StoreReadFailure, StoreWriteFailure, UpstreamUnavailable
from tracker.core.http import HttpClient
from tracker.store.base import RecordStore, Row, Rows, as_rows

logger = logging.getLogger(__name__)


def _format_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    return quote(str(value), safe="")


def build_query(
    filters: Optional[Mapping[str, Any]] = None,
    columns: Optional[list[str]] = None,
    order: Optional[str] = None,
) -> str:
    """Build a PostgREST query string, e.g. ``?select=*&status=eq.Introduced``."""
    parts = [f"select={','.join(columns)}"] if columns else []
    for column, value in (filters or {}).items():
        operator = "is" if value is None or isinstance(value, bool) else "eq"
        parts.append(f"{column}={operator}.{_format_value(value)}")
    if order:
        parts.append(f"order={order}")
    return "?" + "&".join(parts) if parts else ""


class SupabaseStore(RecordStore):
    """Record store backed by Supabase tables."""

    def __init__(
        self,
        url: str,
        service_key: str,
        primary_keys: Optional[dict] = None,
        http_client: Optional[HttpClient] = None,
    ):
        self.rest_url = f"{url.rstrip('/')}/rest/v1"
        self.primary_keys = dict(primary_keys or {})
        self.http_client = http_client or HttpClient(
            max_retries=3,
            headers={
                "apikey": service_key,
                "Authorization": f"Bearer {service_key}",
                "Content-Type": "application/json",
            },
        )

    def select(self, table, filters=None, columns=None, order=None) -> list[Row]:
        query = build_query(filters, columns or ["*"], order)
        url = f"{self.rest_url}/{table}{query}"
        try:
            response = self.http_client.get(url, headers={"Prefer": "return=representation"})
        except UpstreamUnavailable as e:
            raise StoreReadFailure(table, e.status_code, str(e)) from e
        try:
            return response.json()
        except ValueError as e:
            raise StoreReadFailure(table, response.status_code, f"invalid JSON: {e}") from e

    def upsert(self, table: str, rows: Rows) -> None:
        rows = as_rows(rows)
        params = {}
        if table in self.primary_keys:
            params["on_conflict"] = ",".join(self.primary_keys[table])
        self._write(
            "POST",
            table,
            json=rows,
            params=params,
            headers={"Prefer": "resolution=merge-duplicates,return=minimal"},
        )

    def insert(self, table: str, rows: Rows) -> None:
        self._write("POST", table, json=as_rows(rows), headers={"Prefer": "return=minimal"})

    def patch(self, table: str, filters: Mapping[str, Any], fields: Mapping[str, Any]) -> None:
        query = build_query(filters)
        self._write(
            "PATCH",
            f"{table}{query}",
            json=dict(fields),
            headers={"Prefer": "return=minimal"},
            table_name=table,
        )

    def delete(self, table: str, filters: Mapping[str, Any]) -> None:
        self._write("DELETE", f"{table}{build_query(filters)}", table_name=table)

    def _write(self, method: str, path: str, table_name: Optional[str] = None, **kwargs) -> None:
        table = table_name or path
        try:
            self.http_client.request(method, f"{self.rest_url}/{path}", **kwargs)
        except UpstreamUnavailable as e:
            logger.error(
                f"Supabase {method} {table} failed: {e}",
                extra={"store_table": table, "http_status": e.status_code},
            )
            raise StoreWriteFailure(table, e.status_code, str(e)) from e
