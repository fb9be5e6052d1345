from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_aware(value: Any) -> Any:
    """Coerce ISO strings and naive datetimes into timezone-aware UTC datetimes.

    Used as a ``mode="before"`` field validator; the store may hand back naive
    timestamps for rows written by older clients.
    """
    if isinstance(value, str):
        dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
        if dt.tzinfo is None:
            return dt.replace(tzinfo=timezone.utc)
        return dt
    if isinstance(value, datetime) and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class TrackerModel(BaseModel):
    """Base class for rows persisted in the record store."""

    def to_row(self) -> dict:
        """Serialise to a JSON-compatible dict for the record store."""
        return self.model_dump(mode="json")
