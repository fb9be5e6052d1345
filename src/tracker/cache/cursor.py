"""Persisted cursor for the resumable cache build.

One row per scope (council period) holds the full candidate list and how far
through it the build has got. The row moves through::

    ABSENT -> INITIALIZING -> IN_PROGRESS -> COMPLETE
       ^                                        |
       +---------------- reset -----------------+
"""

import logging
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import Field, computed_field, field_validator, model_validator

from tracker.core.models import TrackerModel, ensure_aware
from tracker.settings import CURSOR_TABLE
from tracker.store.base import RecordStore

logger = logging.getLogger(__name__)


class CursorPhase(str, Enum):
    ABSENT = "absent"
    INITIALIZING = "initializing"
    IN_PROGRESS = "in_progress"
    COMPLETE = "complete"


class CursorState(TrackerModel):
    """Checkpoint of one scope's cache build."""

    scope_key: str
    candidate_ids: list[str]
    candidate_statuses: dict[str, str] = Field(default_factory=dict)
    position: int = 0
    total: int
    started_at: datetime
    updated_at: datetime

    @computed_field
    @property
    def completed(self) -> bool:
        return self.position >= self.total

    @field_validator("started_at", "updated_at", mode="before")
    @classmethod
    def ensure_timezone_aware(cls, value: Any) -> Any:
        return ensure_aware(value)

    @model_validator(mode="after")
    def check_position(self) -> "CursorState":
        if self.total != len(self.candidate_ids):
            raise ValueError(
                f"total ({self.total}) does not match {len(self.candidate_ids)} candidate ids"
            )
        if not 0 <= self.position <= self.total:
            raise ValueError(f"position {self.position} outside 0..{self.total}")
        return self

    @property
    def phase(self) -> CursorPhase:
        return CursorPhase.COMPLETE if self.completed else CursorPhase.IN_PROGRESS

    def next_slice(self, batch_size: int) -> list[str]:
        return self.candidate_ids[self.position:min(self.position + batch_size, self.total)]

    def advance(self, batch_size: int, now: datetime) -> "CursorState":
        """Return the state moved past one batch."""
        new_position = min(self.position + batch_size, self.total)
        return self.model_copy(update={"position": new_position, "updated_at": now})


class CursorRepository:
    """Loads and persists cursor rows in the record store."""

    def __init__(self, store: RecordStore, table: str = CURSOR_TABLE):
        self.store = store
        self.table = table

    def load(self, scope_key: str) -> Optional[CursorState]:
        row = self.store.get_one(self.table, {"scope_key": scope_key})
        if row is None:
            return None
        return CursorState(**row)

    def phase(self, scope_key: str) -> CursorPhase:
        state = self.load(scope_key)
        return CursorPhase.ABSENT if state is None else state.phase

    def create(
        self,
        scope_key: str,
        candidate_ids: list[str],
        now: datetime,
        statuses: Optional[dict[str, str]] = None,
    ) -> CursorState:
        """Persist a fresh cursor at position 0."""
        state = CursorState(
            scope_key=scope_key,
            candidate_ids=list(candidate_ids),
            candidate_statuses=dict(statuses or {}),
            position=0,
            total=len(candidate_ids),
            started_at=now,
            updated_at=now,
        )
        self.store.upsert(self.table, state.to_row())
        logger.info(
            f"Cursor created for {scope_key} with {state.total} candidates",
            extra={"scope_key": scope_key, "total": state.total},
        )
        return state

    def save(self, state: CursorState) -> CursorState:
        """Persist an advanced cursor in a single row write.

        A replayed or duplicated invocation may try to write a position behind
        the stored one; the stored position wins so the cursor never moves back.
        """
        current = self.load(state.scope_key)
        if current is not None and current.position > state.position:
            logger.warning(
                f"Ignoring cursor move backwards for {state.scope_key}: "
                f"{current.position} -> {state.position}",
                extra={"scope_key": state.scope_key},
            )
            return current

        self.store.upsert(self.table, state.to_row())
        return state

    def reset(self, scope_key: str) -> None:
        """Delete the cursor row. Cached records are left alone."""
        self.store.delete(self.table, {"scope_key": scope_key})
        logger.info(f"Cursor reset for {scope_key}", extra={"scope_key": scope_key})
