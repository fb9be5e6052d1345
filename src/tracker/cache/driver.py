"""Batch driver for the resumable LIMS bill cache build.

Each call to ``BatchDriver.run`` does one bounded unit of work and returns:

- no cursor: generate the candidate set, persist it at position 0, return
  ``initialized`` without fetching any details (generation alone can use most
  of an invocation's time budget);
- cursor in progress: fetch and upsert the next ``batch_size`` candidates one
  at a time, then persist the advanced cursor;
- cursor complete: report completion without touching the candidate list.

The scheduler calls it repeatedly until it reports ``complete``. Upserts are
keyed by bill number and the cursor only moves forward, so a retried or
duplicated call re-writes the same rows and is otherwise a no-op.
"""

import logging
import time
from datetime import datetime, timedelta
from enum import Enum
from typing import Callable, Optional

from pydantic import BaseModel, ValidationError

from tracker.cache.candidates import CandidateSource, candidate_source_for
from tracker.cache.cursor import CursorRepository, CursorState
from tracker.core.error_utils import ErrorCategorizer
from tracker.core.exceptions import NotFound, StoreReadFailure, StoreWriteFailure, UpstreamUnavailable
from tracker.core.models import ensure_aware, utcnow
from tracker.lims.client import LimsClient
from tracker.lims.models import map_detail_to_record
from tracker.settings import BILL_CACHE_TABLE, TrackerSettings
from tracker.store.base import RecordStore

logger = logging.getLogger(__name__)


class BatchStatus(str, Enum):
    INITIALIZED = "initialized"
    IN_PROGRESS = "in_progress"
    COMPLETE = "complete"


class BatchResult(BaseModel):
    """Summary returned by every driver invocation."""

    status: BatchStatus
    scope_key: str
    position: int
    total: int
    upserted: int = 0
    skipped: int = 0
    errors: int = 0


class BatchDriver:
    def __init__(
        self,
        settings: TrackerSettings,
        client: LimsClient,
        store: RecordStore,
        candidate_source: Optional[CandidateSource] = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.settings = settings
        self.client = client
        self.store = store
        self.cursors = CursorRepository(store)
        self.candidate_source = candidate_source or candidate_source_for(settings, client)
        self._sleep = sleep
        self._clock = clock

    def run(self, reset: bool = False) -> BatchResult:
        """Advance the cache build for the configured scope by one step."""
        scope_key = self.settings.scope_key

        try:
            if reset:
                self.cursors.reset(scope_key)
            state = self.cursors.load(scope_key)
        except (StoreReadFailure, StoreWriteFailure) as e:
            ErrorCategorizer.log_error(logger, e, f"cursor {scope_key}")
            return self._failed(scope_key)

        if state is None:
            return self._bootstrap(scope_key)

        if state.completed:
            logger.info(f"Cache build for {scope_key} already complete ({state.total} candidates)")
            return BatchResult(
                status=BatchStatus.COMPLETE,
                scope_key=scope_key,
                position=state.position,
                total=state.total,
            )

        return self._run_batch(state)

    def _bootstrap(self, scope_key: str) -> BatchResult:
        logger.info(f"Generating candidate set for {scope_key}")
        candidates = self.candidate_source.generate()

        if not candidates.ids and candidates.errors:
            # Nothing to resume from: leave the cursor absent so the next call retries
            logger.warning(f"Candidate generation for {scope_key} failed before any ids were found")
            return self._failed(scope_key, candidates.errors)

        try:
            state = self.cursors.create(
                scope_key, candidates.ids, self._clock(), candidates.statuses
            )
        except StoreWriteFailure as e:
            ErrorCategorizer.log_error(logger, e, f"cursor {scope_key}")
            return self._failed(scope_key, candidates.errors + 1)

        return BatchResult(
            status=BatchStatus.INITIALIZED,
            scope_key=scope_key,
            position=state.position,
            total=state.total,
            errors=candidates.errors,
        )

    def _failed(self, scope_key: str, errors: int = 1) -> BatchResult:
        """Report a step that left no usable cursor; the next call starts from the store again."""
        return BatchResult(
            status=BatchStatus.INITIALIZED,
            scope_key=scope_key,
            position=0,
            total=0,
            errors=errors,
        )

    def _run_batch(self, state: CursorState) -> BatchResult:
        batch = state.next_slice(self.settings.batch_size)
        fresh = self._fresh_ids(batch, state.candidate_statuses)
        stats = {"upserted": 0, "skipped": 0, "errors": 0}

        logger.info(
            f"Processing {state.scope_key} candidates {state.position}-{state.position + len(batch)} of {state.total}",
            extra={"scope_key": state.scope_key, "position": state.position, "total": state.total},
        )

        for identifier in batch:
            if identifier in fresh:
                stats["skipped"] += 1
                continue
            outcome = self._process(identifier)
            stats[outcome] += 1
            self._sleep(
                self.settings.skip_delay if outcome == "skipped" else self.settings.detail_delay
            )

        advanced = state.advance(self.settings.batch_size, self._clock())
        try:
            persisted = self.cursors.save(advanced)
        except (StoreReadFailure, StoreWriteFailure) as e:
            # The batch is re-run on the next call; its upserts are idempotent
            ErrorCategorizer.log_error(logger, e, f"cursor {state.scope_key}")
            stats["errors"] += 1
            persisted = state

        logger.info(
            f"Batch done for {state.scope_key}: position {persisted.position}/{persisted.total}",
            extra={"scope_key": state.scope_key, **stats},
        )
        return BatchResult(
            status=BatchStatus.COMPLETE if persisted.completed else BatchStatus.IN_PROGRESS,
            scope_key=state.scope_key,
            position=persisted.position,
            total=persisted.total,
            **stats,
        )

    def _process(self, identifier: str) -> str:
        """Fetch and cache one candidate. Returns the counter to increment."""
        try:
            details = self.client.detail(identifier)
        except NotFound:
            logger.debug(f"{identifier} not found upstream")
            return "skipped"
        except UpstreamUnavailable as e:
            ErrorCategorizer.log_error(logger, e, identifier)
            return "errors"

        if details is None:
            return "skipped"

        try:
            record = map_detail_to_record(
                identifier,
                details,
                self.settings.council_period,
                self.settings.lims_link_base,
                self._clock(),
            )
            self.store.upsert(BILL_CACHE_TABLE, record.to_row())
        except (StoreWriteFailure, ValidationError) as e:
            ErrorCategorizer.log_error(logger, e, identifier)
            return "errors"

        return "upserted"

    def _fresh_ids(self, batch: list[str], statuses: dict[str, str]) -> set[str]:
        """Identifiers in ``batch`` cached within ``refresh_after_days``.

        Where the candidate set recorded a search status for an identifier, the
        cached row only counts as fresh if its status still matches.
        """
        if not self.settings.refresh_after_days or not batch:
            return set()

        cutoff = self._clock() - timedelta(days=self.settings.refresh_after_days)
        try:
            rows = self.store.select(
                BILL_CACHE_TABLE,
                {"council_period_id": self.settings.council_period},
                columns=["bill_number", "cached_at", "status"],
            )
        except StoreReadFailure as e:
            logger.warning(f"Could not load cache freshness, refetching everything: {e}")
            return set()

        wanted = set(batch)
        return {
            row["bill_number"]
            for row in rows
            if row.get("bill_number") in wanted
            and row.get("cached_at")
            and ensure_aware(row["cached_at"]) >= cutoff
            and statuses.get(row["bill_number"], row.get("status")) == row.get("status")
        }
