"""Resumable, checkpointed build of the LIMS bill cache."""

from tracker.cache.candidates import (
    CandidateSet,
    RangeCandidateSource,
    SearchCandidateSource,
    candidate_source_for,
)
from tracker.cache.cursor import CursorPhase, CursorRepository, CursorState
from tracker.cache.driver import BatchDriver, BatchResult, BatchStatus

__all__ = [
    "BatchDriver",
    "BatchResult",
    "BatchStatus",
    "CandidateSet",
    "CursorPhase",
    "CursorRepository",
    "CursorState",
    "RangeCandidateSource",
    "SearchCandidateSource",
    "candidate_source_for",
]
