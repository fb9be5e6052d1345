"""Scheduled jobs for the tracker.

This module is the shared entry point for both scheduled jobs:
    python -m tracker.ingest build-cache --until-complete
    python -m tracker.ingest check-hearings

Design principles:
    - One bounded unit of work per invocation
    - Store rows are the only state - the cursor row makes the build resumable
    - Idempotent - upserts keyed by bill number, safe to re-run
"""

from tracker.ingest.runner import (
    build_detector,
    build_driver,
    run_cache_build,
    run_hearing_check,
)

__all__ = [
    "build_detector",
    "build_driver",
    "run_cache_build",
    "run_hearing_check",
]
