"""Wiring for the two scheduled jobs.

Both the HTTP invocation surface and the CLI build their components here so
that configuration flows in one direction: settings -> client/store -> job.
"""

import logging
import time
from typing import Callable, Optional

from tracker.cache.driver import BatchDriver, BatchResult, BatchStatus
from tracker.hearings.detector import ChangeDetector
from tracker.hearings.models import CheckResult
from tracker.hearings.notifier import Notifier
from tracker.lims.client import LimsClient
from tracker.settings import TrackerSettings
from tracker.store import RecordStore, create_store

logger = logging.getLogger(__name__)


def build_driver(settings: TrackerSettings, store: Optional[RecordStore] = None) -> BatchDriver:
    return BatchDriver(settings, LimsClient(settings), store or create_store(settings))


def build_detector(
    settings: TrackerSettings,
    store: Optional[RecordStore] = None,
    notifier: Optional[Notifier] = None,
) -> ChangeDetector:
    return ChangeDetector(settings, LimsClient(settings), store or create_store(settings), notifier)


def run_cache_build(
    driver: BatchDriver,
    reset: bool = False,
    until_complete: bool = False,
    interval: float = 0.0,
    max_invocations: Optional[int] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> list[BatchResult]:
    """Invoke the driver once, or repeatedly until it reports completion.

    Each iteration is a separate driver invocation, exactly as an external
    scheduler would make it; ``reset`` only applies to the first one.

    Args:
        driver: The configured batch driver
        reset: Delete the cursor before the first invocation
        until_complete: Keep invoking until the driver reports ``complete``
        interval: Seconds to wait between invocations
        max_invocations: Safety cap on the number of invocations

    Returns:
        The result of every invocation, in order
    """
    results = [driver.run(reset=reset)]
    logger.info(f"Cache build step: {results[-1].model_dump(mode='json')}")

    while until_complete and results[-1].status != BatchStatus.COMPLETE:
        if max_invocations is not None and len(results) >= max_invocations:
            logger.warning(f"Stopping after {len(results)} invocations without completion")
            break
        # A failed bootstrap leaves no cursor; looping would hammer LIMS
        if results[-1].status == BatchStatus.INITIALIZED and results[-1].errors and not results[-1].total:
            logger.error("Candidate generation failed, stopping")
            break
        sleep(interval)
        results.append(driver.run())
        logger.info(f"Cache build step: {results[-1].model_dump(mode='json')}")

    return results


def run_hearing_check(detector: ChangeDetector) -> CheckResult:
    return detector.run()
