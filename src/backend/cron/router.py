import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Query

from backend.core.dependencies import get_batch_driver, get_change_detector, verify_invocation
from backend.core.error_handling import capture_errors
from tracker.cache.driver import BatchDriver
from tracker.hearings.detector import ChangeDetector

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api",
    tags=["cron"],
    dependencies=[Depends(verify_invocation)],
    responses={401: {"description": "Unauthorized"}},
)


@router.api_route(
    "/build-bill-cache",
    methods=["GET", "POST"],
    operation_id="build_bill_cache",
    summary="Advance the LIMS bill cache build by one step",
    description=(
        "Bootstraps the candidate set, processes the next batch, or reports completion. "
        "Pass reset=true to discard the cursor and start over."
    ),
)
@capture_errors
def build_bill_cache(
    driver: Annotated[BatchDriver, Depends(get_batch_driver)],
    reset: Annotated[bool, Query(description="Delete the cursor before running")] = False,
):
    result = driver.run(reset=reset)
    logger.info(f"build-bill-cache: {result.status.value} {result.position}/{result.total}")
    return result.model_dump(mode="json")


@router.api_route(
    "/check-hearings",
    methods=["GET", "POST"],
    operation_id="check_hearings",
    summary="Check tracked bills for status and hearing changes",
    description="Refreshes every tracked bill, records status changes, and matches tracked keywords.",
)
@capture_errors
def check_hearings(detector: Annotated[ChangeDetector, Depends(get_change_detector)]):
    result = detector.run()
    logger.info(
        f"check-hearings: {result.checked} checked, {len(result.status_changes)} status changes"
    )
    return result.model_dump(mode="json", by_alias=True)
