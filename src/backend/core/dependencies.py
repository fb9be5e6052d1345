"""FastAPI dependencies for the cron endpoints."""

import hmac
import logging
from functools import lru_cache
from typing import Annotated, Iterator, Optional

from fastapi import Depends, HTTPException, Request, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from tracker.cache.driver import BatchDriver
from tracker.core.exceptions import AuthFailure
from tracker.hearings.detector import ChangeDetector
from tracker.lims.client import LimsClient
from tracker.settings import TrackerSettings, load_settings
from tracker.store import RecordStore, create_store

logger = logging.getLogger(__name__)

# Security scheme; the scheduler header is an alternative, so a missing bearer is not an error here
security = HTTPBearer(auto_error=False)


@lru_cache
def get_settings() -> TrackerSettings:
    return load_settings()


def authorize(
    settings: TrackerSettings,
    headers: dict,
    credentials: Optional[HTTPAuthorizationCredentials],
) -> str:
    """Check an invocation's credentials.

    Accepts ``Authorization: Bearer <CRON_SECRET>`` when a secret is configured,
    or the trusted scheduler header. Returns the kind of caller.

    Raises:
        AuthFailure: If neither credential is valid
    """
    if headers.get(settings.scheduler_header) == settings.scheduler_header_value:
        return "scheduler"

    if (
        settings.cron_secret
        and credentials is not None
        and credentials.scheme.lower() == "bearer"
        and hmac.compare_digest(credentials.credentials.encode(), settings.cron_secret.encode())
    ):
        return "manual"

    raise AuthFailure("Unauthorized")


async def verify_invocation(
    request: Request,
    settings: Annotated[TrackerSettings, Depends(get_settings)],
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Security(security)],
) -> str:
    """Reject the whole invocation before any work unless it is authorized."""
    try:
        return authorize(settings, request.headers, credentials)
    except AuthFailure:
        logger.warning(
            f"Rejected unauthorized invocation of {request.url.path}",
            extra={"path": request.url.path},
        )
        raise HTTPException(
            status_code=401,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Bearer"},
        )


def get_store(settings: Annotated[TrackerSettings, Depends(get_settings)]) -> Iterator[RecordStore]:
    store = create_store(settings)
    try:
        yield store
    finally:
        store.close()


def get_lims_client(settings: Annotated[TrackerSettings, Depends(get_settings)]) -> LimsClient:
    return LimsClient(settings)


def get_batch_driver(
    settings: Annotated[TrackerSettings, Depends(get_settings)],
    client: Annotated[LimsClient, Depends(get_lims_client)],
    store: Annotated[RecordStore, Depends(get_store)],
) -> BatchDriver:
    return BatchDriver(settings, client, store)


def get_change_detector(
    settings: Annotated[TrackerSettings, Depends(get_settings)],
    client: Annotated[LimsClient, Depends(get_lims_client)],
    store: Annotated[RecordStore, Depends(get_store)],
) -> ChangeDetector:
    return ChangeDetector(settings, client, store)
