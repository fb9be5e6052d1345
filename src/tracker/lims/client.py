import logging
import time
from typing import Callable, Iterator, Optional

import requests

from tracker.core.exceptions import UpstreamUnavailable
from tracker.core.http import HttpClient
from tracker.core.rate_limiter import AdaptiveRateLimiter
from tracker.lims.models import LegislationSummary, is_populated
from tracker.settings import TrackerSettings

logger = logging.getLogger(__name__)


def _decode(response: requests.Response, endpoint: str):
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError as e:
        raise UpstreamUnavailable(endpoint, response.status_code, f"invalid JSON: {e}") from e


class LimsClient:
    """Client for the LIMS public legislation API.

    Every call goes through the shared rate limiter. Failures surface as
    ``UpstreamUnavailable`` (or ``NotFound`` for unknown identifiers); deciding
    whether a failure is fatal belongs to the caller.
    """

    def __init__(
        self,
        settings: TrackerSettings,
        http_client: Optional[HttpClient] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.base_url = settings.lims_base_url.rstrip("/")
        self.council_period = settings.council_period
        self.page_size = settings.page_size
        self.page_delay = settings.page_delay
        self._sleep = sleep
        self.http_client = http_client or HttpClient(
            max_retries=settings.max_retries,
            timeout=settings.request_timeout,
            rate_limiter=AdaptiveRateLimiter(min_delay=settings.min_request_interval, sleep=sleep),
            headers={"Accept": "application/json", "Content-Type": "application/json"},
        )

    def search(
        self,
        keyword: str = "",
        category_id: int = 0,
        council_period: Optional[int] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> list[LegislationSummary]:
        """Fetch one page of SearchLegislation results.

        Args:
            keyword: Free-text keyword, empty for everything
            category_id: LIMS category id, 0 for all categories
            council_period: Council period to search (defaults to the configured one)
            limit: Page size (defaults to the configured page size)
            offset: Row offset of the page

        Returns:
            The page of summaries; an empty list signals the end of results
        """
        body = {
            "Keyword": keyword,
            "CategoryId": category_id,
            "CouncilPeriodId": council_period or self.council_period,
            "RowLimit": limit or self.page_size,
            "OffSet": offset,
        }
        response = self.http_client.post(f"{self.base_url}/SearchLegislation", json=body)
        page = _decode(response, "/SearchLegislation")

        if not isinstance(page, list):
            logger.warning(f"Unexpected SearchLegislation payload type: {type(page).__name__}")
            return []

        return [LegislationSummary(**row) for row in page if isinstance(row, dict)]

    def iter_search(
        self,
        keyword: str = "",
        category_id: int = 0,
        council_period: Optional[int] = None,
    ) -> Iterator[list[LegislationSummary]]:
        """Yield successive search pages until an empty or short page.

        A failing page request propagates to the caller; pages already yielded
        stay with the caller.
        """
        offset = 0
        while True:
            page = self.search(keyword, category_id, council_period, self.page_size, offset)
            if not page:
                return

            logger.debug(
                f"Fetched page at offset {offset}: {len(page)} bills",
                extra={"category_id": category_id, "offset": offset, "page_len": len(page)},
            )
            yield page

            if len(page) < self.page_size:
                return
            offset += self.page_size
            self._sleep(self.page_delay)

    def detail(self, identifier: str) -> Optional[dict]:
        """Fetch LegislationDetails for one identifier.

        Returns:
            The detail payload, or None if LIMS returned an empty body

        Raises:
            NotFound: If LIMS answered 404
            UpstreamUnavailable: On any other network or HTTP failure
        """
        response = self.http_client.get(f"{self.base_url}/LegislationDetails/{identifier}")
        details = _decode(response, f"/LegislationDetails/{identifier}")

        if not is_populated(details):
            return None
        return details
