import logging
from typing import Any, Optional, Union
from urllib.parse import urlparse

import requests
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from tracker.core.exceptions import NotFound, RateLimitException, UpstreamUnavailable
from tracker.core.rate_limiter import AdaptiveRateLimiter

logger = logging.getLogger(__name__)


def _is_retryable(exc: BaseException) -> bool:
    """Connection problems, timeouts, 429 and 5xx are worth retrying; other 4xx are not."""
    if isinstance(exc, RateLimitException):
        return True
    if isinstance(exc, (requests.exceptions.ConnectionError, requests.exceptions.Timeout)):
        return True
    if isinstance(exc, requests.exceptions.HTTPError):
        response = exc.response
        return response is not None and response.status_code >= 500
    return False


class HttpClient:
    """HTTP client with exponential backoff, retry logic and request pacing."""

    def __init__(
        self,
        max_retries: int = 3,
        initial_delay: float = 1.0,
        max_delay: float = 60.0,
        timeout: Optional[Union[float, tuple]] = 30,
        session: Optional[requests.Session] = None,
        rate_limiter: Optional[AdaptiveRateLimiter] = None,
        headers: Optional[dict] = None,
    ):
        """
        Initialize the HTTP client.

        Args:
            max_retries: Maximum number of attempts per request
            initial_delay: Initial delay between retries in seconds
            max_delay: Maximum delay between retries in seconds
            timeout: Default timeout for requests
            session: Optional requests.Session to use
            rate_limiter: Limiter applied before every attempt (no pacing if None)
            headers: Headers sent with every request
        """
        self.timeout = timeout
        self.session = session or requests.Session()
        self.max_retries = max_retries
        self.initial_delay = initial_delay
        self.max_delay = max_delay
        self.rate_limiter = rate_limiter
        if headers:
            self.session.headers.update(headers)

        self._retry_decorator = retry(
            stop=stop_after_attempt(self.max_retries),
            wait=wait_exponential(
                multiplier=self.initial_delay,
                min=self.initial_delay,
                max=self.max_delay,
            ),
            retry=retry_if_exception(_is_retryable),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )

    def _make_request(self, method: str, url: str, **kwargs: Any) -> requests.Response:
        """Make a single attempt, translating status codes into exceptions."""
        if self.rate_limiter is not None:
            self.rate_limiter.wait()

        response = self.session.request(method=method, url=url, timeout=self.timeout, **kwargs)

        if response.status_code == 429:
            retry_after = response.headers.get("Retry-After")
            try:
                retry_after = int(retry_after) if retry_after else None
            except ValueError:
                retry_after = None

            if self.rate_limiter is not None:
                self.rate_limiter.record_rate_limit(retry_after)

            logger.warning(
                f"Rate limited: {url}",
                extra={
                    "event_type": "rate_limit",
                    "url": url,
                    "retry_after": retry_after,
                    "status_code": 429,
                },
            )
            raise RateLimitException(f"Rate limited on {url}", retry_after)

        if response.status_code == 404:
            raise NotFound(urlparse(url).path)

        response.raise_for_status()

        if self.rate_limiter is not None:
            self.rate_limiter.record_success()
        return response

    def request(self, method: str, url: str, **kwargs: Any) -> requests.Response:
        """
        Make an HTTP request with retry logic.

        Args:
            method: HTTP method (GET, POST, etc.)
            url: URL to request
            **kwargs: Additional arguments to pass to requests

        Returns:
            requests.Response: The response object

        Raises:
            NotFound: If the server answered 404
            UpstreamUnavailable: If all retry attempts fail or a non-retryable status is returned
        """
        endpoint = urlparse(url).path
        try:
            return self._retry_decorator(self._make_request)(method, url, **kwargs)
        except NotFound:
            raise
        except RateLimitException as e:
            raise UpstreamUnavailable(endpoint, 429, str(e)) from e
        except requests.exceptions.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            raise UpstreamUnavailable(endpoint, status, str(e)) from e
        except requests.exceptions.RequestException as e:
            logger.error(f"Request failed: {e}")
            raise UpstreamUnavailable(endpoint, None, str(e)) from e

    def get(self, url: str, **kwargs: Any) -> requests.Response:
        """Make a GET request."""
        return self.request("GET", url, **kwargs)

    def post(self, url: str, **kwargs: Any) -> requests.Response:
        """Make a POST request."""
        return self.request("POST", url, **kwargs)
