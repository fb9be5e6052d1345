from typing import Optional


class TrackerError(Exception):
    """Base class for all tracker errors."""


class UpstreamUnavailable(TrackerError):
    """Raised when a LIMS request fails with a network or HTTP error."""

    def __init__(self, endpoint: str, status_code: Optional[int] = None, message: str = ""):
        detail = message or "request failed"
        status = f" {status_code}" if status_code is not None else ""
        super().__init__(f"LIMS {endpoint}:{status} {detail}".rstrip())
        self.endpoint = endpoint
        self.status_code = status_code


class NotFound(UpstreamUnavailable):
    """
    Raised when a detail lookup targets an identifier LIMS does not know.

    Candidate identifiers are not confirmed until fetched, so callers count
    this as a skip rather than an error.
    """

    def __init__(self, endpoint: str):
        super().__init__(endpoint, 404, "not found")


class RateLimitException(TrackerError):
    """Raised when API rate limit is hit."""

    def __init__(self, message: str, retry_after: int = None):
        super().__init__(message)
        self.retry_after = retry_after


class StoreReadFailure(TrackerError):
    def __init__(self, table: str, status_code: Optional[int] = None, message: str = ""):
        super().__init__(f"Store read {table}: {status_code or ''} {message}".strip())
        self.table = table
        self.status_code = status_code


class StoreWriteFailure(TrackerError):
    """Raised when the record store rejects a write."""

    def __init__(self, table: str, status_code: Optional[int] = None, message: str = ""):
        super().__init__(f"Store write {table}: {status_code or ''} {message}".strip())
        self.table = table
        self.status_code = status_code


class AuthFailure(TrackerError):
    """Raised when an invocation carries neither the shared secret nor the scheduler header."""
