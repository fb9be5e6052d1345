from .exceptions import (
    AuthFailure,
    NotFound,
    StoreReadFailure,
    StoreWriteFailure,
    TrackerError,
    UpstreamUnavailable,
)
from .http import HttpClient
from .rate_limiter import AdaptiveRateLimiter

__all__ = [
    "AdaptiveRateLimiter",
    "AuthFailure",
    "HttpClient",
    "NotFound",
    "StoreReadFailure",
    "StoreWriteFailure",
    "TrackerError",
    "UpstreamUnavailable",
]
