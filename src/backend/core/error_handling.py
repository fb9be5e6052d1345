"""Error handling utilities for the cron routers."""

import logging
from functools import wraps
from typing import Callable, TypeVar

from fastapi import HTTPException
from fastapi.responses import JSONResponse

from tracker.core.error_utils import ErrorCategorizer

T = TypeVar("T")

logger = logging.getLogger(__name__)


def capture_errors(func: Callable[..., T]) -> Callable[..., T]:
    """
    Decorator that turns unexpected exceptions into a structured 500 summary.

    Preserves HTTPExceptions (auth, validation) so FastAPI renders them as usual.
    Anything else is logged with its category and returned as ``{"errors": [...]}``
    instead of propagating out of the invocation.
    """

    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except HTTPException:
            raise
        except Exception as e:
            metadata = ErrorCategorizer.extract_error_metadata(e, {"endpoint": func.__name__})
            logger.error(f"{func.__name__} failed: {e}", extra=metadata, exc_info=True)
            return JSONResponse(
                status_code=500,
                content={
                    "errors": [
                        {
                            "error_type": metadata["error_type"],
                            "error_category": metadata["error_category"],
                            "error": ErrorCategorizer.get_error_summary(e),
                        }
                    ]
                },
            )

    return wrapper
