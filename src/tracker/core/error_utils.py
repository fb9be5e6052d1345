"""Error categorization and metadata extraction utilities."""

import logging
import re
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pydantic import ValidationError

from tracker.core.exceptions import (
    AuthFailure,
    NotFound,
    RateLimitException,
    StoreReadFailure,
    StoreWriteFailure,
    UpstreamUnavailable,
)


class ErrorCategories:
    """Standard error categories across the ingestion pipeline."""
    NOT_FOUND = "not_found"
    UPSTREAM_UNAVAILABLE = "upstream_unavailable"
    RATE_LIMIT = "rate_limit"
    STORE_READ_FAILURE = "store_read_failure"
    STORE_WRITE_FAILURE = "store_write_failure"
    AUTH_FAILURE = "auth_failure"
    VALIDATION_ERROR = "validation_error"
    UNKNOWN_ERROR = "unknown_error"


class ErrorCategorizer:
    """Categorize and extract metadata from errors in a consistent way."""

    # Checked in order, NotFound before its UpstreamUnavailable parent
    ERROR_TYPES = [
        (NotFound, ErrorCategories.NOT_FOUND),
        (RateLimitException, ErrorCategories.RATE_LIMIT),
        (UpstreamUnavailable, ErrorCategories.UPSTREAM_UNAVAILABLE),
        (StoreReadFailure, ErrorCategories.STORE_READ_FAILURE),
        (StoreWriteFailure, ErrorCategories.STORE_WRITE_FAILURE),
        (AuthFailure, ErrorCategories.AUTH_FAILURE),
        (ValidationError, ErrorCategories.VALIDATION_ERROR),
    ]

    @classmethod
    def categorize_error(cls, error: Exception) -> str:
        """Categorize an error based on its type.

        Args:
            error: The exception to categorize

        Returns:
            Error category string
        """
        for error_type, category in cls.ERROR_TYPES:
            if isinstance(error, error_type):
                return category
        return ErrorCategories.UNKNOWN_ERROR

    @classmethod
    def extract_error_metadata(cls, error: Exception,
                               context: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Extract structured metadata from an error.

        Args:
            error: The exception to analyze
            context: Optional context information

        Returns:
            Dictionary of error metadata, safe to pass as logging ``extra``
        """
        metadata = {
            "error_type": type(error).__name__,
            "error_message": str(error),
            "error_category": cls.categorize_error(error),
            "error_timestamp": datetime.now(timezone.utc).isoformat(),
        }

        status_code = getattr(error, "status_code", None)
        if status_code is None:
            status_match = re.search(r'\b(4[0-9]{2}|5[0-9]{2})\b', str(error))
            if status_match:
                status_code = int(status_match.group(0))
        if status_code is not None:
            metadata["http_status"] = status_code

        if getattr(error, "endpoint", None):
            metadata["endpoint"] = error.endpoint
        if getattr(error, "table", None):
            metadata["store_table"] = error.table

        if context:
            metadata["context"] = context

        return metadata

    @classmethod
    def get_error_summary(cls, error: Exception) -> str:
        """Get a concise summary of an error for run reports."""
        category = cls.categorize_error(error)
        if category == ErrorCategories.UNKNOWN_ERROR:
            return f"{type(error).__name__}: {str(error)[:200]}"
        return f"{category}: {str(error)[:200]}"

    @classmethod
    def log_error(cls, logger: logging.Logger, error: Exception, identifier: Optional[str] = None,
                  context: Optional[Dict[str, Any]] = None) -> None:
        """Log a per-item failure with structured metadata."""
        target = f" {identifier}" if identifier else ""
        logger.error(
            f"Failed to process{target}: {error}",
            extra=cls.extract_error_metadata(error, context),
        )
