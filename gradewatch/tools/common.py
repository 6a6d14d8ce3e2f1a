"""Common utilities for tools.

This module provides shared functionality for all tools including:
- Unified response formatting
- Error handling
"""

from datetime import datetime, timezone
from typing import Any

import structlog

from gradewatch.errors import GradeWatchError, status_code_for

logger = structlog.get_logger(__name__)

INTERNAL_ERROR_MESSAGE = "An internal error occurred. Please try again later."


def build_success_response(
    data: dict[str, Any],
    source: str = "scraping",
) -> dict[str, Any]:
    """Build a standardized success response.

    Args:
        data: The response data.
        source: Data source ("scraping", "cache" or "health_check").

    Returns:
        Standardized response dictionary.
    """
    return {
        "status": "success",
        "data": data,
        "metadata": {
            "fetched_at": datetime.now(timezone.utc).isoformat(),
            "source": source,
        },
    }


def build_error_response(
    message: str,
    error_type: str = "INTERNAL_ERROR",
) -> dict[str, Any]:
    """Build a standardized error response.

    Args:
        message: Error message.
        error_type: Error type identifier.

    Returns:
        Standardized error response dictionary.
    """
    return {
        "status": "error",
        "error": {
            "message": message,
            "type": error_type,
        },
        "metadata": {
            "fetched_at": datetime.now(timezone.utc).isoformat(),
        },
    }


def error_response_for(error: Exception, event: str) -> dict[str, Any]:
    """Convert an exception into an error response.

    Known errors keep their kind and message. Anything else is logged with
    its traceback and reported with a fixed message.
    """
    if isinstance(error, GradeWatchError):
        logger.warning(event, error_type=error.kind, error=error.message)
        return build_error_response(error.message, error.kind)

    logger.error(event, error=str(error), exc_info=error)
    return build_error_response(INTERNAL_ERROR_MESSAGE, "INTERNAL_ERROR")


def http_status_for(response: dict[str, Any]) -> int:
    """HTTP status code matching a tool response."""
    if response.get("status") == "success":
        return 200
    return status_code_for(response.get("error", {}).get("type", "INTERNAL_ERROR"))
