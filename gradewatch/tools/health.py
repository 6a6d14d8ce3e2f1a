"""Tool for health checking.

This module provides the health_check tool which reports the state of the
browser and the grade cache.
"""

from datetime import datetime, timezone
from typing import Any

import structlog

from gradewatch.tools.common import build_error_response, build_success_response

logger = structlog.get_logger(__name__)


async def health_check(
    browser_manager: Any,
    cache: Any,
) -> dict[str, Any]:
    """Check health of server components.

    Args:
        browser_manager: BrowserManager instance.
        cache: GradeCache instance.

    Returns:
        Standardized response containing:
            - browser_status: "ok" or "stopped"
            - cached_grades: Number of cached grades
            - checked_at: Timestamp of health check
    """
    logger.info("health_check_called")

    try:
        result = {
            "browser_status": "ok" if browser_manager.is_running else "stopped",
            "cached_grades": len(cache),
            "checked_at": datetime.now(timezone.utc).isoformat(),
        }
        return build_success_response(result, source="health_check")

    except Exception as e:
        logger.error("health_check_failed", error=str(e), exc_info=True)
        return build_error_response(
            message=f"Health check failed: {str(e)}",
            error_type="HEALTH_CHECK_ERROR",
        )
