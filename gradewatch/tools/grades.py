"""Tools for fetching grades.

This module provides the fetch_grades tool which scrapes the grade report
for tracked courses, and list_cached_grades which returns the grades
already stored in the cache without touching the portal.
"""

from typing import Any

import structlog

from gradewatch.tools.common import build_success_response, error_response_for

logger = structlog.get_logger(__name__)


async def fetch_grades(
    scraper: Any,
    cookies: list[dict[str, Any]] | None,
    tracked_courses: list[str] | None,
) -> dict[str, Any]:
    """Fetch grades for the tracked courses.

    Args:
        scraper: GradeScraper instance.
        cookies: Session cookies from authenticate.
        tracked_courses: Course codes to resolve.

    Returns:
        Standardized response containing:
            - gpa: Overall GPA (float)
            - credit_hours: Earned credit hours (float)
            - courses: One entry per tracked course, grade None if unpublished
            - new_grades: Courses whose grade was found by this call
    """
    logger.info("fetch_grades_called", tracked_count=len(tracked_courses or []))

    try:
        result = await scraper.fetch_grades(cookies or [], tracked_courses or [])
        return build_success_response({"success": True, **result.model_dump()})

    except Exception as e:
        return error_response_for(e, "fetch_grades_failed")


async def list_cached_grades(cache: Any) -> dict[str, Any]:
    """List every grade stored in the cache."""
    logger.info("list_cached_grades_called")

    try:
        records = [record.model_dump() for record in cache.records()]
        return build_success_response(
            {"courses": records, "count": len(records)}, source="cache"
        )

    except Exception as e:
        return error_response_for(e, "list_cached_grades_failed")
