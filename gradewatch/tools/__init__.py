"""Tools module for grade access.

This module provides the tools exposed by the server:
- Portal login
- Grade fetch
- Cached grade listing
- Health check
"""

from gradewatch.tools.auth import authenticate
from gradewatch.tools.grades import fetch_grades, list_cached_grades
from gradewatch.tools.health import health_check

__all__ = [
    "authenticate",
    "fetch_grades",
    "list_cached_grades",
    "health_check",
]
