"""Cache module for gradewatch.

This module provides the JSON file cache of resolved grades.
"""

from gradewatch.cache.json_cache import GradeCache

__all__ = ["GradeCache"]
