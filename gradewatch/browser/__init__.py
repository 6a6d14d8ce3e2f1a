"""Browser automation module for the PowerCampus Self-Service portal.

This module provides browser lifecycle management, the login flow and the
grade report scraper, all built on Playwright.
"""

from gradewatch.browser.context import BrowserManager
from gradewatch.browser.auth import AuthManager
from gradewatch.browser.scraper import GradeScraper

__all__ = [
    "BrowserManager",
    "AuthManager",
    "GradeScraper",
]
