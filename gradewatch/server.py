"""FastMCP server entry point for gradewatch.

This module provides the server that exposes portal login and grade fetching
as MCP tools and as plain JSON HTTP routes for the web client.
"""

import logging
import sys
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any

import structlog
from fastmcp import FastMCP
from starlette.requests import Request
from starlette.responses import JSONResponse

from gradewatch.browser.auth import AuthManager
from gradewatch.browser.context import BrowserManager
from gradewatch.browser.scraper import GradeScraper
from gradewatch.cache.json_cache import GradeCache
from gradewatch.config import load_selectors, settings
from gradewatch.notifier import GradeNotifier
from gradewatch.tools.common import build_error_response, http_status_for


# Configure structlog
def configure_logging() -> None:
    """Configure structlog for JSON or console output."""
    if settings.log_format == "json":
        processors = [
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors = [
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.ConsoleRenderer(),
        ]

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, settings.log_level.upper(), logging.INFO)
        ),
        cache_logger_on_first_use=True,
    )


# Initialize logging
configure_logging()
logger = structlog.get_logger(__name__)


@dataclass
class Services:
    """Process-wide collaborators, built once in the lifespan."""

    browser: BrowserManager
    auth: AuthManager
    scraper: GradeScraper
    cache: GradeCache
    notifier: GradeNotifier


def build_services() -> Services:
    """Build all collaborators from settings. Nothing is launched yet."""
    selectors = load_selectors(settings.selectors_path)
    logger.info("selectors_loaded", path=settings.selectors_path)

    browser = BrowserManager(headless=settings.browser_headless)
    cache = GradeCache(settings.cache_path)
    notifier = GradeNotifier(
        enabled=settings.notifications_enabled,
        app_name=settings.notification_app_name,
    )
    auth = AuthManager(browser, selectors, timeout_ms=settings.auth_timeout_ms)
    scraper = GradeScraper(
        browser,
        cache,
        notifier,
        selectors,
        navigation_timeout_ms=settings.navigation_timeout_ms,
        max_attempts=settings.navigation_max_attempts,
        retry_delay=settings.navigation_retry_delay_seconds,
    )
    return Services(
        browser=browser, auth=auth, scraper=scraper, cache=cache, notifier=notifier
    )


# Global instance (initialized in lifespan)
services: Services | None = None


@asynccontextmanager
async def lifespan(server):
    """Manage server startup and shutdown."""
    global services

    logger.info(
        "server_starting",
        log_level=settings.log_level,
        log_format=settings.log_format,
    )

    try:
        services = build_services()
        services.cache.load()
    except Exception as e:
        logger.error("service_initialization_failed", error=str(e), exc_info=True)
        sys.exit(1)

    # Browser launch failure is fatal: no request could be served
    try:
        await services.browser.initialize()
        logger.info("browser_manager_initialized")
    except Exception as e:
        logger.error("browser_initialization_failed", error=str(e), exc_info=True)
        sys.exit(1)

    logger.info("server_startup_complete")

    try:
        yield
    finally:
        logger.info("server_shutting_down")

        try:
            await services.notifier.drain()
        except Exception as e:
            logger.warning("notifier_drain_error", error=str(e))

        try:
            await services.browser.shutdown()
            logger.info("browser_manager_shutdown")
        except Exception as e:
            logger.warning("browser_shutdown_error", error=str(e))

        services = None
        logger.info("server_shutdown_complete")


# Create FastMCP instance
mcp = FastMCP("Grade Watch", lifespan=lifespan)


def _not_initialized() -> dict[str, Any]:
    logger.error("server_not_initialized")
    return build_error_response("Server not initialized", "INTERNAL_ERROR")


# Tool: Authenticate
@mcp.tool()
async def authenticate(username: str, password: str) -> dict:
    """Log in to the university portal.

    Args:
        username: Portal username
        password: Portal password

    Returns:
        Dictionary containing:
            - status: "success" or "error"
            - data: {"cookies": [...]} session cookies (if success); pass them
              to fetch_grades. They are not stored by the server.
            - error: {"type", "message"} where type is one of
              INVALID_ARGUMENT, UNKNOWN_IDENTIFIER, INVALID_SECRET,
              AUTH_TIMEOUT, AUTH_FAILED, INTERNAL_ERROR
    """
    from gradewatch.tools.auth import authenticate as authenticate_impl

    if not services:
        return _not_initialized()

    return await authenticate_impl(services.auth, username, password)


# Tool: Fetch Grades
@mcp.tool()
async def fetch_grades(cookies: list[dict], tracked_courses: list[str]) -> dict:
    """Fetch grades for tracked courses from the portal grade report.

    Courses whose grade was already found are answered from the cache. A
    desktop notification is shown for each newly published grade.

    Args:
        cookies: Session cookies returned by authenticate
        tracked_courses: Course codes to track (e.g. ["CSCI101", "MATH201"])

    Returns:
        Dictionary containing:
            - status: "success" or "error"
            - data: (if success)
                - gpa: Overall GPA (float)
                - credit_hours: Earned credit hours (float)
                - courses: [{code, name, grade}] in tracked_courses order
                - new_grades: Courses resolved by this call
            - error: {"type", "message"}; SESSION_EXPIRED means log in again,
              UPSTREAM_UNREACHABLE means try again later
    """
    from gradewatch.tools.grades import fetch_grades as fetch_grades_impl

    if not services:
        return _not_initialized()

    return await fetch_grades_impl(services.scraper, cookies, tracked_courses)


# Tool: List Cached Grades
@mcp.tool()
async def list_cached_grades() -> dict:
    """List grades already stored in the local cache.

    Returns:
        Dictionary containing:
            - status: "success" or "error"
            - data: {"courses": [{code, name, grade}], "count": int}
    """
    from gradewatch.tools.grades import list_cached_grades as list_cached_impl

    if not services:
        return _not_initialized()

    return await list_cached_impl(services.cache)


# Tool: Health Check
@mcp.tool()
async def health_check() -> dict:
    """Check health of server components.

    Returns:
        Dictionary containing:
            - status: "success" or "error"
            - data: browser_status, cached_grades, checked_at
    """
    from gradewatch.tools.health import health_check as health_check_impl

    if not services:
        return _not_initialized()

    return await health_check_impl(services.browser, services.cache)


async def _read_json(request: Request) -> dict[str, Any] | None:
    try:
        body = await request.json()
    except ValueError:
        return None
    return body if isinstance(body, dict) else None


def _json(response: dict[str, Any]) -> JSONResponse:
    return JSONResponse(response, status_code=http_status_for(response))


# HTTP login endpoint (for the web client)
@mcp.custom_route("/auth/login", methods=["POST"])
async def http_login(request: Request) -> JSONResponse:
    """POST {"username", "password"} -> session cookies."""
    from gradewatch.tools.auth import authenticate as authenticate_impl

    body = await _read_json(request)
    if body is None:
        return _json(build_error_response("Request body must be a JSON object", "INVALID_ARGUMENT"))

    if not services:
        return _json(_not_initialized())

    return _json(
        await authenticate_impl(services.auth, body.get("username"), body.get("password"))
    )


# HTTP grade endpoint (for the web client)
@mcp.custom_route("/grades/fetch", methods=["POST"])
async def http_fetch_grades(request: Request) -> JSONResponse:
    """POST {"cookies", "trackedCourses"} -> grades."""
    from gradewatch.tools.grades import fetch_grades as fetch_grades_impl

    body = await _read_json(request)
    if body is None:
        return _json(build_error_response("Request body must be a JSON object", "INVALID_ARGUMENT"))

    if not services:
        return _json(_not_initialized())

    tracked = body.get("trackedCourses", body.get("tracked_courses"))
    return _json(await fetch_grades_impl(services.scraper, body.get("cookies"), tracked))


# HTTP health endpoint (for container healthchecks)
@mcp.custom_route("/health", methods=["GET"])
async def http_health(request: Request) -> JSONResponse:
    """Simple health status for container orchestration."""
    if not services:
        return JSONResponse({"status": "initializing"}, status_code=503)

    return JSONResponse(
        {
            "status": "healthy",
            "browser_running": services.browser.is_running,
            "cached_grades": len(services.cache),
        }
    )


if __name__ == "__main__":
    logger.info("starting_server_directly")
    mcp.run(transport="http", host=settings.mcp_host, port=settings.mcp_port)
