"""Tests for tools functionality.

This module tests the tools including response formatting, error mapping
and HTTP status selection.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from gradewatch.errors import (
    ERROR_CLASSES,
    ERROR_STATUS_CODES,
    AuthTimeout,
    GradeWatchError,
    InvalidArgument,
    SessionExpired,
    UnknownIdentifier,
    UpstreamUnreachable,
    status_code_for,
)
from gradewatch.models import FetchResult, Record
from gradewatch.tools.auth import authenticate
from gradewatch.tools.common import (
    INTERNAL_ERROR_MESSAGE,
    build_error_response,
    build_success_response,
    http_status_for,
)
from gradewatch.tools.grades import fetch_grades, list_cached_grades
from gradewatch.tools.health import health_check


def test_build_success_response():
    """Test building success response."""
    data = {"gpa": 3.2}

    response = build_success_response(data, source="scraping")

    assert response["status"] == "success"
    assert response["data"] == data
    assert response["metadata"]["source"] == "scraping"
    assert "fetched_at" in response["metadata"]
    assert http_status_for(response) == 200


def test_build_error_response():
    """Test building error response."""
    response = build_error_response("Session expired", "SESSION_EXPIRED")

    assert response["status"] == "error"
    assert response["error"]["message"] == "Session expired"
    assert response["error"]["type"] == "SESSION_EXPIRED"
    assert "fetched_at" in response["metadata"]
    assert http_status_for(response) == 401


@pytest.mark.parametrize(
    "kind,status",
    [
        ("INVALID_ARGUMENT", 400),
        ("UNKNOWN_IDENTIFIER", 401),
        ("INVALID_SECRET", 401),
        ("AUTH_TIMEOUT", 401),
        ("AUTH_FAILED", 401),
        ("SESSION_EXPIRED", 401),
        ("UPSTREAM_UNREACHABLE", 504),
        ("EXTRACTION_FAILED", 500),
        ("INTERNAL_ERROR", 500),
        ("SOMETHING_ELSE", 500),
    ],
)
def test_status_code_for(kind, status):
    """Test every error kind maps to its HTTP status."""
    assert status_code_for(kind) == status


def _error_classes(cls):
    yield cls
    for subclass in cls.__subclasses__():
        yield from _error_classes(subclass)


def test_status_table_lists_every_error():
    """Test the status table covers the whole error hierarchy."""
    assert set(ERROR_CLASSES) == set(_error_classes(GradeWatchError))
    for error_class in ERROR_CLASSES:
        assert ERROR_STATUS_CODES[error_class.kind] == error_class.status_code


@pytest.mark.asyncio
async def test_authenticate_success():
    """Test authenticate returns the session cookies."""
    auth_manager = AsyncMock()
    auth_manager.authenticate.return_value = [{"name": "sid", "value": "1"}]

    response = await authenticate(auth_manager, "user", "pw")

    assert response["status"] == "success"
    assert response["data"]["cookies"] == [{"name": "sid", "value": "1"}]
    auth_manager.authenticate.assert_awaited_once_with("user", "pw")


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "error,kind",
    [
        (UnknownIdentifier(), "UNKNOWN_IDENTIFIER"),
        (AuthTimeout(), "AUTH_TIMEOUT"),
        (InvalidArgument("Username and password are required"), "INVALID_ARGUMENT"),
    ],
)
async def test_authenticate_errors_keep_their_kind(error, kind):
    """Test login failures are reported with their own type."""
    auth_manager = AsyncMock()
    auth_manager.authenticate.side_effect = error

    response = await authenticate(auth_manager, "user", "pw")

    assert response["status"] == "error"
    assert response["error"]["type"] == kind
    assert response["error"]["message"] == error.message


@pytest.mark.asyncio
async def test_authenticate_unexpected_error_hides_details():
    """Test internal errors do not leak their text."""
    auth_manager = AsyncMock()
    auth_manager.authenticate.side_effect = RuntimeError("Target page crashed at 0xdeadbeef")

    response = await authenticate(auth_manager, "user", "pw")

    assert response["error"]["type"] == "INTERNAL_ERROR"
    assert response["error"]["message"] == INTERNAL_ERROR_MESSAGE
    assert http_status_for(response) == 500


@pytest.mark.asyncio
async def test_authenticate_passes_missing_fields_as_empty():
    """Test absent fields reach the flow as empty strings."""
    auth_manager = AsyncMock()
    auth_manager.authenticate.side_effect = InvalidArgument()

    response = await authenticate(auth_manager, None, None)

    auth_manager.authenticate.assert_awaited_once_with("", "")
    assert http_status_for(response) == 400


@pytest.mark.asyncio
async def test_fetch_grades_success():
    """Test fetch_grades flattens the fetch result."""
    record = Record(code="CSCI101", name="Intro", grade="A")
    scraper = AsyncMock()
    scraper.fetch_grades.return_value = FetchResult(
        gpa=3.5,
        credit_hours=30,
        courses=[record, Record(code="MATH201", name="Course MATH201")],
        new_grades=[record],
    )

    response = await fetch_grades(scraper, [{"name": "sid"}], ["CSCI101", "MATH201"])

    assert response["status"] == "success"
    assert response["data"]["gpa"] == 3.5
    assert response["data"]["credit_hours"] == 30.0
    assert response["data"]["courses"][1] == {
        "code": "MATH201",
        "name": "Course MATH201",
        "grade": None,
    }
    assert response["data"]["new_grades"] == [{"code": "CSCI101", "name": "Intro", "grade": "A"}]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "error,status",
    [(SessionExpired(), 401), (UpstreamUnreachable(), 504), (InvalidArgument(), 400)],
)
async def test_fetch_grades_error_statuses(error, status):
    """Test fetch failures select the right HTTP status."""
    scraper = AsyncMock()
    scraper.fetch_grades.side_effect = error

    response = await fetch_grades(scraper, None, None)

    scraper.fetch_grades.assert_awaited_once_with([], [])
    assert response["error"]["type"] == error.kind
    assert http_status_for(response) == status


@pytest.mark.asyncio
async def test_list_cached_grades():
    """Test cached grades are listed without scraping."""
    cache = MagicMock()
    cache.records.return_value = [Record(code="CSCI101", name="Intro", grade="A")]

    response = await list_cached_grades(cache)

    assert response["status"] == "success"
    assert response["data"]["count"] == 1
    assert response["metadata"]["source"] == "cache"


@pytest.mark.asyncio
async def test_health_check_success():
    """Test health_check reports browser and cache state."""
    browser_manager = MagicMock()
    browser_manager.is_running = True
    cache = MagicMock()
    cache.__len__.return_value = 4

    response = await health_check(browser_manager, cache)

    assert response["status"] == "success"
    assert response["data"]["browser_status"] == "ok"
    assert response["data"]["cached_grades"] == 4
    assert "checked_at" in response["data"]
