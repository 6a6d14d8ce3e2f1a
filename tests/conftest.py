"""Shared fakes for Playwright pages, rows and elements."""

import asyncio
from contextlib import asynccontextmanager
from typing import Any

import pytest
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from gradewatch.config import DEFAULT_SELECTORS_PATH, load_selectors


@pytest.fixture
def selectors() -> dict[str, Any]:
    return load_selectors(str(DEFAULT_SELECTORS_PATH))


class FakeElement:
    """Element handle with fixed text and optional child elements."""

    def __init__(self, text: str = "", children: dict[str, Any] | None = None,
                 visible: bool = True) -> None:
        self.text = text
        self.children = children or {}
        self.visible = visible
        self.lookups: list[str] = []

    async def query_selector(self, selector: str):
        self.lookups.append(selector)
        child = self.children.get(selector)
        if isinstance(child, Exception):
            raise child
        return child

    async def text_content(self) -> str:
        return self.text

    async def inner_text(self) -> str:
        return self.text

    async def is_visible(self) -> bool:
        return self.visible


def make_row(selectors: dict[str, Any], course: str, grade: str = "",
             subtype: str = "Lecture") -> FakeElement:
    """Grade report row with course, subtype and final grade cells."""
    grades = selectors["grades"]
    return FakeElement(
        children={
            grades["course_cell"]: FakeElement(course),
            grades["subtype_cell"]: FakeElement(subtype),
            grades["grade_cell"]: FakeElement(grade),
        }
    )


def make_summary_item(label: str, value: str) -> FakeElement:
    return FakeElement(children={"span": FakeElement(label), "h3": FakeElement(value)})


def grade_reads(row: FakeElement, selectors: dict[str, Any]) -> int:
    return row.lookups.count(selectors["grades"]["grade_cell"])


class FakeContext:
    def __init__(self, cookies: list[dict[str, Any]] | None = None) -> None:
        self._cookies = list(cookies or [])
        self.added: list[dict[str, Any]] = []
        self.closed = 0

    async def add_cookies(self, cookies: list[dict[str, Any]]) -> None:
        self.added.extend(cookies)

    async def cookies(self) -> list[dict[str, Any]]:
        return list(self._cookies)

    async def close(self) -> None:
        self.closed += 1


class FakeGradePage:
    """Grade report page.

    The first ``failures`` navigations raise a Playwright timeout; the next
    one lands on ``landing_url`` (the requested URL when None).
    """

    def __init__(self, selectors: dict[str, Any], rows: list[FakeElement] | None = None,
                 summary: list[FakeElement] | None = None, failures: int = 0,
                 landing_url: str | None = None) -> None:
        self.selectors = selectors["grades"]
        self.rows = rows or []
        self.summary = summary or []
        self.failures = failures
        self.landing_url = landing_url
        self.url = "about:blank"
        self.context = FakeContext()
        self.goto_calls = 0
        self.closed = 0

    async def goto(self, url: str, **kwargs: Any) -> None:
        self.goto_calls += 1
        if self.goto_calls <= self.failures:
            raise PlaywrightTimeoutError("net::ERR_TIMED_OUT")
        self.url = self.landing_url or url

    async def query_selector_all(self, selector: str) -> list[FakeElement]:
        if selector == self.selectors["rows"]:
            return self.rows
        if selector == self.selectors["summary_item"]:
            return self.summary
        return []

    async def close(self) -> None:
        self.closed += 1


async def _hang() -> None:
    await asyncio.Event().wait()


class FakeLoginPage:
    """Login page whose reaction to each step is scripted.

    username_outcome: "password" shows the password field, "alert" shows an
        alert, "fail" makes both waits error out, "hang" shows nothing.
    password_outcome: "navigate" redirects to ``final_url``, "alert" shows an
        alert, "hang" shows nothing.
    """

    main_frame = object()

    def __init__(self, selectors: dict[str, Any], username_outcome: str = "password",
                 password_outcome: str = "navigate", alert_text: str = "",
                 final_url: str = "https://portal.example/Home/Index",
                 cookies: list[dict[str, Any]] | None = None) -> None:
        self.selectors = selectors["auth"]
        self.username_outcome = username_outcome
        self.password_outcome = password_outcome
        self.alert_text = alert_text
        self.final_url = final_url
        self.url = "about:blank"
        self.context = FakeContext(cookies)
        self.stage = "start"
        self.alert_visible = False
        self.password_visible = False
        self.filled: dict[str, str] = {}
        self.closed = 0
        self._submitted = asyncio.Event()

    async def goto(self, url: str, **kwargs: Any) -> None:
        self.url = url

    async def fill(self, selector: str, value: str) -> None:
        self.filled[selector] = value

    async def click(self, selector: str) -> None:
        if selector == self.selectors["next_button"]:
            self.stage = "username"
        elif selector == self.selectors["submit_button"]:
            self.stage = "password"
            self._submitted.set()

    async def wait_for_selector(self, selector: str, **kwargs: Any):
        if self.stage == "username":
            outcome = self.username_outcome
            if outcome == "fail":
                raise PlaywrightError("Execution context was destroyed")
            if selector == self.selectors["password_input"] and outcome == "password":
                self.password_visible = True
                return FakeElement()
            if selector == self.selectors["alert_dialog"] and outcome == "alert":
                self.alert_visible = True
                return FakeElement(self.alert_text)
        elif self.stage == "password":
            if selector == self.selectors["alert_dialog"] and self.password_outcome == "alert":
                self.alert_visible = True
                return FakeElement(self.alert_text)
        await _hang()

    async def wait_for_event(self, event: str, predicate=None, **kwargs: Any):
        if self.password_outcome != "navigate":
            await _hang()
        await self._submitted.wait()
        self.url = self.final_url
        assert predicate is None or predicate(self.main_frame)
        return self.main_frame

    async def wait_for_load_state(self, state: str = "load", **kwargs: Any) -> None:
        return None

    async def query_selector(self, selector: str):
        if selector == self.selectors["alert_dialog"] and self.alert_visible:
            return FakeElement(self.alert_text)
        if selector == self.selectors["password_input"] and self.password_visible:
            return FakeElement()
        return None

    async def close(self) -> None:
        self.closed += 1


class FakeBrowser:
    """BrowserManager stand-in lending one scripted page."""

    def __init__(self, page: Any) -> None:
        self._page = page
        self.leases = 0
        self.is_running = True

    @asynccontextmanager
    async def page(self):
        self.leases += 1
        try:
            yield self._page
        finally:
            await self._page.close()
