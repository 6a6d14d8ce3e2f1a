"""Grade report scraping for the PowerCampus Self-Service portal.

This module provides the GradeScraper class that restores a login session
from cookies, reads the GPA summary and resolves tracked course codes
against the grade report table, caching and announcing new grades.
"""

import asyncio
import re
from typing import Any

import structlog
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import ElementHandle, Page

from gradewatch.browser.context import BrowserManager
from gradewatch.browser.retry import with_retry
from gradewatch.cache.json_cache import GradeCache
from gradewatch.errors import (
    ExtractionFailed,
    GradeWatchError,
    InvalidArgument,
    SessionExpired,
    UpstreamUnreachable,
)
from gradewatch.models import FetchResult, Record
from gradewatch.notifier import GradeNotifier

logger = structlog.get_logger(__name__)

COURSE_TEXT_PATTERN = re.compile(r"^([\w/]+):\s*(.+)$")
NUMBER_PATTERN = re.compile(r"-?\d+(?:\.\d+)?")


class GradeScraper:
    """Scraper for the portal's grade report.

    Attributes:
        browser: BrowserManager lending pages.
        cache: GradeCache of already resolved courses.
        notifier: GradeNotifier announcing new grades.
        selectors: Grade report URL and CSS selectors from selectors.yaml.
    """

    def __init__(
        self,
        browser: BrowserManager,
        cache: GradeCache,
        notifier: GradeNotifier,
        selectors: dict[str, Any],
        navigation_timeout_ms: int = 30000,
        max_attempts: int = 3,
        retry_delay: float = 2.0,
    ) -> None:
        self.browser = browser
        self.cache = cache
        self.notifier = notifier
        self.selectors = selectors["grades"]
        self.navigation_timeout_ms = navigation_timeout_ms
        self.max_attempts = max_attempts
        self.retry_delay = retry_delay
        # Serialises cache reads, writes and flushes across concurrent fetches
        self._resolve_lock = asyncio.Lock()

    async def fetch_grades(
        self,
        cookies: list[dict[str, Any]],
        tracked_courses: list[str],
    ) -> FetchResult:
        """Fetch the grade report and resolve the tracked courses.

        Args:
            cookies: Session cookies returned by AuthManager.authenticate().
            tracked_courses: Course codes to resolve, in display order.

        Returns:
            FetchResult whose courses align with ``tracked_courses``.

        Raises:
            InvalidArgument: If cookies or tracked_courses is empty.
            SessionExpired: If the cookies no longer hold a portal session.
            UpstreamUnreachable: If the portal cannot be reached.
            ExtractionFailed: If the report page cannot be scraped.
        """
        if not cookies or not tracked_courses:
            raise InvalidArgument("Cookies and tracked courses are required")

        logger.info("fetching_grades", tracked_count=len(tracked_courses))

        try:
            async with self.browser.page() as page:
                await page.context.add_cookies(cookies)
                await self._navigate(page)

                if self.selectors["login_marker"] in page.url:
                    logger.info("session_expired", url=page.url)
                    raise SessionExpired()

                gpa = await self._read_summary(page, self.selectors["gpa_label"])
                credit_hours = await self._read_summary(
                    page, self.selectors["credit_hours_label"]
                )

                rows = await page.query_selector_all(self.selectors["rows"])
                logger.debug("grade_rows_found", count=len(rows))

                async with self._resolve_lock:
                    courses, new_grades = await self._resolve(rows, tracked_courses)

        except GradeWatchError:
            raise
        except Exception as e:
            logger.error(
                "grade_scraping_failed",
                error=str(e),
                exc_info=True,
            )
            raise ExtractionFailed() from e

        logger.info(
            "grades_fetched_successfully",
            gpa=gpa,
            credit_hours=credit_hours,
            new_count=len(new_grades),
        )

        return FetchResult(
            gpa=gpa,
            credit_hours=credit_hours,
            courses=courses,
            new_grades=new_grades,
        )

    async def _navigate(self, page: Page) -> None:
        """Open the grade report, retrying unreachable-portal failures."""
        url = self.selectors["url"]

        async def attempt() -> None:
            logger.debug("navigating_to_url", url=url)
            await page.goto(
                url, wait_until="networkidle", timeout=self.navigation_timeout_ms
            )

        try:
            await with_retry(
                attempt,
                max_attempts=self.max_attempts,
                delay=self.retry_delay,
                retry_on=(PlaywrightError,),
                description="grade_report_navigation",
            )
        except PlaywrightError as e:
            raise UpstreamUnreachable() from e

        logger.debug("navigation_complete", url=page.url)

    async def _resolve(
        self,
        rows: list[ElementHandle],
        tracked_courses: list[str],
    ) -> tuple[list[Record], list[Record]]:
        """Resolve uncached courses against the table rows."""
        to_resolve = [code for code in tracked_courses if code not in self.cache]
        logger.debug(
            "courses_partitioned",
            cached=len(tracked_courses) - len(to_resolve),
            to_resolve=len(to_resolve),
        )

        names = await self._index_course_names(rows) if to_resolve else {}

        new_grades: list[Record] = []
        for code in dict.fromkeys(to_resolve):
            try:
                record = await self._resolve_course(rows, code, names)
            except Exception as e:
                logger.warning("course_scrape_error", code=code, error=str(e))
                continue

            if record is None:
                continue

            if self.cache.put(record):
                new_grades.append(record)

        if new_grades:
            try:
                await self.cache.flush()
            except Exception:
                # Unsaved grades must stay unresolved so the next fetch retries them
                self.cache.discard(record.code for record in new_grades)
                raise

            for record in new_grades:
                self.notifier.notify(record)

        courses = []
        for code in tracked_courses:
            cached = self.cache.get(code)
            if cached is not None:
                courses.append(cached)
            else:
                courses.append(
                    Record(code=code, name=names.get(code) or f"Course {code}")
                )

        return courses, new_grades

    async def _index_course_names(self, rows: list[ElementHandle]) -> dict[str, str]:
        """Map every course code in the table to its name in one pass."""
        names: dict[str, str] = {}
        for i, row in enumerate(rows):
            try:
                text = await self._cell_text(row, self.selectors["course_cell"])
            except Exception as e:
                logger.debug("course_name_row_skipped", row_index=i, error=str(e))
                continue

            match = COURSE_TEXT_PATTERN.match(text or "")
            if match:
                names.setdefault(match.group(1).strip(), match.group(2).strip())

        logger.debug("course_names_indexed", count=len(names))
        return names

    async def _resolve_course(
        self,
        rows: list[ElementHandle],
        code: str,
        names: dict[str, str],
    ) -> Record | None:
        """Read the final grade from the first primary row mentioning ``code``."""
        for row in rows:
            subtype = await self._cell_text(row, self.selectors["subtype_cell"])
            if subtype != self.selectors["primary_subtype"]:
                continue

            course_text = await self._cell_text(row, self.selectors["course_cell"])
            if not course_text or code not in course_text:
                continue

            grade = await self._cell_text(row, self.selectors["grade_cell"])
            if not grade:
                logger.debug("course_grade_not_published", code=code)
                return None

            name = names.get(code)
            if not name and ":" in course_text:
                name = course_text.split(":", 1)[1].strip()

            logger.info("course_grade_found", code=code)
            return Record(code=code, name=name or f"Course {code}", grade=grade)

        logger.info("course_not_found_in_report", code=code)
        return None

    async def _read_summary(self, page: Page, label: str) -> float:
        """Parse the number of the summary item whose label contains ``label``.

        Returns 0.0 when the item is missing or holds no number.
        """
        try:
            items = await page.query_selector_all(self.selectors["summary_item"])
            for item in items:
                item_label = await self._cell_text(item, self.selectors["summary_label"])
                if item_label and label in item_label:
                    value = await self._cell_text(item, self.selectors["summary_value"])
                    return self._parse_number(value or "")
        except PlaywrightError as e:
            logger.warning("summary_extraction_failed", label=label, error=str(e))
            return 0.0

        logger.info("summary_item_missing", label=label)
        return 0.0

    async def _cell_text(self, element: ElementHandle, selector: str) -> str | None:
        """Text of the first descendant matching ``selector``, or None."""
        cell = await element.query_selector(selector)
        if cell is None:
            return None
        return (await cell.text_content() or "").strip()

    def _parse_number(self, text: str) -> float:
        match = NUMBER_PATTERN.search(text.replace(",", ""))
        if not match:
            logger.warning("number_parse_failed", text=text)
            return 0.0
        return float(match.group(0))
