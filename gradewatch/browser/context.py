"""Browser lifecycle management with Playwright.

This module provides a BrowserManager that owns a single headless Chromium
process and lends short-lived pages to the login and grade extraction flows.
Each lent page lives in its own browser context, so cookie state never leaks
between requests.
"""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import structlog
from playwright.async_api import (
    Browser,
    Page,
    Playwright,
    async_playwright,
)

logger = structlog.get_logger(__name__)

LAUNCH_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
]

USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/131.0.0.0 Safari/537.36"
)


class BrowserManager:
    """Manager for one Playwright Chromium instance shared by all requests.

    The browser is launched lazily on first use (or eagerly via initialize()
    at startup) and is torn down by shutdown(). A later page() call after
    shutdown relaunches it.

    Usage:
        manager = BrowserManager(headless=True)
        await manager.initialize()
        async with manager.page() as page:
            ...  # page and its context are closed on exit
        # On shutdown:
        await manager.shutdown()
    """

    _playwright: Playwright | None
    _browser: Browser | None
    _lock: asyncio.Lock

    def __init__(self, headless: bool = True) -> None:
        self.headless = headless
        self._playwright = None
        self._browser = None
        self._lock = asyncio.Lock()

    @property
    def is_running(self) -> bool:
        return self._browser is not None

    async def initialize(self) -> None:
        """Start Playwright and launch Chromium.

        Safe to call more than once; only the first call launches.

        Raises:
            RuntimeError: If browser fails to launch.
        """
        async with self._lock:
            if self._browser is not None:
                logger.debug("browser_already_initialized")
                return

            try:
                logger.info("initializing_playwright")
                self._playwright = await async_playwright().start()

                logger.info("launching_browser", headless=self.headless)
                self._browser = await self._playwright.chromium.launch(
                    headless=self.headless,
                    args=LAUNCH_ARGS,
                )

                logger.info("browser_initialized_successfully")

            except Exception as e:
                logger.error(
                    "browser_initialization_failed",
                    error=str(e),
                    exc_info=True,
                )
                if self._playwright is not None:
                    await self._playwright.stop()
                    self._playwright = None
                raise RuntimeError(f"Failed to initialize browser: {e}") from e

    async def get_browser(self) -> Browser:
        """Get the running browser, launching it if needed.

        Raises:
            RuntimeError: If the browser is not available.
        """
        if self._browser is None:
            await self.initialize()

        if self._browser is None:
            raise RuntimeError("Browser is not available")

        return self._browser

    async def new_page(self) -> Page:
        """Create a new page in a fresh browser context.

        The caller is responsible for closing the page and its context
        (page.context.close()) after use. Prefer page() which does both.
        """
        browser = await self.get_browser()
        context = await browser.new_context(
            viewport={"width": 1920, "height": 1080},
            user_agent=USER_AGENT,
        )
        page = await context.new_page()

        logger.debug("new_page_created", open_contexts=len(browser.contexts))

        return page

    @asynccontextmanager
    async def page(self) -> AsyncIterator[Page]:
        """Lend a page for one logical operation.

        The page and its browser context are closed exactly once on every
        exit path, including exceptions raised by the caller.
        """
        page = await self.new_page()
        try:
            yield page
        finally:
            try:
                await page.close()
            except Exception as e:
                logger.warning("error_closing_page", error=str(e))
            finally:
                try:
                    await page.context.close()
                except Exception as e:
                    logger.warning("error_closing_page_context", error=str(e))

    async def shutdown(self) -> None:
        """Close the browser and stop Playwright.

        Idempotent. Clears internal state so the next page() relaunches.
        """
        async with self._lock:
            if self._browser is not None:
                logger.info("closing_browser")
                try:
                    await self._browser.close()
                except Exception as e:
                    logger.warning(
                        "error_closing_browser",
                        error=str(e),
                    )
                finally:
                    self._browser = None

            if self._playwright is not None:
                logger.info("stopping_playwright")
                try:
                    await self._playwright.stop()
                except Exception as e:
                    logger.warning(
                        "error_stopping_playwright",
                        error=str(e),
                    )
                finally:
                    self._playwright = None

            logger.info("browser_shutdown_complete")
