"""Authentication against the PowerCampus Self-Service login form.

Login flow: Username page -> (alert | password field) -> password submit ->
(alert | navigation) -> landing page. The portal reports errors as inline
alert dialogs rather than status codes, so each step races the expected
field against the alert.

States: NAV_LOGIN -> USERNAME_SUBMITTED -> {PASSWORD_PROMPTED |
USERNAME_REJECTED} -> {AUTHENTICATED | PASSWORD_REJECTED | LOGIN_TIMEOUT}
"""

import asyncio
from typing import Any

import structlog
from playwright.async_api import Page
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from gradewatch.browser.context import BrowserManager
from gradewatch.browser.waits import first_ready
from gradewatch.errors import (
    AuthFailed,
    AuthTimeout,
    InvalidArgument,
    InvalidSecret,
    UnknownIdentifier,
)

logger = structlog.get_logger(__name__)


class AuthManager:
    """Drives the two-phase portal login and returns the session cookies.

    The username and the password are two independent decision points: the
    portal may reject either one, and callers route UI feedback on which.
    Credentials are only held for the duration of one authenticate() call.
    """

    def __init__(
        self,
        browser: BrowserManager,
        selectors: dict[str, Any],
        timeout_ms: int = 10000,
    ) -> None:
        self.browser = browser
        self.selectors = selectors["auth"]
        self.timeout = timeout_ms / 1000

    async def authenticate(self, username: str, password: str) -> list[dict[str, Any]]:
        """Log in to the portal and return its cookies.

        Args:
            username: Portal username.
            password: Portal password.

        Returns:
            The browser context's cookies after a successful login.

        Raises:
            InvalidArgument: If username or password is empty.
            UnknownIdentifier: If the portal rejects the username.
            InvalidSecret: If the portal rejects the password.
            AuthTimeout: If a login step shows neither its field nor an alert.
            AuthFailed: If the portal stays on the login page after submit.
        """
        if not username or not password:
            raise InvalidArgument("Username and password are required")

        logger.info("login_started")

        async with self.browser.page() as page:
            await page.goto(self.selectors["login_url"], wait_until="networkidle")
            logger.debug("navigated_to_login_page", url=page.url)

            # Step 1: Enter username
            await self._submit_username(page, username)

            # Step 2: Enter password
            await self._submit_password(page, password)

            # Verify login success
            if self.selectors["login_marker"] in page.url:
                logger.warning("login_verification_failed", url=page.url)
                raise AuthFailed()

            cookies = await page.context.cookies()
            logger.info("login_successful", cookie_count=len(cookies))
            return cookies

    async def _submit_username(self, page: Page, username: str) -> None:
        """Enter the username and wait for the password field or an alert."""
        logger.debug("entering_username")
        await page.fill(self.selectors["username_input"], username)
        await page.click(self.selectors["next_button"])

        try:
            winner = await first_ready(
                {
                    "password": page.wait_for_selector(
                        self.selectors["password_input"], state="visible", timeout=0
                    ),
                    "alert": self._wait_for_alert(page),
                },
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            logger.warning("username_step_timed_out", timeout_seconds=self.timeout)
            raise AuthTimeout() from None

        logger.debug("username_step_settled", outcome=winner)

        alert_text = await self._read_alert(page)
        if alert_text is not None:
            logger.info("username_rejected")
            if self.selectors["unknown_user_marker"].lower() in alert_text.lower():
                raise UnknownIdentifier()
            raise UnknownIdentifier(alert_text or None)

        if await page.query_selector(self.selectors["password_input"]) is None:
            # No alert but no password prompt either: the portal did not
            # accept the username.
            logger.info("password_field_missing")
            raise UnknownIdentifier()

    async def _submit_password(self, page: Page, password: str) -> None:
        """Enter the password and wait for navigation or an alert."""
        logger.debug("entering_password")
        await page.fill(self.selectors["password_input"], password)

        # Listen before clicking so a fast redirect is not missed
        navigation = asyncio.ensure_future(
            page.wait_for_event(
                "framenavigated",
                predicate=lambda frame: frame == page.main_frame,
                timeout=0,
            )
        )
        try:
            await page.click(self.selectors["submit_button"])
        except Exception:
            navigation.cancel()
            await asyncio.gather(navigation, return_exceptions=True)
            raise

        try:
            winner = await first_ready(
                {"navigation": navigation, "alert": self._wait_for_alert(page)},
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            logger.warning("password_step_timed_out", timeout_seconds=self.timeout)
            raise AuthTimeout() from None

        logger.debug("password_step_settled", outcome=winner)

        if winner != "navigation":
            alert_text = await self._read_alert(page)
            if alert_text is not None:
                logger.info("password_rejected")
                if self.selectors["invalid_password_marker"].lower() in alert_text.lower():
                    raise InvalidSecret()
                raise InvalidSecret(alert_text or None)

        try:
            await page.wait_for_load_state("networkidle", timeout=self.timeout * 1000)
        except PlaywrightTimeoutError:
            logger.warning("post_login_network_not_idle", url=page.url)

        logger.debug("password_entered", url=page.url)

    async def _wait_for_alert(self, page: Page) -> None:
        await page.wait_for_selector(
            self.selectors["alert_dialog"], state="visible", timeout=0
        )

    async def _read_alert(self, page: Page) -> str | None:
        """Return the visible alert's text, or None when no alert is shown."""
        alert = await page.query_selector(self.selectors["alert_dialog"])
        if alert is None or not await alert.is_visible():
            return None
        return (await alert.inner_text()).strip()
