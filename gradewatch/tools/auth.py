"""Tool for logging in to the portal.

This module provides the authenticate tool which runs the portal login and
hands the resulting session cookies back to the caller. The cookies are not
stored anywhere on the server.
"""

from typing import Any

import structlog

from gradewatch.tools.common import build_success_response, error_response_for

logger = structlog.get_logger(__name__)


async def authenticate(
    auth_manager: Any,
    username: str | None,
    password: str | None,
) -> dict[str, Any]:
    """Log in to the portal with the given credentials.

    Args:
        auth_manager: AuthManager instance.
        username: Portal username.
        password: Portal password.

    Returns:
        Standardized response containing:
            - cookies: Session cookies to pass to fetch_grades

    Examples:
        >>> response = await authenticate(auth_manager, "20201234", "secret")
        >>> len(response["data"]["cookies"]) > 0
        True
    """
    logger.info("authenticate_called")

    try:
        cookies = await auth_manager.authenticate(username or "", password or "")
        return build_success_response({"success": True, "cookies": cookies})

    except Exception as e:
        return error_response_for(e, "authenticate_failed")
