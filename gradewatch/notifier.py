"""Desktop notifications for newly published grades.

Notifications are fire-and-forget: notify() schedules a detached task and
returns immediately. A failed notification is logged and never reaches the
grade fetch that triggered it.
"""

import asyncio
from typing import Any

import structlog
from desktop_notifier import DesktopNotifier

from gradewatch.models import Record

logger = structlog.get_logger(__name__)

NOTIFICATION_TITLE = "New Grade Available!"


class GradeNotifier:
    """Sends one desktop notification per newly resolved grade.

    Attributes:
        enabled: When False, notify() only logs.
        app_name: Application name shown by the desktop notification center.
    """

    def __init__(
        self,
        enabled: bool = True,
        app_name: str = "Grade Watch",
        backend: Any | None = None,
    ) -> None:
        self.enabled = enabled
        self.app_name = app_name
        self._backend = backend
        self._tasks: set[asyncio.Task] = set()

    def notify(self, record: Record) -> None:
        """Schedule a notification for ``record`` without waiting for it."""
        if not self.enabled:
            logger.debug("notification_skipped", code=record.code)
            return

        try:
            task = asyncio.get_running_loop().create_task(self._send(record))
        except RuntimeError as e:
            logger.warning("notification_not_scheduled", code=record.code, error=str(e))
            return

        self._tasks.add(task)
        task.add_done_callback(self._on_done)

    async def drain(self) -> None:
        """Wait for all scheduled notifications to finish."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def _send(self, record: Record) -> None:
        if self._backend is None:
            self._backend = DesktopNotifier(app_name=self.app_name)

        await self._backend.send(
            title=NOTIFICATION_TITLE,
            message=f"{record.code}: {record.grade}",
        )
        logger.info("notification_sent", code=record.code)

    def _on_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.warning("notification_failed", error=str(error))
