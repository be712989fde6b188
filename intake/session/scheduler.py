"""Cancellable fixed-interval background tasks."""

import asyncio
import contextlib
from collections.abc import Awaitable, Callable

from intake.utils.logger import get_logger

logger = get_logger(__name__)


class PeriodicTask:
    """Runs a coroutine function every ``interval`` seconds until stopped.

    Errors raised by the callback are logged and the loop keeps running.

    Args:
        name: Name used in logs.
        interval: Seconds between runs.
        callback: Coroutine function to call.
    """

    def __init__(
        self,
        name: str,
        interval: float,
        callback: Callable[[], Awaitable[None]],
    ) -> None:
        self.name = name
        self.interval = interval
        self.callback = callback
        self.runs = 0
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name=self.name)
        logger.debug("Started periodic task %s every %.1fs", self.name, self.interval)

    async def stop(self) -> None:
        if self._task:
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
            self._task = None
            logger.debug("Stopped periodic task %s", self.name)

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            try:
                await self.callback()
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                logger.exception("Periodic task %s failed: %s", self.name, exc)
            self.runs += 1
