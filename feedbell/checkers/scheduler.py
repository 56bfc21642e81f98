"""Runs every checker forever on a fixed interval."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence

from .base import Checker, CheckerError, CycleReport, Messenger

logger = logging.getLogger(__name__)

POLL_INTERVAL_SECONDS = 300.0


class Scheduler:
    """One long-lived task per checker: run a cycle, sleep, repeat.

    The sleep starts when a cycle ends, so cycle length shifts later ticks
    instead of being corrected for. Loops share nothing but the messenger and
    whatever the checkers share (the database pool).
    """

    def __init__(
        self,
        checkers: Sequence[Checker],
        messenger: Messenger,
        *,
        interval: float = POLL_INTERVAL_SECONDS,
        wait_ready: Callable[[], Awaitable[object]] | None = None,
    ) -> None:
        self.checkers = list(checkers)
        self.messenger = messenger
        self.interval = interval
        self.wait_ready = wait_ready
        self._tasks: list[asyncio.Task] = []

    @property
    def running(self) -> bool:
        return any(not task.done() for task in self._tasks)

    def start(self) -> None:
        """Launch the polling loops. Must be called exactly once."""
        if self._tasks:
            raise RuntimeError("Scheduler already started")

        for checker in self.checkers:
            self._tasks.append(
                asyncio.create_task(self._loop(checker), name=f"poll-{checker.name}")
            )
        logger.info(
            f"Started {len(self._tasks)} polling loop(s): "
            f"{', '.join(c.name for c in self.checkers)} every {self.interval:g}s"
        )

    async def stop(self) -> None:
        """Cancel the loops; a half-finished cycle is simply abandoned."""
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        if self._tasks:
            logger.info("Polling loops stopped")

    async def run_once(self, checker: Checker) -> CycleReport | None:
        """Run one cycle, logging instead of raising."""
        try:
            return await checker.run_cycle(self.messenger)
        except CheckerError as e:
            logger.error(f"Failed to check for {checker.name} posts: {e}")
        except Exception as e:
            logger.exception(f"Unexpected error in {checker.name} cycle: {e}")
        return None

    async def _loop(self, checker: Checker) -> None:
        if self.wait_ready is not None:
            await self.wait_ready()

        while True:
            await self.run_once(checker)
            await asyncio.sleep(self.interval)
