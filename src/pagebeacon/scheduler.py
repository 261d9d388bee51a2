"""Timers and clock behind an explicit interface so time can be simulated."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Awaitable, Callable, Protocol

logger = logging.getLogger(__name__)

Job = Callable[[], Awaitable[object]]


class Cancellable(Protocol):
    def cancel(self) -> object: ...


class Scheduler(Protocol):
    """What the client needs from a timer facility."""

    def now(self) -> datetime: ...

    def call_later(self, delay: float, job: Job) -> Cancellable: ...

    def call_every(self, period: float, job: Job) -> Cancellable: ...


class AsyncioScheduler:
    """
    Scheduler running jobs as tasks on the current event loop.

    A job that raises is logged and, for periodic jobs, does not stop later
    runs. Tasks are kept referenced until they finish or ``shutdown`` is
    called.
    """

    def __init__(self) -> None:
        self._tasks: set[asyncio.Task] = set()

    def now(self) -> datetime:
        return datetime.now(timezone.utc)

    def _spawn(self, coro) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    @staticmethod
    async def _run(job: Job) -> None:
        try:
            await job()
        except Exception:
            logger.exception("Scheduled job %r failed", job)

    def call_later(self, delay: float, job: Job) -> asyncio.Task:
        async def runner() -> None:
            await asyncio.sleep(delay)
            await self._run(job)

        return self._spawn(runner())

    def call_every(self, period: float, job: Job) -> asyncio.Task:
        async def runner() -> None:
            while True:
                await asyncio.sleep(period)
                await self._run(job)

        return self._spawn(runner())

    def shutdown(self) -> None:
        for task in list(self._tasks):
            task.cancel()
