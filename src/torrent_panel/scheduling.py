"""
Self-rescheduling loops used by the sync jobs.

Both loops run as a single asyncio task that alternates between sleeping and
awaiting the operation, so an operation is never invoked again before its
previous call has returned.
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Awaitable, Callable, Generic, Optional, Protocol, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

Sleep = Callable[[float], Awaitable[None]]


class SchedulerError(Exception):
    """Raised when an operation breaks the scheduler contract."""

    pass


class JobState(Enum):
    """Lifecycle of a scheduled job."""

    IDLE = "idle"
    SCHEDULED = "scheduled"
    RUNNING = "running"
    DONE = "done"
    CANCELLED = "cancelled"


class ScheduledJob(Protocol):
    """Handle of a running loop."""

    def cancel(self) -> None: ...


class _LoopTask:
    """Task bookkeeping shared by both loops."""

    def __init__(self, name: str, sleep: Sleep) -> None:
        self.name = name
        self.state = JobState.IDLE
        self._sleep = sleep
        self._task: Optional[asyncio.Task] = None

    @property
    def cancelled(self) -> bool:
        return self.state is JobState.CANCELLED

    @property
    def active(self) -> bool:
        return self.state in (JobState.SCHEDULED, JobState.RUNNING)

    def start(self):
        """Arm the first timer. Must be called from a running event loop."""
        if self.state is not JobState.IDLE:
            return self
        self.state = JobState.SCHEDULED
        self._task = asyncio.get_running_loop().create_task(self._run(), name=self.name)
        self._task.add_done_callback(self._on_done)
        return self

    def cancel(self) -> None:
        """
        Stop the loop. Idempotent.

        A pending timer is cleared immediately; an operation already in flight
        runs to completion but nothing is scheduled after it.
        """
        if self.state in (JobState.CANCELLED, JobState.DONE):
            return
        previous = self.state
        self.state = JobState.CANCELLED
        if self._task is not None and previous is not JobState.RUNNING:
            self._task.cancel()
        logger.debug(f"Cancelled {self.name}")

    async def wait(self) -> None:
        """Wait for the loop task to finish, however it ends."""
        if self._task is not None:
            await asyncio.wait([self._task])

    async def _run(self) -> None:
        raise NotImplementedError

    def _on_done(self, task: asyncio.Task) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(f"{self.name} stopped: {exc!r}")


class AdaptiveScheduler(_LoopTask):
    """
    Repeating task whose next delay is returned by the task itself.

    The operation must always return a delay in milliseconds; failures are
    expected to be turned into a (usually longer) delay inside the operation.
    If it raises anyway, the loop stops and the error is logged.
    """

    def __init__(
        self,
        operation: Callable[[], Awaitable[float]],
        initial_delay_ms: float,
        *,
        sleep: Sleep = asyncio.sleep,
        name: str = "adaptive-scheduler",
    ) -> None:
        super().__init__(name, sleep)
        self._operation = operation
        self.initial_delay_ms = initial_delay_ms
        self.invocations = 0

    async def _run(self) -> None:
        delay_ms = self.initial_delay_ms
        while True:
            self.state = JobState.SCHEDULED
            await self._sleep(delay_ms / 1000)
            if self.cancelled:
                return

            self.state = JobState.RUNNING
            self.invocations += 1
            delay_ms = await self._operation()
            if self.cancelled:
                return
            if delay_ms is None:
                raise SchedulerError(f"{self.name}: operation returned no delay")


class RetryUntilSuccess(_LoopTask, Generic[T]):
    """
    Invoke an operation until it succeeds once, then stop.

    The first attempt runs immediately, later ones every ``interval_ms``.
    Exceptions mean "not ready yet" and are never surfaced.
    """

    def __init__(
        self,
        operation: Callable[[], Awaitable[T]],
        interval_ms: float,
        *,
        sleep: Sleep = asyncio.sleep,
        name: str = "retry-until-success",
    ) -> None:
        super().__init__(name, sleep)
        self._operation = operation
        self.interval_ms = interval_ms
        self.attempts = 0
        self.result: Optional[T] = None

    async def _run(self) -> None:
        delay_ms: float = 0
        while True:
            self.state = JobState.SCHEDULED
            await self._sleep(delay_ms / 1000)
            if self.cancelled:
                return

            self.state = JobState.RUNNING
            self.attempts += 1
            try:
                result = await self._operation()
            except Exception as e:
                if self.cancelled:
                    return
                logger.debug(f"{self.name}: attempt {self.attempts} failed: {e!r}")
                delay_ms = self.interval_ms
                continue

            if self.cancelled:
                return
            self.result = result
            self.state = JobState.DONE
            return


def schedule_adaptive(
    operation: Callable[[], Awaitable[float]],
    initial_delay_ms: float,
    *,
    sleep: Sleep = asyncio.sleep,
    name: str = "adaptive-scheduler",
) -> AdaptiveScheduler:
    """Create and start an AdaptiveScheduler."""
    return AdaptiveScheduler(operation, initial_delay_ms, sleep=sleep, name=name).start()


def retry_until_success(
    operation: Callable[[], Awaitable[T]],
    interval_ms: float,
    *,
    sleep: Sleep = asyncio.sleep,
    name: str = "retry-until-success",
) -> RetryUntilSuccess[T]:
    """Create and start a RetryUntilSuccess loop."""
    return RetryUntilSuccess(operation, interval_ms, sleep=sleep, name=name).start()
