"""KeepaliveScheduler - idle-based session keepalive.

Ticks at a fixed interval and sends a ping only when the bridge has been
idle longer than the threshold. Ping failures are logged and swallowed: a
dead session is recovered by the next real request instead.
"""

import asyncio
import time
from typing import Any, Awaitable, Callable

import structlog

logger = structlog.get_logger(__name__)

# Default intervals
DEFAULT_KEEPALIVE_INTERVAL = 300.0  # Tick every 5 minutes
DEFAULT_IDLE_THRESHOLD = 240.0  # Ping only if idle for more than 4 minutes


class KeepaliveScheduler:
    """Cancellable recurring task that pings the remote when idle."""

    def __init__(
        self,
        ping: Callable[[], Awaitable[Any]],
        last_activity: Callable[[], float],
        interval: float = DEFAULT_KEEPALIVE_INTERVAL,
        idle_threshold: float = DEFAULT_IDLE_THRESHOLD,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize KeepaliveScheduler.

        Args:
            ping: Coroutine function sending one ping exchange
            last_activity: Returns the timestamp of the last successful exchange
            interval: Seconds between ticks
            idle_threshold: Idle seconds above which a tick sends a ping
            clock: Time source, same base as last_activity
        """
        self.ping = ping
        self.last_activity = last_activity
        self.interval = interval
        self.idle_threshold = idle_threshold
        self.clock = clock

        self._task: asyncio.Task | None = None
        self._ping_count = 0
        self._failure_count = 0

    @property
    def is_running(self) -> bool:
        """Whether the recurring task is active."""
        return self._task is not None and not self._task.done()

    @property
    def ping_count(self) -> int:
        """Number of pings sent (successful or not)."""
        return self._ping_count

    @property
    def failure_count(self) -> int:
        """Number of pings that failed."""
        return self._failure_count

    def start(self) -> None:
        """Start ticking. No-op if already running."""
        if self.is_running:
            return
        logger.info("keepalive_started", interval=self.interval, idle_threshold=self.idle_threshold)
        self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        """Cancel the recurring task and wait for it to finish."""
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info("keepalive_stopped")

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            await self.tick()

    async def tick(self) -> bool:
        """Perform one keepalive check.

        Returns:
            True if a ping was sent, False if skipped
        """
        idle = self.clock() - self.last_activity()
        if idle <= self.idle_threshold:
            logger.debug("keepalive_skipped", idle_seconds=round(idle, 1))
            return False

        self._ping_count += 1
        logger.info("keepalive_ping", idle_seconds=round(idle, 1))
        try:
            await self.ping()
        except Exception as e:
            self._failure_count += 1
            logger.warning("keepalive_failed", error=str(e), hint="will reconnect on next request")
        return True
