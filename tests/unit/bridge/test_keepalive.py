"""Unit tests for KeepaliveScheduler.

Tests UT-K001 to UT-K008: idle gating, failure suppression, cancellation.
"""

import asyncio
from unittest.mock import AsyncMock

import pytest

from cm64_mcp.bridge.errors import TransportError
from cm64_mcp.bridge.keepalive import KeepaliveScheduler
from tests.mocks import FakeClock

pytestmark = [pytest.mark.bridge, pytest.mark.bridge_unit]


def make_scheduler(clock: FakeClock, last_activity: float, **kwargs) -> KeepaliveScheduler:
    return KeepaliveScheduler(
        ping=kwargs.pop("ping", AsyncMock(return_value={"result": {}})),
        last_activity=lambda: last_activity,
        clock=clock,
        **kwargs,
    )


class TestKeepaliveDefaults:
    """Tests for default timing (UT-K001)."""

    def test_ut_k001_defaults_five_minutes_and_four_minutes(self):
        """UT-K001: Ticks every 300s and pings after 240s idle by default."""
        scheduler = KeepaliveScheduler(ping=AsyncMock(), last_activity=lambda: 0.0)

        assert scheduler.interval == 300.0
        assert scheduler.idle_threshold == 240.0
        assert scheduler.is_running is False


class TestKeepaliveTick:
    """Tests for a single tick (UT-K002 to UT-K005)."""

    @pytest.mark.asyncio
    async def test_ut_k002_pings_when_idle_beyond_threshold(self):
        """UT-K002: A tick pings when idle for more than 4 minutes."""
        clock = FakeClock()
        scheduler = make_scheduler(clock, last_activity=clock.now)
        clock.advance(241)

        sent = await scheduler.tick()

        assert sent is True
        scheduler.ping.assert_awaited_once()
        assert scheduler.ping_count == 1

    @pytest.mark.asyncio
    async def test_ut_k003_skips_when_recently_active(self):
        """UT-K003: A tick skips the ping when activity is recent."""
        clock = FakeClock()
        scheduler = make_scheduler(clock, last_activity=clock.now)
        clock.advance(60)

        sent = await scheduler.tick()

        assert sent is False
        scheduler.ping.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_ut_k004_exact_threshold_skips(self):
        """UT-K004: Idle exactly at the threshold does not ping."""
        clock = FakeClock()
        scheduler = make_scheduler(clock, last_activity=clock.now)
        clock.advance(240)

        assert await scheduler.tick() is False

    @pytest.mark.asyncio
    async def test_ut_k005_ping_failure_swallowed(self):
        """UT-K005: A failing ping is logged and never raised."""
        clock = FakeClock()
        ping = AsyncMock(side_effect=TransportError(message="Cannot reach remote"))
        scheduler = make_scheduler(clock, last_activity=clock.now, ping=ping)
        clock.advance(300)

        sent = await scheduler.tick()

        assert sent is True
        assert scheduler.failure_count == 1


class TestKeepaliveScheduling:
    """Tests for the recurring task (UT-K006 to UT-K008)."""

    @pytest.mark.asyncio
    async def test_ut_k006_ticks_at_interval(self):
        """UT-K006: The task ticks repeatedly at the configured interval."""
        ping = AsyncMock()
        scheduler = KeepaliveScheduler(
            ping=ping, last_activity=lambda: 0.0, interval=0.05, idle_threshold=-1.0
        )

        scheduler.start()
        await asyncio.sleep(0.18)
        await scheduler.stop()

        assert ping.await_count >= 3

    @pytest.mark.asyncio
    async def test_ut_k007_stop_cancels_task(self):
        """UT-K007: stop() cancels the timer and releases the task."""
        scheduler = KeepaliveScheduler(ping=AsyncMock(), last_activity=lambda: 0.0, interval=60)

        scheduler.start()
        assert scheduler.is_running is True

        await scheduler.stop()

        assert scheduler.is_running is False

    @pytest.mark.asyncio
    async def test_ut_k008_start_is_idempotent(self):
        """UT-K008: Starting twice keeps a single task."""
        scheduler = KeepaliveScheduler(ping=AsyncMock(), last_activity=lambda: 0.0, interval=60)

        scheduler.start()
        first = scheduler._task
        scheduler.start()

        assert scheduler._task is first
        await scheduler.stop()
