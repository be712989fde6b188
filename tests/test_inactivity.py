"""Tests for inactivity tracking and periodic background tasks."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from intake.session.inactivity import InactivityMonitor, InactivityStatus
from intake.session.scheduler import PeriodicTask


class TestInactivityMonitor:
    """Tests for InactivityMonitor."""

    def _monitor(self, clock) -> InactivityMonitor:
        return InactivityMonitor(warning_after=25 * 60, timeout_after=30 * 60, clock=clock)

    def test_active(self, clock) -> None:
        monitor = self._monitor(clock)
        clock.advance(60)
        assert monitor.check() == InactivityStatus.ACTIVE
        assert monitor.elapsed() == 60

    def test_warning_then_timeout(self, clock) -> None:
        monitor = self._monitor(clock)
        clock.advance(25 * 60)
        assert monitor.check() == InactivityStatus.WARNING
        assert monitor.warning_shown
        clock.advance(5 * 60)
        assert monitor.check() == InactivityStatus.TIMED_OUT

    def test_activity_dismisses_warning(self, clock) -> None:
        monitor = self._monitor(clock)
        clock.advance(26 * 60)
        monitor.check()
        monitor.record_activity("keyboard")
        assert monitor.warning_shown is False
        assert monitor.check() == InactivityStatus.ACTIVE
        assert monitor.channels == {"keyboard": 1}

    def test_extend(self, clock) -> None:
        monitor = self._monitor(clock)
        clock.advance(29 * 60)
        assert monitor.extend() == clock()
        clock.advance(29 * 60)
        assert monitor.check() == InactivityStatus.WARNING

    def test_wall_clock_across_suspension(self, clock) -> None:
        monitor = self._monitor(clock)
        clock.advance(2 * 60 * 60)
        assert monitor.check() == InactivityStatus.TIMED_OUT


class TestPeriodicTask:
    """Tests for PeriodicTask."""

    @pytest.mark.asyncio
    async def test_runs_until_stopped(self) -> None:
        callback = AsyncMock()
        task = PeriodicTask("autosave", 0.01, callback)
        task.start()
        assert task.running
        await asyncio.sleep(0.08)
        await task.stop()

        assert task.running is False
        assert callback.await_count >= 2
        runs = task.runs
        await asyncio.sleep(0.03)
        assert task.runs == runs

    @pytest.mark.asyncio
    async def test_errors_do_not_stop_loop(self) -> None:
        callback = AsyncMock(side_effect=RuntimeError("disk full"))
        task = PeriodicTask("autosave", 0.01, callback)
        task.start()
        await asyncio.sleep(0.08)
        await task.stop()
        assert task.runs >= 2

    @pytest.mark.asyncio
    async def test_start_twice(self) -> None:
        task = PeriodicTask("poll", 10, AsyncMock())
        task.start()
        first = task._task
        task.start()
        assert task._task is first
        await task.stop()
        await task.stop()
