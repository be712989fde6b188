"""Inactivity tracking measured against wall-clock time."""

from datetime import datetime
from enum import StrEnum

from intake.utils.clock import Clock, utcnow


class InactivityStatus(StrEnum):
    ACTIVE = "active"
    WARNING = "warning"
    TIMED_OUT = "timed_out"


class InactivityMonitor:
    """Compares the last interaction time with the warning and timeout windows.

    Args:
        warning_after: Seconds of inactivity before the warning shows.
        timeout_after: Seconds of inactivity before the session times out.
        clock: Wall-clock source.
    """

    def __init__(
        self,
        warning_after: float,
        timeout_after: float,
        clock: Clock = utcnow,
        last_activity: datetime | None = None,
    ) -> None:
        self.warning_after = warning_after
        self.timeout_after = timeout_after
        self.clock = clock
        self.last_activity = last_activity or clock()
        self.warning_shown = False
        self.channels: dict[str, int] = {}

    def record_activity(self, channel: str = "api") -> datetime:
        """Register an interaction; dismisses a showing warning."""
        self.last_activity = self.clock()
        self.warning_shown = False
        self.channels[channel] = self.channels.get(channel, 0) + 1
        return self.last_activity

    def extend(self) -> datetime:
        return self.record_activity("extend")

    def elapsed(self) -> float:
        return (self.clock() - self.last_activity).total_seconds()

    def check(self) -> InactivityStatus:
        elapsed = self.elapsed()
        if elapsed >= self.timeout_after:
            return InactivityStatus.TIMED_OUT
        if elapsed >= self.warning_after:
            self.warning_shown = True
            return InactivityStatus.WARNING
        return InactivityStatus.ACTIVE
