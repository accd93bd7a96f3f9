"""Wall-clock access for date and time-of-day comparisons."""

from datetime import date, datetime, time
from typing import Protocol
from zoneinfo import ZoneInfo

from service_scheduler.config import settings


class Clock(Protocol):
    """Source of the current time."""

    def now(self) -> datetime:
        """Current timezone-aware datetime."""
        ...


class SystemClock:
    """Clock backed by the system time in the service center's timezone."""

    def __init__(self, timezone: str | None = None):
        """Initialize with an IANA timezone name."""
        self.tz = ZoneInfo(timezone or settings.scheduler_timezone)

    def now(self) -> datetime:
        """Current time in the configured timezone."""
        return datetime.now(self.tz)


class FixedClock:
    """Clock frozen at a given instant."""

    def __init__(self, instant: datetime):
        """Initialize with the instant to report."""
        if instant.tzinfo is None:
            instant = instant.replace(tzinfo=ZoneInfo(settings.scheduler_timezone))
        self.instant = instant

    def now(self) -> datetime:
        """The frozen instant."""
        return self.instant


def today(clock: Clock) -> date:
    """Calendar date of the clock's current time."""
    return clock.now().date()


def time_of_day(clock: Clock) -> time:
    """Hour and minute of the clock's current time."""
    now = clock.now()
    return time(now.hour, now.minute)


_system_clock = SystemClock()


def get_clock() -> Clock:
    """Dependency returning the process clock."""
    return _system_clock
