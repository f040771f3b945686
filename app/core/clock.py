"""Injectable time source."""

from datetime import UTC, datetime
from typing import Protocol


class Clock(Protocol):
    """Anything that can tell the current time."""

    def now(self) -> datetime:
        """Return the current timezone-aware instant."""
        ...


class SystemClock:
    """Wall-clock time in UTC."""

    def now(self) -> datetime:
        """Return the current UTC time."""
        return datetime.now(UTC)


class FixedClock:
    """Clock frozen at a given instant, used by tests and replays."""

    def __init__(self, instant: datetime):
        """Initialize with the instant to report."""
        if instant.tzinfo is None:
            instant = instant.replace(tzinfo=UTC)
        self.instant = instant

    def now(self) -> datetime:
        """Return the frozen instant."""
        return self.instant


_system_clock = SystemClock()


def get_clock() -> Clock:
    """Dependency returning the process clock."""
    return _system_clock
