"""
Clock -- where services get "now" from.

Submission stamps, approval request times, reminder log times and the
days-overdue arithmetic all read the clock handed to the service, so tests
can pin time and move it forward between calls.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone

SECONDS_PER_DAY = 86400

# Ten days past the default invoice due date used by the test factories.
DEFAULT_TEST_TIME = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


class Clock(ABC):
    """Source of timezone-aware UTC datetimes."""

    @abstractmethod
    def now(self) -> datetime:
        ...


class SystemClock(Clock):

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class DeterministicClock(Clock):
    """
    Frozen clock for tests.

    Time only moves when ``advance()`` or ``advance_days()`` is called, so
    two reads inside one operation always agree.
    """

    def __init__(self, start: datetime | None = None):
        self._start = start or DEFAULT_TEST_TIME
        self._offset = timedelta()

    def now(self) -> datetime:
        return self._start + self._offset

    def advance(self, seconds: int = 1) -> None:
        self._offset += timedelta(seconds=seconds)

    def advance_days(self, days: int) -> None:
        self.advance(days * SECONDS_PER_DAY)
