"""
Clock -- injectable "now" for services.

Services that stamp or measure time (archive countdown, task auto-archive)
take a Clock in their constructor.  Engines never see one: they receive
``as_of`` explicitly.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone


class Clock(ABC):
    """Source of the current time.  ``now_utc`` is always timezone-aware UTC."""

    @abstractmethod
    def now_utc(self) -> datetime:
        ...


class SystemClock(Clock):
    """Wall-clock time."""

    def now_utc(self) -> datetime:
        return datetime.now(timezone.utc)


class DeterministicClock(Clock):
    """
    A clock that only moves when told to.

    Naive start times are taken as UTC.
    """

    DEFAULT_START = datetime(2026, 1, 1, 9, 0, tzinfo=timezone.utc)

    def __init__(self, fixed_time: datetime | None = None):
        self._current = self._normalise(fixed_time or self.DEFAULT_START)

    @staticmethod
    def _normalise(value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    def now_utc(self) -> datetime:
        return self._current

    def advance(self, delta: timedelta) -> None:
        self._current += delta

    def advance_days(self, days: float) -> None:
        self.advance(timedelta(days=days))
