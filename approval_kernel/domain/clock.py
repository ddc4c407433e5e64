"""
Injectable time source.

Escalation timeouts, delegation date windows, duplicate-submission windows
and retention cutoffs are all measured against a ``Clock`` handed to the
service, never against the wall clock directly.  ``SystemClock`` is the
only place that reads real time.

Storage backends that drop tzinfo (SQLite) return naive datetimes; those
are read as UTC by ``as_utc`` wherever two timestamps are compared.
"""

from abc import ABC, abstractmethod
from datetime import date, datetime, timedelta, timezone


def as_utc(value: datetime) -> datetime:
    """Aware UTC datetime; naive values are taken to be UTC already."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class Clock(ABC):

    @abstractmethod
    def now(self) -> datetime:
        ...

    def today(self) -> date:
        """Calendar date of ``now()`` in UTC; delegation windows use this."""
        return as_utc(self.now()).date()


class SystemClock(Clock):

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class DeterministicClock(Clock):
    """
    Clock that only moves when told to.

    A naive start time stays naive so values compare cleanly with what
    SQLite returns.
    """

    def __init__(self, start: datetime | None = None):
        self._current = start or datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)

    def now(self) -> datetime:
        return self._current

    def set_time(self, moment: datetime) -> None:
        self._current = moment

    def advance(self, seconds: float = 1) -> None:
        self._current += timedelta(seconds=seconds)

    def advance_hours(self, hours: float) -> None:
        self.advance(hours * 3600)

    def advance_days(self, days: float) -> None:
        self.advance(days * 86400)
