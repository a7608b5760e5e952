"""Clock and calendar helpers."""

from __future__ import annotations

import calendar
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta, tzinfo

from once_gate.core.constants import DAY

EPOCH = datetime(1970, 1, 1, tzinfo=UTC)
_ONE_MS = timedelta(milliseconds=1)


def epoch_ms(when: datetime) -> int:
    """Return integer milliseconds since the Unix epoch.

    Naive datetimes are interpreted in the local timezone.
    """
    if when.tzinfo is None:
        when = when.astimezone()
    return (when - EPOCH) // _ONE_MS


def from_epoch_ms(ms: int, tz: tzinfo = UTC) -> datetime:
    """Inverse of `epoch_ms`, returning an aware datetime in `tz`."""
    return (EPOCH + timedelta(milliseconds=ms)).astimezone(tz)


def days_in_month(year: int, month: int) -> int:
    """Return the number of days in `month` of `year` (leap years included)."""
    return calendar.monthrange(year, month)[1]


def month_length_ms(year: int, month: int) -> int:
    return days_in_month(year, month) * DAY


@dataclass(frozen=True)
class Moment:
    """The calendar facts a policy needs about "now"."""

    now_ms: int
    year: int
    month: int
    weekday: int  # ISO weekday, Monday == 1

    @classmethod
    def from_datetime(cls, when: datetime) -> Moment:
        if when.tzinfo is None:
            when = when.astimezone()
        return cls(
            now_ms=epoch_ms(when),
            year=when.year,
            month=when.month,
            weekday=when.isoweekday(),
        )


class Clock(ABC):
    """Source of the current time."""

    @abstractmethod
    def now(self) -> datetime:
        """Return the current, timezone-aware time."""

    def moment(self) -> Moment:
        return Moment.from_datetime(self.now())


class SystemClock(Clock):
    """Wall clock in the host's local timezone."""

    def now(self) -> datetime:
        return datetime.now().astimezone()


class FixedClock(Clock):
    """Manually driven clock for deterministic tests."""

    def __init__(self, when: datetime | int = 0, tz: tzinfo = UTC) -> None:
        self._tz = tz
        self.set(when)

    def set(self, when: datetime | int) -> None:
        if isinstance(when, int):
            when = from_epoch_ms(when, self._tz)
        elif when.tzinfo is None:
            when = when.replace(tzinfo=self._tz)
        self._now = when

    def advance(self, ms: int) -> None:
        self._now = self._now + timedelta(milliseconds=ms)

    def now(self) -> datetime:
        return self._now
