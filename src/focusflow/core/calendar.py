# src/focusflow/core/calendar.py

"""
Day-boundary helpers.

Every per-day key in the app (completion markers, excluded occurrences,
streak days) must be derived through DayCalendar so that a timestamp late in
the evening and one early next morning never land on the same key.
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone, tzinfo
from zoneinfo import ZoneInfo

DayLike = date | datetime


class DayCalendar:
    """
    Calendar bound to one time zone.

    tz=None means "the machine's local zone" (resolved per call, like an
    auto-updating calendar). Naive datetimes are taken as already local.
    """

    def __init__(self, tz: tzinfo | None = None) -> None:
        self.tz = tz

    @classmethod
    def from_name(cls, name: str | None) -> DayCalendar:
        name = (name or "").strip()
        if not name:
            return cls()
        return cls(ZoneInfo(name))

    def now(self) -> datetime:
        if self.tz is None:
            return datetime.now(timezone.utc).astimezone()
        return datetime.now(self.tz)

    def day_of(self, value: DayLike) -> date:
        if not isinstance(value, datetime):
            return value
        if value.tzinfo is None:
            return value.date()
        if self.tz is None:
            return value.astimezone().date()
        return value.astimezone(self.tz).date()

    def start_of_day(self, value: DayLike) -> datetime:
        d = self.day_of(value)
        if self.tz is None:
            return datetime.combine(d, time.min).astimezone()
        return datetime.combine(d, time.min, tzinfo=self.tz)

    def day_key(self, value: DayLike) -> str:
        """"Y-M-D" without zero padding (e.g. 2024-6-1)."""
        d = self.day_of(value)
        return f"{d.year}-{d.month}-{d.day}"

    def weekday(self, value: DayLike) -> int:
        """Weekday number with 1 = Sunday ... 7 = Saturday."""
        return self.day_of(value).isoweekday() % 7 + 1

    def add_days(self, value: DayLike, days: int) -> date:
        return self.day_of(value) + timedelta(days=days)
