# src/focusflow/tasks/task_models.py

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import StrEnum
from typing import Any

from ..core.calendar import DayCalendar, DayLike
from ..core.timestamps import format_timestamp, parse_timestamp, utc_now

logger = logging.getLogger(__name__)


class RepeatRule(StrEnum):
    """Task recurrence. Values are the persisted/wire names."""

    NONE = "none"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"
    CUSTOM_DAYS = "customDays"

    @classmethod
    def from_db(cls, raw: str | None) -> RepeatRule:
        if not raw:
            return cls.NONE
        try:
            return cls(raw)
        except ValueError:
            return cls.NONE

    @property
    def display_name(self) -> str:
        return {
            RepeatRule.NONE: "No repeat",
            RepeatRule.DAILY: "Daily",
            RepeatRule.WEEKLY: "Weekly",
            RepeatRule.MONTHLY: "Monthly",
            RepeatRule.YEARLY: "Yearly",
            RepeatRule.CUSTOM_DAYS: "Custom",
        }[self]


def new_task_id() -> str:
    return str(uuid.uuid4())


@dataclass(slots=True)
class TaskItem:
    title: str
    id: str = field(default_factory=new_task_id)
    notes: str | None = None

    # None means a "flexible" task that shows according to repeat rules only.
    reminder_date: datetime | None = None

    repeat_rule: RepeatRule = RepeatRule.NONE
    custom_weekdays: set[int] = field(default_factory=set)  # 1 = Sunday ... 7 = Saturday

    duration_minutes: int = 0  # 0 = no duration

    # One-time UI intent: create a focus preset from this task once.
    convert_to_preset: bool = False
    # Persisted guard so a preset is never created twice.
    preset_created: bool = False

    # Day keys ("Y-M-D") whose occurrence was deleted without deleting the series.
    excluded_day_keys: set[str] = field(default_factory=set)

    sort_index: int = 0
    created_at: datetime = field(default_factory=utc_now)

    # ---- scheduling ----

    def occurs(self, day: DayLike, calendar: DayCalendar) -> bool:
        target = calendar.day_of(day)
        anchor = calendar.day_of(self.reminder_date or self.created_at)
        rule = self.repeat_rule

        if rule != RepeatRule.NONE and target < anchor:
            return False

        if rule == RepeatRule.NONE:
            if self.reminder_date is None:
                return True
            return target == anchor
        if rule == RepeatRule.DAILY:
            return True
        if rule == RepeatRule.WEEKLY:
            return calendar.weekday(target) == calendar.weekday(anchor)
        if rule == RepeatRule.MONTHLY:
            return target.day == anchor.day
        if rule == RepeatRule.YEARLY:
            return target.month == anchor.month and target.day == anchor.day
        if rule == RepeatRule.CUSTOM_DAYS:
            return calendar.weekday(target) in self.custom_weekdays
        return False

    def shows_indicator(self, day: DayLike, calendar: DayCalendar) -> bool:
        if self.reminder_date is None and self.repeat_rule == RepeatRule.NONE:
            return False
        return self.occurs(day, calendar)

    def is_excluded(self, day: DayLike, calendar: DayCalendar) -> bool:
        return calendar.day_key(day) in self.excluded_day_keys

    # ---- serialization ----

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "sortIndex": self.sort_index,
            "title": self.title,
            "notes": self.notes,
            "reminderDate": format_timestamp(self.reminder_date) if self.reminder_date else None,
            "repeatRule": self.repeat_rule.value,
            "customWeekdays": sorted(self.custom_weekdays),
            "durationMinutes": self.duration_minutes,
            "convertToPreset": self.convert_to_preset,
            "presetCreated": self.preset_created,
            "excludedDayKeys": sorted(self.excluded_day_keys),
            "createdAt": format_timestamp(self.created_at),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TaskItem:
        """
        Decode one persisted task.

        Missing optional fields fall back to defaults (older blobs had no
        sortIndex / excludedDayKeys). Raises KeyError/ValueError/TypeError on
        a structurally broken entry; the caller decides what to skip.
        """
        raw_reminder = data.get("reminderDate")
        raw_created = data.get("createdAt")
        return cls(
            id=str(data["id"]),
            title=str(data.get("title") or ""),
            notes=data.get("notes"),
            reminder_date=parse_timestamp(raw_reminder) if raw_reminder else None,
            repeat_rule=RepeatRule.from_db(data.get("repeatRule")),
            custom_weekdays={int(d) for d in data.get("customWeekdays") or []},
            duration_minutes=int(data.get("durationMinutes") or 0),
            convert_to_preset=bool(data.get("convertToPreset", False)),
            preset_created=bool(data.get("presetCreated", False)),
            excluded_day_keys={str(k) for k in data.get("excludedDayKeys") or []},
            sort_index=int(data.get("sortIndex") or 0),
            created_at=parse_timestamp(raw_created) if raw_created else utc_now(),
        )


def occurrence_key(task_id: str, day: DayLike, calendar: DayCalendar) -> str:
    """Completion marker key: "<task_id>|Y-M-D"."""
    return f"{task_id}|{calendar.day_key(day)}"


def day_suffix(day: DayLike, calendar: DayCalendar) -> str:
    return f"|{calendar.day_key(day)}"


def split_occurrence_key(key: str) -> tuple[str, date] | None:
    """Inverse of occurrence_key(); None for malformed keys."""
    task_id, sep, day_part = key.rpartition("|")
    if not sep or not task_id:
        return None
    try:
        y, m, d = (int(p) for p in day_part.split("-"))
        return task_id, date(y, m, d)
    except ValueError:
        return None


@dataclass(slots=True, frozen=True)
class TasksSnapshot:
    """Immutable view handed to subscribers after each committed mutation."""

    namespace: str | None
    tasks: tuple[TaskItem, ...]
    completed_keys: frozenset[str]
