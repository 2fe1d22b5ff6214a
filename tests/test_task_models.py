# tests/test_task_models.py

from __future__ import annotations

from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo

from focusflow.core.calendar import DayCalendar
from focusflow.tasks.task_models import (
    RepeatRule,
    TaskItem,
    occurrence_key,
    split_occurrence_key,
)

UTC_CAL = DayCalendar(ZoneInfo("UTC"))


def _at(y: int, m: int, d: int, h: int = 9) -> datetime:
    return datetime(y, m, d, h, tzinfo=timezone.utc)


def test_day_key_and_weekday() -> None:
    assert UTC_CAL.day_key(date(2024, 6, 1)) == "2024-6-1"
    assert UTC_CAL.day_key(date(2024, 12, 31)) == "2024-12-31"
    assert UTC_CAL.weekday(date(2024, 6, 2)) == 1  # Sunday
    assert UTC_CAL.weekday(date(2024, 6, 1)) == 7  # Saturday


def test_day_boundary_follows_calendar_zone() -> None:
    berlin = DayCalendar.from_name("Europe/Berlin")
    late_utc = datetime(2024, 6, 1, 23, 30, tzinfo=timezone.utc)
    assert UTC_CAL.day_key(late_utc) == "2024-6-1"
    assert berlin.day_key(late_utc) == "2024-6-2"
    assert occurrence_key("t", late_utc, berlin) == "t|2024-6-2"


def test_flexible_task_shows_every_day() -> None:
    task = TaskItem(title="Inbox zero", created_at=_at(2024, 6, 1))
    assert task.occurs(date(2023, 1, 1), UTC_CAL)
    assert task.occurs(date(2030, 1, 1), UTC_CAL)
    assert not task.shows_indicator(date(2024, 6, 1), UTC_CAL)


def test_one_time_task_shows_on_its_day_only() -> None:
    task = TaskItem(title="Dentist", reminder_date=_at(2024, 6, 3))
    assert task.occurs(date(2024, 6, 3), UTC_CAL)
    assert not task.occurs(date(2024, 6, 4), UTC_CAL)
    assert task.shows_indicator(date(2024, 6, 3), UTC_CAL)


def test_recurring_rules_start_at_anchor() -> None:
    anchor = _at(2024, 1, 31)
    daily = TaskItem(title="d", reminder_date=anchor, repeat_rule=RepeatRule.DAILY)
    weekly = TaskItem(title="w", reminder_date=anchor, repeat_rule=RepeatRule.WEEKLY)
    monthly = TaskItem(title="m", reminder_date=anchor, repeat_rule=RepeatRule.MONTHLY)
    yearly = TaskItem(title="y", reminder_date=anchor, repeat_rule=RepeatRule.YEARLY)

    assert not daily.occurs(date(2024, 1, 30), UTC_CAL)
    assert daily.occurs(date(2024, 1, 31), UTC_CAL)

    assert weekly.occurs(date(2024, 2, 7), UTC_CAL)
    assert not weekly.occurs(date(2024, 2, 8), UTC_CAL)

    assert not monthly.occurs(date(2024, 2, 29), UTC_CAL)
    assert monthly.occurs(date(2024, 3, 31), UTC_CAL)

    assert yearly.occurs(date(2025, 1, 31), UTC_CAL)
    assert not yearly.occurs(date(2025, 2, 1), UTC_CAL)


def test_custom_days_use_sunday_first_numbering() -> None:
    task = TaskItem(
        title="Gym",
        repeat_rule=RepeatRule.CUSTOM_DAYS,
        custom_weekdays={2, 4},  # Monday, Wednesday
        created_at=_at(2024, 6, 1),
    )
    assert task.occurs(date(2024, 6, 3), UTC_CAL)
    assert task.occurs(date(2024, 6, 5), UTC_CAL)
    assert not task.occurs(date(2024, 6, 4), UTC_CAL)


def test_from_dict_fills_defaults_for_old_entries() -> None:
    task = TaskItem.from_dict({"id": "t1", "title": "Old", "repeatRule": "fortnightly"})
    assert task.repeat_rule == RepeatRule.NONE
    assert task.sort_index == 0
    assert task.excluded_day_keys == set()
    assert task.custom_weekdays == set()
    assert task.reminder_date is None


def test_to_dict_uses_camel_case_keys() -> None:
    task = TaskItem(
        id="t1",
        title="T",
        reminder_date=_at(2024, 6, 1),
        repeat_rule=RepeatRule.CUSTOM_DAYS,
        custom_weekdays={4, 2},
        created_at=_at(2024, 5, 1),
    )
    data = task.to_dict()
    assert data["repeatRule"] == "customDays"
    assert data["customWeekdays"] == [2, 4]
    assert data["reminderDate"] == "2024-06-01T09:00:00.000000Z"
    assert TaskItem.from_dict(data) == task


def test_split_occurrence_key() -> None:
    assert split_occurrence_key("a|b|2024-6-1") == ("a|b", date(2024, 6, 1))
    assert split_occurrence_key("no-separator") is None
    assert split_occurrence_key("t|not-a-day") is None
