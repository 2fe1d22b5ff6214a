# src/focusflow/tasks/reminders.py

from __future__ import annotations

"""
Local task reminders.

- LocalReminderScheduler: in-process ReminderScheduler backend that keeps one
  pending reminder per task and re-arms recurring ones.
- run_reminder_loop: a small polling loop that delivers due reminders via an
  injected ReminderNotifier port.

Presentation (console line, push notification) belongs to the connector.
"""

import asyncio
import logging
import threading
from collections.abc import Callable, Iterable
from dataclasses import dataclass, replace
from datetime import date, datetime, timedelta

from ..core.ports import ReminderNotifier
from ..core.timestamps import utc_now
from .task_models import RepeatRule

logger = logging.getLogger(__name__)

# Longest gap between two matches of any rule (Feb 29 yearly reminders).
_MAX_SCAN_DAYS = 366 * 8


def _weekday_sun1(d: date) -> int:
    return d.isoweekday() % 7 + 1


def _rule_matches(rule: RepeatRule, anchor: date, day: date, custom_weekdays: Iterable[int]) -> bool:
    if day < anchor:
        return False
    if rule == RepeatRule.DAILY:
        return True
    if rule == RepeatRule.WEEKLY:
        return day.weekday() == anchor.weekday()
    if rule == RepeatRule.MONTHLY:
        return day.day == anchor.day
    if rule == RepeatRule.YEARLY:
        return (day.month, day.day) == (anchor.month, anchor.day)
    if rule == RepeatRule.CUSTOM_DAYS:
        return _weekday_sun1(day) in set(custom_weekdays)
    return day == anchor


def next_fire_time(
    when: datetime,
    rule: RepeatRule,
    custom_weekdays: Iterable[int] = (),
    *,
    after: datetime,
) -> datetime | None:
    """
    First fire time strictly after `after`.

    The time of day (and zone) of `when` is kept; `when`'s date anchors the
    recurrence. One-time reminders return `when` itself or None once passed.
    """
    if rule == RepeatRule.NONE:
        return when if when > after else None

    weekdays = tuple(custom_weekdays)
    if rule == RepeatRule.CUSTOM_DAYS and not weekdays:
        return None

    anchor = when.date()
    local_after = after.astimezone(when.tzinfo) if when.tzinfo is not None else after
    day = max(anchor, local_after.date())

    for _ in range(_MAX_SCAN_DAYS):
        if _rule_matches(rule, anchor, day, weekdays):
            candidate = datetime.combine(day, when.time(), tzinfo=when.tzinfo)
            if candidate > after:
                return candidate
        day += timedelta(days=1)
    return None


@dataclass(slots=True, frozen=True)
class PendingReminder:
    task_id: str
    title: str
    fire_at: datetime
    when: datetime
    repeat_rule: RepeatRule
    custom_weekdays: tuple[int, ...] = ()


class LocalReminderScheduler:
    """
    Thread-safe in-memory reminder table.

    schedule/cancel are called from the side-effect worker thread, the
    dispatch loop polls from its own thread; a lock guards the table.
    """

    def __init__(self, *, clock: Callable[[], datetime] = utc_now) -> None:
        self._clock = clock
        self._lock = threading.Lock()
        self._pending: dict[str, PendingReminder] = {}

    def schedule_reminder(
        self,
        task_id: str,
        title: str,
        when: datetime,
        repeat_rule: str = "none",
        custom_weekdays: Iterable[int] = (),
    ) -> None:
        rule = RepeatRule.from_db(repeat_rule)
        weekdays = tuple(sorted(set(custom_weekdays)))
        fire_at = next_fire_time(when, rule, weekdays, after=self._clock())

        with self._lock:
            if fire_at is None:
                self._pending.pop(task_id, None)
                logger.debug("Reminder for task %s has no future fire time; not scheduled", task_id)
                return
            self._pending[task_id] = PendingReminder(
                task_id=task_id,
                title=title,
                fire_at=fire_at,
                when=when,
                repeat_rule=rule,
                custom_weekdays=weekdays,
            )
        logger.debug("Reminder scheduled task=%s at=%s rule=%s", task_id, fire_at, rule.value)

    def cancel_reminder(self, task_id: str) -> None:
        with self._lock:
            removed = self._pending.pop(task_id, None)
        if removed is not None:
            logger.debug("Reminder cancelled task=%s", task_id)

    def get(self, task_id: str) -> PendingReminder | None:
        with self._lock:
            return self._pending.get(task_id)

    def pending(self) -> list[PendingReminder]:
        with self._lock:
            return sorted(self._pending.values(), key=lambda r: r.fire_at)

    def due(self, now: datetime) -> list[PendingReminder]:
        return [r for r in self.pending() if r.fire_at <= now]

    def mark_fired(self, reminder: PendingReminder) -> None:
        """Drop a one-time reminder or re-arm a recurring one after delivery."""
        with self._lock:
            current = self._pending.get(reminder.task_id)
            # Rescheduled or cancelled while it was being delivered.
            if current is None or current.fire_at != reminder.fire_at:
                return
            nxt = next_fire_time(
                current.when,
                current.repeat_rule,
                current.custom_weekdays,
                after=reminder.fire_at,
            )
            if nxt is None:
                del self._pending[reminder.task_id]
            else:
                self._pending[reminder.task_id] = replace(current, fire_at=nxt)

    def postpone(self, reminder: PendingReminder, until: datetime) -> None:
        with self._lock:
            current = self._pending.get(reminder.task_id)
            if current is None or current.fire_at != reminder.fire_at:
                return
            self._pending[reminder.task_id] = replace(current, fire_at=until)


async def run_reminder_loop(
        scheduler: LocalReminderScheduler,
        notifier: ReminderNotifier,
        *,
        interval_seconds: float = 15.0,
        retry_delay_seconds: float = 60.0,
        is_enabled: Callable[[], bool] | None = None,
        clock: Callable[[], datetime] = utc_now,
) -> None:
    """
    Simple polling dispatcher.

    Every interval_seconds:
    - collect reminders with fire_at <= now
    - if reminders are disabled (preferences), skip delivery but still re-arm
    - send via notifier.send_reminder(...)
    - on success: drop one-time reminders, re-arm recurring ones
    - on failure: push fire_at forward by retry_delay_seconds

    To stop the loop, cancel the coroutine/task.
    """
    sleep_s = max(0.01, float(interval_seconds))
    retry_s = max(0.01, float(retry_delay_seconds))

    while True:
        now = clock()
        try:
            due = scheduler.due(now)
        except Exception:
            logger.exception("Reminder scan failed")
            due = []

        enabled = True
        if is_enabled is not None:
            try:
                enabled = bool(is_enabled())
            except Exception:
                logger.exception("Reminder preference check failed; assuming enabled")

        for reminder in due:
            if not enabled:
                scheduler.mark_fired(reminder)
                logger.debug("Reminder for task %s skipped (disabled)", reminder.task_id)
                continue

            try:
                await notifier.send_reminder(task_id=reminder.task_id, title=reminder.title)
                scheduler.mark_fired(reminder)
                logger.info("Reminder delivered task=%s", reminder.task_id)
            except Exception:
                logger.exception("Reminder delivery failed task=%s", reminder.task_id)
                scheduler.postpone(reminder, clock() + timedelta(seconds=retry_s))

        await asyncio.sleep(sleep_s)
