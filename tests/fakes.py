# tests/fakes.py

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta


class FakeClock:
    """Manually advanced clock; call it like utc_now()."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now = self.now + timedelta(**kwargs)


@dataclass(slots=True)
class FakeReminderScheduler:
    """
    Records every schedule/cancel call and keeps the resulting pending set,
    so tests can assert both on order and on final state.
    """

    calls: list[tuple[str, str]] = field(default_factory=list)
    scheduled: dict[str, tuple[str, datetime, str, tuple[int, ...]]] = field(default_factory=dict)

    def schedule_reminder(
        self,
        task_id: str,
        title: str,
        when: datetime,
        repeat_rule: str = "none",
        custom_weekdays: Iterable[int] = (),
    ) -> None:
        self.calls.append(("schedule", task_id))
        self.scheduled[task_id] = (title, when, repeat_rule, tuple(custom_weekdays))

    def cancel_reminder(self, task_id: str) -> None:
        self.calls.append(("cancel", task_id))
        self.scheduled.pop(task_id, None)


@dataclass(slots=True)
class FakeSyncNotifier:
    task_completions: list[tuple[str, str, date]] = field(default_factory=list)
    sessions: list[tuple[float, str]] = field(default_factory=list)
    goals: list[int] = field(default_factory=list)

    def notify_session_completed(self, duration: float, session_name: str) -> None:
        self.sessions.append((duration, session_name))

    def notify_task_completed(self, task_id: str, title: str, day: date) -> None:
        self.task_completions.append((task_id, title, day))

    def notify_goal_updated(self, minutes: int) -> None:
        self.goals.append(minutes)


class FlakyKeyValueStore:
    """
    In-memory KeyValueStore whose writes/reads can be switched to fail.

    Used to check that persistence errors never surface to the caller.
    """

    def __init__(self) -> None:
        self.data: dict[str, str] = {}
        self.fail_writes = False
        self.fail_reads = False

    def get(self, key: str) -> str | None:
        if self.fail_reads:
            raise OSError("disk read failed")
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        if self.fail_writes:
            raise OSError("disk full")
        self.data[key] = value

    def delete(self, key: str) -> None:
        if self.fail_writes:
            raise OSError("disk full")
        self.data.pop(key, None)

    def keys(self, prefix: str = "") -> list[str]:
        return sorted(k for k in self.data if k.startswith(prefix))


@dataclass(slots=True)
class SentReminder:
    task_id: str
    title: str


@dataclass(slots=True)
class FakeReminderNotifier:
    """Fake ReminderNotifier used by reminder-loop tests."""

    sent: list[SentReminder] = field(default_factory=list)
    fail: bool = False

    async def send_reminder(self, *, task_id: str, title: str) -> None:
        if self.fail:
            raise RuntimeError("push service unavailable")
        self.sent.append(SentReminder(task_id=task_id, title=title))
