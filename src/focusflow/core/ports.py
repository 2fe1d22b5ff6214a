# src/focusflow/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the stores.

The stores depend on Protocols instead of concrete implementations.
This keeps the reminder backend, the sync engine and storage swappable and
makes testing easier.
"""

from collections.abc import Awaitable, Iterable
from datetime import date, datetime
from typing import Any, Protocol


class KeyValueStore(Protocol):
    """One text blob per key. Implementations may raise on I/O errors; callers catch."""

    def get(self, key: str) -> str | None: ...
    def set(self, key: str, value: str) -> None: ...
    def delete(self, key: str) -> None: ...
    def keys(self, prefix: str = "") -> list[str]: ...


class ReminderScheduler(Protocol):
    """
    Local reminder backend.

    schedule_reminder() replaces any reminder already pending for task_id.
    repeat_rule is the RepeatRule value ("none", "daily", ...).
    """

    def schedule_reminder(
            self,
            task_id: str,
            title: str,
            when: datetime,
            repeat_rule: str = "none",
            custom_weekdays: Iterable[int] = (),
    ) -> None: ...

    def cancel_reminder(self, task_id: str) -> None: ...


class SyncNotifier(Protocol):
    """Outbound events for the external sync engine (fire-and-forget)."""

    def notify_session_completed(self, duration: float, session_name: str) -> None: ...
    def notify_task_completed(self, task_id: str, title: str, day: date) -> None: ...
    def notify_goal_updated(self, minutes: int) -> None: ...


class ReminderNotifier(Protocol):
    """
    Connector-side port: how the reminder loop delivers a due reminder.

    The connector decides how to show it (console line, push, ...).
    """

    def send_reminder(self, *, task_id: str, title: str) -> Awaitable[None]: ...


class EffectRunner(Protocol):
    def submit(self, fn: Any, *args: Any, **kwargs: Any) -> None: ...
