# src/focusflow/notifications/preferences.py

from __future__ import annotations

import dataclasses
import json
import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import time
from typing import Any

from ..core.events import EventEmitter, Subscription
from ..core.namespace import AuthState, NamespaceResolver
from ..core.phase import StorePhase, store_mutation
from ..core.ports import KeyValueStore

logger = logging.getLogger(__name__)

STORAGE_KEY = "ff_notificationPreferences"


@dataclass(slots=True, frozen=True)
class NotificationPreferences:
    master_enabled: bool = True
    session_completion_enabled: bool = True
    daily_reminder_enabled: bool = False
    daily_reminder_time: time = time(9, 0)
    daily_nudges_enabled: bool = False
    task_reminders_enabled: bool = True
    daily_recap_enabled: bool = False
    daily_recap_time: time = time(21, 0)

    @property
    def task_reminders_active(self) -> bool:
        return self.master_enabled and self.task_reminders_enabled

    def to_dict(self) -> dict[str, Any]:
        return {
            "masterEnabled": self.master_enabled,
            "sessionCompletionEnabled": self.session_completion_enabled,
            "dailyReminderEnabled": self.daily_reminder_enabled,
            "dailyReminderTime": self.daily_reminder_time.strftime("%H:%M"),
            "dailyNudgesEnabled": self.daily_nudges_enabled,
            "taskRemindersEnabled": self.task_reminders_enabled,
            "dailyRecapEnabled": self.daily_recap_enabled,
            "dailyRecapTime": self.daily_recap_time.strftime("%H:%M"),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> NotificationPreferences:
        d = cls()

        def _time(raw: Any, default: time) -> time:
            if not raw:
                return default
            try:
                return time.fromisoformat(str(raw))
            except ValueError:
                return default

        return cls(
            master_enabled=bool(data.get("masterEnabled", d.master_enabled)),
            session_completion_enabled=bool(data.get("sessionCompletionEnabled", d.session_completion_enabled)),
            daily_reminder_enabled=bool(data.get("dailyReminderEnabled", d.daily_reminder_enabled)),
            daily_reminder_time=_time(data.get("dailyReminderTime"), d.daily_reminder_time),
            daily_nudges_enabled=bool(data.get("dailyNudgesEnabled", d.daily_nudges_enabled)),
            task_reminders_enabled=bool(data.get("taskRemindersEnabled", d.task_reminders_enabled)),
            daily_recap_enabled=bool(data.get("dailyRecapEnabled", d.daily_recap_enabled)),
            daily_recap_time=_time(data.get("dailyRecapTime"), d.daily_recap_time),
        )


PREFERENCE_FIELDS = frozenset(f.name for f in dataclasses.fields(NotificationPreferences))


class NotificationPreferencesStore:
    """
    Namespace-aware notification preferences.

    update() persists and notifies subscribers only when something changed;
    subscribers (e.g. the reminder backend) reconcile on their own.
    """

    def __init__(self, kv: KeyValueStore) -> None:
        self._kv = kv
        self._resolver = NamespaceResolver()
        self._phase = StorePhase.IDLE
        self._events: EventEmitter[NotificationPreferences] = EventEmitter()
        self._preferences = NotificationPreferences()

    @property
    def namespace(self) -> str | None:
        return self._resolver.active

    @property
    def preferences(self) -> NotificationPreferences:
        return self._preferences

    def subscribe(self, callback: Callable[[NotificationPreferences], None]) -> Subscription:
        return self._events.subscribe(callback)

    def apply_auth_state(self, state: AuthState) -> bool:
        if self._phase != StorePhase.IDLE:
            return False
        switch = self._resolver.resolve(state)
        if switch is None:
            return False

        self._phase = StorePhase.APPLYING_NAMESPACE
        try:
            self._load(switch.current)
        finally:
            self._phase = StorePhase.IDLE

        logger.info("NotificationPreferencesStore namespace -> %s", switch.current)
        self._publish()
        return True

    @store_mutation
    def update(self, **changes: Any) -> bool:
        """update(task_reminders_enabled=False, ...); unknown field names raise TypeError."""
        unknown = set(changes) - PREFERENCE_FIELDS
        if unknown:
            raise TypeError(f"Unknown notification preference(s): {', '.join(sorted(unknown))}")

        updated = dataclasses.replace(self._preferences, **changes)
        if updated == self._preferences:
            return False

        self._preferences = updated
        self._save()
        return True

    @store_mutation
    def reset(self) -> bool:
        if self._preferences == NotificationPreferences():
            return False
        self._preferences = NotificationPreferences()
        self._save()
        return True

    # ---- internal ----

    def _publish(self) -> None:
        self._events.emit(self._preferences)

    def _save(self) -> None:
        if self._phase == StorePhase.APPLYING_NAMESPACE or self.namespace is None:
            return
        key = f"{STORAGE_KEY}_{self.namespace}"
        try:
            self._kv.set(key, json.dumps(self._preferences.to_dict()))
        except Exception:
            logger.exception("Failed to save notification preferences key=%s", key)

    def _load(self, namespace: str) -> None:
        key = f"{STORAGE_KEY}_{namespace}"
        self._preferences = NotificationPreferences()
        try:
            raw = self._kv.get(key)
        except Exception:
            logger.exception("Failed to read notification preferences key=%s", key)
            return
        if not raw:
            return
        try:
            data = json.loads(raw)
        except ValueError:
            logger.warning("Unreadable notification preferences key=%s; using defaults", key)
            return
        if isinstance(data, dict):
            self._preferences = NotificationPreferences.from_dict(data)
