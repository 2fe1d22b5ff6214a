# tests/test_preferences.py

from __future__ import annotations

import json
from datetime import time

import pytest

from focusflow.core.namespace import AuthState
from focusflow.notifications.preferences import (
    STORAGE_KEY,
    NotificationPreferences,
    NotificationPreferencesStore,
)


@pytest.fixture()
def prefs(kv) -> NotificationPreferencesStore:
    store = NotificationPreferencesStore(kv)
    store.apply_auth_state(AuthState.guest())
    return store


def test_defaults() -> None:
    p = NotificationPreferences()
    assert p.master_enabled and p.task_reminders_enabled and p.task_reminders_active
    assert not p.daily_reminder_enabled
    assert p.daily_reminder_time == time(9, 0)
    assert p.daily_recap_time == time(21, 0)


def test_update_persists_and_notifies(prefs: NotificationPreferencesStore, kv) -> None:
    seen: list[NotificationPreferences] = []
    prefs.subscribe(seen.append)

    assert prefs.update(task_reminders_enabled=False, daily_recap_time=time(20, 30))
    assert prefs.update(task_reminders_enabled=False) is False

    assert len(seen) == 1
    assert not prefs.preferences.task_reminders_active
    stored = json.loads(kv.get(f"{STORAGE_KEY}_guest"))
    assert stored["taskRemindersEnabled"] is False
    assert stored["dailyRecapTime"] == "20:30"


def test_master_switch_gates_task_reminders(prefs: NotificationPreferencesStore) -> None:
    prefs.update(master_enabled=False)
    assert prefs.preferences.task_reminders_enabled
    assert not prefs.preferences.task_reminders_active


def test_unknown_field_raises(prefs: NotificationPreferencesStore) -> None:
    with pytest.raises(TypeError):
        prefs.update(sound_enabled=True)


def test_namespace_switch_loads_own_preferences(prefs: NotificationPreferencesStore, kv) -> None:
    prefs.update(daily_nudges_enabled=True)
    prefs.apply_auth_state(AuthState.signed_in("U1"))
    assert prefs.preferences == NotificationPreferences()

    prefs.apply_auth_state(AuthState.signed_out())
    assert prefs.preferences.daily_nudges_enabled

    assert prefs.reset()
    assert prefs.reset() is False
    fresh = NotificationPreferencesStore(kv)
    fresh.apply_auth_state(AuthState.guest())
    assert fresh.preferences == NotificationPreferences()


def test_partial_or_broken_payload_falls_back_to_defaults(kv) -> None:
    kv.set(f"{STORAGE_KEY}_guest", json.dumps({"masterEnabled": False, "dailyReminderTime": "late"}))
    store = NotificationPreferencesStore(kv)
    store.apply_auth_state(AuthState.guest())
    assert store.preferences.master_enabled is False
    assert store.preferences.daily_reminder_time == time(9, 0)
    assert store.preferences.session_completion_enabled
