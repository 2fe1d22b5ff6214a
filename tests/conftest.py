# tests/conftest.py

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from types import SimpleNamespace
from zoneinfo import ZoneInfo

import pytest

from focusflow.cli.bootstrap import create_initial_state
from focusflow.core.calendar import DayCalendar
from focusflow.core.change_tracker import ChangeTracker
from focusflow.core.effects import SideEffectQueue
from focusflow.core.namespace import AuthState
from focusflow.core.state import AppState
from focusflow.storage.kv_store import SQLiteKeyValueStore
from focusflow.tasks.task_store import TasksStore

from .fakes import FakeClock, FakeReminderScheduler, FakeSyncNotifier

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock(NOW)


@pytest.fixture()
def calendar() -> DayCalendar:
    return DayCalendar(ZoneInfo("UTC"))


@pytest.fixture()
def kv(tmp_path: Path) -> SQLiteKeyValueStore:
    return SQLiteKeyValueStore(tmp_path / "state.sqlite3")


@pytest.fixture()
def effects() -> SideEffectQueue:
    # Inline: side effects run synchronously so tests can assert right after a mutation.
    return SideEffectQueue(inline=True)


@pytest.fixture()
def reminders() -> FakeReminderScheduler:
    return FakeReminderScheduler()


@pytest.fixture()
def sync() -> FakeSyncNotifier:
    return FakeSyncNotifier()


@pytest.fixture()
def tracker(kv: SQLiteKeyValueStore, clock: FakeClock) -> ChangeTracker:
    return ChangeTracker(kv, clock=clock)


@pytest.fixture()
def make_store(kv, effects, calendar, reminders, sync, tracker, clock):
    """Factory for TasksStores sharing the same storage (simulates an app restart)."""

    default_kv = kv

    def _make(auth: AuthState | None = AuthState.guest(), *, kv=None) -> TasksStore:
        store = TasksStore(
            kv or default_kv,
            effects=effects,
            calendar=calendar,
            reminders=reminders,
            sync=sync,
            tracker=tracker,
            clock=clock,
        )
        if auth is not None:
            store.apply_auth_state(auth)
        return store

    return _make


@pytest.fixture()
def store(make_store) -> TasksStore:
    return make_store()


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with the composition root.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="focusflow-test",
        log_level="DEBUG",
        data_dir=tmp_path,
        state_db_path=tmp_path / "state.sqlite3",
        timezone="UTC",
        console_enabled=False,
        reminders_enabled=False,
        reminder_poll_seconds=0.01,
        reminder_retry_seconds=0.01,
        default_goal_minutes=60,
    )


@pytest.fixture()
def state(settings: SimpleNamespace, sync: FakeSyncNotifier) -> AppState:
    """AppState wired by the real composition root, with inline side effects."""
    return create_initial_state(settings=settings, sync=sync, effects=SideEffectQueue(inline=True))
