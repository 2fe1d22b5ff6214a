# src/focusflow/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires concrete implementations into AppState (storage/stores/reminders),
- subscribes every namespaced store to the auth-state stream.
"""

from __future__ import annotations

import logging

from ..config import get_settings
from ..connectors.sync_logger import LoggingSyncNotifier
from ..core.calendar import DayCalendar
from ..core.change_tracker import ChangeTracker
from ..core.effects import SideEffectQueue
from ..core.namespace import AuthManager, AuthState
from ..core.ports import SyncNotifier
from ..core.state import AppState
from ..notifications.preferences import NotificationPreferencesStore
from ..presets.preset_store import FocusPresetStore
from ..progress.progress_store import ProgressStore
from ..storage.kv_store import SQLiteKeyValueStore
from ..tasks.reminders import LocalReminderScheduler
from ..tasks.task_store import TasksStore

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.state_db_path.parent.mkdir(parents=True, exist_ok=True)


def create_initial_state(
    *,
    settings=None,
    sync: SyncNotifier | None = None,
    effects: SideEffectQueue | None = None,
    initial_auth: AuthState | None = None,
) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings injectable makes the app easier to test and avoids hidden global config reads.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    calendar = DayCalendar.from_name(getattr(settings, "timezone", ""))
    kv = SQLiteKeyValueStore(settings.state_db_path)
    effects = effects or SideEffectQueue()
    sync = sync or LoggingSyncNotifier()
    tracker = ChangeTracker(kv)
    reminders = LocalReminderScheduler()

    state = AppState(
        settings=settings,
        calendar=calendar,
        kv=kv,
        auth=AuthManager(initial_auth),
        effects=effects,
        tracker=tracker,
        reminders=reminders,
        tasks=TasksStore(
            kv,
            effects=effects,
            calendar=calendar,
            reminders=reminders,
            sync=sync,
            tracker=tracker,
        ),
        progress=ProgressStore(
            kv,
            effects=effects,
            calendar=calendar,
            sync=sync,
            tracker=tracker,
            default_goal_minutes=getattr(settings, "default_goal_minutes", 60),
        ),
        notification_prefs=NotificationPreferencesStore(kv),
        presets=FocusPresetStore(kv),
    )

    # replay=True loads the initial namespace right away. Presets switch before
    # tasks so conversions triggered by the tasks switch land in the new account.
    for apply in (
        state.presets.apply_auth_state,
        state.tasks.apply_auth_state,
        state.progress.apply_auth_state,
        state.notification_prefs.apply_auth_state,
    ):
        state.subscriptions.append(state.auth.subscribe(apply))

    # One-time reminders are dropped while muted; re-arm everything when switched back on.
    reminders_were_active = state.notification_prefs.preferences.task_reminders_active

    def _on_prefs_changed(prefs) -> None:
        nonlocal reminders_were_active
        if prefs.task_reminders_active and not reminders_were_active:
            state.tasks.reschedule_all_reminders()
        reminders_were_active = prefs.task_reminders_active

    state.subscriptions.append(state.notification_prefs.subscribe(_on_prefs_changed))

    state.subscriptions.append(
        state.tasks.subscribe(lambda snapshot: state.presets.convert_pending_tasks(state.tasks, snapshot))
    )
    state.presets.convert_pending_tasks(state.tasks)

    logger.info("State ready ns=%s db=%s", state.tasks.namespace, settings.state_db_path)
    return state


def shutdown_state(state: AppState) -> None:
    """Best-effort shutdown (no exceptions should escape)."""
    for sub in state.subscriptions:
        sub.cancel()
    state.subscriptions.clear()

    try:
        state.effects.shutdown(wait=True)
    except Exception:
        logger.exception("Failed to drain side-effect queue.")

    try:
        close = getattr(state.kv, "close", None)
        if close is not None:
            close()
    except Exception:
        logger.debug("Key-value store close failed.", exc_info=True)
