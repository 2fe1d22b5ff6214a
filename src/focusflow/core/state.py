# src/focusflow/core/state.py

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Any

from ..notifications.preferences import NotificationPreferencesStore
from ..presets.preset_store import FocusPresetStore
from ..progress.progress_store import ProgressStore
from ..tasks.reminders import LocalReminderScheduler
from ..tasks.task_store import TasksStore
from .calendar import DayCalendar
from .change_tracker import ChangeTracker
from .effects import SideEffectQueue
from .events import Subscription
from .namespace import AuthManager
from .ports import KeyValueStore


@dataclass
class AppState:
    """
    Explicitly constructed session state shared by connectors and commands.

    Built once by the composition root (cli/bootstrap.py); nothing in the
    package reaches for module-level singletons.
    """

    settings: Any
    calendar: DayCalendar
    kv: KeyValueStore
    auth: AuthManager
    effects: SideEffectQueue
    tracker: ChangeTracker
    reminders: LocalReminderScheduler
    tasks: TasksStore
    progress: ProgressStore
    notification_prefs: NotificationPreferencesStore
    presets: FocusPresetStore

    # Serializes console commands with background reconciliation.
    lock: threading.RLock = field(default_factory=threading.RLock)
    subscriptions: list[Subscription] = field(default_factory=list)
