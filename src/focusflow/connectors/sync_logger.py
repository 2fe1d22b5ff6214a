# src/focusflow/connectors/sync_logger.py

from __future__ import annotations

import logging
from datetime import date

logger = logging.getLogger(__name__)


class LoggingSyncNotifier:
    """
    Offline SyncNotifier used when no remote sync engine is wired in.

    Behavior:
    - every outbound event is logged at INFO and counted
    - nothing leaves the process
    """

    def __init__(self) -> None:
        self.events: list[tuple[str, tuple]] = []

    def notify_session_completed(self, duration: float, session_name: str) -> None:
        self.events.append(("session_completed", (duration, session_name)))
        logger.info("sync: session completed name=%r duration=%.0fs", session_name, duration)

    def notify_task_completed(self, task_id: str, title: str, day: date) -> None:
        self.events.append(("task_completed", (task_id, title, day)))
        logger.info("sync: task completed id=%s title=%r day=%s", task_id, title, day.isoformat())

    def notify_goal_updated(self, minutes: int) -> None:
        self.events.append(("goal_updated", (minutes,)))
        logger.info("sync: daily goal updated minutes=%d", minutes)
