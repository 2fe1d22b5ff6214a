# src/focusflow/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState, then starts:
- the reminder dispatch loop in a background thread (optional),
- the console REPL in the main thread (optional).
"""

from __future__ import annotations

import asyncio
import logging
import signal
import threading

from ..cli.bootstrap import create_initial_state, shutdown_state
from ..config import get_settings
from ..connectors.console_connector import ConsoleReminderNotifier, run_console_loop
from ..core.state import AppState
from ..logging_setup import setup_logging
from ..tasks.reminders import run_reminder_loop

logger = logging.getLogger(__name__)


class ReminderBackgroundRunner:
    """Runs run_reminder_loop() on a private event loop in a daemon thread."""

    def __init__(self, state: AppState) -> None:
        self._state = state
        self._loop = asyncio.new_event_loop()
        self._task: asyncio.Task | None = None
        self._stop_requested = threading.Event()
        self._thread = threading.Thread(target=self._run, name="focusflow-reminders", daemon=True)

    def _run(self) -> None:
        asyncio.set_event_loop(self._loop)
        settings = self._state.settings
        prefs = self._state.notification_prefs
        self._task = self._loop.create_task(
            run_reminder_loop(
                self._state.reminders,
                ConsoleReminderNotifier(),
                interval_seconds=settings.reminder_poll_seconds,
                retry_delay_seconds=settings.reminder_retry_seconds,
                is_enabled=lambda: prefs.preferences.task_reminders_active,
            )
        )
        # stop() may have run before the task existed.
        if self._stop_requested.is_set():
            self._task.cancel()
        try:
            self._loop.run_until_complete(self._task)
        except asyncio.CancelledError:
            logger.debug("Reminder loop cancelled.")
        except Exception:
            logger.exception("Reminder loop crashed.")
        finally:
            self._loop.close()

    def start(self) -> None:
        self._thread.start()

    def stop(self) -> None:
        self._stop_requested.set()
        task = self._task
        if task is None:
            return
        try:
            self._loop.call_soon_threadsafe(task.cancel)
        except RuntimeError:
            logger.debug("Reminder loop already closed.")

    def join(self, timeout: float | None = None) -> None:
        self._thread.join(timeout=timeout)

    def is_alive(self) -> bool:
        return self._thread.is_alive()


def main() -> None:
    settings = get_settings()

    level_name = str(getattr(settings, "log_level", "INFO")).upper()
    console_level = getattr(logging, level_name, logging.INFO)
    setup_logging(log_dir=settings.data_dir, console_level=console_level)

    logger.info("Starting %s...", settings.app_name)

    state = create_initial_state(settings=settings)

    reminder_runner: ReminderBackgroundRunner | None = None
    if settings.reminders_enabled:
        reminder_runner = ReminderBackgroundRunner(state)
        reminder_runner.start()

    # Use an Event so main can wait without a busy while-loop.
    stop_main = threading.Event()

    def _handle_signal(signum, _frame) -> None:
        logger.info("Signal %s received, shutting down...", signum)
        stop_main.set()

    try:
        signal.signal(signal.SIGTERM, _handle_signal)
        if not settings.console_enabled:
            signal.signal(signal.SIGINT, _handle_signal)
    except (ValueError, OSError):
        # Some platforms may not support SIGTERM, etc.
        pass

    try:
        if settings.console_enabled:
            run_console_loop(state)
            stop_main.set()
        else:
            logger.info("Console disabled. Running reminders only. Press Ctrl+C to stop.")
            stop_main.wait()
    finally:
        if reminder_runner is not None:
            reminder_runner.stop()
            reminder_runner.join(timeout=5.0)

        shutdown_state(state)
        logger.info("Bye.")


if __name__ == "__main__":
    main()
