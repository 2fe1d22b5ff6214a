# src/focusflow/connectors/console_connector.py

from __future__ import annotations

import logging
from datetime import datetime

from ..cli.commands import registry as command_registry
from ..core.state import AppState

logger = logging.getLogger(__name__)


def _ts_local() -> str:
    return datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")


def _print_ts(text: str) -> None:
    print(f"[{_ts_local()}] {text}", flush=True)


class ConsoleReminderNotifier:
    """ReminderNotifier that prints due reminders between prompts."""

    async def send_reminder(self, *, task_id: str, title: str) -> None:
        _print_ts(f"[REMINDER] {title}")


def run_console_loop(state: AppState) -> None:
    logger.info("Console connector started (ns=%s).", state.tasks.namespace)
    _print_ts("[CONSOLE] Type /help for commands, /list for today's tasks, /exit to quit.\n")

    def emit(text: str) -> None:
        # Immediate user-visible feedback for slower operations (account switch).
        _print_ts(text)

    while True:
        try:
            user_input = input(">>> ").strip()
        except EOFError:
            logger.info("Console EOF received, exiting.")
            break
        except KeyboardInterrupt:
            logger.info("Console KeyboardInterrupt, exiting.")
            print()
            break

        if not user_input:
            continue

        if user_input.lower() in ("/exit", "/quit"):
            logger.info("Console exit command received.")
            break

        try:
            with state.lock:
                reply = command_registry.handle(state, user_input, emit=emit)
        except Exception:
            logger.exception("Command handler crashed.")
            reply = "Internal error while handling a command."

        if reply is None:
            reply = "Commands start with '/'. Use /help to list them."
        _print_ts(reply)

    logger.info("Console connector finished.")
