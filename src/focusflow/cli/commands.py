# src/focusflow/cli/commands.py

from __future__ import annotations

import inspect
import logging
from collections.abc import Callable
from datetime import date, datetime, time
from typing import cast

from ..core.errors import CommandError
from ..core.namespace import AuthState
from ..core.state import AppState
from ..presets.preset_models import FocusPreset
from ..progress.progress_models import format_duration
from ..tasks.task_models import RepeatRule, TaskItem

CommandEmitter = Callable[[str], None]
CommandHandler2 = Callable[[AppState, list[str]], str]
CommandHandler3 = Callable[[AppState, list[str], CommandEmitter | None], str]
CommandHandler = CommandHandler2 | CommandHandler3

logger = logging.getLogger(__name__)


class CommandRegistry:
    """Simple slash-command registry used by the console connector (/help, /add, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    def handle(
        self,
        state: AppState,
        line: str,
        emit: CommandEmitter | None = None,
    ) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        """
        if not line.startswith("/"):
            return None

        parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        try:
            nparams = len(inspect.signature(handler).parameters)
        except (TypeError, ValueError):
            nparams = 3

        try:
            if nparams >= 3:
                h3 = cast(CommandHandler3, handler)
                return h3(state, args, emit)
            h2 = cast(CommandHandler2, handler)
            return h2(state, args)
        except CommandError as e:
            return str(e)

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


# ---- argument helpers ----


def _parse_day(state: AppState, raw: str | None) -> date:
    if not raw:
        return state.calendar.day_of(state.calendar.now())
    if raw.lower() == "today":
        return state.calendar.day_of(state.calendar.now())
    if raw.lower() == "tomorrow":
        return state.calendar.add_days(state.calendar.now(), 1)
    try:
        return date.fromisoformat(raw)
    except ValueError:
        raise CommandError(f"Bad date: {raw!r} (use YYYY-MM-DD, today or tomorrow).") from None


def _parse_time(raw: str) -> time:
    try:
        return time.fromisoformat(raw)
    except ValueError:
        raise CommandError(f"Bad time: {raw!r} (use HH:MM).") from None


def _parse_int(raw: str, what: str) -> int:
    try:
        return int(raw)
    except ValueError:
        raise CommandError(f"Bad {what}: {raw!r}.") from None


def _parse_weekdays(raw: str) -> set[int]:
    days = {_parse_int(p, "weekday") for p in raw.split(",") if p.strip()}
    if not days or any(d < 1 or d > 7 for d in days):
        raise CommandError("Weekdays are 1-7 (1 = Sunday), comma separated.")
    return days


def _local_datetime(state: AppState, day: date, at: time) -> datetime:
    start = state.calendar.start_of_day(day)
    return start.replace(hour=at.hour, minute=at.minute)


def build_task_from_args(state: AppState, args: list[str]) -> TaskItem:
    """
    /add <title...> [--at HH:MM] [--on YYYY-MM-DD] [--repeat RULE] [--days 2,4] [--minutes N] [--preset]
    """
    title_parts: list[str] = []
    at: time | None = None
    on: date | None = None
    rule = RepeatRule.NONE
    weekdays: set[int] = set()
    minutes = 0
    as_preset = False

    it = iter(args)
    for token in it:
        if not token.startswith("--"):
            title_parts.append(token)
            continue
        if token == "--preset":
            as_preset = True
            continue
        value = next(it, None)
        if value is None:
            raise CommandError(f"Missing value for {token}.")
        if token == "--at":
            at = _parse_time(value)
        elif token == "--on":
            on = _parse_day(state, value)
        elif token == "--repeat":
            try:
                rule = RepeatRule(value)
            except ValueError:
                names = ", ".join(r.value for r in RepeatRule)
                raise CommandError(f"Unknown repeat rule {value!r}; one of: {names}.") from None
        elif token == "--days":
            weekdays = _parse_weekdays(value)
            rule = RepeatRule.CUSTOM_DAYS
        elif token == "--minutes":
            minutes = max(0, _parse_int(value, "minutes"))
        else:
            raise CommandError(f"Unknown option {token}.")

    title = " ".join(title_parts).strip()
    if not title:
        raise CommandError("Usage: /add <title> [--at HH:MM] [--on DATE] [--repeat RULE] [--days 2,4]")
    if rule == RepeatRule.CUSTOM_DAYS and not weekdays:
        raise CommandError("--repeat customDays needs --days.")

    reminder: datetime | None = None
    if at is not None or on is not None:
        day = on or _parse_day(state, None)
        reminder = _local_datetime(state, day, at or time(9, 0))

    return TaskItem(
        title=title,
        reminder_date=reminder,
        repeat_rule=rule,
        custom_weekdays=weekdays,
        duration_minutes=minutes,
        convert_to_preset=as_preset,
    )


def _visible_task(state: AppState, number: str, day: date) -> TaskItem:
    visible = state.tasks.tasks_visible(day)
    n = _parse_int(number, "task number")
    if n < 1 or n > len(visible):
        raise CommandError(f"No task #{n} on {day.isoformat()} (see /list).")
    return visible[n - 1]


def _format_task_line(state: AppState, n: int, task: TaskItem, day: date) -> str:
    mark = "x" if state.tasks.is_completed(task.id, day) else " "
    extra: list[str] = []
    if task.reminder_date is not None:
        extra.append(task.reminder_date.astimezone(state.calendar.tz).strftime("%H:%M"))
    if task.repeat_rule != RepeatRule.NONE:
        extra.append(task.repeat_rule.display_name.lower())
    if task.duration_minutes:
        extra.append(f"{task.duration_minutes} min")
    suffix = f"  ({', '.join(extra)})" if extra else ""
    return f"{n:>2}. [{mark}] {task.title}{suffix}"


# ---- handlers ----


def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


def cmd_status(state: AppState, args: list[str]) -> str:
    tz = getattr(state.settings, "timezone", "") or "local"
    return (
        "Status:\n"
        f"  Namespace: {state.tasks.namespace}\n"
        f"  Tasks: {len(state.tasks.ordered_tasks())}\n"
        f"  Pending reminders: {len(state.reminders.pending())}\n"
        f"  Time zone: {tz}"
    )


def cmd_login(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    if len(args) != 1:
        raise CommandError("Usage: /login <user_id>")
    if emit:
        emit(f"Switching to account {args[0]}...")
    state.auth.set_state(AuthState.signed_in(args[0]))
    return f"Signed in as {args[0]} ({len(state.tasks.ordered_tasks())} tasks)."


def cmd_logout(state: AppState, args: list[str]) -> str:
    state.auth.set_state(AuthState.signed_out())
    return "Signed out; using guest data."


def cmd_add(state: AppState, args: list[str]) -> str:
    task = build_task_from_args(state, args)
    state.tasks.upsert(task)
    return f"Added: {task.title}"


def cmd_list(state: AppState, args: list[str]) -> str:
    day = _parse_day(state, args[0] if args else None)
    visible = state.tasks.tasks_visible(day)
    if not visible:
        return f"No tasks on {day.isoformat()}."
    lines = [f"Tasks on {day.isoformat()}:"]
    lines.extend(_format_task_line(state, i, t, day) for i, t in enumerate(visible, start=1))
    return "\n".join(lines)


def cmd_done(state: AppState, args: list[str]) -> str:
    if not args:
        raise CommandError("Usage: /done <n> [date]")
    day = _parse_day(state, args[1] if len(args) > 1 else None)
    task = _visible_task(state, args[0], day)
    state.tasks.toggle_completion(task.id, day)
    done = state.tasks.is_completed(task.id, day)
    return f"{'Completed' if done else 'Reopened'}: {task.title}"


def cmd_skip(state: AppState, args: list[str]) -> str:
    if not args:
        raise CommandError("Usage: /skip <n> [date]")
    day = _parse_day(state, args[1] if len(args) > 1 else None)
    task = _visible_task(state, args[0], day)
    state.tasks.delete_occurrence(task.id, day)
    return f"Removed {task.title} from {day.isoformat()}."


def cmd_del(state: AppState, args: list[str]) -> str:
    if not args:
        raise CommandError("Usage: /del <n> [date]")
    day = _parse_day(state, args[1] if len(args) > 1 else None)
    task = _visible_task(state, args[0], day)
    state.tasks.delete(task.id)
    return f"Deleted: {task.title}"


def cmd_move(state: AppState, args: list[str]) -> str:
    """/move <n> <position> [date]: move a visible task to a new 1-based position."""
    if len(args) < 2:
        raise CommandError("Usage: /move <n> <position> [date]")
    day = _parse_day(state, args[2] if len(args) > 2 else None)
    visible = state.tasks.tasks_visible(day)
    src = _parse_int(args[0], "task number") - 1
    dst = _parse_int(args[1], "position") - 1
    if not (0 <= src < len(visible)) or not (0 <= dst < len(visible)):
        raise CommandError("Task number or position out of range (see /list).")
    # Insertion offset is counted before removal.
    to_offset = dst + 1 if dst > src else dst
    moved = state.tasks.move_tasks([t.id for t in visible], [src], to_offset)
    return "Moved." if moved else "Nothing to move."


def cmd_reset(state: AppState, args: list[str]) -> str:
    day = _parse_day(state, args[0] if args else None)
    state.tasks.reset_completions(day)
    return f"Cleared completions for {day.isoformat()}."


def cmd_session(state: AppState, args: list[str]) -> str:
    if not args:
        raise CommandError("Usage: /session <minutes> [name]")
    minutes = _parse_int(args[0], "minutes")
    name = " ".join(args[1:]) or None
    if not state.progress.add_session(minutes * 60, name):
        return "Session not recorded (duration must be positive)."
    return f"Recorded {minutes} min. Today: {format_duration(state.progress.total_today())}"


def cmd_goal(state: AppState, args: list[str]) -> str:
    if not args:
        return f"Daily goal: {state.progress.daily_goal_minutes} min."
    minutes = _parse_int(args[0], "minutes")
    if minutes <= 0:
        raise CommandError("Goal must be a positive number of minutes.")
    state.progress.set_daily_goal(minutes)
    return f"Daily goal set to {state.progress.daily_goal_minutes} min."


def cmd_stats(state: AppState, args: list[str]) -> str:
    p = state.progress
    return (
        "Stats:\n"
        f"  Today: {format_duration(p.total_today())} / {p.daily_goal_minutes} min\n"
        f"  Lifetime: {format_duration(p.lifetime_focus_seconds)} in {p.lifetime_session_count} sessions\n"
        f"  Current streak: {p.current_streak()} days\n"
        f"  Best streak: {p.best_streak()} days\n"
        f"  Goals hit: {p.goals_hit()}"
    )


_PREF_ALIASES = {
    "master": "master_enabled",
    "sessions": "session_completion_enabled",
    "daily": "daily_reminder_enabled",
    "nudges": "daily_nudges_enabled",
    "tasks": "task_reminders_enabled",
    "recap": "daily_recap_enabled",
}


def cmd_prefs(state: AppState, args: list[str]) -> str:
    """
    /prefs               -> show switches
    /prefs tasks off     -> disable task reminders
    """
    prefs = state.notification_prefs.preferences
    if not args:
        lines = ["Notification preferences:"]
        for alias, field_name in _PREF_ALIASES.items():
            lines.append(f"  {alias}: {'on' if getattr(prefs, field_name) else 'off'}")
        return "\n".join(lines)

    if len(args) != 2 or args[0].lower() not in _PREF_ALIASES:
        raise CommandError(f"Usage: /prefs <{'|'.join(_PREF_ALIASES)}> on|off")

    value = args[1].lower()
    if value not in ("on", "off"):
        raise CommandError("Value must be on or off.")

    field_name = _PREF_ALIASES[args[0].lower()]
    state.notification_prefs.update(**{field_name: value == "on"})
    return f"{args[0].lower()} -> {value}"


def _preset_at(state: AppState, number: str) -> FocusPreset:
    presets = state.presets.presets
    n = _parse_int(number, "preset number")
    if n < 1 or n > len(presets):
        raise CommandError(f"No preset #{n} (see /presets).")
    return presets[n - 1]


def cmd_presets(state: AppState, args: list[str]) -> str:
    """
    /presets             -> list presets (* marks the active one)
    /presets use <n>     -> make preset n active
    /presets rm <n>      -> delete preset n
    """
    store = state.presets
    if not args:
        if not store.presets:
            return "No presets. Add a task with --preset to create one."
        lines = ["Focus presets:"]
        for i, p in enumerate(store.presets, start=1):
            mark = "*" if p.id == store.active_preset_id else " "
            emoji = f"{p.emoji} " if p.emoji else ""
            lines.append(f"{mark}{i:>2}. {emoji}{p.name} ({p.duration_minutes} min)")
        return "\n".join(lines)

    if len(args) != 2 or args[0].lower() not in ("use", "rm"):
        raise CommandError("Usage: /presets [use|rm <n>]")

    preset = _preset_at(state, args[1])
    if args[0].lower() == "use":
        store.set_active(preset.id)
        return f"Active preset: {preset.name}"
    store.delete(preset.id)
    return f"Deleted preset: {preset.name}"


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("status", cmd_status, help_text="Show account, task count and reminders.")
registry.register("login", cmd_login, help_text="Switch to an account: /login <user_id>.")
registry.register("logout", cmd_logout, help_text="Switch back to guest data.")
registry.register(
    "add",
    cmd_add,
    help_text="Add a task: /add <title> [--at HH:MM] [--on DATE] [--repeat RULE] [--days 2,4] [--preset].",
)
registry.register("list", cmd_list, help_text="List tasks for a day: /list [DATE].", aliases=["ls"])
registry.register("done", cmd_done, help_text="Toggle completion: /done <n> [DATE].")
registry.register("skip", cmd_skip, help_text="Remove one occurrence: /skip <n> [DATE].")
registry.register("del", cmd_del, help_text="Delete a task series: /del <n>.", aliases=["rm"])
registry.register("move", cmd_move, help_text="Reorder: /move <n> <position> [DATE].")
registry.register("reset", cmd_reset, help_text="Clear all completions of a day: /reset [DATE].")
registry.register("session", cmd_session, help_text="Record a focus session: /session <minutes> [name].")
registry.register("goal", cmd_goal, help_text="Show or set the daily goal: /goal [minutes].")
registry.register("stats", cmd_stats, help_text="Show focus stats and streaks.")
registry.register("prefs", cmd_prefs, help_text="Notification switches: /prefs [name on|off].")
registry.register("presets", cmd_presets, help_text="Focus presets: /presets [use|rm <n>].")
