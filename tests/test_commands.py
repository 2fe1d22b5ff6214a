# tests/test_commands.py

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from focusflow.cli.commands import CommandRegistry, build_task_from_args, registry
from focusflow.core.errors import CommandError
from focusflow.tasks.task_models import RepeatRule, TaskItem


def test_command_registry_routes_2_and_3_params(state) -> None:
    reg = CommandRegistry()
    called = {"h2": 0, "h3": 0}

    def h2(state, args):
        called["h2"] += 1
        return "h2"

    def h3(state, args, emit):
        called["h3"] += 1
        if emit is not None:
            emit("note")
        return "h3"

    reg.register("a", h2, "a")
    reg.register("b", h3, "b", aliases=["bee"])

    notes: list[str] = []
    assert reg.handle(state, "/a x") == "h2"
    assert reg.handle(state, "/BEE y", emit=notes.append) == "h3"
    assert called == {"h2": 1, "h3": 1}
    assert notes == ["note"]


def test_command_registry_unknown_and_non_command(state) -> None:
    reg = CommandRegistry()
    assert reg.handle(state, "hello") is None
    assert "Unknown command" in (reg.handle(state, "/nope") or "")
    assert "Empty command" in (reg.handle(state, "/") or "")


def test_command_error_becomes_reply(state) -> None:
    reg = CommandRegistry()

    def bad(state, args):
        raise CommandError("Usage: /bad <n>")

    reg.register("bad", bad, "bad")
    assert reg.handle(state, "/bad") == "Usage: /bad <n>"


def test_add_list_done_flow(state) -> None:
    assert registry.handle(state, "/add Buy milk") == "Added: Buy milk"
    assert registry.handle(state, "/add Write report --minutes 50") == "Added: Write report"

    listing = registry.handle(state, "/list") or ""
    assert "1. [ ] Write report  (50 min)" in listing
    assert "2. [ ] Buy milk" in listing

    assert registry.handle(state, "/done 2") == "Completed: Buy milk"
    assert "2. [x] Buy milk" in (registry.handle(state, "/ls") or "")
    assert registry.handle(state, "/done 2") == "Reopened: Buy milk"


def test_move_and_delete(state) -> None:
    for title in ("C", "B", "A"):
        registry.handle(state, f"/add {title}")
    assert [t.title for t in state.tasks.ordered_tasks()] == ["A", "B", "C"]

    assert registry.handle(state, "/move 1 3") == "Moved."
    assert [t.title for t in state.tasks.ordered_tasks()] == ["B", "C", "A"]

    assert registry.handle(state, "/move 3 1") == "Moved."
    assert [t.title for t in state.tasks.ordered_tasks()] == ["A", "B", "C"]

    assert registry.handle(state, "/rm 2") == "Deleted: B"
    assert "out of range" in (registry.handle(state, "/move 1 5") or "")


def test_login_switches_namespace(state) -> None:
    registry.handle(state, "/add Guest task")
    notes: list[str] = []

    reply = registry.handle(state, "/login U1", emit=notes.append)

    assert reply == "Signed in as U1 (0 tasks)."
    assert notes == ["Switching to account U1..."]
    assert state.tasks.namespace == "U1"
    assert state.progress.namespace == "U1"
    assert state.notification_prefs.namespace == "U1"

    registry.handle(state, "/logout")
    assert [t.title for t in state.tasks.ordered_tasks()] == ["Guest task"]


def test_session_goal_and_stats(state, sync) -> None:
    assert registry.handle(state, "/session 0") == "Session not recorded (duration must be positive)."
    assert (registry.handle(state, "/session 25 Deep work") or "").startswith("Recorded 25 min.")
    assert registry.handle(state, "/goal 90") == "Daily goal set to 90 min."
    assert "must be a positive" in (registry.handle(state, "/goal -5") or "")

    stats = registry.handle(state, "/stats") or ""
    assert "25 min / 90 min" in stats
    assert "1 sessions" in stats
    assert sync.sessions == [(1500.0, "Deep work")]


def test_prefs_command(state) -> None:
    assert registry.handle(state, "/prefs tasks off") == "tasks -> off"
    assert not state.notification_prefs.preferences.task_reminders_active
    assert "tasks: off" in (registry.handle(state, "/prefs") or "")
    assert "Usage" in (registry.handle(state, "/prefs volume 3") or "")


def test_build_task_from_args(state) -> None:
    task = build_task_from_args(state, ["Gym", "--at", "07:30", "--days", "2,4,6"])
    assert task.title == "Gym"
    assert task.repeat_rule == RepeatRule.CUSTOM_DAYS
    assert task.custom_weekdays == {2, 4, 6}
    assert task.reminder_date is not None
    assert (task.reminder_date.hour, task.reminder_date.minute) == (7, 30)

    assert "Unknown repeat rule" in (registry.handle(state, "/add X --repeat hourly") or "")
    assert "Weekdays are 1-7" in (registry.handle(state, "/add X --days 0,8") or "")
    assert "Usage: /add" in (registry.handle(state, "/add --minutes 5") or "")


def test_reenabling_task_reminders_rearms_them(state) -> None:
    task = TaskItem(title="Standup", reminder_date=datetime.now(timezone.utc) + timedelta(days=1))
    state.tasks.upsert(task)
    assert state.reminders.get(task.id) is not None

    registry.handle(state, "/prefs tasks off")
    state.reminders.cancel_reminder(task.id)  # dropped by the muted dispatch loop
    registry.handle(state, "/prefs tasks on")

    assert state.reminders.get(task.id) is not None
