# tests/test_ordering.py

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from focusflow.tasks.ordering import (
    array_move,
    has_colliding_indices,
    merge_missing,
    move_visible_subset,
    renormalize,
    repair_loaded_order,
)
from focusflow.tasks.task_models import TaskItem

T0 = datetime(2024, 1, 1, tzinfo=timezone.utc)


def _task(tid: str, sort_index: int, minutes: int = 0) -> TaskItem:
    return TaskItem(id=tid, title=tid, sort_index=sort_index, created_at=T0 + timedelta(minutes=minutes))


def _ids(tasks) -> list[str]:
    return [t.id for t in tasks]


def test_array_move_forward_adjusts_target() -> None:
    assert array_move(["a", "b"], [0], 2) == ["b", "a"]
    assert array_move(["a", "b", "c", "d"], [1], 3) == ["a", "c", "b", "d"]


def test_array_move_backward_and_block() -> None:
    assert array_move(["a", "b", "c", "d"], [3], 0) == ["d", "a", "b", "c"]
    assert array_move(["a", "b", "c", "d", "e"], [1, 2], 5) == ["a", "d", "e", "b", "c"]


def test_array_move_rejects_bad_offsets() -> None:
    assert array_move(["a", "b"], [], 1) is None
    assert array_move(["a", "b"], [2], 0) is None
    assert array_move(["a", "b"], [0], 3) is None
    assert array_move(["a", "b"], [-1], 0) is None


def test_renormalize_uses_created_at_as_tie_breaker() -> None:
    tasks = [_task("late", 0, minutes=5), _task("early", 0, minutes=1), _task("first", -1, minutes=9)]
    ordered = renormalize(tasks)
    assert _ids(ordered) == ["first", "early", "late"]
    assert [t.sort_index for t in ordered] == [0, 1, 2]


def test_repair_loaded_order_uses_stored_position_on_collision() -> None:
    # All zero (old blob without sortIndex): stored order wins over created_at.
    tasks = [_task("b", 0, minutes=9), _task("a", 0, minutes=1), _task("c", 0, minutes=5)]
    assert has_colliding_indices(tasks)
    repaired = repair_loaded_order(tasks)
    assert _ids(repaired) == ["b", "a", "c"]
    assert [t.sort_index for t in repaired] == [0, 1, 2]


def test_move_visible_subset_keeps_hidden_slots() -> None:
    ordered = [_task("a", 0), _task("h1", 1), _task("b", 2), _task("h2", 3), _task("c", 4)]
    moved = move_visible_subset(ordered, ["a", "b", "c"], [2], 0)
    assert moved is not None
    assert _ids(moved) == ["c", "h1", "a", "h2", "b"]
    assert [t.sort_index for t in moved] == [0, 1, 2, 3, 4]


def test_move_visible_subset_needs_two_visible() -> None:
    ordered = [_task("a", 0), _task("b", 1)]
    assert move_visible_subset(ordered, ["a"], [0], 1) is None
    assert move_visible_subset(ordered, ["a", "zzz"], [0], 2) is None


def test_merge_missing_never_overwrites_local() -> None:
    local = [_task("a", 0), _task("b", 1)]
    remote_a = _task("a", 0)
    remote_a.title = "remote title"
    merged, added = merge_missing(local, [remote_a, _task("c", 5)])
    assert added == 1
    assert _ids(merged) == ["a", "b", "c"]
    assert merged[0].title == "a"
