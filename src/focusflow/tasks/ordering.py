# src/focusflow/tasks/ordering.py

"""
Ordering and merge helpers for the task list.

Canonical order is (sort_index asc, created_at asc). After every structural
change the list is renormalized so sort_index is exactly 0..N-1.
All functions return new lists and never mutate their inputs, except
renormalize() which rewrites sort_index on the items it returns.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Iterable, Sequence
from typing import TypeVar

from .task_models import TaskItem

T = TypeVar("T")


def clone_task(task: TaskItem) -> TaskItem:
    return dataclasses.replace(
        task,
        custom_weekdays=set(task.custom_weekdays),
        excluded_day_keys=set(task.excluded_day_keys),
    )


def sort_key(task: TaskItem) -> tuple:
    return (task.sort_index, task.created_at)


def canonical_order(tasks: Iterable[TaskItem]) -> list[TaskItem]:
    return sorted(tasks, key=sort_key)


def renormalize(tasks: Iterable[TaskItem]) -> list[TaskItem]:
    """Sort canonically and assign dense indices 0..N-1."""
    ordered = canonical_order(tasks)
    for i, task in enumerate(ordered):
        task.sort_index = i
    return ordered


def has_colliding_indices(tasks: Sequence[TaskItem]) -> bool:
    return len({t.sort_index for t in tasks}) != len(tasks)


def repair_loaded_order(tasks: list[TaskItem]) -> list[TaskItem]:
    """
    Order for a freshly decoded list.

    Duplicate sort_index values (old blobs had none at all) are replaced by
    the stored list position before the canonical sort.
    """
    if has_colliding_indices(tasks):
        for i, task in enumerate(tasks):
            task.sort_index = i
    return renormalize(tasks)


def array_move(items: Sequence[T], from_offsets: Iterable[int], to_offset: int) -> list[T] | None:
    """
    Move the items at from_offsets so they land before to_offset.

    Offsets refer to the list before the move. When to_offset lies after the
    largest source offset it is lowered by the number of moved items. Moved
    items keep their relative order. Returns None for invalid offsets.
    """
    offsets = sorted(set(from_offsets))
    n = len(items)
    if not offsets or offsets[0] < 0 or offsets[-1] >= n:
        return None
    if to_offset < 0 or to_offset > n:
        return None

    moving = [items[i] for i in offsets]
    skip = set(offsets)
    remaining = [item for i, item in enumerate(items) if i not in skip]

    target = to_offset
    if to_offset > offsets[-1]:
        target = to_offset - len(offsets)
    target = max(0, min(target, len(remaining)))

    return remaining[:target] + moving + remaining[target:]


def move_visible_subset(
    ordered: Sequence[TaskItem],
    visible_ids: Sequence[str],
    from_offsets: Iterable[int],
    to_offset: int,
) -> list[TaskItem] | None:
    """
    Reorder only the tasks whose id is in visible_ids.

    The visible subset (in canonical order) is moved with array_move(), then
    written back into the slots the visible tasks occupied in the full list;
    hidden tasks keep their exact positions. Result is renormalized.
    Returns None when nothing can be moved.
    """
    visible = set(visible_ids)
    subset = [t for t in ordered if t.id in visible]
    if len(subset) < 2:
        return None

    moved = array_move(subset, from_offsets, to_offset)
    if moved is None:
        return None

    result = list(ordered)
    it = iter(moved)
    for i, task in enumerate(result):
        if task.id in visible:
            result[i] = next(it)

    for i, task in enumerate(result):
        task.sort_index = i
    return result


def merge_missing(local: Sequence[TaskItem], remote: Iterable[TaskItem]) -> tuple[list[TaskItem], int]:
    """
    Passive merge: append remote tasks whose id is unknown locally.

    Local entries are never overwritten. Returns (renormalized list, added count).
    """
    known = {t.id for t in local}
    merged = list(local)
    added = 0
    for task in remote:
        if task.id in known:
            continue
        known.add(task.id)
        merged.append(clone_task(task))
        added += 1
    return renormalize(merged), added
