# src/focusflow/tasks/task_store.py

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Iterable, Sequence
from datetime import datetime
from typing import Any

from ..core.calendar import DayCalendar, DayLike
from ..core.change_tracker import ChangeTracker
from ..core.events import EventEmitter, Subscription
from ..core.namespace import AuthState, NamespaceResolver, is_guest
from ..core.phase import StorePhase, store_mutation
from ..core.ports import EffectRunner, KeyValueStore, ReminderScheduler, SyncNotifier
from ..core.timestamps import utc_now
from .ordering import (
    canonical_order,
    clone_task,
    merge_missing,
    move_visible_subset,
    renormalize,
    repair_loaded_order,
)
from .task_models import RepeatRule, TaskItem, TasksSnapshot, day_suffix, occurrence_key

logger = logging.getLogger(__name__)

GUEST_KEY = "focusflow_tasks_state_guest"


def storage_key(namespace: str) -> str:
    if is_guest(namespace):
        return GUEST_KEY
    return f"focusflow_tasks_state_cloud_{namespace}"


class TasksStore:
    """
    Single source of truth for tasks + per-day completion markers.

    State lives in memory and is persisted as one JSON blob per namespace
    ({"tasks": [...], "completedKeys": [...]}). Persistence is best-effort:
    a failed write is logged and the in-memory state stays authoritative.

    Side effects (reminders, sync notifications) are submitted to an
    EffectRunner and never awaited. All public mutations return True when
    they changed state; invalid operations are silent no-ops.
    """

    def __init__(
        self,
        kv: KeyValueStore,
        *,
        effects: EffectRunner,
        calendar: DayCalendar | None = None,
        reminders: ReminderScheduler | None = None,
        sync: SyncNotifier | None = None,
        tracker: ChangeTracker | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._kv = kv
        self._effects = effects
        self._calendar = calendar or DayCalendar()
        self._reminders = reminders
        self._sync = sync
        self._tracker = tracker
        self._clock = clock

        self._resolver = NamespaceResolver()
        self._phase = StorePhase.IDLE
        self._events: EventEmitter[TasksSnapshot] = EventEmitter()

        self._tasks: list[TaskItem] = []
        self._completed: set[str] = set()

    # ---- read API ----

    @property
    def namespace(self) -> str | None:
        return self._resolver.active

    @property
    def phase(self) -> StorePhase:
        return self._phase

    @property
    def calendar(self) -> DayCalendar:
        return self._calendar

    @property
    def completed_keys(self) -> frozenset[str]:
        return frozenset(self._completed)

    def ordered_tasks(self) -> list[TaskItem]:
        return [clone_task(t) for t in canonical_order(self._tasks)]

    def get(self, task_id: str) -> TaskItem | None:
        idx = self._index_of(task_id)
        return None if idx is None else clone_task(self._tasks[idx])

    def tasks_visible(self, day: DayLike) -> list[TaskItem]:
        return [
            clone_task(t)
            for t in canonical_order(self._tasks)
            if t.occurs(day, self._calendar) and not t.is_excluded(day, self._calendar)
        ]

    def is_completed(self, task_id: str, day: DayLike) -> bool:
        return occurrence_key(task_id, day, self._calendar) in self._completed

    def snapshot(self) -> TasksSnapshot:
        return TasksSnapshot(
            namespace=self.namespace,
            tasks=tuple(self.ordered_tasks()),
            completed_keys=frozenset(self._completed),
        )

    def subscribe(self, callback: Callable[[TasksSnapshot], None]) -> Subscription:
        return self._events.subscribe(callback)

    # ---- namespace ----

    def apply_auth_state(self, state: AuthState) -> bool:
        """
        Re-partition the store for a new auth state.

        Unchanged namespace -> no-op. Otherwise: cancel reminders of the old
        tasks, purge the old namespace's change markers, load the new
        namespace, schedule reminders for the loaded tasks.
        """
        if self._phase != StorePhase.IDLE:
            logger.warning("apply_auth_state ignored: store is %s", self._phase.value)
            return False

        switch = self._resolver.resolve(state)
        if switch is None:
            return False

        self._phase = StorePhase.APPLYING_NAMESPACE
        try:
            if switch.previous is not None:
                for task in self._tasks:
                    self._cancel_reminder(task.id)
                if self._tracker is not None and switch.previous != switch.current:
                    self._tracker.clear_all(switch.previous)

            self._load(switch.current)

            for task in self._tasks:
                self._schedule_reminder(task)
        finally:
            self._phase = StorePhase.IDLE

        logger.info(
            "TasksStore namespace %s -> %s tasks=%d completed=%d",
            switch.previous,
            switch.current,
            len(self._tasks),
            len(self._completed),
        )
        self._publish()
        return True

    # ---- mutations ----

    @store_mutation
    def upsert(self, task: TaskItem) -> bool:
        incoming = clone_task(task)
        idx = self._index_of(incoming.id)

        if idx is not None:
            # A draft that didn't carry the manual order over keeps the old slot.
            if incoming.sort_index == 0:
                incoming.sort_index = self._tasks[idx].sort_index
            self._tasks[idx] = incoming
        else:
            # New tasks go to the top.
            min_index = min((t.sort_index for t in self._tasks), default=0)
            incoming.sort_index = min_index - 1
            self._tasks.append(incoming)

        self._tasks = renormalize(self._tasks)
        self._record("task", incoming.id)
        self._save()
        self._cancel_reminder(incoming.id)
        self._schedule_reminder(incoming)
        logger.debug("Task upserted id=%s new=%s", incoming.id, idx is None)
        return True

    @store_mutation
    def delete(self, task_id: str) -> bool:
        """Delete the whole task (series) and every completion marker it owns."""
        prefix = f"{task_id}|"
        before = len(self._tasks)
        self._tasks = [t for t in self._tasks if t.id != task_id]
        orphaned = {k for k in self._completed if k.startswith(prefix)}
        if len(self._tasks) == before and not orphaned:
            return False

        self._completed -= orphaned
        self._tasks = renormalize(self._tasks)
        self._record("task", task_id)
        self._save()
        self._cancel_reminder(task_id)
        logger.debug("Task deleted id=%s markers=%d", task_id, len(orphaned))
        return True

    @store_mutation
    def delete_occurrence(self, task_id: str, day: DayLike) -> bool:
        """Delete only this day's occurrence; the series stays."""
        idx = self._index_of(task_id)
        if idx is None:
            return False

        self._tasks[idx].excluded_day_keys.add(self._calendar.day_key(day))
        self._completed.discard(occurrence_key(task_id, day, self._calendar))
        self._record("task", task_id)
        self._save()
        return True

    @store_mutation
    def toggle_completion(self, task_id: str, day: DayLike) -> bool:
        idx = self._index_of(task_id)
        if idx is None:
            return False

        key = occurrence_key(task_id, day, self._calendar)
        if key in self._completed:
            self._completed.remove(key)
            completed = False
        else:
            self._completed.add(key)
            completed = True

        self._record("completion", key)
        self._save()

        if completed and self._sync is not None:
            task = self._tasks[idx]
            self._effects.submit(
                self._sync.notify_task_completed,
                task.id,
                task.title,
                self._calendar.day_of(day),
            )
        return True

    @store_mutation
    def reset_completions(self, day: DayLike) -> bool:
        """Global per-day reset: drop this day's marker for every task."""
        suffix = day_suffix(day, self._calendar)
        removed = {k for k in self._completed if k.endswith(suffix)}
        if not removed:
            return False

        self._completed -= removed
        for key in removed:
            self._record("completion", key)
        self._save()
        return True

    @store_mutation
    def mark_preset_created(self, task_id: str) -> bool:
        idx = self._index_of(task_id)
        if idx is None:
            return False

        task = self._tasks[idx]
        if task.preset_created and not task.convert_to_preset:
            return False

        task.preset_created = True
        task.convert_to_preset = False
        self._record("task", task_id)
        self._save()
        return True

    @store_mutation
    def move_tasks(self, visible_ids: Sequence[str], from_offsets: Iterable[int], to_offset: int) -> bool:
        """Reorder the subset of tasks visible in the current list."""
        if len(visible_ids) < 2:
            return False

        offsets = list(from_offsets)
        ordered = canonical_order(self._tasks)
        previous = {t.id: t.sort_index for t in ordered}
        moved = move_visible_subset(ordered, visible_ids, offsets, to_offset)
        if moved is None:
            logger.debug("move_tasks ignored: offsets=%s to=%s", offsets, to_offset)
            return False

        self._tasks = moved
        for task in moved:
            if previous.get(task.id) != task.sort_index:
                self._record("task", task.id)
        self._save()
        return True

    @store_mutation
    def clear_all(self) -> bool:
        """Reset-all-data: drops every task and marker of the active namespace."""
        if not self._tasks and not self._completed:
            return False

        for task in self._tasks:
            self._cancel_reminder(task.id)
            self._record("task", task.id)
        self._tasks = []
        self._completed = set()
        self._save()
        return True

    # ---- inbound sync ----

    @store_mutation
    def apply_remote_state(self, tasks: Iterable[TaskItem], completion_keys: Iterable[str]) -> bool:
        """
        Authoritative replace from the sync engine.

        No reminders, change markers or sync notifications are produced here;
        call reschedule_all_reminders() afterwards if needed.
        """
        self._tasks = repair_loaded_order([clone_task(t) for t in tasks])
        self._completed = {str(k) for k in completion_keys}
        self._save()
        logger.info(
            "Applied remote task state ns=%s tasks=%d completed=%d",
            self.namespace,
            len(self._tasks),
            len(self._completed),
        )
        return True

    @store_mutation
    def merge_remote_state(
        self,
        tasks: Iterable[TaskItem] = (),
        completion_keys: Iterable[str] = (),
    ) -> bool:
        """Passive merge: add only unknown task ids / completion keys; never overwrite."""
        merged, added = merge_missing(self._tasks, tasks)
        new_keys = {str(k) for k in completion_keys} - self._completed
        if not added and not new_keys:
            return False

        self._tasks = merged
        self._completed |= new_keys
        self._save()
        logger.info("Merged remote tasks=%d completions=%d ns=%s", added, len(new_keys), self.namespace)
        return True

    def reschedule_all_reminders(self) -> None:
        """Cancel + schedule every task's reminder (e.g. after a permission change)."""
        for task in self._tasks:
            self._cancel_reminder(task.id)
            self._schedule_reminder(task)

    # ---- internal ----

    def _index_of(self, task_id: str) -> int | None:
        for i, task in enumerate(self._tasks):
            if task.id == task_id:
                return i
        return None

    def _publish(self) -> None:
        self._events.emit(self.snapshot())

    def _record(self, kind: str, entity_id: str) -> None:
        if self._tracker is not None:
            self._tracker.record_local_change(kind, entity_id, self.namespace)

    def _wants_reminder(self, task: TaskItem) -> bool:
        if task.reminder_date is None:
            return False
        if task.repeat_rule != RepeatRule.NONE:
            return True
        return task.reminder_date > self._clock()

    def _cancel_reminder(self, task_id: str) -> None:
        if self._reminders is None:
            return
        self._effects.submit(self._reminders.cancel_reminder, task_id)

    def _schedule_reminder(self, task: TaskItem) -> None:
        if self._reminders is None or not self._wants_reminder(task):
            return
        assert task.reminder_date is not None
        self._effects.submit(
            self._reminders.schedule_reminder,
            task.id,
            task.title,
            task.reminder_date,
            task.repeat_rule.value,
            tuple(sorted(task.custom_weekdays)),
        )

    # ---- persistence ----

    def _encode(self) -> str:
        ordered = renormalize(self._tasks)
        state: dict[str, Any] = {
            "tasks": [t.to_dict() for t in ordered],
            "completedKeys": sorted(self._completed),
        }
        return json.dumps(state, ensure_ascii=False)

    def _save(self) -> None:
        if self._phase == StorePhase.APPLYING_NAMESPACE or self.namespace is None:
            return
        key = storage_key(self.namespace)
        try:
            self._kv.set(key, self._encode())
        except Exception:
            logger.exception("Failed to save tasks key=%s", key)

    def _load(self, namespace: str) -> None:
        key = storage_key(namespace)
        self._tasks = []
        self._completed = set()

        try:
            raw = self._kv.get(key)
        except Exception:
            logger.exception("Failed to read tasks key=%s", key)
            return
        if not raw:
            return

        try:
            data = json.loads(raw)
        except ValueError:
            logger.exception("Failed to decode tasks key=%s; starting empty", key)
            return
        if not isinstance(data, dict):
            logger.warning("Unexpected tasks payload key=%s; starting empty", key)
            return

        entries = data.get("tasks") or []
        if not isinstance(entries, list):
            logger.warning("Unexpected tasks list key=%s: %r; ignoring", key, entries)
            entries = []
        completed = data.get("completedKeys") or []
        if not isinstance(completed, list):
            logger.warning("Unexpected completedKeys key=%s: %r; ignoring", key, completed)
            completed = []

        loaded: list[TaskItem] = []
        for entry in entries:
            try:
                loaded.append(TaskItem.from_dict(entry))
            except (KeyError, TypeError, ValueError, AttributeError):
                logger.warning("Skipping unreadable task entry key=%s: %r", key, entry)

        self._tasks = repair_loaded_order(loaded)
        self._completed = {k for k in completed if isinstance(k, str)}
