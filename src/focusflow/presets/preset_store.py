# src/focusflow/presets/preset_store.py

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass

from ..core.events import EventEmitter, Subscription
from ..core.namespace import AuthState, NamespaceResolver, is_guest
from ..core.phase import StorePhase, store_mutation
from ..core.ports import KeyValueStore
from ..tasks.ordering import array_move
from ..tasks.task_models import TasksSnapshot
from ..tasks.task_store import TasksStore
from .preset_models import DEFAULT_SOUND_ID, FocusPreset, default_presets, preset_from_task

logger = logging.getLogger(__name__)

PRESETS_KEY = "ff_focus_presets"
ACTIVE_PRESET_KEY = "ff_focus_active_preset_id"


@dataclass(slots=True, frozen=True)
class PresetsSnapshot:
    namespace: str | None
    presets: tuple[FocusPreset, ...]
    active_preset_id: str | None


class FocusPresetStore:
    """
    Namespace-aware list of focus presets plus the active preset id.

    A fresh guest profile is seeded with the built-in presets in memory; they
    are written only once the user changes something.
    """

    def __init__(self, kv: KeyValueStore) -> None:
        self._kv = kv
        self._resolver = NamespaceResolver()
        self._phase = StorePhase.IDLE
        self._events: EventEmitter[PresetsSnapshot] = EventEmitter()
        self._presets: list[FocusPreset] = []
        self._active_id: str | None = None

    @property
    def namespace(self) -> str | None:
        return self._resolver.active

    @property
    def presets(self) -> tuple[FocusPreset, ...]:
        return tuple(self._presets)

    @property
    def active_preset_id(self) -> str | None:
        return self._active_id

    @property
    def active_preset(self) -> FocusPreset | None:
        return self.get(self._active_id) if self._active_id else None

    def get(self, preset_id: str) -> FocusPreset | None:
        return next((p for p in self._presets if p.id == preset_id), None)

    def snapshot(self) -> PresetsSnapshot:
        return PresetsSnapshot(self.namespace, self.presets, self._active_id)

    def subscribe(self, callback: Callable[[PresetsSnapshot], None]) -> Subscription:
        return self._events.subscribe(callback)

    def apply_auth_state(self, state: AuthState) -> bool:
        if self._phase != StorePhase.IDLE:
            return False
        switch = self._resolver.resolve(state)
        if switch is None:
            return False

        self._phase = StorePhase.APPLYING_NAMESPACE
        try:
            self._load(switch.current)
            if is_guest(switch.current) and not self._presets:
                self._presets = default_presets()
        finally:
            self._phase = StorePhase.IDLE

        logger.info("FocusPresetStore namespace -> %s (%d presets)", switch.current, len(self._presets))
        self._publish()
        return True

    # ---- mutations ----

    @store_mutation
    def upsert(self, preset: FocusPreset) -> bool:
        """Replace by id, or append. The first preset saved becomes active."""
        for i, existing in enumerate(self._presets):
            if existing.id == preset.id:
                if existing == preset:
                    return False
                self._presets[i] = preset
                break
        else:
            self._presets.append(preset)
            if self._active_id is None:
                self._active_id = preset.id
        self._save()
        return True

    @store_mutation
    def delete(self, preset_id: str) -> bool:
        kept = [p for p in self._presets if p.id != preset_id]
        if len(kept) == len(self._presets):
            return False
        self._presets = kept
        if self._active_id == preset_id:
            self._active_id = None
        self._save()
        return True

    @store_mutation
    def move(self, from_offsets: Iterable[int], to_offset: int) -> bool:
        moved = array_move(self._presets, from_offsets, to_offset)
        if moved is None or moved == self._presets:
            return False
        self._presets = moved
        self._save()
        return True

    @store_mutation
    def set_active(self, preset_id: str | None) -> bool:
        if preset_id is not None and self.get(preset_id) is None:
            return False
        if preset_id == self._active_id:
            return False
        self._active_id = preset_id
        self._save()
        return True

    # ---- task conversion ----

    def convert_pending_tasks(
        self,
        tasks: TasksStore,
        snapshot: TasksSnapshot | None = None,
        *,
        sound_id: str = DEFAULT_SOUND_ID,
    ) -> list[FocusPreset]:
        """
        Create one preset per task flagged convert_to_preset and mark the task.

        Skipped while the two stores sit in different namespaces, so a preset
        never lands in another account.
        """
        snapshot = snapshot or tasks.snapshot()
        if snapshot.namespace is None or snapshot.namespace != self.namespace:
            return []

        created: list[FocusPreset] = []
        for task in snapshot.tasks:
            if not task.convert_to_preset or task.preset_created:
                continue
            # mark_preset_created publishes, so a nested call may have handled it already.
            live = tasks.get(task.id)
            if live is None or not live.convert_to_preset or live.preset_created:
                continue
            preset = preset_from_task(task, sound_id)
            if not self.upsert(preset):
                logger.warning("Preset for task %s not created (store busy)", task.id)
                continue
            tasks.mark_preset_created(task.id)
            created.append(preset)
            logger.info("Created preset %r from task %s", preset.name, task.id)
        return created

    # ---- internal ----

    def _publish(self) -> None:
        self._events.emit(self.snapshot())

    def _save(self) -> None:
        ns = self.namespace
        if self._phase == StorePhase.APPLYING_NAMESPACE or ns is None:
            return
        try:
            self._kv.set(f"{PRESETS_KEY}_{ns}", json.dumps([p.to_dict() for p in self._presets]))
            if self._active_id is None:
                self._kv.delete(f"{ACTIVE_PRESET_KEY}_{ns}")
            else:
                self._kv.set(f"{ACTIVE_PRESET_KEY}_{ns}", self._active_id)
        except Exception:
            logger.exception("Failed to save presets ns=%s", ns)

    def _load(self, namespace: str) -> None:
        self._presets = []
        self._active_id = None
        try:
            raw = self._kv.get(f"{PRESETS_KEY}_{namespace}")
            active = self._kv.get(f"{ACTIVE_PRESET_KEY}_{namespace}")
        except Exception:
            logger.exception("Failed to read presets ns=%s", namespace)
            return

        if raw:
            try:
                data = json.loads(raw)
            except ValueError:
                logger.warning("Unreadable presets ns=%s; starting empty", namespace)
                data = []
            if not isinstance(data, list):
                logger.warning("Unexpected presets payload ns=%s: %r; starting empty", namespace, data)
                data = []
            for entry in data:
                try:
                    self._presets.append(FocusPreset.from_dict(entry))
                except (KeyError, TypeError, ValueError):
                    logger.warning("Skipping unreadable preset ns=%s: %r", namespace, entry)

        if active and self.get(active) is not None:
            self._active_id = active
