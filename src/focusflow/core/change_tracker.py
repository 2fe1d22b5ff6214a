# src/focusflow/core/change_tracker.py

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime

from .namespace import is_guest
from .ports import KeyValueStore
from .timestamps import format_timestamp, parse_timestamp, utc_now

logger = logging.getLogger(__name__)

_PREFIX = "ff_local_ts_"


class ChangeTracker:
    """
    Records when an entity was last modified locally.

    The sync engine compares these markers with remote timestamps to resolve
    conflicts; this class never resolves anything itself.

    Keys: ff_local_ts_<namespace>:<kind>:<entity_id>
    The namespace leads so one account's markers never match another's by suffix.
    The guest namespace has no remote counterpart, so nothing is recorded for it.
    """

    def __init__(self, kv: KeyValueStore, *, clock: Callable[[], datetime] = utc_now) -> None:
        self._kv = kv
        self._clock = clock

    @staticmethod
    def _key(kind: str, entity_id: str, namespace: str) -> str:
        return f"{_PREFIX}{namespace}:{kind}:{entity_id}"

    def record_local_change(self, kind: str, entity_id: str, namespace: str | None) -> None:
        if is_guest(namespace):
            return
        assert namespace is not None
        try:
            self._kv.set(self._key(kind, entity_id, namespace), format_timestamp(self._clock()))
        except Exception:
            logger.exception("Failed to record change %s:%s ns=%s", kind, entity_id, namespace)

    def get_local_timestamp(self, kind: str, entity_id: str, namespace: str) -> datetime | None:
        try:
            raw = self._kv.get(self._key(kind, entity_id, namespace))
        except Exception:
            logger.exception("Failed to read change marker %s:%s ns=%s", kind, entity_id, namespace)
            return None
        if not raw:
            return None
        try:
            return parse_timestamp(raw)
        except ValueError:
            logger.warning("Unreadable change marker %s:%s ns=%s: %r", kind, entity_id, namespace, raw)
            return None

    def is_local_newer(
        self,
        kind: str,
        entity_id: str,
        namespace: str,
        remote_timestamp: datetime | None,
    ) -> bool:
        local = self.get_local_timestamp(kind, entity_id, namespace)
        if remote_timestamp is None:
            # Remote never saw this entity; any local edit wins.
            return local is not None
        if local is None:
            return False
        return local > remote_timestamp

    def clear_local_timestamp(self, kind: str, entity_id: str, namespace: str) -> None:
        try:
            self._kv.delete(self._key(kind, entity_id, namespace))
        except Exception:
            logger.exception("Failed to clear change marker %s:%s ns=%s", kind, entity_id, namespace)

    def clear_all(self, namespace: str) -> int:
        """Drop every marker of one namespace; returns how many were removed."""
        removed = 0
        try:
            for key in self._kv.keys(f"{_PREFIX}{namespace}:"):
                self._kv.delete(key)
                removed += 1
        except Exception:
            logger.exception("Failed to clear change markers ns=%s", namespace)
        logger.debug("Cleared %d change markers ns=%s", removed, namespace)
        return removed
