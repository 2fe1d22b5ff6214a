# src/focusflow/core/phase.py

from __future__ import annotations

import functools
import logging
from collections.abc import Callable
from enum import StrEnum
from typing import Any, TypeVar

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., bool])


class StorePhase(StrEnum):
    """
    What a namespaced store is doing right now.

    - IDLE: ready for a public operation
    - APPLYING_NAMESPACE: switching accounts; persistence is suppressed
    - MUTATING: inside a public mutation
    """

    IDLE = "idle"
    APPLYING_NAMESPACE = "applying_namespace"
    MUTATING = "mutating"


def store_mutation(fn: F) -> F:
    """
    Entry guard for public store mutations.

    The wrapped method returns True when it changed state. The owner must
    provide `_phase`, `namespace` (None while nothing is loaded) and
    `_publish()`. A mutation entered while the store is not IDLE, or before a
    namespace was loaded, is logged and ignored (returns False). Subscribers
    are notified after the phase is back to IDLE, so they may mutate again.
    """

    @functools.wraps(fn)
    def wrapper(self: Any, *args: Any, **kwargs: Any) -> bool:
        if self.namespace is None:
            logger.warning("%s.%s ignored: no namespace loaded", type(self).__name__, fn.__name__)
            return False
        if self._phase != StorePhase.IDLE:
            logger.warning(
                "%s.%s ignored: store is %s",
                type(self).__name__,
                fn.__name__,
                self._phase.value,
            )
            return False

        self._phase = StorePhase.MUTATING
        try:
            changed = bool(fn(self, *args, **kwargs))
        finally:
            self._phase = StorePhase.IDLE

        if changed:
            self._publish()
        return changed

    return wrapper  # type: ignore[return-value]
