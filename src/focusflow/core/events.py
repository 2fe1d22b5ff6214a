# src/focusflow/core/events.py

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Subscription:
    """Handle returned by EventEmitter.subscribe(); cancel() is idempotent."""

    def __init__(self, cancel: Callable[[], None]) -> None:
        self._cancel: Callable[[], None] | None = cancel

    @property
    def active(self) -> bool:
        return self._cancel is not None

    def cancel(self) -> None:
        if self._cancel is None:
            return
        cancel, self._cancel = self._cancel, None
        cancel()


class EventEmitter(Generic[T]):
    """
    Minimal observer list.

    Observers are called synchronously, in subscription order. A failing
    observer is logged and does not stop delivery to the others.
    """

    def __init__(self) -> None:
        self._observers: dict[int, Callable[[T], None]] = {}
        self._next_id = 0

    def __len__(self) -> int:
        return len(self._observers)

    def subscribe(self, callback: Callable[[T], None]) -> Subscription:
        sub_id = self._next_id
        self._next_id += 1
        self._observers[sub_id] = callback
        return Subscription(lambda: self._observers.pop(sub_id, None))

    def emit(self, value: T) -> None:
        for callback in list(self._observers.values()):
            try:
                callback(value)
            except Exception:
                logger.exception("Observer %r failed", callback)
