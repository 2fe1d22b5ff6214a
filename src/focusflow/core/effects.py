# src/focusflow/core/effects.py

from __future__ import annotations

import logging
import queue
import threading
from collections.abc import Callable
from typing import Any

logger = logging.getLogger(__name__)

_Job = tuple[Callable[..., Any], tuple[Any, ...], dict[str, Any]]


class SideEffectQueue:
    """
    Fire-and-forget executor for store side effects.

    Design goals:
    - Mutations never wait for reminder scheduling or sync notifications.
    - One worker thread drains a FIFO queue, so a cancel submitted before a
      schedule for the same task is always executed first.
    - A failing job is logged and dropped; nothing feeds back into the stores.

    inline=True runs jobs synchronously in the caller (tests, scripts).
    """

    def __init__(self, *, inline: bool = False, name: str = "focusflow-effects") -> None:
        self.inline = bool(inline)
        self._queue: queue.Queue[_Job | None] | None = None
        self._worker: threading.Thread | None = None
        self._closed = False

        if self.inline:
            return

        self._queue = queue.Queue()

        def effects_worker() -> None:
            logger.debug("Side-effect worker started.")
            assert self._queue is not None

            while True:
                item = self._queue.get()
                try:
                    if item is None:
                        logger.debug("Side-effect worker received stop signal.")
                        return
                    fn, args, kwargs = item
                    self._run(fn, args, kwargs)
                finally:
                    self._queue.task_done()

        self._worker = threading.Thread(target=effects_worker, name=name, daemon=True)
        self._worker.start()

    @staticmethod
    def _run(fn: Callable[..., Any], args: tuple[Any, ...], kwargs: dict[str, Any]) -> None:
        try:
            fn(*args, **kwargs)
        except Exception:
            logger.exception("Side effect %s failed", getattr(fn, "__qualname__", fn))

    def submit(self, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> None:
        if self._closed:
            logger.warning("Side-effect queue closed; dropping %s", getattr(fn, "__qualname__", fn))
            return
        if self._queue is None:
            self._run(fn, args, kwargs)
            return
        self._queue.put((fn, args, kwargs))

    def wait_all(self) -> None:
        """Block until every job submitted so far has run."""
        if self._queue is not None:
            self._queue.join()

    def shutdown(self, *, wait: bool = True) -> None:
        if self._closed:
            return
        self._closed = True
        if self._queue is None or self._worker is None:
            return
        if wait:
            self._queue.join()
        self._queue.put(None)
        self._worker.join(timeout=5.0)
