# src/focusflow/core/namespace.py

"""
Namespace resolution.

Every store partitions its persisted data by namespace: "guest" or the id of
the signed-in user. This module turns the current auth state into that key
and tells a store when the key actually changed.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum

from .events import EventEmitter, Subscription

logger = logging.getLogger(__name__)

GUEST_NAMESPACE = "guest"


class AuthStatus(StrEnum):
    UNKNOWN = "unknown"
    GUEST = "guest"
    SIGNED_OUT = "signed_out"
    SIGNED_IN = "signed_in"


@dataclass(slots=True, frozen=True)
class AuthState:
    status: AuthStatus
    user_id: str | None = None

    @classmethod
    def unknown(cls) -> AuthState:
        return cls(AuthStatus.UNKNOWN)

    @classmethod
    def guest(cls) -> AuthState:
        return cls(AuthStatus.GUEST)

    @classmethod
    def signed_out(cls) -> AuthState:
        return cls(AuthStatus.SIGNED_OUT)

    @classmethod
    def signed_in(cls, user_id: str) -> AuthState:
        if not user_id or not user_id.strip():
            raise ValueError("user_id is required for a signed-in state")
        return cls(AuthStatus.SIGNED_IN, user_id.strip())


def namespace_for(state: AuthState) -> str:
    if state.status == AuthStatus.SIGNED_IN and state.user_id:
        return state.user_id
    return GUEST_NAMESPACE


def is_guest(namespace: str | None) -> bool:
    return namespace is None or namespace == GUEST_NAMESPACE


@dataclass(slots=True, frozen=True)
class NamespaceSwitch:
    previous: str | None
    current: str


class NamespaceResolver:
    """Tracks the active namespace of one store and reports real changes only."""

    def __init__(self) -> None:
        self._active: str | None = None

    @property
    def active(self) -> str | None:
        return self._active

    def resolve(self, state: AuthState) -> NamespaceSwitch | None:
        new_ns = namespace_for(state)
        if new_ns == self._active:
            return None
        switch = NamespaceSwitch(previous=self._active, current=new_ns)
        self._active = new_ns
        return switch


class AuthManager:
    """
    In-process auth-state stream.

    The real sign-in flow lives outside this package; it only has to call
    set_state(). Stores subscribe and re-partition themselves on change.
    """

    def __init__(self, initial: AuthState | None = None) -> None:
        self._state = initial or AuthState.unknown()
        self._events: EventEmitter[AuthState] = EventEmitter()

    @property
    def state(self) -> AuthState:
        return self._state

    def set_state(self, state: AuthState) -> None:
        if state == self._state:
            return
        logger.info("Auth state -> %s", state.status.value)
        self._state = state
        self._events.emit(state)

    def subscribe(self, callback: Callable[[AuthState], None], *, replay: bool = True) -> Subscription:
        """Subscribe to auth changes; replay=True delivers the current state immediately."""
        sub = self._events.subscribe(callback)
        if replay:
            callback(self._state)
        return sub
