# src/focusflow/progress/progress_store.py

from __future__ import annotations

import json
import logging
from collections import defaultdict
from collections.abc import Callable, Iterable
from datetime import date, datetime

from ..core.calendar import DayCalendar
from ..core.change_tracker import ChangeTracker
from ..core.events import EventEmitter, Subscription
from ..core.namespace import AuthState, NamespaceResolver
from ..core.phase import StorePhase, store_mutation
from ..core.ports import EffectRunner, KeyValueStore, SyncNotifier
from ..core.timestamps import utc_now
from .progress_models import DEFAULT_SESSION_NAME, ProgressSession, ProgressSnapshot, best_streak

logger = logging.getLogger(__name__)

SESSIONS_KEY = "ff_local_progress.sessions.v1"
GOAL_KEY = "ff_local_progress.goalMinutes.v1"
GOAL_FIELD = "dailyGoalMinutes"


class ProgressStore:
    """
    Namespace-aware focus-session log and daily goal.

    Guest data persists locally like any other namespace; isolation comes
    from the namespaced keys, not from wiping. Sessions are kept newest first.
    """

    def __init__(
        self,
        kv: KeyValueStore,
        *,
        effects: EffectRunner,
        calendar: DayCalendar | None = None,
        sync: SyncNotifier | None = None,
        tracker: ChangeTracker | None = None,
        default_goal_minutes: int = 60,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._kv = kv
        self._effects = effects
        self._calendar = calendar or DayCalendar()
        self._sync = sync
        self._tracker = tracker
        self._default_goal = max(1, int(default_goal_minutes))
        self._clock = clock

        self._resolver = NamespaceResolver()
        self._phase = StorePhase.IDLE
        self._events: EventEmitter[ProgressSnapshot] = EventEmitter()

        self._sessions: list[ProgressSession] = []
        self._goal_minutes = self._default_goal

    # ---- read API ----

    @property
    def namespace(self) -> str | None:
        return self._resolver.active

    @property
    def sessions(self) -> tuple[ProgressSession, ...]:
        return tuple(self._sessions)

    @property
    def daily_goal_minutes(self) -> int:
        return self._goal_minutes

    @property
    def lifetime_focus_seconds(self) -> float:
        return sum(s.duration for s in self._sessions)

    @property
    def lifetime_session_count(self) -> int:
        return len(self._sessions)

    def total_on(self, day: date | datetime) -> float:
        target = self._calendar.day_of(day)
        return sum(s.duration for s in self._sessions if self._calendar.day_of(s.date) == target)

    def total_today(self) -> float:
        return self.total_on(self._calendar.now())

    def _focus_days(self) -> set[date]:
        return {self._calendar.day_of(s.date) for s in self._sessions if s.duration > 0}

    def best_streak(self) -> int:
        return best_streak(self._focus_days())

    def current_streak(self, today: date | datetime | None = None) -> int:
        """Consecutive focus days ending today (0 when today has no session)."""
        days = self._focus_days()
        cursor = self._calendar.day_of(today if today is not None else self._calendar.now())
        streak = 0
        while cursor in days:
            streak += 1
            cursor = self._calendar.add_days(cursor, -1)
        return streak

    def goals_hit(self) -> int:
        """Number of days whose focus total reached the daily goal."""
        per_day: dict[date, float] = defaultdict(float)
        for s in self._sessions:
            per_day[self._calendar.day_of(s.date)] += s.duration
        goal_seconds = self._goal_minutes * 60
        return sum(1 for total in per_day.values() if total >= goal_seconds)

    def snapshot(self) -> ProgressSnapshot:
        return ProgressSnapshot(
            namespace=self.namespace,
            sessions=tuple(self._sessions),
            daily_goal_minutes=self._goal_minutes,
        )

    def subscribe(self, callback: Callable[[ProgressSnapshot], None]) -> Subscription:
        return self._events.subscribe(callback)

    # ---- namespace ----

    def apply_auth_state(self, state: AuthState) -> bool:
        if self._phase != StorePhase.IDLE:
            logger.warning("apply_auth_state ignored: store is %s", self._phase.value)
            return False

        switch = self._resolver.resolve(state)
        if switch is None:
            return False

        self._phase = StorePhase.APPLYING_NAMESPACE
        try:
            # Markers of the previous account must not bleed into the next one.
            if self._tracker is not None and switch.previous is not None and switch.previous != switch.current:
                self._tracker.clear_all(switch.previous)
            self._load(switch.current)
        finally:
            self._phase = StorePhase.IDLE

        logger.info(
            "ProgressStore namespace %s -> %s sessions=%d goal=%d",
            switch.previous,
            switch.current,
            len(self._sessions),
            self._goal_minutes,
        )
        self._publish()
        return True

    # ---- mutations ----

    @store_mutation
    def add_session(
        self,
        duration: float,
        session_name: str | None = None,
        when: datetime | None = None,
    ) -> bool:
        safe_duration = max(0.0, float(duration))
        if safe_duration <= 0:
            return False

        name = (session_name or "").strip() or None
        session = ProgressSession(
            duration=safe_duration,
            session_name=name,
            date=when or self._clock(),
        )
        self._sessions.insert(0, session)
        self._record(f"session_{session.id}")
        self._save()

        if self._sync is not None:
            self._effects.submit(
                self._sync.notify_session_completed,
                safe_duration,
                name or DEFAULT_SESSION_NAME,
            )
        return True

    @store_mutation
    def set_daily_goal(self, minutes: int) -> bool:
        minutes = int(minutes)
        if minutes <= 0 or minutes == self._goal_minutes:
            return False

        self._goal_minutes = minutes
        self._save()
        self._record(GOAL_FIELD)
        if self._sync is not None:
            self._effects.submit(self._sync.notify_goal_updated, minutes)
        return True

    @store_mutation
    def clear_all(self) -> bool:
        if not self._sessions:
            return False
        self._sessions = []
        self._save()
        return True

    @store_mutation
    def restore(self, sessions: Iterable[ProgressSession], daily_goal_minutes: int) -> bool:
        """Restore from a backup; no sync notifications."""
        self._sessions = sorted(sessions, key=lambda s: s.date, reverse=True)
        self._goal_minutes = max(1, int(daily_goal_minutes))
        self._save()
        return True

    # ---- inbound sync ----

    @store_mutation
    def merge_remote_sessions(self, remote_sessions: Iterable[ProgressSession]) -> bool:
        """Add remote sessions whose id is unknown locally; never overwrite."""
        existing = {s.id for s in self._sessions}
        new_sessions: list[ProgressSession] = []
        for s in remote_sessions:
            if s.id in existing:
                continue
            existing.add(s.id)
            new_sessions.append(s)
        if not new_sessions:
            return False

        self._sessions = sorted(self._sessions + new_sessions, key=lambda s: s.date, reverse=True)
        self._save()
        logger.info("Merged %d remote sessions ns=%s", len(new_sessions), self.namespace)
        return True

    @store_mutation
    def apply_remote_sessions(self, sessions: Iterable[ProgressSession]) -> bool:
        """Authoritative replace (the sync engine already resolved conflicts)."""
        self._sessions = sorted(sessions, key=lambda s: s.date, reverse=True)
        self._save()
        return True

    # ---- internal ----

    def _publish(self) -> None:
        self._events.emit(self.snapshot())

    def _record(self, field: str) -> None:
        if self._tracker is not None:
            self._tracker.record_local_change("progress", field, self.namespace)

    def _key(self, base: str) -> str:
        return f"{base}_{self.namespace}"

    def _save(self) -> None:
        if self._phase == StorePhase.APPLYING_NAMESPACE or self.namespace is None:
            return
        try:
            self._kv.set(self._key(GOAL_KEY), str(self._goal_minutes))
            self._kv.set(
                self._key(SESSIONS_KEY),
                json.dumps([s.to_dict() for s in self._sessions], ensure_ascii=False),
            )
        except Exception:
            logger.exception("Failed to save progress ns=%s", self.namespace)

    def _load(self, namespace: str) -> None:
        self._sessions = []
        self._goal_minutes = self._default_goal

        try:
            raw_goal = self._kv.get(f"{GOAL_KEY}_{namespace}")
            raw_sessions = self._kv.get(f"{SESSIONS_KEY}_{namespace}")
        except Exception:
            logger.exception("Failed to read progress ns=%s", namespace)
            return

        if raw_goal:
            try:
                self._goal_minutes = max(1, int(raw_goal))
            except ValueError:
                logger.warning("Unreadable goal minutes ns=%s: %r", namespace, raw_goal)

        if not raw_sessions:
            return
        try:
            data = json.loads(raw_sessions)
        except ValueError:
            logger.exception("Failed to decode sessions ns=%s; starting empty", namespace)
            return
        if not isinstance(data, list):
            logger.warning("Unexpected sessions payload ns=%s: %r; starting empty", namespace, data)
            return
        try:
            self._sessions = [ProgressSession.from_dict(d) for d in data]
        except (ValueError, KeyError, TypeError, AttributeError):
            logger.exception("Failed to decode sessions ns=%s; starting empty", namespace)
            self._sessions = []
