# src/focusflow/progress/progress_models.py

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any

from ..core.timestamps import format_timestamp, parse_timestamp, utc_now

DEFAULT_SESSION_NAME = "Focus Session"


@dataclass(slots=True, frozen=True)
class ProgressSession:
    duration: float  # seconds
    session_name: str | None = None
    date: datetime = field(default_factory=utc_now)
    id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "date": format_timestamp(self.date),
            "duration": self.duration,
            "sessionName": self.session_name,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ProgressSession:
        return cls(
            id=str(data["id"]),
            date=parse_timestamp(str(data["date"])),
            duration=float(data.get("duration") or 0.0),
            session_name=data.get("sessionName"),
        )


@dataclass(slots=True, frozen=True)
class ProgressSnapshot:
    namespace: str | None
    sessions: tuple[ProgressSession, ...]
    daily_goal_minutes: int


def format_duration(seconds: float) -> str:
    """'1h 05m' or '25 min'."""
    total_minutes = int(seconds // 60)
    hours, minutes = divmod(total_minutes, 60)
    if hours > 0:
        return f"{hours}h {minutes:02d}m"
    return f"{minutes} min"


def best_streak(days: set[date]) -> int:
    """Longest run of consecutive calendar days."""
    if not days:
        return 0
    ordered = sorted(days)
    best = current = 1
    for prev, curr in zip(ordered, ordered[1:]):
        if (curr - prev).days == 1:
            current += 1
            best = max(best, current)
        else:
            current = 1
    return best
