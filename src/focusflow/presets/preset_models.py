# src/focusflow/presets/preset_models.py

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Any

from ..tasks.task_models import TaskItem

DEFAULT_SOUND_ID = "light-rain-ambient"


@dataclass(slots=True, frozen=True)
class FocusPreset:
    name: str
    duration_seconds: int
    sound_id: str = DEFAULT_SOUND_ID
    emoji: str | None = None
    is_system_default: bool = False
    # Raw theme / external music app names; None means "don't override".
    theme: str | None = None
    external_music_app: str | None = None
    id: str = field(default_factory=lambda: str(uuid.uuid4()))

    @property
    def duration_minutes(self) -> int:
        return self.duration_seconds // 60

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "durationSeconds": self.duration_seconds,
            "soundID": self.sound_id,
            "emoji": self.emoji,
            "isSystemDefault": self.is_system_default,
            "themeRaw": self.theme,
            "externalMusicAppRaw": self.external_music_app,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> FocusPreset:
        return cls(
            id=str(data["id"]),
            name=str(data["name"]),
            duration_seconds=int(data["durationSeconds"]),
            sound_id=str(data.get("soundID") or DEFAULT_SOUND_ID),
            emoji=data.get("emoji"),
            is_system_default=bool(data.get("isSystemDefault", False)),
            theme=data.get("themeRaw"),
            external_music_app=data.get("externalMusicAppRaw"),
        )


def default_presets() -> list[FocusPreset]:
    """Built-in presets offered to a fresh guest profile."""
    return [
        FocusPreset("Deep Work", 50 * 60, "angelsbymyside", "🧠", is_system_default=True),
        FocusPreset("Study", 40 * 60, "floatinggarden", "📚", is_system_default=True),
        FocusPreset("Writing", 30 * 60, "light-rain-ambient", "✍️", is_system_default=True),
        FocusPreset("Reading", 25 * 60, "fireplace", "📖", is_system_default=True),
    ]


def preset_from_task(task: TaskItem, sound_id: str = DEFAULT_SOUND_ID) -> FocusPreset:
    # Tasks without a duration still get a usable one-minute preset.
    minutes = max(1, task.duration_minutes)
    return FocusPreset(name=task.title, duration_seconds=minutes * 60, sound_id=sound_id)
