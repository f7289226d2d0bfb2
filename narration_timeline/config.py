"""
Configuration constants for the narration timeline engine.

Scene-length policy, caption timing rules, editorial grouping thresholds
and music-bed levels used across all narration_timeline submodules.
The constants are the defaults; every computation receives them through
an explicit :class:`ScenePolicy` / :class:`AudioLevels` instance.
"""

from __future__ import annotations

import math
import os
from dataclasses import dataclass, fields, replace
from typing import Any

from dotenv import load_dotenv


class SceneConfigError(ValueError):
    """Policy constants that cannot produce a valid timeline."""


# ---------------------------------------------------------------------------
# Scene lengths
# ---------------------------------------------------------------------------
DEFAULT_FPS: int = 30

HERO_SECONDS: float = 8.0
"""Hook scene length before the narration starts."""

MIN_CONTENT_SECONDS: float = 37.0
"""Content never shrinks below this, however short the narration."""

OUTRO_SECONDS: float = 5.0
"""Branding scene length (excluding its cross-fade tail)."""

CROSSFADE_FRAMES: int = 30
"""Overlap between adjacent scenes."""

BREATHING_ROOM_FRAMES: int = 45
"""Silent beat between narration end and outro start (1.5 s @ 30fps)."""

MAX_SHORT_SECONDS: float = 60.0
"""Hard platform cap on the narration length (YouTube Shorts)."""

DISCREPANCY_THRESHOLD: float = 1.5
"""Transcribed/estimated ratio above which a correction is logged."""

# ---------------------------------------------------------------------------
# Caption timing
# ---------------------------------------------------------------------------
CAPTION_LEAD_SECONDS: float = 0.2
"""Text appears 200 ms BEFORE its narration starts."""

CAPTION_LAG_SECONDS: float = 0.15
"""Text stays 150 ms AFTER its narration ends."""

PAUSE_FRAMES_BEFORE_PUNCH: int = 6
PAUSE_FRAMES_AFTER_PUNCH: int = 6

FADE_IN_FRAMES: int = 15
FADE_OUT_FRAMES: int = 15

# ---------------------------------------------------------------------------
# Editorial grouping
# ---------------------------------------------------------------------------
MAX_GROUP_GAP_SECONDS: float = 0.6
MAX_WORDS_FOR_GROUPING: int = 7
MAX_COMBINED_CHARS: int = 90
MIN_BLOCK_DURATION_FRAMES: int = 18
MAX_WORDS_FOR_PUNCH: int = 4

CHARS_PER_PHRASE: int = 60
"""Whisper words are packed into phrases of at most this many characters."""

SCRIPT_PHRASE_MAX_CHARS: int = 48
"""Phrase length when splitting an untranscribed script."""

# ---------------------------------------------------------------------------
# Music bed / narration levels
# ---------------------------------------------------------------------------
HERO_VOLUME: float = 0.22
CONTENT_VOLUME: float = 0.08
"""Ducked under the narration."""

OUTRO_VOLUME: float = 0.05
MUSIC_FADE_OUT_FRAMES: int = 60
VOICE_VOLUME: float = 1.0
VOICE_FADEOUT_FRAMES: int = 45


def _coerce(raw: str, kind: type, name: str) -> Any:
    try:
        value = kind(raw)
    except ValueError as exc:
        raise SceneConfigError(f"{name}={raw!r} is not a valid {kind.__name__}") from exc
    if isinstance(value, float) and not math.isfinite(value):
        raise SceneConfigError(f"{name}={raw!r} is not finite")
    return value


def _from_env(cls, prefix: str, dotenv_path: str | None, **overrides):
    load_dotenv(dotenv_path)
    values: dict[str, Any] = {}
    for f in fields(cls):
        env_name = f"{prefix}{f.name.upper()}"
        raw = os.environ.get(env_name)
        if raw is None or raw.strip() == "":
            continue
        kind = int if f.type in ("int", int) else float
        values[f.name] = _coerce(raw.strip(), kind, env_name)
    values.update(overrides)
    return cls(**values)


@dataclass(frozen=True)
class ScenePolicy:
    """Static scene-length policy and caption timing rules for one render."""

    hero_seconds: float = HERO_SECONDS
    min_content_seconds: float = MIN_CONTENT_SECONDS
    outro_seconds: float = OUTRO_SECONDS
    crossfade_frames: int = CROSSFADE_FRAMES
    breathing_room_frames: int = BREATHING_ROOM_FRAMES
    fps: int = DEFAULT_FPS
    max_short_seconds: float = MAX_SHORT_SECONDS
    discrepancy_threshold: float = DISCREPANCY_THRESHOLD
    lead_seconds: float = CAPTION_LEAD_SECONDS
    lag_seconds: float = CAPTION_LAG_SECONDS
    pause_frames_before_punch: int = PAUSE_FRAMES_BEFORE_PUNCH
    pause_frames_after_punch: int = PAUSE_FRAMES_AFTER_PUNCH
    fade_in_frames: int = FADE_IN_FRAMES
    fade_out_frames: int = FADE_OUT_FRAMES
    max_group_gap_seconds: float = MAX_GROUP_GAP_SECONDS
    max_words_for_grouping: int = MAX_WORDS_FOR_GROUPING
    max_combined_chars: int = MAX_COMBINED_CHARS
    min_block_duration_frames: int = MIN_BLOCK_DURATION_FRAMES
    max_words_for_punch: int = MAX_WORDS_FOR_PUNCH

    @property
    def hero_frames(self) -> int:
        return round(self.hero_seconds * self.fps)

    @property
    def min_content_frames(self) -> int:
        return round(self.min_content_seconds * self.fps)

    @property
    def outro_frames(self) -> int:
        """Outro length without its cross-fade tail."""
        return round(self.outro_seconds * self.fps)

    @property
    def phrase_chars(self) -> int:
        """Whisper phrase length that keeps one-line blocks within ``max_combined_chars``."""
        return min(CHARS_PER_PHRASE, self.max_combined_chars)

    @property
    def script_phrase_chars(self) -> int:
        return min(SCRIPT_PHRASE_MAX_CHARS, self.max_combined_chars)

    def with_overrides(self, **changes) -> "ScenePolicy":
        return replace(self, **changes)

    def validate(self) -> "ScenePolicy":
        """
        Reject policies that would produce negative or overlapping scene
        boundaries.  Returns ``self`` so it can be chained.

        Raises:
            SceneConfigError: on the first inconsistency found.
        """
        if self.fps <= 0:
            raise SceneConfigError(f"fps must be positive, got {self.fps}")
        for name in ("hero_seconds", "min_content_seconds", "outro_seconds"):
            if getattr(self, name) <= 0:
                raise SceneConfigError(f"{name} must be positive")
        if self.max_short_seconds <= 0:
            raise SceneConfigError("max_short_seconds must be positive")
        if self.discrepancy_threshold < 1:
            raise SceneConfigError("discrepancy_threshold must be >= 1")

        for name in (
            "crossfade_frames",
            "breathing_room_frames",
            "lead_seconds",
            "lag_seconds",
            "pause_frames_before_punch",
            "pause_frames_after_punch",
            "fade_in_frames",
            "fade_out_frames",
            "max_group_gap_seconds",
            "max_words_for_grouping",
            "max_combined_chars",
            "min_block_duration_frames",
            "max_words_for_punch",
        ):
            if getattr(self, name) < 0:
                raise SceneConfigError(f"{name} must not be negative")

        shortest = min(self.hero_frames, self.outro_frames, self.min_content_frames)
        if self.crossfade_frames > shortest:
            raise SceneConfigError(
                f"crossfade_frames ({self.crossfade_frames}) exceeds the shortest "
                f"scene ({shortest} frames: hero={self.hero_frames}, "
                f"content={self.min_content_frames}, outro={self.outro_frames})"
            )
        # Content starts crossfade_frames before the hero ends, so it must start after frame 0
        if self.crossfade_frames >= self.hero_frames:
            raise SceneConfigError(
                f"crossfade_frames ({self.crossfade_frames}) must be shorter than "
                f"the hero scene ({self.hero_frames} frames)"
            )
        return self

    @classmethod
    def from_env(
        cls,
        prefix: str = "NARRATION_",
        dotenv_path: str | None = None,
        **overrides,
    ) -> "ScenePolicy":
        """
        Build a policy from ``{prefix}{FIELD}`` environment variables
        (e.g. ``NARRATION_FPS=60``), after loading a ``.env`` file.
        Unset variables keep their defaults.
        """
        return _from_env(cls, prefix, dotenv_path, **overrides)


@dataclass(frozen=True)
class AudioLevels:
    """Music-bed section levels and fade lengths."""

    hero_volume: float = HERO_VOLUME
    content_volume: float = CONTENT_VOLUME
    outro_volume: float = OUTRO_VOLUME
    fade_out_frames: int = MUSIC_FADE_OUT_FRAMES
    voice_volume: float = VOICE_VOLUME
    voice_fadeout_frames: int = VOICE_FADEOUT_FRAMES

    def validate(self) -> "AudioLevels":
        for name in ("hero_volume", "content_volume", "outro_volume", "voice_volume"):
            level = getattr(self, name)
            if not 0.0 <= level <= 1.0:
                raise SceneConfigError(f"{name} must be within [0, 1], got {level}")
        if self.fade_out_frames < 0 or self.voice_fadeout_frames < 0:
            raise SceneConfigError("fade lengths must not be negative")
        return self

    @classmethod
    def from_env(
        cls,
        prefix: str = "NARRATION_",
        dotenv_path: str | None = None,
        **overrides,
    ) -> "AudioLevels":
        return _from_env(cls, prefix, dotenv_path, **overrides)


DEFAULT_POLICY = ScenePolicy()
DEFAULT_LEVELS = AudioLevels()
