"""
Value types shared across the narration timeline engine.

All of them are frozen: they are built once per render request from the
TTS/transcription results and never mutated afterwards.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


# ---------------------------------------------------------------------------
# Transcription
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class WordTimestamp:
    """A single transcribed word with start/end seconds."""

    text: str
    start_seconds: float
    end_seconds: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "text": self.text,
            "startSeconds": self.start_seconds,
            "endSeconds": self.end_seconds,
        }

    def __repr__(self) -> str:
        return f"WordTimestamp({self.text!r}, {self.start_seconds:.2f}, {self.end_seconds:.2f})"


@dataclass(frozen=True)
class PhraseTimestamp:
    """A transcribed span of words."""

    text: str
    start_seconds: float
    end_seconds: float
    words: tuple[WordTimestamp, ...] = ()

    @property
    def word_count(self) -> int:
        return count_words(self.text)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PhraseTimestamp":
        """Accept both camelCase (renderer) and snake_case keys."""
        words = tuple(
            WordTimestamp(
                text=str(w.get("text", w.get("word", ""))).strip(),
                start_seconds=float(w.get("startSeconds", w.get("start_seconds", w.get("start", 0)))),
                end_seconds=float(w.get("endSeconds", w.get("end_seconds", w.get("end", 0)))),
            )
            for w in data.get("words", [])
        )
        return cls(
            text=str(data.get("text", "")),
            start_seconds=float(data.get("startSeconds", data.get("start_seconds", data.get("start", 0)))),
            end_seconds=float(data.get("endSeconds", data.get("end_seconds", data.get("end", 0)))),
            words=words,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "text": self.text,
            "startSeconds": self.start_seconds,
            "endSeconds": self.end_seconds,
            "words": [w.to_dict() for w in self.words],
        }


def count_words(text: str) -> int:
    return len(text.split())


# ---------------------------------------------------------------------------
# Editorial blocks
# ---------------------------------------------------------------------------

class Weight(str, Enum):
    """Rhetorical role of an editorial block."""
    HEADLINE = "headline"
    SUPPORT = "support"
    PUNCH = "punch"


@dataclass(frozen=True)
class EditorialTextBlock:
    """1-2 lines of on-screen text derived from one or more phrases."""

    lines: tuple[str, ...]
    weight: Weight
    phrase_indices: tuple[int, ...]
    start_seconds: float
    end_seconds: float

    @property
    def text(self) -> str:
        return " ".join(self.lines)

    @property
    def word_count(self) -> int:
        return count_words(self.text)

    @property
    def char_count(self) -> int:
        return sum(len(line) for line in self.lines)

    @property
    def duration_seconds(self) -> float:
        return self.end_seconds - self.start_seconds

    def to_dict(self) -> dict[str, Any]:
        return {
            "lines": list(self.lines),
            "weight": self.weight.value,
            "phraseIndices": list(self.phrase_indices),
            "startSeconds": self.start_seconds,
            "endSeconds": self.end_seconds,
        }


# ---------------------------------------------------------------------------
# Timeline
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SceneBoundary:
    name: str  # 'hero' | 'content' | 'outro' | 'music' | 'narration'
    start_frame: int
    duration_frames: int

    @property
    def end_frame(self) -> int:
        return self.start_frame + self.duration_frames

    def contains(self, frame: int) -> bool:
        return self.start_frame <= frame < self.end_frame

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "startFrame": self.start_frame,
            "durationFrames": self.duration_frames,
        }


@dataclass(frozen=True)
class Timeline:
    """Ordered visual scenes plus the audio Sequences laid over them."""

    scenes: tuple[SceneBoundary, ...]
    total_frames: int
    crossfade_frames: int
    breathing_room_frames: int
    fps: int
    audio_tracks: tuple[SceneBoundary, ...] = ()

    def scene(self, name: str) -> SceneBoundary:
        for boundary in self.scenes + self.audio_tracks:
            if boundary.name == name:
                return boundary
        raise KeyError(name)

    @property
    def content_start(self) -> int:
        return self.scene("content").start_frame

    @property
    def outro_start(self) -> int:
        return self.scene("outro").start_frame

    @property
    def duration_seconds(self) -> float:
        return self.total_frames / self.fps

    def to_dict(self) -> dict[str, Any]:
        return {
            "scenes": [s.to_dict() for s in self.scenes],
            "audioTracks": [t.to_dict() for t in self.audio_tracks],
            "totalFrames": self.total_frames,
            "crossfadeFrames": self.crossfade_frames,
            "breathingRoomFrames": self.breathing_room_frames,
            "fps": self.fps,
        }


# ---------------------------------------------------------------------------
# Block timing
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class BlockWindow:
    """Frame window ``[start_frame, end_frame)`` of one block."""

    block_index: int
    start_frame: int
    end_frame: int

    @property
    def duration_frames(self) -> int:
        return self.end_frame - self.start_frame

    def contains(self, frame: int) -> bool:
        return self.start_frame <= frame < self.end_frame

    def to_dict(self) -> dict[str, Any]:
        return {
            "blockIndex": self.block_index,
            "startFrame": self.start_frame,
            "endFrame": self.end_frame,
        }


@dataclass(frozen=True)
class BlockTiming:
    """What to paint on one frame."""

    current_block_index: Optional[int]
    block_start_frame: int
    block_end_frame: int
    opacity: float
    is_transitioning: bool


# ---------------------------------------------------------------------------
# Notes
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TimingNote:
    """Structured, non-fatal observation returned alongside a result."""

    code: str
    message: str
    data: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"code": self.code, "message": self.message, "data": dict(self.data)}
