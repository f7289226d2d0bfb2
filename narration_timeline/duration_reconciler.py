"""
Narration duration reconciliation.

TTS engines report an *estimated* duration that is often shorter than what
Whisper actually hears.  Every downstream frame computation uses the
corrected, capped ``effective_audio_duration`` produced here.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any, Optional, Sequence

from .config import DEFAULT_POLICY, ScenePolicy
from .models import PhraseTimestamp, TimingNote

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DurationReconciliation:
    effective_seconds: float
    estimated_seconds: float
    transcribed_end_seconds: Optional[float]
    uncapped_seconds: float
    notes: tuple[TimingNote, ...] = ()

    @property
    def corrected(self) -> bool:
        return self.uncapped_seconds != self.estimated_seconds

    @property
    def capped(self) -> bool:
        return self.effective_seconds < self.uncapped_seconds


def reconcile_duration(
    estimated_duration_seconds: float,
    phrase_timestamps: Optional[Sequence[PhraseTimestamp]] = None,
    *,
    max_short_seconds: float = DEFAULT_POLICY.max_short_seconds,
    discrepancy_threshold: float = DEFAULT_POLICY.discrepancy_threshold,
) -> DurationReconciliation:
    """
    Merge the TTS estimate with the transcribed end time.

    If the last transcribed phrase ends after the estimate, the duration
    becomes ``ceil(transcribed_end) + 1`` (one second of safety margin).
    The result is always capped at *max_short_seconds*.  A missing or empty
    transcription falls back to the estimate.

    Raises:
        ValueError: if the estimate is negative or not finite.
    """
    estimated = float(estimated_duration_seconds)
    if not math.isfinite(estimated) or estimated < 0:
        raise ValueError(f"estimated_duration_seconds must be >= 0, got {estimated_duration_seconds!r}")

    notes: list[TimingNote] = []
    transcribed_end: Optional[float] = None
    uncapped = estimated

    if not phrase_timestamps:
        notes.append(TimingNote(
            "missing_transcription",
            "No transcription available; using the TTS estimate",
            {"estimated_seconds": estimated},
        ))
    else:
        transcribed_end = phrase_timestamps[-1].end_seconds
        if transcribed_end > estimated:
            uncapped = float(math.ceil(transcribed_end) + 1)
            notes.append(TimingNote(
                "duration_corrected",
                f"audio duration corrected: {estimated:.1f}s -> {uncapped:.0f}s "
                f"(transcription ends at {transcribed_end:.2f}s)",
                {"estimated_seconds": estimated, "transcribed_end_seconds": transcribed_end},
            ))
            if transcribed_end > estimated * discrepancy_threshold:
                notes.append(TimingNote(
                    "duration_discrepancy",
                    f"transcription is {transcribed_end / estimated if estimated else math.inf:.2f}x "
                    f"the estimate (threshold {discrepancy_threshold}x)",
                    {"ratio_threshold": discrepancy_threshold},
                ))

    effective = min(uncapped, max_short_seconds)
    if effective < uncapped:
        notes.append(TimingNote(
            "duration_capped",
            f"audio duration capped at {max_short_seconds:.0f}s (was {uncapped:.1f}s)",
            {"uncapped_seconds": uncapped, "max_short_seconds": max_short_seconds},
        ))

    for note in notes:
        level = logging.DEBUG if note.code == "missing_transcription" else logging.INFO
        logger.log(level, note.message)

    return DurationReconciliation(
        effective_seconds=effective,
        estimated_seconds=estimated,
        transcribed_end_seconds=transcribed_end,
        uncapped_seconds=uncapped,
        notes=tuple(notes),
    )


def effective_audio_duration(
    estimated_duration_seconds: float,
    phrase_timestamps: Optional[Sequence[PhraseTimestamp]] = None,
    policy: ScenePolicy = DEFAULT_POLICY,
) -> float:
    """Shortcut returning only the effective duration in seconds."""
    return reconcile_duration(
        estimated_duration_seconds,
        phrase_timestamps,
        max_short_seconds=policy.max_short_seconds,
        discrepancy_threshold=policy.discrepancy_threshold,
    ).effective_seconds


# ---------------------------------------------------------------------------
# Export sizing
# ---------------------------------------------------------------------------

def video_duration_seconds(
    effective_seconds: float,
    policy: ScenePolicy = DEFAULT_POLICY,
) -> int:
    """
    Whole-second length for the export container:
    ``ceil(hero + max(min_content, audio + 1) + breathing + outro)``.
    """
    breathing_seconds = policy.breathing_room_frames / policy.fps
    return math.ceil(
        policy.hero_seconds
        + max(policy.min_content_seconds, effective_seconds + 1)
        + breathing_seconds
        + policy.outro_seconds
    )


def redistribute_segments(
    segments: Sequence[dict[str, Any]],
    effective_seconds: float,
    estimated_seconds: float,
) -> list[dict[str, Any]]:
    """
    Spread image segments uniformly across the effective duration.

    Segments keep their other keys; ``startSecond``/``endSecond`` are
    recomputed only when the effective duration differs from the estimate.
    """
    if not segments or effective_seconds == estimated_seconds:
        return [dict(s) for s in segments]

    segment_duration = effective_seconds / len(segments)
    return [
        {
            **segment,
            "startSecond": round(i * segment_duration),
            "endSecond": round((i + 1) * segment_duration),
        }
        for i, segment in enumerate(segments)
    ]
