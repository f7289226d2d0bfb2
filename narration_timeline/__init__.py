"""
narration_timeline — narration-driven timeline synthesis for shorts.

High-level API consumed by the render pipeline::

    from narration_timeline import NarrationTimelineEngine

    engine = NarrationTimelineEngine()
    result = engine.run(estimated_duration_seconds=42.0,
                        phrase_timestamps=phrases)   # or None
    result.timeline.total_frames
    result.block_timing(frame)
    result.music_curve(frame), result.voice_curve(frame)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Sequence

from .audio_curve import (
    AudioCurve,
    build_music_curve,
    build_voice_curve,
    music_volume_at,
    voice_volume_at,
)
from .block_timing import (
    calculate_opacity,
    get_block_timing,
    get_block_timing_debug,
    resolve_block_windows,
)
from .config import (
    DEFAULT_LEVELS,
    DEFAULT_POLICY,
    AudioLevels,
    SceneConfigError,
    ScenePolicy,
)
from .duration_reconciler import (
    DurationReconciliation,
    reconcile_duration,
    redistribute_segments,
    video_duration_seconds,
)
from .editorial_blocks import (
    build_editorial_blocks,
    classify_weight,
    split_script_into_phrases,
)
from .models import (
    BlockTiming,
    BlockWindow,
    EditorialTextBlock,
    PhraseTimestamp,
    SceneBoundary,
    Timeline,
    TimingNote,
    Weight,
    WordTimestamp,
)
from .render_config_writer import (
    build_render_config,
    save_block_timing,
    write_render_config,
)
from .timeline_assembler import assemble_timeline
from .transcriber import extract_words, group_into_phrases, transcribe

logger = logging.getLogger(__name__)

__version__ = "0.1.0"


@dataclass(frozen=True)
class TimelineResult:
    """Everything the renderer needs for one video."""

    effective_audio_duration: float
    blocks: tuple[EditorialTextBlock, ...]
    windows: tuple[BlockWindow, ...]
    timeline: Timeline
    timed: bool
    policy: ScenePolicy
    levels: AudioLevels
    notes: tuple[TimingNote, ...] = ()

    @property
    def music_curve(self) -> AudioCurve:
        return build_music_curve(self.timeline, self.levels)

    @property
    def voice_curve(self) -> AudioCurve:
        return build_voice_curve(self.timeline, self.levels)

    @property
    def content_frames(self) -> int:
        return self.timeline.scene("content").duration_frames

    def block_timing(self, content_frame: int) -> BlockTiming:
        """Caption state on *content_frame* (relative to the content scene)."""
        return get_block_timing(content_frame, self.windows, self.policy)


class NarrationTimelineEngine:
    """
    End-to-end orchestrator: reconcile duration, build editorial blocks,
    assemble the scene timeline and resolve caption windows.

    Stateless apart from its immutable policy, so one instance can serve
    concurrent render jobs.
    """

    def __init__(
        self,
        policy: ScenePolicy = DEFAULT_POLICY,
        levels: AudioLevels = DEFAULT_LEVELS,
    ) -> None:
        # Reject impossible configurations before any frame math
        self.policy = policy.validate()
        self.levels = levels.validate()

    # ------------------------------------------------------------------
    # Step 1 — Reconcile duration
    # ------------------------------------------------------------------

    def reconcile(
        self,
        estimated_duration_seconds: float,
        phrase_timestamps: Optional[Sequence[PhraseTimestamp]] = None,
    ) -> DurationReconciliation:
        return reconcile_duration(
            estimated_duration_seconds,
            phrase_timestamps,
            max_short_seconds=self.policy.max_short_seconds,
            discrepancy_threshold=self.policy.discrepancy_threshold,
        )

    # ------------------------------------------------------------------
    # Step 2 — Editorial blocks
    # ------------------------------------------------------------------

    def build_blocks(
        self,
        phrase_timestamps: Optional[Sequence[PhraseTimestamp]] = None,
        script_text: Optional[str] = None,
        notes: Optional[list[TimingNote]] = None,
    ) -> tuple[list[EditorialTextBlock], bool]:
        """Return ``(blocks, timed)``; untimed blocks come from the script text."""
        if phrase_timestamps:
            return build_editorial_blocks(phrase_timestamps, self.policy, notes=notes), True
        phrases = split_script_into_phrases(script_text or "", self.policy.script_phrase_chars)
        return build_editorial_blocks(phrases, self.policy, timed=False, notes=notes), False

    # ------------------------------------------------------------------
    # Convenience — run everything
    # ------------------------------------------------------------------

    def run(
        self,
        estimated_duration_seconds: float,
        phrase_timestamps: Optional[Sequence[PhraseTimestamp]] = None,
        *,
        script_text: Optional[str] = None,
        scene_offset_seconds: float = 0.0,
    ) -> TimelineResult:
        """
        Execute the full engine for one render request.

        Args:
            estimated_duration_seconds: Narration length reported by TTS.
            phrase_timestamps: Transcribed phrases, or ``None`` when
                transcription failed or was skipped.
            script_text: Narration script, used for uniform captions when
                there is no transcription.
            scene_offset_seconds: Added to block timing when the narration
                does not start with the content scene.

        Returns:
            A :class:`TimelineResult`.
        """
        reconciliation = self.reconcile(estimated_duration_seconds, phrase_timestamps)
        notes: list[TimingNote] = list(reconciliation.notes)
        effective = reconciliation.effective_seconds

        blocks, timed = self.build_blocks(phrase_timestamps, script_text, notes)
        timeline = assemble_timeline(effective, self.policy)

        content_frames = timeline.scene("content").duration_frames
        windows = resolve_block_windows(
            blocks,
            content_frames,
            self.policy,
            timed=timed,
            scene_offset_seconds=scene_offset_seconds,
            notes=notes,
        )

        logger.info(
            "Timeline ready: %.1fs narration, %d blocks, %d frames",
            effective, len(blocks), timeline.total_frames,
        )

        return TimelineResult(
            effective_audio_duration=effective,
            blocks=tuple(blocks),
            windows=tuple(windows),
            timeline=timeline,
            timed=timed,
            policy=self.policy,
            levels=self.levels,
            notes=tuple(notes),
        )

    # ------------------------------------------------------------------
    # Render config
    # ------------------------------------------------------------------

    def generate_render_config(
        self,
        video_id: str,
        audio_path: str,
        result: TimelineResult,
        output_dir: str | Path | None = None,
    ) -> dict[str, Any]:
        """
        Build and optionally persist the render config.

        If *output_dir* is provided the following files are written::

            {output_dir}/
            ├── block_timing.json     # intermediate debug data
            └── render_config.json    # final config for the renderer
        """
        config = build_render_config(video_id, audio_path, result)

        if output_dir is not None:
            out = Path(output_dir)
            save_block_timing(result, out / "block_timing.json")
            write_render_config(config, out / "render_config.json")

        return config


__all__ = [
    "NarrationTimelineEngine",
    "TimelineResult",
    "ScenePolicy",
    "AudioLevels",
    "SceneConfigError",
    "WordTimestamp",
    "PhraseTimestamp",
    "EditorialTextBlock",
    "Weight",
    "SceneBoundary",
    "Timeline",
    "BlockWindow",
    "BlockTiming",
    "TimingNote",
    "DurationReconciliation",
    "reconcile_duration",
    "video_duration_seconds",
    "redistribute_segments",
    "build_editorial_blocks",
    "classify_weight",
    "split_script_into_phrases",
    "resolve_block_windows",
    "get_block_timing",
    "get_block_timing_debug",
    "calculate_opacity",
    "assemble_timeline",
    "music_volume_at",
    "voice_volume_at",
    "build_music_curve",
    "build_voice_curve",
    "build_render_config",
    "write_render_config",
    "save_block_timing",
    "transcribe",
    "extract_words",
    "group_into_phrases",
]
