"""
Frame-accurate display windows for editorial blocks.

With transcription, each block's window follows its narration, shifted by
a perceptual lead/lag and with a short beat around ``punch`` blocks.
Without it, blocks share the scene uniformly.  Per-frame queries are pure
functions over the resolved window list.
"""

from __future__ import annotations

import logging
from bisect import bisect_right
from typing import Any, Optional, Sequence

from .config import DEFAULT_POLICY, ScenePolicy
from .models import BlockTiming, BlockWindow, EditorialTextBlock, TimingNote, Weight

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Window resolution
# ---------------------------------------------------------------------------

def uniform_windows(block_count: int, total_frames: int) -> list[BlockWindow]:
    """Contiguous equal-width windows covering ``[0, total_frames)``."""
    if block_count <= 0 or total_frames <= 0:
        return []
    frames_per_block = total_frames / block_count
    return [
        BlockWindow(i, round(i * frames_per_block), round((i + 1) * frames_per_block))
        for i in range(block_count)
    ]


def timed_windows(
    blocks: Sequence[EditorialTextBlock],
    total_frames: Optional[int],
    policy: ScenePolicy = DEFAULT_POLICY,
    *,
    scene_offset_seconds: float = 0.0,
) -> list[BlockWindow]:
    """
    Windows from real block timing.

    ``start = round((start_s - lead + offset) * fps)`` and
    ``end = round((end_s + lag + offset) * fps)``.  A block is cut where
    the next one starts.  A punch block starts ``pause_frames_before_punch``
    late and the block after a punch ``pause_frames_after_punch`` late,
    leaving an empty beat.  Windows are clamped to ``[0, total_frames]``.
    """
    fps = policy.fps
    raw = [
        (
            round((b.start_seconds - policy.lead_seconds + scene_offset_seconds) * fps),
            round((b.end_seconds + policy.lag_seconds + scene_offset_seconds) * fps),
        )
        for b in blocks
    ]

    spans: list[list[int]] = []
    for i, (start, end) in enumerate(raw):
        beat = 0
        if i > 0:
            prev_start, prev_end = spans[-1]
            spans[-1][1] = max(prev_start, min(prev_end, start))
            if blocks[i].weight is Weight.PUNCH:
                beat += policy.pause_frames_before_punch
            if blocks[i - 1].weight is Weight.PUNCH:
                beat += policy.pause_frames_after_punch
            floor = spans[-1][1]
        else:
            floor = 0

        start = max(floor, min(start + beat, end - 1))
        spans.append([start, max(start, end)])

    windows = []
    for i, (start, end) in enumerate(spans):
        if total_frames is not None:
            start = min(start, total_frames)
            end = min(end, total_frames)
        windows.append(BlockWindow(i, start, end))
    return windows


def resolve_block_windows(
    blocks: Sequence[EditorialTextBlock],
    total_frames: int,
    policy: ScenePolicy = DEFAULT_POLICY,
    *,
    timed: bool = True,
    scene_offset_seconds: float = 0.0,
    notes: Optional[list[TimingNote]] = None,
) -> list[BlockWindow]:
    """
    Resolve every block's ``[start_frame, end_frame)`` inside a scene of
    *total_frames* frames.  Windows are ordered and never overlap.
    """
    if not blocks:
        return []
    if not timed:
        logger.info("No transcription timing; distributing %d blocks uniformly", len(blocks))
        if notes is not None:
            notes.append(TimingNote(
                "uniform_fallback",
                f"{len(blocks)} blocks distributed uniformly over {total_frames} frames",
                {"block_count": len(blocks), "total_frames": total_frames},
            ))
        return uniform_windows(len(blocks), total_frames)
    return timed_windows(blocks, total_frames, policy, scene_offset_seconds=scene_offset_seconds)


# ---------------------------------------------------------------------------
# Per-frame queries
# ---------------------------------------------------------------------------

def find_window(windows: Sequence[BlockWindow], frame: int) -> Optional[BlockWindow]:
    """Binary search over the ordered, non-overlapping windows."""
    starts = [w.start_frame for w in windows]
    pos = bisect_right(starts, frame) - 1
    if pos >= 0 and windows[pos].contains(frame):
        return windows[pos]
    return None


def limit_fades(duration_frames: float, fade_in_frames: float, fade_out_frames: float) -> tuple[float, float]:
    """Fade lengths capped at a third of the window each."""
    cap = max(0.0, duration_frames / 3)
    return min(fade_in_frames, cap), min(fade_out_frames, cap)


def calculate_opacity(
    relative_frame: float,
    duration_frames: float,
    fade_in_frames: float,
    fade_out_frames: float,
) -> float:
    """
    Fade in, hold, fade out::

        0 ---- fade_in ---- (hold) ---- fade_out ---- end
        0  ->  1             1           1  ->  0

    Fades are limited to a third of the window each.
    """
    if duration_frames <= 0:
        return 0.0
    fade_in, fade_out = limit_fades(duration_frames, fade_in_frames, fade_out_frames)

    opacity = 1.0
    if fade_in > 0:
        opacity = min(opacity, relative_frame / fade_in)
    if fade_out > 0:
        opacity = min(opacity, (duration_frames - relative_frame) / fade_out)
    return max(0.0, min(1.0, opacity))


def get_block_timing(
    frame: int,
    windows: Sequence[BlockWindow],
    policy: ScenePolicy = DEFAULT_POLICY,
) -> BlockTiming:
    """Which block to paint on *frame*, and how opaque."""
    window = find_window(windows, frame)
    if window is None:
        return BlockTiming(
            current_block_index=None,
            block_start_frame=frame,
            block_end_frame=frame,
            opacity=0.0,
            is_transitioning=False,
        )

    relative = frame - window.start_frame
    duration = window.duration_frames
    fade_in, fade_out = limit_fades(duration, policy.fade_in_frames, policy.fade_out_frames)
    return BlockTiming(
        current_block_index=window.block_index,
        block_start_frame=window.start_frame,
        block_end_frame=window.end_frame,
        opacity=calculate_opacity(relative, duration, fade_in, fade_out),
        is_transitioning=relative < fade_in or relative > duration - fade_out,
    )


def get_block_timing_debug(
    frame: int,
    windows: Sequence[BlockWindow],
    total_frames: int,
    policy: ScenePolicy = DEFAULT_POLICY,
) -> dict[str, Any]:
    """:func:`get_block_timing` plus second-based fields for debugging."""
    timing = get_block_timing(frame, windows, policy)
    fps = policy.fps
    return {
        "current_block_index": timing.current_block_index,
        "opacity": round(timing.opacity, 4),
        "is_transitioning": timing.is_transitioning,
        "block_start_frame": timing.block_start_frame,
        "block_end_frame": timing.block_end_frame,
        "current_second": frame / fps,
        "block_start_second": timing.block_start_frame / fps,
        "block_end_second": timing.block_end_frame / fps,
        "percent_complete": (frame / total_frames * 100) if total_frames else 0.0,
    }
