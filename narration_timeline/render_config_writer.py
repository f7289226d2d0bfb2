"""
Generate the ``render_config.json`` consumed by the renderer.

Assembles the effective duration, scene boundaries, caption blocks with
their frame windows and the music-bed keyframes into one per-video
render description.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import TYPE_CHECKING, Any

from .audio_curve import section_levels
from .duration_reconciler import video_duration_seconds

if TYPE_CHECKING:
    from . import TimelineResult

DEFAULT_WIDTH: int = 1080
DEFAULT_HEIGHT: int = 1920


def build_render_config(
    video_id: str,
    audio_path: str,
    result: "TimelineResult",
    *,
    width: int = DEFAULT_WIDTH,
    height: int = DEFAULT_HEIGHT,
) -> dict[str, Any]:
    """
    Build the complete render configuration dict.

    Args:
        video_id: Unique video identifier.
        audio_path: Path to the narration audio file.
        result: Output of :meth:`NarrationTimelineEngine.run`.
        width: Output width in pixels (vertical short by default).
        height: Output height in pixels.

    Returns:
        A dict ready to be serialised as ``render_config.json``.
    """
    timeline = result.timeline
    windows = {w.block_index: w for w in result.windows}

    blocks = []
    for i, block in enumerate(result.blocks):
        entry = block.to_dict()
        window = windows.get(i)
        if window is not None:
            entry["startFrame"] = window.start_frame
            entry["endFrame"] = window.end_frame
        blocks.append(entry)

    return {
        "video_id": video_id,
        "audio_path": audio_path,
        "fps": timeline.fps,
        "resolution": {
            "width": width,
            "height": height,
        },
        "audio_duration_seconds": round(result.effective_audio_duration, 4),
        "video_duration_seconds": video_duration_seconds(result.effective_audio_duration, result.policy),
        "total_frames": timeline.total_frames,
        "timed_captions": result.timed,
        "timeline": timeline.to_dict(),
        "blocks": blocks,
        "audio": {
            "music_keyframes": section_levels(timeline, result.levels),
            "voice_volume": result.levels.voice_volume,
            "voice_fadeout_frames": result.levels.voice_fadeout_frames,
        },
        "notes": [n.to_dict() for n in result.notes],
    }


def write_render_config(
    config: dict[str, Any],
    output_path: str | Path,
) -> Path:
    """Serialise *config* to JSON on disk."""
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w") as f:
        json.dump(config, f, indent=2, ensure_ascii=False)
    return output_path


def save_block_timing(
    result: "TimelineResult",
    output_path: str | Path,
) -> Path:
    """
    Save intermediate per-block timing to ``block_timing.json``
    (useful for debugging caption drift).
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    fps = result.timeline.fps
    timing_data = []
    for window in result.windows:
        block = result.blocks[window.block_index]
        timing_data.append({
            "block_index": window.block_index,
            "weight": block.weight.value,
            "text": block.text,
            "narration_start": block.start_seconds,
            "narration_end": block.end_seconds,
            "start_frame": window.start_frame,
            "end_frame": window.end_frame,
            "display_start": round(window.start_frame / fps, 4),
            "display_end": round(window.end_frame / fps, 4),
        })

    with open(output_path, "w") as f:
        json.dump(timing_data, f, indent=2, ensure_ascii=False)

    return output_path
