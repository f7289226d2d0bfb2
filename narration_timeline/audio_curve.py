"""
Volume curves for the music bed and the narration.

Both are pure ``frame -> level`` functions parameterised by an assembled
:class:`~narration_timeline.models.Timeline`; nothing is materialised.
"""

from __future__ import annotations

from functools import partial
from typing import Callable

from .config import DEFAULT_LEVELS, AudioLevels
from .models import Timeline

AudioCurve = Callable[[int], float]


def _ramp(frame: float, start: float, length: float, from_level: float, to_level: float) -> float:
    """Linear ramp from *from_level* at *start* to *to_level* at ``start + length``."""
    if length <= 0 or frame >= start + length:
        return to_level
    if frame <= start:
        return from_level
    progress = (frame - start) / length
    return from_level + (to_level - from_level) * progress


def _clamp(level: float) -> float:
    return max(0.0, min(1.0, level))


def music_volume_at(
    frame: int,
    timeline: Timeline,
    levels: AudioLevels = DEFAULT_LEVELS,
) -> float:
    """
    Music-bed level on *frame*:

    - hero: ``hero_volume``
    - content: ramp to ``content_volume`` across the cross-fade, then hold
    - outro: ramp to ``outro_volume`` across the cross-fade
    - last ``fade_out_frames``: linear fade to 0
    """
    content_start = timeline.content_start
    outro_start = timeline.outro_start
    crossfade = timeline.crossfade_frames

    if frame < content_start:
        level = levels.hero_volume
    elif frame < outro_start:
        level = _ramp(frame, content_start, crossfade, levels.hero_volume, levels.content_volume)
    else:
        level = _ramp(frame, outro_start, crossfade, levels.content_volume, levels.outro_volume)

    fade_start = timeline.total_frames - levels.fade_out_frames
    if levels.fade_out_frames > 0 and frame > fade_start:
        level *= max(0.0, (timeline.total_frames - frame) / levels.fade_out_frames)

    return _clamp(level)


def voice_volume_at(
    frame: int,
    timeline: Timeline,
    levels: AudioLevels = DEFAULT_LEVELS,
) -> float:
    """
    Narration level on *frame* (absolute composition frame).

    Silent outside the narration Sequence; fades to 0 over the last
    ``voice_fadeout_frames`` before the outro so speech never cuts.
    """
    narration = timeline.scene("narration")
    if not narration.contains(frame):
        return 0.0

    level = levels.voice_volume
    remaining = narration.end_frame - frame
    if levels.voice_fadeout_frames > 0 and remaining < levels.voice_fadeout_frames:
        level *= remaining / levels.voice_fadeout_frames
    return _clamp(level)


def build_music_curve(timeline: Timeline, levels: AudioLevels = DEFAULT_LEVELS) -> AudioCurve:
    return partial(music_volume_at, timeline=timeline, levels=levels.validate())


def build_voice_curve(timeline: Timeline, levels: AudioLevels = DEFAULT_LEVELS) -> AudioCurve:
    return partial(voice_volume_at, timeline=timeline, levels=levels.validate())


def section_levels(timeline: Timeline, levels: AudioLevels = DEFAULT_LEVELS) -> list[dict]:
    """Keyframes of the music curve, for renderers that interpolate themselves."""
    frames = {
        0,
        timeline.content_start,
        timeline.content_start + timeline.crossfade_frames,
        timeline.outro_start,
        timeline.outro_start + timeline.crossfade_frames,
        max(0, timeline.total_frames - levels.fade_out_frames),
    }
    keyframes = [
        {"frame": frame, "volume": round(music_volume_at(frame, timeline, levels), 4)}
        for frame in sorted(f for f in frames if f < timeline.total_frames)
    ]
    keyframes.append({"frame": timeline.total_frames, "volume": 0.0})
    return keyframes
