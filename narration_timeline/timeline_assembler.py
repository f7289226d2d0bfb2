"""
Scene timeline assembly.

Lays out hero / content / outro from the scene policy and the effective
narration duration::

    hero     |==========|
    content        |=================================|
    narration      |----------------------|
    outro                                      |==========|
                   ^ crossfade            ^ breathing room
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from functools import reduce
from typing import Sequence

from .config import DEFAULT_POLICY, SceneConfigError, ScenePolicy
from .models import SceneBoundary, Timeline

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SceneSpec:
    """
    One step of the layout fold.

    The scene starts ``offset_frames`` after the previous scene's advance
    (negative = overlap), the next scene starts ``advance_frames`` after
    it, and it stays visible ``tail_frames`` beyond that.
    """

    name: str
    advance_frames: int
    offset_frames: int = 0
    tail_frames: int = 0

    @property
    def duration_frames(self) -> int:
        return self.advance_frames + self.tail_frames


def content_core_frames(effective_seconds: float, policy: ScenePolicy = DEFAULT_POLICY) -> int:
    """Narration plus one second of padding, never below the content floor."""
    narration_frames = math.ceil(effective_seconds * policy.fps) + policy.fps
    return max(policy.min_content_frames, narration_frames)


def scene_specs(effective_seconds: float, policy: ScenePolicy = DEFAULT_POLICY) -> list[SceneSpec]:
    crossfade = policy.crossfade_frames
    return [
        SceneSpec("hero", advance_frames=policy.hero_frames),
        SceneSpec(
            "content",
            advance_frames=content_core_frames(effective_seconds, policy) + policy.breathing_room_frames,
            offset_frames=-crossfade,
            tail_frames=crossfade,
        ),
        # Extended so its own cross-fade tail is not clipped
        SceneSpec("outro", advance_frames=policy.outro_frames + crossfade),
    ]


def _place(placed: list[tuple[SceneSpec, int]], spec: SceneSpec) -> list[tuple[SceneSpec, int]]:
    if not placed:
        return [(spec, spec.offset_frames)]
    prev_spec, prev_start = placed[-1]
    return placed + [(spec, prev_start + prev_spec.advance_frames + spec.offset_frames)]


def layout_scenes(specs: Sequence[SceneSpec]) -> list[SceneBoundary]:
    """Left fold: each start follows from the previous scene's start and advance."""
    placed = reduce(_place, specs, [])
    return [SceneBoundary(spec.name, start, spec.duration_frames) for spec, start in placed]


def _check_layout(scenes: Sequence[SceneBoundary], crossfade_frames: int) -> None:
    for prev, nxt in zip(scenes, scenes[1:]):
        if nxt.start_frame <= prev.start_frame:
            raise SceneConfigError(f"scene {nxt.name!r} does not start after {prev.name!r}")
        overlap = prev.end_frame - nxt.start_frame
        if overlap > crossfade_frames:
            raise SceneConfigError(
                f"{prev.name!r} overlaps {nxt.name!r} by {overlap} frames "
                f"(crossfade is {crossfade_frames})"
            )
    if scenes and scenes[0].start_frame < 0:
        raise SceneConfigError(f"scene {scenes[0].name!r} starts before frame 0")


def assemble_timeline(
    effective_seconds: float,
    policy: ScenePolicy = DEFAULT_POLICY,
) -> Timeline:
    """
    Build the full scene timeline.

    - hero: ``hero_seconds * fps`` from frame 0
    - content: starts ``crossfade_frames`` before hero ends
    - outro: starts ``content_core + breathing_room`` after content start
    - narration Sequence: ``[content_start, outro_start)``
    - music Sequence: the whole video

    Raises:
        SceneConfigError: if the policy cannot produce a valid layout.
        ValueError: if *effective_seconds* is negative.
    """
    policy.validate()
    if effective_seconds < 0:
        raise ValueError(f"effective_seconds must be >= 0, got {effective_seconds}")

    scenes = layout_scenes(scene_specs(effective_seconds, policy))
    _check_layout(scenes, policy.crossfade_frames)

    by_name = {s.name: s for s in scenes}
    content, outro = by_name["content"], by_name["outro"]
    total_frames = outro.end_frame

    audio_tracks = (
        SceneBoundary("music", 0, total_frames),
        SceneBoundary("narration", content.start_frame, outro.start_frame - content.start_frame),
    )

    logger.debug(
        "Timeline: content %d-%d, outro %d, total %d frames (%.1fs)",
        content.start_frame, content.end_frame, outro.start_frame,
        total_frames, total_frames / policy.fps,
    )

    return Timeline(
        scenes=tuple(scenes),
        total_frames=total_frames,
        crossfade_frames=policy.crossfade_frames,
        breathing_room_frames=policy.breathing_room_frames,
        fps=policy.fps,
        audio_tracks=audio_tracks,
    )
