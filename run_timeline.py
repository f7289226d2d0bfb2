#!/usr/bin/env python3
"""
Narration timeline runner.

Builds the synchronized timeline for one video from a JSON request and
prints a summary; optionally writes render_config.json.

Usage:
    python3 run_timeline.py request.json
    python3 run_timeline.py request.json --output-dir timing/vid123
    python3 run_timeline.py request.json --audio narration.mp3   # transcribe via Whisper

Request file::

    {
      "video_id": "vid123",
      "audio_path": "audio/narration.mp3",
      "estimated_duration_seconds": 42.5,
      "script": "Optional narration text for the untranscribed fallback",
      "phrase_timestamps": [{"text": "...", "startSeconds": 0.0, "endSeconds": 1.2}],
      "words": [{"word": "...", "start": 0.0, "end": 0.3}]
    }
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

from narration_timeline import AudioLevels, NarrationTimelineEngine, SceneConfigError, ScenePolicy
from narration_timeline.models import PhraseTimestamp
from narration_timeline.transcriber import extract_words, group_into_phrases, transcribe

logger = logging.getLogger("run_timeline")


def load_phrases(request: dict, chars_per_phrase: int) -> list[PhraseTimestamp] | None:
    """Phrases from the request: explicit phrases first, then raw Whisper words."""
    if request.get("phrase_timestamps"):
        return [PhraseTimestamp.from_dict(p) for p in request["phrase_timestamps"]]
    if request.get("words"):
        return group_into_phrases(extract_words({"words": request["words"]}), chars_per_phrase)
    return None


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Build a narration-synced video timeline")
    parser.add_argument("request", help="Path to the JSON request file")
    parser.add_argument("--audio", help="Transcribe this audio file with Whisper")
    parser.add_argument("--output-dir", help="Write render_config.json and block_timing.json here")
    parser.add_argument("--env-file", help="Explicit .env file for NARRATION_* overrides")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    load_dotenv(args.env_file)

    request = json.loads(Path(args.request).read_text())

    try:
        engine = NarrationTimelineEngine(
            ScenePolicy.from_env(dotenv_path=args.env_file),
            AudioLevels.from_env(dotenv_path=args.env_file),
        )
    except SceneConfigError as e:
        print(f"❌ Invalid scene configuration: {e}")
        return 2

    phrase_chars = engine.policy.phrase_chars
    phrases = load_phrases(request, phrase_chars)
    if phrases is None and args.audio:
        try:
            phrases = transcribe(args.audio, cache_dir=args.output_dir, chars_per_phrase=phrase_chars)
        except (RuntimeError, OSError) as e:
            logger.warning("Transcription unavailable, using uniform captions: %s", e)

    try:
        result = engine.run(
            float(request["estimated_duration_seconds"]),
            phrases,
            script_text=request.get("script"),
        )
    except SceneConfigError as e:
        print(f"❌ Invalid scene configuration: {e}")
        return 2

    timeline = result.timeline
    print(f"🎬 Timeline: {request.get('video_id', 'video')}")
    print("=" * 60)
    print(f"  Narration:  {result.effective_audio_duration:.1f}s "
          f"({'transcribed' if result.timed else 'uniform captions'})")
    for scene in timeline.scenes + timeline.audio_tracks:
        print(f"  {scene.name:<10} {scene.start_frame:>6} -> {scene.end_frame:<6} ({scene.duration_frames} frames)")
    print(f"  Total:      {timeline.total_frames} frames ({timeline.duration_seconds:.2f}s @ {timeline.fps}fps)")
    print(f"  Blocks:     {len(result.blocks)}")
    for block, window in zip(result.blocks, result.windows):
        print(f"    [{window.start_frame:>5}-{window.end_frame:<5}] {block.weight.value:<8} {block.text}")
    for note in result.notes:
        print(f"  ℹ️  {note.code}: {note.message}")

    if args.output_dir:
        engine.generate_render_config(
            video_id=request.get("video_id", "video"),
            audio_path=args.audio or request.get("audio_path", ""),
            result=result,
            output_dir=args.output_dir,
        )
        print(f"✅ Render config written to {args.output_dir}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
