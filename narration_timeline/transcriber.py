"""
Whisper transcription via the OpenAI API.

Produces word-level timestamps for the narration audio and packs them
into the phrase timestamps the editorial block builder consumes.
The engine itself never calls the API: callers transcribe first and pass
the phrases in, or omit them when transcription is unavailable.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any

from dotenv import find_dotenv, load_dotenv

from .config import CHARS_PER_PHRASE
from .models import PhraseTimestamp, WordTimestamp

logger = logging.getLogger(__name__)


def _load_openai_key() -> str:
    """Return OPENAI_API_KEY, loading the nearest .env if it is not set."""
    existing = os.environ.get("OPENAI_API_KEY", "")
    if existing and not existing.startswith("sk-xxxxx"):
        return existing
    load_dotenv(find_dotenv(usecwd=True), override=False)
    return os.environ.get("OPENAI_API_KEY", "")


# ---------------------------------------------------------------------------
# OpenAI Whisper API transcription
# ---------------------------------------------------------------------------

def transcribe_api(audio_path: str) -> dict[str, Any]:
    """
    Transcribe audio via the OpenAI Whisper API.

    Requires ``OPENAI_API_KEY`` (environment or ``.env``).

    Returns:
        Dict with ``words`` list of ``{word, start, end}`` dicts.
    """
    try:
        import openai
    except ImportError as exc:
        raise RuntimeError(
            "openai package not installed. Run `pip install openai`."
        ) from exc

    api_key = _load_openai_key()
    if not api_key or api_key.startswith("sk-xxxxx"):
        raise RuntimeError(
            "OPENAI_API_KEY not configured. "
            "Set your real key in .env (project root) or as an environment variable."
        )

    client = openai.OpenAI(api_key=api_key)

    with open(audio_path, "rb") as f:
        result = client.audio.transcriptions.create(
            model="whisper-1",
            file=f,
            response_format="verbose_json",
            timestamp_granularities=["word"],
        )

    return result.model_dump() if hasattr(result, "model_dump") else dict(result)


# ---------------------------------------------------------------------------
# Word extraction
# ---------------------------------------------------------------------------

def _word(w: dict[str, Any]) -> WordTimestamp:
    return WordTimestamp(
        text=str(w.get("word", w.get("text", ""))).strip(),
        start_seconds=float(w.get("start", 0)),
        end_seconds=float(w.get("end", 0)),
    )


def extract_words(raw_result: dict[str, Any]) -> list[WordTimestamp]:
    """
    Normalise Whisper API output into a flat list of WordTimestamp objects.
    """
    # API format: flat list at top level
    if isinstance(raw_result.get("words"), list):
        words = [_word(w) for w in raw_result["words"]]
    else:
        # Older response format: words nested in segments
        words = [
            _word(w)
            for segment in raw_result.get("segments", [])
            for w in segment.get("words", [])
        ]
    return [w for w in words if w.text]


# ---------------------------------------------------------------------------
# Phrase grouping
# ---------------------------------------------------------------------------

def _make_phrase(words: list[WordTimestamp]) -> PhraseTimestamp:
    return PhraseTimestamp(
        text=" ".join(w.text for w in words),
        start_seconds=words[0].start_seconds,
        end_seconds=words[-1].end_seconds,
        words=tuple(words),
    )


def group_into_phrases(
    words: list[WordTimestamp],
    chars_per_phrase: int = CHARS_PER_PHRASE,
) -> list[PhraseTimestamp]:
    """
    Pack consecutive words into phrases of at most *chars_per_phrase*
    characters (each word counts one extra character for its space).

    A phrase is closed before the word that would overflow it, so a single
    word longer than the limit still becomes its own phrase.
    """
    phrases: list[PhraseTimestamp] = []
    current: list[WordTimestamp] = []
    char_count = 0

    for word in words:
        word_length = len(word.text) + 1
        if current and char_count + word_length > chars_per_phrase:
            phrases.append(_make_phrase(current))
            current = []
            char_count = 0
        current.append(word)
        char_count += word_length

    if current:
        phrases.append(_make_phrase(current))

    logger.debug("Grouped %d words into %d phrases", len(words), len(phrases))
    return phrases


# ---------------------------------------------------------------------------
# Persist / load helpers
# ---------------------------------------------------------------------------

def save_whisper_raw(raw_result: dict[str, Any], output_path: str | Path) -> Path:
    """Write the raw Whisper JSON to disk (backup)."""
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w") as f:
        json.dump(raw_result, f, indent=2, default=str)
    return output_path


def load_whisper_raw(path: str | Path) -> dict[str, Any]:
    """Load a previously saved raw Whisper JSON."""
    with open(path) as f:
        return json.load(f)


def _audio_fingerprint(audio_path: str | Path) -> dict[str, Any]:
    audio_p = Path(audio_path)
    stat = audio_p.stat() if audio_p.exists() else None
    return {
        "audio_path": str(audio_p.resolve()),
        "audio_size": stat.st_size if stat else 0,
        "audio_mtime": stat.st_mtime if stat else 0,
    }


# ---------------------------------------------------------------------------
# Main entry-point
# ---------------------------------------------------------------------------

def transcribe(
    audio_path: str,
    *,
    cache_dir: str | Path | None = None,
    chars_per_phrase: int = CHARS_PER_PHRASE,
) -> list[PhraseTimestamp]:
    """
    Transcribe *audio_path* and return phrase timestamps.

    If *cache_dir* is provided, the raw Whisper JSON is saved there as
    ``whisper_raw.json`` and reused while the audio file is unchanged
    (same path, size and mtime).
    """
    if cache_dir is not None:
        cache_file = Path(cache_dir) / "whisper_raw.json"
        meta_file = Path(cache_dir) / "whisper_cache_meta.json"
        if cache_file.exists() and meta_file.exists():
            meta = json.loads(meta_file.read_text())
            if meta == _audio_fingerprint(audio_path):
                logger.info("Using cached transcription from %s", cache_file)
                words = extract_words(load_whisper_raw(cache_file))
                return group_into_phrases(words, chars_per_phrase)

    raw = transcribe_api(audio_path)

    if cache_dir is not None:
        save_whisper_raw(raw, Path(cache_dir) / "whisper_raw.json")
        meta_file = Path(cache_dir) / "whisper_cache_meta.json"
        meta_file.write_text(json.dumps(_audio_fingerprint(audio_path)))

    words = extract_words(raw)
    logger.info("Transcribed %d words from %s", len(words), audio_path)
    return group_into_phrases(words, chars_per_phrase)
