"""Tests for narration_timeline.transcriber — Whisper output handling (no API calls)."""

import json

import pytest

import narration_timeline.transcriber as transcriber
from narration_timeline.transcriber import (
    _audio_fingerprint,
    extract_words,
    group_into_phrases,
    save_whisper_raw,
    transcribe,
)
from narration_timeline.models import PhraseTimestamp, WordTimestamp


RAW = {
    "words": [
        {"word": " uno", "start": 0.0, "end": 0.3},
        {"word": "dos", "start": 0.4, "end": 0.7},
        {"word": "  ", "start": 0.7, "end": 0.8},
        {"word": "tres", "start": 0.9, "end": 1.4},
    ]
}


def _make_words(*texts: str) -> list[WordTimestamp]:
    return [WordTimestamp(t, i * 0.5, i * 0.5 + 0.4) for i, t in enumerate(texts)]


class TestExtractWords:
    def test_flat_words(self):
        words = extract_words(RAW)
        assert [w.text for w in words] == ["uno", "dos", "tres"]
        assert words[2].start_seconds == 0.9

    def test_segment_words(self):
        raw = {"segments": [
            {"words": [{"word": "hola", "start": 0.0, "end": 0.4}]},
            {"words": [{"word": "mundo", "start": 0.5, "end": 0.9}]},
        ]}
        assert [w.text for w in extract_words(raw)] == ["hola", "mundo"]

    def test_empty(self):
        assert extract_words({}) == []


class TestGroupIntoPhrases:
    def test_closes_before_overflow(self):
        phrases = group_into_phrases(_make_words("uno", "dos", "tres"), chars_per_phrase=12)
        assert [p.text for p in phrases] == ["uno dos", "tres"]
        assert (phrases[0].start_seconds, phrases[0].end_seconds) == (0.0, 0.9)
        assert phrases[1].words[0].text == "tres"

    def test_long_word_own_phrase(self):
        phrases = group_into_phrases(_make_words("a", "supercalifragilistico", "b"), chars_per_phrase=10)
        assert [p.text for p in phrases] == ["a", "supercalifragilistico", "b"]

    def test_all_words_kept_in_order(self):
        words = _make_words(*"la empresa presentó su nuevo modelo de lenguaje esta semana".split())
        phrases = group_into_phrases(words, chars_per_phrase=20)
        assert [w for p in phrases for w in p.words] == words

    def test_no_words(self):
        assert group_into_phrases([]) == []


class TestPhraseFromDict:
    @pytest.mark.parametrize("data", [
        {"text": "hola", "startSeconds": 1.0, "endSeconds": 2.0},
        {"text": "hola", "start_seconds": 1.0, "end_seconds": 2.0},
        {"text": "hola", "start": 1.0, "end": 2.0},
    ])
    def test_key_styles(self, data):
        assert PhraseTimestamp.from_dict(data) == PhraseTimestamp("hola", 1.0, 2.0)


class TestTranscribeCache:
    def test_uses_cache_when_audio_unchanged(self, tmp_path, monkeypatch):
        audio = tmp_path / "narration.mp3"
        audio.write_bytes(b"\x00" * 128)
        save_whisper_raw(RAW, tmp_path / "whisper_raw.json")
        (tmp_path / "whisper_cache_meta.json").write_text(json.dumps(_audio_fingerprint(audio)))

        def _no_api(path):
            raise AssertionError("API should not be called")

        monkeypatch.setattr(transcriber, "transcribe_api", _no_api)
        phrases = transcribe(str(audio), cache_dir=tmp_path)
        assert [p.text for p in phrases] == ["uno dos tres"]

    def test_calls_api_and_writes_cache(self, tmp_path, monkeypatch):
        audio = tmp_path / "narration.mp3"
        audio.write_bytes(b"\x00" * 64)
        calls = []

        def _fake_api(path):
            calls.append(path)
            return RAW

        monkeypatch.setattr(transcriber, "transcribe_api", _fake_api)
        phrases = transcribe(str(audio), cache_dir=tmp_path / "cache")
        assert calls == [str(audio)]
        assert phrases[0].end_seconds == 1.4
        assert (tmp_path / "cache" / "whisper_raw.json").exists()
        assert (tmp_path / "cache" / "whisper_cache_meta.json").exists()

    def test_missing_key_raises(self, tmp_path, monkeypatch):
        monkeypatch.setattr(transcriber, "_load_openai_key", lambda: "")
        with pytest.raises(RuntimeError):
            transcriber.transcribe_api(str(tmp_path / "narration.mp3"))
