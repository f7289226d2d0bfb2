"""Tests for narration_timeline.duration_reconciler — effective audio duration."""

import math

import pytest

from narration_timeline.duration_reconciler import (
    reconcile_duration,
    effective_audio_duration,
    video_duration_seconds,
    redistribute_segments,
)
from narration_timeline.config import ScenePolicy
from narration_timeline.models import PhraseTimestamp


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _phrases_ending_at(end: float, count: int = 3) -> list[PhraseTimestamp]:
    """Evenly spaced phrases whose last one ends at *end*."""
    step = end / count
    return [
        PhraseTimestamp(f"frase {i}", round(i * step, 2), round((i + 1) * step, 2))
        for i in range(count)
    ]


def _codes(result) -> list[str]:
    return [n.code for n in result.notes]


# ---------------------------------------------------------------------------
# No transcription
# ---------------------------------------------------------------------------

class TestWithoutTranscription:
    def test_identity_on_estimate(self):
        result = reconcile_duration(30.0)
        assert result.effective_seconds == 30.0
        assert result.transcribed_end_seconds is None
        assert not result.corrected

    def test_empty_transcription_treated_as_missing(self):
        result = reconcile_duration(30.0, [])
        assert result.effective_seconds == 30.0
        assert _codes(result) == ["missing_transcription"]

    def test_zero_estimate(self):
        assert reconcile_duration(0.0).effective_seconds == 0.0

    @pytest.mark.parametrize("estimate", [0.0, 5.5, 30.0, 59.9, 60.0, 75.0, 120.0])
    def test_capped_estimate(self, estimate):
        assert reconcile_duration(estimate).effective_seconds == min(estimate, 60.0)

    def test_long_estimate_notes_cap(self):
        result = reconcile_duration(75.0)
        assert result.capped
        assert "duration_capped" in _codes(result)


# ---------------------------------------------------------------------------
# Transcription longer than the estimate
# ---------------------------------------------------------------------------

class TestCorrection:
    def test_scenario_transcription_ends_at_52(self):
        phrases = _phrases_ending_at(52.0)
        result = reconcile_duration(40.0, phrases)
        assert result.effective_seconds == 53.0
        assert result.transcribed_end_seconds == 52.0
        assert result.corrected
        assert _codes(result) == ["duration_corrected"]

    def test_fractional_end_rounds_up_plus_margin(self):
        result = reconcile_duration(30.0, _phrases_ending_at(31.2))
        assert result.effective_seconds == 33.0

    def test_discrepancy_above_threshold_noted(self):
        result = reconcile_duration(20.0, _phrases_ending_at(35.2))
        assert result.effective_seconds == 37.0
        assert "duration_discrepancy" in _codes(result)

    def test_discrepancy_threshold_configurable(self):
        result = reconcile_duration(20.0, _phrases_ending_at(35.2), discrepancy_threshold=2.0)
        assert "duration_discrepancy" not in _codes(result)

    def test_overflow_capped(self):
        result = reconcile_duration(50.0, _phrases_ending_at(59.5))
        assert result.uncapped_seconds == 61.0
        assert result.effective_seconds == 60.0
        assert result.capped
        assert _codes(result) == ["duration_corrected", "duration_capped"]

    def test_transcription_shorter_than_estimate_keeps_estimate(self):
        result = reconcile_duration(45.0, _phrases_ending_at(44.0))
        assert result.effective_seconds == 45.0
        assert not result.corrected
        assert result.notes == ()

    @pytest.mark.parametrize("end", [30.5, 41.0, 47.9, 58.0, 70.0])
    def test_at_least_ceil_plus_one(self, end):
        effective = reconcile_duration(30.0, _phrases_ending_at(end)).effective_seconds
        assert effective == min(math.ceil(end) + 1, 60.0)
        assert effective >= 30.0


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

class TestValidation:
    def test_negative_estimate_rejected(self):
        with pytest.raises(ValueError):
            reconcile_duration(-1.0)

    def test_nan_estimate_rejected(self):
        with pytest.raises(ValueError):
            reconcile_duration(float("nan"))

    def test_policy_shortcut(self):
        policy = ScenePolicy(max_short_seconds=45.0)
        assert effective_audio_duration(40.0, _phrases_ending_at(52.0), policy) == 45.0


# ---------------------------------------------------------------------------
# Export sizing and image segments
# ---------------------------------------------------------------------------

class TestVideoDuration:
    def test_short_narration_uses_content_floor(self):
        # 8 + max(37, 31) + 1.5 + 5 = 51.5
        assert video_duration_seconds(30.0) == 52

    def test_long_narration(self):
        # 8 + 51 + 1.5 + 5 = 65.5
        assert video_duration_seconds(50.0) == 66


class TestRedistributeSegments:
    def test_uniform_boundaries(self):
        segments = [{"query": "a"}, {"query": "b"}, {"query": "c"}]
        result = redistribute_segments(segments, 45.0, 40.0)
        assert [(s["startSecond"], s["endSecond"]) for s in result] == [(0, 15), (15, 30), (30, 45)]
        assert [s["query"] for s in result] == ["a", "b", "c"]

    def test_unchanged_when_duration_matches(self):
        segments = [{"startSecond": 0, "endSecond": 20}]
        assert redistribute_segments(segments, 40.0, 40.0) == segments

    def test_empty(self):
        assert redistribute_segments([], 45.0, 40.0) == []
