"""Tests for narration_timeline.block_timing — caption windows and opacity."""

import pytest

from narration_timeline.block_timing import (
    uniform_windows,
    timed_windows,
    resolve_block_windows,
    find_window,
    calculate_opacity,
    get_block_timing,
    get_block_timing_debug,
)
from narration_timeline.config import ScenePolicy
from narration_timeline.editorial_blocks import build_editorial_blocks
from narration_timeline.models import BlockWindow, EditorialTextBlock, PhraseTimestamp, Weight


# Lead 6 frames, lag 3 frames: keeps every boundary off a .5 frame
POLICY = ScenePolicy(lag_seconds=0.1)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _make_block(start: float, end: float, weight: Weight = Weight.SUPPORT, text: str = "texto de prueba") -> EditorialTextBlock:
    return EditorialTextBlock((text,), weight, (0,), start, end)


def _spans(windows) -> list[tuple[int, int]]:
    return [(w.start_frame, w.end_frame) for w in windows]


# ---------------------------------------------------------------------------
# Uniform distribution
# ---------------------------------------------------------------------------

class TestUniformWindows:
    def test_even_split(self):
        assert _spans(uniform_windows(3, 900)) == [(0, 300), (300, 600), (600, 900)]

    @pytest.mark.parametrize("count,total", [(1, 100), (7, 1000), (11, 1185)])
    def test_contiguous_cover(self, count, total):
        windows = uniform_windows(count, total)
        assert windows[0].start_frame == 0
        assert windows[-1].end_frame == total
        for prev, nxt in zip(windows, windows[1:]):
            assert nxt.start_frame == prev.end_frame

    def test_no_blocks(self):
        assert uniform_windows(0, 900) == []

    def test_untimed_resolution_notes_fallback(self):
        blocks = [_make_block(0.0, 0.0) for _ in range(3)]
        notes = []
        windows = resolve_block_windows(blocks, 900, POLICY, timed=False, notes=notes)
        assert _spans(windows) == [(0, 300), (300, 600), (600, 900)]
        assert [n.code for n in notes] == ["uniform_fallback"]


# ---------------------------------------------------------------------------
# Timed windows
# ---------------------------------------------------------------------------

class TestTimedWindows:
    def test_lead_and_lag(self):
        blocks = [_make_block(1.0, 2.0), _make_block(3.0, 4.0)]
        assert _spans(timed_windows(blocks, None, POLICY)) == [(24, 63), (84, 123)]

    def test_previous_block_cut_where_next_starts(self):
        blocks = [_make_block(1.0, 3.0), _make_block(3.0, 4.0)]
        assert _spans(timed_windows(blocks, None, POLICY)) == [(24, 84), (84, 123)]

    def test_pause_before_punch(self):
        blocks = [_make_block(1.0, 2.0), _make_block(3.0, 4.0, Weight.PUNCH)]
        windows = timed_windows(blocks, None, POLICY)
        assert _spans(windows) == [(24, 63), (90, 123)]
        assert get_block_timing(86, windows, POLICY).current_block_index is None

    def test_pause_after_punch(self):
        blocks = [_make_block(1.0, 2.0, Weight.PUNCH), _make_block(3.0, 4.0)]
        assert _spans(timed_windows(blocks, None, POLICY))[1] == (90, 123)

    def test_scene_offset(self):
        blocks = [_make_block(1.0, 2.0)]
        assert _spans(timed_windows(blocks, None, POLICY, scene_offset_seconds=1.0)) == [(54, 93)]

    def test_first_window_clamped_to_zero(self):
        assert _spans(timed_windows([_make_block(0.0, 1.0)], None, POLICY))[0][0] == 0

    def test_clamped_to_scene_length(self):
        windows = timed_windows([_make_block(1.0, 2.0), _make_block(3.0, 4.0)], 100, POLICY)
        assert _spans(windows) == [(24, 63), (84, 100)]

    def test_windows_ordered_and_disjoint(self):
        texts = ["Hola", "mundo amigo", "¿qué pasa?", "los precios bajan otra vez hoy", "fin", "¡ya!"]
        phrases = [PhraseTimestamp(t, i * 0.9, i * 0.9 + 0.8) for i, t in enumerate(texts)]
        blocks = build_editorial_blocks(phrases, POLICY)
        windows = resolve_block_windows(blocks, 600, POLICY)
        assert [w.block_index for w in windows] == list(range(len(blocks)))
        for prev, nxt in zip(windows, windows[1:]):
            assert prev.start_frame <= prev.end_frame <= nxt.start_frame


# ---------------------------------------------------------------------------
# Per-frame queries
# ---------------------------------------------------------------------------

class TestGetBlockTiming:
    WINDOWS = [BlockWindow(0, 24, 63), BlockWindow(1, 84, 123)]

    def test_first_frame_of_window(self):
        timing = get_block_timing(24, self.WINDOWS, POLICY)
        assert timing.current_block_index == 0
        assert timing.opacity == 0.0
        assert timing.is_transitioning

    def test_hold(self):
        timing = get_block_timing(40, self.WINDOWS, POLICY)
        assert timing.current_block_index == 0
        assert timing.opacity == 1.0
        assert not timing.is_transitioning
        assert (timing.block_start_frame, timing.block_end_frame) == (24, 63)

    def test_gap_has_no_block(self):
        timing = get_block_timing(70, self.WINDOWS, POLICY)
        assert timing.current_block_index is None
        assert timing.opacity == 0.0

    def test_end_is_exclusive(self):
        assert get_block_timing(63, self.WINDOWS, POLICY).current_block_index is None
        assert get_block_timing(122, self.WINDOWS, POLICY).current_block_index == 1

    def test_no_windows(self):
        for frame in (0, 500, 1544):
            assert get_block_timing(frame, [], POLICY).current_block_index is None

    def test_index_never_decreases(self):
        seen = [get_block_timing(f, self.WINDOWS, POLICY).current_block_index for f in range(0, 130)]
        indices = [i for i in seen if i is not None]
        assert indices == sorted(indices)

    @pytest.mark.parametrize("frame,transitioning", [
        (105, True),
        (110, False),
        (115, False),
        (120, False),
        (125, True),
    ])
    def test_short_window_hold_is_not_transitioning(self, frame, transitioning):
        # 30-frame window: fades limited to 10 frames, hold on 110-120
        windows = [BlockWindow(0, 100, 130)]
        timing = get_block_timing(frame, windows, POLICY)
        assert timing.is_transitioning is transitioning
        if not transitioning:
            assert timing.opacity == 1.0

    def test_find_window(self):
        assert find_window(self.WINDOWS, 100) == self.WINDOWS[1]
        assert find_window(self.WINDOWS, 10) is None

    def test_debug_fields(self):
        debug = get_block_timing_debug(45, self.WINDOWS, 150, POLICY)
        assert debug["current_block_index"] == 0
        assert debug["current_second"] == 1.5
        assert debug["percent_complete"] == pytest.approx(30.0)


class TestCalculateOpacity:
    @pytest.mark.parametrize("relative,expected", [
        (0, 0.0),
        (15, 1.0),
        (45, 1.0),
        (82.5, 0.5),
        (90, 0.0),
    ])
    def test_fade_in_hold_fade_out(self, relative, expected):
        assert calculate_opacity(relative, 90, 15, 15) == pytest.approx(expected)

    def test_short_window_limits_fades(self):
        # 30-frame window: each fade limited to 10 frames
        assert calculate_opacity(5, 30, 15, 15) == pytest.approx(0.5)

    def test_empty_window(self):
        assert calculate_opacity(0, 0, 15, 15) == 0.0

    def test_no_fades(self):
        assert calculate_opacity(0, 30, 0, 0) == 1.0
