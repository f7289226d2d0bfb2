"""
Editorial text blocks.

Groups transcribed phrases into 1-2 line on-screen blocks and gives each
block a rhetorical weight (headline / support / punch).  Only the
presentation changes: blocks inherit their timing from the source phrases.
"""

from __future__ import annotations

import logging
import re
from dataclasses import replace
from typing import Callable, Optional, Sequence

from .config import DEFAULT_POLICY, SCRIPT_PHRASE_MAX_CHARS, ScenePolicy
from .models import EditorialTextBlock, PhraseTimestamp, TimingNote, Weight, count_words

logger = logging.getLogger(__name__)

_VERSION_PATTERN = re.compile(r"\d")
_SENTENCE_END = re.compile(r"(?<=[.!?…])\s+")
_CLAUSE_BREAK = re.compile(r"(?<=[,;:])\s+")
_PROPER_NOUN = re.compile(r"^[A-ZÁÉÍÓÚÑÜ]")


# ---------------------------------------------------------------------------
# Grouping
# ---------------------------------------------------------------------------

def can_group(
    current: PhraseTimestamp,
    following: PhraseTimestamp,
    policy: ScenePolicy = DEFAULT_POLICY,
) -> bool:
    """Two consecutive phrases share a block when close, short and compact."""
    gap = following.start_seconds - current.end_seconds
    if gap > policy.max_group_gap_seconds:
        return False
    if current.word_count + following.word_count > policy.max_words_for_grouping:
        return False
    combined_chars = len(current.text.strip()) + len(following.text.strip())
    return combined_chars <= policy.max_combined_chars


def group_phrases(
    phrases: Sequence[PhraseTimestamp],
    policy: ScenePolicy = DEFAULT_POLICY,
) -> list[EditorialTextBlock]:
    """Single left-to-right scan; every block starts as ``support``."""
    blocks: list[EditorialTextBlock] = []
    i = 0
    while i < len(phrases):
        current = phrases[i]
        following = phrases[i + 1] if i + 1 < len(phrases) else None

        if following is not None and can_group(current, following, policy):
            members = (i, i + 1)
        else:
            members = (i,)

        blocks.append(EditorialTextBlock(
            lines=tuple(phrases[j].text.strip() for j in members),
            weight=Weight.SUPPORT,
            phrase_indices=members,
            start_seconds=phrases[members[0]].start_seconds,
            end_seconds=phrases[members[-1]].end_seconds,
        ))
        i += len(members)
    return blocks


# ---------------------------------------------------------------------------
# Minimum duration
# ---------------------------------------------------------------------------

def _merge(first: EditorialTextBlock, second: EditorialTextBlock) -> EditorialTextBlock:
    return replace(
        first,
        lines=first.lines + second.lines,
        phrase_indices=first.phrase_indices + second.phrase_indices,
        end_seconds=second.end_seconds,
    )


def _mergeable(first: EditorialTextBlock, second: EditorialTextBlock, policy: ScenePolicy) -> bool:
    return (
        len(first.lines) + len(second.lines) <= 2
        and first.char_count + second.char_count <= policy.max_combined_chars
    )


def enforce_min_duration(
    blocks: Sequence[EditorialTextBlock],
    fps: int,
    policy: ScenePolicy = DEFAULT_POLICY,
    notes: Optional[list[TimingNote]] = None,
) -> list[EditorialTextBlock]:
    """
    Merge blocks shorter than ``min_block_duration_frames`` into the
    following block (the previous one for the last block).

    A merge never exceeds two lines or ``max_combined_chars``; a short
    block that cannot be merged is kept.
    """
    pending = list(blocks)
    result: list[EditorialTextBlock] = []
    i = 0
    while i < len(pending):
        block = pending[i]
        duration_frames = round(block.duration_seconds * fps)
        if duration_frames >= policy.min_block_duration_frames:
            result.append(block)
            i += 1
            continue

        if i + 1 < len(pending) and _mergeable(block, pending[i + 1], policy):
            pending[i + 1] = _merge(block, pending[i + 1])
            target = "next"
        elif i + 1 == len(pending) and result and _mergeable(result[-1], block, policy):
            result[-1] = _merge(result[-1], block)
            target = "previous"
        else:
            result.append(block)
            i += 1
            continue

        logger.debug("Merged %d-frame block %s into %s block", duration_frames, block.phrase_indices, target)
        if notes is not None:
            notes.append(TimingNote(
                "block_merged",
                f"block {list(block.phrase_indices)} lasted {duration_frames} frames; merged into {target} block",
                {"phrase_indices": list(block.phrase_indices), "duration_frames": duration_frames},
            ))
        i += 1
    return result


# ---------------------------------------------------------------------------
# Weight classification
# ---------------------------------------------------------------------------

def has_version_number(text: str) -> bool:
    """Digits signal model/version names (GPT-5, Opus 4.6...)."""
    return bool(_VERSION_PATTERN.search(text))


def has_proper_noun_mid_sentence(text: str) -> bool:
    """A capitalised word that does not open a sentence."""
    words = text.split()
    for previous, word in zip(words, words[1:]):
        if previous.endswith((".", "?", "!")):
            continue
        if len(word) > 1 and _PROPER_NOUN.match(word):
            return True
    return False


def _is_headline(block: EditorialTextBlock, index: int, total: int, policy: ScenePolicy) -> bool:
    first_line = block.lines[0]
    return index <= 1 or has_version_number(first_line) or has_proper_noun_mid_sentence(first_line)


def _is_punch(block: EditorialTextBlock, index: int, total: int, policy: ScenePolicy) -> bool:
    text = block.text.rstrip()
    return (
        block.word_count <= policy.max_words_for_punch
        or text.endswith(("?", "!"))
        or index == total - 1
    )


WeightRule = Callable[[EditorialTextBlock, int, int, ScenePolicy], bool]

WEIGHT_RULES: tuple[tuple[WeightRule, Weight], ...] = (
    (_is_headline, Weight.HEADLINE),
    (_is_punch, Weight.PUNCH),
)
"""Evaluated in order; the first matching predicate wins."""


def classify_weight(
    block: EditorialTextBlock,
    index: int,
    total: int,
    policy: ScenePolicy = DEFAULT_POLICY,
    rules: Sequence[tuple[WeightRule, Weight]] = WEIGHT_RULES,
) -> Weight:
    for predicate, weight in rules:
        if predicate(block, index, total, policy):
            return weight
    return Weight.SUPPORT


def assign_weights(
    blocks: Sequence[EditorialTextBlock],
    policy: ScenePolicy = DEFAULT_POLICY,
) -> list[EditorialTextBlock]:
    total = len(blocks)
    return [
        replace(block, weight=classify_weight(block, i, total, policy))
        for i, block in enumerate(blocks)
    ]


# ---------------------------------------------------------------------------
# Main entry-point
# ---------------------------------------------------------------------------

def build_editorial_blocks(
    phrases: Sequence[PhraseTimestamp],
    policy: ScenePolicy = DEFAULT_POLICY,
    *,
    timed: bool = True,
    notes: Optional[list[TimingNote]] = None,
) -> list[EditorialTextBlock]:
    """
    Build weighted editorial blocks from ordered phrases.

    1. Group close, short phrases into 2-line blocks
    2. Merge blocks too brief to read (skipped for untimed phrases)
    3. Classify each block's weight

    The phrase indices of the result partition ``range(len(phrases))``
    in order.
    """
    if not phrases:
        if notes is not None:
            notes.append(TimingNote("empty_script", "No phrases; no caption blocks"))
        return []

    blocks = group_phrases(phrases, policy)
    if timed:
        blocks = enforce_min_duration(blocks, policy.fps, policy, notes)

    # A single phrase is never split, so an over-long one stays over-long
    for block in blocks:
        if block.char_count > policy.max_combined_chars:
            logger.warning(
                "Block %s has %d chars (limit %d); pack phrases with ScenePolicy.phrase_chars",
                block.phrase_indices, block.char_count, policy.max_combined_chars,
            )
            if notes is not None:
                notes.append(TimingNote(
                    "block_overlong",
                    f"block {list(block.phrase_indices)} has {block.char_count} chars "
                    f"(limit {policy.max_combined_chars})",
                    {"phrase_indices": list(block.phrase_indices), "char_count": block.char_count},
                ))
    return assign_weights(blocks, policy)


# ---------------------------------------------------------------------------
# Untranscribed scripts
# ---------------------------------------------------------------------------

def _pack_words(text: str, max_chars: int) -> list[str]:
    chunks: list[str] = []
    current: list[str] = []
    for word in text.split():
        candidate = " ".join(current + [word])
        if current and len(candidate) > max_chars:
            chunks.append(" ".join(current))
            current = [word]
        else:
            current.append(word)
    if current:
        chunks.append(" ".join(current))
    return chunks


def split_script_into_phrases(
    text: str,
    max_chars: int = SCRIPT_PHRASE_MAX_CHARS,
) -> list[PhraseTimestamp]:
    """
    Split a narration script into readable phrases without timing.

    Sentences first, then long sentences at clause punctuation, then by
    packing words up to *max_chars*.  All phrases carry zero timing; they
    are meant for the uniform fallback layout.
    """
    normalized = " ".join(text.split())
    if not normalized:
        return []

    pieces: list[str] = []
    for sentence in _SENTENCE_END.split(normalized):
        if len(sentence) <= max_chars:
            pieces.append(sentence)
            continue
        for clause in _CLAUSE_BREAK.split(sentence):
            if len(clause) <= max_chars:
                pieces.append(clause)
            else:
                pieces.extend(_pack_words(clause, max_chars))

    return [
        PhraseTimestamp(text=piece, start_seconds=0.0, end_seconds=0.0)
        for piece in pieces
        if count_words(piece)
    ]
