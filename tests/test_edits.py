"""Tests for applying suggestions to document text."""

from __future__ import annotations

import itertools

import pytest

from proofline.analysis.models import Suggestion, SuggestionKind
from proofline.core.ranges import TextSpan
from proofline.editor.edits import apply_all, apply_suggestion, summarize_edit


def _suggestion(sid: str, original: str, replacement: str, start: int, end: int | None = None) -> Suggestion:
    return Suggestion(
        id=sid,
        kind=SuggestionKind.GRAMMAR,
        original=original,
        replacement=replacement,
        message="",
        span=TextSpan(start, start + len(original) if end is None else end),
    )


def test_apply_shifts_later_suggestions_by_length_delta() -> None:
    text = "abcdef"
    first = _suggestion("a", "a", "XXX", 0)
    second = _suggestion("d", "d", "Y", 3)

    result = apply_suggestion(first, text, [first, second])

    assert result.applied
    assert result.text == "XXXbcdef"
    [moved] = result.pending
    assert moved.span == TextSpan(5, 6)
    assert moved.span.slice_of(result.text) == "d"

    final = apply_suggestion(moved, result.text, result.pending)
    assert final.text == "XXXbcYef"
    assert final.pending == ()


def test_apply_leaves_preceding_suggestions_in_place() -> None:
    text = "one two three"
    early = _suggestion("one", "one", "1", 0)
    late = _suggestion("three", "three", "3", 8)

    result = apply_suggestion(late, text, [early, late])

    assert result.text == "one two 3"
    assert result.pending == (early,)


def test_apply_drops_suggestion_whose_text_is_gone() -> None:
    stale = _suggestion("s", "Teh", "The", 0)
    other = _suggestion("o", "cat", "dog", 4)

    result = apply_suggestion(stale, "The cat.", [stale, other])

    assert not result.applied
    assert result.text == "The cat."
    assert result.pending == (other,)
    assert result.span is None


def test_apply_reanchors_when_stored_span_drifted() -> None:
    suggestion = _suggestion("s", "teh", "the", 0)

    result = apply_suggestion(suggestion, "So teh end.", [suggestion])

    assert result.text == "So the end."
    assert result.span == TextSpan(3, 6)


def test_overlapped_suggestion_is_dropped_or_reanchored() -> None:
    text = "big red dog and red car"
    phrase = _suggestion("phrase", "big red dog", "small cat", 0)
    overlapped = _suggestion("red", "red", "blue", 4)

    result = apply_suggestion(phrase, text, [phrase, overlapped])

    assert result.text == "small cat and red car"
    [survivor] = result.pending
    assert survivor.span.slice_of(result.text) == "red"
    assert survivor.matches(result.text)


def test_every_pending_span_stays_valid_after_apply() -> None:
    text = "Teh quick brwon fox jumpd over teh dog."
    pending = [
        _suggestion("1", "Teh", "The", 0),
        _suggestion("2", "brwon", "brown", 10),
        _suggestion("3", "jumpd", "jumped", 20),
        _suggestion("4", "teh", "the", 31),
    ]

    current, remaining = text, list(pending)
    while remaining:
        result = apply_suggestion(remaining[0], current, remaining)
        current, remaining = result.text, list(result.pending)
        assert all(item.matches(current) for item in remaining)

    assert current == "The quick brown fox jumped over the dog."


def test_apply_all_matches_sequential_application_in_any_order() -> None:
    text = "Teh quick brwon fox jumpd over teh dog."
    pending = [
        _suggestion("1", "Teh", "The", 0),
        _suggestion("2", "brwon", "brown", 10),
        _suggestion("3", "jumpd", "jumped", 20),
        _suggestion("4", "teh", "the", 31),
    ]

    batch = apply_all(pending, text)

    for order in itertools.permutations(pending):
        current, remaining = text, list(pending)
        for item in order:
            target = next(candidate for candidate in remaining if candidate.id == item.id)
            result = apply_suggestion(target, current, remaining)
            current, remaining = result.text, list(result.pending)
        assert current == batch.text
    assert len(batch.applied) == 4
    assert batch.skipped == ()


def test_apply_all_skips_unlocatable_suggestions() -> None:
    pending = [
        _suggestion("1", "cat", "dog", 4),
        _suggestion("2", "zebra", "horse", 10),
    ]

    batch = apply_all(pending, "The cat sat.")

    assert batch.text == "The dog sat."
    assert [item.id for item in batch.applied] == ["1"]
    assert [item.id for item in batch.skipped] == ["2"]


@pytest.mark.parametrize(
    ("before", "after", "expected"),
    [("abc", "abc", "edit: Δ0"), ("abc", "abcd", "edit: +1 chars"), ("abcd", "a", "edit: -3 chars")],
)
def test_summarize_edit(before: str, after: str, expected: str) -> None:
    assert summarize_edit(before, after) == expected
