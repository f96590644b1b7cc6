"""Tests for suggestion re-anchoring."""

from __future__ import annotations

from proofline.analysis.models import Suggestion, SuggestionKind
from proofline.analysis.reanchor import find_nearest, reanchor
from proofline.core.ranges import TextSpan


def _suggestion(original: str, start: int, end: int) -> Suggestion:
    return Suggestion(
        id="s1",
        kind=SuggestionKind.SPELLING,
        original=original,
        replacement="fixed",
        message="",
        span=TextSpan(start, end),
    )


def test_stored_span_wins_when_it_still_matches() -> None:
    suggestion = _suggestion("teh", 10, 13)
    text = "teh start teh end"

    assert reanchor(suggestion, text) == TextSpan(10, 13)


def test_relocates_after_text_was_inserted_before_span() -> None:
    suggestion = _suggestion("Teh", 0, 3)

    assert reanchor(suggestion, "Well, teh cat.") == TextSpan(6, 9)


def test_returns_none_when_original_was_edited_away() -> None:
    suggestion = _suggestion("Teh", 0, 3)

    assert reanchor(suggestion, "The cat.") is None


def test_span_past_end_of_text_falls_back_to_search() -> None:
    suggestion = _suggestion("cat", 40, 43)

    assert reanchor(suggestion, "A cat.") == TextSpan(2, 5)


def test_find_nearest_picks_occurrence_closest_to_anchor() -> None:
    text = "ab ab ab ab"

    assert find_nearest(text, "AB", 0) == TextSpan(0, 2)
    assert find_nearest(text, "ab", 7) == TextSpan(6, 8)
    assert find_nearest(text, "ab", 100) == TextSpan(9, 11)
    assert find_nearest(text, "zz", 3) is None
    assert find_nearest(text, "", 3) is None
