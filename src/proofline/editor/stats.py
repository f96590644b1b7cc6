"""Local writing statistics computed on every keystroke."""

from __future__ import annotations

import re
from dataclasses import asdict, dataclass

__all__ = ["WritingStats", "compute_stats", "READING_WPM", "SPEAKING_WPM"]

READING_WPM = 225
SPEAKING_WPM = 130
_SENTENCE_SPLIT_RE = re.compile(r"[.!?]+")
_PARAGRAPH_SPLIT_RE = re.compile(r"\n\n+")


@dataclass(slots=True, frozen=True)
class WritingStats:
    """Counts and estimates derived from the document text."""

    word_count: int = 0
    character_count: int = 0
    sentence_count: int = 0
    paragraph_count: int = 0
    reading_time: float = 0.0
    speaking_time: float = 0.0
    readability_score: int = 0

    @classmethod
    def empty(cls) -> WritingStats:
        return cls()

    def to_dict(self) -> dict[str, int | float]:
        return asdict(self)


def compute_stats(text: str) -> WritingStats:
    """Return :class:`WritingStats` for ``text``.

    Blank documents short-circuit to all-zero stats instead of running the
    readability formula, which would otherwise report a perfect score.
    """

    if not text or not text.strip():
        return WritingStats.empty()

    word_count = len(text.split())
    character_count = len(text)
    sentence_count = sum(1 for piece in _SENTENCE_SPLIT_RE.split(text) if piece.strip())
    paragraph_count = sum(1 for piece in _PARAGRAPH_SPLIT_RE.split(text) if piece.strip())

    avg_sentence_length = word_count / sentence_count if sentence_count else 0.0
    avg_word_length = character_count / word_count if word_count else 0.0
    raw_score = 100 - (avg_sentence_length * 1.5) - (avg_word_length * 5) + 50
    readability = _round_half_up(max(0.0, min(100.0, raw_score)))

    return WritingStats(
        word_count=word_count,
        character_count=character_count,
        sentence_count=sentence_count,
        paragraph_count=paragraph_count,
        reading_time=word_count / READING_WPM,
        speaking_time=word_count / SPEAKING_WPM,
        readability_score=readability,
    )


def _round_half_up(value: float) -> int:
    # builtin round() uses banker's rounding; scores round .5 upwards
    return int(value + 0.5)
