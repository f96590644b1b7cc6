"""Boundary validation for suggestions returned by the analysis backend.

The backend is an untrusted, non-deterministic source: offsets may drift,
``original`` may not match the document, and some candidates are no-ops.
Everything that cannot be anchored to the exact text the request was issued
for is filtered here, so every accepted span holds its ``original`` text.
"""

from __future__ import annotations

import logging
import uuid
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Mapping

from ..core.ranges import TextSpan
from .models import DEFAULT_MESSAGE, LOW_VALUE_KINDS, Suggestion, SuggestionKind
from .reanchor import find_nearest

__all__ = [
    "RejectReason",
    "SuggestionValidator",
    "ValidationReport",
    "validate_suggestions",
]

LOGGER = logging.getLogger(__name__)
_FUZZY_PREFIX_CHARS = 3

IdFactory = Callable[[], str]


class RejectReason:
    """Reason codes recorded for filtered candidates."""

    MALFORMED = "malformed"
    MISSING_TEXT = "missing_text"
    NO_OP = "no_op"
    BAD_OFFSETS = "bad_offsets"
    TEXT_MISMATCH = "text_mismatch"
    LOW_VALUE = "low_value"


@dataclass(slots=True)
class ValidationReport:
    """Outcome of validating one backend response."""

    accepted: list[Suggestion] = field(default_factory=list)
    rejected: Counter[str] = field(default_factory=Counter)

    @property
    def rejected_total(self) -> int:
        return sum(self.rejected.values())


def _default_id_factory() -> str:
    return f"ai-{uuid.uuid4().hex}"


class SuggestionValidator:
    """Filters raw candidates and normalizes them into :class:`Suggestion` records."""

    def __init__(self, *, id_factory: IdFactory | None = None) -> None:
        self._id_factory = id_factory or _default_id_factory

    def validate(self, raw: Iterable[Any], source_text: str, *, strict: bool = False) -> list[Suggestion]:
        return self.validate_with_report(raw, source_text, strict=strict).accepted

    def validate_with_report(
        self,
        raw: Iterable[Any],
        source_text: str,
        *,
        strict: bool = False,
    ) -> ValidationReport:
        report = ValidationReport()
        for index, candidate in enumerate(raw or ()):
            suggestion, reason = self._normalize(candidate, source_text)
            if suggestion is not None and strict and suggestion.kind in LOW_VALUE_KINDS:
                suggestion, reason = None, RejectReason.LOW_VALUE
            if suggestion is None:
                report.rejected[reason or RejectReason.MALFORMED] += 1
                LOGGER.debug("Dropped backend suggestion #%s (%s)", index, reason)
                continue
            report.accepted.append(suggestion)
        if report.rejected:
            LOGGER.debug(
                "Validated %s suggestion(s), rejected %s: %s",
                len(report.accepted),
                report.rejected_total,
                dict(report.rejected),
            )
        return report

    def _normalize(self, candidate: Any, source_text: str) -> tuple[Suggestion | None, str | None]:
        if not isinstance(candidate, Mapping):
            return None, RejectReason.MALFORMED

        original = candidate.get("original")
        replacement = candidate.get("replacement")
        if not isinstance(original, str) or not isinstance(replacement, str):
            return None, RejectReason.MISSING_TEXT
        if not original or not replacement:
            return None, RejectReason.MISSING_TEXT
        if original.strip() == replacement.strip():
            return None, RejectReason.NO_OP

        start = _coerce_offset(candidate.get("startIndex", 0))
        end = _coerce_offset(candidate.get("endIndex", 0))
        if start is None or end is None:
            return None, RejectReason.BAD_OFFSETS
        if start < 0 or end > len(source_text) or end <= start:
            return None, RejectReason.BAD_OFFSETS

        actual = source_text[start:end]
        if not _plausible_match(actual, original):
            return None, RejectReason.TEXT_MISMATCH
        span = TextSpan(start, end)
        if actual.lower() != original.lower():
            # Near miss: snap to the real occurrence so the span holds ``original``.
            relocated = find_nearest(source_text, original, start)
            if relocated is None:
                return None, RejectReason.TEXT_MISMATCH
            span = relocated

        message = candidate.get("message")
        suggestion = Suggestion(
            id=self._id_factory(),
            kind=SuggestionKind.coerce(candidate.get("type")),
            original=original,
            replacement=replacement,
            message=message if isinstance(message, str) and message.strip() else DEFAULT_MESSAGE,
            span=span,
        )
        return suggestion, None


def validate_suggestions(
    raw: Iterable[Any],
    source_text: str,
    *,
    strict: bool = False,
    id_factory: IdFactory | None = None,
) -> list[Suggestion]:
    """Validate ``raw`` backend candidates against ``source_text``."""

    return SuggestionValidator(id_factory=id_factory).validate(raw, source_text, strict=strict)


def _coerce_offset(value: Any) -> int | None:
    if value is None:
        return 0
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return None


def _plausible_match(actual: str, original: str) -> bool:
    actual_lower = actual.lower()
    original_lower = original.lower()
    if actual_lower == original_lower:
        return True
    # Tolerate small backend misalignment: a shared three-character prefix.
    original_prefix = original_lower[:_FUZZY_PREFIX_CHARS]
    actual_prefix = actual_lower[:_FUZZY_PREFIX_CHARS]
    if original_prefix and original_prefix in actual_lower:
        return True
    return bool(actual_prefix) and actual_prefix in original_lower
