"""Dataclasses shared across the analysis package."""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Any

from ..core.ranges import TextSpan

DEFAULT_MESSAGE = "Suggestion from AI"


class SuggestionKind(str, Enum):
    """Categories a proofreading suggestion can belong to."""

    GRAMMAR = "grammar"
    SPELLING = "spelling"
    CLARITY = "clarity"
    STYLE = "style"
    PUNCTUATION = "punctuation"

    @classmethod
    def coerce(cls, value: Any) -> SuggestionKind:
        """Map a backend ``type`` string onto a known kind, defaulting to grammar."""

        if isinstance(value, SuggestionKind):
            return value
        if isinstance(value, str):
            normalized = value.strip().lower()
            for kind in cls:
                if kind.value == normalized:
                    return kind
        return cls.GRAMMAR


# Preference edits suppressed once a document has passed a full acceptance cycle.
LOW_VALUE_KINDS: frozenset[SuggestionKind] = frozenset({SuggestionKind.STYLE, SuggestionKind.CLARITY})


class AnalysisReason(str, Enum):
    """Why an analysis pass was issued."""

    TYPING = "typing"
    POST_ACCEPT = "post_accept"
    MANUAL = "manual"


@dataclass(slots=True, frozen=True)
class AcceptedEdit:
    """Compact record of an edit the user already accepted."""

    kind: SuggestionKind
    original: str
    replacement: str
    message: str

    def to_payload(self) -> dict[str, str]:
        return {
            "type": self.kind.value,
            "original": self.original,
            "replacement": self.replacement,
            "message": self.message,
        }


@dataclass(slots=True, frozen=True)
class Suggestion:
    """Validated suggestion anchored to a span of the document."""

    id: str
    kind: SuggestionKind
    original: str
    replacement: str
    message: str
    span: TextSpan

    @property
    def start(self) -> int:
        return self.span.start

    @property
    def end(self) -> int:
        return self.span.end

    def matches(self, text: str) -> bool:
        """Return ``True`` when ``text`` still holds ``original`` at this span."""

        if not self.span.fits(text):
            return False
        return self.span.slice_of(text).lower() == self.original.lower()

    def with_span(self, span: TextSpan) -> Suggestion:
        if span == self.span:
            return self
        return replace(self, span=span)

    def shifted(self, delta: int) -> Suggestion:
        if not delta:
            return self
        return replace(self, span=self.span.shifted(delta))

    def as_accepted_edit(self) -> AcceptedEdit:
        return AcceptedEdit(
            kind=self.kind,
            original=self.original,
            replacement=self.replacement,
            message=self.message,
        )

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "id": self.id,
            "type": self.kind.value,
            "original": self.original,
            "replacement": self.replacement,
            "message": self.message,
        }
        payload.update(self.span.to_dict())
        return payload


__all__ = [
    "AcceptedEdit",
    "AnalysisReason",
    "DEFAULT_MESSAGE",
    "LOW_VALUE_KINDS",
    "Suggestion",
    "SuggestionKind",
]
