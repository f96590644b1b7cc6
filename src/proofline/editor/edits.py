"""Apply suggestion replacements while keeping pending offsets consistent."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Sequence

from ..analysis.models import Suggestion
from ..analysis.reanchor import reanchor
from ..core.ranges import TextSpan

__all__ = ["EditResult", "BatchResult", "apply_suggestion", "apply_all", "summarize_edit"]

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class EditResult:
    """Result of applying a single suggestion."""

    text: str
    pending: tuple[Suggestion, ...]
    applied: bool
    span: TextSpan | None = None
    summary: str = "edit: Δ0"


@dataclass(slots=True)
class BatchResult:
    """Result of applying every pending suggestion at once."""

    text: str
    applied: tuple[Suggestion, ...]
    skipped: tuple[Suggestion, ...]
    summary: str = "edit: Δ0"


def apply_suggestion(suggestion: Suggestion, text: str, pending: Sequence[Suggestion]) -> EditResult:
    """Apply ``suggestion`` to ``text`` and shift the other ``pending`` entries.

    Suggestions starting strictly after the edit point move by the length
    delta; overlapping or preceding ones are left as-is and re-anchored when
    they are applied. A suggestion that can no longer be located is dropped
    and the text is returned unchanged.
    """

    others = tuple(item for item in pending if item.id != suggestion.id)
    span = reanchor(suggestion, text)
    if span is None:
        LOGGER.info("Dropping stale suggestion %s; %r no longer in document", suggestion.id, suggestion.original)
        return EditResult(text=text, pending=others, applied=False)

    updated = text[: span.start] + suggestion.replacement + text[span.end :]
    delta = len(suggestion.replacement) - span.length
    settled: list[Suggestion] = []
    for item in others:
        moved = _settle(item, span, delta, updated)
        if moved is not None:
            settled.append(moved)
    return EditResult(
        text=updated,
        pending=tuple(settled),
        applied=True,
        span=span,
        summary=summarize_edit(text, updated),
    )


def apply_all(pending: Sequence[Suggestion], text: str) -> BatchResult:
    """Apply every suggestion in ``pending`` from the end of the document backwards.

    Working in descending start order keeps earlier offsets valid without
    shifting. Items that cannot be re-anchored are skipped, never fatal.
    """

    ordered = sorted(pending, key=lambda item: item.start, reverse=True)
    updated = text
    applied: list[Suggestion] = []
    skipped: list[Suggestion] = []
    for suggestion in ordered:
        span = reanchor(suggestion, updated)
        if span is None:
            skipped.append(suggestion)
            continue
        updated = updated[: span.start] + suggestion.replacement + updated[span.end :]
        applied.append(suggestion)
    if skipped:
        LOGGER.info("Accept-all skipped %s suggestion(s) that no longer match", len(skipped))
    return BatchResult(
        text=updated,
        applied=tuple(applied),
        skipped=tuple(skipped),
        summary=summarize_edit(text, updated),
    )


def _settle(item: Suggestion, edit: TextSpan, delta: int, updated: str) -> Suggestion | None:
    candidate = item
    if item.start > edit.start and item.start + delta >= 0:
        candidate = item.shifted(delta)
    if candidate.matches(updated):
        return candidate
    # Overlapped by the edit: the shifted span no longer holds ``original``.
    span = reanchor(item, updated)
    if span is None:
        LOGGER.debug("Dropping suggestion %s invalidated by overlapping edit", item.id)
        return None
    return item.with_span(span)


def summarize_edit(before: str, after: str) -> str:
    delta = len(after) - len(before)
    if delta == 0:
        return "edit: Δ0"
    sign = "+" if delta > 0 else "-"
    return f"edit: {sign}{abs(delta)} chars"
