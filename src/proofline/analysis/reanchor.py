"""Relocate suggestion spans against a document that may have changed."""

from __future__ import annotations

import logging

from ..core.ranges import TextSpan
from .models import Suggestion

__all__ = ["reanchor", "find_nearest"]

LOGGER = logging.getLogger(__name__)


def reanchor(suggestion: Suggestion, current_text: str) -> TextSpan | None:
    """Return the span ``suggestion`` occupies in ``current_text``.

    The stored span wins when it still holds ``original`` (case-insensitive).
    Otherwise the first case-insensitive occurrence of ``original`` is used.
    ``None`` means the text was edited away and the suggestion is stale.
    """

    if suggestion.matches(current_text):
        return suggestion.span

    needle = suggestion.original.lower()
    if not needle:
        return None
    index = current_text.lower().find(needle)
    if index == -1:
        LOGGER.debug("Could not re-anchor suggestion %s (%r)", suggestion.id, suggestion.original)
        return None
    span = TextSpan(index, index + len(suggestion.original))
    LOGGER.debug("Re-anchored suggestion %s from %s to %s", suggestion.id, suggestion.span.to_tuple(), span.to_tuple())
    return span


def find_nearest(text: str, needle: str, anchor: int) -> TextSpan | None:
    """Return the case-insensitive occurrence of ``needle`` closest to ``anchor``."""

    if not needle:
        return None
    haystack = text.lower()
    target = needle.lower()
    best: int | None = None
    index = haystack.find(target)
    while index != -1:
        if best is None or abs(index - anchor) < abs(best - anchor):
            best = index
        if index > anchor:
            break
        index = haystack.find(target, index + 1)
    if best is None:
        return None
    return TextSpan(best, best + len(needle))
