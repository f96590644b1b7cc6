"""Helpers for pulling JSON objects out of free-form model replies."""

from __future__ import annotations

import json
import logging
import re
from typing import Any

__all__ = ["extract_json_object", "extract_json_payload"]

LOGGER = logging.getLogger(__name__)

_CODE_BLOCK_PATTERNS = (
    re.compile(r"```json\s*(.*?)\s*```", re.DOTALL),
    re.compile(r"```\s*(.*?)\s*```", re.DOTALL),
)


def _loads_object(text: str) -> dict[str, Any] | None:
    try:
        parsed = json.loads(text, strict=False)
    except json.JSONDecodeError:
        return None
    return parsed if isinstance(parsed, dict) else None


def extract_json_object(content: str | None) -> dict[str, Any] | None:
    """Return the first JSON object found in ``content`` or ``None``.

    Tries the whole reply, then fenced code blocks, then the outermost brace span.
    """

    if not content or not content.strip():
        return None
    text = content.strip()

    parsed = _loads_object(text)
    if parsed is not None:
        return parsed

    for pattern in _CODE_BLOCK_PATTERNS:
        match = pattern.search(text)
        if match:
            parsed = _loads_object(match.group(1).strip())
            if parsed is not None:
                return parsed

    brace_start = text.find("{")
    brace_end = text.rfind("}")
    if brace_start != -1 and brace_end > brace_start:
        parsed = _loads_object(text[brace_start : brace_end + 1])
        if parsed is not None:
            return parsed
    return None


def extract_json_payload(content: str | None) -> dict[str, Any]:
    """Like :func:`extract_json_object` but wraps unparseable replies as ``{"raw": content}``."""

    parsed = extract_json_object(content)
    if parsed is None:
        LOGGER.debug("Model reply was not JSON; returning raw content (%s chars)", len(content or ""))
        return {"raw": content or ""}
    return parsed
