"""Tests for extracting JSON from model replies."""

from __future__ import annotations

import pytest

from proofline.ai.parsing import extract_json_object, extract_json_payload


@pytest.mark.parametrize(
    "content",
    [
        '{"score": 1}',
        'Here you go:\n```json\n{"score": 1}\n```',
        '```\n{"score": 1}\n```',
        'Sure! {"score": 1} Hope that helps.',
    ],
)
def test_extracts_object_from_common_reply_shapes(content: str) -> None:
    assert extract_json_object(content) == {"score": 1}


def test_control_characters_inside_strings_are_tolerated() -> None:
    assert extract_json_object('{"text": "line one\nline two"}') == {"text": "line one\nline two"}


@pytest.mark.parametrize("content", [None, "", "   ", "no json here", "[1, 2, 3]", "{broken"])
def test_returns_none_without_an_object(content: str | None) -> None:
    assert extract_json_object(content) is None


def test_payload_wraps_unparseable_reply() -> None:
    assert extract_json_payload("just prose") == {"raw": "just prose"}
    assert extract_json_payload(None) == {"raw": ""}
    assert extract_json_payload('{"a": 2}') == {"a": 2}
