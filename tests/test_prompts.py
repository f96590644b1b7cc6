"""Tests for prompt construction."""

from __future__ import annotations

import json

from proofline.ai import prompts
from proofline.ai.results import ToolName


def test_strict_proofread_prompt_adds_restrictions() -> None:
    relaxed = prompts.system_prompt(ToolName.PROOFREAD)
    strict = prompts.system_prompt(ToolName.PROOFREAD, strict=True)

    assert strict.startswith(relaxed)
    assert "Do not report style or clarity" in strict
    assert prompts.system_prompt(ToolName.GRADE, strict=True) == prompts.system_prompt(ToolName.GRADE)


def test_proofread_messages_include_accepted_edits() -> None:
    edits = [{"type": "spelling", "original": "Teh", "replacement": "The", "message": "typo"}]

    messages = prompts.build_proofread_messages("The cat.", strict=True, accepted_edits=edits)

    assert [message["role"] for message in messages] == ["system", "system", "user"]
    assert json.dumps(edits) in messages[1]["content"]
    assert messages[-1]["content"] == "The cat."


def test_proofread_messages_without_edits() -> None:
    messages = prompts.build_proofread_messages("Text.")

    assert len(messages) == 2


def test_chat_messages_embed_context_and_trim_history() -> None:
    history = [{"role": "assistant" if index % 2 else "user", "content": f"turn {index}"} for index in range(30)]
    history.append({"role": "user", "content": "   "})

    messages = prompts.build_chat_messages("My essay.", "Is it good?", history)

    assert messages[0]["role"] == "system"
    assert messages[1]["content"] == "turn 11"
    assert len(messages) == 1 + 19 + 1
    assert 'Context text:\n"""My essay."""' in messages[-1]["content"]
    assert messages[-1]["content"].endswith("User question: Is it good?")


def test_chat_without_text_sends_bare_question() -> None:
    messages = prompts.build_chat_messages("  ", "Hello?", [{"role": "tool", "content": "x"}])

    assert messages[1] == {"role": "user", "content": "x"}
    assert messages[-1] == {"role": "user", "content": "Hello?"}


def test_temperatures() -> None:
    assert prompts.temperature_for(ToolName.CHAT) == prompts.CHAT_TEMPERATURE
    assert prompts.temperature_for(ToolName.REWRITE) == prompts.TOOL_TEMPERATURE
