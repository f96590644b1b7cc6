"""Prompt templates for the writing and search tools."""

from __future__ import annotations

import json
from typing import Mapping, Sequence

from .results import ToolName

CHAT_TEMPERATURE = 0.7
TOOL_TEMPERATURE = 0.3
MAX_HISTORY_MESSAGES = 20

_PROOFREAD_PROMPT = """You are an expert proofreader and grammar checker. Analyze the given text for:
- Grammar errors
- Spelling mistakes
- Punctuation issues
- Style improvements
- Clarity enhancements

Return a JSON object with this exact structure:
{
  "suggestions": [
    {
      "type": "grammar" | "spelling" | "punctuation" | "style" | "clarity",
      "original": "the exact original text fragment",
      "replacement": "the suggested replacement",
      "message": "explanation of the issue",
      "startIndex": number,
      "endIndex": number
    }
  ],
  "overallScore": number (0-100),
  "summary": "brief summary of the text quality"
}

startIndex/endIndex are zero-based character offsets into the text, endIndex exclusive.
The score should reflect the actual quality: texts with many errors should score low."""

_STRICT_ADDENDUM = """
The author has already accepted a full round of edits. Only report definite grammar,
spelling or punctuation errors. Do not report style or clarity preferences. An empty
suggestions list is the expected answer for clean text."""

_SYSTEM_PROMPTS: Mapping[ToolName, str] = {
    ToolName.PROOFREAD: _PROOFREAD_PROMPT,
    ToolName.REWRITE: """You are an expert writer. Rewrite the given text to improve its quality while keeping its meaning.
Focus on word choice, flow, clarity and impact.

Return a JSON object:
{
  "rewritten": "the improved text",
  "changes": ["list of key changes made"],
  "improvementScore": number (percentage improvement estimate)
}""",
    ToolName.PARAPHRASE: """You are a paraphrasing expert. Rewrite the text in a different way while preserving the meaning.
Provide 3 paraphrased versions with different tones.

Return a JSON object:
{
  "versions": [
    {"text": "paraphrased version", "tone": "formal/casual/academic/creative", "description": "brief description"}
  ]
}""",
    ToolName.HUMANIZE: """You are an expert at making machine-written text sound natural and human.
Add natural variation, conversational elements and warmth; reduce robotic patterns.

Return a JSON object:
{
  "humanized": "the humanized text",
  "changesApplied": ["techniques applied"],
  "humanScore": number (0-100, how human it now sounds)
}""",
    ToolName.DETECT_AI: """You are an AI content detector. Analyze the text for signs of machine generation:
repetitive patterns, overly formal structure, missing personal voice, generic phrasing and
predictable sentence structure.

Return a JSON object:
{
  "aiProbability": number (0-100),
  "humanProbability": number (0-100),
  "indicators": [{"type": "ai" | "human", "description": "what was detected", "evidence": "example from the text"}],
  "verdict": "Likely AI" | "Likely Human" | "Mixed/Uncertain",
  "explanation": "detailed explanation of the analysis"
}""",
    ToolName.FACT_CHECK: """You are a fact-checker. Analyze the claims in the text and verify their accuracy.

Return a JSON object:
{
  "claims": [
    {
      "claim": "the specific claim made",
      "verdict": "True" | "False" | "Partially True" | "Unverifiable" | "Needs Context",
      "explanation": "why this verdict was reached",
      "confidence": number (0-100)
    }
  ],
  "overallCredibility": number (0-100),
  "summary": "overall assessment of factual accuracy"
}""",
    ToolName.FIND_CITATIONS: """You are a citation finder. Identify statements that need citations and search for
relevant academic or authoritative sources.

Return a JSON object:
{
  "citationsNeeded": [
    {
      "text": "the exact statement needing citation",
      "reason": "why this needs a citation",
      "suggestedSources": ["type of sources"],
      "searchQuery": "suggested search query",
      "foundSources": ["any relevant URLs found"]
    }
  ],
  "citationScore": number (0-100, how well-cited the text currently is),
  "recommendations": ["improvement suggestions"]
}
If the text is a personal statement with no claims, return an empty citationsNeeded list,
citationScore 100 and a recommendation saying no citations are needed.
Return ONLY valid JSON.""",
    ToolName.GRADE: """You are an academic grader. Evaluate the text on writing quality.

Return a JSON object:
{
  "overallGrade": "A" | "B" | "C" | "D" | "F",
  "numericScore": number (0-100),
  "criteria": {
    "clarity": {"score": number, "feedback": "string"},
    "organization": {"score": number, "feedback": "string"},
    "grammar": {"score": number, "feedback": "string"},
    "vocabulary": {"score": number, "feedback": "string"},
    "argumentation": {"score": number, "feedback": "string"},
    "originality": {"score": number, "feedback": "string"}
  },
  "strengths": ["list of strengths"],
  "improvements": ["list of areas to improve"],
  "detailedFeedback": "comprehensive feedback paragraph"
}""",
    ToolName.READER_REACTIONS: """You are an audience analysis expert. Predict how readers might react to this text.

Return a JSON object:
{
  "reactions": [
    {"emoji": "emoji", "reaction": "Engaged/Confused/Inspired/...", "percentage": number, "explanation": "why"}
  ],
  "engagement": {"score": number (0-100), "factors": ["what drives engagement"]},
  "sentiment": {
    "overall": "positive" | "negative" | "neutral",
    "breakdown": {"positive": number, "negative": number, "neutral": number}
  },
  "recommendations": ["how to improve reader reception"]
}""",
    ToolName.CHAT: """You are a helpful writing assistant. Answer the user's writing questions with actionable advice.
Be conversational and specific, reference their text when relevant, and give practical suggestions
they can apply immediately.""",
}

CLAIM_CHECK_PROMPT = """You are a fact-checker. Verify the following claim using real-time web search.
Return a JSON object with exactly these fields:
{
  "verdict": "True" | "False" | "Partially True" | "Unverifiable",
  "explanation": "brief explanation with evidence",
  "confidence": number (0-100)
}
Return ONLY the JSON, no other text."""

PLAGIARISM_SENTENCE_PROMPT = """You are a plagiarism detector. Search for this exact phrase or very similar text online.
If you find matching or highly similar content, return:
{"isMatch": true, "similarity": number (0-100), "matchType": "exact" | "paraphrase" | "common_phrase", "explanation": "brief explanation"}
If no matches are found:
{"isMatch": false, "similarity": 0, "matchType": "original", "explanation": "No matching content found"}
Return ONLY the JSON."""


def system_prompt(tool: ToolName, *, strict: bool = False) -> str:
    """Return the system prompt for ``tool``."""

    prompt = _SYSTEM_PROMPTS[tool]
    if tool is ToolName.PROOFREAD and strict:
        return prompt + _STRICT_ADDENDUM
    return prompt


def build_proofread_messages(
    text: str,
    *,
    strict: bool = False,
    accepted_edits: Sequence[Mapping[str, str]] = (),
) -> list[dict[str, str]]:
    """Build messages for a proofreading pass, including accepted-edit context."""

    messages = [{"role": "system", "content": system_prompt(ToolName.PROOFREAD, strict=strict)}]
    if accepted_edits:
        listing = json.dumps(list(accepted_edits), ensure_ascii=False)
        messages.append(
            {
                "role": "system",
                "content": (
                    "The author already accepted these edits. Do not suggest reverting them "
                    f"or re-suggest equivalent changes:\n{listing}"
                ),
            }
        )
    messages.append({"role": "user", "content": text})
    return messages


def build_tool_messages(tool: ToolName, text: str) -> list[dict[str, str]]:
    return [
        {"role": "system", "content": system_prompt(tool)},
        {"role": "user", "content": text},
    ]


def build_chat_messages(
    text: str,
    message: str,
    history: Sequence[Mapping[str, str]] = (),
) -> list[dict[str, str]]:
    """Build chat messages, embedding the document as context when present."""

    messages = [{"role": "system", "content": system_prompt(ToolName.CHAT)}]
    for entry in list(history)[-MAX_HISTORY_MESSAGES:]:
        role = "assistant" if str(entry.get("role", "")).lower() == "assistant" else "user"
        content = str(entry.get("content", "")).strip()
        if content:
            messages.append({"role": role, "content": content})
    if text.strip():
        question = f'Context text:\n"""{text}"""\n\nUser question: {message}'
    else:
        question = message
    messages.append({"role": "user", "content": question})
    return messages


def temperature_for(tool: ToolName) -> float:
    return CHAT_TEMPERATURE if tool is ToolName.CHAT else TOOL_TEMPERATURE


__all__ = [
    "CLAIM_CHECK_PROMPT",
    "PLAGIARISM_SENTENCE_PROMPT",
    "build_chat_messages",
    "build_proofread_messages",
    "build_tool_messages",
    "system_prompt",
    "temperature_for",
]
