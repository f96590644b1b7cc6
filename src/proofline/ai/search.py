"""Web-search backed tools: fact checking, citation finding, plagiarism checks."""

from __future__ import annotations

import logging
import re
from typing import Any, Sequence

from .client import AIClient, BackendError
from .parsing import extract_json_object
from .prompts import CLAIM_CHECK_PROMPT, PLAGIARISM_SENTENCE_PROMPT, system_prompt
from .results import CitationResult, FactCheckResult, PlagiarismResult, ToolName

__all__ = ["WebSearchTools", "extract_claims", "split_sentences"]

LOGGER = logging.getLogger(__name__)

MAX_CLAIMS = 5
MAX_PLAGIARISM_SENTENCES = 8
MIN_SENTENCE_CHARS = 20
MATCH_SIMILARITY_THRESHOLD = 30
MAX_CLAIM_SOURCES = 3
MAX_MATCH_SOURCES = 2

_SENTENCE_RE = re.compile(r"[^.!?]+[.!?]+")
_FACTUAL_INDICATORS = tuple(
    re.compile(pattern, flags)
    for pattern, flags in (
        (r"\d+%", 0),
        (r"\d+ (million|billion|thousand)", 0),
        (r"according to", re.IGNORECASE),
        (r"studies show", re.IGNORECASE),
        (r"research (indicates|shows|proves)", re.IGNORECASE),
        (r"\d{4}", 0),
        (r"statistics", re.IGNORECASE),
        (r"data shows", re.IGNORECASE),
        (r"is (the|a) (largest|smallest|first|only)", re.IGNORECASE),
        (r"was (founded|created|invented)", re.IGNORECASE),
    )
)


def split_sentences(text: str) -> list[str]:
    """Return terminated sentences; unterminated text counts as one sentence."""

    sentences = _SENTENCE_RE.findall(text)
    return sentences or ([text] if text else [])


def extract_claims(text: str, *, limit: int = MAX_CLAIMS) -> list[str]:
    """Pick sentences that look like checkable factual claims."""

    claims = [
        sentence.strip()
        for sentence in _SENTENCE_RE.findall(text)
        if any(pattern.search(sentence) for pattern in _FACTUAL_INDICATORS)
    ]
    return claims[:limit]


class WebSearchTools:
    """Runs search-grounded tools against an OpenAI-compatible search model."""

    def __init__(self, client: AIClient) -> None:
        self._client = client

    async def fact_check(self, text: str, claims: Sequence[str] | None = None) -> FactCheckResult:
        """Verify up to five claims one request at a time.

        A claim whose request fails is skipped; the others still report.
        """

        to_check = list(claims) if claims else extract_claims(text)
        if not to_check:
            return FactCheckResult(overall_credibility=100, summary="No verifiable claims found in the text.")

        verified: list[dict[str, Any]] = []
        for claim in to_check[:MAX_CLAIMS]:
            messages = [
                {"role": "system", "content": CLAIM_CHECK_PROMPT},
                {"role": "user", "content": f'Verify this claim: "{claim}"'},
            ]
            try:
                completion = await self._client.complete(messages, temperature=None)
            except BackendError as exc:
                LOGGER.warning("Fact-check request failed for claim %r: %s", claim[:100], exc)
                continue
            parsed = extract_json_object(completion.content)
            sources = list(completion.citations[:MAX_CLAIM_SOURCES])
            if parsed is None:
                verified.append(
                    {
                        "claim": claim,
                        "verdict": "Unverifiable",
                        "explanation": completion.content[:200] or "Could not verify this claim",
                        "confidence": 50,
                        "sources": sources,
                    }
                )
                continue
            verified.append(
                {
                    "claim": claim,
                    "verdict": parsed.get("verdict") or "Unverifiable",
                    "explanation": parsed.get("explanation") or "Could not verify",
                    "confidence": parsed.get("confidence") or 50,
                    "sources": sources,
                }
            )

        true_count = sum(1 for item in verified if item["verdict"] == "True")
        partial_count = sum(1 for item in verified if item["verdict"] == "Partially True")
        credibility = 100
        if verified:
            credibility = int(((true_count + partial_count * 0.5) / len(verified)) * 100 + 0.5)
        return FactCheckResult.from_payload(
            {
                "claims": verified,
                "overallCredibility": credibility,
                "summary": (
                    f"Verified {len(verified)} claims. {true_count} true, {partial_count} partially true."
                ),
            }
        )

    async def find_citations(self, text: str) -> CitationResult:
        messages = [
            {"role": "system", "content": system_prompt(ToolName.FIND_CITATIONS)},
            {"role": "user", "content": f"Find citations needed for this text:\n\n{text}"},
        ]
        completion = await self._client.complete(messages, temperature=None)
        parsed = extract_json_object(completion.content)
        if parsed is None:
            LOGGER.warning("Citation search reply was not valid JSON")
            return CitationResult(
                citation_score=80,
                recommendations=("Unable to analyze citations. Please try again.",),
            )
        needs = parsed.get("citationsNeeded")
        if isinstance(needs, list):
            # Fill in provider citations, two per statement, where the model gave none.
            citations = list(completion.citations)
            parsed["citationsNeeded"] = [
                {**item, "foundSources": item.get("foundSources") or citations[index * 2 : index * 2 + 2]}
                if isinstance(item, dict)
                else item
                for index, item in enumerate(needs)
            ]
        return CitationResult.from_payload(parsed)

    async def check_plagiarism(self, text: str) -> PlagiarismResult:
        """Search for up to eight sentences online and score originality."""

        candidates = split_sentences(text)[:MAX_PLAGIARISM_SENTENCES]
        checked = [sentence.strip() for sentence in candidates if len(sentence.strip()) >= MIN_SENTENCE_CHARS]
        matches: list[dict[str, Any]] = []
        originality_total = 0.0
        for sentence in checked:
            messages = [
                {"role": "system", "content": PLAGIARISM_SENTENCE_PROMPT},
                {"role": "user", "content": f'Check for plagiarism: "{sentence}"'},
            ]
            try:
                completion = await self._client.complete(messages, temperature=None)
            except BackendError as exc:
                LOGGER.warning("Plagiarism request failed: %s", exc)
                continue
            parsed = extract_json_object(completion.content)
            if parsed is None:
                originality_total += 100
                continue
            similarity = parsed.get("similarity")
            similarity = similarity if isinstance(similarity, (int, float)) and not isinstance(similarity, bool) else 0
            if parsed.get("isMatch") and similarity > MATCH_SIMILARITY_THRESHOLD:
                matches.append(
                    {
                        "text": sentence,
                        "similarity": similarity,
                        "matchType": parsed.get("matchType"),
                        "explanation": parsed.get("explanation"),
                        "sources": list(completion.citations[:MAX_MATCH_SOURCES]),
                    }
                )
            originality_total += 100 - similarity

        originality = int(originality_total / len(checked) + 0.5) if checked else 100
        if matches:
            summary = f"Found {len(matches)} potential matches. Review flagged sections."
        else:
            summary = "No significant matches found. Content appears original."
        return PlagiarismResult.from_payload(
            {
                "originalityScore": originality,
                "matches": matches,
                "totalChecked": len(checked),
                "summary": summary,
            }
        )
