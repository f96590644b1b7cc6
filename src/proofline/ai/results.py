"""Tagged result types returned by the writing-tools backend.

Each tool replies with its own JSON shape. Payloads are parsed defensively:
missing or mistyped fields fall back to neutral defaults instead of raising,
so a sloppy model reply degrades into an emptier result, never a crash.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Mapping, Sequence, Union

__all__ = [
    "ToolName",
    "SEARCH_TOOLS",
    "ProofreadResult",
    "RewriteResult",
    "ParaphraseVersion",
    "ParaphraseResult",
    "HumanizeResult",
    "AIIndicator",
    "DetectAIResult",
    "ClaimVerdict",
    "FactCheckResult",
    "CitationNeed",
    "CitationResult",
    "CriterionScore",
    "GradeResult",
    "ReaderReaction",
    "ReaderReactionsResult",
    "PlagiarismMatch",
    "PlagiarismResult",
    "ChatResult",
    "RawResult",
    "ToolResult",
    "parse_tool_result",
]


class ToolName(str, Enum):
    """Backend tools understood by the gateway."""

    PROOFREAD = "proofread"
    REWRITE = "rewrite"
    PARAPHRASE = "paraphrase"
    HUMANIZE = "humanize"
    DETECT_AI = "detect-ai"
    FACT_CHECK = "fact-check"
    FIND_CITATIONS = "find-citations"
    GRADE = "grade"
    READER_REACTIONS = "reader-reactions"
    CHAT = "chat"
    PLAGIARISM_CHECK = "plagiarism-check"

    @classmethod
    def coerce(cls, value: Any) -> ToolName:
        if isinstance(value, ToolName):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError as exc:
            raise ValueError(f"Unknown tool: {value}") from exc


# Tools answered by the web-search model rather than the writing model.
SEARCH_TOOLS: frozenset[ToolName] = frozenset(
    {ToolName.FACT_CHECK, ToolName.FIND_CITATIONS, ToolName.PLAGIARISM_CHECK}
)


def _str(value: Any, default: str = "") -> str:
    if isinstance(value, str):
        return value
    if value is None:
        return default
    return str(value)


def _num(value: Any, default: float | None = None) -> float | None:
    if isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip().rstrip("%"))
        except ValueError:
            return default
    return default


def _score(value: Any, default: int = 0) -> int:
    number = _num(value)
    if number is None:
        return default
    return int(max(0.0, min(100.0, number)) + 0.5)


def _str_list(value: Any) -> tuple[str, ...]:
    if not isinstance(value, Sequence) or isinstance(value, (str, bytes)):
        return ()
    return tuple(_str(item) for item in value if item is not None and _str(item).strip())


def _mappings(value: Any) -> list[Mapping[str, Any]]:
    if not isinstance(value, Sequence) or isinstance(value, (str, bytes)):
        return []
    return [item for item in value if isinstance(item, Mapping)]


@dataclass(slots=True, frozen=True)
class ProofreadResult:
    tool: ClassVar[ToolName] = ToolName.PROOFREAD

    suggestions: tuple[Mapping[str, Any], ...] = ()
    overall_score: int | None = None
    summary: str = ""

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> ProofreadResult:
        score = _num(payload.get("overallScore"))
        return cls(
            suggestions=tuple(_mappings(payload.get("suggestions"))),
            overall_score=None if score is None else _score(score),
            summary=_str(payload.get("summary")),
        )


@dataclass(slots=True, frozen=True)
class RewriteResult:
    tool: ClassVar[ToolName] = ToolName.REWRITE

    rewritten: str = ""
    changes: tuple[str, ...] = ()
    improvement_score: int = 0

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> RewriteResult:
        return cls(
            rewritten=_str(payload.get("rewritten")),
            changes=_str_list(payload.get("changes")),
            improvement_score=_score(payload.get("improvementScore")),
        )


@dataclass(slots=True, frozen=True)
class ParaphraseVersion:
    text: str
    tone: str = ""
    description: str = ""


@dataclass(slots=True, frozen=True)
class ParaphraseResult:
    tool: ClassVar[ToolName] = ToolName.PARAPHRASE

    versions: tuple[ParaphraseVersion, ...] = ()

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> ParaphraseResult:
        versions = tuple(
            ParaphraseVersion(
                text=_str(item.get("text")),
                tone=_str(item.get("tone")),
                description=_str(item.get("description")),
            )
            for item in _mappings(payload.get("versions"))
            if _str(item.get("text")).strip()
        )
        return cls(versions=versions)


@dataclass(slots=True, frozen=True)
class HumanizeResult:
    tool: ClassVar[ToolName] = ToolName.HUMANIZE

    humanized: str = ""
    changes_applied: tuple[str, ...] = ()
    human_score: int = 0

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> HumanizeResult:
        return cls(
            humanized=_str(payload.get("humanized")),
            changes_applied=_str_list(payload.get("changesApplied")),
            human_score=_score(payload.get("humanScore")),
        )


@dataclass(slots=True, frozen=True)
class AIIndicator:
    type: str
    description: str
    evidence: str = ""


@dataclass(slots=True, frozen=True)
class DetectAIResult:
    tool: ClassVar[ToolName] = ToolName.DETECT_AI

    ai_probability: int = 0
    human_probability: int = 0
    indicators: tuple[AIIndicator, ...] = ()
    verdict: str = "Mixed/Uncertain"
    explanation: str = ""

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> DetectAIResult:
        ai_probability = _score(payload.get("aiProbability"))
        human_value = _num(payload.get("humanProbability"))
        human_probability = 100 - ai_probability if human_value is None else _score(human_value)
        indicators = tuple(
            AIIndicator(
                type="human" if _str(item.get("type")).lower() == "human" else "ai",
                description=_str(item.get("description")),
                evidence=_str(item.get("evidence")),
            )
            for item in _mappings(payload.get("indicators"))
        )
        return cls(
            ai_probability=ai_probability,
            human_probability=human_probability,
            indicators=indicators,
            verdict=_str(payload.get("verdict"), "Mixed/Uncertain") or "Mixed/Uncertain",
            explanation=_str(payload.get("explanation")),
        )


@dataclass(slots=True, frozen=True)
class ClaimVerdict:
    claim: str
    verdict: str
    explanation: str = ""
    confidence: int = 0
    sources: tuple[str, ...] = ()


@dataclass(slots=True, frozen=True)
class FactCheckResult:
    tool: ClassVar[ToolName] = ToolName.FACT_CHECK

    claims: tuple[ClaimVerdict, ...] = ()
    overall_credibility: int = 0
    summary: str = ""

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> FactCheckResult:
        claims = tuple(
            ClaimVerdict(
                claim=_str(item.get("claim")),
                verdict=_str(item.get("verdict"), "Unverifiable") or "Unverifiable",
                explanation=_str(item.get("explanation")),
                confidence=_score(item.get("confidence")),
                sources=_str_list(item.get("sources")),
            )
            for item in _mappings(payload.get("claims"))
            if _str(item.get("claim")).strip()
        )
        return cls(
            claims=claims,
            overall_credibility=_score(payload.get("overallCredibility")),
            summary=_str(payload.get("summary")),
        )


@dataclass(slots=True, frozen=True)
class CitationNeed:
    text: str
    reason: str = ""
    suggested_sources: tuple[str, ...] = ()
    search_query: str = ""
    found_sources: tuple[str, ...] = ()


@dataclass(slots=True, frozen=True)
class CitationResult:
    tool: ClassVar[ToolName] = ToolName.FIND_CITATIONS

    citations_needed: tuple[CitationNeed, ...] = ()
    citation_score: int = 0
    recommendations: tuple[str, ...] = ()

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> CitationResult:
        needs = tuple(
            CitationNeed(
                text=_str(item.get("text")),
                reason=_str(item.get("reason")),
                suggested_sources=_str_list(item.get("suggestedSources")),
                search_query=_str(item.get("searchQuery")),
                found_sources=_str_list(item.get("foundSources")),
            )
            for item in _mappings(payload.get("citationsNeeded"))
            if _str(item.get("text")).strip()
        )
        return cls(
            citations_needed=needs,
            citation_score=_score(payload.get("citationScore")),
            recommendations=_str_list(payload.get("recommendations")),
        )


@dataclass(slots=True, frozen=True)
class CriterionScore:
    name: str
    score: int
    feedback: str = ""


@dataclass(slots=True, frozen=True)
class GradeResult:
    tool: ClassVar[ToolName] = ToolName.GRADE
    _GRADES: ClassVar[tuple[str, ...]] = ("A", "B", "C", "D", "F")

    overall_grade: str = "C"
    numeric_score: int = 0
    criteria: tuple[CriterionScore, ...] = ()
    strengths: tuple[str, ...] = ()
    improvements: tuple[str, ...] = ()
    detailed_feedback: str = ""

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> GradeResult:
        raw_criteria = payload.get("criteria")
        criteria: list[CriterionScore] = []
        if isinstance(raw_criteria, Mapping):
            for name, entry in raw_criteria.items():
                if not isinstance(entry, Mapping):
                    continue
                criteria.append(
                    CriterionScore(name=str(name), score=_score(entry.get("score")), feedback=_str(entry.get("feedback")))
                )
        grade = _str(payload.get("overallGrade")).strip().upper()[:1]
        return cls(
            overall_grade=grade if grade in cls._GRADES else "C",
            numeric_score=_score(payload.get("numericScore")),
            criteria=tuple(criteria),
            strengths=_str_list(payload.get("strengths")),
            improvements=_str_list(payload.get("improvements")),
            detailed_feedback=_str(payload.get("detailedFeedback")),
        )


@dataclass(slots=True, frozen=True)
class ReaderReaction:
    emoji: str
    reaction: str
    percentage: int = 0
    explanation: str = ""


@dataclass(slots=True, frozen=True)
class ReaderReactionsResult:
    tool: ClassVar[ToolName] = ToolName.READER_REACTIONS

    reactions: tuple[ReaderReaction, ...] = ()
    engagement_score: int = 0
    engagement_factors: tuple[str, ...] = ()
    sentiment: str = "neutral"
    sentiment_breakdown: Mapping[str, int] = field(default_factory=dict)
    recommendations: tuple[str, ...] = ()

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> ReaderReactionsResult:
        reactions = tuple(
            ReaderReaction(
                emoji=_str(item.get("emoji")),
                reaction=_str(item.get("reaction")),
                percentage=_score(item.get("percentage")),
                explanation=_str(item.get("explanation")),
            )
            for item in _mappings(payload.get("reactions"))
        )
        engagement = payload.get("engagement")
        engagement = engagement if isinstance(engagement, Mapping) else {}
        sentiment = payload.get("sentiment")
        sentiment = sentiment if isinstance(sentiment, Mapping) else {}
        breakdown = sentiment.get("breakdown")
        breakdown = breakdown if isinstance(breakdown, Mapping) else {}
        overall = _str(sentiment.get("overall"), "neutral").lower()
        return cls(
            reactions=reactions,
            engagement_score=_score(engagement.get("score")),
            engagement_factors=_str_list(engagement.get("factors")),
            sentiment=overall if overall in {"positive", "negative", "neutral"} else "neutral",
            sentiment_breakdown={key: _score(breakdown.get(key)) for key in ("positive", "negative", "neutral")},
            recommendations=_str_list(payload.get("recommendations")),
        )


@dataclass(slots=True, frozen=True)
class PlagiarismMatch:
    text: str
    similarity: int = 0
    match_type: str = "paraphrase"
    explanation: str = ""
    sources: tuple[str, ...] = ()


@dataclass(slots=True, frozen=True)
class PlagiarismResult:
    tool: ClassVar[ToolName] = ToolName.PLAGIARISM_CHECK

    originality_score: int = 100
    matches: tuple[PlagiarismMatch, ...] = ()
    total_checked: int = 0
    summary: str = ""

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> PlagiarismResult:
        matches = tuple(
            PlagiarismMatch(
                text=_str(item.get("text")),
                similarity=_score(item.get("similarity")),
                match_type=_str(item.get("matchType"), "paraphrase") or "paraphrase",
                explanation=_str(item.get("explanation")),
                sources=_str_list(item.get("sources")),
            )
            for item in _mappings(payload.get("matches"))
            if _str(item.get("text")).strip()
        )
        total = _num(payload.get("totalChecked"), 0.0) or 0.0
        return cls(
            originality_score=_score(payload.get("originalityScore"), 100),
            matches=matches,
            total_checked=max(0, int(total)),
            summary=_str(payload.get("summary")),
        )


@dataclass(slots=True, frozen=True)
class ChatResult:
    tool: ClassVar[ToolName] = ToolName.CHAT

    response: str = ""

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> ChatResult:
        return cls(response=_str(payload.get("response")))


@dataclass(slots=True, frozen=True)
class RawResult:
    """Reply that could not be parsed as JSON for a structured tool."""

    requested: ToolName
    raw: str


ToolResult = Union[
    ProofreadResult,
    RewriteResult,
    ParaphraseResult,
    HumanizeResult,
    DetectAIResult,
    FactCheckResult,
    CitationResult,
    GradeResult,
    ReaderReactionsResult,
    PlagiarismResult,
    ChatResult,
    RawResult,
]

_PARSERS: Mapping[ToolName, Any] = {
    ToolName.PROOFREAD: ProofreadResult,
    ToolName.REWRITE: RewriteResult,
    ToolName.PARAPHRASE: ParaphraseResult,
    ToolName.HUMANIZE: HumanizeResult,
    ToolName.DETECT_AI: DetectAIResult,
    ToolName.FACT_CHECK: FactCheckResult,
    ToolName.FIND_CITATIONS: CitationResult,
    ToolName.GRADE: GradeResult,
    ToolName.READER_REACTIONS: ReaderReactionsResult,
    ToolName.PLAGIARISM_CHECK: PlagiarismResult,
    ToolName.CHAT: ChatResult,
}


def parse_tool_result(tool: ToolName | str, payload: Any) -> ToolResult:
    """Dispatch ``payload`` to the result type registered for ``tool``."""

    name = ToolName.coerce(tool)
    if not isinstance(payload, Mapping):
        return RawResult(requested=name, raw=_str(payload))
    if "raw" in payload and len(payload) == 1 and name is not ToolName.CHAT:
        return RawResult(requested=name, raw=_str(payload.get("raw")))
    return _PARSERS[name].from_payload(payload)
