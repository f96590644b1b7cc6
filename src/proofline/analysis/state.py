"""Process-wide analysis state for a single open document."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from typing import Any, Iterable

from ..editor.stats import WritingStats
from .models import AcceptedEdit, Suggestion

__all__ = ["AnalysisConfig", "AnalysisState", "PERFECT_SCORE"]

PERFECT_SCORE = 100


@dataclass(slots=True)
class AnalysisConfig:
    """Tunable parameters for the analysis scheduler."""

    debounce_seconds: float = 1.4
    post_accept_delay: float = 0.15
    accepted_edit_memory: int = 50
    accepted_edit_context: int = 25
    default_score: int = 85

    def clamp(self) -> AnalysisConfig:
        """Clamp values into safe operating ranges and return ``self``."""

        self.debounce_seconds = max(0.0, float(self.debounce_seconds))
        self.post_accept_delay = max(0.0, float(self.post_accept_delay))
        self.accepted_edit_memory = max(1, int(self.accepted_edit_memory))
        self.accepted_edit_context = max(0, min(int(self.accepted_edit_context), self.accepted_edit_memory))
        self.default_score = max(0, min(PERFECT_SCORE, int(self.default_score)))
        return self


@dataclass(slots=True)
class AnalysisState:
    """Single owned state object mutated only by the scheduler."""

    accepted_edit_memory: int = 50
    current_text: str = ""
    last_analyzed_text: str | None = None
    pending: list[Suggestion] = field(default_factory=list)
    strictness_level: int = 0
    request_id: int = 0
    overall_score: int = PERFECT_SCORE
    stats: WritingStats = field(default_factory=WritingStats.empty)
    is_analyzing: bool = False
    last_error: str | None = None
    accepted_edits: deque[AcceptedEdit] = field(init=False)

    def __post_init__(self) -> None:
        self.accepted_edits = deque(maxlen=max(1, self.accepted_edit_memory))

    def reset(self) -> None:
        """Return to the freshly-opened document state.

        ``request_id`` keeps counting so responses issued before the reset
        are still recognized as stale.
        """

        self.current_text = ""
        self.last_analyzed_text = None
        self.pending = []
        self.strictness_level = 0
        self.overall_score = PERFECT_SCORE
        self.stats = WritingStats.empty()
        self.is_analyzing = False
        self.last_error = None
        self.accepted_edits.clear()

    def next_request_id(self) -> int:
        self.request_id += 1
        return self.request_id

    def is_latest(self, request_id: int) -> bool:
        return request_id == self.request_id

    def remember_edits(self, edits: Iterable[AcceptedEdit]) -> None:
        self.accepted_edits.extend(edits)

    def recent_edits(self, limit: int) -> list[AcceptedEdit]:
        if limit <= 0:
            return []
        return list(self.accepted_edits)[-limit:]

    def find(self, suggestion_id: str) -> Suggestion | None:
        for suggestion in self.pending:
            if suggestion.id == suggestion_id:
                return suggestion
        return None

    def snapshot(self) -> dict[str, Any]:
        """Return a read-only view for UI layers and the CLI."""

        return {
            "text": self.current_text,
            "suggestions": [suggestion.to_dict() for suggestion in self.pending],
            "stats": self.stats.to_dict(),
            "overallScore": self.overall_score,
            "isAnalyzing": self.is_analyzing,
            "strictnessLevel": self.strictness_level,
            "lastError": self.last_error,
        }
