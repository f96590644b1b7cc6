"""Editor-side helpers: statistics and suggestion application."""

from .edits import BatchResult, EditResult, apply_all, apply_suggestion
from .stats import WritingStats, compute_stats

__all__ = [
    "BatchResult",
    "EditResult",
    "WritingStats",
    "apply_all",
    "apply_suggestion",
    "compute_stats",
]
