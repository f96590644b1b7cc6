"""Suggestion validation, re-anchoring and the debounced analysis scheduler."""

from importlib import import_module
from typing import Any

from .models import AcceptedEdit, AnalysisReason, Suggestion, SuggestionKind
from .reanchor import find_nearest, reanchor
from .validator import SuggestionValidator, ValidationReport, validate_suggestions

__all__ = [
    "AcceptedEdit",
    "AnalysisReason",
    "Suggestion",
    "SuggestionKind",
    "SuggestionValidator",
    "ValidationReport",
    "find_nearest",
    "reanchor",
    "validate_suggestions",
]

# ``state`` and ``scheduler`` import the editor package, which imports ``models``.
_LAZY_ATTRS = {
    "AnalysisConfig": "state",
    "AnalysisState": "state",
    "AnalysisScheduler": "scheduler",
    "SchedulerPhase": "scheduler",
}


def __getattr__(name: str) -> Any:
    module_name = _LAZY_ATTRS.get(name)
    if module_name is None:
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
    value = getattr(import_module(f"{__name__}.{module_name}"), name)
    globals()[name] = value
    return value
