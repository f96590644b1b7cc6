"""Debounced analysis scheduler driving suggestions for one open document."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable

from ..editor.edits import BatchResult, EditResult, apply_all, apply_suggestion
from ..editor.stats import WritingStats, compute_stats
from .models import AnalysisReason, Suggestion
from .state import PERFECT_SCORE, AnalysisConfig, AnalysisState
from .timers import AsyncioTimerFactory, TimerFactory, TimerHandle
from .validator import SuggestionValidator

if TYPE_CHECKING:  # pragma: no cover - typing only
    from ..ai.gateway import AnalysisBackend

__all__ = ["AnalysisScheduler", "SchedulerPhase", "StateListener"]

LOGGER = logging.getLogger(__name__)

StateListener = Callable[[dict[str, Any]], None]


class SchedulerPhase(str, Enum):
    IDLE = "idle"
    DEBOUNCING = "debouncing"
    AWAITING_RESPONSE = "awaiting_response"
    APPLYING_RESULT = "applying_result"


class AnalysisScheduler:
    """Owns the analysis state and decides when to ask the backend for suggestions.

    All mutation happens on the event loop thread. Responses are matched to
    requests through a monotonically increasing request id; only the latest
    request may update suggestions or the score, and only when the document
    still holds the text that request was issued for. Superseded calls are
    allowed to finish and their results are ignored.
    """

    def __init__(
        self,
        backend: AnalysisBackend,
        *,
        state: AnalysisState | None = None,
        config: AnalysisConfig | None = None,
        timers: TimerFactory | None = None,
        validator: SuggestionValidator | None = None,
    ) -> None:
        if backend is None:
            raise ValueError("backend is required")
        self._backend = backend
        self._config = (config or AnalysisConfig()).clamp()
        self._state = state or AnalysisState(accepted_edit_memory=self._config.accepted_edit_memory)
        self._timers = timers or AsyncioTimerFactory()
        self._validator = validator or SuggestionValidator()
        self._debounce: TimerHandle | None = None
        self._followup: TimerHandle | None = None
        self._tasks: set[asyncio.Task[None]] = set()
        self._listeners: list[StateListener] = []
        self._applying = False
        self._closed = False

    # ------------------------------------------------------------------
    # Read-only state
    # ------------------------------------------------------------------
    @property
    def state(self) -> AnalysisState:
        return self._state

    @property
    def config(self) -> AnalysisConfig:
        return self._config

    @property
    def current_text(self) -> str:
        return self._state.current_text

    @property
    def pending_suggestions(self) -> tuple[Suggestion, ...]:
        return tuple(self._state.pending)

    @property
    def stats(self) -> WritingStats:
        return self._state.stats

    @property
    def overall_score(self) -> int:
        return self._state.overall_score

    @property
    def is_analyzing(self) -> bool:
        return self._state.is_analyzing

    @property
    def strictness_level(self) -> int:
        return self._state.strictness_level

    @property
    def phase(self) -> SchedulerPhase:
        if self._applying:
            return SchedulerPhase.APPLYING_RESULT
        if self._state.is_analyzing:
            return SchedulerPhase.AWAITING_RESPONSE
        if self._debounce is not None or self._followup is not None:
            return SchedulerPhase.DEBOUNCING
        return SchedulerPhase.IDLE

    def snapshot(self) -> dict[str, Any]:
        payload = self._state.snapshot()
        payload["phase"] = self.phase.value
        return payload

    def subscribe(self, callback: StateListener) -> Callable[[], None]:
        """Call ``callback`` with a snapshot after each visible change; returns an unsubscribe hook."""

        if callback not in self._listeners:
            self._listeners.append(callback)

        def _unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return _unsubscribe

    # ------------------------------------------------------------------
    # User operations
    # ------------------------------------------------------------------
    def set_text(self, text: str) -> None:
        """Record a user edit; stats update now, analysis after the quiet interval."""

        state = self._state
        state.current_text = text
        state.stats = compute_stats(text)
        self._cancel_debounce()
        if not self._closed:
            self._debounce = self._timers.schedule_after(self._config.debounce_seconds, self._on_debounce_elapsed)
        self._notify()

    def apply_suggestion(self, suggestion_id: str) -> EditResult | None:
        """Apply one pending suggestion; returns ``None`` for an unknown id."""

        state = self._state
        suggestion = state.find(suggestion_id)
        if suggestion is None:
            LOGGER.debug("Ignoring apply for unknown suggestion %s", suggestion_id)
            return None

        result = apply_suggestion(suggestion, state.current_text, state.pending)
        state.pending = list(result.pending)
        if not result.applied:
            if not state.pending:
                self._escalate()
            self._notify()
            return result

        state.remember_edits([suggestion.as_accepted_edit()])
        state.current_text = result.text
        state.stats = compute_stats(result.text)
        state.last_analyzed_text = result.text
        LOGGER.debug("Applied suggestion %s (%s)", suggestion.id, result.summary)
        if not state.pending:
            self._escalate()
        self._notify()
        return result

    def dismiss_suggestion(self, suggestion_id: str) -> bool:
        state = self._state
        if state.find(suggestion_id) is None:
            return False
        state.pending = [item for item in state.pending if item.id != suggestion_id]
        if not state.pending:
            self._escalate()
        self._notify()
        return True

    def accept_all_suggestions(self) -> BatchResult | None:
        """Apply every pending suggestion and start a strict pass; ``None`` when nothing is pending."""

        state = self._state
        if not state.pending:
            return None
        state.remember_edits(item.as_accepted_edit() for item in state.pending)
        state.strictness_level += 1
        batch = apply_all(state.pending, state.current_text)
        state.current_text = batch.text
        state.stats = compute_stats(batch.text)
        state.pending = []
        state.last_analyzed_text = None
        self._cancel_debounce()
        LOGGER.debug(
            "Accepted %s suggestion(s), skipped %s (%s)",
            len(batch.applied),
            len(batch.skipped),
            batch.summary,
        )
        self._schedule_followup(AnalysisReason.POST_ACCEPT)
        self._notify()
        return batch

    def reanalyze(self) -> None:
        """Analyze the current text now, even if it was analyzed before."""

        self._cancel_debounce()
        self._cancel_followup()
        self._state.last_analyzed_text = None
        self._begin_pass(AnalysisReason.MANUAL)

    def clear_document(self) -> None:
        self._cancel_debounce()
        self._cancel_followup()
        # Bumping the id turns any in-flight response into a stale one.
        self._state.next_request_id()
        self._state.reset()
        self._notify()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    async def drain(self) -> None:
        """Wait for in-flight backend calls, including ones started while waiting."""

        while self._tasks:
            await asyncio.gather(*tuple(self._tasks), return_exceptions=True)

    async def aclose(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._cancel_debounce()
        self._cancel_followup()
        tasks = tuple(self._tasks)
        for task in tasks:
            task.cancel()
        for task in tasks:
            with contextlib.suppress(asyncio.CancelledError):
                await task
        self._listeners.clear()

    # ------------------------------------------------------------------
    # Scheduling
    # ------------------------------------------------------------------
    def _on_debounce_elapsed(self) -> None:
        self._debounce = None
        state = self._state
        if state.current_text == state.last_analyzed_text:
            LOGGER.debug("Text unchanged since last analysis; skipping backend call")
            self._notify()
            return
        self._begin_pass(AnalysisReason.TYPING)

    def _escalate(self) -> None:
        # The board was cleared one suggestion at a time; re-check the same text strictly.
        state = self._state
        state.strictness_level += 1
        state.last_analyzed_text = None
        self._schedule_followup(AnalysisReason.POST_ACCEPT)

    def _schedule_followup(self, reason: AnalysisReason) -> None:
        self._cancel_followup()
        if self._closed:
            return

        def _fire() -> None:
            self._followup = None
            self._begin_pass(reason)

        self._followup = self._timers.schedule_after(self._config.post_accept_delay, _fire)

    def _cancel_debounce(self) -> None:
        if self._debounce is not None:
            self._debounce.cancel()
            self._debounce = None

    def _cancel_followup(self) -> None:
        if self._followup is not None:
            self._followup.cancel()
            self._followup = None

    def _begin_pass(self, reason: AnalysisReason) -> None:
        if self._closed:
            return
        state = self._state
        text = state.current_text
        request_id = state.next_request_id()
        state.last_analyzed_text = text

        if not text.strip():
            state.pending = []
            state.stats = WritingStats.empty()
            state.overall_score = PERFECT_SCORE
            state.is_analyzing = False
            self._notify()
            return

        strict = state.strictness_level > 0 or reason is AnalysisReason.POST_ACCEPT
        accepted = [edit.to_payload() for edit in state.recent_edits(self._config.accepted_edit_context)]
        state.is_analyzing = True
        LOGGER.debug(
            "Starting analysis #%s (reason=%s, strict=%s, chars=%s)",
            request_id,
            reason.value,
            strict,
            len(text),
        )
        self._notify()
        self._spawn(self._run_pass(request_id, text, reason, strict, accepted))

    def _spawn(self, coro: Any) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _run_pass(
        self,
        request_id: int,
        text: str,
        reason: AnalysisReason,
        strict: bool,
        accepted: list[dict[str, str]],
    ) -> None:
        state = self._state
        try:
            result = await self._backend.proofread(text, strict=strict, accepted_edits=accepted)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            LOGGER.warning("Analysis #%s (%s) failed: %s", request_id, reason.value, exc, exc_info=True)
            if state.is_latest(request_id):
                state.is_analyzing = False
                state.last_error = str(exc) or type(exc).__name__
                self._notify()
            return

        if not state.is_latest(request_id):
            LOGGER.debug("Discarding stale analysis #%s (latest is #%s)", request_id, state.request_id)
            return
        state.is_analyzing = False
        if state.current_text != text:
            LOGGER.info("Text changed during analysis #%s; skipping update", request_id)
            self._notify()
            return

        self._applying = True
        try:
            suggestions = self._validator.validate(result.suggestions, text, strict=strict)
            state.pending = suggestions
            if result.overall_score is not None:
                state.overall_score = result.overall_score
            else:
                state.overall_score = self._config.default_score if suggestions else PERFECT_SCORE
            state.last_error = None
        finally:
            self._applying = False
        LOGGER.debug(
            "Analysis #%s produced %s suggestion(s) from %s candidate(s)",
            request_id,
            len(suggestions),
            len(result.suggestions),
        )
        self._notify()

    def _notify(self) -> None:
        if not self._listeners:
            return
        snapshot = self.snapshot()
        for callback in tuple(self._listeners):
            try:
                callback(dict(snapshot))
            except Exception:  # pragma: no cover - listeners must not break the scheduler
                LOGGER.debug("Analysis state listener %s failed", callback, exc_info=True)
