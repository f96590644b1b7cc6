"""Tests for the debounced analysis scheduler."""

from __future__ import annotations

import asyncio
from typing import Any

import pytest

from proofline.ai.client import BackendError
from proofline.analysis.models import SuggestionKind
from proofline.analysis.scheduler import AnalysisScheduler, SchedulerPhase
from proofline.analysis.state import AnalysisConfig

from conftest import FakeBackend, ManualTimerFactory, make_result


def _raw(original: str, replacement: str, start: int, kind: str = "spelling", **extra: Any) -> dict[str, Any]:
    payload = {
        "type": kind,
        "original": original,
        "replacement": replacement,
        "message": f"{original} -> {replacement}",
        "startIndex": start,
        "endIndex": start + len(original),
    }
    payload.update(extra)
    return payload


async def _settle() -> None:
    for _ in range(5):
        await asyncio.sleep(0)


def _scheduler(backend: FakeBackend, timers: ManualTimerFactory, **config: Any) -> AnalysisScheduler:
    return AnalysisScheduler(backend, timers=timers, config=AnalysisConfig(**config))


async def _analyze(scheduler: AnalysisScheduler, timers: ManualTimerFactory, text: str) -> None:
    scheduler.set_text(text)
    timers.fire_next()
    await scheduler.drain()


@pytest.mark.asyncio
async def test_set_text_updates_stats_now_and_debounces_backend(backend, timers) -> None:
    scheduler = _scheduler(backend, timers)

    scheduler.set_text("Hello there world.")

    assert scheduler.stats.word_count == 3
    assert scheduler.phase is SchedulerPhase.DEBOUNCING
    assert backend.calls == []
    [timer] = timers.active
    assert timer.delay == pytest.approx(1.4)


@pytest.mark.asyncio
async def test_typing_resets_the_debounce_timer(backend, timers) -> None:
    scheduler = _scheduler(backend, timers)

    scheduler.set_text("Hel")
    scheduler.set_text("Hello")

    assert timers.timers[0].cancelled
    assert len(timers.active) == 1

    timers.fire_next()
    await scheduler.drain()

    assert [call.text for call in backend.calls] == ["Hello"]
    assert backend.calls[0].strict is False


@pytest.mark.asyncio
async def test_response_populates_suggestions_and_score(backend, timers) -> None:
    scheduler = _scheduler(backend, timers)
    backend.queue(make_result(_raw("Teh", "The", 0), score=72))

    scheduler.set_text("Teh cat is happy.")
    timers.fire_next()
    assert scheduler.phase is SchedulerPhase.AWAITING_RESPONSE
    assert scheduler.is_analyzing
    await scheduler.drain()

    assert scheduler.phase is SchedulerPhase.IDLE
    assert not scheduler.is_analyzing
    [suggestion] = scheduler.pending_suggestions
    assert suggestion.original == "Teh"
    assert scheduler.overall_score == 72


@pytest.mark.asyncio
async def test_score_falls_back_when_backend_omits_it(backend, timers) -> None:
    scheduler = _scheduler(backend, timers)
    backend.queue(make_result(_raw("Teh", "The", 0)))

    await _analyze(scheduler, timers, "Teh cat is happy.")
    assert scheduler.overall_score == 85

    backend.queue(make_result())
    await _analyze(scheduler, timers, "The cat is happy.")
    assert scheduler.overall_score == 100


@pytest.mark.asyncio
async def test_unchanged_text_does_not_call_backend_again(backend, timers) -> None:
    scheduler = _scheduler(backend, timers)

    await _analyze(scheduler, timers, "Same text.")
    await _analyze(scheduler, timers, "Same text.")

    assert len(backend.calls) == 1
    assert scheduler.phase is SchedulerPhase.IDLE


@pytest.mark.asyncio
async def test_stale_response_is_discarded(backend, timers) -> None:
    scheduler = _scheduler(backend, timers)
    first = backend.hold()
    second = backend.hold()

    scheduler.set_text("One teh.")
    timers.fire_next()
    await _settle()
    scheduler.set_text("Two teh here.")
    timers.fire_next()
    await _settle()
    assert len(backend.calls) == 2
    assert scheduler.state.request_id == 2

    second.set_result(make_result(_raw("teh", "the", 4), score=90))
    await _settle()
    [latest] = scheduler.pending_suggestions
    assert latest.span.to_tuple() == (4, 7)

    first.set_result(make_result(_raw("teh", "the", 4), _raw("One", "Uno", 0), score=10))
    await scheduler.drain()

    assert [item.span.to_tuple() for item in scheduler.pending_suggestions] == [(4, 7)]
    assert scheduler.overall_score == 90
    assert not scheduler.is_analyzing


@pytest.mark.asyncio
async def test_result_for_outdated_text_is_skipped(backend, timers) -> None:
    scheduler = _scheduler(backend, timers)
    pending = backend.hold()

    scheduler.set_text("Teh cat.")
    timers.fire_next()
    scheduler.set_text("Teh cat sat.")
    pending.set_result(make_result(_raw("Teh", "The", 0)))
    await scheduler.drain()

    assert scheduler.pending_suggestions == ()
    assert not scheduler.is_analyzing
    assert scheduler.phase is SchedulerPhase.DEBOUNCING


@pytest.mark.asyncio
async def test_end_to_end_apply_triggers_strict_pass(backend, timers) -> None:
    scheduler = _scheduler(backend, timers)
    backend.queue(make_result(_raw("Teh", "The", 0)))

    await _analyze(scheduler, timers, "Teh cat is happy.")
    [suggestion] = scheduler.pending_suggestions

    result = scheduler.apply_suggestion(suggestion.id)

    assert result is not None and result.applied
    assert scheduler.current_text == "The cat is happy."
    assert scheduler.pending_suggestions == ()
    assert scheduler.strictness_level == 1
    [followup] = timers.active
    assert followup.delay == pytest.approx(0.15)

    timers.fire_next()
    await scheduler.drain()

    strict_call = backend.calls[-1]
    assert strict_call.text == "The cat is happy."
    assert strict_call.strict is True
    assert strict_call.accepted_edits == [
        {"type": "spelling", "original": "Teh", "replacement": "The", "message": "Teh -> The"}
    ]


@pytest.mark.asyncio
async def test_apply_with_remaining_suggestions_shifts_and_suppresses_reanalysis(backend, timers) -> None:
    scheduler = _scheduler(backend, timers)
    backend.queue(make_result(_raw("a", "XXX", 0, kind="grammar"), _raw("d", "Y", 3, kind="grammar")))

    await _analyze(scheduler, timers, "abcdef")
    first = next(item for item in scheduler.pending_suggestions if item.original == "a")

    scheduler.apply_suggestion(first.id)

    assert scheduler.current_text == "XXXbcdef"
    [remaining] = scheduler.pending_suggestions
    assert remaining.span.to_tuple() == (5, 6)
    assert all(item.matches(scheduler.current_text) for item in scheduler.pending_suggestions)
    assert scheduler.state.last_analyzed_text == "XXXbcdef"
    assert scheduler.strictness_level == 0
    assert timers.active == []


@pytest.mark.asyncio
async def test_apply_unknown_id_is_ignored(backend, timers) -> None:
    scheduler = _scheduler(backend, timers)

    assert scheduler.apply_suggestion("missing") is None
    assert scheduler.dismiss_suggestion("missing") is False


@pytest.mark.asyncio
async def test_dismissing_last_suggestion_runs_strict_pass(backend, timers) -> None:
    scheduler = _scheduler(backend, timers)
    backend.queue(make_result(_raw("Teh", "The", 0)))
    await _analyze(scheduler, timers, "Teh cat.")
    [suggestion] = scheduler.pending_suggestions

    assert scheduler.dismiss_suggestion(suggestion.id)

    assert scheduler.strictness_level == 1
    assert scheduler.state.last_analyzed_text is None
    timers.fire_next()
    await scheduler.drain()
    assert backend.calls[-1].text == "Teh cat."
    assert backend.calls[-1].strict is True
    assert backend.calls[-1].accepted_edits == []


@pytest.mark.asyncio
async def test_stale_apply_of_last_suggestion_escalates(backend, timers) -> None:
    scheduler = _scheduler(backend, timers)
    backend.queue(make_result(_raw("Teh", "The", 0)))
    await _analyze(scheduler, timers, "Teh cat.")
    [suggestion] = scheduler.pending_suggestions
    scheduler.set_text("A dog.")

    result = scheduler.apply_suggestion(suggestion.id)

    assert result is not None and not result.applied
    assert scheduler.current_text == "A dog."
    assert scheduler.pending_suggestions == ()
    assert scheduler.strictness_level == 1
    assert scheduler.state.last_analyzed_text is None
    assert [timer.delay for timer in timers.active] == [1.4, 0.15]


@pytest.mark.asyncio
async def test_accept_all_converges_to_strict_pass_without_style(backend, timers) -> None:
    scheduler = _scheduler(backend, timers)
    text = "Teh cat sat on teh mat."
    backend.queue(make_result(_raw("Teh", "The", 0), _raw("teh", "the", 15)))
    await _analyze(scheduler, timers, text)

    batch = scheduler.accept_all_suggestions()

    assert batch is not None
    assert scheduler.current_text == "The cat sat on the mat."
    assert scheduler.pending_suggestions == ()
    assert scheduler.strictness_level == 1
    assert len(scheduler.state.accepted_edits) == 2

    backend.queue(
        make_result(
            _raw("sat", "perched", 8, kind="style"),
            _raw("cat", "kitten", 4, kind="clarity"),
            _raw("mat.", "mat!", 19, kind="punctuation"),
        )
    )
    timers.fire_next()
    await scheduler.drain()

    assert backend.calls[-1].strict is True
    kinds = {item.kind for item in scheduler.pending_suggestions}
    assert kinds == {SuggestionKind.PUNCTUATION}


@pytest.mark.asyncio
async def test_accept_all_with_nothing_pending_is_a_no_op(backend, timers) -> None:
    scheduler = _scheduler(backend, timers)
    scheduler.set_text("Clean text.")

    assert scheduler.accept_all_suggestions() is None
    assert scheduler.strictness_level == 0


@pytest.mark.asyncio
async def test_reanalyze_runs_immediately_for_unchanged_text(backend, timers) -> None:
    scheduler = _scheduler(backend, timers)
    await _analyze(scheduler, timers, "Already checked.")

    scheduler.reanalyze()
    await scheduler.drain()

    assert [call.text for call in backend.calls] == ["Already checked.", "Already checked."]
    assert backend.calls[-1].strict is False


@pytest.mark.asyncio
async def test_blank_text_short_circuits_without_backend_call(backend, timers) -> None:
    scheduler = _scheduler(backend, timers)
    backend.queue(make_result(_raw("Teh", "The", 0), score=40))
    await _analyze(scheduler, timers, "Teh cat.")

    await _analyze(scheduler, timers, "   ")

    assert len(backend.calls) == 1
    assert scheduler.pending_suggestions == ()
    assert scheduler.overall_score == 100
    assert scheduler.stats.word_count == 0


@pytest.mark.asyncio
async def test_backend_failure_keeps_existing_suggestions(backend, timers) -> None:
    scheduler = _scheduler(backend, timers)
    backend.queue(make_result(_raw("Teh", "The", 0)))
    await _analyze(scheduler, timers, "Teh cat.")
    before = scheduler.pending_suggestions

    backend.queue(BackendError("Rate limits exceeded, please try again later.", status_code=429))
    scheduler.reanalyze()
    await scheduler.drain()

    assert scheduler.pending_suggestions == before
    assert not scheduler.is_analyzing
    assert scheduler.snapshot()["lastError"] == "Rate limits exceeded, please try again later."
    assert len(backend.calls) == 2


@pytest.mark.asyncio
async def test_clear_document_resets_state_and_ignores_inflight(backend, timers) -> None:
    scheduler = _scheduler(backend, timers)
    backend.queue(make_result(_raw("Teh", "The", 0), score=50))
    await _analyze(scheduler, timers, "Teh cat.")
    scheduler.apply_suggestion(scheduler.pending_suggestions[0].id)
    inflight = backend.hold()
    scheduler.reanalyze()

    scheduler.clear_document()
    inflight.set_result(make_result(_raw("cat", "dog", 4), score=20))
    await scheduler.drain()

    assert scheduler.current_text == ""
    assert scheduler.pending_suggestions == ()
    assert scheduler.overall_score == 100
    assert scheduler.stats.word_count == 0
    assert scheduler.stats.readability_score == 0
    assert scheduler.strictness_level == 0
    assert len(scheduler.state.accepted_edits) == 0
    assert timers.active == []
    assert scheduler.phase is SchedulerPhase.IDLE


@pytest.mark.asyncio
async def test_recent_edit_context_is_capped(backend, timers) -> None:
    scheduler = _scheduler(backend, timers, accepted_edit_memory=4, accepted_edit_context=2)
    text = "aa bb cc dd"
    backend.queue(
        make_result(
            _raw("aa", "A", 0),
            _raw("bb", "B", 3),
            _raw("cc", "C", 6),
            _raw("dd", "D", 9),
        )
    )
    await _analyze(scheduler, timers, text)

    scheduler.accept_all_suggestions()
    timers.fire_next()
    await scheduler.drain()

    assert len(scheduler.state.accepted_edits) == 4
    assert len(backend.calls[-1].accepted_edits) == 2


@pytest.mark.asyncio
async def test_listeners_receive_snapshots_until_unsubscribed(backend, timers) -> None:
    scheduler = _scheduler(backend, timers)
    seen: list[dict[str, Any]] = []
    unsubscribe = scheduler.subscribe(seen.append)

    scheduler.set_text("Hello.")
    assert seen[-1]["text"] == "Hello."
    assert seen[-1]["phase"] == SchedulerPhase.DEBOUNCING.value

    unsubscribe()
    scheduler.set_text("Hello again.")
    assert seen[-1]["text"] == "Hello."


@pytest.mark.asyncio
async def test_aclose_cancels_timers_and_pending_calls(backend, timers) -> None:
    scheduler = _scheduler(backend, timers)
    backend.hold()
    scheduler.set_text("Draft.")
    scheduler.reanalyze()
    scheduler.set_text("Draft two.")

    await scheduler.aclose()

    assert timers.active == []
    await scheduler.drain()
