"""Shared pytest fixtures."""

from __future__ import annotations

import asyncio
import os
from collections import deque
from types import SimpleNamespace
from typing import Any, Callable, Mapping, Sequence

import pytest

from proofline.ai.results import ProofreadResult
from proofline.services import telemetry


class ManualTimer:
    def __init__(self, delay: float, callback: Callable[[], None]) -> None:
        self.delay = delay
        self.callback = callback
        self.cancelled = False
        self.fired = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualTimerFactory:
    """Timer factory whose timers only fire when a test says so."""

    def __init__(self) -> None:
        self.timers: list[ManualTimer] = []

    def schedule_after(self, delay: float, callback: Callable[[], None]) -> ManualTimer:
        timer = ManualTimer(delay, callback)
        self.timers.append(timer)
        return timer

    @property
    def active(self) -> list[ManualTimer]:
        return [timer for timer in self.timers if not timer.cancelled and not timer.fired]

    def fire_next(self) -> ManualTimer:
        timer = self.active[0]
        timer.fired = True
        timer.callback()
        return timer


class FakeBackend:
    """Scriptable stand-in for the proofreading gateway.

    Each call consumes the next queued item: a result, an exception to raise,
    or an ``asyncio.Future`` the call waits on. With nothing queued the call
    returns an empty result.
    """

    def __init__(self) -> None:
        self.calls: list[SimpleNamespace] = []
        self._responses: deque[Any] = deque()

    def queue(self, item: Any) -> None:
        self._responses.append(item)

    def hold(self) -> asyncio.Future:
        future = asyncio.get_running_loop().create_future()
        self._responses.append(future)
        return future

    async def proofread(
        self,
        text: str,
        *,
        strict: bool = False,
        accepted_edits: Sequence[Mapping[str, str]] = (),
    ) -> ProofreadResult:
        self.calls.append(SimpleNamespace(text=text, strict=strict, accepted_edits=list(accepted_edits)))
        item = self._responses.popleft() if self._responses else ProofreadResult()
        if isinstance(item, asyncio.Future):
            item = await item
        if isinstance(item, BaseException):
            raise item
        return item

    async def run_tool(self, request: Any) -> Any:  # pragma: no cover - unused by scheduler tests
        raise NotImplementedError

    async def aclose(self) -> None:
        return None


def make_result(*suggestions: Mapping[str, Any], score: int | None = None) -> ProofreadResult:
    return ProofreadResult(suggestions=tuple(suggestions), overall_score=score)


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    for name in list(os.environ):
        if name.startswith("PROOFLINE_"):
            monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("PROOFLINE_LOG_DIR", str(tmp_path / "logs"))
    monkeypatch.setattr(telemetry, "_EVENT_LISTENERS", {})


@pytest.fixture
def timers() -> ManualTimerFactory:
    return ManualTimerFactory()


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def result_factory() -> Callable[..., ProofreadResult]:
    return make_result
