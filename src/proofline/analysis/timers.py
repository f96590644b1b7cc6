"""Cancelable delayed-callback abstraction used by the analysis scheduler."""

from __future__ import annotations

import asyncio
from typing import Callable, Protocol

__all__ = ["TimerHandle", "TimerFactory", "AsyncioTimerFactory"]


class TimerHandle(Protocol):
    """Handle returned by :meth:`TimerFactory.schedule_after`."""

    def cancel(self) -> None:  # pragma: no cover - protocol stub
        ...


class TimerFactory(Protocol):
    """Schedules ``callback`` after ``delay`` seconds."""

    def schedule_after(self, delay: float, callback: Callable[[], None]) -> TimerHandle:  # pragma: no cover
        ...


class AsyncioTimerFactory:
    """Timer factory backed by ``loop.call_later``."""

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def schedule_after(self, delay: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
        return self.loop.call_later(max(0.0, delay), callback)
