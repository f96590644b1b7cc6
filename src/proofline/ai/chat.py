"""Conversation state for the writing assistant chat."""

from __future__ import annotations

import logging
from typing import AsyncIterator, Mapping

from .gateway import AIWritingGateway, ToolRequest
from .results import ChatResult, ToolName

__all__ = ["ChatSession"]

LOGGER = logging.getLogger(__name__)


class ChatSession:
    """Keeps the chat transcript and sends each turn with its history.

    The user turn is appended before the call and removed again when the call
    fails, so a retry does not duplicate it.
    """

    def __init__(self, gateway: AIWritingGateway, *, max_messages: int = 100) -> None:
        self._gateway = gateway
        self._max_messages = max(2, max_messages)
        self._history: list[dict[str, str]] = []

    @property
    def history(self) -> tuple[Mapping[str, str], ...]:
        return tuple(dict(entry) for entry in self._history)

    def clear(self) -> None:
        self._history.clear()

    async def send(self, message: str, *, text: str = "") -> ChatResult:
        prior = tuple(self._history)
        self._history.append({"role": "user", "content": message})
        try:
            result = await self._gateway.run_tool(
                ToolRequest(tool=ToolName.CHAT, text=text, message=message, history=prior)
            )
        except Exception:
            self._rollback_user_turn()
            raise
        reply = result.response if isinstance(result, ChatResult) else ""
        self._history.append({"role": "assistant", "content": reply})
        self._trim()
        return ChatResult(response=reply)

    async def stream(self, message: str, *, text: str = "") -> AsyncIterator[str]:
        """Stream the reply; the full text is added to history once complete."""

        prior = tuple(self._history)
        self._history.append({"role": "user", "content": message})
        chunks: list[str] = []
        try:
            async for chunk in self._gateway.stream_chat(text, message, prior):
                chunks.append(chunk)
                yield chunk
        except Exception:
            self._rollback_user_turn()
            raise
        self._history.append({"role": "assistant", "content": "".join(chunks)})
        self._trim()

    def _rollback_user_turn(self) -> None:
        if self._history and self._history[-1].get("role") == "user":
            self._history.pop()
            LOGGER.debug("Chat turn failed; removed pending user message")

    def _trim(self) -> None:
        overflow = len(self._history) - self._max_messages
        if overflow > 0:
            del self._history[:overflow]
