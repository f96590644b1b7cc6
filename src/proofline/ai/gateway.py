"""Backend gateway that turns tool requests into model calls and typed results."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, AsyncIterator, Mapping, Protocol, Sequence

from ..services.telemetry import BackendCallRecorder
from . import prompts
from .client import AIClient, BackendError
from .parsing import extract_json_payload
from .results import (
    SEARCH_TOOLS,
    ChatResult,
    ProofreadResult,
    RawResult,
    ToolName,
    ToolResult,
    parse_tool_result,
)
from .search import WebSearchTools

__all__ = ["AIWritingGateway", "AnalysisBackend", "ToolRequest"]

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class ToolRequest:
    """One call to a writing tool."""

    tool: ToolName
    text: str
    message: str | None = None
    history: tuple[Mapping[str, str], ...] = ()
    strict: bool = False
    accepted_edits: tuple[Mapping[str, str], ...] = ()
    claims: tuple[str, ...] | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "tool", ToolName.coerce(self.tool))
        object.__setattr__(self, "history", tuple(self.history))
        object.__setattr__(self, "accepted_edits", tuple(self.accepted_edits))
        if self.claims is not None:
            object.__setattr__(self, "claims", tuple(self.claims))

    def to_payload(self) -> dict[str, Any]:
        """Return the JSON body the hosted edge function accepts."""

        payload: dict[str, Any] = {"tool": self.tool.value, "text": self.text}
        if self.message is not None:
            payload["message"] = self.message
        if self.history:
            payload["conversationHistory"] = [dict(entry) for entry in self.history]
        if self.tool is ToolName.PROOFREAD:
            payload["strict"] = self.strict
            payload["acceptedEdits"] = [dict(edit) for edit in self.accepted_edits]
        if self.claims:
            payload["claims"] = list(self.claims)
        return payload


class AnalysisBackend(Protocol):
    """What the analysis scheduler needs from a backend."""

    async def proofread(
        self,
        text: str,
        *,
        strict: bool = False,
        accepted_edits: Sequence[Mapping[str, str]] = (),
    ) -> ProofreadResult:  # pragma: no cover - protocol stub
        ...

    async def run_tool(self, request: ToolRequest) -> ToolResult:  # pragma: no cover - protocol stub
        ...


def _model_name(client: Any) -> str | None:
    settings = getattr(client, "settings", None)
    return getattr(settings, "model", None)


class AIWritingGateway:
    """Routes tool requests to the writing model or the web-search model.

    Search-backed tools go to ``search_client`` when one is configured and
    otherwise share the writing client.
    """

    def __init__(
        self,
        client: AIClient,
        *,
        search_client: AIClient | None = None,
        recorder: BackendCallRecorder | None = None,
    ) -> None:
        self._client = client
        self._search_client = search_client or client
        self._search = WebSearchTools(self._search_client)
        self._recorder = recorder or BackendCallRecorder()

    @property
    def client(self) -> AIClient:
        return self._client

    @property
    def search_client(self) -> AIClient:
        return self._search_client

    async def proofread(
        self,
        text: str,
        *,
        strict: bool = False,
        accepted_edits: Sequence[Mapping[str, str]] = (),
    ) -> ProofreadResult:
        messages = prompts.build_proofread_messages(text, strict=strict, accepted_edits=accepted_edits)
        with self._recorder.span(
            ToolName.PROOFREAD.value,
            model=_model_name(self._client),
            text_length=len(text),
            strict=strict,
        ) as event:
            content = await self._complete(ToolName.PROOFREAD, self._client, messages)
            result = parse_tool_result(ToolName.PROOFREAD, extract_json_payload(content))
            if isinstance(result, RawResult):
                LOGGER.warning("Proofread reply was not JSON; treating it as no suggestions")
                result = ProofreadResult()
            event.result_count = len(result.suggestions)
        LOGGER.debug(
            "Proofread returned %s candidate(s) (strict=%s, score=%s)",
            len(result.suggestions),
            strict,
            result.overall_score,
        )
        return result

    async def run_tool(self, request: ToolRequest) -> ToolResult:
        """Run ``request`` and return the tool's typed result."""

        tool = request.tool
        if tool is ToolName.CHAT:
            if not (request.message or "").strip():
                raise ValueError("A message is required for chat")
        elif not request.text.strip():
            raise ValueError("Text is required")

        if tool is ToolName.PROOFREAD:
            return await self.proofread(request.text, strict=request.strict, accepted_edits=request.accepted_edits)
        if tool in SEARCH_TOOLS:
            return await self._run_search_tool(request)

        with self._recorder.span(tool.value, model=_model_name(self._client), text_length=len(request.text)) as event:
            if tool is ToolName.CHAT:
                messages = prompts.build_chat_messages(request.text, request.message or "", request.history)
                content = await self._complete(tool, self._client, messages)
                return ChatResult(response=content)
            messages = prompts.build_tool_messages(tool, request.text)
            content = await self._complete(tool, self._client, messages)
            result = parse_tool_result(tool, extract_json_payload(content))
            if isinstance(result, RawResult):
                event.outcome = "raw"
            return result

    async def stream_chat(
        self,
        text: str,
        message: str,
        history: Sequence[Mapping[str, str]] = (),
    ) -> AsyncIterator[str]:
        """Yield the assistant reply to ``message`` as content deltas arrive."""

        if not message.strip():
            raise ValueError("A message is required for chat")
        messages = prompts.build_chat_messages(text, message, history)
        with self._recorder.span(ToolName.CHAT.value, model=_model_name(self._client), text_length=len(text)):
            try:
                async for event in self._client.stream_chat(
                    messages, temperature=prompts.temperature_for(ToolName.CHAT)
                ):
                    if event.type == "content.delta" and event.content:
                        yield event.content
            except BackendError as exc:
                if exc.tool is None:
                    exc.tool = ToolName.CHAT.value
                raise

    async def _run_search_tool(self, request: ToolRequest) -> ToolResult:
        tool = request.tool
        with self._recorder.span(
            tool.value, model=_model_name(self._search_client), text_length=len(request.text)
        ) as event:
            try:
                if tool is ToolName.FACT_CHECK:
                    result = await self._search.fact_check(request.text, request.claims)
                    event.result_count = len(result.claims)
                elif tool is ToolName.FIND_CITATIONS:
                    result = await self._search.find_citations(request.text)
                    event.result_count = len(result.citations_needed)
                else:
                    result = await self._search.check_plagiarism(request.text)
                    event.result_count = len(result.matches)
            except BackendError as exc:
                if exc.tool is None:
                    exc.tool = tool.value
                raise
        return result

    async def _complete(self, tool: ToolName, client: AIClient, messages: list[dict[str, str]]) -> str:
        try:
            completion = await client.complete(messages, temperature=prompts.temperature_for(tool))
        except BackendError as exc:
            if exc.tool is None:
                exc.tool = tool.value
            raise
        return completion.content

    async def aclose(self) -> None:
        await self._client.aclose()
        if self._search_client is not self._client:
            await self._search_client.aclose()
