"""AI client, prompts, tool results and the writing-tools gateway."""

from .client import AIClient, BackendError, ClientSettings
from .gateway import AIWritingGateway, AnalysisBackend, ToolRequest
from .results import ToolName, parse_tool_result

__all__ = [
    "AIClient",
    "AIWritingGateway",
    "AnalysisBackend",
    "BackendError",
    "ClientSettings",
    "ToolName",
    "ToolRequest",
    "parse_tool_result",
]
