"""Provider adapter protocol and stream event types."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

from concierge.types.tools import ToolDef


@dataclass(frozen=True, slots=True)
class StreamEvent:
    """A single event from a streaming provider response."""

    type: str  # "text_delta", "tool_use_start", "tool_use_delta", "tool_use_end", "message_end"
    text: str | None = None
    tool_use_id: str | None = None
    tool_name: str | None = None
    tool_args_json: str | None = None
    stop_reason: str | None = None
    usage: dict[str, int] | None = None


@dataclass(slots=True)
class ChatMessage:
    """A message in the chat history (provider-agnostic format)."""

    role: str  # "user", "assistant", "system", "tool"
    content: str | list[dict[str, Any]] = ""
    tool_use_id: str | None = None
    tool_name: str | None = None


@runtime_checkable
class ProviderAdapter(Protocol):
    """Protocol that all provider adapters must implement."""

    async def chat_completion_stream(
        self,
        messages: list[ChatMessage],
        tools: list[ToolDef],
        system: str,
        max_tokens: int,
        temperature: float | None = None,
    ) -> Any:
        """Stream a chat completion. Returns an async iterator of StreamEvent."""
        ...

    def format_tool_result(self, tool_use_id: str, content: str, is_error: bool) -> ChatMessage:
        """Format a tool result into a provider-specific message."""
        ...

    def format_tool_use(self, tool_use_id: str, name: str, args: dict[str, Any]) -> dict[str, Any]:
        """Format a tool use block for the assistant message."""
        ...

    @property
    def model_id(self) -> str:
        """The model identifier being used."""
        ...
