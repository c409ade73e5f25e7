"""Base provider with transient-error detection and tool schema conversion."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from typing import Any

import httpx

from concierge.types.providers import ChatMessage, StreamEvent
from concierge.types.tools import ToolDef

logger = logging.getLogger(__name__)

# Errors that are worth retrying on: rate limits and server overload.
_RETRYABLE_STATUS_CODES: frozenset[int] = frozenset({429, 529})
# SDK exception names for rate limiting, overload, dropped connections and timeouts.
_RETRYABLE_NAMES: frozenset[str] = frozenset({
    "RateLimitError",
    "OverloadedError",
    "APIConnectionError",
    "APITimeoutError",
})


def is_retryable(exc: BaseException) -> bool:
    """Return True when *exc* represents a transient error worth retrying."""
    if type(exc).__name__ in _RETRYABLE_NAMES:
        return True
    if isinstance(exc, (httpx.TransportError, ConnectionError)):
        return True
    # Generic check: look for a status_code attribute (OpenAI / httpx style).
    status_code: int | None = getattr(exc, "status_code", None)
    return status_code is not None and status_code in _RETRYABLE_STATUS_CODES


class BaseProvider(ABC):
    """Abstract base class for all provider adapters.

    Concrete sub-classes must implement :meth:`chat_completion_stream`.
    Retrying is the completion service's job, so adapters surface SDK errors
    unchanged.

    Parameters
    ----------
    model:
        The model identifier string (e.g. ``"anthropic/claude-3.5-haiku"``).
    """

    def __init__(self, model: str) -> None:
        self._model = model

    @property
    def model_id(self) -> str:
        """The model identifier being used by this provider instance."""
        return self._model

    def format_tool_result(
        self,
        tool_use_id: str,
        content: str,
        is_error: bool = False,
    ) -> ChatMessage:
        """Build a provider-agnostic tool-result :class:`ChatMessage`.

        The default representation mirrors the Anthropic ``tool_result``
        block. Providers that need a different wire format override this.
        """
        block: dict[str, Any] = {
            "type": "tool_result",
            "tool_use_id": tool_use_id,
            "content": content,
        }
        if is_error:
            block["is_error"] = True
        return ChatMessage(role="user", content=[block])

    def format_tool_use(
        self,
        tool_use_id: str,
        name: str,
        args: dict[str, Any],
    ) -> dict[str, Any]:
        """Build a tool-use content block for inclusion in an assistant message."""
        return {
            "type": "tool_use",
            "id": tool_use_id,
            "name": name,
            "input": args,
        }

    @abstractmethod
    def chat_completion_stream(
        self,
        messages: list[ChatMessage],
        tools: list[ToolDef],
        system: str,
        max_tokens: int,
        temperature: float | None = None,
    ) -> AsyncIterator[StreamEvent]:
        """Stream a chat completion, yielding :class:`StreamEvent` objects.

        Parameters
        ----------
        messages:
            Ordered list of conversation messages (system excluded).
        tools:
            Tool definitions the model may call.
        system:
            System prompt string.
        max_tokens:
            Hard upper bound on generated tokens.
        temperature:
            Sampling temperature; None leaves the provider default.
        """
        ...

    def _make_tool_defs(self, tools: list[ToolDef]) -> list[dict[str, Any]]:
        """Convert :class:`ToolDef` objects into provider-neutral dicts.

        Each dict has ``name``, ``description`` and ``input_schema`` (a JSON
        Schema ``object``). Adapters map these onto their SDK's wire format.
        """
        return [
            {
                "name": tool.name,
                "description": tool.description,
                "input_schema": tool.input_schema(),
            }
            for tool in tools
        ]
