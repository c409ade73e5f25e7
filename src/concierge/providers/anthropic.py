"""Anthropic/Claude provider adapter."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from typing import Any

from anthropic import NOT_GIVEN, AsyncAnthropic

from concierge.providers.base import BaseProvider
from concierge.types.providers import ChatMessage, StreamEvent
from concierge.types.tools import ToolDef

logger = logging.getLogger(__name__)


class AnthropicProvider(BaseProvider):
    """Provider adapter for Anthropic's Claude models.

    Parameters
    ----------
    api_key:
        Anthropic API key. When *None* the SDK falls back to
        ``ANTHROPIC_API_KEY``.
    model:
        Model ID to use for completions.
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str = "claude-3-5-haiku-20241022",
    ) -> None:
        super().__init__(model)
        self._client = AsyncAnthropic(api_key=api_key) if api_key else AsyncAnthropic()

    async def chat_completion_stream(
        self,
        messages: list[ChatMessage],
        tools: list[ToolDef],
        system: str,
        max_tokens: int = 4096,
        temperature: float | None = None,
    ) -> AsyncIterator[StreamEvent]:
        """Stream a chat completion from the Anthropic Messages API."""
        async with self._client.messages.stream(
            model=self._model,
            max_tokens=max_tokens,
            system=system,
            messages=self._to_anthropic_messages(messages),  # type: ignore[arg-type]
            tools=self._make_tool_defs(tools) or NOT_GIVEN,  # type: ignore[arg-type]
            temperature=temperature if temperature is not None else NOT_GIVEN,
        ) as stream:
            # Track the current block type so content_block_stop can close tool uses.
            current_block_type: str | None = None

            async for event in stream:
                event_type: str = event.type

                if event_type == "content_block_start":
                    current_block_type = event.content_block.type
                    if current_block_type == "tool_use":
                        yield StreamEvent(
                            type="tool_use_start",
                            tool_use_id=event.content_block.id,
                            tool_name=event.content_block.name,
                        )

                elif event_type == "content_block_delta":
                    if event.delta.type == "text_delta":
                        yield StreamEvent(type="text_delta", text=event.delta.text)
                    elif event.delta.type == "input_json_delta":
                        yield StreamEvent(
                            type="tool_use_delta",
                            tool_args_json=event.delta.partial_json,
                        )

                elif event_type == "content_block_stop":
                    if current_block_type == "tool_use":
                        yield StreamEvent(type="tool_use_end")
                    current_block_type = None

                elif event_type == "message_stop":
                    final_message = await stream.get_final_message()
                    yield StreamEvent(
                        type="message_end",
                        stop_reason=final_message.stop_reason,
                        usage={
                            "input_tokens": final_message.usage.input_tokens,
                            "output_tokens": final_message.usage.output_tokens,
                        },
                    )

    def _to_anthropic_messages(self, messages: list[ChatMessage]) -> list[dict[str, Any]]:
        """Convert :class:`ChatMessage` list to Anthropic's messages format.

        System-role messages are dropped; the system prompt travels separately.
        Tool results are already ``role="user"`` messages with
        ``tool_result`` blocks, which is what the API expects.
        """
        result: list[dict[str, Any]] = []
        for msg in messages:
            if msg.role == "system":
                continue
            if msg.role == "user":
                content = msg.content if isinstance(msg.content, list) else str(msg.content)
                result.append({"role": "user", "content": content})
            elif msg.role == "assistant":
                if isinstance(msg.content, list):
                    result.append({"role": "assistant", "content": msg.content})
                else:
                    result.append(
                        {"role": "assistant", "content": [{"type": "text", "text": str(msg.content)}]}
                    )
        return result
