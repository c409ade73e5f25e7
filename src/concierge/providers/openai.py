"""OpenAI-compatible provider adapter.

Serves OpenAI itself and OpenRouter (``https://openrouter.ai/api/v1``) or any
other OpenAI-compatible endpoint by passing a custom ``base_url``.
"""

from __future__ import annotations

import json
import logging
from collections.abc import AsyncIterator
from typing import Any

from openai import NOT_GIVEN, AsyncOpenAI

from concierge.providers.base import BaseProvider
from concierge.types.providers import ChatMessage, StreamEvent
from concierge.types.tools import ToolDef

logger = logging.getLogger(__name__)

OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"


class OpenAIProvider(BaseProvider):
    """Provider adapter for OpenAI-compatible chat completion APIs.

    Uses the official ``openai`` SDK with its async streaming interface and
    translates chunks into :class:`~concierge.types.providers.StreamEvent`.

    Parameters
    ----------
    api_key:
        API key. When *None* the SDK falls back to ``OPENAI_API_KEY``.
    model:
        Model ID to use for completions.
    base_url:
        Optional custom base URL for OpenAI-compatible endpoints.
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str = "gpt-4o-mini",
        base_url: str | None = None,
    ) -> None:
        super().__init__(model)
        kwargs: dict[str, Any] = {}
        if api_key is not None:
            kwargs["api_key"] = api_key
        if base_url is not None:
            kwargs["base_url"] = base_url
        self._client = AsyncOpenAI(**kwargs)

    async def chat_completion_stream(
        self,
        messages: list[ChatMessage],
        tools: list[ToolDef],
        system: str,
        max_tokens: int = 4096,
        temperature: float | None = None,
    ) -> AsyncIterator[StreamEvent]:
        """Stream a chat completion from an OpenAI-compatible API.

        The system prompt is injected as the first ``role="system"`` message.
        """
        openai_messages = self._to_openai_messages(messages, system)
        openai_tools = self._to_openai_tools(tools)

        stream = await self._client.chat.completions.create(
            model=self._model,
            messages=openai_messages,  # type: ignore[arg-type]
            tools=openai_tools if openai_tools else NOT_GIVEN,
            temperature=temperature if temperature is not None else NOT_GIVEN,
            max_tokens=max_tokens,
            stream=True,
            stream_options={"include_usage": True},
        )

        # index -> tool_use_id for calls opened in this response
        active_tool_call_ids: dict[int, str] = {}
        final_usage: dict[str, int] | None = None
        pending_end: StreamEvent | None = None

        async for chunk in stream:
            # The usage chunk arrives after the finish_reason chunk with choices=[].
            raw_usage = getattr(chunk, "usage", None)
            if raw_usage is not None:
                final_usage = {
                    "input_tokens": getattr(raw_usage, "prompt_tokens", 0) or 0,
                    "output_tokens": getattr(raw_usage, "completion_tokens", 0) or 0,
                }

            choice = chunk.choices[0] if chunk.choices else None
            if choice is None:
                continue

            delta = choice.delta
            if delta.content:
                yield StreamEvent(type="text_delta", text=delta.content)

            if delta.tool_calls:
                for tc in delta.tool_calls:
                    if tc.id is not None:
                        # A new id at this index starts a new call; close the previous one.
                        if active_tool_call_ids:
                            yield StreamEvent(type="tool_use_end")
                        active_tool_call_ids[tc.index] = tc.id
                        yield StreamEvent(
                            type="tool_use_start",
                            tool_use_id=tc.id,
                            tool_name=tc.function.name if tc.function else "",
                        )
                    if tc.function and tc.function.arguments:
                        yield StreamEvent(
                            type="tool_use_delta",
                            tool_args_json=tc.function.arguments,
                        )

            if choice.finish_reason:
                if active_tool_call_ids:
                    yield StreamEvent(type="tool_use_end")
                active_tool_call_ids.clear()
                reason = choice.finish_reason
                if reason == "tool_calls":
                    reason = "tool_use"
                pending_end = StreamEvent(type="message_end", stop_reason=reason)

        if pending_end is not None:
            yield StreamEvent(
                type="message_end",
                stop_reason=pending_end.stop_reason,
                usage=final_usage,
            )

    def format_tool_result(
        self,
        tool_use_id: str,
        content: str,
        is_error: bool = False,
    ) -> ChatMessage:
        """OpenAI expects a dedicated ``role="tool"`` message per result."""
        return ChatMessage(role="tool", content=content, tool_use_id=tool_use_id)

    def format_tool_use(
        self,
        tool_use_id: str,
        name: str,
        args: dict[str, Any],
    ) -> dict[str, Any]:
        return {
            "type": "tool_call",
            "id": tool_use_id,
            "function": {
                "name": name,
                "arguments": json.dumps(args),
            },
        }

    def _to_openai_messages(
        self,
        messages: list[ChatMessage],
        system: str,
    ) -> list[dict[str, Any]]:
        """Convert :class:`ChatMessage` list to the OpenAI messages array format."""
        result: list[dict[str, Any]] = []
        if system:
            result.append({"role": "system", "content": system})

        for msg in messages:
            if msg.role == "system":
                continue

            if msg.role == "tool":
                result.append(
                    {
                        "role": "tool",
                        "tool_call_id": msg.tool_use_id or "",
                        "content": msg.content if isinstance(msg.content, str) else "",
                    }
                )

            elif msg.role == "user":
                if isinstance(msg.content, list):
                    text_parts: list[str] = []
                    for block in msg.content:
                        block_type = block.get("type") if isinstance(block, dict) else None
                        if block_type == "tool_result":
                            result.append(
                                {
                                    "role": "tool",
                                    "tool_call_id": block.get("tool_use_id", ""),
                                    "content": block.get("content", ""),
                                }
                            )
                        elif block_type == "text":
                            text_parts.append(block.get("text", ""))
                    if text_parts:
                        result.append({"role": "user", "content": " ".join(text_parts)})
                else:
                    result.append({"role": "user", "content": str(msg.content)})

            elif msg.role == "assistant":
                if isinstance(msg.content, list):
                    text_blocks: list[str] = []
                    tool_calls: list[dict[str, Any]] = []
                    for block in msg.content:
                        block_type = block.get("type") if isinstance(block, dict) else None
                        if block_type == "text":
                            text_blocks.append(block.get("text", ""))
                        elif block_type == "tool_call":
                            tool_calls.append(
                                {
                                    "id": block.get("id", ""),
                                    "type": "function",
                                    "function": block.get("function", {}),
                                }
                            )
                        elif block_type == "tool_use":
                            tool_calls.append(
                                {
                                    "id": block.get("id", ""),
                                    "type": "function",
                                    "function": {
                                        "name": block.get("name", ""),
                                        "arguments": json.dumps(block.get("input", {})),
                                    },
                                }
                            )
                    assistant_msg: dict[str, Any] = {
                        "role": "assistant",
                        "content": " ".join(text_blocks) if text_blocks else None,
                    }
                    if tool_calls:
                        assistant_msg["tool_calls"] = tool_calls
                    result.append(assistant_msg)
                else:
                    result.append({"role": "assistant", "content": str(msg.content)})

        return result

    def _to_openai_tools(self, tools: list[ToolDef]) -> list[dict[str, Any]]:
        """Wrap generic tool dicts in the ``{"type": "function"}`` envelope."""
        return [
            {
                "type": "function",
                "function": {
                    "name": t["name"],
                    "description": t["description"],
                    "parameters": t["input_schema"],
                },
            }
            for t in self._make_tool_defs(tools)
        ]
