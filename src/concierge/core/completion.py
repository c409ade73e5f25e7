"""The completion service: runs one model + tools loop to completion."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Mapping, Sequence
from typing import Any, Protocol, runtime_checkable

from concierge.errors import CompletionServiceError
from concierge.observability.metrics import record_tokens, record_tool_call
from concierge.providers.base import is_retryable
from concierge.types.messages import Completion, ToolCall, ToolCallResult
from concierge.types.providers import ChatMessage, ProviderAdapter, StreamEvent
from concierge.types.tools import RequestContext, TimeContext, Tool, ToolContext

logger = logging.getLogger(__name__)

DEFAULT_MAX_TURNS = 12
DEFAULT_TIMEOUT = 120.0
_BACKOFF_BASE = 1.0  # seconds; doubled each retry


@runtime_checkable
class CompletionService(Protocol):
    """Anything that can run a tool-using completion for an agent."""

    async def complete(
        self,
        system_prompt: str,
        messages: Sequence[ChatMessage],
        tools: Mapping[str, Tool],
        temperature: float,
        max_retries: int,
        *,
        max_turns: int = DEFAULT_MAX_TURNS,
        context: RequestContext | None = None,
    ) -> Completion:
        ...


class ProviderCompletionService:
    """Completion service over a streaming :class:`ProviderAdapter`.

    Orchestrates: messages -> model -> tool calls -> model -> ... -> final text,
    bounded by ``max_turns`` model turns and ``timeout`` seconds overall.
    """

    def __init__(
        self,
        provider: ProviderAdapter,
        *,
        max_tokens: int = 4096,
        timeout: float = DEFAULT_TIMEOUT,
        backoff_base: float = _BACKOFF_BASE,
    ) -> None:
        self._provider = provider
        self._max_tokens = max_tokens
        self._timeout = timeout
        self._backoff_base = backoff_base

    @property
    def provider(self) -> ProviderAdapter:
        return self._provider

    @property
    def timeout(self) -> float:
        return self._timeout

    async def complete(
        self,
        system_prompt: str,
        messages: Sequence[ChatMessage],
        tools: Mapping[str, Tool],
        temperature: float,
        max_retries: int,
        *,
        max_turns: int = DEFAULT_MAX_TURNS,
        context: RequestContext | None = None,
    ) -> Completion:
        """Run the tool loop.

        Raises:
            CompletionServiceError: the provider kept failing after
                *max_retries* retries, failed with a non-transient error,
                or the whole run exceeded the timeout.
        """
        if context is None:
            context = RequestContext(identity="anonymous", time=TimeContext.server_now())
        try:
            async with asyncio.timeout(self._timeout):
                return await self._run(
                    system_prompt,
                    list(messages),
                    tools,
                    temperature,
                    max_retries,
                    max_turns,
                    context,
                )
        except TimeoutError as exc:
            raise CompletionServiceError(
                f"Completion timed out after {self._timeout:g}s"
            ) from exc

    async def _run(
        self,
        system_prompt: str,
        messages: list[ChatMessage],
        tools: Mapping[str, Tool],
        temperature: float,
        max_retries: int,
        max_turns: int,
        context: RequestContext,
    ) -> Completion:
        tool_defs = [tool.definition for tool in tools.values()]
        calls: list[ToolCall] = []
        results: list[ToolCallResult] = []
        final_text = ""
        total_tokens = 0
        stop_reason = "end_turn"
        turn = 0

        while turn < max_turns:
            turn += 1
            text, turn_calls, stop_reason, turn_tokens = await self._stream_turn(
                messages, tool_defs, system_prompt, temperature, max_retries,
            )
            total_tokens += turn_tokens
            if text:
                final_text = text

            # Build assistant message content
            assistant_content: list[dict[str, Any]] = []
            if text:
                assistant_content.append({"type": "text", "text": text})
            for call in turn_calls:
                assistant_content.append(
                    self._provider.format_tool_use(call.id, call.name, call.args),
                )
            if assistant_content:
                messages.append(ChatMessage(role="assistant", content=assistant_content))

            if not turn_calls:
                break

            # Execute tool calls in the order the model asked for them
            for call in turn_calls:
                calls.append(call)
                result = await self._execute_tool(call, tools, context)
                results.append(result)
                record_tool_call(call.name, is_error=result.is_error)

                content = result.output if isinstance(result.output, str) else json.dumps(
                    result.output, default=str,
                )
                messages.append(self._provider.format_tool_result(call.id, content, result.is_error))
        else:
            stop_reason = "max_turns"
            logger.info("Completion stopped after %d turns", max_turns)

        if total_tokens:
            record_tokens(total_tokens, model=self._provider.model_id)

        return Completion(
            text=final_text,
            tool_calls=tuple(calls),
            tool_results=tuple(results),
            turns=turn,
            stop_reason=stop_reason,
            total_tokens=total_tokens,
        )

    async def _stream_turn(
        self,
        messages: list[ChatMessage],
        tool_defs: list[Any],
        system_prompt: str,
        temperature: float,
        max_retries: int,
    ) -> tuple[str, list[ToolCall], str, int]:
        """Stream one model turn, retrying transient failures with backoff."""
        delay = self._backoff_base
        attempt = 0
        while True:
            attempt += 1
            try:
                return await self._collect_turn(messages, tool_defs, system_prompt, temperature)
            except Exception as exc:
                if not is_retryable(exc):
                    raise CompletionServiceError(
                        f"Provider error: {type(exc).__name__}: {exc}"
                    ) from exc
                if attempt > max_retries:
                    raise CompletionServiceError(
                        f"Provider still failing after {max_retries} retries: "
                        f"{type(exc).__name__}: {exc}"
                    ) from exc
                logger.warning(
                    "Transient error on attempt %d/%d (%s). Retrying in %.1fs.",
                    attempt,
                    max_retries + 1,
                    type(exc).__name__,
                    delay,
                )
                await asyncio.sleep(delay)
                delay *= 2.0

    async def _collect_turn(
        self,
        messages: list[ChatMessage],
        tool_defs: list[Any],
        system_prompt: str,
        temperature: float,
    ) -> tuple[str, list[ToolCall], str, int]:
        accumulated_text = ""
        calls: list[ToolCall] = []
        current_tool: dict[str, Any] | None = None
        stop_reason = "end_turn"
        tokens = 0

        async for event in self._provider.chat_completion_stream(
            messages=messages,
            tools=tool_defs,
            system=system_prompt,
            max_tokens=self._max_tokens,
            temperature=temperature,
        ):
            event: StreamEvent
            if event.type == "text_delta" and event.text:
                accumulated_text += event.text

            elif event.type == "tool_use_start":
                current_tool = {
                    "id": event.tool_use_id or "",
                    "name": event.tool_name or "",
                    "args_json": "",
                }

            elif event.type == "tool_use_delta" and current_tool is not None:
                current_tool["args_json"] += event.tool_args_json or ""

            elif event.type == "tool_use_end" and current_tool is not None:
                try:
                    raw = current_tool["args_json"]
                    args = json.loads(raw) if raw else {}
                except json.JSONDecodeError:
                    logger.warning("Malformed arguments for tool %s", current_tool["name"])
                    args = {}
                calls.append(ToolCall(id=current_tool["id"], name=current_tool["name"], args=args))
                current_tool = None

            elif event.type == "message_end":
                stop_reason = event.stop_reason or "end_turn"
                if event.usage:
                    tokens = event.usage.get("input_tokens", 0) + event.usage.get("output_tokens", 0)

        return accumulated_text, calls, stop_reason, tokens

    async def _execute_tool(
        self, call: ToolCall, tools: Mapping[str, Tool], context: RequestContext,
    ) -> ToolCallResult:
        """Execute one call. Tool failures become error results."""
        tool = tools.get(call.name)
        if tool is None:
            return ToolCallResult(
                tool_call_id=call.id,
                name=call.name,
                output=f"Unknown tool: {call.name}",
                is_error=True,
            )
        ctx = ToolContext(request=context, call_id=call.id, available_tools=frozenset(tools))
        try:
            data = await tool.execute(call.args, ctx)
        except Exception as e:
            logger.warning("Tool %s raised %s: %s", call.name, type(e).__name__, e)
            return ToolCallResult(
                tool_call_id=call.id,
                name=call.name,
                output=f"Tool error: {type(e).__name__}: {e}",
                is_error=True,
            )
        return ToolCallResult(
            tool_call_id=call.id,
            name=call.name,
            output=data.content,
            is_error=data.is_error,
        )
