"""Tests for concierge.core.completion: the model/tool loop."""

from __future__ import annotations

import asyncio
from typing import Any

import pytest

from concierge.core.completion import CompletionService, ProviderCompletionService
from concierge.errors import CompletionServiceError
from concierge.types.providers import ChatMessage
from tests.conftest import FailingMockProvider, FakeTool, MockProvider, MockTurn


def _user(text: str = "hi") -> list[ChatMessage]:
    return [ChatMessage(role="user", content=text)]


class RateLimitError(Exception):
    """Named like the SDK exception so it is treated as transient."""


class AuthenticationError(Exception):
    status_code = 401


class TestLoop:
    @pytest.mark.asyncio
    async def test_text_only(self, mock_provider, request_context):
        service = ProviderCompletionService(mock_provider)
        completion = await service.complete("sys", _user(), {}, 0.2, 3, context=request_context)

        assert completion.text == "I can help with that."
        assert completion.tool_calls == ()
        assert completion.turns == 1
        assert completion.stop_reason == "end_turn"
        assert completion.total_tokens == 150

    def test_protocol_conformance(self, mock_provider):
        assert isinstance(ProviderCompletionService(mock_provider), CompletionService)

    @pytest.mark.asyncio
    async def test_passes_system_temperature_and_tool_defs(self, request_context):
        provider = MockProvider(turns=[MockTurn(text="ok")])
        tools = {"getTasks": FakeTool("getTasks")}
        await ProviderCompletionService(provider).complete(
            "You plan.", _user(), tools, 0.3, 3, context=request_context,
        )
        (call,) = provider.calls
        assert call["system"] == "You plan."
        assert call["temperature"] == 0.3
        assert call["tools"] == ["getTasks"]

    @pytest.mark.asyncio
    async def test_tool_round_trip(self, request_context):
        tool = FakeTool("getTasks", ["task A", "task B"])
        provider = MockProvider(turns=[
            MockTurn(text="Checking.", tool_uses=[{"id": "tu1", "name": "getTasks", "args": {"filter": "today"}}]),
            MockTurn(text="You have two tasks."),
        ])
        completion = await ProviderCompletionService(provider).complete(
            "sys", _user(), {"getTasks": tool}, 0.2, 3, context=request_context,
        )

        assert completion.text == "You have two tasks."
        assert completion.turns == 2
        assert [c.name for c in completion.tool_calls] == ["getTasks"]
        assert completion.tool_calls[0].args == {"filter": "today"}
        assert tool.calls == [{"filter": "today"}]
        result = completion.result_for(completion.tool_calls[0])
        assert result.tool_call_id == "tu1"
        assert result.output == '["task A", "task B"]'
        assert result.is_error is False

        # Second turn sees the assistant tool_use and the paired tool_result
        second = provider.calls[1]["messages"]
        assert second[1].role == "assistant"
        assert second[1].content[1]["id"] == "tu1"
        assert second[2].content[0]["tool_use_id"] == "tu1"

    @pytest.mark.asyncio
    async def test_tools_run_in_request_order(self, request_context):
        order: list[str] = []

        class Recording(FakeTool):
            async def execute(self, args, ctx):
                order.append(self.name)
                return await super().execute(args, ctx)

        tools = {n: Recording(n) for n in ("b", "a", "c")}
        provider = MockProvider(turns=[
            MockTurn(tool_uses=[
                {"id": "1", "name": "c"}, {"id": "2", "name": "a"}, {"id": "3", "name": "b"},
            ]),
            MockTurn(text="done"),
        ])
        completion = await ProviderCompletionService(provider).complete(
            "sys", _user(), tools, 0.2, 3, context=request_context,
        )
        assert order == ["c", "a", "b"]
        assert [r.tool_call_id for r in completion.tool_results] == ["1", "2", "3"]

    @pytest.mark.asyncio
    async def test_tool_context_carries_request(self, request_context):
        seen: list[Any] = []

        class Capturing(FakeTool):
            async def execute(self, args, ctx):
                seen.append(ctx)
                return await super().execute(args, ctx)

        provider = MockProvider(turns=[
            MockTurn(tool_uses=[{"id": "x1", "name": "t"}]), MockTurn(text="ok"),
        ])
        await ProviderCompletionService(provider).complete(
            "sys", _user(), {"t": Capturing("t")}, 0.2, 3, context=request_context,
        )
        assert seen[0].request is request_context
        assert seen[0].call_id == "x1"

    @pytest.mark.asyncio
    async def test_max_turns(self, request_context):
        provider = MockProvider(turns=[
            MockTurn(tool_uses=[{"id": f"t{i}", "name": "getTasks"}]) for i in range(5)
        ])
        completion = await ProviderCompletionService(provider).complete(
            "sys", _user(), {"getTasks": FakeTool("getTasks")}, 0.2, 3,
            max_turns=2, context=request_context,
        )
        assert completion.turns == 2
        assert completion.stop_reason == "max_turns"
        assert len(completion.tool_calls) == 2

    @pytest.mark.asyncio
    async def test_default_context(self, mock_provider):
        completion = await ProviderCompletionService(mock_provider).complete("sys", _user(), {}, 0.2, 3)
        assert completion.text

    @pytest.mark.asyncio
    async def test_caller_messages_not_mutated(self, request_context):
        provider = MockProvider(turns=[
            MockTurn(tool_uses=[{"id": "1", "name": "t"}]), MockTurn(text="ok"),
        ])
        messages = _user()
        await ProviderCompletionService(provider).complete(
            "sys", messages, {"t": FakeTool("t")}, 0.2, 3, context=request_context,
        )
        assert len(messages) == 1


class TestToolFailures:
    @pytest.mark.asyncio
    async def test_raising_tool_becomes_error_result(self, request_context):
        provider = MockProvider(turns=[
            MockTurn(tool_uses=[{"id": "1", "name": "bad"}, {"id": "2", "name": "good"}]),
            MockTurn(text="partial"),
        ])
        tools = {"bad": FakeTool("bad", raises=ValueError("nope")), "good": FakeTool("good", "fine")}
        completion = await ProviderCompletionService(provider).complete(
            "sys", _user(), tools, 0.2, 3, context=request_context,
        )
        bad, good = completion.tool_results
        assert bad.is_error and bad.output == "Tool error: ValueError: nope"
        assert not good.is_error and good.output == "fine"
        assert provider.calls[1]["messages"][2].content[0]["is_error"] is True

    @pytest.mark.asyncio
    async def test_unknown_tool(self, request_context):
        provider = MockProvider(turns=[
            MockTurn(tool_uses=[{"id": "1", "name": "task"}]), MockTurn(text="ok"),
        ])
        completion = await ProviderCompletionService(provider).complete(
            "sys", _user(), {}, 0.2, 3, context=request_context,
        )
        (result,) = completion.tool_results
        assert result.is_error
        assert result.output == "Unknown tool: task"

    @pytest.mark.asyncio
    async def test_error_result_from_tool(self, request_context):
        provider = MockProvider(turns=[
            MockTurn(tool_uses=[{"id": "1", "name": "t"}]), MockTurn(text="ok"),
        ])
        tools = {"t": FakeTool("t", "account not connected", is_error=True)}
        completion = await ProviderCompletionService(provider).complete(
            "sys", _user(), tools, 0.2, 3, context=request_context,
        )
        assert completion.tool_results[0].is_error


class TestRetries:
    @pytest.mark.asyncio
    async def test_transient_failure_retried(self, failing_mock_provider, request_context):
        service = ProviderCompletionService(failing_mock_provider, backoff_base=0)
        completion = await service.complete("sys", _user(), {}, 0.2, 3, context=request_context)
        assert completion.text == "Recovered!"
        assert failing_mock_provider.attempts == 2

    @pytest.mark.asyncio
    async def test_retries_exhausted(self, request_context):
        provider = FailingMockProvider([MockTurn(text="never")], fail_count=10, error=RateLimitError("429"))
        service = ProviderCompletionService(provider, backoff_base=0)
        with pytest.raises(CompletionServiceError, match="after 2 retries"):
            await service.complete("sys", _user(), {}, 0.2, 2, context=request_context)
        assert provider.attempts == 3

    @pytest.mark.asyncio
    async def test_zero_retries(self, request_context):
        provider = FailingMockProvider([MockTurn(text="never")], fail_count=1)
        service = ProviderCompletionService(provider, backoff_base=0)
        with pytest.raises(CompletionServiceError):
            await service.complete("sys", _user(), {}, 0.2, 0, context=request_context)
        assert provider.attempts == 1

    @pytest.mark.asyncio
    async def test_non_retryable_fails_immediately(self, request_context):
        provider = FailingMockProvider([MockTurn(text="never")], fail_count=1, error=AuthenticationError("bad key"))
        service = ProviderCompletionService(provider, backoff_base=0)
        with pytest.raises(CompletionServiceError, match="AuthenticationError") as exc_info:
            await service.complete("sys", _user(), {}, 0.2, 3, context=request_context)
        assert provider.attempts == 1
        assert isinstance(exc_info.value.__cause__, AuthenticationError)


class TestTimeoutAndCancellation:
    @pytest.mark.asyncio
    async def test_timeout(self, request_context):
        class Slow(FakeTool):
            async def execute(self, args, ctx):
                await asyncio.sleep(5)
                return await super().execute(args, ctx)

        provider = MockProvider(turns=[MockTurn(tool_uses=[{"id": "1", "name": "slow"}])])
        service = ProviderCompletionService(provider, timeout=0.05)
        with pytest.raises(CompletionServiceError, match="timed out"):
            await service.complete("sys", _user(), {"slow": Slow("slow")}, 0.2, 3, context=request_context)

    @pytest.mark.asyncio
    async def test_cancellation_propagates_to_tool(self, request_context):
        started = asyncio.Event()
        cancelled = asyncio.Event()

        class Hanging(FakeTool):
            async def execute(self, args, ctx):
                started.set()
                try:
                    await asyncio.sleep(60)
                except asyncio.CancelledError:
                    cancelled.set()
                    raise
                return await super().execute(args, ctx)

        provider = MockProvider(turns=[MockTurn(tool_uses=[{"id": "1", "name": "hang"}])])
        service = ProviderCompletionService(provider)
        task = asyncio.create_task(
            service.complete("sys", _user(), {"hang": Hanging("hang")}, 0.2, 3, context=request_context)
        )
        await started.wait()
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        assert cancelled.is_set()
