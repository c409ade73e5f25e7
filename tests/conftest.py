"""Test fixtures including MockProvider for deterministic testing."""

from __future__ import annotations

import json
from collections.abc import AsyncIterator, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from zoneinfo import ZoneInfo

import pytest

from concierge.errors import IntegrationError
from concierge.tools.base import BaseTool
from concierge.types.messages import Completion
from concierge.types.providers import ChatMessage, StreamEvent
from concierge.types.tools import (
    RequestContext,
    TimeContext,
    Tool,
    ToolContext,
    ToolDef,
    ToolResultData,
)


@dataclass
class MockTurn:
    """A scripted turn for MockProvider.

    Specify either text or tool_uses (or both) for what the model should "respond" with.
    """

    text: str = ""
    tool_uses: list[dict[str, Any]] = field(default_factory=list)
    # Each tool_use: {"id": "tu1", "name": "getTasks", "args": {"projectId": "p1"}}


class MockProvider:
    """A deterministic mock provider for testing.

    Usage:
        provider = MockProvider(turns=[
            MockTurn(tool_uses=[{"id": "tu1", "name": "getTasks", "args": {}}]),
            MockTurn(text="You have two tasks."),
        ])
    """

    def __init__(self, turns: list[MockTurn], model: str = "mock-model"):
        self._turns = list(turns)
        self._turn_index = 0
        self._model = model
        self.calls: list[dict[str, Any]] = []

    @property
    def model_id(self) -> str:
        return self._model

    async def chat_completion_stream(
        self,
        messages: list[ChatMessage],
        tools: list[ToolDef],
        system: str,
        max_tokens: int,
        temperature: float | None = None,
    ) -> AsyncIterator[StreamEvent]:
        """Yield scripted StreamEvents for the current turn."""
        self.calls.append({
            "messages": list(messages),
            "tools": [t.name for t in tools],
            "system": system,
            "temperature": temperature,
        })
        if self._turn_index >= len(self._turns):
            yield StreamEvent(
                type="message_end", stop_reason="end_turn",
                usage={"input_tokens": 10, "output_tokens": 5},
            )
            return

        turn = self._turns[self._turn_index]
        self._turn_index += 1

        if turn.text:
            yield StreamEvent(type="text_delta", text=turn.text)

        for tu in turn.tool_uses:
            yield StreamEvent(
                type="tool_use_start",
                tool_use_id=tu["id"],
                tool_name=tu["name"],
            )
            args_json = json.dumps(tu.get("args", {}))
            yield StreamEvent(type="tool_use_delta", tool_args_json=args_json)
            yield StreamEvent(type="tool_use_end")

        stop_reason = "tool_use" if turn.tool_uses else "end_turn"
        yield StreamEvent(
            type="message_end",
            stop_reason=stop_reason,
            usage={"input_tokens": 100, "output_tokens": 50},
        )

    def format_tool_result(
        self, tool_use_id: str, content: str, is_error: bool = False,
    ) -> ChatMessage:
        block: dict[str, Any] = {
            "type": "tool_result",
            "tool_use_id": tool_use_id,
            "content": content,
        }
        if is_error:
            block["is_error"] = True
        return ChatMessage(role="user", content=[block])

    def format_tool_use(self, tool_use_id: str, name: str, args: dict[str, Any]) -> dict[str, Any]:
        return {"type": "tool_use", "id": tool_use_id, "name": name, "input": args}


class FailingMockProvider(MockProvider):
    """A mock provider that raises *error* on the first N calls."""

    def __init__(
        self,
        turns: list[MockTurn],
        fail_count: int = 1,
        error: Exception | None = None,
        model: str = "mock-model",
    ):
        super().__init__(turns, model=model)
        self._fail_count = fail_count
        self._error = error
        self.attempts = 0

    async def chat_completion_stream(
        self,
        messages: list[ChatMessage],
        tools: list[ToolDef],
        system: str,
        max_tokens: int,
        temperature: float | None = None,
    ) -> Any:
        self.attempts += 1
        if self.attempts <= self._fail_count:
            raise self._error or ConnectionError(f"Simulated failure #{self.attempts}")
        async for event in super().chat_completion_stream(
            messages, tools, system, max_tokens, temperature,
        ):
            yield event


class FakeTool(BaseTool):
    """Tool with a fixed answer, or a fixed exception."""

    def __init__(
        self,
        name: str,
        result: Any = "ok",
        *,
        raises: Exception | None = None,
        is_error: bool = False,
        requires_primary_mode: bool = False,
    ) -> None:
        self._name = name
        self._result = result
        self._raises = raises
        self._is_error = is_error
        self._requires_primary_mode = requires_primary_mode
        self.calls: list[dict[str, Any]] = []

    @property
    def definition(self) -> ToolDef:
        return ToolDef(
            name=self._name,
            description=f"Fake {self._name}",
            requires_primary_mode=self._requires_primary_mode,
        )

    async def execute(self, args: dict[str, Any], ctx: ToolContext) -> ToolResultData:
        self.calls.append(args)
        if self._raises is not None:
            raise self._raises
        content = self._result if isinstance(self._result, str) else json.dumps(self._result)
        return ToolResultData(content=content, is_error=self._is_error)


class StaticToolBuilder:
    """Returns the same tool mapping every time; counts calls."""

    def __init__(self, tools: Mapping[str, Tool] | None = None, *, raises: Exception | None = None):
        self._tools = dict(tools or {})
        self._raises = raises
        self.calls = 0

    def build_tool_set(self, context: RequestContext) -> dict[str, Tool]:
        self.calls += 1
        if self._raises is not None:
            raise self._raises
        return dict(self._tools)


class SpyCompletion:
    """Completion service double that records every call."""

    def __init__(self, result: Completion | None = None, *, raises: Exception | None = None):
        self._result = result or Completion(text="done")
        self._raises = raises
        self.calls: list[dict[str, Any]] = []

    async def complete(
        self,
        system_prompt: str,
        messages: Sequence[ChatMessage],
        tools: Mapping[str, Tool],
        temperature: float,
        max_retries: int,
        *,
        max_turns: int = 12,
        context: RequestContext | None = None,
    ) -> Completion:
        self.calls.append({
            "system_prompt": system_prompt,
            "messages": list(messages),
            "tools": dict(tools),
            "temperature": temperature,
            "max_retries": max_retries,
            "max_turns": max_turns,
            "context": context,
        })
        if self._raises is not None:
            raise self._raises
        return self._result


class FakeTaskBackend:
    """In-memory TaskBackend."""

    def __init__(self) -> None:
        self.projects: dict[str, dict[str, Any]] = {}
        self.tasks: dict[str, dict[str, Any]] = {}
        self.closed: list[str] = []
        self.fail_on: set[str] = set()  # task contents whose creation fails
        self._next = 100

    def _id(self) -> str:
        self._next += 1
        return str(self._next)

    async def list_projects(self) -> list[dict[str, Any]]:
        return list(self.projects.values())

    async def get_project(self, project_id: str) -> dict[str, Any]:
        if project_id not in self.projects:
            raise IntegrationError("todoist", 404, "Project not found")
        return self.projects[project_id]

    async def create_project(self, name: str, **fields: Any) -> dict[str, Any]:
        project = {"id": self._id(), "name": name, **fields}
        self.projects[project["id"]] = project
        return project

    async def update_project(self, project_id: str, **fields: Any) -> dict[str, Any]:
        self.projects[project_id].update(fields)
        return self.projects[project_id]

    async def delete_project(self, project_id: str) -> None:
        self.projects.pop(project_id, None)

    async def list_tasks(
        self, project_id: str | None = None, filter: str | None = None,
    ) -> list[dict[str, Any]]:
        return [
            t for t in self.tasks.values()
            if project_id is None or t.get("project_id") == project_id
        ]

    async def get_task(self, task_id: str) -> dict[str, Any]:
        if task_id not in self.tasks:
            raise IntegrationError("todoist", 404, "Task not found")
        return self.tasks[task_id]

    async def create_task(self, content: str, **fields: Any) -> dict[str, Any]:
        if content in self.fail_on:
            raise IntegrationError("todoist", 400, f"Rejected {content}")
        task = {"id": self._id(), "content": content, **fields}
        self.tasks[task["id"]] = task
        return task

    async def update_task(self, task_id: str, **fields: Any) -> dict[str, Any]:
        self.tasks[task_id].update(fields)
        return self.tasks[task_id]

    async def close_task(self, task_id: str) -> None:
        self.closed.append(task_id)

    async def delete_task(self, task_id: str) -> None:
        self.tasks.pop(task_id, None)


class FakeCalendarBackend:
    """In-memory CalendarBackend that records list queries."""

    def __init__(self, events: list[dict[str, Any]] | None = None) -> None:
        self.events = list(events or [])
        self.queries: list[dict[str, Any]] = []
        self.created: list[dict[str, Any]] = []
        self.updated: list[tuple[str, dict[str, Any]]] = []
        self.deleted: list[str] = []

    async def list_events(
        self,
        time_min: str,
        time_max: str,
        *,
        max_results: int | None = None,
        query: str | None = None,
    ) -> list[dict[str, Any]]:
        self.queries.append({
            "time_min": time_min, "time_max": time_max,
            "max_results": max_results, "query": query,
        })
        return list(self.events)

    async def create_event(self, body: dict[str, Any]) -> dict[str, Any]:
        self.created.append(body)
        return {"id": "evt1", **body}

    async def update_event(self, event_id: str, body: dict[str, Any]) -> dict[str, Any]:
        self.updated.append((event_id, body))
        return {"id": event_id, **body}

    async def delete_event(self, event_id: str) -> None:
        self.deleted.append(event_id)


FIXED_NOW = datetime(2025, 3, 10, 9, 30, tzinfo=ZoneInfo("Europe/Berlin"))


@pytest.fixture
def request_context() -> RequestContext:
    """A context pinned to Monday 2025-03-10 09:30 Berlin time."""
    return RequestContext(
        identity="user-1",
        time=TimeContext(current_time=FIXED_NOW, timezone="Europe/Berlin"),
        session_id="sess-1",
    )


@pytest.fixture
def tool_context(request_context: RequestContext) -> ToolContext:
    return ToolContext(request=request_context, call_id="call-1")


@pytest.fixture
def mock_provider() -> MockProvider:
    """A simple mock provider that responds with text."""
    return MockProvider(turns=[
        MockTurn(text="I can help with that."),
    ])


@pytest.fixture
def failing_mock_provider() -> FailingMockProvider:
    return FailingMockProvider(
        turns=[MockTurn(text="Recovered!")],
        fail_count=1,
    )
