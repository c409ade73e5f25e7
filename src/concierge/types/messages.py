"""Delegation and completion message types."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True, slots=True)
class DelegationRequest:
    """One request from the orchestrator to run a subagent."""

    subagent_type: str
    prompt: str
    description: str | None = None

    @property
    def task_description(self) -> str:
        return self.description or f"{self.subagent_type} task"


@dataclass(frozen=True, slots=True)
class DelegationResult:
    """Packaged outcome of one delegation, as the orchestrator sees it."""

    title: str
    metadata: dict[str, Any]
    output: str


@dataclass(frozen=True, slots=True)
class ToolCall:
    """Model requested a tool call."""

    id: str
    name: str
    args: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class ToolCallResult:
    """Result of one tool call, paired to its call by ``tool_call_id``."""

    tool_call_id: str
    name: str
    output: Any
    is_error: bool = False


@dataclass(frozen=True, slots=True)
class Completion:
    """Final state of one completion-service invocation."""

    text: str
    tool_calls: tuple[ToolCall, ...] = ()
    tool_results: tuple[ToolCallResult, ...] = ()
    turns: int = 0
    stop_reason: str = "end_turn"
    total_tokens: int = 0

    def result_for(self, call: ToolCall) -> ToolCallResult | None:
        """Find the result belonging to *call* by correlation id."""
        for result in self.tool_results:
            if result.tool_call_id == call.id:
                return result
        return None
