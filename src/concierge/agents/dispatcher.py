"""Delegation dispatcher: runs one subagent as an isolated, stateless unit."""

from __future__ import annotations

import inspect
import json
import logging
import time
from collections.abc import Mapping
from typing import Any, Protocol

from concierge.agents.filter import filter_tools
from concierge.agents.prompts import PromptLibrary, fallback_prompt
from concierge.agents.registry import AgentRegistry
from concierge.core.completion import CompletionService
from concierge.errors import (
    CompletionServiceError,
    DelegationError,
    InvalidAgentError,
    ToolRegistryError,
)
from concierge.observability.metrics import record_delegation
from concierge.observability.tracing import span
from concierge.types.agents import AgentDef
from concierge.types.messages import Completion, DelegationRequest, DelegationResult
from concierge.types.providers import ChatMessage
from concierge.types.tools import RequestContext, Tool

logger = logging.getLogger(__name__)

DEFAULT_TEMPERATURE = 0.2
DEFAULT_MAX_RETRIES = 3
MAX_RESULT_CHARS = 2000
EMPTY_TEXT_PLACEHOLDER = "Analysis completed successfully."


class ToolSetBuilder(Protocol):
    """Builds the full, unfiltered tool set for one request."""

    def build_tool_set(self, context: RequestContext) -> Any:
        """Return ``dict[str, Tool]`` or an awaitable resolving to one."""
        ...


class Dispatcher:
    """Turns a :class:`DelegationRequest` into a :class:`DelegationResult`.

    Each call is independent: nothing is cached between calls and nothing
    is persisted.
    """

    def __init__(
        self,
        registry: AgentRegistry,
        tool_builder: ToolSetBuilder,
        completion: CompletionService,
        prompts: PromptLibrary | None = None,
        *,
        default_temperature: float = DEFAULT_TEMPERATURE,
        max_retries: int = DEFAULT_MAX_RETRIES,
    ) -> None:
        self._registry = registry
        self._tool_builder = tool_builder
        self._completion = completion
        self._prompts = prompts if prompts is not None else PromptLibrary()
        self._default_temperature = default_temperature
        self._max_retries = max_retries

    @property
    def registry(self) -> AgentRegistry:
        return self._registry

    async def delegate(self, request: DelegationRequest, context: RequestContext) -> DelegationResult:
        """Run *request* against its subagent and package the report.

        Raises:
            InvalidAgentError: unknown agent, or one that is not a subagent.
            ToolRegistryError: the full tool set could not be built.
            CompletionServiceError: the completion service failed.
        """
        subagent_type = request.subagent_type
        agent = self._registry.get_agent(subagent_type)
        if agent is None or not self._registry.can_use_as_subagent(subagent_type):
            reason = "unknown agent" if agent is None else "agent is not a subagent"
            record_delegation(subagent_type, outcome=InvalidAgentError.__name__)
            raise InvalidAgentError(subagent_type, reason)

        logger.info("Delegating %r to %s", request.task_description, subagent_type)
        start = time.monotonic()

        with span("concierge.delegate", {"subagent.type": subagent_type}) as s:
            try:
                completion, granted = await self._run(agent, request, context)
            except DelegationError as exc:
                logger.error("Delegation to %s failed: %s", subagent_type, exc)
                record_delegation(subagent_type, outcome=type(exc).__name__)
                raise

            duration_ms = (time.monotonic() - start) * 1000
            s.set_attribute("tools.granted", len(granted))
            s.set_attribute("tools.called", len(completion.tool_calls))

        record_delegation(subagent_type, outcome="ok", duration_ms=duration_ms)
        logger.info(
            "%s finished in %.0fms with %d tool call(s)",
            subagent_type,
            duration_ms,
            len(completion.tool_calls),
        )
        return DelegationResult(
            title=f"{subagent_type} Task Completed",
            metadata={
                "subagent_type": subagent_type,
                "task_description": request.task_description,
                "tool_calls": len(completion.tool_calls),
                "duration_ms": duration_ms,
            },
            output=format_output(subagent_type, completion),
        )

    async def _run(
        self, agent: AgentDef, request: DelegationRequest, context: RequestContext,
    ) -> tuple[Completion, dict[str, Tool]]:
        full_tool_set = await self._build_full_tool_set(context)
        granted = filter_tools(agent, full_tool_set)
        logger.debug("%s granted tools: %s", agent.name, ", ".join(sorted(granted)) or "(none)")

        system_prompt = self._resolve_prompt(agent)
        temperature = (
            agent.temperature if agent.temperature is not None else self._default_temperature
        )

        try:
            completion = await self._completion.complete(
                system_prompt,
                [ChatMessage(role="user", content=request.prompt)],
                granted,
                temperature,
                self._max_retries,
                max_turns=agent.max_turns,
                context=context,
            )
        except CompletionServiceError:
            raise
        except Exception as exc:
            raise CompletionServiceError(
                f"Completion failed for {agent.name}: {type(exc).__name__}: {exc}"
            ) from exc
        return completion, granted

    async def _build_full_tool_set(self, context: RequestContext) -> Mapping[str, Tool]:
        try:
            tools = self._tool_builder.build_tool_set(context)
            if inspect.isawaitable(tools):
                tools = await tools
        except Exception as exc:
            raise ToolRegistryError(
                f"Could not build tool set: {type(exc).__name__}: {exc}"
            ) from exc
        return tools

    def _resolve_prompt(self, agent: AgentDef) -> str:
        try:
            prompt = self._prompts.resolve(agent.system_prompt_ref)
        except Exception as exc:
            logger.warning(
                "Prompt %r for %s failed to load (%s); using fallback",
                agent.system_prompt_ref,
                agent.name,
                exc,
            )
            return fallback_prompt(agent)
        if prompt is None:
            logger.warning("No prompt for %s; using fallback", agent.name)
            return fallback_prompt(agent)
        return prompt


def format_output(subagent_type: str, completion: Completion) -> str:
    """Render the report the orchestrator receives."""
    lines = [f"{subagent_type.upper()} AGENT RESULTS", "", completion.text or EMPTY_TEXT_PLACEHOLDER]

    if completion.tool_calls:
        lines.extend(["", "TOOL EXECUTION RESULTS:"])
        for call in completion.tool_calls:
            result = completion.result_for(call)
            if result is None:
                lines.append(f"- {call.name} (failed): no result returned")
            elif result.is_error:
                lines.append(f"- {call.name} (failed): {render_result(result.output)}")
            else:
                lines.append(f"- {call.name}: {render_result(result.output)}")

    return "\n".join(lines)


def render_result(value: Any) -> str:
    """Strings verbatim, anything else as JSON; capped at MAX_RESULT_CHARS."""
    text = value if isinstance(value, str) else json.dumps(value, default=str)
    if len(text) > MAX_RESULT_CHARS:
        omitted = len(text) - MAX_RESULT_CHARS
        text = f"{text[:MAX_RESULT_CHARS]}... [truncated {omitted} chars]"
    return text
