"""Primary orchestrator: answers the user, delegating through the task tool."""

from __future__ import annotations

import inspect
import json
import logging
from collections.abc import Sequence

from concierge.agents.dispatcher import ToolSetBuilder
from concierge.agents.filter import filter_tools
from concierge.agents.prompts import PromptLibrary, fallback_prompt
from concierge.agents.registry import AgentRegistry
from concierge.core.completion import CompletionService
from concierge.errors import InvalidAgentError, ToolRegistryError
from concierge.types.messages import Completion
from concierge.types.providers import ChatMessage
from concierge.types.tools import RequestContext

logger = logging.getLogger(__name__)


class Orchestrator:
    """Runs a primary-mode agent for one user message.

    Conversation history belongs to the caller; nothing is stored here.
    """

    def __init__(
        self,
        registry: AgentRegistry,
        tool_builder: ToolSetBuilder,
        completion: CompletionService,
        prompts: PromptLibrary,
        *,
        agent_name: str = "primary",
        default_temperature: float = 0.2,
        max_retries: int = 3,
    ) -> None:
        self._registry = registry
        self._tool_builder = tool_builder
        self._completion = completion
        self._prompts = prompts
        self._agent_name = agent_name
        self._default_temperature = default_temperature
        self._max_retries = max_retries

    @property
    def completion(self) -> CompletionService:
        return self._completion

    async def respond(
        self,
        message: str,
        context: RequestContext,
        history: Sequence[ChatMessage] | None = None,
    ) -> Completion:
        agent = self._registry.get_agent(self._agent_name)
        if agent is None or not self._registry.can_use_as_primary(self._agent_name):
            raise InvalidAgentError(self._agent_name, "not a primary agent")

        try:
            full_tool_set = self._tool_builder.build_tool_set(context)
            if inspect.isawaitable(full_tool_set):
                full_tool_set = await full_tool_set
        except Exception as exc:
            raise ToolRegistryError(
                f"Could not build tool set: {type(exc).__name__}: {exc}"
            ) from exc
        tools = filter_tools(agent, full_tool_set)

        try:
            base_prompt = self._prompts.resolve(agent.system_prompt_ref)
        except Exception as exc:
            logger.warning("Primary prompt failed to load (%s); using fallback", exc)
            base_prompt = None
        system_prompt = "\n\n".join([
            base_prompt or fallback_prompt(agent),
            f"Available subagents:\n{self._registry.describe_subagents()}",
            f"Current time context:\n{json.dumps(context.time.to_dict(), indent=2)}",
        ])

        messages = [*(history or ()), ChatMessage(role="user", content=message)]
        logger.info("Primary agent %s handling message (%d tools)", agent.name, len(tools))
        return await self._completion.complete(
            system_prompt,
            messages,
            tools,
            agent.temperature if agent.temperature is not None else self._default_temperature,
            self._max_retries,
            max_turns=agent.max_turns,
            context=context,
        )
