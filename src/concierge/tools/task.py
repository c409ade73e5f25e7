"""Task tool: delegates work to a specialised subagent."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from concierge.errors import DelegationError, InvalidAgentError
from concierge.tools.base import BaseTool
from concierge.types.messages import DelegationRequest
from concierge.types.tools import ToolContext, ToolDef, ToolParam, ToolResultData

if TYPE_CHECKING:
    from concierge.agents.dispatcher import Dispatcher

logger = logging.getLogger(__name__)


class TaskTool(BaseTool):
    """Launch a subagent to handle a task autonomously.

    The subagent gets a fresh context and only the tools its grants allow.
    Only primary-mode agents are ever handed this tool.
    """

    def __init__(self, dispatcher: Dispatcher) -> None:
        self._dispatcher = dispatcher

    @property
    def definition(self) -> ToolDef:
        registry = self._dispatcher.registry
        names = tuple(agent.name for agent in registry.get_available_subagents())
        return ToolDef(
            name="task",
            description=(
                "Launch a specialised subagent to handle a multi-step task autonomously "
                "and return a concise report.\n\n"
                f"Available subagents:\n{registry.describe_subagents()}\n\n"
                "Do not use this for simple single-step requests you can handle directly."
            ),
            parameters=(
                ToolParam(
                    name="subagentType",
                    type="string",
                    description="Which subagent to use.",
                    enum=names,
                ),
                ToolParam(
                    name="prompt",
                    type="string",
                    description="Clear, detailed description of the work to delegate.",
                ),
                ToolParam(
                    name="description",
                    type="string",
                    description="Short 3-5 word label for progress tracking.",
                    required=False,
                ),
            ),
            requires_primary_mode=True,
        )

    async def execute(self, args: dict[str, Any], ctx: ToolContext) -> ToolResultData:
        subagent_type = args.get("subagentType")
        prompt = args.get("prompt")
        if not subagent_type:
            return self._error("'subagentType' parameter is required.")
        if not prompt:
            return self._error("'prompt' parameter is required.")

        request = DelegationRequest(
            subagent_type=subagent_type,
            prompt=prompt,
            description=args.get("description"),
        )
        try:
            result = await self._dispatcher.delegate(request, ctx.request)
        except InvalidAgentError as e:
            return self._error(f"{e}. Do not retry with this subagent type.")
        except DelegationError as e:
            return self._error(
                f"Delegation to {subagent_type} failed: {e}. One retry is reasonable."
            )
        return self._ok(result.output, display=result.title)
