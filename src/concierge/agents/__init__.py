"""Agent definitions, permission filtering and delegation."""

from concierge.agents.dispatcher import Dispatcher, ToolSetBuilder, format_output
from concierge.agents.filter import filter_tools
from concierge.agents.loader import load_agent_file, load_agents_into
from concierge.agents.prompts import PromptLibrary, fallback_prompt
from concierge.agents.registry import BUILTIN_AGENTS, TASK_TOOL_NAME, AgentRegistry

__all__ = [
    "BUILTIN_AGENTS",
    "TASK_TOOL_NAME",
    "AgentRegistry",
    "Dispatcher",
    "PromptLibrary",
    "ToolSetBuilder",
    "fallback_prompt",
    "filter_tools",
    "format_output",
    "load_agent_file",
    "load_agents_into",
]
