"""Intersect the full tool set with an agent's grants."""

from __future__ import annotations

from collections.abc import Mapping

from concierge.types.agents import AgentDef, AgentMode
from concierge.types.tools import Tool


def filter_tools(agent: AgentDef, full_tool_set: Mapping[str, Tool]) -> dict[str, Tool]:
    """Return the subset of *full_tool_set* that *agent* may call.

    Tools flagged ``requires_primary_mode`` are dropped for non-primary agents
    before the grant map is looked at, so no grant can re-enable delegation
    from a subagent. Everything else needs an explicit ``True`` grant.
    """
    allowed: dict[str, Tool] = {}
    for name, tool in full_tool_set.items():
        if tool.definition.requires_primary_mode and agent.mode is not AgentMode.PRIMARY:
            continue
        if agent.tools.get(name) is True:
            allowed[name] = tool
    return allowed
