"""Concierge -- productivity assistant with permission-scoped subagents.

Usage:
    import asyncio
    import concierge

    engine = concierge.create_engine()
    result = asyncio.run(engine.delegate("planning", "Plan next week's review"))
    print(result.output)
"""

from concierge.agents.dispatcher import Dispatcher
from concierge.agents.registry import AgentRegistry
from concierge.core.config import load_settings
from concierge.core.engine import Engine, create_engine
from concierge.errors import (
    AgentConfigError,
    CompletionServiceError,
    ConciergeError,
    ConflictError,
    DelegationError,
    IntegrationError,
    InvalidAgentError,
    ToolRegistryError,
)
from concierge.types.agents import AgentDef, AgentMode, AgentPermissions, PermissionLevel
from concierge.types.config import Settings
from concierge.types.messages import Completion, DelegationRequest, DelegationResult
from concierge.types.tools import RequestContext, TimeContext, ToolContext, ToolDef, ToolParam, ToolResultData

__version__ = "0.1.0"

__all__ = [
    # Core API
    "Engine",
    "create_engine",
    "load_settings",
    "AgentRegistry",
    "Dispatcher",
    # Agent types
    "AgentDef",
    "AgentMode",
    "AgentPermissions",
    "PermissionLevel",
    # Delegation types
    "Completion",
    "DelegationRequest",
    "DelegationResult",
    "RequestContext",
    "Settings",
    "TimeContext",
    # Tool types
    "ToolContext",
    "ToolDef",
    "ToolParam",
    "ToolResultData",
    # Errors
    "AgentConfigError",
    "CompletionServiceError",
    "ConciergeError",
    "ConflictError",
    "DelegationError",
    "IntegrationError",
    "InvalidAgentError",
    "ToolRegistryError",
]
