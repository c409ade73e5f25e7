"""Type definitions for Concierge."""

from concierge.types.agents import AgentDef, AgentMode, AgentPermissions, PermissionLevel
from concierge.types.config import Settings
from concierge.types.messages import (
    Completion,
    DelegationRequest,
    DelegationResult,
    ToolCall,
    ToolCallResult,
)
from concierge.types.providers import ChatMessage, ProviderAdapter, StreamEvent
from concierge.types.tools import (
    RequestContext,
    TimeContext,
    Tool,
    ToolContext,
    ToolDef,
    ToolParam,
    ToolResultData,
)

__all__ = [
    "AgentDef",
    "AgentMode",
    "AgentPermissions",
    "ChatMessage",
    "Completion",
    "DelegationRequest",
    "DelegationResult",
    "PermissionLevel",
    "ProviderAdapter",
    "RequestContext",
    "Settings",
    "StreamEvent",
    "TimeContext",
    "Tool",
    "ToolCall",
    "ToolCallResult",
    "ToolContext",
    "ToolDef",
    "ToolParam",
    "ToolResultData",
]
