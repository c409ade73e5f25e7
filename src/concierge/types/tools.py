"""Tool definition types and protocols."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Protocol, runtime_checkable


@dataclass(frozen=True, slots=True)
class ToolParam:
    """A parameter for a tool."""

    name: str
    type: str  # "string", "integer", "number", "boolean", "array", "object"
    description: str
    required: bool = True
    enum: tuple[str, ...] | None = None
    default: Any = None
    items: dict[str, Any] | None = None  # For array types: JSON Schema for items


@dataclass(frozen=True, slots=True)
class ToolDef:
    """Definition of a tool exposed to the model."""

    name: str
    description: str
    parameters: tuple[ToolParam, ...] = ()
    # Only primary-mode agents may ever receive a tool carrying this flag.
    requires_primary_mode: bool = False

    def input_schema(self) -> dict[str, Any]:
        """Render the parameters as a JSON Schema ``object``."""
        properties: dict[str, Any] = {}
        required: list[str] = []
        for param in self.parameters:
            prop: dict[str, Any] = {
                "type": param.type,
                "description": param.description,
            }
            if param.enum is not None:
                prop["enum"] = list(param.enum)
            if param.default is not None:
                prop["default"] = param.default
            if param.type == "array":
                prop["items"] = param.items if param.items is not None else {"type": "string"}
            properties[param.name] = prop
            if param.required:
                required.append(param.name)

        schema: dict[str, Any] = {"type": "object", "properties": properties}
        if required:
            schema["required"] = required
        return schema


@dataclass(slots=True)
class ToolResultData:
    """Data returned from tool execution."""

    content: str
    is_error: bool = False
    display: str | None = None  # Optional short summary for the CLI


@dataclass(frozen=True, slots=True)
class TimeContext:
    """The caller's notion of "now"."""

    current_time: datetime
    timezone: str = "UTC"
    source: str = "user_browser"

    @classmethod
    def server_now(cls, tz_name: str = "UTC") -> TimeContext:
        """Build a context from the server clock."""
        from zoneinfo import ZoneInfo

        return cls(
            current_time=datetime.now(ZoneInfo(tz_name)),
            timezone=tz_name,
            source="server_fallback",
        )

    def to_dict(self) -> dict[str, Any]:
        current = self.current_time
        if current.tzinfo is None:
            current = current.replace(tzinfo=timezone.utc)
        return {
            "currentTime": current.isoformat(),
            "userTimezone": self.timezone,
            "localTime": current.strftime("%Y-%m-%d %H:%M:%S"),
            "timestamp": int(current.timestamp() * 1000),
            "source": self.source,
        }


@dataclass(frozen=True, slots=True)
class RequestContext:
    """Who is asking, when, and in which session."""

    identity: str
    time: TimeContext
    session_id: str | None = None


@dataclass(slots=True)
class ToolContext:
    """Context passed to tool execute methods."""

    request: RequestContext
    call_id: str = ""
    # Names of the tools the calling agent was given; None when unknown
    available_tools: frozenset[str] | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    @property
    def identity(self) -> str:
        return self.request.identity

    @property
    def session_id(self) -> str:
        return self.request.session_id or ""


@runtime_checkable
class Tool(Protocol):
    """Protocol that all tools must implement."""

    @property
    def definition(self) -> ToolDef:
        """Return the tool definition for the model."""
        ...

    async def execute(self, args: dict[str, Any], ctx: ToolContext) -> ToolResultData:
        """Execute the tool with the given arguments and context."""
        ...
