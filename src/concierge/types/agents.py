"""Agent definition types."""

from __future__ import annotations

import fnmatch
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any


class AgentMode(Enum):
    """How an agent can be used."""

    PRIMARY = "primary"  # Talks to the user, may delegate
    SUBAGENT = "subagent"  # Reachable only through delegation


class PermissionLevel(Enum):
    """Coarse policy decision for a capability class."""

    ALLOW = "allow"
    DENY = "deny"
    ASK = "ask"


@dataclass(frozen=True, slots=True)
class AgentPermissions:
    """Coarse allow/deny/ask policy attached to an agent.

    This is policy metadata for enforcement points outside the tool call
    itself (UI affordances, audit). The per-tool grant map on
    :class:`AgentDef` is what decides which tools an agent can call.
    """

    edit: PermissionLevel = PermissionLevel.DENY
    webfetch: PermissionLevel = PermissionLevel.ALLOW
    bash: Mapping[str, PermissionLevel] = field(
        default_factory=lambda: {"*": PermissionLevel.ASK},
    )

    def __post_init__(self) -> None:
        object.__setattr__(self, "bash", MappingProxyType(dict(self.bash)))

    def bash_decision(self, command: str) -> PermissionLevel:
        """Return the decision for a shell command.

        Exact patterns win over globs; among globs the first match in
        declaration order wins. No match means ASK.
        """
        if command in self.bash:
            return self.bash[command]
        for pattern, level in self.bash.items():
            if fnmatch.fnmatch(command, pattern):
                return level
        return PermissionLevel.ASK

    def to_dict(self) -> dict[str, Any]:
        return {
            "edit": self.edit.value,
            "webfetch": self.webfetch.value,
            "bash": {k: v.value for k, v in self.bash.items()},
        }


@dataclass(frozen=True, slots=True)
class AgentDef:
    """Declarative definition of one agent."""

    name: str
    description: str
    mode: AgentMode = AgentMode.SUBAGENT
    built_in: bool = False
    permissions: AgentPermissions = field(default_factory=AgentPermissions)
    tools: Mapping[str, bool] = field(default_factory=dict)  # Explicit grants, default deny
    temperature: float | None = None
    options: Mapping[str, Any] = field(default_factory=dict)
    system_prompt_ref: str | None = None
    max_turns: int = 12

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("Agent name must not be empty")
        # Read-only views so a definition cannot change once loaded
        object.__setattr__(self, "tools", MappingProxyType(dict(self.tools)))
        object.__setattr__(self, "options", MappingProxyType(dict(self.options)))
        if self.temperature is not None and not 0.0 <= self.temperature <= 1.0:
            raise ValueError(
                f"Agent {self.name!r}: temperature must be between 0.0 and 1.0, "
                f"got {self.temperature}"
            )
        if self.max_turns < 1:
            raise ValueError(f"Agent {self.name!r}: max_turns must be >= 1")

    @property
    def granted_tools(self) -> tuple[str, ...]:
        """Names of tools explicitly granted, sorted."""
        return tuple(sorted(name for name, ok in self.tools.items() if ok is True))
