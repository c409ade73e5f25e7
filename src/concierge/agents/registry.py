"""Built-in agent definitions and the agent registry."""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping

from concierge.errors import ConflictError
from concierge.types.agents import AgentDef, AgentMode, AgentPermissions, PermissionLevel

logger = logging.getLogger(__name__)

TASK_TOOL_NAME = "task"

TASK_READ_TOOLS = ("getProjectAndTaskMap", "getProjectDetails", "getTasks", "getTaskDetails")
TASK_WRITE_TOOLS = (
    "createTask",
    "updateTask",
    "deleteTask",
    "completeTask",
    "createProject",
    "updateProject",
    "deleteProject",
    "createBatchTasks",
)
CALENDAR_READ_TOOLS = ("listCalendarEvents", "searchCalendarEvents")
CALENDAR_WRITE_TOOLS = ("createCalendarEvent", "updateCalendarEvent", "deleteCalendarEvent")
UTILITY_TOOLS = ("getCurrentTime", "getSystemStatus", "validateInput", "listTools")
INTERNAL_TOOLS = ("internalTodoWrite", "internalTodoRead")
WEB_TOOLS = ("webFetch",)

PRIMARY_PERMISSIONS = AgentPermissions(
    edit=PermissionLevel.ALLOW,
    webfetch=PermissionLevel.ALLOW,
    bash={"*": PermissionLevel.ALLOW},
)

SUBAGENT_PERMISSIONS = AgentPermissions(
    edit=PermissionLevel.DENY,
    webfetch=PermissionLevel.ALLOW,
    bash={"*": PermissionLevel.ASK},
)


def _grants(*groups: tuple[str, ...], deny: tuple[str, ...] = (TASK_TOOL_NAME,)) -> dict[str, bool]:
    grants = {name: True for group in groups for name in group}
    for name in deny:
        grants[name] = False
    return grants


BUILTIN_AGENTS: dict[str, AgentDef] = {
    "primary": AgentDef(
        name="primary",
        description=(
            "Main conversation agent. Handles simple requests directly and "
            "delegates planning and execution to specialised subagents."
        ),
        mode=AgentMode.PRIMARY,
        built_in=True,
        permissions=PRIMARY_PERMISSIONS,
        tools=_grants(
            (TASK_TOOL_NAME,),
            TASK_READ_TOOLS,
            TASK_WRITE_TOOLS,
            CALENDAR_READ_TOOLS,
            CALENDAR_WRITE_TOOLS,
            UTILITY_TOOLS,
            INTERNAL_TOOLS,
            deny=(),
        ),
        temperature=0.5,
        system_prompt_ref="primary",
    ),
    "planning": AgentDef(
        name="planning",
        description=(
            "Strategic planning and task organisation with Eisenhower Matrix "
            "prioritisation. Read-only."
        ),
        built_in=True,
        permissions=SUBAGENT_PERMISSIONS,
        tools=_grants(TASK_READ_TOOLS, CALENDAR_READ_TOOLS, UTILITY_TOOLS),
        temperature=0.3,
        options={"max_search_depth": 10, "include_context": True},
        system_prompt_ref="planning",
    ),
    "execution": AgentDef(
        name="execution",
        description="Direct task and calendar operations with data validation.",
        built_in=True,
        permissions=PRIMARY_PERMISSIONS,
        tools=_grants(
            TASK_READ_TOOLS,
            TASK_WRITE_TOOLS,
            CALENDAR_READ_TOOLS,
            CALENDAR_WRITE_TOOLS,
            UTILITY_TOOLS,
            INTERNAL_TOOLS,
        ),
        temperature=0.2,
        system_prompt_ref="execution",
    ),
    "information-collector": AgentDef(
        name="information-collector",
        description="Systematic information gathering from the user's tasks and calendar.",
        built_in=True,
        permissions=SUBAGENT_PERMISSIONS,
        tools=_grants(TASK_READ_TOOLS, CALENDAR_READ_TOOLS, UTILITY_TOOLS),
        temperature=0.3,
        system_prompt_ref="information-collector",
    ),
    "research": AgentDef(
        name="research",
        description=(
            "Research and information gathering, including web pages. "
            "Synthesises findings in read-only mode."
        ),
        built_in=True,
        permissions=SUBAGENT_PERMISSIONS,
        tools=_grants(TASK_READ_TOOLS, CALENDAR_READ_TOOLS, UTILITY_TOOLS, WEB_TOOLS),
        temperature=0.2,
        options={"max_search_depth": 10, "research_mode": "comprehensive"},
        system_prompt_ref="research",
    ),
    "code-analysis": AgentDef(
        name="code-analysis",
        description=(
            "Code analysis, architecture review and technical investigation. "
            "No access to tasks or calendar."
        ),
        built_in=True,
        permissions=SUBAGENT_PERMISSIONS,
        tools=_grants(UTILITY_TOOLS, WEB_TOOLS),
        temperature=0.1,
        options={"analysis_mode": "detailed"},
        system_prompt_ref="code-analysis",
    ),
}


class AgentRegistry:
    """Name-keyed store of agent definitions.

    Populated with the built-in agents at construction. After startup it is
    only read; :meth:`register` is the single mutation point.
    """

    def __init__(self, agents: Mapping[str, AgentDef] | None = None) -> None:
        self._agents: dict[str, AgentDef] = dict(BUILTIN_AGENTS if agents is None else agents)
        self._builtin_names = frozenset(
            name for name, agent in self._agents.items() if agent.built_in
        )

    def __len__(self) -> int:
        return len(self._agents)

    def __contains__(self, name: object) -> bool:
        return name in self._agents

    def __iter__(self) -> Iterator[AgentDef]:
        return iter(list(self._agents.values()))

    # -- Lookup -----------------------------------------------------------

    def get_agent(self, name: str) -> AgentDef | None:
        return self._agents.get(name)

    def get_all_agents(self) -> dict[str, AgentDef]:
        """Return a copy of the name -> definition map."""
        return dict(self._agents)

    def get_agents_by_mode(self, mode: AgentMode) -> list[AgentDef]:
        return [agent for agent in self._agents.values() if agent.mode is mode]

    def get_available_subagents(self) -> list[AgentDef]:
        return self.get_agents_by_mode(AgentMode.SUBAGENT)

    def get_primary_agents(self) -> list[AgentDef]:
        return self.get_agents_by_mode(AgentMode.PRIMARY)

    def is_valid_agent(self, name: str) -> bool:
        return name in self._agents

    def can_use_as_subagent(self, name: str) -> bool:
        agent = self._agents.get(name)
        return agent is not None and agent.mode is AgentMode.SUBAGENT

    def can_use_as_primary(self, name: str) -> bool:
        agent = self._agents.get(name)
        return agent is not None and agent.mode is AgentMode.PRIMARY

    def get_agent_tools(self, name: str) -> dict[str, bool]:
        """Return a copy of the agent's grant map, or ``{}`` for unknown names."""
        agent = self._agents.get(name)
        return dict(agent.tools) if agent is not None else {}

    def has_tool_permission(self, name: str, tool_name: str) -> bool:
        return self.get_agent_tools(name).get(tool_name) is True

    def describe_subagents(self) -> str:
        """One bullet line per subagent, for prompts and tool descriptions."""
        return "\n".join(
            f"- {agent.name}: {agent.description}" for agent in self.get_available_subagents()
        )

    # -- Mutation ---------------------------------------------------------

    def register(self, name: str, definition: AgentDef) -> None:
        """Insert or overwrite a definition.

        Raises:
            ConflictError: *definition* claims to be built-in and *name* is
                already a built-in agent.
            ValueError: *name* does not match ``definition.name``.
        """
        if definition.built_in and name in self._builtin_names:
            raise ConflictError(f"Cannot override built-in agent {name!r}")
        if definition.name != name:
            raise ValueError(
                f"Agent key {name!r} does not match definition name {definition.name!r}"
            )
        if definition.mode is AgentMode.SUBAGENT and definition.tools.get(TASK_TOOL_NAME) is True:
            logger.warning(
                "Subagent %r grants %r; the grant is ignored when tools are filtered",
                name,
                TASK_TOOL_NAME,
            )
        if name in self._agents:
            logger.info("Overwriting agent definition %r", name)
        self._agents[name] = definition
        if definition.built_in:
            self._builtin_names = self._builtin_names | {name}
