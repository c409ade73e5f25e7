"""Tests for concierge.agents: registry and permission filtering."""

from __future__ import annotations

import logging

import pytest

from concierge.agents.filter import filter_tools
from concierge.agents.registry import BUILTIN_AGENTS, TASK_TOOL_NAME, AgentRegistry
from concierge.errors import ConflictError
from concierge.types.agents import AgentDef, AgentMode, PermissionLevel
from tests.conftest import FakeTool

SUBAGENTS = ("planning", "execution", "information-collector", "research", "code-analysis")


def _full_tool_set(*names: str) -> dict[str, FakeTool]:
    tools = {name: FakeTool(name) for name in names}
    tools[TASK_TOOL_NAME] = FakeTool(TASK_TOOL_NAME, requires_primary_mode=True)
    return tools


class TestAgentRegistry:
    def test_builtins_present(self):
        registry = AgentRegistry()
        assert len(registry) == len(BUILTIN_AGENTS)
        for name in ("primary", *SUBAGENTS):
            assert name in registry
            assert registry.get_agent(name).built_in is True

    def test_agent_def_structure(self):
        for name, agent in BUILTIN_AGENTS.items():
            assert isinstance(agent, AgentDef)
            assert agent.name == name
            assert agent.system_prompt_ref == name
            assert agent.max_turns > 0

    def test_get_agent_exact_match_only(self):
        registry = AgentRegistry()
        assert registry.get_agent("Planning") is None
        assert registry.get_agent("planning ") is None
        assert registry.get_agent("planning").name == "planning"

    def test_modes(self):
        registry = AgentRegistry()
        assert [a.name for a in registry.get_primary_agents()] == ["primary"]
        assert {a.name for a in registry.get_available_subagents()} == set(SUBAGENTS)
        assert registry.can_use_as_primary("primary")
        assert not registry.can_use_as_subagent("primary")
        assert registry.can_use_as_subagent("planning")
        assert not registry.can_use_as_primary("planning")
        assert not registry.can_use_as_subagent("nonexistent")
        assert not registry.is_valid_agent("nonexistent")

    def test_get_all_agents_returns_copy(self):
        registry = AgentRegistry()
        snapshot = registry.get_all_agents()
        snapshot.pop("primary")
        assert "primary" in registry

    def test_definitions_are_read_only(self):
        planning = AgentRegistry().get_all_agents()["planning"]
        with pytest.raises(TypeError):
            planning.tools["createTask"] = True  # type: ignore[index]
        with pytest.raises(TypeError):
            planning.options["include_context"] = False  # type: ignore[index]
        with pytest.raises(TypeError):
            planning.permissions.bash["rm *"] = PermissionLevel.ALLOW  # type: ignore[index]
        fresh = AgentRegistry()
        assert not fresh.has_tool_permission("planning", "createTask")
        assert "rm *" not in fresh.get_agent("planning").permissions.bash

    def test_definition_copies_caller_map(self):
        grants = {"getTasks": True}
        agent = AgentDef(name="digest", description="d", tools=grants)
        grants["createTask"] = True
        assert "createTask" not in agent.tools

    def test_get_agent_tools(self):
        registry = AgentRegistry()
        tools = registry.get_agent_tools("planning")
        assert tools["getTasks"] is True
        assert tools[TASK_TOOL_NAME] is False
        assert "createTask" not in tools
        tools["createTask"] = True
        assert not registry.has_tool_permission("planning", "createTask")
        assert registry.get_agent_tools("nonexistent") == {}

    def test_has_tool_permission(self):
        registry = AgentRegistry()
        assert registry.has_tool_permission("execution", "createTask")
        assert not registry.has_tool_permission("planning", "createTask")
        assert not registry.has_tool_permission("code-analysis", "getTasks")
        assert registry.has_tool_permission("research", "webFetch")
        assert registry.has_tool_permission("primary", TASK_TOOL_NAME)

    def test_no_builtin_subagent_grants_task(self):
        for agent in AgentRegistry().get_available_subagents():
            assert agent.tools.get(TASK_TOOL_NAME) is not True

    def test_describe_subagents(self):
        text = AgentRegistry().describe_subagents()
        lines = text.splitlines()
        assert len(lines) == len(SUBAGENTS)
        assert any(line.startswith("- planning: ") for line in lines)
        assert "primary" not in {line.split(":")[0][2:] for line in lines}

    def test_injected_agents_replace_builtins(self):
        custom = AgentDef(name="solo", description="Only one", mode=AgentMode.SUBAGENT)
        registry = AgentRegistry({"solo": custom})
        assert len(registry) == 1
        assert registry.get_agent("planning") is None
        assert [a.name for a in registry] == ["solo"]


class TestRegister:
    def test_register_builtin_primary_conflicts(self):
        registry = AgentRegistry()
        impostor = AgentDef(name="primary", description="x", mode=AgentMode.PRIMARY, built_in=True)
        with pytest.raises(ConflictError):
            registry.register("primary", impostor)

    def test_register_builtin_research_leaves_existing(self):
        registry = AgentRegistry()
        before = registry.get_agent("research")
        impostor = AgentDef(name="research", description="hijack", built_in=True, tools={"deleteTask": True})
        with pytest.raises(ConflictError):
            registry.register("research", impostor)
        assert registry.get_agent("research") is before

    def test_register_fresh_name(self):
        registry = AgentRegistry()
        custom = AgentDef(name="customName", description="Mine", tools={"getTasks": True})
        registry.register("customName", custom)
        assert registry.get_agent("customName") is custom
        assert registry.can_use_as_subagent("customName")

    def test_register_name_mismatch(self):
        registry = AgentRegistry()
        with pytest.raises(ValueError, match="does not match"):
            registry.register("alias", AgentDef(name="real", description=""))

    def test_non_builtin_overwrite_of_builtin_name_allowed(self):
        registry = AgentRegistry()
        replacement = AgentDef(name="planning", description="Local planning")
        registry.register("planning", replacement)
        assert registry.get_agent("planning") is replacement

    def test_subagent_granting_task_logs_warning(self, caplog):
        registry = AgentRegistry()
        sneaky = AgentDef(name="sneaky", description="", tools={TASK_TOOL_NAME: True})
        with caplog.at_level(logging.WARNING, logger="concierge.agents.registry"):
            registry.register("sneaky", sneaky)
        assert "sneaky" in caplog.text
        assert registry.get_agent("sneaky") is sneaky


class TestAgentDef:
    def test_temperature_range(self):
        AgentDef(name="a", description="", temperature=0.0)
        AgentDef(name="a", description="", temperature=1.0)
        with pytest.raises(ValueError, match="temperature"):
            AgentDef(name="a", description="", temperature=1.5)

    def test_empty_name_rejected(self):
        with pytest.raises(ValueError):
            AgentDef(name="", description="")

    def test_granted_tools(self):
        agent = AgentDef(name="a", description="", tools={"b": True, "a": True, "c": False})
        assert agent.granted_tools == ("a", "b")

    def test_bash_decision(self):
        perms = BUILTIN_AGENTS["primary"].permissions
        assert perms.bash_decision("ls -la") is PermissionLevel.ALLOW
        sub = BUILTIN_AGENTS["planning"].permissions
        assert sub.bash_decision("rm -rf /") is PermissionLevel.ASK
        assert sub.edit is PermissionLevel.DENY


class TestFilterTools:
    def test_execution_agent_tools(self):
        agent = AgentDef(
            name="execution",
            description="",
            mode=AgentMode.SUBAGENT,
            tools={"createTask": True, "deleteTask": True, TASK_TOOL_NAME: False},
        )
        full = _full_tool_set("createTask", "deleteTask", "readCalendar")
        assert set(filter_tools(agent, full)) == {"createTask", "deleteTask"}

    def test_subagent_never_gets_task_even_when_granted(self):
        agent = AgentDef(name="rogue", description="", tools={TASK_TOOL_NAME: True, "getTasks": True})
        result = filter_tools(agent, _full_tool_set("getTasks"))
        assert TASK_TOOL_NAME not in result
        assert set(result) == {"getTasks"}

    def test_every_builtin_subagent_excludes_task(self):
        full = _full_tool_set("getTasks", "createTask", "webFetch", "getCurrentTime")
        for agent in AgentRegistry().get_available_subagents():
            assert TASK_TOOL_NAME not in filter_tools(agent, full)

    def test_primary_gets_task(self):
        full = _full_tool_set("getTasks")
        result = filter_tools(BUILTIN_AGENTS["primary"], full)
        assert TASK_TOOL_NAME in result

    def test_primary_without_grant_does_not_get_task(self):
        agent = AgentDef(name="p2", description="", mode=AgentMode.PRIMARY, tools={"getTasks": True})
        assert TASK_TOOL_NAME not in filter_tools(agent, _full_tool_set("getTasks"))

    def test_default_deny_bound(self):
        full = _full_tool_set(
            "getTasks", "createTask", "deleteTask", "listCalendarEvents", "webFetch",
            "getCurrentTime", "internalTodoWrite", "unknownTool",
        )
        for agent in AgentRegistry():
            result = filter_tools(agent, full)
            granted = {k for k, v in agent.tools.items() if v is True}
            assert len(result) <= len(granted)
            assert set(result) <= granted

    def test_granted_but_missing_tools_are_omitted(self):
        agent = AgentDef(name="a", description="", tools={"ghost": True, "getTasks": True})
        assert set(filter_tools(agent, _full_tool_set("getTasks"))) == {"getTasks"}

    def test_empty_result_is_legal(self):
        agent = AgentDef(name="a", description="")
        assert filter_tools(agent, _full_tool_set("getTasks")) == {}

    def test_non_bool_truthy_grant_is_denied(self):
        agent = AgentDef(name="a", description="", tools={"getTasks": 1})  # type: ignore[dict-item]
        assert filter_tools(agent, _full_tool_set("getTasks")) == {}

    def test_returns_same_instances(self):
        full = _full_tool_set("getTasks")
        agent = AgentDef(name="a", description="", tools={"getTasks": True})
        assert filter_tools(agent, full)["getTasks"] is full["getTasks"]
