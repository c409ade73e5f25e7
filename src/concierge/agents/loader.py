"""Load custom agent definitions from YAML or TOML files.

File layout (YAML shown, TOML uses ``[[agents]]`` tables)::

    agents:
      - name: reviewer
        description: Reviews my week
        mode: subagent
        temperature: 0.3
        prompt: "You review the user's week..."   # or prompt_ref: planning
        tools:
          getTasks: true
          listCalendarEvents: true
        permissions:
          edit: deny
          bash: {"git *": allow}
"""

from __future__ import annotations

import logging
import tomllib
from collections.abc import Iterable
from pathlib import Path
from typing import Any

import yaml

from concierge.agents.prompts import PromptLibrary
from concierge.agents.registry import AgentRegistry
from concierge.errors import AgentConfigError
from concierge.types.agents import AgentDef, AgentMode, AgentPermissions, PermissionLevel

logger = logging.getLogger(__name__)

# Granted to every custom agent unless the file says otherwise.
DEFAULT_CUSTOM_TOOLS: dict[str, bool] = {
    "getCurrentTime": True,
    "getSystemStatus": True,
    "validateInput": True,
    "task": False,
}


def load_agent_file(path: str | Path, prompts: PromptLibrary | None = None) -> list[AgentDef]:
    """Parse one agent file into definitions.

    Inline ``prompt`` text is added to *prompts* under the agent's name.

    Raises:
        AgentConfigError: the file is missing, unparsable, or an entry is invalid.
    """
    path = Path(path).expanduser()
    raw = _parse_file(path)

    entries = raw.get("agents", [])
    if not isinstance(entries, list):
        raise AgentConfigError(f"{path}: 'agents' must be a list")

    agents: list[AgentDef] = []
    for index, entry in enumerate(entries):
        if not isinstance(entry, dict):
            raise AgentConfigError(f"{path}: agents[{index}] must be a mapping")
        label = f"{path}: agents[{index}] ({entry.get('name', '?')})"
        try:
            agent, inline_prompt = _build_agent(entry)
        except (KeyError, TypeError, ValueError) as exc:
            raise AgentConfigError(f"{label}: {exc}") from exc

        if inline_prompt is not None:
            if prompts is None:
                logger.warning("%s: inline prompt ignored, no prompt library given", label)
            else:
                prompts.add(agent.name, inline_prompt)
        agents.append(agent)

    logger.debug("Loaded %d agent(s) from %s", len(agents), path)
    return agents


def load_agents_into(
    registry: AgentRegistry,
    paths: Iterable[str | Path],
    prompts: PromptLibrary | None = None,
) -> list[str]:
    """Load every file in *paths* and register its agents. Returns the names."""
    names: list[str] = []
    for path in paths:
        for agent in load_agent_file(path, prompts):
            registry.register(agent.name, agent)
            names.append(agent.name)
    return names


def _parse_file(path: Path) -> dict[str, Any]:
    try:
        text = path.read_text()
    except OSError as exc:
        raise AgentConfigError(f"Cannot read agent file {path}: {exc}") from exc

    suffix = path.suffix.lower()
    if suffix in (".yml", ".yaml"):
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as exc:
            raise AgentConfigError(f"Failed to parse YAML agent file {path}: {exc}") from exc
    elif suffix == ".toml":
        try:
            data = tomllib.loads(text)
        except tomllib.TOMLDecodeError as exc:
            raise AgentConfigError(f"Failed to parse TOML agent file {path}: {exc}") from exc
    else:
        raise AgentConfigError(f"Unsupported agent file extension: {path}")

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise AgentConfigError(f"{path}: top level must be a mapping")
    return data


def _build_agent(entry: dict[str, Any]) -> tuple[AgentDef, str | None]:
    name = entry["name"]
    if not isinstance(name, str):
        raise TypeError("'name' must be a string")

    tools = dict(DEFAULT_CUSTOM_TOOLS)
    raw_tools = entry.get("tools", {})
    if isinstance(raw_tools, list):
        raw_tools = {tool: True for tool in raw_tools}
    if not isinstance(raw_tools, dict):
        raise TypeError("'tools' must be a mapping of tool name to bool or a list of names")
    for tool_name, granted in raw_tools.items():
        if not isinstance(granted, bool):
            raise TypeError(f"grant for {tool_name!r} must be true or false")
        tools[str(tool_name)] = granted

    inline_prompt = entry.get("prompt")
    prompt_ref = entry.get("prompt_ref")
    if inline_prompt is not None:
        prompt_ref = name

    agent = AgentDef(
        name=name,
        description=str(entry.get("description", "")),
        mode=AgentMode(entry.get("mode", AgentMode.SUBAGENT.value)),
        built_in=False,
        permissions=_build_permissions(entry.get("permissions", {})),
        tools=tools,
        temperature=entry.get("temperature"),
        options=dict(entry.get("options", {})),
        system_prompt_ref=prompt_ref,
        max_turns=int(entry.get("max_turns", 12)),
    )
    return agent, inline_prompt


def _build_permissions(raw: dict[str, Any]) -> AgentPermissions:
    if not isinstance(raw, dict):
        raise TypeError("'permissions' must be a mapping")
    defaults = AgentPermissions()
    bash = raw.get("bash")
    if bash is None:
        bash_levels = dict(defaults.bash)
    elif isinstance(bash, str):
        bash_levels = {"*": PermissionLevel(bash)}
    else:
        bash_levels = {str(k): PermissionLevel(v) for k, v in bash.items()}
    return AgentPermissions(
        edit=PermissionLevel(raw.get("edit", defaults.edit.value)),
        webfetch=PermissionLevel(raw.get("webfetch", defaults.webfetch.value)),
        bash=bash_levels,
    )
