"""CLI subcommands: agents and config."""

from __future__ import annotations

import json

import click
from rich.console import Console
from rich.table import Table

from concierge.agents.loader import load_agents_into
from concierge.agents.registry import AgentRegistry
from concierge.errors import ConciergeError

console = Console()


def _load_registry() -> AgentRegistry:
    """Built-in agents plus any agent files named in config.toml."""
    from concierge.core.config import load_settings

    settings = load_settings()
    registry = AgentRegistry()
    if settings.agent_files:
        load_agents_into(registry, settings.agent_files)
    return registry


def _registry_or_exit() -> AgentRegistry:
    try:
        return _load_registry()
    except ConciergeError as exc:
        raise click.ClickException(str(exc)) from exc


@click.group()
def agents_cmd() -> None:
    """Inspect registered agents."""


@agents_cmd.command("list")
@click.option("--mode", type=click.Choice(["primary", "subagent"]), default=None, help="Filter by mode")
def agents_list(mode: str | None) -> None:
    """List registered agents."""
    registry = _registry_or_exit()

    table = Table(title="Agents")
    table.add_column("Name", style="bold #a78bfa", no_wrap=True)
    table.add_column("Mode")
    table.add_column("Temp", justify="right")
    table.add_column("Tools", justify="right")
    table.add_column("Source")
    table.add_column("Description", style="#7c7c8a")

    for agent in registry:
        if mode and agent.mode.value != mode:
            continue
        temp = "-" if agent.temperature is None else f"{agent.temperature:.1f}"
        table.add_row(
            agent.name,
            agent.mode.value,
            temp,
            str(len(agent.granted_tools)),
            "built-in" if agent.built_in else "custom",
            agent.description,
        )
    console.print(table)


@agents_cmd.command("show")
@click.argument("name")
def agents_show(name: str) -> None:
    """Show one agent's full definition."""
    registry = _registry_or_exit()
    agent = registry.get_agent(name)
    if agent is None:
        raise click.ClickException(f"Unknown agent: {name}")

    click.echo(f"Name:        {agent.name}")
    click.echo(f"Description: {agent.description}")
    click.echo(f"Mode:        {agent.mode.value}")
    click.echo(f"Built-in:    {'yes' if agent.built_in else 'no'}")
    click.echo(f"Temperature: {'default' if agent.temperature is None else agent.temperature}")
    click.echo(f"Max turns:   {agent.max_turns}")
    click.echo(f"Prompt ref:  {agent.system_prompt_ref or '(none)'}")
    click.echo(f"Permissions: {json.dumps(agent.permissions.to_dict())}")
    if agent.options:
        click.echo(f"Options:     {json.dumps(dict(agent.options))}")


@agents_cmd.command("tools")
@click.argument("name")
def agents_tools(name: str) -> None:
    """Show the tool grant map for an agent."""
    registry = _registry_or_exit()
    if not registry.is_valid_agent(name):
        raise click.ClickException(f"Unknown agent: {name}")

    grants = registry.get_agent_tools(name)
    if not grants:
        click.echo("  (no tools granted)")
        return
    for tool_name, allowed in sorted(grants.items()):
        click.echo(f"  {'+' if allowed else '-'} {tool_name}")


@click.group()
def config_cmd() -> None:
    """Manage configuration."""


@config_cmd.command("list")
def config_list() -> None:
    """Show current configuration."""
    from concierge.core.config import load_env_config, load_toml_config

    click.echo("Environment:")
    env = load_env_config()
    if env:
        for k, v in sorted(env.items()):
            display = v if "token" not in k.lower() else v[:8] + "..."
            click.echo(f"  {k}: {display}")
    else:
        click.echo("  (no environment variables set)")

    click.echo("\nTOML config:")
    toml, path = load_toml_config()
    if path is not None:
        click.echo(f"  (from {path})")
    if toml:
        for k, v in sorted(toml.items()):
            click.echo(f"  {k}: {_mask_secrets(v)}")
    else:
        click.echo("  (no config.toml found)")


def _mask_secrets(value: object) -> object:
    if isinstance(value, dict):
        return {
            k: (str(v)[:8] + "..." if ("key" in k or "token" in k) and v else _mask_secrets(v))
            for k, v in value.items()
        }
    return value
