"""CLI entry point for Concierge."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import click
from rich.console import Console
from rich.panel import Panel

from concierge.errors import ConciergeError

console = Console()
err_console = Console(stderr=True)


@click.group()
@click.option("--provider", "-p", default=None, help="LLM provider (openrouter, openai, anthropic)")
@click.option("--model", "-m", default=None, help="Model ID")
@click.option("--timezone", default=None, help="User timezone, e.g. Europe/Berlin")
@click.option("--verbose", "-v", is_flag=True, help="Verbose output")
@click.pass_context
def cli(
    ctx: click.Context,
    provider: str | None,
    model: str | None,
    timezone: str | None,
    verbose: bool,
) -> None:
    """Concierge -- productivity assistant with delegating subagents.

    \b
    Usage:
      concierge chat "What's on my plate today?"
      concierge delegate planning "Break down the launch project"
      concierge agents list
      concierge agents tools execution
      concierge config list
    """
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
    ctx.ensure_object(dict)
    ctx.obj["overrides"] = {"provider": provider, "model": model, "timezone": timezone}


def _build_engine(overrides: dict[str, Any]) -> Any:
    from concierge.core.config import load_settings
    from concierge.core.engine import create_engine

    return create_engine(load_settings(**overrides))


def _run(coro: Any) -> Any:
    try:
        return asyncio.run(coro)
    except ConciergeError as exc:
        err_console.print(f"[bold #f87171]Error:[/] {exc}")
        raise SystemExit(1) from exc


@cli.command("delegate")
@click.argument("subagent_type")
@click.argument("prompt")
@click.option("--description", "-d", default=None, help="Short task description")
@click.pass_context
def delegate_cmd(ctx: click.Context, subagent_type: str, prompt: str, description: str | None) -> None:
    """Run PROMPT on one subagent and print its report."""
    try:
        engine = _build_engine(ctx.obj["overrides"])
    except (ConciergeError, ValueError) as exc:
        raise click.ClickException(str(exc)) from exc
    result = _run(engine.delegate(subagent_type, prompt, description))
    console.print(Panel(result.output, title=result.title, border_style="#a78bfa"))
    meta = result.metadata
    err_console.print(
        f"[dim #7c7c8a]{meta.get('tool_calls', 0)} tool calls, "
        f"{meta.get('duration_ms', 0):.0f} ms[/]"
    )


@cli.command("chat")
@click.argument("message")
@click.pass_context
def chat_cmd(ctx: click.Context, message: str) -> None:
    """Send MESSAGE to the primary agent."""
    try:
        engine = _build_engine(ctx.obj["overrides"])
    except (ConciergeError, ValueError) as exc:
        raise click.ClickException(str(exc)) from exc
    completion = _run(engine.chat(message))
    console.print(completion.text or "(no response)")
    if completion.stop_reason == "max_turns":
        err_console.print("[dim italic #94a3b8]Stopped after reaching the turn limit.[/]")


def _register_subcommands() -> None:
    """Register CLI subcommands."""
    from concierge.cli.commands import agents_cmd, config_cmd

    cli.add_command(agents_cmd, "agents")
    cli.add_command(config_cmd, "config")


_register_subcommands()


def main() -> None:
    """Entry point."""
    cli()


if __name__ == "__main__":
    main()
