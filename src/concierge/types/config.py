"""Configuration types for Concierge."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Settings:
    """Resolved runtime configuration (env + config.toml + explicit overrides)."""

    provider: str = "openrouter"  # "openrouter", "openai" or "anthropic"
    model: str | None = None  # None = provider default
    api_key: str | None = None
    base_url: str | None = None
    timezone: str = "UTC"
    default_temperature: float = 0.2
    max_retries: int = 3
    timeout: float = 120.0  # Wall-clock seconds for one subagent completion
    primary_timeout: float = 300.0  # Primary turn, including the delegations it makes
    max_tokens: int = 4096
    todoist_token: str | None = None
    google_calendar_token: str | None = None
    agent_files: tuple[str, ...] = ()
