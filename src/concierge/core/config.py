"""Configuration loading (env vars, .env, .concierge/config.toml)."""

from __future__ import annotations

import logging
import os
import tomllib
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from concierge.types.config import Settings

logger = logging.getLogger(__name__)

# Load .env from current directory (and parents), won't override existing env vars
load_dotenv()

ENV_MAP = {
    "openrouter": "OPENROUTER_API_KEY",
    "openai": "OPENAI_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
}

CONFIG_DIR = ".concierge"
CONFIG_FILE = "config.toml"


def load_env_config() -> dict[str, Any]:
    """Load configuration from environment variables."""
    config: dict[str, Any] = {}

    if provider := os.environ.get("CONCIERGE_PROVIDER"):
        config["provider"] = provider
    if model := os.environ.get("CONCIERGE_MODEL"):
        config["model"] = model
    if tz := os.environ.get("CONCIERGE_TIMEZONE"):
        config["timezone"] = tz
    if token := os.environ.get("TODOIST_API_TOKEN"):
        config["todoist_token"] = token
    if token := os.environ.get("GOOGLE_CALENDAR_TOKEN"):
        config["google_calendar_token"] = token

    return config


def find_config_file(cwd: str | Path | None = None) -> Path | None:
    """Locate .concierge/config.toml in *cwd*, the working directory, or home."""
    search_dirs: list[Path] = []
    if cwd:
        search_dirs.append(Path(cwd))
    search_dirs.append(Path.cwd())
    search_dirs.append(Path.home())

    for d in search_dirs:
        toml_path = d / CONFIG_DIR / CONFIG_FILE
        if toml_path.is_file():
            return toml_path
    return None


def load_toml_config(cwd: str | Path | None = None) -> tuple[dict[str, Any], Path | None]:
    """Load the first config.toml found. An unparsable file is skipped with a warning."""
    toml_path = find_config_file(cwd)
    if toml_path is None:
        return {}, None
    try:
        with open(toml_path, "rb") as f:
            return tomllib.load(f), toml_path
    except (OSError, tomllib.TOMLDecodeError) as exc:
        logger.warning("Ignoring unreadable config %s: %s", toml_path, exc)
        return {}, toml_path


def resolve_api_key(
    provider: str, toml: dict[str, Any] | None = None, explicit_key: str | None = None,
) -> str | None:
    """Resolve an API key from explicit value, environment, then config file."""
    if explicit_key:
        return explicit_key

    env_var = ENV_MAP.get(provider)
    if env_var and (val := os.environ.get(env_var)):
        return val

    key = ((toml or {}).get("providers", {}).get(provider) or {}).get("api_key")
    return key or None


def load_settings(cwd: str | Path | None = None, **overrides: Any) -> Settings:
    """Merge config.toml, environment and explicit *overrides* into :class:`Settings`.

    Precedence, lowest first: built-in defaults, ``[defaults]`` in
    config.toml, environment variables, *overrides* (None values ignored).
    """
    toml, toml_path = load_toml_config(cwd)
    merged: dict[str, Any] = {}

    defaults = toml.get("defaults", {})
    for key in (
        "provider", "model", "timezone", "default_temperature",
        "max_retries", "timeout", "primary_timeout", "max_tokens",
    ):
        if key in defaults:
            merged[key] = defaults[key]
    integrations = toml.get("integrations", {})
    for key in ("todoist_token", "google_calendar_token"):
        if integrations.get(key):
            merged[key] = integrations[key]

    merged.update(load_env_config())
    merged.update({k: v for k, v in overrides.items() if v is not None})

    provider = merged.get("provider", Settings.provider)
    provider_conf = toml.get("providers", {}).get(provider) or {}
    merged["api_key"] = resolve_api_key(provider, toml, merged.get("api_key"))
    merged.setdefault("base_url", provider_conf.get("base_url"))

    agent_files = toml.get("agents", {}).get("files", [])
    if agent_files:
        base = toml_path.parent if toml_path is not None else Path.cwd()
        merged["agent_files"] = tuple(str((base / p).expanduser()) for p in agent_files)

    known = set(Settings.__dataclass_fields__)
    unknown = set(merged) - known
    if unknown:
        logger.warning("Ignoring unknown settings: %s", ", ".join(sorted(unknown)))
    return Settings(**{k: v for k, v in merged.items() if k in known})
