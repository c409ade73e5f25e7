"""Provider factory for Concierge."""

from __future__ import annotations

from concierge.providers.anthropic import AnthropicProvider
from concierge.providers.openai import OPENROUTER_BASE_URL, OpenAIProvider
from concierge.types.providers import ProviderAdapter

# Provider name -> default model
DEFAULT_MODELS: dict[str, str] = {
    "openrouter": "anthropic/claude-3.5-haiku",
    "openai": "gpt-4o-mini",
    "anthropic": "claude-3-5-haiku-20241022",
}


def create_provider(
    provider: str,
    model: str | None = None,
    api_key: str | None = None,
    base_url: str | None = None,
) -> ProviderAdapter:
    """Instantiate the adapter for *provider*.

    Parameters
    ----------
    provider:
        ``"openrouter"``, ``"openai"`` or ``"anthropic"``.
    model:
        Model ID; None picks the provider's entry in :data:`DEFAULT_MODELS`.
    api_key:
        Optional API key. When *None* the SDK reads its own environment variable.
    base_url:
        Optional base URL override for OpenAI-compatible endpoints.

    Raises
    ------
    ValueError
        When *provider* is not one of the supported names.
    """
    if provider not in DEFAULT_MODELS:
        supported = ", ".join(sorted(DEFAULT_MODELS))
        raise ValueError(f"Unknown provider {provider!r}. Supported: {supported}")

    model_id = model or DEFAULT_MODELS[provider]

    if provider == "anthropic":
        return AnthropicProvider(api_key=api_key, model=model_id)
    if provider == "openrouter":
        return OpenAIProvider(api_key=api_key, model=model_id, base_url=base_url or OPENROUTER_BASE_URL)
    return OpenAIProvider(api_key=api_key, model=model_id, base_url=base_url)
