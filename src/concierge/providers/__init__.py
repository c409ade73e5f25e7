"""Provider adapters for Concierge.

Public surface
--------------
- :class:`BaseProvider`      abstract base with shared utilities
- :class:`AnthropicProvider` Claude adapter (Anthropic SDK)
- :class:`OpenAIProvider`    OpenAI / OpenRouter adapter (openai SDK)
- :func:`create_provider`    factory that returns the right adapter
- :func:`is_retryable`       transient-error classifier used by the completion loop
"""

from __future__ import annotations

from concierge.providers.anthropic import AnthropicProvider
from concierge.providers.base import BaseProvider, is_retryable
from concierge.providers.openai import OPENROUTER_BASE_URL, OpenAIProvider
from concierge.providers.registry import DEFAULT_MODELS, create_provider

__all__ = [
    "DEFAULT_MODELS",
    "OPENROUTER_BASE_URL",
    "AnthropicProvider",
    "BaseProvider",
    "OpenAIProvider",
    "create_provider",
    "is_retryable",
]
