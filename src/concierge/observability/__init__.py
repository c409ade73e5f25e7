"""OpenTelemetry-based observability for Concierge."""

from concierge.observability.metrics import (
    record_delegation,
    record_tokens,
    record_tool_call,
    reset_instruments,
)
from concierge.observability.tracing import get_tracer, span

__all__ = [
    "get_tracer",
    "record_delegation",
    "record_tokens",
    "record_tool_call",
    "reset_instruments",
    "span",
]
