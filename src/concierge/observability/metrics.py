"""Metrics recording: delegation, tool-call and token counters."""

from __future__ import annotations

from typing import Any

from opentelemetry import metrics

# Lazily-created instruments
_meter: Any = None
_delegation_counter: Any = None
_tool_call_counter: Any = None
_token_counter: Any = None
_delegation_duration: Any = None


def _ensure_instruments() -> None:
    """Create meter and instruments on first use."""
    global _meter, _delegation_counter, _tool_call_counter, _token_counter
    global _delegation_duration

    if _meter is not None:
        return

    _meter = metrics.get_meter("concierge")
    _delegation_counter = _meter.create_counter(
        "concierge.delegations",
        description="Delegations to subagents, by outcome",
    )
    _tool_call_counter = _meter.create_counter(
        "concierge.tool_calls",
        description="Tool calls executed by the completion loop",
    )
    _token_counter = _meter.create_counter(
        "concierge.tokens",
        description="Total tokens consumed",
        unit="tokens",
    )
    _delegation_duration = _meter.create_histogram(
        "concierge.delegation_duration",
        description="Wall-clock time of a delegation",
        unit="ms",
    )


def record_delegation(subagent_type: str, *, outcome: str, duration_ms: float | None = None) -> None:
    """Record one delegation. *outcome* is "ok" or the error class name."""
    _ensure_instruments()
    attrs = {"subagent": subagent_type, "outcome": outcome}
    _delegation_counter.add(1, attrs)
    if duration_ms is not None:
        _delegation_duration.record(duration_ms, attrs)


def record_tool_call(tool_name: str, *, is_error: bool = False) -> None:
    """Record a tool call execution."""
    _ensure_instruments()
    _tool_call_counter.add(1, {"tool": tool_name, "error": str(is_error).lower()})


def record_tokens(total_tokens: int, *, model: str = "") -> None:
    _ensure_instruments()
    _token_counter.add(total_tokens, {"model": model})


def reset_instruments() -> None:
    """Reset module-level instruments for test isolation."""
    global _meter, _delegation_counter, _tool_call_counter, _token_counter
    global _delegation_duration
    _meter = None
    _delegation_counter = None
    _tool_call_counter = None
    _token_counter = None
    _delegation_duration = None
