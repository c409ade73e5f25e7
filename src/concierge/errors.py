"""Exception hierarchy for Concierge.

Fatal delegation failures derive from :class:`DelegationError` and always
propagate to the caller of ``Dispatcher.delegate``. Failures of a single tool
call are not exceptions at this level: they travel back to the model as error
tool results.
"""

from __future__ import annotations


class ConciergeError(Exception):
    """Base class for all Concierge errors."""


class DelegationError(ConciergeError):
    """A delegation could not produce a trustworthy result."""

    #: Whether one upstream retry of the whole delegation is reasonable.
    retryable: bool = False


class InvalidAgentError(DelegationError):
    """The requested agent does not exist or cannot be used as a subagent."""

    def __init__(self, agent_name: str, reason: str | None = None) -> None:
        self.agent_name = agent_name
        detail = reason or "unknown agent or not usable as a subagent"
        super().__init__(f"Invalid subagent type {agent_name!r}: {detail}")


class ToolRegistryError(DelegationError):
    """The full tool set could not be built for the request context."""

    retryable = True


class CompletionServiceError(DelegationError):
    """The completion service failed after exhausting its retries."""

    retryable = True


class ConflictError(ConciergeError):
    """Attempt to overwrite a built-in agent definition."""


class AgentConfigError(ConciergeError):
    """An agent definition file is malformed."""


class IntegrationError(ConciergeError):
    """An external task/calendar service rejected a request."""

    def __init__(self, service: str, status: int | None, message: str) -> None:
        self.service = service
        self.status = status
        prefix = f"{service} error" if status is None else f"{service} error {status}"
        super().__init__(f"{prefix}: {message}")
