"""Base tool classes with shared logic."""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from typing import Any, Generic, TypeVar

from concierge.errors import IntegrationError
from concierge.types.tools import ToolContext, ToolDef, ToolResultData

B = TypeVar("B")


class BaseTool(ABC):
    """Base class for all tools."""

    @property
    @abstractmethod
    def definition(self) -> ToolDef:
        ...

    @abstractmethod
    async def execute(self, args: dict[str, Any], ctx: ToolContext) -> ToolResultData:
        ...

    @property
    def name(self) -> str:
        return self.definition.name

    def _error(self, msg: str) -> ToolResultData:
        return ToolResultData(content=msg, is_error=True)

    def _ok(self, content: str, display: str | None = None) -> ToolResultData:
        return ToolResultData(content=content, display=display)

    def _json(self, data: Any, display: str | None = None) -> ToolResultData:
        return ToolResultData(content=json.dumps(data, default=str), display=display)


class BackendTool(BaseTool, Generic[B]):
    """A tool that talks to one external service through a backend client.

    A None backend means the user has not connected the service; the tool
    then answers with an error result instead of failing the tool set.
    """

    service_label = "External"

    def __init__(self, backend: B | None) -> None:
        self._backend = backend

    async def execute(self, args: dict[str, Any], ctx: ToolContext) -> ToolResultData:
        if self._backend is None:
            return self._error(
                f"{self.service_label} account not connected. "
                f"Ask the user to connect {self.service_label} before retrying."
            )
        try:
            return await self._run(self._backend, args, ctx)
        except IntegrationError as e:
            return self._error(str(e))

    @abstractmethod
    async def _run(self, backend: B, args: dict[str, Any], ctx: ToolContext) -> ToolResultData:
        ...


def require(args: dict[str, Any], *names: str) -> str | None:
    """Return an error message for the first missing argument, or None."""
    for name in names:
        value = args.get(name)
        if value is None or value == "":
            return f"'{name}' parameter is required."
    return None
