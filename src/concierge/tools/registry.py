"""Tool registry: builds the full tool set for one request."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TYPE_CHECKING

import httpx

from concierge.integrations.base import (
    GOOGLE_CALENDAR,
    TODOIST,
    CalendarBackend,
    CredentialStore,
    TaskBackend,
)
from concierge.integrations.google_calendar import GoogleCalendarClient
from concierge.integrations.todoist import TodoistClient
from concierge.tools.base import BaseTool
from concierge.tools.calendar import CALENDAR_TOOLS
from concierge.tools.internal import InternalTodoReadTool, InternalTodoWriteTool, ScratchPad
from concierge.tools.task import TaskTool
from concierge.tools.todoist import TODOIST_TOOLS
from concierge.tools.utility import (
    GetCurrentTimeTool,
    GetSystemStatusTool,
    ListToolsTool,
    ValidateInputTool,
)
from concierge.tools.web import WebFetchTool
from concierge.types.tools import RequestContext, Tool

if TYPE_CHECKING:
    from concierge.agents.dispatcher import Dispatcher

logger = logging.getLogger(__name__)

TaskBackendFactory = Callable[[str], TaskBackend]
CalendarBackendFactory = Callable[[str], CalendarBackend]


class ToolRegistry:
    """Produces fresh tool instances bound to one caller's credentials.

    Nothing is cached between calls. A service the user has not connected
    still contributes its tools; they answer with a "not connected" error.
    """

    def __init__(
        self,
        credentials: CredentialStore,
        *,
        task_backend_factory: TaskBackendFactory = TodoistClient,
        calendar_backend_factory: CalendarBackendFactory = GoogleCalendarClient,
        scratch_pad: ScratchPad | None = None,
        web_transport: httpx.AsyncBaseTransport | None = None,
        version: str = "",
    ) -> None:
        self._credentials = credentials
        self._task_factory = task_backend_factory
        self._calendar_factory = calendar_backend_factory
        self._scratch_pad = scratch_pad if scratch_pad is not None else ScratchPad()
        self._web_transport = web_transport
        self._version = version
        self._dispatcher: Dispatcher | None = None

    @property
    def scratch_pad(self) -> ScratchPad:
        return self._scratch_pad

    def attach_dispatcher(self, dispatcher: Dispatcher) -> None:
        """Enable the ``task`` tool. Done once at wiring time."""
        self._dispatcher = dispatcher

    async def build_tool_set(self, context: RequestContext) -> dict[str, Tool]:
        """Build the full, unfiltered tool set for *context*.

        Credential-store and backend-factory errors propagate.
        """
        todoist_token = await self._credentials.get_token(context.identity, TODOIST)
        calendar_token = await self._credentials.get_token(context.identity, GOOGLE_CALENDAR)
        task_backend = self._task_factory(todoist_token) if todoist_token else None
        calendar_backend = self._calendar_factory(calendar_token) if calendar_token else None

        tools: list[BaseTool] = []
        categories: dict[str, str] = {}

        def add(tool: BaseTool, category: str) -> None:
            tools.append(tool)
            categories[tool.name] = category

        for tool_cls in TODOIST_TOOLS:
            add(tool_cls(task_backend), "todoist")
        for tool_cls in CALENDAR_TOOLS:
            add(tool_cls(calendar_backend), "calendar")
        add(InternalTodoWriteTool(self._scratch_pad), "internal")
        add(InternalTodoReadTool(self._scratch_pad), "internal")
        add(WebFetchTool(transport=self._web_transport), "web")
        add(GetCurrentTimeTool(), "utility")
        add(
            GetSystemStatusTool(
                {TODOIST: task_backend is not None, GOOGLE_CALENDAR: calendar_backend is not None},
                self._version,
            ),
            "utility",
        )
        add(ValidateInputTool(), "utility")
        if self._dispatcher is not None:
            add(TaskTool(self._dispatcher), "delegation")

        catalogue = {tool.name: (categories[tool.name], tool.definition.description) for tool in tools}
        list_tools = ListToolsTool(catalogue)
        catalogue[list_tools.name] = ("utility", list_tools.definition.description)
        tools.append(list_tools)

        logger.debug(
            "Built %d tools for %s (todoist=%s, calendar=%s)",
            len(tools),
            context.identity,
            task_backend is not None,
            calendar_backend is not None,
        )
        return {tool.name: tool for tool in tools}
