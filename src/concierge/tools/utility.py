"""Utility tools: current time, system status, input validation, tool listing."""

from __future__ import annotations

import re
from collections.abc import Mapping
from datetime import date, datetime
from typing import Any
from urllib.parse import urlparse

from concierge.tools.base import BaseTool, require
from concierge.types.tools import ToolContext, ToolDef, ToolParam, ToolResultData

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_TODOIST_ID_RE = re.compile(r"^[a-zA-Z0-9]{6,}$")
VALIDATION_TYPES = ("date", "email", "todoistId", "url", "priority")


class GetCurrentTimeTool(BaseTool):
    @property
    def definition(self) -> ToolDef:
        return ToolDef(
            name="getCurrentTime",
            description="Get the user's current date, time and timezone. Use before any date math.",
        )

    async def execute(self, args: dict[str, Any], ctx: ToolContext) -> ToolResultData:
        info = ctx.request.time.to_dict()
        return self._json(info, display=info["localTime"])


class GetSystemStatusTool(BaseTool):
    """Reports which external services are connected for this user."""

    def __init__(self, connections: Mapping[str, bool], version: str) -> None:
        self._connections = dict(connections)
        self._version = version

    @property
    def definition(self) -> ToolDef:
        return ToolDef(
            name="getSystemStatus",
            description="Check which integrations are connected. Use when tools report connection errors.",
        )

    async def execute(self, args: dict[str, Any], ctx: ToolContext) -> ToolResultData:
        return self._json(
            {
                "sessionId": ctx.session_id or None,
                "connections": {
                    name: "connected" if ok else "not_connected"
                    for name, ok in self._connections.items()
                },
                "version": self._version,
            }
        )


class ValidateInputTool(BaseTool):
    @property
    def definition(self) -> ToolDef:
        return ToolDef(
            name="validateInput",
            description="Check a value before calling an API: dates, emails, Todoist ids, URLs, priorities.",
            parameters=(
                ToolParam(name="input", type="string", description="The value to check."),
                ToolParam(
                    name="type",
                    type="string",
                    description="What kind of value it should be.",
                    enum=VALIDATION_TYPES,
                ),
            ),
        )

    async def execute(self, args: dict[str, Any], ctx: ToolContext) -> ToolResultData:
        if missing := require(args, "input", "type"):
            return self._error(missing)
        value = str(args["input"]).strip()
        kind = args["type"]
        if kind not in VALIDATION_TYPES:
            return self._error(f"Unknown validation type {kind!r}. Use one of: {', '.join(VALIDATION_TYPES)}")

        is_valid, message, suggestions = _validate(value, kind)
        result: dict[str, Any] = {"input": value, "type": kind, "isValid": is_valid, "message": message}
        if suggestions:
            result["suggestions"] = suggestions
        return self._json(result)


def _validate(value: str, kind: str) -> tuple[bool, str, list[str]]:
    match kind:
        case "date":
            try:
                parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
            except ValueError:
                try:
                    parsed = datetime.combine(date.fromisoformat(value), datetime.min.time())
                except ValueError:
                    return False, "Invalid date format", [
                        "Use YYYY-MM-DD, e.g. 2025-12-31",
                        "Use ISO format, e.g. 2025-12-31T14:30:00Z",
                    ]
            if parsed.year < 2020:
                return False, "Date is before 2020", []
            return True, "Valid date", []
        case "email":
            if _EMAIL_RE.match(value):
                return True, "Valid email address", []
            return False, "Invalid email format", ["Use user@example.com"]
        case "todoistId":
            if _TODOIST_ID_RE.match(value):
                return True, "Valid Todoist id format", []
            return False, "Invalid Todoist id format", ["Call getProjectAndTaskMap to find real ids"]
        case "url":
            parsed_url = urlparse(value)
            if parsed_url.scheme in ("http", "https") and parsed_url.netloc:
                return True, "Valid URL", []
            return False, "Invalid URL format", ["Use https://example.com"]
        case _:
            if value.isdigit() and 1 <= int(value) <= 4:
                return True, "Valid priority level", []
            return False, "Invalid priority level", ["Use 1 (normal) to 4 (urgent)"]


class ListToolsTool(BaseTool):
    """Lists the tool catalogue grouped by category.

    Only tools the calling agent was actually given are listed.
    """

    def __init__(self, catalogue: Mapping[str, tuple[str, str]]) -> None:
        # name -> (category, description)
        self._catalogue = dict(catalogue)

    @property
    def definition(self) -> ToolDef:
        return ToolDef(
            name="listTools",
            description="List the assistant's tools and what they do.",
            parameters=(
                ToolParam(
                    name="category",
                    type="string",
                    description="Only this category.",
                    required=False,
                    enum=("all", "todoist", "calendar", "internal", "utility", "web"),
                ),
            ),
        )

    async def execute(self, args: dict[str, Any], ctx: ToolContext) -> ToolResultData:
        wanted = args.get("category") or "all"
        grouped: dict[str, list[dict[str, str]]] = {}
        for name, (category, description) in sorted(self._catalogue.items()):
            if ctx.available_tools is not None and name not in ctx.available_tools:
                continue
            if wanted != "all" and category != wanted:
                continue
            grouped.setdefault(category, []).append({"name": name, "description": description})
        count = sum(len(v) for v in grouped.values())
        return self._json({"categories": grouped, "total": count}, display=f"{count} tools")
