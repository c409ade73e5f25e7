"""Internal scratch pad for multi-step work, kept per session in memory."""

from __future__ import annotations

import logging
from typing import Any

from concierge.tools.base import BaseTool
from concierge.types.tools import ToolContext, ToolDef, ToolParam, ToolResultData

logger = logging.getLogger(__name__)

TODO_STATUSES = ("pending", "in_progress", "completed", "cancelled")
TODO_PRIORITIES = ("high", "medium", "low")


class ScratchPad:
    """Session id -> todo list. Never leaves the process."""

    def __init__(self) -> None:
        self._todos: dict[str, list[dict[str, Any]]] = {}

    def write(self, session_id: str, todos: list[dict[str, Any]]) -> None:
        self._todos[session_id] = [dict(todo) for todo in todos]

    def read(self, session_id: str) -> list[dict[str, Any]]:
        return [dict(todo) for todo in self._todos.get(session_id, [])]

    def clear(self, session_id: str) -> None:
        self._todos.pop(session_id, None)

    def summary(self, session_id: str) -> dict[str, int]:
        todos = self._todos.get(session_id, [])
        counts = {status: 0 for status in TODO_STATUSES}
        for todo in todos:
            counts[todo["status"]] = counts.get(todo["status"], 0) + 1
        return {
            "total": len(todos),
            "pending": counts["pending"],
            "inProgress": counts["in_progress"],
            "completed": counts["completed"],
            "remaining": counts["pending"] + counts["in_progress"],
        }


def _session_key(ctx: ToolContext) -> str:
    return ctx.session_id or f"identity:{ctx.identity}"


class InternalTodoWriteTool(BaseTool):
    def __init__(self, pad: ScratchPad) -> None:
        self._pad = pad

    @property
    def definition(self) -> ToolDef:
        return ToolDef(
            name="internalTodoWrite",
            description=(
                "Replace your internal checklist for coordinating a multi-step operation. "
                "Not for the user's tasks: use createTask for those."
            ),
            parameters=(
                ToolParam(
                    name="todos",
                    type="array",
                    description="The full updated checklist.",
                    items={
                        "type": "object",
                        "properties": {
                            "id": {"type": "string"},
                            "content": {"type": "string"},
                            "status": {"type": "string", "enum": list(TODO_STATUSES)},
                            "priority": {"type": "string", "enum": list(TODO_PRIORITIES)},
                        },
                        "required": ["id", "content", "status"],
                    },
                ),
            ),
        )

    async def execute(self, args: dict[str, Any], ctx: ToolContext) -> ToolResultData:
        todos = args.get("todos")
        if not isinstance(todos, list):
            return self._error("'todos' must be a list.")

        cleaned: list[dict[str, Any]] = []
        for index, todo in enumerate(todos):
            if not isinstance(todo, dict) or not todo.get("id") or not todo.get("content"):
                return self._error(f"todos[{index}] needs 'id' and 'content'.")
            status = todo.get("status", "pending")
            if status not in TODO_STATUSES:
                return self._error(f"todos[{index}] has unknown status {status!r}.")
            cleaned.append({
                "id": str(todo["id"]),
                "content": str(todo["content"]),
                "status": status,
                "priority": todo.get("priority", "medium"),
            })

        key = _session_key(ctx)
        self._pad.write(key, cleaned)
        summary = self._pad.summary(key)
        logger.debug("Scratch pad %s now has %d todos", key, summary["total"])
        return self._json(
            {"success": True, "summary": summary, "todos": cleaned},
            display=f"{summary['remaining']} remaining",
        )


class InternalTodoReadTool(BaseTool):
    def __init__(self, pad: ScratchPad) -> None:
        self._pad = pad

    @property
    def definition(self) -> ToolDef:
        return ToolDef(
            name="internalTodoRead",
            description="Read your internal checklist to see what is left.",
        )

    async def execute(self, args: dict[str, Any], ctx: ToolContext) -> ToolResultData:
        key = _session_key(ctx)
        todos = self._pad.read(key)
        summary = self._pad.summary(key)
        message = (
            f"{summary['remaining']} item(s) remaining"
            if todos else "No active internal checklist"
        )
        return self._json({"todos": todos, "summary": summary, "message": message})
