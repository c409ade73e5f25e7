"""Task tools backed by a :class:`TaskBackend` (Todoist)."""

from __future__ import annotations

import logging
from typing import Any

from concierge.errors import IntegrationError
from concierge.integrations.base import TaskBackend
from concierge.tools.base import BackendTool, require
from concierge.types.tools import ToolContext, ToolDef, ToolParam, ToolResultData

logger = logging.getLogger(__name__)

# Tool argument name -> Todoist field name
_TASK_FIELDS = {
    "content": "content",
    "description": "description",
    "projectId": "project_id",
    "dueString": "due_string",
    "dueDate": "due_date",
    "priority": "priority",
    "labels": "labels",
}
_PROJECT_FIELDS = {"name": "name", "color": "color", "parentId": "parent_id", "isFavorite": "is_favorite"}

_TASK_ID = ToolParam(name="taskId", type="string", description="Todoist task id.")
_PROJECT_ID = ToolParam(name="projectId", type="string", description="Todoist project id.")
_PRIORITY = ToolParam(
    name="priority",
    type="integer",
    description="Priority from 1 (normal) to 4 (urgent).",
    required=False,
)
_DUE_STRING = ToolParam(
    name="dueString",
    type="string",
    description="Natural-language due date, e.g. 'tomorrow at 5pm'.",
    required=False,
)
_DUE_DATE = ToolParam(name="dueDate", type="string", description="Due date as YYYY-MM-DD.", required=False)
_LABELS = ToolParam(name="labels", type="array", description="Label names.", required=False)
_DESCRIPTION = ToolParam(name="description", type="string", description="Longer notes.", required=False)


def _map_fields(args: dict[str, Any], mapping: dict[str, str], skip: tuple[str, ...] = ()) -> dict[str, Any]:
    return {
        field: args[arg]
        for arg, field in mapping.items()
        if arg not in skip and args.get(arg) is not None
    }


def _summarise_task(task: dict[str, Any]) -> dict[str, Any]:
    due = task.get("due") or {}
    return {
        "id": task.get("id"),
        "content": task.get("content"),
        "priority": task.get("priority"),
        "due": due.get("datetime") or due.get("date"),
        "projectId": task.get("project_id"),
    }


class TodoistTool(BackendTool[TaskBackend]):
    service_label = "Todoist"


class GetProjectAndTaskMapTool(TodoistTool):
    """Whole-account overview: every project with its open tasks."""

    @property
    def definition(self) -> ToolDef:
        return ToolDef(
            name="getProjectAndTaskMap",
            description=(
                "Get every project with its open tasks (ids, titles, due dates). "
                "Call this first to find ids before changing anything."
            ),
        )

    async def _run(self, backend: TaskBackend, args: dict[str, Any], ctx: ToolContext) -> ToolResultData:
        projects = await backend.list_projects()
        tasks = await backend.list_tasks()

        by_project: dict[str, list[dict[str, Any]]] = {}
        for task in tasks:
            by_project.setdefault(str(task.get("project_id")), []).append(_summarise_task(task))

        overview = [
            {
                "id": project.get("id"),
                "name": project.get("name"),
                "tasks": by_project.pop(str(project.get("id")), []),
            }
            for project in projects
        ]
        orphaned = [task for group in by_project.values() for task in group]
        return self._json(
            {"projects": overview, "unassignedTasks": orphaned, "taskCount": len(tasks)},
            display=f"{len(projects)} projects, {len(tasks)} tasks",
        )


class GetProjectDetailsTool(TodoistTool):
    @property
    def definition(self) -> ToolDef:
        return ToolDef(
            name="getProjectDetails",
            description="Get one project and its open tasks.",
            parameters=(_PROJECT_ID,),
        )

    async def _run(self, backend: TaskBackend, args: dict[str, Any], ctx: ToolContext) -> ToolResultData:
        if missing := require(args, "projectId"):
            return self._error(missing)
        project = await backend.get_project(args["projectId"])
        tasks = await backend.list_tasks(project_id=args["projectId"])
        return self._json({"project": project, "tasks": [_summarise_task(t) for t in tasks]})


class GetTasksTool(TodoistTool):
    @property
    def definition(self) -> ToolDef:
        return ToolDef(
            name="getTasks",
            description="List open tasks, optionally by project or Todoist filter query.",
            parameters=(
                ToolParam(name="projectId", type="string", description="Only this project.", required=False),
                ToolParam(
                    name="filter",
                    type="string",
                    description="Todoist filter, e.g. 'today | overdue'.",
                    required=False,
                ),
            ),
        )

    async def _run(self, backend: TaskBackend, args: dict[str, Any], ctx: ToolContext) -> ToolResultData:
        tasks = await backend.list_tasks(project_id=args.get("projectId"), filter=args.get("filter"))
        return self._json([_summarise_task(t) for t in tasks], display=f"{len(tasks)} tasks")


class GetTaskDetailsTool(TodoistTool):
    @property
    def definition(self) -> ToolDef:
        return ToolDef(name="getTaskDetails", description="Get all fields of one task.", parameters=(_TASK_ID,))

    async def _run(self, backend: TaskBackend, args: dict[str, Any], ctx: ToolContext) -> ToolResultData:
        if missing := require(args, "taskId"):
            return self._error(missing)
        return self._json(await backend.get_task(args["taskId"]))


class CreateTaskTool(TodoistTool):
    @property
    def definition(self) -> ToolDef:
        return ToolDef(
            name="createTask",
            description="Create a task. Omit projectId to put it in the Inbox.",
            parameters=(
                ToolParam(name="content", type="string", description="Task title."),
                _DESCRIPTION,
                ToolParam(name="projectId", type="string", description="Target project id.", required=False),
                _DUE_STRING,
                _DUE_DATE,
                _PRIORITY,
                _LABELS,
            ),
        )

    async def _run(self, backend: TaskBackend, args: dict[str, Any], ctx: ToolContext) -> ToolResultData:
        if missing := require(args, "content"):
            return self._error(missing)
        fields = _map_fields(args, _TASK_FIELDS, skip=("content",))
        task = await backend.create_task(args["content"], **fields)
        return self._json(task, display=f"Created task {task.get('id')}")


class UpdateTaskTool(TodoistTool):
    @property
    def definition(self) -> ToolDef:
        return ToolDef(
            name="updateTask",
            description="Change fields of an existing task. Only given fields change.",
            parameters=(
                _TASK_ID,
                ToolParam(name="content", type="string", description="New title.", required=False),
                _DESCRIPTION,
                _DUE_STRING,
                _DUE_DATE,
                _PRIORITY,
                _LABELS,
            ),
        )

    async def _run(self, backend: TaskBackend, args: dict[str, Any], ctx: ToolContext) -> ToolResultData:
        if missing := require(args, "taskId"):
            return self._error(missing)
        # Todoist cannot move tasks between projects through update.
        fields = _map_fields(args, _TASK_FIELDS, skip=("projectId",))
        if not fields:
            return self._error("Nothing to update: pass at least one field.")
        return self._json(await backend.update_task(args["taskId"], **fields))


class DeleteTaskTool(TodoistTool):
    @property
    def definition(self) -> ToolDef:
        return ToolDef(name="deleteTask", description="Permanently delete a task.", parameters=(_TASK_ID,))

    async def _run(self, backend: TaskBackend, args: dict[str, Any], ctx: ToolContext) -> ToolResultData:
        if missing := require(args, "taskId"):
            return self._error(missing)
        await backend.delete_task(args["taskId"])
        return self._json({"deleted": args["taskId"]})


class CompleteTaskTool(TodoistTool):
    @property
    def definition(self) -> ToolDef:
        return ToolDef(name="completeTask", description="Mark a task as done.", parameters=(_TASK_ID,))

    async def _run(self, backend: TaskBackend, args: dict[str, Any], ctx: ToolContext) -> ToolResultData:
        if missing := require(args, "taskId"):
            return self._error(missing)
        await backend.close_task(args["taskId"])
        return self._json({"completed": args["taskId"]})


class CreateProjectTool(TodoistTool):
    @property
    def definition(self) -> ToolDef:
        return ToolDef(
            name="createProject",
            description="Create a project.",
            parameters=(
                ToolParam(name="name", type="string", description="Project name."),
                ToolParam(name="color", type="string", description="Todoist color name.", required=False),
                ToolParam(name="parentId", type="string", description="Parent project id.", required=False),
            ),
        )

    async def _run(self, backend: TaskBackend, args: dict[str, Any], ctx: ToolContext) -> ToolResultData:
        if missing := require(args, "name"):
            return self._error(missing)
        fields = _map_fields(args, _PROJECT_FIELDS, skip=("name",))
        return self._json(await backend.create_project(args["name"], **fields))


class UpdateProjectTool(TodoistTool):
    @property
    def definition(self) -> ToolDef:
        return ToolDef(
            name="updateProject",
            description="Rename or recolor a project.",
            parameters=(
                _PROJECT_ID,
                ToolParam(name="name", type="string", description="New name.", required=False),
                ToolParam(name="color", type="string", description="Todoist color name.", required=False),
                ToolParam(name="isFavorite", type="boolean", description="Pin as favorite.", required=False),
            ),
        )

    async def _run(self, backend: TaskBackend, args: dict[str, Any], ctx: ToolContext) -> ToolResultData:
        if missing := require(args, "projectId"):
            return self._error(missing)
        fields = _map_fields(args, _PROJECT_FIELDS, skip=("parentId",))
        if not fields:
            return self._error("Nothing to update: pass at least one field.")
        return self._json(await backend.update_project(args["projectId"], **fields))


class DeleteProjectTool(TodoistTool):
    @property
    def definition(self) -> ToolDef:
        return ToolDef(
            name="deleteProject",
            description="Delete a project and all of its tasks.",
            parameters=(_PROJECT_ID,),
        )

    async def _run(self, backend: TaskBackend, args: dict[str, Any], ctx: ToolContext) -> ToolResultData:
        if missing := require(args, "projectId"):
            return self._error(missing)
        await backend.delete_project(args["projectId"])
        return self._json({"deleted": args["projectId"]})


class CreateBatchTasksTool(TodoistTool):
    """Create several tasks; one failure does not stop the rest."""

    @property
    def definition(self) -> ToolDef:
        return ToolDef(
            name="createBatchTasks",
            description="Create several tasks at once. Each item takes the same fields as createTask.",
            parameters=(
                ToolParam(
                    name="tasks",
                    type="array",
                    description="Tasks to create.",
                    items={
                        "type": "object",
                        "properties": {
                            "content": {"type": "string"},
                            "description": {"type": "string"},
                            "projectId": {"type": "string"},
                            "dueString": {"type": "string"},
                            "priority": {"type": "integer"},
                        },
                        "required": ["content"],
                    },
                ),
            ),
        )

    async def _run(self, backend: TaskBackend, args: dict[str, Any], ctx: ToolContext) -> ToolResultData:
        items = args.get("tasks")
        if not isinstance(items, list) or not items:
            return self._error("'tasks' must be a non-empty list.")

        created: list[dict[str, Any]] = []
        failed: list[dict[str, Any]] = []
        for index, item in enumerate(items):
            if not isinstance(item, dict) or not item.get("content"):
                failed.append({"index": index, "error": "missing 'content'"})
                continue
            fields = _map_fields(item, _TASK_FIELDS, skip=("content",))
            try:
                task = await backend.create_task(item["content"], **fields)
            except IntegrationError as e:
                logger.warning("Batch item %d failed: %s", index, e)
                failed.append({"index": index, "content": item["content"], "error": str(e)})
                continue
            created.append(_summarise_task(task))

        summary = {"created": created, "failed": failed}
        display = f"Created {len(created)}/{len(items)} tasks"
        if not created:
            return ToolResultData(content=self._json(summary).content, is_error=True, display=display)
        return self._json(summary, display=display)


TODOIST_TOOLS: tuple[type[TodoistTool], ...] = (
    GetProjectAndTaskMapTool,
    GetProjectDetailsTool,
    GetTasksTool,
    GetTaskDetailsTool,
    CreateTaskTool,
    UpdateTaskTool,
    DeleteTaskTool,
    CompleteTaskTool,
    CreateProjectTool,
    UpdateProjectTool,
    DeleteProjectTool,
    CreateBatchTasksTool,
)
