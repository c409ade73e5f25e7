"""Todoist REST client implementing :class:`TaskBackend`."""

from __future__ import annotations

from typing import Any

import httpx

from concierge.integrations.base import TODOIST, RestClient


class TodoistClient(RestClient):
    """Thin async wrapper over the Todoist REST API (v2)."""

    service = TODOIST
    BASE_URL = "https://api.todoist.com/rest/v2"

    def __init__(
        self,
        token: str,
        *,
        base_url: str = BASE_URL,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(token, base_url=base_url, timeout=timeout, transport=transport)

    # -- Projects ---------------------------------------------------------

    async def list_projects(self) -> list[dict[str, Any]]:
        return await self._request("GET", "/projects") or []

    async def get_project(self, project_id: str) -> dict[str, Any]:
        return await self._request("GET", f"/projects/{project_id}")

    async def create_project(self, name: str, **fields: Any) -> dict[str, Any]:
        return await self._request("POST", "/projects", json={"name": name, **_drop_none(fields)})

    async def update_project(self, project_id: str, **fields: Any) -> dict[str, Any]:
        return await self._request("POST", f"/projects/{project_id}", json=_drop_none(fields))

    async def delete_project(self, project_id: str) -> None:
        await self._request("DELETE", f"/projects/{project_id}")

    # -- Tasks ------------------------------------------------------------

    async def list_tasks(
        self, project_id: str | None = None, filter: str | None = None,
    ) -> list[dict[str, Any]]:
        params = {"project_id": project_id, "filter": filter}
        return await self._request("GET", "/tasks", params=params) or []

    async def get_task(self, task_id: str) -> dict[str, Any]:
        return await self._request("GET", f"/tasks/{task_id}")

    async def create_task(self, content: str, **fields: Any) -> dict[str, Any]:
        return await self._request("POST", "/tasks", json={"content": content, **_drop_none(fields)})

    async def update_task(self, task_id: str, **fields: Any) -> dict[str, Any]:
        return await self._request("POST", f"/tasks/{task_id}", json=_drop_none(fields))

    async def close_task(self, task_id: str) -> None:
        await self._request("POST", f"/tasks/{task_id}/close")

    async def delete_task(self, task_id: str) -> None:
        await self._request("DELETE", f"/tasks/{task_id}")


def _drop_none(fields: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in fields.items() if v is not None}
