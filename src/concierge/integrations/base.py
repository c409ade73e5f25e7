"""Protocols for the external task, calendar and credential collaborators."""

from __future__ import annotations

import logging
from typing import Any, Protocol, runtime_checkable

import httpx

from concierge.errors import IntegrationError

logger = logging.getLogger(__name__)

TODOIST = "todoist"
GOOGLE_CALENDAR = "google_calendar"


@runtime_checkable
class CredentialStore(Protocol):
    """Source of per-user OAuth access tokens."""

    async def get_token(self, identity: str, service: str) -> str | None:
        """Return an access token, or None when the user has not connected *service*."""
        ...


class StaticCredentialStore:
    """Same tokens for every identity. Suits the single-user CLI and tests."""

    def __init__(self, tokens: dict[str, str | None] | None = None) -> None:
        self._tokens = {k: v for k, v in (tokens or {}).items() if v}

    async def get_token(self, identity: str, service: str) -> str | None:
        return self._tokens.get(service)


@runtime_checkable
class TaskBackend(Protocol):
    """Operations the task tools need from a task provider."""

    async def list_projects(self) -> list[dict[str, Any]]: ...

    async def get_project(self, project_id: str) -> dict[str, Any]: ...

    async def create_project(self, name: str, **fields: Any) -> dict[str, Any]: ...

    async def update_project(self, project_id: str, **fields: Any) -> dict[str, Any]: ...

    async def delete_project(self, project_id: str) -> None: ...

    async def list_tasks(
        self, project_id: str | None = None, filter: str | None = None,
    ) -> list[dict[str, Any]]: ...

    async def get_task(self, task_id: str) -> dict[str, Any]: ...

    async def create_task(self, content: str, **fields: Any) -> dict[str, Any]: ...

    async def update_task(self, task_id: str, **fields: Any) -> dict[str, Any]: ...

    async def close_task(self, task_id: str) -> None: ...

    async def delete_task(self, task_id: str) -> None: ...


@runtime_checkable
class CalendarBackend(Protocol):
    """Operations the calendar tools need from a calendar provider."""

    async def list_events(
        self,
        time_min: str,
        time_max: str,
        *,
        max_results: int | None = None,
        query: str | None = None,
    ) -> list[dict[str, Any]]: ...

    async def create_event(self, body: dict[str, Any]) -> dict[str, Any]: ...

    async def update_event(self, event_id: str, body: dict[str, Any]) -> dict[str, Any]: ...

    async def delete_event(self, event_id: str) -> None: ...


class RestClient:
    """Minimal JSON-over-HTTPS client with bearer auth.

    A fresh ``httpx.AsyncClient`` is opened per request; *transport* lets
    tests plug in ``httpx.MockTransport``.
    """

    service = "rest"

    def __init__(
        self,
        token: str,
        *,
        base_url: str,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._token = token
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
    ) -> Any:
        clean_params = {k: v for k, v in (params or {}).items() if v is not None}
        try:
            async with httpx.AsyncClient(
                base_url=self._base_url,
                headers={"Authorization": f"Bearer {self._token}"},
                timeout=self._timeout,
                transport=self._transport,
            ) as client:
                resp = await client.request(method, path, params=clean_params or None, json=json)
        except httpx.HTTPError as exc:
            raise IntegrationError(self.service, None, f"{type(exc).__name__}: {exc}") from exc

        if resp.status_code >= 400:
            logger.warning(
                "%s %s %s failed with %d", self.service, method, path, resp.status_code,
            )
            raise IntegrationError(self.service, resp.status_code, resp.text[:300] or resp.reason_phrase)

        if resp.status_code == 204 or not resp.content:
            return None
        return resp.json()
