"""Google Calendar client implementing :class:`CalendarBackend`."""

from __future__ import annotations

from typing import Any
from urllib.parse import quote

import httpx

from concierge.integrations.base import GOOGLE_CALENDAR, RestClient


class GoogleCalendarClient(RestClient):
    """Thin async wrapper over the Google Calendar API (v3).

    Only one calendar is addressed per client, ``primary`` by default.
    """

    service = GOOGLE_CALENDAR
    BASE_URL = "https://www.googleapis.com/calendar/v3"

    def __init__(
        self,
        token: str,
        *,
        calendar_id: str = "primary",
        base_url: str = BASE_URL,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(token, base_url=base_url, timeout=timeout, transport=transport)
        self._events_path = f"/calendars/{quote(calendar_id, safe='')}/events"

    async def list_events(
        self,
        time_min: str,
        time_max: str,
        *,
        max_results: int | None = None,
        query: str | None = None,
    ) -> list[dict[str, Any]]:
        params = {
            "timeMin": time_min,
            "timeMax": time_max,
            "singleEvents": "true",
            "orderBy": "startTime",
            "maxResults": max_results,
            "q": query,
        }
        data = await self._request("GET", self._events_path, params=params)
        return (data or {}).get("items", [])

    async def create_event(self, body: dict[str, Any]) -> dict[str, Any]:
        return await self._request("POST", self._events_path, json=body)

    async def update_event(self, event_id: str, body: dict[str, Any]) -> dict[str, Any]:
        return await self._request("PATCH", f"{self._events_path}/{event_id}", json=body)

    async def delete_event(self, event_id: str) -> None:
        await self._request("DELETE", f"{self._events_path}/{event_id}")
