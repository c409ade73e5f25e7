"""Calendar tools backed by a :class:`CalendarBackend` (Google Calendar)."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from concierge.integrations.base import CalendarBackend
from concierge.tools.base import BackendTool, require
from concierge.types.tools import ToolContext, ToolDef, ToolParam, ToolResultData

DEFAULT_LIST_DAYS = 7
DEFAULT_SEARCH_DAYS = 30
DEFAULT_EVENT_MINUTES = 60

_EVENT_ID = ToolParam(name="eventId", type="string", description="Calendar event id.")
_TIME_MIN = ToolParam(
    name="timeMin",
    type="string",
    description="ISO-8601 start of the window. Defaults to now.",
    required=False,
)
_TIME_MAX = ToolParam(name="timeMax", type="string", description="ISO-8601 end of the window.", required=False)


def _user_zone(ctx: ToolContext) -> ZoneInfo | timezone:
    try:
        return ZoneInfo(ctx.request.time.timezone)
    except (ZoneInfoNotFoundError, ValueError):
        return timezone.utc


def _now(ctx: ToolContext) -> datetime:
    current = ctx.request.time.current_time
    if current.tzinfo is None:
        current = current.replace(tzinfo=_user_zone(ctx))
    return current


def _parse_time(value: str, ctx: ToolContext) -> datetime:
    """Parse ISO-8601; naive values are taken in the user's timezone."""
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=_user_zone(ctx))
    return parsed


def _window(args: dict[str, Any], ctx: ToolContext, days: int) -> tuple[str, str]:
    start = _parse_time(args["timeMin"], ctx) if args.get("timeMin") else _now(ctx)
    end = _parse_time(args["timeMax"], ctx) if args.get("timeMax") else start + timedelta(days=days)
    return start.isoformat(), end.isoformat()


def _summarise_event(event: dict[str, Any]) -> dict[str, Any]:
    start = event.get("start") or {}
    end = event.get("end") or {}
    return {
        "id": event.get("id"),
        "summary": event.get("summary"),
        "start": start.get("dateTime") or start.get("date"),
        "end": end.get("dateTime") or end.get("date"),
        "location": event.get("location"),
    }


class CalendarTool(BackendTool[CalendarBackend]):
    service_label = "Google Calendar"

    def _event_body(self, args: dict[str, Any], ctx: ToolContext) -> dict[str, Any]:
        tz_name = ctx.request.time.timezone
        body: dict[str, Any] = {}
        for key in ("summary", "description", "location"):
            if args.get(key) is not None:
                body[key] = args[key]
        if args.get("startTime"):
            start = _parse_time(args["startTime"], ctx)
            body["start"] = {"dateTime": start.isoformat(), "timeZone": tz_name}
            if not args.get("endTime"):
                end = start + timedelta(minutes=DEFAULT_EVENT_MINUTES)
                body["end"] = {"dateTime": end.isoformat(), "timeZone": tz_name}
        if args.get("endTime"):
            end = _parse_time(args["endTime"], ctx)
            body["end"] = {"dateTime": end.isoformat(), "timeZone": tz_name}
        if args.get("attendees"):
            body["attendees"] = [{"email": email} for email in args["attendees"]]
        return body


class ListCalendarEventsTool(CalendarTool):
    @property
    def definition(self) -> ToolDef:
        return ToolDef(
            name="listCalendarEvents",
            description=f"List events in a time window (default: the next {DEFAULT_LIST_DAYS} days).",
            parameters=(
                _TIME_MIN,
                _TIME_MAX,
                ToolParam(name="maxResults", type="integer", description="Upper bound on events.", required=False),
            ),
        )

    async def _run(self, backend: CalendarBackend, args: dict[str, Any], ctx: ToolContext) -> ToolResultData:
        try:
            time_min, time_max = _window(args, ctx, DEFAULT_LIST_DAYS)
        except ValueError as e:
            return self._error(f"Invalid time: {e}")
        events = await backend.list_events(time_min, time_max, max_results=args.get("maxResults"))
        return self._json([_summarise_event(e) for e in events], display=f"{len(events)} events")


class SearchCalendarEventsTool(CalendarTool):
    @property
    def definition(self) -> ToolDef:
        return ToolDef(
            name="searchCalendarEvents",
            description=f"Free-text search over events (default window: the next {DEFAULT_SEARCH_DAYS} days).",
            parameters=(
                ToolParam(name="query", type="string", description="Text to search for."),
                _TIME_MIN,
                _TIME_MAX,
            ),
        )

    async def _run(self, backend: CalendarBackend, args: dict[str, Any], ctx: ToolContext) -> ToolResultData:
        if missing := require(args, "query"):
            return self._error(missing)
        try:
            time_min, time_max = _window(args, ctx, DEFAULT_SEARCH_DAYS)
        except ValueError as e:
            return self._error(f"Invalid time: {e}")
        events = await backend.list_events(time_min, time_max, query=args["query"])
        return self._json([_summarise_event(e) for e in events], display=f"{len(events)} matches")


class CreateCalendarEventTool(CalendarTool):
    @property
    def definition(self) -> ToolDef:
        return ToolDef(
            name="createCalendarEvent",
            description=(
                "Create an event. Times are ISO-8601; times without an offset are "
                f"in the user's timezone. Default length is {DEFAULT_EVENT_MINUTES} minutes."
            ),
            parameters=(
                ToolParam(name="summary", type="string", description="Event title."),
                ToolParam(name="startTime", type="string", description="ISO-8601 start."),
                ToolParam(name="endTime", type="string", description="ISO-8601 end.", required=False),
                ToolParam(name="description", type="string", description="Notes.", required=False),
                ToolParam(name="location", type="string", description="Where.", required=False),
                ToolParam(name="attendees", type="array", description="Attendee emails.", required=False),
            ),
        )

    async def _run(self, backend: CalendarBackend, args: dict[str, Any], ctx: ToolContext) -> ToolResultData:
        if missing := require(args, "summary", "startTime"):
            return self._error(missing)
        try:
            body = self._event_body(args, ctx)
        except ValueError as e:
            return self._error(f"Invalid time: {e}")
        event = await backend.create_event(body)
        return self._json(_summarise_event(event), display=f"Created event {event.get('id')}")


class UpdateCalendarEventTool(CalendarTool):
    @property
    def definition(self) -> ToolDef:
        return ToolDef(
            name="updateCalendarEvent",
            description="Change fields of an existing event. Only given fields change.",
            parameters=(
                _EVENT_ID,
                ToolParam(name="summary", type="string", description="New title.", required=False),
                ToolParam(name="startTime", type="string", description="New ISO-8601 start.", required=False),
                ToolParam(name="endTime", type="string", description="New ISO-8601 end.", required=False),
                ToolParam(name="description", type="string", description="Notes.", required=False),
                ToolParam(name="location", type="string", description="Where.", required=False),
            ),
        )

    async def _run(self, backend: CalendarBackend, args: dict[str, Any], ctx: ToolContext) -> ToolResultData:
        if missing := require(args, "eventId"):
            return self._error(missing)
        try:
            body = self._event_body(args, ctx)
        except ValueError as e:
            return self._error(f"Invalid time: {e}")
        if not body:
            return self._error("Nothing to update: pass at least one field.")
        event = await backend.update_event(args["eventId"], body)
        return self._json(_summarise_event(event))


class DeleteCalendarEventTool(CalendarTool):
    @property
    def definition(self) -> ToolDef:
        return ToolDef(name="deleteCalendarEvent", description="Delete an event.", parameters=(_EVENT_ID,))

    async def _run(self, backend: CalendarBackend, args: dict[str, Any], ctx: ToolContext) -> ToolResultData:
        if missing := require(args, "eventId"):
            return self._error(missing)
        await backend.delete_event(args["eventId"])
        return self._json({"deleted": args["eventId"]})


CALENDAR_TOOLS: tuple[type[CalendarTool], ...] = (
    ListCalendarEventsTool,
    SearchCalendarEventsTool,
    CreateCalendarEventTool,
    UpdateCalendarEventTool,
    DeleteCalendarEventTool,
)
