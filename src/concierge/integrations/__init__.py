"""Clients for the external task and calendar services."""

from concierge.integrations.base import (
    GOOGLE_CALENDAR,
    TODOIST,
    CalendarBackend,
    CredentialStore,
    StaticCredentialStore,
    TaskBackend,
)
from concierge.integrations.google_calendar import GoogleCalendarClient
from concierge.integrations.todoist import TodoistClient

__all__ = [
    "GOOGLE_CALENDAR",
    "TODOIST",
    "CalendarBackend",
    "CredentialStore",
    "GoogleCalendarClient",
    "StaticCredentialStore",
    "TaskBackend",
    "TodoistClient",
]
