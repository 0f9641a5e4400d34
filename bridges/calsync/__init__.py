"""
Calendar Agent - Google Calendar -> Notion + Discord

Polls Google Calendar, upserts events into a Notion database keyed by
event id, tags them by category and announces new and imminent events
on Discord.
"""

from .google_calendar import GoogleCalendarSource, build_calendar_service
from .sync import CalendarSync, SyncReport, build_event_properties

__all__ = [
    "GoogleCalendarSource",
    "build_calendar_service",
    "CalendarSync",
    "SyncReport",
    "build_event_properties",
]
