"""
Bridges Schemas

In-memory entities shared by the archive, relay and calendar adapters.
"""

from .conversation import (
    Item,
    ConversationGroup,
    make_title,
    format_timestamp,
    TITLE_MAX_CHARS,
    TITLE_SUFFIX,
)
from .calendar_event import CalendarEvent, parse_event_time
from .templates import render_export_markdown, render_conversation, export_filename

__all__ = [
    "Item",
    "ConversationGroup",
    "make_title",
    "format_timestamp",
    "TITLE_MAX_CHARS",
    "TITLE_SUFFIX",
    "CalendarEvent",
    "parse_event_time",
    "render_export_markdown",
    "render_conversation",
    "export_filename",
]
