"""
Discord Embed Builders

Webhook payloads for Notion updates, calendar events and archived
conversations. Builders are pure: they return the JSON body to post.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional, TYPE_CHECKING

from .schemas import format_timestamp

if TYPE_CHECKING:
    from ..handlers.notion import NotionUpdate
    from .schemas import CalendarEvent, ConversationGroup

# Embed colors
COLOR_INFO = 0x0077FF
COLOR_CREATED = 0x00FF00
COLOR_URGENT = 0xFF0000

# Discord field value limit
MAX_FIELD_CHARS = 1024


def _field(name: str, value: str, inline: bool = False) -> Dict[str, Any]:
    return {"name": name, "value": value[:MAX_FIELD_CHARS] or "-", "inline": inline}


def calculate_duration(start: Optional[datetime], end: Optional[datetime]) -> str:
    """Human readable duration: "2h 30m" or "45m" """
    if start is None or end is None:
        return "0m"
    total_minutes = int((end - start).total_seconds() // 60)
    hours, minutes = divmod(max(total_minutes, 0), 60)
    if hours > 0:
        return f"{hours}h {minutes}m"
    return f"{minutes}m"


def notion_update_embed(
    update: "NotionUpdate",
    category: str,
    user_mapping: Optional[Dict[str, str]] = None,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """
    Build the relay message for a Notion update.

    Mapped users are mentioned in the message content.
    """
    user_mapping = user_mapping or {}
    now = now or datetime.now(timezone.utc)

    fields = [
        _field("Page", f"[{update.page.title}]({update.page.url})", inline=True),
        _field("Updated By", update.user.display_name, inline=True),
        _field("Type", update.type, inline=True),
        _field("Category", category, inline=True),
    ]
    if update.changes:
        fields.append(_field("Changes", "\n".join(update.changes)))

    payload: Dict[str, Any] = {
        "embeds": [{
            "title": "📝 Notion Update",
            "color": COLOR_INFO,
            "fields": fields,
            "timestamp": format_timestamp(now),
        }]
    }

    mention = user_mapping.get(update.user.id)
    if mention:
        payload["content"] = f"{mention} - New Notion update!"

    return payload


_CALENDAR_TITLES = {
    "created": "📅 Calendar Event Added",
    "updated": "📅 Calendar Event Updated",
    "reminder": "⏰ Calendar Event Reminder",
}


def calendar_event_embed(
    event: "CalendarEvent",
    action: str,
    now: Optional[datetime] = None,
    category: Optional[str] = None,
    urgent_window_hours: float = 24,
) -> Dict[str, Any]:
    """
    Build a calendar notification.

    Events starting within ``urgent_window_hours`` are marked urgent:
    red color and an @here reminder in the content.
    """
    now = now or datetime.now(timezone.utc)
    when = f"<t:{int(event.start.timestamp())}:F>" if event.start else event.start_raw

    fields = [
        _field("When", when, inline=True),
        _field("Duration", calculate_duration(event.start, event.end), inline=True),
    ]
    if event.location:
        fields.append(_field("Location", event.location, inline=True))
    if category:
        fields.append(_field("Category", category, inline=True))
    if event.description:
        fields.append(_field("Description", event.description))

    embed: Dict[str, Any] = {
        "title": _CALENDAR_TITLES.get(action, _CALENDAR_TITLES["updated"]),
        "description": event.title,
        "color": COLOR_CREATED if action == "created" else COLOR_INFO,
        "fields": fields,
        "timestamp": format_timestamp(now),
    }
    if event.html_link:
        embed["url"] = event.html_link

    payload: Dict[str, Any] = {"embeds": [embed]}

    hours_until = event.hours_until(now)
    if hours_until is not None and 0 < hours_until < urgent_window_hours:
        payload["content"] = f"@here ⏰ Reminder: Event starting in {round(hours_until)} hours!"
        embed["color"] = COLOR_URGENT

    return payload


def conversation_archived_embed(
    group: "ConversationGroup",
    channel_name: str,
    page_url: Optional[str] = None,
) -> Dict[str, Any]:
    """Notice posted when a new conversation is archived to Notion"""
    embed: Dict[str, Any] = {
        "title": "🗄️ Conversation Archived",
        "description": group.title,
        "color": COLOR_INFO,
        "fields": [
            _field("Channel", f"#{channel_name}", inline=True),
            _field("Messages", str(group.message_count), inline=True),
            _field("Tags", ", ".join(group.tags), inline=True),
            _field("Participants", ", ".join(group.participants)),
        ],
        "timestamp": format_timestamp(group.ended_at),
    }
    if page_url:
        embed["url"] = page_url
    return {"embeds": [embed]}


def error_message(text: str) -> Dict[str, Any]:
    return {"content": f"❌ {text}"}
