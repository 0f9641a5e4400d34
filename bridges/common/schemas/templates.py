"""
Export Templates

Renders segmented conversations to the Markdown export document.
The export file is the local, human-readable copy of what gets archived.
"""

from datetime import date, datetime, timezone
from typing import Iterable, List, Optional, TYPE_CHECKING

from .conversation import format_timestamp

if TYPE_CHECKING:
    from .conversation import ConversationGroup, Item


EXPORT_HEADER_TEMPLATE = """# Discord Export: {channel}

**Export Date:** {exported_at}
**Channel:** {channel}
**Message Count:** {message_count}

---

"""

CONVERSATION_HEADER_TEMPLATE = """## Conversation: {title}
**Tags:** {tags}
**Participants:** {participants}

"""

SEPARATOR = "---\n\n"


def _format_attachments(attachments: Iterable[str]) -> str:
    """Format attachment URLs as a bullet list"""
    urls = list(attachments)
    if not urls:
        return ""
    lines = ["**Attachments:**"]
    lines.extend(f"- {url}" for url in urls)
    return "\n".join(lines) + "\n\n"


def _format_message(item: "Item") -> str:
    """Format one message with its author line, body and attachments"""
    text = f"### [{item.author}] {format_timestamp(item.timestamp)}\n"
    text += f"{item.text}\n\n"
    text += _format_attachments(item.attachments)
    return text


def render_conversation(group: "ConversationGroup") -> str:
    """Render a single conversation section"""
    text = CONVERSATION_HEADER_TEMPLATE.format(
        title=group.title,
        tags=", ".join(group.tags),
        participants=", ".join(group.participants),
    )
    for item in group.items:
        text += _format_message(item)
    return text + SEPARATOR


def render_export_markdown(
    channel_name: str,
    groups: List["ConversationGroup"],
    exported_at: Optional[datetime] = None,
) -> str:
    """
    Render a channel export to Markdown.

    Args:
        channel_name: Display name of the exported channel
        groups: Segmented conversations in chronological order
        exported_at: Export time (default: now, UTC)

    Returns:
        Markdown document
    """
    exported_at = exported_at or datetime.now(timezone.utc)
    message_count = sum(group.message_count for group in groups)

    text = EXPORT_HEADER_TEMPLATE.format(
        channel=channel_name,
        exported_at=format_timestamp(exported_at),
        message_count=message_count,
    )
    for group in groups:
        text += render_conversation(group)
    return text


def export_filename(channel_name: str, day: Optional[date] = None) -> str:
    """File name for a channel export: <channel>_<YYYY-MM-DD>.md"""
    day = day or datetime.now(timezone.utc).date()
    return f"{channel_name}_{day.isoformat()}.md"
