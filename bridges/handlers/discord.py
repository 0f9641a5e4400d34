"""
Discord Handler

Converts Discord REST message objects to Items.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from ..common.schemas import Item
from .base import BaseHandler

logger = logging.getLogger("bridges.handlers.discord")

# Message types that carry user-authored content
# 0 = DEFAULT, 19 = REPLY, 20 = CHAT_INPUT_COMMAND, 21 = THREAD_STARTER_MESSAGE
CONTENT_MESSAGE_TYPES = {0, 19, 20, 21}


def parse_discord_timestamp(value: str) -> datetime:
    """Parse Discord's ISO-8601 timestamp into an aware datetime"""
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class DiscordHandler(BaseHandler):
    """
    Handler for Discord channel history.

    Processes:
    - user messages and replies (content, author, attachments)

    Ignores:
    - system messages (joins, pins, boosts)
    - records without id or timestamp
    """

    def __init__(self):
        super().__init__("discord")

    def parse_event(self, raw_data: Dict[str, Any]) -> Optional[Item]:
        """
        Parse a Discord message object into an Item.

        Args:
            raw_data: Message object from GET /channels/{id}/messages

        Returns:
            Item or None if the message should be ignored
        """
        if not self.should_process(raw_data):
            return None

        message_id = raw_data.get("id")
        raw_timestamp = raw_data.get("timestamp")
        if not message_id or not raw_timestamp:
            logger.warning("Skipping Discord message without id/timestamp: %r", message_id)
            return None

        try:
            timestamp = parse_discord_timestamp(raw_timestamp)
        except ValueError:
            logger.warning("Skipping Discord message %s with bad timestamp %r", message_id, raw_timestamp)
            return None

        author = raw_data.get("author") or {}

        return Item(
            id=str(message_id),
            author=author.get("username", "unknown"),
            text=raw_data.get("content", "") or "",
            timestamp=timestamp,
            attachments=tuple(
                a["url"] for a in raw_data.get("attachments", []) if a.get("url")
            ),
        )

    def should_process(self, raw_data: Dict[str, Any]) -> bool:
        """Skip system messages"""
        if not super().should_process(raw_data):
            return False
        return raw_data.get("type", 0) in CONTENT_MESSAGE_TYPES

    def is_pinned(self, raw_data: Dict[str, Any]) -> bool:
        return bool(raw_data.get("pinned"))

    def created_at(self, raw_data: Dict[str, Any]) -> Optional[datetime]:
        """Creation time of a raw message, or None if missing/unparseable"""
        raw_timestamp = raw_data.get("timestamp")
        if not raw_timestamp:
            return None
        try:
            return parse_discord_timestamp(raw_timestamp)
        except ValueError:
            return None
