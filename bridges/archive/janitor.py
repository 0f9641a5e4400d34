"""
Channel Janitor

Deletes archived (old, unpinned) messages from a Discord channel.
Deletions go one at a time through a throttle; a failed deletion is
logged and skipped.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

import httpx

from ..common.discord_client import DiscordAPIError, DiscordClient
from ..common.throttle import Throttle
from ..handlers.discord import DiscordHandler

logger = logging.getLogger("bridges.archive.janitor")


def clear_old_messages(
    client: DiscordClient,
    channel_id: str,
    days: int = 7,
    throttle: Optional[Throttle] = None,
    now: Optional[datetime] = None,
    handler: Optional[DiscordHandler] = None,
) -> int:
    """
    Delete unpinned messages older than ``days``.

    Args:
        client: Discord bot client
        channel_id: Channel to clean
        days: Age cutoff in days
        throttle: Gate between deletions (default: 1 per second)
        now: Reference time (default: now, UTC)
        handler: Message parsing helper

    Returns:
        Number of messages deleted
    """
    throttle = throttle or Throttle(1.0)
    handler = handler or DiscordHandler()
    now = now or datetime.now(timezone.utc)
    cutoff = now - timedelta(days=days)

    logger.info("Clearing messages older than %d days from channel %s", days, channel_id)

    deleted = 0
    last_id = None

    while True:
        messages = client.fetch_messages(channel_id, before=last_id)
        if not messages:
            break

        for raw in messages:
            created_at = handler.created_at(raw)
            if created_at is None or created_at >= cutoff or handler.is_pinned(raw):
                continue
            try:
                throttle(client.delete_message, channel_id, raw["id"])
                deleted += 1
            except (DiscordAPIError, httpx.HTTPError) as e:
                logger.error("Failed to delete message %s: %s", raw.get("id"), e)

        last_id = messages[-1]["id"]

    logger.info("Deleted %d old messages from channel %s", deleted, channel_id)
    return deleted
