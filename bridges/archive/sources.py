"""
Item Sources

Paged item sources for the export pipeline.

Contract: fetch_page(cursor) -> (items, next_cursor). Items within a page
are in ascending timestamp order; pages walk backwards in time; a
next_cursor of None means there is nothing more to read.
"""

from typing import List, Optional, Protocol, Tuple

from ..common.discord_client import DiscordClient, MAX_MESSAGES_PER_PAGE
from ..common.schemas import Item
from ..handlers.discord import DiscordHandler


class ItemSource(Protocol):
    """Anything that can page through Items"""

    def fetch_page(self, cursor: Optional[str] = None) -> Tuple[List[Item], Optional[str]]:
        ...


class DiscordChannelSource:
    """Pages a Discord channel's history through the bot REST API"""

    def __init__(
        self,
        client: DiscordClient,
        channel_id: str,
        handler: Optional[DiscordHandler] = None,
        page_size: int = MAX_MESSAGES_PER_PAGE,
    ):
        self._client = client
        self._channel_id = channel_id
        self._handler = handler or DiscordHandler()
        self._page_size = page_size

    @property
    def channel_id(self) -> str:
        return self._channel_id

    def fetch_page(self, cursor: Optional[str] = None) -> Tuple[List[Item], Optional[str]]:
        """
        Fetch the page of messages older than cursor.

        Returns:
            (items ascending by timestamp, id of the oldest raw message or None when the page was empty)
        """
        raw_messages = self._client.fetch_messages(
            self._channel_id,
            limit=self._page_size,
            before=cursor,
        )
        if not raw_messages:
            return [], None

        items = [
            item for item in (self._handler.parse_event(raw) for raw in raw_messages)
            if item is not None
        ]
        items.reverse()  # Discord returns newest first

        return items, str(raw_messages[-1]["id"])
