"""
Group Sinks

Idempotent create-or-update of archived conversations in a Notion
database, keyed by the conversation's opening message id.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol

import httpx

from ..common.discord_client import DiscordAPIError, DiscordWebhookClient
from ..common.embeds import conversation_archived_embed
from ..common.idempotency import IdempotencyStore
from ..common.notion_client import (
    NotionClient,
    date_property,
    heading_block,
    multi_select_property,
    number_property,
    paragraph_block,
    rich_text_equals,
    rich_text_property,
    select_property,
    title_property,
)
from ..common.schemas import ConversationGroup, format_timestamp

logger = logging.getLogger("bridges.archive.sinks")

SOURCE_ID_PROPERTY = "Source ID"


@dataclass
class UpsertResult:
    """Outcome of one group upsert"""
    action: str  # "created" or "updated"
    page_id: str
    url: Optional[str] = None
    notified: bool = False

    @property
    def created(self) -> bool:
        return self.action == "created"


class GroupSink(Protocol):
    """Accepts closed conversation groups"""

    def upsert_group(self, group: ConversationGroup) -> UpsertResult:
        ...


def build_group_properties(group: ConversationGroup, channel_name: str) -> Dict[str, Any]:
    """Database properties for an archived conversation"""
    return {
        "Title": title_property(group.title),
        "Channel": select_property(channel_name),
        "Tags": multi_select_property(group.tags),
        "Participants": rich_text_property(", ".join(group.participants)),
        "Message Count": number_property(group.message_count),
        "Date Range": date_property(
            format_timestamp(group.started_at),
            format_timestamp(group.ended_at),
        ),
        SOURCE_ID_PROPERTY: rich_text_property(group.key),
    }


def build_group_blocks(group: ConversationGroup) -> List[Dict[str, Any]]:
    """Page body: heading plus one paragraph per message"""
    blocks = [heading_block("Conversation Export")]
    for item in group.items:
        blocks.append(paragraph_block(
            f"[{item.author}] {format_timestamp(item.timestamp)}: {item.text}"
        ))
    return blocks


class NotionGroupSink:
    """
    Archives conversations to a Notion database.

    - Existing page (same Source ID): properties updated, body left alone
    - New page: created with the full conversation body, then an optional
      Discord notice, sent at most once per conversation
    """

    def __init__(
        self,
        notion: NotionClient,
        database_id: str,
        channel_name: str,
        store: Optional[IdempotencyStore] = None,
        notifier: Optional[DiscordWebhookClient] = None,
        notification_ttl: Optional[float] = None,
    ):
        """
        Args:
            notion: Notion API client
            database_id: Chat archive database
            channel_name: Source channel, written to the Channel property
            store: Remembers which conversations were already announced
            notifier: Webhook for "conversation archived" notices
            notification_ttl: Seconds an announcement is remembered (None = store default)
        """
        if not database_id:
            raise ValueError("Notion chat archive database id is required")
        self._notion = notion
        self._database_id = database_id
        self._channel_name = channel_name
        self._store = store
        self._notifier = notifier
        self._notification_ttl = notification_ttl

    def find_existing(self, key: str) -> Optional[Dict[str, Any]]:
        pages = self._notion.query_database(
            self._database_id,
            filter=rich_text_equals(SOURCE_ID_PROPERTY, key),
        )
        return pages[0] if pages else None

    def upsert_group(self, group: ConversationGroup) -> UpsertResult:
        """
        Create or update the page for a closed group.

        Raises:
            ValueError: group is still open or empty
            NotionAPIError: Notion rejected the request
        """
        if not group.items or not group.is_closed:
            raise ValueError("Only closed, non-empty conversations can be archived")

        properties = build_group_properties(group, self._channel_name)
        existing = self.find_existing(group.key)

        if existing:
            page = self._notion.update_page(existing["id"], properties)
            return UpsertResult(action="updated", page_id=page["id"], url=page.get("url"))

        page = self._notion.create_page(
            self._database_id,
            properties,
            children=build_group_blocks(group),
        )
        result = UpsertResult(action="created", page_id=page["id"], url=page.get("url"))
        result.notified = self._notify(group, result)
        return result

    def _notify(self, group: ConversationGroup, result: UpsertResult) -> bool:
        if not self._notifier or not self._notifier.is_configured:
            return False
        key = f"conversation-{group.key}"
        if self._store is not None and self._store.seen(key):
            return False

        try:
            self._notifier.send(conversation_archived_embed(group, self._channel_name, result.url))
        except (DiscordAPIError, httpx.HTTPError) as e:
            logger.warning("Failed to announce conversation %s: %s", group.key, e)
            return False

        if self._store is not None:
            self._store.mark(key, ttl=self._notification_ttl)
        return True
