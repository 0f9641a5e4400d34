"""
Bridges Common Module

Shared infrastructure for the archive, relay and calendar adapters.
"""

from .config import BridgesConfig, load_config
from .discord_client import DiscordClient, DiscordWebhookClient, DiscordAPIError
from .idempotency import IdempotencyStore, MemoryIdempotencyStore, JsonFileIdempotencyStore
from .notion_client import NotionClient, NotionAPIError
from .schemas import Item, ConversationGroup, CalendarEvent
from .throttle import Throttle

__all__ = [
    "BridgesConfig",
    "load_config",
    "DiscordClient",
    "DiscordWebhookClient",
    "DiscordAPIError",
    "IdempotencyStore",
    "MemoryIdempotencyStore",
    "JsonFileIdempotencyStore",
    "NotionClient",
    "NotionAPIError",
    "Item",
    "ConversationGroup",
    "CalendarEvent",
    "Throttle",
]
