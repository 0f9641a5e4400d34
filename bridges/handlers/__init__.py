"""
Source Handlers

Handlers convert source-specific payloads to common types.

Available Handlers:
- DiscordHandler: Discord message history -> Item
- NotionHandler: Notion webhook deliveries -> NotionUpdate
"""

from .base import BaseHandler
from .discord import DiscordHandler
from .notion import NotionHandler, NotionUpdate, NotionPage, NotionUser

__all__ = [
    "BaseHandler",
    "DiscordHandler",
    "NotionHandler",
    "NotionUpdate",
    "NotionPage",
    "NotionUser",
]
