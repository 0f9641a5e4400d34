"""
Notion Handler

Handles Notion webhook deliveries for the Discord relay.

Two payload shapes are accepted:
- automation payloads: {"page": {...}, "user": {...}, "type": ..., "changes": [...]}
- native webhook events: {"type": "page.content_updated", "entity": {...}, "authors": [...]}
"""

import hmac
import hashlib
import logging
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from .base import BaseHandler

logger = logging.getLogger("bridges.handlers.notion")


class NotionPage(BaseModel):
    """Page reference in a webhook payload"""
    id: str = ""
    title: str = "Untitled"
    url: str = ""


class NotionUser(BaseModel):
    """User who made the change"""
    id: str
    name: str = ""

    @property
    def display_name(self) -> str:
        return self.name or self.id


class NotionUpdate(BaseModel):
    """Normalized Notion change notification"""
    page: NotionPage
    user: NotionUser
    type: str
    changes: List[str] = Field(default_factory=list)

    @property
    def text(self) -> str:
        """Text used for category classification"""
        return "\n".join([self.page.title, *self.changes])


def _page_url(page_id: str) -> str:
    return f"https://www.notion.so/{page_id.replace('-', '')}"


class NotionHandler(BaseHandler):
    """
    Handler for Notion webhook events.

    Processes:
    - automation payloads carrying page/user/changes
    - native page.* / database.* events (entity + authors)

    Ignores:
    - subscription verification requests (see is_verification_request)
    """

    def __init__(self, signing_secret: str = ""):
        """
        Initialize Notion handler.

        Args:
            signing_secret: Secret for HMAC-SHA256 verification
        """
        super().__init__("notion")
        self._signing_secret = signing_secret

    @property
    def has_secret(self) -> bool:
        return bool(self._signing_secret)

    def is_verification_request(self, raw_data: Dict[str, Any]) -> bool:
        """Notion sends a one-off verification_token when a subscription is created"""
        return "verification_token" in raw_data and "type" not in raw_data

    def parse_event(self, raw_data: Dict[str, Any]) -> Optional[NotionUpdate]:
        """
        Parse a Notion webhook payload.

        Raises:
            ValueError: payload is malformed (includes pydantic.ValidationError)
        """
        if self.is_verification_request(raw_data):
            return None

        if "entity" in raw_data and "page" not in raw_data:
            return self._parse_native_event(raw_data)

        return NotionUpdate.model_validate(raw_data)

    def _parse_native_event(self, raw_data: Dict[str, Any]) -> NotionUpdate:
        """
        Map a native Notion webhook event onto NotionUpdate.

        Raises:
            ValueError: the event has no entity with an id
        """
        entity = raw_data.get("entity")
        if not isinstance(entity, dict) or not entity.get("id"):
            raise ValueError("Notion event has no entity id")
        entity_id = str(entity["id"])
        authors = raw_data.get("authors") or [{}]
        author = authors[0] if isinstance(authors, list) and isinstance(authors[0], dict) else {}
        data = raw_data.get("data")
        if not isinstance(data, dict):
            data = {}

        changes = [f"Updated property: {p}" for p in data.get("updated_properties") or []]

        return NotionUpdate.model_validate({
            "page": {
                "id": entity_id,
                "title": data.get("title") or f"{str(entity.get('type') or 'page').title()} {entity_id[:8]}",
                "url": _page_url(entity_id) if entity_id else "",
            },
            "user": {"id": author.get("id", "unknown"), "name": author.get("name", "")},
            "type": raw_data.get("type", ""),
            "changes": changes,
        })

    def verify_signature(self, body: bytes, signature: str, timestamp: str = "") -> bool:
        """
        Verify Notion webhook signature using HMAC-SHA256 over the raw body.

        Args:
            body: Raw request body
            signature: X-Notion-Signature header value, with or without "sha256=" prefix
            timestamp: Unused for Notion

        Returns:
            True if signature is valid
        """
        if not self._signing_secret:
            return True

        if not signature:
            return False

        if signature.startswith("sha256="):
            signature = signature[len("sha256="):]

        expected_sig = hmac.new(
            self._signing_secret.encode("utf-8"),
            body,
            hashlib.sha256
        ).hexdigest()

        return hmac.compare_digest(expected_sig, signature)
