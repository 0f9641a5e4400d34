"""
Base Handler

Abstract base class for source-specific event handlers.
Each handler turns a raw source payload into one of the common types.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional


class BaseHandler(ABC):
    """
    Abstract base class for source handlers.

    Each handler must implement:
    - parse_event: Convert a raw payload to a common object (or None to ignore it)
    """

    def __init__(self, source_name: str):
        """
        Initialize handler.

        Args:
            source_name: Name of the source (e.g., "discord", "notion")
        """
        self.source_name = source_name

    @abstractmethod
    def parse_event(self, raw_data: Dict[str, Any]) -> Optional[Any]:
        """
        Parse raw event data.

        Args:
            raw_data: Raw payload from the source

        Returns:
            Parsed object or None if the payload should be ignored
        """
        pass

    def verify_signature(self, body: bytes, signature: str, timestamp: str = "") -> bool:
        """
        Verify a webhook signature.

        Sources that do not sign their payloads accept everything;
        override in subclasses that do.
        """
        return True

    def should_process(self, raw_data: Dict[str, Any]) -> bool:
        """Check if a raw payload is worth parsing. Override for source-specific filtering."""
        return bool(raw_data)
