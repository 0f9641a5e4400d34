"""
Conversation Schemas

Item is one unit of chat communication; ConversationGroup is a contiguous,
time-bounded run of Items that the segmenter treats as one conversation.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional, Tuple


# Title policy for a conversation: first 50 characters of the opening
# message, always followed by the ellipsis marker.
TITLE_MAX_CHARS = 50
TITLE_SUFFIX = "..."


def make_title(text: Optional[str]) -> str:
    """Derive a conversation title from its first message text"""
    return (text or "")[:TITLE_MAX_CHARS] + TITLE_SUFFIX


def format_timestamp(value: datetime) -> str:
    """Render a timestamp as UTC ISO-8601 with millisecond precision and a Z suffix.

    Naive datetimes are taken to be UTC.
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    utc = value.astimezone(timezone.utc)
    return utc.isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass(frozen=True)
class Item:
    """
    One unit of communication from a source stream.

    The timestamp is only used for ordering and gap computation.
    """
    id: str
    author: str
    text: str
    timestamp: datetime
    attachments: Tuple[str, ...] = ()

    def __post_init__(self):
        # Accept any sequence for attachments but store it immutably
        if not isinstance(self.attachments, tuple):
            object.__setattr__(self, "attachments", tuple(self.attachments or ()))


@dataclass
class ConversationGroup:
    """
    A contiguous run of Items assigned to the same conversation.

    Owned by the segmenter while open; read-only once closed.
    participants and tags keep first-seen order and never hold duplicates.
    """
    title: str
    items: List[Item] = field(default_factory=list)
    participants: List[str] = field(default_factory=list)
    tags: List[str] = field(default_factory=list)
    _closed: bool = field(default=False, repr=False, compare=False)

    @classmethod
    def start(cls, first: Item, tag: str) -> "ConversationGroup":
        """Open a new group with its first item"""
        group = cls(title=make_title(first.text))
        group.add_item(first, tag)
        return group

    def add_item(self, item: Item, tag: str) -> None:
        """Append an item and fold its author and tag into the group sets"""
        if self._closed:
            raise RuntimeError(f"Conversation {self.key} is closed")
        self.items.append(item)
        if item.author not in self.participants:
            self.participants.append(item.author)
        if tag not in self.tags:
            self.tags.append(tag)

    def close(self) -> None:
        self._closed = True

    @property
    def is_closed(self) -> bool:
        return self._closed

    @property
    def key(self) -> str:
        """Stable external identifier: the id of the opening item"""
        return self.items[0].id if self.items else ""

    @property
    def started_at(self) -> datetime:
        return self.items[0].timestamp

    @property
    def ended_at(self) -> datetime:
        return self.items[-1].timestamp

    @property
    def message_count(self) -> int:
        return len(self.items)
