"""
Conversation Segmenter

Groups a time-ordered stream of chat Items into conversations by
inactivity gap.

Algorithm (single left-to-right scan):
1. No open group -> the item opens one
2. Gap to the previous item in the open group > threshold -> close the
   group, the item opens a new one
3. Otherwise the item joins the open group
4. End of input closes the last open group

Each item is classified as it is appended; a group's tags are the
union of its per-item labels.
"""

from datetime import datetime, timedelta
from typing import Iterable, List, Optional, Sequence

from ..common.schemas import ConversationGroup, Item
from .classifier import classify
from .rule_parser import CategoryRule, DEFAULT_RULES

DEFAULT_GAP_THRESHOLD = timedelta(minutes=30)


class InvalidInputError(ValueError):
    """Input violates the segmenter's contract (ordering, timestamps, ids)"""
    pass


class ConversationSegmenter:
    """
    Incremental segmenter.

    States: no current group / accumulating a group. ``feed`` returns the
    group it closed (if any); ``finish`` flushes the open group.
    """

    def __init__(
        self,
        gap_threshold: timedelta = DEFAULT_GAP_THRESHOLD,
        rules: Sequence[CategoryRule] = DEFAULT_RULES,
    ):
        """
        Initialize segmenter.

        Args:
            gap_threshold: Largest gap that keeps consecutive items together
            rules: Ordered category rule table for per-item tags
        """
        if not isinstance(gap_threshold, timedelta):
            raise InvalidInputError(f"gap_threshold must be a timedelta, got {type(gap_threshold).__name__}")
        if gap_threshold < timedelta(0):
            raise InvalidInputError(f"gap_threshold must not be negative: {gap_threshold}")

        self._gap_threshold = gap_threshold
        self._rules = rules
        self._current: Optional[ConversationGroup] = None
        self._last_timestamp: Optional[datetime] = None
        self._seen_ids = set()

    @property
    def gap_threshold(self) -> timedelta:
        return self._gap_threshold

    @property
    def current(self) -> Optional[ConversationGroup]:
        return self._current

    def _validate(self, item: Item) -> None:
        if not isinstance(item.timestamp, datetime):
            raise InvalidInputError(f"Item {item.id!r} has no valid timestamp: {item.timestamp!r}")
        if item.id in self._seen_ids:
            raise InvalidInputError(f"Duplicate item id {item.id!r}")
        if self._last_timestamp is not None:
            try:
                out_of_order = item.timestamp < self._last_timestamp
            except TypeError:
                raise InvalidInputError(
                    f"Item {item.id!r} mixes naive and timezone-aware timestamps"
                )
            if out_of_order:
                raise InvalidInputError(
                    f"Items must be sorted by timestamp: {item.id!r} at {item.timestamp.isoformat()} "
                    f"precedes {self._last_timestamp.isoformat()}"
                )

    def feed(self, item: Item) -> Optional[ConversationGroup]:
        """
        Add the next item.

        Returns:
            The group closed by this item, or None
        """
        self._validate(item)

        tag = classify(item.text, self._rules)
        closed = None

        starts_new = (
            self._current is None
            or item.timestamp - self._last_timestamp > self._gap_threshold
        )
        if starts_new:
            if self._current is not None:
                self._current.close()
                closed = self._current
            self._current = ConversationGroup.start(item, tag)
        else:
            self._current.add_item(item, tag)

        self._last_timestamp = item.timestamp
        self._seen_ids.add(item.id)
        return closed

    def finish(self) -> Optional[ConversationGroup]:
        """Close and return the open group, if any"""
        group = self._current
        if group is not None:
            group.close()
        self._current = None
        return group


def segment(
    items: Iterable[Item],
    gap_threshold: timedelta = DEFAULT_GAP_THRESHOLD,
    rules: Sequence[CategoryRule] = DEFAULT_RULES,
) -> List[ConversationGroup]:
    """
    Segment items (sorted ascending by timestamp) into conversations.

    Args:
        items: Items in ascending timestamp order. Not re-sorted here.
        gap_threshold: Gap strictly greater than this starts a new group
        rules: Ordered category rule table

    Returns:
        Closed groups in order. Empty input gives an empty list.

    Raises:
        InvalidInputError: unsorted items, missing timestamps, duplicate ids
    """
    segmenter = ConversationSegmenter(gap_threshold=gap_threshold, rules=rules)
    groups: List[ConversationGroup] = []

    for item in items:
        closed = segmenter.feed(item)
        if closed is not None:
            groups.append(closed)

    last = segmenter.finish()
    if last is not None:
        groups.append(last)

    return groups


def aggregate(items: Sequence[Item], rules: Sequence[CategoryRule] = DEFAULT_RULES):
    """
    Post-hoc participants and tags for a closed group's items.

    Produces the same values as the incremental aggregation in
    ConversationGroup.add_item.

    Returns:
        (participants, tags) as first-seen-ordered lists without duplicates
    """
    participants: List[str] = []
    tags: List[str] = []
    for item in items:
        if item.author not in participants:
            participants.append(item.author)
        label = classify(item.text, rules)
        if label not in tags:
            tags.append(label)
    return participants, tags


def sort_items(items: Iterable[Item]) -> List[Item]:
    """Stable ascending sort by timestamp, as required before segment()"""
    try:
        return sorted(items, key=lambda item: item.timestamp)
    except TypeError as e:
        raise InvalidInputError(f"Items cannot be ordered by timestamp: {e}")
