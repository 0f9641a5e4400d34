"""
Archive Agent - Chat Export and Conversation Archive

Exports Discord channel history, groups it into conversations by
inactivity gap, tags each conversation by keyword rules and archives
it to a Notion database.

Key Components:
- classify: First-match-wins keyword classification
- segment / ConversationSegmenter: Inactivity-gap conversation grouping
- ChatExporter: Export -> Markdown -> Notion pipeline
- NotionGroupSink: Idempotent conversation upsert
- clear_old_messages: Throttled cleanup of archived messages
"""

from .classifier import classify, classify_all, UNCATEGORIZED
from .rule_parser import CategoryRule, DEFAULT_RULES, load_rules, parse_category_rules, rules_from_pairs
from .segmenter import (
    ConversationSegmenter,
    InvalidInputError,
    DEFAULT_GAP_THRESHOLD,
    aggregate,
    segment,
    sort_items,
)
from .sinks import NotionGroupSink, UpsertResult
from .sources import DiscordChannelSource
from .exporter import ChatExporter, ChannelExport, ArchiveReport, collect_items
from .janitor import clear_old_messages

__all__ = [
    "classify",
    "classify_all",
    "UNCATEGORIZED",
    "CategoryRule",
    "DEFAULT_RULES",
    "load_rules",
    "parse_category_rules",
    "rules_from_pairs",
    "ConversationSegmenter",
    "InvalidInputError",
    "DEFAULT_GAP_THRESHOLD",
    "aggregate",
    "segment",
    "sort_items",
    "NotionGroupSink",
    "UpsertResult",
    "DiscordChannelSource",
    "ChatExporter",
    "ChannelExport",
    "ArchiveReport",
    "collect_items",
    "clear_old_messages",
]
