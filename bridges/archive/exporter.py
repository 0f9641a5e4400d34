"""
Chat Exporter

Export and archive pipeline for Discord channels.

Pipeline:
1. Page channel history back to the export window
2. Sort ascending and segment into conversations (per-item tags)
3. Render the Markdown export and write it to the export folder
4. Upsert each conversation to Notion (throttled)
5. Optionally delete archived messages from the channel
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence

import httpx

from ..common.config import ArchiveConfig
from ..common.discord_client import DiscordAPIError, DiscordClient, DiscordWebhookClient
from ..common.idempotency import IdempotencyStore
from ..common.notion_client import NotionAPIError, NotionClient
from ..common.schemas import ConversationGroup, Item, export_filename, render_export_markdown
from ..common.throttle import Throttle
from .janitor import clear_old_messages
from .rule_parser import CategoryRule, DEFAULT_RULES
from .segmenter import segment, sort_items
from .sinks import GroupSink, NotionGroupSink
from .sources import DiscordChannelSource, ItemSource

logger = logging.getLogger("bridges.archive.exporter")

# Channel types with message history: text, DM, voice, group DM,
# announcement, threads, stage
TEXT_CHANNEL_TYPES = {0, 1, 2, 3, 5, 10, 11, 12, 13}


def collect_items(source: ItemSource, since: datetime) -> List[Item]:
    """
    Read items newer than ``since`` from a paged source.

    Stops at an empty page or once a page reaches past ``since``.
    Items are de-duplicated by id and returned sorted ascending.
    """
    collected: Dict[str, Item] = {}
    cursor = None

    while True:
        page, next_cursor = source.fetch_page(cursor)

        for item in page:
            if item.timestamp >= since and item.id not in collected:
                collected[item.id] = item

        if next_cursor is None:
            break
        if page and page[0].timestamp < since:
            break
        cursor = next_cursor

    return sort_items(collected.values())


@dataclass
class ChannelExport:
    """Result of exporting one channel"""
    channel_id: str
    channel_name: str
    groups: List[ConversationGroup]
    markdown: str
    path: Optional[Path] = None

    @property
    def message_count(self) -> int:
        return sum(group.message_count for group in self.groups)


@dataclass
class ArchiveReport:
    """Per-channel outcome of export + archive"""
    channel_id: str
    channel_name: str = ""
    conversations: int = 0
    created: int = 0
    updated: int = 0
    failed: int = 0
    deleted: int = 0
    path: Optional[Path] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.failed == 0


class ChatExporter:
    """
    Exports Discord channels to Markdown and archives conversations to Notion.
    """

    def __init__(
        self,
        discord: DiscordClient,
        config: ArchiveConfig,
        notion: Optional[NotionClient] = None,
        database_id: str = "",
        rules: Sequence[CategoryRule] = DEFAULT_RULES,
        store: Optional[IdempotencyStore] = None,
        notifier: Optional[DiscordWebhookClient] = None,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
        sleep: Optional[Callable[[float], object]] = None,
    ):
        """
        Initialize exporter.

        Args:
            discord: Discord bot client (history + deletion)
            config: Archive settings (window, gap, delays, folder)
            notion: Notion client; None disables archiving to Notion
            database_id: Chat archive database id
            rules: Ordered category rule table
            store: Idempotency store for archive notices
            notifier: Webhook for archive notices
            clock: Current time source
            sleep: Sleep used by throttles (tests pass a no-op)
        """
        self._discord = discord
        self._config = config
        self._notion = notion
        self._database_id = database_id
        self._rules = rules
        self._store = store
        self._notifier = notifier
        self._clock = clock
        self._sleep = sleep

    def _throttle(self, interval: float) -> Throttle:
        if self._sleep is None:
            return Throttle(interval)
        return Throttle(interval, sleep=self._sleep)

    def make_sink(self, channel_name: str) -> GroupSink:
        return NotionGroupSink(
            self._notion,
            self._database_id,
            channel_name,
            store=self._store,
            notifier=self._notifier,
            notification_ttl=self._config.notification_ttl_days * 86400,
        )

    def export_channel(self, channel_id: str, channel_name: Optional[str] = None) -> ChannelExport:
        """
        Export the last ``export_days`` of a channel and write the Markdown file.

        Raises:
            DiscordAPIError: Discord rejected a request
            OSError: the export file could not be written
        """
        now = self._clock()
        if channel_name is None:
            channel_name = self._discord.get_channel(channel_id).get("name", channel_id)

        logger.info("Exporting messages from #%s", channel_name)

        source = DiscordChannelSource(self._discord, channel_id)
        items = collect_items(source, now - timedelta(days=self._config.export_days))
        groups = segment(items, gap_threshold=self._config.gap_threshold, rules=self._rules)
        markdown = render_export_markdown(channel_name, groups, exported_at=now)

        folder = Path(self._config.export_folder)
        folder.mkdir(parents=True, exist_ok=True)
        path = folder / export_filename(channel_name, now.date())
        path.write_text(markdown, encoding="utf-8")

        logger.info("Exported %d messages in %d conversations to %s", len(items), len(groups), path)

        return ChannelExport(
            channel_id=channel_id,
            channel_name=channel_name,
            groups=groups,
            markdown=markdown,
            path=path,
        )

    def archive_export(self, export: ChannelExport, report: Optional[ArchiveReport] = None) -> ArchiveReport:
        """Upsert every conversation of an export; failures are counted, not raised"""
        report = report or ArchiveReport(channel_id=export.channel_id, channel_name=export.channel_name)
        report.conversations = len(export.groups)

        if self._notion is None or not self._database_id:
            logger.info("Notion archive not configured, skipping upload for #%s", export.channel_name)
            return report

        sink = self.make_sink(export.channel_name)
        throttle = self._throttle(self._config.upload_delay)

        for group in export.groups:
            try:
                result = throttle(sink.upsert_group, group)
            except (NotionAPIError, httpx.HTTPError) as e:
                report.failed += 1
                logger.error("Failed to archive conversation %s from #%s: %s", group.key, export.channel_name, e)
                continue
            if result.created:
                report.created += 1
            else:
                report.updated += 1

        logger.info(
            "Uploaded %d conversations to Notion for #%s (%d created, %d updated, %d failed)",
            report.created + report.updated, export.channel_name,
            report.created, report.updated, report.failed,
        )
        return report

    def process_channel(self, channel_id: str) -> ArchiveReport:
        """Export, archive and (when enabled) clear one channel"""
        report = ArchiveReport(channel_id=channel_id)

        channel = self._discord.get_channel(channel_id)
        if channel.get("type") not in TEXT_CHANNEL_TYPES:
            report.error = "not a text channel"
            logger.warning("Skipping channel %s: not a text channel", channel_id)
            return report

        report.channel_name = channel.get("name", channel_id)
        export = self.export_channel(channel_id, channel_name=report.channel_name)
        report.path = export.path
        self.archive_export(export, report)

        if self._config.auto_clear and not report.ok:
            logger.warning(
                "Not clearing #%s: %d conversations failed to archive",
                report.channel_name, report.failed,
            )
        elif self._config.auto_clear:
            report.deleted = clear_old_messages(
                self._discord,
                channel_id,
                days=self._config.archive_after_days,
                throttle=self._throttle(self._config.delete_delay),
                now=self._clock(),
            )

        return report

    def run(self, channel_ids: Sequence[str]) -> List[ArchiveReport]:
        """Process all channels; one failing channel does not stop the rest"""
        logger.info("Starting export and archive for %d channels", len(channel_ids))
        if self._store is not None:
            purged = self._store.purge_expired()
            if purged:
                logger.info("Purged %d expired notification keys", purged)
        reports = []

        for channel_id in channel_ids:
            try:
                reports.append(self.process_channel(channel_id))
            except (DiscordAPIError, NotionAPIError, httpx.HTTPError, OSError) as e:
                logger.error("Error processing channel %s: %s", channel_id, e)
                reports.append(ArchiveReport(channel_id=channel_id, error=str(e)))

        logger.info("Export and archive complete")
        return reports
