"""
Calendar Sync

Google Calendar -> Notion database, with Discord notifications.

Each sync pass:
1. Lists events in [now, now + lookahead]
2. Upserts each event into Notion keyed by its Google event id
3. Announces newly created events (once per event)
4. Sends a reminder for events starting within the reminder window (once per event)

Which events were already announced is kept in an IdempotencyStore so a
restart does not repeat notifications.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional, Sequence

import httpx

from ..archive.classifier import classify
from ..archive.rule_parser import CategoryRule, DEFAULT_RULES
from ..common.config import CalendarConfig
from ..common.discord_client import DiscordAPIError, DiscordWebhookClient
from ..common.embeds import calendar_event_embed, error_message
from ..common.idempotency import IdempotencyStore, MemoryIdempotencyStore
from ..common.notion_client import (
    NotionAPIError,
    NotionClient,
    date_property,
    rich_text_equals,
    rich_text_property,
    select_property,
    title_property,
)
from ..common.schemas import CalendarEvent
from .google_calendar import GoogleCalendarSource

logger = logging.getLogger("bridges.calsync.sync")

EVENT_ID_PROPERTY = "Google Event ID"


def build_event_properties(event: CalendarEvent, category: str) -> Dict[str, Any]:
    """Database properties for a calendar event"""
    return {
        "Title": title_property(event.title),
        "Start": date_property(event.start_raw, event.end_raw or None),
        EVENT_ID_PROPERTY: rich_text_property(event.id),
        "Description": rich_text_property(event.description),
        "Location": rich_text_property(event.location),
        "Attendees": rich_text_property(", ".join(event.attendees)),
        "Category": select_property(category),
    }


@dataclass
class SyncReport:
    """Outcome of one sync pass"""
    events: int = 0
    created: int = 0
    updated: int = 0
    failed: int = 0
    notified: int = 0
    reminders: int = 0
    error: Optional[str] = None
    failed_ids: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.error is None and self.failed == 0


class CalendarSync:
    """
    Syncs calendar events into Notion and announces them on Discord.
    """

    def __init__(
        self,
        source: GoogleCalendarSource,
        notion: NotionClient,
        database_id: str,
        notifier: Optional[DiscordWebhookClient] = None,
        store: Optional[IdempotencyStore] = None,
        rules: Sequence[CategoryRule] = DEFAULT_RULES,
        config: Optional[CalendarConfig] = None,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        """
        Initialize calendar sync.

        Args:
            source: Google Calendar event source
            notion: Notion API client
            database_id: Calendar database id
            notifier: Discord webhook for announcements (optional)
            store: Announcement idempotency store (default: in-memory)
            rules: Ordered category rule table
            config: Windows and TTLs
            clock: Current time source
        """
        if not database_id:
            raise ValueError("Notion calendar database id is required")
        self._source = source
        self._notion = notion
        self._database_id = database_id
        self._notifier = notifier
        self._config = config or CalendarConfig()
        self._store = store if store is not None else MemoryIdempotencyStore()
        self._rules = rules
        self._clock = clock

    @property
    def _notification_ttl(self) -> float:
        return self._config.notification_ttl_days * 86400

    def sync_event(self, event: CalendarEvent, category: str) -> str:
        """
        Create or update the Notion page for an event.

        Returns:
            "created" or "updated"
        """
        properties = build_event_properties(event, category)
        existing = self._notion.query_database(
            self._database_id,
            filter=rich_text_equals(EVENT_ID_PROPERTY, event.id),
        )

        if existing:
            self._notion.update_page(existing[0]["id"], properties)
            return "updated"

        self._notion.create_page(self._database_id, properties)
        return "created"

    def _notify_once(self, key: str, event: CalendarEvent, action: str, category: str, now: datetime) -> bool:
        """Send a notification unless key was already announced. Marks the key only after sending."""
        if not self._notifier or not self._notifier.is_configured:
            return False
        if self._store.seen(key):
            return False

        self._notifier.send(calendar_event_embed(
            event,
            action,
            now=now,
            category=category,
            urgent_window_hours=self._config.urgent_window_hours,
        ))
        self._store.mark(key, ttl=self._notification_ttl)
        return True

    def upcoming(self, events: Sequence[CalendarEvent], now: datetime) -> List[CalendarEvent]:
        """Events starting after now and within the reminder window"""
        window = self._config.reminder_window_hours
        result = []
        for event in events:
            hours = event.hours_until(now)
            if hours is not None and 0 < hours <= window:
                result.append(event)
        return result

    def sync(self, now: Optional[datetime] = None) -> SyncReport:
        """Run one sync pass. Never raises; failures end up in the report and the log."""
        now = now or self._clock()
        report = SyncReport()

        logger.info("Starting calendar sync...")

        try:
            purged = self._store.purge_expired()
            if purged:
                logger.info("Purged %d expired notification keys", purged)

            events = self._source.list_events(now, now + timedelta(days=self._config.lookahead_days))
            report.events = len(events)
            logger.info("Found %d events to sync", len(events))

            categories = {event.id: classify(event.text, self._rules) for event in events}

            for event in events:
                category = categories[event.id]
                try:
                    action = self.sync_event(event, category)
                except (NotionAPIError, httpx.HTTPError) as e:
                    report.failed += 1
                    report.failed_ids.append(event.id)
                    logger.error("Error syncing event %s: %s", event.title, e)
                    continue

                logger.info("%s event: %s", action.capitalize(), event.title)
                if action == "updated":
                    report.updated += 1
                    continue

                report.created += 1
                try:
                    if self._notify_once(f"event-{event.id}", event, "created", category, now):
                        report.notified += 1
                except (DiscordAPIError, httpx.HTTPError) as e:
                    logger.error("Error announcing event %s: %s", event.title, e)

            for event in self.upcoming(events, now):
                try:
                    if self._notify_once(f"reminder-{event.id}", event, "reminder", categories[event.id], now):
                        report.reminders += 1
                except (DiscordAPIError, httpx.HTTPError) as e:
                    logger.error("Error sending reminder for %s: %s", event.title, e)

            logger.info(
                "Calendar sync completed (%d created, %d updated, %d failed)",
                report.created, report.updated, report.failed,
            )
        except Exception as e:
            report.error = str(e)
            logger.exception("Calendar sync error")
            self._report_error()

        return report

    def _report_error(self) -> None:
        if not self._notifier or not self._notifier.is_configured:
            return
        try:
            self._notifier.send(error_message("Calendar sync error occurred. Check logs for details."))
        except (DiscordAPIError, httpx.HTTPError) as e:
            logger.error("Failed to report sync error to Discord: %s", e)
