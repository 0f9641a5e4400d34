"""
Calendar Runner

CLI entry point for the Google Calendar -> Notion/Discord sync.

Commands:
- run: one sync pass
- schedule: sync every N minutes (first pass immediately)
"""

import argparse
import logging
import signal
import sys
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from apscheduler.schedulers.blocking import BlockingScheduler
from apscheduler.triggers.interval import IntervalTrigger

from ..archive.rule_parser import load_rules
from ..common.config import BridgesConfig, load_config, ensure_directories
from ..common.discord_client import DiscordWebhookClient
from ..common.idempotency import JsonFileIdempotencyStore
from ..common.logs import configure_logging
from ..common.notion_client import NotionClient
from .google_calendar import GoogleCalendarSource, build_calendar_service
from .sync import CalendarSync, SyncReport

logger = logging.getLogger("bridges.calsync.runner")

def build_sync(config: BridgesConfig) -> Tuple[CalendarSync, NotionClient]:
    """Wire up a CalendarSync from config. The caller closes the Notion client."""
    service = build_calendar_service(config.google)
    notion = NotionClient(config.notion.api_key, config.notion.api_version)
    webhook_url = config.discord.calendar_webhook_url or config.discord.webhook_url

    calendar_sync = CalendarSync(
        source=GoogleCalendarSource(service, config.google.calendar_id),
        notion=notion,
        database_id=config.notion.calendar_db_id,
        notifier=DiscordWebhookClient(webhook_url) if webhook_url else None,
        store=JsonFileIdempotencyStore(config.state_path),
        rules=load_rules(config.archive.rules_path),
        config=config.calendar,
    )
    return calendar_sync, notion


def run_once(config: Optional[BridgesConfig] = None) -> SyncReport:
    config = config or load_config()
    calendar_sync, notion = build_sync(config)
    try:
        return calendar_sync.sync()
    finally:
        notion.close()


def schedule(config: Optional[BridgesConfig] = None) -> None:
    """Sync every sync_interval_minutes until SIGTERM/SIGINT"""
    config = config or load_config()
    calendar_sync, notion = build_sync(config)
    minutes = config.calendar.sync_interval_minutes

    scheduler = BlockingScheduler(timezone="UTC")
    scheduler.add_job(
        calendar_sync.sync,
        IntervalTrigger(minutes=minutes),
        id="calendar_sync",
        next_run_time=datetime.now(timezone.utc),
        max_instances=1,
        coalesce=True,
    )

    def _shutdown(signum, frame):
        logger.info("Calendar sync service shutting down...")
        scheduler.shutdown(wait=False)

    signal.signal(signal.SIGTERM, _shutdown)

    logger.info("Calendar sync service started. Syncing every %d minutes.", minutes)
    try:
        scheduler.start()
    except (KeyboardInterrupt, SystemExit):
        logger.info("Calendar sync service shutting down...")
    finally:
        notion.close()


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Sync Google Calendar events to Notion and Discord")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("run", help="Run one sync pass")
    schedule_parser = subparsers.add_parser("schedule", help="Sync on an interval")
    schedule_parser.add_argument("--interval", type=int, default=None, help="Minutes between syncs")

    args = parser.parse_args(argv)

    configure_logging("calendar", verbose=args.verbose)

    config = load_config()
    ensure_directories()

    if args.command == "schedule":
        if args.interval:
            config.calendar.sync_interval_minutes = args.interval
        schedule(config)
        return 0

    report = run_once(config)
    print(
        f"{report.events} events: {report.created} created, {report.updated} updated, "
        f"{report.failed} failed, {report.notified} announced, {report.reminders} reminders"
    )
    return 0 if report.ok else 1


if __name__ == "__main__":
    sys.exit(main())
