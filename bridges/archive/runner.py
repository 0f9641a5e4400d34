"""
Archive Runner

CLI entry point for the Discord export and archive job.

Commands:
- run: export and archive all configured channels once
- schedule: run on a cron schedule (default: Sundays 2 AM)
- classify: print the category label for a piece of text
- init: write a starter ~/.bridges/config.json
"""

import argparse
import logging
import sys
from typing import List, Optional

from apscheduler.schedulers.blocking import BlockingScheduler
from apscheduler.triggers.cron import CronTrigger

from ..common.config import BridgesConfig, load_config, ensure_directories, save_config
from ..common.discord_client import DiscordClient, DiscordWebhookClient
from ..common.idempotency import JsonFileIdempotencyStore
from ..common.logs import configure_logging
from ..common.notion_client import NotionClient
from .classifier import classify
from .exporter import ArchiveReport, ChatExporter
from .rule_parser import load_rules

logger = logging.getLogger("bridges.archive.runner")

def export_and_archive(config: Optional[BridgesConfig] = None) -> List[ArchiveReport]:
    """Export and archive every configured channel once"""
    config = config or load_config()

    if not config.discord.export_channel_ids:
        logger.warning("No export channels configured (DISCORD_EXPORT_CHANNELS)")
        return []

    rules = load_rules(config.archive.rules_path)
    store = JsonFileIdempotencyStore(config.state_path)
    notion = NotionClient(config.notion.api_key, config.notion.api_version) if config.notion.api_key else None
    notifier = DiscordWebhookClient(config.discord.webhook_url) if config.discord.webhook_url else None

    logger.info("Starting export and archive process...")
    with DiscordClient(config.discord.bot_token) as discord:
        exporter = ChatExporter(
            discord=discord,
            config=config.archive,
            notion=notion,
            database_id=config.notion.chat_archive_db_id,
            rules=rules,
            store=store,
            notifier=notifier,
        )
        try:
            return exporter.run(config.discord.export_channel_ids)
        finally:
            if notion is not None:
                notion.close()


def schedule(config: Optional[BridgesConfig] = None) -> None:
    """Block and run export_and_archive on the configured cron schedule"""
    config = config or load_config()
    scheduler = BlockingScheduler(timezone="UTC")
    scheduler.add_job(
        export_and_archive,
        CronTrigger.from_crontab(config.archive.schedule, timezone="UTC"),
        args=[config],
        id="export_and_archive",
        max_instances=1,
        coalesce=True,
    )
    logger.info("Scheduled exports with cron '%s' (UTC)", config.archive.schedule)
    try:
        scheduler.start()
    except (KeyboardInterrupt, SystemExit):
        logger.info("Archive scheduler shutting down...")


def _print_reports(reports: List[ArchiveReport]) -> None:
    for report in reports:
        status = "ok" if report.ok else f"error: {report.error or f'{report.failed} failed'}"
        print(
            f"#{report.channel_name or report.channel_id}: {report.conversations} conversations, "
            f"{report.created} created, {report.updated} updated, {report.deleted} deleted ({status})"
        )


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Export Discord channels and archive conversations to Notion")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser("run", help="Export and archive all configured channels once")
    run_parser.add_argument("--channels", type=str, default=None, help="Comma separated channel ids (overrides config)")
    run_parser.add_argument("--days", type=int, default=None, help="Export window in days")
    run_parser.add_argument("--clear", action="store_true", help="Delete archived messages afterwards")

    schedule_parser = subparsers.add_parser("schedule", help="Run on a cron schedule")
    schedule_parser.add_argument("--cron", type=str, default=None, help="Crontab expression (UTC)")

    classify_parser = subparsers.add_parser("classify", help="Print the category for text")
    classify_parser.add_argument("text", type=str, help="Text to classify")

    init_parser = subparsers.add_parser("init", help="Write the config file from current settings")
    init_parser.add_argument("--force", action="store_true", help="Overwrite an existing config file")

    args = parser.parse_args(argv)

    configure_logging("archive", verbose=args.verbose)

    config = load_config()

    if args.command == "init":
        try:
            path = save_config(config, overwrite=args.force)
        except FileExistsError as e:
            print(f"Config already exists: {e} (use --force to overwrite)")
            return 1
        print(f"Wrote {path}")
        return 0

    if args.command == "classify":
        print(classify(args.text, load_rules(config.archive.rules_path)))
        return 0

    ensure_directories()

    if args.command == "schedule":
        if args.cron:
            config.archive.schedule = args.cron
        schedule(config)
        return 0

    if args.channels:
        config.discord.export_channel_ids = [c.strip() for c in args.channels.split(",") if c.strip()]
    if args.days is not None:
        config.archive.export_days = args.days
    if args.clear:
        config.archive.auto_clear = True

    reports = export_and_archive(config)
    _print_reports(reports)
    return 0 if all(report.ok for report in reports) else 1


if __name__ == "__main__":
    sys.exit(main())
