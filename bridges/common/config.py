"""
Configuration Management for Bridges

Loads configuration from ~/.bridges/config.json and environment variables.
"""

import os
import json
import logging
from datetime import timedelta
from pathlib import Path
from dataclasses import dataclass, field

logger = logging.getLogger("bridges.common.config")

# Default config paths
CONFIG_DIR = Path.home() / ".bridges"
CONFIG_PATH = CONFIG_DIR / "config.json"
LOGS_DIR = CONFIG_DIR / "logs"
STATE_PATH = CONFIG_DIR / "idempotency.json"

# Project paths (relative to this file)
PROJECT_ROOT = Path(__file__).parent.parent.parent  # repository root
PATTERNS_DIR = PROJECT_ROOT / "patterns"


@dataclass
class NotionConfig:
    """Notion API configuration"""
    api_key: str = ""
    chat_archive_db_id: str = ""
    calendar_db_id: str = ""
    signing_secret: str = ""
    api_version: str = "2022-06-28"


@dataclass
class DiscordConfig:
    """Discord bot and webhook configuration"""
    bot_token: str = ""
    webhook_url: str = ""
    calendar_webhook_url: str = ""
    export_channel_ids: list = field(default_factory=list)


@dataclass
class GoogleConfig:
    """Google Calendar OAuth configuration"""
    client_id: str = ""
    client_secret: str = ""
    redirect_uri: str = ""
    refresh_token: str = ""
    calendar_id: str = "primary"


@dataclass
class ArchiveConfig:
    """Chat export and archive configuration"""
    export_folder: str = "./exports"
    export_days: int = 7
    archive_after_days: int = 7
    gap_minutes: float = 30
    auto_clear: bool = False
    upload_delay: float = 0.5  # seconds between Notion uploads
    delete_delay: float = 1.0  # seconds between Discord deletions
    schedule: str = "0 2 * * 0"  # Sunday 2 AM
    notification_ttl_days: int = 90
    rules_path: str = str(PATTERNS_DIR / "category-rules.md")

    @property
    def gap_threshold(self) -> timedelta:
        return timedelta(minutes=self.gap_minutes)


@dataclass
class CalendarConfig:
    """Calendar sync configuration"""
    sync_interval_minutes: int = 15
    lookahead_days: int = 30
    reminder_window_hours: float = 1
    urgent_window_hours: float = 24
    notification_ttl_days: int = 45


@dataclass
class RelayConfig:
    """Notion -> Discord webhook relay configuration"""
    port: int = 3000
    require_signature: bool = False
    user_mapping: dict = field(default_factory=dict)  # notion user id -> "<@discord-id>"


@dataclass
class BridgesConfig:
    """Main Bridges configuration"""
    notion: NotionConfig = field(default_factory=NotionConfig)
    discord: DiscordConfig = field(default_factory=DiscordConfig)
    google: GoogleConfig = field(default_factory=GoogleConfig)
    archive: ArchiveConfig = field(default_factory=ArchiveConfig)
    calendar: CalendarConfig = field(default_factory=CalendarConfig)
    relay: RelayConfig = field(default_factory=RelayConfig)
    state_path: str = str(STATE_PATH)
    _env_sourced_keys: set = field(default_factory=set, repr=False)


def _split_ids(value) -> list:
    """Accept either a list or a comma separated string of ids"""
    if isinstance(value, str):
        return [part.strip() for part in value.split(",") if part.strip()]
    return [str(v) for v in value or []]


def _parse_notion_config(data: dict) -> NotionConfig:
    """Parse notion section from config dict"""
    notion_data = data.get("notion", {})
    return NotionConfig(
        api_key=notion_data.get("api_key", ""),
        chat_archive_db_id=notion_data.get("chat_archive_db_id", ""),
        calendar_db_id=notion_data.get("calendar_db_id", ""),
        signing_secret=notion_data.get("signing_secret", ""),
        api_version=notion_data.get("api_version", "2022-06-28"),
    )


def _parse_discord_config(data: dict) -> DiscordConfig:
    """Parse discord section from config dict"""
    discord_data = data.get("discord", {})
    return DiscordConfig(
        bot_token=discord_data.get("bot_token", ""),
        webhook_url=discord_data.get("webhook_url", ""),
        calendar_webhook_url=discord_data.get("calendar_webhook_url", ""),
        export_channel_ids=_split_ids(discord_data.get("export_channel_ids", [])),
    )


def _parse_google_config(data: dict) -> GoogleConfig:
    """Parse google section from config dict"""
    google_data = data.get("google", {})
    return GoogleConfig(
        client_id=google_data.get("client_id", ""),
        client_secret=google_data.get("client_secret", ""),
        redirect_uri=google_data.get("redirect_uri", ""),
        refresh_token=google_data.get("refresh_token", ""),
        calendar_id=google_data.get("calendar_id", "primary"),
    )


def _parse_archive_config(data: dict) -> ArchiveConfig:
    """Parse archive section from config dict"""
    archive_data = data.get("archive", {})
    defaults = ArchiveConfig()
    return ArchiveConfig(
        export_folder=archive_data.get("export_folder", defaults.export_folder),
        export_days=archive_data.get("export_days", defaults.export_days),
        archive_after_days=archive_data.get("archive_after_days", defaults.archive_after_days),
        gap_minutes=archive_data.get("gap_minutes", defaults.gap_minutes),
        auto_clear=archive_data.get("auto_clear", defaults.auto_clear),
        upload_delay=archive_data.get("upload_delay", defaults.upload_delay),
        delete_delay=archive_data.get("delete_delay", defaults.delete_delay),
        schedule=archive_data.get("schedule", defaults.schedule),
        notification_ttl_days=archive_data.get("notification_ttl_days", defaults.notification_ttl_days),
        rules_path=archive_data.get("rules_path", defaults.rules_path),
    )


def _parse_calendar_config(data: dict) -> CalendarConfig:
    """Parse calendar section from config dict"""
    calendar_data = data.get("calendar", {})
    defaults = CalendarConfig()
    return CalendarConfig(
        sync_interval_minutes=calendar_data.get("sync_interval_minutes", defaults.sync_interval_minutes),
        lookahead_days=calendar_data.get("lookahead_days", defaults.lookahead_days),
        reminder_window_hours=calendar_data.get("reminder_window_hours", defaults.reminder_window_hours),
        urgent_window_hours=calendar_data.get("urgent_window_hours", defaults.urgent_window_hours),
        notification_ttl_days=calendar_data.get("notification_ttl_days", defaults.notification_ttl_days),
    )


def _parse_relay_config(data: dict) -> RelayConfig:
    """Parse relay section from config dict"""
    relay_data = data.get("relay", {})
    return RelayConfig(
        port=relay_data.get("port", 3000),
        require_signature=relay_data.get("require_signature", False),
        user_mapping=dict(relay_data.get("user_mapping", {})),
    )


# env var -> (section, attribute)
_ENV_SECRET_MAP = {
    "NOTION_API_KEY": ("notion", "api_key"),
    "NOTION_SECRET": ("notion", "signing_secret"),
    "DISCORD_BOT_TOKEN": ("discord", "bot_token"),
    "GOOGLE_CLIENT_SECRET": ("google", "client_secret"),
    "GOOGLE_REFRESH_TOKEN": ("google", "refresh_token"),
}

_ENV_STRING_MAP = {
    "NOTION_CHAT_ARCHIVE_DB_ID": ("notion", "chat_archive_db_id"),
    "NOTION_CALENDAR_DB_ID": ("notion", "calendar_db_id"),
    "DISCORD_WEBHOOK_URL": ("discord", "webhook_url"),
    "DISCORD_CALENDAR_WEBHOOK": ("discord", "calendar_webhook_url"),
    "GOOGLE_CLIENT_ID": ("google", "client_id"),
    "GOOGLE_REDIRECT_URI": ("google", "redirect_uri"),
    "GOOGLE_CALENDAR_ID": ("google", "calendar_id"),
    "BRIDGES_RULES_PATH": ("archive", "rules_path"),
    "BRIDGES_EXPORT_FOLDER": ("archive", "export_folder"),
}


def load_config() -> BridgesConfig:
    """
    Load configuration from file and environment variables.

    Priority (highest to lowest):
    1. Environment variables
    2. Config file (~/.bridges/config.json)
    3. Default values
    """
    config = BridgesConfig()

    # Load from config file if exists
    if CONFIG_PATH.exists():
        try:
            with open(CONFIG_PATH) as f:
                data = json.load(f)

            config.notion = _parse_notion_config(data)
            config.discord = _parse_discord_config(data)
            config.google = _parse_google_config(data)
            config.archive = _parse_archive_config(data)
            config.calendar = _parse_calendar_config(data)
            config.relay = _parse_relay_config(data)
            config.state_path = data.get("state_path", str(STATE_PATH))
        except (json.JSONDecodeError, IOError) as e:
            logger.warning("Failed to load config file %s: %s", CONFIG_PATH, e)

    # Environment variable overrides
    for env_var, (section, attr) in _ENV_SECRET_MAP.items():
        val = os.getenv(env_var)
        if val:
            setattr(getattr(config, section), attr, val)
            config._env_sourced_keys.add(f"{section}.{attr}")

    for env_var, (section, attr) in _ENV_STRING_MAP.items():
        val = os.getenv(env_var)
        if val:
            setattr(getattr(config, section), attr, val)

    if os.getenv("DISCORD_EXPORT_CHANNELS"):
        config.discord.export_channel_ids = _split_ids(os.getenv("DISCORD_EXPORT_CHANNELS"))
    if os.getenv("AUTO_CLEAR_MESSAGES"):
        config.archive.auto_clear = os.getenv("AUTO_CLEAR_MESSAGES") == "true"
    if os.getenv("ARCHIVE_GAP_MINUTES"):
        config.archive.gap_minutes = float(os.getenv("ARCHIVE_GAP_MINUTES"))
    if os.getenv("CALENDAR_SYNC_INTERVAL_MINUTES"):
        config.calendar.sync_interval_minutes = int(os.getenv("CALENDAR_SYNC_INTERVAL_MINUTES"))
    if os.getenv("PORT"):
        config.relay.port = int(os.getenv("PORT"))
    if os.getenv("BRIDGES_STATE_PATH"):
        config.state_path = os.getenv("BRIDGES_STATE_PATH")

    return config


def save_config(config: BridgesConfig, overwrite: bool = True) -> Path:
    """Save configuration to file.

    Secrets that were sourced from environment variables are written
    as empty strings so that they are not persisted to disk.

    Raises:
        FileExistsError: the file exists and overwrite is False
    """
    if CONFIG_PATH.exists() and not overwrite:
        raise FileExistsError(str(CONFIG_PATH))

    CONFIG_DIR.mkdir(parents=True, exist_ok=True)

    env_sourced = getattr(config, "_env_sourced_keys", set())

    data = {
        "notion": {
            "api_key": config.notion.api_key,
            "chat_archive_db_id": config.notion.chat_archive_db_id,
            "calendar_db_id": config.notion.calendar_db_id,
            "signing_secret": config.notion.signing_secret,
            "api_version": config.notion.api_version,
        },
        "discord": {
            "bot_token": config.discord.bot_token,
            "webhook_url": config.discord.webhook_url,
            "calendar_webhook_url": config.discord.calendar_webhook_url,
            "export_channel_ids": list(config.discord.export_channel_ids),
        },
        "google": {
            "client_id": config.google.client_id,
            "client_secret": config.google.client_secret,
            "redirect_uri": config.google.redirect_uri,
            "refresh_token": config.google.refresh_token,
            "calendar_id": config.google.calendar_id,
        },
        "archive": {
            "export_folder": config.archive.export_folder,
            "export_days": config.archive.export_days,
            "archive_after_days": config.archive.archive_after_days,
            "gap_minutes": config.archive.gap_minutes,
            "auto_clear": config.archive.auto_clear,
            "upload_delay": config.archive.upload_delay,
            "delete_delay": config.archive.delete_delay,
            "schedule": config.archive.schedule,
            "notification_ttl_days": config.archive.notification_ttl_days,
            "rules_path": config.archive.rules_path,
        },
        "calendar": {
            "sync_interval_minutes": config.calendar.sync_interval_minutes,
            "lookahead_days": config.calendar.lookahead_days,
            "reminder_window_hours": config.calendar.reminder_window_hours,
            "urgent_window_hours": config.calendar.urgent_window_hours,
            "notification_ttl_days": config.calendar.notification_ttl_days,
        },
        "relay": {
            "port": config.relay.port,
            "require_signature": config.relay.require_signature,
            "user_mapping": dict(config.relay.user_mapping),
        },
        "state_path": config.state_path,
    }

    for key in env_sourced:
        section, attr = key.split(".", 1)
        data[section][attr] = ""

    with open(CONFIG_PATH, "w") as f:
        json.dump(data, f, indent=2)

    # Set secure permissions
    CONFIG_PATH.chmod(0o600)
    return CONFIG_PATH


def ensure_directories() -> None:
    """Ensure required directories exist"""
    CONFIG_DIR.mkdir(parents=True, exist_ok=True)
    LOGS_DIR.mkdir(parents=True, exist_ok=True)
