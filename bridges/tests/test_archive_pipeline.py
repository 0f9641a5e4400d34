"""
Tests for the export and archive pipeline

Covers the Discord item source, Notion group sink, channel janitor
and the ChatExporter end to end with mocked collaborators.
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import Mock, MagicMock

import pytest

NOW = datetime(2026, 3, 8, 2, 0, tzinfo=timezone.utc)


def raw_message(message_id, minutes_ago, content="hello", author="alice", pinned=False, msg_type=0):
    ts = NOW - timedelta(minutes=minutes_ago)
    return {
        "id": str(message_id),
        "type": msg_type,
        "content": content,
        "timestamp": ts.isoformat(),
        "author": {"username": author},
        "attachments": [],
        "pinned": pinned,
    }


def paged_history(messages, page_size=100):
    """fetch_messages side effect over newest-first messages, honoring `before`"""
    def fetch(channel_id, limit=100, before=None):
        start = 0
        if before is not None:
            ids = [m["id"] for m in messages]
            start = ids.index(before) + 1
        return messages[start:start + min(limit, page_size)]
    return fetch


def make_item(item_id, minutes, text="hello", author="alice"):
    from bridges.common.schemas import Item
    return Item(id=str(item_id), author=author, text=text, timestamp=NOW + timedelta(minutes=minutes))


def closed_group(*items):
    from bridges.archive.segmenter import segment
    return segment(list(items))[0]


class TestDiscordChannelSource:
    def test_fetch_page_ascending_with_cursor(self):
        from bridges.archive.sources import DiscordChannelSource

        client = Mock()
        client.fetch_messages.return_value = [raw_message(3, 1), raw_message(2, 2), raw_message(1, 3)]
        source = DiscordChannelSource(client, "chan")

        items, cursor = source.fetch_page()

        assert [i.id for i in items] == ["1", "2", "3"]
        assert cursor == "1"
        client.fetch_messages.assert_called_once_with("chan", limit=100, before=None)

    def test_system_messages_skipped_but_cursor_advances(self):
        from bridges.archive.sources import DiscordChannelSource

        client = Mock()
        client.fetch_messages.return_value = [raw_message(2, 1), raw_message(1, 2, msg_type=7)]

        items, cursor = DiscordChannelSource(client, "chan").fetch_page("9")

        assert [i.id for i in items] == ["2"]
        assert cursor == "1"

    def test_empty_page_ends(self):
        from bridges.archive.sources import DiscordChannelSource

        client = Mock()
        client.fetch_messages.return_value = []

        assert DiscordChannelSource(client, "chan").fetch_page() == ([], None)


class TestCollectItems:
    def test_pages_back_to_since(self):
        from bridges.archive.exporter import collect_items
        from bridges.archive.sources import DiscordChannelSource

        messages = [raw_message(i, minutes_ago=i * 60) for i in range(1, 8)]
        client = Mock()
        client.fetch_messages.side_effect = paged_history(messages, page_size=2)

        items = collect_items(DiscordChannelSource(client, "chan"), since=NOW - timedelta(minutes=200))

        assert [i.id for i in items] == ["3", "2", "1"]
        # Stops once a page reaches past the window
        assert client.fetch_messages.call_count == 2

    def test_deduplicates_by_id(self):
        from bridges.archive.exporter import collect_items

        source = Mock()
        source.fetch_page.side_effect = [
            ([make_item(2, -5), make_item(3, -1)], "2"),
            ([make_item(1, -10), make_item(2, -5)], "1"),
            ([], None),
        ]

        items = collect_items(source, since=NOW - timedelta(days=1))

        assert [i.id for i in items] == ["1", "2", "3"]


class TestNotionGroupSink:
    def _sink(self, notion, notifier=None, store=None):
        from bridges.archive.sinks import NotionGroupSink
        return NotionGroupSink(notion, "db1", "general", store=store, notifier=notifier)

    def test_creates_new_page(self):
        from bridges.archive.sinks import SOURCE_ID_PROPERTY

        notion = Mock()
        notion.query_database.return_value = []
        notion.create_page.return_value = {"id": "page-1", "url": "https://notion.so/page-1"}
        group = closed_group(make_item(10, 0, text="deploy"), make_item(11, 1, author="bob"))

        result = self._sink(notion).upsert_group(group)

        assert result.created
        assert result.page_id == "page-1"
        args, kwargs = notion.create_page.call_args
        properties = args[1]
        assert properties[SOURCE_ID_PROPERTY]["rich_text"][0]["text"]["content"] == "10"
        assert properties["Message Count"] == {"number": 2}
        assert properties["Tags"]["multi_select"] == [{"name": "Development"}, {"name": "Uncategorized"}]
        assert len(kwargs["children"]) == 3

    def test_updates_existing_page(self):
        notion = Mock()
        notion.query_database.return_value = [{"id": "existing"}]
        notion.update_page.return_value = {"id": "existing", "url": "u"}

        result = self._sink(notion).upsert_group(closed_group(make_item(1, 0)))

        assert result.action == "updated"
        notion.update_page.assert_called_once()
        notion.create_page.assert_not_called()

    def test_rejects_open_group(self):
        from bridges.common.schemas import ConversationGroup

        group = ConversationGroup.start(make_item(1, 0), "Uncategorized")

        with pytest.raises(ValueError):
            self._sink(Mock()).upsert_group(group)

    def test_notifies_once(self):
        from bridges.common.idempotency import MemoryIdempotencyStore

        notion = Mock()
        notion.query_database.return_value = []
        notion.create_page.return_value = {"id": "page-1"}
        notifier = Mock()
        notifier.is_configured = True
        store = MemoryIdempotencyStore()
        sink = self._sink(notion, notifier=notifier, store=store)
        group = closed_group(make_item(1, 0))

        assert sink.upsert_group(group).notified is True
        assert sink.upsert_group(group).notified is False
        assert notifier.send.call_count == 1
        assert store.seen("conversation-1")

    def test_failed_notification_not_marked(self):
        from bridges.common.discord_client import DiscordAPIError
        from bridges.common.idempotency import MemoryIdempotencyStore

        notion = Mock()
        notion.query_database.return_value = []
        notion.create_page.return_value = {"id": "page-1"}
        notifier = Mock()
        notifier.is_configured = True
        notifier.send.side_effect = DiscordAPIError(500, "down")
        store = MemoryIdempotencyStore()

        result = self._sink(notion, notifier=notifier, store=store).upsert_group(closed_group(make_item(1, 0)))

        assert result.created
        assert result.notified is False
        assert store.seen("conversation-1") is False


class TestClearOldMessages:
    def test_deletes_old_unpinned_only(self):
        from bridges.archive.janitor import clear_old_messages
        from bridges.common.throttle import Throttle

        day = 24 * 60
        messages = [
            raw_message(5, minutes_ago=60),
            raw_message(4, minutes_ago=8 * day),
            raw_message(3, minutes_ago=9 * day, pinned=True),
            raw_message(2, minutes_ago=10 * day),
        ]
        client = Mock()
        client.fetch_messages.side_effect = paged_history(messages, page_size=2)

        deleted = clear_old_messages(client, "chan", days=7, throttle=Throttle(0), now=NOW)

        assert deleted == 2
        deleted_ids = [c.args[1] for c in client.delete_message.call_args_list]
        assert deleted_ids == ["4", "2"]

    def test_failed_delete_is_skipped(self):
        from bridges.archive.janitor import clear_old_messages
        from bridges.common.discord_client import DiscordAPIError
        from bridges.common.throttle import Throttle

        messages = [raw_message(2, minutes_ago=20000), raw_message(1, minutes_ago=30000)]
        client = Mock()
        client.fetch_messages.side_effect = paged_history(messages)
        client.delete_message.side_effect = [DiscordAPIError(404, "Unknown Message"), None]

        assert clear_old_messages(client, "chan", throttle=Throttle(0), now=NOW) == 1


class TestChatExporter:
    def _exporter(self, tmp_path, discord, notion=None, store=None, notifier=None, **config_overrides):
        from bridges.archive.exporter import ChatExporter
        from bridges.common.config import ArchiveConfig

        config = ArchiveConfig(export_folder=str(tmp_path), **config_overrides)
        return ChatExporter(
            discord=discord,
            config=config,
            notion=notion,
            database_id="db1" if notion else "",
            store=store,
            notifier=notifier,
            clock=lambda: NOW,
            sleep=lambda s: None,
        )

    def _discord(self, messages, channel_type=0):
        discord = Mock()
        discord.get_channel.return_value = {"id": "chan", "name": "general", "type": channel_type}
        discord.fetch_messages.side_effect = paged_history(messages)
        return discord

    def test_export_writes_markdown(self, tmp_path):
        messages = [
            raw_message(4, 5, content="ok shipping it"),
            raw_message(3, 10, content="pushed to github", author="bob"),
            raw_message(2, 120, content="budget draft"),
            raw_message(1, 125, content="morning"),
        ]
        exporter = self._exporter(tmp_path, self._discord(messages))

        export = exporter.export_channel("chan")

        assert export.channel_name == "general"
        assert len(export.groups) == 2
        assert export.message_count == 4
        assert export.path == tmp_path / "general_2026-03-08.md"
        content = export.path.read_text(encoding="utf-8")
        assert "# Discord Export: general" in content
        assert content.count("## Conversation:") == 2

    def test_messages_outside_window_excluded(self, tmp_path):
        messages = [raw_message(2, 10), raw_message(1, 8 * 24 * 60)]
        exporter = self._exporter(tmp_path, self._discord(messages))

        export = exporter.export_channel("chan", channel_name="general")

        assert export.message_count == 1

    def test_process_channel_archives_to_notion(self, tmp_path):
        messages = [raw_message(3, 5), raw_message(2, 100), raw_message(1, 200)]
        notion = Mock()
        notion.query_database.side_effect = [[], [{"id": "old"}], []]
        notion.create_page.return_value = {"id": "new"}
        notion.update_page.return_value = {"id": "old"}

        report = self._exporter(tmp_path, self._discord(messages), notion).process_channel("chan")

        assert report.ok
        assert report.conversations == 3
        assert report.created == 2
        assert report.updated == 1
        assert report.deleted == 0

    def test_notion_failure_counted(self, tmp_path):
        from bridges.common.notion_client import NotionAPIError

        notion = Mock()
        notion.query_database.side_effect = NotionAPIError(500, "boom")

        report = self._exporter(tmp_path, self._discord([raw_message(1, 5)]), notion).process_channel("chan")

        assert report.failed == 1
        assert report.ok is False

    def test_non_text_channel_skipped(self, tmp_path):
        discord = self._discord([], channel_type=4)  # category

        report = self._exporter(tmp_path, discord).process_channel("chan")

        assert report.error == "not a text channel"
        discord.fetch_messages.assert_not_called()

    def test_auto_clear(self, tmp_path):
        messages = [raw_message(2, 10), raw_message(1, 8 * 24 * 60)]
        discord = self._discord(messages)

        report = self._exporter(tmp_path, discord, auto_clear=True).process_channel("chan")

        assert report.deleted == 1
        discord.delete_message.assert_called_once_with("chan", "1")

    def test_auto_clear_skipped_when_archive_fails(self, tmp_path):
        from bridges.common.notion_client import NotionAPIError

        messages = [raw_message(2, 10), raw_message(1, 8 * 24 * 60)]
        discord = self._discord(messages)
        notion = Mock()
        notion.query_database.side_effect = NotionAPIError(503, "unavailable")

        report = self._exporter(tmp_path, discord, notion, auto_clear=True).process_channel("chan")

        assert report.failed == 1
        assert report.deleted == 0
        discord.delete_message.assert_not_called()

    def test_archive_notice_remembered_for_configured_days(self, tmp_path):
        from bridges.common.idempotency import MemoryIdempotencyStore

        now = [1000.0]
        store = MemoryIdempotencyStore(clock=lambda: now[0])
        notion = Mock()
        notion.query_database.return_value = []
        notion.create_page.return_value = {"id": "page-1"}
        notifier = Mock()
        notifier.is_configured = True
        exporter = self._exporter(
            tmp_path, self._discord([raw_message(1, 5)]), notion,
            store=store, notifier=notifier, notification_ttl_days=2,
        )

        exporter.process_channel("chan")

        assert store.seen("conversation-1")
        now[0] += 2 * 86400 + 1
        assert store.seen("conversation-1") is False

    def test_run_purges_expired_keys(self, tmp_path):
        from bridges.common.idempotency import MemoryIdempotencyStore

        now = [1000.0]
        store = MemoryIdempotencyStore(clock=lambda: now[0])
        store.mark("conversation-old", ttl=10)
        store.mark("conversation-new", ttl=1000)
        now[0] += 60

        self._exporter(tmp_path, self._discord([]), store=store).run([])

        assert len(store) == 1
        assert store.seen("conversation-new")

    def test_run_isolates_channel_failures(self, tmp_path):
        from bridges.common.discord_client import DiscordAPIError

        discord = self._discord([raw_message(1, 5)])
        discord.get_channel.side_effect = [DiscordAPIError(403, "Missing Access"), {"name": "ok", "type": 0}]

        reports = self._exporter(tmp_path, discord).run(["bad", "good"])

        assert reports[0].error is not None
        assert reports[1].ok
