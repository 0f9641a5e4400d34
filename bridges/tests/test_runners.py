"""
Tests for the archive and calendar CLI entry points
"""

from unittest.mock import Mock, patch

import pytest


class TestArchiveRunner:
    def test_classify_command(self, capsys):
        from bridges.archive import runner
        from bridges.common.config import BridgesConfig

        with patch.object(runner, "configure_logging"), \
             patch.object(runner, "load_config", return_value=BridgesConfig()):
            code = runner.main(["classify", "Deploy the hotfix"])

        assert code == 0
        assert capsys.readouterr().out.strip() == "Development"

    def test_no_channels_configured(self):
        from bridges.archive.runner import export_and_archive
        from bridges.common.config import BridgesConfig

        assert export_and_archive(BridgesConfig()) == []

    def test_run_overrides_config(self, capsys):
        from bridges.archive import runner
        from bridges.archive.exporter import ArchiveReport
        from bridges.common.config import BridgesConfig

        cfg = BridgesConfig()
        report = ArchiveReport(channel_id="1", channel_name="general", conversations=2, created=2)

        with patch.object(runner, "configure_logging"), \
             patch.object(runner, "load_config", return_value=cfg), \
             patch.object(runner, "ensure_directories"), \
             patch.object(runner, "export_and_archive", return_value=[report]) as run:
            code = runner.main(["run", "--channels", "1, 2", "--days", "3", "--clear"])

        assert code == 0
        passed = run.call_args.args[0]
        assert passed.discord.export_channel_ids == ["1", "2"]
        assert passed.archive.export_days == 3
        assert passed.archive.auto_clear is True
        assert "#general: 2 conversations" in capsys.readouterr().out

    def test_run_failure_exit_code(self):
        from bridges.archive import runner
        from bridges.archive.exporter import ArchiveReport
        from bridges.common.config import BridgesConfig

        with patch.object(runner, "configure_logging"), \
             patch.object(runner, "load_config", return_value=BridgesConfig()), \
             patch.object(runner, "ensure_directories"), \
             patch.object(runner, "export_and_archive", return_value=[ArchiveReport("1", error="boom")]):
            assert runner.main(["run"]) == 1

    def test_init_writes_config(self, tmp_path, capsys):
        import json
        from bridges.archive import runner
        from bridges.common.config import BridgesConfig

        config_file = tmp_path / "config.json"
        with patch.object(runner, "configure_logging"), \
             patch.object(runner, "load_config", return_value=BridgesConfig()), \
             patch("bridges.common.config.CONFIG_PATH", config_file), \
             patch("bridges.common.config.CONFIG_DIR", tmp_path):
            code = runner.main(["init"])

        assert code == 0
        assert json.loads(config_file.read_text())["archive"]["export_days"] == 7
        assert str(config_file) in capsys.readouterr().out

    def test_init_keeps_existing_config_without_force(self, tmp_path):
        from bridges.archive import runner
        from bridges.common.config import BridgesConfig

        config_file = tmp_path / "config.json"
        config_file.write_text("{}")
        with patch.object(runner, "configure_logging"), \
             patch.object(runner, "load_config", return_value=BridgesConfig()), \
             patch("bridges.common.config.CONFIG_PATH", config_file), \
             patch("bridges.common.config.CONFIG_DIR", tmp_path):
            assert runner.main(["init"]) == 1
            assert runner.main(["init", "--force"]) == 0

        assert "archive" in config_file.read_text()


class TestCalendarRunner:
    def test_run_command(self, capsys):
        from bridges.calsync import runner
        from bridges.calsync.sync import SyncReport
        from bridges.common.config import BridgesConfig

        with patch.object(runner, "configure_logging"), \
             patch.object(runner, "load_config", return_value=BridgesConfig()), \
             patch.object(runner, "ensure_directories"), \
             patch.object(runner, "run_once", return_value=SyncReport(events=3, created=1, updated=2)):
            code = runner.main(["run"])

        assert code == 0
        assert "3 events: 1 created, 2 updated" in capsys.readouterr().out

    def test_schedule_interval_override(self):
        from bridges.calsync import runner
        from bridges.common.config import BridgesConfig

        cfg = BridgesConfig()
        with patch.object(runner, "configure_logging"), \
             patch.object(runner, "load_config", return_value=cfg), \
             patch.object(runner, "ensure_directories"), \
             patch.object(runner, "schedule") as schedule:
            runner.main(["schedule", "--interval", "5"])

        assert schedule.call_args.args[0].calendar.sync_interval_minutes == 5
