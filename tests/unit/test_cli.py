"""
Unit tests for the CLI.
"""

import asyncio
import json

import pytest
from click.testing import CliRunner

from activitysync.cli.main import cli
from activitysync.config import config
from activitysync.models import ActivityEvent, ActivityType, now_ms
from activitysync.storage.json_queue import JSONActivityQueue


@pytest.fixture
def local_config(monkeypatch, tmp_path):
    monkeypatch.setattr(config, "data_dir", tmp_path)
    monkeypatch.setattr(config, "remote_endpoint", None)
    monkeypatch.setattr(config, "remote_credential", None)
    monkeypatch.setattr(config, "production", False)
    return config


def seed(count):
    queue = JSONActivityQueue(path=config.store_path)
    start = now_ms()

    async def fill():
        for i in range(count):
            await queue.append(ActivityEvent(
                type=ActivityType.COMMAND_EXECUTE,
                timestamp=start + i,
                session_id="cli",
                data={"command": f"cmd.{i}"},
            ))

    asyncio.run(fill())
    return queue


class TestCLI:
    """Test CLI commands."""

    def test_status(self, local_config):
        seed(2)
        result = CliRunner().invoke(cli, ["status"])

        assert result.exit_code == 0
        assert "Pending" in result.output
        assert "configured" in result.output
        assert "missing" in result.output

    def test_list_json(self, local_config):
        seed(3)
        result = CliRunner().invoke(cli, ["list", "--format", "json", "--limit", "2"])

        assert result.exit_code == 0
        events = json.loads(result.output)
        assert [e["data"]["command"] for e in events] == ["cmd.1", "cmd.2"]
        assert events[0]["sessionId"] == "cli"

    def test_list_empty(self, local_config):
        result = CliRunner().invoke(cli, ["list"])

        assert result.exit_code == 0
        assert "No queued activities" in result.output

    def test_stats(self, local_config):
        seed(4)
        result = CliRunner().invoke(cli, ["stats"])

        assert result.exit_code == 0
        assert "Events" in result.output
        assert "4" in result.output

    def test_clear(self, local_config):
        queue = seed(2)
        result = CliRunner().invoke(cli, ["clear", "--yes"])

        assert result.exit_code == 0
        assert asyncio.run(queue.count()) == 0

    def test_clear_aborted(self, local_config):
        queue = seed(2)
        result = CliRunner().invoke(cli, ["clear"], input="n\n")

        assert result.exit_code != 0
        assert asyncio.run(queue.count()) == 2

    def test_sync_without_remote_keeps_queue(self, local_config):
        queue = seed(1)
        result = CliRunner().invoke(cli, ["sync"])

        assert result.exit_code == 1
        assert "Sync failed" in result.output
        assert asyncio.run(queue.count()) == 1

    def test_watch_requires_existing_directory(self, local_config, tmp_path):
        result = CliRunner().invoke(cli, ["watch", str(tmp_path / "missing")])

        assert result.exit_code == 2
        assert "does not exist" in result.output
