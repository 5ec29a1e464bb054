"""Tests for the command-line interface."""

import json
from collections.abc import Iterator
from pathlib import Path
from typing import Any

import pytest
from subscription_catalog import cli
from subscription_catalog.config import get_settings


@pytest.fixture(autouse=True)
def snapshot_path(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[Path]:
    """Point the CLI at a throwaway snapshot."""
    path = tmp_path / "catalog.json"
    monkeypatch.setenv("STORE_SNAPSHOT_PATH", str(path))
    get_settings.cache_clear()
    yield path
    get_settings.cache_clear()


def run(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str], *args: str
) -> Any:
    """Run the CLI and decode its JSON output."""
    monkeypatch.setattr("sys.argv", ["subscription-catalog", *args])
    cli.main()
    return json.loads(capsys.readouterr().out)


class TestCLI:
    """Tests for CLI commands."""

    def test_test_config(
        self, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
    ) -> None:
        output = run(monkeypatch, capsys, "test-config")

        assert output["success"] is True
        assert output["command"] == "test-config"
        assert output["data"]["xbox_market"] == "US"
        assert output["data"]["warning_window_days"] == 14

    def test_seed_writes_snapshot(
        self,
        monkeypatch: pytest.MonkeyPatch,
        capsys: pytest.CaptureFixture[str],
        snapshot_path: Path,
    ) -> None:
        first = run(monkeypatch, capsys, "seed")
        second = run(monkeypatch, capsys, "seed")

        assert first["data"] == {"status": "seeded", "count": 4}
        assert second["data"]["status"] == "already_seeded"
        assert snapshot_path.exists()

    def test_subscribe_then_stats(
        self, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
    ) -> None:
        """Changes made by one command are visible to the next."""
        run(monkeypatch, capsys, "seed")
        held = run(monkeypatch, capsys, "subscribe", "user-1", "gamepass", "ultimate")
        stats = run(monkeypatch, capsys, "stats")
        count = run(monkeypatch, capsys, "count", "user-1")

        assert held["data"]["user_id"] == "user-1"
        assert held["data"]["tier_slug"] == "ultimate"
        assert stats["data"]["subscriptions"] == 4
        assert stats["data"]["user_subscriptions"] == 1
        assert count["data"] == {"user_id": "user-1", "available_games": 0}

    def test_sync_ubisoft_fallback(
        self, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
    ) -> None:
        monkeypatch.setenv("TWITCH_CLIENT_ID", "")
        output = run(monkeypatch, capsys, "sync", "ubisoftplus", "--fallback", "--limit", "3")

        assert output["success"] is True
        assert output["data"]["source"] == "fallback"
        assert output["data"]["synced"] == 3

        recent = run(monkeypatch, capsys, "recent")
        assert {g["title"] for g in recent["data"]} == {
            "Assassin's Creed Mirage",
            "Assassin's Creed Valhalla",
            "Assassin's Creed Odyssey",
        }

    def test_jobs(
        self, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
    ) -> None:
        output = run(monkeypatch, capsys, "jobs")

        jobs = {job["name"]: job for job in output["data"]}
        assert jobs["sync_gamepass"]["cadence"] == "weekly"
        assert jobs["check_leaving_soon"]["cadence"] == "daily"
        assert jobs["check_leaving_soon"]["at_utc"] == "08:00"

    def test_missing_argument_exits(
        self, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
    ) -> None:
        monkeypatch.setattr("sys.argv", ["subscription-catalog", "check"])

        with pytest.raises(SystemExit) as exc_info:
            cli.main()

        assert exc_info.value.code == 1
        assert "game_id required" in capsys.readouterr().out

    def test_unknown_command_exits(
        self, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
    ) -> None:
        monkeypatch.setattr("sys.argv", ["subscription-catalog", "frobnicate"])

        with pytest.raises(SystemExit) as exc_info:
            cli.main()

        assert exc_info.value.code == 1
        assert "Unknown command: frobnicate" in capsys.readouterr().out

    def test_unknown_provider_exits(
        self, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
    ) -> None:
        monkeypatch.setattr("sys.argv", ["subscription-catalog", "sync", "steam"])

        with pytest.raises(SystemExit):
            cli.main()

        assert "Unknown provider 'steam'" in capsys.readouterr().out
