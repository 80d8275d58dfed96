"""Tests for the savebutton command line."""

from __future__ import annotations

from pathlib import Path

from click.testing import CliRunner

from savebutton import __version__
from savebutton.cli import main
from savebutton.config import load_config

EMAIL = "me@example.com"
PASSWORD = "secret"


class TestCli:
    """Command registration and the config/sync commands."""

    def test_version(self):
        result = CliRunner().invoke(main, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_commands_registered(self):
        result = CliRunner().invoke(main, ["--help"])
        for name in ("daemon", "nativehost", "sync", "config"):
            assert name in result.output

    def test_config_set_and_status(self, kaya_home: Path):
        runner = CliRunner()
        result = runner.invoke(main, [
            "config", "set", "--home", str(kaya_home),
            "--server", "https://s", "--email", EMAIL, "--password", PASSWORD,
        ])
        assert result.exit_code == 0
        assert load_config(kaya_home).password() == PASSWORD

        result = runner.invoke(main, ["config", "status", "--home", str(kaya_home)])
        assert result.exit_code == 0
        assert EMAIL in result.output
        assert "stored" in result.output
        assert PASSWORD not in result.output

    def test_config_set_keeps_password(self, kaya_home: Path):
        runner = CliRunner()
        runner.invoke(main, [
            "config", "set", "--home", str(kaya_home),
            "--server", "https://s", "--email", EMAIL, "--password", PASSWORD,
        ])
        runner.invoke(main, ["config", "set", "--home", str(kaya_home), "--server", "https://t"])
        stored = load_config(kaya_home)
        assert stored.server == "https://t"
        assert stored.password() == PASSWORD

    def test_sync_unconfigured(self, kaya_home: Path):
        result = CliRunner().invoke(main, ["sync", "--home", str(kaya_home)])
        assert result.exit_code == 1
        assert "Not configured" in result.output

    def test_sync_summary(self, configured_home: Path, remote):
        remote.files["anga"] = {"a.md": b"A"}
        result = CliRunner().invoke(main, ["sync", "--home", str(configured_home)])
        assert result.exit_code == 0
        assert "anga" in result.output
        assert (configured_home / "anga" / "a.md").exists()

    def test_sync_reports_errors(self, configured_home: Path, remote):
        remote.fail["meta"] = 500
        result = CliRunner().invoke(main, ["sync", "--home", str(configured_home)])
        assert result.exit_code == 1
        assert "meta" in result.output

    def test_daemon_status_not_running(self, kaya_home: Path):
        result = CliRunner().invoke(main, ["daemon", "status", "--home", str(kaya_home)])
        assert result.exit_code == 0
        assert "not running" in result.output
