"""Tests for the automator-gate CLI."""
from __future__ import annotations

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from automator_gatekeeper.cli.main import cli
from automator_gatekeeper.store.config import read_config


@pytest.fixture()
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture()
def config_path(tmp_path: Path) -> Path:
    return tmp_path / "security.json"


@pytest.fixture()
def settings_path(tmp_path: Path) -> Path:
    path = tmp_path / "gatekeeper.yaml"
    path.write_text(
        f"config_path: {tmp_path / 'security.json'}\n"
        f"audit:\n  enabled: true\n  log_path: {tmp_path / 'audit.jsonl'}\n",
        encoding="utf-8",
    )
    return path


class TestVersion:
    def test_version_command(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["version"])
        assert result.exit_code == 0
        assert "automator-gatekeeper" in result.output


class TestCheck:
    def test_allowed(self, runner: CliRunner, config_path: Path) -> None:
        result = runner.invoke(
            cli,
            ["--config", str(config_path), "check", "-k", "run_application", "-d", '{"application": "Safari"}'],
        )
        assert result.exit_code == 0
        assert "ALLOWED" in result.output

    def test_requires_confirmation(self, runner: CliRunner, config_path: Path) -> None:
        result = runner.invoke(
            cli, ["--config", str(config_path), "check", "-k", "send_email", "-d", '{"to": "a@x.com"}']
        )
        assert result.exit_code == 0
        assert "REQUIRES CONFIRMATION" in result.output

    def test_denied(self, runner: CliRunner, config_path: Path) -> None:
        result = runner.invoke(
            cli, ["--config", str(config_path), "check", "-k", "execute_script", "-d", '{"script": "rm -rf /"}']
        )
        assert result.exit_code == 1
        assert "DENIED" in result.output
        assert "dangerous_script" in result.output

    def test_rate_limited(self, runner: CliRunner, tmp_path: Path) -> None:
        settings = tmp_path / "limits.yaml"
        settings.write_text(
            f"config_path: {tmp_path / 'security.json'}\nrate_limits:\n  execute_script: 0\n",
            encoding="utf-8",
        )
        result = runner.invoke(
            cli, ["--settings", str(settings), "check", "-k", "execute_script", "-d", '{"script": "ls"}']
        )
        assert result.exit_code == 2
        assert "RATE LIMITED" in result.output

    def test_invalid_json(self, runner: CliRunner, config_path: Path) -> None:
        result = runner.invoke(cli, ["--config", str(config_path), "check", "-k", "send_email", "-d", "{oops"])
        assert result.exit_code == 1

    def test_check_writes_audit_file(self, runner: CliRunner, settings_path: Path, tmp_path: Path) -> None:
        runner.invoke(cli, ["--settings", str(settings_path), "check", "-k", "run_application", "-d", '{"application": "Mail"}'])
        lines = (tmp_path / "audit.jsonl").read_text(encoding="utf-8").strip().splitlines()
        assert json.loads(lines[0])["action"] == "run_application"


class TestLists:
    def test_whitelist_add_persists(self, runner: CliRunner, config_path: Path) -> None:
        result = runner.invoke(cli, ["--config", str(config_path), "whitelist", "add", "boss@x.com"])
        assert result.exit_code == 0
        assert "Added" in result.output
        assert read_config(config_path).whitelist == {"boss@x.com"}

    def test_blacklist_add_and_list(self, runner: CliRunner, config_path: Path) -> None:
        runner.invoke(cli, ["--config", str(config_path), "blacklist", "add", "ex@x.com"])
        result = runner.invoke(cli, ["--config", str(config_path), "blacklist", "list"])
        assert result.exit_code == 0
        assert "ex@x.com" in result.output

    def test_remove_missing_item_unchanged(self, runner: CliRunner, config_path: Path) -> None:
        result = runner.invoke(cli, ["--config", str(config_path), "whitelist", "remove", "ghost@x.com"])
        assert result.exit_code == 0
        assert "Unchanged" in result.output

    def test_empty_list(self, runner: CliRunner, config_path: Path) -> None:
        result = runner.invoke(cli, ["--config", str(config_path), "whitelist", "list"])
        assert "empty" in result.output

    def test_blacklisted_recipient_denied_by_check(self, runner: CliRunner, config_path: Path) -> None:
        runner.invoke(cli, ["--config", str(config_path), "blacklist", "add", "ex@x.com"])
        result = runner.invoke(
            cli, ["--config", str(config_path), "check", "-k", "send_email", "-d", '{"to": "ex@x.com"}']
        )
        assert result.exit_code == 1
        assert "blacklisted" in result.output


class TestConfig:
    def test_init_writes_defaults(self, runner: CliRunner, config_path: Path) -> None:
        result = runner.invoke(cli, ["--config", str(config_path), "config", "init"])
        assert result.exit_code == 0
        assert config_path.exists()
        assert read_config(config_path).permissions.email.max_per_day == 10

    def test_init_refuses_overwrite(self, runner: CliRunner, config_path: Path) -> None:
        runner.invoke(cli, ["--config", str(config_path), "config", "init"])
        result = runner.invoke(cli, ["--config", str(config_path), "config", "init"])
        assert result.exit_code == 1

    def test_init_force(self, runner: CliRunner, config_path: Path) -> None:
        runner.invoke(cli, ["--config", str(config_path), "whitelist", "add", "a@x.com"])
        result = runner.invoke(cli, ["--config", str(config_path), "config", "init", "--force"])
        assert result.exit_code == 0
        assert read_config(config_path).whitelist == set()

    def test_show(self, runner: CliRunner, config_path: Path) -> None:
        runner.invoke(cli, ["--config", str(config_path), "whitelist", "add", "a@x.com"])
        result = runner.invoke(cli, ["--config", str(config_path), "config", "show"])
        assert result.exit_code == 0
        assert "a@x.com" in result.output
        assert "maxPerDay" in result.output


class TestAudit:
    def test_show_empty(self, runner: CliRunner, settings_path: Path) -> None:
        result = runner.invoke(cli, ["--settings", str(settings_path), "audit", "show"])
        assert result.exit_code == 0
        assert "No audit entries" in result.output

    def test_show_after_check(self, runner: CliRunner, settings_path: Path) -> None:
        runner.invoke(cli, ["--settings", str(settings_path), "check", "-k", "run_application", "-d", '{"application": "Terminal"}'])
        result = runner.invoke(cli, ["--settings", str(settings_path), "audit", "show", "--action", "run_application"])
        assert result.exit_code == 0
        assert "denied" in result.output

    def test_export_json(self, runner: CliRunner, settings_path: Path, tmp_path: Path) -> None:
        runner.invoke(cli, ["--settings", str(settings_path), "check", "-k", "run_application", "-d", '{"application": "Notes"}'])
        out = tmp_path / "export.json"
        result = runner.invoke(cli, ["--settings", str(settings_path), "audit", "export", "-f", "json", "-o", str(out)])
        assert result.exit_code == 0
        assert json.loads(out.read_text(encoding="utf-8"))[0]["outcome"] == "allowed"

    def test_export_filters_by_outcome(self, runner: CliRunner, settings_path: Path, tmp_path: Path) -> None:
        for app in ("Notes", "Terminal"):
            runner.invoke(
                cli,
                ["--settings", str(settings_path), "check", "-k", "run_application", "-d", json.dumps({"application": app})],
            )
        out = tmp_path / "denied.jsonl"
        result = runner.invoke(
            cli,
            ["--settings", str(settings_path), "audit", "export", "-f", "jsonl", "--outcome", "denied", "-o", str(out)],
        )
        assert result.exit_code == 0
        records = [json.loads(line) for line in out.read_text(encoding="utf-8").splitlines()]
        assert [r["details"]["application"] for r in records] == ["Terminal"]

    def test_missing_settings_file(self, runner: CliRunner, tmp_path: Path) -> None:
        result = runner.invoke(cli, ["--settings", str(tmp_path / "absent.yaml"), "audit", "show"])
        assert result.exit_code == 1
