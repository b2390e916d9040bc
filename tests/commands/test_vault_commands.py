"""Tests for the ``vault`` group and its ``memory`` alias."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest
from click.testing import CliRunner

from memctl.cli import cli


def _json(runner: CliRunner, *args: str) -> dict[str, Any]:
    result = runner.invoke(cli, ["--json", *args])
    assert result.exit_code == 0, result.output
    return json.loads(result.stdout)


def _handoff(runner: CliRunner, title: str, content: str) -> str:
    return _json(runner, "handoff", "--title", title, "--content", content)["data"]["path"]


@pytest.mark.usefixtures("_isolated_vault")
class TestVaultReading:
    def test_list_sections(self, cli_runner: CliRunner) -> None:
        handoff = _handoff(cli_runner, "First", "body")
        _json(cli_runner, "session", "--title", "Notes")

        everything = _json(cli_runner, "vault", "list")
        assert everything["data"]["count"] == 2

        only = _json(cli_runner, "vault", "list", "--section", "handoffs")
        assert [item["path"] for item in only["data"]["items"]] == [handoff]
        assert only["data"]["items"][0]["type"] == "handoff"

    def test_list_unknown_section_is_usage_error(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["vault", "list", "--section", "indexes"])
        assert result.exit_code == 2

    def test_search(self, cli_runner: CliRunner) -> None:
        handoff = _handoff(cli_runner, "Auth", "Token refresh done")
        payload = _json(cli_runner, "vault", "search", "refresh", "--dir", "handoffs")
        assert payload["data"]["query"] == "refresh"
        assert [hit["path"] for hit in payload["data"]["results"]] == [handoff]

    def test_search_case_sensitive(self, cli_runner: CliRunner) -> None:
        _handoff(cli_runner, "Auth", "Token refresh done")
        payload = _json(
            cli_runner, "vault", "search", "TOKEN", "--dir", "handoffs", "--case-sensitive"
        )
        assert payload["data"]["count"] == 0

    def test_search_human_no_matches(self, cli_runner: CliRunner) -> None:
        cli_runner.invoke(cli, ["init"])
        result = cli_runner.invoke(cli, ["vault", "search", "[[nowhere]]"])
        assert result.exit_code == 0
        assert "No matches for '[[nowhere]]'" in result.stdout

    def test_show(self, cli_runner: CliRunner) -> None:
        handoff = _handoff(cli_runner, "Shown", "visible body")
        payload = _json(cli_runner, "vault", "show", handoff)
        assert payload["data"]["body"] == "visible body"
        assert payload["data"]["frontmatter"]["title"] == "Shown"

        human = cli_runner.invoke(cli, ["vault", "show", handoff])
        assert human.exit_code == 0
        assert "visible body" in human.stdout

    def test_show_outside_vault(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["--json", "vault", "show", "../escape.md"])
        assert result.exit_code == 1
        assert json.loads(result.stderr)["error"]["code"] == "VALIDATION_ERROR"

    def test_latest_follows_chain(self, cli_runner: CliRunner) -> None:
        first = _handoff(cli_runner, "One", "first")
        second = _json(cli_runner, "handoff", "--title", "Two", "--content", "second")
        assert second["data"]["previous_handoff"] is not None

        latest = _json(cli_runner, "memory", "latest")
        assert latest["data"]["path"] == second["data"]["path"]
        assert Path(first).stem in latest["data"]["body"]

    def test_latest_without_handoff(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["-q", "vault", "latest"])
        assert result.exit_code == 1
        assert result.stderr.startswith("ERROR: latest_handoff:")


@pytest.mark.usefixtures("_isolated_vault")
class TestVaultMaintenance:
    def test_index(self, cli_runner: CliRunner, vault_root: Path) -> None:
        _handoff(cli_runner, "Indexed", "body")
        _json(cli_runner, "phase", "create", "--id", "p1", "--title", "Build")
        payload = _json(cli_runner, "vault", "index")
        assert payload["data"]["catalog"] == "indexes/catalog.md"
        assert payload["data"]["phase_summary"] == "indexes/phase-summary.md"
        assert payload["data"]["counts"]["handoffs"] == 1
        assert payload["data"]["counts"]["phases"] == 1
        assert (vault_root / "indexes" / "catalog.md").is_file()

    def test_doctor_and_fix(self, cli_runner: CliRunner) -> None:
        _handoff(cli_runner, "Checked", "body")
        before = _json(cli_runner, "vault", "doctor")
        assert before["data"]["healthy"] is False
        assert before["data"]["indexes"]["healthy"] is False

        fixed = _json(cli_runner, "vault", "doctor", "--fix")
        assert fixed["op"] == "doctor_fix"
        assert fixed["data"]["healthy"] is True

        after = _json(cli_runner, "vault", "doctor")
        assert after["data"]["healthy"] is True

    def test_doctor_human(self, cli_runner: CliRunner) -> None:
        cli_runner.invoke(cli, ["vault", "doctor", "--fix"])
        result = cli_runner.invoke(cli, ["vault", "doctor"])
        assert result.exit_code == 0
        assert "HEALTHY" in result.stdout
        assert "UNHEALTHY" not in result.stdout

    def test_prune_dry_run_keeps_files(self, cli_runner: CliRunner, vault_root: Path) -> None:
        handoff = _handoff(cli_runner, "Old", "body")
        payload = _json(cli_runner, "vault", "prune", "--dry-run", "--days", "0")
        assert payload["data"]["dry_run"] is True
        assert handoff in [c["path"] for c in payload["data"]["candidates"]]
        assert payload["data"]["deleted"] == []
        assert (vault_root / handoff).exists()

    def test_prune_deletes_selected_folders(self, cli_runner: CliRunner, vault_root: Path) -> None:
        handoff = _handoff(cli_runner, "Old", "body")
        session = _json(cli_runner, "session", "--title", "Kept")["data"]["path"]
        payload = _json(cli_runner, "vault", "prune", "--days", "0", "--folders", "handoffs")
        assert payload["data"]["deleted"] == [handoff]
        assert not (vault_root / handoff).exists()
        assert (vault_root / session).exists()

    def test_prune_research(self, cli_runner: CliRunner, vault_root: Path) -> None:
        _json(cli_runner, "phase", "create", "--id", "p1", "--title", "Build")
        research = _json(cli_runner, "phase", "research", "--title", "Notes")["data"]["path"]
        payload = _json(
            cli_runner, "vault", "prune", "--research", "--phase", "p1", "--days", "0"
        )
        assert payload["op"] == "prune_research"
        assert payload["data"]["deleted"] == [research]
        assert (vault_root / "phases" / "p1" / "phase.md").exists()

    def test_prune_phase_requires_research(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["vault", "prune", "--phase", "p1"])
        assert result.exit_code == 2
        assert "--phase requires --research" in result.output

    def test_prune_negative_days(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["--json", "vault", "prune", "--days", "-1"])
        assert result.exit_code == 1
        assert json.loads(result.stderr)["error"]["code"] == "VALIDATION_ERROR"


@pytest.mark.usefixtures("_isolated_vault")
class TestTrackerCommand:
    def test_show_empty(self, cli_runner: CliRunner) -> None:
        payload = _json(cli_runner, "vault", "tracker")
        assert payload["op"] == "tracker"
        assert payload["data"]["active_phase_id"] is None
        assert payload["data"]["lock"]["present"] is False

    def test_update_and_resolve(self, cli_runner: CliRunner) -> None:
        updated = _json(cli_runner, "vault", "tracker", "--phase", "p9", "--session", "s-3")
        assert updated["op"] == "tracker_update"
        assert updated["data"]["changed"] == ["active_phase_id", "current_session_id"]

        resolved = _json(cli_runner, "memory", "tracker", "--resolve")
        assert resolved["data"]["phase_id"] == "p9"

        cleared = _json(cli_runner, "vault", "tracker", "--clear-phase")
        assert cleared["data"]["active_phase_id"] is None
        assert cleared["data"]["current_session_id"] == "s-3"

    def test_phase_and_clear_conflict(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(
            cli, ["--json", "vault", "tracker", "--phase", "p1", "--clear-phase"]
        )
        assert result.exit_code == 1
        assert json.loads(result.stderr)["error"]["code"] == "VALIDATION_ERROR"

    def test_human_output(self, cli_runner: CliRunner) -> None:
        cli_runner.invoke(cli, ["vault", "tracker", "--phase", "p2"])
        result = cli_runner.invoke(cli, ["vault", "tracker"])
        assert result.exit_code == 0
        assert "active_phase_id: p2" in result.stdout
        assert "lock: absent" in result.stdout
