from __future__ import annotations

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

import aiscan.cli as cli_module
from aiscan.analysis.models import AnalysisReport
from aiscan.cli import cli
from aiscan.notify.slack import SlackNotifier

runner = CliRunner()


@pytest.fixture
def env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("OPENAI_API_KEY", "k")
    monkeypatch.setenv("GITHUB_TOKEN", "t")
    monkeypatch.delenv("AISCAN_RULES_PATH", raising=False)
    monkeypatch.delenv("GITHUB_EVENT_PATH", raising=False)
    monkeypatch.delenv("GITHUB_REPOSITORY", raising=False)
    monkeypatch.delenv("SLACK_WEBHOOK_URL", raising=False)


def _fake_flow(report: AnalysisReport, seen: list[object]):
    async def flow(services, *args):
        seen.append(args)
        return report

    return flow


def test_pr_exit_code_follows_failures(env: None, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    seen: list[object] = []
    report = AnalysisReport(
        analysis_date="d",
        analysis_status="completed",
        ai_probability=0.9,
        ai_status="ai_generated",
        failures=["too much AI"],
        warnings=["no tests"],
    )
    monkeypatch.setattr(cli_module, "analyze_pull_request_event_file", _fake_flow(report, seen))
    event = tmp_path / "event.json"

    result = runner.invoke(cli, ["pr", "--event-path", str(event)])

    assert result.exit_code == 1
    assert "AI probability: 90.0% (ai_generated)" in result.output
    assert "FAILED: too much AI" in result.output
    assert "WARNING: no tests" in result.output
    assert seen == [(event, None)]


def test_pr_reads_event_path_from_env(env: None, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    seen: list[object] = []
    report = AnalysisReport(analysis_date="d", analysis_status="skipped")
    monkeypatch.setattr(cli_module, "analyze_pull_request_event_file", _fake_flow(report, seen))
    monkeypatch.setenv("GITHUB_EVENT_PATH", str(tmp_path / "e.json"))
    monkeypatch.setenv("GITHUB_REPOSITORY", "octo/hello")

    result = runner.invoke(cli, ["pr"])

    assert result.exit_code == 0
    assert seen == [(tmp_path / "e.json", "octo/hello")]


def test_pr_without_event_path_is_fatal(env: None) -> None:
    assert runner.invoke(cli, ["pr"]).exit_code == 2


def test_missing_config_is_fatal(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    monkeypatch.delenv("GITHUB_TOKEN", raising=False)
    result = runner.invoke(cli, ["repo", "https://github.com/octo/hello"])
    assert result.exit_code == 2


def test_repo_failed_run_exits_2(env: None, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    seen: list[object] = []
    report = AnalysisReport(analysis_date="d", analysis_status="failed", error="boom")
    monkeypatch.setattr(cli_module, "analyze_repository", _fake_flow(report, seen))

    result = runner.invoke(cli, ["repo", "https://github.com/octo/hello", "--output-dir", str(tmp_path)])

    assert result.exit_code == 2
    assert seen == [("https://github.com/octo/hello", tmp_path)]


def test_invalid_rules_file_is_fatal(env: None, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    rules = tmp_path / "rules.ini"
    rules.write_text("[x]\nname = X\nwhen = ai_prob >\nseverity = error\nmessage = m\n", encoding="utf-8")
    result = runner.invoke(cli, ["repo", "https://github.com/octo/hello", "--rules", str(rules)])
    assert result.exit_code == 2


def test_malformed_rules_file_is_fatal(env: None, tmp_path: Path) -> None:
    event = tmp_path / "event.json"
    rules = tmp_path / "rules.ini"
    rules.write_text("[a]\nname = A\njust some words\n", encoding="utf-8")

    result = runner.invoke(cli, ["pr", "--event-path", str(event), "--rules", str(rules)])

    assert result.exit_code == 2
    assert isinstance(result.exception, SystemExit)


def test_fatal_startup_error_notifies_slack(env: None, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    sent: list[dict[str, object]] = []

    async def send(self: SlackNotifier, message: dict[str, object]) -> bool:
        sent.append(message)
        return True

    monkeypatch.setattr(SlackNotifier, "send", send)
    monkeypatch.setenv("SLACK_WEBHOOK_URL", "https://hooks.slack.test/services/T/B/X")
    rules = tmp_path / "rules.ini"
    rules.write_text("stray line\n[a]\nname = A\n", encoding="utf-8")

    result = runner.invoke(cli, ["repo", "https://github.com/octo/hello", "--rules", str(rules)])

    assert result.exit_code == 2
    assert len(sent) == 1
    text = json.dumps(sent[0], ensure_ascii=False)
    assert "(Failed)" in text
    assert "Invalid rule file" in text


def test_fatal_startup_error_without_slack_url_sends_nothing(env: None, monkeypatch: pytest.MonkeyPatch) -> None:
    async def send(self: SlackNotifier, message: dict[str, object]) -> bool:
        raise AssertionError("should not be called")

    monkeypatch.setattr(SlackNotifier, "send", send)
    assert runner.invoke(cli, ["pr"]).exit_code == 2
