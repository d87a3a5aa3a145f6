"""
命令行入口（CI 里直接跑）。

    aiscan pr   --event-path $GITHUB_EVENT_PATH
    aiscan repo https://github.com/owner/repo
    aiscan serve --port 8000

退出码：0 通过/仅 warning，1 有 error 级规则命中，2 运行失败。
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

import anyio
import httpx
import typer
import uvicorn

from aiscan.analysis.models import AnalysisReport
from aiscan.config import AppConfig
from aiscan.config import load_config_from_env
from aiscan.notify.slack import SlackNotifier
from aiscan.orchestrator import analyze_pull_request_event_file
from aiscan.orchestrator import analyze_repository
from aiscan.orchestrator import build_services
from aiscan.orchestrator import exit_code_for
from aiscan.orchestrator import mark_failed
from aiscan.orchestrator import new_report
from aiscan.report.formatting import build_slack_message
from aiscan.rules.loader import Rule
from aiscan.rules.loader import load_rules

logger = logging.getLogger(__name__)

cli = typer.Typer(
    help="Estimate how much of a pull request or repository is AI-generated.",
    no_args_is_help=True,
    add_completion=False,
)


@cli.callback()
def main(
    log_level: str = typer.Option("INFO", "--log-level", help="Python logging level."),
) -> None:
    logging.basicConfig(
        level=log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


async def _notify_fatal(webhook_url: str, report: AnalysisReport) -> None:
    async with httpx.AsyncClient() as http_client:
        await SlackNotifier(webhook_url=webhook_url, http_client=http_client).send(build_slack_message(report))


def _fail(exc: Exception, prefix: str) -> typer.Exit:
    """运行前的致命错误：尽力发一条 Slack 失败通知（只看 SLACK_WEBHOOK_URL），返回退出码 2。"""
    typer.echo(f"{prefix}: {exc}", err=True)
    webhook_url = os.environ.get("SLACK_WEBHOOK_URL")
    if webhook_url:
        anyio.run(_notify_fatal, webhook_url, mark_failed(new_report(), exc))
    return typer.Exit(2)


def _load_config_and_rules(rules_path: Path | None) -> tuple[AppConfig, list[Rule]]:
    try:
        config = load_config_from_env(os.environ)
        rules = load_rules(rules_path or config.rules_path)
    except (OSError, ValueError) as exc:
        raise _fail(exc, "Configuration error") from exc
    return config, rules


def _echo_summary(report: AnalysisReport) -> None:
    percent = report.ai_percent
    score = "n/a" if percent is None else f"{percent}%"
    typer.echo(f"Status: {report.analysis_status}")
    typer.echo(f"AI probability: {score} ({report.ai_status or 'unknown'})")
    for failure in report.failures:
        typer.echo(f"FAILED: {failure}")
    for warning in report.warnings:
        typer.echo(f"WARNING: {warning}")
    if report.error:
        typer.echo(f"Error: {report.error}", err=True)


async def _run_pull_request(
    config: AppConfig, rules: list[Rule], event_path: Path, repository: str | None
) -> AnalysisReport:
    async with httpx.AsyncClient(timeout=httpx.Timeout(config.http_timeout)) as http_client:
        services = build_services(config=config, http_client=http_client, rules=rules)
        return await analyze_pull_request_event_file(services, event_path, repository)


async def _run_repository(config: AppConfig, rules: list[Rule], repo_url: str, output_dir: Path) -> AnalysisReport:
    async with httpx.AsyncClient(timeout=httpx.Timeout(config.http_timeout)) as http_client:
        services = build_services(config=config, http_client=http_client, rules=rules)
        return await analyze_repository(services, repo_url, output_dir)


@cli.command("pr")
def pr_command(
    event_path: Path | None = typer.Option(
        None, "--event-path", envvar="GITHUB_EVENT_PATH", help="pull_request event JSON."
    ),
    repository: str | None = typer.Option(
        None, "--repository", envvar="GITHUB_REPOSITORY", help="owner/repo, overrides the event's repository."
    ),
    rules_path: Path | None = typer.Option(None, "--rules", help="Rule file (defaults to the bundled rules)."),
) -> None:
    """Analyze the pull request described by a GitHub Actions event file."""
    if event_path is None:
        raise _fail(ValueError("Missing --event-path (or GITHUB_EVENT_PATH)"), "Invalid input")
    config, rules = _load_config_and_rules(rules_path)
    report = anyio.run(_run_pull_request, config, rules, event_path, repository)
    _echo_summary(report)
    raise typer.Exit(exit_code_for(report))


@cli.command("repo")
def repo_command(
    repo_url: str = typer.Argument(..., help="https://github.com/owner/repo"),
    rules_path: Path | None = typer.Option(None, "--rules", help="Rule file (defaults to the bundled rules)."),
    output_dir: Path = typer.Option(Path("."), "--output-dir", help="Where the JSON report is written."),
) -> None:
    """Analyze every code file on a repository's default branch."""
    config, rules = _load_config_and_rules(rules_path)
    report = anyio.run(_run_repository, config, rules, repo_url, output_dir)
    _echo_summary(report)
    raise typer.Exit(exit_code_for(report))


@cli.command("serve")
def serve_command(
    host: str = typer.Option("127.0.0.1", "--host"),
    port: int = typer.Option(8000, "--port"),
) -> None:
    """Run the GitHub webhook server."""
    uvicorn.run("aiscan.main:build_app", factory=True, host=host, port=port)


if __name__ == "__main__":
    cli()
