"""
Orchestrator（外部协作方 + 核心 pipeline 的装配）。

两条入口流程：
- PR：event -> list PR files -> pipeline -> PR review -> Slack
- 整仓：repo URL -> tree + contents -> pipeline -> JSON 报告落盘 -> issue（创建后立即关闭）-> Slack

错误策略（fail soft）：
- 致命错误（event 不合法、仓库 URL 不合法、GitHub 主流程失败）-> status=failed，仍然尝试发 Slack
- Slack 失败只记日志
"""

from __future__ import annotations

import json
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

import httpx

from aiscan.analysis.classifier import LLMBatchClassifier
from aiscan.analysis.models import AnalysisReport
from aiscan.analysis.pipeline import run_analysis
from aiscan.analysis.profiles import PULL_REQUEST_PROFILE
from aiscan.analysis.profiles import REPOSITORY_PROFILE
from aiscan.analysis.profiles import AnalysisProfile
from aiscan.config import AppConfig
from aiscan.github.adapter import build_changed_files_from_pull_request_files
from aiscan.github.adapter import fetch_repository_files
from aiscan.github.adapter import parse_repository_slug
from aiscan.github.adapter import parse_repository_url
from aiscan.github.adapter import select_candidate_blobs
from aiscan.github.client import GitHubAPIError
from aiscan.github.client import GitHubClient
from aiscan.github.schemas import GitHubPullRequestWebhookEvent
from aiscan.llm.client import OpenAICompatLLMClient
from aiscan.notify.slack import SlackNotifier
from aiscan.report.formatting import build_slack_message
from aiscan.report.formatting import format_issue_body
from aiscan.report.formatting import format_issue_title
from aiscan.report.formatting import format_review_comment
from aiscan.report.storage import build_report_filename
from aiscan.report.storage import save_report
from aiscan.rules.loader import Rule

logger = logging.getLogger(__name__)

ISSUE_LABELS = ["ai-analysis", "automated-report"]


@dataclass(frozen=True)
class AnalysisServices:
    """一次运行的外部依赖集合。"""

    github_client: GitHubClient
    llm_client: OpenAICompatLLMClient
    notifier: SlackNotifier
    rules: list[Rule]


def build_services(config: AppConfig, http_client: httpx.AsyncClient, rules: list[Rule]) -> AnalysisServices:
    return AnalysisServices(
        github_client=GitHubClient(
            api_base_url=str(config.github.api_base_url),
            token=config.github.token,
            http_client=http_client,
        ),
        llm_client=OpenAICompatLLMClient(
            api_key=config.llm.api_key,
            base_url=str(config.llm.base_url),
            http_client=http_client,
            model=config.llm.model,
        ),
        notifier=SlackNotifier(
            webhook_url=str(config.slack_webhook_url) if config.slack_webhook_url else None,
            http_client=http_client,
        ),
        rules=rules,
    )


def new_report() -> AnalysisReport:
    return AnalysisReport(analysis_date=datetime.now(timezone.utc).isoformat())


def mark_failed(report: AnalysisReport, exc: BaseException) -> AnalysisReport:
    return report.model_copy(update={"analysis_status": "failed", "error": str(exc) or type(exc).__name__})


def exit_code_for(report: AnalysisReport) -> int:
    """0：通过或仅 warning；1：有 error 级规则命中；2：运行失败。"""
    if report.analysis_status == "failed":
        return 2
    if report.failures:
        return 1
    return 0


async def notify(services: AnalysisServices, report: AnalysisReport) -> None:
    await services.notifier.send(build_slack_message(report))


def load_pull_request_event(event_path: str | Path) -> GitHubPullRequestWebhookEvent:
    """读取 GitHub Actions 的 GITHUB_EVENT_PATH 文件。"""
    raw = Path(event_path).read_text(encoding="utf-8")
    return GitHubPullRequestWebhookEvent.model_validate(json.loads(raw))


async def analyze_pull_request(
    services: AnalysisServices,
    event: GitHubPullRequestWebhookEvent,
    profile: AnalysisProfile = PULL_REQUEST_PROFILE,
    repository: tuple[str, str] | None = None,
) -> AnalysisReport:
    """repository：覆盖 event 里的 (owner, repo)，对应 Actions 的 GITHUB_REPOSITORY。"""
    pr = event.pull_request
    owner, repo = repository or (event.repository.owner.login, event.repository.name)
    report = new_report().model_copy(
        update={
            "repository": f"{owner}/{repo}",
            "url": pr.html_url or event.repository.html_url,
            "pr_number": pr.number,
            "pr_title": pr.title,
            "head_sha": pr.head.sha,
        }
    )
    logger.info(f"Analyzing PR #{pr.number} in {owner}/{repo}")

    try:
        pr_files = await services.github_client.list_pull_request_files(owner=owner, repo=repo, pull_number=pr.number)
        report = await run_analysis(
            files=build_changed_files_from_pull_request_files(pr_files),
            classifier=LLMBatchClassifier(llm_client=services.llm_client, profile=profile),
            rules=services.rules,
            profile=profile,
            report=report,
        )
        if report.analysis_status != "skipped":
            await services.github_client.create_pull_request_review(
                owner=owner,
                repo=repo,
                pull_number=pr.number,
                body=format_review_comment(report),
                commit_id=pr.head.sha,
            )
    except Exception as exc:
        logger.exception(f"Error in analysis process: {exc}")
        report = mark_failed(report, exc)

    await notify(services, report)
    return report


async def analyze_pull_request_event_file(
    services: AnalysisServices,
    event_path: str | Path,
    repository: str | None = None,
) -> AnalysisReport:
    try:
        event = load_pull_request_event(event_path)
        slug = parse_repository_slug(repository) if repository else None
    except (OSError, ValueError) as exc:
        logger.error(f"Invalid pull request event at {event_path}: {exc}")
        report = mark_failed(new_report(), exc)
        await notify(services, report)
        return report
    return await analyze_pull_request(services, event, repository=slug)


async def _publish_issue(services: AnalysisServices, owner: str, repo: str, report: AnalysisReport) -> str | None:
    """issue 只是留档，失败不影响本次结果。"""
    try:
        issue = await services.github_client.create_and_close_issue(
            owner=owner,
            repo=repo,
            title=format_issue_title(report),
            body=format_issue_body(report),
            labels=ISSUE_LABELS,
        )
    except (GitHubAPIError, httpx.HTTPError) as exc:
        logger.error(f"Error with issue creation/closing: {exc}")
        return None
    return issue.html_url


async def analyze_repository(
    services: AnalysisServices,
    repo_url: str,
    output_dir: Path,
    profile: AnalysisProfile = REPOSITORY_PROFILE,
) -> AnalysisReport:
    report = new_report().model_copy(update={"url": repo_url})
    logger.info(f"Analyzing repository: {repo_url}")

    try:
        owner, repo = parse_repository_url(repo_url)
        metadata = await services.github_client.get_repository(owner=owner, repo=repo)
        report = report.model_copy(
            update={
                "repository": f"{owner}/{repo}",
                "description": metadata.description or "None",
                "stars": metadata.stargazers_count,
                "forks": metadata.forks_count,
                "default_branch": metadata.default_branch,
            }
        )

        tree = await services.github_client.list_repository_tree(owner=owner, repo=repo, branch=metadata.default_branch)
        candidates = select_candidate_blobs(tree, profile.filter_policy)
        logger.info(f"Found {len(candidates)} code files for analysis")
        files, fetch_errors = await fetch_repository_files(
            services.github_client,
            owner=owner,
            repo=repo,
            branch=metadata.default_branch,
            items=candidates,
        )
        report = await run_analysis(
            files=files,
            classifier=LLMBatchClassifier(llm_client=services.llm_client, profile=profile),
            rules=services.rules,
            profile=profile,
            report=report.model_copy(update={"fetch_errors": fetch_errors}),
        )

        report_path = save_report(report, output_dir / build_report_filename(owner, repo))
        issue_url = await _publish_issue(services, owner, repo, report)
        if issue_url:
            report = report.model_copy(update={"issue_url": issue_url})
            save_report(report, report_path)
    except Exception as exc:
        logger.exception(f"Error during repository analysis: {exc}")
        report = mark_failed(report, exc)

    await notify(services, report)
    return report


def build_github_webhook_handler(
    services: AnalysisServices,
) -> Callable[[GitHubPullRequestWebhookEvent], Awaitable[None]]:
    """装配 webhook handler：把 orchestrator 流程绑定给 webhook 路由调用。"""

    async def handle(event: GitHubPullRequestWebhookEvent) -> None:
        await analyze_pull_request(services, event)

    return handle
