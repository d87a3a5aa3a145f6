"""
报告渲染（确定性输出，不依赖 LLM）。

- PR review 正文（markdown 表格）
- 整仓扫描的 issue 正文
- Slack block layout
"""

from __future__ import annotations

from datetime import datetime, timezone

from aiscan.analysis.models import AnalysisReport

ISSUE_RATIONALE_LIMIT = 5000
SLACK_RATIONALE_LIMIT = 2900

_AI_STATUS_LABELS = {
    "ai_generated": "⚠️ Fully AI-Generated",
    "ai_assisted": "⚠️ Highly AI-Assisted",
    "human": "Likely Human-Written",
}


def truncate(text: str, limit: int) -> str:
    if len(text) <= limit:
        return text
    return text[:limit] + "... (truncated)"


def _yes_no(value: bool) -> str:
    return "Yes" if value else "No"


def _bullets(items: list[str], empty: str, bullet: str = "-") -> str:
    if not items:
        return empty
    return "\n".join(f"{bullet} {item}" for item in items)


def _percent(report: AnalysisReport) -> str:
    percent = report.ai_percent
    return "n/a" if percent is None else f"{percent}%"


def ai_status_label(report: AnalysisReport) -> str:
    if report.ai_status is None:
        return "Unknown"
    return _AI_STATUS_LABELS[report.ai_status]


def format_review_comment(report: AnalysisReport) -> str:
    """PR review 正文：指标表 + 模式 + 规则结果 + 逐 batch 摘要。"""
    duration = (
        f"{report.analysis_duration_seconds} seconds" if report.analysis_duration_seconds is not None else "Unknown"
    )
    lines: list[str] = [
        "## AI Code Review Report",
        "",
        "| Metric | Value |",
        "|--------|-------|",
        f"| AI Probability | **{_percent(report)}** |",
        f"| Assessment | **{ai_status_label(report)}** |",
        f"| Files Analyzed | {report.files_filtered} of {report.files_total} |",
        f"| Lines Added | {report.lines_added} |",
        f"| Unit Tests Modified | {_yes_no(report.tests_changed)} |",
        f"| License Comment Present | {_yes_no(report.license_comment)} |",
        f"| Code Quality | {report.code_quality or 'Unknown'} |",
        f"| Analysis Time (UTC) | {report.analysis_date} |",
        f"| Analysis Duration | {duration} |",
        f"| Estimated Token Usage | {report.token_usage or 'Unknown'} |",
        "",
        "### AI Detection Patterns",
        _bullets(report.patterns_detected, empty="None detected"),
        "",
    ]
    if report.failures:
        lines += ["### ❌ Policy Failures", _bullets(report.failures, empty=""), ""]
    if report.warnings:
        lines += ["### ⚠️ Policy Warnings", _bullets(report.warnings, empty=""), ""]
    if report.failed_batches:
        lines += [f"> {report.failed_batches} batch(es) could not be analyzed; the score covers the rest.", ""]
    lines += [
        "### Analysis Summary",
        report.rationale or "No summary available",
        "",
        "---",
        "*This review was automatically generated by the AI Code Review Pipeline.*",
    ]
    return "\n".join(lines)


def format_issue_title(report: AnalysisReport) -> str:
    return f"AI Code Analysis Report - {report.analysis_date}"


def format_issue_body(report: AnalysisReport) -> str:
    """整仓扫描的 issue 正文（rationale 截断到 5000 字符）。"""
    lines: list[str] = [
        "## AI Code Analysis Report",
        "",
        "| Metric | Value |",
        "|--------|-------|",
        f"| Repository | {report.repository} |",
        f"| Analysis Date (UTC) | {report.analysis_date} |",
        f"| AI Probability | **{_percent(report)}** |",
        f"| Assessment | **{ai_status_label(report)}** |",
        f"| Files Analyzed | {report.files_filtered} |",
        f"| Total Lines | {report.lines_added} |",
        f"| Code Quality | {report.code_quality or 'Unknown'} |",
        f"| License Detected | {_yes_no(report.license_comment)} |",
        f"| Tests Found | {_yes_no(report.tests_changed)} |",
        f"| Status | {report.analysis_status} |",
        "",
        "### AI Patterns Detected",
        _bullets(report.patterns_detected, empty="None detected"),
        "",
        "### Policy Failures",
        _bullets(report.failures, empty="None"),
        "",
        "### Policy Warnings",
        _bullets(report.warnings, empty="None"),
        "",
    ]
    if report.fetch_errors:
        lines += [
            "### Files Not Analyzed",
            _bullets([f"`{e.path}`: {e.error}" for e in report.fetch_errors], empty=""),
            "",
        ]
    lines += [
        "### Analysis Summary",
        truncate(report.rationale, ISSUE_RATIONALE_LIMIT) if report.rationale else "No summary available",
        "",
        "---",
        "*This issue was automatically generated and closed by the AI Code Review Pipeline.*",
    ]
    return "\n".join(lines)


def _mrkdwn(text: str) -> dict[str, str]:
    return {"type": "mrkdwn", "text": text}


def build_slack_message(report: AnalysisReport, now: datetime | None = None) -> dict[str, object]:
    """Slack incoming-webhook 的 block layout；字段缺失时显示 incomplete。"""
    timestamp = (now or datetime.now(timezone.utc)).isoformat()
    if report.repository:
        repo_info = f"<{report.url}|{report.repository}>" if report.url else report.repository
    else:
        repo_info = "Unknown repository"
    if report.pr_number is not None:
        repo_info = f"{repo_info} #{report.pr_number}"

    header = "🔍 AI Code Analysis" + (" (Failed)" if report.error and report.analysis_status == "failed" else "")
    blocks: list[dict[str, object]] = [
        {"type": "header", "text": {"type": "plain_text", "text": header}},
        {
            "type": "section",
            "fields": [_mrkdwn(f"*Repository:*\n{repo_info}"), _mrkdwn(f"*Status:*\n{report.analysis_status}")],
        },
    ]
    if report.stars is not None:
        blocks.append(
            {
                "type": "section",
                "fields": [_mrkdwn(f"*Stars:*\n{report.stars}"), _mrkdwn(f"*Forks:*\n{report.forks or 0}")],
            }
        )
    if report.files_total > 0:
        blocks.append(
            {
                "type": "section",
                "fields": [
                    _mrkdwn(f"*Files Analyzed:*\n{report.files_filtered} of {report.files_total}"),
                    _mrkdwn(f"*Lines Added:*\n{report.lines_added}"),
                ],
            }
        )
    if report.ai_probability is not None:
        blocks.append(
            {
                "type": "section",
                "fields": [
                    _mrkdwn(f"*AI Score:*\n{_percent(report)} likelihood ({ai_status_label(report)})"),
                    _mrkdwn(f"*Code Quality:*\n{report.code_quality or 'Analysis incomplete'}"),
                ],
            }
        )
        patterns = _bullets(report.patterns_detected, empty="None detected", bullet="  •")
        blocks.append({"type": "section", "text": _mrkdwn(f"*AI Patterns Detected:*\n{patterns}")})
        if report.rationale:
            summary = truncate(report.rationale, SLACK_RATIONALE_LIMIT)
            blocks.append({"type": "section", "text": _mrkdwn(f"*Analysis Summary:*\n{summary}")})
        failures = _bullets(report.failures, empty="None", bullet="  •")
        warnings = _bullets(report.warnings, empty="None", bullet="  •")
        blocks.append({"type": "section", "text": _mrkdwn(f"*Policy Failures:*\n{failures}")})
        blocks.append({"type": "section", "text": _mrkdwn(f"*Policy Warnings:*\n{warnings}")})
    if report.error:
        blocks.append({"type": "section", "text": _mrkdwn(f"*Error:*\n```{report.error}```")})
    blocks.append({"type": "context", "elements": [_mrkdwn(f"Analysis performed at {timestamp} (UTC)")]})
    return {"blocks": blocks}
