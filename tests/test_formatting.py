from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path

from aiscan.analysis.models import AnalysisReport
from aiscan.analysis.models import FileFetchError
from aiscan.report.formatting import ISSUE_RATIONALE_LIMIT
from aiscan.report.formatting import SLACK_RATIONALE_LIMIT
from aiscan.report.formatting import build_slack_message
from aiscan.report.formatting import format_issue_body
from aiscan.report.formatting import format_issue_title
from aiscan.report.formatting import format_review_comment
from aiscan.report.formatting import truncate
from aiscan.report.storage import build_report_filename
from aiscan.report.storage import save_report


def _report(**overrides: object) -> AnalysisReport:
    values: dict[str, object] = {
        "analysis_date": "2026-01-01T00:00:00+00:00",
        "analysis_status": "completed",
        "repository": "octo/hello",
        "url": "https://github.com/octo/hello",
        "files_total": 4,
        "files_filtered": 3,
        "lines_added": 120,
        "ai_probability": 0.58,
        "ai_status": "ai_assisted",
        "code_quality": "poor",
        "patterns_detected": ["emoji", "verbose naming"],
        "rationale": "Batch 1 (3 files): looks generated",
        "token_usage": 900,
    }
    values.update(overrides)
    return AnalysisReport.model_validate(values)


def _texts(message: dict[str, object]) -> str:
    return json.dumps(message, ensure_ascii=False)


def test_truncate() -> None:
    assert truncate("abc", 3) == "abc"
    assert truncate("abcdef", 3) == "abc... (truncated)"


def test_review_comment_sections() -> None:
    body = format_review_comment(_report())
    assert body.startswith("## AI Code Review Report")
    assert "| AI Probability | **58.0%** |" in body
    assert "| Assessment | **⚠️ Highly AI-Assisted** |" in body
    assert "| Files Analyzed | 3 of 4 |" in body
    assert "- emoji\n- verbose naming" in body
    assert "Policy Failures" not in body
    assert "Policy Warnings" not in body


def test_review_comment_lists_rule_results_and_failed_batches() -> None:
    body = format_review_comment(_report(failures=["High AI confidence"], warnings=["No tests"], failed_batches=2))
    assert "### ❌ Policy Failures\n- High AI confidence" in body
    assert "### ⚠️ Policy Warnings\n- No tests" in body
    assert "> 2 batch(es) could not be analyzed" in body


def test_issue_body_truncates_rationale_and_lists_fetch_errors() -> None:
    report = _report(
        rationale="x" * (ISSUE_RATIONALE_LIMIT + 10),
        fetch_errors=[FileFetchError(path="big.py", error="GitHub API error 403: too large")],
    )
    body = format_issue_body(report)
    assert "x" * ISSUE_RATIONALE_LIMIT + "... (truncated)" in body
    assert "x" * (ISSUE_RATIONALE_LIMIT + 1) not in body
    assert "### Policy Failures\nNone" in body
    assert "- `big.py`: GitHub API error 403: too large" in body
    assert format_issue_title(report) == "AI Code Analysis Report - 2026-01-01T00:00:00+00:00"


def test_slack_message_for_completed_run() -> None:
    now = datetime(2026, 1, 2, tzinfo=timezone.utc)
    report = _report(pr_number=7, stars=12, forks=3, rationale="y" * (SLACK_RATIONALE_LIMIT + 5))
    message = build_slack_message(report, now=now)
    blocks = message["blocks"]
    assert isinstance(blocks, list)
    assert blocks[0]["text"]["text"] == "🔍 AI Code Analysis"
    assert blocks[-1]["type"] == "context"
    text = _texts(message)
    assert "<https://github.com/octo/hello|octo/hello> #7" in text
    assert "*Stars:*\\n12" in text
    assert "58.0% likelihood" in text
    assert "y" * SLACK_RATIONALE_LIMIT + "... (truncated)" in text
    assert "2026-01-02T00:00:00+00:00" in text


def test_slack_message_for_failed_run() -> None:
    report = AnalysisReport(analysis_date="d", analysis_status="failed", error="token expired")
    message = build_slack_message(report)
    text = _texts(message)
    assert message["blocks"][0]["text"]["text"] == "🔍 AI Code Analysis (Failed)"  # type: ignore[index]
    assert "Unknown repository" in text
    assert "token expired" in text
    assert "AI Score" not in text


def test_report_storage(tmp_path: Path) -> None:
    assert build_report_filename("octo", "hello", epoch_ms=1700000000000) == "report-octo-hello-1700000000000.json"
    path = save_report(_report(), tmp_path / "out" / "r.json")
    saved = AnalysisReport.model_validate_json(path.read_text(encoding="utf-8"))
    assert saved == _report()
