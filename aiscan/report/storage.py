from __future__ import annotations

import logging
import time
from pathlib import Path

from aiscan.analysis.models import AnalysisReport

logger = logging.getLogger(__name__)


def build_report_filename(owner: str, repo: str, epoch_ms: int | None = None) -> str:
    stamp = epoch_ms if epoch_ms is not None else int(time.time() * 1000)
    return f"report-{owner}-{repo}-{stamp}.json"


def save_report(report: AnalysisReport, path: Path) -> Path:
    """把报告写成 JSON（覆盖写，issue_url 补上后会再写一次）。"""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(report.model_dump_json(indent=2), encoding="utf-8")
    logger.info(f"Report saved to {path}")
    return path
