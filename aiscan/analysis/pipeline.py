"""
分析 Pipeline（核心流程编排，不碰 GitHub / Slack）。

流程：
- Step 1: File Filter（非 AI）
- Step 2: Statistics Accumulator（非 AI）
- Step 3: Batch Partitioner（非 AI）
- Step 4: 逐 batch 调用分类器（严格串行、单次尝试；失败只记录不中断）
- Step 5: Verdict Aggregator 汇总
- Step 6: 规则求值 -> failures / warnings

没有可分析的文件时直接短路为 `skipped`，不会调用分类器和规则。
"""

from __future__ import annotations

import logging
import time
from collections.abc import Sequence

from aiscan.analysis.aggregator import finalize
from aiscan.analysis.aggregator import fold_error
from aiscan.analysis.aggregator import fold_verdict
from aiscan.analysis.aggregator import start_aggregation
from aiscan.analysis.batching import partition_into_batches
from aiscan.analysis.classifier import BatchClassifier
from aiscan.analysis.classifier import estimate_tokens
from aiscan.analysis.filters import filter_changed_files
from aiscan.analysis.models import AIStatus
from aiscan.analysis.models import AnalysisReport
from aiscan.analysis.models import ChangedFile
from aiscan.analysis.models import EvaluationContext
from aiscan.analysis.profiles import AIThresholds
from aiscan.analysis.profiles import AnalysisProfile
from aiscan.analysis.stats import accumulate_file_stats
from aiscan.rules.loader import Rule
from aiscan.rules.loader import evaluate_rules

logger = logging.getLogger(__name__)

NOTHING_TO_ANALYZE = "No code files to analyze after filtering"


def classify_ai_status(probability: float, thresholds: AIThresholds) -> AIStatus:
    if probability >= thresholds.ai_generated:
        return "ai_generated"
    if probability >= thresholds.ai_assisted:
        return "ai_assisted"
    return "human"


def truncate_for_classifier(file: ChangedFile, max_chars: int | None) -> ChangedFile:
    """仓库模式下完整文件可能很大，只截断送给分类器的 content（统计仍用原文）。"""
    if max_chars is None or file.patch or file.content is None or len(file.content) <= max_chars:
        return file
    truncated = file.content[:max_chars] + "\n... (content truncated for analysis)"
    return file.model_copy(update={"content": truncated})


async def run_analysis(
    files: Sequence[ChangedFile],
    classifier: BatchClassifier,
    rules: Sequence[Rule],
    profile: AnalysisProfile,
    report: AnalysisReport,
) -> AnalysisReport:
    """
    跑一次完整分析，返回填充好的报告副本（不修改传入的 report）。

    - files：已拉取的变更文件（PR patch 或整仓 content）
    - classifier：按 batch 调用的分类器
    - rules：已加载的规则集
    - profile：batch 上限、打分刻度、阈值等
    """
    started = time.monotonic()
    filtered = filter_changed_files(files, profile.filter_policy)
    logger.info(f"Found {len(files)} file(s), {len(filtered)} left after filtering")

    if not filtered:
        logger.info(NOTHING_TO_ANALYZE)
        return report.model_copy(
            update={
                "analysis_status": "skipped",
                "error": NOTHING_TO_ANALYZE,
                "files_total": len(files),
                "files_filtered": 0,
            }
        )

    stats = accumulate_file_stats(filtered)
    prepared = [truncate_for_classifier(f, profile.max_file_chars) for f in filtered]
    batches = partition_into_batches(
        prepared,
        max_batch_bytes=profile.max_batch_bytes,
        max_files_per_batch=profile.max_files_per_batch,
    )
    estimated = sum(estimate_tokens(f.body) for f in prepared)
    logger.info(
        f"Statistics: lines_added={stats.lines_added}, tests_changed={stats.tests_changed}, "
        f"license_comment={stats.license_comment}, batches={len(batches)}, estimated_tokens~{estimated}"
    )

    state = start_aggregation(total_files=len(filtered))
    for index, batch in enumerate(batches):
        logger.info(
            f"Analyzing batch {index + 1} of {len(batches)}: "
            f"files={batch.file_count}, size={batch.total_size / 1024:.2f} KB"
        )
        try:
            verdict = await classifier.classify(batch, index)
        except Exception as exc:
            logger.error(f"Error analyzing batch {index + 1}: {exc}")
            state = fold_error(state, index, batch, exc)
            continue
        state = fold_verdict(state, index, batch, verdict, profile.quality_ranks)
        logger.info(
            f"Batch {index + 1}: ai_probability={verdict.ai_probability * 100:.1f}%, "
            f"quality={verdict.code_quality}, patterns={len(verdict.patterns_detected)}"
        )

    aggregate = finalize(state)
    context = EvaluationContext(
        ai_prob=aggregate.weighted_ai_probability,
        lines_added=stats.lines_added,
        tests_changed=stats.tests_changed,
        license_comment=stats.license_comment,
    )
    policy = evaluate_rules(rules, context)
    logger.info(f"Policy evaluation: failures={len(policy.failures)}, warnings={len(policy.warnings)}")

    duration = round(time.monotonic() - started, 2)
    return report.model_copy(
        update={
            "analysis_status": "partial" if aggregate.failed_batches else "completed",
            "files_total": len(files),
            "files_filtered": len(filtered),
            "batches": len(batches),
            "estimated_tokens": estimated,
            "lines_added": stats.lines_added,
            "tests_changed": stats.tests_changed,
            "license_comment": stats.license_comment,
            "ai_probability": aggregate.weighted_ai_probability,
            "ai_status": classify_ai_status(aggregate.weighted_ai_probability, profile.thresholds),
            "code_quality": aggregate.code_quality,
            "patterns_detected": aggregate.patterns,
            "rationale": aggregate.rationale,
            "token_usage": aggregate.total_tokens,
            "failed_batches": aggregate.failed_batches,
            "failures": policy.failures,
            "warnings": policy.warnings,
            "analysis_duration_seconds": duration,
        }
    )
