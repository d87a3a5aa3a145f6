"""
Verdict Aggregator（确定性，不依赖 LLM）。

用法：
    state = start_aggregation(total_files=n)
    state = fold_verdict(state, index, batch, verdict, quality_ranks)
    state = fold_error(state, index, batch, error)
    report = finalize(state)

说明：
- 累加器是不可变值，每一步返回新 state，便于脱离网络单独测试
- 出错的 batch 不计入概率权重，但在 rationale 里留一行错误记录
"""

from __future__ import annotations

from collections.abc import Mapping

from aiscan.analysis.models import DEFAULT_QUALITY_RANKS
from aiscan.analysis.models import AggregateReport
from aiscan.analysis.models import AggregateState
from aiscan.analysis.models import Batch
from aiscan.analysis.models import BatchVerdict


def start_aggregation(total_files: int) -> AggregateState:
    if total_files <= 0:
        raise ValueError("total_files must be > 0")
    return AggregateState(total_files=total_files)


def normalize_quality(value: str) -> str:
    return value.strip().lower()


def quality_rank(value: str, quality_ranks: Mapping[str, int]) -> int:
    """未知的质量字符串按最低档（0）处理。"""
    return quality_ranks.get(normalize_quality(value), 0)


def rollup_quality(current: str | None, incoming: str, quality_ranks: Mapping[str, int]) -> str:
    """第一个值直接作为种子；之后只有严格更低的档位才会降级。"""
    incoming = normalize_quality(incoming)
    if current is None:
        return incoming
    if quality_rank(incoming, quality_ranks) < quality_rank(current, quality_ranks):
        return incoming
    return current


def merge_patterns(existing: tuple[str, ...], incoming: tuple[str, ...] | list[str]) -> tuple[str, ...]:
    """按精确字符串去重，保留首次出现的顺序。"""
    merged = list(existing)
    seen = set(existing)
    for pattern in incoming:
        if pattern not in seen:
            seen.add(pattern)
            merged.append(pattern)
    return tuple(merged)


def fold_verdict(
    state: AggregateState,
    batch_index: int,
    batch: Batch,
    verdict: BatchVerdict,
    quality_ranks: Mapping[str, int] = DEFAULT_QUALITY_RANKS,
) -> AggregateState:
    weight = batch.file_count / state.total_files
    line = f"Batch {batch_index + 1} ({batch.file_count} files): {verdict.rationale}"
    return state.model_copy(
        update={
            "weighted_ai_probability": state.weighted_ai_probability + verdict.ai_probability * weight,
            "weighted_file_count": state.weighted_file_count + batch.file_count,
            "patterns": merge_patterns(state.patterns, verdict.patterns_detected),
            "code_quality": rollup_quality(state.code_quality, verdict.code_quality, quality_ranks),
            "rationale_lines": state.rationale_lines + (line,),
            "total_tokens": state.total_tokens + verdict.tokens_used,
            "succeeded_batches": state.succeeded_batches + 1,
        }
    )


def fold_error(state: AggregateState, batch_index: int, batch: Batch, error: BaseException | str) -> AggregateState:
    line = f"Batch {batch_index + 1} ({batch.file_count} files): Error during analysis - {error}"
    return state.model_copy(
        update={
            "rationale_lines": state.rationale_lines + (line,),
            "failed_batches": state.failed_batches + 1,
        }
    )


def finalize(state: AggregateState) -> AggregateReport:
    return AggregateReport(
        weighted_ai_probability=min(max(state.weighted_ai_probability, 0.0), 1.0),
        weighted_file_count=state.weighted_file_count,
        patterns=list(state.patterns),
        code_quality=state.code_quality,
        rationale="\n".join(state.rationale_lines),
        total_tokens=state.total_tokens,
        succeeded_batches=state.succeeded_batches,
        failed_batches=state.failed_batches,
    )
