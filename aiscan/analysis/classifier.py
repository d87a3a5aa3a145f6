"""
Batch 分类器：一次 LLM 调用判断一个 batch 的 AI 生成概率。

- prompt 与打分刻度来自 `AnalysisProfile`
- 这里不吞异常：单 batch 失败由 pipeline 降级处理
"""

from __future__ import annotations

import math
from typing import Protocol

from aiscan.analysis.models import Batch
from aiscan.analysis.models import BatchVerdict
from aiscan.analysis.models import ClassifierOutput
from aiscan.analysis.profiles import AnalysisProfile
from aiscan.llm.client import ChatMessage
from aiscan.llm.client import OpenAICompatLLMClient

TOOL_NAME = "report_ai_code_analysis"
TOOL_DESCRIPTION = "Report whether the submitted code looks AI-generated"


class BatchClassifier(Protocol):
    """分类器接口协议（pipeline 只依赖它，测试里可以换成假实现）。"""

    async def classify(self, batch: Batch, batch_index: int) -> BatchVerdict: ...


def render_batch_payload(batch: Batch) -> str:
    """把 batch 里的文件拼成 markdown：diff 用 ```diff 围起来，完整内容用普通代码块。"""
    parts: list[str] = []
    for f in batch.files:
        if f.patch:
            parts.append(f"### {f.path}\n```diff\n{f.patch}\n```")
        else:
            parts.append(f"### {f.path}\n```\n{f.content or ''}\n```")
    return "\n\n".join(parts)


def estimate_tokens(text: str) -> int:
    """粗估 token 数：约 4 个字符一个 token。"""
    return math.ceil(len(text) / 4)


def normalize_probability(raw: float, scale: float) -> float:
    """把 0-scale 的分数换算到 [0, 1] 并截断越界值。"""
    return min(max(raw / scale, 0.0), 1.0)


def to_batch_verdict(output: ClassifierOutput, tokens_used: int, scale: float) -> BatchVerdict:
    return BatchVerdict(
        ai_probability=normalize_probability(output.ai_prob, scale),
        patterns_detected=tuple(output.patterns_detected),
        code_quality=output.code_quality,
        rationale=output.rationale,
        tokens_used=tokens_used,
    )


class LLMBatchClassifier:
    def __init__(self, llm_client: OpenAICompatLLMClient, profile: AnalysisProfile) -> None:
        self._llm_client = llm_client
        self._profile = profile

    async def classify(self, batch: Batch, batch_index: int) -> BatchVerdict:
        payload = render_batch_payload(batch)
        messages = [
            ChatMessage(role="system", content=self._profile.system_prompt),
            ChatMessage(role="user", content=payload),
        ]
        output, tokens_used = await self._llm_client.complete_tool_call(
            messages=messages,
            tool_name=TOOL_NAME,
            description=TOOL_DESCRIPTION,
            schema=ClassifierOutput,
        )
        # 网关不返回 usage 时退回粗估
        tokens_used = tokens_used or estimate_tokens(payload)
        return to_batch_verdict(output=output, tokens_used=tokens_used, scale=self._profile.probability_scale)
