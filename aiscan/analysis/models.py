"""
AI 检测领域模型（Pydantic）。

用途：
- 明确 filter -> batch -> classify -> aggregate -> rules 各阶段输入/输出的数据结构
- 作为 LLM tool-call 输出的 schema 校验（`ClassifierOutput`）

约定：
- 概率统一用 [0, 1]；展示层再乘 100
- 只读数据（文件、batch、verdict、规则上下文）一律 frozen
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, computed_field

AnalysisStatus = Literal["started", "skipped", "completed", "partial", "failed"]
AIStatus = Literal["human", "ai_assisted", "ai_generated"]
Severity = Literal["error", "warning"]

DEFAULT_QUALITY_RANKS: dict[str, int] = {"poor": 0, "average": 1, "good": 2, "excellent": 3}


class ChangedFile(BaseModel):
    """单个待分析文件：PR 模式带 patch，仓库模式带完整 content。"""

    model_config = ConfigDict(frozen=True)

    path: str
    additions: int = 0
    patch: str | None = None
    content: str | None = None

    @property
    def body(self) -> str:
        """送给分类器的文本（patch 优先）。"""
        if self.patch:
            return self.patch
        return self.content or ""

    @property
    def byte_size(self) -> int:
        return len(self.body.encode("utf-8"))


class Batch(BaseModel):
    """一次分类器调用的文件组（非空、保持输入顺序）。"""

    model_config = ConfigDict(frozen=True)

    files: tuple[ChangedFile, ...]

    @computed_field
    @property
    def total_size(self) -> int:
        return sum(f.byte_size for f in self.files)

    @computed_field
    @property
    def file_count(self) -> int:
        return len(self.files)


class ClassifierOutput(BaseModel):
    """LLM tool-call 的原始参数（ai_prob 仍是 profile 的刻度：0-100 或 0-1）。"""

    ai_prob: float = Field(description="Likelihood that the code is AI-generated")
    patterns_detected: list[str] = Field(description="Specific patterns indicating AI generation")
    code_quality: str = Field(description="Assessment of code quality (poor, average, good, excellent)")
    rationale: str = Field(description="Detailed explanation of the analysis")


class BatchVerdict(BaseModel):
    """单个 batch 的分类结论（概率已归一到 [0, 1]）。"""

    model_config = ConfigDict(frozen=True)

    ai_probability: float = Field(ge=0.0, le=1.0)
    patterns_detected: tuple[str, ...] = ()
    code_quality: str
    rationale: str
    tokens_used: int = 0


class FileStats(BaseModel):
    """Statistics Accumulator 的三个标量信号。"""

    model_config = ConfigDict(frozen=True)

    lines_added: int = 0
    tests_changed: bool = False
    license_comment: bool = False


class AggregateState(BaseModel):
    """逐 batch 折叠的累加器；每一步返回新值，不原地修改。"""

    model_config = ConfigDict(frozen=True)

    total_files: int
    weighted_ai_probability: float = 0.0
    weighted_file_count: int = 0
    patterns: tuple[str, ...] = ()
    code_quality: str | None = None
    rationale_lines: tuple[str, ...] = ()
    total_tokens: int = 0
    succeeded_batches: int = 0
    failed_batches: int = 0


class AggregateReport(BaseModel):
    """所有 batch 折叠完成后的最终聚合结果。"""

    model_config = ConfigDict(frozen=True)

    weighted_ai_probability: float
    weighted_file_count: int
    patterns: list[str]
    code_quality: str | None
    rationale: str
    total_tokens: int
    succeeded_batches: int
    failed_batches: int


class EvaluationContext(BaseModel):
    """规则条件可见的全部变量（且仅此四个）。"""

    model_config = ConfigDict(frozen=True)

    ai_prob: float
    lines_added: int
    tests_changed: bool
    license_comment: bool


class PolicyResult(BaseModel):
    failures: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)


class FileFetchError(BaseModel):
    """仓库模式下单文件拉取失败的记录（不参与统计）。"""

    path: str
    error: str


class AnalysisReport(BaseModel):
    """一次运行的完整报告（可直接落盘为 JSON）。"""

    analysis_date: str
    analysis_status: AnalysisStatus = "started"
    error: str | None = None

    repository: str | None = None
    url: str | None = None
    pr_number: int | None = None
    pr_title: str | None = None
    head_sha: str | None = None
    description: str | None = None
    stars: int | None = None
    forks: int | None = None
    default_branch: str | None = None

    files_total: int = 0
    files_filtered: int = 0
    batches: int = 0
    estimated_tokens: int = 0
    fetch_errors: list[FileFetchError] = Field(default_factory=list)

    lines_added: int = 0
    tests_changed: bool = False
    license_comment: bool = False

    ai_probability: float | None = None
    ai_status: AIStatus | None = None
    code_quality: str | None = None
    patterns_detected: list[str] = Field(default_factory=list)
    rationale: str | None = None
    token_usage: int = 0
    failed_batches: int = 0

    failures: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    analysis_duration_seconds: float | None = None
    issue_url: str | None = None

    @property
    def ai_percent(self) -> float | None:
        if self.ai_probability is None:
            return None
        return round(self.ai_probability * 100, 1)
