"""
分析 profile：把 PR 扫描和整仓扫描的差异收敛为显式配置。

两种模式共享同一条 pipeline，区别只在：
- batch 上限（字节 / 文件数）
- 分类器的打分刻度（0-100 或 0-1）
- system prompt 与单文件截断长度
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from aiscan.analysis.models import DEFAULT_QUALITY_RANKS

DEFAULT_EXCLUDED_EXTENSIONS: tuple[str, ...] = (
    ".jpg", ".jpeg", ".png", ".gif", ".bmp", ".ico", ".svg",
    ".ttf", ".woff", ".woff2", ".eot", ".mp3", ".mp4",
    ".webm", ".ogg", ".wav", ".avi", ".mov", ".webp",
    ".zip", ".rar", ".tar", ".gz", ".7z", ".exe", ".dll",
    ".so", ".dylib", ".obj", ".lib", ".bin", ".apk", ".aab", ".ipa",
)  # fmt: skip
DEFAULT_EXCLUDED_FILES: tuple[str, ...] = ("LICENSE", "LICENSE.md", "LICENSE.txt")
DEFAULT_EXCLUDED_DIRS: tuple[str, ...] = ("node_modules", ".git")

_DETECTION_SIGNS = (
    "1. Perfect grammar and formal language in comments - real developers make typos, "
    "use abbreviations, and write informally "
    "2. Quality of comments - focus more on the quality rather than quantity; "
    "AI tends to provide unnecessarily verbose explanations "
    "3. Emoji usage - certain patterns of emoji usage can indicate AI generation "
    "4. Verbose, \"perfect\" variable/function naming - AI often creates unnaturally "
    "descriptive and consistent names "
    "5. Invisible watermarks - check for statistical patterns or markers that AI models "
    "embed in generated text "
    "6. Perfect English throughout - this is virtually impossible in real human code; "
    "look for natural language variations "
)

PULL_REQUEST_SYSTEM_PROMPT = (
    "You are an analyst detecting AI-generated code in pull requests for security reasons. "
    "Score from 0-100 where 100 means 100% confidence the code is AI-generated. "
    "Carefully analyze the code for these telltale signs of AI generation: "
    + _DETECTION_SIGNS
    + "Pay special attention to grammar and writing style in comments as key indicators of AI generation. "
    "Report ai_prob (0-100), patterns_detected, code_quality (poor, average, good, excellent) "
    "and rationale via the tool."
)

REPOSITORY_SYSTEM_PROMPT = (
    "You are a security analyst detecting AI-generated code in repositories for security reasons. "
    "Score from 0-1 where 1 means 100% confidence the code is AI-generated. "
    "Carefully analyze the code for these telltale signs of AI generation: "
    + _DETECTION_SIGNS
    + "7. Unnatural consistency in style - humans show variations in their coding patterns even within the same file "
    "8. Documentation that reads like it was written for a general audience rather than for developers "
    "9. Lack of domain-specific shortcuts, idioms, or \"clever\" solutions that experienced developers typically use "
    "10. Code organization that appears too methodical, as if following a rigid template "
    "Human code typically contains: inconsistent naming conventions, sporadic comments focused on complex parts, "
    "occasional typos, varying levels of documentation quality, and idiosyncratic coding patterns. "
    "Provide detailed evidence for your conclusions. Return JSON via the tool."
)


class FilterPolicy(BaseModel):
    """File Filter 的排除清单。"""

    model_config = ConfigDict(frozen=True)

    excluded_extensions: tuple[str, ...] = DEFAULT_EXCLUDED_EXTENSIONS
    excluded_files: tuple[str, ...] = DEFAULT_EXCLUDED_FILES
    excluded_dirs: tuple[str, ...] = DEFAULT_EXCLUDED_DIRS


class AIThresholds(BaseModel):
    """聚合概率 -> AI 判定标签的阈值（[0, 1] 刻度）。"""

    model_config = ConfigDict(frozen=True)

    ai_generated: float = 0.8
    ai_assisted: float = 0.5


class AnalysisProfile(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    max_batch_bytes: int = Field(gt=0)
    max_files_per_batch: int = Field(gt=0)
    probability_scale: float = Field(gt=0)
    system_prompt: str
    max_file_chars: int | None = None
    quality_ranks: dict[str, int] = Field(default_factory=lambda: dict(DEFAULT_QUALITY_RANKS))
    thresholds: AIThresholds = AIThresholds()
    filter_policy: FilterPolicy = FilterPolicy()


PULL_REQUEST_PROFILE = AnalysisProfile(
    name="pull_request",
    max_batch_bytes=1_200_000,
    max_files_per_batch=15,
    probability_scale=100.0,
    system_prompt=PULL_REQUEST_SYSTEM_PROMPT,
)

REPOSITORY_PROFILE = AnalysisProfile(
    name="repository",
    max_batch_bytes=800_000,
    max_files_per_batch=25,
    probability_scale=1.0,
    system_prompt=REPOSITORY_SYSTEM_PROMPT,
    max_file_chars=12_000,
)
