"""
应用配置加载。

设计目标：
- **严格**：缺少必要环境变量就直接报错（避免"看起来跑了其实没配置好"）
- **类型安全**：使用 Pydantic 校验 URL/数值，减少运行时踩坑
- **可测试**：核心加载函数接收 `environ` 显式输入，便于单元测试
"""

from __future__ import annotations

from collections.abc import Mapping

from pydantic import BaseModel, Field, HttpUrl

DEFAULT_LLM_BASE_URL = "https://api.openai.com/v1"
DEFAULT_LLM_MODEL = "gpt-4o-mini"
DEFAULT_GITHUB_API_BASE_URL = "https://api.github.com"


class LLMConfig(BaseModel):
    base_url: HttpUrl
    api_key: str
    model: str


class GitHubConfig(BaseModel):
    api_base_url: HttpUrl
    token: str
    webhook_secret: str | None = None


class AppConfig(BaseModel):
    """运行所需配置：LLM 与 GitHub 必填，Slack / 规则文件可选。"""

    llm: LLMConfig
    github: GitHubConfig
    slack_webhook_url: HttpUrl | None = None
    rules_path: str | None = None
    http_timeout: float = Field(default=30.0, gt=0)


def _optional(environ: Mapping[str, str], key: str) -> str | None:
    value = environ.get(key)
    return value if value else None


def load_config_from_env(environ: Mapping[str, str]) -> AppConfig:
    """
    从环境变量加载并校验配置。

    - **输入**：`environ`（例如 `os.environ`）
    - **输出**：`AppConfig`
    - **失败**：必填项缺失/为空、或值不合法则抛 `ValueError`
    """

    required_keys: tuple[str, ...] = ("OPENAI_API_KEY", "GITHUB_TOKEN")
    missing: list[str] = [key for key in required_keys if key not in environ or not environ[key]]
    if missing:
        raise ValueError(f"Missing required env vars: {', '.join(missing)}")

    # 交给 Pydantic 做类型校验（URL 合法性、timeout > 0）；ValidationError 本身就是 ValueError
    return AppConfig(
        llm=LLMConfig(
            base_url=_optional(environ, "OPENAI_BASE_URL") or DEFAULT_LLM_BASE_URL,
            api_key=environ["OPENAI_API_KEY"],
            model=_optional(environ, "OPENAI_MODEL") or DEFAULT_LLM_MODEL,
        ),
        github=GitHubConfig(
            api_base_url=_optional(environ, "GITHUB_API_BASE_URL") or DEFAULT_GITHUB_API_BASE_URL,
            token=environ["GITHUB_TOKEN"],
            webhook_secret=_optional(environ, "GITHUB_WEBHOOK_SECRET"),
        ),
        slack_webhook_url=_optional(environ, "SLACK_WEBHOOK_URL"),
        rules_path=_optional(environ, "AISCAN_RULES_PATH"),
        http_timeout=_optional(environ, "AISCAN_HTTP_TIMEOUT") or 30.0,
    )
