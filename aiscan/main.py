"""
FastAPI 服务入口（webhook 模式）。

这里做三件事：
- 加载配置与规则（严格校验，缺失直接启动失败）
- 组装外部依赖（HTTP Client / GitHub / LLM / Slack）
- 装配路由（health + github webhook）

注意：
- 业务流程不写在这里（由 `orchestrator.py` 负责）
- `httpx.AsyncClient` 会被复用（避免每个请求新建连接）
"""

from __future__ import annotations

import os

import httpx
from fastapi import FastAPI

from aiscan.config import load_config_from_env
from aiscan.github.webhook import build_github_webhook_router
from aiscan.orchestrator import build_github_webhook_handler
from aiscan.orchestrator import build_services
from aiscan.rules.loader import load_rules


def build_app() -> FastAPI:
    """创建并返回 FastAPI app（便于测试/复用）。"""

    config = load_config_from_env(os.environ)
    if config.github.webhook_secret is None:
        raise ValueError("Missing required env vars: GITHUB_WEBHOOK_SECRET")

    http_client = httpx.AsyncClient(timeout=httpx.Timeout(config.http_timeout))
    services = build_services(config=config, http_client=http_client, rules=load_rules(config.rules_path))

    app = FastAPI(title="AI Code Scan", version="0.1.0")

    @app.get("/health")
    async def health() -> dict[str, str]:
        """健康检查：用于 k8s / LB 探活。"""
        return {"status": "ok"}

    app.include_router(
        build_github_webhook_router(
            webhook_secret=config.github.webhook_secret,
            handler=build_github_webhook_handler(services),
        )
    )
    return app
