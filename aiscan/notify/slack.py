"""
Slack 通知（incoming webhook）。

约定：
- 通知是"尽力而为"：任何失败只记日志，不抛错、不影响退出码
- 没配置 webhook URL 时直接跳过
"""

from __future__ import annotations

import logging

import httpx

logger = logging.getLogger(__name__)


class SlackNotifier:
    def __init__(self, webhook_url: str | None, http_client: httpx.AsyncClient) -> None:
        self._webhook_url = webhook_url
        self._http_client = http_client

    @property
    def enabled(self) -> bool:
        return bool(self._webhook_url)

    async def send(self, message: dict[str, object]) -> bool:
        """发送消息；成功返回 True，跳过或失败返回 False。"""
        if not self._webhook_url:
            logger.info("Slack webhook URL not configured, skipping notification")
            return False
        try:
            logger.info("Sending report to Slack...")
            response = await self._http_client.post(self._webhook_url, json=message)
        except httpx.HTTPError as exc:
            logger.error(f"Error sending to Slack: {exc}")
            return False
        if response.status_code < 200 or response.status_code >= 300:
            logger.error(f"Slack API responded with status code {response.status_code}: {response.text}")
            return False
        logger.info("Successfully sent to Slack")
        return True
