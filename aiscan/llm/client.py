"""
LLM Client（基于 OpenAI SDK，OpenAI-compatible 接口）。

目标：
- **尽量薄**：只做协议适配与错误处理
- **结构化输出**：分类结果通过 function tool 返回，再用 Pydantic 严格校验
- **token 统计**：返回 usage.total_tokens，供报告展示成本
"""

from __future__ import annotations

import json
import logging
from collections.abc import Sequence
from typing import TypeVar

import httpx
from openai import AsyncOpenAI, OpenAIError
from pydantic import BaseModel, ValidationError

logger = logging.getLogger(__name__)

SchemaT = TypeVar("SchemaT", bound=BaseModel)


class ChatMessage(BaseModel):
    """OpenAI chat message 的最小结构。"""

    role: str
    content: str


def _normalize_base_url(base_url: str) -> str:
    normalized = base_url.rstrip("/")
    if normalized.endswith("/v1"):
        return normalized
    return f"{normalized}/v1"


def build_function_tool(name: str, description: str, schema: type[BaseModel]) -> dict[str, object]:
    """把 Pydantic schema 转成 OpenAI function tool 定义。"""
    parameters = schema.model_json_schema()
    parameters.pop("title", None)
    return {
        "type": "function",
        "function": {"name": name, "description": description, "parameters": parameters},
    }


class OpenAICompatLLMClient:
    """OpenAI-compatible chat completions 客户端（OpenAI 官方或任意兼容网关）。"""

    def __init__(self, api_key: str, base_url: str, http_client: httpx.AsyncClient, model: str) -> None:
        """
        - api_key: LLM API key
        - base_url: OpenAI-compatible base URL（不带 /v1 会自动补上）
        - http_client: 复用 httpx.AsyncClient 连接池
        - model: 模型名（例如 `gpt-4o-mini`）
        """
        self._base_url = _normalize_base_url(base_url=base_url)
        self._model = model
        self._client = AsyncOpenAI(api_key=api_key, base_url=self._base_url, http_client=http_client)

    @property
    def model(self) -> str:
        return self._model

    async def complete_tool_call(
        self,
        messages: Sequence[ChatMessage],
        tool_name: str,
        description: str,
        schema: type[SchemaT],
    ) -> tuple[SchemaT, int]:
        """
        强制模型调用唯一的 tool，并把 arguments 校验为 `schema`。

        - **输出**：(校验后的模型, usage.total_tokens；缺失时为 0)
        - **失败策略**：API 错误 / 没有 tool call / JSON 或 schema 不合法都直接抛错，
          由调用方决定是否降级
        """
        tool = build_function_tool(name=tool_name, description=description, schema=schema)
        try:
            logger.info(f"LLM tool request: model={self._model}, tool={tool_name}, messages={len(messages)} msg(s)")
            response = await self._client.chat.completions.create(
                model=self._model,
                temperature=0,
                messages=[m.model_dump() for m in messages],
                tools=[tool],
                tool_choice={"type": "function", "function": {"name": tool_name}},
            )
        except OpenAIError as exc:
            logger.error(f"LLM API error: {exc}")
            raise
        except httpx.HTTPError as exc:
            logger.error(f"LLM HTTP error: {exc}")
            raise

        tool_calls = response.choices[0].message.tool_calls
        if not tool_calls:
            logger.error("LLM returned no tool call")
            raise RuntimeError("LLM returned no tool call")
        arguments = tool_calls[0].function.arguments
        tokens_used = response.usage.total_tokens if response.usage is not None else 0
        logger.info(f"LLM tool response: {len(arguments)} chars, tokens={tokens_used}")

        try:
            parsed = json.loads(arguments)
        except json.JSONDecodeError as exc:
            logger.error(f"Invalid JSON tool arguments from LLM. Raw content: {arguments}")
            raise ValueError(f"LLM did not return valid JSON arguments. Raw: {arguments}") from exc

        try:
            validated = schema.model_validate(parsed)
        except ValidationError as exc:
            logger.error(f"Schema validation failed: {exc}")
            raise ValueError(f"LLM tool arguments do not match schema {schema.__name__}: {exc}") from exc

        return validated, tokens_used
