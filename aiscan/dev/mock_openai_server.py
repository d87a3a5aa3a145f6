"""
本地 Mock OpenAI-compatible LLM server。

用途：
- 在没有真实 LLM 的情况下，本地跑通闭环（分类器的 tool call 输出）
- 打分是确定性的：按注释行占比粗略给分，方便观察规则命中情况

启动：
  python -m aiscan.dev.mock_openai_server
然后设置 OPENAI_BASE_URL=http://127.0.0.1:9001
"""

from __future__ import annotations

import json
import time
from collections.abc import Sequence

import uvicorn
from fastapi import FastAPI
from pydantic import BaseModel, Field

from aiscan.llm.client import ChatMessage

_COMMENT_PREFIXES = ("#", "//", "/*", "*", '"""')


class ChatCompletionRequest(BaseModel):
    model: str
    messages: list[ChatMessage] = Field(default_factory=list)
    tools: list[dict[str, object]] = Field(default_factory=list)


def _extract_paths(payload: str) -> list[str]:
    return [line.removeprefix("### ").strip() for line in payload.splitlines() if line.startswith("### ")]


def _comment_ratio(payload: str) -> float:
    code_lines = [
        line.lstrip("+").strip()
        for line in payload.splitlines()
        if line.strip() and not line.startswith(("###", "```", "@@", "+++", "---"))
    ]
    if not code_lines:
        return 0.0
    comments = [line for line in code_lines if line.startswith(_COMMENT_PREFIXES)]
    return len(comments) / len(code_lines)


def _scale_from_system_prompt(messages: Sequence[ChatMessage]) -> float:
    system = "\n".join(m.content for m in messages if m.role == "system")
    return 100.0 if "0-100" in system else 1.0


def _build_mock_verdict(messages: Sequence[ChatMessage]) -> dict[str, object]:
    payload = "\n".join(m.content for m in messages if m.role == "user")
    if not payload:
        raise ValueError("Mock server expects at least one user message")
    ratio = _comment_ratio(payload)
    probability = min(0.2 + ratio, 0.95)
    patterns = ["[MOCK] Verbose explanatory comments"] if ratio > 0.3 else []
    paths = _extract_paths(payload)
    return {
        "ai_prob": round(probability * _scale_from_system_prompt(messages), 3),
        "patterns_detected": patterns,
        "code_quality": "good" if ratio < 0.5 else "average",
        "rationale": f"[MOCK] {len(paths)} file(s), comment ratio {ratio:.2f}.",
    }


def _tool_name(req: ChatCompletionRequest) -> str:
    for tool in req.tools:
        function = tool.get("function")
        if isinstance(function, dict) and isinstance(function.get("name"), str):
            return function["name"]
    return "report_ai_code_analysis"


app = FastAPI(title="Mock OpenAI-compatible LLM", version="0.1.0")


@app.post("/v1/chat/completions")
async def chat_completions(req: ChatCompletionRequest) -> dict[str, object]:
    arguments = json.dumps(_build_mock_verdict(messages=req.messages))
    prompt_chars = sum(len(m.content) for m in req.messages)
    return {
        "id": "chatcmpl-mock",
        "object": "chat.completion",
        "created": int(time.time()),
        "model": req.model,
        "choices": [
            {
                "index": 0,
                "finish_reason": "tool_calls",
                "message": {
                    "role": "assistant",
                    "content": None,
                    "tool_calls": [
                        {
                            "id": "call_mock",
                            "type": "function",
                            "function": {"name": _tool_name(req), "arguments": arguments},
                        }
                    ],
                },
            }
        ],
        "usage": {
            "prompt_tokens": prompt_chars // 4,
            "completion_tokens": len(arguments) // 4,
            "total_tokens": prompt_chars // 4 + len(arguments) // 4,
        },
    }


def main() -> None:
    uvicorn.run(app, host="127.0.0.1", port=9001)


if __name__ == "__main__":
    main()
