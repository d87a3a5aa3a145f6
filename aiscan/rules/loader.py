"""
规则文件加载 + 求值。

规则文件是 INI 风格的分段 key/value：

    # 注释
    [high-ai-confidence]
    name = High AI Confidence
    when = ai_prob > 0.8
    severity = error
    message = ...

容错策略：
- 空行 / `#`、`;` 开头的行跳过
- 缺少必填字段（name / when|condition / severity / message）或 severity 非法的段直接丢弃
- 条件语法错误不容错：`RuleSyntaxError` 直接抛出
- 段外的游离行、没有 `=` 的行等 INI 结构错误统一转成 `ValueError`
"""

from __future__ import annotations

import configparser
import logging
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from aiscan.analysis.models import EvaluationContext
from aiscan.analysis.models import PolicyResult
from aiscan.analysis.models import Severity
from aiscan.rules.expression import Expression
from aiscan.rules.expression import evaluate
from aiscan.rules.expression import parse_condition

logger = logging.getLogger(__name__)

DEFAULT_RULES_PATH = Path(__file__).with_name("default_rules.ini")

_SEVERITIES: tuple[Severity, ...] = ("error", "warning")


@dataclass(frozen=True)
class Rule:
    name: str
    condition: str
    severity: Severity
    message: str
    expression: Expression

    def matches(self, context: EvaluationContext) -> bool:
        return bool(evaluate(self.expression, context.model_dump()))


def parse_rules(text: str) -> list[Rule]:
    parser = configparser.ConfigParser(
        interpolation=None,
        strict=False,
        comment_prefixes=("#", ";"),
        default_section="__defaults__",
    )
    try:
        parser.read_string(text)
    except configparser.Error as exc:
        raise ValueError(f"Invalid rule file: {exc}") from exc

    rules: list[Rule] = []
    for section in parser.sections():
        fields = parser[section]
        name = fields.get("name", "").strip()
        condition = (fields.get("when") or fields.get("condition") or "").strip()
        severity = fields.get("severity", "").strip().lower()
        message = " ".join(fields.get("message", "").split())
        if not name or not condition or not severity or not message:
            logger.debug(f"Dropping rule section [{section}]: missing required field")
            continue
        if severity not in _SEVERITIES:
            logger.debug(f"Dropping rule section [{section}]: unknown severity {severity!r}")
            continue
        rules.append(
            Rule(
                name=name,
                condition=condition,
                severity=severity,
                message=message,
                expression=parse_condition(condition),
            )
        )
    return rules


def load_rules(path: str | Path | None = None) -> list[Rule]:
    rules_path = Path(path) if path is not None else DEFAULT_RULES_PATH
    rules = parse_rules(rules_path.read_text(encoding="utf-8"))
    logger.info(f"Loaded {len(rules)} rule(s) from {rules_path}")
    return rules


def evaluate_rules(rules: Sequence[Rule], context: EvaluationContext) -> PolicyResult:
    """每条规则独立求值；命中后按 severity 分到 failures / warnings，保持规则顺序。"""
    result = PolicyResult()
    for rule in rules:
        if not rule.matches(context):
            continue
        if rule.severity == "error":
            result.failures.append(rule.message.strip())
        else:
            result.warnings.append(rule.message.strip())
    return result
