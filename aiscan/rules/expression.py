"""
规则条件的受限表达式解析/求值。

规则文本来自配置文件，这里用专用的递归下降 parser 生成带标签的表达式树，
再对树做递归求值；不会把配置文本交给任何通用解释器执行。

语法：
    or      := and ('||' and)*
    and     := compare ('&&' compare)*
    compare := unary (('>' | '<' | '>=' | '<=' | '==' | '!=') unary)?
    unary   := '!' unary | primary
    primary := NUMBER | 'true' | 'false' | IDENT | '(' or ')'

IDENT 只允许 `ALLOWED_VARIABLES` 里的名字。
"""

from __future__ import annotations

import operator
import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Union

ALLOWED_VARIABLES: frozenset[str] = frozenset({"ai_prob", "lines_added", "tests_changed", "license_comment"})

Value = Union[bool, int, float]

_COMPARATORS: dict[str, Callable[[Value, Value], bool]] = {
    ">": operator.gt,
    "<": operator.lt,
    ">=": operator.ge,
    "<=": operator.le,
    "==": operator.eq,
    "!=": operator.ne,
}

_TOKEN_PATTERN = re.compile(
    r"\s*(?:"
    r"(?P<number>\d+(?:\.\d*)?|\.\d+)"
    r"|(?P<ident>[A-Za-z_][A-Za-z0-9_]*)"
    r"|(?P<op>&&|\|\||>=|<=|==|!=|[<>!()])"
    r")"
)


class RuleSyntaxError(ValueError):
    """条件文本不在受限语法内。"""

    pass


@dataclass(frozen=True)
class Literal:
    value: Value


@dataclass(frozen=True)
class Variable:
    name: str


@dataclass(frozen=True)
class Not:
    operand: Expression


@dataclass(frozen=True)
class Compare:
    op: str
    left: Expression
    right: Expression


@dataclass(frozen=True)
class Logical:
    op: str  # "&&" | "||"
    left: Expression
    right: Expression


Expression = Union[Literal, Variable, Not, Compare, Logical]


@dataclass(frozen=True)
class _Token:
    kind: str
    text: str
    pos: int


def tokenize(source: str) -> list[_Token]:
    tokens: list[_Token] = []
    pos = 0
    end = len(source.rstrip())
    while pos < end:
        match = _TOKEN_PATTERN.match(source, pos)
        if match is None or match.end() == pos:
            raise RuleSyntaxError(f"Unexpected character {source[pos]!r} at {pos} in condition: {source}")
        kind = match.lastgroup
        if kind is None:
            raise RuleSyntaxError(f"Unexpected character at {pos} in condition: {source}")
        tokens.append(_Token(kind=kind, text=match.group(kind), pos=match.start(kind)))
        pos = match.end()
    return tokens


class _Parser:
    def __init__(self, source: str) -> None:
        self._source = source
        self._tokens = tokenize(source)
        self._index = 0

    def parse(self) -> Expression:
        if not self._tokens:
            raise RuleSyntaxError("Condition is empty")
        expr = self._parse_or()
        if self._index != len(self._tokens):
            tok = self._tokens[self._index]
            raise RuleSyntaxError(f"Unexpected token {tok.text!r} at {tok.pos} in condition: {self._source}")
        return expr

    def _peek(self) -> _Token | None:
        if self._index < len(self._tokens):
            return self._tokens[self._index]
        return None

    def _accept(self, *texts: str) -> _Token | None:
        tok = self._peek()
        if tok is not None and tok.kind == "op" and tok.text in texts:
            self._index += 1
            return tok
        return None

    def _parse_or(self) -> Expression:
        left = self._parse_and()
        while self._accept("||"):
            left = Logical(op="||", left=left, right=self._parse_and())
        return left

    def _parse_and(self) -> Expression:
        left = self._parse_compare()
        while self._accept("&&"):
            left = Logical(op="&&", left=left, right=self._parse_compare())
        return left

    def _parse_compare(self) -> Expression:
        left = self._parse_unary()
        tok = self._accept(*_COMPARATORS)
        if tok is None:
            return left
        return Compare(op=tok.text, left=left, right=self._parse_unary())

    def _parse_unary(self) -> Expression:
        # `!` 只作用于紧跟的 primary：`!a > b` 等价于 `(!a) > b`
        if self._accept("!"):
            return Not(operand=self._parse_unary())
        return self._parse_primary()

    def _parse_primary(self) -> Expression:
        tok = self._peek()
        if tok is None:
            raise RuleSyntaxError(f"Unexpected end of condition: {self._source}")
        self._index += 1
        if tok.kind == "number":
            return Literal(value=float(tok.text) if "." in tok.text else int(tok.text))
        if tok.kind == "ident":
            if tok.text == "true":
                return Literal(value=True)
            if tok.text == "false":
                return Literal(value=False)
            if tok.text not in ALLOWED_VARIABLES:
                raise RuleSyntaxError(f"Unknown variable {tok.text!r} in condition: {self._source}")
            return Variable(name=tok.text)
        if tok.text == "(":
            inner = self._parse_or()
            if not self._accept(")"):
                raise RuleSyntaxError(f"Missing ')' in condition: {self._source}")
            return inner
        raise RuleSyntaxError(f"Unexpected token {tok.text!r} at {tok.pos} in condition: {self._source}")


def parse_condition(source: str) -> Expression:
    return _Parser(source).parse()


def evaluate(expr: Expression, variables: Mapping[str, Value]) -> Value:
    """递归求值；`&&` / `||` 短路，比较按数值语义（bool 视为 0/1）。"""
    if isinstance(expr, Literal):
        return expr.value
    if isinstance(expr, Variable):
        if expr.name not in variables:
            raise KeyError(f"Variable not provided: {expr.name}")
        return variables[expr.name]
    if isinstance(expr, Not):
        return not evaluate(expr.operand, variables)
    if isinstance(expr, Compare):
        return _COMPARATORS[expr.op](evaluate(expr.left, variables), evaluate(expr.right, variables))
    if isinstance(expr, Logical):
        left = evaluate(expr.left, variables)
        if expr.op == "&&":
            return left and evaluate(expr.right, variables)
        return left or evaluate(expr.right, variables)
    raise TypeError(f"Unknown expression node: {expr!r}")
