from __future__ import annotations

import pytest

from aiscan.rules.expression import Compare
from aiscan.rules.expression import Literal
from aiscan.rules.expression import Logical
from aiscan.rules.expression import Not
from aiscan.rules.expression import RuleSyntaxError
from aiscan.rules.expression import Variable
from aiscan.rules.expression import evaluate
from aiscan.rules.expression import parse_condition

CTX = {"ai_prob": 0.7, "lines_added": 120, "tests_changed": False, "license_comment": True}


def test_parse_builds_tagged_tree_with_precedence() -> None:
    tree = parse_condition("ai_prob > 0.5 || !tests_changed && lines_added >= 50")
    assert tree == Logical(
        op="||",
        left=Compare(op=">", left=Variable("ai_prob"), right=Literal(0.5)),
        right=Logical(
            op="&&",
            left=Not(Variable("tests_changed")),
            right=Compare(op=">=", left=Variable("lines_added"), right=Literal(50)),
        ),
    )


@pytest.mark.parametrize(
    "source, expected",
    [
        ("ai_prob > 0.6", True),
        ("ai_prob > 0.8", False),
        ("ai_prob > 0.6 && !license_comment", False),
        ("ai_prob > 0.5 && !tests_changed && lines_added > 50", True),
        ("(ai_prob < 0.1 || lines_added > 100) && license_comment", True),
        ("!(ai_prob <= 0.7)", False),
        ("lines_added == 120", True),
        ("lines_added != 120", False),
        ("tests_changed == false", True),
        ("license_comment", True),
        ("!!license_comment", True),
        ("true && .5 < ai_prob", True),
    ],
)
def test_evaluate(source: str, expected: bool) -> None:
    assert bool(evaluate(parse_condition(source), CTX)) is expected


@pytest.mark.parametrize(
    "source",
    [
        "",
        "   ",
        "ai_prob >",
        "ai_prob > 0.5 &&",
        "(ai_prob > 0.5",
        "ai_prob > 0.5)",
        "ai_prob = 0.5",
        "secret > 1",
        "__import__('os').system('id')",
        "ai_prob.real > 0",
        "len(ai_prob) > 0",
        "ai_prob > 0.5 and lines_added > 1",
        "ai_prob > 0.5 ; lines_added",
        "ai_prob > 'x'",
    ],
)
def test_rejects_anything_outside_grammar(source: str) -> None:
    with pytest.raises(RuleSyntaxError):
        parse_condition(source)


def test_missing_variable_at_evaluation() -> None:
    with pytest.raises(KeyError):
        evaluate(parse_condition("ai_prob > 0.5"), {})


def test_not_binds_tighter_than_comparison() -> None:
    tree = parse_condition("!ai_prob > 0.5")
    assert tree == Compare(op=">", left=Not(Variable("ai_prob")), right=Literal(0.5))
    assert evaluate(tree, dict(CTX, ai_prob=0.3)) is False
    assert evaluate(parse_condition("!(ai_prob > 0.5)"), dict(CTX, ai_prob=0.3)) is True
