"""Tests for the condition evaluator."""

import pytest

from syncbridge.engine.conditions import ConditionEvaluator, stringify


@pytest.fixture
def evaluator():
    return ConditionEvaluator()


RECORD = {
    "status": "Active",
    "amount": 150,
    "price": 10.0,
    "flag": True,
    "tags": ["Premium", "Beta"],
    "note": "VIP customer",
    "owner": {"region": "EU"},
}


@pytest.mark.parametrize("condition,expected", [
    ("status=Active", True),
    ("status=Inactive", False),
    ("owner.region=EU", True),
    ("price=10", True),
    ("flag=true", True),
    ("missing=undefined", True),
    ("tags:Premium", True),
    ("tags:Gold", False),
    ("note:VIP", True),
    ("amount:1", False),
    ("amount>100", True),
    ("amount>150", False),
    ("amount<200", True),
    ("status>1", False),
    ("missing<5", False),
])
def test_conditions(evaluator, condition, expected):
    assert evaluator.evaluate(condition, RECORD) is expected


def test_equality_takes_precedence_over_contains(evaluator):
    assert evaluator.evaluate("ratio=1:2", {"ratio": "1:2"}) is True


def test_unrecognized_syntax_is_false(evaluator):
    assert evaluator.evaluate("status IS Active", RECORD) is False
    assert evaluator.evaluate("", RECORD) is False


def test_none_record_does_not_raise(evaluator):
    assert evaluator.evaluate("status=Active", None) is False


def test_stringify():
    assert stringify(None) == "null"
    assert stringify(False) == "false"
    assert stringify(3.0) == "3"
    assert stringify(3.5) == "3.5"
