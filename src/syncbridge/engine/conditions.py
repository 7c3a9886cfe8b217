"""
Evaluation of the small condition grammar used by conditional mappings.

Supported forms, tried in this order:

    status=Active      string equality
    tags:Premium       list membership or substring
    amount>100         numeric greater-than
    amount<100         numeric less-than
"""

import logging
import re
from typing import Any, Optional

from .paths import UNSET, get_value

logger = logging.getLogger(__name__)

_FIELD = r"([\w.]+)"

_EQUALS = re.compile(rf"^{_FIELD}=(.+)$")
_CONTAINS = re.compile(rf"^{_FIELD}:(.+)$")
_GREATER = re.compile(rf"^{_FIELD}>(.+)$")
_LESS = re.compile(rf"^{_FIELD}<(.+)$")


def stringify(value: Any) -> str:
    """Render a value the way the condition strings are written by users."""
    if value is UNSET:
        return "undefined"
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def to_number(value: Any) -> Optional[float]:
    if value is UNSET or value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


class ConditionEvaluator:
    """Evaluates condition strings against a record."""

    def evaluate(self, condition: str, record: Any) -> bool:
        try:
            return self._evaluate(condition.strip(), record)
        except Exception as e:
            logger.error(f"Error evaluating condition '{condition}': {e}")
            return False

    def _evaluate(self, condition: str, record: Any) -> bool:
        match = _EQUALS.match(condition)
        if match:
            field, expected = match.groups()
            return stringify(get_value(record, field)) == expected

        match = _CONTAINS.match(condition)
        if match:
            field, needle = match.groups()
            actual = get_value(record, field)
            if isinstance(actual, (list, tuple, set)):
                return needle in actual
            if isinstance(actual, str):
                return needle in actual
            return False

        for pattern, compare in ((_GREATER, lambda a, b: a > b), (_LESS, lambda a, b: a < b)):
            match = pattern.match(condition)
            if match:
                field, raw = match.groups()
                actual = to_number(get_value(record, field))
                expected = to_number(raw)
                if actual is None or expected is None:
                    return False
                return compare(actual, expected)

        logger.warning(f"Unsupported condition format: {condition}")
        return False
