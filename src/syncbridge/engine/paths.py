"""
Nested path access for dynamically shaped records.

Paths are dot-separated segments; a segment may carry an integer index
suffix, e.g. ``order.items[0].sku``, meaning "index into the list held by
``items``".
"""

import re
from typing import Any, List, Optional, Tuple

_INDEXED_SEGMENT = re.compile(r"^(.*)\[(\d+)\]$")


class _Unset:
    """Marker for a value that is absent (as opposed to ``None``)."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "UNSET"

    def __copy__(self):
        return self

    def __deepcopy__(self, memo):
        return self


UNSET = _Unset()


def is_unset(value: Any) -> bool:
    return value is UNSET


def parse_segment(segment: str) -> Tuple[str, Optional[int]]:
    """Split ``items[2]`` into ``("items", 2)``; plain keys get ``None``."""
    match = _INDEXED_SEGMENT.match(segment)
    if match:
        return match.group(1), int(match.group(2))
    return segment, None


def split_path(path: str) -> List[str]:
    return path.split(".")


def get_value(record: Any, path: str, default: Any = UNSET) -> Any:
    """
    Read the value at ``path``.

    Returns ``default`` (UNSET unless given) when any part of the path is
    missing, when an indexed segment does not point at a list, or when the
    index is out of range. Never raises.
    """
    if record is None or not path:
        return default

    current = record
    for segment in split_path(path):
        name, index = parse_segment(segment)

        if not isinstance(current, dict) or name not in current:
            return default
        current = current[name]

        if index is not None:
            if not isinstance(current, list) or index >= len(current):
                return default
            current = current[index]

    return current


def set_value(record: Optional[dict], path: str, value: Any) -> None:
    """
    Write ``value`` at ``path``, creating intermediate dicts (or lists for
    indexed segments) as needed. A ``None`` record or empty path is a no-op.
    """
    if record is None or not path:
        return

    segments = split_path(path)
    current = record

    for position, segment in enumerate(segments):
        name, index = parse_segment(segment)
        last = position == len(segments) - 1

        if index is None:
            if last:
                current[name] = value
                return
            if not isinstance(current.get(name), dict):
                current[name] = {}
            current = current[name]
            continue

        if not isinstance(current.get(name), list):
            current[name] = []
        container = current[name]
        if len(container) <= index:
            container.extend([None] * (index + 1 - len(container)))

        if last:
            container[index] = value
            return
        if not isinstance(container[index], dict):
            container[index] = {}
        current = container[index]
