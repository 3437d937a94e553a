"""
Field resolver: pulls a value out of JSON-like data with a dot/bracket path.

    resolve({"a": {"b": [{"c": 5}]}}, "a.b[0].c")  ->  5
    resolve({"items": [{"t": 1}]}, "items.0.t")    ->  1

Misses of any kind resolve to None; this module never raises.
"""

import re
from typing import Any

_INDEXED = re.compile(r"^(.*?)\[(\d+)\]$")


def resolve(root: Any, path: str) -> Any:
    current = root
    for segment in path.split("."):
        if current is None:
            return None

        match = _INDEXED.match(segment)
        if match:
            name, idx = match.group(1), int(match.group(2))
            if name:
                current = _lookup(current, name)
            if not isinstance(current, list) or idx >= len(current):
                return None
            current = current[idx]
        else:
            current = _lookup(current, segment)
    return current


def _lookup(value: Any, key: str) -> Any:
    if isinstance(value, dict):
        return value.get(key)
    if isinstance(value, list):
        if key == "length":
            return len(value)
        if key.isdigit() and int(key) < len(value):
            return value[int(key)]
    return None
