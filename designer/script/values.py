"""
JavaScript value semantics over plain Python values.

Scripts work on dict/list/str/int/float/bool/None; ``None`` stands for both
null and undefined. Objects that need custom conversion (dates) implement
``js_string()`` and ``js_number()``.
"""

import json
import math
import re
from typing import Any

_EXPONENT = re.compile(r"e([+-])0*(\d+)")
_NUMERIC = re.compile(r"^[+-]?(\d+\.?\d*([eE][+-]?\d+)?|\.\d+([eE][+-]?\d+)?)$")


class NativeFunction:
    """A Python callable exposed to scripts, optionally with static members."""

    def __init__(self, name: str, fn, members: dict | None = None, constructor=None):
        self.name = name
        self.fn = fn
        self.members = members or {}
        self.constructor = constructor

    def __call__(self, *args):
        return self.fn(*args)

    def __repr__(self):
        return f"<native {self.name}>"


class Namespace:
    """A read-only global object such as ``Math`` or ``JSON``."""

    def __init__(self, name: str, members: dict):
        self.name = name
        self.members = members


def is_number(v: Any) -> bool:
    return isinstance(v, (int, float)) and not isinstance(v, bool)


def is_callable(v: Any) -> bool:
    return callable(v) and not isinstance(v, type)


def type_of(v: Any) -> str:
    if v is None:
        return "undefined"
    if isinstance(v, bool):
        return "boolean"
    if is_number(v):
        return "number"
    if isinstance(v, str):
        return "string"
    if is_callable(v):
        return "function"
    return "object"


def truthy(v: Any) -> bool:
    if v is None or v is False:
        return False
    if is_number(v):
        return not (v == 0 or math.isnan(v))
    if isinstance(v, str):
        return v != ""
    return True


def format_number(n: float | int) -> str:
    if isinstance(n, int):
        return str(n)
    if math.isnan(n):
        return "NaN"
    if math.isinf(n):
        return "Infinity" if n > 0 else "-Infinity"
    if n.is_integer() and abs(n) < 1e21:
        return str(int(n))
    return _EXPONENT.sub(r"e\1\2", repr(n))


def js_string(v: Any) -> str:
    if v is None:
        return "undefined"
    if isinstance(v, bool):
        return "true" if v else "false"
    if is_number(v):
        return format_number(v)
    if isinstance(v, str):
        return v
    if isinstance(v, list):
        return ",".join("" if item is None else js_string(item) for item in v)
    if hasattr(v, "js_string"):
        return v.js_string()
    if is_callable(v):
        return f"function {getattr(v, 'name', '')}() {{ [native code] }}"
    return "[object Object]"


def to_number(v: Any) -> float | int:
    if v is None:
        return float("nan")
    if isinstance(v, bool):
        return 1 if v else 0
    if is_number(v):
        return v
    if isinstance(v, str):
        s = v.strip()
        if s == "":
            return 0
        if s in ("Infinity", "+Infinity"):
            return float("inf")
        if s == "-Infinity":
            return float("-inf")
        if s[:2].lower() == "0x":
            try:
                return int(s[2:], 16)
            except ValueError:
                return float("nan")
        if not _NUMERIC.match(s):
            return float("nan")
        if re.fullmatch(r"[+-]?\d+", s):
            return int(s)
        return float(s)
    if isinstance(v, list):
        if not v:
            return 0
        if len(v) == 1:
            return to_number(js_string(v[0]))
        return float("nan")
    if hasattr(v, "js_number"):
        return v.js_number()
    return float("nan")


def to_integer(v: Any) -> int:
    n = to_number(v)
    if isinstance(n, float):
        if math.isnan(n):
            return 0
        if math.isinf(n):
            return 2**53 if n > 0 else -(2**53)
        return int(n)
    return n


def to_primitive(v: Any) -> Any:
    if v is None or isinstance(v, (bool, int, float, str)):
        return v
    return js_string(v)


def strict_equals(a: Any, b: Any) -> bool:
    if a is None or b is None:
        return a is None and b is None
    if isinstance(a, bool) or isinstance(b, bool):
        return isinstance(a, bool) and isinstance(b, bool) and a == b
    if is_number(a) and is_number(b):
        return a == b
    if isinstance(a, str) and isinstance(b, str):
        return a == b
    return a is b


def loose_equals(a: Any, b: Any) -> bool:
    if a is None or b is None:
        return a is None and b is None
    if type_of(a) == type_of(b):
        return strict_equals(a, b)
    if isinstance(a, bool):
        return loose_equals(to_number(a), b)
    if isinstance(b, bool):
        return loose_equals(a, to_number(b))
    if is_number(a) and isinstance(b, str):
        return a == to_number(b)
    if isinstance(a, str) and is_number(b):
        return to_number(a) == b
    if isinstance(a, (dict, list)) and not isinstance(b, (dict, list)):
        return loose_equals(to_primitive(a), b)
    if isinstance(b, (dict, list)) and not isinstance(a, (dict, list)):
        return loose_equals(a, to_primitive(b))
    return False


def export_value(v: Any) -> Any:
    """Convert a script value into JSON-friendly Python data."""
    if isinstance(v, float):
        if math.isnan(v) or math.isinf(v):
            return None
        return int(v) if v.is_integer() and abs(v) < 2**53 else v
    if isinstance(v, list):
        return [export_value(item) for item in v]
    if isinstance(v, dict):
        return {k: export_value(item) for k, item in v.items() if not is_callable(item)}
    if hasattr(v, "to_json"):
        return v.to_json()
    if is_callable(v) or isinstance(v, Namespace):
        return None
    return v


def to_json(v: Any, indent: Any = None) -> str | None:
    """JSON.stringify."""
    if v is None or is_callable(v):
        return None
    if isinstance(indent, str):
        indent_arg = indent[:10] or None
    elif is_number(indent) and indent > 0:
        indent_arg = min(int(indent), 10)
    else:
        indent_arg = None
    separators = (",", ":") if indent_arg is None else (",", ": ")
    return json.dumps(export_value(v), ensure_ascii=False, indent=indent_arg, separators=separators)
