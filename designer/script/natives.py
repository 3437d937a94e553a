"""
Globals and methods visible to scripts. Everything a script can touch is
listed here; there is no fallback to Python attributes.
"""

import functools
import json
import math
import random
import re
import time
from datetime import datetime, timedelta, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Callable, Dict, List
from urllib.parse import quote, unquote

from designer.script.errors import ScriptRuntimeError
from designer.script.values import (
    Namespace,
    NativeFunction,
    format_number,
    is_callable,
    is_number,
    js_string,
    strict_equals,
    to_integer,
    to_json,
    to_number,
    truthy,
)

NAN = float("nan")


def js_round(x: float) -> float | int:
    """Math.round: halves round towards +Infinity."""
    x = to_number(x)
    if isinstance(x, int):
        return x
    if math.isnan(x) or math.isinf(x):
        return x
    return int(math.floor(x + 0.5))


# ── Dates ──────────────────────────────────────────────

_WEEKDAYS = ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"]
_MONTHS = ["Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]


class JSDate:
    """A point in time in epoch milliseconds; getters use the host's local zone."""

    def __init__(self, ms: float):
        self.ms = ms

    @property
    def valid(self) -> bool:
        return not math.isnan(self.ms)

    def _local(self) -> datetime:
        return datetime.fromtimestamp(self.ms / 1000).astimezone()

    def _utc(self) -> datetime:
        return datetime.fromtimestamp(self.ms / 1000, tz=timezone.utc)

    def js_number(self):
        return self.ms

    def js_string(self) -> str:
        if not self.valid:
            return "Invalid Date"
        d = self._local()
        offset = d.strftime("%z")
        return (
            f"{_WEEKDAYS[(d.weekday() + 1) % 7]} {_MONTHS[d.month - 1]} {d.day:02d} {d.year} "
            f"{d:%H:%M:%S} GMT{offset}"
        )

    def iso(self) -> str:
        if not self.valid:
            raise ScriptRuntimeError("RangeError: Invalid time value")
        d = self._utc()
        return f"{d:%Y-%m-%dT%H:%M:%S}.{int(self.ms) % 1000:03d}Z"

    def to_json(self):
        return self.iso() if self.valid else None


def _parse_date_string(text: str) -> float:
    s = text.strip()
    if re.fullmatch(r"\d{4}-\d{2}-\d{2}", s):
        # date-only forms are UTC
        s += "T00:00:00+00:00"
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"
    try:
        d = datetime.fromisoformat(s)
    except ValueError:
        return NAN
    if d.tzinfo is None:
        d = d.astimezone()
    return d.timestamp() * 1000


def _construct_date(*args) -> JSDate:
    if not args:
        return JSDate(time.time() * 1000)
    if len(args) == 1:
        v = args[0]
        if isinstance(v, JSDate):
            return JSDate(v.ms)
        if isinstance(v, str):
            return JSDate(_parse_date_string(v))
        ms = to_number(v)
        return JSDate(float(ms))
    # new Date(year, monthIndex, day=1, h, m, s, ms) in local time; fields overflow like JS
    parts = [to_integer(a) for a in args[:7]] + [0] * (7 - min(len(args), 7))
    year, month, day, hour, minute, second, millis = parts
    if len(args) < 3:
        day = 1
    try:
        d = datetime(year + month // 12, month % 12 + 1, 1) + timedelta(
            days=day - 1, hours=hour, minutes=minute, seconds=second, milliseconds=millis
        )
        return JSDate(d.astimezone().timestamp() * 1000)
    except (OverflowError, ValueError, OSError):
        return JSDate(NAN)


def date_methods(d: JSDate) -> Dict[str, Callable]:
    def getter(fn, utc=False):
        def call(*_):
            if not d.valid:
                return NAN
            return fn(d._utc() if utc else d._local())
        return call

    def locale_date(*_):
        local = d._local()
        return f"{local.month}/{local.day}/{local.year}"

    def locale_time(*_):
        local = d._local()
        hour = local.hour % 12 or 12
        return f"{hour}:{local:%M:%S} {'AM' if local.hour < 12 else 'PM'}"

    methods = {
        "getTime": lambda *_: d.ms,
        "valueOf": lambda *_: d.ms,
        "toISOString": lambda *_: d.iso(),
        "toJSON": lambda *_: d.to_json(),
        "toString": lambda *_: d.js_string(),
        "toDateString": lambda *_: d.js_string()[:15] if d.valid else "Invalid Date",
        "toLocaleDateString": locale_date,
        "toLocaleTimeString": locale_time,
        "toLocaleString": lambda *_: f"{locale_date()}, {locale_time()}",
    }
    fields = {
        "FullYear": lambda x: x.year,
        "Month": lambda x: x.month - 1,
        "Date": lambda x: x.day,
        "Day": lambda x: (x.weekday() + 1) % 7,
        "Hours": lambda x: x.hour,
        "Minutes": lambda x: x.minute,
        "Seconds": lambda x: x.second,
        "Milliseconds": lambda x: x.microsecond // 1000,
    }
    for name, fn in fields.items():
        methods[f"get{name}"] = getter(fn)
        methods[f"getUTC{name}"] = getter(fn, utc=True)
    methods["getTimezoneOffset"] = getter(lambda x: -int(x.utcoffset().total_seconds() // 60))
    return methods


# ── Numbers ────────────────────────────────────────────

def _to_fixed(x, digits=0):
    digits = to_integer(digits)
    if digits < 0 or digits > 100:
        raise ScriptRuntimeError("RangeError: toFixed() digits argument must be between 0 and 100")
    x = to_number(x)
    if isinstance(x, float) and (math.isnan(x) or math.isinf(x)):
        return format_number(x)
    if abs(x) >= 1e21:
        return format_number(x)
    quantum = Decimal(1).scaleb(-digits)
    return f"{Decimal(x).quantize(quantum, rounding=ROUND_HALF_UP):f}"


def _to_string_radix(x, radix=None):
    if radix is None or to_integer(radix) == 10:
        return format_number(x)
    radix = to_integer(radix)
    if radix < 2 or radix > 36:
        raise ScriptRuntimeError("RangeError: toString() radix must be between 2 and 36")
    value = to_integer(x)
    digits = "0123456789abcdefghijklmnopqrstuvwxyz"
    if value == 0:
        return "0"
    sign = "-" if value < 0 else ""
    value = abs(value)
    out = []
    while value:
        value, rem = divmod(value, radix)
        out.append(digits[rem])
    return sign + "".join(reversed(out))


def _to_locale_string(x, *_):
    x = to_number(x)
    if isinstance(x, float):
        if math.isnan(x) or math.isinf(x):
            return format_number(x)
        text = f"{Decimal(x).quantize(Decimal('0.001'), rounding=ROUND_HALF_UP):,f}"
        return text.rstrip("0").rstrip(".") if "." in text else text
    return f"{x:,}"


def _to_precision(x, precision=None):
    if precision is None:
        return format_number(x)
    p = to_integer(precision)
    if p < 1 or p > 100:
        raise ScriptRuntimeError("RangeError: toPrecision() argument must be between 1 and 100")
    text = format(float(to_number(x)), f"#.{p}g")
    return text.rstrip(".")


def number_methods(x) -> Dict[str, Callable]:
    return {
        "toFixed": lambda digits=0, *_: _to_fixed(x, digits),
        "toString": lambda radix=None, *_: _to_string_radix(x, radix),
        "toPrecision": lambda p=None, *_: _to_precision(x, p),
        "toLocaleString": lambda *a: _to_locale_string(x, *a),
        "valueOf": lambda *_: x,
    }


# ── Strings ────────────────────────────────────────────

def _clamp_index(value, length, default):
    if value is None:
        return default
    i = to_integer(value)
    if i < 0:
        i = max(0, length + i)
    return min(i, length)


def _substring(s, start=0, end=None):
    length = len(s)
    a = min(max(to_integer(start), 0), length)
    b = length if end is None else min(max(to_integer(end), 0), length)
    if a > b:
        a, b = b, a
    return s[a:b]


def _substr(s, start=0, length=None):
    a = _clamp_index(start, len(s), 0)
    if length is None:
        return s[a:]
    return s[a:a + max(0, to_integer(length))]


def _slice(seq, start=None, end=None):
    length = len(seq)
    a = _clamp_index(start, length, 0)
    b = _clamp_index(end, length, length)
    return seq[a:b] if a < b else seq[:0]


def _split(s, sep=None, limit=None):
    if sep is None:
        parts = [s]
    elif sep == "":
        parts = list(s)
    else:
        parts = s.split(js_string(sep))
    if limit is not None:
        parts = parts[:max(0, to_integer(limit))]
    return parts


def _pad(s, length, fill=" ", start=True):
    target = to_integer(length)
    fill = " " if fill is None else js_string(fill)
    if target <= len(s) or not fill:
        return s
    needed = target - len(s)
    padding = (fill * (needed // len(fill) + 1))[:needed]
    return padding + s if start else s + padding


def _index_of(s, sub, start=0):
    return s.find(js_string(sub), max(0, to_integer(start)))


def _last_index_of(s, sub, start=None):
    sub = js_string(sub)
    if start is None:
        return s.rfind(sub)
    return s.rfind(sub, 0, max(0, to_integer(start)) + len(sub))


def _char_at(s, i=0):
    i = to_integer(i)
    return s[i] if 0 <= i < len(s) else ""


def _char_code_at(s, i=0):
    i = to_integer(i)
    return ord(s[i]) if 0 <= i < len(s) else NAN


def _at(seq, i=0):
    i = to_integer(i)
    if i < 0:
        i += len(seq)
    return seq[i] if 0 <= i < len(seq) else None


def _repeat(s, count=0):
    count = to_integer(count)
    if count < 0:
        raise ScriptRuntimeError("RangeError: Invalid count value")
    return s * count


def string_methods(s: str) -> Dict[str, Callable]:
    return {
        "toUpperCase": lambda *_: s.upper(),
        "toLowerCase": lambda *_: s.lower(),
        "trim": lambda *_: s.strip(),
        "trimStart": lambda *_: s.lstrip(),
        "trimEnd": lambda *_: s.rstrip(),
        "substring": lambda start=0, end=None, *_: _substring(s, start, end),
        "substr": lambda start=0, length=None, *_: _substr(s, start, length),
        "slice": lambda start=None, end=None, *_: _slice(s, start, end),
        "split": lambda sep=None, limit=None, *_: _split(s, sep, limit),
        "replace": lambda old, new="undefined", *_: s.replace(js_string(old), js_string(new), 1),
        "replaceAll": lambda old, new="undefined", *_: s.replace(js_string(old), js_string(new)),
        "includes": lambda sub, *_: js_string(sub) in s,
        "startsWith": lambda sub, *_: s.startswith(js_string(sub)),
        "endsWith": lambda sub, *_: s.endswith(js_string(sub)),
        "indexOf": lambda sub, start=0, *_: _index_of(s, sub, start),
        "lastIndexOf": lambda sub, start=None, *_: _last_index_of(s, sub, start),
        "charAt": lambda i=0, *_: _char_at(s, i),
        "charCodeAt": lambda i=0, *_: _char_code_at(s, i),
        "at": lambda i=0, *_: _at(s, i),
        "padStart": lambda length, fill=" ", *_: _pad(s, length, fill, start=True),
        "padEnd": lambda length, fill=" ", *_: _pad(s, length, fill, start=False),
        "repeat": lambda count=0, *_: _repeat(s, count),
        "concat": lambda *parts: s + "".join(js_string(p) for p in parts),
        "toString": lambda *_: s,
        "valueOf": lambda *_: s,
    }


# ── Arrays ─────────────────────────────────────────────

def _require_fn(fn, method):
    if not is_callable(fn):
        raise ScriptRuntimeError(f"TypeError: {js_string(fn)} is not a function (in {method})")
    return fn


def _reduce(arr, fn=None, *initial):
    fn = _require_fn(fn, "reduce")
    items = list(enumerate(arr))
    if initial:
        acc = initial[0]
    elif items:
        acc = items.pop(0)[1]
    else:
        raise ScriptRuntimeError("TypeError: Reduce of empty array with no initial value")
    for i, item in items:
        acc = fn(acc, item, i, arr)
    return acc


def _find(arr, fn, index=False):
    fn = _require_fn(fn, "findIndex" if index else "find")
    for i, item in enumerate(arr):
        if truthy(fn(item, i, arr)):
            return i if index else item
    return -1 if index else None


def _sort(arr, fn=None):
    if fn is None:
        key = functools.cmp_to_key(_default_compare)
    else:
        _require_fn(fn, "sort")

        def cmp(a, b):
            r = to_number(fn(a, b))
            return 0 if math.isnan(r) else (r > 0) - (r < 0)
        key = functools.cmp_to_key(cmp)
    arr.sort(key=key)
    return arr


def _default_compare(a, b):
    # undefined sorts last, everything else by string form
    if a is None or b is None:
        return (a is None) - (b is None)
    sa, sb = js_string(a), js_string(b)
    return (sa > sb) - (sa < sb)


def _flat(arr, depth=1):
    depth = to_integer(depth)
    out = []
    for item in arr:
        if isinstance(item, list) and depth > 0:
            out.extend(_flat(item, depth - 1))
        else:
            out.append(item)
    return out


def _index_in(arr, value, start=0):
    for i in range(max(0, to_integer(start)), len(arr)):
        if strict_equals(arr[i], value):
            return i
    return -1


def _includes(arr, value):
    for item in arr:
        if strict_equals(item, value) or (
            is_number(item) and is_number(value) and math.isnan(item) and math.isnan(value)
        ):
            return True
    return False


def _concat(arr, *others):
    out = list(arr)
    for other in others:
        if isinstance(other, list):
            out.extend(other)
        else:
            out.append(other)
    return out


def _reverse(arr):
    arr.reverse()
    return arr


def _push(arr, *items):
    arr.extend(items)
    return len(arr)


def _join(arr, sep=","):
    sep = "," if sep is None else js_string(sep)
    return sep.join("" if item is None else js_string(item) for item in arr)


def _for_each(arr, fn):
    fn = _require_fn(fn, "forEach")
    for i, item in enumerate(list(arr)):
        fn(item, i, arr)
    return None


def array_methods(arr: List[Any]) -> Dict[str, Callable]:
    return {
        "join": lambda sep=",", *_: _join(arr, sep),
        "slice": lambda start=None, end=None, *_: _slice(arr, start, end),
        "indexOf": lambda value=None, start=0, *_: _index_in(arr, value, start),
        "includes": lambda value=None, *_: _includes(arr, value),
        "map": lambda fn=None, *_: [_require_fn(fn, "map")(item, i, arr) for i, item in enumerate(arr)],
        "filter": lambda fn=None, *_: [
            item for i, item in enumerate(arr) if truthy(_require_fn(fn, "filter")(item, i, arr))
        ],
        "reduce": lambda fn=None, *initial: _reduce(arr, fn, *initial),
        "find": lambda fn=None, *_: _find(arr, fn),
        "findIndex": lambda fn=None, *_: _find(arr, fn, index=True),
        "some": lambda fn=None, *_: any(truthy(_require_fn(fn, "some")(x, i, arr)) for i, x in enumerate(arr)),
        "every": lambda fn=None, *_: all(truthy(_require_fn(fn, "every")(x, i, arr)) for i, x in enumerate(arr)),
        "forEach": lambda fn=None, *_: _for_each(arr, fn),
        "concat": lambda *others: _concat(arr, *others),
        "reverse": lambda *_: _reverse(arr),
        "push": lambda *items: _push(arr, *items),
        "pop": lambda *_: arr.pop() if arr else None,
        "shift": lambda *_: arr.pop(0) if arr else None,
        "sort": lambda fn=None, *_: _sort(arr, fn),
        "flat": lambda depth=1, *_: _flat(arr, depth),
        "at": lambda i=0, *_: _at(arr, i),
        "toString": lambda *_: _join(arr),
    }


# ── Globals ────────────────────────────────────────────

_PARSE_FLOAT = re.compile(r"^[+-]?(Infinity|\d+\.?\d*(?:[eE][+-]?\d+)?|\.\d+(?:[eE][+-]?\d+)?)")


def parse_int(value=None, radix=None, *_):
    s = js_string(value).strip()
    sign = 1
    if s and s[0] in "+-":
        sign = -1 if s[0] == "-" else 1
        s = s[1:]
    base = to_integer(radix) if radix is not None else 0
    if base == 0:
        base = 10
        if s[:2].lower() == "0x":
            base = 16
            s = s[2:]
    elif base == 16 and s[:2].lower() == "0x":
        s = s[2:]
    if base < 2 or base > 36:
        return NAN
    digits = "0123456789abcdefghijklmnopqrstuvwxyz"[:base]
    end = 0
    while end < len(s) and s[end].lower() in digits:
        end += 1
    if end == 0:
        return NAN
    return sign * int(s[:end], base)


def parse_float(value=None, *_):
    match = _PARSE_FLOAT.match(js_string(value).strip())
    if not match:
        return NAN
    text = match.group(0)
    if "Infinity" in text:
        return float("-inf") if text.startswith("-") else float("inf")
    number = float(text)
    return int(number) if number.is_integer() and re.fullmatch(r"[+-]?\d+", text) else number


def _is_nan(value=None, *_):
    n = to_number(value)
    return isinstance(n, float) and math.isnan(n)


def _is_finite(value=None, *_):
    n = to_number(value)
    return not (isinstance(n, float) and (math.isnan(n) or math.isinf(n)))


def _json_parse(text=None, *_):
    try:
        return json.loads(js_string(text))
    except ValueError as e:
        raise ScriptRuntimeError(f"SyntaxError: {e}") from None


def _math_min(*args):
    values = [to_number(a) for a in args]
    if any(isinstance(v, float) and math.isnan(v) for v in values):
        return NAN
    return min(values) if values else float("inf")


def _math_max(*args):
    values = [to_number(a) for a in args]
    if any(isinstance(v, float) and math.isnan(v) for v in values):
        return NAN
    return max(values) if values else float("-inf")


def _math_fn(fn):
    def call(x=None, *_):
        v = to_number(x)
        try:
            return fn(v)
        except (ValueError, OverflowError):
            return NAN
    return call


def _math_pow(x=None, y=None, *_):
    return power(to_number(x), to_number(y))


def power(a, b):
    try:
        result = a ** b
    except ZeroDivisionError:
        return float("inf")
    except OverflowError:
        return float("inf")
    if isinstance(result, complex):
        return NAN
    return result


def _math_sign(x=None, *_):
    v = to_number(x)
    if isinstance(v, float) and math.isnan(v):
        return NAN
    return (v > 0) - (v < 0)


def _math_trunc(x=None, *_):
    v = to_number(x)
    if isinstance(v, float) and (math.isnan(v) or math.isinf(v)):
        return v
    return int(v)


def _math_floor(x=None, *_):
    v = to_number(x)
    if isinstance(v, float) and (math.isnan(v) or math.isinf(v)):
        return v
    return math.floor(v)


def _math_ceil(x=None, *_):
    v = to_number(x)
    if isinstance(v, float) and (math.isnan(v) or math.isinf(v)):
        return v
    return math.ceil(v)


def _object_keys(obj=None, *_):
    if isinstance(obj, dict):
        return list(obj.keys())
    if isinstance(obj, (list, str)):
        return [str(i) for i in range(len(obj))]
    if obj is None:
        raise ScriptRuntimeError("TypeError: Cannot convert undefined or null to object")
    return []


def _object_values(obj=None, *_):
    if isinstance(obj, dict):
        return list(obj.values())
    if isinstance(obj, (list, str)):
        return list(obj)
    if obj is None:
        raise ScriptRuntimeError("TypeError: Cannot convert undefined or null to object")
    return []


def _object_entries(obj=None, *_):
    return [[k, v] for k, v in zip(_object_keys(obj), _object_values(obj))]


def _array_from(value=None, fn=None, *_):
    if isinstance(value, str):
        items = list(value)
    elif isinstance(value, list):
        items = list(value)
    elif isinstance(value, dict) and is_number(value.get("length")):
        items = [value.get(str(i)) for i in range(to_integer(value["length"]))]
    else:
        items = []
    if fn is not None:
        fn = _require_fn(fn, "Array.from")
        items = [fn(item, i) for i, item in enumerate(items)]
    return items


def _number(*args):
    return to_number(args[0]) if args else 0


def _string(*args):
    return js_string(args[0]) if args else ""


def _boolean(*args):
    return truthy(args[0]) if args else False


def build_globals(data: Any) -> Dict[str, Any]:
    """Fresh global bindings for one script run."""
    math_ns = Namespace("Math", {
        "PI": math.pi,
        "E": math.e,
        "LN2": math.log(2),
        "LN10": math.log(10),
        "SQRT2": math.sqrt(2),
        "abs": NativeFunction("abs", _math_fn(abs)),
        "floor": NativeFunction("floor", _math_floor),
        "ceil": NativeFunction("ceil", _math_ceil),
        "round": NativeFunction("round", lambda x=None, *_: js_round(x)),
        "trunc": NativeFunction("trunc", _math_trunc),
        "sign": NativeFunction("sign", _math_sign),
        "sqrt": NativeFunction("sqrt", _math_fn(math.sqrt)),
        "cbrt": NativeFunction("cbrt", _math_fn(lambda v: math.copysign(abs(v) ** (1 / 3), v))),
        "pow": NativeFunction("pow", _math_pow),
        "min": NativeFunction("min", _math_min),
        "max": NativeFunction("max", _math_max),
        "random": NativeFunction("random", lambda *_: random.random()),
        "log": NativeFunction("log", _math_fn(lambda v: math.log(v) if v > 0 else (float("-inf") if v == 0 else NAN))),
        "log10": NativeFunction("log10", _math_fn(math.log10)),
        "log2": NativeFunction("log2", _math_fn(math.log2)),
        "exp": NativeFunction("exp", _math_fn(math.exp)),
        "sin": NativeFunction("sin", _math_fn(math.sin)),
        "cos": NativeFunction("cos", _math_fn(math.cos)),
        "tan": NativeFunction("tan", _math_fn(math.tan)),
        "atan2": NativeFunction("atan2", lambda y=None, x=None, *_: math.atan2(to_number(y), to_number(x))),
        "hypot": NativeFunction("hypot", lambda *a: math.hypot(*[to_number(v) for v in a])),
    })

    number_fn = NativeFunction("Number", _number, members={
        "isInteger": NativeFunction("isInteger", lambda v=None, *_: is_number(v) and float(v).is_integer()),
        "isFinite": NativeFunction("isFinite", lambda v=None, *_: is_number(v) and _is_finite(v)),
        "isNaN": NativeFunction("isNaN", lambda v=None, *_: is_number(v) and _is_nan(v)),
        "parseInt": NativeFunction("parseInt", parse_int),
        "parseFloat": NativeFunction("parseFloat", parse_float),
        "MAX_SAFE_INTEGER": 2**53 - 1,
        "MIN_SAFE_INTEGER": -(2**53 - 1),
    })

    date_fn = NativeFunction(
        "Date",
        lambda *_: JSDate(time.time() * 1000).js_string(),
        members={
            "now": NativeFunction("now", lambda *_: int(time.time() * 1000)),
            "parse": NativeFunction("parse", lambda s=None, *_: _parse_date_string(js_string(s))),
        },
        constructor=_construct_date,
    )

    return {
        "$": data,
        "Math": math_ns,
        "String": NativeFunction("String", _string),
        "Number": number_fn,
        "Boolean": NativeFunction("Boolean", _boolean),
        "JSON": Namespace("JSON", {
            "parse": NativeFunction("parse", _json_parse),
            "stringify": NativeFunction("stringify", lambda v=None, _r=None, indent=None, *_: to_json(v, indent)),
        }),
        "Array": Namespace("Array", {
            "isArray": NativeFunction("isArray", lambda v=None, *_: isinstance(v, list)),
            "from": NativeFunction("from", _array_from),
        }),
        "Object": Namespace("Object", {
            "keys": NativeFunction("keys", _object_keys),
            "values": NativeFunction("values", _object_values),
            "entries": NativeFunction("entries", _object_entries),
        }),
        "Date": date_fn,
        "parseInt": NativeFunction("parseInt", parse_int),
        "parseFloat": NativeFunction("parseFloat", parse_float),
        "isNaN": NativeFunction("isNaN", _is_nan),
        "isFinite": NativeFunction("isFinite", _is_finite),
        "encodeURIComponent": NativeFunction(
            "encodeURIComponent", lambda v=None, *_: quote(js_string(v), safe="-_.!~*'()")
        ),
        "decodeURIComponent": NativeFunction("decodeURIComponent", lambda v=None, *_: unquote(js_string(v))),
        "NaN": NAN,
        "Infinity": float("inf"),
    }


__all__ = [
    "JSDate",
    "array_methods",
    "build_globals",
    "js_round",
    "date_methods",
    "number_methods",
    "power",
    "string_methods",
]
