from typing import Any, Dict, List

from designer.models import FieldMeta
from designer.script.values import js_string

HELPERS = [
    ("Math.round", "function", "Round to nearest integer"),
    ("Math.floor", "function", "Round down"),
    ("Math.ceil", "function", "Round up"),
    ("Math.abs", "function", "Absolute value"),
    ("Math.min", "function", "Minimum of values"),
    ("Math.max", "function", "Maximum of values"),
    ("Number.toFixed", "method", "Format decimal places"),
    ("String.toUpperCase", "method", "Convert to uppercase"),
    ("String.toLowerCase", "method", "Convert to lowercase"),
    ("String.trim", "method", "Remove whitespace"),
    ("String.substring", "method", "Extract substring"),
    ("JSON.stringify", "function", "Convert to JSON string"),
    ("JSON.parse", "function", "Parse JSON string"),
    ("parseInt", "function", "Parse integer"),
    ("parseFloat", "function", "Parse float"),
    ("isNaN", "function", "Check if NaN"),
    ("new Date", "constructor", "Create date object"),
    ("Date.now", "function", "Current timestamp"),
]


def _sample_detail(field: FieldMeta) -> str:
    sample = field.sample
    if sample is None:
        return field.type
    if isinstance(sample, str):
        more = "..." if len(sample) > 30 else ""
        return f'"{sample[:30]}{more}"'
    return js_string(sample)


def build_completions(fields: List[FieldMeta]) -> List[Dict[str, Any]]:
    """Editor completions: one ``$.path`` entry per field, then the helpers."""
    completions = []
    for field in fields:
        info = field.type
        if field.is_image_url:
            info += " (image URL)"
        if field.is_link:
            info += " (link)"
        completions.append({
            "label": f"$.{field.path}",
            "type": "variable",
            "info": info,
            "detail": _sample_detail(field),
            "boost": 1,
        })
    for label, kind, info in HELPERS:
        completions.append({"label": label, "type": kind, "info": info, "boost": 0})
    return completions
