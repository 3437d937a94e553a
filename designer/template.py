"""
Template interpolation for ``{{name}}`` placeholders.
"""

import re
from typing import Any, Mapping

from designer.script.values import js_string

_PLACEHOLDER = re.compile(r"\{\{([^}]+)\}\}")


def interpolate(template: str, variables: Mapping[str, Any]) -> str:
    """Replace every ``{{key}}`` (or ``{{ key }}``) occurrence for each key present in variables."""
    result = template
    for key, value in variables.items():
        pattern = re.compile(r"\{\{\s*" + re.escape(key) + r"\s*\}\}")
        text = js_string(value)
        result = pattern.sub(lambda _m: text, result)
    return result


def render_template(template: str, variables: Mapping[str, Any]) -> str:
    """
    Device-side flavour: whitespace inside the braces is ignored and unknown
    or undefined keys keep their placeholder.
    """
    def _sub(match: re.Match) -> str:
        name = match.group(1).strip()
        value = variables.get(name)
        if value is None:
            return match.group(0)
        return js_string(value)

    return _PLACEHOLDER.sub(_sub, template or "")
