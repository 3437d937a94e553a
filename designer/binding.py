"""
数据绑定：把数据源的值、脚本和模板组合成部件要显示的内容。
"""

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from designer.generation import GenerationToken
from designer.models import ScreenWidget, WidgetTemplate
from designer.resolver import resolve
from designer.script.sandbox import TEMPLATE_MODE, VALUE_MODE, ScriptSandbox
from designer.script.values import js_string
from designer.template import render_template

logger = logging.getLogger(__name__)


def _format(value: Any, prefix: str = "", suffix: str = "") -> str:
    if isinstance(value, (dict, list)):
        body = json.dumps(value, ensure_ascii=False, separators=(",", ":"))
    elif value is None:
        body = ""
    else:
        body = js_string(value)
    return f"{prefix}{body}{suffix}"


def _extract(data: Any, path: Optional[str]) -> Any:
    # an empty path binds the whole payload
    return resolve(data, path) if path else data


# ── 自定义部件内容 ──────────────────────────────────────

def render_value(config: Dict[str, Any], data: Any) -> str | Dict[str, str]:
    formatted = _format(
        _extract(data, config.get("field")),
        config.get("prefix") or "",
        config.get("suffix") or "",
    )
    label = config.get("label") or ""
    if label:
        return {"label": label, "value": formatted}
    return formatted


_LIST_PREFIX = {"number": None, "dash": "- ", "none": "", "bullet": "• "}


def render_list(config: Dict[str, Any], data: Any) -> List[str]:
    array_path = config.get("arrayPath")
    item_field = config.get("itemField")
    max_items = config.get("maxItems") or 5
    style = config.get("listStyle") or "bullet"

    items: List[Any] = []
    if array_path:
        extracted = resolve(data, array_path)
        if isinstance(extracted, list):
            items = extracted
    elif isinstance(data, list):
        items = data
    elif isinstance(data, dict) and isinstance(data.get("items"), list):
        # RSS 风格的数据结构
        items = data["items"]

    lines = []
    for i, item in enumerate(items[:max_items]):
        if isinstance(item, (dict, list)):
            field_value = item.get(item_field) if item_field and isinstance(item, dict) else None
            text = js_string(field_value) if field_value is not None else _format(item)
        else:
            text = js_string(item)

        if style == "number":
            lines.append(f"{i + 1}. {text}")
        else:
            lines.append(f"{_LIST_PREFIX.get(style, '• ')}{text}")
    return lines


def render_script(config: Dict[str, Any], template: Optional[str], data: Any, sandbox: ScriptSandbox) -> str:
    code = config.get("scriptCode")
    if not code:
        return "No script defined"

    mode = config.get("scriptOutputMode") or VALUE_MODE
    result = sandbox.execute(code, data, TEMPLATE_MODE if mode == TEMPLATE_MODE else VALUE_MODE)
    if not result.success:
        return f"Error: {result.error}"

    if mode == TEMPLATE_MODE:
        return render_template(template or "", result.variables or {})
    return _format(result.output, config.get("prefix") or "", config.get("suffix") or "")


def render_grid(config: Dict[str, Any], data: Any, sandbox: ScriptSandbox) -> Dict[str, Any]:
    cols = config.get("gridCols") or 2
    rows = config.get("gridRows") or 2
    gap = config.get("gridGap") or 8
    cell_configs: Dict[str, Dict[str, Any]] = config.get("gridCells") or {}

    cells = []
    for row in range(rows):
        for col in range(cols):
            cell = cell_configs.get(f"{row}-{col}")
            if not cell or not (cell.get("field") or cell.get("useScript")):
                continue

            field = cell.get("field") or ""
            script = cell.get("script")
            if cell.get("useScript") and script:
                result = sandbox.execute(script, data, VALUE_MODE)
                if result.success:
                    value = result.output
                    formatted = _format(value)
                else:
                    logger.warning(f"Grid cell {row}-{col} script error: {result.error}")
                    value = None
                    formatted = f"Error: {result.error}"
            else:
                value = _extract(data, field)
                formatted = _format(value, cell.get("prefix") or "", cell.get("suffix") or "")

            cells.append({
                "row": row,
                "col": col,
                "field": field,
                "fieldType": cell.get("fieldType") or "text",
                "label": cell.get("label"),
                "value": value,
                "formattedValue": formatted,
                "useScript": bool(cell.get("useScript")),
                "align": cell.get("align") or "center",
                "verticalAlign": cell.get("verticalAlign") or "middle",
            })

    return {"type": "grid", "gridCols": cols, "gridRows": rows, "gridGap": gap, "cells": cells}


def render_content(
    display_type: str,
    template: Optional[str],
    config: Dict[str, Any],
    data: Any,
    sandbox: ScriptSandbox,
) -> Any:
    """Custom-widget content for a display type: str, list of str, or a dict."""
    if display_type == "value":
        return render_value(config, data)
    if display_type == "list":
        return render_list(config, data)
    if display_type == "script":
        return render_script(config, template, data, sandbox)
    if display_type == "grid":
        return render_grid(config, data, sandbox)
    return js_string(data)


# ── 部件绑定 ──────────────────────────────────────────

@dataclass
class BoundValue:
    value: Any = None
    # custom widgets carry the definition's own config (fieldType etc.)
    widget_config: Optional[Dict[str, Any]] = None
    error: Optional[str] = None


class BindingEngine:
    """Fetches external data for a widget and turns it into a renderable value."""

    def __init__(self, client=None, sandbox: Optional[ScriptSandbox] = None):
        self._client = client
        self._sandbox = sandbox or ScriptSandbox()

    @property
    def sandbox(self) -> ScriptSandbox:
        return self._sandbox

    async def resolve_widget(
        self,
        widget: ScreenWidget,
        template: Optional[WidgetTemplate],
        token: Optional[GenerationToken] = None,
    ) -> Optional[BoundValue]:
        """
        Returns None when the token went stale while waiting for data, so the
        caller keeps whatever it showed before.
        """
        try:
            bound = await self._resolve(widget, template)
        except Exception as e:
            # one broken widget renders as a placeholder, never the whole screen
            logger.warning(f"[widget {widget.id}] 绑定失败: {e}")
            bound = BoundValue(error=str(e))
        if token is not None and not token.is_current():
            logger.debug(f"[widget {widget.id}] 绑定结果已过期，丢弃")
            return None
        return bound

    async def _resolve(self, widget: ScreenWidget, template: Optional[WidgetTemplate]) -> BoundValue:
        config = widget.config
        if self._client is None or template is None:
            return BoundValue()

        if widget.is_custom or template.is_custom:
            custom_id = config.get("customWidgetId")
            if not custom_id:
                return BoundValue(error="No Widget ID")
            preview = await self._client.get_custom_preview(custom_id)
            if preview is None:
                return BoundValue(error="Preview unavailable")
            widget_def = preview.get("widget") or {}
            return BoundValue(
                value=preview.get("renderedContent"),
                widget_config=widget_def.get("config") or {},
            )

        source_id = config.get("dataSourceId")
        if source_id:
            data = await self._client.get_cached_data(source_id)
            field = config.get("dataSourceField")
            if config.get("useScript") and config.get("script"):
                result = await asyncio.to_thread(self._sandbox.execute, config["script"], data, VALUE_MODE)
                if not result.success:
                    return BoundValue(error=result.error)
                return BoundValue(value=result.output)
            return BoundValue(value=_extract(data, field))

        if template.name == "github":
            stars = await self._client.get_github_stars(config.get("owner"), config.get("repo"))
            return BoundValue(value=stars)
        if template.name == "weather":
            weather = await self._client.get_weather(config)
            return BoundValue(value=weather)

        return BoundValue()
