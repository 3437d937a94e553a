"""
Custom widget drawing.

Content comes from the custom-widget preview and is one of: a string (text or
an image URL), a list of strings, a ``{label|title, value}`` pair, a grid
description, or any other object, which is shown as JSON.
"""

import json
import logging
import math
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from PIL import Image, ImageColor, ImageDraw

from designer.binding import BoundValue
from designer.rendering import images
from designer.rendering.fonts import draw_anchored
from designer.rendering.text import AVG_CHAR_WIDTH, BASELINE_OFFSET, LINE_HEIGHT, render_placeholder, wrap_lines

logger = logging.getLogger(__name__)

PADDING = 8
MAX_LIST_ITEMS = 10
LIST_ITEM_GAP = 4
LABEL_COLOR = "#666666"

Box = Tuple[float, float, float, float]


@dataclass
class _Line:
    text: str
    font: Any
    size: float
    fill: Any
    gap_after: float = 0


def _faded(color: str, alpha: float) -> Tuple[int, int, int, int]:
    r, g, b = ImageColor.getrgb(color)[:3]
    return (r, g, b, int(255 * alpha))


def _wrap(text: str, width: float, size: float) -> List[str]:
    return wrap_lines(text, max(1, math.floor(width / (size * AVG_CHAR_WIDTH))))


def _line_block_height(lines: List[_Line]) -> float:
    return sum(line.size * LINE_HEIGHT + line.gap_after for line in lines)


def _block_top(box: Box, height: float, valign: str) -> float:
    top, bottom = box[1], box[3]
    if valign == "top":
        return top
    if valign == "bottom":
        return bottom - height
    return top + (bottom - top - height) / 2


def _anchor(box: Box, align: str) -> Tuple[float, str]:
    if align == "left":
        return box[0], "ls"
    if align == "right":
        return box[2], "rs"
    return (box[0] + box[2]) / 2, "ms"


def _draw_lines(image: Image.Image, box: Box, lines: List[_Line], align: str, valign: str) -> None:
    """Draws lines into ``box``, clipping anything that overflows it."""
    left, top, right, bottom = (int(v) for v in box)
    if right <= left or bottom <= top:
        return
    layer = Image.new("RGBA", (right - left, bottom - top), (0, 0, 0, 0))
    local: Box = (0, 0, right - left, bottom - top)
    draw = ImageDraw.Draw(layer)

    x, anchor = _anchor(local, align)
    y = _block_top(local, _line_block_height(lines), valign)
    for line in lines:
        lh = line.size * LINE_HEIGHT
        if line.text:
            draw_anchored(draw, (x, y + lh / 2 + line.size * BASELINE_OFFSET), line.text, line.font, line.fill, anchor)
        y += lh + line.gap_after
    image.alpha_composite(layer, (left, top))


def _paste_image(image: Image.Image, box: Box, source: Optional[Image.Image], fonts, fit: str = "contain") -> bool:
    """Pastes source fitted into box; a missing source leaves an "Image Error" placeholder."""
    left, top, right, bottom = (int(v) for v in box)
    if right <= left or bottom <= top:
        return False
    if source is None:
        image.alpha_composite(render_placeholder(right - left, bottom - top, fonts, "Image Error"), (left, top))
        return False
    fitted = images.fit_into(images.for_eink(source), right - left, bottom - top, fit)
    image.alpha_composite(fitted, (left, top))
    return True


@dataclass
class _Style:
    font_size: float
    font_family: str
    font_weight: Any
    text_align: str
    vertical_align: str
    color: str

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "_Style":
        return cls(
            font_size=config.get("fontSize") or 24,
            font_family=config.get("fontFamily") or "sans-serif",
            font_weight=config.get("fontWeight") or "normal",
            text_align=config.get("textAlign") or "center",
            vertical_align=config.get("verticalAlign") or "middle",
            color=config.get("color") or "#000000",
        )


# ── 各内容类型 ──────────────────────────────────────────

def _draw_string(image, box, content: str, style: _Style, field_type: Optional[str], ctx) -> None:
    if field_type == "image":
        if not _paste_image(image, box, ctx.asset(content), ctx.fonts):
            logger.warning(f"Custom widget image not available: {content}")
        return
    font = ctx.fonts.get(style.font_family, style.font_size, style.font_weight)
    lines = [_Line(t, font, style.font_size, style.color) for t in _wrap(content, box[2] - box[0], style.font_size)]
    _draw_lines(image, box, lines, style.text_align, style.vertical_align)


def _draw_list(image, box, items: List[Any], style: _Style, ctx) -> None:
    font = ctx.fonts.get(style.font_family, style.font_size, style.font_weight)
    lines = []
    for item in items[:MAX_LIST_ITEMS]:
        wrapped = _wrap(str(item), box[2] - box[0], style.font_size)
        for i, text in enumerate(wrapped):
            gap = LIST_ITEM_GAP if i == len(wrapped) - 1 else 0
            lines.append(_Line(text, font, style.font_size, style.color, gap))
    _draw_lines(image, box, lines, style.text_align, style.vertical_align)


def _draw_pair(image, box, content: Dict[str, Any], style: _Style, value_field_type: Optional[str], ctx) -> None:
    label = str(content["title"] if "title" in content else content["label"])
    value = str(content["value"])
    label_size = style.font_size * 0.6
    label_line = _Line(label, ctx.fonts.get(style.font_family, label_size, style.font_weight), label_size, _faded(style.color, 0.6), 8)

    if value_field_type == "image":
        label_h = label_size * LINE_HEIGHT + 8
        _draw_lines(image, (box[0], box[1], box[2], box[1] + label_h), [label_line], style.text_align, "top")
        image_box = (box[0], box[1] + label_h, box[2], box[1] + label_h + (box[3] - box[1]) * 0.8)
        _paste_image(image, image_box, ctx.asset(value), ctx.fonts)
        return

    value_font = ctx.fonts.get(style.font_family, style.font_size, "bold")
    label_line.gap_after = 0
    lines = [label_line] + [_Line(t, value_font, style.font_size, style.color) for t in _wrap(value, box[2] - box[0], style.font_size)]
    _draw_lines(image, box, lines, style.text_align, style.vertical_align)


def _draw_grid(image, box, content: Dict[str, Any], style: _Style, overrides: Dict[str, Dict[str, Any]], ctx) -> None:
    cols = max(1, int(content.get("gridCols") or 1))
    rows = max(1, int(content.get("gridRows") or 1))
    gap = content.get("gridGap") or 0
    cell_w = (box[2] - box[0] - gap * (cols - 1)) / cols
    cell_h = (box[3] - box[1] - gap * (rows - 1)) / rows
    default_size = style.font_size * 0.7

    for cell in content.get("cells") or []:
        row, col = cell.get("row", 0), cell.get("col", 0)
        if row >= rows or col >= cols:
            continue
        override = overrides.get(f"{row}-{col}") or {}
        left = box[0] + col * (cell_w + gap)
        top = box[1] + row * (cell_h + gap)
        cell_box = (left, top, left + cell_w, top + cell_h)

        size = override.get("fontSize") or default_size
        family = override.get("fontFamily") or style.font_family
        weight = override.get("fontWeight") or "bold"
        align = override.get("align") or cell.get("align") or "center"
        valign = override.get("verticalAlign") or cell.get("verticalAlign") or "middle"

        lines = []
        if cell.get("label"):
            label_size = size * 0.6
            lines.append(_Line(str(cell["label"]), ctx.fonts.get(family, label_size), label_size, LABEL_COLOR))

        if cell.get("fieldType") == "image" and cell.get("value"):
            label_h = _line_block_height(lines)
            if lines:
                _draw_lines(image, (left, top, left + cell_w, top + label_h), lines, align, "top")
            _paste_image(image, (left, top + label_h, left + cell_w, top + cell_h), ctx.asset(str(cell["value"])), ctx.fonts, override.get("imageFit") or "contain")
            continue

        lines.append(_Line(str(cell.get("formattedValue") or ""), ctx.fonts.get(family, size, weight), size, style.color))
        _draw_lines(image, cell_box, lines, align, valign)


def _draw_json(image, box, content: Any, style: _Style, ctx) -> None:
    font = ctx.fonts.get("monospace", 12)
    text = json.dumps(content, indent=2, ensure_ascii=False, default=str)
    lines = []
    for raw in text.split("\n"):
        lines.extend(_Line(t, font, 12, style.color) for t in _wrap(raw, box[2] - box[0], 12) or [""])
    _draw_lines(image, box, lines, "left", "top")


# ── 入口 ──────────────────────────────────────────────

def render_custom(w: int, h: int, config: Dict[str, Any], ctx, bound: Optional[BoundValue]) -> Image.Image:
    if not config.get("customWidgetId"):
        logger.warning("Custom widget missing customWidgetId in config")
        return render_placeholder(w, h, ctx.fonts, "No Widget ID")
    if bound is None:
        return render_placeholder(w, h, ctx.fonts, "Custom Widget")
    if bound.error:
        return render_placeholder(w, h, ctx.fonts, bound.error)

    style = _Style.from_config(config)
    widget_config = bound.widget_config or {}
    content = bound.value
    image = Image.new("RGBA", (w, h), (0, 0, 0, 0))
    box: Box = (PADDING, PADDING, w - PADDING, h - PADDING)

    if isinstance(content, str):
        _draw_string(image, box, content, style, widget_config.get("fieldType"), ctx)
    elif isinstance(content, list):
        _draw_list(image, box, content, style, ctx)
    elif isinstance(content, dict):
        if content.get("type") == "grid":
            _draw_grid(image, box, content, style, config.get("cellOverrides") or {}, ctx)
        elif ("title" in content or "label" in content) and "value" in content:
            _draw_pair(image, box, content, style, widget_config.get("valueFieldType"), ctx)
        else:
            _draw_json(image, box, content, style, ctx)
    else:
        _draw_lines(
            image, box,
            [_Line("Invalid content", ctx.fonts.get(style.font_family, style.font_size), style.font_size, _faded(style.color, 0.5))],
            style.text_align, style.vertical_align,
        )
    return image
