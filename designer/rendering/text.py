"""
Text layout shared by every text-based widget.

The layout is estimated from character counts rather than measured glyphs so
the designer preview and the device renderer wrap lines identically.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from PIL import Image, ImageDraw

from designer.rendering.fonts import FontBook, draw_anchored

logger = logging.getLogger(__name__)

PADDING = 5
LINE_HEIGHT = 1.2
AVG_CHAR_WIDTH = 0.5
BASELINE_OFFSET = 0.35
OVERFLOW_BASELINE = 0.85

_ANCHORS = {"left": "ls", "center": "ms", "right": "rs"}


@dataclass
class TextLayout:
    lines: List[str]
    x: float
    baselines: List[float]
    anchor: str
    line_height: float
    wrapped: List[str] = field(default_factory=list)


def wrap_lines(text: str, max_chars: int, no_wrap: bool = False) -> List[str]:
    input_lines = text.split("\n")
    if no_wrap:
        return input_lines

    wrapped: List[str] = []
    for line in input_lines:
        if len(line) <= max_chars:
            wrapped.append(line)
            continue

        current = ""
        for word in line.split(" "):
            candidate = f"{current} {word}" if current else word
            if len(candidate) <= max_chars:
                current = candidate
                continue
            if current:
                wrapped.append(current)
            # 单词本身过长时按字符硬切
            while len(word) > max_chars:
                wrapped.append(word[:max_chars])
                word = word[max_chars:]
            current = word
        if current:
            wrapped.append(current)
    return wrapped


def layout_text(
    text: str,
    width: float,
    height: float,
    font_size: float,
    text_align: str = "left",
    no_wrap: bool = False,
) -> TextLayout:
    available = width - PADDING * 2
    max_chars = max(10, math.floor(available / (font_size * AVG_CHAR_WIDTH)))
    wrapped = wrap_lines(text, max_chars, no_wrap)

    line_height = font_size * LINE_HEIGHT
    block = len(wrapped) * line_height
    if block <= height:
        start_y = (height - block) / 2 + line_height / 2 + font_size * BASELINE_OFFSET
    else:
        start_y = font_size * OVERFLOW_BASELINE

    max_lines = max(1, math.floor(height / line_height))
    lines = wrapped[:max_lines]

    if text_align == "center":
        x = width / 2
    elif text_align == "right":
        x = width - 10
    else:
        x = 10

    return TextLayout(
        lines=lines,
        x=x,
        baselines=[start_y + i * line_height for i in range(len(lines))],
        anchor=_ANCHORS.get(text_align, "ls"),
        line_height=line_height,
        wrapped=wrapped,
    )


def draw_text(
    image: Image.Image,
    fonts: FontBook,
    text: str,
    font_size: float,
    font_family: str = "sans-serif",
    font_weight=None,
    color: str = "#000000",
    text_align: str = "left",
    no_wrap: bool = False,
    box: Optional[Tuple[int, int, int, int]] = None,
) -> TextLayout:
    """Lays out ``text`` and draws it into ``box`` (defaults to the whole image)."""
    left, top, right, bottom = box or (0, 0, image.width, image.height)
    layout = layout_text(text, right - left, bottom - top, font_size, text_align, no_wrap)
    font = fonts.get(font_family, font_size, font_weight)
    draw = ImageDraw.Draw(image)
    for line, baseline in zip(layout.lines, layout.baselines):
        if line:
            draw_anchored(draw, (left + layout.x, top + baseline), line, font, color, layout.anchor)
    return layout


def render_text(
    width: int,
    height: int,
    fonts: FontBook,
    text: str,
    font_size: float,
    font_family: str = "sans-serif",
    font_weight=None,
    color: str = "#000000",
    text_align: str = "left",
    no_wrap: bool = False,
) -> Image.Image:
    """Text on a transparent layer the size of the widget."""
    image = Image.new("RGBA", (max(1, int(width)), max(1, int(height))), (0, 0, 0, 0))
    draw_text(image, fonts, text, font_size, font_family, font_weight, color, text_align, no_wrap)
    return image


def render_placeholder(width: int, height: int, fonts: FontBook, label: str) -> Image.Image:
    return render_text(width, height, fonts, label, 14, "sans-serif", None, "#666666", "center")
