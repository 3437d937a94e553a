"""
字体映射与加载。

CSS 字体族名先映射成设备端加载的具体字体，再由 FontBook 找到对应的 TrueType 文件。
"""

import logging
import os
from typing import Dict, List, Optional, Tuple

from PIL import ImageFont

logger = logging.getLogger(__name__)

_FAMILY_MAP = {
    "sans-serif": "'Inter', sans-serif",
    "monospace": "'Roboto Mono', monospace",
    "serif": "'Merriweather', serif",
}


def map_font_family(family: str) -> str:
    if family in _FAMILY_MAP:
        return _FAMILY_MAP[family]
    return family if "," in family else f"{family}, sans-serif"


def primary_family(family: str) -> str:
    """First concrete name of a mapped family list, unquoted."""
    first = map_font_family(family or "sans-serif").split(",")[0]
    return first.strip().strip("'\"")


# 每个字体族的候选文件名（常规, 粗体），最后几项是常见的系统字体
_FONT_FILES: Dict[str, Tuple[List[str], List[str]]] = {
    "Inter": (
        ["Inter-Regular.ttf", "Inter.ttf", "DejaVuSans.ttf", "LiberationSans-Regular.ttf", "Arial.ttf"],
        ["Inter-Bold.ttf", "DejaVuSans-Bold.ttf", "LiberationSans-Bold.ttf", "Arial Bold.ttf"],
    ),
    "Roboto Mono": (
        ["RobotoMono-Regular.ttf", "DejaVuSansMono.ttf", "LiberationMono-Regular.ttf", "Courier New.ttf"],
        ["RobotoMono-Bold.ttf", "DejaVuSansMono-Bold.ttf", "LiberationMono-Bold.ttf"],
    ),
    "Merriweather": (
        ["Merriweather-Regular.ttf", "DejaVuSerif.ttf", "LiberationSerif-Regular.ttf", "Georgia.ttf"],
        ["Merriweather-Bold.ttf", "DejaVuSerif-Bold.ttf", "LiberationSerif-Bold.ttf"],
    ),
}

_SYSTEM_FONT_DIRS = [
    "/usr/share/fonts/truetype/dejavu",
    "/usr/share/fonts/truetype/liberation",
    "/usr/share/fonts/TTF",
    "/usr/share/fonts",
    "/Library/Fonts",
    "/System/Library/Fonts/Supplemental",
    "C:\\Windows\\Fonts",
]


def is_bold(weight) -> bool:
    if weight is None:
        return False
    if isinstance(weight, (int, float)):
        return weight >= 600
    weight = str(weight).strip().lower()
    if weight.isdigit():
        return int(weight) >= 600
    return weight in ("bold", "bolder")


class FontBook:
    """Caches Pillow fonts by (family, bold, size)."""

    def __init__(self, fonts_dir: Optional[str] = None):
        self._dirs = ([fonts_dir] if fonts_dir else []) + _SYSTEM_FONT_DIRS
        self._cache: Dict[Tuple[str, bool, int], ImageFont.ImageFont] = {}
        self._paths: Dict[Tuple[str, bool], Optional[str]] = {}

    def _find(self, name: str, bold: bool) -> Optional[str]:
        key = (name, bold)
        if key in self._paths:
            return self._paths[key]

        regular, bold_files = _FONT_FILES.get(name, ([f"{name}.ttf"], [f"{name}-Bold.ttf"]))
        candidates = (bold_files + regular) if bold else regular
        found = None
        for filename in candidates:
            for directory in self._dirs:
                path = os.path.join(directory, filename)
                if os.path.isfile(path):
                    found = path
                    break
            if found:
                break

        if found is None:
            logger.debug(f"No font file for {name} (bold={bold}), using Pillow default")
        self._paths[key] = found
        return found

    def get(self, family: str = "sans-serif", size: float = 16, weight=None):
        name = primary_family(family)
        bold = is_bold(weight)
        px = max(1, int(round(size)))
        key = (name, bold, px)
        font = self._cache.get(key)
        if font is not None:
            return font

        path = self._find(name, bold)
        if path:
            try:
                font = ImageFont.truetype(path, size=px)
            except OSError as e:
                logger.warning(f"Failed to load font {path}: {e}")
        if font is None:
            font = ImageFont.load_default(px)
        self._cache[key] = font
        return font


def draw_anchored(draw, xy, text: str, font, fill, anchor: str = "ls") -> None:
    """``draw.text`` with an SVG-like anchor; bitmap fonts get the offset computed by hand."""
    if isinstance(font, ImageFont.FreeTypeFont):
        draw.text(xy, text, font=font, fill=fill, anchor=anchor)
        return
    x, y = xy
    left, top, right, bottom = draw.textbbox((0, 0), text, font=font)
    if anchor[0] == "m":
        x -= (right - left) / 2
    elif anchor[0] == "r":
        x -= right - left
    if anchor[1] == "s":
        y -= bottom
    elif anchor[1] == "m":
        y -= (bottom - top) / 2
    draw.text((x, y), text, font=font, fill=fill)
