"""
手绘图层：画笔、橡皮、油漆桶，以及基于快照的撤销/重做。

图层是一张与设计同尺寸的 RGBA 图片，合成时覆盖在所有部件之上。
"""

import logging
from enum import Enum
from typing import List, Optional, Tuple

from PIL import Image, ImageColor, ImageDraw

logger = logging.getLogger(__name__)

TRANSPARENT = (0, 0, 0, 0)


class DrawingError(Exception):
    pass


class Tool(str, Enum):
    PEN = "pen"
    ERASER = "eraser"
    FILL = "fill"


def parse_color(color: str) -> Tuple[int, int, int, int]:
    r, g, b, *a = ImageColor.getcolor(color, "RGBA")
    return (r, g, b, a[0] if a else 255)


class DrawingHistory:
    """Immutable snapshots with a cursor; recording after an undo drops the redo tail."""

    def __init__(self, initial: bytes):
        self._snapshots: List[bytes] = [initial]
        self._index = 0

    def record(self, snapshot: bytes) -> None:
        del self._snapshots[self._index + 1:]
        self._snapshots.append(snapshot)
        self._index += 1

    @property
    def current(self) -> bytes:
        return self._snapshots[self._index]

    @property
    def position(self) -> int:
        return self._index + 1

    def __len__(self) -> int:
        return len(self._snapshots)

    @property
    def can_undo(self) -> bool:
        return self._index > 0

    @property
    def can_redo(self) -> bool:
        return self._index < len(self._snapshots) - 1

    def undo(self) -> Optional[bytes]:
        if not self.can_undo:
            return None
        self._index -= 1
        return self.current

    def redo(self) -> Optional[bytes]:
        if not self.can_redo:
            return None
        self._index += 1
        return self.current


class DrawingOverlay:
    def __init__(self, width: int, height: int, brush_size: int = 4, color: str = "#000000"):
        self.width = int(width)
        self.height = int(height)
        self.brush_size = brush_size
        self.color = color
        self._tool = Tool.PEN
        self.image = Image.new("RGBA", (self.width, self.height), TRANSPARENT)
        self._draw = ImageDraw.Draw(self.image)
        self._last_point: Optional[Tuple[float, float]] = None
        self.history = DrawingHistory(self.snapshot())

    # ── 工具 ──────────────────────────────────────────

    @property
    def tool(self) -> Tool:
        return self._tool

    @tool.setter
    def tool(self, value: Tool | str) -> None:
        if self.stroking:
            raise DrawingError("Cannot change tool while a stroke is in progress")
        self._tool = Tool(value)

    @property
    def stroking(self) -> bool:
        return self._last_point is not None

    def _ink(self) -> Tuple[int, int, int, int]:
        return TRANSPARENT if self._tool == Tool.ERASER else parse_color(self.color)

    def _stamp(self, x: float, y: float) -> None:
        r = self.brush_size / 2
        self._draw.ellipse((x - r, y - r, x + r, y + r), fill=self._ink())

    # ── 笔画 ──────────────────────────────────────────

    def begin_stroke(self, x: float, y: float) -> None:
        if self._tool == Tool.FILL:
            self.fill(x, y)
            return
        if self.stroking:
            raise DrawingError("A stroke is already in progress")
        self._last_point = (x, y)
        self._stamp(x, y)

    def extend_stroke(self, x: float, y: float) -> None:
        if not self.stroking:
            raise DrawingError("No stroke in progress")
        self._draw.line([self._last_point, (x, y)], fill=self._ink(), width=self.brush_size)
        # round caps and joins
        self._stamp(x, y)
        self._last_point = (x, y)

    def end_stroke(self) -> None:
        if not self.stroking:
            return
        self._last_point = None
        self.history.record(self.snapshot())

    def stroke(self, points: List[Tuple[float, float]]) -> None:
        if not points:
            return
        self.begin_stroke(*points[0])
        if self._tool == Tool.FILL:
            return
        for point in points[1:]:
            self.extend_stroke(*point)
        self.end_stroke()

    # ── 填充 ──────────────────────────────────────────

    def fill(self, x: float, y: float, color: Optional[str] = None) -> bool:
        """4-connected flood fill. Returns False when nothing changed."""
        if self.stroking:
            raise DrawingError("Cannot fill while a stroke is in progress")
        sx, sy = int(x), int(y)
        if not (0 <= sx < self.width and 0 <= sy < self.height):
            return False

        pixels = self.image.load()
        target = pixels[sx, sy]
        replacement = parse_color(color or self.color)
        if target == replacement:
            return False

        stack = [(sx, sy)]
        visited = set()
        while stack:
            px, py = stack.pop()
            if (px, py) in visited:
                continue
            visited.add((px, py))
            if pixels[px, py] != target:
                continue
            pixels[px, py] = replacement
            if px > 0:
                stack.append((px - 1, py))
            if px < self.width - 1:
                stack.append((px + 1, py))
            if py > 0:
                stack.append((px, py - 1))
            if py < self.height - 1:
                stack.append((px, py + 1))

        self.history.record(self.snapshot())
        logger.debug(f"Flood fill at ({sx}, {sy}) touched {len(visited)} pixels")
        return True

    def clear(self) -> None:
        if self.stroking:
            raise DrawingError("Cannot clear while a stroke is in progress")
        self._draw.rectangle((0, 0, self.width, self.height), fill=TRANSPARENT)
        self.history.record(self.snapshot())

    # ── 历史 ──────────────────────────────────────────

    def snapshot(self) -> bytes:
        return self.image.tobytes()

    def _restore(self, snapshot: bytes) -> None:
        self.image = Image.frombytes("RGBA", (self.width, self.height), snapshot)
        self._draw = ImageDraw.Draw(self.image)

    @property
    def can_undo(self) -> bool:
        return self.history.can_undo

    @property
    def can_redo(self) -> bool:
        return self.history.can_redo

    def undo(self) -> bool:
        snapshot = self.history.undo()
        if snapshot is None:
            return False
        self._restore(snapshot)
        return True

    def redo(self) -> bool:
        snapshot = self.history.redo()
        if snapshot is None:
            return False
        self._restore(snapshot)
        return True

    def is_blank(self) -> bool:
        return self.image.getbbox() is None
