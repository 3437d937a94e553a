"""
Geometry for the design canvas: snap guides and drag/resize/rotate transforms.

All coordinates are design-space pixels. Snapping is first-match: canvas
guides are tried before sibling guides, and within each tier the moving
widget's start, centre and end are tested against the guides in list order.
"""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, List, Optional, Tuple

from designer.models import MIN_WIDGET_SIZE, normalize_rotation


def js_round(value: float) -> int:
    """Round half up, matching the editor's pixel rounding."""
    return int(math.floor(value + 0.5))


@dataclass(frozen=True)
class Rect:
    x: float
    y: float
    width: float
    height: float

    @property
    def center(self) -> Tuple[float, float]:
        return self.x + self.width / 2, self.y + self.height / 2


class Axis(str, Enum):
    X = "x"
    Y = "y"


class Handle(str, Enum):
    N = "n"
    S = "s"
    E = "e"
    W = "w"
    NE = "ne"
    NW = "nw"
    SE = "se"
    SW = "sw"


# ── Snapping ──────────────────────────────────────────

@dataclass
class ActiveGuides:
    vertical: List[float] = field(default_factory=list)
    horizontal: List[float] = field(default_factory=list)
    widget_vertical: List[float] = field(default_factory=list)
    widget_horizontal: List[float] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "vertical": self.vertical,
            "horizontal": self.horizontal,
            "widgetVertical": self.widget_vertical,
            "widgetHorizontal": self.widget_horizontal,
        }


@dataclass
class SnapResult:
    x: float
    y: float
    guides: ActiveGuides


def canvas_guides(length: float) -> List[float]:
    return [0, length / 3, length / 2, length * 2 / 3, length]


def sibling_guides(others: Iterable[Rect], axis: Axis) -> List[float]:
    guides: List[float] = []
    for other in others:
        if axis == Axis.X:
            guides.extend([other.x, other.x + other.width / 2, other.x + other.width])
        else:
            guides.extend([other.y, other.y + other.height / 2, other.y + other.height])
    return guides


def _first_match(start: float, size: float, guides: List[float], threshold: float) -> Optional[Tuple[float, float]]:
    """Returns (snapped start, guide) for the first reference point within threshold."""
    for guide in guides:
        for offset in (0, size / 2, size):
            if abs(start + offset - guide) < threshold:
                return guide - offset, guide
    return None


def snap_axis(
    start: float,
    size: float,
    canvas: List[float],
    siblings: List[float],
    threshold: float,
) -> Tuple[float, Optional[float], Optional[float]]:
    """Returns (position, matched canvas guide, matched sibling guide)."""
    hit = _first_match(start, size, canvas, threshold)
    if hit is not None:
        return hit[0], hit[1], None
    hit = _first_match(start, size, siblings, threshold)
    if hit is not None:
        return hit[0], None, hit[1]
    return start, None, None


def snap_position(
    x: float,
    y: float,
    width: float,
    height: float,
    canvas_width: float,
    canvas_height: float,
    others: Iterable[Rect] = (),
    threshold: float = 8.0,
) -> SnapResult:
    others = list(others)
    guides = ActiveGuides()

    new_x, canvas_v, sibling_v = snap_axis(
        x, width, canvas_guides(canvas_width), sibling_guides(others, Axis.X), threshold
    )
    new_y, canvas_h, sibling_h = snap_axis(
        y, height, canvas_guides(canvas_height), sibling_guides(others, Axis.Y), threshold
    )

    if canvas_v is not None:
        guides.vertical.append(canvas_v)
    if sibling_v is not None:
        guides.widget_vertical.append(sibling_v)
    if canvas_h is not None:
        guides.horizontal.append(canvas_h)
    if sibling_h is not None:
        guides.widget_horizontal.append(sibling_h)

    return SnapResult(new_x, new_y, guides)


# ── Transforms ────────────────────────────────────────

def drag_position(
    start: Tuple[float, float],
    pointer_start: Tuple[float, float],
    pointer: Tuple[float, float],
    scale: float = 1.0,
) -> Tuple[float, float]:
    """Raw (unsnapped, unclamped) position after a pointer move in screen pixels."""
    dx = (pointer[0] - pointer_start[0]) / scale
    dy = (pointer[1] - pointer_start[1]) / scale
    return start[0] + dx, start[1] + dy


def resize(rect: Rect, handle: Handle | str, dx: float, dy: float, min_size: float = MIN_WIDGET_SIZE) -> Rect:
    """Apply a resize-handle drag of (dx, dy) design pixels; the opposite edge stays fixed."""
    handle = Handle(handle)
    width, height, x, y = rect.width, rect.height, rect.x, rect.y

    if "e" in handle.value:
        width = max(min_size, rect.width + dx)
    if "w" in handle.value:
        width = max(min_size, rect.width - dx)
        x = rect.x + (rect.width - width)
    if "s" in handle.value:
        height = max(min_size, rect.height + dy)
    if "n" in handle.value:
        height = max(min_size, rect.height - dy)
        y = rect.y + (rect.height - height)

    return Rect(js_round(x), js_round(y), js_round(width), js_round(height))


def rotation_angle(center: Tuple[float, float], pointer: Tuple[float, float]) -> float:
    """Angle in degrees from the widget centre to the pointer."""
    return math.degrees(math.atan2(pointer[1] - center[1], pointer[0] - center[0]))


def rotate(start_rotation: float, start_angle: float, current_angle: float, snap_step: Optional[float] = None) -> int:
    rotation = start_rotation + (current_angle - start_angle)
    if snap_step:
        rotation = js_round(rotation / snap_step) * snap_step
    return normalize_rotation(rotation)
