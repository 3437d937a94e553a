"""
手势控制：拖动、缩放、旋转。

每个部件同一时间最多只有一个手势；手势在 begin 时获取，在 end 时无条件释放。
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, Iterator, List, Optional, Tuple

from designer.geometry import (
    ActiveGuides,
    Handle,
    Rect,
    drag_position,
    js_round,
    resize,
    rotate,
    rotation_angle,
    snap_position,
)
from designer.models import ScreenWidget

logger = logging.getLogger(__name__)

Point = Tuple[float, float]


class GestureError(Exception):
    pass


class GestureInProgress(GestureError):
    def __init__(self, widget_id: int, kind: str):
        self.widget_id = widget_id
        self.kind = kind
        super().__init__(f"Widget {widget_id} already has an active {kind} gesture")


@dataclass
class _Gesture:
    kind: str
    widget: ScreenWidget
    start: Rect
    pointer_start: Point
    scale: float
    _release: Optional[Callable[["_Gesture"], None]] = None
    active: bool = True

    def end(self) -> None:
        if self.active:
            self.active = False
            if self._release is not None:
                self._release(self)

    def _check(self) -> None:
        if not self.active:
            raise GestureError(f"{self.kind} gesture on widget {self.widget.id} has ended")


@dataclass
class DragGesture(_Gesture):
    siblings: Tuple[Rect, ...] = ()
    canvas_size: Tuple[float, float] = (800, 480)
    threshold: float = 8.0
    guides: Optional[ActiveGuides] = None

    def move(self, pointer: Point) -> Tuple[int, int]:
        self._check()
        raw_x, raw_y = drag_position(
            (self.start.x, self.start.y), self.pointer_start, pointer, self.scale
        )
        snapped = snap_position(
            raw_x, raw_y, self.widget.width, self.widget.height,
            self.canvas_size[0], self.canvas_size[1], self.siblings, self.threshold,
        )
        self.guides = snapped.guides
        self.widget.x = js_round(snapped.x)
        self.widget.y = js_round(snapped.y)
        return self.widget.x, self.widget.y

    def end(self) -> None:
        self.guides = None
        super().end()


@dataclass
class ResizeGesture(_Gesture):
    handle: Handle = Handle.SE

    def move(self, pointer: Point) -> Rect:
        self._check()
        dx = (pointer[0] - self.pointer_start[0]) / self.scale
        dy = (pointer[1] - self.pointer_start[1]) / self.scale
        rect = resize(self.start, self.handle, dx, dy)
        self.widget.x, self.widget.y = rect.x, rect.y
        self.widget.width, self.widget.height = rect.width, rect.height
        return rect


@dataclass
class RotateGesture(_Gesture):
    canvas_origin: Point = (0.0, 0.0)
    start_rotation: int = 0
    start_angle: float = 0.0
    snap_step: int = 15

    def _to_canvas(self, pointer: Point) -> Point:
        return (
            (pointer[0] - self.canvas_origin[0]) / self.scale,
            (pointer[1] - self.canvas_origin[1]) / self.scale,
        )

    def move(self, pointer: Point, snap: bool = False) -> int:
        self._check()
        angle = rotation_angle(self.start.center, self._to_canvas(pointer))
        self.widget.rotation = rotate(
            self.start_rotation, self.start_angle, angle, self.snap_step if snap else None
        )
        return self.widget.rotation


class GestureController:
    """Tracks the active gesture of each widget on one design."""

    def __init__(self, canvas_size: Tuple[float, float], snap_threshold: float = 8.0, rotation_step: int = 15):
        self.canvas_size = canvas_size
        self.snap_threshold = snap_threshold
        self.rotation_step = rotation_step
        self._active: Dict[int, _Gesture] = {}

    def active(self, widget_id: int) -> Optional[_Gesture]:
        return self._active.get(widget_id)

    def _acquire(self, gesture: _Gesture) -> _Gesture:
        current = self._active.get(gesture.widget.id)
        if current is not None:
            raise GestureInProgress(gesture.widget.id, current.kind)
        gesture._release = self._release
        self._active[gesture.widget.id] = gesture
        logger.debug(f"[widget {gesture.widget.id}] {gesture.kind} started")
        return gesture

    def _release(self, gesture: _Gesture) -> None:
        if self._active.get(gesture.widget.id) is gesture:
            del self._active[gesture.widget.id]
            logger.debug(f"[widget {gesture.widget.id}] {gesture.kind} ended")

    @staticmethod
    def _rect(widget: ScreenWidget) -> Rect:
        return Rect(widget.x, widget.y, widget.width, widget.height)

    def begin_drag(
        self,
        widget: ScreenWidget,
        pointer: Point,
        siblings: Iterable[ScreenWidget] = (),
        scale: float = 1.0,
    ) -> DragGesture:
        return self._acquire(DragGesture(
            kind="drag",
            widget=widget,
            start=self._rect(widget),
            pointer_start=pointer,
            scale=scale,
            siblings=tuple(self._rect(s) for s in siblings if s.id != widget.id),
            canvas_size=self.canvas_size,
            threshold=self.snap_threshold,
        ))

    def begin_resize(self, widget: ScreenWidget, handle: Handle | str, pointer: Point, scale: float = 1.0) -> ResizeGesture:
        return self._acquire(ResizeGesture(
            kind="resize",
            widget=widget,
            start=self._rect(widget),
            pointer_start=pointer,
            scale=scale,
            handle=Handle(handle),
        ))

    def begin_rotate(
        self,
        widget: ScreenWidget,
        pointer: Point,
        scale: float = 1.0,
        canvas_origin: Point = (0.0, 0.0),
    ) -> RotateGesture:
        start = self._rect(widget)
        gesture = RotateGesture(
            kind="rotate",
            widget=widget,
            start=start,
            pointer_start=pointer,
            scale=scale,
            canvas_origin=canvas_origin,
            start_rotation=widget.rotation,
            snap_step=self.rotation_step,
        )
        gesture.start_angle = rotation_angle(start.center, gesture._to_canvas(pointer))
        return self._acquire(gesture)

    @contextmanager
    def dragging(self, widget: ScreenWidget, pointer: Point, siblings: Iterable[ScreenWidget] = (), scale: float = 1.0) -> Iterator[DragGesture]:
        gesture = self.begin_drag(widget, pointer, siblings, scale)
        try:
            yield gesture
        finally:
            gesture.end()

    @contextmanager
    def resizing(self, widget: ScreenWidget, handle: Handle | str, pointer: Point, scale: float = 1.0) -> Iterator[ResizeGesture]:
        gesture = self.begin_resize(widget, handle, pointer, scale)
        try:
            yield gesture
        finally:
            gesture.end()

    @contextmanager
    def rotating(
        self,
        widget: ScreenWidget,
        pointer: Point,
        scale: float = 1.0,
        canvas_origin: Point = (0.0, 0.0),
    ) -> Iterator[RotateGesture]:
        gesture = self.begin_rotate(widget, pointer, scale, canvas_origin)
        try:
            yield gesture
        finally:
            gesture.end()

    def cancel_all(self) -> List[int]:
        ids = list(self._active)
        for gesture in list(self._active.values()):
            gesture.end()
        return ids
