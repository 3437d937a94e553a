"""
设计会话：一个正在编辑的 ScreenDesign 及其选择、剪贴板、手势、手绘图层和定时器。
"""

import logging
import uuid
from typing import Any, Dict, Optional, Set

from designer.binding import BindingEngine, BoundValue
from designer.catalog import TemplateCatalog
from designer.config_loader import DesignerConfig
from designer.drawing import DrawingOverlay
from designer.generation import GenerationCounter
from designer.gestures import GestureController
from designer.models import MIN_WIDGET_SIZE, ScreenDesign, ScreenWidget
from designer.rendering.widgets import widget_kind
from designer.scheduler import WidgetTicker
from designer.script.runner import ScriptRunner
from designer.script.sandbox import ScriptSandbox

logger = logging.getLogger(__name__)

PASTE_OFFSET = 20

# update_widget 接受的字段（线上格式 → 模型属性）
_UPDATABLE = {
    "x": "x",
    "y": "y",
    "width": "width",
    "height": "height",
    "rotation": "rotation",
    "config": "config",
    "zIndex": "z_index",
    "z_index": "z_index",
    "templateId": "template_id",
    "template_id": "template_id",
}


class SessionError(Exception):
    pass


class WidgetNotFound(SessionError):
    def __init__(self, widget_id: int):
        self.widget_id = widget_id
        super().__init__(f"Widget {widget_id} not found")


class TemplateNotFound(SessionError):
    def __init__(self, template_id: int):
        self.template_id = template_id
        super().__init__(f"Template {template_id} not found")


class DesignSession:
    def __init__(
        self,
        design: ScreenDesign,
        catalog: TemplateCatalog,
        config: Optional[DesignerConfig] = None,
        session_id: Optional[str] = None,
    ):
        self.id = session_id or uuid.uuid4().hex[:12]
        self.design = design
        self.catalog = catalog
        self.config = config or DesignerConfig()

        self.selected_id: Optional[int] = None
        self.clipboard: Optional[ScreenWidget] = None
        # 定时器触发后待重绘的部件
        self.dirty: Set[int] = set()
        self.bindings: Dict[int, BoundValue] = {}
        self._generations: Dict[int, GenerationCounter] = {}

        self.gestures = GestureController(
            (design.width, design.height),
            snap_threshold=self.config.snap.threshold,
            rotation_step=self.config.snap.rotation_step,
        )
        self.drawing = DrawingOverlay(
            design.width, design.height,
            brush_size=self.config.drawing.brush_size,
            color=self.config.drawing.color,
        )
        self.ticker = WidgetTicker(
            self._on_tick,
            local_timezone=self.config.render.local_timezone,
            default_timezone=self.config.render.default_timezone,
        )
        # 脚本编辑器的防抖预览
        self.script_runner = ScriptRunner(
            ScriptSandbox(timeout_ms=self.config.script.timeout_ms),
            debounce_ms=self.config.script.debounce_ms,
        )

        for widget in design.widgets:
            widget.template = catalog.get(widget.template_id)

    # ── 载入 / 保存 ──────────────────────────────────────────

    @classmethod
    def from_payload(
        cls,
        payload: Dict[str, Any],
        catalog: TemplateCatalog,
        config: Optional[DesignerConfig] = None,
        session_id: Optional[str] = None,
    ) -> "DesignSession":
        return cls(ScreenDesign.model_validate(payload), catalog, config, session_id)

    def to_payload(self) -> Dict[str, Any]:
        return self.design.to_payload()

    def start_timers(self) -> int:
        """Starts timers for every widget that needs one; call from inside the event loop."""
        return sum(1 for w in self.design.widgets if self.ticker.start(w, self._kind(w)))

    async def close(self) -> None:
        self.gestures.cancel_all()
        self.script_runner.cancel()
        await self.ticker.shutdown()
        logger.info(f"[session {self.id}] closed")

    # ── 查询 ──────────────────────────────────────────────

    def _kind(self, widget: ScreenWidget) -> Optional[str]:
        return widget_kind(widget, self.catalog.get(widget.template_id))

    def get_widget(self, widget_id: int) -> ScreenWidget:
        widget = self.design.get_widget(widget_id)
        if widget is None:
            raise WidgetNotFound(widget_id)
        return widget

    @property
    def selected(self) -> Optional[ScreenWidget]:
        return self.design.get_widget(self.selected_id) if self.selected_id is not None else None

    def next_local_id(self) -> int:
        """Local ids count down from -1 and never collide with persisted (positive) ids."""
        return min((w.id for w in self.design.widgets if w.id < 0), default=0) - 1

    def _on_tick(self, widget_id: int) -> None:
        if self.design.get_widget(widget_id) is None:
            # 部件已删除但任务还没退出
            self.ticker.cancel(widget_id)
            return
        self.dirty.add(widget_id)

    # ── 编辑 ──────────────────────────────────────────────

    def add_widget(
        self,
        template_id: int,
        x: float = 0,
        y: float = 0,
        config: Optional[Dict[str, Any]] = None,
    ) -> ScreenWidget:
        template = self.catalog.get(template_id)
        if template is None:
            raise TemplateNotFound(template_id)

        widget = ScreenWidget(
            id=self.next_local_id(),
            template_id=template_id,
            x=x,
            y=y,
            width=max(MIN_WIDGET_SIZE, template.min_width * 1.5),
            height=max(MIN_WIDGET_SIZE, template.min_height * 1.5),
            rotation=0,
            config={**template.default_config, **(config or {})},
            z_index=len(self.design.widgets),
        )
        widget.template = template
        self.design.widgets.append(widget)
        self.ticker.start(widget, self._kind(widget))
        logger.info(f"[session {self.id}] added {template.name} widget {widget.id}")
        return widget

    def update_widget(self, widget_id: int, changes: Dict[str, Any]) -> ScreenWidget:
        widget = self.get_widget(widget_id)
        unknown = set(changes) - set(_UPDATABLE)
        if unknown:
            raise SessionError(f"Cannot update fields: {', '.join(sorted(unknown))}")

        data = widget.model_dump()
        for key, value in changes.items():
            data[_UPDATABLE[key]] = value
        validated = ScreenWidget.model_validate(data)
        # gestures and timers hold this instance, so it is updated in place
        for field in set(_UPDATABLE.values()):
            setattr(widget, field, getattr(validated, field))
        widget.template = self.catalog.get(widget.template_id)

        if "config" in changes or "templateId" in changes or "template_id" in changes:
            self.ticker.restart(widget, self._kind(widget))
        return widget

    def delete_widget(self, widget_id: int) -> None:
        widget = self.get_widget(widget_id)
        self.ticker.cancel(widget_id)
        gesture = self.gestures.active(widget_id)
        if gesture is not None:
            gesture.end()
        self.design.widgets.remove(widget)
        self.bindings.pop(widget_id, None)
        self._generations.pop(widget_id, None)
        self.dirty.discard(widget_id)
        if self.selected_id == widget_id:
            self.selected_id = None
        logger.info(f"[session {self.id}] deleted widget {widget_id}")

    def select(self, widget_id: Optional[int]) -> Optional[ScreenWidget]:
        if widget_id is not None:
            self.get_widget(widget_id)
        self.selected_id = widget_id
        return self.selected

    # ── 剪贴板 ──────────────────────────────────────────────

    def _clone(self, source: ScreenWidget) -> ScreenWidget:
        widget = source.model_copy(deep=True)
        widget.id = self.next_local_id()
        widget.x = max(0, min(source.x + PASTE_OFFSET, self.design.width - source.width))
        widget.y = max(0, min(source.y + PASTE_OFFSET, self.design.height - source.height))
        widget.z_index = len(self.design.widgets)
        widget.template = self.catalog.get(widget.template_id)
        self.design.widgets.append(widget)
        self.ticker.start(widget, self._kind(widget))
        self.selected_id = widget.id
        return widget

    def copy(self, widget_id: Optional[int] = None) -> ScreenWidget:
        if widget_id is None:
            widget_id = self.selected_id
        if widget_id is None:
            raise SessionError("Nothing selected to copy")
        self.clipboard = self.get_widget(widget_id).model_copy(deep=True)
        return self.clipboard

    def paste(self) -> ScreenWidget:
        if self.clipboard is None:
            raise SessionError("Clipboard is empty")
        return self._clone(self.clipboard)

    def duplicate(self, widget_id: int) -> ScreenWidget:
        return self._clone(self.get_widget(widget_id))

    # ── 层级 ──────────────────────────────────────────────

    def bring_to_front(self, widget_id: int) -> ScreenWidget:
        widget = self.get_widget(widget_id)
        widget.z_index = max(w.z_index for w in self.design.widgets) + 1
        return widget

    def send_to_back(self, widget_id: int) -> ScreenWidget:
        widget = self.get_widget(widget_id)
        widget.z_index = min(w.z_index for w in self.design.widgets) - 1
        return widget

    # ── 手势 ──────────────────────────────────────────────

    def begin_drag(self, widget_id: int, pointer, scale: float = 1.0):
        widget = self.get_widget(widget_id)
        return self.gestures.begin_drag(widget, pointer, self.design.widgets, scale)

    def begin_resize(self, widget_id: int, handle: str, pointer, scale: float = 1.0):
        return self.gestures.begin_resize(self.get_widget(widget_id), handle, pointer, scale)

    def begin_rotate(self, widget_id: int, pointer, scale: float = 1.0, canvas_origin=(0.0, 0.0)):
        return self.gestures.begin_rotate(self.get_widget(widget_id), pointer, scale, canvas_origin)

    # ── 数据绑定 ──────────────────────────────────────────────

    async def refresh_binding(self, widget_id: int, engine: BindingEngine) -> Optional[BoundValue]:
        """Resolves a widget's data; a result overtaken by a newer refresh is dropped."""
        widget = self.get_widget(widget_id)
        token = self._generations.setdefault(widget_id, GenerationCounter()).next()
        bound = await engine.resolve_widget(widget, self.catalog.get(widget.template_id), token)
        if bound is not None and self.design.get_widget(widget_id) is not None:
            self.bindings[widget_id] = bound
        return bound
