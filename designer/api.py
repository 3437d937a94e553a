"""
FastAPI 路由：暴露设计会话、数据绑定、脚本、几何和手绘操作。
"""

import asyncio
import logging
from typing import Any, Optional

from fastapi import APIRouter, HTTPException
from fastapi.responses import Response

from designer.binding import render_content
from designer.drawing import DrawingError
from designer.geometry import Rect, resize, rotate, snap_position
from designer.gestures import GestureError
from designer.models import DeviceContext, FieldMeta, ScreenDesign
from designer.rendering.compositor import to_png
from designer.resolver import resolve
from designer.script.completions import build_completions
from designer.script.errors import ScriptError
from designer.script.sandbox import VALUE_MODE, declared_names
from designer.script.values import export_value
from designer.session import DesignSession, SessionError, TemplateNotFound, WidgetNotFound
from designer.template import interpolate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")

# 这些全局引用会在 main.py 中注入
_config = None
_catalog = None
_client = None
_binding = None
_renderer = None

_sessions: dict[str, DesignSession] = {}


def init_api(config, catalog, client, binding, renderer):
    """注入全局依赖（由 main.py 调用）。"""
    global _config, _catalog, _client, _binding, _renderer
    _config = config
    _catalog = catalog
    _client = client
    _binding = binding
    _renderer = renderer


def set_catalog(catalog):
    global _catalog
    _catalog = catalog


async def close_sessions():
    for session in list(_sessions.values()):
        await session.close()
    _sessions.clear()


def _session(session_id: str) -> DesignSession:
    session = _sessions.get(session_id)
    if session is None:
        raise HTTPException(404, f"Session '{session_id}' not found")
    return session


def _http_error(e: Exception) -> HTTPException:
    if isinstance(e, (WidgetNotFound, TemplateNotFound)):
        return HTTPException(404, str(e))
    if isinstance(e, GestureError):
        return HTTPException(409, str(e))
    return HTTPException(400, str(e))


def _widget_dict(widget) -> dict:
    return widget.model_dump(by_alias=True)


def _session_dict(session: DesignSession) -> dict:
    return {
        "id": session.id,
        "design": session.design.model_dump(by_alias=True),
        "selectedId": session.selected_id,
        "canUndo": session.drawing.can_undo,
        "canRedo": session.drawing.can_redo,
    }


def _point(value: Any, name: str) -> tuple[float, float]:
    if not isinstance(value, (list, tuple)) or len(value) != 2:
        raise HTTPException(422, f"'{name}' must be an [x, y] pair")
    return float(value[0]), float(value[1])


# ── 模板 ──────────────────────────────────────────────

@router.get("/templates")
async def list_templates() -> list[dict]:
    return [t.model_dump(by_alias=True) for t in _catalog]


@router.get("/templates/categories")
async def template_categories() -> dict[str, list[dict]]:
    return {
        category: [t.model_dump(by_alias=True) for t in templates]
        for category, templates in _catalog.categories().items()
    }


# ── 会话 ──────────────────────────────────────────────

@router.post("/sessions")
async def create_session(data: dict[str, Any]) -> dict:
    """
    新建设计会话。
    data: {"designId": 3} 从后端载入；或 {"design": {...}} 直接给出文档；都没有则为空白设计。
    """
    design_id = data.get("designId")
    if design_id is not None:
        payload = await _client.get_design(design_id) if _client is not None else None
        if payload is None:
            raise HTTPException(404, f"Design {design_id} not found")
        payload.setdefault("id", design_id)
    else:
        payload = data.get("design") or {}

    try:
        design = ScreenDesign.model_validate(payload)
    except ValueError as e:
        raise HTTPException(422, f"Invalid design: {e}")

    session = DesignSession(design, _catalog, _config)
    _sessions[session.id] = session
    session.start_timers()
    logger.info(f"[session {session.id}] opened design {design.id} with {len(design.widgets)} widgets")
    return _session_dict(session)


@router.get("/sessions/{session_id}")
async def get_session(session_id: str) -> dict:
    return _session_dict(_session(session_id))


@router.get("/sessions/{session_id}/payload")
async def get_payload(session_id: str) -> dict:
    return _session(session_id).to_payload()


@router.post("/sessions/{session_id}/save")
async def save_session(session_id: str) -> dict:
    session = _session(session_id)
    if _client is None:
        raise HTTPException(503, "No backend configured")
    saved = await _client.save_design(session.design.id, session.to_payload())
    if saved is None:
        raise HTTPException(502, "Failed to save design")
    return {"message": f"Design {session.design.id} saved", "design": saved}


@router.delete("/sessions/{session_id}")
async def close_session(session_id: str) -> dict:
    session = _sessions.pop(session_id, None)
    if session is None:
        raise HTTPException(404, f"Session '{session_id}' not found")
    await session.close()
    return {"message": f"Session {session_id} closed"}


@router.get("/sessions/{session_id}/dirty")
async def pop_dirty(session_id: str) -> list[int]:
    """定时器触发后需要重绘的部件 id（读取后清空）。"""
    session = _session(session_id)
    ids = sorted(session.dirty)
    session.dirty.clear()
    return ids


# ── 部件 ──────────────────────────────────────────────

@router.post("/sessions/{session_id}/widgets")
async def add_widget(session_id: str, data: dict[str, Any]) -> dict:
    session = _session(session_id)
    if "templateId" not in data:
        raise HTTPException(422, "templateId is required")
    try:
        widget = session.add_widget(int(data["templateId"]), data.get("x", 0), data.get("y", 0), data.get("config"))
    except SessionError as e:
        raise _http_error(e)
    return _widget_dict(widget)


@router.patch("/sessions/{session_id}/widgets/{widget_id}")
async def update_widget(session_id: str, widget_id: int, data: dict[str, Any]) -> dict:
    session = _session(session_id)
    try:
        return _widget_dict(session.update_widget(widget_id, data))
    except SessionError as e:
        raise _http_error(e)
    except ValueError as e:
        raise HTTPException(422, str(e))


@router.delete("/sessions/{session_id}/widgets/{widget_id}")
async def delete_widget(session_id: str, widget_id: int) -> dict:
    try:
        _session(session_id).delete_widget(widget_id)
    except SessionError as e:
        raise _http_error(e)
    return {"message": f"Widget {widget_id} deleted"}


@router.post("/sessions/{session_id}/select")
async def select_widget(session_id: str, data: dict[str, Any]) -> dict:
    session = _session(session_id)
    try:
        widget = session.select(data.get("widgetId"))
    except SessionError as e:
        raise _http_error(e)
    return {"selectedId": session.selected_id, "widget": _widget_dict(widget) if widget else None}


@router.post("/sessions/{session_id}/widgets/{widget_id}/copy")
async def copy_widget(session_id: str, widget_id: int) -> dict:
    try:
        return _widget_dict(_session(session_id).copy(widget_id))
    except SessionError as e:
        raise _http_error(e)


@router.post("/sessions/{session_id}/paste")
async def paste_widget(session_id: str) -> dict:
    try:
        return _widget_dict(_session(session_id).paste())
    except SessionError as e:
        raise _http_error(e)


@router.post("/sessions/{session_id}/widgets/{widget_id}/duplicate")
async def duplicate_widget(session_id: str, widget_id: int) -> dict:
    try:
        return _widget_dict(_session(session_id).duplicate(widget_id))
    except SessionError as e:
        raise _http_error(e)


@router.post("/sessions/{session_id}/widgets/{widget_id}/front")
async def bring_to_front(session_id: str, widget_id: int) -> dict:
    try:
        return _widget_dict(_session(session_id).bring_to_front(widget_id))
    except SessionError as e:
        raise _http_error(e)


@router.post("/sessions/{session_id}/widgets/{widget_id}/back")
async def send_to_back(session_id: str, widget_id: int) -> dict:
    try:
        return _widget_dict(_session(session_id).send_to_back(widget_id))
    except SessionError as e:
        raise _http_error(e)


@router.post("/sessions/{session_id}/widgets/{widget_id}/binding")
async def refresh_binding(session_id: str, widget_id: int) -> dict:
    session = _session(session_id)
    try:
        bound = await session.refresh_binding(widget_id, _binding)
    except SessionError as e:
        raise _http_error(e)
    if bound is None:
        return {"stale": True}
    return {"stale": False, "value": export_value(bound.value), "error": bound.error}


# ── 手势 ──────────────────────────────────────────────
# 每个请求是一次完整的手势：begin → move → end

@router.post("/sessions/{session_id}/widgets/{widget_id}/drag")
async def drag_widget(session_id: str, widget_id: int, data: dict[str, Any]) -> dict:
    session = _session(session_id)
    start = _point(data.get("pointerStart"), "pointerStart")
    pointer = _point(data.get("pointer"), "pointer")
    try:
        gesture = session.begin_drag(widget_id, start, data.get("scale") or 1.0)
        try:
            gesture.move(pointer)
            guides = gesture.guides.to_dict() if gesture.guides else None
        finally:
            gesture.end()
    except (SessionError, GestureError) as e:
        raise _http_error(e)
    return {"widget": _widget_dict(session.get_widget(widget_id)), "guides": guides}


@router.post("/sessions/{session_id}/widgets/{widget_id}/resize")
async def resize_widget(session_id: str, widget_id: int, data: dict[str, Any]) -> dict:
    session = _session(session_id)
    start = _point(data.get("pointerStart"), "pointerStart")
    pointer = _point(data.get("pointer"), "pointer")
    try:
        gesture = session.begin_resize(widget_id, data.get("handle") or "se", start, data.get("scale") or 1.0)
        try:
            gesture.move(pointer)
        finally:
            gesture.end()
    except (SessionError, GestureError) as e:
        raise _http_error(e)
    except ValueError as e:
        raise HTTPException(422, str(e))
    return _widget_dict(session.get_widget(widget_id))


@router.post("/sessions/{session_id}/widgets/{widget_id}/rotate")
async def rotate_widget(session_id: str, widget_id: int, data: dict[str, Any]) -> dict:
    session = _session(session_id)
    start = _point(data.get("pointerStart"), "pointerStart")
    pointer = _point(data.get("pointer"), "pointer")
    origin = _point(data.get("canvasOrigin") or [0, 0], "canvasOrigin")
    try:
        gesture = session.begin_rotate(widget_id, start, data.get("scale") or 1.0, origin)
        try:
            gesture.move(pointer, snap=bool(data.get("snap")))
        finally:
            gesture.end()
    except (SessionError, GestureError) as e:
        raise _http_error(e)
    return _widget_dict(session.get_widget(widget_id))


# ── 预览 ──────────────────────────────────────────────

@router.post("/sessions/{session_id}/preview")
async def preview(session_id: str, device: Optional[DeviceContext] = None) -> Response:
    """整屏 PNG：部件 + 手绘图层。"""
    session = _session(session_id)
    image = await _renderer.render(session.design, session.catalog, device, session.drawing)
    return Response(content=to_png(image), media_type="image/png")


# ── 手绘 ──────────────────────────────────────────────

@router.post("/sessions/{session_id}/drawing/stroke")
async def drawing_stroke(session_id: str, data: dict[str, Any]) -> dict:
    overlay = _session(session_id).drawing
    points = [_point(p, "points") for p in data.get("points") or []]
    try:
        if data.get("tool"):
            overlay.tool = data["tool"]
        if data.get("color"):
            overlay.color = data["color"]
        if data.get("size"):
            overlay.brush_size = int(data["size"])
        overlay.stroke(points)
    except DrawingError as e:
        raise _http_error(e)
    except ValueError as e:
        raise HTTPException(422, str(e))
    return {"position": overlay.history.position, "canUndo": overlay.can_undo, "canRedo": overlay.can_redo}


@router.post("/sessions/{session_id}/drawing/fill")
async def drawing_fill(session_id: str, data: dict[str, Any]) -> dict:
    overlay = _session(session_id).drawing
    try:
        changed = overlay.fill(float(data.get("x", 0)), float(data.get("y", 0)), data.get("color"))
    except DrawingError as e:
        raise _http_error(e)
    except ValueError as e:
        raise HTTPException(422, str(e))
    return {"changed": changed, "position": overlay.history.position}


@router.post("/sessions/{session_id}/drawing/undo")
async def drawing_undo(session_id: str) -> dict:
    overlay = _session(session_id).drawing
    return {"changed": overlay.undo(), "canUndo": overlay.can_undo, "canRedo": overlay.can_redo}


@router.post("/sessions/{session_id}/drawing/redo")
async def drawing_redo(session_id: str) -> dict:
    overlay = _session(session_id).drawing
    return {"changed": overlay.redo(), "canUndo": overlay.can_undo, "canRedo": overlay.can_redo}


@router.post("/sessions/{session_id}/drawing/clear")
async def drawing_clear(session_id: str) -> dict:
    overlay = _session(session_id).drawing
    try:
        overlay.clear()
    except DrawingError as e:
        raise _http_error(e)
    return {"position": overlay.history.position}


@router.get("/sessions/{session_id}/drawing.png")
async def drawing_png(session_id: str) -> Response:
    return Response(content=to_png(_session(session_id).drawing.image), media_type="image/png")


# ── 数据绑定 / 脚本 ──────────────────────────────────────

@router.post("/bindings/resolve")
async def resolve_field(data: dict[str, Any]) -> dict:
    return {"value": resolve(data.get("data"), data.get("path") or "")}


@router.post("/bindings/interpolate")
async def interpolate_template(data: dict[str, Any]) -> dict:
    return {"result": interpolate(data.get("template") or "", data.get("variables") or {})}


@router.post("/bindings/content")
async def custom_content(data: dict[str, Any]) -> dict:
    content = await asyncio.to_thread(
        render_content,
        data.get("displayType") or "value",
        data.get("template"),
        data.get("config") or {},
        data.get("data"),
        _binding.sandbox,
    )
    return {"content": content}


@router.post("/scripts/execute")
async def execute_script(data: dict[str, Any]) -> dict:
    result = await asyncio.to_thread(
        _binding.sandbox.execute, data.get("code") or "", data.get("data"), data.get("mode") or VALUE_MODE
    )
    return result.model_dump()


@router.post("/scripts/declared-names")
async def script_declared_names(data: dict[str, Any]) -> list[str]:
    try:
        return declared_names(data.get("code") or "")
    except ScriptError as e:
        raise HTTPException(400, str(e))


@router.post("/sessions/{session_id}/script-preview")
async def schedule_script_preview(session_id: str, data: dict[str, Any]) -> dict:
    """编辑器每次改动都调用；只有最后一次在防抖窗口后执行。"""
    runner = _session(session_id).script_runner
    token = runner.schedule(data.get("code") or "", data.get("data"), data.get("mode") or VALUE_MODE)
    return {"generation": token.generation}


@router.get("/sessions/{session_id}/script-preview")
async def get_script_preview(session_id: str) -> dict:
    result = await _session(session_id).script_runner.wait()
    return {"result": result.model_dump() if result is not None else None}


@router.post("/scripts/completions")
async def script_completions(data: dict[str, Any]) -> list[dict]:
    fields = [FieldMeta.model_validate(f) for f in data.get("fields") or []]
    return build_completions(fields)


# ── 几何 ──────────────────────────────────────────────

def _rect(value: Any) -> Rect:
    value = value or {}
    return Rect(float(value.get("x", 0)), float(value.get("y", 0)), float(value.get("width", 0)), float(value.get("height", 0)))


@router.post("/geometry/snap")
async def geometry_snap(data: dict[str, Any]) -> dict:
    rect = _rect(data.get("rect"))
    result = snap_position(
        rect.x, rect.y, rect.width, rect.height,
        float(data.get("canvasWidth") or 800), float(data.get("canvasHeight") or 480),
        [_rect(o) for o in data.get("others") or []],
        float(data.get("threshold") or _config.snap.threshold),
    )
    return {"x": result.x, "y": result.y, "guides": result.guides.to_dict()}


@router.post("/geometry/resize")
async def geometry_resize(data: dict[str, Any]) -> dict:
    try:
        rect = resize(_rect(data.get("rect")), data.get("handle") or "se", float(data.get("dx", 0)), float(data.get("dy", 0)))
    except ValueError as e:
        raise HTTPException(422, str(e))
    return {"x": rect.x, "y": rect.y, "width": rect.width, "height": rect.height}


@router.post("/geometry/rotate")
async def geometry_rotate(data: dict[str, Any]) -> dict:
    step = _config.snap.rotation_step if data.get("snap") else None
    rotation = rotate(
        float(data.get("startRotation", 0)),
        float(data.get("startAngle", 0)),
        float(data.get("currentAngle", 0)),
        step,
    )
    return {"rotation": rotation}
