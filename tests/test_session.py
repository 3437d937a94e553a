import asyncio
import os
import sys
from unittest.mock import AsyncMock, MagicMock

import pytest

# Add project root to path
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from designer.binding import BoundValue
from designer.catalog import TemplateCatalog, builtin_templates
from designer.models import ScreenDesign, ScreenWidget
from designer.scheduler import WidgetTicker
from designer.session import DesignSession, SessionError, TemplateNotFound, WidgetNotFound

CATALOG = TemplateCatalog(builtin_templates())


def _session(**design) -> DesignSession:
    return DesignSession(ScreenDesign(**design), CATALOG)


def _template_id(name: str) -> int:
    return CATALOG.by_name(name).id


# ── 增删改 ──────────────────────────────────────────────

def test_add_widget_assigns_local_ids_and_defaults():
    session = _session()
    first = session.add_widget(_template_id("clock"), 10, 20)
    second = session.add_widget(_template_id("text"), config={"text": "Hi"})

    assert (first.id, second.id) == (-1, -2)
    assert (first.width, first.height) == (300, 120)
    assert first.config["format"] == "24h"
    assert second.config["text"] == "Hi"
    assert second.config["fontSize"] == 24
    assert second.z_index == 1
    assert first.template is not None


def test_local_ids_do_not_collide_with_persisted():
    design = ScreenDesign(widgets=[
        ScreenWidget(id=12, templateId=_template_id("text")),
        ScreenWidget(id=-3, templateId=_template_id("text")),
    ])
    session = DesignSession(design, CATALOG)
    assert session.next_local_id() == -4


def test_add_widget_unknown_template():
    with pytest.raises(TemplateNotFound):
        _session().add_widget(4242)


def test_update_widget_validates_fields():
    session = _session()
    widget = session.add_widget(_template_id("text"))

    updated = session.update_widget(widget.id, {"rotation": 370, "zIndex": 7, "width": 2})
    assert updated.rotation == 10
    assert updated.z_index == 7
    assert updated.width == 10
    assert session.get_widget(widget.id) is updated

    with pytest.raises(SessionError):
        session.update_widget(widget.id, {"id": 5})


def test_delete_clears_selection():
    session = _session()
    widget = session.add_widget(_template_id("text"))
    session.select(widget.id)

    session.delete_widget(widget.id)

    assert session.selected_id is None
    assert session.selected is None
    with pytest.raises(WidgetNotFound):
        session.get_widget(widget.id)


def test_select_unknown_widget():
    with pytest.raises(WidgetNotFound):
        _session().select(99)


# ── 剪贴板与层级 ──────────────────────────────────────────

def test_paste_offsets_and_clamps_to_canvas():
    session = _session(width=800, height=480)
    widget = session.add_widget(_template_id("text"), 700, 10)
    session.select(widget.id)

    session.copy()
    pasted = session.paste()

    assert pasted.id == -2
    # 150 wide, so x clamps to 800 - 150
    assert (pasted.x, pasted.y) == (650, 30)
    assert session.selected_id == pasted.id
    assert pasted.config == widget.config
    assert pasted.config is not widget.config


def test_paste_requires_clipboard():
    with pytest.raises(SessionError):
        _session().paste()


def test_duplicate_and_layering():
    session = _session()
    a = session.add_widget(_template_id("text"))
    b = session.duplicate(a.id)

    assert (b.x, b.y) == (20, 20)
    session.bring_to_front(a.id)
    assert a.z_index == 2
    session.send_to_back(a.id)
    assert a.z_index == 0
    assert session.design.paint_order()[0] is a


# ── 载入 / 保存 ──────────────────────────────────────────

def test_payload_strips_template_and_local_ids():
    payload = {
        "id": 3,
        "name": "Kitchen",
        "width": 800,
        "height": 480,
        "background": "#ffffff",
        "widgets": [{"id": 41, "templateId": _template_id("text"), "x": 1, "y": 2, "width": 100, "height": 40,
                     "rotation": 0, "config": {"text": "a"}, "zIndex": 0}],
    }
    session = DesignSession.from_payload(payload, CATALOG)
    session.add_widget(_template_id("divider"))

    out = session.to_payload()

    assert out["widgets"][0]["id"] == 41
    assert "id" not in out["widgets"][1]
    assert all("template" not in w for w in out["widgets"])
    assert out["widgets"][0]["templateId"] == _template_id("text")


# ── 手势 ──────────────────────────────────────────────

def test_drag_snaps_against_siblings():
    session = _session()
    anchor = session.add_widget(_template_id("text"), 200, 300)
    moving = session.add_widget(_template_id("text"), 100, 100)

    with session.gestures.dragging(moving, (0, 0), session.design.widgets) as drag:
        drag.move((103, 0))

    assert moving.x == anchor.x
    assert anchor.x == 200


def test_update_during_drag_keeps_gesture_on_session_widget():
    session = _session()
    widget = session.add_widget(_template_id("text"), 100, 100)

    drag = session.begin_drag(widget.id, (0, 0))
    updated = session.update_widget(widget.id, {"config": {"text": "changed"}})
    drag.move((50, 50))
    drag.end()

    assert updated is widget
    assert session.get_widget(widget.id).config == {"text": "changed"}
    assert (session.get_widget(widget.id).x, session.get_widget(widget.id).y) == (150, 150)


# ── 定时器与绑定 ──────────────────────────────────────────

def test_session_timers_follow_widget_lifecycle():
    async def scenario():
        session = _session()
        clock = session.add_widget(_template_id("clock"))
        text = session.add_widget(_template_id("text"))
        active = session.ticker.active_ids()

        session.delete_widget(clock.id)
        after_delete = session.ticker.active_ids()
        await session.close()
        return clock.id, text.id, active, after_delete

    clock_id, text_id, active, after_delete = asyncio.run(scenario())
    assert active == [clock_id]
    assert after_delete == []


def test_ticker_fires_and_cancels():
    ticks = []

    async def scenario():
        ticker = WidgetTicker(ticks.append, local_timezone="UTC", tick_interval=0.01)
        widget = ScreenWidget(id=-1, templateId=1)
        assert ticker.start(widget, "clock")
        assert not ticker.start(ScreenWidget(id=-2, templateId=4), "text")
        await asyncio.sleep(0.05)
        task = ticker._tasks[widget.id]
        ticker.cancel(widget.id)
        await asyncio.sleep(0)
        count = len(ticks)
        await asyncio.sleep(0.03)
        return task, count

    task, count = asyncio.run(scenario())
    assert count > 0
    assert len(ticks) == count
    assert task.cancelled()


def test_ticker_logs_callback_failures():
    def boom(widget_id):
        raise ValueError("nope")

    async def scenario():
        ticker = WidgetTicker(boom, tick_interval=0.01)
        ticker.start(ScreenWidget(id=-1, templateId=1), "countdown")
        await asyncio.sleep(0.03)
        alive = ticker.active_ids()
        await ticker.shutdown()
        return alive, ticker.active_ids()

    alive, after = asyncio.run(scenario())
    assert alive == [-1]
    assert after == []


def test_ticker_without_loop_does_not_start():
    ticker = WidgetTicker(lambda _id: None)
    assert not ticker.start(ScreenWidget(id=-1, templateId=1), "clock")
    assert ticker.active_ids() == []


def test_refresh_binding_stores_result():
    session = _session()
    widget = session.add_widget(_template_id("text"), config={"dataSourceId": 1, "dataSourceField": "a"})
    engine = MagicMock()
    engine.resolve_widget = AsyncMock(return_value=BoundValue(value="fresh"))

    bound = asyncio.run(session.refresh_binding(widget.id, engine))

    assert bound.value == "fresh"
    assert session.bindings[widget.id].value == "fresh"


def test_refresh_binding_ignores_stale_result():
    session = _session()
    widget = session.add_widget(_template_id("text"))
    engine = MagicMock()
    engine.resolve_widget = AsyncMock(return_value=None)

    assert asyncio.run(session.refresh_binding(widget.id, engine)) is None
    assert widget.id not in session.bindings
