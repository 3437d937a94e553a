import os
import sys

import pytest

# Add project root to path
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from designer.geometry import Handle, Rect, resize, rotate, rotation_angle, snap_position
from designer.gestures import GestureController, GestureError, GestureInProgress
from designer.models import ScreenWidget, normalize_rotation


# ── 吸附 ──────────────────────────────────────────────

def test_snap_to_canvas_edge():
    result = snap_position(3, 5, 100, 50, 800, 480)
    assert (result.x, result.y) == (0, 0)
    assert result.guides.vertical == [0]
    assert result.guides.horizontal == [0]


def test_snap_to_canvas_center():
    # widget centre lands 4px from the canvas centre line
    result = snap_position(346, 150, 100, 50, 800, 480)
    assert result.x == 350
    assert result.guides.vertical == [400]


def test_canvas_guide_wins_over_sibling():
    sibling = Rect(5, 200, 100, 100)
    result = snap_position(3, 150, 100, 50, 800, 480, [sibling])
    assert result.x == 0
    assert result.guides.vertical == [0]
    assert result.guides.widget_vertical == []


def test_first_matching_guide_wins_over_nearer_guide():
    # right edge sits 3.3px from the 1/3 line, left edge 6px from 0
    result = snap_position(6, 150, 264, 50, 800, 480)
    assert result.x == 0
    assert result.guides.vertical == [0]


def test_snap_to_sibling_edge():
    sibling = Rect(200, 10, 100, 20)
    result = snap_position(203, 150, 50, 50, 800, 480, [sibling])
    assert result.x == 200
    assert result.guides.widget_vertical == [200]
    assert result.guides.to_dict()["widgetVertical"] == [200]


def test_position_outside_threshold_is_kept():
    result = snap_position(150, 150, 100, 50, 800, 480)
    assert (result.x, result.y) == (150, 150)
    assert result.guides.to_dict() == {
        "vertical": [],
        "horizontal": [],
        "widgetVertical": [],
        "widgetHorizontal": [],
    }


# ── 缩放 ──────────────────────────────────────────────

def test_resize_nw_keeps_opposite_corner():
    rect = resize(Rect(50, 50, 100, 100), Handle.NW, 20, 20)
    assert rect == Rect(70, 70, 80, 80)


def test_resize_clamps_to_minimum():
    rect = resize(Rect(0, 0, 100, 100), "w", 200, 0)
    assert rect.width == 10
    assert rect.x == 90


def test_resize_edge_handles_touch_one_axis():
    assert resize(Rect(0, 0, 100, 100), "e", 15.4, 30) == Rect(0, 0, 115, 100)
    assert resize(Rect(0, 0, 100, 100), "s", 30, -20) == Rect(0, 0, 100, 80)


# ── 旋转 ──────────────────────────────────────────────

def test_rotation_normalizes():
    assert rotate(350, 0, 20) == 10
    assert rotate(0, 0, 360) == 0
    assert rotate(10, 0, -30) == 340
    assert normalize_rotation(370) == 10


def test_rotation_snaps_to_step():
    assert rotate(0, 0, 22, snap_step=15) == 15
    assert rotate(0, 0, 23, snap_step=15) == 30


def test_rotation_angle():
    assert rotation_angle((0, 0), (10, 0)) == 0
    assert rotation_angle((0, 0), (0, 10)) == 90


# ── 手势 ──────────────────────────────────────────────

def _widget(widget_id=-1, x=100, y=100, width=100, height=50):
    return ScreenWidget(id=widget_id, templateId=1, x=x, y=y, width=width, height=height)


def test_drag_moves_widget_by_scaled_delta():
    controller = GestureController((800, 480))
    widget = _widget()

    with controller.dragging(widget, (0, 0), scale=0.5) as drag:
        drag.move((20, 40))
        assert (widget.x, widget.y) == (140, 180)
        assert drag.guides is not None

    assert controller.active(widget.id) is None
    assert drag.guides is None


def test_drag_excludes_widget_from_its_own_guides():
    controller = GestureController((800, 480))
    widget = _widget(x=150, y=150)
    drag = controller.begin_drag(widget, (0, 0), [widget])
    assert drag.siblings == ()
    drag.end()


def test_one_gesture_per_widget():
    controller = GestureController((800, 480))
    widget = _widget()

    controller.begin_drag(widget, (0, 0))
    with pytest.raises(GestureInProgress):
        controller.begin_resize(widget, "se", (0, 0))

    # other widgets are independent
    controller.begin_resize(_widget(widget_id=-2), "se", (0, 0))
    assert sorted(controller.cancel_all()) == [-2, -1]
    assert controller.active(widget.id) is None


def test_gesture_released_on_exception():
    controller = GestureController((800, 480))
    widget = _widget()

    with pytest.raises(RuntimeError):
        with controller.resizing(widget, "se", (0, 0)):
            raise RuntimeError("pointer lost")

    assert controller.active(widget.id) is None


def test_ended_gesture_rejects_moves():
    controller = GestureController((800, 480))
    widget = _widget()
    resize_gesture = controller.begin_resize(widget, "se", (0, 0))
    resize_gesture.end()
    with pytest.raises(GestureError):
        resize_gesture.move((10, 10))


def test_resize_gesture_updates_widget():
    controller = GestureController((800, 480))
    widget = _widget(x=50, y=50, width=100, height=100)
    with controller.resizing(widget, "nw", (0, 0)) as gesture:
        gesture.move((20, 20))
    assert (widget.x, widget.y, widget.width, widget.height) == (70, 70, 80, 80)


def test_rotate_gesture_with_snap():
    controller = GestureController((800, 480), rotation_step=15)
    widget = _widget(x=0, y=0, width=100, height=100)
    # centre (50, 50); start pointing right, end pointing down
    with controller.rotating(widget, (100, 50)) as gesture:
        assert gesture.move((50, 100)) == 90
        assert gesture.move((100, 60), snap=True) == 15
    assert widget.rotation == 15
