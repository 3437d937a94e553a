import os
import sys

import pytest

# Add project root to path
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from designer.drawing import DrawingError, DrawingHistory, DrawingOverlay, Tool, parse_color


def test_parse_color():
    assert parse_color("#ff0000") == (255, 0, 0, 255)
    assert parse_color("black") == (0, 0, 0, 255)


def test_stroke_undo_redo():
    overlay = DrawingOverlay(40, 30)
    assert overlay.is_blank()
    assert not overlay.can_undo

    overlay.stroke([(5, 5), (20, 20)])
    assert not overlay.is_blank()

    assert overlay.undo()
    assert overlay.is_blank()
    assert overlay.redo()
    assert not overlay.is_blank()
    assert not overlay.redo()


def test_eraser_clears_ink():
    overlay = DrawingOverlay(20, 20, brush_size=4)
    overlay.stroke([(10, 10), (11, 10)])
    assert overlay.image.getpixel((10, 10))[3] == 255

    overlay.tool = Tool.ERASER
    overlay.brush_size = 8
    overlay.stroke([(10, 10), (11, 10)])
    assert overlay.image.getpixel((10, 10)) == (0, 0, 0, 0)


def test_fill_same_color_is_noop():
    overlay = DrawingOverlay(20, 20)
    assert overlay.fill(5, 5, "#000000")
    assert overlay.image.getpixel((19, 19)) == (0, 0, 0, 255)

    before = overlay.snapshot()
    history_size = len(overlay.history)
    assert not overlay.fill(5, 5, "#000000")
    assert overlay.snapshot() == before
    assert len(overlay.history) == history_size


def test_fill_stays_inside_enclosed_region():
    overlay = DrawingOverlay(20, 20, brush_size=1)
    # vertical wall splits the canvas
    overlay.stroke([(10, 0), (10, 19)])
    overlay.fill(2, 2, "#ff0000")
    assert overlay.image.getpixel((2, 18)) == (255, 0, 0, 255)
    assert overlay.image.getpixel((15, 5)) == (0, 0, 0, 0)


def test_fill_outside_canvas():
    overlay = DrawingOverlay(10, 10)
    assert not overlay.fill(-1, 3)
    assert not overlay.fill(10, 3)


def test_fill_tool_through_stroke():
    overlay = DrawingOverlay(10, 10)
    overlay.tool = "fill"
    overlay.stroke([(1, 1), (5, 5)])
    assert not overlay.stroking
    assert overlay.image.getpixel((9, 9)) == (0, 0, 0, 255)


def test_new_action_after_undo_drops_redo():
    overlay = DrawingOverlay(20, 20)
    overlay.stroke([(1, 1), (2, 2)])
    overlay.stroke([(5, 5), (6, 6)])
    overlay.undo()
    assert overlay.can_redo

    overlay.stroke([(10, 10), (12, 12)])
    assert not overlay.can_redo
    assert len(overlay.history) == overlay.history.position == 3


def test_tool_locked_during_stroke():
    overlay = DrawingOverlay(20, 20)
    overlay.begin_stroke(1, 1)
    with pytest.raises(DrawingError):
        overlay.tool = Tool.ERASER
    with pytest.raises(DrawingError):
        overlay.fill(3, 3)
    overlay.end_stroke()
    overlay.tool = Tool.ERASER
    assert overlay.tool == Tool.ERASER


def test_clear_is_undoable():
    overlay = DrawingOverlay(20, 20)
    overlay.stroke([(1, 1), (8, 8)])
    overlay.clear()
    assert overlay.is_blank()
    overlay.undo()
    assert not overlay.is_blank()


def test_history_cursor():
    history = DrawingHistory(b"0")
    assert history.undo() is None
    history.record(b"1")
    history.record(b"2")
    assert history.undo() == b"1"
    assert history.position == 2
    history.record(b"3")
    assert len(history) == 3
    assert history.redo() is None
    assert history.current == b"3"
