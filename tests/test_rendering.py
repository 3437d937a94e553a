import asyncio
import os
import sys
from datetime import date, datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

from PIL import Image

# Add project root to path
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from designer.binding import BindingEngine, BoundValue
from designer.catalog import TemplateCatalog, builtin_templates, custom_template
from designer.drawing import DrawingOverlay
from designer.models import ScreenDesign, ScreenWidget
from designer.rendering import DesignRenderer, FontBook, RenderContext, compose, map_font_family, render_widget
from designer.rendering.custom import render_custom
from designer.rendering.images import fit, fit_into
from designer.rendering.text import layout_text, wrap_lines
from designer.rendering.timefmt import (
    countdown_text,
    date_parts,
    days_until,
    format_clock,
    format_date,
    resolve_timezone,
    seconds_until_midnight,
)
from designer.rendering.widgets import format_stars, weather_condition

FONTS = FontBook()
NOW = datetime(2026, 1, 5, 12, 0, 0, tzinfo=timezone.utc)


def _ctx(**kwargs) -> RenderContext:
    return RenderContext(fonts=FONTS, now=NOW, local_timezone="UTC", **kwargs)


def _catalog() -> TemplateCatalog:
    return TemplateCatalog(builtin_templates())


# ── 字体 ──────────────────────────────────────────────

def test_map_font_family():
    assert map_font_family("sans-serif") == "'Inter', sans-serif"
    assert map_font_family("monospace") == "'Roboto Mono', monospace"
    assert map_font_family("serif") == "'Merriweather', serif"
    assert map_font_family("Comic Sans") == "Comic Sans, sans-serif"
    assert map_font_family("Georgia, serif") == "Georgia, serif"


def test_font_book_caches_fonts():
    fonts = FontBook()
    assert fonts.get("sans-serif", 20) is fonts.get("sans-serif", 20.2)


# ── 文本排版 ──────────────────────────────────────────

def test_layout_single_line_centred_vertically():
    layout = layout_text("Hello", 200, 100, 20, "left")
    assert layout.lines == ["Hello"]
    assert layout.x == 10
    assert layout.anchor == "ls"
    assert layout.line_height == 24
    # (100 - 24) / 2 + 12 + 20 * 0.35
    assert layout.baselines == [57]


def test_layout_alignment_x():
    assert layout_text("a", 200, 100, 20, "center").x == 100
    assert layout_text("a", 200, 100, 20, "right").x == 190


def test_layout_overflow_starts_at_top():
    layout = layout_text("one\ntwo\nthree", 200, 30, 20)
    assert layout.baselines[0] == 17
    assert len(layout.wrapped) == 3
    assert layout.lines == ["one"]


def test_wrap_lines():
    assert wrap_lines("aaa bbb ccc", 7) == ["aaa bbb", "ccc"]
    assert wrap_lines("abcdefghijkl", 5) == ["abcde", "fghij", "kl"]
    assert wrap_lines("aaa bbb ccc", 3, no_wrap=True) == ["aaa bbb ccc"]


# ── 时间格式 ──────────────────────────────────────────

def test_format_clock():
    moment = datetime(2026, 1, 5, 21, 5, 7)
    assert format_clock(moment) == "21:05"
    assert format_clock(moment, show_seconds=True) == "21:05:07"
    assert format_clock(moment, hour12=True) == "09:05 PM"


def test_format_date():
    assert format_date(date(2026, 1, 5), weekday=True) == "Monday, January 5, 2026"
    assert format_date(date(2026, 1, 5), year=False) == "January 5"


def test_date_parts_fall_back_when_all_hidden():
    parts = date_parts({"showDay": False, "showMonth": False, "showYear": False})
    assert parts == {"weekday": False, "day": True, "month": True, "year": True}


def test_countdown_text():
    target = NOW + timedelta(days=1, hours=2, minutes=3, seconds=4)
    assert countdown_text({}, target, NOW) == "Countdown\n1d 2h 3m"
    assert countdown_text({"label": "Launch", "showSeconds": True}, target, NOW) == "Launch\n1d 2h 3m 4s"
    assert countdown_text({}, NOW + timedelta(minutes=5), NOW) == "Countdown\n0h 5m"


def test_countdown_expired():
    assert countdown_text({}, NOW - timedelta(seconds=1), NOW) == "Countdown\nExpired"
    assert countdown_text({"label": "Launch"}, None, NOW) == "Launch\nExpired"


def test_days_until_counts_both_directions():
    assert days_until(date(2026, 1, 10), date(2026, 1, 5)) == 5
    assert days_until(date(2026, 1, 1), date(2026, 1, 5)) == 4


def test_resolve_timezone_and_midnight():
    assert resolve_timezone("local", "Europe/Warsaw") == "Europe/Warsaw"
    assert resolve_timezone("Asia/Tokyo", "Europe/Warsaw") == "Asia/Tokyo"
    assert seconds_until_midnight("UTC", NOW) == 12 * 3600


# ── 部件渲染 ──────────────────────────────────────────

def test_unknown_template_renders_placeholder():
    widget = ScreenWidget(id=1, templateId=999, width=120, height=40)
    layer = render_widget(widget, None, _ctx())
    assert layer.size == (120, 40)
    assert layer.getbbox() is not None


def test_text_widget_shows_error_for_failed_binding():
    catalog = _catalog()
    widget = ScreenWidget(id=1, templateId=catalog.by_name("text").id, width=200, height=40,
                          config={"dataSourceId": 1, "dataSourceField": "a"})
    ctx = _ctx(bindings={1: BoundValue(error="boom")})
    assert render_widget(widget, catalog.by_name("text"), ctx).getbbox() is not None


def test_custom_widget_empty_grid_draws_nothing():
    bound = BoundValue(value={"type": "grid", "gridCols": 2, "gridRows": 2, "gridGap": 8, "cells": []})
    layer = render_custom(200, 100, {"customWidgetId": 3}, _ctx(), bound)
    assert layer.size == (200, 100)
    assert layer.getbbox() is None


def test_custom_widget_placeholders():
    assert render_custom(200, 100, {}, _ctx(), None).getbbox() is not None
    assert render_custom(200, 100, {"customWidgetId": 3}, _ctx(), None).getbbox() is not None


def test_format_stars_and_weather_codes():
    assert format_stars(950) == "950"
    assert format_stars(12300) == "12.3k"
    assert weather_condition(0)[0] == "Clear"
    assert weather_condition(12345)[0] == "Unknown"


def test_image_fit_modes():
    source = Image.new("RGB", (200, 100), (0, 0, 0))
    assert fit(source, 50, 50, "cover").size == (50, 50)
    assert fit(source, 50, 50, "contain").size == (50, 50)
    assert fit_into(source, 50, 50).getpixel((25, 2))[3] == 0


# ── 合成 ──────────────────────────────────────────────

def _rect(widget_id, x, y, color, z=0, rotation=0):
    return ScreenWidget(id=widget_id, templateId=_catalog().by_name("rectangle").id, x=x, y=y,
                        width=20, height=20, rotation=rotation, zIndex=z, config={"fillColor": color})


def test_compose_background_and_rectangle():
    design = ScreenDesign(width=100, height=80, background="#ffffff", widgets=[_rect(1, 10, 10, "#ff0000")])
    canvas = compose(design, _catalog(), _ctx())
    assert canvas.size == (100, 80)
    assert canvas.getpixel((15, 15)) == (255, 0, 0, 255)
    assert canvas.getpixel((60, 60)) == (255, 255, 255, 255)


def test_compose_paints_in_z_order():
    design = ScreenDesign(width=100, height=80, widgets=[
        _rect(1, 10, 10, "#0000ff", z=5),
        _rect(2, 15, 15, "#ff0000", z=1),
    ])
    canvas = compose(design, _catalog(), _ctx())
    assert canvas.getpixel((20, 20)) == (0, 0, 255, 255)


def test_compose_rotates_around_centre():
    widget = _rect(1, 40, 30, "#000000", rotation=45)
    design = ScreenDesign(width=100, height=80, widgets=[widget])
    canvas = compose(design, _catalog(), _ctx())
    # the centre stays put, the unrotated corner is now background
    assert canvas.getpixel((50, 40)) == (0, 0, 0, 255)
    assert canvas.getpixel((41, 31)) == (255, 255, 255, 255)


def test_compose_draws_overlay_on_top():
    design = ScreenDesign(width=60, height=40, widgets=[_rect(1, 0, 0, "#ff0000")])
    overlay = DrawingOverlay(60, 40)
    overlay.fill(30, 30, "#00ff00")
    canvas = compose(design, _catalog(), _ctx(), overlay)
    assert canvas.getpixel((5, 5)) == (0, 255, 0, 255)


def test_design_renderer_collects_bindings():
    client = MagicMock()
    client.get_custom_preview = AsyncMock(return_value={"renderedContent": "hi", "widget": {"config": {}}})
    client.fetch_asset = AsyncMock(return_value=None)
    template = custom_template(3, "Mine")
    catalog = TemplateCatalog(builtin_templates() + [template])
    design = ScreenDesign(width=200, height=100, widgets=[
        ScreenWidget(id=1, templateId=template.id, width=150, height=60, config={"customWidgetId": 3}),
    ])
    renderer = DesignRenderer(BindingEngine(client), client, FONTS, local_timezone="UTC")

    ctx = asyncio.run(renderer.prepare(design, catalog, now=NOW))

    assert ctx.bindings[1].value == "hi"
    png = asyncio.run(renderer.render_png(design, catalog, now=NOW))
    assert png.startswith(b"\x89PNG")


def test_design_renderer_survives_failing_binding():
    client = MagicMock()
    client.get_weather = AsyncMock(side_effect=ValueError("invalid forecastDay"))
    client.fetch_asset = AsyncMock(return_value=None)
    catalog = _catalog()
    design = ScreenDesign(width=300, height=200, widgets=[
        ScreenWidget(id=1, templateId=catalog.by_name("text").id, width=150, height=60),
        ScreenWidget(id=2, templateId=catalog.by_name("weather").id, y=80, width=150, height=100,
                     config={"forecastDay": "tomorrow"}),
    ])
    renderer = DesignRenderer(BindingEngine(client), client, FONTS, local_timezone="UTC")

    ctx = asyncio.run(renderer.prepare(design, catalog, now=NOW))
    assert "forecastDay" in ctx.bindings[2].error

    canvas = asyncio.run(renderer.render(design, catalog, now=NOW))
    assert canvas.size == (300, 200)


def test_custom_widget_missing_image_shows_placeholder():
    bound = BoundValue(value="https://example.com/a.png", widget_config={"fieldType": "image"})
    assert render_custom(200, 100, {"customWidgetId": 3}, _ctx(), bound).getbbox() is not None

    grid = BoundValue(value={
        "type": "grid", "gridCols": 1, "gridRows": 1, "gridGap": 0,
        "cells": [{"row": 0, "col": 0, "fieldType": "image", "value": "https://example.com/b.png"}],
    })
    assert render_custom(200, 100, {"customWidgetId": 3}, _ctx(), grid).getbbox() is not None
