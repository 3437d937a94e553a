import asyncio
import os
import sys
import threading
from unittest.mock import AsyncMock, MagicMock

# Add project root to path
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from designer.binding import BindingEngine, render_content, render_grid, render_list, render_value
from designer.catalog import builtin_templates, custom_template
from designer.generation import GenerationCounter
from designer.models import ScreenWidget, ScriptExecutionResult
from designer.resolver import resolve
from designer.script import ScriptSandbox
from designer.template import interpolate, render_template


# ── 路径解析 ──────────────────────────────────────────

def test_resolve_nested_path_with_index():
    assert resolve({"a": {"b": [{"c": 5}]}}, "a.b[0].c") == 5


def test_resolve_misses_return_none():
    assert resolve({}, "x.y") is None
    assert resolve({"a": [1, 2]}, "a[5]") is None
    assert resolve({"a": "text"}, "a.b") is None
    assert resolve(None, "a") is None


def test_resolve_array_length():
    assert resolve({"items": [1, 2, 3]}, "items.length") == 3


def test_resolve_indexed_key_with_punctuation():
    assert resolve({"top-stories": [{"t": 1}]}, "top-stories[0].t") == 1
    assert resolve({"a b": [7]}, "a b[0]") == 7


def test_resolve_numeric_segment_on_list():
    assert resolve({"items": [{"t": 1}]}, "items.0.t") == 1
    assert resolve({"items": [1]}, "items.3") is None


# ── 模板插值 ──────────────────────────────────────────

def test_interpolate_replaces_every_occurrence():
    assert interpolate("Hi {{name}}, {{name}}!", {"name": "Sam"}) == "Hi Sam, Sam!"
    assert interpolate("{{ name }}", {"name": "Sam"}) == "Sam"


def test_interpolate_leaves_unknown_placeholders():
    assert interpolate("{{a}} {{b}}", {"a": 1}) == "1 {{b}}"


def test_render_template_ignores_whitespace_in_braces():
    assert render_template("Temp: {{ temp }}°", {"temp": 21}) == "Temp: 21°"
    assert render_template("{{missing}}", {}) == "{{missing}}"


# ── 自定义部件内容 ──────────────────────────────────────

def test_render_value_with_label_and_affixes():
    config = {"field": "price", "prefix": "$", "suffix": " USD", "label": "Price"}
    assert render_value(config, {"price": 12}) == {"label": "Price", "value": "$12 USD"}
    assert render_value({"field": "price"}, {"price": 12}) == "12"


def test_render_list_styles_and_limit():
    data = {"items": [{"title": "a"}, {"title": "b"}, {"title": "c"}]}
    assert render_list({"itemField": "title", "maxItems": 2}, data) == ["• a", "• b"]
    assert render_list({"itemField": "title", "listStyle": "number"}, data) == ["1. a", "2. b", "3. c"]
    assert render_list({"arrayPath": "nope"}, data) == []


def test_render_grid_skips_empty_cells():
    config = {
        "gridCols": 2,
        "gridRows": 1,
        "gridCells": {"0-0": {"field": "temp", "suffix": "°", "label": "Temp"}, "0-1": {}},
    }
    grid = render_grid(config, {"temp": 20}, ScriptSandbox())
    assert grid["type"] == "grid"
    assert len(grid["cells"]) == 1
    assert grid["cells"][0]["formattedValue"] == "20°"
    assert grid["cells"][0]["label"] == "Temp"


def test_render_script_template_mode():
    config = {
        "scriptCode": "const total = $.items.length;",
        "scriptOutputMode": "template",
    }
    out = render_content("script", "Items: {{total}}", config, {"items": [1, 2]}, ScriptSandbox())
    assert out == "Items: 2"


def test_render_script_template_mode_keeps_placeholder_for_null():
    # null and undefined are one value in scripts, so both leave the placeholder
    config = {"scriptCode": "const x = null; const y = 0;", "scriptOutputMode": "template"}
    out = render_content("script", "{{x}}/{{y}}", config, {}, ScriptSandbox())
    assert out == "{{x}}/0"


def test_render_script_error_is_reported_inline():
    config = {"scriptCode": "return missing.value;"}
    out = render_content("script", None, config, {}, ScriptSandbox())
    assert out.startswith("Error: ")
    assert "missing" in out


# ── BindingEngine ──────────────────────────────────────

def _text_template():
    return next(t for t in builtin_templates() if t.name == "text")


def test_binding_engine_resolves_data_source_field():
    client = MagicMock()
    client.get_cached_data = AsyncMock(return_value={"weather": {"temp": 18}})
    engine = BindingEngine(client)
    widget = ScreenWidget(id=1, templateId=4, config={"dataSourceId": 7, "dataSourceField": "weather.temp"})

    bound = asyncio.run(engine.resolve_widget(widget, _text_template()))

    assert bound.value == 18
    assert bound.error is None
    client.get_cached_data.assert_awaited_once_with(7)


def test_binding_engine_drops_stale_result():
    client = MagicMock()
    client.get_cached_data = AsyncMock(return_value={"v": 1})
    engine = BindingEngine(client)
    widget = ScreenWidget(id=1, templateId=4, config={"dataSourceId": 7, "dataSourceField": "v"})

    counter = GenerationCounter()
    stale = counter.next()
    counter.next()

    assert asyncio.run(engine.resolve_widget(widget, _text_template(), stale)) is None


def test_binding_engine_custom_widget_without_id():
    engine = BindingEngine(MagicMock())
    template = custom_template(3, "Mine")
    widget = ScreenWidget(id=1, templateId=template.id, config={})

    bound = asyncio.run(engine.resolve_widget(widget, template))

    assert bound.error == "No Widget ID"


def test_binding_engine_custom_widget_preview():
    client = MagicMock()
    client.get_custom_preview = AsyncMock(return_value={
        "renderedContent": "42 items",
        "widget": {"config": {"fieldType": "text"}},
    })
    engine = BindingEngine(client)
    template = custom_template(3, "Mine")
    widget = ScreenWidget(id=1, templateId=template.id, config={"customWidgetId": 3})

    bound = asyncio.run(engine.resolve_widget(widget, template))

    assert bound.value == "42 items"
    assert bound.widget_config == {"fieldType": "text"}


def test_binding_engine_runs_scripts_off_the_event_loop():
    threads = []
    sandbox = MagicMock()

    def execute(code, data, mode):
        threads.append(threading.get_ident())
        return ScriptExecutionResult(success=True, output=data["v"] * 2)

    sandbox.execute.side_effect = execute
    client = MagicMock()
    client.get_cached_data = AsyncMock(return_value={"v": 4})
    engine = BindingEngine(client, sandbox)
    widget = ScreenWidget(id=1, templateId=4, config={"dataSourceId": 7, "useScript": True, "script": "return $.v * 2;"})

    bound = asyncio.run(engine.resolve_widget(widget, _text_template()))

    assert bound.value == 8
    assert threads and threads[0] != threading.get_ident()


def test_binding_engine_turns_client_failure_into_error():
    client = MagicMock()
    client.get_cached_data = AsyncMock(side_effect=RuntimeError("backend exploded"))
    engine = BindingEngine(client)
    widget = ScreenWidget(id=1, templateId=4, config={"dataSourceId": 7, "dataSourceField": "v"})

    bound = asyncio.run(engine.resolve_widget(widget, _text_template()))

    assert bound.value is None
    assert bound.error == "backend exploded"
