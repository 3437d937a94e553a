import asyncio
import os
import sys
from datetime import datetime
from unittest.mock import AsyncMock, MagicMock

import httpx

# Add project root to path
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from designer.catalog import TemplateCatalog, builtin_templates, custom_template
from designer.client import DesignerClient, pick_weather, qr_code_url
from designer.config_loader import DesignerConfig, load_config
from designer.models import CUSTOM_WIDGET_TEMPLATE_OFFSET, WidgetTemplate


# ── 模板目录 ──────────────────────────────────────────

def test_builtin_catalog_ids_and_categories():
    catalog = TemplateCatalog(builtin_templates())
    assert catalog.get(1).name == "clock"
    assert catalog.by_name("rectangle") is not None
    assert "time" in catalog.categories()
    assert len(catalog) == len(builtin_templates())


def test_catalog_falls_back_when_backend_unavailable():
    client = MagicMock()
    client.get_templates = AsyncMock(return_value=None)

    catalog = asyncio.run(TemplateCatalog.load(client))

    assert catalog.by_name("clock") is not None
    client.get_templates.assert_awaited_once()


def test_catalog_prefers_configured_templates():
    config = DesignerConfig(templates=[WidgetTemplate(id=1, name="text", label="Only text")])
    catalog = asyncio.run(TemplateCatalog.load(None, config))
    assert [t.label for t in catalog] == ["Only text"]


def test_catalog_uses_remote_templates():
    remote = [WidgetTemplate(id=7, name="clock")]
    client = MagicMock()
    client.get_templates = AsyncMock(return_value=remote)
    catalog = asyncio.run(TemplateCatalog.load(client))
    assert catalog.get(7).name == "clock"


def test_custom_template_is_offset():
    template = custom_template(5, "Stocks", display_type="list")
    assert template.id == CUSTOM_WIDGET_TEMPLATE_OFFSET + 5
    assert template.is_custom
    assert template.default_config["customWidgetId"] == 5


# ── 配置 ──────────────────────────────────────────────

def test_load_config_merges_directory(tmp_path):
    (tmp_path / "a.yaml").write_text("snap:\n  threshold: 4\nrender:\n  default_timezone: Europe/Warsaw\n")
    (tmp_path / "b.yaml").write_text("snap:\n  rotation_step: 5\n")

    config = load_config(tmp_path)

    assert config.snap.threshold == 4
    assert config.snap.rotation_step == 5
    assert config.render.default_timezone == "Europe/Warsaw"
    assert config.script.timeout_ms == 1000


def test_load_config_skips_broken_yaml(tmp_path):
    (tmp_path / "bad.yaml").write_text("snap: [unclosed\n")
    config = load_config(tmp_path)
    assert config.snap.threshold == 8


# ── HTTP 客户端 ──────────────────────────────────────────

def _client(handler, base_url="http://backend/api") -> DesignerClient:
    return DesignerClient(base_url, transport=httpx.MockTransport(handler))


def test_get_templates_unwraps_envelope():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/api/widget-templates"
        return httpx.Response(200, json={"data": [{"id": 1, "name": "clock", "minWidth": 200}]})

    async def scenario():
        client = _client(handler)
        try:
            return await client.get_templates()
        finally:
            await client.aclose()

    templates = asyncio.run(scenario())
    assert templates[0].name == "clock"
    assert templates[0].min_width == 200


def test_backend_errors_return_none():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, json={"error": "down"})

    async def scenario():
        client = _client(handler)
        try:
            return await client.get_design(1), await client.get_cached_data(2), await client.fetch_asset("/img.png")
        finally:
            await client.aclose()

    assert asyncio.run(scenario()) == (None, None, None)


def test_offline_client_skips_backend():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200, json={})

    async def scenario():
        client = _client(handler, base_url=None)
        try:
            return await client.get_templates(), await client.fetch_asset("/relative.png")
        finally:
            await client.aclose()

    assert asyncio.run(scenario()) == (None, None)
    assert calls == []


def test_save_design_posts_new_and_puts_existing():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append((request.method, request.url.path))
        return httpx.Response(200, json={"data": {"id": 9}})

    async def scenario():
        client = _client(handler)
        try:
            created = await client.save_design(None, {"widgets": []})
            await client.save_design(9, {"widgets": []})
            return created
        finally:
            await client.aclose()

    assert asyncio.run(scenario()) == {"id": 9}
    assert seen == [("POST", "/api/screen-designs"), ("PUT", "/api/screen-designs/9")]


def test_weather_with_bad_forecast_day_returns_none():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200, json={})

    async def scenario():
        client = _client(handler)
        try:
            return await client.get_weather({"forecastDay": "tomorrow"})
        finally:
            await client.aclose()

    assert asyncio.run(scenario()) is None
    assert calls == []


def test_qr_code_url():
    url = qr_code_url("https://example.com", 150)
    assert url.startswith("https://api.qrserver.com/v1/create-qr-code/?")
    assert "size=150x150" in url
    assert "data=https%3A%2F%2Fexample.com" in url


def test_pick_weather_current_and_hourly():
    data = {
        "current": {"temperature_2m": 20.6, "weather_code": 1, "relative_humidity_2m": 40, "wind_speed_10m": 3.2},
        "hourly": {
            "time": ["2026-01-06T08:00"],
            "temperature_2m": [-2.4],
            "weather_code": [71],
            "relative_humidity_2m": [90],
            "wind_speed_10m": [10.6],
        },
    }
    now = datetime(2026, 1, 5, 14, 0)

    current = pick_weather(data, 0, "current", now)
    assert current["temperature"] == 21
    assert current["dayName"] == "Today"

    morning = pick_weather(data, 1, "morning", now)
    assert morning["temperature"] == -2
    assert morning["weatherCode"] == 71
    assert morning["dayName"] == "Tomorrow"

    later = pick_weather(data, 3, "noon", now)
    assert later["dayName"] == "Thursday"
    assert later["temperature"] == 21
