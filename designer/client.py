"""
外部服务客户端：设计存储后端、Open-Meteo 天气和图片资源。

所有方法在失败时记录 warning 并返回 None，调用方据此降级显示。
"""

import logging
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional
from urllib.parse import urlencode

import httpx

from designer.models import WidgetTemplate

logger = logging.getLogger(__name__)

QR_API_URL = "https://api.qrserver.com/v1/create-qr-code/"
WEATHER_API_URL = "https://api.open-meteo.com/v1/forecast"

_WEATHER_FIELDS = "temperature_2m,weather_code,relative_humidity_2m,wind_speed_10m"
_FORECAST_HOURS = {"morning": 8, "noon": 12, "afternoon": 15, "evening": 19, "night": 22}
_DAY_NAMES = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]


def qr_code_url(content: str, size: int) -> str:
    params = {
        "data": content,
        "size": f"{size}x{size}",
        "ecc": "M",
        "margin": "1",
        "bgcolor": "ffffff",
        "color": "000000",
        "format": "png",
    }
    return f"{QR_API_URL}?{urlencode(params)}"


def _unwrap(payload: Any) -> Any:
    """Backend responses are wrapped as ``{"data": ...}``."""
    if isinstance(payload, dict) and "data" in payload:
        return payload["data"]
    return payload


def pick_weather(data: Dict[str, Any], forecast_day: int, forecast_time: str, now: datetime) -> Dict[str, Any]:
    """Selects the current or hourly reading that matches the forecast settings."""
    target = now + timedelta(days=forecast_day)
    if forecast_day == 0:
        day_name = "Today"
    elif forecast_day == 1:
        day_name = "Tomorrow"
    else:
        day_name = _DAY_NAMES[target.weekday()]

    current = data.get("current") or {}
    reading = {
        "temperature": round(current.get("temperature_2m") or 0),
        "weatherCode": current.get("weather_code"),
        "humidity": current.get("relative_humidity_2m"),
        "windSpeed": round(current.get("wind_speed_10m") or 0),
        "dayName": day_name,
    }
    if forecast_day == 0 and forecast_time == "current":
        return reading

    hour = now.hour if forecast_time == "current" else _FORECAST_HOURS.get(forecast_time, 12)
    key = f"{target:%Y-%m-%d}T{hour:02d}:00"
    hourly = data.get("hourly") or {}
    times: List[str] = hourly.get("time") or []
    if key in times:
        i = times.index(key)
        reading.update(
            temperature=round(hourly["temperature_2m"][i]),
            weatherCode=hourly["weather_code"][i],
            humidity=hourly["relative_humidity_2m"][i],
            windSpeed=round(hourly["wind_speed_10m"][i]),
        )
    return reading


class DesignerClient:
    """Async HTTP access to everything the designer reads from outside."""

    def __init__(self, base_url: Optional[str] = None, timeout: float = 10.0, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.base_url = base_url.rstrip("/") if base_url else None
        self._client = httpx.AsyncClient(timeout=timeout, transport=transport, follow_redirects=True)

    async def aclose(self) -> None:
        await self._client.aclose()

    # ── 后端 ──────────────────────────────────────────────

    async def _get_json(self, path: str) -> Any:
        if not self.base_url:
            return None
        try:
            response = await self._client.get(f"{self.base_url}{path}")
            response.raise_for_status()
            return _unwrap(response.json())
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"GET {path} failed: {e}")
            return None

    async def get_templates(self) -> Optional[List[WidgetTemplate]]:
        data = await self._get_json("/widget-templates")
        if isinstance(data, dict):
            data = data.get("items")
        if not isinstance(data, list) or not data:
            return None
        try:
            return [WidgetTemplate.model_validate(item) for item in data]
        except ValueError as e:
            logger.warning(f"Invalid template list from backend: {e}")
            return None

    async def get_design(self, design_id: int) -> Optional[Dict[str, Any]]:
        data = await self._get_json(f"/screen-designs/{design_id}")
        return data if isinstance(data, dict) else None

    async def save_design(self, design_id: Optional[int], payload: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        if not self.base_url:
            return None
        try:
            if design_id is None:
                response = await self._client.post(f"{self.base_url}/screen-designs", json=payload)
            else:
                response = await self._client.put(f"{self.base_url}/screen-designs/{design_id}", json=payload)
            response.raise_for_status()
            logger.info(f"Saved design {design_id}")
            return _unwrap(response.json())
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"Save design {design_id} failed: {e}")
            return None

    async def get_cached_data(self, source_id: int) -> Any:
        return await self._get_json(f"/data-sources/{source_id}/data")

    async def get_custom_preview(self, widget_id: int) -> Optional[Dict[str, Any]]:
        data = await self._get_json(f"/custom-widgets/{widget_id}/preview")
        return data if isinstance(data, dict) else None

    async def get_github_stars(self, owner: Optional[str], repo: Optional[str]) -> Optional[Dict[str, Any]]:
        owner = owner or "facebook"
        repo = repo or "react"
        data = await self._get_json(f"/screen-designs/github-stars/{owner}/{repo}")
        return data if isinstance(data, dict) else None

    # ── 第三方 ──────────────────────────────────────────────

    async def get_weather(self, config: Dict[str, Any], now: Optional[datetime] = None) -> Optional[Dict[str, Any]]:
        try:
            forecast_day = int(config.get("forecastDay") or 0)
            params = {
                "latitude": config.get("latitude") or 52.2297,
                "longitude": config.get("longitude") or 21.0122,
                "current": _WEATHER_FIELDS,
                "hourly": _WEATHER_FIELDS,
                "forecast_days": max(forecast_day + 1, 1),
                "timezone": "auto",
            }
            response = await self._client.get(WEATHER_API_URL, params=params)
            response.raise_for_status()
            return pick_weather(response.json(), forecast_day, config.get("forecastTime") or "current", now or datetime.now())
        except (httpx.HTTPError, ValueError, TypeError, KeyError, IndexError) as e:
            logger.warning(f"Failed to fetch weather: {e}")
            return None

    async def fetch_asset(self, url: str) -> Optional[bytes]:
        if url.startswith("/"):
            if not self.base_url:
                return None
            url = f"{self.base_url}{url}"
        try:
            response = await self._client.get(url)
            response.raise_for_status()
            return response.content
        except httpx.HTTPError as e:
            logger.warning(f"Failed to fetch asset {url}: {e}")
            return None

    def qr_code_url(self, content: str, size: int) -> str:
        return qr_code_url(content, size)
