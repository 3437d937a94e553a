"""
部件渲染：按模板名分派到各自的绘制函数，每个函数输出部件大小的 RGBA 图层。

渲染是同步的；远程数据（天气、GitHub、自定义部件内容）和图片资源由调用方预先
取好，放进 RenderContext。任何异常都不会离开 render_widget，而是变成占位文字。
"""

import logging
import math
import re
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple

from PIL import Image, ImageDraw

from designer.binding import BoundValue
from designer.client import qr_code_url
from designer.models import DeviceContext, ScreenWidget, WidgetTemplate
from designer.rendering import images
from designer.rendering.custom import render_custom
from designer.rendering.fonts import FontBook, draw_anchored
from designer.rendering.text import render_placeholder, render_text
from designer.rendering.timefmt import (
    countdown_text,
    date_parts,
    days_until,
    format_clock,
    format_date,
    now_in,
    parse_target,
    resolve_timezone,
)
from designer.script.values import js_string

logger = logging.getLogger(__name__)

TRANSPARENT = (0, 0, 0, 0)
CUSTOM_KIND = "custom-widget-base"


@dataclass
class RenderContext:
    fonts: FontBook
    now: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    device: Optional[DeviceContext] = None
    local_timezone: Optional[str] = None
    default_timezone: str = "UTC"
    # 按部件 id 预取的绑定结果与按 URL 预取的图片
    bindings: Dict[int, BoundValue] = field(default_factory=dict)
    assets: Dict[str, bytes] = field(default_factory=dict)

    def timezone_for(self, config: Dict[str, Any]) -> str:
        return resolve_timezone(config.get("timezone"), self.local_timezone, self.default_timezone)

    def asset(self, url: Optional[str]) -> Optional[Image.Image]:
        return images.decode(self.assets.get(url)) if url else None


Renderer = Callable[[int, int, Dict[str, Any], RenderContext, Optional[BoundValue]], Image.Image]


def _blank(w: int, h: int, color=TRANSPARENT) -> Image.Image:
    return Image.new("RGBA", (w, h), color)


# ── 时间类 ──────────────────────────────────────────────

def _render_clock(w, h, config, ctx, bound):
    tz = ctx.timezone_for(config)
    moment = now_in(tz, ctx.now)
    text = format_clock(moment, config.get("format") == "12h", bool(config.get("showSeconds")))
    logger.debug(f"Rendering clock: timezone={tz}, time={text}")
    return render_text(
        w, h, ctx.fonts, text,
        font_size=config.get("fontSize") or 48,
        font_family=config.get("fontFamily") or "monospace",
        color=config.get("color") or "#000000",
        text_align=config.get("textAlign") or "left",
        no_wrap=True,
    )


def _render_date(w, h, config, ctx, bound):
    moment = now_in(ctx.timezone_for(config), ctx.now)
    text = format_date(moment.date(), **date_parts(config))
    return render_text(
        w, h, ctx.fonts, text,
        font_size=config.get("fontSize") or 24,
        font_family=config.get("fontFamily") or "sans-serif",
        color=config.get("color") or "#000000",
        text_align=config.get("textAlign") or "center",
        no_wrap=True,
    )


def _render_countdown(w, h, config, ctx, bound):
    target = parse_target(config.get("targetDate"), ctx.timezone_for(config))
    text = countdown_text(config, target, ctx.now)
    return render_text(
        w, h, ctx.fonts, text,
        font_size=config.get("fontSize") or 32,
        font_family=config.get("fontFamily") or "monospace",
        color=config.get("color") or "#000000",
        text_align="left",
        no_wrap=True,
    )


def _parse_day(value: Any) -> Optional[date]:
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        logger.warning(f"Invalid days-until target '{value}'")
        return None


def _render_daysuntil(w, h, config, ctx, bound):
    target = _parse_day(config.get("targetDate") or "2025-12-25")
    if target is None:
        return render_placeholder(w, h, ctx.fonts, "Invalid date")
    today = now_in(ctx.timezone_for(config), ctx.now).date()
    prefix = config.get("labelPrefix")
    if prefix is None:
        prefix = "Days till Christmas: "
    text = f"{prefix}{days_until(target, today)}{config.get('labelSuffix') or ''}"
    logger.debug(f"Rendering daysuntil: {text}")
    return render_text(
        w, h, ctx.fonts, text,
        font_size=config.get("fontSize") or 32,
        font_family=config.get("fontFamily") or "sans-serif",
        color=config.get("color") or "#000000",
        text_align="left",
        no_wrap=True,
    )


# ── 文本类 ──────────────────────────────────────────────

def _render_text(w, h, config, ctx, bound):
    text = config.get("text") or "Text"
    if config.get("dataSourceId") and config.get("dataSourceField") and bound is not None:
        if bound.error:
            text = "Error"
        elif bound.value is not None:
            text = js_string(bound.value)
    return render_text(
        w, h, ctx.fonts, text,
        font_size=config.get("fontSize") or 24,
        font_family=config.get("fontFamily") or "sans-serif",
        font_weight=config.get("fontWeight") or "normal",
        color=config.get("color") or "#000000",
        text_align=config.get("textAlign") or "left",
    )


def _render_deviceinfo(w, h, config, ctx, bound):
    device = ctx.device
    lines = []
    if config.get("showName", True) is not False:
        lines.append((device and device.device_name) or "Unknown")
    if config.get("showFirmware", True) is not False:
        lines.append(f"FW: {(device and device.firmware_version) or '--'}")
    if config.get("showMac"):
        lines.append((device and device.mac_address) or "--")
    return render_text(
        w, h, ctx.fonts, "\n".join(lines) if lines else "Device Info",
        font_size=config.get("fontSize") or 16,
        font_family=config.get("fontFamily") or "sans-serif",
        color=config.get("color") or "#000000",
        text_align="center",
    )


# ── 天气 ──────────────────────────────────────────────

# WMO weather codes, see https://open-meteo.com/en/docs
WEATHER_CONDITIONS: Dict[int, Tuple[str, str]] = {
    0: ("Clear", "sun"),
    1: ("Mostly Clear", "sun"),
    2: ("Partly Cloudy", "cloud-sun"),
    3: ("Cloudy", "cloud"),
    45: ("Foggy", "fog"),
    48: ("Icy Fog", "fog"),
    51: ("Light Drizzle", "drizzle"),
    53: ("Drizzle", "drizzle"),
    55: ("Heavy Drizzle", "drizzle"),
    56: ("Freezing Drizzle", "drizzle"),
    57: ("Heavy Freezing Drizzle", "drizzle"),
    61: ("Light Rain", "rain"),
    63: ("Rain", "rain"),
    65: ("Heavy Rain", "rain"),
    66: ("Freezing Rain", "rain"),
    67: ("Heavy Freezing Rain", "rain"),
    71: ("Light Snow", "snow"),
    73: ("Snow", "snow"),
    75: ("Heavy Snow", "snow"),
    77: ("Snow Grains", "snow"),
    80: ("Light Showers", "rain"),
    81: ("Showers", "rain"),
    82: ("Heavy Showers", "rain"),
    85: ("Snow Showers", "snow"),
    86: ("Heavy Snow Showers", "snow"),
    95: ("Thunderstorm", "thunder"),
    96: ("Thunderstorm + Hail", "thunder"),
    99: ("Heavy Thunderstorm", "thunder"),
}


def weather_condition(code: Any) -> Tuple[str, str]:
    try:
        return WEATHER_CONDITIONS.get(int(code), ("Unknown", "cloud"))
    except (TypeError, ValueError):
        return ("Unknown", "cloud")


def _ellipse(draw: ImageDraw.ImageDraw, cx, cy, rx, ry, color) -> None:
    draw.ellipse((cx - rx, cy - ry, cx + rx, cy + ry), fill=color)


def _cloud(draw, cx, cy, r, dy, color) -> None:
    _ellipse(draw, cx - 5, cy + dy, r * 0.7, r * 0.5, color)
    _ellipse(draw, cx + 6, cy + dy, r * 0.6, r * 0.45, color)
    _ellipse(draw, cx, cy + dy - 5, r * 0.85, r * 0.6, color)


def _rays(draw, cx, cy, inner, outer, step, color, width) -> None:
    for angle in range(0, 360, step):
        rad = math.radians(angle)
        draw.line(
            [(cx + math.cos(rad) * inner, cy + math.sin(rad) * inner),
             (cx + math.cos(rad) * outer, cy + math.sin(rad) * outer)],
            fill=color, width=width,
        )


def draw_weather_icon(image: Image.Image, fonts: FontBook, icon: str, origin: Tuple[float, float], size: float, color: str) -> None:
    draw = ImageDraw.Draw(image)
    ox, oy = origin
    cx, cy = ox + size / 2, oy + size / 2
    r = size * 0.3

    if icon == "sun":
        _ellipse(draw, cx, cy, r, r, color)
        _rays(draw, cx, cy, r + 4, r + 10, 45, color, 2)
    elif icon == "cloud":
        _ellipse(draw, cx - 5, cy + 5, r * 0.8, r * 0.6, color)
        _ellipse(draw, cx + 8, cy + 5, r * 0.7, r * 0.5, color)
        _ellipse(draw, cx, cy - 2, r, r * 0.7, color)
    elif icon == "cloud-sun":
        sx, sy = cx + 10, cy - 8
        _ellipse(draw, sx, sy, r * 0.5, r * 0.5, color)
        _rays(draw, sx, sy, r * 0.5 + 3, r * 0.5 + 7, 60, color, 1)
        _ellipse(draw, cx - 5, cy + 8, r * 0.7, r * 0.5, color)
        _ellipse(draw, cx + 6, cy + 8, r * 0.6, r * 0.45, color)
        _ellipse(draw, cx, cy + 2, r * 0.85, r * 0.6, color)
    elif icon == "rain":
        _cloud(draw, cx, cy, r, -5, color)
        for dx in (-8, 0, 8):
            draw.line([(cx + dx, cy + 5), (cx + dx - 4, cy + 15)], fill=color, width=2)
    elif icon == "drizzle":
        _cloud(draw, cx, cy, r, -5, color)
        for dx, dy in ((-6, 8), (2, 12), (8, 6)):
            _ellipse(draw, cx + dx, cy + dy, 2, 2, color)
    elif icon == "snow":
        _cloud(draw, cx, cy, r, -5, color)
        font = fonts.get("sans-serif", 12)
        for dx, dy in ((-8, 12), (0, 16), (8, 10)):
            draw_anchored(draw, (cx + dx, cy + dy), "*", font, color, "ls")
    elif icon == "thunder":
        _cloud(draw, cx, cy, r, -8, color)
        bolt = [(-2, 0), (5, 0), (0, 8), (8, 8), (-3, 20), (0, 10), (-6, 10)]
        draw.polygon([(cx + x, cy + y) for x, y in bolt], fill=color)
    elif icon == "fog":
        for half, dy in ((15, -8), (12, 0), (15, 8)):
            draw.line([(cx - half, cy + dy), (cx + half, cy + dy)], fill=color, width=3, joint="curve")
    else:
        draw.ellipse((cx - r, cy - r, cx + r, cy + r), outline=color, width=2)


def _render_weather(w, h, config, ctx, bound):
    location = config.get("location") or "Unknown"
    fs = config.get("fontSize") or 32
    color = config.get("color") or "#000000"
    weather = bound.value if bound is not None else None

    if not isinstance(weather, dict):
        return render_text(w, h, ctx.fonts, f"{location}\nWeather unavailable", fs * 0.7, "sans-serif", None, "#000000", "center")

    imperial = config.get("units") == "imperial"
    temperature = weather.get("temperature") or 0
    display_temp = round(temperature * 9 / 5 + 32) if imperial else temperature
    condition, icon = weather_condition(weather.get("weatherCode"))

    icon_size = min(w * 0.3, h * 0.5, 60)
    small = max(12, fs * 0.5)
    show_icon = config.get("showIcon") is not False

    image = _blank(w, h)
    draw = ImageDraw.Draw(image)
    small_font = ctx.fonts.get("sans-serif", small)
    y = 10

    if config.get("showDayName") and (config.get("forecastDay") or 0) > 0:
        draw_anchored(draw, (w / 2, y + small), str(weather.get("dayName") or ""), small_font, color, "ms")
        y += small + 5

    text_x = icon_size + 20 if show_icon else w / 2
    anchor = "ls" if show_icon else "ms"

    if show_icon:
        draw_weather_icon(image, ctx.fonts, icon, (10, y + 5), icon_size, color)

    if config.get("showTemperature") is not False:
        temp_y = y + fs + 5
        unit = "°F" if imperial else "°C"
        draw_anchored(draw, (text_x, temp_y), f"{display_temp}{unit}", ctx.fonts.get("sans-serif", fs, "bold"), color, anchor)
        y = temp_y + 5

    lines = []
    if config.get("showCondition") is not False:
        lines.append(condition)
    if config.get("showHumidity"):
        lines.append(f"Humidity: {weather.get('humidity')}%")
    if config.get("showWind"):
        wind = weather.get("windSpeed") or 0
        lines.append(f"Wind: {round(wind * 0.621)} mph" if imperial else f"Wind: {wind} km/h")
    for line in lines:
        y += small + 3
        draw_anchored(draw, (text_x, y), line, small_font, color, anchor)

    if config.get("showLocation") is not False:
        draw_anchored(draw, (w / 2, h - 5), location, ctx.fonts.get("sans-serif", small * 0.9), color, "ms")
    return image


# ── 设备状态 ──────────────────────────────────────────────

def _render_battery(w, h, config, ctx, bound):
    fs = config.get("fontSize") or 18
    color = config.get("color") or "#000000"
    show_pct = config.get("showPercentage", True) is not False
    show_icon = config.get("showIcon", True) is not False

    battery = ctx.device.battery if ctx.device else None
    pct = round(battery) if battery is not None else 85
    text = f"{pct}%" if battery is not None else "--%"

    icon_size = max(24, fs * 1.2)
    icon_w, icon_h = icon_size * 1.2, icon_size * 0.7
    fill_w = max(0, pct / 100 * (icon_w - 8))
    gap = 8

    total = 0.0
    if show_icon:
        total += icon_w + 6
    if show_icon and show_pct:
        total += gap
    if show_pct:
        total += len(text) * fs * 0.6

    x = (w - total) / 2
    cy = h / 2
    image = _blank(w, h)
    draw = ImageDraw.Draw(image)

    if show_icon:
        top = cy - icon_h / 2
        draw.rounded_rectangle((x, top, x + icon_w, top + icon_h), radius=3, outline=color, width=2)
        if fill_w > 0:
            draw.rounded_rectangle((x + 3, top + 3, x + 3 + fill_w, top + icon_h - 3), radius=1, fill=color)
        draw.rounded_rectangle(
            (x + icon_w, top + icon_h * 0.25, x + icon_w + 6, top + icon_h * 0.75), radius=1, fill=color
        )
        x += icon_w + 6 + gap

    if show_pct:
        draw_anchored(draw, (x, cy + fs * 0.35), text, ctx.fonts.get("sans-serif", fs), color, "ls")
    return image


def _quad(p0, c, p1, steps: int = 16) -> List[Tuple[float, float]]:
    pts = []
    for i in range(steps + 1):
        t = i / steps
        mt = 1 - t
        pts.append((
            mt * mt * p0[0] + 2 * mt * t * c[0] + t * t * p1[0],
            mt * mt * p0[1] + 2 * mt * t * c[1] + t * t * p1[1],
        ))
    return pts


def _render_wifi(w, h, config, ctx, bound):
    fs = config.get("fontSize") or 18
    color = config.get("color") or "#000000"
    show_strength = config.get("showStrength") is not False
    show_icon = config.get("showIcon") is not False

    rssi = ctx.device.wifi if ctx.device else None
    text = f"{rssi} dBm" if rssi is not None else "-- dBm"

    icon_size = max(24, fs * 1.4)
    gap = 8
    total = 0.0
    if show_icon:
        total += icon_size
    if show_icon and show_strength:
        total += gap
    if show_strength:
        total += len(text) * fs * 0.6

    x = (w - total) / 2
    cy = h / 2
    image = _blank(w, h)
    draw = ImageDraw.Draw(image)

    if show_icon:
        icx = x + icon_size / 2
        icy = cy + icon_size * 0.2
        for spread, lift, peak in ((0.45, 0.3, 0.7), (0.3, 0.15, 0.45), (0.15, 0.0, 0.2)):
            arc = _quad(
                (icx - icon_size * spread, icy - icon_size * lift),
                (icx, icy - icon_size * peak),
                (icx + icon_size * spread, icy - icon_size * lift),
            )
            draw.line(arc, fill=color, width=3, joint="curve")
        dot_y = icy + icon_size * 0.1
        draw.ellipse((icx - 3, dot_y - 3, icx + 3, dot_y + 3), fill=color)
        x += icon_size + gap

    if show_strength:
        draw_anchored(draw, (x, cy + fs * 0.35), text, ctx.fonts.get("sans-serif", fs), color, "ls")
    return image


# ── GitHub ──────────────────────────────────────────────

def format_stars(stars: int) -> str:
    if stars >= 1_000_000:
        return f"{stars / 1_000_000:.1f}M"
    if stars >= 1000:
        return f"{stars / 1000:.1f}k"
    return str(stars)


def _star(cx, cy, outer, inner) -> List[Tuple[float, float]]:
    pts = []
    for i in range(10):
        radius = outer if i % 2 == 0 else inner
        angle = math.radians(-90 + i * 36)
        pts.append((cx + math.cos(angle) * radius, cy + math.sin(angle) * radius))
    return pts


def _render_github(w, h, config, ctx, bound):
    owner = config.get("owner") or "facebook"
    repo = config.get("repo") or "react"
    fs = config.get("fontSize") or 32
    family = config.get("fontFamily") or "sans-serif"
    color = config.get("color") or "#000000"
    data = bound.value if bound is not None else None

    if not isinstance(data, dict) or data.get("stars") is None:
        return render_text(w, h, ctx.fonts, f"{owner}/{repo}\nUnavailable", fs * 0.7, family, None, color, "center")

    stars_text = format_stars(int(data["stars"]))
    show_icon = config.get("showIcon") is not False
    show_name = bool(config.get("showRepoName"))

    icon_size = min(fs * 1.2, h * 0.6) if show_icon else 0
    gap = 8 if show_icon else 0
    start_x = (w - (icon_size + gap + len(stars_text) * fs * 0.6)) / 2
    main_y = h * 0.4 if show_name else h / 2

    image = _blank(w, h)
    draw = ImageDraw.Draw(image)
    if show_icon:
        draw.polygon(_star(start_x + icon_size / 2, main_y, icon_size / 2, icon_size / 4.5), fill=color)
    draw_anchored(
        draw, (start_x + icon_size + gap, main_y + fs * 0.35), stars_text,
        ctx.fonts.get(family, fs, "bold"), color, "ls",
    )
    if show_name:
        small = max(12, fs * 0.4)
        draw_anchored(draw, (w / 2, h - 8), str(data.get("name") or f"{owner}/{repo}"), ctx.fonts.get(family, small), color, "ms")
    return image


# ── 图片类 ──────────────────────────────────────────────

def image_url(config: Dict[str, Any], bound: Optional[BoundValue]) -> Optional[str]:
    if config.get("dataSourceId") and config.get("dataSourceField") and bound is not None and bound.value:
        return js_string(bound.value)
    return config.get("url") or config.get("imageUrl") or None


def _render_image(w, h, config, ctx, bound):
    url = image_url(config, bound)
    if not url:
        return render_placeholder(w, h, ctx.fonts, "No Image")
    source = ctx.asset(url)
    if source is None:
        logger.warning(f"Image not available: {url}")
        return render_placeholder(w, h, ctx.fonts, "Image Error")
    return images.fit(images.for_eink(source), w, h, config.get("fit") or "contain")


def _render_qrcode(w, h, config, ctx, bound):
    url = qr_code_url(config.get("content") or "https://example.com", min(w, h))
    source = ctx.asset(url)
    if source is None:
        return render_placeholder(w, h, ctx.fonts, "QR Code")
    return images.fit_into(source, w, h, "contain")


# ── 形状 ──────────────────────────────────────────────

_HEX = re.compile(r"^#?([a-f\d]{2})([a-f\d]{2})([a-f\d]{2})$", re.IGNORECASE)


def parse_hex(color: str) -> Tuple[int, int, int, int]:
    m = _HEX.match(color or "")
    if not m:
        return (255, 255, 255, 255)
    return (int(m.group(1), 16), int(m.group(2), 16), int(m.group(3), 16), 255)


def _dashes(length: float, pattern: Optional[Tuple[float, float]]) -> List[Tuple[float, float]]:
    if pattern is None:
        return [(0, length)]
    on, off = pattern
    spans, pos = [], 0.0
    while pos < length:
        spans.append((pos, min(pos + on, length)))
        pos += on + off
    return spans


def _render_divider(w, h, config, ctx, bound):
    color = config.get("color") or "#000000"
    t = config.get("thickness") or 2
    style = config.get("style") or "solid"
    pattern = {"dashed": (t * 3, t * 2), "dotted": (t, t)}.get(style)

    image = _blank(w, h, (255, 255, 255, 255))
    draw = ImageDraw.Draw(image)
    if (config.get("orientation") or "horizontal") == "horizontal":
        y = h // 2
        for a, b in _dashes(w, pattern):
            draw.line([(a, y), (b, y)], fill=color, width=int(t))
    else:
        x = w // 2
        for a, b in _dashes(h, pattern):
            draw.line([(x, a), (x, b)], fill=color, width=int(t))
    return image


def _render_rectangle(w, h, config, ctx, bound):
    return _blank(w, h, parse_hex(config.get("fillColor") or "#000000"))


# ── 分派 ──────────────────────────────────────────────

RENDERERS: Dict[str, Renderer] = {
    "clock": _render_clock,
    "date": _render_date,
    "text": _render_text,
    "weather": _render_weather,
    "qrcode": _render_qrcode,
    "battery": _render_battery,
    "countdown": _render_countdown,
    "divider": _render_divider,
    "rectangle": _render_rectangle,
    "wifi": _render_wifi,
    "deviceinfo": _render_deviceinfo,
    "image": _render_image,
    "daysuntil": _render_daysuntil,
    "github": _render_github,
    CUSTOM_KIND: render_custom,
}


def widget_kind(widget: ScreenWidget, template: Optional[WidgetTemplate]) -> Optional[str]:
    if template is None:
        return None
    if widget.is_custom or template.is_custom:
        return CUSTOM_KIND
    return template.name


def render_widget(widget: ScreenWidget, template: Optional[WidgetTemplate], ctx: RenderContext) -> Image.Image:
    """Draws one widget, unrotated, at its own size."""
    w = max(1, int(round(widget.width)))
    h = max(1, int(round(widget.height)))

    kind = widget_kind(widget, template)
    if kind is None:
        logger.warning(f"[widget {widget.id}] template {widget.template_id} not found")
        return render_placeholder(w, h, ctx.fonts, "Unknown widget")

    renderer = RENDERERS.get(kind)
    if renderer is None:
        logger.warning(f"[widget {widget.id}] unknown widget type: {kind}")
        return render_placeholder(w, h, ctx.fonts, f"Unknown widget: {template.label}")

    try:
        return renderer(w, h, widget.config, ctx, ctx.bindings.get(widget.id))
    except Exception as e:
        logger.warning(f"[widget {widget.id}] {kind} render failed: {e}")
        return render_placeholder(w, h, ctx.fonts, "Error")
