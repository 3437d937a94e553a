"""
整屏合成：背景、按 zIndex 排序的部件（绕中心顺时针旋转）、手绘图层。

compose() 是纯同步的；DesignRenderer 负责先异步取回绑定数据和图片，再调用 compose()。
"""

import asyncio
import io
import logging
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Set

from PIL import Image, ImageColor

from designer.binding import BindingEngine, BoundValue
from designer.catalog import TemplateCatalog
from designer.client import qr_code_url
from designer.drawing import DrawingOverlay
from designer.models import DeviceContext, ScreenDesign, ScreenWidget
from designer.rendering.fonts import FontBook
from designer.rendering.widgets import RenderContext, image_url, render_widget, widget_kind

logger = logging.getLogger(__name__)


def _background(color: str):
    try:
        return ImageColor.getcolor(color or "#ffffff", "RGBA")
    except ValueError:
        logger.warning(f"Invalid background color '{color}', using white")
        return (255, 255, 255, 255)


def place(canvas: Image.Image, layer: Image.Image, widget: ScreenWidget) -> None:
    """Composites a widget layer at its position, rotated clockwise around its centre."""
    cx = widget.x + widget.width / 2
    cy = widget.y + widget.height / 2
    if widget.rotation:
        layer = layer.rotate(-widget.rotation, resample=Image.BICUBIC, expand=True)

    full = Image.new("RGBA", canvas.size, (0, 0, 0, 0))
    full.paste(layer, (int(round(cx - layer.width / 2)), int(round(cy - layer.height / 2))))
    canvas.alpha_composite(full)


def compose(
    design: ScreenDesign,
    catalog: TemplateCatalog,
    ctx: RenderContext,
    overlay: Optional[DrawingOverlay] = None,
) -> Image.Image:
    canvas = Image.new("RGBA", (int(design.width), int(design.height)), _background(design.background))
    for widget in design.paint_order():
        layer = render_widget(widget, catalog.get(widget.template_id), ctx)
        place(canvas, layer, widget)

    if overlay is not None and not overlay.is_blank():
        if overlay.image.size == canvas.size:
            canvas.alpha_composite(overlay.image)
        else:
            logger.warning(f"Drawing overlay size {overlay.image.size} does not match design {canvas.size}")
    return canvas


def to_png(image: Image.Image) -> bytes:
    buf = io.BytesIO()
    image.save(buf, format="PNG")
    return buf.getvalue()


# ── 异步准备 ──────────────────────────────────────────

def asset_urls(widget: ScreenWidget, kind: Optional[str], bound: Optional[BoundValue]) -> Set[str]:
    """Image URLs a widget will need at draw time."""
    config = widget.config
    urls: Set[str] = set()
    if kind == "image":
        url = image_url(config, bound)
        if url:
            urls.add(url)
    elif kind == "qrcode":
        size = min(int(round(widget.width)), int(round(widget.height)))
        urls.add(qr_code_url(config.get("content") or "https://example.com", size))
    elif kind == "custom-widget-base" and bound is not None and bound.value is not None:
        widget_config = bound.widget_config or {}
        content = bound.value
        if isinstance(content, str) and widget_config.get("fieldType") == "image":
            urls.add(content)
        elif isinstance(content, dict):
            if content.get("type") == "grid":
                for cell in content.get("cells") or []:
                    if cell.get("fieldType") == "image" and cell.get("value"):
                        urls.add(str(cell["value"]))
            elif widget_config.get("valueFieldType") == "image" and content.get("value"):
                urls.add(str(content["value"]))
    return urls


class DesignRenderer:
    def __init__(
        self,
        binding: BindingEngine,
        client=None,
        fonts: Optional[FontBook] = None,
        local_timezone: Optional[str] = None,
        default_timezone: str = "UTC",
    ):
        self.binding = binding
        self.client = client
        self.fonts = fonts or FontBook()
        self.local_timezone = local_timezone
        self.default_timezone = default_timezone

    async def _fetch_assets(self, urls: Iterable[str]) -> Dict[str, bytes]:
        urls = sorted(urls)
        if self.client is None or not urls:
            return {}
        results = await asyncio.gather(*(self.client.fetch_asset(u) for u in urls))
        return {url: data for url, data in zip(urls, results) if data}

    async def prepare(
        self,
        design: ScreenDesign,
        catalog: TemplateCatalog,
        device: Optional[DeviceContext] = None,
        now: Optional[datetime] = None,
    ) -> RenderContext:
        ctx = RenderContext(
            fonts=self.fonts,
            device=device,
            local_timezone=self.local_timezone,
            default_timezone=self.default_timezone,
        )
        if now is not None:
            ctx.now = now

        widgets: List[ScreenWidget] = design.paint_order()
        templates = [catalog.get(w.template_id) for w in widgets]
        bound = await asyncio.gather(*(self.binding.resolve_widget(w, t) for w, t in zip(widgets, templates)))

        urls: Set[str] = set()
        for widget, template, value in zip(widgets, templates, bound):
            if value is not None:
                ctx.bindings[widget.id] = value
            urls |= asset_urls(widget, widget_kind(widget, template), value)
        ctx.assets = await self._fetch_assets(urls)
        logger.debug(f"Prepared design {design.id}: {len(ctx.bindings)} bindings, {len(ctx.assets)} assets")
        return ctx

    async def render(
        self,
        design: ScreenDesign,
        catalog: TemplateCatalog,
        device: Optional[DeviceContext] = None,
        overlay: Optional[DrawingOverlay] = None,
        now: Optional[datetime] = None,
    ) -> Image.Image:
        ctx = await self.prepare(design, catalog, device, now)
        return compose(design, catalog, ctx, overlay)

    async def render_png(self, *args, **kwargs) -> bytes:
        return to_png(await self.render(*args, **kwargs))
