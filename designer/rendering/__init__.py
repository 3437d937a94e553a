from designer.rendering.compositor import DesignRenderer, compose, to_png
from designer.rendering.fonts import FontBook, map_font_family
from designer.rendering.widgets import RenderContext, render_widget

__all__ = [
    "DesignRenderer",
    "FontBook",
    "RenderContext",
    "compose",
    "map_font_family",
    "render_widget",
    "to_png",
]
