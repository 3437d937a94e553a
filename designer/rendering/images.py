"""
位图处理：为墨水屏准备图片（白底、灰度、拉伸对比度）并按 fit 模式缩放。
"""

import io
import logging
from typing import Optional

from PIL import Image, ImageOps, UnidentifiedImageError

logger = logging.getLogger(__name__)

WHITE = (255, 255, 255, 255)


def decode(data: Optional[bytes]) -> Optional[Image.Image]:
    if not data:
        return None
    try:
        image = Image.open(io.BytesIO(data))
        image.load()
        return image
    except (UnidentifiedImageError, OSError) as e:
        logger.warning(f"Failed to decode image: {e}")
        return None


def for_eink(image: Image.Image) -> Image.Image:
    """Flatten transparency onto white, then grayscale with stretched contrast."""
    rgba = image.convert("RGBA")
    background = Image.new("RGBA", rgba.size, WHITE)
    background.alpha_composite(rgba)
    return ImageOps.autocontrast(background.convert("L"))


def fit(image: Image.Image, width: int, height: int, mode: str = "contain", background=WHITE) -> Image.Image:
    size = (max(1, int(width)), max(1, int(height)))
    image = image.convert("RGBA")
    if mode == "cover":
        return ImageOps.fit(image, size, Image.LANCZOS)
    if mode == "fill":
        return image.resize(size, Image.LANCZOS)
    return ImageOps.pad(image, size, Image.LANCZOS, color=background)


def fit_into(image: Image.Image, width: int, height: int, mode: str = "contain") -> Image.Image:
    """Like ``fit`` but contain leaves the letterbox transparent."""
    return fit(image, width, height, mode, background=(0, 0, 0, 0))
