from __future__ import annotations

import io
from functools import lru_cache
from pathlib import Path

from PIL import Image, ImageDraw, ImageFont


_BG_COLOR = (11, 11, 16)
_TEXT_COLOR = (255, 255, 255)
_DEFAULT_FONT_PX = 48
_MIN_SIDE_PADDING = 48
_DEFAULT_FONT_DIR = Path(__file__).resolve().parent.parent / "assets" / "fonts"


def _font_path(filename: str, fonts_dir: str = "") -> Path | None:
    base = Path(fonts_dir) if fonts_dir else _DEFAULT_FONT_DIR
    candidate = base / filename
    return candidate if candidate.exists() else None


@lru_cache(maxsize=8)
def _load_font(size: int, fonts_dir: str = "") -> ImageFont.FreeTypeFont | ImageFont.ImageFont:
    path = _font_path("Inter-Bold.ttf", fonts_dir) or _font_path("DejaVuSans-Bold.ttf", fonts_dir)
    if path:
        try:
            return ImageFont.truetype(str(path), size=size)
        except OSError:
            pass
    for name in ("DejaVuSans-Bold.ttf", "Arial Bold.ttf"):
        try:
            return ImageFont.truetype(name, size=size)
        except OSError:
            continue
    return ImageFont.load_default(size=size)


def _text_width(draw: ImageDraw.ImageDraw, text: str, font) -> int:
    bbox = draw.textbbox((0, 0), text, font=font)
    return int(bbox[2] - bbox[0])


def _truncate_text(draw: ImageDraw.ImageDraw, text: str, font, max_width: int) -> str:
    if _text_width(draw, text, font) <= max_width:
        return text
    truncated = text
    while truncated and _text_width(draw, f"{truncated}...", font) > max_width:
        truncated = truncated[:-1]
    return f"{truncated}..." if truncated else ""


def render_text_image(
    text: str,
    width: int,
    height: int,
    *,
    bg: tuple[int, int, int] = _BG_COLOR,
    fg: tuple[int, int, int] = _TEXT_COLOR,
    font_px: int = _DEFAULT_FONT_PX,
    fonts_dir: str = "",
) -> bytes:
    """Draw ``text`` centred on a flat ``width`` x ``height`` canvas and return PNG bytes.

    Used for safe-mode cards and as the failure placeholder, so it depends
    on nothing but Pillow.
    """
    image = Image.new("RGB", (int(width), int(height)), color=bg)
    draw = ImageDraw.Draw(image)
    font = _load_font(int(font_px), fonts_dir)
    max_width = max(1, int(width) - _MIN_SIDE_PADDING * 2)
    line = _truncate_text(draw, " ".join((text or "").split()), font, max_width)
    if line:
        bbox = draw.textbbox((0, 0), line, font=font)
        x = (int(width) - (bbox[2] - bbox[0])) / 2 - bbox[0]
        y = (int(height) - (bbox[3] - bbox[1])) / 2 - bbox[1]
        draw.text((x, y), line, font=font, fill=fg)

    buf = io.BytesIO()
    image.save(buf, format="PNG")
    return buf.getvalue()
