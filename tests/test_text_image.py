import io

from PIL import Image

from app.services.text_image import render_text_image


def test_render_text_image_size_and_format():
    png = render_text_image("FitLocker", 1200, 630)
    img = Image.open(io.BytesIO(png))
    assert img.format == "PNG"
    assert img.size == (1200, 630)


def test_render_text_image_uses_background_color():
    png = render_text_image("Test Membership ID", 1200, 800, bg=(0, 82, 255))
    img = Image.open(io.BytesIO(png)).convert("RGB")
    assert img.size == (1200, 800)
    assert img.getpixel((2, 2)) == (0, 82, 255)


def test_render_text_image_handles_empty_and_very_long_text():
    for text in ("", "x" * 2000):
        img = Image.open(io.BytesIO(render_text_image(text, 600, 200)))
        assert img.size == (600, 200)
