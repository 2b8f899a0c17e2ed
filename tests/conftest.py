import io
import os
import sys
from pathlib import Path

import httpx
import pytest
from fastapi.testclient import TestClient
from PIL import Image

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("LOG_LEVEL", "WARNING")

DEFAULT_PFP = "https://img.fitlocker.io/CheckInPFP.png"
DEFAULT_BG = "https://img.fitlocker.io/CheckInBKG.png"
MEMBER_PFP = "https://img.fitlocker.io/images/wc.png"


def png_bytes(width: int = 4, height: int = 4, color=(255, 0, 0, 255)) -> bytes:
    buf = io.BytesIO()
    Image.new("RGBA", (width, height), color).save(buf, format="PNG")
    return buf.getvalue()


class AssetServer:
    """``httpx.MockTransport`` backed by a ``url -> response`` table; unknown URLs are 404."""

    def __init__(self):
        self.routes: dict[str, httpx.Response] = {}
        self.requests: list[str] = []

    def image(self, url: str, body: bytes | None = None, content_type: str = "image/png"):
        self.routes[url] = httpx.Response(200, content=png_bytes() if body is None else body, headers={"content-type": content_type})

    def page(self, url: str, body: str = "<html><body>not an image</body></html>"):
        self.routes[url] = httpx.Response(200, text=body, headers={"content-type": "text/html; charset=utf-8"})

    def handler(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        self.requests.append(url)
        resp = self.routes.get(url)
        if resp is None:
            return httpx.Response(404, request=request)
        return httpx.Response(resp.status_code, content=resp.content, headers=resp.headers, request=request)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler), follow_redirects=True)


class FakeRasterizer:
    def __init__(self, error: Exception | None = None):
        self.calls: list[dict] = []
        self.error = error

    async def __call__(self, html_doc: str, width: int, height: int, *, timeout_ms: int = 10000) -> bytes:
        self.calls.append({"html": html_doc, "width": width, "height": height, "timeout_ms": timeout_ms})
        if self.error is not None:
            raise self.error
        return png_bytes(width, height, (11, 11, 16, 255))


@pytest.fixture()
def asset_server():
    server = AssetServer()
    server.image(DEFAULT_PFP)
    server.image(DEFAULT_BG)
    server.image(MEMBER_PFP)
    return server


@pytest.fixture()
def fake_rasterizer():
    return FakeRasterizer()


@pytest.fixture()
def api_client(monkeypatch, asset_server, fake_rasterizer):
    from app.main import app
    from app.services import assets, html_image

    shared = asset_server.client()
    monkeypatch.setattr(assets, "assets_client", lambda: shared)
    monkeypatch.setattr(html_image, "rasterize", fake_rasterizer)

    client = TestClient(app)
    try:
        yield client
    finally:
        client.close()
