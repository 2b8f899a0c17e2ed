import asyncio
import base64
import io

import httpx
from PIL import Image

from app.core.config import Settings
from app.services import assets
from app.services.assets import PLACEHOLDER_ASSET, fetch_data_uri, resolve_asset, resolve_assets, to_data_uri

from conftest import AssetServer, png_bytes

PFP = "https://cdn.test/me.png"
DEFAULT = "https://cdn.test/default.png"


def _decode(data_uri: str) -> bytes:
    return base64.b64decode(data_uri.split(",", 1)[1])


def test_placeholder_is_transparent_1x1_png():
    img = Image.open(io.BytesIO(assets.PLACEHOLDER_PNG))
    assert img.size == (1, 1)
    assert img.convert("RGBA").getpixel((0, 0))[3] == 0
    assert assets.PLACEHOLDER_DATA_URI.startswith("data:image/png;base64,")


def test_to_data_uri_keeps_image_mime_and_drops_parameters():
    uri = to_data_uri(b"abc", "image/webp; charset=binary")
    assert uri == "data:image/webp;base64,YWJj"


def test_to_data_uri_rejects_unsafe_mime():
    assert to_data_uri(b"abc", 'image/png" onerror="x').startswith("data:image/png;base64,")


def test_candidate_success_is_embedded():
    server = AssetServer()
    body = png_bytes(2, 2)
    server.image(PFP, body)
    server.image(DEFAULT)

    async def run():
        async with server.client() as client:
            return await resolve_asset(PFP, DEFAULT, client=client)

    res = asyncio.run(run())
    assert res.source == "candidate"
    assert _decode(res.data_uri) == body
    assert server.requests == [PFP]


def test_non_image_candidate_uses_fallback():
    server = AssetServer()
    server.page(PFP)
    server.image(DEFAULT)

    async def run():
        async with server.client() as client:
            return await resolve_asset(PFP, DEFAULT, client=client)

    res = asyncio.run(run())
    assert res.source == "fallback"
    assert res.data_uri.startswith("data:image/png;base64,")
    assert server.requests == [PFP, DEFAULT]


def test_404_and_empty_body_use_fallback():
    server = AssetServer()
    server.image("https://cdn.test/empty.png", b"")
    server.image(DEFAULT)

    async def run():
        async with server.client() as client:
            missing = await resolve_asset("https://cdn.test/missing.png", DEFAULT, client=client)
            empty = await resolve_asset("https://cdn.test/empty.png", DEFAULT, client=client)
            return missing, empty

    missing, empty = asyncio.run(run())
    assert missing.source == "fallback"
    assert empty.source == "fallback"


def test_both_failing_yields_placeholder():
    server = AssetServer()

    async def run():
        async with server.client() as client:
            return await resolve_asset(PFP, DEFAULT, client=client)

    assert asyncio.run(run()) == PLACEHOLDER_ASSET


def test_missing_candidate_goes_straight_to_fallback():
    server = AssetServer()
    server.image(DEFAULT)

    async def run():
        async with server.client() as client:
            return await resolve_asset(None, DEFAULT, client=client)

    res = asyncio.run(run())
    assert res.source == "fallback"
    assert server.requests == [DEFAULT]


def test_fallback_equal_to_candidate_is_not_refetched():
    server = AssetServer()

    async def run():
        async with server.client() as client:
            return await resolve_asset(DEFAULT, DEFAULT, client=client)

    assert asyncio.run(run()).is_placeholder
    assert server.requests == [DEFAULT]


def test_unsupported_scheme_is_never_requested():
    server = AssetServer()
    server.image(DEFAULT)

    async def run():
        async with server.client() as client:
            return await resolve_asset("ftp://cdn.test/me.png", DEFAULT, client=client)

    res = asyncio.run(run())
    assert res.source == "fallback"
    assert server.requests == [DEFAULT]


def test_oversized_body_is_rejected():
    server = AssetServer()
    server.image(PFP, b"x" * 2048)
    cfg = Settings(ASSET_MAX_BYTES=1024)

    async def run():
        async with server.client() as client:
            return await fetch_data_uri(PFP, client=client, config=cfg)

    assert asyncio.run(run()) is None


def test_slow_candidate_times_out_and_falls_back():
    fast = png_bytes()

    async def handler(request: httpx.Request) -> httpx.Response:
        if str(request.url) == PFP:
            await asyncio.sleep(5)
        return httpx.Response(200, content=fast, headers={"content-type": "image/png"})

    async def run():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            return await resolve_asset(PFP, DEFAULT, client=client, timeout=0.05)

    res = asyncio.run(run())
    assert res.source == "fallback"


def test_transport_error_is_a_failed_attempt():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    async def run():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            return await resolve_asset(PFP, DEFAULT, client=client)

    assert asyncio.run(run()).is_placeholder


def test_resolutions_run_concurrently():
    # Each image is only served once the other request has started, so a
    # sequential resolver would time out on the first one.
    first = "https://cdn.test/a.png"
    second = "https://cdn.test/b.png"
    body = png_bytes()

    async def run():
        started = {first: asyncio.Event(), second: asyncio.Event()}

        async def handler(request: httpx.Request) -> httpx.Response:
            url = str(request.url)
            started[url].set()
            other = second if url == first else first
            await started[other].wait()
            return httpx.Response(200, content=body, headers={"content-type": "image/png"})

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            return await resolve_assets([(first, None), (second, None)], client=client, timeout=1.0)

    results = asyncio.run(run())
    assert [r.source for r in results] == ["candidate", "candidate"]
