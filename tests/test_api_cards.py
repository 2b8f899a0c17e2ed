import io

from PIL import Image

from app.services import html_image

from conftest import FakeRasterizer


def test_health(api_client):
    r = api_client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"ok": True}


def test_leaderboard_endpoint_returns_png(api_client, fake_rasterizer):
    r = api_client.get("/api/leaderboard", params={"username": "Jane", "level": "5", "rank": "3"})
    assert r.status_code == 200
    assert r.headers["content-type"] == "image/png"
    assert r.headers["cache-control"] == "public, s-maxage=300, stale-while-revalidate=60"
    assert "x-card-fallback" not in r.headers
    assert Image.open(io.BytesIO(r.content)).size == (1200, 630)

    html_doc = fake_rasterizer.calls[0]["html"]
    assert "Jane" in html_doc
    assert "Level 5" in html_doc
    assert "Rank #3" in html_doc


def test_leaderboard_endpoint_tolerates_garbage(api_client, fake_rasterizer):
    r = api_client.get("/api/leaderboard?level=abc&rank=-1&xpCurrent=%00&xpNext=&pfp=javascript:alert(1)")
    assert r.status_code == 200
    html_doc = fake_rasterizer.calls[0]["html"]
    assert "Level 1" in html_doc
    assert "Rank #999" in html_doc
    assert "javascript:" not in html_doc

    r = api_client.get("/api/leaderboard", params={"xpCurrent": "9" * 5000, "xpNext": "1" + "0" * 5000})
    assert r.status_code == 200
    assert r.headers["content-type"] == "image/png"
    assert "x-card-fallback" not in r.headers
    assert "XP 1000000000000 / 1000000000000 (100%)" in fake_rasterizer.calls[-1]["html"]


def test_membership_endpoint_tolerates_huge_numbers(api_client, fake_rasterizer):
    r = api_client.get("/api/membership-id-image", params={"memberNumber": "7" * 5000, "rank": "-" + "1" * 5000})
    assert r.status_code == 200
    assert "x-card-fallback" not in r.headers
    assert "1000000000000" in fake_rasterizer.calls[-1]["html"]


def test_leaderboard_safe_mode(api_client, asset_server, fake_rasterizer):
    r = api_client.get("/api/leaderboard?safe=1")
    assert r.status_code == 200
    assert r.headers["content-type"] == "image/png"
    assert Image.open(io.BytesIO(r.content)).size == (1200, 630)
    assert asset_server.requests == []
    assert fake_rasterizer.calls == []


def test_membership_endpoint_returns_png(api_client, fake_rasterizer):
    r = api_client.get(
        "/api/membership-id-image",
        params={"username": "Jane", "memberNumber": "7", "tier": "platinum", "selectedStats": "rank,level"},
    )
    assert r.status_code == 200
    assert r.headers["content-type"] == "image/png"
    assert r.headers["cache-control"] == "public, max-age=3600, s-maxage=3600, stale-while-revalidate=86400"
    assert Image.open(io.BytesIO(r.content)).size == (1200, 800)
    assert "PLATINUM TIER" in fake_rasterizer.calls[0]["html"]
    assert "007" in fake_rasterizer.calls[0]["html"]


def test_render_failure_is_still_a_png(api_client, monkeypatch):
    monkeypatch.setattr(html_image, "rasterize", FakeRasterizer(error=RuntimeError("boom")))

    for path, size in (("/api/leaderboard", (1200, 630)), ("/api/membership-id-image", (1200, 800))):
        r = api_client.get(path)
        assert r.status_code == 200
        assert r.headers["content-type"] == "image/png"
        assert r.headers["cache-control"] == "no-store"
        assert r.headers["x-card-fallback"] == "1"
        assert Image.open(io.BytesIO(r.content)).size == size
