import asyncio

from app.core import http


def test_assets_client_is_shared_and_recreated_after_close():
    async def run():
        await http.init_http_clients()
        first = http.assets_client()
        assert http.assets_client() is first
        assert first.headers["accept"] == "image/*"
        assert first.headers["user-agent"] == "FitLocker-OG/1.0"
        assert first.follow_redirects is True

        await http.close_http_clients()
        assert first.is_closed
        second = http.assets_client()
        assert second is not first
        await http.close_http_clients()

    asyncio.run(run())
