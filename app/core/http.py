import httpx

from .config import settings

_assets_client: httpx.AsyncClient | None = None


def _http_limits() -> httpx.Limits:
    return httpx.Limits(max_connections=20, max_keepalive_connections=10)


def _asset_headers() -> dict[str, str]:
    headers = {"Accept": "image/*"}
    if settings.asset_user_agent:
        headers["User-Agent"] = settings.asset_user_agent
    if settings.asset_referer:
        headers["Referer"] = settings.asset_referer
    return headers


def assets_client() -> httpx.AsyncClient:
    global _assets_client
    if _assets_client is None or _assets_client.is_closed:
        _assets_client = httpx.AsyncClient(
            headers=_asset_headers(),
            timeout=httpx.Timeout(settings.asset_fetch_timeout_seconds),
            limits=_http_limits(),
            follow_redirects=True,
        )
    return _assets_client


async def init_http_clients() -> None:
    assets_client()


async def close_http_clients() -> None:
    global _assets_client
    if _assets_client is not None and not _assets_client.is_closed:
        await _assets_client.aclose()
    _assets_client = None
