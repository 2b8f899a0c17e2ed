from __future__ import annotations

import asyncio
import base64
import io
import re
from dataclasses import dataclass
from typing import Literal
from urllib.parse import urlparse

import httpx
from PIL import Image

from app.core.config import Settings, settings as default_settings
from app.core.http import assets_client
from app.core.logger import get_logger

log = get_logger("services.assets")

AssetSource = Literal["candidate", "fallback", "placeholder"]
_MIME_RE = re.compile(r"^image/[a-z0-9.+-]+$")


def _transparent_pixel_png() -> bytes:
    buf = io.BytesIO()
    Image.new("RGBA", (1, 1), (0, 0, 0, 0)).save(buf, format="PNG")
    return buf.getvalue()


PLACEHOLDER_PNG = _transparent_pixel_png()
PLACEHOLDER_DATA_URI = "data:image/png;base64," + base64.b64encode(PLACEHOLDER_PNG).decode("ascii")


@dataclass(frozen=True)
class ResolvedAsset:
    data_uri: str
    source: AssetSource

    @property
    def is_placeholder(self) -> bool:
        return self.source == "placeholder"


PLACEHOLDER_ASSET = ResolvedAsset(PLACEHOLDER_DATA_URI, "placeholder")


class AssetFetchError(Exception):
    """A single fetch attempt did not yield usable image bytes."""


def to_data_uri(data: bytes, content_type: str) -> str:
    mime = content_type.split(";", 1)[0].strip().lower()
    if not _MIME_RE.match(mime):
        mime = "image/png"
    encoded = base64.b64encode(data).decode("ascii")
    return f"data:{mime};base64,{encoded}"


def _is_fetchable(url: str) -> bool:
    try:
        parsed = urlparse(url)
    except ValueError:
        return False
    return parsed.scheme in {"http", "https"} and bool(parsed.netloc)


async def _fetch_image(client: httpx.AsyncClient, url: str, *, max_bytes: int) -> str:
    if not _is_fetchable(url):
        raise AssetFetchError("unsupported_url")
    async with client.stream("GET", url) as resp:
        if resp.status_code < 200 or resp.status_code >= 300:
            raise AssetFetchError(f"status_{resp.status_code}")
        content_type = (resp.headers.get("content-type") or "").strip()
        if not content_type.lower().startswith("image/"):
            raise AssetFetchError(f"content_type={content_type or '-'}")
        chunks: list[bytes] = []
        size = 0
        async for chunk in resp.aiter_bytes():
            size += len(chunk)
            if size > max_bytes:
                raise AssetFetchError("too_large")
            chunks.append(chunk)
    data = b"".join(chunks)
    if not data:
        raise AssetFetchError("empty_body")
    return to_data_uri(data, content_type)


async def fetch_data_uri(
    url: str,
    *,
    client: httpx.AsyncClient | None = None,
    timeout: float | None = None,
    config: Settings | None = None,
) -> str | None:
    """Fetch ``url`` as an embeddable ``data:`` URI, or ``None`` on any failure.

    The attempt is abandoned after ``timeout`` seconds.
    """
    cfg = config or default_settings
    budget = cfg.asset_fetch_timeout_seconds if timeout is None else timeout
    http = client or assets_client()
    try:
        return await asyncio.wait_for(_fetch_image(http, url, max_bytes=cfg.asset_max_bytes), budget)
    except AssetFetchError as exc:
        log.warning("asset_fetch_failed url=%s reason=%s", url, exc)
    except asyncio.TimeoutError:
        log.warning("asset_fetch_failed url=%s reason=timeout budget=%.2fs", url, budget)
    except (httpx.HTTPError, httpx.InvalidURL) as exc:
        log.warning("asset_fetch_failed url=%s reason=%s", url, type(exc).__name__)
    except Exception:
        log.exception("asset_fetch_failed url=%s reason=unexpected", url)
    return None


async def resolve_asset(
    candidate_url: str | None,
    fallback_url: str | None,
    *,
    client: httpx.AsyncClient | None = None,
    timeout: float | None = None,
    config: Settings | None = None,
) -> ResolvedAsset:
    """Resolve an image through candidate -> fallback -> transparent placeholder.

    Never raises. Each of the (at most two) attempts gets its own timeout
    budget; there is no further retry.
    """
    candidate = (candidate_url or "").strip()
    if candidate:
        data_uri = await fetch_data_uri(candidate, client=client, timeout=timeout, config=config)
        if data_uri:
            return ResolvedAsset(data_uri, "candidate")
    fallback = (fallback_url or "").strip()
    if fallback and fallback != candidate:
        data_uri = await fetch_data_uri(fallback, client=client, timeout=timeout, config=config)
        if data_uri:
            return ResolvedAsset(data_uri, "fallback")
    return PLACEHOLDER_ASSET


async def resolve_assets(
    pairs: list[tuple[str | None, str | None]],
    *,
    client: httpx.AsyncClient | None = None,
    timeout: float | None = None,
    config: Settings | None = None,
) -> list[ResolvedAsset]:
    """Resolve several ``(candidate, fallback)`` pairs concurrently, preserving order."""
    return list(
        await asyncio.gather(
            *(
                resolve_asset(candidate, fallback, client=client, timeout=timeout, config=config)
                for candidate, fallback in pairs
            )
        )
    )
