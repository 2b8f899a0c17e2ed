"""Request orchestration for the card endpoints.

parse -> (safe mode) -> resolve assets -> build HTML -> rasterize. Anything
that goes wrong is logged and answered with a same-size static-text
placeholder, so callers always receive a PNG.
"""

from __future__ import annotations

import io
import time
from dataclasses import dataclass
from functools import lru_cache
from typing import Awaitable, Callable, Mapping

import httpx
from PIL import Image

from app.core.config import Settings, settings as default_settings
from app.core.logger import get_logger
from app.services import html_image, styles
from app.services.assets import resolve_assets
from app.services.layout import leaderboard_layout, membership_layout
from app.services.params import parse_leaderboard, parse_membership, resolve_template_url
from app.services.text_image import render_text_image

log = get_logger("services.cards")

Rasterizer = Callable[..., Awaitable[bytes]]

_LOGGED_PARAMS = (
    "username",
    "memberNumber",
    "tier",
    "level",
    "rank",
    "xpCurrent",
    "xpNext",
    "identityStreak",
    "selectedStats",
    "pfp",
    "background",
    "templateBackground",
)
# Longer values are cut in failure logs.
_LOGGED_VALUE_CHARS = 200


@dataclass(frozen=True)
class RenderedImage:
    content: bytes
    cache_control: str
    fallback: bool = False


def _param_context(query: Mapping[str, str]) -> dict[str, str]:
    return {key: query[key][:_LOGGED_VALUE_CHARS] for key in _LOGGED_PARAMS if query.get(key)}


@lru_cache(maxsize=4)
def _blank_png(width: int, height: int) -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", (width, height), color=(11, 11, 16)).save(buf, format="PNG")
    return buf.getvalue()


def _placeholder(text: str, config: Settings, height: int) -> RenderedImage:
    try:
        content = render_text_image(text, config.card_width, height, fonts_dir=config.fonts_dir)
    except Exception:
        log.exception("card_placeholder_failed width=%s height=%s", config.card_width, height)
        content = _blank_png(config.card_width, height)
    return RenderedImage(content=content, cache_control=config.error_cache_control, fallback=True)


async def render_leaderboard(
    query: Mapping[str, str],
    *,
    config: Settings | None = None,
    client: httpx.AsyncClient | None = None,
    rasterizer: Rasterizer | None = None,
) -> RenderedImage:
    cfg = config or default_settings
    rasterize = rasterizer or html_image.rasterize
    height = cfg.leaderboard_height
    started = time.perf_counter()
    try:
        req = parse_leaderboard(query)
        if req.safe:
            content = render_text_image(cfg.brand_name, cfg.card_width, height, fonts_dir=cfg.fonts_dir)
            return RenderedImage(content=content, cache_control=cfg.leaderboard_cache_control)

        background_url = resolve_template_url(req.background, cfg.template_background_base_url)
        pfp, background = await resolve_assets(
            [(req.pfp, cfg.default_pfp_url), (background_url, cfg.default_background_url)],
            client=client,
            config=cfg,
        )
        layout = leaderboard_layout(req, pfp, background, cfg)
        html_doc = html_image.build_leaderboard_html(layout, fonts_dir=cfg.fonts_dir)
        content = await rasterize(html_doc, layout.width, layout.height, timeout_ms=cfg.render_timeout_ms)
        log.info(
            "card_rendered card=leaderboard pfp=%s background=%s ms=%s",
            pfp.source,
            background.source,
            int((time.perf_counter() - started) * 1000),
        )
        return RenderedImage(content=content, cache_control=cfg.leaderboard_cache_control)
    except Exception:
        log.exception("card_render_failed card=leaderboard params=%s", _param_context(query))
        return _placeholder(cfg.error_text, cfg, height)


async def render_membership(
    query: Mapping[str, str],
    *,
    config: Settings | None = None,
    client: httpx.AsyncClient | None = None,
    rasterizer: Rasterizer | None = None,
) -> RenderedImage:
    cfg = config or default_settings
    rasterize = rasterizer or html_image.rasterize
    height = cfg.membership_height
    started = time.perf_counter()
    try:
        req = parse_membership(query)
        if req.safe:
            content = render_text_image(cfg.brand_name, cfg.card_width, height, fonts_dir=cfg.fonts_dir)
            return RenderedImage(content=content, cache_control=cfg.membership_cache_control)
        if req.minimal:
            log.info("card_minimal card=membership")
            content = render_text_image(
                "Test Membership ID",
                cfg.card_width,
                height,
                bg=styles.TIER_COLORS[styles.DEFAULT_TIER].rgb,
                fonts_dir=cfg.fonts_dir,
            )
            return RenderedImage(content=content, cache_control=cfg.membership_cache_control)

        # No template URL resolves straight to the placeholder, which keeps the gradient.
        template_url = resolve_template_url(req.template_background, cfg.template_background_base_url)
        pfp, template_background = await resolve_assets(
            [(req.pfp, cfg.membership_default_pfp_url), (template_url, None)],
            client=client,
            config=cfg,
        )
        layout = membership_layout(req, pfp, template_background, cfg)
        log.debug(
            "card_membership_layout tier=%s stats=%s layers=%s",
            req.tier,
            [cell.key for cell in layout.stats],
            len(layout.layers),
        )
        html_doc = html_image.build_membership_html(layout, fonts_dir=cfg.fonts_dir)
        content = await rasterize(html_doc, layout.width, layout.height, timeout_ms=cfg.render_timeout_ms)
        log.info(
            "card_rendered card=membership pfp=%s background=%s ms=%s",
            pfp.source,
            template_background.source,
            int((time.perf_counter() - started) * 1000),
        )
        return RenderedImage(content=content, cache_control=cfg.membership_cache_control)
    except Exception:
        log.exception("card_render_failed card=membership params=%s", _param_context(query))
        return _placeholder(cfg.brand_name, cfg, height)
