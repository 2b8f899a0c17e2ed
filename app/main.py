from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware

from app.core.config import settings
from app.core.http import close_http_clients, init_http_clients
from app.services import cards, html_image

logger = logging.getLogger(__name__)

PNG_MEDIA_TYPE = "image/png"


@asynccontextmanager
async def lifespan(_: FastAPI):
    await init_http_clients()
    logger.info(
        "card_service_started env=%s canvas=%sx%s/%sx%s asset_timeout=%.2fs",
        settings.app_env,
        settings.card_width,
        settings.leaderboard_height,
        settings.card_width,
        settings.membership_height,
        settings.asset_fetch_timeout_seconds,
    )
    try:
        yield
    finally:
        try:
            await close_http_clients()
        except Exception:
            logger.exception("http_client_close_failed")
        try:
            await html_image.shutdown_renderer()
        except Exception:
            logger.exception("card_renderer_shutdown_failed")


app = FastAPI(title="FitLocker OG Cards", lifespan=lifespan)

# Cards are embedded by third-party clients; allow read-only access from anywhere.
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET"],
    allow_headers=["*"],
)


def _png_response(rendered: cards.RenderedImage) -> Response:
    # Every path answers 200 with a PNG; fallbacks are flagged by header.
    headers = {"Cache-Control": rendered.cache_control}
    if rendered.fallback:
        headers["X-Card-Fallback"] = "1"
    return Response(content=rendered.content, media_type=PNG_MEDIA_TYPE, headers=headers)


@app.get("/health")
async def health():
    return {"ok": True}


@app.get("/api/leaderboard")
async def leaderboard_image(request: Request):
    rendered = await cards.render_leaderboard(request.query_params)
    return _png_response(rendered)


@app.get("/api/membership-id-image")
async def membership_id_image(request: Request):
    rendered = await cards.render_membership(request.query_params)
    return _png_response(rendered)
