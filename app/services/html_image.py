from __future__ import annotations

import asyncio
import base64
import html
import threading
from concurrent.futures import ThreadPoolExecutor
from functools import lru_cache
from pathlib import Path

from playwright.sync_api import Browser, Playwright, sync_playwright

from app.core.logger import get_logger
from app.services.layout import (
    LEADERBOARD_AVATAR_PX,
    LEADERBOARD_BG_COLOR,
    LEADERBOARD_BG_OVERLAY,
    PFP_FALLBACK_FILL,
    Layer,
    LeaderboardLayout,
    MembershipLayout,
)

log = get_logger("services.html_image")

_DEFAULT_FONT_DIR = Path(__file__).resolve().parent.parent / "assets" / "fonts"
_FONT_FAMILY = "CardSans"

_PLAYWRIGHT: Playwright | None = None
_BROWSER: Browser | None = None
_BROWSER_LOCK = threading.Lock()
# Playwright's sync API is bound to the thread that started it, so every
# browser call goes through this single worker.
_RENDER_EXECUTOR = ThreadPoolExecutor(max_workers=1, thread_name_prefix="card-render")


def _esc(value: object) -> str:
    return html.escape(str(value), quote=True)


@lru_cache(maxsize=4)
def _embedded_font_css(fonts_dir: str = "") -> str:
    base = Path(fonts_dir) if fonts_dir else _DEFAULT_FONT_DIR
    faces = [
        (_FONT_FAMILY, "Inter-Regular.ttf", 400),
        (_FONT_FAMILY, "Inter-Bold.ttf", 700),
        (_FONT_FAMILY, "Inter-Black.ttf", 900),
    ]
    css_chunks: list[str] = []
    for family, filename, weight in faces:
        path = base / filename
        if not path.exists():
            continue
        data = path.read_bytes()
        if b"<html" in data[:512].lower():
            continue
        encoded = base64.b64encode(data).decode("ascii")
        css_chunks.append(
            "@font-face{"
            f"font-family:'{family}';"
            f"font-style:normal;font-weight:{weight};font-display:block;"
            f"src:url(data:font/ttf;base64,{encoded}) format('truetype');"
            "}"
        )
    return "\n".join(css_chunks)


def _document(body: str, *, width: int, height: int, extra_css: str, fonts_dir: str) -> str:
    return f"""<!doctype html>
<html>
<head>
  <meta charset="utf-8" />
  <style>
    {_embedded_font_css(fonts_dir)}
    * {{ box-sizing: border-box; }}
    html, body {{ margin: 0; padding: 0; }}
    body {{
      width: {width}px;
      height: {height}px;
      overflow: hidden;
      font-family: "{_FONT_FAMILY}", "Inter", "Segoe UI", Arial, sans-serif;
      -webkit-font-smoothing: antialiased;
    }}
    #card {{
      width: {width}px;
      height: {height}px;
      position: relative;
      overflow: hidden;
      display: flex;
      flex-direction: column;
      color: #fff;
    }}
    .layer {{
      position: absolute;
      top: 0;
      left: 0;
      width: {width}px;
      height: {height}px;
      pointer-events: none;
    }}
    {extra_css}
  </style>
</head>
<body>
{body}
</body>
</html>"""


def build_leaderboard_html(layout: LeaderboardLayout, *, fonts_dir: str = "") -> str:
    if layout.background_uri:
        background = (
            f"<img class='layer bg-image' src='{layout.background_uri}' alt='' "
            f"width='{layout.width}' height='{layout.height}' />"
        )
    else:
        background = ""
    hashtags = " ".join(f"#{tag}" for tag in layout.hashtags)
    progress = layout.progress
    body = f"""<div id="card">
  {background}
  <div class="layer overlay"></div>
  <div class="content">
    <div class="header">
      <img class="avatar" src="{layout.pfp_uri}" alt="" width="{LEADERBOARD_AVATAR_PX}" height="{LEADERBOARD_AVATAR_PX}" />
      <div class="identity">
        <div class="username" style="font-size:{layout.username_px}px">{_esc(layout.username)}</div>
        <div class="level">Level {layout.level}</div>
      </div>
      <div class="rank-wrap"><div class="rank-pill">Rank #{layout.rank}</div></div>
    </div>
    <div class="progress">
      <div class="xp-label">XP {layout.xp_current} / {layout.xp_next} ({progress.percent}%)</div>
      <div class="bar" style="width:{layout.bar_width}px">
        <div class="bar-fill" style="width:{progress.fill_width}px"></div>
      </div>
    </div>
    <div class="footer">
      <div class="footer-text">{_esc(layout.brand_domain)}</div>
      <div class="footer-text">{_esc(hashtags)}</div>
    </div>
  </div>
</div>"""
    css = f"""
    #card {{ background-color: {LEADERBOARD_BG_COLOR}; }}
    .bg-image {{ object-fit: cover; opacity: 0.9; }}
    .overlay {{ background: {LEADERBOARD_BG_OVERLAY}; }}
    .content {{
      position: relative;
      z-index: 1;
      display: flex;
      flex-direction: column;
      padding: {layout.padding}px;
      gap: 28px;
    }}
    .header {{ display: flex; align-items: center; gap: 24px; }}
    .avatar {{
      width: {LEADERBOARD_AVATAR_PX}px;
      height: {LEADERBOARD_AVATAR_PX}px;
      border-radius: 9999px;
      border: 4px solid rgba(255,255,255,0.15);
      object-fit: cover;
      background: #111;
      flex-shrink: 0;
    }}
    .identity {{ display: flex; flex-direction: column; min-width: 0; }}
    .username {{ font-weight: 700; white-space: nowrap; }}
    .level {{ font-size: 28px; opacity: 0.9; }}
    .rank-wrap {{ margin-left: auto; display: flex; align-items: center; gap: 12px; }}
    .rank-pill {{
      padding: 10px 18px;
      border-radius: 9999px;
      background: linear-gradient(90deg, #6EE7F9 0%, #A78BFA 50%, #34D399 100%);
      color: #0b0b10;
      font-weight: 800;
      font-size: 28px;
      white-space: nowrap;
    }}
    .progress {{ display: flex; flex-direction: column; gap: 12px; margin-top: 8px; }}
    .xp-label {{ font-size: 26px; opacity: 0.9; }}
    .bar {{
      height: 28px;
      border-radius: 9999px;
      background: rgba(255,255,255,0.12);
      overflow: hidden;
    }}
    .bar-fill {{
      height: 100%;
      background: linear-gradient(90deg, #60A5FA 0%, #A78BFA 50%, #34D399 100%);
    }}
    .footer {{ margin-top: 16px; display: flex; justify-content: space-between; }}
    .footer-text {{ font-size: 24px; opacity: 0.85; }}
"""
    return _document(body, width=layout.width, height=layout.height, extra_css=css, fonts_dir=fonts_dir)


def _layer_html(layer: Layer) -> str:
    rules = [f"background: {layer.background}", f"opacity: {layer.opacity}"]
    if layer.is_image:
        rules.append("background-position: center")
        rules.append("background-repeat: no-repeat")
    if layer.size:
        rules.append(f"background-size: {layer.size}")
    return f"<div class='layer' style=\"{'; '.join(rules)}\"></div>"


def _badge_html(text: str, *, bg: str, color: str) -> str:
    return f"<div class='badge' style='background:{bg};color:{color}'>{_esc(text)}</div>"


def build_membership_html(layout: MembershipLayout, *, fonts_dir: str = "") -> str:
    tier = layout.tier
    layers_html = "\n  ".join(_layer_html(layer) for layer in layout.layers)

    badges: list[str] = []
    if layout.band is not None:
        badges.append(_badge_html(layout.band.label, bg=layout.band.bg, color=layout.band.text))
    if layout.show_chain:
        badges.append(_badge_html("CHAIN", bg="rgba(139, 92, 246, 0.2)", color="#8B5CF6"))
    badges_html = f"<div class='badges'>{''.join(badges)}</div>" if badges else ""

    pfp = layout.pfp
    pfp_rules = [
        f"width: {pfp.size}px",
        f"height: {pfp.size}px",
        f"border-radius: {pfp.radius}px",
        f"border: {pfp.border or 'none'}",
        f"box-shadow: {pfp.shadow or 'none'}",
        f"clip-path: {pfp.clip_path or 'none'}",
    ]
    if pfp.image_uri:
        pfp_inner = f"<img src='{pfp.image_uri}' alt='' width='{pfp.size}' height='{pfp.size}' />"
    else:
        pfp_rules.append(f"background: {PFP_FALLBACK_FILL}")
        pfp_inner = ""
    pfp_html = f"<div class='pfp' style=\"{'; '.join(pfp_rules)}\">{pfp_inner}</div>"

    stat_cells: list[str] = []
    for cell in layout.stats:
        shadow = "0 2px 12px rgba(0,0,0,0.6)"
        if cell.glow:
            shadow += f", 0 0 20px {cell.glow}"
        stat_cells.append(
            "<div class='stat'>"
            f"<div class='stat-value' style='text-shadow:{shadow}'>{_esc(cell.value)}</div>"
            f"<div class='stat-label' style='font-size:{cell.label_px}px'>{_esc(cell.label)}</div>"
            "</div>"
        )
    accents_html = "".join(f"<div class='accent'>{_esc(text)}</div>" for text in layout.accents)
    ref_html = f"<div class='ref'>REF: {_esc(layout.ref)}</div>" if layout.ref else ""

    border_html = ""
    if layout.border is not None:
        rules = [f"border: {layout.border.border}", "border-radius: 16px"]
        rules.append(f"box-shadow: {layout.border.shadow or 'none'}")
        if layout.border.inner_outline:
            rules.append(f"outline: {layout.border.inner_outline}")
            rules.append("outline-offset: -14px")
        border_html = f"<div class='layer' style=\"{'; '.join(rules)}\"></div>"

    body = f"""<div id="card">
  {layers_html}
  <div class="content">
    <div class="header">
      <div class="member">
        <div class="member-caption">MEMBER</div>
        <div class="member-number">{_esc(layout.member_label)}</div>
      </div>
      {badges_html}
    </div>
    <div class="main">
      <div class="identity">
        {pfp_html}
        <div class="username" style="font-size:{layout.username_px}px">{_esc(layout.username)}</div>
        <div class="tier-badge">{_esc(layout.tier_name.upper())} TIER</div>
      </div>
      <div class="stats">
        <div class="stat-grid">{''.join(stat_cells)}</div>
        {accents_html}
        {ref_html}
      </div>
    </div>
  </div>
  {border_html}
</div>"""
    css = f"""
    #card {{ background: #0b0b10; }}
    .content {{
      position: relative;
      z-index: 1;
      display: flex;
      flex-direction: column;
      padding: {layout.padding}px;
      height: 100%;
    }}
    .header {{ display: flex; align-items: center; justify-content: center; gap: 16px; margin-bottom: 24px; }}
    .member {{ display: flex; flex-direction: column; align-items: center; gap: 8px; }}
    .member-caption, .stat-label {{
      font-size: 20px;
      font-weight: 600;
      color: rgba(255,255,255,0.9);
      letter-spacing: 0.15em;
    }}
    .member-number {{
      padding: 12px 24px;
      border-radius: 12px;
      background: {tier.primary}4D;
      color: {tier.accent};
      font-size: 80px;
      font-weight: 900;
      letter-spacing: 0.1em;
      text-shadow: 0 2px 8px rgba(0,0,0,0.5);
    }}
    .badges {{ display: flex; flex-direction: column; gap: 8px; }}
    .badge {{
      padding: 6px 12px;
      border-radius: 8px;
      font-size: 12px;
      font-weight: 800;
      letter-spacing: 0.05em;
    }}
    .main {{ display: flex; flex: 1; gap: 48px; align-items: center; justify-content: center; }}
    .identity {{ display: flex; flex-direction: column; align-items: center; gap: 20px; }}
    .pfp {{ overflow: hidden; display: flex; flex-shrink: 0; }}
    .pfp img {{ object-fit: cover; }}
    .username {{
      font-weight: 900;
      color: #fff;
      letter-spacing: 0.02em;
      white-space: nowrap;
      text-shadow: 0 2px 8px rgba(0,0,0,0.5);
    }}
    .tier-badge {{
      padding: 8px 16px;
      border-radius: 12px;
      background: {tier.primary}33;
      color: {tier.accent};
      font-size: 26px;
      font-weight: 800;
      letter-spacing: 0.05em;
    }}
    .stats {{ display: flex; flex: 1; flex-direction: column; gap: 32px; justify-content: center; align-items: flex-start; }}
    .stat-grid {{ display: grid; grid-template-columns: auto auto; column-gap: 56px; row-gap: 32px; }}
    .stat {{ display: flex; flex-direction: column; align-items: flex-start; gap: 8px; }}
    .stat-value {{ font-size: 84px; font-weight: 900; color: #fff; line-height: 1; }}
    .accent {{ font-size: 20px; color: #fff; font-weight: 600; }}
    .ref {{
      padding: 12px 20px;
      border-radius: 12px;
      background: rgba(0,0,0,0.3);
      border: 2px solid {tier.accent};
      font-size: 18px;
      font-weight: 700;
      color: {tier.accent};
      letter-spacing: 0.1em;
    }}
"""
    return _document(body, width=layout.width, height=layout.height, extra_css=css, fonts_dir=fonts_dir)


def _ensure_browser() -> Browser:
    global _PLAYWRIGHT, _BROWSER
    if _BROWSER is not None and _BROWSER.is_connected():
        return _BROWSER
    with _BROWSER_LOCK:
        if _BROWSER is not None and _BROWSER.is_connected():
            return _BROWSER
        if _PLAYWRIGHT is None:
            _PLAYWRIGHT = sync_playwright().start()
        _BROWSER = _PLAYWRIGHT.chromium.launch(
            headless=True,
            args=[
                "--disable-dev-shm-usage",
                "--disable-gpu",
                "--font-render-hinting=none",
            ],
        )
        log.info("card_renderer_browser_started")
        return _BROWSER


def _shutdown_browser() -> None:
    global _PLAYWRIGHT, _BROWSER
    with _BROWSER_LOCK:
        if _BROWSER is not None:
            try:
                _BROWSER.close()
            except Exception:
                log.warning("card_renderer_browser_close_failed")
            _BROWSER = None
        if _PLAYWRIGHT is not None:
            try:
                _PLAYWRIGHT.stop()
            except Exception:
                log.warning("card_renderer_playwright_stop_failed")
            _PLAYWRIGHT = None


def rasterize_html(html_doc: str, width: int, height: int, *, timeout_ms: int = 10000) -> bytes:
    """Render ``html_doc`` to a PNG of exactly ``width`` x ``height`` pixels.

    Must run on the render thread; use :func:`rasterize` from async code.
    """
    browser = _ensure_browser()
    context = browser.new_context(
        viewport={"width": int(width), "height": int(height)},
        device_scale_factor=1,
        color_scheme="dark",
    )
    page = context.new_page()
    try:
        page.set_content(html_doc, wait_until="load", timeout=timeout_ms)
        return page.screenshot(
            type="png",
            clip={"x": 0, "y": 0, "width": int(width), "height": int(height)},
            timeout=timeout_ms,
        )
    finally:
        context.close()


async def rasterize(html_doc: str, width: int, height: int, *, timeout_ms: int = 10000) -> bytes:
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(
        _RENDER_EXECUTOR,
        lambda: rasterize_html(html_doc, width, height, timeout_ms=timeout_ms),
    )


async def shutdown_renderer() -> None:
    loop = asyncio.get_running_loop()
    await loop.run_in_executor(_RENDER_EXECUTOR, _shutdown_browser)
