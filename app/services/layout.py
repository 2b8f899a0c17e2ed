from __future__ import annotations

import math
from dataclasses import dataclass

from app.core.config import Settings
from app.services import styles
from app.services.assets import ResolvedAsset
from app.services.params import LeaderboardRequest, MembershipRequest


MAX_USERNAME_CHARS = 32
LEADERBOARD_AVATAR_PX = 120
LEADERBOARD_RANK_PILL_PX = 320
LEADERBOARD_BG_COLOR = "#0b0b10"
LEADERBOARD_BG_OVERLAY = "radial-gradient(60% 60% at 50% 50%, rgba(0,0,0,0) 0%, rgba(0,0,0,0.35) 100%)"
MEMBERSHIP_IDENTITY_COLUMN_PX = 520
PFP_FALLBACK_FILL = "#222"


@dataclass(frozen=True)
class ProgressMetric:
    ratio: float
    percent: int
    fill_width: int


def js_round(value: float) -> int:
    """Round half up, like ``Math.round`` for the non-negative values used here."""
    return int(math.floor(value + 0.5))


def progress_metric(xp_current: int, xp_next: int, bar_width: int) -> ProgressMetric:
    ratio = max(0.0, min(1.0, xp_current / xp_next)) if xp_next > 0 else 0.0
    return ProgressMetric(
        ratio=ratio,
        percent=js_round(ratio * 100),
        fill_width=js_round(max(0, bar_width) * ratio),
    )


def _text_width_units(text: str | None) -> float:
    src = (text or "").strip()
    if not src:
        return 1.0
    units = 0.0
    for ch in src:
        if ch.isspace():
            units += 0.32
        elif ch in "MW@#%&":
            units += 1.04
        elif ch in "ilIjtfr":
            units += 0.45
        elif ch.isupper():
            units += 0.84
        elif ch.isdigit():
            units += 0.72
        else:
            units += 0.68
    return max(units, 1.0)


def fit_font_size_px(text: str | None, available_px: int, *, min_px: int, max_px: int) -> int:
    units = _text_width_units(text)
    est = int(available_px / units)
    return max(min_px, min(max_px, est))


def display_username(username: str, max_chars: int = MAX_USERNAME_CHARS) -> str:
    if len(username) <= max_chars:
        return username
    return username[: max_chars - 1].rstrip() + "…"


@dataclass(frozen=True)
class LeaderboardLayout:
    width: int
    height: int
    padding: int
    background_uri: str | None
    pfp_uri: str
    username: str
    username_px: int
    level: int
    rank: int
    xp_current: int
    xp_next: int
    bar_width: int
    progress: ProgressMetric
    brand_domain: str
    hashtags: list[str]


def leaderboard_layout(
    req: LeaderboardRequest,
    pfp: ResolvedAsset,
    background: ResolvedAsset,
    config: Settings,
) -> LeaderboardLayout:
    width = config.card_width
    bar_width = config.content_width
    username = display_username(req.username)
    name_space = max(200, bar_width - LEADERBOARD_AVATAR_PX - 48 - LEADERBOARD_RANK_PILL_PX)
    return LeaderboardLayout(
        width=width,
        height=config.leaderboard_height,
        padding=config.card_padding,
        background_uri=None if background.is_placeholder else background.data_uri,
        pfp_uri=pfp.data_uri,
        username=username,
        username_px=fit_font_size_px(username, name_space, min_px=28, max_px=48),
        level=req.level,
        rank=req.rank,
        xp_current=req.xp_current,
        xp_next=req.xp_next,
        bar_width=bar_width,
        progress=progress_metric(req.xp_current, req.xp_next, bar_width),
        brand_domain=config.brand_domain,
        hashtags=config.brand_hashtags,
    )


@dataclass(frozen=True)
class Layer:
    background: str
    opacity: float = 1.0
    size: str | None = None
    is_image: bool = False


@dataclass(frozen=True)
class PfpBox:
    size: int
    radius: int
    clip_path: str | None
    border: str | None
    shadow: str | None
    image_uri: str | None


@dataclass(frozen=True)
class StatCell:
    key: str
    value: str
    label: str
    glow: str | None
    label_px: int


@dataclass(frozen=True)
class BorderLayer:
    border: str
    shadow: str | None
    inner_outline: str | None


@dataclass(frozen=True)
class MembershipLayout:
    width: int
    height: int
    padding: int
    tier_name: str
    tier: styles.TierColors
    member_label: str
    band: styles.MemberBand | None
    show_chain: bool
    layers: list[Layer]
    pfp: PfpBox
    username: str
    username_px: int
    stats: list[StatCell]
    accents: list[str]
    ref: str
    border: BorderLayer | None = None


def _clamp_opacity(value: float) -> float:
    return round(max(0.0, min(1.0, value)), 3)


def _custom_gradient(colors: tuple[str, ...]) -> str | None:
    if len(colors) < 2:
        return None
    if len(colors) == 2:
        return f"linear-gradient(135deg, {colors[0]} 0%, {colors[1]} 100%)"
    return f"linear-gradient(135deg, {colors[0]} 0%, {colors[1]} 50%, {colors[2]} 100%)"


def membership_layers(
    req: MembershipRequest,
    tier: styles.TierColors,
    template_background: ResolvedAsset | None,
) -> list[Layer]:
    """Background layers in paint order (first = bottom)."""
    intensity = styles.BACKGROUND_INTENSITY[req.background_intensity]
    opacity = styles.BACKGROUND_OPACITY[req.background_opacity]
    layers: list[Layer] = []

    if template_background is not None and not template_background.is_placeholder:
        layers.append(
            Layer(
                background=f"url({template_background.data_uri})",
                opacity=_clamp_opacity(opacity),
                size="cover",
                is_image=True,
            )
        )
    else:
        gradient = _custom_gradient(req.background_colors) or tier.gradient
        layers.append(Layer(background=gradient, opacity=_clamp_opacity(0.9 * intensity * opacity)))

    style_layer = styles.BACKGROUND_STYLES[req.background_style]
    if style_layer is not None:
        layers.append(
            Layer(
                background=style_layer.background.format(primary=tier.primary),
                opacity=_clamp_opacity(style_layer.opacity * intensity),
                size=style_layer.size,
            )
        )

    pattern = styles.BACKGROUND_PATTERNS[req.background_pattern]
    if pattern is not None:
        layers.append(Layer(background=pattern.background, opacity=pattern.opacity, size=pattern.size))

    overlay = styles.BACKGROUND_OVERLAY[req.background_overlay]
    if overlay > 0:
        layers.append(Layer(background=f"rgba(0,0,0,{overlay})"))
    return layers


def _pfp_box(req: MembershipRequest, tier: styles.TierColors, pfp: ResolvedAsset | None) -> PfpBox:
    size = styles.PFP_SIZES[req.pfp_size]
    shape = styles.PFP_SHAPES[req.pfp_shape]
    border_color = styles.pfp_border_color_value(req.pfp_border_color, tier)
    border_px = styles.PFP_BORDER_SIZES[req.pfp_border_size]
    glow = styles.PFP_GLOW[req.pfp_glow]
    return PfpBox(
        size=size,
        radius=shape.radius,
        clip_path=shape.clip_path,
        border=f"{border_px}px solid {border_color}" if border_color else None,
        shadow=f"0 0 {glow}px {border_color or tier.primary}40" if glow > 0 else None,
        image_uri=None if pfp is None or pfp.is_placeholder else pfp.data_uri,
    )


def _stat_value(key: str, req: MembershipRequest) -> str:
    if key == "rank":
        return str(req.rank)
    if key == "streak":
        return str(req.identity_streak)
    if key == "level":
        return str(req.level)
    if key == "weeklyXP":
        return "XP"
    return "\U0001F4AA"


def membership_stats(req: MembershipRequest) -> list[StatCell]:
    selected = set(req.selected_stats)
    cells: list[StatCell] = []
    for key, style in styles.STATS.items():
        if key not in selected:
            continue
        label_px = req.left_stat_label_size if len(cells) % 2 == 0 else req.right_stat_label_size
        cells.append(
            StatCell(key=key, value=_stat_value(key, req), label=style.label, glow=style.glow, label_px=label_px)
        )
    return cells


def _accents(req: MembershipRequest) -> list[str]:
    out: list[str] = []
    if req.identity_streak > 0 and "identity_streak" in req.accent_elements:
        out.append(f"\U0001F525 Identity Streak: {req.identity_streak} days")
    if "recruiter_badge" in req.accent_elements:
        out.append("\U0001F465 Top Recruiter")
    return out


def _border_layer(req: MembershipRequest, tier: styles.TierColors) -> BorderLayer | None:
    style = styles.BORDER_STYLES[req.border_style]
    if style is None:
        return None
    thickness = styles.BORDER_THICKNESS[req.border_thickness]
    glow = max(styles.BORDER_GLOW[req.border_glow], style.min_glow)
    color = styles.border_color_value(req.border_color, tier)
    line = style.line
    if line == "double":
        # CSS double borders need at least 3px to show both lines
        thickness = max(thickness, 3)
    shadow = None
    if style.inner_glow:
        shadow = f"0 0 {glow}px {color}, inset 0 0 {glow}px {color}40"
    elif glow > 0:
        shadow = f"0 0 {glow}px {color}40"
    return BorderLayer(
        border=f"{thickness}px {line} {color}",
        shadow=shadow,
        inner_outline=f"1px solid {tier.accent}80" if style.inner_outline else None,
    )


def membership_layout(
    req: MembershipRequest,
    pfp: ResolvedAsset | None,
    template_background: ResolvedAsset | None,
    config: Settings,
) -> MembershipLayout:
    tier = styles.tier_colors(req.tier)
    username = display_username(req.username)
    return MembershipLayout(
        width=config.card_width,
        height=config.membership_height,
        padding=config.card_padding,
        tier_name=req.tier,
        tier=tier,
        member_label=str(req.member_number).zfill(3),
        band=styles.MEMBER_BANDS.get(req.member_band),
        show_chain=bool(req.chain),
        layers=membership_layers(req, tier, template_background),
        pfp=_pfp_box(req, tier, pfp),
        username=username,
        username_px=fit_font_size_px(username, MEMBERSHIP_IDENTITY_COLUMN_PX, min_px=30, max_px=52),
        stats=membership_stats(req),
        accents=_accents(req),
        ref=req.ref,
        border=_border_layer(req, tier),
    )
