from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, Mapping

from app.services import styles


DEFAULT_USERNAME = "Athlete"
DEFAULT_LEVEL = 1
DEFAULT_RANK = 999
DEFAULT_XP_CURRENT = 0
DEFAULT_XP_NEXT = 500

DEFAULT_MEMBER_NUMBER = 1
DEFAULT_MEMBER_RANK = 0
DEFAULT_IDENTITY_STREAK = 0
DEFAULT_STAT_LABEL_SIZE = 20
DEFAULT_STATS = ("rank", "streak")

MAX_INT_VALUE = 10**12
MAX_TEXT_CHARS = 120

_LEADING_INT_RE = re.compile(r"^\s*([+-]?)([0-9]+)")
_HEX_COLOR_RE = re.compile(r"^#(?:[0-9a-fA-F]{3,4}|[0-9a-fA-F]{6}|[0-9a-fA-F]{8})$")
_TEMPLATE_NAME_RE = re.compile(r"^[A-Za-z0-9_-]+$")
_TRUE_VALUES = {"1", "true", "yes"}


@dataclass(frozen=True)
class LeaderboardRequest:
    username: str = DEFAULT_USERNAME
    level: int = DEFAULT_LEVEL
    rank: int = DEFAULT_RANK
    xp_current: int = DEFAULT_XP_CURRENT
    xp_next: int = DEFAULT_XP_NEXT
    pfp: str | None = None
    background: str | None = None
    safe: bool = False


@dataclass(frozen=True)
class MembershipRequest:
    username: str = DEFAULT_USERNAME
    member_number: int = DEFAULT_MEMBER_NUMBER
    tier: str = styles.DEFAULT_TIER
    level: int = DEFAULT_LEVEL
    member_band: str = styles.DEFAULT_MEMBER_BAND
    identity_streak: int = DEFAULT_IDENTITY_STREAK
    rank: int = DEFAULT_MEMBER_RANK
    background_style: str = styles.DEFAULT_BACKGROUND_STYLE
    background_pattern: str = styles.DEFAULT_BACKGROUND_PATTERN
    template_background: str | None = None
    background_colors: tuple[str, ...] = ()
    background_intensity: str = styles.DEFAULT_BACKGROUND_INTENSITY
    background_opacity: str = styles.DEFAULT_BACKGROUND_OPACITY
    background_overlay: str = styles.DEFAULT_BACKGROUND_OVERLAY
    border_style: str = styles.DEFAULT_BORDER_STYLE
    border_thickness: str = styles.DEFAULT_BORDER_THICKNESS
    border_glow: str = styles.DEFAULT_BORDER_GLOW
    border_color: str = styles.DEFAULT_BORDER_COLOR
    selected_stats: tuple[str, ...] = DEFAULT_STATS
    pfp: str | None = None
    pfp_size: str = styles.DEFAULT_PFP_SIZE
    pfp_shape: str = styles.DEFAULT_PFP_SHAPE
    pfp_border_color: str = styles.DEFAULT_PFP_BORDER_COLOR
    pfp_border_size: str = styles.DEFAULT_PFP_BORDER_SIZE
    pfp_glow: str = styles.DEFAULT_PFP_GLOW
    ref: str = ""
    chain: str = ""
    accent_elements: tuple[str, ...] = ()
    left_stat_label_size: int = DEFAULT_STAT_LABEL_SIZE
    right_stat_label_size: int = DEFAULT_STAT_LABEL_SIZE
    safe: bool = False
    minimal: bool = False


def parse_int(
    value: str | None,
    default: int,
    *,
    minimum: int = 0,
    maximum: int = MAX_INT_VALUE,
) -> int:
    """Parse the leading base-10 integer of ``value``.

    Only ASCII digits count and trailing characters are ignored
    (``"12px"`` -> 12, ``"3.9"`` -> 3). Missing, non-numeric and
    below-``minimum`` input yields ``default``; values above ``maximum`` are
    clamped.
    """
    if value is None:
        return default
    m = _LEADING_INT_RE.match(str(value))
    if not m:
        return default
    sign, digits = m.groups()
    digits = digits.lstrip("0") or "0"
    # Digit runs past the clamp are never converted; int() caps string length.
    if len(digits) > len(str(abs(maximum))):
        return default if sign == "-" else maximum
    num = int(sign + digits)
    if num < minimum:
        return default
    return min(num, maximum)


def parse_str(value: str | None, default: str, *, max_chars: int = MAX_TEXT_CHARS) -> str:
    text = " ".join((value or "").split())
    if not text:
        return default
    return text[:max_chars]


def parse_choice(value: str | None, choices: Iterable[str], default: str) -> str:
    text = (value or "").strip()
    return text if text in set(choices) else default


def parse_list(
    value: str | None,
    *,
    allowed: Iterable[str] | None = None,
    default: tuple[str, ...] = (),
) -> tuple[str, ...]:
    items = [x.strip() for x in (value or "").split(",")]
    items = [x for x in items if x]
    if allowed is not None:
        allowed_set = set(allowed)
        items = [x for x in items if x in allowed_set]
    return tuple(items) if items else default


def parse_colors(value: str | None) -> tuple[str, ...]:
    return tuple(x for x in parse_list(value) if _HEX_COLOR_RE.match(x))


def parse_flag(value: str | None) -> bool:
    return (value or "").strip().lower() in _TRUE_VALUES


def parse_url(value: str | None) -> str | None:
    text = (value or "").strip()
    return text or None


def resolve_template_url(value: str | None, base_url: str) -> str | None:
    """Expand ``template:<name>`` into a hosted template URL; pass other URLs through."""
    text = (value or "").strip()
    if not text:
        return None
    if not text.lower().startswith("template:"):
        return text
    name = text.split(":", 1)[1].strip()
    if not name or not _TEMPLATE_NAME_RE.match(name):
        return None
    return f"{base_url.rstrip('/')}/{name}.png"


def parse_leaderboard(query: Mapping[str, str]) -> LeaderboardRequest:
    return LeaderboardRequest(
        username=parse_str(query.get("username"), DEFAULT_USERNAME),
        level=parse_int(query.get("level"), DEFAULT_LEVEL, minimum=1),
        rank=parse_int(query.get("rank"), DEFAULT_RANK, minimum=1),
        xp_current=parse_int(query.get("xpCurrent"), DEFAULT_XP_CURRENT),
        xp_next=parse_int(query.get("xpNext"), DEFAULT_XP_NEXT),
        pfp=parse_url(query.get("pfp")),
        background=parse_url(query.get("background")),
        safe=parse_flag(query.get("safe")),
    )


def parse_membership(query: Mapping[str, str]) -> MembershipRequest:
    template_background = parse_url(query.get("templateBackground")) or parse_url(query.get("background"))
    return MembershipRequest(
        username=parse_str(query.get("username"), DEFAULT_USERNAME),
        member_number=parse_int(query.get("memberNumber"), DEFAULT_MEMBER_NUMBER, minimum=1),
        tier=parse_choice(query.get("tier"), styles.TIER_COLORS, styles.DEFAULT_TIER),
        level=parse_int(query.get("level"), DEFAULT_LEVEL, minimum=1),
        member_band=parse_choice(query.get("memberBand"), styles.MEMBER_BANDS, styles.DEFAULT_MEMBER_BAND),
        identity_streak=parse_int(query.get("identityStreak"), DEFAULT_IDENTITY_STREAK),
        rank=parse_int(query.get("rank"), DEFAULT_MEMBER_RANK),
        background_style=parse_choice(
            query.get("backgroundStyle"), styles.BACKGROUND_STYLES, styles.DEFAULT_BACKGROUND_STYLE
        ),
        background_pattern=parse_choice(
            query.get("backgroundPattern"), styles.BACKGROUND_PATTERNS, styles.DEFAULT_BACKGROUND_PATTERN
        ),
        template_background=template_background,
        background_colors=parse_colors(query.get("backgroundColors")),
        background_intensity=parse_choice(
            query.get("backgroundIntensity"), styles.BACKGROUND_INTENSITY, styles.DEFAULT_BACKGROUND_INTENSITY
        ),
        background_opacity=parse_choice(
            query.get("backgroundOpacity"), styles.BACKGROUND_OPACITY, styles.DEFAULT_BACKGROUND_OPACITY
        ),
        background_overlay=parse_choice(
            query.get("backgroundOverlay"), styles.BACKGROUND_OVERLAY, styles.DEFAULT_BACKGROUND_OVERLAY
        ),
        border_style=parse_choice(query.get("borderStyle"), styles.BORDER_STYLES, styles.DEFAULT_BORDER_STYLE),
        border_thickness=parse_choice(
            query.get("borderThickness"), styles.BORDER_THICKNESS, styles.DEFAULT_BORDER_THICKNESS
        ),
        border_glow=parse_choice(query.get("borderGlow"), styles.BORDER_GLOW, styles.DEFAULT_BORDER_GLOW),
        border_color=parse_choice(query.get("borderColor"), styles.BORDER_COLORS, styles.DEFAULT_BORDER_COLOR),
        selected_stats=parse_list(query.get("selectedStats"), allowed=styles.STATS, default=DEFAULT_STATS),
        pfp=parse_url(query.get("pfp")),
        pfp_size=parse_choice(query.get("pfpSize"), styles.PFP_SIZES, styles.DEFAULT_PFP_SIZE),
        pfp_shape=parse_choice(query.get("pfpShape"), styles.PFP_SHAPES, styles.DEFAULT_PFP_SHAPE),
        pfp_border_color=parse_choice(
            query.get("pfpBorderColor"), styles.PFP_BORDER_COLORS, styles.DEFAULT_PFP_BORDER_COLOR
        ),
        pfp_border_size=parse_choice(
            query.get("pfpBorderSize"), styles.PFP_BORDER_SIZES, styles.DEFAULT_PFP_BORDER_SIZE
        ),
        pfp_glow=parse_choice(query.get("pfpGlow"), styles.PFP_GLOW, styles.DEFAULT_PFP_GLOW),
        ref=parse_str(query.get("ref"), "", max_chars=32),
        chain=parse_str(query.get("chain"), "", max_chars=32),
        accent_elements=parse_list(query.get("accentElements"), allowed=styles.ACCENT_ELEMENTS),
        left_stat_label_size=parse_int(
            query.get("leftStatLabelSize"), DEFAULT_STAT_LABEL_SIZE, minimum=1, maximum=96
        ),
        right_stat_label_size=parse_int(
            query.get("rightStatLabelSize"), DEFAULT_STAT_LABEL_SIZE, minimum=1, maximum=96
        ),
        safe=parse_flag(query.get("safe")),
        minimal=parse_flag(query.get("minimal")),
    )
