"""Option tables for the membership card.

Every customization option maps an enumerated query value to a small style
record or scalar. Adding an option means adding an entry here; the
compositor never branches on option names.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class TierColors:
    primary: str
    accent: str
    gradient: str
    border: str
    # Pillow placeholder background
    rgb: tuple[int, int, int]


@dataclass(frozen=True)
class MemberBand:
    bg: str
    text: str
    label: str


@dataclass(frozen=True)
class OverlayLayer:
    background: str
    opacity: float = 1.0
    size: str | None = None


@dataclass(frozen=True)
class BorderStyle:
    line: str = "solid"
    min_glow: int = 0
    inner_glow: bool = False
    inner_outline: bool = False


@dataclass(frozen=True)
class PfpShape:
    radius: int
    clip_path: str | None = None


@dataclass(frozen=True)
class StatSpec:
    label: str
    glow: str | None = None


DEFAULT_TIER = "blue"
TIER_COLORS: dict[str, TierColors] = {
    "blue": TierColors(
        primary="#0052FF",
        accent="#60A5FA",
        gradient="linear-gradient(135deg, #0052FF 0%, #3B82F6 50%, #1E40AF 100%)",
        border="#0052FF",
        rgb=(0, 82, 255),
    ),
    "gold": TierColors(
        primary="#FFD700",
        accent="#FFE55C",
        gradient="linear-gradient(135deg, #FFD700 0%, #FFA500 50%, #FF8C00 100%)",
        border="#FFD700",
        rgb=(255, 215, 0),
    ),
    "platinum": TierColors(
        primary="#E5E4E2",
        accent="#F5F5F5",
        gradient="linear-gradient(135deg, #E5E4E2 0%, #BCC6CC 50%, #8E8E93 100%)",
        border="#E5E4E2",
        rgb=(229, 228, 226),
    ),
}

DEFAULT_MEMBER_BAND = "standard"
MEMBER_BANDS: dict[str, MemberBand | None] = {
    "genesis": MemberBand(bg="rgba(255, 215, 0, 0.2)", text="#FFD700", label="GENESIS"),
    "wave1": MemberBand(bg="rgba(0, 255, 136, 0.2)", text="#00FF88", label="WAVE 1"),
    "founders": MemberBand(bg="rgba(139, 92, 246, 0.2)", text="#8B5CF6", label="FOUNDERS"),
    "standard": None,
}

# ``{primary}`` is replaced with the tier primary colour.
DEFAULT_BACKGROUND_STYLE = "classic_gradient"
BACKGROUND_STYLES: dict[str, OverlayLayer | None] = {
    "classic_gradient": None,
    "mesh_gradient": OverlayLayer(
        background=(
            "radial-gradient(circle at 20% 30%, rgba(255,255,255,0.1) 0%, transparent 50%), "
            "radial-gradient(circle at 80% 70%, rgba(255,255,255,0.1) 0%, transparent 50%)"
        ),
        opacity=0.3,
    ),
    "neon": OverlayLayer(
        background="radial-gradient(circle at center, {primary}40 0%, transparent 70%)",
        opacity=0.5,
    ),
}

DEFAULT_BACKGROUND_PATTERN = "none"
BACKGROUND_PATTERNS: dict[str, OverlayLayer | None] = {
    "none": None,
    "geometric": OverlayLayer(
        background=(
            "repeating-linear-gradient(45deg, transparent, transparent 20px, "
            "rgba(255,255,255,0.05) 20px, rgba(255,255,255,0.05) 40px)"
        ),
    ),
    "grid": OverlayLayer(
        background=(
            "linear-gradient(rgba(255,255,255,0.03) 1px, transparent 1px), "
            "linear-gradient(90deg, rgba(255,255,255,0.03) 1px, transparent 1px)"
        ),
        size="40px 40px",
    ),
    "dots": OverlayLayer(
        background="radial-gradient(circle, rgba(255,255,255,0.1) 1px, transparent 1px)",
        size="30px 30px",
    ),
    "waves": OverlayLayer(
        background=(
            "repeating-linear-gradient(0deg, transparent, transparent 2px, "
            "rgba(255,255,255,0.05) 2px, rgba(255,255,255,0.05) 4px)"
        ),
    ),
    "circuit": OverlayLayer(
        background=(
            "repeating-linear-gradient(45deg, transparent, transparent 10px, "
            "rgba(0,255,255,0.1) 10px, rgba(0,255,255,0.1) 11px, transparent 11px, transparent 20px)"
        ),
    ),
    "hexagon": OverlayLayer(
        background=(
            "repeating-linear-gradient(60deg, transparent, transparent 25px, "
            "rgba(255,255,255,0.05) 25px, rgba(255,255,255,0.05) 26px, transparent 26px, transparent 50px)"
        ),
    ),
    "holographic": OverlayLayer(
        background=(
            "linear-gradient(135deg, rgba(255,0,150,0.1) 0%, "
            "rgba(0,255,255,0.1) 50%, rgba(255,200,0,0.1) 100%)"
        ),
    ),
    "carbon_fiber": OverlayLayer(
        background=(
            "repeating-linear-gradient(0deg, rgba(0,0,0,0.1) 0px, transparent 1px, "
            "transparent 2px, rgba(0,0,0,0.1) 2px)"
        ),
    ),
    "vignette": OverlayLayer(
        background="radial-gradient(ellipse at center, transparent 0%, rgba(0,0,0,0.4) 100%)",
    ),
}

DEFAULT_BACKGROUND_INTENSITY = "normal"
BACKGROUND_INTENSITY: dict[str, float] = {"subtle": 0.5, "normal": 1.0, "vivid": 1.5, "intense": 2.0}

DEFAULT_BACKGROUND_OPACITY = "full"
BACKGROUND_OPACITY: dict[str, float] = {"light": 0.7, "medium": 0.85, "full": 1.0, "dark": 0.5}

DEFAULT_BACKGROUND_OVERLAY = "none"
BACKGROUND_OVERLAY: dict[str, float] = {"none": 0.0, "subtle": 0.1, "medium": 0.2, "strong": 0.4}

DEFAULT_BORDER_STYLE = "standard"
BORDER_STYLES: dict[str, BorderStyle | None] = {
    "none": None,
    "standard": BorderStyle(),
    "double": BorderStyle(line="double"),
    "dashed": BorderStyle(line="dashed"),
    "neon": BorderStyle(min_glow=20, inner_glow=True),
    "ornamental": BorderStyle(inner_outline=True),
}

DEFAULT_BORDER_THICKNESS = "normal"
BORDER_THICKNESS: dict[str, int] = {"thin": 1, "normal": 2, "thick": 4, "bold": 6}

DEFAULT_BORDER_GLOW = "subtle"
BORDER_GLOW: dict[str, int] = {"none": 0, "subtle": 15, "medium": 30, "intense": 50}

# ``None`` means "use the tier border colour".
DEFAULT_BORDER_COLOR = "tier"
BORDER_COLORS: dict[str, str | None] = {"tier": None, "white": "#FFFFFF", "gold": "#FFD700", "neon": "#00FFFF"}

DEFAULT_PFP_SIZE = "medium"
PFP_SIZES: dict[str, int] = {"small": 160, "medium": 240, "large": 320}

DEFAULT_PFP_SHAPE = "circle"
PFP_SHAPES: dict[str, PfpShape] = {
    "circle": PfpShape(radius=9999),
    "square": PfpShape(radius=0),
    "rounded": PfpShape(radius=16),
    "hexagon": PfpShape(radius=0, clip_path="polygon(30% 0%, 70% 0%, 100% 50%, 70% 100%, 30% 100%, 0% 50%)"),
    "diamond": PfpShape(radius=0, clip_path="polygon(50% 0%, 100% 50%, 50% 100%, 0% 50%)"),
}

DEFAULT_PFP_BORDER_SIZE = "thin"
PFP_BORDER_SIZES: dict[str, int] = {"thin": 2, "medium": 4, "thick": 6}

# ``"none"`` draws no border; ``"tier"`` follows the tier border colour.
DEFAULT_PFP_BORDER_COLOR = "none"
PFP_BORDER_COLORS: dict[str, str | None] = {
    "none": None,
    "tier": None,
    "white": "#FFFFFF",
    "blue": "#0052FF",
    "gold": "#FFD700",
    "platinum": "#E5E4E2",
    "neon": "#00FFFF",
}

DEFAULT_PFP_GLOW = "none"
PFP_GLOW: dict[str, int] = {"none": 0, "subtle": 10, "medium": 20, "intense": 30}

# Paint order of the stats column follows this table, not the query order.
STATS: dict[str, StatSpec] = {
    "rank": StatSpec(label="RANK", glow="rgba(96,165,250,0.3)"),
    "streak": StatSpec(label="STREAK", glow="rgba(255,69,0,0.3)"),
    "level": StatSpec(label="LEVEL", glow="rgba(255,215,0,0.3)"),
    "weeklyXP": StatSpec(label="WEEKLY XP"),
    "workouts": StatSpec(label="WORKOUTS"),
}

ACCENT_ELEMENTS = ("identity_streak", "recruiter_badge")


def tier_colors(tier: str) -> TierColors:
    return TIER_COLORS.get(tier) or TIER_COLORS[DEFAULT_TIER]


def border_color_value(option: str, tier: TierColors) -> str:
    return BORDER_COLORS.get(option) or tier.border


def pfp_border_color_value(option: str, tier: TierColors) -> str | None:
    if option not in PFP_BORDER_COLORS or option == "none":
        return None
    return PFP_BORDER_COLORS[option] or tier.border
