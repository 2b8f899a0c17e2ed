from typing import List

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .logger import get_logger


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = Field("dev", alias="APP_ENV")
    log_level: str = Field("INFO", alias="LOG_LEVEL")

    brand_name: str = Field("FitLocker", alias="BRAND_NAME")
    brand_domain: str = Field("fitlocker.io", alias="BRAND_DOMAIN")
    brand_hashtags_raw: str = Field("FitLocker,Base,Fitness", alias="BRAND_HASHTAGS")
    error_text: str = Field("Unable to generate image", alias="ERROR_TEXT")

    card_width: int = Field(1200, alias="CARD_WIDTH")
    leaderboard_height: int = Field(630, alias="LEADERBOARD_HEIGHT")
    # 1.5 aspect ratio for Farcaster frames
    membership_height: int = Field(800, alias="MEMBERSHIP_HEIGHT")
    card_padding: int = Field(48, alias="CARD_PADDING")

    asset_fetch_timeout_seconds: float = Field(2.2, alias="ASSET_FETCH_TIMEOUT_SECONDS")
    asset_max_bytes: int = Field(5 * 1024 * 1024, alias="ASSET_MAX_BYTES")
    asset_user_agent: str = Field("FitLocker-OG/1.0", alias="ASSET_USER_AGENT")
    asset_referer: str = Field("https://img.fitlocker.io/", alias="ASSET_REFERER")

    default_pfp_url: str = Field("https://img.fitlocker.io/CheckInPFP.png", alias="DEFAULT_PFP_URL")
    default_background_url: str = Field("https://img.fitlocker.io/CheckInBKG.png", alias="DEFAULT_BACKGROUND_URL")
    membership_default_pfp_url: str = Field(
        "https://img.fitlocker.io/images/wc.png", alias="MEMBERSHIP_DEFAULT_PFP_URL"
    )
    template_background_base_url: str = Field(
        "https://img.fitlocker.io/templates", alias="TEMPLATE_BACKGROUND_BASE_URL"
    )

    # Shared CDN caching for five minutes, then revalidate
    leaderboard_cache_control: str = Field(
        "public, s-maxage=300, stale-while-revalidate=60", alias="LEADERBOARD_CACHE_CONTROL"
    )
    membership_cache_control: str = Field(
        "public, max-age=3600, s-maxage=3600, stale-while-revalidate=86400",
        alias="MEMBERSHIP_CACHE_CONTROL",
    )
    error_cache_control: str = Field("no-store", alias="ERROR_CACHE_CONTROL")

    render_timeout_ms: int = Field(10000, alias="RENDER_TIMEOUT_MS")
    fonts_dir: str = Field("", alias="FONTS_DIR")

    @model_validator(mode="after")
    def validate_canvas(self):
        if self.card_padding * 2 >= self.card_width:
            logger = get_logger("settings")
            logger.warning(
                "CARD_PADDING=%s leaves no content width for CARD_WIDTH=%s; using width/25",
                self.card_padding,
                self.card_width,
            )
            self.card_padding = self.card_width // 25
        return self

    @property
    def content_width(self) -> int:
        return self.card_width - self.card_padding * 2

    @property
    def brand_hashtags(self) -> List[str]:
        return [x.strip().lstrip("#") for x in self.brand_hashtags_raw.split(",") if x.strip()]


default_settings = Settings()
settings = default_settings
