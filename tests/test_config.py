from app.core.config import Settings


def test_defaults():
    cfg = Settings()
    assert (cfg.card_width, cfg.leaderboard_height, cfg.membership_height) == (1200, 630, 800)
    assert cfg.content_width == 1104
    assert cfg.asset_fetch_timeout_seconds == 2.2
    assert cfg.brand_hashtags == ["FitLocker", "Base", "Fitness"]
    assert cfg.error_cache_control == "no-store"


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("BRAND_HASHTAGS", "#One, Two,,")
    monkeypatch.setenv("ASSET_FETCH_TIMEOUT_SECONDS", "0.5")
    monkeypatch.setenv("APP_ENV", "prod")
    cfg = Settings()
    assert cfg.brand_hashtags == ["One", "Two"]
    assert cfg.asset_fetch_timeout_seconds == 0.5
    assert cfg.app_env == "prod"


def test_oversized_padding_is_replaced():
    cfg = Settings(CARD_WIDTH=400, CARD_PADDING=300)
    assert cfg.card_padding == 16
    assert cfg.content_width == 368
