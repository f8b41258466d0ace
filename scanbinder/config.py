from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    model_config = SettingsConfigDict(env_file=".env")

    app_name: str = "ScanBinder"
    debug: bool = False

    database_url: str = "sqlite+aiosqlite:///./scanbinder.db"

    google_vision_api_key: str = ""
    pokemon_tcg_api_key: str = ""
    marvel_api_key: str = "demo"
    marvel_hash: str = "demo"
    marvel_ts: str = "1"

    # Per-call timeouts (seconds) for third-party services
    recognition_timeout: float = 15.0
    catalog_timeout: float = 10.0

    # Bounded retry for transient network failures
    max_retries: int = 1
    retry_backoff: float = 0.5

    # When True, an auto-classified lookup that misses falls back to
    # trying every catalog in order. Default keeps the classified-only path.
    auto_fallback_exhaustive: bool = False

    # Image preprocessing limits
    max_image_dimension: int = 1024
    low_quality_image_dimension: int = 768
    jpeg_quality: int = 80
    max_image_bytes: int = 4 * 1024 * 1024


settings = Settings()


# =============================================================================
# SCAN LIMITS
# =============================================================================

# Maximum candidate names taken from one photo
MAX_CANDIDATE_NAMES = 5

# Confidence assigned to cards found by the multi-card detection path
DETECTION_CONFIDENCE = 0.85

# Confidence assigned to the single-card recognition path
RECOGNITION_CONFIDENCE = 0.9

# Number of entries reported as recent additions in collection stats
RECENT_ADDITIONS_LIMIT = 5
