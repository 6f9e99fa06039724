"""
Safety News Configuration.

Pydantic Settings v2 - loads from .env, environment variables.
"""

from pathlib import Path
from typing import List, Tuple

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # ── Application ──────────────────────────────────────────────────────
    app_name: str = "Local Safety News"
    app_version: str = "1.0.0"
    environment: str = Field(default="development", alias="ENVIRONMENT")
    debug: bool = Field(default=False, alias="DEBUG")
    allowed_origins: List[str] = Field(
        default=["http://localhost:3000"],
        alias="CORS_ORIGINS",
    )

    # ── Decision service (LLM with tool calling) ─────────────────────────
    openrouter_api_key: str = Field(default="", alias="OPENROUTER_API_KEY")
    openrouter_url: str = Field(
        default="https://openrouter.ai/api/v1/chat/completions",
        alias="OPENROUTER_URL",
    )
    decision_model: str = Field(default="anthropic/claude-3.5-sonnet", alias="DECISION_MODEL")
    site_url: str = Field(default="http://localhost:3000", alias="SITE_URL")
    decision_timeout_seconds: float = Field(default=30.0, alias="DECISION_TIMEOUT_SECONDS")
    decision_retry_attempts: int = Field(default=2, alias="DECISION_RETRY_ATTEMPTS")
    decision_max_tokens: int = Field(default=2000, alias="DECISION_MAX_TOKENS")

    # ── Tools ─────────────────────────────────────────────────────────────
    # [longitude, latitude] of Johannesburg centre
    default_city_center: Tuple[float, float] = Field(
        default=(28.0473, -26.2041), alias="DEFAULT_CITY_CENTER"
    )
    default_search_location: str = Field(default="johannesburg", alias="DEFAULT_SEARCH_LOCATION")
    search_result_limit: int = Field(default=5, alias="SEARCH_RESULT_LIMIT")
    extraction_keyword_limit: int = Field(default=5, alias="EXTRACTION_KEYWORD_LIMIT")

    # ── Risk Engine ────────────────────────────────────────────────────────
    weight_violent: float = Field(default=0.40, alias="RISK_WEIGHT_VIOLENT")
    weight_property: float = Field(default=0.25, alias="RISK_WEIGHT_PROPERTY")
    weight_frequency: float = Field(default=0.20, alias="RISK_WEIGHT_FREQUENCY")
    weight_severity: float = Field(default=0.10, alias="RISK_WEIGHT_SEVERITY")
    weight_time_pattern: float = Field(default=0.05, alias="RISK_WEIGHT_TIME_PATTERN")
    weight_density: float = Field(default=0.05, alias="RISK_WEIGHT_DENSITY")
    recommendation_threshold: float = Field(default=60.0, alias="RECOMMENDATION_THRESHOLD")
    trend_change_threshold_pct: float = Field(default=20.0, alias="TREND_CHANGE_THRESHOLD_PCT")
    default_radius_km: float = Field(default=5.0, alias="DEFAULT_RADIUS_KM")
    default_window_hours: float = Field(default=168.0, alias="DEFAULT_WINDOW_HOURS")

    # Risk level bands (upper bounds, inclusive)
    risk_low_max: float = Field(default=25.0, alias="RISK_LOW_MAX")
    risk_medium_max: float = Field(default=50.0, alias="RISK_MEDIUM_MAX")
    risk_high_max: float = Field(default=75.0, alias="RISK_HIGH_MAX")

    # ── Regional bounds (accuracy scoring only) ───────────────────────────
    region_min_lng: float = Field(default=16.0, alias="REGION_MIN_LNG")
    region_max_lng: float = Field(default=33.0, alias="REGION_MAX_LNG")
    region_min_lat: float = Field(default=-35.0, alias="REGION_MIN_LAT")
    region_max_lat: float = Field(default=-22.0, alias="REGION_MAX_LAT")

    # ── Persistence ───────────────────────────────────────────────────────
    persistence_backend: str = Field(default="json", alias="PERSISTENCE_BACKEND")
    results_dir: str = Field(default="data/results", alias="RESULTS_DIR")
    # loaded into the store when the backend starts out empty; "" disables
    seed_data_path: str = Field(
        default=str(Path(__file__).parent / "data" / "seed_incidents.json"),
        alias="SEED_DATA_PATH",
    )
    database_url: str = Field(
        default="sqlite+aiosqlite:///./safetynews.db",
        alias="DATABASE_URL",
    )

    # ── Background geo-processing ─────────────────────────────────────────
    geo_task_concurrency: int = Field(default=4, alias="GEO_TASK_CONCURRENCY")

    # ── Operational ────────────────────────────────────────────────────────
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_format: str = Field(default="console", alias="LOG_FORMAT")

    @property
    def async_database_url(self) -> str:
        """Ensure the database URL uses an async driver."""
        url = self.database_url
        if url.startswith("postgresql://"):
            url = url.replace("postgresql://", "postgresql+asyncpg://", 1)
        if url.startswith("sqlite://"):
            url = url.replace("sqlite://", "sqlite+aiosqlite://", 1)
        return url


settings = Settings()
