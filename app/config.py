"""Application configuration using Pydantic Settings."""
from typing import Literal, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Storage
    storage_backend: Literal["memory", "mongo"] = "memory"
    mongodb_url: Optional[str] = None
    mongodb_db_name: str = "smart_goals"

    # Simulated network behaviour for the in-memory backend
    simulated_latency_ms: int = 0
    simulated_failure_rate: float = 0.0

    # JWT
    jwt_secret: str = "dev-secret-change-me"
    jwt_algorithm: str = "HS256"
    jwt_expiration_minutes: int = 10080  # 7 days

    # Actor recorded in audit fields when no token is supplied
    default_user_id: str = "current-user"

    # API
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    debug: bool = False
    log_level: str = "INFO"

    # CORS
    cors_origins: str = "http://localhost:3000,http://localhost:8000"

    # Listing
    default_page_size: int = 10
    max_page_size: int = 100

    # Metric analysis
    on_track_velocity_ratio: float = 1.0
    at_risk_velocity_ratio: float = 0.5
    trend_epsilon: float = 0.01
    outlier_std_multiplier: float = 2.0
    velocity_window: int = 5

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS origins from comma-separated string."""
        return [origin.strip() for origin in self.cors_origins.split(",")]


settings = Settings()
