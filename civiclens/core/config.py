"""
CivicLens - Configuration Management
Centralized configuration using pydantic-settings.
"""

from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_env: str = "development"
    debug: bool = True
    log_level: str = "INFO"

    # API Settings
    api_host: str = "0.0.0.0"
    api_port: int = 5000
    api_base_url: str = "http://localhost:5000"

    # Storage
    database_url: str = "sqlite:///./civiclens.db"
    uploads_dir: str = "uploads"
    uploads_url_prefix: str = "/uploads"

    # Location
    geocoder_url: str = "https://nominatim.openstreetmap.org/reverse"
    geocoder_user_agent: str = "civiclens/0.1"
    ip_geolocation_url: str = "http://ip-api.com/json"
    location_timeout_seconds: float = 10.0
    location_high_accuracy: bool = True

    # Detection
    detection_model_path: str = "yolov8n.pt"
    forbidden_score_threshold: float = 0.50

    # Intake policy
    duplicate_radius_km: float = 0.5
    duplicate_window_degrees: float = 0.005
    duplicate_acceptance_probability: float = 1.0
    default_category: str = "Water"
    confidence_floor: int = 80
    confidence_ceiling: int = 99

    # Map
    map_zoom: int = 19
    map_tiles_attribution: Optional[str] = None

    # HTTP
    http_timeout_seconds: float = 15.0


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()
