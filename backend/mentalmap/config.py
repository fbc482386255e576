"""Application configuration from environment variables."""

from __future__ import annotations

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    mentalmap_env: str = "development"
    mentalmap_log_level: str = "debug"

    # CORS
    cors_origins: list[str] = ["http://localhost:3000"]

    # Upstream study service (responses export + study config)
    study_api_url: str = "http://localhost:3001"
    study_api_timeout_s: float = 15.0

    # Reverse geocoding (Nominatim-compatible)
    geocoder_url: str = "https://nominatim.openstreetmap.org/reverse"
    geocoder_user_agent: str = "mentalmap-heatmap/0.1 (research survey analysis)"
    geocoder_language: str = "de"
    geocoder_zoom: int = 12
    geocoder_timeout_s: float = 10.0
    geocode_min_interval_s: float = 1.0
    geocode_debounce_s: float = 0.25

    # Heatmap engine
    canvas_threshold: float = 0.051
    yield_batch_size: int = 50
    area_warning_degrees: float = 15.0

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()
