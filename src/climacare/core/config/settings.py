"""Application settings loaded from environment variables."""

from __future__ import annotations

from typing import Literal

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """ClimaCare advisory server configuration."""

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    # Server
    # Loopback by default: the server holds health profiles and has no auth layer.
    climacare_host: str = "127.0.0.1"
    climacare_port: int = 8001
    climacare_log_level: str = "info"
    climacare_allow_insecure_bind: bool = False

    # Storage (profiles + bounded histories)
    db_path: str = "~/.climacare/advisory.db"

    # Encryption (empty = plain JSON blobs)
    encryption_key: str = ""

    # Weather provider ("static" serves a fixed mild reading, for offline use)
    weather_provider: Literal["openweathermap", "static"] = "openweathermap"
    openweathermap_api_key: str = ""
    openweathermap_base_url: str = "https://api.openweathermap.org/data/2.5"
    weather_timeout_seconds: float = 10.0

    # Used when the caller does not pass coordinates (São Paulo)
    default_latitude: float = -23.5505
    default_longitude: float = -46.6333

    # Retention caps
    alert_history_limit: int = 50
    symptom_history_limit: int = 100

    # Condition keyword matching for the risk rules
    condition_match_mode: Literal["exact", "normalized"] = "exact"


def get_settings() -> Settings:
    """Create and return a Settings instance."""
    return Settings()
