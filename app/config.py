"""Application configuration using Pydantic Settings."""
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # Store
    store_backend: Literal["mongo", "memory"] = "mongo"
    mongodb_url: str = "mongodb://localhost:27017"
    mongodb_db_name: str = "time_tracking"
    records_collection: str = "time_records"
    store_timeout_seconds: float = 5.0

    # Timer
    active_lease_seconds: int = 30

    # Listing
    default_list_limit: int = 50
    max_list_limit: int = 500

    # JWT
    jwt_secret: str = "change-me"
    jwt_algorithm: str = "HS256"
    jwt_expiration_minutes: int = 10080  # 7 days

    # API
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    debug: bool = False

    # Logging
    log_level: str = "INFO"
    log_format: Literal["text", "json"] = "text"

    # CORS
    cors_origins: str = "http://localhost:3000,http://localhost:8000"

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS origins from comma-separated string."""
        return [origin.strip() for origin in self.cors_origins.split(",")]


settings = Settings()
