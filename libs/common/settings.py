"""Application settings for the Kenya legal agent service."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Service settings, read from ``LEGALAGENT_*`` environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="LEGALAGENT_",
        env_file=None,
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Core application settings
    app_env: Literal["development", "test", "staging", "production"] = "development"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    debug: bool = False
    secret_key: str = Field(..., min_length=32)

    # CORS - use string to avoid JSON parsing issues
    cors_origins_str: str = Field(default="http://localhost:3000,https://localhost:3000", alias="cors_origins")

    @property
    def cors_origins(self) -> list[str]:
        """Parse CORS origins from string."""
        if not self.cors_origins_str.strip():
            return ["http://localhost:3000", "https://localhost:3000"]
        return [origin.strip() for origin in self.cors_origins_str.split(",") if origin.strip()]

    # WhatsApp Business API
    whatsapp_verify_token: str | None = None
    whatsapp_access_token: str | None = None
    whatsapp_phone_number_id: str | None = None
    whatsapp_app_secret: str | None = None
    whatsapp_api_version: str = "v18.0"
    default_country_code: str = "254"

    # Cache store
    cache_backend: Literal["file", "redis"] = "file"
    cache_dir: Path = Path(".cache/legal-agent")
    redis_url: str | None = None

    # Firestore
    firestore_project: str | None = None
    firestore_database: str = "(default)"
    firebase_admin_sdk_json: str | None = None
    firebase_admin_sdk_path: str | None = None

    # Uploads
    upload_dir: Path = Path("uploads")
    max_document_size: int = 10 * 1024 * 1024
    allowed_document_types: list[str] = [
        "application/pdf",
        "application/msword",
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
        "text/plain",
        "image/jpeg",
        "image/png",
    ]

    # Processing
    general_query_delay_seconds: float = 15.0
    processing_timeout_seconds: float = 120.0
    max_concurrent_tasks: int | None = None
    max_query_length: int = 2000

    @field_validator("secret_key")
    @classmethod
    def validate_secret_key(cls, v: str) -> str:
        """Ensure secret key is strong enough."""
        if len(v) < 32:
            raise ValueError("Secret key must be at least 32 characters long")
        return v

    @field_validator("default_country_code")
    @classmethod
    def validate_country_code(cls, v: str) -> str:
        if not v.isdigit():
            raise ValueError("Country code must contain digits only")
        return v

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.app_env == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.app_env == "production"

    @property
    def whatsapp_configured(self) -> bool:
        return bool(self.whatsapp_access_token and self.whatsapp_phone_number_id)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
