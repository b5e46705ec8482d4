"""
Configuration and settings for the RoomieLab backend.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-backed settings for the FastAPI service."""

    model_config = SettingsConfigDict(
        env_prefix="ROOMIELAB_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    api_prefix: str = Field(default="/api")
    environment: str = Field(default="development")
    log_level: str = Field(default="INFO")

    # Firebase (Firestore + Auth)
    firebase_credentials_path: Optional[str] = Field(default=None)
    firebase_project_id: Optional[str] = Field(default=None)
    # Identity Toolkit REST key, only needed for reset-password.
    firebase_web_api_key: Optional[str] = Field(default=None)

    # Development toggles
    use_in_memory_backends: bool = Field(default=False)

    cors_origins: list[str] = Field(default_factory=lambda: ["*"])

    # Payload limits
    max_field_size_kb: int = Field(default=10, ge=1)
    max_canvas_size_kb: int = Field(default=500, ge=1)

    cascade_delete_workers: int = Field(default=8, ge=1)

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    @property
    def firebase_configured(self) -> bool:
        return bool(self.firebase_credentials_path or self.firebase_project_id)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
