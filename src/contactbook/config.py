"""
Application configuration with environment-driven settings.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
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
    app_name: str = "contactbook"
    app_env: Literal["dev", "qa", "uat", "prod"] = "dev"
    debug: bool = False
    log_level: str = "INFO"

    # Database
    database_url: str = Field(
        default="sqlite+aiosqlite:///./contacts.sqlite",
        description="SQLAlchemy async connection URL",
    )

    # CORS
    cors_origins: str = Field(
        default="*",
        description="Comma-separated list of allowed CORS origins",
    )

    # Listing / export
    default_page_size: int = Field(
        default=100,
        description="Page size used when the caller sends no usable limit",
    )
    export_sheet_name: str = Field(
        default="Contacts",
        description="Worksheet title used for spreadsheet exports",
    )

    @field_validator("export_sheet_name")
    @classmethod
    def validate_sheet_name(cls, v: str) -> str:
        """Worksheet titles are limited to 31 characters."""
        v = v.strip()
        if not v:
            raise ValueError("export_sheet_name must not be empty")
        return v[:31]

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS origins into a list."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
