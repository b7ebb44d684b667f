"""
Configuration module with strict validation.

Key principles:
- DATABASE_URL is the only required setting
- Bulk ingestion limits are configurable
- A missing site reference is never guessed; an explicit DEFAULT_SITE_ID
  is the only way to fill it during file imports
"""
from typing import Optional
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings with validation.

    Loads from environment variables and .env file.
    """
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Database (REQUIRED for API startup)
    database_url: str = Field(
        ...,
        description="SQLAlchemy connection URL (PostgreSQL in deployment)"
    )

    db_pool_size: int = Field(
        default=5,
        ge=1,
        le=50,
        description="Connection pool size for non-SQLite databases"
    )

    db_max_overflow: int = Field(
        default=10,
        ge=0,
        le=100,
        description="Extra connections allowed above the pool size"
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )

    # Ingestion
    max_bulk_entries: int = Field(
        default=5000,
        ge=1,
        le=100000,
        description="Maximum number of records accepted in one bulk batch"
    )

    max_upload_bytes: int = Field(
        default=10 * 1024 * 1024,
        ge=1024,
        description="Maximum size of an uploaded CSV/Excel file"
    )

    default_site_id: Optional[str] = Field(
        default=None,
        description="Site used for imported rows that carry no site reference"
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is one of the standard levels."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"log_level must be one of {valid_levels}")
        return v_upper

    @field_validator("default_site_id")
    @classmethod
    def blank_site_is_none(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            return None
        return v

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")


# Global settings instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """
    Get or create the global settings instance.

    This pattern allows:
    - Easy testing (can reset settings between tests)
    - Lazy loading (only loads when first accessed)
    - Singleton pattern (same instance used everywhere)
    """
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """
    Reset the global settings instance.

    Useful for testing to ensure clean state between tests.
    """
    global _settings
    _settings = None
