# =============================================================================
# app/config.py - Application Settings
# =============================================================================
# This module loads configuration from environment variables using pydantic-settings.
# It provides a single Settings class with all configuration values.
#
# Usage:
#   from app.config import settings
#   print(settings.SUPABASE_URL)
#
# Environment variables are loaded from:
# 1. System environment variables
# 2. .env file in project root (if exists)
#
# Supabase and DashScope settings are required at startup. Stripe keys are
# optional: without them the payment endpoints answer 503.
# =============================================================================

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings are accessed via the global `settings` instance.
    """

    # -------------------------------------------------------------------------
    # Supabase Configuration (database, storage, auth)
    # -------------------------------------------------------------------------

    SUPABASE_URL: str = Field(
        ...,
        description="Supabase project URL (e.g., https://xxx.supabase.co)"
    )

    SUPABASE_SERVICE_KEY: str = Field(
        ...,
        description="Supabase service_role key (bypasses RLS)"
    )

    SUPABASE_JWT_SECRET: str = Field(
        ...,
        description="Secret used to verify HS256 access tokens issued by Supabase Auth"
    )

    # -------------------------------------------------------------------------
    # Object Storage
    # -------------------------------------------------------------------------

    STORAGE_BUCKET: str = Field(
        default="smartphoto",
        description="Public storage bucket holding uploads and saved results"
    )

    STORAGE_PUBLIC_URL: str | None = Field(
        default=None,
        description="Public base URL for stored objects (CDN). Falls back to Supabase public URLs"
    )

    # -------------------------------------------------------------------------
    # DashScope (Wanx image edit) Configuration
    # -------------------------------------------------------------------------

    DASHSCOPE_API_KEY: str = Field(
        ...,
        description="DashScope API key for the Wanx image edit service"
    )

    DASHSCOPE_BASE_URL: str = Field(
        default="https://dashscope.aliyuncs.com/api/v1",
        description="DashScope API base URL"
    )

    DASHSCOPE_MODEL: str = Field(
        default="wanx2.1-imageedit",
        description="Image edit model name"
    )

    DASHSCOPE_TIMEOUT_SECONDS: float = Field(
        default=30.0,
        gt=0,
        le=300,
        description="Timeout for a single DashScope request"
    )

    # -------------------------------------------------------------------------
    # Stripe Configuration
    # -------------------------------------------------------------------------
    # Optional - payments degrade to 503 when either key is missing

    STRIPE_PUBLISHABLE_KEY: str | None = Field(
        default=None,
        description="Stripe publishable key handed to browser clients"
    )

    STRIPE_SECRET_KEY: str | None = Field(
        default=None,
        description="Stripe secret key for server-side API calls"
    )

    # -------------------------------------------------------------------------
    # Application Settings
    # -------------------------------------------------------------------------

    ENVIRONMENT: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Current environment"
    )

    DEBUG: bool = Field(
        default=False,
        description="Enable debug mode (verbose logging, auto-reload)"
    )

    API_HOST: str = Field(
        default="0.0.0.0",
        description="Host to bind the API server to"
    )

    API_PORT: int = Field(
        default=8000,
        ge=1,
        le=65535,
        description="Port for the API server"
    )

    # CORS origins (comma-separated string that gets parsed)
    CORS_ORIGINS: str = Field(
        default="http://localhost:3000",
        description="Allowed CORS origins (comma-separated)"
    )

    # -------------------------------------------------------------------------
    # Upload Limits
    # -------------------------------------------------------------------------

    MAX_IMAGE_UPLOAD_MB: int = Field(
        default=4,
        ge=1,
        le=100,
        description="Maximum image upload size in MB"
    )

    MAX_VIDEO_UPLOAD_MB: int = Field(
        default=64,
        ge=1,
        le=1024,
        description="Maximum video upload size in MB"
    )

    # -------------------------------------------------------------------------
    # Pydantic Settings Configuration
    # -------------------------------------------------------------------------

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_ignore_empty=True,
        case_sensitive=True,
    )

    # -------------------------------------------------------------------------
    # Computed Properties
    # -------------------------------------------------------------------------

    @property
    def cors_origins_list(self) -> list[str]:
        """
        Parse CORS_ORIGINS string into a list.

        Example: "http://localhost:3000, https://myapp.com" -> ["http://localhost:3000", "https://myapp.com"]
        """
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",")]

    @property
    def max_image_upload_bytes(self) -> int:
        return self.MAX_IMAGE_UPLOAD_MB * 1024 * 1024

    @property
    def max_video_upload_bytes(self) -> int:
        return self.MAX_VIDEO_UPLOAD_MB * 1024 * 1024

    @property
    def stripe_configured(self) -> bool:
        """Both Stripe keys are needed before payments can be offered."""
        return bool(self.STRIPE_PUBLISHABLE_KEY and self.STRIPE_SECRET_KEY)

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.ENVIRONMENT == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.ENVIRONMENT == "production"


@lru_cache
def get_settings() -> Settings:
    """
    Get cached Settings instance.

    Using lru_cache ensures we only parse .env and validate once,
    not on every access.

    Returns:
        Settings: The application settings instance
    """
    return Settings()


# Global settings instance for easy importing
# Usage: from app.config import settings
settings = get_settings()
