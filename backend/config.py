"""
VibeBuilder configuration: all environment variables in one place.

Read from environment at runtime. Never hardcode secrets.
"""

from __future__ import annotations

import os


class Settings:
    """Application settings from environment variables."""

    # Database
    DATABASE_URL: str = os.environ.get("DATABASE_URL", "")

    # Auth
    JWT_SECRET: str = os.environ.get("JWT_SECRET", "")
    JWT_ALGORITHM: str = "HS256"
    JWT_EXPIRY_HOURS: int = 24

    # New users (demo login)
    DEFAULT_USER_NAME: str = os.environ.get("DEFAULT_USER_NAME", "Demo User")
    DEFAULT_USER_CREDITS: int = int(os.environ.get("DEFAULT_USER_CREDITS", "10"))

    # AI capabilities
    # Planning and coding need ANTHROPIC_API_KEY. The pipeline checks it before
    # any stage runs, so a missing key is a ConfigurationError, not an import error.
    ANTHROPIC_API_KEY: str = os.environ.get("ANTHROPIC_API_KEY", "")
    OPENAI_API_KEY: str = os.environ.get("OPENAI_API_KEY", "")

    PLANNER_MODEL: str = os.environ.get("PLANNER_MODEL", "claude-3-5-haiku-20241022")
    CODER_MODEL: str = os.environ.get("CODER_MODEL", "claude-sonnet-4-20250514")
    PLANNER_MAX_TOKENS: int = 1024
    CODER_MAX_TOKENS: int = 16384
    CODER_TEMPERATURE: float = 0.7

    IMAGE_MODEL: str = os.environ.get("IMAGE_MODEL", "gpt-image-1")
    IMAGE_SIZE: str = os.environ.get("IMAGE_SIZE", "1536x1024")
    # Upper bound on image synthesis calls in flight during one turn
    IMAGE_CONCURRENCY: int = int(os.environ.get("IMAGE_CONCURRENCY", "6"))

    # Where generated images end up: "inline" (data URI) or "r2" (uploaded, referenced by URL)
    ASSET_STORAGE: str = os.environ.get("ASSET_STORAGE", "inline")

    # R2 / S3 Storage (only used when ASSET_STORAGE == "r2")
    R2_ENDPOINT: str = os.environ.get("R2_ENDPOINT", "")
    R2_ACCESS_KEY: str = os.environ.get("R2_ACCESS_KEY", "")
    R2_SECRET_KEY: str = os.environ.get("R2_SECRET_KEY", "")
    R2_ASSET_BUCKET: str = os.environ.get("R2_ASSET_BUCKET", "vibe-assets")
    R2_PUBLIC_URL: str = os.environ.get("R2_PUBLIC_URL", "https://assets.vibebuilder.com")

    # Editing sessions
    SESSION_IDLE_HOURS: int = int(os.environ.get("SESSION_IDLE_HOURS", "6"))

    # Rate Limits
    TURNS_PER_MINUTE: int = int(os.environ.get("TURNS_PER_MINUTE", "10"))  # per user

    # Application
    ENVIRONMENT: str = os.environ.get("ENVIRONMENT", "development")

    @property
    def PUBLIC_URL(self) -> str:
        url = os.environ.get("PUBLIC_URL")
        if url:
            return url
        return "http://localhost:8000" if self.ENVIRONMENT == "development" else "https://vibebuilder.com"


# Singleton instance
settings = Settings()

# Validate required settings (skip in test mode)
_testing = os.environ.get("TESTING", "").lower() == "true"

if not settings.DATABASE_URL:
    raise RuntimeError("DATABASE_URL environment variable is required")
if not settings.JWT_SECRET:
    raise RuntimeError("JWT_SECRET environment variable is required")

if not _testing and settings.ASSET_STORAGE == "r2":
    if not settings.R2_ENDPOINT:
        raise RuntimeError("R2_ENDPOINT environment variable is required when ASSET_STORAGE=r2")
    if not settings.R2_ACCESS_KEY:
        raise RuntimeError("R2_ACCESS_KEY environment variable is required when ASSET_STORAGE=r2")
    if not settings.R2_SECRET_KEY:
        raise RuntimeError("R2_SECRET_KEY environment variable is required when ASSET_STORAGE=r2")
