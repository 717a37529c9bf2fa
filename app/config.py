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
# The Settings class validates all values at startup, catching configuration
# errors early rather than at runtime.
# =============================================================================

from functools import lru_cache
from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEV_SECRET_KEY = "dev-secret-key-change-in-production"


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Uses pydantic-settings to:
    - Automatically load from .env file
    - Validate types and constraints
    - Provide sensible defaults for development

    All settings are accessed via the global `settings` instance.
    """

    # -------------------------------------------------------------------------
    # Supabase Configuration
    # -------------------------------------------------------------------------
    # These are required - app won't start without them

    SUPABASE_URL: str = Field(
        ...,  # ... means required (no default)
        description="Supabase project URL (e.g., https://xxx.supabase.co)"
    )

    SUPABASE_SERVICE_KEY: str = Field(
        ...,
        description="Supabase service_role key (bypasses RLS)"
    )

    # -------------------------------------------------------------------------
    # Redis Configuration (Celery broker, rate limits, pub/sub)
    # -------------------------------------------------------------------------

    REDIS_URL: str = Field(
        default="redis://localhost:6379/0",
        description="Redis connection URL"
    )

    CELERY_TASK_ALWAYS_EAGER: bool = Field(
        default=False,
        description="Run Celery tasks inline (tests and local development)"
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

    FRONTEND_URL: str = Field(
        default="http://localhost:3000",
        description="Base URL used in links sent by email"
    )

    # CORS origins (comma-separated string that gets parsed)
    CORS_ORIGINS: str = Field(
        default="http://localhost:3000",
        description="Allowed CORS origins (comma-separated)"
    )

    # -------------------------------------------------------------------------
    # Security
    # -------------------------------------------------------------------------

    SECRET_KEY: str = Field(
        default=DEV_SECRET_KEY,
        min_length=16,
        description="Secret key for signing access tokens"
    )

    JWT_ALGORITHM: Literal["HS256", "HS384", "HS512"] = Field(
        default="HS256",
        description="JWT signing algorithm"
    )

    JWT_ISSUER: str = Field(
        default="agora-api",
        description="Value of the iss claim"
    )

    ACCESS_TOKEN_TTL_MINUTES: int = Field(
        default=60,
        ge=1,
        le=24 * 60,
        description="Access token lifetime"
    )

    REFRESH_TOKEN_TTL_DAYS: int = Field(
        default=14,
        ge=1,
        le=365,
        description="Refresh token (session) lifetime"
    )

    SESSION_TOUCH_INTERVAL_SECONDS: int = Field(
        default=60,
        ge=0,
        description="Minimum gap between last_used_at updates of a session"
    )

    PASSWORD_RESET_TTL_MINUTES: int = Field(
        default=30,
        ge=5,
        le=24 * 60,
        description="Password reset token lifetime"
    )

    BCRYPT_ROUNDS: int = Field(
        default=12,
        ge=4,
        le=16,
        description="bcrypt cost factor (lower only in tests)"
    )

    LOGIN_RATE_LIMIT_ATTEMPTS: int = Field(
        default=5,
        ge=1,
        description="Login attempts allowed per email+IP per window"
    )

    LOGIN_RATE_LIMIT_WINDOW_SECONDS: int = Field(
        default=300,
        ge=1,
        description="Login rate limit window"
    )

    # -------------------------------------------------------------------------
    # Community & Moderation Rules
    # -------------------------------------------------------------------------

    MAX_COMMENT_DEPTH: int = Field(
        default=10,
        ge=1,
        description="Deepest allowed reply nesting (top-level comments are depth 0)"
    )

    APPEAL_WINDOW_DAYS: int = Field(
        default=30,
        ge=1,
        description="Days after a moderation action during which it can be appealed"
    )

    MAX_ACTIVE_APPEALS: int = Field(
        default=5,
        ge=1,
        description="Pending appeals a member may have at once"
    )

    MODERATOR_MAX_SUSPENSION_DAYS: int = Field(
        default=30,
        ge=1,
        description="Longest suspension a moderator may issue"
    )

    ADMIN_MAX_SUSPENSION_DAYS: int = Field(
        default=365,
        ge=1,
        description="Longest suspension an administrator may issue"
    )

    # -------------------------------------------------------------------------
    # Commerce Rules
    # -------------------------------------------------------------------------

    TAX_RATE: float = Field(
        default=0.10,
        ge=0.0,
        le=1.0,
        description="Tax applied to order subtotals"
    )

    MIN_ORDER_TOTAL: float = Field(
        default=5.00,
        ge=0.0,
        description="Minimum checkout total across all orders"
    )

    REFUND_WINDOW_DAYS: int = Field(
        default=30,
        ge=1,
        description="Days after delivery during which refunds can be requested"
    )

    REVIEW_EDIT_WINDOW_DAYS: int = Field(
        default=30,
        ge=1,
        description="Days after posting during which a review can be edited"
    )

    # -------------------------------------------------------------------------
    # Pydantic Settings Configuration
    # -------------------------------------------------------------------------

    model_config = SettingsConfigDict(
        # Load from .env file in project root
        env_file=".env",
        env_file_encoding="utf-8",
        # Don't fail if .env doesn't exist (useful for production where
        # env vars are set directly)
        env_ignore_empty=True,
        # Case-sensitive environment variable names
        case_sensitive=True,
        extra="ignore",
    )

    @model_validator(mode="after")
    def _require_real_secret(self) -> "Settings":
        if self.is_production and self.SECRET_KEY == DEV_SECRET_KEY:
            raise ValueError("SECRET_KEY must be set in production")
        return self

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
