"""
Application Settings for Billing Sync

Centralized configuration using Pydantic Settings with .env support.
All environment variables are validated at startup.
"""

from functools import lru_cache
from typing import Optional
from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Stripe keys are optional at load time so the app can boot for health
    checks; the webhook route refuses to process events without a secret.
    """

    # Stripe Configuration
    stripe_secret_key: Optional[str] = None
    stripe_webhook_secret: Optional[str] = None
    stripe_webhook_tolerance: int = 300

    # Checkout allow-list
    stripe_price_id_monthly: Optional[str] = None
    stripe_price_id_yearly: Optional[str] = None

    # Landing page
    landing_base_url: str = "http://localhost:5173"

    # Application Settings
    environment: str = "development"
    debug: bool = False
    log_level: str = "INFO"

    # CORS Configuration
    allowed_origins: list[str] = [
        "http://localhost:5173",
        "http://localhost:3000",
        "http://127.0.0.1:5173",
    ]

    # Database Configuration (SQLModel/SQLAlchemy)
    supabase_url: Optional[str] = None
    supabase_password: Optional[str] = None
    database_url: Optional[str] = None
    database_pool_size: int = 5
    database_max_overflow: int = 10
    database_pool_timeout: int = 30
    database_echo: bool = False

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @model_validator(mode="after")
    def warn_missing_stripe_keys(self) -> "Settings":
        """Production deployments must be able to verify webhooks."""
        import logging
        logger = logging.getLogger(__name__)

        if self.is_production and not self.stripe_webhook_secret:
            raise ValueError("STRIPE_WEBHOOK_SECRET required when ENVIRONMENT=production")

        if not self.stripe_secret_key:
            logger.warning("STRIPE_SECRET_KEY is not set; provider lookups will fail")

        return self

    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.environment.lower() == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development."""
        return self.environment.lower() == "development"

    @property
    def valid_price_ids(self) -> list[str]:
        """Price IDs accepted by the checkout endpoint."""
        return [
            price_id
            for price_id in (self.stripe_price_id_monthly, self.stripe_price_id_yearly)
            if price_id
        ]


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Convenience export for direct import
settings = get_settings()
