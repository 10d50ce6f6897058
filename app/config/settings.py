"""
Application settings.

Loads configuration from environment variables using pydantic-settings.
"""

from loguru import logger
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from app.config.constants import (
    IDEMPOTENCY_WINDOW_SECONDS,
    PAYMENT_RETRY_INITIAL_DELAY_SECONDS,
    PAYMENT_RETRY_JITTER_FACTOR,
    PAYMENT_RETRY_MAX_DELAY_SECONDS,
    PAYMENT_RETRY_MAX_RETRIES,
    PAYMENT_RETRY_MULTIPLIER,
)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    database_url: str
    database_echo: bool = False

    # Hosted auth (Supabase-issued JWTs)
    supabase_jwt_secret: str
    supabase_jwt_audience: str = "authenticated"

    # Payment gateway (Razorpay)
    razorpay_key_id: str
    razorpay_key_secret: str
    razorpay_base_url: str = "https://api.razorpay.com/v1"
    payment_currency: str = "INR"

    # Payment retry tuning
    payment_retry_max_retries: int = Field(
        default=PAYMENT_RETRY_MAX_RETRIES, ge=1, le=10,
        description="Attempts per gateway call before giving up",
    )
    payment_retry_initial_delay: float = Field(
        default=PAYMENT_RETRY_INITIAL_DELAY_SECONDS, gt=0,
        description="Delay before the second attempt (seconds)",
    )
    payment_retry_max_delay: float = Field(
        default=PAYMENT_RETRY_MAX_DELAY_SECONDS, gt=0,
        description="Upper bound for a single backoff delay (seconds)",
    )
    payment_retry_multiplier: float = Field(
        default=PAYMENT_RETRY_MULTIPLIER, ge=1.0,
    )
    payment_retry_jitter: float = Field(
        default=PAYMENT_RETRY_JITTER_FACTOR, ge=0, le=1.0,
    )
    idempotency_window_seconds: int = Field(
        default=IDEMPOTENCY_WINDOW_SECONDS, gt=0,
        description="Time bucket used when deriving idempotency keys",
    )

    # Redis (rate limits, idempotency claims, moderation cache, Dramatiq)
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_password: str | None = None
    redis_db: int = 0

    # Security
    encryption_key: str
    allowed_origins: str = "http://localhost:3000"  # Comma-separated list

    # Web Push (VAPID) public key handed to browsers when subscribing
    vapid_public_key: str | None = None

    # Application
    environment: str = "production"
    debug: bool = False
    log_level: str = "INFO"
    api_host: str = "0.0.0.0"
    api_port: int = Field(default=8000, ge=1, le=65535)
    health_check_port: int = Field(
        default=8081, ge=1, le=65535, description="Scheduler health check port"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @model_validator(mode='after')
    def validate_retry_bounds(self) -> 'Settings':
        """Initial backoff delay cannot exceed the cap."""
        if self.payment_retry_initial_delay > self.payment_retry_max_delay:
            raise ValueError(
                'PAYMENT_RETRY_INITIAL_DELAY must not exceed '
                'PAYMENT_RETRY_MAX_DELAY'
            )
        return self

    @model_validator(mode='after')
    def validate_production(self) -> 'Settings':
        """Validate production-specific requirements."""
        if self.environment == 'production':
            if self.debug:
                raise ValueError(
                    'DEBUG must be False in production environment. '
                    'Set DEBUG=false in your .env file.'
                )

            if not self.encryption_key or len(self.encryption_key) < 32:
                raise ValueError(
                    'ENCRYPTION_KEY must be at least 32 characters in '
                    'production. Use a proper Fernet key generated with '
                    'cryptography.fernet.Fernet.generate_key()'
                )

            if self.razorpay_key_id.startswith('rzp_test_'):
                logger.warning(
                    'RAZORPAY_KEY_ID is a test key in production. '
                    'Payments will not be captured.'
                )

            if '*' in self.get_allowed_origins():
                raise ValueError(
                    'ALLOWED_ORIGINS must list explicit origins in production.'
                )

        return self

    @field_validator('database_url')
    @classmethod
    def validate_database_url(cls, v: str) -> str:
        """Validate database URL."""
        if not v.startswith(('postgresql://', 'postgresql+asyncpg://')):
            raise ValueError(
                'DATABASE_URL must start with postgresql:// or postgresql+asyncpg://'
            )
        return v

    @field_validator('razorpay_base_url')
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip('/')

    def get_allowed_origins(self) -> list[str]:
        """Parse allowed origins from comma-separated string."""
        if not self.allowed_origins:
            return []

        result = []
        for origin in self.allowed_origins.split(","):
            origin_stripped = origin.strip().rstrip("/")
            if not origin_stripped:
                continue
            result.append(origin_stripped.lower())
        return result


# Global settings instance
settings = Settings()
