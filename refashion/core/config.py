"""
Core configuration classes using Pydantic Settings.
"""
from typing import List, Optional

from pydantic import Field, validator
from pydantic_settings import BaseSettings

from refashion.core.exceptions import ConfigurationError


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    # Application
    APP_NAME: str = "Refashion Jobs"
    VERSION: str = "0.1.0"
    ENVIRONMENT: str = Field(default="development", description="Environment: development, staging, production")
    DEBUG: bool = Field(default=False, description="Enable debug mode")
    APP_URL: str = Field(
        default="http://localhost:8000",
        description="Public base URL used for provider callbacks and absolute output URLs"
    )

    # Server
    HOST: str = Field(default="0.0.0.0", description="Server host")
    PORT: int = Field(default=8000, description="Server port")
    ALLOWED_HOSTS: List[str] = Field(default=["*"], description="Allowed CORS origins")

    # Job status store
    DATABASE_URL: str = Field(
        default="sqlite:///./refashion.db",
        description="Database URL for the job status store"
    )

    # Celery
    CELERY_BROKER_URL: str = Field(
        default="redis://localhost:6379/0",
        description="Celery broker URL"
    )
    CELERY_RESULT_BACKEND: str = Field(
        default="redis://localhost:6379/1",
        description="Celery result backend URL"
    )

    # Fal.ai provider
    FAL_KEY: Optional[str] = Field(default=None, description="Fal.ai API key")
    FAL_QUEUE_URL: str = Field(default="https://queue.fal.run", description="Fal.ai queue base URL")
    FAL_VIDEO_MODEL_ID: str = Field(
        default="fal-ai/bytedance/seedance/v1/pro/fast/image-to-video",
        description="Model used for image-to-video generation"
    )

    # Inbound webhook verification
    FAL_JWKS_URL: str = Field(
        default="https://rest.alpha.fal.ai/.well-known/jwks.json",
        description="Published key set used to verify Fal.ai webhooks"
    )
    JWKS_CACHE_TTL_SECONDS: int = Field(default=24 * 60 * 60, description="Key set freshness window")
    JWKS_FETCH_TIMEOUT_SECONDS: float = Field(default=10.0, description="Key set fetch timeout")
    WEBHOOK_TIMESTAMP_TOLERANCE_SECONDS: int = Field(
        default=300,
        description="Maximum accepted clock difference for webhook timestamps"
    )

    # Outbound webhooks
    WEBHOOK_SECRET: Optional[str] = Field(
        default=None,
        description="Shared secret sent in X-Refashion-Secret on outbound webhooks"
    )
    OUTBOUND_WEBHOOK_TIMEOUT_SECONDS: float = Field(default=15.0, description="Per-attempt timeout")
    OUTBOUND_WEBHOOK_MAX_ATTEMPTS: int = Field(default=3, description="Delivery attempts")
    OUTBOUND_WEBHOOK_BACKOFF_SECONDS: float = Field(default=5.0, description="Linear backoff unit")

    # Storage
    STORAGE_BACKEND: str = Field(default="local", description="Storage backend: local or remote")
    STORAGE_LOCAL_ROOT: str = Field(default="./user_data/uploads", description="Local archive root")
    STORAGE_PUBLIC_PREFIX: str = Field(default="/uploads", description="URL prefix of archived files")

    # Logging
    LOG_LEVEL: str = Field(default="INFO", description="Logging level")
    LOG_FORMAT: str = Field(default="json", description="Log format: json or text")

    @validator("ENVIRONMENT")
    def validate_environment(cls, v):
        """Validate environment setting."""
        allowed = ["development", "staging", "production"]
        if v not in allowed:
            raise ValueError(f"Environment must be one of: {allowed}")
        return v

    @validator("LOG_LEVEL")
    def validate_log_level(cls, v):
        """Validate log level setting."""
        allowed = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in allowed:
            raise ValueError(f"Log level must be one of: {allowed}")
        return v.upper()

    @validator("LOG_FORMAT")
    def validate_log_format(cls, v):
        """Validate log format setting."""
        allowed = ["json", "text"]
        if v not in allowed:
            raise ValueError(f"Log format must be one of: {allowed}")
        return v

    @validator("STORAGE_BACKEND")
    def validate_storage_backend(cls, v):
        """Validate storage backend setting."""
        allowed = ["local", "remote"]
        if v not in allowed:
            raise ValueError(f"Storage backend must be one of: {allowed}")
        return v

    def require_fal_key(self) -> str:
        """Return the provider API key or fail fast when it is not configured."""
        if not self.FAL_KEY:
            raise ConfigurationError("FAL_KEY is not configured", setting="FAL_KEY")
        return self.FAL_KEY

    def require_webhook_secret(self) -> str:
        """Return the outbound webhook secret or fail fast when it is not configured."""
        if not self.WEBHOOK_SECRET:
            raise ConfigurationError("WEBHOOK_SECRET is not configured", setting="WEBHOOK_SECRET")
        return self.WEBHOOK_SECRET

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True
        extra = "ignore"


# Global settings instance
settings = Settings()
