"""
Application configuration with environment-based settings.

Configuration is centralized here, including provider credentials, so
that the classification core receives everything it needs through an
explicitly constructed settings object.
"""

from functools import lru_cache
from typing import Optional, Tuple

from pydantic_settings import BaseSettings, SettingsConfigDict

from app.ml.failover.base import ProviderDescriptor


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="WILDLIFE_CLASSIFIER_",
        extra="ignore",
    )

    # API Configuration
    app_name: str = "Wildlife Classifier API"
    app_version: str = "0.1.0"
    debug: bool = False
    api_prefix: str = "/api/v1"

    # Server Configuration
    host: str = "0.0.0.0"
    port: int = 8000
    workers: int = 4

    # Provider credentials
    google_vision_api_key: Optional[str] = None
    aws_access_key_id: Optional[str] = None
    aws_secret_access_key: Optional[str] = None
    aws_region: str = "us-east-1"
    inaturalist_api_base: str = "https://api.inaturalist.org/v1"
    huggingface_model_id: str = "google/vit-base-patch16-224"

    # Feature flags for optional providers
    enable_inaturalist: bool = True
    enable_local_model: bool = True

    # Failover behaviour
    provider_cooldown_seconds: float = 300.0
    provider_timeout_seconds: float = 15.0

    # Input limits
    max_image_size_mb: float = 10.0
    max_batch_size: int = 10
    batch_concurrency: int = 4

    # Logging
    log_level: str = "INFO"

    @property
    def max_image_bytes(self) -> int:
        return int(self.max_image_size_mb * 1024 * 1024)

    @property
    def aws_configured(self) -> bool:
        return bool(self.aws_access_key_id and self.aws_secret_access_key)


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Provider failover chain - lower priority is tried first
DEFAULT_PROVIDER_DESCRIPTORS: Tuple[ProviderDescriptor, ...] = (
    ProviderDescriptor(name="google-vision", priority=1, min_confidence=0.75, weight=0.35),
    ProviderDescriptor(name="aws-rekognition", priority=2, min_confidence=0.70, weight=0.30),
    ProviderDescriptor(name="inaturalist", priority=3, min_confidence=0.65, weight=0.25),
    ProviderDescriptor(name="huggingface", priority=4, min_confidence=0.60, weight=0.10),
)
