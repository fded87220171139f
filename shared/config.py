"""
Shared configuration management for the Activation Access service.
"""

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from shared.errors import ConfigurationError


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_prefix="ACCESS_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore"
    )

    # Environment
    env: str = Field(default="local")
    log_level: str = Field(default="info")

    # Activation
    activation_secret: Optional[str] = Field(default=None, repr=False)
    session_sweep_interval_seconds: float = Field(default=3600.0, gt=0)

    # Translation provider
    translation_service_url: str = Field(default="http://localhost:8090")
    translation_api_key: Optional[str] = Field(default=None, repr=False)
    translation_timeout_seconds: float = Field(default=10.0, gt=0)
    max_text_length: int = Field(default=5000, gt=0)


class ServiceConfig(BaseConfig):
    """Service-specific configuration."""

    service_name: str
    port: int
    host: str = "0.0.0.0"

    def __init__(self, service_name: str, port: int, **kwargs):
        super().__init__(service_name=service_name, port=port, **kwargs)

    def require_activation_secret(self) -> str:
        """Return the signing secret, failing startup when it is absent."""
        if not self.activation_secret or not self.activation_secret.strip():
            raise ConfigurationError(
                "ACCESS_ACTIVATION_SECRET environment variable is required",
                details={"setting": "activation_secret"}
            )
        return self.activation_secret


def get_config(service_name: str, port: int, **overrides) -> ServiceConfig:
    """Get configuration for a specific service."""
    return ServiceConfig(service_name=service_name, port=port, **overrides)
