"""Application configuration using Pydantic Settings."""

from functools import lru_cache
from typing import Literal

from pydantic import AliasChoices, Field, computed_field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Environment
    environment: Literal["development", "test", "staging", "production"] = "development"
    debug: bool = False
    version: str = "0.1.0"

    # Server
    host: str = "0.0.0.0"
    port: int = 8000

    # Downstream responder
    downstream_endpoint: str = Field(
        default="http://localhost:8000/hello",
        validation_alias=AliasChoices("srv_downstream_endpoint", "downstream_endpoint"),
        description="Host/path of the greeting service, e.g. localhost:8000/hello",
    )
    downstream_timeout_seconds: float = 10.0

    # Dispatch pipeline
    dispatch_timeout_ms: int | None = None  # No deadline when unset

    # Observability
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "text"] = "json"
    otel_enabled: bool = False
    otlp_endpoint: str = ""  # OTLP collector endpoint (e.g., http://localhost:4317)
    otel_service_name: str = "hello-dispatch"
    prometheus_enabled: bool = True

    @field_validator("downstream_endpoint")
    @classmethod
    def _check_downstream_endpoint(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("downstream_endpoint must not be empty")
        return value

    @field_validator("dispatch_timeout_ms")
    @classmethod
    def _check_dispatch_timeout(cls, value: int | None) -> int | None:
        if value is not None and value <= 0:
            raise ValueError("dispatch_timeout_ms must be positive")
        return value

    @computed_field
    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"

    @computed_field
    @property
    def dispatch_timeout_seconds(self) -> float | None:
        """Pipeline deadline in seconds, or None for no deadline."""
        if self.dispatch_timeout_ms is None:
            return None
        return self.dispatch_timeout_ms / 1000.0


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
