"""
Application configuration with environment-based settings.
All configuration is explicit, validated, and logged at startup.
"""

from functools import lru_cache
from typing import Literal

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Gateway settings loaded from environment variables.

    All settings have sensible defaults for development; the inference
    service URL is the one value every real deployment sets.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        env_ignore_empty=True,
    )

    # Application
    app_name: str = Field(default="Heart Health Classification API", description="Application name")
    app_version: str = Field(default="1.0.0", description="Application version")
    environment: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Deployment environment"
    )
    debug: bool = Field(default=False, description="Enable debug mode")

    # Server
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=3000, description="Server port")

    # CORS
    cors_origins: list[str] = Field(
        default=["*"],
        description="Allowed CORS origins"
    )

    # Upstream inference service
    inference_service_url: str = Field(
        default="http://localhost:5000",
        validation_alias=AliasChoices("inference_service_url", "python_service_url"),
        description="Base URL of the inference service (INFERENCE_SERVICE_URL or PYTHON_SERVICE_URL)",
    )
    predict_timeout_seconds: float = Field(default=10.0, gt=0, description="Single prediction bound")
    batch_timeout_seconds: float = Field(default=15.0, gt=0, description="Predict-all and compare-models bound")
    model_info_timeout_seconds: float = Field(default=5.0, gt=0, description="Model info lookup bound")

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: Literal["json", "console"] = Field(
        default="console",
        description="Log output format"
    )

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"

    @property
    def inference_base_url(self) -> str:
        """Inference service URL without a trailing slash."""
        return self.inference_service_url.rstrip("/")

    def get_safe_config_dict(self) -> dict:
        """Return configuration dict suitable for logging."""
        return self.model_dump()


@lru_cache
def get_settings() -> Settings:
    """
    Get cached application settings.

    Settings are loaded once and cached for the application lifetime.
    Pass explicit settings to create_app() for testability.
    """
    return Settings()
