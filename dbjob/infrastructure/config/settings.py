"""Application configuration using Pydantic Settings.

Runtime knobs for the scheduler process. Database credentials are not read
from the environment; they come from the JSON file at ``config_path`` (see
``dbjob.infrastructure.config.database_config``).
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_CONFIG_PATH = "./db.json"


class ObservabilitySettings(BaseSettings):
    """Observability configuration settings (logging, tracing)."""

    model_config = SettingsConfigDict(env_prefix="DBJOB_OTEL_", case_sensitive=False)

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )
    log_json_format: bool = Field(
        default=False,
        description="Render log lines as JSON instead of console format",
    )

    # OpenTelemetry Tracing
    service_name: str = Field(
        default="dbjob",
        description="Service name for traces",
    )
    exporter_otlp_endpoint: str | None = Field(
        default=None,
        description="OTLP exporter endpoint (gRPC); tracing export is off when unset",
    )
    trace_sample_rate: float = Field(
        default=1.0,
        ge=0.0,
        le=1.0,
        description="Trace sampling rate (0.0 to 1.0)",
    )


class Settings(BaseSettings):
    """Main application settings.

    Loaded from ``DBJOB_*`` environment variables and an optional .env file.
    """

    model_config = SettingsConfigDict(
        env_prefix="DBJOB_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    config_path: str = Field(
        default=DEFAULT_CONFIG_PATH,
        description="Path of the JSON database configuration file",
    )
    log_dir: str = Field(
        default=".",
        description="Directory holding the <scheduler-name>.log file",
    )
    shutdown_timeout_seconds: float = Field(
        default=30.0,
        ge=0.0,
        description="How long run() waits for task loops to exit after stopping them",
    )

    observability: ObservabilitySettings = Field(
        default_factory=ObservabilitySettings
    )


# Global settings instance (singleton)
_settings: Settings | None = None


def get_settings() -> Settings:
    """Get global settings instance (singleton pattern).

    Returns:
        Settings instance loaded from environment
    """
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Drop the cached settings so the next get_settings() reloads them."""
    global _settings
    _settings = None
