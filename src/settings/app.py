"""Application settings powered by Pydantic BaseSettings."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    """Centralized environment configuration."""

    model_config = SettingsConfigDict(
        env_prefix="", case_sensitive=False, env_file=".env", env_file_encoding="utf-8"
    )

    mode: str = Field(default="production", validation_alias="MODE")
    dev: bool = Field(default=False, validation_alias="DEV")
    app_hostname: str | None = Field(default=None, validation_alias="APP_HOSTNAME")
    api_url: str | None = Field(default=None, validation_alias="API_URL")
    api_protocol: str | None = Field(default=None, validation_alias="API_PROTOCOL")
    api_host: str | None = Field(default=None, validation_alias="API_HOST")
    api_port: str | None = Field(default=None, validation_alias="API_PORT")
    error_logging_endpoint: str | None = Field(
        default=None, validation_alias="ERROR_LOGGING_ENDPOINT"
    )
    error_logging_api_key: str | None = Field(
        default=None, validation_alias="ERROR_LOGGING_API_KEY"
    )


def get_settings() -> AppSettings:
    """Get a settings instance."""
    return AppSettings()
