from functools import lru_cache
from typing import Literal

from pydantic import AliasChoices, Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

LogLevel = Literal["CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"]


class Settings(BaseSettings):
    """Runtime configuration for the FluxRelay service."""

    #----------------------------------------------------------
    # Upstream API settings
    #----------------------------------------------------------
    bfl_api_key: SecretStr = Field(
        default="",
        validation_alias=AliasChoices("BFL_API_KEY", "FLUXRELAY_BFL_API_KEY"),
        description="API key sent to the BFL image API. Checked on every request, not at startup.",
    )

    bfl_api_base_url: str = Field(
        default="https://api.bfl.ai/v1",
        description="Base URL of the BFL image API; the model path is appended per endpoint.",
    )

    http_timeout_seconds: float = Field(
        default=60.0,
        gt=0.0,
        description="Timeout applied to every outbound HTTP call.",
    )

    #----------------------------------------------------------
    # Polling settings
    #----------------------------------------------------------
    generate_max_attempts: int = Field(
        default=30,
        ge=1,
        description="Status fetches allowed for POST /api/generate before timing out.",
    )
    get_image_max_attempts: int = Field(
        default=45,
        ge=1,
        description="Status fetches allowed for POST /api/getImage before timing out.",
    )
    poll_delay_seconds: float = Field(
        default=1.0,
        ge=0.0,
        description="Fixed delay between two status fetches while a job is pending.",
    )
    generate_initial_delay_seconds: float = Field(
        default=20.0,
        ge=0.0,
        description="Wait before the first status fetch of POST /api/generate.",
    )

    #----------------------------------------------------------
    # Logging
    #----------------------------------------------------------
    log_level: LogLevel = Field(
        default="INFO",
        description="Root log level applied when the app starts.",
    )

    model_config = SettingsConfigDict(
        env_prefix="FLUXRELAY_",
        env_file=".env",
        env_file_encoding="utf-8",
        populate_by_name=True,
        extra="ignore",
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalise_log_level(cls, value):
        return value.strip().upper() if isinstance(value, str) else value

    @property
    def api_key(self) -> str:
        return self.bfl_api_key.get_secret_value().strip()


@lru_cache
def get_settings() -> Settings:
    return Settings()  # type: ignore[call-arg]
