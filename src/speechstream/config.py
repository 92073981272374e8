"""Application configuration using environment variables."""

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import AliasChoices, AnyHttpUrl, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Resolve the project root once so that `.env` is discovered regardless of CWD
PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent


class Settings(BaseSettings):
    """Load configuration from environment variables and `.env`."""

    model_config = SettingsConfigDict(
        env_file=str(PROJECT_ROOT / ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    analysis_base_url: AnyHttpUrl = Field(
        default_factory=lambda: AnyHttpUrl("http://localhost:8000/api/v1"),
        validation_alias=AliasChoices("ANALYSIS_BASE_URL", "analysis_base_url"),
    )
    request_timeout: float = Field(
        default=120.0,
        validation_alias=AliasChoices("ANALYSIS_TIMEOUT", "request_timeout"),
        ge=1,
    )

    speech_enabled: bool = Field(
        default=True,
        validation_alias=AliasChoices("SPEECH_ENABLED", "speech_enabled"),
    )
    # Tuned for browser-grade engines; slower engines may want a larger pause.
    speech_pause_threshold_ms: int = Field(
        default=250,
        ge=0,
        validation_alias=AliasChoices(
            "SPEECH_PAUSE_THRESHOLD_MS", "speech_pause_threshold_ms"
        ),
    )
    speech_continue_delay_ms: int = Field(
        default=100,
        ge=0,
        validation_alias=AliasChoices(
            "SPEECH_CONTINUE_DELAY_MS", "speech_continue_delay_ms"
        ),
    )
    speech_rate: float = Field(
        default=0.95,
        gt=0,
        le=10,
        validation_alias=AliasChoices("SPEECH_RATE", "speech_rate"),
    )
    speech_pitch: float = Field(
        default=1.0,
        ge=0,
        le=2,
        validation_alias=AliasChoices("SPEECH_PITCH", "speech_pitch"),
    )
    speech_volume: float = Field(
        default=1.0,
        ge=0,
        le=1,
        validation_alias=AliasChoices("SPEECH_VOLUME", "speech_volume"),
    )

    log_level: str = Field(
        default="INFO",
        validation_alias=AliasChoices("LOG_LEVEL", "log_level"),
    )
    log_file: Optional[Path] = Field(
        default=None,
        validation_alias=AliasChoices("LOG_FILE", "log_file"),
    )
    logging_settings_path: Path = Field(
        default_factory=lambda: Path("logging_settings.conf"),
        validation_alias=AliasChoices(
            "LOGGING_SETTINGS_PATH", "logging_settings_path"
        ),
    )

    @property
    def pause_threshold_seconds(self) -> float:
        return self.speech_pause_threshold_ms / 1000

    @property
    def continue_delay_seconds(self) -> float:
        return self.speech_continue_delay_ms / 1000


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached `Settings` instance."""

    return Settings()


__all__ = ["Settings", "get_settings"]
