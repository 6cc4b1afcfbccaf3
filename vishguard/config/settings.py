"""Application settings using Pydantic."""

import tempfile
from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="VISHGUARD_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Remote services
    base_url: str = "http://localhost:8000"
    transcribe_path: str = "/transcribe"
    analyze_path: str = "/analyze"

    # Timeouts (seconds)
    connect_timeout_seconds: float = 10.0
    read_timeout_seconds: float = 60.0
    write_timeout_seconds: float = 60.0
    call_timeout_seconds: float = 60.0
    pipeline_timeout_seconds: float | None = None

    # Retry policy (retries after the first attempt, per stage)
    max_retries: int = Field(default=3, ge=0)
    retry_initial_delay_seconds: float = Field(default=1.0, ge=0)
    retry_max_delay_seconds: float = Field(default=30.0, ge=0)
    retry_jitter_seconds: float = Field(default=1.0, ge=0)

    # Scoring
    positive_class_labels: set[str] = {"phishing"}
    risk_band_thresholds: tuple[float, float] = (0.33, 0.66)
    max_text_length: int = Field(default=5000, gt=0)
    truncate_long_text: bool = False

    # Cache
    cache_capacity: int = Field(default=256, gt=0)
    cache_ttl_seconds: float | None = 24 * 60 * 60

    # Staging
    staging_dir: Path = Path(tempfile.gettempdir()) / "vishguard" / "staging"
    stage_chunk_bytes: int = Field(default=64 * 1024, gt=0)

    # HTTP adapter
    api_host: str = "127.0.0.1"
    api_port: int = 8100
    max_upload_bytes: int = Field(default=50 * 1024 * 1024, gt=0)

    # Logging
    log_level: str = "INFO"
    log_json: bool = True

    @field_validator("risk_band_thresholds")
    @classmethod
    def _check_thresholds(cls, value: tuple[float, float]) -> tuple[float, float]:
        low, high = value
        if not 0.0 <= low <= high <= 1.0:
            raise ValueError("risk_band_thresholds must satisfy 0 <= low <= high <= 1")
        return value

    @field_validator("positive_class_labels")
    @classmethod
    def _normalize_labels(cls, value: set[str]) -> set[str]:
        return {label.strip().casefold() for label in value if label.strip()}


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
