"""
Configuration management using pydantic-settings.

Hierarchical configuration with environment variable support.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class PipelineSettings(BaseSettings):
    """Stage parameters for the reference processing chain."""

    model_config = SettingsConfigDict(env_prefix="PIPELINE_")

    aggregation_window: int = Field(default=20, ge=1, description="Aggregation window (items)")

    anomaly_threshold: float = Field(default=2.5, gt=0.0, description="Z-score threshold")
    anomaly_history: int = Field(default=50, ge=1, description="Anomaly history size (items)")
    anomaly_min_history: int = Field(default=10, ge=1)

    trend_window: int = Field(default=15, ge=1, description="Trend SMA window (items)")
    trend_min_samples: int = Field(default=5, ge=1)
    trend_stable_percent: float = Field(default=5.0, ge=0.0)

    normalization_divisor: float = Field(default=200.0, gt=0.0)
    aggregate_log_every: int = Field(default=20, ge=1, description="Log every Nth aggregation")


class GeneratorSettings(BaseSettings):
    """Synthetic data source settings."""

    model_config = SettingsConfigDict(env_prefix="GENERATOR_")

    base_value: float = Field(default=100.0)
    volatility: float = Field(default=15.0, ge=0.0)
    trend_rate: float = Field(default=0.2)
    anomaly_probability: float = Field(default=0.08, ge=0.0, le=1.0)
    count: int = Field(default=100, ge=0, description="Number of observations to generate")
    interval_ms: int = Field(default=50, ge=0, description="Delay between observations")
    seed: int | None = Field(default=None)


class ExportSettings(BaseSettings):
    """Result export settings."""

    model_config = SettingsConfigDict(env_prefix="EXPORT_")

    output_path: Path = Field(default=Path("stream_results.json"))
    metrics_path: Path | None = Field(default=None, description="Prometheus text dump")

    @field_validator("output_path", mode="before")
    @classmethod
    def validate_output_path(cls, v: str | Path) -> Path:
        return Path(v)


class AppSettings(BaseSettings):
    """Application-level settings."""

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    env: Literal["development", "staging", "production"] = Field(default="development")
    debug: bool = Field(default=True)
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(default="INFO")
    log_format: Literal["json", "console"] = Field(default="console")

    # Nested settings
    pipeline: PipelineSettings = Field(default_factory=PipelineSettings)
    generator: GeneratorSettings = Field(default_factory=GeneratorSettings)
    export: ExportSettings = Field(default_factory=ExportSettings)

    @property
    def is_production(self) -> bool:
        return self.env == "production"

    @property
    def is_development(self) -> bool:
        return self.env == "development"


@lru_cache
def get_settings() -> AppSettings:
    """Get cached application settings."""
    return AppSettings()
