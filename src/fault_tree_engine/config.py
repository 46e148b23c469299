"""Configuration management for the fault tree engine."""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict
import tomllib


class LoggingConfig(BaseModel):
    """Logging configuration settings."""

    # Logging severity threshold (INFO/DEBUG/etc.).
    level: str = Field(default="INFO", description="Logging level")
    # Emit JSON if True; otherwise emit a human-readable format.
    json_logs: bool = Field(default=True, description="Emit JSON logs")
    # Optional file path for log output; if None, logs go to stderr.
    log_file: str | None = Field(default=None, description="Optional log file path")
    max_bytes: int = Field(default=1_000_000, description="Max log file size before rotation")
    backup_count: int = Field(default=3, description="Number of rotated log files to keep")


class AnalysisConfig(BaseModel):
    """Quantification limits and options."""

    # Cap on cut sets kept per gate; None disables the cap.
    max_cut_sets: int | None = Field(default=100_000, ge=1, description="Cut set cap per gate")
    # Importance needs two extra propagations per event.
    compute_importance: bool = Field(default=True, description="Compute importance measures")


class EngineSettings(BaseSettings):
    """Configuration settings loaded from env or optional TOML."""

    # Environment keys use FTE_ prefix and "__" nesting.
    model_config = SettingsConfigDict(env_prefix="FTE_", env_nested_delimiter="__", extra="ignore")

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    analysis: AnalysisConfig = Field(default_factory=AnalysisConfig)

    @classmethod
    def from_toml(cls, path: str | Path) -> "EngineSettings":
        data = tomllib.loads(Path(path).read_text())
        return cls.model_validate(data)
