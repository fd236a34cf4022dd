# src/config/settings.py — v2
"""Typed configuration loaded from .env via pydantic-settings.

Single source of truth for storage, classifier, validator and logging
settings. Cross-field rules are checked in ``validate_config_consistency``.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigurationError(Exception):
    """Raised when configuration is internally inconsistent."""


class Settings(BaseSettings):
    """Application settings loaded from .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # === Cache ===
    cache_backend: Literal["json", "sqlite", "redis"] = "json"
    cache_root: Path = Path("~/.reqcache/cache")
    cache_redis_url: str = ""
    cache_redis_prefix: str = "reqcache:"
    on_hash_mismatch: Literal["accept", "reject"] = "accept"

    # === Element classifier ===
    classifier_min_line_length: int = 20
    classifier_max_line_length: int = 500
    classifier_strict_mode: bool = False
    classifier_include_low_priority: bool = True

    # === Consistency validator ===
    requirement_id_prefix: str = "BR"
    test_id_prefix: str = "TC"
    row_tolerance: int = 2
    count_tolerance: int = 0
    valid_score_threshold: int = 80

    # === Drift history ===
    history_max_records_per_digest: int = 50
    history_max_age_seconds: int | None = None

    # === Logging ===
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "text"] = "json"
    log_file: Path | None = None
    log_rotation: str = "10MB"
    log_retention: int = 30

    # --- Validators ---

    @field_validator("requirement_id_prefix", "test_id_prefix")
    @classmethod
    def validate_id_prefix(cls, v: str) -> str:  # noqa: N805
        """ID prefixes are bare alphanumeric tokens such as BR or TC."""
        v = v.strip().rstrip("-")
        if not v or not v.isalnum():
            raise ValueError("ID prefix must be alphanumeric, e.g. 'BR'")
        return v.upper()

    @model_validator(mode="after")
    def validate_config_consistency(self) -> Settings:
        """Validate cross-field consistency rules."""
        errors: list[str] = []

        if self.classifier_min_line_length < 0:
            errors.append("CLASSIFIER_MIN_LINE_LENGTH must be >= 0")

        if self.classifier_min_line_length >= self.classifier_max_line_length:
            errors.append(
                "CLASSIFIER_MIN_LINE_LENGTH must be < CLASSIFIER_MAX_LINE_LENGTH"
            )

        if not 0 <= self.valid_score_threshold <= 100:
            errors.append("VALID_SCORE_THRESHOLD must be within 0-100")

        if self.row_tolerance < 0 or self.count_tolerance < 0:
            errors.append("ROW_TOLERANCE and COUNT_TOLERANCE must be >= 0")

        if self.history_max_records_per_digest < 1:
            errors.append("HISTORY_MAX_RECORDS_PER_DIGEST must be >= 1")

        if self.cache_backend == "redis" and not self.cache_redis_url:
            errors.append("CACHE_REDIS_URL must be set when CACHE_BACKEND=redis")

        if errors:
            raise ConfigurationError("; ".join(errors))

        return self


def load_settings(**overrides: object) -> Settings:
    """Load settings from .env with optional overrides.

    Args:
        **overrides: Field-level overrides (for testing or per-call config).

    Returns:
        Validated Settings instance.

    Raises:
        ConfigurationError: If configuration is internally inconsistent.
    """
    return Settings(**overrides)  # type: ignore[arg-type]
