"""
Configuration settings for the Simorgh review scheduler.

Uses Pydantic Settings for environment variable management with .env file support.
Every setting can be overridden with a ``SIMORGH_`` prefixed environment variable,
e.g. ``SIMORGH_SCHEDULING_POLICY=boolean``.
"""
from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="SIMORGH_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ========================================
    # Database
    # ========================================
    database_url: str = Field(
        default="sqlite:///simorgh_reviews.db",
        description="SQLAlchemy connection string for review records and summaries",
    )

    # ========================================
    # Scheduling Policy
    # ========================================
    scheduling_policy: Literal["graded", "boolean"] = Field(
        default="graded",
        description="graded = SM-2 with 0-5 quality, boolean = doubling interval (offline app)",
    )
    sm2_initial_ease: float = Field(
        default=2.5,
        description="Ease factor for new and reset items",
    )
    sm2_minimum_ease: float = Field(
        default=1.3,
        description="Floor for the ease factor",
    )
    sm2_first_interval: int = Field(
        default=1,
        description="Days after the first successful review",
    )
    sm2_second_interval: int = Field(
        default=6,
        description="Days after the second consecutive successful review",
    )
    graded_max_interval_days: int | None = Field(
        default=None,
        description="Optional interval cap for the graded policy (None = uncapped)",
    )
    boolean_max_interval_days: int = Field(
        default=30,
        description="Interval cap for the boolean policy",
    )

    # ========================================
    # Gamification
    # ========================================
    points_correct: int = Field(
        default=10,
        ge=0,
        description="Points granted for a correct review",
    )
    points_incorrect: int = Field(
        default=4,
        ge=0,
        description="Points granted for an incorrect review (engagement reward)",
    )
    points_per_level: int = Field(
        default=100,
        ge=1,
        description="Points needed per level",
    )
    study_timezone: str = Field(
        default="UTC",
        description="IANA timezone used to decide calendar days for streaks",
    )

    # ========================================
    # Due Queue
    # ========================================
    default_due_limit: int = Field(
        default=10,
        description="Default number of due items returned when no limit is given",
    )

    # ========================================
    # Logging
    # ========================================
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Logging verbosity level",
    )
    log_file: str | None = Field(
        default=None,
        description="Log file path (None for stderr only)",
    )

    # ========================================
    # API Server
    # ========================================
    api_host: str = Field(
        default="127.0.0.1",
        description="API server host",
    )
    api_port: int = Field(
        default=8200,
        description="API server port",
    )

    @field_validator("sm2_minimum_ease")
    @classmethod
    def _minimum_ease_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("sm2_minimum_ease must be positive")
        return v

    @field_validator("boolean_max_interval_days", "graded_max_interval_days")
    @classmethod
    def _cap_at_least_one(cls, v: int | None) -> int | None:
        if v is not None and v < 1:
            raise ValueError("interval caps must be at least 1 day")
        return v


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
