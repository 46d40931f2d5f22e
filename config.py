"""
Configuration settings for HanziNet.

Uses Pydantic Settings for environment variable management with .env file support.
"""
from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from hanzinet.scheduling.character_track import CharacterTrackConfig
from hanzinet.scheduling.sm2 import SM2Config
from hanzinet.scheduling.unlock import UnlockConfig
from hanzinet.verification.base import CheckerOptions


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ========================================
    # Storage
    # ========================================
    data_dir: Path = Field(
        default=Path.home() / ".hanzinet",
        description="Directory for the database, templates and keyed progress",
    )
    database_path: Path | None = Field(
        default=None,
        description="SQLite learning-state database (defaults to <data_dir>/state.db)",
    )

    # ========================================
    # Logging
    # ========================================
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="WARNING",
        description="Minimum level written to stderr",
    )
    log_file: Path | None = Field(
        default=None,
        description="Optional log file (rotated at 10 MB)",
    )

    # ========================================
    # Answer checking
    # ========================================
    accept_toneless_pinyin: bool = Field(
        default=True,
        description="Accept pinyin typed without tone marks or numbers",
    )
    fuzzy_max_distance: int = Field(
        default=2,
        ge=0,
        description="Edit distance tolerated in network self-test answers",
    )

    # ========================================
    # Character track (SRS)
    # ========================================
    srs_introductory_interval_hours: float = Field(
        default=1.0,
        gt=0,
        description="Interval after the first correct review",
    )
    srs_milestone_interval_days: float = Field(
        default=7.0,
        gt=0,
        description="Interval at which an item counts as learned",
    )
    srs_max_ease_factor: float = Field(
        default=2.25,
        ge=1.3,
        description="Ease factor cap on correct answers",
    )

    # ========================================
    # Arrow track (SM-2)
    # ========================================
    sm2_initial_ease_factor: float = Field(
        default=2.5,
        ge=1.3,
        description="Ease factor for arrows studied for the first time",
    )

    # ========================================
    # Unlock pacing
    # ========================================
    unlock_interval_hours: float = Field(default=24.0, ge=0)
    items_per_unlock: int = Field(default=5, ge=1)
    max_ready_to_learn: int = Field(default=10, ge=1)
    unlocks_per_milestone: int = Field(default=1, ge=0)
    initial_ready_count: int = Field(default=30, ge=0)

    # ========================================
    # Sessions
    # ========================================
    self_study_batch_size: int = Field(default=20, ge=1)
    review_batch_size: int = Field(default=20, ge=1)

    # ========================================
    # Helper Methods
    # ========================================
    def get_database_path(self) -> Path:
        """Database path, falling back to the data directory."""
        return self.database_path or self.data_dir / "state.db"

    def get_templates_dir(self) -> Path:
        return self.data_dir / "templates"

    def get_progress_dir(self) -> Path:
        """Directory for keyed progress entries."""
        return self.data_dir / "progress"

    def get_character_track_config(self) -> CharacterTrackConfig:
        return CharacterTrackConfig(
            introductory_interval_days=self.srs_introductory_interval_hours / 24,
            milestone_interval_days=self.srs_milestone_interval_days,
            max_ease_factor=self.srs_max_ease_factor,
        )

    def get_sm2_config(self) -> SM2Config:
        return SM2Config(initial_easiness=self.sm2_initial_ease_factor)

    def get_unlock_config(self) -> UnlockConfig:
        return UnlockConfig(
            unlock_interval_hours=self.unlock_interval_hours,
            items_per_unlock=self.items_per_unlock,
            max_ready_to_learn=self.max_ready_to_learn,
            unlocks_per_milestone=self.unlocks_per_milestone,
            initial_ready_count=self.initial_ready_count,
        )

    def get_checker_options(self) -> CheckerOptions:
        return CheckerOptions(
            accept_toneless_pinyin=self.accept_toneless_pinyin,
            fuzzy_max_distance=self.fuzzy_max_distance,
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
