"""Typed settings configuration - single source of truth."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Replanning collaborator (unset = deterministic offline replanner)
    replanner_url: str | None = None
    replanner_timeout_s: float = 10.0

    # Time-bounded UI state (seconds)
    undo_window_seconds: float = 60.0
    blocker_delta_display_seconds: float = 12.0
    confirm_debounce_seconds: float = 1.0

    # Certainty history
    certainty_history_max: int = 5

    # Input defaults
    default_days_until_travel: int = 365
    default_certainty_score: int = 50

    # Fraction under budget that still counts as "at budget" when ranking fixes
    near_budget_tolerance: float = 0.0


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
