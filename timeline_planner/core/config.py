"""
Planner configuration using Pydantic Settings.

Values are read from environment variables (or a local .env file) so a host
application can tune time-scale densities and interaction limits without code changes.
"""

from datetime import timedelta
from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

from timeline_planner.models.enums import TimeScale


class Settings(BaseSettings):
    """Planner settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # ===========================================
    # General
    # ===========================================
    DEBUG: bool = False
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # ===========================================
    # Persistence (reference SQLite collaborator)
    # ===========================================
    DATABASE_URL: str = "sqlite+aiosqlite:///./timeline.db"

    # ===========================================
    # Time scale
    # ===========================================
    DEFAULT_TIME_SCALE: TimeScale = TimeScale.DAY

    # Pixel density per time unit for each scale
    PIXELS_PER_HOUR: float = 30.0
    PIXELS_PER_DAY: float = 20.0
    PIXELS_PER_WEEK: float = 60.0
    PIXELS_PER_MONTH: float = 120.0

    # ===========================================
    # Interaction
    # ===========================================
    # Resize floor, in days
    MINIMUM_DURATION_DAYS: int = 1

    # ===========================================
    # Layout
    # ===========================================
    CHART_PADDING_DAYS: int = 5
    MIN_BAR_WIDTH: float = 20.0
    ROW_HEIGHT: float = 40.0
    BAR_HEIGHT: float = 24.0

    # Trailing-edge delay for layout/connector recompute bursts
    LAYOUT_DEBOUNCE_MS: int = 100

    # ===========================================
    # Connector routing (tunable heuristic)
    # ===========================================
    CONNECTOR_MAX_OFFSET: float = 80.0
    CONNECTOR_MIN_OFFSET: float = 20.0

    @property
    def minimum_duration(self) -> timedelta:
        """Smallest interval a resize may produce."""
        return timedelta(days=self.MINIMUM_DURATION_DAYS)

    def pixels_per_unit(self, time_scale: TimeScale) -> float:
        """Get the default pixel density for a time scale."""
        densities = {
            TimeScale.HOUR: self.PIXELS_PER_HOUR,
            TimeScale.DAY: self.PIXELS_PER_DAY,
            TimeScale.WEEK: self.PIXELS_PER_WEEK,
            TimeScale.MONTH: self.PIXELS_PER_MONTH,
        }
        return densities[TimeScale(time_scale)]


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Using lru_cache ensures settings are loaded only once.
    """
    return Settings()
