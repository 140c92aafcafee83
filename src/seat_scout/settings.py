"""Runtime settings loaded from environment variables."""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class SeatScoutSettings(BaseSettings):
    """Configuration for the seat-scout services.

    Values are read from ``SEAT_SCOUT_*`` environment variables
    (case-insensitive) and optionally from a ``.env`` file in the working
    directory.
    """

    data_dir: Path = Field(default_factory=lambda: Path.home() / ".seat-scout")
    fetch_timeout_seconds: float = Field(default=5.0, gt=0)
    score_cache_ttl_seconds: int = Field(default=300, ge=0)
    record_score_history: bool = True
    case_retention_years: int = Field(default=10, ge=1)

    host: str = "127.0.0.1"
    port: int = 5001

    model_config = SettingsConfigDict(
        env_prefix="SEAT_SCOUT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @property
    def db_path(self) -> Path:
        return self.data_dir / "seat_scout.db"


settings = SeatScoutSettings()
