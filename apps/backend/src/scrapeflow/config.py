from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # ------------------------------------------------------------------
    # Storage
    # ------------------------------------------------------------------
    data_dir: Path = Path("data")  # workflows/ and jobs.json live here

    # ------------------------------------------------------------------
    # Logging
    # ------------------------------------------------------------------
    log_level: str = "INFO"

    # ------------------------------------------------------------------
    # Scheduling
    # ------------------------------------------------------------------
    # Used when a job carries no timezone of its own
    default_timezone: str = "UTC"
    # "per_job": run the cycle detector once per job with fresh sets
    # "multi_source": one memoised traversal shared across all start jobs
    cycle_detection: Literal["per_job", "multi_source"] = "per_job"

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------
    cors_origins: list[str] = ["http://localhost:5173", "http://localhost:3000"]

    class Config:
        env_file = ".env"
        env_prefix = "SCRAPEFLOW_"
        case_sensitive = False


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
