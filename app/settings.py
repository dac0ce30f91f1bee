from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


FEEDS_DIR = Path(__file__).resolve().parents[1] / "feeds"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    db_path: Path = Field(default=Path("data/incidents.db"), validation_alias="DB_PATH")
    feeds_dir: Path = Field(default=FEEDS_DIR, validation_alias="FEEDS_DIR")

    user_agent: str = Field(
        default="incident-fusion/0.1", validation_alias="USER_AGENT"
    )
    request_timeout_seconds: float = Field(
        default=15.0, gt=0, validation_alias="REQUEST_TIMEOUT_SECONDS"
    )
    cycle_interval_seconds: int = Field(
        default=300, gt=0, validation_alias="CYCLE_INTERVAL_SECONDS"
    )
    feed_concurrency: int = Field(default=8, ge=1, validation_alias="FEED_CONCURRENCY")

    nvd_api_key: str | None = Field(default=None, validation_alias="NVD_API_KEY")

    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    run_on_start: bool = Field(default=True, validation_alias="RUN_ON_START")
