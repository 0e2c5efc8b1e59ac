"""
Application configuration models and helpers.

Centralizes settings management so the FastAPI app, the data aggregator and
the signal agents share a consistent configuration surface.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional

import os

from pydantic import AnyHttpUrl, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _load_env_file(path: str = ".env") -> None:
    """Best-effort load key=value pairs from a .env file without extra deps."""
    env_path = Path(path)
    if not env_path.exists():
        return
    for raw_line in env_path.read_text().splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        key, sep, value = line.partition("=")
        if not sep:
            continue
        key = key.strip()
        if not key or key in os.environ:
            continue
        cleaned = value.strip().strip('"').strip("'")
        os.environ[key] = cleaned


_load_env_file()


class NotionSettings(BaseSettings):
    """Configuration for the Notion-backed record store."""

    api_key: str = Field(..., validation_alias="NOTION_API_KEY")
    api_url: AnyHttpUrl = Field(
        "https://api.notion.com/v1", validation_alias="NOTION_API_URL"
    )
    api_version: str = Field("2022-06-28", validation_alias="NOTION_VERSION")
    timeout_seconds: float = Field(15.0, validation_alias="NOTION_TIMEOUT_SECONDS")
    companies_db_id: str = Field(..., validation_alias="NOTION_COMPANIES_DB_ID")
    sessions_db_id: str = Field(..., validation_alias="NOTION_SESSIONS_DB_ID")
    expert_requests_db_id: str = Field(
        ..., validation_alias="NOTION_EXPERT_REQUESTS_DB_ID"
    )
    retrospectives_db_id: str = Field(
        ..., validation_alias="NOTION_RETROSPECTIVES_DB_ID"
    )
    objective_items_db_id: str = Field(
        ..., validation_alias="NOTION_OBJECTIVE_ITEMS_DB_ID"
    )
    objective_values_db_id: str = Field(
        ..., validation_alias="NOTION_OBJECTIVE_VALUES_DB_ID"
    )
    batch_dashboard_db_id: Optional[str] = Field(
        None,
        validation_alias="NOTION_BATCH_DASHBOARD_DB_ID",
        description="Optional cross-company dashboard database used for enrichment.",
    )


class AggregationSettings(BaseSettings):
    """Tuning knobs for snapshot assembly."""

    record_cache_ttl_seconds: int = Field(900, validation_alias="RECORD_CACHE_TTL")
    enrichment_timeout_seconds: float = Field(
        8.0,
        validation_alias="ENRICHMENT_TIMEOUT_SECONDS",
        description="Upper bound on waiting for the optional batch dashboard fetch.",
    )
    analysis_archive_db_path: str = Field(
        "data/analyses.db", validation_alias="ANALYSIS_ARCHIVE_DB_PATH"
    )

    @field_validator("enrichment_timeout_seconds")
    @classmethod
    def _positive_timeout(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("enrichment timeout must be positive")
        return value


class AppSettings(BaseSettings):
    """Root settings object for the service."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    environment: str = Field("development", validation_alias="APP_ENV")
    log_level: str = Field("INFO", validation_alias="APP_LOG_LEVEL")
    lexicon_path: Optional[str] = Field(
        None,
        validation_alias="LEXICON_PATH",
        description="Optional JSON file overriding the built-in vocabulary tables.",
    )
    notion: NotionSettings = Field(default_factory=NotionSettings)
    aggregation: AggregationSettings = Field(default_factory=AggregationSettings)


@lru_cache()
def get_settings() -> AppSettings:
    """Return a cached settings object."""
    return AppSettings()  # type: ignore[call-arg]


__all__ = [
    "AggregationSettings",
    "AppSettings",
    "NotionSettings",
    "get_settings",
]
