"""
backend/config.py

Application configuration via Pydantic Settings.
All values can be overridden with environment variables or a .env file.

Quick start — create a .env file in your project root:
    METRIC_KIND=walking_speed
    TIMEZONE=America/Los_Angeles
    UNIT_SYSTEM=imperial
"""

from __future__ import annotations

import logging
from typing import Annotated
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from .models import MetricKind

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Metric shown by this instantiation (one quantity type per screen)
    METRIC_KIND: str = MetricKind.WALKING_SPEED.value

    # Calendar — "start of local day" is computed in this zone
    TIMEZONE: str = "UTC"

    # Display — "metric" or "imperial"
    UNIT_SYSTEM: str = "metric"

    # Sample store
    DB_PATH: str = "data/samples.db"

    # Metric kinds the store refuses to authorize
    DENIED_METRIC_KINDS: Annotated[list[str], NoDecode] = []

    # Update channel between query callbacks and the presentation store
    UPDATE_QUEUE_SIZE: int = 1_000

    # Logging
    LOG_LEVEL: str = "INFO"

    @field_validator("METRIC_KIND")
    @classmethod
    def check_metric_kind(cls, v: str) -> str:
        return MetricKind(v.strip().lower()).value

    @field_validator("TIMEZONE")
    @classmethod
    def check_timezone(cls, v: str) -> str:
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"unknown timezone {v!r}") from exc
        return v

    @field_validator("UNIT_SYSTEM")
    @classmethod
    def check_unit_system(cls, v: str) -> str:
        v = v.strip().lower()
        if v not in ("metric", "imperial"):
            raise ValueError(f"UNIT_SYSTEM must be 'metric' or 'imperial', got {v!r}")
        return v

    @field_validator("DENIED_METRIC_KINDS", mode="before")
    @classmethod
    def parse_denied_kinds(cls, v):
        if isinstance(v, str):
            import json as _json
            v = v.strip()
            if v.startswith("["):
                try:
                    return _json.loads(v)
                except ValueError:
                    pass
            return [kind.strip().lower() for kind in v.split(",") if kind.strip()]
        return v

    @property
    def tzinfo(self) -> ZoneInfo:
        return ZoneInfo(self.TIMEZONE)


def configure_logging(level: str | None = None) -> None:
    """Configure root logging for a UI shell embedding the core."""
    logging.basicConfig(
        level=getattr(logging, (level or settings.LOG_LEVEL).upper()),
        format=LOG_FORMAT,
        datefmt="%H:%M:%S",
    )


settings = Settings()
