"""Runtime configuration for the data completeness analysis."""

from __future__ import annotations

from datetime import date
from enum import Enum

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_CUTOFF_DATE = date(2025, 1, 1)
UNASSIGNED_OFFICE = "UNASSIGNED"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class AuthorizationFanout(str, Enum):
    """How events overlapping several authorizations are linked."""

    PRESERVE = "preserve"        # One linked row per overlapping authorization
    MOST_RECENT = "most_recent"  # Keep the latest-admitting authorization only


class CompletenessSettings(BaseSettings):
    """Settings read from the environment (``DATA_COMPLETENESS_*``) or ``.env``."""

    model_config = SettingsConfigDict(
        env_prefix="DATA_COMPLETENESS_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    cutoff_date: date = Field(default=DEFAULT_CUTOFF_DATE)
    authorization_fanout: AuthorizationFanout = Field(default=AuthorizationFanout.PRESERVE)
    strict_validation: bool = Field(default=False)
    unassigned_office: str = Field(default=UNASSIGNED_OFFICE, min_length=1)
    log_level: str = Field(default="INFO")
    json_logs: bool = Field(default=False)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"Unknown log level: {value}")
        return level
