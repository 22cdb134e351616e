"""Runtime settings loaded from the environment (``TABLEVIEW_*``)."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

LogLevel = Literal["CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="TABLEVIEW_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    app_title: str = Field(default="tableview", description="Human readable API name.")
    log_level: LogLevel = Field(default="INFO", description="Root log level.")
    collation_locale: str = Field(
        default="",
        description="LC_COLLATE used for string sorting; empty keeps the process default.",
    )
    max_upload_bytes: int = Field(
        default=64 * 1024 * 1024,
        ge=1,
        description="Largest accepted upload; whole files are held in memory.",
    )
    data_dir: Optional[Path] = Field(
        default=None,
        description=(
            "Directory that /open and /export paths are confined to. Relative paths "
            "resolve against it. Unset means any path the process can reach, so leave "
            "it unset only when the API is not exposed beyond the local machine."
        ),
    )
    max_sessions: int = Field(
        default=32,
        ge=1,
        description="Sessions kept in memory; the least recently used one is dropped first.",
    )


@lru_cache
def get_settings() -> Settings:
    return Settings()
