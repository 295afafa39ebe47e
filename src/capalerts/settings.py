"""Configuration settings for capalerts."""

from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .reasons import Level


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="CAP_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    validate_alerts: bool = Field(default=False, alias="CAP_VALIDATE")
    strict_schema: bool = False
    indent: int | None = 2
    schema_dir: Path | None = None
    fail_level: str = "ERROR"
    http_timeout_seconds: float = 15.0
    log_level: str = "INFO"

    @model_validator(mode="after")
    def _check_values(self) -> "Settings":
        if self.indent is not None and self.indent < 0:
            raise ValueError("indent must not be negative")
        self.fail_level = self.fail_level.strip().upper()
        if self.fail_level not in Level.__members__:
            raise ValueError(f"fail_level must be one of {', '.join(Level.__members__)}")
        self.log_level = self.log_level.strip().upper()
        if not isinstance(logging.getLevelName(self.log_level), int):
            raise ValueError(f"unknown log_level {self.log_level!r}")
        if self.schema_dir is not None and not self.schema_dir.is_dir():
            raise ValueError(f"schema_dir {self.schema_dir} is not a directory")
        if self.http_timeout_seconds <= 0:
            raise ValueError("http_timeout_seconds must be positive")
        return self

    @property
    def failing_level(self) -> Level:
        return Level[self.fail_level]

    @property
    def logging_level(self) -> int:
        return logging.getLevelName(self.log_level)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
