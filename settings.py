from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # --- Dialect selection ---
    DEFAULT_DIALECT: str = "https://json-schema.org/draft/2020-12/schema"
    UNKNOWN_DIALECT_POLICY: Literal["error", "default"] = "error"

    VALIDATE_FORMATS: bool = True

    # --- Depth guards ---
    MAX_SCHEMA_DEPTH: int = 100
    MAX_EVALUATION_DEPTH: int = 100

    CACHE_MAXSIZE: int = 128

    LOG_LEVEL: str = "WARNING"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()


def reset_settings_cache() -> None:
    get_settings.cache_clear()
