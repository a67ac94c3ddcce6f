from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DispatcherSettings(BaseSettings):
    """Construction defaults for :class:`~event_dispatcher.dispatcher.Dispatcher`.

    Values are loaded from ``DISPATCHER_*`` environment variables (or a
    ``.env`` file) and may be overridden via CLI flags.
    """

    # Naming
    name_prefix: str = ""
    auto_prefix: bool = False

    # Logging
    log_level: str = "INFO"
    log_format: Literal["plain", "json"] = "plain"

    # pydantic-settings v2 configuration
    model_config = SettingsConfigDict(
        env_prefix="DISPATCHER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("name_prefix")
    @classmethod
    def _strip_prefix(cls, value: str) -> str:
        return value.strip()

    @field_validator("log_level")
    @classmethod
    def _upper_level(cls, value: str) -> str:
        return value.upper()


@lru_cache(maxsize=1)
def get_settings() -> DispatcherSettings:
    return DispatcherSettings()
