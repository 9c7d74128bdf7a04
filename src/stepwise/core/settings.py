"""Environment-driven settings for stepwise.

``StepwiseSettings`` supplies process-wide *defaults* only. Every engine
still owns its own mutable :class:`~stepwise.execution.options.EngineOptions`
record; settings merely seed it via ``EngineOptions.from_settings()``.

Manifesto:
    Configuration should be explicit, validated, and environment-driven.

    - **Pydantic validation:** Type-checked at startup, not at first use
    - **Environment-driven:** Reads ``STEPWISE_*`` env vars and ``.env`` files
    - **Sensible defaults:** Sorting and duplicate checks off, INFO logging

Examples:
    >>> import os
    >>> os.environ["STEPWISE_DUPLICATES_CHECK_ENABLED"] = "true"
    >>> reset_settings()
    >>> get_settings().duplicates_check_enabled
    True

Tags:
    settings, configuration, pydantic, environment, stepwise

Doc-Types:
    - API Reference
    - Configuration Guide
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class StepwiseSettings(BaseSettings):
    """Defaults for engines and logging.

    Fields
    ──────
    log_level                 : Structlog log level
    log_json                  : Force JSON (True) / console (False) output, auto if unset
    pre_execute_sort_enabled  : Default for ``EngineOptions.pre_execute_sort_enabled``
    duplicates_check_enabled  : Default for ``EngineOptions.duplicates_check_enabled``
    """

    model_config = SettingsConfigDict(
        env_prefix="STEPWISE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Observability ────────────────────────────────────────────
    log_level: str = "INFO"
    log_json: bool | None = None

    # ── Engine defaults ──────────────────────────────────────────
    pre_execute_sort_enabled: bool = Field(
        default=False,
        description="Sort steps by priority hint before each execution",
    )
    duplicates_check_enabled: bool = Field(
        default=False,
        description="Reject registering the same step reference twice",
    )

    @field_validator("log_level")
    @classmethod
    def _normalize_level(cls, value: str) -> str:
        level = value.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unsupported log level: {value}")
        return level


@lru_cache(maxsize=1)
def get_settings() -> StepwiseSettings:
    """Return the cached settings instance (read once from the environment)."""
    return StepwiseSettings()


def reset_settings() -> None:
    """Drop the cached settings so the next call re-reads the environment."""
    get_settings.cache_clear()


__all__ = ["StepwiseSettings", "get_settings", "reset_settings"]
