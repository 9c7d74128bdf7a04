"""Engine options — the mutable configuration record owned by each engine."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any

from stepwise.core.errors import InvalidOptionsError
from stepwise.core.settings import StepwiseSettings, get_settings


@dataclass
class EngineOptions:
    """Per-engine flags, re-read on every registration and every execution.

    Attributes:
        pre_execute_sort_enabled: Order steps by priority hint before running
        duplicates_check_enabled: Reject registering a step reference twice
    """

    pre_execute_sort_enabled: bool = False
    duplicates_check_enabled: bool = False

    @classmethod
    def from_settings(cls, settings: StepwiseSettings | None = None) -> EngineOptions:
        """Seed options from ``STEPWISE_*`` environment settings."""
        settings = settings or get_settings()
        return cls(
            pre_execute_sort_enabled=settings.pre_execute_sort_enabled,
            duplicates_check_enabled=settings.duplicates_check_enabled,
        )

    @classmethod
    def coerce(cls, value: EngineOptions | dict[str, Any] | None) -> EngineOptions:
        """Accept an ``EngineOptions``, a mapping of its fields, or ``None``."""
        if value is None:
            return cls()
        if isinstance(value, cls):
            return value
        if isinstance(value, dict):
            unknown = set(value) - set(cls.__dataclass_fields__)
            if unknown:
                raise InvalidOptionsError(
                    f"Unknown engine options: {sorted(unknown)}",
                    context={"unknown": sorted(unknown)},
                )
            return cls(**value)
        raise InvalidOptionsError(f"Expected EngineOptions or dict, got {type(value).__name__}")

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


__all__ = ["EngineOptions"]
