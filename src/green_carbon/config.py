"""Validated tracker configuration.

The configuration is resolved exactly once, when a tracker is constructed.
Explicit keyword arguments win over environment settings, which win over the
model defaults declared here.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Literal
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator

from green_carbon.settings import GreenCarbonSettings, get_settings

__all__ = ["LogLevelName", "TrackerConfig"]

LogLevelName = Literal["DEBUG", "INFO", "WARNING", "ERROR"]

_SETTINGS_FIELD_MAP: dict[str, str] = {
    "project_name": "project_name",
    "measure_power_interval_seconds": "measure_power_secs",
    "country_code": "country_code",
    "region": "region",
    "pue": "pue",
    "output_file": "output_file",
    "save_to_file": "save_to_file",
    "log_level": "log_level",
    "force_cpu_power": "force_cpu_power",
    "force_ram_power": "force_ram_power",
    "force_gpu_power": "force_gpu_power",
}


class TrackerConfig(BaseModel):
    """Fully enumerated, immutable configuration for one tracking session."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    project_name: str = Field(default="green-carbon-project", min_length=1)
    measure_power_interval_seconds: float = Field(default=15.0, gt=0)
    country_code: str | None = Field(
        default=None,
        description="ISO 3166 alpha-3 country code; auto-resolved when unset.",
    )
    region: str | None = Field(
        default=None,
        description="Sub-region code such as a US state or Canadian province.",
    )
    pue: float = Field(default=1.0, ge=1.0)
    force_cpu_power: float | None = Field(default=None, ge=0)
    force_ram_power: float | None = Field(default=None, ge=0)
    force_gpu_power: float | None = Field(default=None, ge=0)
    save_to_file: bool = True
    output_file: Path = Path("emissions.csv")
    log_level: LogLevelName = "INFO"
    experiment_id: str = Field(default_factory=lambda: str(uuid4()))
    location_provider: Literal["locale", "geojs"] = "locale"
    structured_logging: bool = True

    @field_validator("country_code", "region", mode="before")
    @classmethod
    def _normalise_code(cls, value: object) -> object:
        if value is None:
            return None
        if isinstance(value, str):
            stripped = value.strip().upper()
            return stripped or None
        return value

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalise_level(cls, value: object) -> object:
        if isinstance(value, str):
            upper = value.strip().upper()
            return "WARNING" if upper == "WARN" else upper
        return value

    @property
    def log_level_number(self) -> int:
        """Return the numeric :mod:`logging` level for ``log_level``."""
        return logging.getLevelNamesMapping()[self.log_level]

    @property
    def verbose(self) -> bool:
        """Whether the human-readable summary should be printed."""
        return self.log_level in ("DEBUG", "INFO")

    def power_overrides(self) -> dict[str, float]:
        """Return the configured fixed wattages keyed by domain name."""
        overrides = {
            "cpu": self.force_cpu_power,
            "ram": self.force_ram_power,
            "gpu": self.force_gpu_power,
        }
        return {name: value for name, value in overrides.items() if value is not None}

    @classmethod
    def from_settings(
        cls,
        settings: GreenCarbonSettings | None = None,
        **overrides: object,
    ) -> TrackerConfig:
        """Build a configuration from environment settings and overrides.

        Args:
            settings: Settings instance; read from the environment when omitted.
            **overrides: Explicit field values. ``None`` values are ignored so
                callers can forward optional arguments unchanged.

        Returns:
            A validated :class:`TrackerConfig`.

        Raises:
            pydantic.ValidationError: If the merged values are invalid.
        """

        settings_obj = settings or get_settings()
        values: dict[str, object] = {}
        for field_name, settings_name in _SETTINGS_FIELD_MAP.items():
            env_value = getattr(settings_obj, settings_name)
            if env_value is not None:
                values[field_name] = env_value
        values.update({key: value for key, value in overrides.items() if value is not None})
        return cls.model_validate(values)
