"""Environment-backed settings primitives for :mod:`green_carbon`."""

from __future__ import annotations

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

__all__ = ["GreenCarbonSettings", "get_settings"]


class GreenCarbonSettings(BaseSettings):
    """Expose environment-derived configuration knobs for the tracker.

    Every environment lookup made by the package flows through this class.
    All attributes default to ``None`` when the variable is absent so that
    :class:`~green_carbon.config.TrackerConfig` can tell "unset" apart from an
    explicit value.

    Attributes:
        project_name: Default project name recorded with each session.
        measure_power_secs: Sampling interval in seconds.
        country_code: Manual ISO alpha-3 country override.
        region: Manual sub-region override (for example ``"CA"``).
        pue: Power usage effectiveness multiplier.
        output_file: Destination CSV path for durable records.
        save_to_file: Whether durable records are written at all.
        log_level: Logging verbosity name.
        force_cpu_power: Fixed CPU wattage bypassing the sampler.
        force_ram_power: Fixed RAM wattage bypassing the sampler.
        force_gpu_power: Fixed GPU wattage bypassing the sampler.
        cpu_tdp_watts: Explicit CPU TDP used by the heuristic sampler.
        intensity_file: Optional path to a carbon intensity JSON override.
        geojs_url: Endpoint used by the IP geolocation resolver.
        geojs_timeout: Timeout in seconds for IP geolocation requests.
    """

    project_name: str | None = Field(default=None, alias="GREEN_CARBON_PROJECT_NAME")
    measure_power_secs: float | None = Field(
        default=None, alias="GREEN_CARBON_MEASURE_POWER_SECS"
    )
    country_code: str | None = Field(default=None, alias="GREEN_CARBON_COUNTRY_CODE")
    region: str | None = Field(default=None, alias="GREEN_CARBON_REGION")
    pue: float | None = Field(default=None, alias="GREEN_CARBON_PUE")
    output_file: str | None = Field(default=None, alias="GREEN_CARBON_OUTPUT_FILE")
    save_to_file: bool | None = Field(default=None, alias="GREEN_CARBON_SAVE_TO_FILE")
    log_level: str | None = Field(default=None, alias="GREEN_CARBON_LOG_LEVEL")
    force_cpu_power: float | None = Field(
        default=None, alias="GREEN_CARBON_FORCE_CPU_POWER"
    )
    force_ram_power: float | None = Field(
        default=None, alias="GREEN_CARBON_FORCE_RAM_POWER"
    )
    force_gpu_power: float | None = Field(
        default=None, alias="GREEN_CARBON_FORCE_GPU_POWER"
    )
    cpu_tdp_watts: float | None = Field(default=None, alias="CPU_TDP_WATTS")
    intensity_file: str | None = Field(
        default=None, alias="GREEN_CARBON_INTENSITY_FILE"
    )
    geojs_url: str = Field(
        default="https://get.geojs.io/v1/ip/geo.json", alias="GREEN_CARBON_GEOJS_URL"
    )
    geojs_timeout: float = Field(default=0.5, alias="GREEN_CARBON_GEOJS_TIMEOUT")

    model_config = SettingsConfigDict(env_file=None, extra="ignore")

    @field_validator(
        "measure_power_secs",
        "pue",
        "force_cpu_power",
        "force_ram_power",
        "force_gpu_power",
        "cpu_tdp_watts",
        mode="before",
    )
    @classmethod
    def _parse_optional_float(cls, value: object) -> float | None:
        """Parse optional float fields while tolerating malformed input.

        Args:
            value: Raw environment value.

        Returns:
            Parsed float when conversion succeeds, otherwise ``None``.
        """

        if value is None:
            return None
        if isinstance(value, (int, float)):
            return float(value)
        if isinstance(value, str):
            try:
                return float(value.strip())
            except ValueError:
                return None
        return None

    @field_validator("geojs_timeout", mode="before")
    @classmethod
    def _parse_timeout(cls, value: object) -> float:
        """Fall back to the default timeout when the value is malformed."""

        if isinstance(value, (int, float)):
            return float(value)
        if isinstance(value, str):
            try:
                return float(value.strip())
            except ValueError:
                return 0.5
        return 0.5

    @field_validator("save_to_file", mode="before")
    @classmethod
    def _parse_optional_bool(cls, value: object) -> bool | None:
        """Parse boolean flags, treating unrecognised strings as unset."""

        if value is None or isinstance(value, bool):
            return value
        if isinstance(value, str):
            lowered = value.strip().lower()
            if lowered in {"1", "true", "yes", "on"}:
                return True
            if lowered in {"0", "false", "no", "off"}:
                return False
        return None

    @field_validator("country_code", "region", "project_name", "log_level", mode="before")
    @classmethod
    def _blank_as_none(cls, value: object) -> object:
        if isinstance(value, str) and not value.strip():
            return None
        return value


def get_settings() -> GreenCarbonSettings:
    """Return a :class:`GreenCarbonSettings` instance.

    Returns:
        Settings parsed from environment variables.
    """

    return GreenCarbonSettings()
