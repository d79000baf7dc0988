"""Carbon intensity lookup by country and sub-region.

Values are grams of CO2 per kWh. Sub-region values (US states, Canadian
provinces) take precedence over the country value when present; unknown
countries fall back to a world-average constant.
"""

from __future__ import annotations

import json
import logging
import pathlib
from collections.abc import Mapping
from dataclasses import dataclass, field
from functools import lru_cache
from importlib import resources
from typing import Final

from green_carbon.settings import get_settings

__all__ = [
    "CarbonIntensityTable",
    "CountryIntensity",
    "WORLD_AVERAGE_INTENSITY_GCO2_KWH",
    "load_intensity_table",
]

LOGGER = logging.getLogger(__name__)

WORLD_AVERAGE_INTENSITY_GCO2_KWH: Final[float] = 475.0


@dataclass(frozen=True, slots=True)
class CountryIntensity:
    """Country-level intensity entry."""

    country_name: str
    carbon_intensity: float


@dataclass(slots=True)
class CarbonIntensityTable:
    """In-memory country and sub-region intensity table.

    Attributes:
        countries: Mapping of ISO alpha-3 codes to country entries.
        regions: Mapping of ISO alpha-3 codes to sub-region intensities.
        world_average: Fallback intensity for unrecognised countries.
    """

    countries: Mapping[str, CountryIntensity] = field(default_factory=dict)
    regions: Mapping[str, Mapping[str, float]] = field(default_factory=dict)
    world_average: float = WORLD_AVERAGE_INTENSITY_GCO2_KWH

    def intensity(self, country_code: str, region: str | None = None) -> float:
        """Return gCO2/kWh for a country, preferring a known sub-region.

        Args:
            country_code: ISO alpha-3 country code.
            region: Optional sub-region code.

        Returns:
            Intensity in grams of CO2 per kWh. Never raises for unknown
            inputs; the world average is returned instead.
        """

        code = country_code.upper()
        entry = self.countries.get(code)
        if entry is None:
            LOGGER.warning(
                "No carbon intensity data for country; using world average",
                extra={"country_code": code, "intensity": self.world_average},
            )
            return self.world_average

        if region:
            regional = self.regions.get(code, {}).get(region.upper())
            if regional is not None:
                return float(regional)
        return entry.carbon_intensity

    def country_name(self, country_code: str) -> str:
        """Return the display name for a country code, or ``"Unknown"``."""
        entry = self.countries.get(country_code.upper())
        return entry.country_name if entry is not None else "Unknown"

    def __contains__(self, country_code: object) -> bool:
        return isinstance(country_code, str) and country_code.upper() in self.countries

    @classmethod
    def from_payload(cls, payload: Mapping[str, object]) -> CarbonIntensityTable:
        """Build a table from the packaged JSON structure.

        Raises:
            ValueError: If the payload does not follow the expected layout.
        """

        raw_countries = payload.get("countries", {})
        raw_regions = payload.get("regions", {})
        if not isinstance(raw_countries, Mapping) or not isinstance(raw_regions, Mapping):
            raise ValueError("Carbon intensity payload must contain mapping sections")

        countries: dict[str, CountryIntensity] = {}
        for code, entry in raw_countries.items():
            if not isinstance(entry, Mapping):
                raise ValueError(f"Invalid country entry for {code!r}")
            countries[str(code).upper()] = CountryIntensity(
                country_name=str(entry.get("country_name", "Unknown")),
                carbon_intensity=float(entry["carbon_intensity"]),
            )

        regions: dict[str, dict[str, float]] = {}
        for code, table in raw_regions.items():
            if not isinstance(table, Mapping):
                raise ValueError(f"Invalid region table for {code!r}")
            regions[str(code).upper()] = {
                str(key).upper(): float(value) for key, value in table.items()
            }

        world_average = payload.get("world_average", WORLD_AVERAGE_INTENSITY_GCO2_KWH)
        return cls(
            countries=countries,
            regions=regions,
            world_average=float(world_average),  # type: ignore[arg-type]
        )


def _read_packaged_payload() -> dict[str, object]:
    text = (
        resources.files("green_carbon.data")
        .joinpath("carbon_intensity.json")
        .read_text(encoding="utf-8")
    )
    return json.loads(text)


@lru_cache(maxsize=1)
def load_intensity_table() -> CarbonIntensityTable:
    """Load the packaged (or overridden) intensity table.

    The ``GREEN_CARBON_INTENSITY_FILE`` environment variable points at an
    alternative JSON file with the same layout as the packaged data.

    Returns:
        The loaded table. An empty table (world average only) is returned,
        with an error logged, when the packaged data cannot be read.

    Raises:
        FileNotFoundError: If the override path does not exist.
        RuntimeError: If the override file is not valid JSON.
    """

    override_path = get_settings().intensity_file
    if override_path:
        path = pathlib.Path(override_path)
        if not path.exists():
            raise FileNotFoundError(f"GREEN_CARBON_INTENSITY_FILE not found: {path}")
        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise RuntimeError("Failed to parse carbon intensity override JSON") from exc
        return CarbonIntensityTable.from_payload(payload)

    try:
        return CarbonIntensityTable.from_payload(_read_packaged_payload())
    except (OSError, ValueError, KeyError, json.JSONDecodeError) as exc:
        LOGGER.error("Failed to load packaged carbon intensity data: %s", exc)
        return CarbonIntensityTable()
