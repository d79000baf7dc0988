"""Conversion of accumulated energy into CO2 emissions."""

from __future__ import annotations

from dataclasses import dataclass, field

from green_carbon.intensity import CarbonIntensityTable, load_intensity_table
from green_carbon.models import Location

__all__ = ["EmissionsCalculator"]


@dataclass(slots=True)
class EmissionsCalculator:
    """Compute kilograms of CO2 from kWh and a location's grid intensity."""

    table: CarbonIntensityTable = field(default_factory=load_intensity_table)

    def intensity(self, location: Location) -> float:
        """Return gCO2/kWh for ``location`` (sub-region first, then country)."""
        return self.table.intensity(location.country_code, location.region)

    def emissions_kg(self, energy_kwh: float, intensity_gco2_kwh: float) -> float:
        """Convert energy to kilograms of CO2."""
        return (intensity_gco2_kwh / 1000.0) * energy_kwh

    @staticmethod
    def emissions_rate(emissions_kg: float, duration_seconds: float) -> float:
        """Return kg CO2 per second, or ``0.0`` for a zero-length session."""
        if duration_seconds > 0:
            return emissions_kg / duration_seconds
        return 0.0

    def calculate(
        self, energy_kwh: float, location: Location, duration_seconds: float
    ) -> tuple[float, float, float]:
        """Return ``(emissions_kg, emissions_rate_kg_per_s, intensity)``."""
        intensity = self.intensity(location)
        emissions = self.emissions_kg(energy_kwh, intensity)
        return emissions, self.emissions_rate(emissions, duration_seconds), intensity
