"""Human-readable end-of-session summary."""

from __future__ import annotations

import sys
from dataclasses import dataclass, field
from typing import IO, Final

from green_carbon.models import EmissionsResult

# Reference emission factors for relatable comparisons (kg CO2).
_CAR_KG_PER_METRE: Final[float] = 0.00012
_TV_KG_PER_HOUR: Final[float] = 0.000084
_RULE_WIDTH: Final[int] = 50


def average_power_watts(result: EmissionsResult) -> float | None:
    """Average total power over the session, or ``None`` for zero duration."""
    if result.duration_seconds <= 0:
        return None
    return result.energy_consumed_kwh * 1000.0 / (result.duration_seconds / 3600.0)


def equivalents(emissions_kg: float) -> dict[str, float]:
    """Express emissions as car driving metres and TV watching minutes."""
    return {
        "car_metres": emissions_kg / _CAR_KG_PER_METRE,
        "tv_minutes": emissions_kg / _TV_KG_PER_HOUR * 60.0,
    }


@dataclass(slots=True)
class ConsoleSummary:
    """Print a summary of the session to a text stream."""

    stream: IO[str] | None = field(default=None, repr=False)

    def emit(self, result: EmissionsResult) -> None:
        out = self.stream if self.stream is not None else sys.stdout
        avg_power = average_power_watts(result)
        location = result.location
        compare = equivalents(result.emissions_kg)

        lines = [
            "",
            "Emissions tracking results",
            "=" * _RULE_WIDTH,
            f"CO2 emissions:     {result.emissions_kg:.6f} kg",
            f"Energy consumed:   {result.energy_consumed_kwh:.6f} kWh",
            f"Duration:          {result.duration_seconds:.2f} s",
            "Average power:     "
            + ("n/a" if avg_power is None else f"{avg_power:.1f} W"),
            f"CPU power:         {result.power_watts.cpu:.1f} W",
            f"RAM power:         {result.power_watts.ram:.1f} W",
            f"GPU power:         {result.power_watts.gpu:.1f} W",
            f"Location:          {location.country_name} ({location.country_code}"
            + (f"/{location.region})" if location.region else ")"),
            f"Carbon intensity:  {result.carbon_intensity_gco2_kwh:.0f} gCO2/kWh",
            "",
            "Real-world equivalents",
            f"Car driving:       {compare['car_metres']:.1f} m",
            f"TV watching:       {compare['tv_minutes']:.1f} min",
            "=" * _RULE_WIDTH,
        ]
        print("\n".join(lines), file=out)
