"""Aggregate reports over previously written emissions records."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import asdict, dataclass

__all__ = ["SessionReport", "summarize_records"]


def _as_float(value: object) -> float:
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return 0.0
    return 0.0


@dataclass(frozen=True, slots=True)
class SessionReport:
    """Totals across several tracked sessions."""

    runs: int
    total_emissions_kg: float
    total_energy_kwh: float
    total_duration_seconds: float

    @property
    def average_emissions_rate(self) -> float:
        """kg CO2 per second across all runs, ``0.0`` when no time elapsed."""
        if self.total_duration_seconds > 0:
            return self.total_emissions_kg / self.total_duration_seconds
        return 0.0

    def to_dict(self) -> dict[str, float | int]:
        payload: dict[str, float | int] = asdict(self)
        payload["average_emissions_rate"] = self.average_emissions_rate
        return payload

    def format(self) -> str:
        rule = "=" * 50
        return "\n".join(
            [
                "Session summary report",
                rule,
                f"Total runs:             {self.runs}",
                f"Total emissions:        {self.total_emissions_kg:.6f} kg CO2",
                f"Total energy:           {self.total_energy_kwh:.6f} kWh",
                f"Total duration:         {self.total_duration_seconds:.1f} s",
                f"Average emissions rate: {self.average_emissions_rate:.8f} kg CO2/s",
                rule,
            ]
        )


def summarize_records(rows: Iterable[Mapping[str, object]]) -> SessionReport:
    """Aggregate record rows (as read from the CSV file) into a report."""
    runs = 0
    emissions = energy = duration = 0.0
    for row in rows:
        runs += 1
        emissions += _as_float(row.get("emissions"))
        energy += _as_float(row.get("energy_consumed"))
        duration += _as_float(row.get("duration"))
    return SessionReport(
        runs=runs,
        total_emissions_kg=emissions,
        total_energy_kwh=energy,
        total_duration_seconds=duration,
    )
