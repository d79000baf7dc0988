"""Durable record schema, one row per stopped session."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Final, Literal

from pydantic import BaseModel, ConfigDict, Field

from green_carbon import __version__
from green_carbon.models import EmissionsResult

__all__ = ["EmissionsRecord", "RECORD_FIELDS"]


class EmissionsRecord(BaseModel):
    """Immutable row written by the durable record writer.

    Field declaration order is the on-disk column order and must not change;
    downstream tooling reads columns by position.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    timestamp: str
    project_name: str
    run_id: str
    experiment_id: str
    duration: float = Field(ge=0)
    emissions: float = Field(ge=0)
    emissions_rate: float = Field(ge=0)
    cpu_power: float
    gpu_power: float
    ram_power: float
    cpu_energy: float
    gpu_energy: float
    ram_energy: float
    energy_consumed: float
    country_name: str
    country_iso_code: str
    region: str = ""
    cloud_provider: str = ""
    cloud_region: str = ""
    os: str
    language_runtime_version: str = ""
    library_version: str = __version__
    cpu_count: int
    cpu_model: str
    gpu_count: int
    gpu_model: str = ""
    longitude: float | Literal[""] = ""
    latitude: float | Literal[""] = ""
    ram_total_size: float
    tracking_mode: str = "machine"
    on_cloud: Literal["Y", "N"] = "N"
    pue: float = Field(ge=1.0)

    @classmethod
    def from_result(
        cls, result: EmissionsResult, *, timestamp: datetime | None = None
    ) -> EmissionsRecord:
        """Flatten an :class:`EmissionsResult` into a record row."""
        moment = timestamp or datetime.fromtimestamp(result.stopped_at, timezone.utc)
        location = result.location
        system = result.system
        return cls(
            timestamp=moment.isoformat(),
            project_name=result.project_name,
            run_id=result.run_id,
            experiment_id=result.experiment_id,
            duration=result.duration_seconds,
            emissions=result.emissions_kg,
            emissions_rate=result.emissions_rate_kg_per_s,
            cpu_power=result.power_watts.cpu,
            gpu_power=result.power_watts.gpu,
            ram_power=result.power_watts.ram,
            cpu_energy=result.energy_kwh.cpu,
            gpu_energy=result.energy_kwh.gpu,
            ram_energy=result.energy_kwh.ram,
            energy_consumed=result.energy_consumed_kwh,
            country_name=location.country_name,
            country_iso_code=location.country_code,
            region=location.region or "",
            os=system.os,
            cpu_count=system.cpu_count,
            cpu_model=system.cpu_model,
            gpu_count=system.gpu_count,
            gpu_model=system.gpu_model,
            longitude="" if location.longitude is None else location.longitude,
            latitude="" if location.latitude is None else location.latitude,
            ram_total_size=system.ram_total_gb,
            tracking_mode=result.tracking_mode,
            on_cloud="Y" if result.on_cloud else "N",
            pue=result.pue,
        )

    def to_row(self) -> dict[str, object]:
        """Return the record as an ordered column mapping."""
        return self.model_dump()


RECORD_FIELDS: Final[tuple[str, ...]] = tuple(EmissionsRecord.model_fields)
