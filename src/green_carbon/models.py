"""Data models shared by the tracker, integrator, and output sinks."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

__all__ = [
    "Domain",
    "DomainValues",
    "EmissionsResult",
    "Location",
    "Measurement",
    "SessionState",
    "SystemInfo",
    "TrackerStatus",
]


class Domain(str, Enum):
    """Hardware domains whose power draw is integrated."""

    CPU = "cpu"
    RAM = "ram"
    GPU = "gpu"


class SessionState(str, Enum):
    """Lifecycle state of a tracking session.

    The only legal transitions are ``IDLE -> RUNNING -> STOPPED``; a stopped
    tracker cannot be restarted.
    """

    IDLE = "idle"
    RUNNING = "running"
    STOPPED = "stopped"


@dataclass(frozen=True, slots=True)
class DomainValues:
    """One float per hardware domain (watts or kilowatt-hours)."""

    cpu: float = 0.0
    ram: float = 0.0
    gpu: float = 0.0

    def __getitem__(self, domain: Domain) -> float:
        return float(getattr(self, domain.value))

    @property
    def total(self) -> float:
        """Sum across all domains."""
        return self.cpu + self.ram + self.gpu

    def to_dict(self) -> dict[str, float]:
        """Return the values keyed by domain name."""
        return {"cpu": self.cpu, "ram": self.ram, "gpu": self.gpu}


@dataclass(frozen=True, slots=True)
class Location:
    """Resolved geographic location used for carbon intensity lookups."""

    country_code: str
    country_name: str
    region: str | None = None
    latitude: float | None = None
    longitude: float | None = None


@dataclass(frozen=True, slots=True)
class SystemInfo:
    """Host metadata recorded alongside each emissions result."""

    os: str = "Unknown"
    cpu_model: str = "Unknown"
    cpu_count: int = 1
    ram_total_gb: float = 0.0
    gpu_count: int = 0
    gpu_models: tuple[str, ...] = ()

    @property
    def gpu_model(self) -> str:
        """Comma separated GPU model names (empty when no GPU)."""
        return ", ".join(self.gpu_models)


@dataclass(frozen=True, slots=True)
class Measurement:
    """Immutable record of a single tick.

    Attributes:
        timestamp: Wall-clock time of the tick in seconds since the epoch.
        elapsed_seconds: Time since the previous tick, clamped to be
            non-negative. The start tick covers one full sampling interval.
        power_watts: Instantaneous power per domain used for this tick.
        energy_kwh: Energy added to each domain accumulator by this tick.
        total_energy_kwh: Accumulated total after this tick.
        cpu_utilization_percent: CPU utilisation reported by the sampler, or
            ``None`` when unavailable (for example with a forced CPU power).
    """

    timestamp: float
    elapsed_seconds: float
    power_watts: DomainValues
    energy_kwh: DomainValues
    total_energy_kwh: float
    cpu_utilization_percent: float | None = None


@dataclass(frozen=True, slots=True)
class TrackerStatus:
    """Read-only snapshot returned by ``EmissionsTracker.status``."""

    state: SessionState
    project_name: str
    duration_seconds: float
    measurement_count: int
    total_energy_kwh: float

    @property
    def is_tracking(self) -> bool:
        return self.state is SessionState.RUNNING


@dataclass(frozen=True, slots=True)
class EmissionsResult:
    """Final, immutable outcome of a stopped tracking session."""

    emissions_kg: float
    emissions_rate_kg_per_s: float
    energy_consumed_kwh: float
    duration_seconds: float
    power_watts: DomainValues
    energy_kwh: DomainValues
    carbon_intensity_gco2_kwh: float
    location: Location
    system: SystemInfo
    project_name: str
    run_id: str
    experiment_id: str
    pue: float
    started_at: float
    stopped_at: float
    measurement_count: int = 0
    average_cpu_utilization_percent: float = 0.0
    tracking_mode: str = "machine"
    on_cloud: bool = False
