"""Power sampler interface and the default heuristic implementation."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable

from green_carbon.exceptions import SamplerError
from green_carbon.models import Domain
from green_carbon.telemetry.cpu import CpuPowerReader
from green_carbon.telemetry.gpu import GpuPowerReader
from green_carbon.telemetry.memory import RamPowerReader

__all__ = ["HeuristicPowerSampler", "PowerReading", "PowerSampler"]

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class PowerReading:
    """Instantaneous power for one domain.

    Attributes:
        watts: Power draw in watts.
        utilization_percent: Utilisation reported alongside the reading, when
            the domain has one (currently CPU only).
    """

    watts: float
    utilization_percent: float | None = None


@runtime_checkable
class PowerSampler(Protocol):
    """Anything able to report instantaneous watts for a hardware domain.

    Implementations raise :class:`~green_carbon.exceptions.SamplerError`
    (or any other exception) when a domain cannot be read; the tracker
    substitutes the last good value for that domain.
    """

    async def sample(self, domain: Domain) -> PowerReading: ...


@dataclass(slots=True)
class HeuristicPowerSampler:
    """Estimate power from psutil utilisation, memory size, and NVML.

    Blocking reads are delegated to a worker thread so the event loop keeps
    running while the OS is queried.
    """

    cpu_reader: CpuPowerReader = field(default_factory=CpuPowerReader)
    ram_reader: RamPowerReader = field(default_factory=RamPowerReader)
    gpu_reader: GpuPowerReader = field(default_factory=GpuPowerReader, repr=False)

    async def sample(self, domain: Domain) -> PowerReading:
        """Read ``domain`` without blocking the event loop."""
        return await asyncio.to_thread(self.sample_sync, domain)

    def sample_sync(self, domain: Domain) -> PowerReading:
        """Read ``domain`` on the calling thread.

        Raises:
            SamplerError: If the underlying reader fails.
        """
        try:
            if domain is Domain.CPU:
                cpu = self.cpu_reader.read()
                return PowerReading(
                    watts=cpu["estimated_power_watts"],
                    utilization_percent=cpu["cpu_percent"],
                )
            if domain is Domain.RAM:
                ram = self.ram_reader.read()
                return PowerReading(watts=ram["estimated_power_watts"])
            return PowerReading(watts=self.gpu_reader.total_power_watts())
        except Exception as exc:
            raise SamplerError(f"Failed to sample {domain.value} power: {exc}") from exc

    def close(self) -> None:
        """Release hardware handles held by the readers."""
        self.gpu_reader.shutdown()
