"""Incremental energy integration per hardware domain.

Power samples are converted to kilowatt-hours with a rectangle rule: the
power observed at a tick is assumed to have been drawn for the whole interval
since the previous tick. The power usage effectiveness (PUE) multiplier is
applied uniformly to every domain.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Final

from green_carbon.models import Domain, DomainValues, Measurement

__all__ = [
    "EnergyAccumulator",
    "EnergyIntegrator",
    "energy_increment_kwh",
]

LOGGER = logging.getLogger(__name__)

SECONDS_PER_HOUR: Final[float] = 3600.0
WATTS_PER_KILOWATT: Final[float] = 1000.0


def energy_increment_kwh(watts: float, elapsed_seconds: float, pue: float) -> float:
    """Return the kWh drawn by ``watts`` over ``elapsed_seconds``.

    Args:
        watts: Instantaneous power in watts.
        elapsed_seconds: Interval length in seconds. Must be non-negative.
        pue: Power usage effectiveness multiplier.

    Returns:
        Energy in kilowatt-hours, PUE included.
    """

    return watts * elapsed_seconds / SECONDS_PER_HOUR * pue / WATTS_PER_KILOWATT


@dataclass(slots=True)
class EnergyAccumulator:
    """Cumulative per-domain energy in kWh.

    ``total_kwh`` is always recomputed as the sum of the three domain values
    rather than incremented on its own, so it can never drift from its parts.
    """

    cpu_kwh: float = 0.0
    ram_kwh: float = 0.0
    gpu_kwh: float = 0.0
    total_kwh: float = 0.0
    _frozen: bool = field(default=False, repr=False)

    @property
    def frozen(self) -> bool:
        return self._frozen

    def add(self, increments: DomainValues) -> None:
        """Add non-negative per-domain increments.

        Raises:
            RuntimeError: If the accumulator has been frozen.
            ValueError: If any increment is negative.
        """

        if self._frozen:
            raise RuntimeError("Energy accumulator is frozen; session already stopped")
        for domain in Domain:
            if increments[domain] < 0:
                raise ValueError(f"Negative energy increment for {domain.value}")
        self.cpu_kwh += increments.cpu
        self.ram_kwh += increments.ram
        self.gpu_kwh += increments.gpu
        self.total_kwh = self.cpu_kwh + self.ram_kwh + self.gpu_kwh

    def reset(self) -> None:
        """Zero every domain and unfreeze."""
        self.cpu_kwh = 0.0
        self.ram_kwh = 0.0
        self.gpu_kwh = 0.0
        self.total_kwh = 0.0
        self._frozen = False

    def freeze(self) -> None:
        self._frozen = True

    def snapshot(self) -> DomainValues:
        """Return the current per-domain totals."""
        return DomainValues(cpu=self.cpu_kwh, ram=self.ram_kwh, gpu=self.gpu_kwh)


@dataclass(slots=True)
class EnergyIntegrator:
    """Turn successive power samples into accumulated energy.

    The integrator owns the accumulator and the append-only measurement log.
    Only the tracker's tick path calls :meth:`integrate`.

    Attributes:
        pue: Power usage effectiveness multiplier applied to every domain.
        accumulator: Per-domain cumulative energy.
        measurements: Ordered log of every tick.
    """

    pue: float = 1.0
    accumulator: EnergyAccumulator = field(default_factory=EnergyAccumulator)
    measurements: list[Measurement] = field(default_factory=list)
    _last_tick_time: float | None = field(default=None, repr=False)

    def reset(self, start_time: float, first_interval: float = 0.0) -> None:
        """Clear all state ahead of a session starting at ``start_time``.

        The previous tick is placed ``first_interval`` seconds before
        ``start_time`` so a tick taken at the start covers one full interval.
        """
        self.accumulator.reset()
        self.measurements = []
        self._last_tick_time = start_time - max(0.0, first_interval)

    @property
    def last_tick_time(self) -> float | None:
        return self._last_tick_time

    def elapsed_since_last_tick(self, now: float) -> float:
        """Seconds since the previous tick, clamped at zero."""
        if self._last_tick_time is None:
            return 0.0
        return max(0.0, now - self._last_tick_time)

    def integrate(
        self,
        now: float,
        power_watts: DomainValues,
        cpu_utilization_percent: float | None = None,
    ) -> Measurement:
        """Integrate one tick of power samples.

        Args:
            now: Wall-clock time of this tick in seconds.
            power_watts: Instantaneous power per domain.
            cpu_utilization_percent: Optional CPU utilisation for averaging.

        Returns:
            The :class:`Measurement` appended to the log.
        """

        elapsed = self.elapsed_since_last_tick(now)
        if self._last_tick_time is not None and now < self._last_tick_time:
            LOGGER.warning(
                "Clock moved backwards; clamping tick interval to zero",
                extra={"now": now, "last_tick_time": self._last_tick_time},
            )

        increments = DomainValues(
            cpu=energy_increment_kwh(power_watts.cpu, elapsed, self.pue),
            ram=energy_increment_kwh(power_watts.ram, elapsed, self.pue),
            gpu=energy_increment_kwh(power_watts.gpu, elapsed, self.pue),
        )
        self.accumulator.add(increments)

        measurement = Measurement(
            timestamp=now,
            elapsed_seconds=elapsed,
            power_watts=power_watts,
            energy_kwh=increments,
            total_energy_kwh=self.accumulator.total_kwh,
            cpu_utilization_percent=cpu_utilization_percent,
        )
        self.measurements.append(measurement)
        # Never move the reference point backwards after a clock anomaly.
        if self._last_tick_time is None or now > self._last_tick_time:
            self._last_tick_time = now
        return measurement

    def latest(self) -> Measurement | None:
        """Return the most recent measurement, if any."""
        return self.measurements[-1] if self.measurements else None

    def average_cpu_utilization(self) -> float:
        """Mean CPU utilisation over ticks that reported one."""
        values = [
            m.cpu_utilization_percent
            for m in self.measurements
            if m.cpu_utilization_percent is not None
        ]
        return sum(values) / len(values) if values else 0.0
