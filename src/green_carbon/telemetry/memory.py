"""RAM power estimation from installed memory size."""

from __future__ import annotations

import importlib
import math
from dataclasses import dataclass, field
from types import ModuleType
from typing import cast

from green_carbon.telemetry._psutil_protocols import PsutilProtocol
from green_carbon.types import MemoryMetrics

_PSUTIL_MODULE: ModuleType = importlib.import_module("psutil")


def _default_psutil() -> PsutilProtocol:
    """Return the psutil module cast to the internal protocol."""

    return cast(PsutilProtocol, _PSUTIL_MODULE)


@dataclass(slots=True)
class RamPowerReader:
    """Estimate RAM power as a fixed wattage per estimated DIMM slot.

    Attributes:
        watts_per_slot: Power attributed to each memory module.
        gb_per_slot: Assumed capacity of a single module.
        psutil_module: Injected psutil-compatible module.
    """

    watts_per_slot: float = 5.0
    gb_per_slot: float = 8.0
    psutil_module: PsutilProtocol = field(default_factory=_default_psutil, repr=False)

    def total_gb(self) -> float:
        """Installed memory in gigabytes, rounded to the nearest integer."""
        return float(round(self.psutil_module.virtual_memory().total / (1024**3)))

    def read(self) -> MemoryMetrics:
        """Return installed memory and the estimated RAM power."""
        total_gb = self.total_gb()
        slots = max(1, math.ceil(total_gb / self.gb_per_slot))
        return {
            "ram_total_gb": total_gb,
            "estimated_slots": slots,
            "estimated_power_watts": float(slots * self.watts_per_slot),
        }
