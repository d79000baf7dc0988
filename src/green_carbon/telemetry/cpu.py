"""CPU power estimation from utilisation and a TDP heuristic."""

from __future__ import annotations

import importlib
import logging
import platform
from dataclasses import dataclass, field
from pathlib import Path
from types import ModuleType
from typing import cast

from green_carbon.settings import get_settings
from green_carbon.telemetry._psutil_protocols import PsutilProtocol
from green_carbon.telemetry.tables import CPU_TDP_TABLE, PatternTable
from green_carbon.types import CPUMetrics

LOGGER = logging.getLogger(__name__)

_PSUTIL_MODULE: ModuleType = importlib.import_module("psutil")
_CPUINFO_PATH = Path("/proc/cpuinfo")


def _default_psutil() -> PsutilProtocol:
    """Return the psutil module cast to the internal protocol."""

    return cast(PsutilProtocol, _PSUTIL_MODULE)


def detect_cpu_model(cpuinfo_path: Path = _CPUINFO_PATH) -> str:
    """Return the CPU brand string, or ``"Unknown CPU"``."""
    try:
        for line in cpuinfo_path.read_text(encoding="utf-8").splitlines():
            key, _, value = line.partition(":")
            if key.strip() == "model name" and value.strip():
                return value.strip()
    except OSError:
        pass
    return platform.processor() or "Unknown CPU"


def resolve_cpu_tdp_watts(cpu_model: str, table: PatternTable = CPU_TDP_TABLE) -> float:
    """Resolve the CPU thermal design power in watts.

    Resolution order: the ``CPU_TDP_WATTS`` environment variable, then the
    first matching row of ``table`` for ``cpu_model``, then the table default.
    """
    env_value = get_settings().cpu_tdp_watts
    if env_value is not None:
        return env_value
    return table.lookup(cpu_model)


@dataclass(slots=True)
class CpuPowerReader:
    """Estimate CPU power draw from utilisation.

    Power is modelled as ``tdp * (base_power_ratio + (1 - base_power_ratio) *
    load)`` where ``load`` is utilisation in ``[0, 1]``.

    Attributes:
        cpu_model: CPU brand string used for the TDP lookup.
        base_power_ratio: Fraction of TDP drawn at idle.
        table: TDP lookup table.
        psutil_module: Injected psutil-compatible module.
    """

    cpu_model: str = field(default_factory=detect_cpu_model)
    base_power_ratio: float = 0.5
    table: PatternTable = field(default=CPU_TDP_TABLE, repr=False)
    psutil_module: PsutilProtocol = field(default_factory=_default_psutil, repr=False)
    tdp_watts: float = field(init=False)

    def __post_init__(self) -> None:
        # Prime psutil so the first non-blocking read is meaningful.
        self.psutil_module.cpu_percent(interval=None)
        self.tdp_watts = resolve_cpu_tdp_watts(self.cpu_model, self.table)
        LOGGER.debug(
            "CPU TDP resolved",
            extra={"cpu_model": self.cpu_model, "tdp_watts": self.tdp_watts},
        )

    def read(self) -> CPUMetrics:
        """Capture CPU utilisation and estimated power draw."""
        cpu_percent = float(self.psutil_module.cpu_percent(interval=None))
        load = min(max(cpu_percent / 100.0, 0.0), 1.0)
        estimated = self.tdp_watts * (
            self.base_power_ratio + load * (1.0 - self.base_power_ratio)
        )
        return {
            "cpu_percent": cpu_percent,
            "tdp_watts": self.tdp_watts,
            "estimated_power_watts": float(estimated),
        }
