"""Host metadata collection."""

from __future__ import annotations

import asyncio
import importlib
import logging
import platform
from dataclasses import dataclass, field
from types import ModuleType
from typing import Protocol, cast

from green_carbon.models import SystemInfo
from green_carbon.telemetry._psutil_protocols import PsutilProtocol
from green_carbon.telemetry.cpu import detect_cpu_model
from green_carbon.telemetry.gpu import GpuPowerReader

__all__ = ["HostInspector", "SystemInfoProvider"]

LOGGER = logging.getLogger(__name__)

_PSUTIL_MODULE: ModuleType = importlib.import_module("psutil")


def _default_psutil() -> PsutilProtocol:
    return cast(PsutilProtocol, _PSUTIL_MODULE)


class SystemInfoProvider(Protocol):
    """Source of :class:`SystemInfo` for the tracker."""

    async def system_info(self) -> SystemInfo: ...


@dataclass(slots=True)
class HostInspector:
    """Describe the local machine using psutil, ``platform`` and NVML."""

    psutil_module: PsutilProtocol = field(default_factory=_default_psutil, repr=False)
    gpu_reader: GpuPowerReader | None = field(default=None, repr=False)

    async def system_info(self) -> SystemInfo:
        return await asyncio.to_thread(self.collect)

    def collect(self) -> SystemInfo:
        """Gather host metadata synchronously."""
        owned = self.gpu_reader is None
        gpu_reader = GpuPowerReader() if self.gpu_reader is None else self.gpu_reader
        try:
            memory = self.psutil_module.virtual_memory()
            return SystemInfo(
                os=platform.platform(),
                cpu_model=detect_cpu_model(),
                cpu_count=int(self.psutil_module.cpu_count(logical=True) or 1),
                ram_total_gb=float(round(memory.total / (1024**3))),
                gpu_count=gpu_reader.gpu_count,
                gpu_models=gpu_reader.models,
            )
        finally:
            if owned:
                gpu_reader.shutdown()
