"""GPU power collection with optional NVIDIA NVML support."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from importlib import import_module
from typing import Protocol, cast

from green_carbon.telemetry.tables import GPU_POWER_TABLE, PatternTable
from green_carbon.types import GPUMetrics

LOGGER = logging.getLogger(__name__)


class NvmlLibrary(Protocol):
    """Protocol describing the NVML functions used by the telemetry layer."""

    def nvmlInit(self) -> None:  # pragma: no cover - thin wrapper
        ...

    def nvmlShutdown(self) -> None:  # pragma: no cover - thin wrapper
        ...

    def nvmlDeviceGetCount(self) -> int: ...

    def nvmlDeviceGetHandleByIndex(self, index: int) -> object: ...

    def nvmlDeviceGetName(self, handle: object) -> str | bytes: ...

    def nvmlDeviceGetPowerUsage(self, handle: object) -> int: ...


def load_nvml_library() -> NvmlLibrary | None:
    """Attempt to import the NVML Python bindings."""
    try:
        module = import_module("pynvml")
    except ModuleNotFoundError:
        return None
    return cast(NvmlLibrary, module)


def _decode_name(raw: str | bytes) -> str:
    if isinstance(raw, bytes):
        return raw.decode("utf-8", errors="replace")
    return str(raw)


@dataclass(slots=True)
class GpuPowerReader:
    """Collect per-device GPU power via NVML when available.

    Devices whose live power query fails are estimated from ``table`` using
    the device name. Without NVML no GPU is reported and power is zero.
    """

    table: PatternTable = field(default=GPU_POWER_TABLE, repr=False)
    nvml: NvmlLibrary | None = field(default=None, repr=False)
    gpu_count: int = field(default=0, init=False)
    _handles: list[object] = field(init=False, repr=False)
    _names: list[str] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._handles = []
        self._names = []
        library = self.nvml if self.nvml is not None else load_nvml_library()
        if library is None:
            self.nvml = None
            return
        try:
            library.nvmlInit()
            count = int(library.nvmlDeviceGetCount())
            for index in range(count):
                handle = library.nvmlDeviceGetHandleByIndex(index)
                self._handles.append(handle)
                self._names.append(_decode_name(library.nvmlDeviceGetName(handle)))
        except Exception as exc:  # pragma: no cover - external library path
            LOGGER.warning("GPU monitoring unavailable: %s", exc)
            self.nvml = None
            self._handles = []
            self._names = []
            return
        self.nvml = library
        self.gpu_count = len(self._handles)

    @property
    def models(self) -> tuple[str, ...]:
        return tuple(self._names)

    def read(self) -> list[GPUMetrics]:
        """Return power metrics for each detected device."""
        if self.nvml is None:
            return []
        metrics: list[GPUMetrics] = []
        for index, handle in enumerate(self._handles):
            name = self._names[index]
            try:
                power_watts = float(self.nvml.nvmlDeviceGetPowerUsage(handle)) / 1000.0
                source = "nvml"
            except Exception as exc:
                LOGGER.debug(
                    "GPU power query failed; using model estimate",
                    extra={"gpu_id": index, "gpu_name": name, "error": str(exc)},
                )
                power_watts = self.table.lookup(name)
                source = "table"
            metrics.append(
                {
                    "gpu_id": index,
                    "name": name,
                    "power_watts": power_watts,
                    "power_source": source,
                }
            )
        return metrics

    def total_power_watts(self) -> float:
        return float(sum(metric.get("power_watts", 0.0) for metric in self.read()))

    def shutdown(self) -> None:
        """Cleanly shutdown NVML when initialised."""
        if self.nvml is None:
            return
        try:
            self.nvml.nvmlShutdown()
        except Exception:  # pragma: no cover - external library path
            LOGGER.warning("Failed to shutdown NVML cleanly")
