"""Hardware telemetry used to estimate instantaneous power draw."""

from __future__ import annotations

from importlib import import_module
from typing import Any, TYPE_CHECKING

__all__ = ["HeuristicPowerSampler", "PowerReading", "PowerSampler"]

if TYPE_CHECKING:
    from green_carbon.telemetry.sampler import (
        HeuristicPowerSampler,
        PowerReading,
        PowerSampler,
    )


def __getattr__(name: str) -> Any:
    """Lazily resolve sampler helpers to avoid importing psutil at load time."""

    if name not in __all__:
        raise AttributeError(name)

    module = import_module("green_carbon.telemetry.sampler")
    return getattr(module, name)
