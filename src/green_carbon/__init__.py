"""Green Carbon - energy and CO2 emissions tracking for Python workloads."""

from __future__ import annotations

from importlib import import_module
from typing import Any, TYPE_CHECKING

__version__ = "0.1.0"

__all__ = [
    "BlockingEmissionsTracker",
    "EmissionsResult",
    "EmissionsTracker",
    "TrackerConfig",
    "TrackerStatus",
    "measure",
    "track_emissions",
    "__version__",
]

if TYPE_CHECKING:
    from .config import TrackerConfig
    from .decorators import measure, track_emissions
    from .models import EmissionsResult, TrackerStatus
    from .tracker import BlockingEmissionsTracker, EmissionsTracker


def __getattr__(name: str) -> Any:
    """Lazily import heavy modules to avoid eager dependency loading."""

    module_map = {
        "BlockingEmissionsTracker": "tracker",
        "EmissionsTracker": "tracker",
        "EmissionsResult": "models",
        "TrackerStatus": "models",
        "TrackerConfig": "config",
        "measure": "decorators",
        "track_emissions": "decorators",
    }

    if name not in module_map:
        raise AttributeError(name)

    module = import_module(f".{module_map[name]}", __name__)
    return getattr(module, name)
