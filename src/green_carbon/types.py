"""Typed payloads produced by the telemetry readers."""

from __future__ import annotations

from typing import TypedDict


class CPUMetrics(TypedDict):
    """CPU utilisation and estimated power."""

    cpu_percent: float
    tdp_watts: float
    estimated_power_watts: float


class MemoryMetrics(TypedDict):
    """Installed memory and estimated power."""

    ram_total_gb: float
    estimated_slots: int
    estimated_power_watts: float


class GPUMetrics(TypedDict, total=False):
    """Per-device GPU power."""

    gpu_id: int
    name: str
    power_watts: float
    power_source: str
