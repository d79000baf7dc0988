"""Shared fakes for tracker tests."""

from __future__ import annotations

import asyncio
import math
from dataclasses import dataclass, field
from typing import Any

from green_carbon.config import TrackerConfig
from green_carbon.exceptions import LocationResolutionError
from green_carbon.location import StaticLocationResolver
from green_carbon.models import Domain, EmissionsResult, SystemInfo
from green_carbon.scheduler import CancellationToken, TickCallback
from green_carbon.telemetry.sampler import PowerReading
from green_carbon.tracker import EmissionsTracker


class FakeClock:
    """Manually advanced wall clock."""

    def __init__(self, now: float = 0.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


class ManualScheduler:
    """Scheduler whose ticks are fired explicitly by the test."""

    def __init__(self) -> None:
        self.interval: float | None = None
        self.callback: TickCallback | None = None
        self.tokens: list[CancellationToken] = []

    def schedule(self, interval: float, callback: TickCallback) -> CancellationToken:
        self.interval = interval
        self.callback = callback
        task = asyncio.get_running_loop().create_task(asyncio.Event().wait())
        token = CancellationToken(task)
        self.tokens.append(token)
        return token

    async def fire(self) -> None:
        assert self.callback is not None
        await self.callback()


class ScriptedSampler:
    """Return scripted readings per domain; exceptions in the script are raised."""

    def __init__(
        self,
        script: dict[Domain, list[Any]] | None = None,
        default: float = 10.0,
    ) -> None:
        self.script = script or {}
        self.default = default
        self.calls: list[Domain] = []

    async def sample(self, domain: Domain) -> PowerReading:
        self.calls.append(domain)
        queue = self.script.get(domain)
        value = queue.pop(0) if queue else self.default
        if isinstance(value, BaseException):
            raise value
        utilization = 50.0 if domain is Domain.CPU and math.isfinite(value) else None
        return PowerReading(watts=value, utilization_percent=utilization)


class FakeSystemInfo:
    async def system_info(self) -> SystemInfo:
        return SystemInfo(
            os="TestOS-1.0",
            cpu_model="Test CPU i7",
            cpu_count=8,
            ram_total_gb=16.0,
        )


class FailingLocationResolver:
    async def resolve(self):
        raise LocationResolutionError("offline")


class RecordingSink:
    """Output sink that records results, or raises ``error`` when set."""

    def __init__(self, error: Exception | None = None) -> None:
        self.error = error
        self.results: list[EmissionsResult] = []

    def emit(self, result: EmissionsResult) -> None:
        if self.error is not None:
            raise self.error
        self.results.append(result)


@dataclass
class Harness:
    tracker: EmissionsTracker
    clock: FakeClock
    scheduler: ManualScheduler
    summary: RecordingSink
    writer: RecordingSink
    sampler: Any = None
    extras: dict[str, Any] = field(default_factory=dict)


def build_harness(
    *,
    sampler: Any = None,
    location_resolver: Any = None,
    summary: RecordingSink | None = None,
    writer: RecordingSink | None = None,
    **config_options: Any,
) -> Harness:
    """Build a tracker wired to fakes; ``config_options`` feed TrackerConfig."""

    options: dict[str, Any] = {
        "project_name": "test-project",
        "measure_power_interval_seconds": 1.0,
        "log_level": "INFO",
        "structured_logging": False,
    }
    options.update(config_options)
    sampler = sampler if sampler is not None else ScriptedSampler()
    clock = FakeClock()
    scheduler = ManualScheduler()
    summary = summary or RecordingSink()
    writer = writer or RecordingSink()
    tracker = EmissionsTracker(
        TrackerConfig(**options),
        sampler=sampler,
        location_resolver=location_resolver or StaticLocationResolver("USA"),
        system_info_provider=FakeSystemInfo(),
        summary=summary,
        record_writer=writer,
        scheduler=scheduler,  # type: ignore[arg-type]
        clock=clock,
    )
    return Harness(
        tracker=tracker,
        clock=clock,
        scheduler=scheduler,
        summary=summary,
        writer=writer,
        sampler=sampler,
    )
