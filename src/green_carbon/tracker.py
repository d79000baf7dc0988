"""Emissions tracker: session lifecycle, periodic sampling, and reporting."""

from __future__ import annotations

import asyncio
import logging
import math
import threading
import time
from collections.abc import Callable, Coroutine
from typing import Any, TypeVar
from uuid import uuid4

from green_carbon.accumulator import EnergyIntegrator
from green_carbon.config import TrackerConfig
from green_carbon.emissions import EmissionsCalculator
from green_carbon.exceptions import SamplerError
from green_carbon.location import DEFAULT_LOCATION, LocationResolver, resolver_for
from green_carbon.logging_pipeline import LoggingHandle, configure_structured_logging
from green_carbon.models import (
    Domain,
    DomainValues,
    EmissionsResult,
    Location,
    Measurement,
    SessionState,
    SystemInfo,
    TrackerStatus,
)
from green_carbon.output.base import OutputSink
from green_carbon.output.console import ConsoleSummary
from green_carbon.output.csv_writer import CsvRecordWriter
from green_carbon.scheduler import CancellationToken, PeriodicScheduler
from green_carbon.telemetry.sampler import PowerReading, PowerSampler
from green_carbon.telemetry.system import HostInspector, SystemInfoProvider

__all__ = ["BlockingEmissionsTracker", "EmissionsTracker"]

LOGGER = logging.getLogger(__name__)

_T = TypeVar("_T")

Clock = Callable[[], float]


class EmissionsTracker:
    """Track the energy and CO2 emissions of a workload.

    The tracker is single use: ``IDLE -> RUNNING`` on :meth:`start`,
    ``RUNNING -> STOPPED`` on :meth:`stop`. All accumulator mutation happens in
    the tick handler, which runs on the event loop that called :meth:`start`
    and is serialised by a lock so ticks never overlap.

    Args:
        config: Validated configuration. When omitted it is built from the
            environment plus ``options``.
        sampler: Power sampler; a :class:`HeuristicPowerSampler` is created at
            start when any domain lacks a fixed power override.
        location_resolver: Location source. Defaults to the configured
            country, else the configured ``location_provider``.
        system_info_provider: Host metadata source.
        calculator: Emissions calculator (intensity table).
        summary: Human-readable summary sink, used at DEBUG/INFO levels.
        record_writer: Durable record sink, used when ``save_to_file`` is on.
        scheduler: Periodic scheduler driving the ticks.
        clock: Wall-clock source in seconds.
        **options: :class:`TrackerConfig` fields, only valid without ``config``.

    Examples:
        >>> async def main() -> float:
        ...     async with EmissionsTracker(project_name="train") as tracker:
        ...         await run_workload()
        ...     return tracker.result.emissions_kg
    """

    def __init__(
        self,
        config: TrackerConfig | None = None,
        *,
        sampler: PowerSampler | None = None,
        location_resolver: LocationResolver | None = None,
        system_info_provider: SystemInfoProvider | None = None,
        calculator: EmissionsCalculator | None = None,
        summary: OutputSink | None = None,
        record_writer: OutputSink | None = None,
        scheduler: PeriodicScheduler | None = None,
        clock: Clock = time.time,
        **options: Any,
    ) -> None:
        if config is not None and options:
            raise TypeError("Pass either a TrackerConfig or keyword options, not both")
        self.config = config or TrackerConfig.from_settings(**options)
        self.run_id = str(uuid4())

        self._sampler = sampler
        self._owns_sampler = False
        self._location_resolver = location_resolver or resolver_for(self.config)
        self._system_info_provider = system_info_provider or HostInspector()
        self._calculator = calculator or EmissionsCalculator()
        self._summary = summary or ConsoleSummary()
        self._record_writer = record_writer or CsvRecordWriter(self.config.output_file)
        self._scheduler = scheduler or PeriodicScheduler()
        self._clock = clock

        self._overrides: dict[Domain, float] = {
            Domain(name): watts for name, watts in self.config.power_overrides().items()
        }
        self._integrator = EnergyIntegrator(pue=self.config.pue)
        self._last_good_watts: dict[Domain, float] = {domain: 0.0 for domain in Domain}
        self._state = SessionState.IDLE
        self._token: CancellationToken | None = None
        self._tick_lock = asyncio.Lock()
        self._transition_lock = asyncio.Lock()
        self._logging: LoggingHandle | None = None

        self.started_at: float | None = None
        self.stopped_at: float | None = None
        self.location: Location | None = None
        self.system_info: SystemInfo | None = None
        self.result: EmissionsResult | None = None

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def measurements(self) -> tuple[Measurement, ...]:
        """Ordered, immutable view of every tick recorded so far."""
        return tuple(self._integrator.measurements)

    @property
    def energy(self) -> DomainValues:
        """Current per-domain accumulated energy in kWh."""
        return self._integrator.accumulator.snapshot()

    async def __aenter__(self) -> EmissionsTracker:
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.stop()

    async def start(self) -> None:
        """Begin tracking.

        Calling ``start`` on a tracker that is running or already stopped
        logs a warning and changes nothing.
        """
        async with self._transition_lock:
            if self._state is not SessionState.IDLE:
                LOGGER.warning(
                    "Emissions tracking already started; ignoring start()",
                    extra={"state": self._state.value, "run_id": self.run_id},
                )
                return

            self._configure_logging()
            self.location = await self._resolve_location()
            self.system_info = await self._resolve_system_info()
            await self._ensure_sampler()

            started_at = self._clock()
            self.started_at = started_at
            self._integrator.reset(
                started_at, self.config.measure_power_interval_seconds
            )
            self._last_good_watts = {domain: 0.0 for domain in Domain}
            self._state = SessionState.RUNNING
            self._token = self._scheduler.schedule(
                self.config.measure_power_interval_seconds, self._tick
            )
            await self._tick(now=started_at)

            LOGGER.info(
                "Emissions tracking started",
                extra={
                    "run_id": self.run_id,
                    "project_name": self.config.project_name,
                    "interval_seconds": self.config.measure_power_interval_seconds,
                    "country_code": self.location.country_code,
                    "region": self.location.region,
                    "os": self.system_info.os,
                    "cpu_model": self.system_info.cpu_model,
                    "cpu_count": self.system_info.cpu_count,
                    "ram_total_gb": self.system_info.ram_total_gb,
                    "gpu_count": self.system_info.gpu_count,
                },
            )

    async def stop(self) -> float:
        """Stop tracking and return the session's emissions in kg CO2.

        Returns ``0.0`` without touching any state when the tracker is not
        running. The recurring schedule is cancelled before the final tick so
        no scheduled tick can land after the result is computed.
        """
        async with self._transition_lock:
            if self._state is not SessionState.RUNNING:
                LOGGER.warning(
                    "Emissions tracking is not running; ignoring stop()",
                    extra={"state": self._state.value, "run_id": self.run_id},
                )
                return 0.0

            if self._token is not None:
                await self._token.cancel()
                self._token = None

            now = self._clock()
            # A zero-length tail is already covered by the previous tick.
            if self._integrator.elapsed_since_last_tick(now) > 0:
                await self._tick(now=now)

            self.stopped_at = now
            self._state = SessionState.STOPPED
            self._integrator.accumulator.freeze()

            result = self._build_result()
            self.result = result
            self._emit(result)

            LOGGER.info(
                "Emissions tracking stopped",
                extra={
                    "run_id": self.run_id,
                    "emissions_kg": result.emissions_kg,
                    "energy_consumed_kwh": result.energy_consumed_kwh,
                    "duration_seconds": result.duration_seconds,
                    "measurements": result.measurement_count,
                },
            )
            self._release_resources()
            return result.emissions_kg

    def status(self) -> TrackerStatus:
        """Return a read-only snapshot of the session."""
        duration = 0.0
        if self._state is SessionState.RUNNING and self.started_at is not None:
            duration = max(0.0, self._clock() - self.started_at)
        return TrackerStatus(
            state=self._state,
            project_name=self.config.project_name,
            duration_seconds=duration,
            measurement_count=len(self._integrator.measurements),
            total_energy_kwh=self._integrator.accumulator.total_kwh,
        )

    async def _tick(self, now: float | None = None) -> None:
        async with self._tick_lock:
            if self._state is not SessionState.RUNNING:
                return
            tick_time = self._clock() if now is None else now

            watts: dict[Domain, float] = {}
            utilization: float | None = None
            for domain in Domain:
                reading = await self._read_domain(domain)
                watts[domain] = reading.watts
                if domain is Domain.CPU:
                    utilization = reading.utilization_percent

            power = DomainValues(
                cpu=watts[Domain.CPU], ram=watts[Domain.RAM], gpu=watts[Domain.GPU]
            )
            measurement = self._integrator.integrate(tick_time, power, utilization)
            LOGGER.debug(
                "Power measured",
                extra={
                    "cpu_watts": power.cpu,
                    "ram_watts": power.ram,
                    "gpu_watts": power.gpu,
                    "elapsed_seconds": measurement.elapsed_seconds,
                    "total_energy_kwh": measurement.total_energy_kwh,
                },
            )

    async def _read_domain(self, domain: Domain) -> PowerReading:
        override = self._overrides.get(domain)
        if override is not None:
            return PowerReading(watts=override)
        if self._sampler is None:
            return PowerReading(watts=self._last_good_watts[domain])

        try:
            reading = await self._sampler.sample(domain)
            watts = float(reading.watts)
            if not math.isfinite(watts) or watts < 0:
                raise SamplerError(f"Invalid {domain.value} power reading: {watts!r}")
        except Exception as exc:
            fallback = self._last_good_watts[domain]
            LOGGER.warning(
                "Power sampling failed; reusing last observed value",
                extra={
                    "domain": domain.value,
                    "fallback_watts": fallback,
                    "error": str(exc),
                    "error_type": type(exc).__name__,
                },
            )
            return PowerReading(watts=fallback)

        self._last_good_watts[domain] = watts
        return PowerReading(watts=watts, utilization_percent=reading.utilization_percent)

    async def _resolve_location(self) -> Location:
        try:
            location = await self._location_resolver.resolve()
        except Exception as exc:
            LOGGER.warning(
                "Location resolution failed; using default location",
                extra={
                    "error": str(exc),
                    "fallback_country_code": DEFAULT_LOCATION.country_code,
                },
            )
            return DEFAULT_LOCATION
        if self.config.region and location.region is None:
            # A configured region still applies to an auto-detected country.
            location = Location(
                country_code=location.country_code,
                country_name=location.country_name,
                region=self.config.region,
                latitude=location.latitude,
                longitude=location.longitude,
            )
        LOGGER.info(
            "Location resolved",
            extra={
                "country_code": location.country_code,
                "country_name": location.country_name,
                "region": location.region,
            },
        )
        return location

    async def _resolve_system_info(self) -> SystemInfo:
        try:
            return await self._system_info_provider.system_info()
        except Exception as exc:
            LOGGER.warning(
                "System information unavailable; recording unknown host",
                extra={"error": str(exc)},
            )
            return SystemInfo()

    async def _ensure_sampler(self) -> None:
        if self._sampler is not None or len(self._overrides) == len(Domain):
            return
        from green_carbon.telemetry.sampler import HeuristicPowerSampler

        try:
            self._sampler = await asyncio.to_thread(HeuristicPowerSampler)
        except Exception as exc:
            LOGGER.warning(
                "Power sampler unavailable; unmeasured domains report 0 W",
                extra={"error": str(exc)},
            )
            return
        self._owns_sampler = True

    def _build_result(self) -> EmissionsResult:
        started_at, stopped_at = self.started_at, self.stopped_at
        if started_at is None or stopped_at is None:
            raise RuntimeError("Emissions result requested before the session stopped")
        location = self.location or DEFAULT_LOCATION
        duration = max(0.0, stopped_at - started_at)
        accumulator = self._integrator.accumulator
        emissions, rate, intensity = self._calculator.calculate(
            accumulator.total_kwh, location, duration
        )
        latest = self._integrator.latest()
        return EmissionsResult(
            emissions_kg=emissions,
            emissions_rate_kg_per_s=rate,
            energy_consumed_kwh=accumulator.total_kwh,
            duration_seconds=duration,
            power_watts=latest.power_watts if latest is not None else DomainValues(),
            energy_kwh=accumulator.snapshot(),
            carbon_intensity_gco2_kwh=intensity,
            location=location,
            system=self.system_info or SystemInfo(),
            project_name=self.config.project_name,
            run_id=self.run_id,
            experiment_id=self.config.experiment_id,
            pue=self.config.pue,
            started_at=started_at,
            stopped_at=stopped_at,
            measurement_count=len(self._integrator.measurements),
            average_cpu_utilization_percent=self._integrator.average_cpu_utilization(),
        )

    def _emit(self, result: EmissionsResult) -> None:
        sinks: list[tuple[str, OutputSink]] = []
        if self.config.verbose:
            sinks.append(("summary", self._summary))
        if self.config.save_to_file:
            sinks.append(("record_writer", self._record_writer))
        for name, sink in sinks:
            try:
                sink.emit(result)
            except Exception as exc:
                LOGGER.warning(
                    "Output sink failed; emissions result unaffected",
                    extra={
                        "sink": name,
                        "sink_type": type(sink).__name__,
                        "error": str(exc),
                    },
                    exc_info=exc,
                )

    def _configure_logging(self) -> None:
        if not self.config.structured_logging or self._logging is not None:
            return
        self._logging = configure_structured_logging(
            logging.getLogger("green_carbon"),
            trace_id=self.run_id,
            level=self.config.log_level_number,
            static_fields={"project_name": self.config.project_name},
        )

    def _release_resources(self) -> None:
        if self._owns_sampler and self._sampler is not None:
            close = getattr(self._sampler, "close", None)
            if callable(close):
                close()
        if self._logging is not None:
            self._logging.close()
            self._logging = None


class BlockingEmissionsTracker:
    """Synchronous facade over :class:`EmissionsTracker`.

    The async tracker runs on a private event loop in a daemon thread, so
    periodic ticks keep firing while the calling thread runs blocking work.

    Examples:
        >>> with BlockingEmissionsTracker(project_name="etl") as tracker:
        ...     run_blocking_job()
        >>> tracker.result.emissions_kg
    """

    def __init__(self, config: TrackerConfig | None = None, **kwargs: Any) -> None:
        self.tracker = EmissionsTracker(config, **kwargs)
        self._loop: asyncio.AbstractEventLoop | None = None
        self._thread: threading.Thread | None = None

    @property
    def result(self) -> EmissionsResult | None:
        return self.tracker.result

    def __enter__(self) -> BlockingEmissionsTracker:
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.stop()

    def start(self) -> None:
        try:
            self._run(self.tracker.start())
        finally:
            if self.tracker.state is not SessionState.RUNNING:
                self._shutdown_loop()

    def stop(self) -> float:
        try:
            return self._run(self.tracker.stop())
        finally:
            if self.tracker.state is not SessionState.RUNNING:
                self._shutdown_loop()

    def status(self) -> TrackerStatus:
        return self.tracker.status()

    def _run(self, coro: Coroutine[Any, Any, _T]) -> _T:
        if self._loop is None:
            loop = asyncio.new_event_loop()
            thread = threading.Thread(
                target=loop.run_forever, name="green-carbon-tracker", daemon=True
            )
            thread.start()
            self._loop, self._thread = loop, thread
        return asyncio.run_coroutine_threadsafe(coro, self._loop).result()

    def _shutdown_loop(self) -> None:
        loop, thread = self._loop, self._thread
        if loop is None or thread is None:
            return
        loop.call_soon_threadsafe(loop.stop)
        thread.join()
        loop.close()
        self._loop = None
        self._thread = None
