"""Tests for the tracking decorator and wrapper."""

from __future__ import annotations

import pytest

from green_carbon.decorators import measure, track_emissions

from helpers import FakeSystemInfo, RecordingSink

FORCED = {
    "force_cpu_power": 65.0,
    "force_ram_power": 10.0,
    "force_gpu_power": 0.0,
    "country_code": "USA",
    "log_level": "ERROR",
    "structured_logging": False,
}


def _options(writer: RecordingSink) -> dict[str, object]:
    return {**FORCED, "system_info_provider": FakeSystemInfo(), "record_writer": writer}


def test_sync_function_is_tracked() -> None:
    writer = RecordingSink()

    @track_emissions(**_options(writer))
    def add(a: int, b: int) -> int:
        return a + b

    assert add(2, 3) == 5
    assert add.__name__ == "add"
    assert len(writer.results) == 1
    assert writer.results[0].project_name.endswith("add")


def test_bare_decorator_form(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("GREEN_CARBON_SAVE_TO_FILE", "false")
    monkeypatch.setenv("GREEN_CARBON_FORCE_CPU_POWER", "1")
    monkeypatch.setenv("GREEN_CARBON_FORCE_RAM_POWER", "1")
    monkeypatch.setenv("GREEN_CARBON_FORCE_GPU_POWER", "0")
    monkeypatch.setenv("GREEN_CARBON_COUNTRY_CODE", "FRA")
    monkeypatch.setenv("GREEN_CARBON_LOG_LEVEL", "ERROR")

    @track_emissions
    def identity(value: str) -> str:
        return value

    assert identity("x") == "x"


def test_sync_function_can_return_emissions() -> None:
    writer = RecordingSink()

    @track_emissions(return_emissions=True, project_name="explicit", **_options(writer))
    def work() -> str:
        return "done"

    result, emissions = work()
    assert result == "done"
    assert emissions == writer.results[0].emissions_kg
    assert writer.results[0].project_name == "explicit"


def test_tracker_is_stopped_when_function_raises() -> None:
    writer = RecordingSink()

    @track_emissions(**_options(writer))
    def explode() -> None:
        raise KeyError("boom")

    with pytest.raises(KeyError):
        explode()
    assert len(writer.results) == 1


async def test_async_function_is_tracked() -> None:
    writer = RecordingSink()

    @track_emissions(return_emissions=True, **_options(writer))
    async def fetch() -> int:
        return 42

    value, emissions = await fetch()
    assert value == 42
    assert emissions >= 0.0
    assert len(writer.results) == 1


async def test_async_failure_still_stops() -> None:
    writer = RecordingSink()

    @track_emissions(**_options(writer))
    async def fail() -> None:
        raise ValueError("nope")

    with pytest.raises(ValueError):
        await fail()
    assert len(writer.results) == 1


async def test_measure_runs_sync_and_async_callables() -> None:
    writer = RecordingSink()

    async def coroutine_job() -> str:
        return "async"

    async_result, async_emissions = await measure(coroutine_job, **_options(writer))
    sync_result, sync_emissions = await measure(lambda: "sync", **_options(writer))

    assert async_result == "async"
    assert sync_result == "sync"
    assert async_emissions >= 0.0
    assert sync_emissions >= 0.0
    assert len(writer.results) == 2
