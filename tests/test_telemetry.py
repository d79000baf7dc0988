"""Tests for CPU, RAM, GPU readers, the heuristic sampler and host metadata."""

from __future__ import annotations

from dataclasses import dataclass

import pytest

from green_carbon.exceptions import SamplerError
from green_carbon.models import Domain
from green_carbon.telemetry import gpu as gpu_mod
from green_carbon.telemetry.cpu import CpuPowerReader, detect_cpu_model
from green_carbon.telemetry.gpu import GpuPowerReader
from green_carbon.telemetry.memory import RamPowerReader
from green_carbon.telemetry.sampler import HeuristicPowerSampler, PowerSampler
from green_carbon.telemetry.system import HostInspector


@dataclass
class FakeVirtualMemory:
    """Simple object imitating the psutil virtual_memory return shape."""

    total: int
    used: int = 0
    percent: float = 0.0
    available: int = 0


class FakePsutil:
    """Stub psutil module."""

    def __init__(self, percent: float = 50.0, total_gb: float = 16.0, cpus: int = 8):
        self._percent = percent
        self._total = int(total_gb * 1024**3)
        self._cpus = cpus
        self.primed = False

    def cpu_percent(self, interval: float | None = None) -> float:
        if not self.primed:
            self.primed = True
            return 0.0
        return self._percent

    def cpu_count(self, logical: bool = True) -> int:
        return self._cpus

    def virtual_memory(self) -> FakeVirtualMemory:
        return FakeVirtualMemory(total=self._total)


class FakeNVML:
    """Mock NVML exposing two devices."""

    def __init__(self, names=(b"NVIDIA GeForce RTX 3080", "NVIDIA A100"), power_mw=None):
        self.names = list(names)
        self.power_mw = power_mw if power_mw is not None else [200000, None]
        self.shutdown_calls = 0

    def nvmlInit(self):
        return None

    def nvmlShutdown(self):
        self.shutdown_calls += 1

    def nvmlDeviceGetCount(self):
        return len(self.names)

    def nvmlDeviceGetHandleByIndex(self, index):
        return index

    def nvmlDeviceGetName(self, handle):
        return self.names[handle]

    def nvmlDeviceGetPowerUsage(self, handle):
        value = self.power_mw[handle]
        if value is None:
            raise RuntimeError("power query not supported")
        return value


class BrokenReader:
    def read(self):
        raise OSError("sensor offline")


def test_cpu_power_follows_utilisation() -> None:
    fake = FakePsutil(percent=50.0)
    reader = CpuPowerReader(cpu_model="Intel(R) Core(TM) i7-9700K", psutil_module=fake)

    metrics = reader.read()
    assert fake.primed
    assert metrics["tdp_watts"] == 95.0
    assert metrics["cpu_percent"] == 50.0
    assert metrics["estimated_power_watts"] == pytest.approx(95.0 * 0.75)


def test_cpu_power_is_bounded_by_tdp() -> None:
    idle = CpuPowerReader(cpu_model="Apple M2", psutil_module=FakePsutil(percent=0.0))
    busy = CpuPowerReader(cpu_model="Apple M2", psutil_module=FakePsutil(percent=250.0))
    assert idle.read()["estimated_power_watts"] == pytest.approx(42.5)
    assert busy.read()["estimated_power_watts"] == pytest.approx(85.0)


def test_cpu_tdp_environment_override(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CPU_TDP_WATTS", "40")
    reader = CpuPowerReader(cpu_model="AMD Ryzen 9 7950X", psutil_module=FakePsutil())
    assert reader.tdp_watts == 40.0


def test_detect_cpu_model_reads_cpuinfo(tmp_path) -> None:
    cpuinfo = tmp_path / "cpuinfo"
    cpuinfo.write_text(
        "processor\t: 0\nmodel name\t: AMD Ryzen 7 5800X 8-Core Processor\n",
        encoding="utf-8",
    )
    assert detect_cpu_model(cpuinfo) == "AMD Ryzen 7 5800X 8-Core Processor"
    assert detect_cpu_model(tmp_path / "missing")


@pytest.mark.parametrize(
    "total_gb, slots, watts",
    [(16.0, 2, 10.0), (4.0, 1, 5.0), (0.0, 1, 5.0), (33.0, 5, 25.0)],
)
def test_ram_power_per_slot(total_gb: float, slots: int, watts: float) -> None:
    reader = RamPowerReader(psutil_module=FakePsutil(total_gb=total_gb))
    metrics = reader.read()
    assert metrics["estimated_slots"] == slots
    assert metrics["estimated_power_watts"] == watts


def test_gpu_reader_uses_nvml_and_table_fallback() -> None:
    nvml = FakeNVML()
    reader = GpuPowerReader(nvml=nvml)

    assert reader.gpu_count == 2
    assert reader.models == ("NVIDIA GeForce RTX 3080", "NVIDIA A100")
    metrics = reader.read()
    assert metrics[0]["power_watts"] == 200.0
    assert metrics[0]["power_source"] == "nvml"
    assert metrics[1]["power_watts"] == 150.0
    assert metrics[1]["power_source"] == "table"
    assert reader.total_power_watts() == 350.0

    reader.shutdown()
    assert nvml.shutdown_calls == 1


def test_gpu_reader_without_nvml_reports_zero(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(gpu_mod, "load_nvml_library", lambda: None)
    reader = GpuPowerReader()
    assert reader.gpu_count == 0
    assert reader.read() == []
    assert reader.total_power_watts() == 0.0
    reader.shutdown()


async def test_heuristic_sampler_reads_each_domain() -> None:
    sampler = HeuristicPowerSampler(
        cpu_reader=CpuPowerReader(cpu_model="Intel i5", psutil_module=FakePsutil(20.0)),
        ram_reader=RamPowerReader(psutil_module=FakePsutil(total_gb=8.0)),
        gpu_reader=GpuPowerReader(nvml=FakeNVML(names=["RTX 4090"], power_mw=[300500])),
    )
    assert isinstance(sampler, PowerSampler)

    cpu = await sampler.sample(Domain.CPU)
    ram = await sampler.sample(Domain.RAM)
    gpu = await sampler.sample(Domain.GPU)
    assert cpu.watts == pytest.approx(65.0 * 0.6)
    assert cpu.utilization_percent == 20.0
    assert ram.watts == 5.0
    assert ram.utilization_percent is None
    assert gpu.watts == pytest.approx(300.5)
    sampler.close()


def test_heuristic_sampler_wraps_reader_errors(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(gpu_mod, "load_nvml_library", lambda: None)
    sampler = HeuristicPowerSampler(
        cpu_reader=BrokenReader(),  # type: ignore[arg-type]
        ram_reader=RamPowerReader(psutil_module=FakePsutil()),
    )
    with pytest.raises(SamplerError, match="cpu"):
        sampler.sample_sync(Domain.CPU)
    assert sampler.sample_sync(Domain.GPU).watts == 0.0


async def test_host_inspector_collects_metadata() -> None:
    inspector = HostInspector(
        psutil_module=FakePsutil(total_gb=31.6, cpus=12),
        gpu_reader=GpuPowerReader(nvml=FakeNVML()),
    )
    info = await inspector.system_info()
    assert info.cpu_count == 12
    assert info.ram_total_gb == 32.0
    assert info.gpu_count == 2
    assert info.gpu_model == "NVIDIA GeForce RTX 3080, NVIDIA A100"
    assert info.os


def test_host_inspector_shuts_down_its_own_gpu_reader(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    nvml = FakeNVML()
    monkeypatch.setattr(gpu_mod, "load_nvml_library", lambda: nvml)
    info = HostInspector(psutil_module=FakePsutil()).collect()
    assert info.gpu_count == 2
    assert nvml.shutdown_calls == 1
