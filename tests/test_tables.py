"""Tests for the data-driven heuristic power tables."""

from __future__ import annotations

import pytest

from green_carbon.telemetry.tables import CPU_TDP_TABLE, GPU_POWER_TABLE, PatternTable


@pytest.mark.parametrize(
    "model, watts",
    [
        ("Intel(R) Core(TM) i3-10100 CPU @ 3.60GHz", 35.0),
        ("Intel(R) Core(TM) i5-1135G7 @ 2.40GHz", 65.0),
        ("Intel(R) Core(TM) i7-9700K CPU @ 3.60GHz", 95.0),
        ("Intel(R) Core(TM) i9-13900K", 125.0),
        ("Intel(R) Xeon(R) Gold 6248 CPU @ 2.50GHz", 150.0),
        ("AMD Ryzen 3 3200G with Radeon Vega Graphics", 65.0),
        ("AMD Ryzen 5 5600X 6-Core Processor", 95.0),
        ("AMD Ryzen 7 5800X 8-Core Processor", 105.0),
        ("AMD RYZEN 9 7950X", 125.0),
        ("AMD Ryzen Threadripper 3970X 32-Core Processor", 280.0),
        ("Intel(R) Core(TM) Ultra 7 155U", 15.0),
        ("Intel(R) Core(TM) Ultra 9 185H", 45.0),
        ("Apple M2", 85.0),
        ("", 85.0),
    ],
)
def test_cpu_tdp_lookup(model: str, watts: float) -> None:
    assert CPU_TDP_TABLE.lookup(model) == watts


@pytest.mark.parametrize(
    "model, watts",
    [
        ("NVIDIA GeForce RTX 4090", 450.0),
        ("NVIDIA GeForce RTX 3060 Laptop GPU", 170.0),
        ("AMD Radeon RX 6800 XT", 250.0),
        ("Tesla V100-SXM2-16GB", 150.0),
    ],
)
def test_gpu_power_lookup(model: str, watts: float) -> None:
    assert GPU_POWER_TABLE.lookup(model) == watts


def test_first_matching_row_wins() -> None:
    table = PatternTable.from_pairs([("alpha", 1), ("alpha beta", 2)], default=0)
    assert table.lookup("alpha beta") == 1.0
    assert table.lookup(None) == 0.0
    assert len(table) == 2


def test_extended_rows_take_precedence() -> None:
    table = CPU_TDP_TABLE.extended([(r"epyc", 225)])
    assert table.lookup("AMD EPYC 7763 64-Core Processor") == 225.0
    assert table.lookup("Intel(R) Core(TM) i7-9700K") == 95.0
    assert CPU_TDP_TABLE.lookup("AMD EPYC 7763 64-Core Processor") == 85.0
    assert [row.pattern for row in table][0] == "epyc"
