"""Tests for sysmon data models."""

import dataclasses

import pytest

from sysmon.models import CpuCounters, CpuUtilization, ProcessSample


def test_process_sample_creation():
    """Test ProcessSample dataclass creation."""
    sample = ProcessSample(pid=123, name="test_process", user_ticks=70, system_ticks=30)

    assert sample.pid == 123
    assert sample.name == "test_process"
    assert sample.user_ticks == 70
    assert sample.system_ticks == 30


def test_process_sample_total_is_sum():
    """total_ticks is always user + system."""
    for user, system in [(0, 0), (1, 0), (0, 1), (12345, 678), (2**64 - 1, 2**64 - 1)]:
        sample = ProcessSample(pid=1, name="x", user_ticks=user, system_ticks=system)
        assert sample.total_ticks == user + system


def test_process_sample_is_frozen():
    """Test that ProcessSample is immutable (frozen)."""
    sample = ProcessSample(pid=1, name="init", user_ticks=1, system_ticks=2)

    with pytest.raises(dataclasses.FrozenInstanceError):
        sample.pid = 999  # type: ignore[misc]


def test_process_sample_uses_slots():
    """Slots-based dataclasses don't have __dict__."""
    sample = ProcessSample(pid=1, name="init", user_ticks=1, system_ticks=2)
    assert not hasattr(sample, "__dict__")


def test_cpu_counters_derived_fields():
    """active and total follow the /proc/stat category grouping."""
    counters = CpuCounters(
        user=1, nice=2, system=4, idle=8, iowait=16, irq=32, softirq=64, steal=128
    )
    assert counters.active == 1 + 2 + 4 + 32 + 64
    assert counters.total == counters.active + 8 + 16 + 128


def test_cpu_utilization_percentages():
    """Percentages are computed against delta_total."""
    util = CpuUtilization(
        delta_total=200, delta_active=50, delta_idle=100, delta_iowait=40, delta_steal=10
    )
    assert util.active_percent == 25.0
    assert util.idle_percent == 50.0
    assert util.iowait_percent == 20.0
    assert util.steal_percent == 5.0
    assert util.elapsed == 0.0
