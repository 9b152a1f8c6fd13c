"""Tests for the sysmon dashboard."""

import pytest
from textual.widgets import DataTable, Static

from sysmon.app import HeaderStats, ProcessTable, SysmonApp
from sysmon.config import Config
from sysmon.models import CpuUtilization, MemoryUsage, ProcessSample
from sysmon.monitor import MonitorFailure, MonitorSnapshot, SortKey


def make_snapshot(processes: list[ProcessSample]) -> MonitorSnapshot:
    return MonitorSnapshot(
        cpu=CpuUtilization(
            delta_total=47, delta_active=15, delta_idle=30, delta_iowait=2, delta_steal=0
        ),
        processes=processes,
        process_count=len(processes),
        memory=MemoryUsage(
            total=16 * 1024**3,
            used=8 * 1024**3,
            available=8 * 1024**3,
            percent=50.0,
            swap_total=4 * 1024**3,
            swap_used=0,
            swap_percent=0.0,
        ),
        load_avg=(1.0, 0.5, 0.25),
    )


TEST_PROCESSES = [
    ProcessSample(pid=100, name="test1", user_ticks=10, system_ticks=90),
    ProcessSample(pid=200, name="test2", user_ticks=60, system_ticks=60),
]


def row_pids(app: SysmonApp) -> list[int]:
    table = app.query_one("#process-table", DataTable)
    return [int(table.get_row_at(index)[0]) for index in range(table.row_count)]


class TestSortKey:
    """Tests for SortKey enum."""

    def test_sort_key_values(self):
        assert SortKey.TOTAL.value == "total"
        assert SortKey.USER.value == "user"
        assert SortKey.SYSTEM.value == "system"

    def test_sort_key_members(self):
        assert list(SortKey) == [SortKey.TOTAL, SortKey.USER, SortKey.SYSTEM]


@pytest.mark.asyncio
async def test_app_creation(test_config: Config):
    """Test SysmonApp can be instantiated."""
    app = SysmonApp(test_config)
    assert app.title == "sysmon"
    assert app.sub_title == "CPU and Process Monitor"
    assert app._monitor is not None
    assert app._monitor.top_n == 5


@pytest.mark.asyncio
async def test_app_compose(test_config: Config):
    """Test SysmonApp composes correctly."""
    app = SysmonApp(test_config)
    async with app.run_test() as pilot:
        assert pilot.app.query_one("#header-stats") is not None
        assert pilot.app.query_one("#process-table") is not None


@pytest.mark.asyncio
async def test_app_quit_binding(test_config: Config):
    """Test that 'q' binding triggers quit and stops the monitor."""
    app = SysmonApp(test_config)
    async with app.run_test() as pilot:
        await pilot.press("q")
        assert pilot.app._exit
        assert not app._monitor.is_running


@pytest.mark.asyncio
async def test_app_sort_binding(test_config: Config):
    """Test that F6 binding cycles sort key for the table and the monitor."""
    app = SysmonApp(test_config)
    async with app.run_test() as pilot:
        process_table = pilot.app.query_one(ProcessTable)
        initial_sort = process_table.sort_key

        await pilot.press("f6")

        assert process_table.sort_key != initial_sort
        assert app._monitor.sort_key == process_table.sort_key


@pytest.mark.asyncio
async def test_process_table_cycle_sort(test_config: Config):
    """Test ProcessTable sort key cycling."""
    app = SysmonApp(test_config)
    async with app.run_test() as pilot:
        process_table = pilot.app.query_one(ProcessTable)

        assert process_table.sort_key == SortKey.TOTAL

        process_table.cycle_sort()
        assert process_table.sort_key == SortKey.USER

        process_table.cycle_sort()
        assert process_table.sort_key == SortKey.SYSTEM

        # Should wrap back to TOTAL
        process_table.cycle_sort()
        assert process_table.sort_key == SortKey.TOTAL


@pytest.mark.asyncio
async def test_process_table_update_processes(test_config: Config):
    """Rows follow the ranking of the current sort key."""
    app = SysmonApp(test_config)
    async with app.run_test() as pilot:
        process_table = pilot.app.query_one(ProcessTable)

        process_table.update_processes(TEST_PROCESSES)
        assert row_pids(pilot.app) == [200, 100]

        process_table.cycle_sort()  # USER
        process_table.cycle_sort()  # SYSTEM
        process_table.update_processes(TEST_PROCESSES)
        assert row_pids(pilot.app) == [100, 200]


@pytest.mark.asyncio
async def test_cycle_sort_keeps_rows_until_next_update(test_config: Config):
    """Changing the key does not re-rank rows that were chosen by the old key."""
    app = SysmonApp(test_config)
    async with app.run_test() as pilot:
        process_table = pilot.app.query_one(ProcessTable)
        process_table.update_processes(TEST_PROCESSES)

        process_table.cycle_sort()  # USER
        process_table.cycle_sort()  # SYSTEM

        assert row_pids(pilot.app) == [200, 100]


@pytest.mark.asyncio
async def test_process_table_empty(test_config: Config):
    """An empty ranking shows the no-processes message instead of a table."""
    app = SysmonApp(test_config)
    async with app.run_test() as pilot:
        process_table = pilot.app.query_one(ProcessTable)

        process_table.update_processes(TEST_PROCESSES)
        process_table.update_processes([])

        assert row_pids(pilot.app) == []
        assert pilot.app.query_one("#process-table", DataTable).display is False
        assert pilot.app.query_one("#no-processes", Static).display is True


@pytest.mark.asyncio
async def test_header_stats_update(test_config: Config):
    """Test that header stats can be updated."""
    app = SysmonApp(test_config)
    async with app.run_test() as pilot:
        header = pilot.app.query_one("#header-stats", HeaderStats)

        header.update_stats(make_snapshot(TEST_PROCESSES))

        assert header._cpu is not None
        assert header._cpu.delta_total == 47
        assert header._memory is not None
        assert header._memory.percent == 50.0
        assert header._load_avg == (1.0, 0.5, 0.25)
        assert header._process_count == 2
        assert "Steal" not in header._get_cpu_info()


@pytest.mark.asyncio
async def test_apply_failure_keeps_table(test_config: Config):
    """A failed iteration is shown as a notification, not an empty table."""
    app = SysmonApp(test_config)
    async with app.run_test() as pilot:
        app.apply_update(make_snapshot(TEST_PROCESSES))
        app.apply_update(MonitorFailure("Cannot read /proc/stat"))
        await pilot.pause()

        assert row_pids(pilot.app) == [200, 100]


@pytest.mark.asyncio
async def test_app_receives_updates_from_monitor(test_config: Config):
    """Test that app receives updates from the system monitor."""
    app = SysmonApp(test_config)
    async with app.run_test() as pilot:
        # One sampling interval plus a queue poll
        await pilot.pause(3)

        assert app._monitor.is_running
        assert row_pids(pilot.app) == [42, 1, 99]
