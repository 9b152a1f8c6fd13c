"""Plain-text reports for sysmon."""

import os

from sysmon.models import CpuUtilization, MemoryUsage, ProcessSample

# Steal time at or below this percentage is not shown
STEAL_THRESHOLD = 0.1

NO_PROCESSES = "No processes found"

PROCESS_COLUMNS = (
    ("PID", 8),
    ("Process Name", 20),
    ("User Time", 15),
    ("System Time", 15),
    ("Total Time", 15),
)

RULE_WIDTH = 80

TICKS_NOTE = "Note: Times are in clock ticks (divide by SC_CLK_TCK for seconds)"


def clock_ticks_per_second() -> int:
    """Kernel clock ticks per second (SC_CLK_TCK)."""
    return os.sysconf("SC_CLK_TCK")


def ticks_to_seconds(ticks: int, hz: int | None = None) -> float:
    """Convert clock ticks to seconds."""
    return ticks / (hz or clock_ticks_per_second())


def format_bytes(size: float) -> str:
    """Format bytes as human-readable string."""
    for unit in ["B", "K", "M", "G", "T"]:
        if size < 1024:
            return f"{size:5.1f}{unit}" if unit != "B" else f"{int(size):5d}{unit}"
        size = size / 1024
    return f"{size:.1f}P"


def _row(values: tuple) -> str:
    # Numbers wider than their column widen it rather than lose digits
    return " ".join(f"{value!s:<{width}}" for value, (_, width) in zip(values, PROCESS_COLUMNS))


def format_process_row(proc: ProcessSample) -> str:
    """Format one process as a fixed-width table row."""
    name_width = PROCESS_COLUMNS[1][1]
    return _row(
        (proc.pid, proc.name[:name_width], proc.user_ticks, proc.system_ticks, proc.total_ticks)
    )


def format_process_table(ranked: list[ProcessSample]) -> str:
    """
    Format ranked processes as a fixed-column table.

    Columns are 8/20/15/15/15 characters wide, separated by single spaces.
    Longer names are cut to the column width; tick counts are never cut
    and widen their column instead. An empty ranking gives the
    "No processes found" message instead of a table.
    """
    if not ranked:
        return NO_PROCESSES

    lines = [_row(tuple(title for title, _ in PROCESS_COLUMNS)), "-" * RULE_WIDTH]
    lines.extend(format_process_row(proc) for proc in ranked)
    lines.append("")
    lines.append(TICKS_NOTE)
    return "\n".join(lines)


def format_cpu_report(
    utilization: CpuUtilization,
    steal_threshold: float = STEAL_THRESHOLD,
) -> str:
    """Format CPU utilization as a categorized percentage table."""
    rows = [
        ("Active", utilization.active_percent),
        ("Idle", utilization.idle_percent),
        ("I/O Wait", utilization.iowait_percent),
    ]
    if utilization.steal_percent > steal_threshold:
        rows.append(("Steal", utilization.steal_percent))

    lines = [f"{'Category':<12} {'Percent':>8}", "-" * 21]
    lines.extend(f"{label:<12} {percent:>7.1f}%" for label, percent in rows)
    if utilization.elapsed:
        lines.append("")
        lines.append(f"Measured over {utilization.elapsed:.2f}s")
    return "\n".join(lines)


def format_memory_report(memory: MemoryUsage) -> str:
    """Format memory and swap usage."""
    lines = [
        f"{'':<6} {'Total':>8} {'Used':>8} {'Avail':>8} {'Use%':>7}",
        f"{'Mem':<6} {format_bytes(memory.total):>8} {format_bytes(memory.used):>8} "
        f"{format_bytes(memory.available):>8} {memory.percent:>6.1f}%",
    ]
    if memory.swap_total > 0:
        swap_free = memory.swap_total - memory.swap_used
        lines.append(
            f"{'Swap':<6} {format_bytes(memory.swap_total):>8} "
            f"{format_bytes(memory.swap_used):>8} {format_bytes(swap_free):>8} "
            f"{memory.swap_percent:>6.1f}%"
        )
    else:
        lines.append(f"{'Swap':<6} {'none':>8}")
    return "\n".join(lines)
