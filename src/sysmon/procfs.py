"""Readers for the Linux /proc filesystem.

Everything here is synchronous and read-only. The process registry is
volatile: a pid listed by ``enumerate_processes`` may be gone by the time its
files are opened, which ``read_process`` reports as ``ProcessVanished``.
"""

from __future__ import annotations

import os
from pathlib import Path

from sysmon.eventlog import EventSink
from sysmon.models import NAME_MAX_LENGTH, U64_LIMIT, CpuCounters, ProcessSample

DEFAULT_PROC_ROOT = "/proc"

UNKNOWN_NAME = "unknown"

# 1-based positions of utime and stime in /proc/<pid>/stat
UTIME_FIELD = 14
STIME_FIELD = 15

CPU_COUNTER_FIELDS = ("user", "nice", "system", "idle", "iowait", "irq", "softirq", "steal")


class SysmonError(Exception):
    """Base class for sysmon errors."""


class ProcessVanished(SysmonError):
    """A process's accounting record could not be opened or parsed."""

    def __init__(self, pid: int, reason: str = "") -> None:
        self.pid = pid
        self.reason = reason
        message = f"process {pid} vanished"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class EnumerationUnavailable(SysmonError):
    """The process registry itself could not be listed."""


class CounterUnavailable(SysmonError):
    """The aggregate CPU counter record is unreadable or malformed."""


class SamplingCancelled(SysmonError):
    """The wait between two CPU samples was cancelled."""


def _parse_u64(token: str) -> int | None:
    """Parse an unsigned 64-bit decimal, or return None."""
    if not (token.isascii() and token.isdigit()):
        return None
    value = int(token)
    if value >= U64_LIMIT:
        return None
    return value


def is_pid_entry(name: str) -> bool:
    """Return True for registry entries that name a process (all ASCII digits)."""
    return bool(name) and name.isascii() and name.isdigit()


def parse_stat_ticks(record: str) -> tuple[int, int]:
    """
    Extract (utime, stime) from a /proc/<pid>/stat record.

    The second field is the process name in parentheses and may itself
    contain spaces or parentheses, so counting resumes after the last ")".

    Raises:
        ValueError: If either tick field is missing or not an unsigned 64-bit value.
    """
    close = record.rfind(")")
    if close == -1:
        fields = record.split()
        offset = 0
    else:
        # Everything after the name starts at field 3
        fields = record[close + 1 :].split()
        offset = 2

    ticks = []
    for position in (UTIME_FIELD, STIME_FIELD):
        index = position - 1 - offset
        if index >= len(fields):
            break
        value = _parse_u64(fields[index])
        if value is None:
            break
        ticks.append(value)

    if len(ticks) != 2:
        raise ValueError(f"expected 2 tick fields, parsed {len(ticks)}")
    return ticks[0], ticks[1]


def read_process_name(pid: int, proc_root: str | os.PathLike[str] = DEFAULT_PROC_ROOT) -> str:
    """Read a process name from comm, falling back to "unknown"."""
    try:
        with open(Path(proc_root) / str(pid) / "comm", "rb") as f:
            raw = f.readline()
    except OSError:
        return UNKNOWN_NAME

    name = raw.decode("utf-8", errors="replace")
    if name.endswith("\n"):
        name = name[:-1]
    return name[:NAME_MAX_LENGTH]


def read_process(pid: int, proc_root: str | os.PathLike[str] = DEFAULT_PROC_ROOT) -> ProcessSample:
    """
    Read one process's CPU accounting sample.

    The name is best-effort; only the stat record decides success.

    Raises:
        ProcessVanished: If the stat record cannot be opened or parsed.
    """
    name = read_process_name(pid, proc_root)

    try:
        with open(Path(proc_root) / str(pid) / "stat", "rb") as f:
            record = f.readline().decode("utf-8", errors="replace")
    except OSError as e:
        raise ProcessVanished(pid, e.strerror or str(e)) from e

    try:
        utime, stime = parse_stat_ticks(record)
    except ValueError as e:
        raise ProcessVanished(pid, str(e)) from e

    return ProcessSample(pid=pid, name=name, user_ticks=utime, system_ticks=stime)


def enumerate_processes(
    proc_root: str | os.PathLike[str] = DEFAULT_PROC_ROOT,
    sink: EventSink | None = None,
) -> list[ProcessSample]:
    """
    Take a snapshot of every process visible under proc_root.

    Processes that exit mid-scan are skipped. An empty registry gives an
    empty list.

    Raises:
        EnumerationUnavailable: If proc_root cannot be listed.
    """
    try:
        with os.scandir(proc_root) as entries:
            pids = [int(entry.name) for entry in entries if is_pid_entry(entry.name)]
    except OSError as e:
        message = f"Cannot open {os.fspath(proc_root)}: {e.strerror or e}"
        if sink is not None:
            sink.emit(f"Enumeration failed: {message}")
        raise EnumerationUnavailable(message) from e

    snapshot: list[ProcessSample] = []
    skipped = 0
    for pid in pids:
        try:
            snapshot.append(read_process(pid, proc_root))
        except ProcessVanished:
            skipped += 1

    if sink is not None:
        sink.emit(f"Enumerated {len(snapshot)} processes ({skipped} skipped)")
    return snapshot


def read_cpu_counters(proc_root: str | os.PathLike[str] = DEFAULT_PROC_ROOT) -> CpuCounters:
    """
    Read the aggregate "cpu" line of /proc/stat.

    Raises:
        CounterUnavailable: If the file cannot be read or has fewer than
            8 counters after its label.
    """
    path = Path(proc_root) / "stat"
    try:
        with open(path, "rb") as f:
            line = f.readline().decode("ascii", errors="replace")
    except OSError as e:
        raise CounterUnavailable(f"Cannot read {path}: {e.strerror or e}") from e

    tokens = line.split()
    if not tokens or _parse_u64(tokens[0]) is not None:
        raise CounterUnavailable(f"Malformed counter record in {path}: missing label")

    values: list[int] = []
    for token in tokens[1 : 1 + len(CPU_COUNTER_FIELDS)]:
        value = _parse_u64(token)
        if value is None:
            break
        values.append(value)

    if len(values) < len(CPU_COUNTER_FIELDS):
        raise CounterUnavailable(
            f"Malformed counter record in {path}: "
            f"expected {len(CPU_COUNTER_FIELDS)} counters, parsed {len(values)}"
        )
    return CpuCounters(**dict(zip(CPU_COUNTER_FIELDS, values)))
