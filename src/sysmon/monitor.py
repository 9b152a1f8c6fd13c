"""Sampling, ranking and periodic monitoring engine for sysmon."""

import threading
import time
from dataclasses import dataclass
from enum import Enum
from queue import Queue

import psutil

from sysmon.eventlog import EventSink
from sysmon.models import CpuCounters, CpuUtilization, MemoryUsage, ProcessSample
from sysmon.procfs import (
    DEFAULT_PROC_ROOT,
    SamplingCancelled,
    SysmonError,
    enumerate_processes,
    read_cpu_counters,
)

# Shortest interval between two CPU samples, in seconds
MIN_INTERVAL = 1.0


class SortKey(Enum):
    """Metrics a process snapshot can be ranked by."""

    TOTAL = "total"
    USER = "user"
    SYSTEM = "system"


_SORT_KEYS = {
    SortKey.TOTAL: lambda p: p.total_ticks,
    SortKey.USER: lambda p: p.user_ticks,
    SortKey.SYSTEM: lambda p: p.system_ticks,
}


def rank_processes(
    snapshot: list[ProcessSample],
    n: int,
    key: SortKey = SortKey.TOTAL,
) -> list[ProcessSample]:
    """
    Return at most n samples, highest first by the chosen metric.

    The relative order of samples with equal values is unspecified.
    """
    if n <= 0:
        return []
    return sorted(snapshot, key=_SORT_KEYS[key], reverse=True)[:n]


def _delta(previous: int, current: int) -> int:
    # Counters only move forward; a reset or wrap is treated as no movement
    return max(0, current - previous)


def compute_utilization(
    previous: CpuCounters,
    current: CpuCounters,
    elapsed: float = 0.0,
) -> CpuUtilization:
    """Compute utilization from two counter samples taken in order."""
    delta_total = _delta(previous.total, current.total)
    return CpuUtilization(
        delta_total=delta_total or 1,
        delta_active=_delta(previous.active, current.active),
        delta_idle=_delta(previous.idle, current.idle),
        delta_iowait=_delta(previous.iowait, current.iowait),
        delta_steal=_delta(previous.steal, current.steal),
        elapsed=elapsed,
    )


def wait_interval(interval: float, stop_event: threading.Event | None = None) -> float:
    """
    Block until interval seconds of monotonic time have passed.

    Early wake-ups wait again for the remainder. Returns the elapsed time.

    Raises:
        SamplingCancelled: If stop_event is set before the interval is over.
    """
    event = stop_event if stop_event is not None else threading.Event()
    start = time.monotonic()
    deadline = start + interval
    while True:
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            return time.monotonic() - start
        if event.wait(timeout=remaining):
            raise SamplingCancelled("sampling interval cancelled")


def sample_cpu(
    interval: float = MIN_INTERVAL,
    proc_root: str = DEFAULT_PROC_ROOT,
    sink: EventSink | None = None,
    stop_event: threading.Event | None = None,
) -> CpuUtilization:
    """
    Measure CPU utilization over interval seconds (at least MIN_INTERVAL).

    Raises:
        CounterUnavailable: If either sample cannot be read.
        SamplingCancelled: If stop_event is set during the wait.
    """
    interval = max(MIN_INTERVAL, interval)
    try:
        first = read_cpu_counters(proc_root)
        start = time.monotonic()
        wait_interval(interval, stop_event)
        second = read_cpu_counters(proc_root)
        elapsed = time.monotonic() - start
    except SysmonError as e:
        if sink is not None:
            sink.emit(f"CPU sample failed: {e}")
        raise

    utilization = compute_utilization(first, second, elapsed)
    if sink is not None:
        sink.emit(describe_utilization(utilization))
    return utilization


def describe_utilization(utilization: CpuUtilization) -> str:
    """One-line summary of a utilization result for the event log."""
    return (
        f"CPU sample over {utilization.elapsed:.2f}s: "
        f"active {utilization.active_percent:.1f}%, "
        f"idle {utilization.idle_percent:.1f}%, "
        f"iowait {utilization.iowait_percent:.1f}%, "
        f"steal {utilization.steal_percent:.1f}%"
    )


def read_memory() -> MemoryUsage:
    """Read system memory and swap usage."""
    mem = psutil.virtual_memory()
    swap = psutil.swap_memory()
    return MemoryUsage(
        total=mem.total,
        used=mem.used,
        available=mem.available,
        percent=mem.percent,
        swap_total=swap.total,
        swap_used=swap.used,
        swap_percent=swap.percent,
    )


@dataclass(slots=True)
class MonitorSnapshot:
    """One complete monitoring iteration."""

    cpu: CpuUtilization
    processes: list[ProcessSample]  # Ranked, at most top_n
    process_count: int
    memory: MemoryUsage
    load_avg: tuple[float, float, float]


@dataclass(slots=True)
class MonitorFailure:
    """A monitoring iteration that could not read its sources."""

    message: str


MonitorUpdate = MonitorSnapshot | MonitorFailure


class SystemMonitor:
    """
    Periodic monitor that samples CPU, ranks processes and publishes updates.

    Runs in a separate daemon thread and pushes one MonitorSnapshot (or
    MonitorFailure) per interval to a thread-safe Queue. Stopping sets an
    event that also cuts the current sampling wait short; an iteration
    interrupted that way publishes nothing.
    """

    def __init__(
        self,
        update_queue: Queue[MonitorUpdate],
        interval: float = MIN_INTERVAL,
        top_n: int = 5,
        sort_key: SortKey = SortKey.TOTAL,
        proc_root: str = DEFAULT_PROC_ROOT,
        sink: EventSink | None = None,
    ) -> None:
        """
        Initialize the SystemMonitor.

        Args:
            update_queue: Thread-safe queue to push updates to.
            interval: Seconds between CPU samples. Default and minimum 1.0s.
            top_n: How many processes each update carries.
            sort_key: Metric processes are ranked by.
            proc_root: Location of the proc filesystem.
            sink: Optional event sink for per-iteration log lines.
        """
        self._queue = update_queue
        self._interval = max(MIN_INTERVAL, interval)
        self.top_n = top_n
        self.sort_key = sort_key
        self._proc_root = proc_root
        self._sink = sink
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        # Single previous reading; nothing older is kept
        self._previous: CpuCounters | None = None
        self._previous_at = 0.0

    @property
    def interval(self) -> float:
        """Get the sampling interval."""
        return self._interval

    @interval.setter
    def interval(self, value: float) -> None:
        """Set the sampling interval."""
        self._interval = max(MIN_INTERVAL, value)

    @property
    def is_running(self) -> bool:
        """Check if the monitor thread is running."""
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start the monitoring thread."""
        if self.is_running:
            return

        self._stop_event.clear()
        self._previous = None
        self._thread = threading.Thread(
            target=self._poll_loop,
            daemon=True,
            name="SystemMonitor",
        )
        self._thread.start()

    def stop(self, timeout: float | None = 5.0) -> None:
        """
        Stop the monitoring thread.

        Args:
            timeout: How long to wait for thread to stop (seconds).
        """
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            self._thread = None

    def _emit(self, message: str) -> None:
        if self._sink is not None:
            self._sink.emit(message)

    def _poll_loop(self) -> None:
        """Main polling loop running in the background thread."""
        while not self._stop_event.is_set():
            try:
                update = self.collect_once()
            except SamplingCancelled:
                break
            except (SysmonError, OSError, psutil.Error) as e:
                self._previous = None
                self._emit(f"Monitoring iteration failed: {e}")
                self._queue.put(MonitorFailure(str(e)))
                # Back off one interval before reading the sources again
                self._stop_event.wait(timeout=self._interval)
                continue
            self._queue.put(update)

    def collect_once(self) -> MonitorSnapshot:
        """
        Run one monitoring iteration.

        Waits until one interval has passed since the previous CPU reading
        (taking a first reading if there is none), then enumerates and ranks
        processes. Time spent enumerating counts toward the next interval.

        Raises:
            SamplingCancelled: If the monitor is stopped during the wait.
            CounterUnavailable: If /proc/stat cannot be read.
            EnumerationUnavailable: If the process registry cannot be listed.
            OSError, psutil.Error: If memory or load average cannot be read.
        """
        if self._previous is None:
            self._previous = read_cpu_counters(self._proc_root)
            self._previous_at = time.monotonic()

        # The window between readings is anchored to the previous reading
        remaining = self._previous_at + self._interval - time.monotonic()
        wait_interval(max(0.0, remaining), self._stop_event)
        current = read_cpu_counters(self._proc_root)
        now = time.monotonic()
        cpu = compute_utilization(self._previous, current, now - self._previous_at)
        self._previous, self._previous_at = current, now
        self._emit(describe_utilization(cpu))

        snapshot = enumerate_processes(self._proc_root, self._sink)
        ranked = rank_processes(snapshot, self.top_n, self.sort_key)

        return MonitorSnapshot(
            cpu=cpu,
            processes=ranked,
            process_count=len(snapshot),
            memory=read_memory(),
            load_avg=psutil.getloadavg(),
        )
