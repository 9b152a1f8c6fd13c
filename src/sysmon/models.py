"""Data models for sysmon."""

from dataclasses import dataclass

# Longest process name kept from /proc/<pid>/comm
NAME_MAX_LENGTH = 255

# Upper bound (exclusive) of an unsigned 64-bit kernel counter
U64_LIMIT = 2**64


@dataclass(slots=True, frozen=True)
class ProcessSample:
    """Immutable CPU accounting sample of a single process."""

    pid: int
    name: str
    user_ticks: int  # utime, clock ticks
    system_ticks: int  # stime, clock ticks

    @property
    def total_ticks(self) -> int:
        """User plus system ticks."""
        return self.user_ticks + self.system_ticks


@dataclass(slots=True, frozen=True)
class CpuCounters:
    """Aggregate CPU time counters from the first line of /proc/stat."""

    user: int
    nice: int
    system: int
    idle: int
    iowait: int
    irq: int
    softirq: int
    steal: int

    @property
    def active(self) -> int:
        return self.user + self.nice + self.system + self.irq + self.softirq

    @property
    def total(self) -> int:
        return self.active + self.idle + self.iowait + self.steal


@dataclass(slots=True, frozen=True)
class CpuUtilization:
    """
    CPU utilization derived from two counter samples.

    delta_total is the denominator actually used, so it is never zero.
    elapsed is the measured wall time between the two reads, in seconds.
    """

    delta_total: int
    delta_active: int
    delta_idle: int
    delta_iowait: int
    delta_steal: int
    elapsed: float = 0.0

    def _percent(self, delta: int) -> float:
        return 100.0 * delta / self.delta_total

    @property
    def active_percent(self) -> float:
        return self._percent(self.delta_active)

    @property
    def idle_percent(self) -> float:
        return self._percent(self.delta_idle)

    @property
    def iowait_percent(self) -> float:
        return self._percent(self.delta_iowait)

    @property
    def steal_percent(self) -> float:
        return self._percent(self.delta_steal)


@dataclass(slots=True, frozen=True)
class MemoryUsage:
    """System memory and swap usage."""

    total: int  # Bytes
    used: int  # Bytes
    available: int  # Bytes
    percent: float
    swap_total: int  # Bytes
    swap_used: int  # Bytes
    swap_percent: float
