"""sysmon - Textual dashboard."""

from queue import Empty, Queue

from textual.app import App, ComposeResult
from textual.containers import Container, Horizontal
from textual.widgets import DataTable, Footer, Static

from sysmon.config import Config
from sysmon.eventlog import EventSink
from sysmon.models import CpuUtilization, MemoryUsage, ProcessSample
from sysmon.monitor import (
    MonitorFailure,
    MonitorSnapshot,
    MonitorUpdate,
    SortKey,
    SystemMonitor,
    rank_processes,
)
from sysmon.report import NO_PROCESSES, PROCESS_COLUMNS, format_bytes


def _bar(percent: float, color: str) -> str:
    bar_len = min(int(percent / 5), 20)
    return f"[{color}]█[/{color}]" * bar_len + "[dim]░[/dim]" * (20 - bar_len)


class HeaderStats(Static):
    """Header widget showing CPU utilization and memory statistics."""

    DEFAULT_CSS = """
    HeaderStats {
        height: auto;
        min-height: 5;
        padding: 1;
        background: $surface;
    }
    """

    def __init__(self, *args, steal_threshold: float = 0.1, **kwargs) -> None:
        """Initialize HeaderStats."""
        super().__init__(*args, **kwargs)
        self._steal_threshold = steal_threshold
        self._cpu: CpuUtilization | None = None
        self._memory: MemoryUsage | None = None
        self._load_avg: tuple[float, float, float] = (0.0, 0.0, 0.0)
        self._process_count: int = 0

    def compose(self) -> ComposeResult:
        """Compose the header stats layout."""
        yield Horizontal(
            Static(self._get_cpu_info(), id="cpu-info"),
            Static(self._get_mem_info(), id="mem-info"),
        )

    def update_stats(self, snapshot: MonitorSnapshot) -> None:
        """Update the statistics from a monitor snapshot."""
        self._cpu = snapshot.cpu
        self._memory = snapshot.memory
        self._load_avg = snapshot.load_avg
        self._process_count = snapshot.process_count
        self._refresh_display()

    def _refresh_display(self) -> None:
        """Refresh the display with current data."""
        if not self.is_mounted:
            return
        self.query_one("#cpu-info", Static).update(self._get_cpu_info())
        self.query_one("#mem-info", Static).update(self._get_mem_info())

    def _get_cpu_info(self) -> str:
        """Get CPU info display."""
        if self._cpu is None:
            return "Sampling CPU..."
        cpu = self._cpu
        rows = [
            ("Active", cpu.active_percent, "green"),
            ("Idle", cpu.idle_percent, "blue"),
            ("IOWait", cpu.iowait_percent, "yellow"),
        ]
        if cpu.steal_percent > self._steal_threshold:
            rows.append(("Steal", cpu.steal_percent, "red"))
        # Use escaped brackets for the bar container
        return "\n".join(
            f"{label:<7}\\[{_bar(percent, color)}] {percent:5.1f}%" for label, percent, color in rows
        )

    def _get_mem_info(self) -> str:
        """Get memory info display."""
        if self._memory is None:
            return "Loading memory info..."
        mem = self._memory
        swap_percent = mem.swap_percent if mem.swap_total > 0 else 0.0
        load_avg = self._load_avg
        return (
            f"Mem\\[{_bar(mem.percent, 'cyan')}] "
            f"{format_bytes(mem.used).strip()}/{format_bytes(mem.total).strip()}\n"
            f"Swp\\[{_bar(swap_percent, 'yellow')}] "
            f"{format_bytes(mem.swap_used).strip()}/{format_bytes(mem.swap_total).strip()}\n"
            f"Load average: {load_avg[0]:.2f} {load_avg[1]:.2f} {load_avg[2]:.2f}\n"
            f"Processes: {self._process_count}"
        )


class ProcessTable(Container):
    """Container for the ranked process table."""

    DEFAULT_CSS = """
    ProcessTable {
        height: 1fr;
        border: solid $primary;
    }
    """

    _COLUMN_KEYS = ("pid", "name", "user", "system", "total")

    def __init__(self, *args, sort_key: SortKey = SortKey.TOTAL, **kwargs) -> None:
        """Initialize ProcessTable."""
        super().__init__(*args, **kwargs)
        self._sort_key = sort_key

    @property
    def sort_key(self) -> SortKey:
        """Get current sort key."""
        return self._sort_key

    def cycle_sort(self) -> SortKey:
        """
        Cycle to the next sort key and return it.

        The rows on screen were chosen by the old key, so they stay as they
        are until the next update brings a ranking by the new key.
        """
        keys = list(SortKey)
        self._sort_key = keys[(keys.index(self._sort_key) + 1) % len(keys)]
        return self._sort_key

    def compose(self) -> ComposeResult:
        """Compose the process table."""
        yield DataTable(id="process-table")
        yield Static(NO_PROCESSES, id="no-processes")

    def on_mount(self) -> None:
        """Initialize the data table when mounted."""
        table = self.query_one("#process-table", DataTable)
        table.cursor_type = "row"
        for (title, width), key in zip(PROCESS_COLUMNS, self._COLUMN_KEYS):
            table.add_column(title, key=key, width=width)
        self.query_one("#no-processes", Static).display = False

    def update_processes(self, processes: list[ProcessSample]) -> None:
        """
        Replace the table rows with the given processes, highest first.

        An empty list hides the table and shows the "No processes found" message.
        """
        table = self.query_one("#process-table", DataTable)
        ranked = rank_processes(processes, len(processes), self._sort_key)

        table.clear()
        for proc in ranked:
            table.add_row(
                str(proc.pid),
                proc.name,
                str(proc.user_ticks),
                str(proc.system_ticks),
                str(proc.total_ticks),
                key=str(proc.pid),
            )

        table.display = bool(ranked)
        self.query_one("#no-processes", Static).display = not ranked


class SysmonApp(App):
    """Main sysmon dashboard."""

    TITLE = "sysmon"
    SUB_TITLE = "CPU and Process Monitor"

    CSS = """
    Screen {
        layout: vertical;
    }

    #header-stats {
        dock: top;
        height: auto;
        min-height: 6;
    }

    Horizontal {
        height: auto;
    }

    #cpu-info {
        width: 1fr;
        padding-right: 2;
    }

    #mem-info {
        width: 1fr;
        padding-left: 2;
    }
    """

    BINDINGS = [
        ("q", "quit", "Quit"),
        ("f6", "sort", "Sort"),
    ]

    def __init__(self, config: Config | None = None, sink: EventSink | None = None) -> None:
        """Initialize the SysmonApp."""
        super().__init__()
        self._config = config or Config()
        sampling = self._config.sampling
        self._update_queue: Queue[MonitorUpdate] = Queue()
        self._monitor = SystemMonitor(
            self._update_queue,
            interval=sampling.interval,
            top_n=sampling.top_n,
            sort_key=sampling.sort,
            proc_root=sampling.proc_root,
            sink=sink,
        )

    def compose(self) -> ComposeResult:
        """Compose the application layout."""
        yield HeaderStats(id="header-stats", steal_threshold=self._config.report.steal_threshold)
        yield ProcessTable(sort_key=self._config.sampling.sort)
        yield Footer()

    def on_mount(self) -> None:
        """Start the system monitor when the app is mounted."""
        self._monitor.start()
        self.set_interval(0.5, self._check_for_updates)

    def on_unmount(self) -> None:
        """Stop the monitor thread with the app."""
        self._monitor.stop()

    def _check_for_updates(self) -> None:
        """Drain the update queue and apply the newest update."""
        update = None
        while True:
            try:
                update = self._update_queue.get_nowait()
            except Empty:
                break

        if update is not None:
            self.apply_update(update)

    def apply_update(self, update: MonitorUpdate) -> None:
        """Show a monitor update: refresh widgets or report the failure."""
        if isinstance(update, MonitorFailure):
            self.notify(update.message, title="Sampling failed", severity="error")
            return
        self.query_one("#header-stats", HeaderStats).update_stats(update)
        self.query_one(ProcessTable).update_processes(update.processes)

    def action_sort(self) -> None:
        """Handle sort action - cycle through sort keys."""
        process_table = self.query_one(ProcessTable)
        new_sort_key = process_table.cycle_sort()
        self._monitor.sort_key = new_sort_key
        self.notify(f"Sort: {new_sort_key.value.upper()} (from next refresh)")

    def action_quit(self) -> None:
        """Handle quit action with graceful cleanup."""
        self._monitor.stop()
        self.exit()


def run_tui(config: Config | None = None, sink: EventSink | None = None) -> None:
    """Run the dashboard until the user quits."""
    SysmonApp(config, sink).run()
