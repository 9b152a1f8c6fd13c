"""CLI commands for sysmon."""

import signal
import threading
from pathlib import Path
from queue import Empty, Queue

import click

from sysmon import eventlog
from sysmon.config import Config
from sysmon.eventlog import EventSink, StructlogSink
from sysmon.monitor import (
    MonitorFailure,
    MonitorUpdate,
    SortKey,
    SystemMonitor,
    rank_processes,
    read_memory,
    sample_cpu,
)
from sysmon.procfs import SysmonError, enumerate_processes
from sysmon.report import format_cpu_report, format_memory_report, format_process_table

MENU = """\
=====================================
    SYSTEM MONITOR - MAIN MENU
=====================================
1. CPU Usage
2. Memory Usage
3. Top {top_n} Processes
4. Continuous Monitoring
5. Exit
====================================="""


class Context:
    """Objects shared by all commands."""

    def __init__(self, config: Config, sink: EventSink) -> None:
        self.config = config
        self.sink = sink


pass_context = click.make_pass_decorator(Context)


def cpu_report(ctx: Context, interval: float | None = None) -> str:
    """Sample the CPU and return the formatted report."""
    sampling = ctx.config.sampling
    utilization = sample_cpu(
        interval if interval is not None else sampling.interval,
        proc_root=sampling.proc_root,
        sink=ctx.sink,
    )
    return format_cpu_report(utilization, ctx.config.report.steal_threshold)


def memory_report(ctx: Context) -> str:
    """Read memory usage and return the formatted report."""
    return format_memory_report(read_memory())


def top_report(ctx: Context, top_n: int | None = None, sort_key: SortKey | None = None) -> str:
    """Enumerate, rank and return the formatted process table."""
    sampling = ctx.config.sampling
    snapshot = enumerate_processes(sampling.proc_root, ctx.sink)
    ranked = rank_processes(snapshot, top_n or sampling.top_n, sort_key or sampling.sort)
    return format_process_table(ranked)


def render_update(ctx: Context, update: MonitorUpdate) -> str:
    """Format one periodic monitor update."""
    if isinstance(update, MonitorFailure):
        return f"Error: {update.message}"
    return "\n\n".join(
        [
            "=== CPU Usage ===",
            format_cpu_report(update.cpu, ctx.config.report.steal_threshold),
            f"=== Top {len(update.processes)} of {update.process_count} Processes ===",
            format_process_table(update.processes),
        ]
    )


def watch_loop(ctx: Context, interval: float | None = None, top_n: int | None = None) -> None:
    """Print a refreshed report every interval until SIGINT or SIGTERM."""
    sampling = ctx.config.sampling
    stop_event = threading.Event()

    def request_stop(signum, frame) -> None:
        stop_event.set()

    previous_handlers = {
        sig: signal.signal(sig, request_stop) for sig in (signal.SIGINT, signal.SIGTERM)
    }
    update_queue: Queue[MonitorUpdate] = Queue()
    monitor = SystemMonitor(
        update_queue,
        interval=interval if interval is not None else sampling.interval,
        top_n=top_n or sampling.top_n,
        sort_key=sampling.sort,
        proc_root=sampling.proc_root,
        sink=ctx.sink,
    )

    ctx.sink.emit("Continuous monitoring started")
    monitor.start()
    try:
        click.echo("Sampling... press Ctrl-C to stop.")
        while not stop_event.is_set():
            try:
                update = update_queue.get(timeout=0.2)
            except Empty:
                continue
            click.clear()
            click.echo(render_update(ctx, update))
            click.echo("\nPress Ctrl-C to stop.")
    finally:
        monitor.stop()
        for sig, handler in previous_handlers.items():
            signal.signal(sig, handler)
        ctx.sink.emit("Continuous monitoring stopped")


def _fail(err: SysmonError) -> None:
    eventlog.error(str(err))
    raise SystemExit(1)


@click.group()
@click.version_option(package_name="sysmon")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Path to config.toml",
)
@click.pass_context
def main(click_ctx: click.Context, config_path: Path | None) -> None:
    """Sample CPU and process state from /proc."""
    try:
        config = Config.load(config_path)
    except ValueError as e:
        raise click.ClickException(str(e)) from e
    eventlog.configure(config)
    click_ctx.obj = Context(config, StructlogSink())


@main.command()
@click.option("--interval", "-i", type=float, default=None, help="Seconds between samples")
@pass_context
def cpu(ctx: Context, interval: float | None) -> None:
    """Show CPU utilization over one sampling interval."""
    try:
        click.echo(cpu_report(ctx, interval))
    except SysmonError as e:
        _fail(e)


@main.command()
@pass_context
def mem(ctx: Context) -> None:
    """Show memory and swap usage."""
    click.echo(memory_report(ctx))


@main.command()
@click.option(
    "--limit",
    "-n",
    "top_n",
    type=click.IntRange(min=1),
    default=None,
    help="Number of processes to show",
)
@click.option(
    "--sort",
    "sort_key",
    type=click.Choice([key.value for key in SortKey]),
    default=None,
    help="Metric to rank by",
)
@pass_context
def top(ctx: Context, top_n: int | None, sort_key: str | None) -> None:
    """Show the processes with the most CPU time."""
    try:
        click.echo(top_report(ctx, top_n, SortKey(sort_key) if sort_key else None))
    except SysmonError as e:
        _fail(e)


@main.command()
@click.option("--interval", "-i", type=float, default=None, help="Seconds between refreshes")
@click.option(
    "--limit",
    "-n",
    "top_n",
    type=click.IntRange(min=1),
    default=None,
    help="Number of processes to show",
)
@pass_context
def watch(ctx: Context, interval: float | None, top_n: int | None) -> None:
    """Refresh CPU and top processes until interrupted."""
    watch_loop(ctx, interval, top_n)


@main.command()
@pass_context
def tui(ctx: Context) -> None:
    """Launch interactive dashboard."""
    from sysmon.app import run_tui

    run_tui(ctx.config, ctx.sink)


@main.command()
@pass_context
def menu(ctx: Context) -> None:
    """Interactive menu."""
    top_n = ctx.config.sampling.top_n
    screens = {
        1: ("CPU Usage", lambda: cpu_report(ctx)),
        2: ("Memory Usage", lambda: memory_report(ctx)),
        3: (f"Top {top_n} Processes", lambda: top_report(ctx)),
    }

    while True:
        click.clear()
        click.echo(MENU.format(top_n=top_n))
        choice = click.prompt("Enter your choice", type=int)

        if choice == 5:
            click.echo("\nExiting System Monitor. Goodbye!")
            return
        if choice == 4:
            click.clear()
            watch_loop(ctx)
            continue
        if choice not in screens:
            click.echo("\nInvalid choice. Please select 1-5.")
            click.pause()
            continue

        title, produce = screens[choice]
        click.clear()
        click.echo(f"=== {title} ===\n")
        try:
            click.echo(produce())
        except SysmonError as e:
            eventlog.error(str(e))
        click.pause("\nPress Enter to return to menu...")
