"""Shared test fixtures for sysmon."""

from pathlib import Path

import pytest

from sysmon.config import Config, LoggingConfig, SamplingConfig


def make_stat_record(
    pid: int,
    name: str,
    utime: int | str,
    stime: int | str,
    state: str = "S",
) -> str:
    """Build a /proc/<pid>/stat line with 20 fields."""
    # Fields 3-13: state, ppid, pgrp, session, tty_nr, tpgid, flags,
    # minflt, cminflt, majflt, cmajflt
    middle = f"{state} 1 {pid} {pid} 0 -1 4194560 120 0 3 0"
    tail = "0 0 20 0 1"  # cutime cstime priority nice num_threads
    return f"{pid} ({name}) {middle} {utime} {stime} {tail}\n"


class FakeProc:
    """A fake /proc tree under a temporary directory."""

    def __init__(self, root: Path) -> None:
        self.root = root
        self.root.mkdir(parents=True, exist_ok=True)

    def add_process(
        self,
        pid: int,
        name: str = "proc",
        utime: int = 0,
        stime: int = 0,
        stat: str | None = None,
        comm: str | None = None,
    ) -> Path:
        """Create <root>/<pid> with comm and stat files.

        Pass stat to write a raw record instead of a generated one.
        """
        proc_dir = self.root / str(pid)
        proc_dir.mkdir()
        (proc_dir / "comm").write_text(f"{name}\n" if comm is None else comm)
        record = stat if stat is not None else make_stat_record(pid, name, utime, stime)
        (proc_dir / "stat").write_text(record)
        return proc_dir

    def set_cpu(self, *values: int, label: str = "cpu") -> None:
        """Write the aggregate cpu line (and one per-cpu line) of stat."""
        counters = " ".join(str(v) for v in values)
        (self.root / "stat").write_text(f"{label}  {counters}\ncpu0 {counters}\nintr 0\n")


@pytest.fixture
def fake_proc(tmp_path: Path) -> FakeProc:
    """An empty fake /proc tree."""
    return FakeProc(tmp_path / "proc")


@pytest.fixture
def populated_proc(fake_proc: FakeProc) -> FakeProc:
    """A fake /proc with three processes, non-process entries and cpu counters."""
    fake_proc.add_process(1, "init", utime=30, stime=20)
    fake_proc.add_process(42, "worker", utime=150, stime=50)
    fake_proc.add_process(99, "idle", utime=4, stime=6)
    (fake_proc.root / "self").mkdir()
    (fake_proc.root / "sys").mkdir()
    (fake_proc.root / "meminfo").write_text("MemTotal: 1 kB\n")
    fake_proc.set_cpu(100, 0, 50, 800, 10, 0, 0, 0, 0, 0)
    return fake_proc


@pytest.fixture
def test_config(tmp_path: Path, populated_proc: FakeProc) -> Config:
    """Config pointing at the populated fake /proc with a temporary event log."""
    return Config(
        sampling=SamplingConfig(proc_root=str(populated_proc.root)),
        logging=LoggingConfig(enabled=True, path=tmp_path / "state" / "events.log"),
    )
