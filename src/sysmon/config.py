"""Configuration system for sysmon."""

from dataclasses import dataclass, field, fields
from pathlib import Path

import tomlkit

from sysmon.monitor import MIN_INTERVAL, SortKey
from sysmon.procfs import DEFAULT_PROC_ROOT
from sysmon.report import STEAL_THRESHOLD


def _default_log_path() -> Path:
    return Path.home() / ".local" / "state" / "sysmon" / "events.log"


@dataclass
class SamplingConfig:
    """Sampling configuration."""

    interval: float = MIN_INTERVAL  # Seconds between the two CPU samples
    top_n: int = 5  # Processes shown by top/watch
    proc_root: str = DEFAULT_PROC_ROOT
    sort_key: str = SortKey.TOTAL.value  # total, user or system

    @property
    def sort(self) -> SortKey:
        return SortKey(self.sort_key)


@dataclass
class ReportConfig:
    """Report display configuration."""

    steal_threshold: float = STEAL_THRESHOLD  # Percent; steal at or below is hidden


@dataclass
class LoggingConfig:
    """Event log configuration."""

    enabled: bool = True
    path: Path = field(default_factory=_default_log_path)


def _dataclass_to_table(obj: object) -> tomlkit.items.Table:
    """Convert a dataclass instance to a tomlkit Table."""
    table = tomlkit.table()
    for f in fields(obj):  # type: ignore[arg-type]
        value = getattr(obj, f.name)
        if isinstance(value, Path):
            value = str(value)
        table.add(f.name, value)
    return table


@dataclass
class Config:
    """Main configuration container."""

    sampling: SamplingConfig = field(default_factory=SamplingConfig)
    report: ReportConfig = field(default_factory=ReportConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @property
    def config_dir(self) -> Path:
        """Configuration directory."""
        return Path.home() / ".config" / "sysmon"

    @property
    def config_path(self) -> Path:
        """Path to config file."""
        return self.config_dir / "config.toml"

    def save(self, path: Path | None = None) -> None:
        """Save config to TOML file."""
        path = path or self.config_path
        path.parent.mkdir(parents=True, exist_ok=True)

        doc = tomlkit.document()
        for name in ("sampling", "report", "logging"):
            doc.add(name, _dataclass_to_table(getattr(self, name)))
            doc.add(tomlkit.nl())

        path.write_text(tomlkit.dumps(doc))

    @classmethod
    def load(cls, path: Path | None = None) -> "Config":
        """Load config from TOML file, returning defaults for missing values.

        All defaults come from the dataclass definitions.

        Raises:
            ValueError: If the file is not valid TOML or holds invalid values.
        """
        defaults = cls()
        path = path or defaults.config_path
        if not path.exists():
            return defaults

        try:
            with open(path) as f:
                data = tomlkit.load(f).unwrap()
        except tomlkit.exceptions.TOMLKitError as e:
            raise ValueError(f"Failed to parse config file {path}: {e}") from e

        return cls(
            sampling=_load_sampling_config(data.get("sampling", {})),
            report=_load_report_config(data.get("report", {})),
            logging=_load_logging_config(data.get("logging", {})),
        )


def _require_number(name: str, value: object, kinds: tuple = (int, float)) -> None:
    # bool is a subclass of int
    if isinstance(value, bool) or not isinstance(value, kinds):
        raise ValueError(f"{name} must be a number, got {value!r}")


def _load_sampling_config(data: dict) -> SamplingConfig:
    """Load sampling config from TOML data, using dataclass defaults for missing fields."""
    defaults = SamplingConfig()

    interval = data.get("interval", defaults.interval)
    top_n = data.get("top_n", defaults.top_n)
    sort_key = data.get("sort_key", defaults.sort_key)

    _require_number("interval", interval)
    _require_number("top_n", top_n, (int,))
    if interval < MIN_INTERVAL:
        raise ValueError(f"interval must be >= {MIN_INTERVAL}, got {interval}")
    if top_n < 1:
        raise ValueError(f"top_n must be >= 1, got {top_n}")
    valid_keys = {key.value for key in SortKey}
    if sort_key not in valid_keys:
        raise ValueError(f"Invalid sort_key: {sort_key!r}. Must be one of {sorted(valid_keys)}")

    return SamplingConfig(
        interval=float(interval),
        top_n=top_n,
        proc_root=data.get("proc_root", defaults.proc_root),
        sort_key=sort_key,
    )


def _load_report_config(data: dict) -> ReportConfig:
    """Load report config from TOML data."""
    defaults = ReportConfig()
    steal_threshold = data.get("steal_threshold", defaults.steal_threshold)
    _require_number("steal_threshold", steal_threshold)
    if steal_threshold < 0:
        raise ValueError(f"steal_threshold must be >= 0, got {steal_threshold}")
    return ReportConfig(steal_threshold=float(steal_threshold))


def _load_logging_config(data: dict) -> LoggingConfig:
    """Load logging config from TOML data."""
    defaults = LoggingConfig()
    path = data.get("path")
    return LoggingConfig(
        enabled=data.get("enabled", defaults.enabled),
        path=Path(path).expanduser() if path else defaults.path,
    )
