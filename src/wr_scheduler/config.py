from __future__ import annotations

__all__ = ["DEFAULT_ENV_WHITELIST", "SchedulerConfig"]

from dataclasses import dataclass, field
from pathlib import Path

import yaml

from wr_scheduler.errors import ConfigError
from wr_scheduler.resources import ResourcePolicy


# Environment variables passed through to wr jobs when they are set.
DEFAULT_ENV_WHITELIST: list[str] = [
    "CLASSPATH",
    "IRODS_ENVIRONMENT_FILE",
    "NPG_CACHED_SAMPLESHEET_FILE",
    "NPG_REPOSITORY_ROOT",
    "PATH",
    "PERL5LIB",
    "REF_PATH",
]


@dataclass
class SchedulerConfig:
    """All paths and wr settings in one place."""

    # Per-job log files are written here: <log_dir>/<function>-<created_on>-<id>.out
    log_dir: Path = field(default_factory=lambda: Path("/tmp/wr_scheduler/log"))

    # Submission files (newline-delimited JSON) are written here.
    submission_dir: Path = field(default_factory=lambda: Path("/tmp/wr_scheduler"))

    # JSON resource policy; built-in defaults are used when None.
    resources_file: Path | None = None

    # JSONL audit log path. Defaults to <submission_dir>/wr_scheduler_audit.jsonl at runtime.
    log_file: Path | None = None

    # File-creation mask applied before every job command.
    umask: str = "0002"

    # wr add settings
    wr_executable: str = "wr"
    wr_cwd: str = "/tmp"
    wr_disk: int = 0
    wr_override: int = 2
    wr_retries: int = 1
    env_whitelist: list[str] = field(default_factory=lambda: list(DEFAULT_ENV_WHITELIST))

    def __post_init__(self) -> None:
        """Validate numeric wr settings.

        Raises
        ------
        ValueError
            If ``wr_disk`` or ``wr_retries`` is negative, or ``wr_override``
            is not 0, 1 or 2.
        """
        if self.wr_disk < 0:
            raise ValueError(f"wr_disk must be >= 0, got {self.wr_disk}")
        if self.wr_retries < 0:
            raise ValueError(f"wr_retries must be >= 0, got {self.wr_retries}")
        if self.wr_override not in (0, 1, 2):
            raise ValueError(f"wr_override must be 0, 1 or 2, got {self.wr_override}")

    def load_resources(self) -> ResourcePolicy:
        """Return the resource policy from ``resources_file`` or built-in defaults.

        Raises
        ------
        ConfigError
            If ``resources_file`` is set but missing or invalid.
        """
        if self.resources_file is None:
            return ResourcePolicy()
        return ResourcePolicy.from_json(self.resources_file)

    @classmethod
    def from_yaml(cls, path: str | Path) -> "SchedulerConfig":
        """Load config from a YAML file, overriding defaults.

        Raises
        ------
        ValueError
            If the file contains invalid YAML syntax (raised as
            :class:`~wr_scheduler.errors.ConfigError`).
        FileNotFoundError
            If *path* does not exist.
        """
        with open(path) as f:
            try:
                data = yaml.safe_load(f) or {}
            except yaml.YAMLError as exc:
                raise ConfigError(f"Invalid YAML in {path}: {exc}") from exc

        path_fields = {"log_dir", "submission_dir", "resources_file", "log_file"}
        for key in path_fields:
            if data.get(key) is not None:
                data[key] = Path(data[key])

        umask = data.get("umask")
        if isinstance(umask, int):
            # YAML reads an unquoted 0022 as an octal integer.
            data["umask"] = format(umask, "04o")

        return cls(**data)
