"""resources.py — layered cpu/memory/queue policy for wr jobs.

The policy is read once from a JSON file::

    {
      "default_queue": {"memory": 2000},
      "p4stage_queue": {"cloud_flavor": "ukb1.2xlarge", "cpus": 4},
      "archival_limit": 5,
      "archival_functions": ["archive_to_irods_samplesheet"]
    }

Values are merged most-specific first:

1. the function definition's own ``cpu_count`` / ``memory_mb``;
2. the ``<queue>_queue`` object for the definition's queue;
3. ``default_queue``;
4. built-in defaults (2000 MB memory, 0 cpus, priority 0).

A cpu count of 0 is passed to wr as-is and lets the scheduler decide.
Keys other than ``cpus``, ``memory`` and ``priority`` in a queue object
(e.g. ``cloud_flavor``) are copied onto the submission record.
"""
from __future__ import annotations

__all__ = [
    "DEFAULT_MEMORY_MB",
    "DEFAULT_ARCHIVAL_LIMIT",
    "ARCHIVAL_LIMIT_GROUP",
    "DEFAULT_ARCHIVAL_FUNCTIONS",
    "Resources",
    "ResourcePolicy",
]

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from wr_scheduler.definition import FunctionDefinition
from wr_scheduler.errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_MEMORY_MB = 2000
DEFAULT_ARCHIVAL_LIMIT = 3
ARCHIVAL_LIMIT_GROUP = "irods"
DEFAULT_QUEUE = "default"

DEFAULT_ARCHIVAL_FUNCTIONS: tuple[str, ...] = (
    "archive_to_irods_ml_warehouse",
    "archive_to_irods_samplesheet",
    "archive_run_data_to_irods",
    "archive_to_s3",
)

_QUEUE_SUFFIX = "_queue"
_RESOURCE_KEYS = frozenset({"cpus", "memory", "priority"})


@dataclass(frozen=True)
class Resources:
    """Merged resource request for one job."""

    cpus: int = 0
    memory_mb: int = DEFAULT_MEMORY_MB
    priority: int = 0
    extra: dict[str, Any] = field(default_factory=dict)

    @property
    def memory(self) -> str:
        """Memory as wr expects it, e.g. ``"2000M"``."""
        return f"{self.memory_mb}M"


@dataclass
class ResourcePolicy:
    """Default and per-queue resource overrides plus the archival limit."""

    default_queue: dict[str, Any] = field(default_factory=dict)
    queues: dict[str, dict[str, Any]] = field(default_factory=dict)
    archival_limit: int = DEFAULT_ARCHIVAL_LIMIT
    archival_functions: list[str] = field(
        default_factory=lambda: list(DEFAULT_ARCHIVAL_FUNCTIONS)
    )

    def __post_init__(self) -> None:
        if (
            isinstance(self.archival_limit, bool)
            or not isinstance(self.archival_limit, int)
            or self.archival_limit < 1
        ):
            raise ConfigError(
                f"archival_limit must be a positive integer, got {self.archival_limit!r}"
            )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ResourcePolicy":
        """Build a policy from the parsed JSON object."""
        if not isinstance(data, dict):
            raise ConfigError("Resource policy must be a JSON object")
        queues: dict[str, dict[str, Any]] = {}
        default_queue: dict[str, Any] = {}
        kwargs: dict[str, Any] = {}
        for key, value in data.items():
            if key == "archival_limit":
                kwargs["archival_limit"] = value
            elif key == "archival_functions":
                if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
                    raise ConfigError("archival_functions must be a list of function names")
                kwargs["archival_functions"] = list(value)
            elif key.endswith(_QUEUE_SUFFIX):
                if not isinstance(value, dict):
                    raise ConfigError(f"Resource policy entry {key!r} must be an object")
                if key == DEFAULT_QUEUE + _QUEUE_SUFFIX:
                    default_queue = dict(value)
                else:
                    queues[key[: -len(_QUEUE_SUFFIX)]] = dict(value)
            else:
                logger.warning("ignoring unknown resource policy key %r", key)
        return cls(default_queue=default_queue, queues=queues, **kwargs)

    @classmethod
    def from_json(cls, path: str | Path) -> "ResourcePolicy":
        """Load the policy from a JSON file.

        Raises
        ------
        ConfigError
            If the file is missing or is not a valid policy document.
        """
        try:
            with open(path) as f:
                data = json.load(f)
        except FileNotFoundError as exc:
            raise ConfigError(f"Resource policy file not found: {path}") from exc
        except json.JSONDecodeError as exc:
            raise ConfigError(f"Invalid JSON in resource policy {path}: {exc}") from exc
        return cls.from_dict(data)

    def queue_overrides(self, queue: str | None) -> dict[str, Any]:
        """``default_queue`` overlaid with the named queue's object."""
        merged = dict(self.default_queue)
        if queue and queue != DEFAULT_QUEUE:
            named = self.queues.get(queue)
            if named is None:
                logger.debug("no resource overrides for queue %r", queue)
            else:
                merged.update(named)
        return merged

    def merge(self, definition: FunctionDefinition) -> Resources:
        """Return the resources for *definition* (see module docstring)."""
        overrides = self.queue_overrides(definition.queue)

        cpus = definition.min_cpus or int(overrides.get("cpus", 0) or 0)
        if definition.memory_mb:
            memory_mb = int(definition.memory_mb)
        else:
            memory_mb = int(overrides.get("memory") or DEFAULT_MEMORY_MB)
        priority = int(overrides.get("priority", 0) or 0)
        extra = {k: v for k, v in overrides.items() if k not in _RESOURCE_KEYS}
        return Resources(cpus=cpus, memory_mb=memory_mb, priority=priority, extra=extra)

    def is_archival(self, function_name: str) -> bool:
        return function_name in self.archival_functions

    def limit_groups(self, function_name: str) -> str | None:
        """``"irods:<N>"`` for archival functions, otherwise None."""
        if not self.is_archival(function_name):
            return None
        return f"{ARCHIVAL_LIMIT_GROUP}:{self.archival_limit}"
