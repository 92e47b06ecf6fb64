"""errors.py — fatal error kinds raised while translating a function graph.

All three abort a run before (or while) submission records are produced.
Partial submission files already on disk are left in place.
"""
from __future__ import annotations

__all__ = ["GraphError", "ConfigError", "SubmitError"]


class GraphError(ValueError):
    """The function graph is cyclic, malformed, or a function lacks definitions."""


class ConfigError(ValueError):
    """A resource policy or scheduler config file is missing or unparseable."""


class SubmitError(RuntimeError):
    """The ``wr add`` primitive could not be run or exited with an error.

    Parameters
    ----------
    message:
        Human-readable description.
    cmd:
        The command line that failed, as a list of arguments.
    """

    def __init__(self, message: str, cmd: list[str] | None = None) -> None:
        super().__init__(message)
        self.cmd = list(cmd) if cmd is not None else []
