"""groups.py — wr dependency group identifiers.

Every job belongs to two groups:

* the *generic* group, shared by all jobs of one function for one run;
* the *specific* group, ``<generic>-<slot>``, unique to the job's position
  in its function's definition list.

The rendered identifier is opaque to consumers.  It only has to be stable
for a given function name, run identifier and slot.
"""
from __future__ import annotations

__all__ = ["GroupID"]

import hashlib
from dataclasses import dataclass, replace


@dataclass(frozen=True)
class GroupID:
    """A dependency group: ``slot`` is None for the generic group."""

    function_name: str
    run_id: str
    slot: int | None = None

    @classmethod
    def generic_for(cls, function_name: str, run_id: object) -> "GroupID":
        return cls(function_name, str(run_id))

    @classmethod
    def specific_for(cls, function_name: str, run_id: object, slot: int) -> "GroupID":
        return cls(function_name, str(run_id), slot)

    @property
    def is_generic(self) -> bool:
        return self.slot is None

    def generic(self) -> "GroupID":
        return replace(self, slot=None)

    def specific(self, slot: int) -> "GroupID":
        return replace(self, slot=slot)

    def render(self) -> str:
        digest = hashlib.sha256(
            f"{self.function_name}:{self.run_id}".encode("utf-8")
        ).hexdigest()
        if self.slot is None:
            return digest
        return f"{digest}-{self.slot}"

    def __str__(self) -> str:
        return self.render()
