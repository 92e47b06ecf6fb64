"""composition.py — the subset of a run's data a job addresses.

A composition is a set of ``(run, position, tag)`` components written in
rpt notation, e.g. ``26:1:2`` for run 26, lane 1, tag 2, or ``26:1`` for
the whole of lane 1.  Several components are joined with ``;``.

Compositions are compared by exact set equality only.  There is no notion
of one composition containing another.
"""
from __future__ import annotations

__all__ = ["Component", "Composition"]

from dataclasses import dataclass
from typing import Iterable, Iterator

_RPT_DELIM = ":"
_RPT_LIST_DELIM = ";"


@dataclass(frozen=True)
class Component:
    """One ``(run, position, tag)`` triple; ``tag_index`` is None for a whole lane."""

    run_id: int
    position: int
    tag_index: int | None = None

    @classmethod
    def from_rpt(cls, rpt: str) -> "Component":
        """Parse ``"run:position[:tag]"``.

        Raises
        ------
        ValueError
            If *rpt* does not have two or three integer fields.
        """
        parts = rpt.strip().split(_RPT_DELIM)
        if len(parts) not in (2, 3):
            raise ValueError(f"Invalid rpt string {rpt!r}: expected run:position[:tag]")
        try:
            values = [int(p) for p in parts]
        except ValueError as exc:
            raise ValueError(f"Invalid rpt string {rpt!r}: {exc}") from exc
        return cls(*values)

    def to_rpt(self) -> str:
        fields = [self.run_id, self.position]
        if self.tag_index is not None:
            fields.append(self.tag_index)
        return _RPT_DELIM.join(str(f) for f in fields)

    def sort_key(self) -> tuple[int, int, int]:
        # Whole-lane components sort before any tagged component of that lane.
        tag = -1 if self.tag_index is None else self.tag_index
        return (self.run_id, self.position, tag)

    def __str__(self) -> str:
        return self.to_rpt()


@dataclass(frozen=True)
class Composition:
    """An ordered, duplicate-free set of components.

    The constructor accepts components in any order and with repeats; they
    are stored de-duplicated and canonically sorted so that two
    compositions holding the same components compare (and hash) equal.
    """

    components: tuple[Component, ...] = ()

    def __post_init__(self) -> None:
        unique = set(self.components)
        object.__setattr__(
            self, "components", tuple(sorted(unique, key=Component.sort_key))
        )

    @classmethod
    def from_rpt_list(cls, rpt_list: str | Iterable[str]) -> "Composition":
        """Build a composition from ``"26:1:1;26:2:1"`` or a list of rpt strings."""
        if isinstance(rpt_list, str):
            items = [s for s in rpt_list.split(_RPT_LIST_DELIM) if s.strip()]
        else:
            items = list(rpt_list)
        return cls(tuple(Component.from_rpt(item) for item in items))

    def to_rpt_list(self) -> str:
        return _RPT_LIST_DELIM.join(c.to_rpt() for c in self.components)

    @property
    def is_empty(self) -> bool:
        """True for the whole-run marker (no components)."""
        return not self.components

    def equals(self, other: "Composition | None") -> bool:
        return other is not None and self == other

    def __len__(self) -> int:
        return len(self.components)

    def __iter__(self) -> Iterator[Component]:
        return iter(self.components)

    def __str__(self) -> str:
        return self.to_rpt_list()
