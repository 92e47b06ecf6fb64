"""graph.py — the directed acyclic graph of pipeline functions.

An edge ``a -> b`` means every job of ``b`` may only start after the jobs
of ``a`` it depends on.  The graph is validated when it is built: a cycle
raises :class:`~wr_scheduler.errors.GraphError` straight away.

Two file layouts are understood by :meth:`FunctionGraph.from_dict`:

``depends_on`` mapping::

    functions:
      pipeline_start: []
      seq_alignment: [pipeline_start]
      archive_to_irods: [seq_alignment]

JSON graph (function-list files)::

    {"graph": {"nodes": [{"id": "pipeline_start"}, ...],
               "edges": [{"source": "pipeline_start", "target": "seq_alignment"}, ...]}}
"""
from __future__ import annotations

__all__ = ["FunctionGraph"]

import heapq
from pathlib import Path
from typing import Any, Iterable, Iterator, Mapping

import yaml

from wr_scheduler.errors import ConfigError, GraphError


class FunctionGraph:
    """Adjacency-list DAG of function names.

    Parameters
    ----------
    nodes:
        Function names, including isolated ones.
    edges:
        ``(predecessor, successor)`` pairs.  Both ends are added as nodes.
    """

    def __init__(
        self,
        nodes: Iterable[str] = (),
        edges: Iterable[tuple[str, str]] = (),
    ) -> None:
        self._successors: dict[str, list[str]] = {}
        self._predecessors: dict[str, list[str]] = {}
        for node in nodes:
            self._add_node(node)
        for source, target in edges:
            self._add_edge(source, target)
        self._order = self._topological_sort()

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    def _add_node(self, name: str) -> None:
        if not isinstance(name, str) or not name:
            raise GraphError(f"Invalid function name: {name!r}")
        self._successors.setdefault(name, [])
        self._predecessors.setdefault(name, [])

    def _add_edge(self, source: str, target: str) -> None:
        if source == target:
            raise GraphError(f"Function {source!r} depends on itself")
        self._add_node(source)
        self._add_node(target)
        if target not in self._successors[source]:
            self._successors[source].append(target)
            self._predecessors[target].append(source)

    def _topological_sort(self) -> list[str]:
        """Kahn's algorithm; ties are broken alphabetically."""
        in_degree = {name: len(preds) for name, preds in self._predecessors.items()}
        ready = [name for name, degree in in_degree.items() if degree == 0]
        heapq.heapify(ready)
        order: list[str] = []
        while ready:
            name = heapq.heappop(ready)
            order.append(name)
            for successor in self._successors[name]:
                in_degree[successor] -= 1
                if in_degree[successor] == 0:
                    heapq.heappush(ready, successor)
        if len(order) != len(self._successors):
            cyclic = sorted(name for name, degree in in_degree.items() if degree > 0)
            raise GraphError(f"Function graph contains a cycle through: {cyclic}")
        return order

    @classmethod
    def from_dependencies(cls, depends_on: Mapping[str, Iterable[str]]) -> "FunctionGraph":
        """Build a graph from ``{function: [predecessor, ...]}``.

        Raises
        ------
        GraphError
            If a predecessor is not itself a key of *depends_on*, or the
            graph is cyclic.
        """
        known = set(depends_on)
        edges = []
        for name, predecessors in depends_on.items():
            for predecessor in predecessors or ():
                if predecessor not in known:
                    raise GraphError(
                        f"Function {name!r} depends on {predecessor!r}, which is not "
                        f"in the function list. Known functions: {sorted(known)}"
                    )
                edges.append((predecessor, name))
        return cls(nodes=depends_on, edges=edges)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "FunctionGraph":
        """Build a graph from either supported layout (see module docstring)."""
        if "functions" in data:
            return cls.from_dependencies(data["functions"] or {})

        graph = data.get("graph", data)
        if not isinstance(graph, Mapping) or "nodes" not in graph:
            raise GraphError(
                "Graph data must contain 'functions' or a 'graph' with 'nodes'"
            )
        nodes = [n["id"] if isinstance(n, Mapping) else n for n in graph["nodes"]]
        known = set(nodes)
        edges = []
        for edge in graph.get("edges") or []:
            source, target = edge["source"], edge["target"]
            for end in (source, target):
                if end not in known:
                    raise GraphError(f"Edge {source!r} -> {target!r} references unknown function {end!r}")
            edges.append((source, target))
        return cls(nodes=nodes, edges=edges)

    @classmethod
    def from_file(cls, path: str | Path) -> "FunctionGraph":
        """Load a graph from a YAML or JSON file.

        Raises
        ------
        FileNotFoundError
            If *path* does not exist.
        ConfigError
            If the file cannot be parsed.
        GraphError
            If the graph is malformed or cyclic.
        """
        with open(path) as f:
            try:
                data = yaml.safe_load(f) or {}
            except yaml.YAMLError as exc:
                raise ConfigError(f"Invalid graph file {path}: {exc}") from exc
        if not isinstance(data, Mapping):
            raise ConfigError(f"Graph file {path} must contain a mapping")
        return cls.from_dict(data)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def nodes(self) -> list[str]:
        return list(self._order)

    @property
    def edges(self) -> list[tuple[str, str]]:
        return [
            (source, target)
            for source in self._order
            for target in self._successors[source]
        ]

    def topological_order(self) -> list[str]:
        """Function names such that every predecessor precedes its successors."""
        return list(self._order)

    def predecessors(self, name: str) -> list[str]:
        self._require(name)
        return sorted(self._predecessors[name])

    def successors(self, name: str) -> list[str]:
        self._require(name)
        return sorted(self._successors[name])

    def contract(self, names: Iterable[str]) -> "FunctionGraph":
        """Return a copy without *names*, bridging each removed function.

        Every predecessor of a removed function becomes a predecessor of
        each of its successors, so ordering constraints survive the removal.
        """
        removed = set(names)
        for name in removed:
            self._require(name)
        edges = set()
        for name in self._order:
            if name in removed:
                continue
            for predecessor in self._kept_predecessors(name, removed):
                edges.add((predecessor, name))
        kept = [n for n in self._order if n not in removed]
        return FunctionGraph(nodes=kept, edges=sorted(edges))

    def _kept_predecessors(self, name: str, removed: set[str]) -> set[str]:
        found: set[str] = set()
        stack = list(self._predecessors[name])
        seen: set[str] = set()
        while stack:
            current = stack.pop()
            if current in seen:
                continue
            seen.add(current)
            if current in removed:
                stack.extend(self._predecessors[current])
            else:
                found.add(current)
        return found

    def _require(self, name: str) -> None:
        if name not in self._successors:
            raise GraphError(f"Unknown function: {name!r}")

    def __contains__(self, name: object) -> bool:
        return name in self._successors

    def __iter__(self) -> Iterator[str]:
        return iter(self._order)

    def __len__(self) -> int:
        return len(self._order)

    def __repr__(self) -> str:
        return f"FunctionGraph(nodes={len(self)}, edges={len(self.edges)})"
