"""resolver.py — which dependency groups each job must wait on.

For every edge ``predecessor -> function`` and every definition ``d`` of
``function``:

1. If the predecessor has a single definition, ``d`` waits on the
   predecessor's generic group.  With one job the generic and specific
   groups are equivalent.
2. Otherwise ``d`` waits on the specific group of every predecessor
   definition whose composition equals ``d``'s exactly.  Several matches
   (e.g. chunks sharing a composition) are all kept.
3. If nothing matches, ``d`` waits on the predecessor's generic group.

A definition without a composition covers the whole run.  It never
matches a specific predecessor job, so it waits on generic groups, and
split predecessor jobs without a composition are never picked out
individually.  Partial overlaps between compositions count as no match.

Excluded functions emit no jobs.  Their successors wait on the jobs of
the nearest non-excluded ancestors instead (see
:meth:`~wr_scheduler.graph.FunctionGraph.contract`).
"""
from __future__ import annotations

__all__ = ["resolve_function", "resolve_dependencies", "excluded_functions"]

import logging
from typing import Mapping

from wr_scheduler.definition import FunctionDefinition
from wr_scheduler.errors import GraphError
from wr_scheduler.graph import FunctionGraph
from wr_scheduler.groups import GroupID

logger = logging.getLogger(__name__)

Definitions = Mapping[str, list[FunctionDefinition]]


def excluded_functions(definitions: Definitions) -> set[str]:
    """Names of functions whose only definition is an excluded placeholder."""
    return {
        name
        for name, defs in definitions.items()
        if defs and all(d.excluded for d in defs)
    }


def _groups_for_edge(
    predecessor: str,
    predecessor_defs: list[FunctionDefinition],
    definition: FunctionDefinition,
) -> list[GroupID]:
    run_id = predecessor_defs[0].identifier
    generic = GroupID.generic_for(predecessor, run_id)

    if len(predecessor_defs) == 1:
        return [generic]

    if not definition.has_composition:
        return [generic]

    matches = [
        generic.specific(slot)
        for slot, upstream in enumerate(predecessor_defs)
        if upstream.has_composition and definition.composition.equals(upstream.composition)
    ]
    if not matches:
        logger.debug(
            "no %s job matches composition %s; waiting on generic group",
            predecessor,
            definition.composition,
        )
        return [generic]
    return matches


def resolve_function(
    graph: FunctionGraph,
    name: str,
    definitions: Definitions,
) -> list[list[GroupID]]:
    """Return, per slot of *name*, the sorted groups its job waits on.

    *graph* may contain excluded functions; they are bridged over.

    Raises
    ------
    GraphError
        If *name* or one of its predecessors has no definition list.
    """
    if name not in definitions:
        raise GraphError(f"Function {name!r} has no definition list")
    bridged = (excluded_functions(definitions) & set(graph.nodes)) - {name}
    if bridged:
        graph = graph.contract(bridged)

    own_defs = definitions[name]
    resolved: list[list[GroupID]] = []
    for definition in own_defs:
        deps: set[GroupID] = set()
        for predecessor in graph.predecessors(name):
            predecessor_defs = definitions.get(predecessor)
            if not predecessor_defs:
                raise GraphError(
                    f"Function {name!r} depends on {predecessor!r}, "
                    "which has no definition list"
                )
            deps.update(_groups_for_edge(predecessor, predecessor_defs, definition))
        resolved.append(sorted(deps, key=GroupID.render))
    return resolved


def resolve_dependencies(
    graph: FunctionGraph,
    definitions: Definitions,
) -> dict[str, list[list[GroupID]]]:
    """Resolve every non-excluded function of *graph*, in topological order.

    Raises
    ------
    GraphError
        If a function of *graph* has no definition list.
    """
    missing = [name for name in graph.topological_order() if name not in definitions]
    if missing:
        raise GraphError(f"Function(s) without a definition list: {missing}")

    excluded = excluded_functions(definitions)
    contracted = graph.contract(excluded & set(graph.nodes))
    return {
        name: resolve_function(contracted, name, definitions)
        for name in contracted.topological_order()
    }
