"""Reverse-topological ordering of one category's dependency graph.

Dependents come before their dependencies. The graph is first condensed
into a DAG of strongly connected components, which is then walked with
Kahn's algorithm along "dependent -> dependency" edges: a component becomes
ready once every component depending on it has been placed.

Among ready components the next one is picked by, in turn:

1. components with more than one dependent, so a shared dependency lands
   right after the last of its dependents;
2. source order (or name) of the earliest component in its group: roots
   form a group each, and the components made ready by one placement
   form a group together;
3. within a group, the order in which the dependent first references it;
4. the tie-break: source order, or name.

Cycles are expanded alphabetically (or in source order) in place of the
component.
"""

from __future__ import annotations

import heapq
import logging
from dataclasses import dataclass, field

from code_order.analysis.graph_models import Component, Condensation, DependencyGraph
from code_order.analysis.scc import condense
from code_order.errors import GraphInvariantError
from code_order.models import CycleFallback, TieBreak

logger = logging.getLogger(__name__)

_SortKey = tuple[int, tuple, int, tuple, int]


@dataclass
class SortResult:
    order: list[int] = field(default_factory=list)  # graph nodes, canonical order
    cycles: list[list[int]] = field(default_factory=list)  # each in output order


class TopologicalSorter:
    """Turn a ``DependencyGraph`` into a single deterministic order."""

    def __init__(
        self,
        cycle_fallback: CycleFallback = CycleFallback.ALPHABETICAL,
        tie_break: TieBreak = TieBreak.SOURCE,
    ):
        self.cycle_fallback = cycle_fallback
        self.tie_break = tie_break

    def sort(self, graph: DependencyGraph) -> SortResult:
        graph.validate()
        condensation = condense(graph)
        placed = self._place(graph, condensation)

        result = SortResult()
        for comp_index in placed:
            members = self._expand(graph, condensation.components[comp_index])
            if len(members) > 1:
                result.cycles.append(members)
                logger.debug(
                    "Cycle ordered by %s fallback: %s",
                    self.cycle_fallback.value, [graph.name(m) for m in members],
                )
            result.order.extend(members)

        if sorted(result.order) != list(graph.nodes):
            raise GraphInvariantError("canonical order is not a permutation of the graph's nodes")
        return result

    def _place(self, graph: DependencyGraph, condensation: Condensation) -> list[int]:
        """Return component indices, dependents before dependencies."""
        remaining = {c.index: len(condensation.reverse[c.index]) for c in condensation.components}
        ready: list[_SortKey] = []
        for comp in condensation.components:
            if remaining[comp.index] == 0:
                heapq.heappush(ready, self._key(graph, condensation, comp, self._tie(graph, comp), 0))

        placed: list[int] = []
        while ready:
            comp_index = heapq.heappop(ready)[-1]
            placed.append(comp_index)

            released: list[tuple[Component, int]] = []
            for dep, order in condensation.edges[comp_index].items():
                remaining[dep] -= 1
                if remaining[dep] == 0:
                    released.append((condensation.components[dep], order))
            if not released:
                continue
            group = min(self._tie(graph, comp) for comp, _ in released)
            for comp, order in released:
                heapq.heappush(ready, self._key(graph, condensation, comp, group, order))

        if len(placed) != len(condensation.components):
            done = set(placed)
            stuck = [graph.name(c.first) for c in condensation.components if c.index not in done]
            raise GraphInvariantError(f"condensation is not acyclic; unplaced components start at {stuck}")
        return placed

    def _key(
        self,
        graph: DependencyGraph,
        condensation: Condensation,
        comp: Component,
        group: tuple,
        order: int,
    ) -> _SortKey:
        shared = 0 if len(condensation.reverse[comp.index]) > 1 else 1
        return (shared, group, order, self._tie(graph, comp), comp.index)

    def _tie(self, graph: DependencyGraph, comp: Component) -> tuple:
        if self.tie_break is TieBreak.NAME:
            return (min(graph.name(m) for m in comp.members), comp.first)
        return (comp.first,)

    def _expand(self, graph: DependencyGraph, comp: Component) -> list[int]:
        if not comp.is_cycle or self.cycle_fallback is CycleFallback.ORIGINAL:
            return list(comp.members)
        return sorted(comp.members, key=lambda m: (graph.name(m), m))
