"""Ordering engine: per-category analysis and whole-file assembly."""

from __future__ import annotations

import logging

from code_order.analysis.dependency_graph import DependencyGraphBuilder
from code_order.analysis.graph_models import DependencyGraph
from code_order.analysis.topo_sort import TopologicalSorter
from code_order.models import (
    CanonicalOrder,
    Declaration,
    DeclarationCategory,
    FileOrder,
    OrderingConfig,
    Segment,
)

logger = logging.getLogger(__name__)


class OrderingEngine:
    """Compute the canonical order of a file's declarations.

    Holds configuration only; every call is independent, so one engine may
    be shared between threads.
    """

    def __init__(self, config: OrderingConfig | None = None):
        self.config = config or OrderingConfig()
        self._builder = DependencyGraphBuilder(
            include_type_references=self.config.include_type_references,
        )
        self._sorter = TopologicalSorter(
            cycle_fallback=self.config.cycle_fallback,
            tie_break=self.config.tie_break,
        )

    def order(self, declarations: list[Declaration]) -> FileOrder:
        """Order *declarations* (given in file order) by category, then dependencies.

        Top-level statements stay where they are; the declarations between
        two of them are ordered as a separate run.
        """
        result = FileOrder(declarations=list(declarations))

        run: list[int] = []
        for index, decl in enumerate(declarations):
            if decl.is_statement:
                result.segments.append(self.order_segment(run, declarations, statement=index))
                run = []
            else:
                run.append(index)
        if run:
            result.segments.append(self.order_segment(run, declarations))

        return result

    def order_segment(
        self,
        run: list[int],
        declarations: list[Declaration],
        statement: int | None = None,
    ) -> Segment:
        """Order the declarations at *run* (file indices, in file order)."""
        segment = Segment(statement=statement)
        for category in DeclarationCategory:
            members = [i for i in run if declarations[i].category == category]
            if members:
                segment.categories[category] = self.order_category(category, members, declarations)
        return segment

    def order_category(
        self,
        category: DeclarationCategory,
        members: list[int],
        declarations: list[Declaration],
    ) -> CanonicalOrder:
        """Order one category; *members* index into *declarations* in file order."""
        canonical = CanonicalOrder(category=category)

        if not self.config.sorts(category):
            canonical.indices = list(members)
        else:
            graph = self.build_graph([declarations[i] for i in members])
            result = self._sorter.sort(graph)
            canonical.indices = [members[node] for node in result.order]
            canonical.cycles = [[members[node] for node in cycle] for cycle in result.cycles]
            logger.debug(
                "%s: %d declaration(s), %d edge(s), %d cycle(s)",
                category.label, len(members), len(graph.references), len(result.cycles),
            )

        canonical.declarations = [declarations[i] for i in canonical.indices]
        return canonical

    def build_graph(self, declarations: list[Declaration]) -> DependencyGraph:
        return self._builder.build(declarations)


def order_declarations(
    declarations: list[Declaration],
    config: OrderingConfig | None = None,
) -> FileOrder:
    """Convenience wrapper around ``OrderingEngine(config).order``."""
    return OrderingEngine(config).order(declarations)
