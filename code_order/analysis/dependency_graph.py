"""Dependency graph builder for the declarations of one category."""

from __future__ import annotations

import logging

from code_order.analysis.graph_models import DependencyGraph, Reference
from code_order.analysis.references import build_name_index, extract_references
from code_order.models import Declaration

logger = logging.getLogger(__name__)


class DependencyGraphBuilder:
    """Build a dependency graph from the declarations of a single category."""

    def __init__(self, *, include_type_references: bool = True):
        self.include_type_references = include_type_references

    def build(self, declarations: list[Declaration]) -> DependencyGraph:
        graph = DependencyGraph(declarations=list(declarations))

        # Step 1: every declaration is a node, even when isolated
        for node in graph.nodes:
            graph.dependencies[node] = {}
            graph.dependents[node] = set()

        # Step 2: edges from first references, restricted to this list
        name_index = build_name_index(graph.declarations)
        for node, decl in enumerate(graph.declarations):
            for ref in extract_references(
                node,
                decl,
                name_index,
                include_type_references=self.include_type_references,
            ):
                self._add_edge(graph, ref)

        graph.validate()
        logger.debug(
            "Built dependency graph: %d node(s), %d edge(s)",
            len(graph.declarations), len(graph.references),
        )
        return graph

    def _add_edge(self, graph: DependencyGraph, ref: Reference) -> None:
        # Avoid duplicate edges
        if ref.target in graph.dependencies[ref.source]:
            return
        graph.references.append(ref)
        graph.dependencies[ref.source][ref.target] = ref.order
        graph.dependents[ref.target].add(ref.source)
