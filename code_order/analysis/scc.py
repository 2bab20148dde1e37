"""Strongly connected components and graph condensation."""

from __future__ import annotations

from typing import Iterator

from code_order.analysis.graph_models import Component, Condensation, DependencyGraph


def strongly_connected_components(graph: DependencyGraph) -> list[list[int]]:
    """Return the SCCs of *graph* using Tarjan's algorithm.

    Roots are visited in source order and successors in first-reference
    order, so the result is the same on every run. The walk keeps its own
    stack instead of recursing; long dependency chains are common in large
    files. Each component is returned with its members in source order.
    """
    index: dict[int, int] = {}
    lowlink: dict[int, int] = {}
    on_stack: set[int] = set()
    stack: list[int] = []
    sccs: list[list[int]] = []
    counter = 0

    for root in graph.nodes:
        if root in index:
            continue

        index[root] = lowlink[root] = counter
        counter += 1
        stack.append(root)
        on_stack.add(root)
        work: list[tuple[int, Iterator[int]]] = [(root, iter(graph.dependencies_in_order(root)))]

        while work:
            v, successors = work[-1]
            for w in successors:
                if w not in index:
                    index[w] = lowlink[w] = counter
                    counter += 1
                    stack.append(w)
                    on_stack.add(w)
                    work.append((w, iter(graph.dependencies_in_order(w))))
                    break
                if w in on_stack:
                    lowlink[v] = min(lowlink[v], index[w])
            else:
                work.pop()
                if work:
                    parent = work[-1][0]
                    lowlink[parent] = min(lowlink[parent], lowlink[v])

                if lowlink[v] == index[v]:
                    scc: list[int] = []
                    while True:
                        w = stack.pop()
                        on_stack.discard(w)
                        scc.append(w)
                        if w == v:
                            break
                    sccs.append(sorted(scc))

    return sccs


def condense(graph: DependencyGraph) -> Condensation:
    """Collapse every SCC of *graph* into one node of a DAG.

    Components are numbered by their earliest member. A condensed edge
    keeps the lowest first-reference order of the member edges it stands
    for; edges inside a component are dropped.
    """
    sccs = sorted(strongly_connected_components(graph), key=lambda members: members[0])
    condensation = Condensation()

    for i, members in enumerate(sccs):
        condensation.components.append(Component(index=i, members=tuple(members)))
        condensation.edges[i] = {}
        condensation.reverse[i] = set()
        for member in members:
            condensation.component_of[member] = i

    for ref in graph.references:
        source = condensation.component_of[ref.source]
        target = condensation.component_of[ref.target]
        if source == target:
            continue
        edges = condensation.edges[source]
        edges[target] = min(edges.get(target, ref.order), ref.order)
        condensation.reverse[target].add(source)

    return condensation
