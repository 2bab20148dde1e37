"""Data models for the dependency graph."""

from __future__ import annotations

from dataclasses import dataclass, field

from code_order.errors import GraphInvariantError
from code_order.models import Declaration


@dataclass(frozen=True)
class Reference:
    source: int  # dependent
    target: int  # dependency
    name: str
    order: int  # first-reference index among the source's references


@dataclass
class DependencyGraph:
    """Dependencies among the declarations of one category.

    Nodes are positions in ``declarations``. The graph is built once per
    analysis by ``DependencyGraphBuilder`` and read-only afterwards.
    """
    declarations: list[Declaration] = field(default_factory=list)
    references: list[Reference] = field(default_factory=list)
    dependencies: dict[int, dict[int, int]] = field(default_factory=dict)  # node -> {dep: order}
    dependents: dict[int, set[int]] = field(default_factory=dict)  # node -> {dependents}

    @property
    def nodes(self) -> range:
        return range(len(self.declarations))

    def name(self, node: int) -> str:
        return self.declarations[node].name

    def dependencies_in_order(self, node: int) -> list[int]:
        deps = self.dependencies[node]
        return sorted(deps, key=lambda target: (deps[target], target))

    def validate(self) -> None:
        """Raise ``GraphInvariantError`` unless the graph is self-consistent."""
        nodes = set(self.nodes)
        if set(self.dependencies) != nodes or set(self.dependents) != nodes:
            raise GraphInvariantError("dependency graph node sets do not match its declarations")

        for source, targets in self.dependencies.items():
            for target in targets:
                if target not in nodes:
                    raise GraphInvariantError(
                        f"{self.name(source)!r} depends on node {target}, which is not in the graph"
                    )
                if source not in self.dependents[target]:
                    raise GraphInvariantError(
                        f"{self.name(source)!r} -> {self.name(target)!r} is missing from dependents"
                    )

        for target, sources in self.dependents.items():
            for source in sources:
                if source not in nodes or target not in self.dependencies[source]:
                    raise GraphInvariantError(
                        f"dependents of {self.name(target)!r} list node {source} without a matching edge"
                    )


@dataclass(frozen=True)
class Component:
    """A strongly connected component; members are in source order."""
    index: int
    members: tuple[int, ...]

    @property
    def is_cycle(self) -> bool:
        return len(self.members) > 1

    @property
    def first(self) -> int:
        return self.members[0]


@dataclass
class Condensation:
    """The DAG obtained by collapsing each component into a single node."""
    components: list[Component] = field(default_factory=list)
    component_of: dict[int, int] = field(default_factory=dict)  # node -> component
    edges: dict[int, dict[int, int]] = field(default_factory=dict)  # dependent -> {dependency: order}
    reverse: dict[int, set[int]] = field(default_factory=dict)  # dependency -> {dependents}

    @property
    def cycles(self) -> list[Component]:
        return [c for c in self.components if c.is_cycle]
