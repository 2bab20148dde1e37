"""Tests for the ordering core: dependency graph, SCCs, sorter and engine."""

import random

import pytest

from code_order.models import (
    CycleFallback,
    Declaration,
    DeclarationCategory,
    IdentifierUse,
    OrderingConfig,
    StaticBody,
    TieBreak,
)

FUNCTION = DeclarationCategory.PRIVATE_FUNCTION


# ── Helpers ───────────────────────────────────────────────────

def _decl(name, *uses, category=FUNCTION, line=0, aliases=()):
    return Declaration(
        name=name,
        category=category,
        line_number=line,
        aliases=aliases,
        body=StaticBody.of(*uses),
    )


def _graph(*decls, **kwargs):
    from code_order.analysis.dependency_graph import DependencyGraphBuilder
    return DependencyGraphBuilder(**kwargs).build(list(decls))


def _sorted_names(*decls, **kwargs):
    from code_order.analysis.topo_sort import TopologicalSorter
    graph = _graph(*decls)
    result = TopologicalSorter(**kwargs).sort(graph)
    return [graph.name(n) for n in result.order]


# ── Dependency Graph ──────────────────────────────────────────

class TestDependencyGraph:
    def test_build_empty(self):
        graph = _graph()
        assert len(graph.nodes) == 0
        assert graph.references == []

    def test_isolated_declarations_are_nodes(self):
        graph = _graph(_decl("a"), _decl("b"))
        assert list(graph.nodes) == [0, 1]
        assert graph.dependencies == {0: {}, 1: {}}
        assert graph.dependents == {0: set(), 1: set()}

    def test_reference_edge(self):
        graph = _graph(_decl("caller", "callee"), _decl("callee"))
        assert graph.dependencies[0] == {1: 0}
        assert graph.dependents[1] == {0}

    def test_first_reference_order(self):
        graph = _graph(
            _decl("process", "get_b", "get_a", "get_b"),
            _decl("get_a"),
            _decl("get_b"),
        )
        assert graph.dependencies_in_order(0) == [2, 1]
        assert len(graph.references) == 2

    def test_unknown_names_ignored(self):
        graph = _graph(_decl("a", "print", "len"))
        assert graph.references == []

    def test_self_reference_ignored(self):
        graph = _graph(_decl("recurse", "recurse"))
        assert graph.dependencies[0] == {}

    def test_shadowed_use_ignored(self):
        body = StaticBody((IdentifierUse("helper", shadowed=True),))
        user = Declaration(name="user", category=FUNCTION, body=body)
        graph = _graph(user, _decl("helper"))
        assert graph.references == []

    def test_type_only_use_configurable(self):
        body = StaticBody((IdentifierUse("Base", type_only=True),))
        child = Declaration(name="Child", category=FUNCTION, body=body)

        with_types = _graph(child, _decl("Base"))
        without_types = _graph(child, _decl("Base"), include_type_references=False)

        assert with_types.dependencies[0] == {1: 0}
        assert without_types.dependencies[0] == {}

    def test_overloads_share_a_name(self):
        graph = _graph(_decl("g", "f"), _decl("f"), _decl("f"))
        assert set(graph.dependencies[0]) == {1, 2}
        assert graph.dependencies[0][1] == graph.dependencies[0][2] == 0

    def test_alias_reference(self):
        graph = _graph(_decl("main", "y"), _decl("x", aliases=("y",)))
        assert graph.dependencies[0] == {1: 0}

    def test_validate_rejects_dangling_edge(self):
        from code_order.analysis.graph_models import DependencyGraph
        from code_order.errors import GraphInvariantError

        graph = DependencyGraph(
            declarations=[_decl("a")],
            dependencies={0: {1: 0}},
            dependents={0: set()},
        )
        with pytest.raises(GraphInvariantError):
            graph.validate()

    def test_validate_rejects_missing_reverse_edge(self):
        from code_order.analysis.graph_models import DependencyGraph
        from code_order.errors import GraphInvariantError

        graph = DependencyGraph(
            declarations=[_decl("a"), _decl("b")],
            dependencies={0: {1: 0}, 1: {}},
            dependents={0: set(), 1: set()},
        )
        with pytest.raises(GraphInvariantError):
            graph.validate()


# ── Strongly connected components ─────────────────────────────

class TestStronglyConnected:
    def test_acyclic_graph_has_singletons(self):
        from code_order.analysis.scc import strongly_connected_components
        graph = _graph(_decl("a", "b"), _decl("b", "c"), _decl("c"))
        sccs = strongly_connected_components(graph)
        assert sorted(sccs) == [[0], [1], [2]]

    def test_cycle_is_one_component(self):
        from code_order.analysis.scc import strongly_connected_components
        graph = _graph(_decl("a", "b"), _decl("b", "c"), _decl("c", "a"), _decl("d"))
        sccs = strongly_connected_components(graph)
        assert [0, 1, 2] in sccs
        assert [3] in sccs

    def test_long_chain_does_not_recurse(self):
        from code_order.analysis.scc import strongly_connected_components
        count = 5000
        decls = [_decl(f"f{i}", f"f{i + 1}") for i in range(count)]
        graph = _graph(*decls)
        assert len(strongly_connected_components(graph)) == count

    def test_condensation(self):
        from code_order.analysis.scc import condense
        graph = _graph(
            _decl("top", "x", "y"),
            _decl("x", "y"),
            _decl("y", "x", "leaf"),
            _decl("leaf"),
        )
        condensation = condense(graph)

        assert [c.members for c in condensation.components] == [(0,), (1, 2), (3,)]
        assert condensation.component_of == {0: 0, 1: 1, 2: 1, 3: 2}
        assert condensation.edges[0] == {1: 0}
        assert condensation.edges[1] == {2: 1}
        assert condensation.reverse[2] == {1}
        assert [c.index for c in condensation.cycles] == [1]


# ── Topological sorter ────────────────────────────────────────

class TestTopologicalSorter:
    def test_fan_out_keeps_reference_order(self):
        names = _sorted_names(
            _decl("main", "fetchData", "processData", "render"),
            _decl("fetchData", "apiCall"),
            _decl("processData", "transform"),
            _decl("render"),
            _decl("apiCall"),
            _decl("transform"),
        )
        assert names == ["main", "fetchData", "processData", "render", "apiCall", "transform"]

    def test_shared_dependency_after_last_dependent(self):
        names = _sorted_names(
            _decl("routeA", "helper"),
            _decl("routeB", "helper"),
            _decl("routeC", "helper"),
            _decl("helper", "sharedLogic"),
            _decl("sharedLogic"),
        )
        assert names == ["routeA", "routeB", "routeC", "helper", "sharedLogic"]

    def test_two_cycle_alphabetical(self):
        names = _sorted_names(_decl("beta", "alpha"), _decl("alpha", "beta"))
        assert names == ["alpha", "beta"]

    def test_two_cycle_original_order(self):
        names = _sorted_names(
            _decl("beta", "alpha"), _decl("alpha", "beta"),
            cycle_fallback=CycleFallback.ORIGINAL,
        )
        assert names == ["beta", "alpha"]

    def test_multiple_dependencies_follow_reference_order(self):
        names = _sorted_names(
            _decl("getA"),
            _decl("getB"),
            _decl("process", "getA", "getB"),
        )
        assert names == ["process", "getA", "getB"]

    def test_dependency_before_later_unrelated(self):
        names = _sorted_names(_decl("a", "b"), _decl("b"), _decl("c"))
        assert names == ["a", "b", "c"]

    def test_unrelated_before_later_dependency(self):
        names = _sorted_names(_decl("a", "c"), _decl("b"), _decl("c"))
        assert names == ["a", "b", "c"]

    def test_siblings_follow_reference_not_source(self):
        names = _sorted_names(
            _decl("getA"),
            _decl("getB"),
            _decl("process", "getB", "getA"),
        )
        assert names == ["process", "getB", "getA"]

    def test_shared_dependency_before_unrelated(self):
        names = _sorted_names(
            _decl("routeA", "helper"),
            _decl("routeB", "helper"),
            _decl("zeta"),
            _decl("helper"),
        )
        assert names == ["routeA", "routeB", "helper", "zeta"]

    def test_dependency_moved_after_dependent(self):
        names = _sorted_names(_decl("helper"), _decl("main", "helper"))
        assert names == ["main", "helper"]

    def test_unrelated_keep_source_order(self):
        names = _sorted_names(_decl("zeta"), _decl("alpha"), _decl("mid"))
        assert names == ["zeta", "alpha", "mid"]

    def test_tie_break_by_name(self):
        names = _sorted_names(
            _decl("zeta"), _decl("alpha"), _decl("mid"),
            tie_break=TieBreak.NAME,
        )
        assert names == ["alpha", "mid", "zeta"]

    def test_cycle_placed_as_a_unit(self):
        names = _sorted_names(
            _decl("entry", "ping"),
            _decl("pong", "ping", "util"),
            _decl("ping", "pong"),
            _decl("util"),
        )
        assert names == ["entry", "ping", "pong", "util"]

    def test_cycles_reported(self):
        from code_order.analysis.topo_sort import TopologicalSorter
        graph = _graph(_decl("b", "a"), _decl("a", "b"), _decl("c"))
        result = TopologicalSorter().sort(graph)
        assert result.cycles == [[1, 0]]

    def test_empty_graph(self):
        assert _sorted_names() == []

    def test_deterministic(self):
        decls = [
            _decl("main", "b", "a"),
            _decl("a", "c"),
            _decl("b", "c"),
            _decl("c", "d"),
            _decl("d", "c"),
        ]
        first = _sorted_names(*decls)
        for _ in range(5):
            assert _sorted_names(*decls) == first

    def test_rejects_inconsistent_graph(self):
        from code_order.analysis.graph_models import DependencyGraph
        from code_order.analysis.topo_sort import TopologicalSorter
        from code_order.errors import GraphInvariantError

        graph = DependencyGraph(
            declarations=[_decl("a"), _decl("b")],
            dependencies={0: {1: 0}, 1: {}},
            dependents={0: set(), 1: set()},
        )
        with pytest.raises(GraphInvariantError):
            TopologicalSorter().sort(graph)

    @pytest.mark.parametrize("seed", range(10))
    def test_random_graph_dependents_first(self, seed):
        from code_order.analysis.scc import condense
        from code_order.analysis.topo_sort import TopologicalSorter

        rng = random.Random(seed)
        size = 30
        names = [f"n{i}" for i in range(size)]
        uses = {name: [n for n in names if rng.random() < 0.08] for name in names}
        rng.shuffle(names)

        graph = _graph(*(_decl(name, *uses[name]) for name in names))
        result = TopologicalSorter().sort(graph)

        assert sorted(result.order) == list(graph.nodes)
        condensation = condense(graph)
        position = {node: i for i, node in enumerate(result.order)}
        for ref in graph.references:
            if condensation.component_of[ref.source] != condensation.component_of[ref.target]:
                assert position[ref.source] < position[ref.target]
        for comp in condensation.cycles:
            spots = sorted(position[m] for m in comp.members)
            assert spots == list(range(spots[0], spots[0] + len(spots)))
            in_output = [graph.name(m) for m in sorted(comp.members, key=position.get)]
            assert in_output == sorted(in_output)

        # A shared dependency directly follows its last dependent, unless
        # another shared dependency was released at the same time
        for comp in condensation.components:
            dependents = condensation.reverse[comp.index]
            if len(dependents) < 2:
                continue
            last = max(position[m] for d in dependents for m in condensation.components[d].members)
            occupant = condensation.component_of[result.order[last + 1]]
            if occupant != comp.index and len(condensation.reverse[occupant]) > 1:
                continue
            assert min(position[m] for m in comp.members) == last + 1


# ── Ordering engine ───────────────────────────────────────────

class TestOrderingEngine:
    def test_categories_in_rank_order(self):
        from code_order.analysis.engine import order_declarations
        decls = [
            _decl("run", category=DeclarationCategory.EXPORTED_FUNCTION),
            _decl("_cache", category=DeclarationCategory.PRIVATE_BINDING),
            _decl("os", category=DeclarationCategory.IMPORT),
            _decl("Thing", category=DeclarationCategory.EXPORTED_TYPE),
            _decl("_helper", category=DeclarationCategory.PRIVATE_FUNCTION),
            _decl("VERSION", category=DeclarationCategory.EXPORTED_BINDING),
            _decl("_Base", category=DeclarationCategory.PRIVATE_TYPE),
            _decl("Model", category=DeclarationCategory.RE_EXPORT),
        ]
        result = order_declarations(decls)
        assert result.names == ["os", "Model", "Thing", "_Base", "VERSION", "_cache", "run", "_helper"]
        assert list(result.categories) == sorted(result.categories)

    def test_edges_stay_within_category(self):
        from code_order.analysis.engine import order_declarations
        decls = [
            _decl("_helper", category=DeclarationCategory.PRIVATE_FUNCTION),
            _decl("run", "_helper", category=DeclarationCategory.EXPORTED_FUNCTION),
        ]
        result = order_declarations(decls)
        assert result.names == ["run", "_helper"]
        assert result.categories[DeclarationCategory.EXPORTED_FUNCTION].cycles == []

    def test_imports_keep_source_order(self):
        from code_order.analysis.engine import order_declarations
        decls = [
            _decl("b", category=DeclarationCategory.IMPORT),
            _decl("a", "b", category=DeclarationCategory.IMPORT),
        ]
        assert order_declarations(decls).names == ["b", "a"]

    def test_unsorted_category(self):
        from code_order.analysis.engine import order_declarations
        config = OrderingConfig(unsorted_categories={FUNCTION})
        decls = [_decl("helper"), _decl("main", "helper")]
        assert order_declarations(decls, config).names == ["helper", "main"]

    def test_dependency_sort_disabled(self):
        from code_order.analysis.engine import order_declarations
        config = OrderingConfig(dependency_sort=False)
        decls = [
            _decl("helper"),
            _decl("main", "helper"),
            _decl("Thing", category=DeclarationCategory.EXPORTED_TYPE),
        ]
        assert order_declarations(decls, config).names == ["Thing", "helper", "main"]

    def test_cycles_use_file_indices(self):
        from code_order.analysis.engine import order_declarations
        decls = [
            _decl("os", category=DeclarationCategory.IMPORT),
            _decl("beta", "alpha"),
            _decl("alpha", "beta"),
        ]
        result = order_declarations(decls)
        assert result.categories[FUNCTION].cycles == [[2, 1]]
        assert result.in_same_cycle(1, 2)
        assert not result.in_same_cycle(0, 1)

    def test_canonical_order_is_permutation(self):
        from code_order.analysis.engine import OrderingEngine
        decls = [
            _decl("b", "a"),
            _decl("a"),
            _decl("T", "U", category=DeclarationCategory.EXPORTED_TYPE),
            _decl("U", category=DeclarationCategory.EXPORTED_TYPE),
        ]
        result = OrderingEngine().order(decls)
        assert sorted(result.indices) == list(range(len(decls)))
        assert result.position_of() == {2: 0, 3: 1, 0: 2, 1: 3}

    def test_empty_file(self):
        from code_order.analysis.engine import order_declarations
        result = order_declarations([])
        assert result.names == []
        assert result.categories == {}

    def test_type_references_excluded(self):
        from code_order.analysis.engine import order_declarations
        body = StaticBody((IdentifierUse("Base", type_only=True),))
        decls = [
            _decl("Base", category=DeclarationCategory.EXPORTED_TYPE),
            Declaration(name="Child", category=DeclarationCategory.EXPORTED_TYPE, body=body),
        ]
        assert order_declarations(decls).names == ["Child", "Base"]
        config = OrderingConfig(include_type_references=False)
        assert order_declarations(decls, config).names == ["Base", "Child"]

    def test_statements_split_the_file(self):
        from code_order.analysis.engine import order_declarations
        decls = [
            _decl("_helper"),
            _decl("<statement:3>", "_helper", category=DeclarationCategory.PRIVATE_BINDING),
            _decl("run", "_helper", category=DeclarationCategory.EXPORTED_FUNCTION),
            _decl("VERSION", category=DeclarationCategory.EXPORTED_BINDING),
        ]
        decls[1].kind = "statement"
        result = order_declarations(decls)

        assert result.names == ["_helper", "<statement:3>", "VERSION", "run"]
        assert [s.statement for s in result.segments] == [1, None]
        assert result.position_of()[1] == 1

    def test_main_guard_keeps_its_place(self):
        from code_order.analysis.engine import order_declarations
        from code_order.validator import validate_order
        guard = Declaration(
            name="<statement:8>",
            category=DeclarationCategory.PRIVATE_BINDING,
            kind="statement",
            body=StaticBody.of("__name__", "sys", "main"),
        )
        decls = [
            _decl("sys", category=DeclarationCategory.IMPORT),
            _decl("main", category=DeclarationCategory.EXPORTED_FUNCTION),
            guard,
        ]
        result = order_declarations(decls)

        assert result.names == ["sys", "main", "<statement:8>"]
        assert validate_order(result) == []
