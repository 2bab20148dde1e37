"""Scope-aware identifier walk over a Python declaration."""

from __future__ import annotations

import ast
from dataclasses import dataclass, field
from typing import Iterator

from code_order.models import IdentifierUse

_COMPREHENSIONS = (ast.ListComp, ast.SetComp, ast.GeneratorExp, ast.DictComp)
_SCOPES = (ast.FunctionDef, ast.AsyncFunctionDef, ast.ClassDef, ast.Lambda)


@dataclass
class _Scope:
    names: set[str] = field(default_factory=set)
    is_class: bool = False


class PythonBody:
    """Body of a top-level Python statement.

    Uses are collected lazily and yielded in source-text order; a use is
    shadowed when a parameter or local of an enclosing function, lambda,
    comprehension or class body binds the same name.
    """

    def __init__(self, node: ast.AST):
        self.node = node

    def identifiers(self) -> Iterator[IdentifierUse]:
        collector = _UseCollector()
        collector.visit(self.node)
        indexed = sorted(enumerate(collector.uses), key=lambda p: (p[1].line, p[1].column, p[0]))
        return (use for _, use in indexed)


class _UseCollector(ast.NodeVisitor):

    def __init__(self) -> None:
        self.scopes: list[_Scope] = []
        self.uses: list[IdentifierUse] = []
        self._type_depth = 0

    def _is_local(self, name: str) -> bool:
        # Class bodies are only visible to their own statements
        for depth, scope in enumerate(reversed(self.scopes)):
            if scope.is_class and depth > 0:
                continue
            if name in scope.names:
                return True
        return False

    def _record(self, name: str, node: ast.AST) -> None:
        self.uses.append(IdentifierUse(
            name=name,
            line=getattr(node, "lineno", 0),
            column=getattr(node, "col_offset", 0),
            shadowed=self._is_local(name),
            type_only=self._type_depth > 0,
        ))

    def _visit_all(self, nodes) -> None:
        for node in nodes:
            if node is not None:
                self.visit(node)

    def _annotation(self, node: ast.AST | None) -> None:
        if node is None:
            return
        self._type_depth += 1
        self.visit(node)
        self._type_depth -= 1

    def visit_Name(self, node: ast.Name) -> None:
        if isinstance(node.ctx, ast.Load):
            self._record(node.id, node)

    def visit_Constant(self, node: ast.Constant) -> None:
        # Forward references: "Foo" in an annotation
        if self._type_depth and isinstance(node.value, str):
            try:
                expr = ast.parse(node.value.strip(), mode="eval")
            except SyntaxError:
                return
            for sub in ast.walk(expr):
                if isinstance(sub, ast.Name):
                    self._record(sub.id, node)

    def _visit_function(self, node: ast.FunctionDef | ast.AsyncFunctionDef) -> None:
        self._visit_all(node.decorator_list)
        type_params = _type_param_names(node)
        if type_params:
            self.scopes.append(_Scope(type_params))

        args = node.args
        self._visit_all(args.defaults)
        self._visit_all(args.kw_defaults)
        for arg in _all_args(args):
            self._annotation(arg.annotation)
        self._annotation(node.returns)

        self.scopes.append(_Scope(_function_locals(node)))
        self._visit_all(node.body)
        self.scopes.pop()

        if type_params:
            self.scopes.pop()

    visit_FunctionDef = _visit_function
    visit_AsyncFunctionDef = _visit_function

    def visit_Lambda(self, node: ast.Lambda) -> None:
        self._visit_all(node.args.defaults)
        self._visit_all(node.args.kw_defaults)
        self.scopes.append(_Scope({arg.arg for arg in _all_args(node.args)}))
        self.visit(node.body)
        self.scopes.pop()

    def visit_ClassDef(self, node: ast.ClassDef) -> None:
        self._visit_all(node.decorator_list)
        type_params = _type_param_names(node)
        if type_params:
            self.scopes.append(_Scope(type_params))
        self._visit_all(node.bases)
        self._visit_all(node.keywords)

        self.scopes.append(_Scope(_bound_names(node.body), is_class=True))
        self._visit_all(node.body)
        self.scopes.pop()

        if type_params:
            self.scopes.pop()

    def visit_AnnAssign(self, node: ast.AnnAssign) -> None:
        self.visit(node.target)
        self._annotation(node.annotation)
        if node.value is not None:
            self.visit(node.value)

    def visit_TypeAlias(self, node) -> None:
        type_params = _type_param_names(node)
        if type_params:
            self.scopes.append(_Scope(type_params))
        self._annotation(node.value)
        if type_params:
            self.scopes.pop()

    def _visit_comprehension(self, node: ast.AST, results: list[ast.AST]) -> None:
        generators: list[ast.comprehension] = node.generators
        # The first iterable is evaluated in the enclosing scope
        self.visit(generators[0].iter)

        targets: set[str] = set()
        for gen in generators:
            targets.update(_store_names(gen.target))
        self.scopes.append(_Scope(targets))
        for i, gen in enumerate(generators):
            self.visit(gen.target)
            if i:
                self.visit(gen.iter)
            self._visit_all(gen.ifs)
        self._visit_all(results)
        self.scopes.pop()

    def visit_ListComp(self, node: ast.ListComp) -> None:
        self._visit_comprehension(node, [node.elt])

    visit_SetComp = visit_ListComp
    visit_GeneratorExp = visit_ListComp

    def visit_DictComp(self, node: ast.DictComp) -> None:
        self._visit_comprehension(node, [node.key, node.value])


def _all_args(args: ast.arguments) -> list[ast.arg]:
    result = [*args.posonlyargs, *args.args, *args.kwonlyargs]
    if args.vararg:
        result.append(args.vararg)
    if args.kwarg:
        result.append(args.kwarg)
    return result


def _type_param_names(node: ast.AST) -> set[str]:
    return {p.name for p in getattr(node, "type_params", None) or ()}


def _store_names(node: ast.AST) -> set[str]:
    return {
        n.id for n in ast.walk(node)
        if isinstance(n, ast.Name) and isinstance(n.ctx, ast.Store)
    }


def _function_locals(node: ast.FunctionDef | ast.AsyncFunctionDef) -> set[str]:
    params = {arg.arg for arg in _all_args(node.args)}
    return params | _bound_names(node.body)


def _bound_names(body: list[ast.stmt]) -> set[str]:
    """Names bound directly in *body*, without entering nested scopes."""
    bound: set[str] = set()
    declared_global: set[str] = set()
    stack: list[ast.AST] = list(body)

    while stack:
        node = stack.pop()
        if isinstance(node, _SCOPES):
            if not isinstance(node, ast.Lambda):
                bound.add(node.name)
            continue
        if isinstance(node, _COMPREHENSIONS):
            # Only assignment expressions leak out of a comprehension
            for sub in ast.walk(node):
                if isinstance(sub, ast.NamedExpr):
                    bound.update(_store_names(sub.target))
            continue

        if isinstance(node, ast.Name) and isinstance(node.ctx, (ast.Store, ast.Del)):
            bound.add(node.id)
        elif isinstance(node, (ast.Import, ast.ImportFrom)):
            for alias in node.names:
                if alias.name != "*":
                    bound.add(alias.asname or alias.name.split(".")[0])
        elif isinstance(node, ast.ExceptHandler) and node.name:
            bound.add(node.name)
        elif isinstance(node, ast.Global):
            declared_global.update(node.names)
        elif isinstance(node, (ast.MatchAs, ast.MatchStar)) and node.name:
            bound.add(node.name)
        elif isinstance(node, ast.MatchMapping) and node.rest:
            bound.add(node.rest)

        stack.extend(ast.iter_child_nodes(node))

    return bound - declared_global
