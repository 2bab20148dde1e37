"""Python scanner using the ast module."""

from __future__ import annotations

import ast
import warnings
from pathlib import Path

from code_order.errors import ScanError
from code_order.models import (
    Declaration,
    DeclarationCategory,
    FunctionBindings,
    Language,
)
from code_order.scanner.base import BaseScanner
from code_order.scanner.python_body import PythonBody

# Calls whose result is a type: X = TypeVar("X")
_TYPE_FACTORIES = {
    "TypeVar", "ParamSpec", "TypeVarTuple", "NewType", "NamedTuple", "TypedDict",
}

_TYPE_ALIAS = getattr(ast, "TypeAlias", None)  # `type X = ...`, Python 3.12+


class PythonScanner(BaseScanner):
    language = Language.PYTHON
    extensions = (".py", ".pyi")

    def scan_source(self, source: str, file_path: Path | None = None) -> list[Declaration]:
        try:
            with warnings.catch_warnings():
                warnings.simplefilter("ignore", SyntaxWarning)
                tree = ast.parse(source, filename=str(file_path or "<unknown>"))
        except SyntaxError as e:
            raise ScanError(f"{file_path or '<source>'}: {e.msg} (line {e.lineno})") from e

        exported_names = _module_all(tree)
        body = tree.body
        if body and _is_docstring(body[0]):
            body = body[1:]

        return [self._classify(node, exported_names, file_path) for node in body]

    def _classify(
        self,
        node: ast.stmt,
        exported_names: set[str] | None,
        file_path: Path | None,
    ) -> Declaration:
        if isinstance(node, (ast.Import, ast.ImportFrom)):
            names = _import_names(node)
            if _is_reexport(node, names, exported_names):
                return self._declaration(node, names, DeclarationCategory.RE_EXPORT, True, "re-export", file_path)
            return self._declaration(node, names, DeclarationCategory.IMPORT, False, "import", file_path)

        if isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef)):
            exported = _is_exported(node.name, exported_names)
            kind = "async function" if isinstance(node, ast.AsyncFunctionDef) else "function"
            return self._declaration(
                node, [node.name], DeclarationCategory.for_function(exported), exported, kind, file_path,
            )

        if isinstance(node, ast.ClassDef):
            exported = _is_exported(node.name, exported_names)
            return self._declaration(
                node, [node.name], DeclarationCategory.for_type(exported), exported, "class", file_path,
            )

        if _TYPE_ALIAS is not None and isinstance(node, _TYPE_ALIAS):
            exported = _is_exported(node.name.id, exported_names)
            return self._declaration(
                node, [node.name.id], DeclarationCategory.for_type(exported), exported, "type alias", file_path,
            )

        if isinstance(node, (ast.Assign, ast.AnnAssign)):
            names = _assigned_names(node)
            if names:
                exported = _is_exported(names[0], exported_names)
                if _is_type_binding(node):
                    category, kind = DeclarationCategory.for_type(exported), "type alias"
                elif (isinstance(node.value, ast.Lambda)
                        and self.function_bindings is FunctionBindings.FUNCTION):
                    category, kind = DeclarationCategory.for_function(exported), "lambda"
                else:
                    category, kind = DeclarationCategory.for_binding(exported), "assignment"
                return self._declaration(node, names, category, exported, kind, file_path)

        imports = _guarded_imports(node)
        if imports:
            names = [name for imp in imports for name in _import_names(imp)]
            return self._declaration(node, names, DeclarationCategory.IMPORT, False, "import", file_path)

        # Executable code with no name of its own
        return self._declaration(
            node, [f"<statement:{node.lineno}>"],
            DeclarationCategory.PRIVATE_BINDING, False, "statement", file_path,
        )

    def _declaration(
        self,
        node: ast.stmt,
        names: list[str],
        category: DeclarationCategory,
        exported: bool,
        kind: str,
        file_path: Path | None,
    ) -> Declaration:
        decorators = getattr(node, "decorator_list", None) or []
        start_line = min([node.lineno, *(d.lineno for d in decorators)])
        return Declaration(
            name=names[0] if names else f"<{kind}:{node.lineno}>",
            aliases=tuple(names[1:]),
            category=category,
            exported=exported,
            kind=kind,
            line_number=node.lineno,
            column=node.col_offset,
            end_line=node.end_lineno,
            start_line=start_line,
            body=PythonBody(node),
            file_path=file_path,
        )


def _is_docstring(node: ast.stmt) -> bool:
    return (
        isinstance(node, ast.Expr)
        and isinstance(node.value, ast.Constant)
        and isinstance(node.value.value, str)
    )


def _module_all(tree: ast.Module) -> set[str] | None:
    """Collect the literal contents of ``__all__``, or None when it is not defined."""
    names: set[str] | None = None
    for node in tree.body:
        if isinstance(node, ast.Assign):
            targets, value = node.targets, node.value
        elif isinstance(node, (ast.AnnAssign, ast.AugAssign)):
            targets, value = [node.target], node.value
        else:
            continue
        if not any(isinstance(t, ast.Name) and t.id == "__all__" for t in targets):
            continue
        if not isinstance(value, (ast.List, ast.Tuple)):
            continue
        if names is None or not isinstance(node, ast.AugAssign):
            names = set()
        for elt in value.elts:
            if isinstance(elt, ast.Constant) and isinstance(elt.value, str):
                names.add(elt.value)
    return names


def _is_exported(name: str, exported_names: set[str] | None) -> bool:
    if exported_names is not None:
        return name in exported_names
    if name.startswith("__") and name.endswith("__"):
        return True
    return not name.startswith("_")


def _import_names(node: ast.Import | ast.ImportFrom) -> list[str]:
    names: list[str] = []
    for alias in node.names:
        if alias.name == "*":
            names.append(f"{node.module or ''}.*")
        elif isinstance(node, ast.Import):
            names.append(alias.asname or alias.name.split(".")[0])
        else:
            names.append(alias.asname or alias.name)
    return names


def _is_reexport(
    node: ast.Import | ast.ImportFrom,
    names: list[str],
    exported_names: set[str] | None,
) -> bool:
    if isinstance(node, ast.ImportFrom) and node.module == "__future__":
        return False
    # PEP 484 explicit re-export: `from m import x as x`
    if all(alias.asname is not None and alias.asname == alias.name for alias in node.names):
        return True
    return exported_names is not None and any(name in exported_names for name in names)


def _assigned_names(node: ast.Assign | ast.AnnAssign) -> list[str]:
    targets = node.targets if isinstance(node, ast.Assign) else [node.target]
    names: list[str] = []
    for target in targets:
        for sub in ast.walk(target):
            if isinstance(sub, ast.Name) and isinstance(sub.ctx, ast.Store) and sub.id not in names:
                names.append(sub.id)
    if names and not isinstance(targets[0], (ast.Name, ast.Tuple, ast.List)):
        return []  # `obj.attr = ...` and `d[k] = ...` only mutate
    return names


def _call_name(node: ast.expr | None) -> str | None:
    if not isinstance(node, ast.Call):
        return None
    func = node.func
    if isinstance(func, ast.Name):
        return func.id
    if isinstance(func, ast.Attribute):
        return func.attr
    return None


def _is_type_binding(node: ast.Assign | ast.AnnAssign) -> bool:
    if isinstance(node, ast.AnnAssign):
        annotation = node.annotation
        if isinstance(annotation, ast.Attribute):
            annotation_name = annotation.attr
        elif isinstance(annotation, ast.Name):
            annotation_name = annotation.id
        else:
            annotation_name = None
        if annotation_name == "TypeAlias":
            return True
    return _call_name(node.value) in _TYPE_FACTORIES


def _guarded_imports(node: ast.stmt) -> list[ast.Import | ast.ImportFrom]:
    """Imports inside `if TYPE_CHECKING:` or `try:` blocks made only of imports."""
    if isinstance(node, ast.If):
        branches = [node.body, node.orelse]
    elif isinstance(node, ast.Try):
        branches = [node.body]
    else:
        return []
    imports: list[ast.Import | ast.ImportFrom] = []
    for branch in branches:
        for stmt in branch:
            if not isinstance(stmt, (ast.Import, ast.ImportFrom)):
                return []
            imports.append(stmt)
    return imports
