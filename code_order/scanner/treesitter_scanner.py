"""Tree-sitter scanner for JavaScript and TypeScript."""

from __future__ import annotations

from pathlib import Path

from code_order.errors import ScanError
from code_order.models import (
    Declaration,
    DeclarationCategory,
    FunctionBindings,
    Language,
)
from code_order.scanner.base import BaseScanner
from code_order.scanner.language_map import EXT_TO_LANGUAGE, TREESITTER_EXTENSIONS
from code_order.scanner.treesitter_body import TreeSitterBody, node_text

try:
    from tree_sitter_language_pack import get_parser
except ImportError as _err:
    raise ImportError(
        "tree-sitter-language-pack is required. Install with: "
        "pip install tree-sitter-language-pack"
    ) from _err

# Top-level nodes that are not declarations at all
_SKIPPED_TYPES = {"comment", "hash_bang_line", "empty_statement"}

_TYPE_KINDS = {
    "interface_declaration": "interface",
    "type_alias_declaration": "type alias",
    "enum_declaration": "enum",
    "class_declaration": "class",
    "abstract_class_declaration": "class",
    "module": "module",
    "internal_module": "namespace",
}

_FUNCTION_KINDS = {
    "function_declaration": "function",
    "generator_function_declaration": "generator function",
    "function_signature": "function signature",
}

_FUNCTION_VALUES = {
    "arrow_function": "arrow function",
    "function_expression": "function expression",
    "function": "function expression",
    "generator_function": "generator function",
}


class TreeSitterScanner(BaseScanner):
    """Classify JavaScript/TypeScript top-level declarations with tree-sitter."""

    language = Language.TYPESCRIPT
    extensions = TREESITTER_EXTENSIONS

    def __init__(self, function_bindings: FunctionBindings = FunctionBindings.FUNCTION):
        super().__init__(function_bindings=function_bindings)
        self._parser_cache: dict[str, object] = {}

    def scan_source(
        self,
        source: str,
        file_path: Path | None = None,
        *,
        grammar: str | None = None,
    ) -> list[Declaration]:
        if grammar is None:
            grammar = "typescript"
            if file_path is not None and file_path.suffix in EXT_TO_LANGUAGE:
                grammar = EXT_TO_LANGUAGE[file_path.suffix][1]

        tree = self.parse(source, grammar)
        root = tree.root_node
        if root.has_error:
            error = _first_error(root)
            raise ScanError(
                f"{file_path or '<source>'}: syntax error (line {error.start_point[0] + 1})"
            )

        children = [c for c in root.named_children if c.type not in _SKIPPED_TYPES]
        # "use strict" and other directives stay in the file header
        while children and _is_directive(children[0]):
            children.pop(0)

        return [self._classify(node, file_path) for node in children]

    def parse(self, source: str, grammar: str = "typescript"):
        return self._get_parser(grammar).parse(source.encode("utf-8"))

    def _classify(self, node, file_path: Path | None) -> Declaration:
        if node.type in ("import_statement", "import_alias"):
            return self._declaration(
                node, node, _import_names(node), DeclarationCategory.IMPORT, False, "import", file_path,
            )
        if node.type == "export_statement":
            return self._classify_export(node, file_path)
        return self._classify_declaration(node, node, False, file_path)

    def _classify_export(self, node, file_path: Path | None) -> Declaration:
        declaration = node.child_by_field_name("declaration")
        if declaration is not None:
            return self._classify_declaration(declaration, node, True, file_path)

        value = node.child_by_field_name("value")
        child_types = {c.type for c in node.children}
        is_list = bool(child_types & {"export_clause", "namespace_export", "*", "="})
        if node.child_by_field_name("source") is not None or (is_list and value is None):
            names = _export_names(node)
            return self._declaration(
                node, node, names, DeclarationCategory.RE_EXPORT, True, "re-export", file_path,
            )

        # export default <expression>
        target = value if value is not None else node
        if target.type in _FUNCTION_VALUES and self.function_bindings is FunctionBindings.FUNCTION:
            category, kind = DeclarationCategory.EXPORTED_FUNCTION, _FUNCTION_VALUES[target.type]
        elif target.type == "class":
            category, kind = DeclarationCategory.EXPORTED_TYPE, "class"
        else:
            category, kind = DeclarationCategory.EXPORTED_BINDING, "default export"
        return self._declaration(target, node, ["default"], category, True, kind, file_path)

    def _classify_declaration(self, decl, outer, exported: bool, file_path: Path | None) -> Declaration:
        kind = decl.type

        if kind == "ambient_declaration":
            inner = next((c for c in decl.named_children if c.type != "comment"), None)
            if inner is not None and inner.type != "statement_block":
                return self._classify_declaration(inner, outer, exported, file_path)

        if kind in _TYPE_KINDS:
            return self._declaration(
                decl, outer, [_name(decl, outer)],
                DeclarationCategory.for_type(exported), exported, _TYPE_KINDS[kind], file_path,
            )

        if kind in _FUNCTION_KINDS:
            return self._declaration(
                decl, outer, [_name(decl, outer)],
                DeclarationCategory.for_function(exported), exported, _FUNCTION_KINDS[kind], file_path,
            )

        if kind in ("lexical_declaration", "variable_declaration"):
            declarators = [c for c in decl.named_children if c.type == "variable_declarator"]
            names = [name for d in declarators for name in _pattern_names(d.child_by_field_name("name"))]
            if names:
                values = [d.child_by_field_name("value") for d in declarators]
                if (len(declarators) == 1 and values[0] is not None
                        and values[0].type in _FUNCTION_VALUES
                        and self.function_bindings is FunctionBindings.FUNCTION):
                    category = DeclarationCategory.for_function(exported)
                    binding_kind = _FUNCTION_VALUES[values[0].type]
                else:
                    category = DeclarationCategory.for_binding(exported)
                    binding_kind = node_text(decl.children[0]) if decl.children else "binding"
                return self._declaration(decl, outer, names, category, exported, binding_kind, file_path)

        if kind == "expression_statement" and decl.named_child_count == 1:
            inner = decl.named_children[0]
            if inner.type == "internal_module":
                return self._declaration(
                    inner, outer, [_name(inner, outer)],
                    DeclarationCategory.for_type(exported), exported, "namespace", file_path,
                )

        line = outer.start_point[0] + 1
        return self._declaration(
            decl, outer, [f"<statement:{line}>"],
            DeclarationCategory.for_binding(exported), exported, "statement", file_path,
        )

    def _declaration(
        self,
        decl,
        outer,
        names: list[str],
        category: DeclarationCategory,
        exported: bool,
        kind: str,
        file_path: Path | None,
    ) -> Declaration:
        line = outer.start_point[0] + 1
        end_line = outer.end_point[0] + 1
        if outer.end_point[1] == 0 and end_line > line:
            end_line -= 1
        return Declaration(
            name=names[0] if names else f"<{kind}:{line}>",
            aliases=tuple(names[1:]),
            category=category,
            exported=exported,
            kind=kind,
            line_number=line,
            column=outer.start_point[1],
            end_line=end_line,
            start_line=line,
            body=TreeSitterBody(decl),
            file_path=file_path,
        )

    def _get_parser(self, grammar_name: str):
        if grammar_name not in self._parser_cache:
            self._parser_cache[grammar_name] = get_parser(grammar_name)
        return self._parser_cache[grammar_name]


def _first_error(node):
    """Return the first ERROR or missing node below *node*."""
    if node.type == "ERROR" or node.is_missing:
        return node
    for child in node.children:
        if child.has_error or child.is_missing:
            return _first_error(child)
    return node


def _is_directive(node) -> bool:
    return (
        node.type == "expression_statement"
        and node.named_child_count == 1
        and node.named_children[0].type == "string"
    )


def _name(decl, outer) -> str:
    name = decl.child_by_field_name("name")
    if name is not None and name.text:
        return node_text(name)
    return f"<anonymous:{outer.start_point[0] + 1}>"


def _pattern_names(node) -> list[str]:
    """Names bound by a declarator target, in source order."""
    if node is None:
        return []
    if node.type in ("identifier", "shorthand_property_identifier_pattern"):
        return [node_text(node)]
    if node.type == "pair_pattern":
        return _pattern_names(node.child_by_field_name("value"))
    if node.type in ("assignment_pattern", "object_assignment_pattern"):
        return _pattern_names(node.child_by_field_name("left"))
    names: list[str] = []
    for child in node.named_children:
        names.extend(_pattern_names(child))
    return names


def _import_names(node) -> list[str]:
    names: list[str] = []
    stack = [node]
    while stack:
        current = stack.pop(0)
        if current.type == "import_specifier":
            alias = current.child_by_field_name("alias") or current.child_by_field_name("name")
            if alias is not None:
                names.append(node_text(alias))
            continue
        if current.type in ("namespace_import", "import_clause"):
            for child in current.named_children:
                if child.type == "identifier":
                    names.append(node_text(child))
        stack.extend(current.named_children)
    if not names:
        source = node.child_by_field_name("source")
        names.append(node_text(source).strip("'\"") if source is not None else node_text(node))
    return names


def _export_names(node) -> list[str]:
    names: list[str] = []
    for child in node.named_children:
        if child.type == "export_clause":
            for spec in child.named_children:
                if spec.type == "export_specifier":
                    alias = spec.child_by_field_name("alias") or spec.child_by_field_name("name")
                    if alias is not None:
                        names.append(node_text(alias))
        elif child.type == "namespace_export":
            names.extend(node_text(c) for c in child.named_children if c.type == "identifier")
    if not names:
        source = node.child_by_field_name("source")
        names.append(f"* from {node_text(source)}" if source is not None else "export =")
    return names
