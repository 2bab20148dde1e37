"""Scope-aware identifier walk over a tree-sitter JavaScript/TypeScript node."""

from __future__ import annotations

from typing import Iterator

from code_order.models import IdentifierUse

_USE_TYPES = {"identifier", "type_identifier", "shorthand_property_identifier"}

FUNCTION_TYPES = {
    "function_declaration", "generator_function_declaration", "function_signature",
    "function_expression", "function", "generator_function", "arrow_function",
    "method_definition", "method_signature", "abstract_method_signature",
}

_CLASS_TYPES = {"class_declaration", "abstract_class_declaration", "class"}
_TYPE_DECLARATION_TYPES = {"interface_declaration", "type_alias_declaration"}
_NAMED_SCOPE_TYPES = {"enum_declaration", "internal_module", "module"}

# Subtrees that only ever describe types
_TYPE_CONTEXT_TYPES = {
    "type_annotation", "type_arguments", "type_parameters", "implements_clause",
    "extends_type_clause", "type_predicate_annotation", "asserts_annotation",
    "opting_type_annotation", "omitting_type_annotation", "adding_type_annotation",
}

_HOISTED_DECLARATION_TYPES = {
    "function_declaration", "generator_function_declaration", "class_declaration",
    "abstract_class_declaration", "enum_declaration", "interface_declaration",
    "type_alias_declaration",
}


def node_text(node) -> str:
    return node.text.decode("utf-8", errors="replace") if node.text else ""


def _key(node) -> tuple[int, int]:
    return (node.start_byte, node.end_byte)


class TreeSitterBody:
    """Body of a top-level JavaScript/TypeScript declaration."""

    def __init__(self, node):
        self.node = node

    def identifiers(self) -> Iterator[IdentifierUse]:
        walker = _UseWalker()
        walker.walk(self.node, False)
        return iter(walker.uses)


class _UseWalker:
    """Collect identifier uses in document order.

    Binding positions (declared names, parameters, destructuring targets)
    are recorded by byte range so the walk skips them; the names they bind
    form the scope stack used to flag shadowed uses.
    """

    def __init__(self) -> None:
        self.scopes: list[set[str]] = []
        self.bindings: set[tuple[int, int]] = set()
        self.uses: list[IdentifierUse] = []

    def walk(self, node, type_context: bool) -> None:
        kind = node.type

        if kind in _USE_TYPES:
            if _key(node) not in self.bindings:
                name = node_text(node)
                self.uses.append(IdentifierUse(
                    name=name,
                    line=node.start_point[0] + 1,
                    column=node.start_point[1],
                    shadowed=any(name in scope for scope in self.scopes),
                    type_only=type_context or kind == "type_identifier",
                ))
            return

        if kind == "nested_type_identifier":
            # ns.Type refers to ns; Type is a member, not a file-level name
            module = node.child_by_field_name("module")
            if module is not None:
                self.walk(module, True)
            return

        scope: set[str] | None = None
        if kind == "variable_declarator":
            self._bind_pattern(node.child_by_field_name("name"))
        elif kind in FUNCTION_TYPES:
            scope = self._function_scope(node)
        elif kind in _CLASS_TYPES or kind in _TYPE_DECLARATION_TYPES:
            self._bind(node.child_by_field_name("name"))
            scope = self._type_parameters(node)
            type_context = type_context or kind in _TYPE_DECLARATION_TYPES
        elif kind in _NAMED_SCOPE_TYPES:
            self._bind(node.child_by_field_name("name"))
        elif kind == "catch_clause":
            scope = self._bind_pattern(node.child_by_field_name("parameter"))

        if scope is not None:
            self.scopes.append(scope)
        inner = type_context or kind in _TYPE_CONTEXT_TYPES
        for child in node.children:
            self.walk(child, inner)
        if scope is not None:
            self.scopes.pop()

    def _bind(self, node) -> str | None:
        if node is None:
            return None
        self.bindings.add(_key(node))
        return node_text(node)

    def _bind_pattern(self, node) -> set[str]:
        names: set[str] = set()
        if node is None:
            return names
        kind = node.type
        if kind in ("identifier", "shorthand_property_identifier_pattern"):
            names.add(self._bind(node))
        elif kind == "pair_pattern":
            names |= self._bind_pattern(node.child_by_field_name("value"))
        elif kind in ("assignment_pattern", "object_assignment_pattern"):
            names |= self._bind_pattern(node.child_by_field_name("left"))
        elif kind in ("object_pattern", "array_pattern", "rest_pattern"):
            for child in node.named_children:
                names |= self._bind_pattern(child)
        return names

    def _bind_parameter(self, param) -> set[str]:
        if param.type in ("required_parameter", "optional_parameter"):
            return self._bind_pattern(param.child_by_field_name("pattern"))
        return self._bind_pattern(param)

    def _type_parameters(self, node) -> set[str]:
        names: set[str] = set()
        params = node.child_by_field_name("type_parameters")
        if params is None:
            return names
        for param in params.named_children:
            if param.type == "type_parameter":
                name = self._bind(param.child_by_field_name("name"))
                if name:
                    names.add(name)
        return names

    def _function_scope(self, node) -> set[str]:
        names: set[str] = set()

        name = node.child_by_field_name("name")
        if name is not None and name.type == "identifier":
            self._bind(name)
            if node.type in ("function_expression", "function", "generator_function"):
                names.add(node_text(name))

        names |= self._type_parameters(node)

        params = node.child_by_field_name("parameters")
        if params is not None:
            for param in params.named_children:
                names |= self._bind_parameter(param)
        single = node.child_by_field_name("parameter")  # x => ...
        if single is not None:
            names |= self._bind_pattern(single)

        body = node.child_by_field_name("body")
        if body is not None and body.type == "statement_block":
            names |= self._hoisted(body)
        return names

    def _hoisted(self, block) -> set[str]:
        """Names declared anywhere in a function body, outside nested functions."""
        names: set[str] = set()
        stack = list(block.named_children)
        while stack:
            node = stack.pop()
            kind = node.type
            if kind in _HOISTED_DECLARATION_TYPES:
                name = node.child_by_field_name("name")
                if name is not None:
                    names.add(node_text(name))
                continue
            if kind in FUNCTION_TYPES or kind == "class":
                continue
            if kind == "variable_declarator":
                names |= self._bind_pattern(node.child_by_field_name("name"))
                value = node.child_by_field_name("value")
                if value is not None:
                    stack.append(value)
                continue
            if kind == "for_in_statement":
                names |= self._bind_pattern(node.child_by_field_name("left"))
            stack.extend(node.named_children)
        return names
