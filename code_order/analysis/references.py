"""Reference extraction: identifier uses -> same-category references."""

from __future__ import annotations

from code_order.analysis.graph_models import Reference
from code_order.models import Declaration


def build_name_index(declarations: list[Declaration]) -> dict[str, list[int]]:
    """Map every name and alias to the declarations binding it, in source order."""
    index: dict[str, list[int]] = {}
    for i, decl in enumerate(declarations):
        for name in decl.names:
            targets = index.setdefault(name, [])
            if i not in targets:
                targets.append(i)
    return index


def extract_references(
    source: int,
    declaration: Declaration,
    name_index: dict[str, list[int]],
    *,
    include_type_references: bool = True,
) -> list[Reference]:
    """Return the references *declaration* makes to other indexed declarations.

    Uses are taken in the order the body yields them (source-text order).
    Only the first use of each dependency is kept; its ``order`` is the
    number of distinct dependencies seen before it. Shadowed uses, self
    references and names missing from *name_index* are skipped.
    """
    references: list[Reference] = []
    seen: set[int] = set()
    order = 0

    for use in declaration.body.identifiers():
        if use.shadowed:
            continue
        if use.type_only and not include_type_references:
            continue
        targets = [t for t in name_index.get(use.name, ()) if t != source and t not in seen]
        if not targets:
            continue
        for target in targets:
            seen.add(target)
            references.append(Reference(source=source, target=target, name=use.name, order=order))
        order += 1

    return references
