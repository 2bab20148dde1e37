"""Compare a file's actual declaration order with its canonical order."""

from __future__ import annotations

from code_order.models import (
    Declaration,
    FileOrder,
    Violation,
    ViolationReason,
)


def _describe(decl: Declaration) -> str:
    return f"{decl.category.label.replace('-', ' ')} '{decl.name}'"


def _references(decl: Declaration, other: Declaration) -> bool:
    names = set(other.names)
    return any(not use.shadowed and use.name in names for use in decl.body.identifiers())


def validate_order(file_order: FileOrder) -> list[Violation]:
    """Report each declaration that the canonical order puts before its predecessor.

    Declarations are walked in file order; a declaration is reported when
    its canonical position is lower than that of the declaration right
    before it. A file already in canonical order yields no violations, and
    top-level statements, which keep their place, are never reported.
    """
    positions = file_order.position_of()
    declarations = file_order.declarations
    violations: list[Violation] = []

    for index in range(1, len(declarations)):
        previous, current = declarations[index - 1], declarations[index]
        if positions[index] > positions[index - 1]:
            continue

        if current.category != previous.category:
            reason = ViolationReason.CATEGORY
            message = (
                f"{_describe(current)} should come before {_describe(previous)}: "
                f"{current.category.label} declarations precede {previous.category.label} declarations"
            )
        elif file_order.in_same_cycle(index, index - 1):
            reason = ViolationReason.CYCLE
            message = (
                f"'{current.name}' should come before '{previous.name}': "
                f"they depend on each other, so they are ordered by name"
            )
        elif _references(current, previous):
            reason = ViolationReason.DEPENDENCY
            message = (
                f"'{current.name}' should come before '{previous.name}', which it uses"
            )
        else:
            reason = ViolationReason.ORDER
            message = f"'{current.name}' should come before '{previous.name}'"

        violations.append(Violation(
            declaration=current,
            expected_before=previous,
            reason=reason,
            message=message,
        ))

    return violations
