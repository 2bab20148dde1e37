"""Data models for the code-order pipeline."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator, Protocol


class Language(enum.Enum):
    PYTHON = "python"
    JAVASCRIPT = "javascript"
    TYPESCRIPT = "typescript"


class DeclarationCategory(enum.IntEnum):
    """The eight fixed ranks, in the order they appear in a file."""

    IMPORT = 0
    RE_EXPORT = 1
    EXPORTED_TYPE = 2
    PRIVATE_TYPE = 3
    EXPORTED_BINDING = 4
    PRIVATE_BINDING = 5
    EXPORTED_FUNCTION = 6
    PRIVATE_FUNCTION = 7

    @property
    def label(self) -> str:
        return self.name.lower().replace("_", "-")

    @property
    def is_dependency_sorted(self) -> bool:
        """Imports and re-exports keep their relative order."""
        return self >= DeclarationCategory.EXPORTED_TYPE

    @classmethod
    def from_label(cls, label: str) -> DeclarationCategory:
        try:
            return cls[label.upper().replace("-", "_")]
        except KeyError:
            raise ValueError(f"Unknown declaration category: {label!r}") from None

    @classmethod
    def for_type(cls, exported: bool) -> DeclarationCategory:
        return cls.EXPORTED_TYPE if exported else cls.PRIVATE_TYPE

    @classmethod
    def for_binding(cls, exported: bool) -> DeclarationCategory:
        return cls.EXPORTED_BINDING if exported else cls.PRIVATE_BINDING

    @classmethod
    def for_function(cls, exported: bool) -> DeclarationCategory:
        return cls.EXPORTED_FUNCTION if exported else cls.PRIVATE_FUNCTION


CATEGORY_LABELS = [category.label for category in DeclarationCategory]


class CycleFallback(enum.Enum):
    """How members of a dependency cycle are ordered."""
    ALPHABETICAL = "alphabetical"
    ORIGINAL = "original"


class TieBreak(enum.Enum):
    """How unconstrained declarations are ordered relative to each other."""
    SOURCE = "source"
    NAME = "name"


class FunctionBindings(enum.Enum):
    """Category for a binding whose value is a function (``f = lambda: ...``)."""
    FUNCTION = "function"
    BINDING = "binding"


class ViolationReason(enum.Enum):
    CATEGORY = "category"
    DEPENDENCY = "dependency"
    CYCLE = "cycle"
    ORDER = "order"


@dataclass(frozen=True)
class IdentifierUse:
    """One identifier occurrence inside a declaration body."""
    name: str
    line: int = 0
    column: int = 0
    shadowed: bool = False  # bound by a parameter or local in between
    type_only: bool = False


class DeclarationBody(Protocol):
    """Traversal capability the analyzer needs from the syntax layer."""

    def identifiers(self) -> Iterator[IdentifierUse]:
        """Yield every identifier use in source-text order."""
        ...


@dataclass(frozen=True)
class StaticBody:
    """A body given as an already enumerated list of uses."""
    uses: tuple[IdentifierUse, ...] = ()

    @classmethod
    def of(cls, *names: str) -> StaticBody:
        return cls(tuple(IdentifierUse(name=name) for name in names))

    def identifiers(self) -> Iterator[IdentifierUse]:
        return iter(self.uses)


@dataclass
class Declaration:
    """One top-level construct of a file, produced by a scanner."""
    name: str
    category: DeclarationCategory
    exported: bool = False
    kind: str = ""
    line_number: int = 0
    column: int = 0
    end_line: int | None = None
    start_line: int | None = None  # first line including decorators
    aliases: tuple[str, ...] = ()
    body: DeclarationBody = field(default_factory=StaticBody, repr=False, compare=False)
    file_path: Path | None = None

    @property
    def names(self) -> tuple[str, ...]:
        return (self.name, *self.aliases)

    @property
    def first_line(self) -> int:
        return self.start_line if self.start_line is not None else self.line_number

    @property
    def last_line(self) -> int:
        return self.end_line if self.end_line is not None else self.line_number

    @property
    def is_statement(self) -> bool:
        return self.kind == "statement"


@dataclass
class CanonicalOrder:
    """Canonical order of one category, as indices into the file's declarations."""
    category: DeclarationCategory
    indices: list[int] = field(default_factory=list)
    declarations: list[Declaration] = field(default_factory=list)
    cycles: list[list[int]] = field(default_factory=list)

    @property
    def names(self) -> list[str]:
        return [d.name for d in self.declarations]


@dataclass
class Segment:
    """Declarations between two top-level statements, ordered on their own.

    ``statement`` is the file index of the statement that closes the run;
    it keeps its source position. The last segment of a file may have none.
    """
    categories: dict[DeclarationCategory, CanonicalOrder] = field(default_factory=dict)
    statement: int | None = None

    @property
    def indices(self) -> list[int]:
        result: list[int] = []
        for category in DeclarationCategory:
            order = self.categories.get(category)
            if order is not None:
                result.extend(order.indices)
        if self.statement is not None:
            result.append(self.statement)
        return result


@dataclass
class FileOrder:
    """Canonical order for a whole file."""
    declarations: list[Declaration]
    segments: list[Segment] = field(default_factory=list)

    @property
    def categories(self) -> dict[DeclarationCategory, CanonicalOrder]:
        """Per-category orders merged across segments, in rank order."""
        merged: dict[DeclarationCategory, CanonicalOrder] = {}
        for category in DeclarationCategory:
            parts = [s.categories[category] for s in self.segments if category in s.categories]
            if not parts:
                continue
            merged[category] = CanonicalOrder(
                category=category,
                indices=[i for part in parts for i in part.indices],
                declarations=[d for part in parts for d in part.declarations],
                cycles=[cycle for part in parts for cycle in part.cycles],
            )
        return merged

    @property
    def indices(self) -> list[int]:
        result: list[int] = []
        for segment in self.segments:
            result.extend(segment.indices)
        return result

    @property
    def ordered(self) -> list[Declaration]:
        return [self.declarations[i] for i in self.indices]

    @property
    def names(self) -> list[str]:
        return [d.name for d in self.ordered]

    def position_of(self) -> dict[int, int]:
        """Map declaration index to canonical position."""
        return {index: pos for pos, index in enumerate(self.indices)}

    def in_same_cycle(self, a: int, b: int) -> bool:
        for segment in self.segments:
            for order in segment.categories.values():
                for cycle in order.cycles:
                    if a in cycle and b in cycle:
                        return True
        return False


@dataclass
class Violation:
    """A declaration found before one it should precede."""
    declaration: Declaration
    expected_before: Declaration
    reason: ViolationReason
    message: str

    @property
    def line_number(self) -> int:
        return self.declaration.line_number


@dataclass
class FileReport:
    """Result of checking a single file."""
    path: Path
    language: Language | None = None
    order: FileOrder | None = None
    violations: list[Violation] = field(default_factory=list)
    fixed_source: str | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and not self.violations


@dataclass
class OrderingConfig:
    """Configuration for the ordering engine and the check pipeline."""
    cycle_fallback: CycleFallback = CycleFallback.ALPHABETICAL
    tie_break: TieBreak = TieBreak.SOURCE
    dependency_sort: bool = True
    unsorted_categories: set[DeclarationCategory] = field(default_factory=set)
    include_type_references: bool = True
    function_bindings: FunctionBindings = FunctionBindings.FUNCTION
    fix: bool = False
    skip_dirs: list[str] = field(default_factory=lambda: [
        "node_modules", ".git", "__pycache__", "build", "dist",
        ".next", ".venv", "venv", "env", ".eggs", "*.egg-info",
        ".tox", ".mypy_cache", ".pytest_cache",
    ])

    def sorts(self, category: DeclarationCategory) -> bool:
        """Whether *category* is dependency-sorted under this configuration."""
        return (
            self.dependency_sort
            and category.is_dependency_sorted
            and category not in self.unsorted_categories
        )
