"""Rewrite a source file so its declarations follow the canonical order."""

from __future__ import annotations

import ast
import logging
from pathlib import Path

from code_order.errors import FixError
from code_order.models import Declaration, FileOrder, Language
from code_order.scanner.language_map import EXT_TO_LANGUAGE

logger = logging.getLogger(__name__)

_COMMENT_PREFIXES = {
    Language.PYTHON: ("#",),
    Language.JAVASCRIPT: ("//", "/*", "*"),
    Language.TYPESCRIPT: ("//", "/*", "*"),
}


def apply_order(source: str, file_order: FileOrder, path: Path | None = None) -> str:
    """Return *source* with its declarations moved into canonical order.

    Each declaration travels with the comments and blank lines between it
    and the previous declaration. Blank-line gaps stay where they were, so
    the file keeps its vertical rhythm.

    Raises:
        FixError: declarations share a line, a top-level statement would
            move, or the rewritten file does not parse.
    """
    declarations = file_order.declarations
    canonical = file_order.indices
    if not declarations or canonical == list(range(len(declarations))):
        return source

    _check_movable(declarations, canonical)
    language, grammar = EXT_TO_LANGUAGE.get(path.suffix, (None, None)) if path else (None, None)

    lines = source.splitlines(keepends=True)
    first = _attached_comment_start(lines, declarations[0].first_line - 1, language)
    header = lines[:first]

    chunks: list[list[str]] = []
    start = first
    for decl in declarations:
        chunks.append(lines[start:decl.last_line])
        start = decl.last_line
    trailer = lines[start:]

    gaps: list[list[str]] = []
    bodies: list[list[str]] = []
    for chunk in chunks:
        gap, body = _split_gap(chunk)
        gaps.append(gap)
        bodies.append(body)

    out = list(header)
    for position, index in enumerate(canonical):
        body = list(bodies[index])
        if body and not body[-1].endswith("\n"):
            body[-1] += "\n"
        out.extend(gaps[position])
        out.extend(body)
    out.extend(trailer)

    result = "".join(out)
    if not trailer and not source.endswith("\n"):
        result = result.rstrip("\n")

    _check_syntax(result, language, grammar, path)
    logger.debug("Reordered %d declaration(s) in %s", len(declarations), path or "<source>")
    return result


def _check_movable(declarations: list[Declaration], canonical: list[int]) -> None:
    for previous, current in zip(declarations, declarations[1:]):
        if current.first_line <= previous.last_line:
            raise FixError(
                f"'{previous.name}' and '{current.name}' share line {current.first_line}; "
                f"split them onto separate lines first"
            )
    for position, index in enumerate(canonical):
        decl = declarations[index]
        if decl.is_statement and position != index:
            raise FixError(
                f"top-level statement at line {decl.line_number} would move; "
                f"reorder this file by hand"
            )


def _attached_comment_start(lines: list[str], index: int, language: Language | None) -> int:
    """Move *index* up over a comment block directly above it."""
    prefixes = _COMMENT_PREFIXES.get(language, ("#", "//", "/*", "*"))
    while index > 0 and lines[index - 1].strip().startswith(prefixes):
        line = lines[index - 1]
        # Shebang and encoding lines belong to the file, not to a declaration
        if line.startswith("#!") or (index <= 2 and "coding" in line):
            break
        index -= 1
    return index


def _split_gap(chunk: list[str]) -> tuple[list[str], list[str]]:
    i = 0
    while i < len(chunk) and not chunk[i].strip():
        i += 1
    return chunk[:i], chunk[i:]


def _check_syntax(code: str, language: Language | None, grammar: str | None, path: Path | None) -> None:
    where = path or "<source>"
    if language is Language.PYTHON:
        try:
            ast.parse(code)
        except SyntaxError as e:
            raise FixError(f"{where}: reordered code does not parse: {e.msg} (line {e.lineno})") from e
    elif grammar is not None:
        from code_order.scanner.treesitter_scanner import TreeSitterScanner

        if TreeSitterScanner().parse(code, grammar).root_node.has_error:
            raise FixError(f"{where}: reordered code does not parse")
