"""Scanner registry and dispatcher."""

from __future__ import annotations

from pathlib import Path

from code_order.errors import UnsupportedLanguageError
from code_order.models import Declaration, Language, OrderingConfig
from code_order.scanner.base import BaseScanner
from code_order.scanner.language_map import EXT_TO_LANGUAGE
from code_order.scanner.python_scanner import PythonScanner

# JavaScript/TypeScript need tree-sitter; Python files work without it
_HAS_TREESITTER = False
try:
    from code_order.scanner.treesitter_scanner import TreeSitterScanner
    _HAS_TREESITTER = True
except ImportError:
    TreeSitterScanner = None  # type: ignore[misc,assignment]


def get_scanners(config: OrderingConfig | None = None) -> list[BaseScanner]:
    config = config or OrderingConfig()
    # Python always uses stdlib ast
    scanners: list[BaseScanner] = [
        PythonScanner(function_bindings=config.function_bindings),
    ]
    if _HAS_TREESITTER:
        scanners.append(TreeSitterScanner(function_bindings=config.function_bindings))
    return scanners


def language_for(path: Path) -> Language | None:
    entry = EXT_TO_LANGUAGE.get(path.suffix)
    return entry[0] if entry else None


def scanner_for(path: Path, config: OrderingConfig | None = None) -> BaseScanner:
    """Return the scanner that handles *path*."""
    for scanner in get_scanners(config):
        if scanner.handles(path):
            return scanner
    if path.suffix in EXT_TO_LANGUAGE:
        raise UnsupportedLanguageError(
            f"{path}: tree-sitter-language-pack is required for {path.suffix} files. "
            f"Install with: pip install tree-sitter-language-pack"
        )
    raise UnsupportedLanguageError(f"No scanner for {path} (extension {path.suffix or 'none'!r})")


def scan_file(path: Path, config: OrderingConfig | None = None) -> list[Declaration]:
    """Classify the top-level declarations of *path*."""
    return scanner_for(path, config).scan_file(path)


def is_supported(path: Path) -> bool:
    return path.suffix in EXT_TO_LANGUAGE


__all__ = [
    "BaseScanner",
    "PythonScanner",
    "TreeSitterScanner",
    "get_scanners",
    "language_for",
    "scanner_for",
    "scan_file",
    "is_supported",
]
