"""Shared extension-to-language mapping for the scanners."""

from __future__ import annotations

from code_order.models import Language

# Maps file extension -> (Language enum, tree-sitter grammar name)
EXT_TO_LANGUAGE: dict[str, tuple[Language, str]] = {
    ".py": (Language.PYTHON, "python"),
    ".pyi": (Language.PYTHON, "python"),
    ".js": (Language.JAVASCRIPT, "javascript"),
    ".jsx": (Language.JAVASCRIPT, "javascript"),
    ".mjs": (Language.JAVASCRIPT, "javascript"),
    ".cjs": (Language.JAVASCRIPT, "javascript"),
    ".ts": (Language.TYPESCRIPT, "typescript"),
    ".mts": (Language.TYPESCRIPT, "typescript"),
    ".cts": (Language.TYPESCRIPT, "typescript"),
    ".tsx": (Language.TYPESCRIPT, "tsx"),
}

# Extensions handled by tree-sitter (excludes Python which uses stdlib ast)
TREESITTER_EXTENSIONS: tuple[str, ...] = tuple(
    ext for ext, (lang, _) in EXT_TO_LANGUAGE.items()
    if lang != Language.PYTHON
)
