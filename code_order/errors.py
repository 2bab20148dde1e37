"""Exception hierarchy for code-order."""

from __future__ import annotations


class OrderingError(Exception):
    """Base class for every error raised by code-order."""


class GraphInvariantError(OrderingError):
    """The dependency graph or its condensation is internally inconsistent.

    This is a programming error, never a property of the analysed file, so
    nothing inside the engine catches it.
    """


class UnsupportedLanguageError(OrderingError):
    """No scanner handles the given file."""


class ScanError(OrderingError):
    """A file could not be parsed into declarations."""


class FixError(OrderingError):
    """A file cannot be rewritten into canonical order safely."""


class ConfigError(OrderingError):
    """Invalid ``[tool.code-order]`` settings."""
