"""Abstract base scanner."""

from __future__ import annotations

import abc
from pathlib import Path

from code_order.errors import ScanError
from code_order.models import Declaration, FunctionBindings, Language


class BaseScanner(abc.ABC):
    """Base class for language-specific declaration classifiers."""

    language: Language
    extensions: tuple[str, ...]

    def __init__(self, function_bindings: FunctionBindings = FunctionBindings.FUNCTION):
        self.function_bindings = function_bindings

    @abc.abstractmethod
    def scan_source(self, source: str, file_path: Path | None = None) -> list[Declaration]:
        """Classify the top-level declarations of *source*, in file order."""

    def scan_file(self, file_path: Path) -> list[Declaration]:
        """Read and classify a single file."""
        try:
            source = file_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise ScanError(f"{file_path}: {e}") from e
        return self.scan_source(source, file_path)

    def handles(self, path: Path) -> bool:
        return path.suffix in self.extensions
