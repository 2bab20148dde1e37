"""Check pipeline: collect -> scan -> order -> validate -> fix."""

from __future__ import annotations

import fnmatch
import logging
from pathlib import Path
from typing import Callable, Iterable

from code_order.analysis.engine import OrderingEngine
from code_order.errors import FixError, ScanError, UnsupportedLanguageError
from code_order.fixer import apply_order
from code_order.models import FileReport, OrderingConfig
from code_order.scanner import is_supported, language_for, scanner_for
from code_order.validator import validate_order

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str, int, int], None]


def collect_files(paths: Iterable[Path], config: OrderingConfig) -> list[Path]:
    """Expand *paths* into the supported source files below them.

    Files named explicitly are always kept, so unsupported ones surface as
    errors instead of disappearing.
    """
    files: list[Path] = []
    seen: set[Path] = set()

    def add(path: Path) -> None:
        if path not in seen:
            seen.add(path)
            files.append(path)

    for path in paths:
        if path.is_dir():
            for child in sorted(path.rglob("*")):
                if child.is_file() and is_supported(child) and not _should_skip(child, path, config):
                    add(child)
        else:
            add(path)
    return files


def _should_skip(path: Path, root: Path, config: OrderingConfig) -> bool:
    for part in path.relative_to(root).parts[:-1]:
        for pattern in config.skip_dirs:
            if fnmatch.fnmatch(part, pattern):
                return True
    return False


def check_source(source: str, path: Path, config: OrderingConfig | None = None) -> FileReport:
    """Scan, order and validate *source*; *path* selects the language."""
    config = config or OrderingConfig()
    report = FileReport(path=path, language=language_for(path))

    try:
        declarations = scanner_for(path, config).scan_source(source, path)
    except (ScanError, UnsupportedLanguageError) as e:
        logger.warning("Cannot check %s", e)
        report.error = str(e)
        return report

    report.order = OrderingEngine(config).order(declarations)
    report.violations = validate_order(report.order)

    if config.fix and report.violations:
        try:
            report.fixed_source = apply_order(source, report.order, path)
        except FixError as e:
            logger.warning("Cannot fix %s", e)
            report.error = str(e)

    return report


def check_file(path: Path, config: OrderingConfig | None = None) -> FileReport:
    """Check a single file on disk."""
    try:
        source = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        logger.warning("Cannot read %s: %s", path, e)
        return FileReport(path=path, language=language_for(path), error=f"{path}: {e}")
    return check_source(source, path, config)


def run_check(
    paths: Iterable[Path],
    config: OrderingConfig | None = None,
    progress: ProgressCallback | None = None,
) -> list[FileReport]:
    """Check every supported file under *paths*; with ``config.fix``, write fixes."""
    config = config or OrderingConfig()
    files = collect_files(paths, config)
    logger.debug("Checking %d file(s)", len(files))

    reports: list[FileReport] = []
    for i, path in enumerate(files):
        if progress:
            progress("Checking", i, len(files))
        report = check_file(path, config)
        if report.fixed_source is not None:
            path.write_text(report.fixed_source, encoding="utf-8")
            logger.info("Fixed %s", path)
        reports.append(report)

    if progress:
        progress("Checking", len(files), len(files))
    return reports
