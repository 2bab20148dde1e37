"""Configuration loading from ``[tool.code-order]`` in pyproject.toml."""

from __future__ import annotations

import logging
import tomllib
from pathlib import Path

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from code_order.errors import ConfigError
from code_order.models import (
    CATEGORY_LABELS,
    CycleFallback,
    DeclarationCategory,
    FunctionBindings,
    OrderingConfig,
    TieBreak,
)

logger = logging.getLogger(__name__)

TOOL_KEY = "code-order"


class OrderingSettings(BaseModel):
    """Validated contents of the ``[tool.code-order]`` table.

    Keys are written with dashes in TOML (``cycle-fallback``); underscores
    are accepted too.
    """

    model_config = ConfigDict(
        extra="forbid",
        populate_by_name=True,
        alias_generator=lambda name: name.replace("_", "-"),
    )

    cycle_fallback: CycleFallback = CycleFallback.ALPHABETICAL
    tie_break: TieBreak = TieBreak.SOURCE
    dependency_sort: bool = True
    unsorted_categories: list[str] = []
    include_type_references: bool = True
    function_bindings: FunctionBindings = FunctionBindings.FUNCTION
    skip_dirs: list[str] | None = None
    extend_skip_dirs: list[str] = []

    @field_validator("unsorted_categories")
    @classmethod
    def _known_categories(cls, value: list[str]) -> list[str]:
        unknown = [label for label in value if label not in CATEGORY_LABELS]
        if unknown:
            raise ValueError(
                f"unknown categories {unknown}; expected any of {CATEGORY_LABELS}"
            )
        return value

    def to_config(self) -> OrderingConfig:
        config = OrderingConfig(
            cycle_fallback=self.cycle_fallback,
            tie_break=self.tie_break,
            dependency_sort=self.dependency_sort,
            unsorted_categories={DeclarationCategory.from_label(c) for c in self.unsorted_categories},
            include_type_references=self.include_type_references,
            function_bindings=self.function_bindings,
        )
        if self.skip_dirs is not None:
            config.skip_dirs = list(self.skip_dirs)
        config.skip_dirs.extend(self.extend_skip_dirs)
        return config


def find_pyproject(start: Path) -> Path | None:
    """Find the nearest pyproject.toml at or above *start* that configures code-order."""
    start = start.resolve()
    for directory in (start, *start.parents):
        candidate = directory / "pyproject.toml"
        if not candidate.is_file():
            continue
        try:
            data = _read_toml(candidate)
        except ConfigError:
            continue
        if TOOL_KEY in data.get("tool", {}):
            return candidate
    return None


def load_settings(path: Path) -> OrderingSettings:
    """Validate settings from *path*.

    A pyproject.toml is read from its ``[tool.code-order]`` table; any other
    TOML file is taken as the settings table itself.
    """
    data = _read_toml(path)
    if "tool" in data or path.name == "pyproject.toml":
        data = data.get("tool", {}).get(TOOL_KEY, {})
    try:
        return OrderingSettings.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration in {path}:\n{e}") from e


def load_config(path: Path | None = None, start: Path | None = None) -> OrderingConfig:
    """Load an ``OrderingConfig`` from *path*, or from the nearest pyproject.toml.

    Falls back to defaults when no configuration file is found.
    """
    if path is None:
        path = find_pyproject(start or Path.cwd())
        if path is None:
            logger.debug("No [tool.%s] configuration found, using defaults", TOOL_KEY)
            return OrderingConfig()

    config = load_settings(path).to_config()
    logger.debug("Loaded configuration from %s", path)
    return config


def _read_toml(path: Path) -> dict:
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e
