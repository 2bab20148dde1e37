"""Click CLI with check, order, and graph subcommands."""

from __future__ import annotations

import logging
from pathlib import Path

import click

from code_order.analysis.engine import OrderingEngine
from code_order.analysis.scc import condense
from code_order.config import load_config
from code_order.errors import ConfigError, ScanError, UnsupportedLanguageError
from code_order.models import (
    CATEGORY_LABELS,
    CycleFallback,
    DeclarationCategory,
    FileReport,
    OrderingConfig,
    TieBreak,
)
from code_order.pipeline import run_check
from code_order.scanner import scanner_for

EXIT_OK = 0
EXIT_VIOLATIONS = 1
EXIT_ERROR = 2

_REASON_COLORS = {
    "category": "yellow",
    "dependency": "magenta",
    "cycle": "red",
    "order": "blue",
}


class _ErrorExit(click.ClickException):
    exit_code = EXIT_ERROR


@click.group()
@click.version_option(version="0.1.0", prog_name="code-order")
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose (debug) output")
@click.option(
    "--config", "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="pyproject.toml or standalone TOML settings (default: nearest pyproject.toml)",
)
@click.pass_context
def cli(ctx: click.Context, verbose: bool, config_path: Path | None):
    """code-order: keep top-level declarations in reverse dependency order."""
    logging.basicConfig(level=logging.WARNING, format="%(levelname)s: %(message)s")
    if verbose:
        logging.getLogger("code_order").setLevel(logging.DEBUG)

    try:
        ctx.obj = load_config(config_path)
    except ConfigError as e:
        raise _ErrorExit(str(e))


def _load_declarations(file: Path, config: OrderingConfig):
    try:
        return scanner_for(file, config).scan_file(file)
    except (ScanError, UnsupportedLanguageError) as e:
        raise _ErrorExit(str(e))


@cli.command()
@click.argument("paths", nargs=-1, type=click.Path(exists=True, path_type=Path))
@click.option("--fix", is_flag=True, help="Rewrite files into canonical order")
@click.option(
    "--cycle-fallback", type=click.Choice([c.value for c in CycleFallback]),
    help="How to order declarations that depend on each other",
)
@click.option(
    "--tie-break", type=click.Choice([t.value for t in TieBreak]),
    help="How to order declarations with no dependency between them",
)
@click.option("--no-dependency-sort", is_flag=True, help="Only enforce category order")
@click.option(
    "--unsorted", "unsorted", multiple=True, type=click.Choice(CATEGORY_LABELS),
    help="Keep this category in its original order (repeatable)",
)
@click.pass_obj
def check(
    config: OrderingConfig,
    paths: tuple[Path, ...],
    fix: bool,
    cycle_fallback: str | None,
    tie_break: str | None,
    no_dependency_sort: bool,
    unsorted: tuple[str, ...],
):
    """Report (and optionally fix) declarations out of canonical order."""
    config.fix = fix
    if cycle_fallback:
        config.cycle_fallback = CycleFallback(cycle_fallback)
    if tie_break:
        config.tie_break = TieBreak(tie_break)
    if no_dependency_sort:
        config.dependency_sort = False
    config.unsorted_categories |= {DeclarationCategory.from_label(label) for label in unsorted}

    reports = run_check(paths or (Path("."),), config)

    for report in reports:
        if not report.ok:
            _print_report(report)

    violations = sum(len(r.violations) for r in reports)
    errors = sum(1 for r in reports if r.error)
    fixed = sum(1 for r in reports if r.fixed_source is not None)

    summary = f"Checked {len(reports)} file(s): {violations} violation(s)"
    if fix:
        summary += f", {fixed} file(s) fixed"
    if errors:
        summary += f", {errors} error(s)"
    click.echo(summary)

    if errors:
        raise SystemExit(EXIT_ERROR)
    if violations and not (fix and fixed == sum(1 for r in reports if r.violations)):
        raise SystemExit(EXIT_VIOLATIONS)


def _print_report(report: FileReport) -> None:
    click.echo(click.style(str(report.path), fg="cyan"))
    for violation in report.violations:
        reason = violation.reason.value
        click.echo(
            f"  {click.style(f'L{violation.line_number}', dim=True):>6}  "
            f"{click.style(reason, fg=_REASON_COLORS.get(reason, 'white')):<10}  "
            f"{violation.message}"
        )
    if report.error:
        click.echo(f"  {click.style('error', fg='red')}  {report.error}")
    click.echo()


@cli.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_obj
def order(config: OrderingConfig, file: Path):
    """Print the canonical order of FILE, grouped by category."""
    declarations = _load_declarations(file, config)
    file_order = OrderingEngine(config).order(declarations)

    if not declarations:
        click.echo("No declarations found.")
        return

    position = 0
    for segment in file_order.segments:
        for category, canonical in segment.categories.items():
            click.echo(click.style(category.label, fg="cyan"))
            for decl in canonical.declarations:
                position += 1
                click.echo(
                    f"  {position:>3}  {decl.name}  "
                    f"{click.style(f'L{decl.line_number}', dim=True)}"
                )
            for cycle in canonical.cycles:
                names = ", ".join(declarations[i].name for i in cycle)
                click.echo(f"       {click.style('cycle', fg='red')}: {names}")
        if segment.statement is not None:
            position += 1
            decl = declarations[segment.statement]
            click.echo(
                f"{click.style('statement', fg='cyan')}\n"
                f"  {position:>3}  {decl.name}  {click.style('fixed', dim=True)}"
            )


@cli.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_obj
def graph(config: OrderingConfig, file: Path):
    """Print the dependency edges of FILE within each sorted category."""
    declarations = _load_declarations(file, config)
    engine = OrderingEngine(config)

    edges = 0
    for segment in engine.order(declarations).segments:
        for category, canonical in segment.categories.items():
            if not config.sorts(category):
                continue
            members = [declarations[i] for i in sorted(canonical.indices)]
            dependency_graph = engine.build_graph(members)
            if not dependency_graph.references:
                continue

            click.echo(click.style(category.label, fg="cyan"))
            for node in dependency_graph.nodes:
                for target in dependency_graph.dependencies_in_order(node):
                    edges += 1
                    order_index = dependency_graph.dependencies[node][target]
                    click.echo(
                        f"  {dependency_graph.name(node)} -> {dependency_graph.name(target)}  "
                        f"{click.style(f'#{order_index}', dim=True)}"
                    )
            for component in condense(dependency_graph).cycles:
                names = ", ".join(dependency_graph.name(m) for m in component.members)
                click.echo(f"  {click.style('cycle', fg='red')}: {names}")

    if not edges:
        click.echo("No same-category dependencies found.")


if __name__ == "__main__":
    cli()
