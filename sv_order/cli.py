"""Click CLI with order, scan, and graph subcommands."""

from __future__ import annotations

import functools
import logging
from pathlib import Path

import click

from sv_order.analysis.order import OrderEngine
from sv_order.errors import OrderError
from sv_order.models import OrderConfig, OrderResult
from sv_order.pipeline import format_path, run_pipeline


def _parse_define(text: str) -> tuple[str, str | None]:
    name, sep, value = text.partition("=")
    if not name:
        raise click.BadParameter(f"invalid define: {text!r}")
    return name, value if sep else None


def _read_file_list(path: Path) -> list[str]:
    sources: list[str] = []
    for line in path.read_text(encoding="utf-8").splitlines():
        line = line.strip()
        if line and not line.startswith("#"):
            sources.append(line)
    return sources


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(level=logging.WARNING, format="%(message)s")
    logging.getLogger("sv_order").setLevel(logging.DEBUG if verbose else logging.WARNING)


def source_options(func):
    """Options shared by every command that parses sources."""

    @click.argument("sources", nargs=-1, type=click.Path(dir_okay=False))
    @click.option("-f", "--file-list", "file_lists", multiple=True,
                  type=click.Path(exists=True, dir_okay=False, path_type=Path),
                  help="Read source paths from FILE, one per line")
    @click.option("-I", "--include-path", "include_dirs", multiple=True,
                  type=click.Path(file_okay=False, path_type=Path),
                  help="Include search directory (repeatable)")
    @click.option("-D", "--define", "defines", multiple=True,
                  help="Predefine a macro, NAME or NAME=VALUE (repeatable)")
    @click.option("-j", "--jobs", type=click.IntRange(min=1), default=None,
                  help="Parallel parse workers (default: CPU count)")
    @click.option("--lenient", is_flag=True,
                  help="Keep going on syntax errors with a partial tree")
    @click.option("--absolute", is_flag=True, help="Print absolute paths")
    @click.option("-v", "--verbose", is_flag=True, help="Print progress details")
    @functools.wraps(func)
    def wrapper(sources, file_lists, include_dirs, defines, jobs, lenient,
                absolute, verbose, **kwargs):
        _setup_logging(verbose)
        all_sources = list(sources)
        for file_list in file_lists:
            all_sources.extend(_read_file_list(file_list))
        if not all_sources:
            raise click.UsageError("At least one source file is required")

        config = OrderConfig(
            sources=all_sources,
            include_dirs=list(include_dirs),
            defines=dict(_parse_define(d) for d in defines),
            absolute=absolute,
            jobs=jobs,
            strict=not lenient,
        )
        return func(config, **kwargs)

    return wrapper


def _run(config: OrderConfig) -> OrderResult:
    try:
        return run_pipeline(config)
    except (OrderError, ValueError) as e:
        raise click.ClickException(str(e))


@click.group()
@click.version_option(version="0.1.0")
def cli():
    """sv-order: compute a compilation order for SystemVerilog sources."""


@cli.command()
@source_options
def order(config: OrderConfig):
    """Print the sources in dependency order, space-separated."""
    result = _run(config)
    logging.getLogger("sv_order").info("Ordered source files:")
    click.echo(" ".join(result.order))


@cli.command()
@source_options
def scan(config: OrderConfig):
    """List the modules and packages each source defines and uses."""
    result = _run(config)

    sections = [
        ("modules defined", "modules_defined", "bright_blue"),
        ("modules used", "modules_used", "blue"),
        ("packages defined", "packages_defined", "yellow"),
        ("packages used", "packages_used", "green"),
    ]
    for record in result.records:
        click.echo(click.style(format_path(record.path, config.absolute), fg="cyan"))
        for label, attr, color in sections:
            names = sorted(getattr(record, attr))
            if names:
                click.echo(f"  {click.style(label, fg=color):>28}  {' '.join(names)}")
        click.echo()

    by_kind = {label: sum(len(getattr(r, attr)) for r in result.records)
               for label, attr, _ in sections}
    click.echo("Summary:")
    click.echo(f"  files: {len(result.records)}")
    for label, count in by_kind.items():
        click.echo(f"  {label}: {count}")


@cli.command()
@source_options
def graph(config: OrderConfig):
    """Print every file dependency, then the roots and unordered files."""
    result = _run(config)
    dep_graph = result.graph

    def show(index: int) -> str:
        return format_path(dep_graph.path(index), config.absolute)

    for edge in dep_graph.edges:
        click.echo(f"{show(edge.source)} -> {show(edge.target)} ({edge.kind} {edge.name})")

    roots = OrderEngine().find_roots(dep_graph)
    click.echo(f"roots: {' '.join(show(i) for i in roots)}")
    if result.omitted:
        click.echo(f"not ordered: {' '.join(result.omitted)}")


if __name__ == "__main__":
    cli()
