"""4-stage pipeline orchestrator: parse -> extract -> resolve -> order."""

from __future__ import annotations

import logging
import os
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Callable

from sv_order.analysis.dependency_graph import DependencyResolver
from sv_order.analysis.order import OrderEngine
from sv_order.errors import ParseError
from sv_order.extractor import build_record
from sv_order.models import FileRecord, OrderConfig, OrderResult, ParsedSource
from sv_order.parser import make_parser

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str, int, int], None]


def format_path(path: str, absolute: bool) -> str:
    if absolute:
        return str(Path(path).resolve())
    return path


def unique_sources(sources: list[str]) -> list[str]:
    """Drop repeated paths, keeping the first spelling of each in order."""
    seen: set[Path] = set()
    unique: list[str] = []
    for source in sources:
        key = Path(source)
        if key in seen:
            logger.debug("Skipping repeated source %s", source)
            continue
        seen.add(key)
        unique.append(source)
    return unique


def run_parse(
    config: OrderConfig,
    parser=None,
    progress: ProgressCallback | None = None,
) -> list[ParsedSource]:
    """Stage 1: parse every source, in parallel, keeping input order.

    Raises:
        ParseError: the first failing file, in input order.
    """
    parser = parser or make_parser(config)
    sources = unique_sources(config.sources)
    total = len(sources)

    def parse_one(path: str) -> ParsedSource:
        logger.info("Parsing %s", path)
        try:
            parsed = parser.parse(path, dict(config.defines), list(config.include_dirs))
        except ParseError as e:
            if e.path == Path(path):
                raise
            raise ParseError(path, str(e)) from e
        # Keep the path exactly as given.
        parsed.path = path
        return parsed

    if progress:
        progress("Parsing", 0, total)
    workers = config.jobs or os.cpu_count() or 1
    parsed: list[ParsedSource] = []
    with ThreadPoolExecutor(max_workers=max(1, min(workers, total or 1))) as pool:
        for i, result in enumerate(pool.map(parse_one, sources), start=1):
            parsed.append(result)
            if progress:
                progress("Parsing", i, total)
    return parsed


def run_extract(
    parsed: list[ParsedSource],
    progress: ProgressCallback | None = None,
) -> list[FileRecord]:
    """Stage 2: extract defined/used symbols per file."""
    records: list[FileRecord] = []
    for i, source in enumerate(parsed):
        if progress:
            progress("Extracting", i, len(parsed))
        records.append(build_record(source.path, source.tree))
    if progress:
        progress("Extracting", len(parsed), len(parsed))
    return records


def order_records(records: list[FileRecord], absolute: bool = False) -> OrderResult:
    """Stages 3 and 4: resolve dependencies and compute the compile order."""
    logger.info("Resolving dependencies")
    graph = DependencyResolver().build(records)

    engine = OrderEngine()
    ordered = engine.order(graph)
    omitted = engine.omitted(graph, ordered)
    for index in omitted:
        logger.debug("%s is not reachable from any root file", graph.path(index))

    return OrderResult(
        order=[format_path(graph.path(i), absolute) for i in ordered],
        records=graph.files,
        graph=graph,
        omitted=[format_path(graph.path(i), absolute) for i in omitted],
    )


def run_pipeline(
    config: OrderConfig,
    parser=None,
    progress: ProgressCallback | None = None,
) -> OrderResult:
    """Run the full ordering pipeline."""
    if not config.sources:
        raise ValueError("No source files given")

    parsed = run_parse(config, parser=parser, progress=progress)
    records = run_extract(parsed, progress=progress)

    if progress:
        progress("Ordering", 0, 1)
    result = order_records(records, absolute=config.absolute)
    if progress:
        progress("Ordering", 1, 1)
    return result
