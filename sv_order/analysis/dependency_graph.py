"""Dependency resolver: file records -> file-level dependency graph."""

from __future__ import annotations

import logging

from sv_order.analysis.graph_models import (
    DefinitionTables,
    DependencyEdge,
    DependencyGraph,
)
from sv_order.models import FileRecord, Namespace

logger = logging.getLogger(__name__)

_EDGE_MESSAGES = {
    Namespace.PACKAGE.value: "%s uses a package/class from %s",
    Namespace.MODULE.value: "%s uses a module from %s",
}


def build_definition_tables(files: list[FileRecord]) -> DefinitionTables:
    """Map every defined name to the index of the file defining it.

    A name defined in several files maps to the last of them.
    """
    tables = DefinitionTables()
    for index, record in enumerate(files):
        for name in record.modules_defined:
            tables.module_defs[name] = index
        for name in record.packages_defined:
            tables.package_defs[name] = index
    return tables


def resolve_dependencies(
    index: int,
    files: list[FileRecord],
    tables: DefinitionTables,
) -> list[DependencyEdge]:
    """Edges from ``files[index]`` to the files it depends on.

    Packages are resolved before modules. A module edge is dropped when the
    defining file itself uses a package this file defines: the package
    relationship decides the direction between the two files.
    """
    current = files[index]
    edges: list[DependencyEdge] = []
    seen: set[int] = set()

    for name in sorted(current.packages_used):
        dep = tables.package_defs.get(name)
        if dep is None or dep == index:
            continue
        if dep not in seen:
            seen.add(dep)
            edges.append(DependencyEdge(index, dep, Namespace.PACKAGE.value, name))

    for name in sorted(current.modules_used):
        dep = tables.module_defs.get(name)
        if dep is None or dep == index:
            continue
        if not files[dep].packages_used.isdisjoint(current.packages_defined):
            logger.debug(
                "%s: ignoring module %s from %s, which imports a package from it",
                current.path, name, files[dep].path,
            )
            continue
        if dep not in seen:
            seen.add(dep)
            edges.append(DependencyEdge(index, dep, Namespace.MODULE.value, name))

    return edges


class DependencyResolver:
    """Build a :class:`DependencyGraph` from all input file records."""

    def build(self, files: list[FileRecord]) -> DependencyGraph:
        """Records with the same path share one arena slot, the first one."""
        unique: dict[FileRecord, None] = {}
        for record in files:
            if record in unique:
                logger.debug("%s given more than once, keeping the first", record.path)
                continue
            unique[record] = None
        graph = DependencyGraph(files=list(unique))

        # Phase 1: global definition tables
        tables = build_definition_tables(graph.files)

        # Phase 2: per-file dependency sets and their transpose
        for index in range(len(graph.files)):
            graph.forward[index] = []
            graph.reverse[index] = set()

        for index in range(len(graph.files)):
            for edge in resolve_dependencies(index, graph.files, tables):
                graph.edges.append(edge)
                graph.forward[index].append(edge.target)
                graph.reverse[edge.target].add(index)
                logger.info(
                    _EDGE_MESSAGES[edge.kind],
                    graph.path(edge.source), graph.path(edge.target),
                )

        return graph
