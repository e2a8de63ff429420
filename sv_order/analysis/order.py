"""Compile order: dependency-first traversal from every root file."""

from __future__ import annotations

import logging

from sv_order.analysis.graph_models import DependencyGraph

logger = logging.getLogger(__name__)


class OrderEngine:
    """Derive a dependency-respecting file order from a dependency graph."""

    def find_roots(self, graph: DependencyGraph) -> list[int]:
        """Files nothing else depends on, in input order."""
        return [
            index for index in range(len(graph.files))
            if not graph.dependents(index)
        ]

    def order(self, graph: DependencyGraph) -> list[int]:
        """Indices of the files in compile order.

        Each root is emitted after everything reachable from it; a file
        reachable from several roots is emitted once, on first visit. Files
        reachable from no root (a closed cycle) are left out.
        """
        ordered: list[int] = []
        visited: set[int] = set()

        for root in self.find_roots(graph):
            visited.add(root)
            stack = [(root, iter(graph.deps(root)))]
            while stack:
                node, pending = stack[-1]
                for dep in pending:
                    if dep not in visited:
                        visited.add(dep)
                        stack.append((dep, iter(graph.deps(dep))))
                        break
                else:
                    stack.pop()
                    ordered.append(node)

        return ordered

    def omitted(self, graph: DependencyGraph, ordered: list[int]) -> list[int]:
        """Files the traversal never reached, in input order."""
        emitted = set(ordered)
        return [index for index in range(len(graph.files)) if index not in emitted]
