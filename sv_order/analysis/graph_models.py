"""Data models for the file dependency graph."""

from __future__ import annotations

from dataclasses import dataclass, field

from sv_order.models import FileRecord


@dataclass(frozen=True)
class DefinitionTables:
    module_defs: dict[str, int] = field(default_factory=dict)   # name -> file index
    package_defs: dict[str, int] = field(default_factory=dict)  # name -> file index


@dataclass
class DependencyEdge:
    source: int
    target: int
    kind: str  # "package" | "module"
    name: str = ""


@dataclass
class DependencyGraph:
    files: list[FileRecord] = field(default_factory=list)
    edges: list[DependencyEdge] = field(default_factory=list)
    forward: dict[int, list[int]] = field(default_factory=dict)  # file -> [dependencies]
    reverse: dict[int, set[int]] = field(default_factory=dict)   # file -> {dependents}

    def deps(self, index: int) -> list[int]:
        return self.forward.get(index, [])

    def dependents(self, index: int) -> set[int]:
        return self.reverse.get(index, set())

    def path(self, index: int) -> str:
        return self.files[index].path

    def index_of(self, path: str) -> int:
        for index, record in enumerate(self.files):
            if record.path == path:
                return index
        raise KeyError(path)
