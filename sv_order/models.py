"""Data models for the sv-order pipeline."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from sv_order.analysis.graph_models import DependencyGraph


class Namespace(enum.Enum):
    MODULE = "module"
    PACKAGE = "package"  # classes live here too


class NodeKind(enum.Enum):
    """The syntax-tree node kinds that carry cross-file references."""

    MODULE_INSTANTIATION = "module_instantiation"
    MODULE_DECLARATION = "module_declaration"
    PACKAGE_DECLARATION = "package_declaration"
    CLASS_DECLARATION = "class_declaration"
    PACKAGE_IMPORT_ITEM = "package_import_item"
    CLASS_SCOPE = "class_scope"

    @property
    def namespace(self) -> Namespace:
        if self in (NodeKind.MODULE_INSTANTIATION, NodeKind.MODULE_DECLARATION):
            return Namespace.MODULE
        return Namespace.PACKAGE

    @property
    def is_definition(self) -> bool:
        return self in (
            NodeKind.MODULE_DECLARATION,
            NodeKind.PACKAGE_DECLARATION,
            NodeKind.CLASS_DECLARATION,
        )


@dataclass(frozen=True, eq=False)
class FileRecord:
    """One input file and the names it defines and uses.

    Two records are the same file iff they have the same path.
    """

    path: str
    modules_defined: frozenset[str] = frozenset()
    modules_used: frozenset[str] = frozenset()
    packages_defined: frozenset[str] = frozenset()
    packages_used: frozenset[str] = frozenset()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, FileRecord):
            return NotImplemented
        return self.path == other.path

    def __hash__(self) -> int:
        return hash(self.path)


@dataclass
class ParsedSource:
    """Result from the parse stage."""
    path: str
    tree: Any
    defines: dict[str, Any] = field(default_factory=dict)


@dataclass
class OrderConfig:
    """Configuration for an ordering run."""
    sources: list[str] = field(default_factory=list)
    include_dirs: list[Path] = field(default_factory=list)
    defines: dict[str, str | None] = field(default_factory=dict)
    absolute: bool = False
    jobs: int | None = None  # None -> one worker per CPU
    strict: bool = True
    grammar: str = "verilog"


@dataclass
class OrderResult:
    """Result from the full pipeline."""
    order: list[str] = field(default_factory=list)
    records: list[FileRecord] = field(default_factory=list)
    graph: DependencyGraph | None = None
    omitted: list[str] = field(default_factory=list)
