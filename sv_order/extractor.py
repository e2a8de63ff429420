"""Symbol extraction: one pass over a syntax tree, four name sets out."""

from __future__ import annotations

from dataclasses import dataclass, field

from sv_order.errors import MalformedTreeError
from sv_order.models import FileRecord, Namespace, NodeKind
from sv_order.parser.base import SyntaxTree


@dataclass
class SymbolSets:
    modules_defined: set[str] = field(default_factory=set)
    modules_used: set[str] = field(default_factory=set)
    packages_defined: set[str] = field(default_factory=set)
    packages_used: set[str] = field(default_factory=set)

    def target(self, kind: NodeKind) -> set[str]:
        """The set that receives the name a *kind* node refers to."""
        prefix = "modules" if kind.namespace is Namespace.MODULE else "packages"
        suffix = "defined" if kind.is_definition else "used"
        return getattr(self, f"{prefix}_{suffix}")


def extract_symbols(tree: SyntaxTree) -> SymbolSets:
    """Collect the modules and packages/classes *tree* defines and uses.

    Raises:
        MalformedTreeError: a declaration or instantiation node carries
            no identifier.
    """
    symbols = SymbolSets()
    for node in tree:
        kind = tree.kind(node)
        if kind is None:
            continue
        name = tree.identifier_str(node, kind)
        if name is None and kind is NodeKind.CLASS_SCOPE:
            # `$unit::` and `local::` name no unit
            continue
        if name is None:
            raise MalformedTreeError(
                kind.value, tree.node_type(node), tree.line_of(node),
            )
        symbols.target(kind).add(name)
    return symbols


def build_record(path: str, tree: SyntaxTree) -> FileRecord:
    """Extract *tree*'s symbols into an immutable :class:`FileRecord`."""
    symbols = extract_symbols(tree)
    return FileRecord(
        path=path,
        modules_defined=frozenset(symbols.modules_defined),
        modules_used=frozenset(symbols.modules_used),
        packages_defined=frozenset(symbols.packages_defined),
        packages_used=frozenset(symbols.packages_used),
    )
