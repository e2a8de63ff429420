"""Abstract syntax tree wrapper shared by the extractor and the parsers."""

from __future__ import annotations

import abc
from typing import Any, Iterator, Sequence

from sv_order.models import NodeKind


class SyntaxTree(abc.ABC):
    """A parsed source file seen through two APIs: node enumeration and
    string lookup.

    Subclasses describe their grammar with three tables:

    ``node_kinds``
        grammar node type -> :class:`NodeKind` for the nodes that carry
        cross-file references.
    ``identifier_types``
        :class:`NodeKind` -> grammar node types that hold the name for
        that kind (``module_identifier`` and friends). When the grammar
        inlines those, the first name node under the reference node is used.
    ``name_types``
        the lexical identifier forms (plain and escaped).
    """

    node_kinds: dict[str, NodeKind] = {}
    identifier_types: dict[NodeKind, tuple[str, ...]] = {}
    name_types: tuple[str, ...] = ("simple_identifier", "escaped_identifier")
    # Subtrees never searched for a reference's name.
    opaque_types: frozenset[str] = frozenset({"attribute_instance"})

    @property
    @abc.abstractmethod
    def root(self) -> Any:
        """The root node."""

    @abc.abstractmethod
    def node_type(self, node: Any) -> str:
        """Grammar type name of *node*."""

    @abc.abstractmethod
    def children(self, node: Any) -> Sequence[Any]:
        """Direct children of *node*, in source order."""

    @abc.abstractmethod
    def get_str(self, node: Any) -> str | None:
        """Source text covered by *node*."""

    def line_of(self, node: Any) -> int | None:
        return None

    def __iter__(self) -> Iterator[Any]:
        """Yield every node in pre-order."""
        stack = [self.root]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(self.children(node)))

    def kind(self, node: Any) -> NodeKind | None:
        return self.node_kinds.get(self.node_type(node))

    def find(self, node: Any, types: Sequence[str]) -> Any | None:
        """First node at or below *node* (pre-order) whose type is in *types*.

        Nested reference nodes are not entered, so a module body never
        lends its instantiations' names to the module itself.
        """
        if not types:
            return None
        stack = [node]
        while stack:
            current = stack.pop()
            current_type = self.node_type(current)
            if current_type in types:
                return current
            if current_type in self.opaque_types:
                continue
            if current is not node and current_type in self.node_kinds:
                continue
            stack.extend(reversed(self.children(current)))
        return None

    def identifier(self, node: Any, kind: NodeKind) -> Any | None:
        """The plain or escaped name node naming the unit *node* refers to."""
        scope = self.find(node, self.identifier_types.get(kind, ()))
        if scope is None:
            scope = node
        return self.find(scope, self.name_types)

    def identifier_str(self, node: Any, kind: NodeKind) -> str | None:
        ident = self.identifier(node, kind)
        if ident is None:
            return None
        text = self.get_str(ident)
        if text is None:
            return None
        return text.strip() or None
