"""Tree-sitter SystemVerilog parser."""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Any, Sequence

from sv_order.errors import OrderError, ParseError
from sv_order.models import NodeKind, ParsedSource
from sv_order.parser.base import SyntaxTree
from sv_order.parser.preprocessor import Macro, preprocess

try:
    from tree_sitter_language_pack import get_parser
except ImportError as _err:
    raise ImportError(
        "tree-sitter-language-pack is required. Install with: "
        "pip install tree-sitter-language-pack"
    ) from _err

logger = logging.getLogger(__name__)

# Grammar node type -> NodeKind. Interfaces and programs share the module
# namespace: they are declared and instantiated the same way. The grammar
# cannot tell a module instance from a checker or UDP instance without the
# definition, so those forms count as module instantiations too.
_NODE_KIND_MAP: dict[str, NodeKind] = {
    "module_instantiation": NodeKind.MODULE_INSTANTIATION,
    "interface_instantiation": NodeKind.MODULE_INSTANTIATION,
    "program_instantiation": NodeKind.MODULE_INSTANTIATION,
    "checker_instantiation": NodeKind.MODULE_INSTANTIATION,
    "udp_instantiation": NodeKind.MODULE_INSTANTIATION,
    "module_declaration": NodeKind.MODULE_DECLARATION,
    "interface_declaration": NodeKind.MODULE_DECLARATION,
    "program_declaration": NodeKind.MODULE_DECLARATION,
    "package_declaration": NodeKind.PACKAGE_DECLARATION,
    "class_declaration": NodeKind.CLASS_DECLARATION,
    "package_import_item": NodeKind.PACKAGE_IMPORT_ITEM,
    "class_scope": NodeKind.CLASS_SCOPE,
    # `pkg::item` and `Cls::member` both parse as a package scope
    "package_scope": NodeKind.CLASS_SCOPE,
}

_IDENTIFIER_TYPES: dict[NodeKind, tuple[str, ...]] = {
    NodeKind.MODULE_INSTANTIATION: (
        "module_identifier", "interface_identifier", "program_identifier",
        "checker_identifier", "udp_identifier",
    ),
    NodeKind.MODULE_DECLARATION: (
        "module_identifier", "interface_identifier", "program_identifier",
    ),
    NodeKind.PACKAGE_DECLARATION: ("package_identifier",),
    NodeKind.CLASS_DECLARATION: ("class_identifier",),
    NodeKind.PACKAGE_IMPORT_ITEM: ("package_identifier",),
    NodeKind.CLASS_SCOPE: ("class_identifier", "package_identifier"),
}


class TreeSitterTree(SyntaxTree):
    """A tree-sitter tree over preprocessed source bytes."""

    node_kinds = _NODE_KIND_MAP
    identifier_types = _IDENTIFIER_TYPES

    def __init__(self, tree: Any, source: bytes):
        self._tree = tree
        self.source = source

    @property
    def root(self) -> Any:
        return self._tree.root_node

    def node_type(self, node: Any) -> str:
        return node.type

    def children(self, node: Any) -> Sequence[Any]:
        return node.children

    def get_str(self, node: Any) -> str | None:
        return self.source[node.start_byte:node.end_byte].decode("utf-8", errors="replace")

    def line_of(self, node: Any) -> int | None:
        return node.start_point[0] + 1

    def first_error(self) -> Any | None:
        """The first ``ERROR`` or missing node, if the parse failed anywhere."""
        if not self.root.has_error:
            return None
        for node in self:
            if node.type == "ERROR" or node.is_missing:
                return node
        return self.root


class TreeSitterParser:
    """Preprocess and parse SystemVerilog files.

    Safe to share between threads: each thread gets its own tree-sitter
    parser.
    """

    def __init__(self, grammar: str = "verilog", strict: bool = True):
        self.grammar = grammar
        self.strict = strict
        self._local = threading.local()

    def parse(
        self,
        path: Path | str,
        defines: dict[str, str | Macro | None] | None = None,
        include_dirs: list[Path] | None = None,
    ) -> ParsedSource:
        """Parse *path*; return its tree and the macros it left defined.

        Raises:
            ParseError: unreadable file, preprocessing failure, or (in
                strict mode) a syntax error.
        """
        path = Path(path)
        text, observed = preprocess(path, defines, include_dirs)
        source = text.encode("utf-8")
        tree = TreeSitterTree(self._get_parser().parse(source), source)

        error = tree.first_error()
        if error is not None:
            line = tree.line_of(error)
            if self.strict:
                raise ParseError(path, "syntax error", line)
            logger.warning("%s:%s: syntax error, continuing with partial tree", path, line)

        return ParsedSource(path=str(path), tree=tree, defines=observed)

    def _get_parser(self):
        parser = getattr(self._local, "parser", None)
        if parser is None:
            try:
                parser = get_parser(self.grammar)
            except LookupError as e:
                raise OrderError(f"unknown tree-sitter grammar: {self.grammar}") from e
            self._local.parser = parser
        return parser
