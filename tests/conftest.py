"""Shared fakes: hand-built syntax trees and a parser that serves them."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

import pytest

from sv_order.errors import ParseError
from sv_order.models import NodeKind, ParsedSource
from sv_order.parser.base import SyntaxTree


@dataclass
class FakeNode:
    type: str
    children: list = field(default_factory=list)
    text: str | None = None
    line: int = 1


def name_node(name: str) -> FakeNode:
    if name.startswith("\\"):
        return FakeNode("escaped_identifier", text=name)
    return FakeNode("simple_identifier", text=name)


def ref(node_type: str, ident_type: str | None, name: str) -> FakeNode:
    """A reference node holding *name*, optionally under an identifier node."""
    inner = name_node(name)
    if ident_type is not None:
        inner = FakeNode(ident_type, [inner])
    return FakeNode(node_type, [FakeNode("keyword"), inner])


class FakeTree(SyntaxTree):
    node_kinds = {kind.value: kind for kind in NodeKind}
    identifier_types = {
        NodeKind.MODULE_INSTANTIATION: ("module_identifier",),
        NodeKind.MODULE_DECLARATION: ("module_identifier",),
        NodeKind.PACKAGE_DECLARATION: ("package_identifier",),
        NodeKind.CLASS_DECLARATION: ("class_identifier",),
        NodeKind.PACKAGE_IMPORT_ITEM: ("package_identifier",),
        NodeKind.CLASS_SCOPE: ("class_identifier",),
    }

    def __init__(self, *nodes: FakeNode):
        self._root = FakeNode("source_file", list(nodes))

    @property
    def root(self):
        return self._root

    def node_type(self, node):
        return node.type

    def children(self, node):
        return node.children

    def get_str(self, node):
        return node.text

    def line_of(self, node):
        return node.line

    @classmethod
    def from_symbols(cls, modules_defined=(), modules_used=(),
                     packages_defined=(), packages_used=(), classes_defined=()):
        """A tree whose modules contain the given uses."""
        uses = [ref("module_instantiation", "module_identifier", m) for m in modules_used]
        uses += [ref("package_import_item", "package_identifier", p) for p in packages_used]
        nodes = []
        for name in modules_defined:
            nodes.append(FakeNode("module_declaration", [
                FakeNode("module_header", [FakeNode("module_identifier", [name_node(name)])]),
                *uses,
            ]))
            uses = []
        nodes.extend(uses)
        nodes += [ref("package_declaration", "package_identifier", p) for p in packages_defined]
        nodes += [ref("class_declaration", "class_identifier", c) for c in classes_defined]
        return cls(*nodes)


class FakeParser:
    """Serves fake trees by path; paths listed in ``failures`` fail to parse."""

    def __init__(self, trees: dict[str, SyntaxTree], failures: dict[str, str] | None = None):
        self.trees = trees
        self.failures = failures or {}
        self.calls: list[tuple[str, dict, list]] = []

    def parse(self, path, defines=None, include_dirs=None):
        path = str(path)
        self.calls.append((path, defines, include_dirs))
        if path in self.failures:
            raise ParseError(Path(path), self.failures[path], 3)
        return ParsedSource(path=path, tree=self.trees[path], defines={})


@pytest.fixture
def fake_parser_factory(monkeypatch):
    """Install a :class:`FakeParser` as the pipeline's parser."""

    def install(trees, failures=None):
        parser = FakeParser(trees, failures)
        monkeypatch.setattr("sv_order.pipeline.make_parser", lambda config: parser)
        return parser

    return install
