"""Parser registry."""

from __future__ import annotations

from sv_order.models import OrderConfig
from sv_order.parser.base import SyntaxTree
from sv_order.parser.preprocessor import Macro, Preprocessor, preprocess
from sv_order.parser.treesitter_parser import TreeSitterParser, TreeSitterTree


def make_parser(config: OrderConfig) -> TreeSitterParser:
    """Return the source parser configured by *config*."""
    return TreeSitterParser(grammar=config.grammar, strict=config.strict)


__all__ = [
    "Macro",
    "Preprocessor",
    "SyntaxTree",
    "TreeSitterParser",
    "TreeSitterTree",
    "make_parser",
    "preprocess",
]
