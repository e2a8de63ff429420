"""Exceptions raised by the sv-order pipeline."""

from __future__ import annotations

from pathlib import Path


class OrderError(Exception):
    """Base class for errors that abort an ordering run."""


class ParseError(OrderError):
    """A source file could not be turned into a syntax tree."""

    def __init__(self, path: Path | str, message: str, line: int | None = None):
        self.path = Path(path)
        self.message = message
        self.line = line
        location = f"{self.path}:{line}" if line is not None else str(self.path)
        super().__init__(f"{location}: {message}")


class MalformedTreeError(OrderError):
    """A declaration or instantiation node has no resolvable identifier."""

    def __init__(self, kind: str, node_type: str, line: int | None = None):
        self.kind = kind
        self.node_type = node_type
        self.line = line
        where = f" at line {line}" if line is not None else ""
        super().__init__(
            f"{kind} node ({node_type}){where} has no identifier"
        )
