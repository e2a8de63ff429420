"""SystemVerilog text preprocessor.

Resolves the compiler directives that decide which text the parser sees:
``define``/``undef`` (object-like and function-like macros), the
``ifdef`` family, ``include`` and macro expansion. Other standard
directives (``timescale``, ``default_nettype``, ...) are dropped since
they never name a module, package or class.

Directives are recognised at the start of a line, after comments have been
removed. Line structure is preserved for the file being processed so parse
errors still point at meaningful lines; included text is spliced in place.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path

from sv_order.errors import ParseError

logger = logging.getLogger(__name__)

_IDENT = re.compile(r"[A-Za-z_][A-Za-z0-9_$]*")
_DIRECTIVE = re.compile(r"^\s*`([A-Za-z_][A-Za-z0-9_$]*)(.*)$")
_DEFINE = re.compile(r"\s*([A-Za-z_][A-Za-z0-9_$]*)(\([^)]*\))?(.*)$", re.DOTALL)
_INCLUDE = re.compile(r'\s*(?:"([^"]+)"|<([^>]+)>)')

_CONDITIONALS = {"ifdef", "ifndef", "elsif", "else", "endif"}

# Directives with no effect on which units a file defines or uses.
_IGNORED_DIRECTIVES = {
    "timescale", "default_nettype", "resetall", "celldefine",
    "endcelldefine", "unconnected_drive", "nounconnected_drive", "pragma",
    "line", "begin_keywords", "end_keywords", "protect", "endprotect",
    "protected", "endprotected", "delay_mode_distributed",
    "delay_mode_path", "delay_mode_unit", "delay_mode_zero",
    "default_decay_time", "default_trireg_strength",
}

MAX_EXPANSION_DEPTH = 64
MAX_INCLUDE_DEPTH = 32


@dataclass
class Macro:
    """A text macro; ``params`` is None for object-like macros."""

    name: str
    body: str = ""
    params: list[str] | None = None
    defaults: dict[str, str] = field(default_factory=dict)

    @classmethod
    def parse(cls, text: str) -> Macro:
        """Build a macro from the text following a ``define`` directive."""
        m = _DEFINE.match(text)
        if not m:
            raise ValueError(f"malformed macro definition: {text.strip()!r}")
        name, param_text, body = m.group(1), m.group(2), m.group(3)
        params = None
        defaults: dict[str, str] = {}
        if param_text is not None:
            params = []
            inner = param_text[1:-1].strip()
            for part in inner.split(",") if inner else []:
                param, sep, default = part.partition("=")
                param = param.strip()
                params.append(param)
                if sep:
                    defaults[param] = default.strip()
        return cls(name=name, body=body.strip(), params=params, defaults=defaults)

    def substitute(self, args: list[str] | None) -> str:
        body = self.body
        if self.params:
            args = args or []
            if len(args) > len(self.params):
                raise ValueError(
                    f"macro `{self.name} takes {len(self.params)} argument(s), "
                    f"got {len(args)}"
                )
            values: dict[str, str] = {}
            for i, param in enumerate(self.params):
                value = args[i].strip() if i < len(args) else ""
                if not value:
                    if param not in self.defaults and i >= len(args):
                        raise ValueError(
                            f"macro `{self.name} missing argument {param!r}"
                        )
                    value = self.defaults.get(param, "")
                values[param] = value
            pattern = re.compile(
                r"\b(" + "|".join(re.escape(p) for p in self.params) + r")\b"
            )
            body = pattern.sub(lambda m: values[m.group(1)], body)
        return body.replace("``", "").replace('`\\`"', '\\"').replace('`"', '"')


def strip_comments(text: str) -> str:
    """Blank out ``//`` and ``/* */`` comments, keeping strings and newlines."""
    out: list[str] = []
    i = 0
    n = len(text)
    while i < n:
        ch = text[i]
        nxt = text[i + 1] if i + 1 < n else ""
        if ch == '"':
            j = _skip_string(text, i)
            out.append(text[i:j])
            i = j
        elif ch == "/" and nxt == "/":
            j = text.find("\n", i)
            i = n if j < 0 else j
        elif ch == "/" and nxt == "*":
            j = text.find("*/", i + 2)
            end = n if j < 0 else j + 2
            out.append("\n" * text.count("\n", i, end))
            i = end
        else:
            out.append(ch)
            i += 1
    return "".join(out)


def _skip_string(text: str, start: int) -> int:
    """Index just past the string literal opening at *start*."""
    i = start + 1
    n = len(text)
    while i < n:
        ch = text[i]
        if ch == "\\":
            i += 2
            continue
        if ch == '"' or ch == "\n":
            return i + 1
        i += 1
    return n


def _split_args(text: str, start: int) -> tuple[list[str], int]:
    """Split the parenthesised argument list opening at ``text[start]``.

    Returns the arguments and the index just past the closing parenthesis.
    """
    args: list[str] = []
    depth = 0
    current: list[str] = []
    i = start
    n = len(text)
    while i < n:
        ch = text[i]
        if ch == '"':
            j = _skip_string(text, i)
            current.append(text[i:j])
            i = j
            continue
        if ch in "([{":
            depth += 1
            if depth > 1:
                current.append(ch)
        elif ch in ")]}":
            depth -= 1
            if depth == 0:
                args.append("".join(current))
                return args, i + 1
            current.append(ch)
        elif ch == "," and depth == 1:
            args.append("".join(current))
            current = []
        else:
            current.append(ch)
        i += 1
    raise ValueError("unterminated macro argument list")


class Preprocessor:
    """Preprocess SystemVerilog files against a shared macro table.

    Args:
        include_dirs: Directories searched for ``include`` files.
        defines: Initial macros, ``name -> body`` (None for an empty body)
            or ready-made :class:`Macro` objects.
    """

    def __init__(
        self,
        include_dirs: list[Path] | None = None,
        defines: dict[str, str | Macro | None] | None = None,
    ):
        self.include_dirs = [Path(d) for d in include_dirs or []]
        self.defines: dict[str, Macro] = {}
        for name, value in (defines or {}).items():
            if isinstance(value, Macro):
                self.defines[name] = value
            else:
                self.defines[name] = Macro(name=name, body=value or "")

    def preprocess_file(self, path: Path | str) -> str:
        return self._process_file(Path(path), depth=0)

    def preprocess_text(self, text: str, path: Path | str = "<text>") -> str:
        return self._process(text, Path(path), depth=0)

    def resolve_include(self, name: str, including: Path) -> Path | None:
        candidate = Path(name)
        if candidate.is_absolute():
            return candidate if candidate.is_file() else None
        for directory in [*self.include_dirs, including.parent]:
            found = directory / candidate
            if found.is_file():
                return found
        return None

    # ── internals ────────────────────────────────────────────

    def _process_file(self, path: Path, depth: int) -> str:
        try:
            text = path.read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            raise ParseError(path, f"cannot read file: {e.strerror or e}") from e
        return self._process(text, path, depth)

    def _process(self, text: str, path: Path, depth: int) -> str:
        lines = strip_comments(text).split("\n")
        out: list[str] = []
        # (active, branch_taken, enclosing_active) per open conditional
        conditions: list[tuple[bool, bool, bool]] = []
        active = True

        i = 0
        while i < len(lines):
            lineno = i + 1
            line = lines[i]
            i += 1

            m = _DIRECTIVE.match(line)
            directive = m.group(1) if m else None

            if directive in _CONDITIONALS:
                active = self._conditional(
                    directive, m.group(2), conditions, active, path, lineno,
                )
                out.append("")
                continue

            if not active:
                out.append("")
                continue

            if directive == "define":
                body = m.group(2)
                consumed = 0
                while body.rstrip().endswith("\\") and i < len(lines):
                    body = body.rstrip()[:-1] + "\n" + lines[i]
                    i += 1
                    consumed += 1
                try:
                    macro = Macro.parse(body)
                except ValueError as e:
                    raise ParseError(path, str(e), lineno) from e
                macro.body = macro.body.replace("\n", " ")
                self.defines[macro.name] = macro
                logger.debug("%s:%d: define %s", path, lineno, macro.name)
                out.extend([""] * (consumed + 1))
            elif directive == "undef":
                name_match = _IDENT.match(m.group(2).strip())
                if name_match:
                    self.defines.pop(name_match.group(0), None)
                out.append("")
            elif directive == "undefineall":
                self.defines.clear()
                out.append("")
            elif directive == "include":
                out.append(self._include(m.group(2), path, lineno, depth))
            elif directive in _IGNORED_DIRECTIVES:
                out.append("")
            else:
                out.append(self._expand_line(line, path, lineno))

        if conditions:
            raise ParseError(path, "missing `endif", len(lines))
        return "\n".join(out)

    def _conditional(
        self,
        directive: str,
        rest: str,
        conditions: list[tuple[bool, bool, bool]],
        active: bool,
        path: Path,
        lineno: int,
    ) -> bool:
        name = None
        if directive in ("ifdef", "ifndef", "elsif"):
            name_match = _IDENT.match(rest.strip())
            if not name_match:
                raise ParseError(path, f"`{directive} without a macro name", lineno)
            name = name_match.group(0)

        if directive in ("ifdef", "ifndef"):
            taken = (name in self.defines) == (directive == "ifdef")
            conditions.append((active and taken, taken, active))
            return active and taken

        if not conditions:
            raise ParseError(path, f"`{directive} without matching `ifdef", lineno)
        _, taken, enclosing = conditions[-1]

        if directive == "elsif":
            branch = not taken and name in self.defines
            conditions[-1] = (enclosing and branch, taken or branch, enclosing)
            return enclosing and branch
        if directive == "else":
            conditions[-1] = (enclosing and not taken, True, enclosing)
            return enclosing and not taken
        conditions.pop()
        return enclosing

    def _include(self, rest: str, path: Path, lineno: int, depth: int) -> str:
        rest = self._expand_line(rest, path, lineno)
        m = _INCLUDE.match(rest)
        if not m:
            raise ParseError(path, f"malformed `include: {rest.strip()!r}", lineno)
        name = m.group(1) or m.group(2)
        if depth >= MAX_INCLUDE_DEPTH:
            raise ParseError(path, f"`include nested too deeply at {name!r}", lineno)
        found = self.resolve_include(name, path)
        if found is None:
            raise ParseError(path, f"include file not found: {name}", lineno)
        logger.debug("%s:%d: include %s", path, lineno, found)
        return self._process_file(found, depth + 1)

    def _expand_line(self, line: str, path: Path, lineno: int) -> str:
        try:
            return self._expand(line, path, lineno, depth=0)
        except ValueError as e:
            raise ParseError(path, str(e), lineno) from e

    def _expand(self, text: str, path: Path, lineno: int, depth: int) -> str:
        if "`" not in text:
            return text
        if depth > MAX_EXPANSION_DEPTH:
            raise ValueError("macro expansion nested too deeply")

        out: list[str] = []
        i = 0
        n = len(text)
        while i < n:
            ch = text[i]
            if ch == '"':
                j = _skip_string(text, i)
                out.append(text[i:j])
                i = j
                continue
            if ch != "`":
                out.append(ch)
                i += 1
                continue

            m = _IDENT.match(text, i + 1)
            if not m:
                out.append(ch)
                i += 1
                continue
            name = m.group(0)
            i = m.end()

            if name == "__FILE__":
                out.append(f'"{path}"')
                continue
            if name == "__LINE__":
                out.append(str(lineno))
                continue
            if name in _IGNORED_DIRECTIVES:
                continue

            macro = self.defines.get(name)
            if macro is None:
                raise ValueError(f"undefined macro `{name}")

            args = None
            if macro.params is not None:
                j = i
                while j < n and text[j] in " \t":
                    j += 1
                if j >= n or text[j] != "(":
                    raise ValueError(f"macro `{name} requires arguments")
                args, i = _split_args(text, j)
            out.append(self._expand(macro.substitute(args), path, lineno, depth + 1))

        return "".join(out)


def preprocess(
    path: Path | str,
    defines: dict[str, str | Macro | None] | None = None,
    include_dirs: list[Path] | None = None,
) -> tuple[str, dict[str, Macro]]:
    """Preprocess *path*; return the text and the macros defined afterwards."""
    pre = Preprocessor(include_dirs=include_dirs, defines=defines)
    text = pre.preprocess_file(path)
    return text, pre.defines
