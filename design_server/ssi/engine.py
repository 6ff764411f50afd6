"""Server-side include expansion.

Expands `<!--# command attr="value" -->` directives in HTML pages:

- include virtual="..." / file="...": splice in another file (recursively)
- set var="..." value="...": define a variable for the rest of the page
- echo var="..." [default="..."] [encoding="none|entity"]: write a variable
- if / elif / else / endif expr="...": conditional blocks

Paths starting with `/` resolve against the engine's base directory; other
paths resolve against the directory of the including file. Nothing outside
the base directory can be included.
"""

import html
import re
from pathlib import Path
from typing import Dict, List, Mapping, NamedTuple, Optional, Tuple, Union
from urllib.parse import unquote

MAX_INCLUDE_DEPTH = 16
UNSET_VALUE = "(none)"
COMMANDS = frozenset(["include", "set", "echo", "if", "elif", "else", "endif"])

DIRECTIVE_RE = re.compile(r"<!--(\s*)#\s*([A-Za-z]+)\b(.*?)-->", re.DOTALL)
ATTR_RE = re.compile(r"\s*([A-Za-z_][\w-]*)\s*=\s*(?:\"([^\"]*)\"|'([^']*)')")
VARIABLE_RE = re.compile(r"\$\{(\w+)\}|\$(\w+)")
COMPARISON_RE = re.compile(r"^(.*?)\s*(!=|=)\s*(.*)$", re.DOTALL)

PathLike = Union[str, Path]


class ExpansionError(Exception):
    """An include could not be expanded (missing fragment, bad directive, ...)."""

    def __init__(self, message: str, path: Optional[Path] = None):
        super().__init__(message)
        self.message = message
        self.path = path


class ExpansionResult(NamedTuple):
    """Outcome of one expansion: either `content` or `error` is set."""
    content: Optional[str] = None
    error: Optional[ExpansionError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def is_within(path: Path, root: Path) -> bool:
    """True when resolved `path` is `root` or lies below it."""
    try:
        path.relative_to(root)
    except ValueError:
        return False
    return True


class SSIEngine:
    """
    Expands SSI directives for files under `base_dir`.

    The engine holds only read-only configuration; every call gets its own
    variable scope seeded from `payload`, so one instance can be shared by
    concurrent requests.
    """

    def __init__(
        self,
        base_dir: PathLike,
        encoding: str = "utf-8",
        payload: Optional[Mapping[str, str]] = None,
    ):
        self.base_dir = Path(base_dir).resolve()
        self.encoding = encoding
        self.payload = dict(payload or {})

    def compile_file(self, path: PathLike) -> ExpansionResult:
        """Read `path` and expand its directives."""
        source = Path(path).resolve()
        try:
            text = self._read(source)
            content = self._expand(text, source, dict(self.payload), (source,))
        except ExpansionError as e:
            return ExpansionResult(error=e)
        return ExpansionResult(content=content)

    def compile(self, text: str, path: Optional[PathLike] = None) -> ExpansionResult:
        """Expand `text`; relative includes resolve next to `path` when given."""
        source = Path(path).resolve() if path is not None else None
        stack = (source,) if source is not None else ()
        try:
            content = self._expand(text, source, dict(self.payload), stack)
        except ExpansionError as e:
            return ExpansionResult(error=e)
        return ExpansionResult(content=content)

    def _read(self, path: Path) -> str:
        try:
            return path.read_text(encoding=self.encoding)
        except FileNotFoundError:
            raise ExpansionError(f"file not found: {path}", path)
        except IsADirectoryError:
            raise ExpansionError(f"not a file: {path}", path)
        except UnicodeDecodeError as e:
            raise ExpansionError(f"cannot decode {path} as {self.encoding}: {e.reason}", path)
        except OSError as e:
            raise ExpansionError(f"cannot read {path}: {e.strerror or e}", path)

    def _expand(
        self,
        text: str,
        source: Optional[Path],
        variables: Dict[str, str],
        stack: Tuple[Path, ...],
    ) -> str:
        out: List[str] = []
        # one [parent_active, branch_taken] pair per open if-block
        conditions: List[List[bool]] = []
        active = True
        pos = 0

        for match in DIRECTIVE_RE.finditer(text):
            command = match.group(2).lower()
            if command not in COMMANDS:
                # an ordinary comment such as <!--#region nav--> or <!-- #nav -->
                continue

            if active:
                out.append(text[pos:match.start()])
            pos = match.end()
            attrs = self._parse_attrs(match.group(3), match.group(0), source)

            if command == "if":
                expr = self._require(attrs, "expr", command, source)
                taken = active and self._evaluate(expr, variables)
                conditions.append([active, taken])
                active = taken
            elif command == "elif":
                expr = self._require(attrs, "expr", command, source)
                parent, taken = self._innermost(conditions, command, source)
                active = parent and not taken and self._evaluate(expr, variables)
                conditions[-1][1] = taken or active
            elif command == "else":
                parent, taken = self._innermost(conditions, command, source)
                active = parent and not taken
                conditions[-1][1] = True
            elif command == "endif":
                parent, _ = self._innermost(conditions, command, source)
                conditions.pop()
                active = parent
            elif not active:
                continue
            elif command == "include":
                target = attrs.get("virtual") or attrs.get("file")
                if not target:
                    raise self._error("include needs a virtual or file attribute", source)
                out.append(self._include(target, source, variables, stack))
            elif command == "set":
                name = self._require(attrs, "var", command, source)
                variables[name] = self._substitute(attrs.get("value", ""), variables)
            elif command == "echo":
                name = self._require(attrs, "var", command, source)
                value = variables.get(name, attrs.get("default", UNSET_VALUE))
                if attrs.get("encoding", "entity") != "none":
                    value = html.escape(value)
                out.append(value)

        if conditions:
            raise self._error("missing endif", source)
        out.append(text[pos:])
        return "".join(out)

    def _include(
        self,
        target: str,
        source: Optional[Path],
        variables: Dict[str, str],
        stack: Tuple[Path, ...],
    ) -> str:
        ref = unquote(target.split("?", 1)[0])
        if ref.startswith("/"):
            candidate = self.base_dir / ref.lstrip("/")
        else:
            origin = source.parent if source is not None else self.base_dir
            candidate = origin / ref
        candidate = candidate.resolve()

        if not is_within(candidate, self.base_dir):
            raise self._error(f"include {target!r} resolves outside {self.base_dir}", source)
        if candidate in stack:
            raise self._error(f"include {target!r} is recursive", source)
        if len(stack) >= MAX_INCLUDE_DEPTH:
            raise self._error(f"includes nested deeper than {MAX_INCLUDE_DEPTH}", source)
        if not candidate.exists():
            raise self._error(f"included file {target!r} not found ({candidate})", source)

        text = self._read(candidate)
        return self._expand(text, candidate, variables, stack + (candidate,))

    def _evaluate(self, expr: str, variables: Mapping[str, str]) -> bool:
        expr = expr.strip()
        negate = expr.startswith("!")
        if negate:
            expr = expr[1:].strip()

        comparison = COMPARISON_RE.match(expr)
        if comparison:
            left = _unquote(self._substitute(comparison.group(1), variables).strip())
            right = _unquote(self._substitute(comparison.group(3), variables).strip())
            result = (left == right) if comparison.group(2) == "=" else (left != right)
        else:
            result = bool(self._substitute(expr, variables).strip())
        return result != negate

    @staticmethod
    def _substitute(value: str, variables: Mapping[str, str]) -> str:
        return VARIABLE_RE.sub(
            lambda m: variables.get(m.group(1) or m.group(2), ""), value
        )

    def _parse_attrs(self, raw: str, directive: str, source: Optional[Path]) -> Dict[str, str]:
        attrs: Dict[str, str] = {}
        pos = 0
        for match in ATTR_RE.finditer(raw):
            if raw[pos:match.start()].strip():
                break
            value = match.group(2) if match.group(2) is not None else match.group(3)
            attrs[match.group(1).lower()] = value
            pos = match.end()
        if raw[pos:].strip():
            raise self._error(f"malformed directive {directive!r}", source)
        return attrs

    def _require(self, attrs: Mapping[str, str], name: str, command: str,
                 source: Optional[Path]) -> str:
        if name not in attrs:
            raise self._error(f"{command} needs a {name} attribute", source)
        return attrs[name]

    def _innermost(self, conditions: List[List[bool]], command: str,
                   source: Optional[Path]) -> Tuple[bool, bool]:
        if not conditions:
            raise self._error(f"{command} without if", source)
        parent, taken = conditions[-1]
        return parent, taken

    @staticmethod
    def _error(message: str, source: Optional[Path]) -> ExpansionError:
        if source is not None:
            message = f"{message} in {source}"
        return ExpansionError(message, source)


def _unquote(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in "'\"":
        return value[1:-1]
    return value
