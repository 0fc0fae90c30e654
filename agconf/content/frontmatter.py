"""Frontmatter parsing and serialization.

Frontmatter is a restricted YAML header between ``---`` lines at the start of
a markdown document. Supported values:

- scalars: ``key: value``, ``key: "quoted"``, ``key: 'quoted'``
- lists: ``key:`` followed by ``  - item`` lines, or inline ``key: [a, b]``
- one level of nested string mappings: ``key:`` followed by ``  sub: value``

Anything deeper (multi-line scalars, nested lists, a second nesting level) is
outside the grammar. Such lines are skipped when parsing, so they are lost if
the mapping is serialized again.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

FrontmatterValue = str | list[str] | dict[str, str]
Frontmatter = dict[str, FrontmatterValue]

DELIMITER = "---"

_HEADER_RE = re.compile(r"\A---[ \t]*\r?\n(.*?)\r?\n---[ \t]*(?:\r?\n|\Z)", re.DOTALL)
_KEY_RE = re.compile(r"^([A-Za-z0-9_][\w.-]*):(?:\s+(.*)|\s*)$")
_BOOL_NULL_LITERALS = {"true", "false", "yes", "no", "on", "off", "y", "n", "null", "~"}
_NUMBER_RE = re.compile(
    r"^[-+]?(?:\d[\d_]*(?:\.\d*)?|\.\d+)(?:[eE][-+]?\d+)?$"
    r"|^0[xX][0-9a-fA-F]+$|^0[oO][0-7]+$|^[-+]?\.(?:inf|Inf|INF)$|^\.(?:nan|NaN|NAN)$"
)
_INDICATORS = "-?:,[]{}#&*!|>'\"%@`"
_VALID_KEY_RE = re.compile(r"[A-Za-z0-9_][\w.-]*")
# Every character str.splitlines() or str.strip() would treat as a line break
# gets an escape, so a quoted value always stays on its own header line.
_ESCAPES = {
    "\\": "\\\\",
    '"': '\\"',
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
    "\x0b": "\\v",
    "\x0c": "\\f",
    "\x1c": "\\x1c",
    "\x1d": "\\x1d",
    "\x1e": "\\x1e",
    "\x85": "\\N",
    "\u2028": "\\L",
    "\u2029": "\\P",
}
_UNESCAPES = {
    "\\": "\\",
    '"': '"',
    "n": "\n",
    "r": "\r",
    "t": "\t",
    "v": "\x0b",
    "f": "\x0c",
    "N": "\x85",
    "L": "\u2028",
    "P": "\u2029",
}
_UNESCAPE_RE = re.compile(r"\\(x[0-9a-fA-F]{2}|.)", re.DOTALL)


class FrontmatterError(ValueError):
    """A header, or a mapping to serialize, falls outside the supported grammar."""


@dataclass(frozen=True)
class ParsedFrontmatter:
    """Result of splitting a document into frontmatter and body."""

    frontmatter: Frontmatter | None
    """Parsed mapping, or None if the document has no (valid) header."""

    body: str
    """Everything after the closing delimiter (the whole text if no header)."""

    raw: str = ""
    """Header text between the delimiters."""

    raw_start: int = 0
    raw_end: int = 0

    @property
    def has_frontmatter(self) -> bool:
        return self.frontmatter is not None


def parse(text: str) -> ParsedFrontmatter:
    """Split ``text`` into frontmatter and body.

    A document without a header, or with a header that does not parse, yields
    ``frontmatter=None`` and the original text as body.
    """
    match = _HEADER_RE.match(text)
    if not match:
        return ParsedFrontmatter(frontmatter=None, body=text)

    raw = match.group(1)
    try:
        frontmatter = parse_header(raw)
    except FrontmatterError:
        return ParsedFrontmatter(frontmatter=None, body=text)

    return ParsedFrontmatter(
        frontmatter=frontmatter,
        body=text[match.end():],
        raw=raw,
        raw_start=match.start(1),
        raw_end=match.end(1),
    )


def parse_header(raw: str) -> Frontmatter:
    """Parse header text (without delimiters) into an ordered mapping.

    Raises:
        FrontmatterError: If a top-level line is not ``key: value`` or an
            indented line appears before any key.
    """
    result: Frontmatter = {}
    current_key: str | None = None
    accepts_children = False
    container: list[str] | dict[str, str] | None = None
    child_indent = 0

    for line in raw.split("\n"):
        line = line.rstrip("\r")
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue

        indent = len(line) - len(line.lstrip(" \t"))
        if indent:
            if current_key is None:
                raise FrontmatterError(f"indented line before any key: {line!r}")
            if not accepts_children:
                continue
            if container is None:
                child_indent = indent
            elif indent != child_indent:
                continue

            if stripped == "-" or stripped.startswith("- "):
                if container is None:
                    container = []
                    result[current_key] = container
                if isinstance(container, list):
                    container.append(_parse_scalar(stripped[1:]))
                continue

            nested = _KEY_RE.match(stripped)
            if nested:
                if container is None:
                    container = {}
                    result[current_key] = container
                if isinstance(container, dict):
                    container[nested.group(1)] = _parse_scalar(nested.group(2) or "")
            continue

        # ``key:`` followed by unindented ``- item`` lines is also a block list
        if (stripped == "-" or stripped.startswith("- ")) and accepts_children:
            if container is None:
                container = []
                child_indent = 0
                result[current_key] = container
            if isinstance(container, list) and child_indent == 0:
                container.append(_parse_scalar(stripped[1:]))
                continue
            raise FrontmatterError(f"unexpected list item: {line!r}")

        match = _KEY_RE.match(line)
        if not match:
            raise FrontmatterError(f"not a key/value line: {line!r}")

        current_key = match.group(1)
        value = (match.group(2) or "").strip()
        container = None
        accepts_children = value == ""
        result[current_key] = _parse_value(value) if value else ""

    return result


def serialize(frontmatter: Frontmatter) -> str:
    """Render a mapping as header text (without delimiters), in insertion order.

    Raises:
        FrontmatterError: If a key, top-level or nested, could not be read
            back as a ``key: value`` line.
    """
    lines: list[str] = []

    for key, value in frontmatter.items():
        if value is None:
            continue
        _check_key(key)
        if isinstance(value, list):
            if not value:
                lines.append(f"{key}: []")
                continue
            lines.append(f"{key}:")
            for item in value:
                lines.append(f"  - {_quote(str(item))}")
        elif isinstance(value, dict):
            if not value:
                lines.append(f"{key}: {{}}")
                continue
            lines.append(f"{key}:")
            for nested_key, nested_value in value.items():
                _check_key(nested_key)
                lines.append(f"  {nested_key}: {format_scalar(str(nested_value))}")
        else:
            lines.append(f"{key}: {format_scalar(str(value))}")

    return "\n".join(lines)


def _check_key(key: str) -> None:
    if not isinstance(key, str) or not _VALID_KEY_RE.fullmatch(key):
        raise FrontmatterError(f"unsupported key: {key!r}")


def render(frontmatter: Frontmatter, body: str) -> str:
    """Build a full document. An empty mapping yields the body alone."""
    header = serialize(frontmatter)
    if not header:
        return body
    return f"{DELIMITER}\n{header}\n{DELIMITER}\n{body}"


def format_scalar(value: str) -> str:
    """Render a scalar, quoting it when plain YAML would misread it."""
    return _quote(value) if needs_quoting(value) else value


def needs_quoting(value: str) -> bool:
    if value == "" or value != value.strip():
        return True
    if value.lower() in _BOOL_NULL_LITERALS or _NUMBER_RE.match(value):
        return True
    if value[0] in _INDICATORS:
        return True
    return any(ch in value for ch in (":", "#", "@", '"')) or any(ch in _ESCAPES for ch in value)


def _quote(value: str) -> str:
    escaped = "".join(_ESCAPES.get(ch, ch) for ch in value)
    return f'"{escaped}"'


def _parse_value(value: str) -> FrontmatterValue:
    if value.startswith("[") and value.endswith("]"):
        return [_parse_scalar(item) for item in _split_inline_list(value[1:-1])]
    if value == "{}":
        return {}
    return _parse_scalar(value)


def _parse_scalar(value: str) -> str:
    value = value.strip()
    if len(value) >= 2 and value[0] == value[-1] == '"':
        return _UNESCAPE_RE.sub(_unescape, value[1:-1])
    if len(value) >= 2 and value[0] == value[-1] == "'":
        return value[1:-1].replace("''", "'")
    comment = value.find(" #")
    if comment != -1:
        value = value[:comment].rstrip()
    return value


def _unescape(match: re.Match) -> str:
    code = match.group(1)
    if len(code) == 3:
        return chr(int(code[1:], 16))
    return _UNESCAPES.get(code, match.group(0))


def _split_inline_list(inner: str) -> list[str]:
    items: list[str] = []
    buf: list[str] = []
    quote: str | None = None
    escaped = False

    for ch in inner:
        if quote:
            buf.append(ch)
            if escaped:
                escaped = False
            elif ch == "\\" and quote == '"':
                escaped = True
            elif ch == quote:
                quote = None
        elif ch in "\"'":
            quote = ch
            buf.append(ch)
        elif ch == ",":
            items.append("".join(buf))
            buf = []
        else:
            buf.append(ch)

    items.append("".join(buf))
    return [item for item in items if item.strip()]
