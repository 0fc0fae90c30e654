"""Managed metadata stored in frontmatter.

Synced files carry bookkeeping keys inside their ``metadata`` mapping::

    metadata:
      agconf_managed: "true"
      agconf_content_hash: "sha256:0123456789ab"

The content hash covers the document with these keys removed. Tagging and
stripping edit the header text in place and leave every other header line
untouched, so stripping a freshly tagged document gives back exactly the
document that was tagged. ``sync`` and ``check`` rely on this to agree on a
hash without sharing any other state.

A ``metadata`` key with no entries of its own (empty, ``{}``, only comments,
or an inline value) is dropped before tagging, since stripping would remove
it anyway. The stored hash is taken over that normalized text.
"""

from __future__ import annotations

from dataclasses import dataclass

from agconf.config.settings import EngineConfig
from agconf.content import frontmatter as fm
from agconf.content.hashing import ContentHasher

METADATA_KEY = "metadata"


@dataclass(frozen=True)
class InvalidMetadata:
    """The ``metadata`` value is not a flat mapping of strings."""

    reason: str


def string_metadata(frontmatter: fm.Frontmatter | None) -> dict[str, str] | InvalidMetadata:
    """Return the ``metadata`` sub-mapping with every value checked to be a string.

    A missing or empty ``metadata`` key yields an empty dict.
    """
    if not frontmatter:
        return {}
    value = frontmatter.get(METADATA_KEY)
    if value is None or value == "":
        return {}
    if not isinstance(value, dict):
        return InvalidMetadata(f"expected a mapping, got {type(value).__name__}")
    for key, item in value.items():
        if not isinstance(item, str):
            return InvalidMetadata(f"value of {key!r} is not a string")
    return dict(value)


@dataclass(frozen=True)
class _Block:
    start: int  # index of the ``metadata:`` line
    end: int  # one past the last child line
    indent: str


class MetadataTagger:
    """Adds, strips, and verifies managed metadata for one prefix."""

    def __init__(self, config: EngineConfig, hasher: ContentHasher | None = None):
        self.config = config
        self.hasher = hasher or ContentHasher()
        self._key_prefix = f"{config.metadata_prefix}_"

    # -- writes -------------------------------------------------------------

    def add_managed_metadata(self, content: str, source_path: str | None = None) -> str:
        """Tag ``content`` as managed, replacing any stale managed keys.

        Args:
            content: Document text, with or without frontmatter.
            source_path: Canonical relative path, recorded for rules only.
        """
        cleaned = _drop_empty_metadata(self.strip_managed_metadata(content))
        fields = {
            self.config.managed_key: "true",
            self.config.content_hash_key: self.hasher.hash(cleaned),
        }
        if source_path is not None:
            fields[self.config.source_path_key] = source_path

        parsed = fm.parse(cleaned)
        if parsed.frontmatter is None:
            return fm.render({METADATA_KEY: fields}, cleaned)

        lines = parsed.raw.split("\n")
        block = _find_metadata_block(lines)
        if block is not None:
            new_lines = [f"{block.indent}{k}: {fm.format_scalar(v)}" for k, v in fields.items()]
            lines[block.end:block.end] = new_lines
        else:
            existing = _find_top_level_key(lines, METADATA_KEY)
            new_block = fm.serialize({METADATA_KEY: fields}).split("\n")
            if existing is not None:
                # ``metadata: <inline value>`` cannot take children; replace it
                lines[existing:existing + 1] = new_block
            else:
                lines.extend(new_block)

        return cleaned[:parsed.raw_start] + "\n".join(lines) + cleaned[parsed.raw_end:]

    def strip_managed_metadata(self, content: str) -> str:
        """Remove managed keys, dropping ``metadata`` and the header if they empty out."""
        parsed = fm.parse(content)
        if parsed.frontmatter is None:
            return content

        lines = parsed.raw.split("\n")
        block = _find_metadata_block(lines)
        if block is None:
            return content

        children = range(block.start + 1, block.end)
        managed = {i for i in children if self._is_managed_line(lines[i])}
        if not managed:
            return content

        kept = [lines[i] for i in children if i not in managed]
        if any(_is_content_line(line) for line in kept):
            new_lines = lines[:block.start + 1] + kept + lines[block.end:]
        else:
            new_lines = lines[:block.start] + lines[block.end:]

        if not any(_is_content_line(line) for line in new_lines):
            return parsed.body

        return content[:parsed.raw_start] + "\n".join(new_lines) + content[parsed.raw_end:]

    # -- reads --------------------------------------------------------------

    def managed_fields(self, content: str) -> dict[str, str]:
        """Managed metadata entries of ``content`` (empty if absent or invalid)."""
        metadata = string_metadata(fm.parse(content).frontmatter)
        if isinstance(metadata, InvalidMetadata):
            return {}
        return {k: v for k, v in metadata.items() if k.startswith(self._key_prefix)}

    def is_managed(self, content: str) -> bool:
        return self.managed_fields(content).get(self.config.managed_key) == "true"

    def stored_hash(self, content: str) -> str | None:
        return self.managed_fields(content).get(self.config.content_hash_key) or None

    def source_path(self, content: str) -> str | None:
        return self.managed_fields(content).get(self.config.source_path_key) or None

    def compute_hash(self, content: str) -> str:
        """Hash of ``content`` with managed metadata removed."""
        return self.hasher.hash(self.strip_managed_metadata(content))

    def has_manual_changes(self, content: str) -> bool:
        """True if the stored hash no longer matches the content.

        A file without a stored hash is not considered changed.
        """
        stored = self.stored_hash(content)
        if not stored:
            return False
        return stored != self.compute_hash(content)

    def _is_managed_line(self, line: str) -> bool:
        match = fm._KEY_RE.match(line.strip())
        return bool(match) and match.group(1).startswith(self._key_prefix)


def _is_content_line(line: str) -> bool:
    stripped = line.strip()
    return bool(stripped) and not stripped.startswith("#")


def _find_top_level_key(lines: list[str], key: str) -> int | None:
    for i, line in enumerate(lines):
        if line[:1] in (" ", "\t"):
            continue
        match = fm._KEY_RE.match(line.rstrip("\r"))
        if match and match.group(1) == key:
            return i
    return None


def _find_metadata_block(lines: list[str]) -> _Block | None:
    """Locate a block-style ``metadata:`` key and the span of its children."""
    start = _find_top_level_key(lines, METADATA_KEY)
    if start is None:
        return None
    match = fm._KEY_RE.match(lines[start].rstrip("\r"))
    if match.group(2) and match.group(2).strip():
        return None

    end = start + 1
    indent = ""
    for i in range(start + 1, len(lines)):
        line = lines[i]
        if not line.strip():
            continue
        if line[:1] not in (" ", "\t"):
            break
        if not indent:
            indent = line[: len(line) - len(line.lstrip(" \t"))]
        end = i + 1

    return _Block(start=start, end=end, indent=indent or "  ")


def _drop_empty_metadata(content: str) -> str:
    """Remove a ``metadata`` key that holds no entries of its own."""
    parsed = fm.parse(content)
    if parsed.frontmatter is None:
        return content

    lines = parsed.raw.split("\n")
    start = _find_top_level_key(lines, METADATA_KEY)
    if start is None:
        return content

    block = _find_metadata_block(lines)
    if block is None:
        end = start + 1
    elif any(_is_content_line(line) for line in lines[block.start + 1:block.end]):
        return content
    else:
        end = block.end

    new_lines = lines[:start] + lines[end:]
    if not any(_is_content_line(line) for line in new_lines):
        return parsed.body
    return content[:parsed.raw_start] + "\n".join(new_lines) + content[parsed.raw_end:]
