"""Marker-delimited blocks in the aggregate instructions document.

``AGENTS.md`` is split into regions by HTML comment markers::

    <!-- agconf:global:start -->   managed, replaced on every sync
    <!-- agconf:rules:start -->    managed, only for aggregated-rules targets
    <!-- agconf:repo:start -->     owned by the downstream repository

The global block and the rules section carry a ``Content hash`` comment so a
hand-edit between their markers can be detected. Text outside the managed
regions is never rewritten.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from agconf.config.settings import EngineConfig
from agconf.content.hashing import ContentHasher

REPO_HINT = "<!-- Repository-specific instructions below -->"

_BOOKKEEPING_PREFIXES = (
    "<!-- DO NOT EDIT",
    "<!-- Source:",
    "<!-- Last synced:",
    "<!-- Content hash:",
    "<!-- Rule count:",
)
_HASH_COMMENT_RE = re.compile(r"<!--\s*Content hash:\s*(.+?)\s*-->")
_RULE_COUNT_RE = re.compile(r"<!--\s*Rule count:\s*(\d+)\s*-->")
_SOURCE_RE = re.compile(r"<!--\s*Source:\s*(.+?)\s*-->")
_SYNCED_RE = re.compile(r"<!--\s*Last synced:\s*(.+?)\s*-->")


@dataclass(frozen=True)
class ParsedDocument:
    global_block: str | None
    repo_block: str | None
    has_markers: bool


@dataclass(frozen=True)
class ParsedRulesSection:
    content: str | None
    has_markers: bool


@dataclass(frozen=True)
class BlockMetadata:
    """Bookkeeping comments found inside a managed block."""

    content_hash: str | None = None
    rule_count: int | None = None
    source: str | None = None
    synced_at: str | None = None


class MarkerBlockEngine:
    """Builds, parses, and verifies marker blocks for one marker prefix."""

    def __init__(self, config: EngineConfig, hasher: ContentHasher | None = None):
        self.config = config
        self.hasher = hasher or ContentHasher()

    def marker(self, section: str, edge: str) -> str:
        """Marker comment, e.g. ``marker("global", "start")``."""
        return f"<!-- {self.config.marker_prefix}:{section}:{edge} -->"

    # ── Document blocks ──────────────────────────────────────────

    def parse(self, document: str) -> ParsedDocument:
        """Extract the global and repo blocks (trimmed, markers excluded)."""
        global_start = document.find(self.marker("global", "start"))
        repo_start = document.find(self.marker("repo", "start"))
        return ParsedDocument(
            global_block=self._between(document, "global"),
            repo_block=self._between(document, "repo"),
            has_markers=global_start != -1 or repo_start != -1,
        )

    def build_global_block(self, content: str) -> str:
        content_hash = self.hasher.hash(content)
        return "\n".join([
            self.marker("global", "start"),
            f"<!-- DO NOT EDIT THIS SECTION - Managed by {self.config.cli_name} CLI -->",
            f"<!-- Content hash: {content_hash} -->",
            "",
            content.strip(),
            "",
            self.marker("global", "end"),
        ])

    def build_repo_block(self, content: str | None) -> str:
        return "\n".join([
            self.marker("repo", "start"),
            REPO_HINT,
            "",
            (content or "").strip(),
            "",
            self.marker("repo", "end"),
        ])

    def build_document(self, global_content: str, repo_content: str | None) -> str:
        global_block = self.build_global_block(global_content)
        repo_block = self.build_repo_block(repo_content)
        return f"{global_block}\n\n{repo_block}\n"

    def extract_repo_content(self, parsed: ParsedDocument) -> str | None:
        """Repo block text without the helper comment, or None if empty."""
        if not parsed.repo_block:
            return None
        lines = [line for line in parsed.repo_block.split("\n") if line.strip() != REPO_HINT]
        return "\n".join(lines).strip() or None

    def block_metadata(self, block: str) -> BlockMetadata:
        hash_match = _HASH_COMMENT_RE.search(block)
        count_match = _RULE_COUNT_RE.search(block)
        source_match = _SOURCE_RE.search(block)
        synced_match = _SYNCED_RE.search(block)
        return BlockMetadata(
            content_hash=hash_match.group(1) if hash_match else None,
            rule_count=int(count_match.group(1)) if count_match else None,
            source=source_match.group(1) if source_match else None,
            synced_at=synced_match.group(1) if synced_match else None,
        )

    def strip_bookkeeping(self, block: str) -> str:
        lines = [
            line for line in block.split("\n")
            if not line.strip().startswith(_BOOKKEEPING_PREFIXES)
        ]
        return "\n".join(lines).strip()

    def global_content(self, document: str) -> str | None:
        """Global block text with bookkeeping removed, or None if absent."""
        block = self.parse(document).global_block
        if block is None:
            return None
        return self.strip_bookkeeping(block)

    def has_global_block_changes(self, document: str) -> bool:
        """True if the global block no longer matches its stored hash.

        A missing block or a block without a stored hash (older format) is
        not reported as changed.
        """
        block = self.parse(document).global_block
        return self._block_changed(block)

    def is_managed(self, document: str) -> bool:
        parsed = self.parse(document)
        return parsed.has_markers and parsed.global_block is not None

    # ── Rules section ────────────────────────────────────────────

    def build_rules_section(self, content: str, rule_count: int) -> str:
        body = content.strip()
        return "\n".join([
            self.marker("rules", "start"),
            f"<!-- DO NOT EDIT THIS SECTION - Managed by {self.config.cli_name} -->",
            f"<!-- Content hash: {self.hasher.hash(body)} -->",
            f"<!-- Rule count: {rule_count} -->",
            "",
            body,
            "",
            self.marker("rules", "end"),
        ])

    def parse_rules_section(self, document: str) -> ParsedRulesSection:
        content = self._between(document, "rules")
        return ParsedRulesSection(content=content, has_markers=content is not None)

    def has_rules_section_changes(self, document: str) -> bool:
        return self._block_changed(self.parse_rules_section(document).content)

    def insert_rules_section(self, document: str, section: str) -> str:
        """Place ``section`` in ``document``.

        In order of preference: replace the existing rules section, insert
        right after the global block, insert right before the repo block,
        append at the end.
        """
        span = self._span(document, "rules")
        if span is not None:
            start, end = span
            return document[:start] + section + document[end:]

        global_end = self.marker("global", "end")
        idx = document.find(global_end)
        if idx != -1:
            split = idx + len(global_end)
            return f"{document[:split]}\n\n{section}{document[split:]}"

        idx = document.find(self.marker("repo", "start"))
        if idx != -1:
            return f"{document[:idx]}{section}\n\n{document[idx:]}"

        return f"{document.rstrip()}\n\n{section}\n"

    def remove_rules_section(self, document: str) -> str:
        """Drop the rules section and the blank lines that separated it."""
        span = self._span(document, "rules")
        if span is None:
            return document

        start, end = span
        before = document[:start].rstrip()
        after = document[end:].strip()
        joined = "\n\n".join(part for part in (before, after) if part)
        return f"{joined}\n" if joined else ""

    # ── Helpers ──────────────────────────────────────────────────

    def _span(self, document: str, section: str) -> tuple[int, int] | None:
        """Offsets of the first start marker that has an end marker after it.

        An end marker with no start before it is ignored. The span covers both
        markers.
        """
        start_marker = self.marker(section, "start")
        end_marker = self.marker(section, "end")
        start = document.find(start_marker)
        if start == -1:
            return None
        end = document.find(end_marker, start + len(start_marker))
        if end == -1:
            return None
        # a repeated start marker belongs to the block that the end closes
        start = document.rfind(start_marker, start, end)
        return start, end + len(end_marker)

    def _between(self, document: str, section: str) -> str | None:
        span = self._span(document, section)
        if span is None:
            return None
        start, end = span
        inner_start = start + len(self.marker(section, "start"))
        inner_end = end - len(self.marker(section, "end"))
        return document[inner_start:inner_end].strip()

    def _block_changed(self, block: str | None) -> bool:
        if not block:
            return False
        stored = self.block_metadata(block).content_hash
        if not stored:
            return False
        return stored != self.hasher.hash(self.strip_bookkeeping(block))
