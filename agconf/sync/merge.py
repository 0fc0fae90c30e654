"""Merge canonical instructions with a repository's own instructions.

The downstream ``AGENTS.md`` keeps whatever the repository wrote in its repo
block. On the first sync a marker-less ``AGENTS.md`` is kept whole, and text
from legacy pointer files (``CLAUDE.md`` at the root or in ``.claude/``) is
folded in too, minus the ``@AGENTS.md`` reference lines.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path

from agconf.config.settings import EngineConfig
from agconf.content.markers import MarkerBlockEngine
from agconf.log import get_logger
from agconf.sources.targets import TARGETS, TargetConfig
from agconf.utils.fs import read_text_or_none, remove_path, write_text_atomic

logger = get_logger(__name__)


@dataclass
class MergeResult:
    content: str
    merged: bool
    """Existing local content was considered (not a fresh file, not override)."""

    changed: bool
    preserved_repo_content: bool


@dataclass
class PointerResult:
    created: list[str] = field(default_factory=list)
    updated: list[str] = field(default_factory=list)
    deleted: list[str] = field(default_factory=list)


class AgentsMdMerger:
    def __init__(self, repo_dir: str | Path, config: EngineConfig, engine: MarkerBlockEngine | None = None):
        self.repo_dir = Path(repo_dir)
        self.config = config
        self.engine = engine or MarkerBlockEngine(config)
        name = re.escape(config.agents_md_name)
        self._reference_re = re.compile(rf"^@(\.\./|\.[\w-]+/)?{name}$")

    @property
    def path(self) -> Path:
        return self.repo_dir / self.config.agents_md_name

    @property
    def reference(self) -> str:
        return f"@{self.config.agents_md_name}"

    def pointer_paths(self) -> list[str]:
        """Root and legacy pointer files of every known target."""
        paths = []
        for target in TARGETS.values():
            if target.pointer_file:
                paths += [target.pointer_file, f"{target.dir}/{target.pointer_file}"]
        return paths

    def merge(self, global_content: str, override: bool = False) -> MergeResult:
        """Build the new ``AGENTS.md`` text. Nothing is written.

        With ``override`` all local content is discarded.
        """
        existing = read_text_or_none(self.path)
        pointers = {rel: read_text_or_none(self.repo_dir / rel) for rel in self.pointer_paths()}

        preserved: list[str] = []
        if existing is not None and not override:
            parsed = self.engine.parse(existing)
            if parsed.has_markers:
                repo_content = self.engine.extract_repo_content(parsed)
                if repo_content:
                    preserved.append(repo_content)
            else:
                whole = self.engine.remove_rules_section(existing).strip()
                if whole:
                    preserved.append(whole)

        if not override:
            for rel, text in pointers.items():
                if text is None:
                    continue
                stripped = self._strip_references(text)
                if stripped and not any(stripped in chunk for chunk in preserved):
                    logger.debug("Merging local instructions from %s", rel)
                    preserved.append(stripped)

        repo_content = "\n\n".join(preserved) if preserved else None
        content = self.engine.build_document(global_content, repo_content)
        had_local = existing is not None or any(t is not None for t in pointers.values())
        return MergeResult(
            content=content,
            merged=not override and had_local,
            changed=existing != content,
            preserved_repo_content=bool(preserved),
        )

    def consolidate_pointers(self, targets: list[TargetConfig]) -> PointerResult:
        """Point each target's root file at ``AGENTS.md`` and drop the legacy copy."""
        result = PointerResult()
        for target in targets:
            if not target.pointer_file:
                continue
            root = self.repo_dir / target.pointer_file
            current = read_text_or_none(root)
            if current is None:
                write_text_atomic(root, f"{self.reference}\n")
                result.created.append(target.pointer_file)
            elif self.reference not in current:
                write_text_atomic(root, f"{self.reference}\n")
                result.updated.append(target.pointer_file)

            legacy = self.repo_dir / target.dir / target.pointer_file
            if legacy.is_file():
                remove_path(legacy)
                result.deleted.append(f"{target.dir}/{target.pointer_file}")
        return result

    def _strip_references(self, text: str) -> str:
        lines = [line for line in text.split("\n") if not self._reference_re.match(line.strip())]
        return "\n".join(lines).strip()
