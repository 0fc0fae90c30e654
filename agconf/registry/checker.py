"""Read-only detection of hand-edits to managed content."""

from __future__ import annotations

from pathlib import Path

from agconf.config.settings import EngineConfig
from agconf.content.hashing import ContentHasher
from agconf.content.markers import MarkerBlockEngine
from agconf.content.metadata import MetadataTagger
from agconf.registry.agents import AgentRegistry
from agconf.registry.base import CheckedFile
from agconf.registry.rules import RuleRegistry
from agconf.registry.skills import SkillRegistry
from agconf.sources.targets import TargetConfig
from agconf.utils.fs import read_text_or_none


class ManagedContentChecker:
    """Collects every managed file and block of a downstream repository."""

    def __init__(self, repo_dir: str | Path, config: EngineConfig, hasher: ContentHasher | None = None):
        self.repo_dir = Path(repo_dir)
        self.config = config
        self.hasher = hasher or ContentHasher()
        self.tagger = MetadataTagger(config, self.hasher)
        self.engine = MarkerBlockEngine(config, self.hasher)
        self.registries = [
            SkillRegistry(self.repo_dir, config, self.tagger, self.hasher),
            RuleRegistry(self.repo_dir, config, self.tagger, self.hasher, engine=self.engine),
            AgentRegistry(self.repo_dir, config, self.tagger, self.hasher),
        ]

    def check(self, targets: list[TargetConfig]) -> list[CheckedFile]:
        """Report every managed item, changed or not. Nothing is written."""
        results = self.check_agents_md()
        for registry in self.registries:
            results.extend(registry.check(targets))
        return results

    def check_agents_md(self) -> list[CheckedFile]:
        name = self.config.agents_md_name
        document = read_text_or_none(self.repo_dir / name)
        if document is None:
            return []

        results = []
        if self.engine.is_managed(document):
            block = self.engine.parse(document).global_block or ""
            results.append(CheckedFile(
                path=name,
                kind="global-block",
                expected_hash=self.engine.block_metadata(block).content_hash,
                current_hash=self.hasher.hash(self.engine.strip_bookkeeping(block)),
            ))

        section = self.engine.parse_rules_section(document).content
        if section:
            results.append(CheckedFile(
                path=name,
                kind="rules-section",
                expected_hash=self.engine.block_metadata(section).content_hash,
                current_hash=self.hasher.hash(self.engine.strip_bookkeeping(section)),
            ))
        return results
