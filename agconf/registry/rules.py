"""Rules: per-file copies, or one aggregated section of AGENTS.md."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from agconf.content.markers import MarkerBlockEngine
from agconf.content.rules import Rule, build_rules_content, parse_rule
from agconf.log import get_logger
from agconf.registry.base import CheckedFile, ContentRegistry, SyncOutcome
from agconf.sources.targets import TargetConfig
from agconf.utils.file_scanner import scan_markdown_files
from agconf.utils.fs import read_text_or_none

logger = get_logger(__name__)


@dataclass
class RulesSyncOutcome(SyncOutcome):
    document: str | None = None
    """AGENTS.md text with the rules section applied (None if no target aggregates rules)."""


class RuleRegistry(ContentRegistry):
    kind = "rule"

    def __init__(self, *args, engine: MarkerBlockEngine | None = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.engine = engine or MarkerBlockEngine(self.config, self.hasher)

    def discover(self, rules_path: Path) -> list[Rule]:
        """Parse every ``*.md`` under ``rules_path``, ordered by relative path."""
        return [
            parse_rule(read_text_or_none(rules_path / rel) or "", rel)
            for rel in scan_markdown_files(rules_path)
        ]

    def sync(self, rules: list[Rule], targets: list[TargetConfig], document: str) -> RulesSyncOutcome:
        """Write per-file rules and apply the aggregated section to ``document``.

        With no rules, an existing rules section is removed from the document.
        The document is returned, not written; the caller owns AGENTS.md.
        """
        outcome = RulesSyncOutcome(
            items=[r.relative_path for r in rules],
            content_hash=self.hasher.hash_entries([(r.relative_path, r.body) for r in rules]),
        )

        for target in targets:
            if not target.per_file_rules:
                continue
            for rule in rules:
                tagged = self.tagger.add_managed_metadata(rule.raw_content, source_path=rule.relative_path)
                path = self.repo_dir / target.rules_dir / rule.relative_path
                outcome.record(rule.relative_path, self.write_if_changed(path, tagged))

        if any(not t.per_file_rules for t in targets):
            if rules:
                section = self.engine.build_rules_section(build_rules_content(rules), len(rules))
                outcome.document = self.engine.insert_rules_section(document, section)
            else:
                outcome.document = self.engine.remove_rules_section(document)

        logger.info("Rules: %d synced, %d files written", len(rules), len(outcome.written))
        return outcome

    def check(self, targets: list[TargetConfig]) -> list[CheckedFile]:
        """Check per-file rules. The aggregated section is checked with AGENTS.md."""
        results = []
        for target in targets:
            if not target.per_file_rules:
                continue
            rules_root = self.repo_dir / target.rules_dir
            for rel in scan_markdown_files(rules_root):
                checked = self.check_file(rules_root / rel)
                if checked:
                    results.append(checked)
        return results
