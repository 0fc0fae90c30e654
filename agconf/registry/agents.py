"""Sub-agents: flat ``agents/*.md`` files for targets that support them."""

from __future__ import annotations

from pathlib import Path

from agconf.content import frontmatter as fm
from agconf.log import get_logger
from agconf.registry.base import CheckedFile, ContentRegistry, SyncOutcome, ValidationError, missing_required_fields
from agconf.sources.targets import TargetConfig
from agconf.utils.file_scanner import scan_markdown_files
from agconf.utils.fs import read_text_or_none

logger = get_logger(__name__)


class AgentRegistry(ContentRegistry):
    kind = "agent"

    def discover(self, agents_path: Path) -> list[str]:
        return scan_markdown_files(agents_path, recursive=False)

    def sync(self, agents_path: Path, targets: list[TargetConfig]) -> SyncOutcome:
        files = self.discover(agents_path)
        outcome = SyncOutcome(items=files)

        entries = []
        contents = {}
        for rel in files:
            content = read_text_or_none(agents_path / rel) or ""
            contents[rel] = content
            entries.append((rel, fm.parse(content).body))
            problems = missing_required_fields(content)
            if problems:
                outcome.validation_errors.append(
                    ValidationError(item=rel, path=str(agents_path / rel), errors=problems)
                )
                logger.warning("Agent %s: %s", rel, "; ".join(problems))
        outcome.content_hash = self.hasher.hash_entries(entries)

        for target in targets:
            if not target.supports_agents:
                continue
            for rel in files:
                tagged = self.tagger.add_managed_metadata(contents[rel])
                changed = self.write_if_changed(self.repo_dir / target.agents_dir / rel, tagged)
                outcome.record(rel, changed)

        logger.info("Agents: %d synced, %d written", len(files), len(outcome.written))
        return outcome

    def check(self, targets: list[TargetConfig]) -> list[CheckedFile]:
        results = []
        for target in targets:
            if not target.supports_agents:
                continue
            agents_root = self.repo_dir / target.agents_dir
            for rel in scan_markdown_files(agents_root, recursive=False):
                checked = self.check_file(agents_root / rel)
                if checked:
                    results.append(checked)
        return results
