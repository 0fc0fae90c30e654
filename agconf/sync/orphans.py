"""Orphans — artifacts from the previous sync that the source no longer has.

An orphan is deleted at a target location only if the file there is managed
and either was recorded in the previous lockfile or still matches its stored
hash. Anything else is left in place and reported as skipped.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from agconf.config.settings import EngineConfig
from agconf.content.metadata import MetadataTagger
from agconf.errors import ManagedFileError
from agconf.log import get_logger
from agconf.sources.targets import TargetConfig
from agconf.utils.fs import prune_empty_dirs, read_text_or_none, remove_path

logger = get_logger(__name__)

KINDS = ("skills", "rules", "agents")


@dataclass
class OrphanReport:
    deleted: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)


def find_orphans(previous: list[str], current: list[str]) -> list[str]:
    """Items in ``previous`` but not in ``current``, in ``previous`` order."""
    keep = set(current)
    return [item for item in previous if item not in keep]


class OrphanResolver:
    """Deletes orphaned skills, rules, and agents when it is safe to."""

    def __init__(self, repo_dir: str | Path, config: EngineConfig, tagger: MetadataTagger | None = None):
        self.repo_dir = Path(repo_dir)
        self.config = config
        self.tagger = tagger or MetadataTagger(config)

    def resolve(
        self,
        kind: str,
        orphans: list[str],
        previously_tracked: list[str],
        targets: list[TargetConfig],
    ) -> OrphanReport:
        if kind not in KINDS:
            raise ValueError(f"Unknown content kind: {kind}")

        report = OrphanReport()
        tracked = set(previously_tracked)
        for name in orphans:
            for target in targets:
                location = self._location(kind, name, target)
                if location is None or not location.exists():
                    continue
                if self._safe_to_delete(kind, location, name in tracked):
                    self._delete(kind, location, target)
                    _append_once(report.deleted, name)
                    logger.info("Deleted orphaned %s: %s", kind[:-1], self._relative(location))
                else:
                    _append_once(report.skipped, name)
                    logger.warning(
                        "Kept orphaned %s %s: not managed or modified locally",
                        kind[:-1], self._relative(location),
                    )
        return report

    def _location(self, kind: str, name: str, target: TargetConfig) -> Path | None:
        if kind == "skills":
            return self.repo_dir / target.skills_dir / name
        if kind == "rules":
            return self.repo_dir / target.rules_dir / name if target.per_file_rules else None
        return self.repo_dir / target.agents_dir / name if target.supports_agents else None

    def _safe_to_delete(self, kind: str, location: Path, tracked: bool) -> bool:
        managed_file = location / "SKILL.md" if kind == "skills" else location
        try:
            content = read_text_or_none(managed_file)
        except ManagedFileError as e:
            logger.debug("Cannot read %s: %s", managed_file, e.reason)
            return False
        if content is None or not self.tagger.is_managed(content):
            return False
        return tracked or not self.tagger.has_manual_changes(content)

    def _delete(self, kind: str, location: Path, target: TargetConfig) -> None:
        remove_path(location)
        if kind == "rules":
            prune_empty_dirs(location.parent, self.repo_dir / target.rules_dir)

    def _relative(self, path: Path) -> str:
        try:
            return path.relative_to(self.repo_dir).as_posix()
        except ValueError:
            return str(path)


def _append_once(items: list[str], item: str) -> None:
    if item not in items:
        items.append(item)
