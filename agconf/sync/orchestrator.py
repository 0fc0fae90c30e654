"""Sync orchestrator — runs sync, check, and status for one downstream repository.

A sync reads the previous lockfile, merges ``AGENTS.md``, writes pointer
files, syncs skills, rules, and agents, removes safe orphans, and finally
records the new lockfile. Nothing is written if the previous lockfile comes
from an incompatible schema.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from agconf.config.settings import EngineConfig
from agconf.content.hashing import ContentHasher
from agconf.content.markers import MarkerBlockEngine
from agconf.content.metadata import MetadataTagger
from agconf.errors import SchemaIncompatibleError, SourceError
from agconf.log import get_logger
from agconf.registry.agents import AgentRegistry
from agconf.registry.base import CheckedFile, SyncOutcome
from agconf.registry.checker import ManagedContentChecker
from agconf.registry.rules import RuleRegistry, RulesSyncOutcome
from agconf.registry.skills import SkillRegistry
from agconf.sources.resolver import ResolvedSource
from agconf.sources.targets import get_target_config, parse_target_names
from agconf.sync.lockfile import ContentSet, Lockfile, LockfileReadResult, LockfileStore
from agconf.sync.merge import AgentsMdMerger, MergeResult, PointerResult
from agconf.sync.orphans import OrphanReport, OrphanResolver, find_orphans
from agconf.utils.fs import read_text_or_none, write_text_atomic

logger = get_logger(__name__)


@dataclass
class SyncResult:
    lockfile: Lockfile
    agents_md: MergeResult
    pointers: PointerResult
    skills: SyncOutcome
    rules: RulesSyncOutcome | None = None
    agents: SyncOutcome | None = None
    agents_skipped: bool = False
    """The source has agents but no selected target supports them."""

    orphans: dict[str, OrphanReport] = field(default_factory=dict)
    schema_warning: str | None = None


@dataclass
class CheckReport:
    synced: bool
    files: list[CheckedFile] = field(default_factory=list)
    schema_warning: str | None = None

    @property
    def modified(self) -> list[CheckedFile]:
        return [f for f in self.files if f.has_changes]

    @property
    def ok(self) -> bool:
        return not self.modified


@dataclass
class SyncStatus:
    has_synced: bool
    lockfile: Lockfile | None
    agents_md_exists: bool
    skills_exist: bool
    schema_warning: str | None = None
    schema_error: str | None = None


class SyncOrchestrator:
    """Composes the engine components around one repository directory."""

    def __init__(self, repo_dir: str | Path, config: EngineConfig | None = None, hasher: ContentHasher | None = None):
        self.repo_dir = Path(repo_dir)
        self.config = config or EngineConfig()
        self.hasher = hasher or ContentHasher()

    def _store(self, config: EngineConfig) -> LockfileStore:
        return LockfileStore(self.repo_dir, config, self.hasher)

    def _read_compatible(self, config: EngineConfig) -> LockfileReadResult | None:
        result = self._store(config).read()
        if result is not None and not result.compatibility.compatible:
            compatibility = result.compatibility
            raise SchemaIncompatibleError(
                stored_version=compatibility.version,
                message=compatibility.error or "incompatible schema version",
            )
        return result

    # ── Sync ─────────────────────────────────────────────────────

    def sync(
        self,
        source: ResolvedSource,
        targets: list[str] | None = None,
        override: bool = False,
        pinned_version: str | None = None,
    ) -> SyncResult:
        """Bring the repository in line with ``source``.

        Raises:
            SchemaIncompatibleError: The previous lockfile has an incompatible
                schema version. Nothing has been written.
            SourceError: The canonical instructions cannot be read.
            ManagedFileError: A read or write failed.
        """
        config = self.config.with_prefix(source.marker_prefix)
        target_names = parse_target_names(targets or source.targets)
        target_configs = [get_target_config(name) for name in target_names]

        previous = self._read_compatible(config)
        previous_lock = previous.lockfile if previous else None

        global_content = read_text_or_none(source.agents_md_path)
        if global_content is None:
            raise SourceError(f"Canonical instructions not found: {source.agents_md_path}")

        tagger = MetadataTagger(config, self.hasher)
        engine = MarkerBlockEngine(config, self.hasher)
        merger = AgentsMdMerger(self.repo_dir, config, engine)

        logger.info("Syncing %s into %s", source.source.display, self.repo_dir)
        merge = merger.merge(global_content, override=override or not source.preserve_repo_content)
        document = merge.content

        rules_outcome = None
        if source.rules_path is not None:
            rule_registry = RuleRegistry(self.repo_dir, config, tagger, self.hasher, engine=engine)
            rules = rule_registry.discover(source.rules_path)
            rules_outcome = rule_registry.sync(rules, target_configs, document)
            if rules_outcome.document is not None:
                document = rules_outcome.document

        merge.changed = read_text_or_none(merger.path) != document
        if merge.changed:
            write_text_atomic(merger.path, document)
            logger.info("Updated %s", config.agents_md_name)
        pointers = merger.consolidate_pointers(target_configs)

        skills = SkillRegistry(self.repo_dir, config, tagger, self.hasher).sync(source.skills_path, target_configs)

        agents_outcome = None
        agents_skipped = False
        if source.agents_path is not None:
            if any(t.supports_agents for t in target_configs):
                agents_outcome = AgentRegistry(self.repo_dir, config, tagger, self.hasher).sync(
                    source.agents_path, target_configs
                )
            else:
                agents_skipped = True
                logger.warning("Skipping agents: no selected target supports sub-agents")

        orphans = self._resolve_orphans(
            config, tagger, previous_lock, target_configs,
            skills=skills.items,
            rules=rules_outcome.items if rules_outcome else [],
            agents=agents_outcome.items if agents_outcome else [],
        )

        lockfile = self._store(config).write(
            source=source.source,
            global_content=global_content,
            skills=skills.items,
            targets=target_names,
            marker_prefix=config.marker_prefix,
            pinned_version=pinned_version,
            rules=ContentSet(rules_outcome.items, rules_outcome.content_hash) if rules_outcome else None,
            agents=ContentSet(agents_outcome.items, agents_outcome.content_hash) if agents_outcome else None,
            merged=merge.merged,
        )

        return SyncResult(
            lockfile=lockfile,
            agents_md=merge,
            pointers=pointers,
            skills=skills,
            rules=rules_outcome,
            agents=agents_outcome,
            agents_skipped=agents_skipped,
            orphans=orphans,
            schema_warning=previous.compatibility.warning if previous else None,
        )

    def _resolve_orphans(self, config, tagger, previous_lock, target_configs, **current) -> dict[str, OrphanReport]:
        if previous_lock is None:
            return {}

        content = previous_lock.content
        tracked = {
            "skills": content.skills,
            "rules": content.rules.files if content.rules else [],
            "agents": content.agents.files if content.agents else [],
        }
        resolver = OrphanResolver(self.repo_dir, config, tagger)
        reports = {}
        for kind, previous_items in tracked.items():
            orphans = find_orphans(previous_items, current[kind])
            if orphans:
                reports[kind] = resolver.resolve(kind, orphans, previous_items, target_configs)
        return reports

    # ── Check ────────────────────────────────────────────────────

    def check(self) -> CheckReport:
        """Detect hand-edits to managed content. Read-only.

        Raises:
            SchemaIncompatibleError: The lockfile has an incompatible schema version.
        """
        previous = self._read_compatible(self.config)
        if previous is None:
            return CheckReport(synced=False)

        lockfile = previous.lockfile
        config = self.config.with_prefix(lockfile.content.marker_prefix)
        targets = [get_target_config(name) for name in parse_target_names(lockfile.content.targets)]
        files = ManagedContentChecker(self.repo_dir, config, self.hasher).check(targets)
        for checked in files:
            if checked.has_changes:
                logger.debug("Modified: %s (%s)", checked.path, checked.kind)
        return CheckReport(synced=True, files=files, schema_warning=previous.compatibility.warning)

    # ── Status ───────────────────────────────────────────────────

    def status(self) -> SyncStatus:
        """Summarize sync state. Never raises for an incompatible lockfile."""
        result = self._store(self.config).read()
        lockfile = result.lockfile if result else None
        target_names = lockfile.content.targets if lockfile else ["claude"]
        skills_exist = any(
            (self.repo_dir / get_target_config(name).skills_dir).is_dir()
            for name in parse_target_names(target_names)
        )
        return SyncStatus(
            has_synced=result is not None,
            lockfile=lockfile,
            agents_md_exists=(self.repo_dir / self.config.agents_md_name).is_file(),
            skills_exist=skills_exist,
            schema_warning=result.compatibility.warning if result else None,
            schema_error=result.compatibility.error if result else None,
        )

