"""Lockfile — the record of what the previous sync wrote.

Stored as JSON at ``<repo>/.agconf/lockfile.json``::

    {
      "version": "1.0.0",
      "synced_at": "2026-01-01T00:00:00.000Z",
      "source": {"type": "github", "repository": "org/standards", "ref": "v1.2.0", "commit_sha": "..."},
      "content": {
        "agents_md": {"global_block_hash": "sha256:...", "merged": true},
        "skills": ["review"],
        "rules": {"files": ["security/auth.md"], "content_hash": "sha256:..."},
        "targets": ["claude"],
        "marker_prefix": "agconf"
      },
      "cli_version": "0.3.0"
    }

The schema version is checked before anything else is parsed, so a lockfile
from an incompatible major version is never interpreted.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path

from agconf.config.settings import EngineConfig
from agconf.content.hashing import ContentHasher
from agconf.errors import LockfileError
from agconf.log import get_logger
from agconf.sync.schema import SchemaCompatibility, check_schema_compatibility
from agconf.utils.fs import read_text_or_none, write_text_atomic

logger = get_logger(__name__)

SOURCE_TYPES = ("local", "github")


@dataclass
class LockfileSource:
    """Where the canonical content came from."""

    type: str  # "local" | "github"
    path: str | None = None
    repository: str | None = None
    ref: str | None = None
    commit_sha: str | None = None

    @property
    def display(self) -> str:
        if self.type == "github":
            return f"{self.repository}@{self.ref}"
        return self.path or ""


@dataclass
class ContentSet:
    """Synced files of one kind plus their aggregate hash."""

    files: list[str] = field(default_factory=list)
    content_hash: str = ""


@dataclass
class LockfileContent:
    global_block_hash: str
    merged: bool = True
    skills: list[str] = field(default_factory=list)
    rules: ContentSet | None = None
    agents: ContentSet | None = None
    targets: list[str] = field(default_factory=lambda: ["claude"])
    marker_prefix: str | None = None


@dataclass
class Lockfile:
    version: str
    synced_at: str
    source: LockfileSource
    content: LockfileContent
    cli_version: str = ""
    pinned_version: str | None = None


@dataclass
class LockfileReadResult:
    """A lockfile plus its schema compatibility.

    ``lockfile`` is None when the stored version is incompatible.
    """

    lockfile: Lockfile | None
    compatibility: SchemaCompatibility


class LockfileStore:
    """Reads and writes the lockfile of one downstream repository."""

    def __init__(self, repo_dir: str | Path, config: EngineConfig, hasher: ContentHasher | None = None):
        self.repo_dir = Path(repo_dir)
        self.config = config
        self.hasher = hasher or ContentHasher()

    @property
    def path(self) -> Path:
        return self.repo_dir / self.config.config_dir / self.config.lockfile_name

    def read(self) -> LockfileReadResult | None:
        """Load the lockfile, or None if the repository was never synced.

        Raises:
            LockfileError: If the file is not valid JSON or not a lockfile.
        """
        text = read_text_or_none(self.path)
        if text is None:
            return None

        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise LockfileError(self.path, f"invalid JSON: {e}") from e
        if not isinstance(data, dict):
            raise LockfileError(self.path, "expected a JSON object")

        version = data.get("version")
        if not isinstance(version, str) or not version:
            raise LockfileError(self.path, "missing schema version")

        compatibility = check_schema_compatibility(version, self.config.schema_version)
        if not compatibility.compatible:
            return LockfileReadResult(lockfile=None, compatibility=compatibility)
        if compatibility.warning:
            logger.warning(compatibility.warning)

        try:
            lockfile = _dict_to_lockfile(data)
        except (TypeError, ValueError) as e:
            raise LockfileError(self.path, f"invalid lockfile: {e}") from e
        return LockfileReadResult(lockfile=lockfile, compatibility=compatibility)

    def write(
        self,
        *,
        source: LockfileSource,
        global_content: str,
        skills: list[str],
        targets: list[str],
        marker_prefix: str | None = None,
        pinned_version: str | None = None,
        rules: ContentSet | None = None,
        agents: ContentSet | None = None,
        merged: bool = True,
    ) -> Lockfile:
        """Replace the lockfile with a record of the sync that just ran.

        The record always carries the schema version this build supports.
        """
        lockfile = Lockfile(
            version=self.config.schema_version,
            synced_at=_utc_timestamp(),
            source=source,
            content=LockfileContent(
                global_block_hash=self.hasher.hash(global_content),
                merged=merged,
                skills=list(skills),
                rules=rules if rules and rules.files else None,
                agents=agents if agents and agents.files else None,
                targets=list(targets),
                marker_prefix=marker_prefix,
            ),
            cli_version=self.config.cli_version,
            pinned_version=pinned_version,
        )
        write_text_atomic(self.path, json.dumps(_lockfile_to_dict(lockfile), indent=2) + "\n")
        logger.debug("Wrote lockfile %s", self.path)
        return lockfile


def _utc_timestamp() -> str:
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _lockfile_to_dict(lockfile: Lockfile) -> dict:
    data: dict = {"version": lockfile.version}
    if lockfile.pinned_version:
        data["pinned_version"] = lockfile.pinned_version
    data["synced_at"] = lockfile.synced_at
    data["source"] = _source_to_dict(lockfile.source)

    content = lockfile.content
    content_data: dict = {
        "agents_md": {
            "global_block_hash": content.global_block_hash,
            "merged": content.merged,
        },
        "skills": content.skills,
    }
    if content.rules:
        content_data["rules"] = {"files": content.rules.files, "content_hash": content.rules.content_hash}
    if content.agents:
        content_data["agents"] = {"files": content.agents.files, "content_hash": content.agents.content_hash}
    content_data["targets"] = content.targets
    if content.marker_prefix:
        content_data["marker_prefix"] = content.marker_prefix

    data["content"] = content_data
    data["cli_version"] = lockfile.cli_version
    return data


def _source_to_dict(source: LockfileSource) -> dict:
    if source.type == "github":
        return {
            "type": "github",
            "repository": source.repository,
            "ref": source.ref,
            "commit_sha": source.commit_sha or "",
        }
    data = {"type": "local", "path": source.path}
    if source.commit_sha:
        data["commit_sha"] = source.commit_sha
    return data


def _dict_to_lockfile(data: dict) -> Lockfile:
    content = _require(data, "content", dict)
    agents_md = _require(content, "agents_md", dict)
    pinned = data.get("pinned_version")
    prefix = content.get("marker_prefix")
    return Lockfile(
        version=_require(data, "version", str),
        synced_at=_require(data, "synced_at", str),
        source=_dict_to_source(_require(data, "source", dict)),
        content=LockfileContent(
            global_block_hash=_require(agents_md, "global_block_hash", str),
            merged=bool(agents_md.get("merged", True)),
            skills=_string_list(content.get("skills", []), "skills"),
            rules=_dict_to_content_set(content.get("rules"), "rules"),
            agents=_dict_to_content_set(content.get("agents"), "agents"),
            targets=_string_list(content.get("targets", ["claude"]), "targets"),
            marker_prefix=prefix if isinstance(prefix, str) and prefix else None,
        ),
        cli_version=str(data.get("cli_version", "")),
        pinned_version=pinned if isinstance(pinned, str) and pinned else None,
    )


def _dict_to_source(data: dict) -> LockfileSource:
    source_type = _require(data, "type", str)
    if source_type not in SOURCE_TYPES:
        raise ValueError(f"unknown source type {source_type!r}")
    if source_type == "github":
        return LockfileSource(
            type="github",
            repository=_require(data, "repository", str),
            ref=_require(data, "ref", str),
            commit_sha=_require(data, "commit_sha", str),
        )
    commit = data.get("commit_sha")
    return LockfileSource(
        type="local",
        path=_require(data, "path", str),
        commit_sha=commit if isinstance(commit, str) and commit else None,
    )


def _dict_to_content_set(data: object, name: str) -> ContentSet | None:
    if data is None:
        return None
    if not isinstance(data, dict):
        raise ValueError(f"{name} must be an object")
    return ContentSet(
        files=_string_list(data.get("files", []), f"{name}.files"),
        content_hash=str(data.get("content_hash", "")),
    )


def _require(data: dict, key: str, kind: type):
    if key not in data:
        raise ValueError(f"missing field {key!r}")
    value = data[key]
    if not isinstance(value, kind):
        raise TypeError(f"{key} must be {kind.__name__}")
    return value


def _string_list(value: object, name: str) -> list[str]:
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise TypeError(f"{name} must be a list of strings")
    return list(value)
