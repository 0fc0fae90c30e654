"""Resolve a canonical repository into the paths a sync reads from."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path

from agconf.config.loader import CanonicalConfig, load_canonical_config
from agconf.config.settings import EngineConfig
from agconf.errors import SourceError
from agconf.log import get_logger
from agconf.sync.lockfile import LockfileSource
from agconf.utils.git_ops import github_url, head_commit, shallow_clone

logger = get_logger(__name__)

DEFAULT_REF = "master"
DEFAULT_RULES_DIR = "rules"
DEFAULT_AGENTS_DIR = "agents"

_VERSION_RE = re.compile(r"\d+\.\d+\.\d+(?:-[\w.]+)?")


@dataclass
class ResolvedSource:
    """A canonical repository on disk, ready to be synced from."""

    source: LockfileSource
    base_path: Path
    agents_md_path: Path
    skills_path: Path
    rules_path: Path | None = None
    agents_path: Path | None = None
    marker_prefix: str = ""
    targets: list[str] = field(default_factory=lambda: ["claude"])
    preserve_repo_content: bool = True


def resolve_local_source(path: str | Path, config: EngineConfig) -> ResolvedSource:
    """Use a canonical repository that is already checked out.

    Raises:
        SourceError: If the instructions file or skills directory is missing.
        ConfigError: If the repository's ``agconf.yaml`` is invalid.
    """
    base = Path(path).resolve()
    if not base.is_dir():
        raise SourceError(f"Canonical repository not found: {base}")

    source = LockfileSource(type="local", path=str(base), commit_sha=head_commit(base))
    return _resolve(base, source, config)


def resolve_github_source(
    repository: str,
    ref: str | None,
    dest: str | Path,
    config: EngineConfig,
    timeout: float | None = None,
) -> ResolvedSource:
    """Fetch ``repository`` (``owner/name``) at ``ref`` into ``dest`` and resolve it.

    Raises:
        SourceError: If the fetch fails or times out, or the checkout is not
            a canonical repository.
    """
    ref = ref or DEFAULT_REF
    base = Path(dest)
    logger.info("Fetching %s@%s", repository, ref)
    shallow_clone(github_url(repository), base, ref, timeout=timeout)

    source = LockfileSource(
        type="github",
        repository=repository,
        ref=ref,
        commit_sha=head_commit(base) or "",
    )
    return _resolve(base, source, config)


def _resolve(base: Path, source: LockfileSource, config: EngineConfig) -> ResolvedSource:
    canonical = load_canonical_config(base) or CanonicalConfig(name=base.name, marker_prefix=config.prefix)

    agents_md = base / canonical.instructions
    skills = base / canonical.skills_dir
    if not agents_md.is_file():
        raise SourceError(f"Canonical instructions not found: {agents_md}")
    if not skills.is_dir():
        raise SourceError(f"Canonical skills directory not found: {skills}")

    return ResolvedSource(
        source=source,
        base_path=base,
        agents_md_path=agents_md,
        skills_path=skills,
        rules_path=_optional_dir(base, canonical.rules_dir, DEFAULT_RULES_DIR),
        agents_path=_optional_dir(base, canonical.agents_dir, DEFAULT_AGENTS_DIR),
        marker_prefix=canonical.marker_prefix,
        targets=list(canonical.targets),
        preserve_repo_content=canonical.preserve_repo_content,
    )


def _optional_dir(base: Path, configured: str | None, default: str) -> Path | None:
    """A configured directory, or the default one when it exists."""
    if configured:
        return base / configured
    candidate = base / default
    return candidate if candidate.is_dir() else None


# ── Version refs ─────────────────────────────────────────────────


def is_version_ref(ref: str | None) -> bool:
    """True for release refs such as ``v1.2.0``, ``1.2.0``, or ``v2.0.0-rc.1``."""
    return bool(ref) and _VERSION_RE.fullmatch(parse_version(ref)) is not None


def parse_version(ref: str) -> str:
    """``v1.2.0`` -> ``1.2.0``. Other refs come back unchanged."""
    return ref[1:] if ref.startswith("v") else ref


def format_tag(version: str) -> str:
    """``1.2.0`` -> ``v1.2.0``, the tag name releases are published under."""
    return f"v{parse_version(version)}"
