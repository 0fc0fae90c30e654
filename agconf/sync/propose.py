"""Propose — send hand-edits of managed content back to the canonical repository.

Detection is read-only: every managed file whose hash no longer matches is
mapped back to its canonical path with the managed metadata removed.
Applying clones the canonical repository, commits the edits on a
``propose/<slug>`` branch, and pushes it. Opening the pull request is left to
the ``gh`` command returned in the result.
"""

from __future__ import annotations

import re
import shlex
import tempfile
from dataclasses import dataclass, field
from pathlib import Path

from git import GitCommandError, InvalidGitRepositoryError, NoSuchPathError, Repo

from agconf.config.loader import CanonicalConfig, load_canonical_config
from agconf.config.settings import EngineConfig
from agconf.content.hashing import ContentHasher
from agconf.content.markers import MarkerBlockEngine
from agconf.content.metadata import MetadataTagger
from agconf.errors import ProposeError, SchemaIncompatibleError
from agconf.log import get_logger
from agconf.registry.base import CheckedFile
from agconf.registry.checker import ManagedContentChecker
from agconf.sources.resolver import DEFAULT_AGENTS_DIR, DEFAULT_REF, DEFAULT_RULES_DIR
from agconf.sources.targets import get_target_config, parse_target_names
from agconf.sync.lockfile import LockfileSource, LockfileStore
from agconf.utils.fs import read_text_or_none, write_text_atomic
from agconf.utils.git_ops import _redact, clone_repository, github_url, head_commit

logger = get_logger(__name__)

BRANCH_PREFIX = "propose/"
MAX_SLUG_LENGTH = 50
INSTRUCTIONS_PATH = "instructions/AGENTS.md"

_CONTENT_ROOT_RE = re.compile(r"^\.[^/]+/(skills|rules|agents)/")
_SLUG_RE = re.compile(r"[^a-z0-9]+")


@dataclass
class ProposedChange:
    """One edited managed file, mapped to where it lives in the canonical repo."""

    downstream_path: str
    canonical_path: str
    content: str
    kind: str  # skill | rule | agent | global-block


@dataclass
class DownstreamContext:
    """Where the edits were made. Every field is best effort."""

    repo_name: str | None = None
    commit_sha: str | None = None
    author_name: str | None = None
    author_email: str | None = None


@dataclass
class ProposeResult:
    changes: list[ProposedChange]
    source: LockfileSource
    marker_prefix: str | None = None
    downstream: DownstreamContext = field(default_factory=DownstreamContext)
    skipped: list[CheckedFile] = field(default_factory=list)
    """Modified items with no canonical file of their own (rules sections)."""


@dataclass
class ApplyResult:
    clone_dir: Path
    branch: str
    pushed: bool
    pr_command: str | None = None
    """``gh pr create`` invocation for GitHub sources."""

    manual_commands: str | None = None
    """Commands that finish the proposal by hand when the push failed."""


# ── Detection ────────────────────────────────────────────────────────


def detect_proposed_changes(
    repo_dir: str | Path,
    config: EngineConfig | None = None,
    files: list[str] | None = None,
    hasher: ContentHasher | None = None,
) -> ProposeResult:
    """Collect hand-edited managed files as changes for the canonical repository.

    Args:
        repo_dir: Downstream repository root.
        config: Engine configuration (the lockfile's prefix takes over).
        files: Keep only changes whose downstream path contains one of these.

    Raises:
        ProposeError: If the repository was never synced.
        SchemaIncompatibleError: If the lockfile has an incompatible schema.
    """
    repo_dir = Path(repo_dir)
    config = config or EngineConfig()
    hasher = hasher or ContentHasher()

    read = LockfileStore(repo_dir, config, hasher).read()
    if read is None:
        raise ProposeError("No lockfile found. Run 'agconf sync' first.")
    if not read.compatibility.compatible:
        raise SchemaIncompatibleError(
            stored_version=read.compatibility.version,
            message=read.compatibility.error or "incompatible schema version",
        )

    lockfile = read.lockfile
    config = config.with_prefix(lockfile.content.marker_prefix)
    targets = [get_target_config(name) for name in parse_target_names(lockfile.content.targets)]
    modified = [
        checked for checked in ManagedContentChecker(repo_dir, config, hasher).check(targets)
        if checked.has_changes
    ]
    if files:
        modified = [checked for checked in modified if any(part in checked.path for part in files)]

    tagger = MetadataTagger(config, hasher)
    engine = MarkerBlockEngine(config, hasher)
    changes: dict[str, ProposedChange] = {}
    skipped = []
    for checked in modified:
        change = _build_change(repo_dir, checked, tagger, engine)
        if change is None:
            skipped.append(checked)
            continue
        existing = changes.get(change.canonical_path)
        if existing is None:
            changes[change.canonical_path] = change
        elif existing.content != change.content:
            logger.warning(
                "%s and %s both edit %s differently; proposing %s",
                existing.downstream_path, change.downstream_path,
                change.canonical_path, existing.downstream_path,
            )

    return ProposeResult(
        changes=list(changes.values()),
        source=lockfile.source,
        marker_prefix=lockfile.content.marker_prefix,
        downstream=downstream_context(repo_dir),
        skipped=skipped,
    )


def _build_change(
    repo_dir: Path,
    checked: CheckedFile,
    tagger: MetadataTagger,
    engine: MarkerBlockEngine,
) -> ProposedChange | None:
    # the aggregated rules section is generated from many rule files
    if checked.kind == "rules-section":
        return None

    content = read_text_or_none(repo_dir / checked.path)
    if content is None:
        return None

    if checked.kind == "global-block":
        block = engine.parse(content).global_block
        if block is None:
            return None
        return ProposedChange(
            downstream_path=checked.path,
            canonical_path=INSTRUCTIONS_PATH,
            content=engine.strip_bookkeeping(block) + "\n",
            kind=checked.kind,
        )

    canonical_path = _CONTENT_ROOT_RE.sub(r"\1/", checked.path, count=1)
    source_path = tagger.source_path(content) if checked.kind == "rule" else None
    if source_path:
        canonical_path = f"rules/{source_path}"
    return ProposedChange(
        downstream_path=checked.path,
        canonical_path=canonical_path,
        content=tagger.strip_managed_metadata(content),
        kind=checked.kind,
    )


def downstream_context(repo_dir: str | Path) -> DownstreamContext:
    """Repository name, HEAD commit, and git identity of the downstream checkout."""
    try:
        repo = Repo(repo_dir, search_parent_directories=True)
    except (InvalidGitRepositoryError, NoSuchPathError):
        return DownstreamContext()

    root = repo.working_tree_dir
    reader = repo.config_reader()
    return DownstreamContext(
        repo_name=Path(root).name if root else None,
        commit_sha=head_commit(root) if root else None,
        author_name=reader.get_value("user", "name", "") or None,
        author_email=reader.get_value("user", "email", "") or None,
    )


# ── Naming ───────────────────────────────────────────────────────────


def slugify_title(title: str) -> str:
    """``"Fix: API auth (v2)"`` -> ``"fix-api-auth-v2"``, at most 50 characters."""
    slug = _SLUG_RE.sub("-", title.lower()).strip("-")
    return slug[:MAX_SLUG_LENGTH].rstrip("-")


def branch_name(title: str) -> str:
    return f"{BRANCH_PREFIX}{slugify_title(title)}"


def build_pr_body(changes: list[ProposedChange], downstream: DownstreamContext, message: str | None = None) -> str:
    lines = []
    if message:
        lines += [message, "", "---", ""]

    lines += ["## Changed files", ""]
    lines += [f"- {change.canonical_path} ({change.kind})" for change in changes]

    lines += ["", "## Origin", ""]
    if downstream.repo_name:
        lines.append(f"- **Repository:** {downstream.repo_name}")
    if downstream.commit_sha:
        lines.append(f"- **Commit:** {downstream.commit_sha[:12]}")
    if downstream.author_name:
        author = downstream.author_name
        if downstream.author_email:
            author = f"{author} <{downstream.author_email}>"
        lines.append(f"- **Author:** {author}")
    return "\n".join(lines)


def build_pr_command(source: LockfileSource, branch: str, title: str, body: str) -> str:
    """Shell-quoted ``gh pr create`` command for the pushed branch."""
    args = ["gh", "pr", "create"]
    if source.type == "github" and source.repository:
        args += ["--repo", source.repository]
    args += ["--head", branch, "--title", title, "--body", body]
    return shlex.join(args)


# ── Apply ────────────────────────────────────────────────────────────


def apply_proposed_changes(
    result: ProposeResult,
    title: str,
    message: str | None = None,
    dest: str | Path | None = None,
) -> ApplyResult:
    """Commit ``result`` to a new branch of a fresh canonical clone and push it.

    The clone is left in place (a new temporary directory unless ``dest`` is
    given) so a failed push can be finished by hand.

    Raises:
        ProposeError: If there is nothing to propose, the title is unusable,
            or the branch cannot be created or committed.
        SourceError: If the canonical repository cannot be cloned.
    """
    if not result.changes:
        raise ProposeError("Nothing to propose: no managed file was modified")
    slug = slugify_title(title)
    if not slug:
        raise ProposeError(f"Cannot derive a branch name from title {title!r}")

    branch = f"{BRANCH_PREFIX}{slug}"
    clone_dir = Path(dest) if dest else Path(tempfile.mkdtemp(prefix="agconf-propose-")) / "canonical"
    repo = _clone_canonical(result.source, clone_dir)
    canonical = load_canonical_config(clone_dir)

    try:
        repo.git.checkout("-b", branch)
        written = []
        for change in result.changes:
            rel = _configured_path(change, canonical)
            write_text_atomic(clone_dir / rel, change.content)
            written.append(rel)
        repo.index.add(written)
        repo.index.commit(title)
    except GitCommandError as e:
        raise ProposeError(f"Failed to commit proposal on {branch}: {str(e.stderr or e).strip()}") from e
    logger.info("Committed %d file(s) on %s in %s", len(written), branch, clone_dir)

    pr_command = None
    if result.source.type == "github":
        body = build_pr_body(result.changes, result.downstream, message)
        pr_command = build_pr_command(result.source, branch, title, body)

    try:
        repo.git.push("--set-upstream", "origin", branch)
    except GitCommandError as e:
        remote = next(iter(repo.remote("origin").urls), "")
        logger.warning("Push failed: %s", _redact(str(e.stderr or "").strip(), remote))
        manual = [f"cd {shlex.quote(str(clone_dir))}", f"git push -u origin {branch}"]
        if pr_command:
            manual += ["", "Then open the pull request:", pr_command]
        return ApplyResult(clone_dir, branch, pushed=False, pr_command=pr_command, manual_commands="\n".join(manual))

    return ApplyResult(clone_dir, branch, pushed=True, pr_command=pr_command)


def _clone_canonical(source: LockfileSource, clone_dir: Path) -> Repo:
    if source.type == "local":
        if not source.path:
            raise ProposeError("Lockfile source has no local path")
        return clone_repository(source.path, clone_dir)
    if not source.repository:
        raise ProposeError("Lockfile source has no repository")
    return clone_repository(github_url(source.repository), clone_dir, branch=source.ref or DEFAULT_REF)


def _configured_path(change: ProposedChange, canonical: CanonicalConfig | None) -> str:
    """Canonical path under the directories the canonical config declares."""
    if canonical is None:
        return change.canonical_path
    if change.kind == "global-block":
        return canonical.instructions
    roots = {
        "skill": canonical.skills_dir,
        "rule": canonical.rules_dir or DEFAULT_RULES_DIR,
        "agent": canonical.agents_dir or DEFAULT_AGENTS_DIR,
    }
    _, _, rest = change.canonical_path.partition("/")
    return f"{roots[change.kind].rstrip('/')}/{rest}"
