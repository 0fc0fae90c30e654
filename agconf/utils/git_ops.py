"""Git operations: read HEAD, fetch or clone a canonical repository."""

from __future__ import annotations

import os
from pathlib import Path

from git import GitCommandError, InvalidGitRepositoryError, NoSuchPathError, Repo

from agconf.errors import SourceError
from agconf.log import get_logger

logger = get_logger(__name__)

GITHUB_HOST = "github.com"


def head_commit(repo_path: str | Path) -> str | None:
    """Return the HEAD commit SHA, or None if the path is not a repo with commits."""
    try:
        repo = Repo(repo_path)
        return repo.head.commit.hexsha
    except (InvalidGitRepositoryError, NoSuchPathError):
        return None
    except ValueError:
        # HEAD points at a branch without commits
        return None


def github_url(repository: str, token: str | None = None) -> str:
    """HTTPS clone URL for ``owner/name``, authenticated when a token is given."""
    token = token if token is not None else os.environ.get("GITHUB_TOKEN")
    if token:
        return f"https://x-access-token:{token}@{GITHUB_HOST}/{repository}.git"
    return f"https://{GITHUB_HOST}/{repository}.git"


def shallow_clone(url: str, dest: str | Path, ref: str, timeout: float | None = None) -> Repo:
    """Fetch ``ref`` from ``url`` at depth 1 into ``dest`` and check it out.

    ``timeout`` (seconds) bounds the network fetch; git is killed when it
    expires.

    Raises:
        SourceError: If the fetch or checkout fails or times out.
    """
    clone_dir = Path(dest)
    clone_dir.mkdir(parents=True, exist_ok=True)
    repo = Repo.init(clone_dir)

    logger.debug("Fetching %s at depth 1 into %s", ref, clone_dir)
    try:
        repo.git.fetch("--depth", "1", url, ref, kill_after_timeout=timeout)
        repo.git.checkout("--detach", "FETCH_HEAD")
    except GitCommandError as e:
        detail = _redact(str(e.stderr or "").strip(), url)
        raise SourceError(f"Failed to fetch ref {ref!r} (git exit {e.status}): {detail}") from e
    return repo


def _redact(text: str, url: str) -> str:
    """Hide credentials embedded in ``url`` from ``text``."""
    if "@" in url and "://" in url:
        credentials = url.split("://", 1)[1].split("@", 1)[0]
        text = text.replace(credentials, "***")
    return text


def clone_repository(url: str, dest: str | Path, branch: str | None = None) -> Repo:
    """Full clone of ``url`` into ``dest``, checking out ``branch`` when given.

    Raises:
        SourceError: If the clone fails.
    """
    logger.debug("Cloning %s into %s", _redact(url, url), dest)
    options = {"branch": branch} if branch else {}
    try:
        return Repo.clone_from(url, str(dest), **options)
    except GitCommandError as e:
        detail = _redact(str(e.stderr or "").strip(), url)
        raise SourceError(f"Failed to clone {_redact(url, url)} (git exit {e.status}): {detail}") from e
